"""
Shared request dependencies: the per-request database session and the
query-string parsers used by both the JSON API and the HTML pages.
"""

from datetime import date, datetime
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from database import session_scope
from models import SortOrder, TransactionType
from periods import Period, resolve_period
from services import TransactionFilters, ValidationFailed


def get_db() -> Generator[Session, None, None]:
    with session_scope() as db:
        yield db


def _parse_date(name: str, value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise ValidationFailed(f"Invalid {name}: {value}") from exc


def _parse_limit(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        limit = int(value)
    except ValueError:
        return None
    return limit if limit > 0 else None


def transaction_type_from(value: Optional[str]) -> Optional[TransactionType]:
    if not value:
        return None
    try:
        return TransactionType(value)
    except ValueError:
        return None


def filters_from_request(request: Request) -> TransactionFilters:
    """Unknown ``sort``/``transactionType`` values and bad limits are ignored;
    unparsable dates raise ``ValidationFailed``."""
    params = request.query_params
    sort = SortOrder.asc if params.get("sort") == SortOrder.asc.value else SortOrder.desc
    return TransactionFilters(
        start_date=_parse_date("startDate", params.get("startDate")),
        end_date=_parse_date("endDate", params.get("endDate")),
        transaction_type=transaction_type_from(params.get("transactionType")),
        sort=sort,
        limit=_parse_limit(params.get("limit")),
    )


def period_from_request(request: Request) -> Period:
    params = request.query_params
    try:
        return resolve_period(params.get("period"), params.get("start"), params.get("end"))
    except ValueError as exc:
        raise ValidationFailed(str(exc)) from exc
