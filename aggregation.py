"""Dashboard aggregates computed from an already-fetched transaction list.

Everything here is a pure function: no session, no I/O. Inputs may be ORM
rows, pydantic models or plain mappings (e.g. decoded JSON), and amounts may
arrive as numeric strings.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_UNCATEGORIZED_LABEL = "Uncategorized"
DEFAULT_PERCENTAGE_PLACES = 2
# Amounts with this many integer digits or more are out of range and count as zero.
MAX_AMOUNT_DIGITS = 15
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True)
class Summary:
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal
    transaction_count: int


@dataclass(frozen=True)
class CategorySummary:
    name: str
    total_amount: Decimal
    transaction_count: int
    percentage: Decimal


@dataclass(frozen=True)
class MonthlyTotals:
    year: int
    month: int
    label: str
    income: Decimal
    expense: Decimal


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def month_label(year: int, month: int) -> str:
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"


def coerce_amount(value: Any) -> Decimal:
    """Best-effort conversion to Decimal; anything unusable counts as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            # str() keeps floats from dragging binary noise into the sum
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite() or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return ZERO
    return amount


def coerce_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def summarize(transactions: Iterable[Any]) -> Summary:
    income = ZERO
    expenses = ZERO
    count = 0
    for txn in transactions:
        count += 1
        amount = coerce_amount(_field(txn, "amount"))
        if amount > 0:
            income += amount
        elif amount < 0:
            expenses += amount
    expenses = abs(expenses)
    return Summary(
        total_income=income,
        total_expenses=expenses,
        balance=income - expenses,
        transaction_count=count,
    )


def percentage_of(part: Decimal, whole: Decimal, places: int) -> Decimal:
    if whole <= 0:
        return ZERO
    quantum = Decimal(1).scaleb(-places)
    return (part / whole * HUNDRED).quantize(quantum, rounding=ROUND_HALF_UP)


def category_breakdown(
    transactions: Iterable[Any],
    limit: Optional[int] = None,
    *,
    uncategorized_label: str = DEFAULT_UNCATEGORIZED_LABEL,
    places: int = DEFAULT_PERCENTAGE_PLACES,
) -> list[CategorySummary]:
    """Expense totals per category, largest first.

    Groups keep the order in which their category was first seen, and the
    sort is stable, so categories with equal totals stay in that order.
    Percentages are relative to all expenses, not just the returned top ``limit``.
    """
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for txn in transactions:
        amount = coerce_amount(_field(txn, "amount"))
        if amount >= 0:
            continue
        name = _field(txn, "category_name") or uncategorized_label
        totals[name] = totals.get(name, ZERO) + abs(amount)
        counts[name] = counts.get(name, 0) + 1

    total_expenses = sum(totals.values(), ZERO)
    summaries = [
        CategorySummary(
            name=name,
            total_amount=total,
            transaction_count=counts[name],
            percentage=percentage_of(total, total_expenses, places),
        )
        for name, total in totals.items()
    ]
    summaries.sort(key=lambda item: item.total_amount, reverse=True)
    if limit is not None:
        summaries = summaries[: max(limit, 0)]
    return summaries


def monthly_series(transactions: Iterable[Any]) -> list[MonthlyTotals]:
    buckets: dict[tuple[int, int], list[Decimal]] = {}
    for txn in transactions:
        booked = coerce_date(_field(txn, "booking_date"))
        if booked is None:
            continue
        amount = coerce_amount(_field(txn, "amount"))
        bucket = buckets.setdefault((booked.year, booked.month), [ZERO, ZERO])
        if amount > 0:
            bucket[0] += amount
        elif amount < 0:
            bucket[1] += abs(amount)

    return [
        MonthlyTotals(
            year=year,
            month=month,
            label=month_label(year, month),
            income=income,
            expense=expense,
        )
        for (year, month), (income, expense) in sorted(buckets.items())
    ]
