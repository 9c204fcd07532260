from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class Period:
    slug: str
    start: Optional[date]
    end: Optional[date]


def _month_bounds(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return first, next_month - date.resolution


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    """Turn the dashboard's period selector into inclusive date bounds.

    ``all`` (or no selector) leaves both bounds open. ``custom`` accepts
    either bound on its own.
    """
    today = today or date.today()
    if not period or period == "all":
        return Period("all", None, None)
    if period == "this_month":
        first, last = _month_bounds(today)
        return Period("this_month", first, last)
    if period == "last_month":
        last_month_end = today.replace(day=1) - date.resolution
        return Period("last_month", last_month_end.replace(day=1), last_month_end)
    if period == "this_year":
        return Period("this_year", date(today.year, 1, 1), date(today.year, 12, 31))
    if period == "custom":
        if not start and not end:
            raise ValueError("Custom period requires a start or end date")
        start_date = date.fromisoformat(start) if start else None
        end_date = date.fromisoformat(end) if end else None
        if start_date and end_date and start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)
    raise ValueError(f"Unknown period: {period}")
