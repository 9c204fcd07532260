from datetime import date, datetime
from decimal import Decimal

from aggregation import (
    category_breakdown,
    coerce_amount,
    month_label,
    monthly_series,
    summarize,
)


def txn(amount, category=None, booked="2025-01-15"):
    return {"amount": amount, "category_name": category, "booking_date": booked}


def test_summary_matches_worked_example() -> None:
    rows = [txn(-100, "Food"), txn(-50, "Food"), txn(200, "Salary")]

    summary = summarize(rows)

    assert summary.total_income == Decimal("200")
    assert summary.total_expenses == Decimal("150")
    assert summary.balance == Decimal("50")
    assert summary.transaction_count == 3

    breakdown = category_breakdown(rows)
    assert len(breakdown) == 1
    food = breakdown[0]
    assert food.name == "Food"
    assert food.total_amount == Decimal("150")
    assert food.transaction_count == 2
    assert food.percentage == Decimal("100.00")


def test_empty_list_yields_zero_summary() -> None:
    summary = summarize([])

    assert summary.total_income == 0
    assert summary.total_expenses == 0
    assert summary.balance == 0
    assert summary.transaction_count == 0
    assert category_breakdown([]) == []
    assert monthly_series([]) == []


def test_balance_is_income_minus_expenses() -> None:
    rows = [txn("12.34"), txn("-0.10"), txn(-99.99), txn(1000), txn("-0.01")]

    summary = summarize(rows)

    assert summary.balance == summary.total_income - summary.total_expenses
    assert summary.total_income == Decimal("1012.34")
    assert summary.total_expenses == Decimal("100.10")


def test_numeric_strings_are_coerced_and_garbage_counts_as_zero() -> None:
    rows = [
        txn("250.50", "Salary"),
        txn("-20.25", "Food"),
        txn("NaN", "Food"),
        txn("not a number", "Food"),
        txn(float("inf"), "Food"),
        txn(None, "Food"),
    ]

    summary = summarize(rows)

    assert summary.total_income == Decimal("250.50")
    assert summary.total_expenses == Decimal("20.25")
    assert summary.transaction_count == 6
    breakdown = category_breakdown(rows)
    assert [(c.name, c.transaction_count) for c in breakdown] == [("Food", 1)]


def test_out_of_range_amounts_count_as_zero_instead_of_overflowing() -> None:
    rows = [
        txn("1e999999", "Huge"),
        txn("9e999999", "Huge"),
        txn("-1e999999", "Huge"),
        txn("-9e999999", "Huge"),
        txn("-12.50", "Food", booked="2025-03-01"),
    ]

    summary = summarize(rows)

    assert summary.total_income == 0
    assert summary.total_expenses == Decimal("12.50")
    assert summary.transaction_count == 5
    breakdown = category_breakdown(rows)
    assert [(c.name, c.total_amount) for c in breakdown] == [("Food", Decimal("12.50"))]
    series = monthly_series(rows)
    assert [(m.label, m.expense) for m in series] == [
        ("Jan 2025", Decimal("0")),
        ("Mar 2025", Decimal("12.50")),
    ]


def test_coerce_amount_keeps_the_largest_storable_amounts() -> None:
    assert coerce_amount("-9999999999.99") == Decimal("-9999999999.99")
    assert coerce_amount("99999999999999") == Decimal("99999999999999")
    assert coerce_amount("1e15") == 0


def test_coerce_amount_handles_common_inputs() -> None:
    assert coerce_amount(Decimal("-3.50")) == Decimal("-3.50")
    assert coerce_amount(" 42 ") == Decimal("42")
    assert coerce_amount(0.1) == Decimal("0.1")
    assert coerce_amount(True) == 0
    assert coerce_amount("") == 0
    assert coerce_amount(float("nan")) == 0


def test_breakdown_excludes_income_and_zero_amounts() -> None:
    rows = [txn(500, "Salary"), txn(0, "Gift"), txn(-10, "Food")]

    breakdown = category_breakdown(rows)

    assert [c.name for c in breakdown] == ["Food"]


def test_breakdown_percentages_sum_to_hundred() -> None:
    rows = [txn(-10, "A"), txn(-10, "B"), txn(-10, "C"), txn(-7.5, "D")]

    breakdown = category_breakdown(rows)

    total = sum(c.percentage for c in breakdown)
    assert abs(total - Decimal("100")) <= Decimal("0.05")
    assert all(c.percentage <= 100 for c in breakdown)


def test_breakdown_is_sorted_descending_and_stable_on_ties() -> None:
    rows = [
        txn(-20, "Transport"),
        txn(-50, "Rent"),
        txn(-20, "Food"),
        txn(-20, "Books"),
    ]

    breakdown = category_breakdown(rows)

    assert [c.name for c in breakdown] == ["Rent", "Transport", "Food", "Books"]


def test_missing_category_uses_uncategorized_label() -> None:
    rows = [txn(-5), txn(-5, ""), txn(-1, "Food")]

    default = category_breakdown(rows)
    custom = category_breakdown(rows, uncategorized_label="Other")

    assert default[0].name == "Uncategorized"
    assert default[0].transaction_count == 2
    assert custom[0].name == "Other"


def test_top_n_keeps_percentages_relative_to_all_expenses() -> None:
    rows = [txn(-(i + 1) * 10, f"C{i}") for i in range(7)]

    top = category_breakdown(rows, 5)

    assert len(top) == 5
    assert [c.name for c in top] == ["C6", "C5", "C4", "C3", "C2"]
    # 70 of 280 in total
    assert top[0].percentage == Decimal("25.00")


def test_percentage_places_are_configurable() -> None:
    rows = [txn(-1, "A"), txn(-2, "B")]

    breakdown = category_breakdown(rows, places=0)

    assert [c.percentage for c in breakdown] == [Decimal("67"), Decimal("33")]


def test_breakdown_reads_object_attributes() -> None:
    class Row:
        def __init__(self, amount, category_name):
            self.amount = amount
            self.category_name = category_name

    breakdown = category_breakdown([Row(Decimal("-4"), "Food"), Row(Decimal("-4"), None)])

    assert [c.name for c in breakdown] == ["Food", "Uncategorized"]
    assert [c.percentage for c in breakdown] == [Decimal("50.00"), Decimal("50.00")]


def test_monthly_series_sorts_chronologically() -> None:
    rows = [
        txn(100, booked="2025-02-03"),
        txn(-40, booked="2024-03-10"),
        txn(-10, booked=date(2025, 2, 20)),
        txn(30, booked=datetime(2024, 3, 1, 8, 30)),
    ]

    series = monthly_series(rows)

    assert [m.label for m in series] == ["Mar 2024", "Feb 2025"]
    assert (series[0].income, series[0].expense) == (Decimal("30"), Decimal("40"))
    assert (series[1].income, series[1].expense) == (Decimal("100"), Decimal("10"))


def test_month_label_uses_english_abbreviations() -> None:
    assert month_label(2025, 1) == "Jan 2025"
    assert month_label(2025, 5) == "May 2025"
    assert month_label(1999, 12) == "Dec 1999"


def test_monthly_series_skips_unparsable_dates() -> None:
    rows = [txn(10, booked="yesterday"), txn(10, booked=None), txn(5, booked="2025-06-01T10:00:00")]

    series = monthly_series(rows)

    assert [(m.year, m.month, m.income) for m in series] == [(2025, 6, Decimal("5"))]
