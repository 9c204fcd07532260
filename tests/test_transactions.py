from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import SortOrder, TransactionType
from schemas import CategoryIn, TransactionIn
from services import (
    CategoryService,
    RecordNotFound,
    TransactionFilters,
    TransactionService,
    ValidationFailed,
)


def _txn(booked: date, amount: str, category_id=None, name="Shop") -> TransactionIn:
    return TransactionIn(
        booking_date=booked,
        amount=Decimal(amount),
        sender="Me",
        receiver=name,
        name=name,
        title=f"{name} {booked.isoformat()}",
        currency="NOK",
        payment_type="card",
        category_id=category_id,
    )


def _seed(session: Session) -> None:
    food = CategoryService(session).create(CategoryIn(name="Food"))
    service = TransactionService(session)
    service.create(_txn(date(2025, 1, 1), "-100.00", food.id, "Grocery"))
    service.create(_txn(date(2025, 1, 15), "2500.00", None, "Employer"))
    service.create(_txn(date(2025, 1, 31), "-49.90", food.id, "Bakery"))
    service.create(_txn(date(2025, 2, 10), "-15.00", None, "Kiosk"))


def test_expense_filter_returns_only_negative_rows() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        service = TransactionService(session)

        expenses = service.list(TransactionFilters(transaction_type=TransactionType.expense))
        assert len(expenses) == 3
        assert all(t.amount < 0 for t in expenses)

        dated = service.list(
            TransactionFilters(
                transaction_type=TransactionType.expense,
                start_date=date(2025, 1, 1),
                end_date=date(2025, 1, 31),
            )
        )
        assert all(t.amount < 0 for t in dated)

        income = service.list(TransactionFilters(transaction_type=TransactionType.income))
        assert [t.name for t in income] == ["Employer"]

        everything = service.list(TransactionFilters(transaction_type=TransactionType.all))
        assert len(everything) == 4


def test_date_bounds_are_inclusive_and_independent() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        service = TransactionService(session)

        january = service.list(
            TransactionFilters(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
        )
        assert [t.name for t in january] == ["Bakery", "Employer", "Grocery"]

        from_mid_january = service.list(TransactionFilters(start_date=date(2025, 1, 15)))
        assert [t.name for t in from_mid_january] == ["Kiosk", "Bakery", "Employer"]

        until_mid_january = service.list(TransactionFilters(end_date=date(2025, 1, 15)))
        assert [t.name for t in until_mid_january] == ["Employer", "Grocery"]


def test_sort_and_limit() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        service = TransactionService(session)

        newest = service.list()
        assert [t.booking_date for t in newest] == sorted(
            (t.booking_date for t in newest), reverse=True
        )

        oldest_two = service.list(TransactionFilters(sort=SortOrder.asc, limit=2))
        assert [t.name for t in oldest_two] == ["Grocery", "Employer"]


def test_rows_carry_category_name_and_tolerate_missing_category() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        names = {t.name: t.category_name for t in TransactionService(session).list()}

        assert names["Grocery"] == "Food"
        assert names["Employer"] is None


def test_create_then_get_returns_submitted_fields() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        food = CategoryService(session).create(CategoryIn(name="Food"))
        data = _txn(date(2025, 3, 4), "-123.45", food.id, "Market")
        service = TransactionService(session)

        created = service.create(data)
        fetched = service.get(created.id)

        for field, value in data.model_dump().items():
            assert getattr(fetched, field) == value
        assert fetched.category_name == "Food"
        assert fetched.created_at is not None
        assert fetched.updated_at is not None


def test_unknown_category_is_rejected() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        with pytest.raises(ValidationFailed, match="Category not found") as excinfo:
            TransactionService(session).create(_txn(date(2025, 1, 1), "-1.00", 999))
        assert not isinstance(excinfo.value, RecordNotFound)


def test_update_replaces_fields_and_category() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        categories = CategoryService(session)
        food = categories.create(CategoryIn(name="Food"))
        travel = categories.create(CategoryIn(name="Travel"))
        service = TransactionService(session)
        txn = service.create(_txn(date(2025, 1, 1), "-10.00", food.id))

        updated = service.update(txn.id, _txn(date(2025, 1, 2), "-12.00", travel.id, "Train"))

        assert updated.booking_date == date(2025, 1, 2)
        assert updated.amount == Decimal("-12.00")
        assert updated.category_name == "Travel"
        assert updated.name == "Train"


def test_missing_transaction_raises_not_found() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = TransactionService(session)
        with pytest.raises(RecordNotFound):
            service.get(42)
        with pytest.raises(RecordNotFound):
            service.update(42, _txn(date(2025, 1, 1), "1.00"))
        with pytest.raises(RecordNotFound):
            service.delete(42)


def test_delete_removes_the_row() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = TransactionService(session)
        txn = service.create(_txn(date(2025, 1, 1), "-5.00"))

        service.delete(txn.id)

        assert service.list() == []
