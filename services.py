from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload

from aggregation import (
    CategorySummary,
    MonthlyTotals,
    Summary,
    category_breakdown,
    monthly_series,
    summarize,
)
from config import get_settings
from models import Category, SortOrder, Transaction, TransactionType
from periods import Period
from schemas import CategoryIn, TransactionIn

logger = logging.getLogger(__name__)

CATEGORY_TRANSACTIONS_LIMIT = 100


class RecordNotFound(ValueError):
    pass


class CategoryInUse(ValueError):
    pass


class ValidationFailed(ValueError):
    pass


@dataclass
class TransactionFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    transaction_type: Optional[TransactionType] = None
    sort: SortOrder = SortOrder.desc
    limit: Optional[int] = None


@dataclass(frozen=True)
class CategoryGroup:
    category: Category
    subcategories: list[Category]


@dataclass(frozen=True)
class Dashboard:
    period: Period
    summary: Summary
    categories: list[CategorySummary]
    months: list[MonthlyTotals]


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Category]:
        stmt = select(Category).order_by(
            Category.parent_id.is_not(None), Category.parent_id, Category.id
        )
        return list(self.session.scalars(stmt).all())

    def list_grouped(self) -> list[CategoryGroup]:
        categories = self.list_all()
        children: dict[int, list[Category]] = {}
        for category in categories:
            if category.parent_id is not None:
                children.setdefault(category.parent_id, []).append(category)
        return [
            CategoryGroup(category, children.get(category.id, []))
            for category in categories
            if category.parent_id is None
        ]

    def top_level(self) -> list[Category]:
        stmt = select(Category).where(Category.parent_id.is_(None)).order_by(Category.id)
        return list(self.session.scalars(stmt).all())

    def get(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category:
            raise RecordNotFound("Category not found")
        return category

    def subcategories(self, parent_id: int) -> list[Category]:
        stmt = (
            select(Category).where(Category.parent_id == parent_id).order_by(Category.id)
        )
        return list(self.session.scalars(stmt).all())

    def transactions(
        self, category_id: int, limit: int = CATEGORY_TRANSACTIONS_LIMIT
    ) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.category_id == category_id)
            .order_by(Transaction.booking_date.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt).all())

    def _validate_parent(self, parent_id: Optional[int], category_id: Optional[int]) -> None:
        if parent_id is None:
            return
        if category_id is not None and parent_id == category_id:
            raise ValidationFailed("A category cannot be its own parent")
        parent = self.session.get(Category, parent_id)
        if not parent:
            raise ValidationFailed("Parent category not found")
        if parent.parent_id is not None:
            raise ValidationFailed("Subcategories cannot have subcategories of their own")
        if category_id is not None and self.subcategories(category_id):
            raise ValidationFailed("A category with subcategories cannot become a subcategory")

    def create(self, data: CategoryIn) -> Category:
        self._validate_parent(data.parent_id, None)
        category = Category(
            name=data.name.strip(),
            sifo_code=data.sifo_code,
            description=data.description,
            parent_id=data.parent_id,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info(f"category_created: id={category.id} parent_id={category.parent_id}")
        return category

    def update(self, category_id: int, data: CategoryIn) -> Category:
        category = self.get(category_id)
        self._validate_parent(data.parent_id, category.id)
        category.name = data.name.strip()
        category.sifo_code = data.sifo_code
        category.description = data.description
        category.parent_id = data.parent_id
        self.session.commit()
        self.session.refresh(category)
        logger.info(f"category_updated: id={category.id} parent_id={category.parent_id}")
        return category

    def delete(self, category_id: int) -> None:
        category = self.get(category_id)
        if self.subcategories(category.id):
            raise CategoryInUse("Category has subcategories and cannot be deleted")
        detached = self.session.execute(
            update(Transaction)
            .where(Transaction.category_id == category.id)
            .values(category_id=None)
        ).rowcount
        self.session.delete(category)
        self.session.commit()
        logger.info(
            f"category_deleted: id={category_id} transactions_uncategorized={detached}"
        )


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self, filters: Optional[TransactionFilters] = None) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = select(Transaction).options(joinedload(Transaction.category))
        if filters.start_date:
            stmt = stmt.where(Transaction.booking_date >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(Transaction.booking_date <= filters.end_date)
        if filters.transaction_type == TransactionType.income:
            stmt = stmt.where(Transaction.amount > 0)
        elif filters.transaction_type == TransactionType.expense:
            stmt = stmt.where(Transaction.amount < 0)

        if filters.sort == SortOrder.asc:
            stmt = stmt.order_by(Transaction.booking_date.asc(), Transaction.id.asc())
        else:
            stmt = stmt.order_by(Transaction.booking_date.desc(), Transaction.id.desc())
        if filters.limit:
            stmt = stmt.limit(filters.limit)
        return list(self.session.scalars(stmt).all())

    def get(self, transaction_id: int) -> Transaction:
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(Transaction.id == transaction_id)
        )
        txn = self.session.scalar(stmt)
        if not txn:
            raise RecordNotFound("Transaction not found")
        return txn

    def _reload(self, txn: Transaction) -> Transaction:
        # Re-select so the category relationship matches the new category_id.
        txn_id = txn.id
        self.session.expire(txn)
        return self.get(txn_id)

    def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and not self.session.get(Category, category_id):
            raise ValidationFailed("Category not found")

    def create(self, data: TransactionIn) -> Transaction:
        self._check_category(data.category_id)
        txn = Transaction(**data.model_dump())
        self.session.add(txn)
        self.session.commit()
        logger.info(f"transaction_created: id={txn.id} amount={txn.amount}")
        return self._reload(txn)

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        self._check_category(data.category_id)
        for field, value in data.model_dump().items():
            setattr(txn, field, value)
        self.session.commit()
        logger.info(f"transaction_updated: id={txn.id}")
        return self._reload(txn)

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id}")


class MetricsService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.settings = get_settings()

    def dashboard(
        self,
        period: Period,
        transaction_type: Optional[TransactionType] = None,
    ) -> Dashboard:
        filters = TransactionFilters(
            start_date=period.start,
            end_date=period.end,
            transaction_type=transaction_type,
            sort=SortOrder.asc,
        )
        transactions = TransactionService(self.session).list(filters)
        return Dashboard(
            period=period,
            summary=summarize(transactions),
            categories=category_breakdown(
                transactions,
                self.settings.top_categories,
                uncategorized_label=self.settings.uncategorized_label,
                places=self.settings.percentage_places,
            ),
            months=monthly_series(transactions),
        )
