from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    sifo_code: Optional[str] = Field(default=None, max_length=20)
    description: Optional[str] = None
    parent_id: Optional[int] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sifo_code: Optional[str]
    description: Optional[str]
    parent_id: Optional[int]
    created_at: datetime
    updated_at: datetime


class TransactionIn(BaseModel):
    booking_date: date
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    sender: Optional[str] = Field(default=None, max_length=200)
    receiver: Optional[str] = Field(default=None, max_length=200)
    name: Optional[str] = Field(default=None, max_length=200)
    title: Optional[str] = None
    currency: Optional[str] = Field(default=None, max_length=3)
    payment_type: Optional[str] = Field(default=None, max_length=50)
    category_id: Optional[int] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_date: date
    amount: float
    sender: Optional[str]
    receiver: Optional[str]
    name: Optional[str]
    title: Optional[str]
    currency: Optional[str]
    payment_type: Optional[str]
    category_id: Optional[int]
    category_name: Optional[str]
    created_at: datetime
    updated_at: datetime


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )


class SummaryOut(_CamelModel):
    total_income: float
    total_expenses: float
    balance: float
    transaction_count: int


class CategorySummaryOut(_CamelModel):
    name: str
    total_amount: float
    transaction_count: int
    percentage: float


class MonthlyTotalsOut(_CamelModel):
    label: str
    year: int
    month: int
    income: float
    expense: float


class PeriodOut(_CamelModel):
    slug: str
    start: Optional[date]
    end: Optional[date]


class DashboardOut(_CamelModel):
    period: PeriodOut
    summary: SummaryOut
    categories: list[CategorySummaryOut]
    months: list[MonthlyTotalsOut]
