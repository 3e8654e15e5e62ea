from __future__ import annotations

import math
import datetime as dt
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import BudgetStatus, RecurringFrequency, TxnType


def _check_amount(v: float | None) -> float | None:
    if v is None:
        return v
    if not math.isfinite(v):
        raise ValueError("amount must be finite")
    if v <= 0:
        raise ValueError("amount must be positive")
    if round(v, 2) != v:
        raise ValueError("amount must have at most 2 decimal places")
    return v


def _strip_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class ErrorOut(BaseModel):
    detail: str
    error: str


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")

    @field_validator("name")
    def name_not_blank(cls, v: str):
        return _strip_name(v)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    is_active: Optional[bool] = None

    @field_validator("name")
    def name_not_blank(cls, v: str | None):
        return _strip_name(v)


class CategoryOut(BaseModel):
    id: int
    user_id: Optional[int]
    name: str
    icon: Optional[str]
    color: Optional[str]
    is_system: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TransactionCreate(BaseModel):
    category_id: int
    description: str = Field(min_length=1, max_length=200)
    amount: float
    type: TxnType
    occurred_at: date
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("amount")
    def amount_valid(cls, v: float):
        return _check_amount(v)

    @field_validator("description")
    def description_not_blank(cls, v: str):
        return _strip_name(v)


class TransactionUpdate(BaseModel):
    category_id: Optional[int] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = None
    type: Optional[TxnType] = None
    occurred_at: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("amount")
    def amount_valid(cls, v: float | None):
        return _check_amount(v)

    @field_validator("description")
    def description_not_blank(cls, v: str | None):
        return _strip_name(v)


class TransactionOut(BaseModel):
    id: int
    user_id: int
    category_id: int
    category_name: Optional[str] = None
    category_icon: Optional[str] = None
    category_color: Optional[str] = None
    description: str
    amount: float
    type: TxnType
    occurred_at: date
    notes: Optional[str]
    source_rule_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def flatten_category(cls, data):
        category = getattr(data, "category", None)
        if category is None:
            return data
        return {
            "id": data.id,
            "user_id": data.user_id,
            "category_id": data.category_id,
            "category_name": category.name,
            "category_icon": category.icon,
            "category_color": category.color,
            "description": data.description,
            "amount": data.amount,
            "type": data.type,
            "occurred_at": data.occurred_at,
            "notes": data.notes,
            "source_rule_id": data.source_rule_id,
            "created_at": data.created_at,
            "updated_at": data.updated_at,
        }


class TransactionSummaryOut(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None
    total_income: float
    total_expense: float
    net_balance: float
    transaction_count: int


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


class BudgetCreate(BaseModel):
    category_id: int
    amount: float
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)

    @field_validator("amount")
    def amount_valid(cls, v: float):
        return _check_amount(v)


class BudgetUpdate(BaseModel):
    amount: float

    @field_validator("amount")
    def amount_valid(cls, v: float):
        return _check_amount(v)


class BudgetOut(BaseModel):
    id: int
    user_id: int
    category_id: int
    category_name: str
    category_icon: Optional[str] = None
    category_color: Optional[str] = None
    amount: float
    month: int
    year: int
    period: str
    spent: float
    remaining: float
    percentage_used: float
    status: BudgetStatus


class BudgetSummaryOut(BaseModel):
    month: int
    year: int
    period: str
    total_budget: float
    total_spent: float
    total_remaining: float
    overall_percentage_used: float
    budget_count: int
    exceeded_count: int
    approaching_count: int
    budgets: list[BudgetOut] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Recurring rules
# ---------------------------------------------------------------------------


class RecurringRuleCreate(BaseModel):
    category_id: int
    description: str = Field(min_length=1, max_length=200)
    amount: float
    type: TxnType
    frequency: RecurringFrequency
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("amount")
    def amount_valid(cls, v: float):
        return _check_amount(v)

    @field_validator("description")
    def description_not_blank(cls, v: str):
        return _strip_name(v)

    @model_validator(mode="after")
    def validate_date_order(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RecurringRuleUpdate(BaseModel):
    category_id: Optional[int] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = None
    type: Optional[TxnType] = None
    frequency: Optional[RecurringFrequency] = None
    end_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("amount")
    def amount_valid(cls, v: float | None):
        return _check_amount(v)

    @field_validator("description")
    def description_not_blank(cls, v: str | None):
        return _strip_name(v)


class RecurringRuleOut(BaseModel):
    id: int
    user_id: int
    category_id: int
    category_name: Optional[str] = None
    description: str
    amount: float
    type: TxnType
    frequency: RecurringFrequency
    start_date: date
    end_date: Optional[date]
    last_generated_at: Optional[datetime]
    next_due_date: Optional[date] = None
    is_active: bool
    notes: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class GeneratedOccurrenceOut(BaseModel):
    recurring_rule_id: int
    transaction_id: int
    description: str
    amount: float
    occurred_at: date

    model_config = ConfigDict(from_attributes=True)


class GenerateResultOut(BaseModel):
    generated_count: int
    transactions: list[GeneratedOccurrenceOut] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class SpendingTrendItem(BaseModel):
    date: dt.date
    period: str
    total_income: float
    total_expense: float
    net_balance: float
    transaction_count: int

    model_config = ConfigDict(from_attributes=True)


class CategoryBreakdownItem(BaseModel):
    category_id: int
    category_name: str
    category_icon: Optional[str] = None
    category_color: Optional[str] = None
    total_amount: float
    transaction_count: int
    percentage: float

    model_config = ConfigDict(from_attributes=True)


class TopCategoryItem(CategoryBreakdownItem):
    average_transaction: float


class FinancialOverviewOut(BaseModel):
    start: date
    end: date
    total_income: float
    total_expense: float
    net_balance: float
    savings_rate: float
    average_daily_income: float
    average_daily_expense: float
    total_transactions: int
    income_transactions: int
    expense_transactions: int
    top_expense_categories: list[TopCategoryItem] = Field(default_factory=list)
    top_income_categories: list[TopCategoryItem] = Field(default_factory=list)
    daily_trend: list[SpendingTrendItem] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class MonthlyComparisonItem(BaseModel):
    year: int
    month: int
    month_name: str
    total_income: float
    total_expense: float
    net_balance: float
    transaction_count: int
    income_change: float
    expense_change: float

    model_config = ConfigDict(from_attributes=True)


class BudgetPerformanceItem(BaseModel):
    budget_id: int
    category_id: int
    category_name: str
    category_icon: Optional[str] = None
    category_color: Optional[str] = None
    budget_amount: float
    actual_spent: float
    remaining: float
    percentage_used: float
    status: BudgetStatus
    is_on_track: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)
