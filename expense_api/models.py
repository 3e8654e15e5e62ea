from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .core.clock import now_local_naive
from .core.database import Base


AUTO_GENERATED_SUFFIX = "(Auto-generated)"

# Budget status thresholds, in percent of the budget amount
APPROACHING_THRESHOLD = Decimal("80")
EXCEEDED_THRESHOLD = Decimal("100")


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive, nullable=False)


class TxnType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class RecurringFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class BudgetStatus(str, Enum):
    """Spending state of a budget, derived from the share of the amount already spent."""

    UNDER_BUDGET = "UNDER_BUDGET"
    APPROACHING = "APPROACHING"
    EXCEEDED = "EXCEEDED"

    @classmethod
    def from_percentage(cls, percentage_used: Decimal) -> "BudgetStatus":
        if percentage_used >= EXCEEDED_THRESHOLD:
            return cls.EXCEEDED
        if percentage_used >= APPROACHING_THRESHOLD:
            return cls.APPROACHING
        return cls.UNDER_BUDGET


class User(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)


class Category(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # NULL owner marks a system category shared by every user
    user_id: Mapped[int | None] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(16))
    color: Mapped[str | None] = mapped_column(String(9))
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_category_user_name"),
        CheckConstraint("is_system = 0 OR user_id IS NULL", name="ck_category_system_unowned"),
    )


class Transaction(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("category.id"), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type"), nullable=False)
    occurred_at: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    # Set on transactions materialized from a recurring rule
    source_rule_id: Mapped[int | None] = mapped_column(ForeignKey("recurringrule.id", ondelete="SET NULL"))

    category: Mapped["Category"] = relationship("Category", lazy="joined", innerjoin=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_txn_amount_positive"),
        UniqueConstraint("source_rule_id", "occurred_at", name="uq_txn_rule_occurrence"),
        Index("ix_txn_user_date", "user_id", "occurred_at"),
        Index("ix_txn_user_category", "user_id", "category_id"),
    )


class Budget(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("category.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    category: Mapped["Category"] = relationship("Category", lazy="joined", innerjoin=True)

    __table_args__ = (
        UniqueConstraint("user_id", "category_id", "month", "year", name="uq_budget_category_month"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_budget_month"),
        CheckConstraint("year BETWEEN 2000 AND 2100", name="ck_budget_year"),
        CheckConstraint("amount > 0", name="ck_budget_amount_positive"),
    )


class RecurringRule(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("category.id"), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type"), nullable=False)
    frequency: Mapped[RecurringFrequency] = mapped_column(SAEnum(RecurringFrequency), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    last_generated_at: Mapped[datetime | None] = mapped_column(DateTime)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    category: Mapped["Category"] = relationship("Category", lazy="joined", innerjoin=True)

    __table_args__ = (
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_recurring_date_order"),
        CheckConstraint("amount > 0", name="ck_recurring_amount_positive"),
        Index("ix_recurring_user_active", "user_id", "is_active"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<RecurringRule id={self.id!r} user_id={self.user_id!r} frequency={self.frequency!r} "
            f"start={self.start_date!r} end={self.end_date!r} last_generated_at={self.last_generated_at!r}>"
        )
