from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from expense_api import models, schemas
from expense_api.core.exceptions import ConflictError, NotFoundError, ValidationError
from expense_api.services.category_service import CategoryService
from expense_api.utils.money import ZERO, to_decimal

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50

SORT_COLUMNS = {
    "occurred_at": models.Transaction.occurred_at,
    "amount": models.Transaction.amount,
    "description": models.Transaction.description,
    "category": models.Category.name,
}


@dataclass
class TransactionFilters:
    category_id: Optional[int] = None
    type: Optional[models.TxnType] = None
    start: Optional[date] = None
    end: Optional[date] = None
    search: Optional[str] = None
    sort_by: str = "occurred_at"
    descending: bool = True
    page: int = 1
    page_size: int = 20


@dataclass
class TransactionTotals:
    total_income: Decimal
    total_expense: Decimal
    transaction_count: int

    @property
    def net_balance(self) -> Decimal:
        return self.total_income - self.total_expense


class TransactionService:
    """CRUD over transactions plus the filtered fetch the engines read from."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.categories = CategoryService(db)

    def query_for_user(
        self,
        user_id: int,
        *,
        category_id: Optional[int] = None,
        txn_type: Optional[models.TxnType] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        search: Optional[str] = None,
    ) -> Query:
        query = self.db.query(models.Transaction).filter(models.Transaction.user_id == user_id)
        if category_id is not None:
            query = query.filter(models.Transaction.category_id == category_id)
        if txn_type is not None:
            query = query.filter(models.Transaction.type == txn_type)
        if start is not None:
            query = query.filter(models.Transaction.occurred_at >= start)
        if end is not None:
            query = query.filter(models.Transaction.occurred_at <= end)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Transaction.description).like(pattern),
                    func.lower(models.Transaction.notes).like(pattern),
                )
            )
        return query

    def fetch(self, user_id: int, **filters) -> list[models.Transaction]:
        """Unbounded filtered fetch ordered by date."""
        return (
            self.query_for_user(user_id, **filters)
            .order_by(models.Transaction.occurred_at, models.Transaction.id)
            .all()
        )

    def list(self, user_id: int, filters: TransactionFilters) -> tuple[list[models.Transaction], int]:
        if filters.page < 1:
            raise ValidationError("page must be 1 or greater")
        if not 1 <= filters.page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        if filters.start and filters.end and filters.end < filters.start:
            raise ValidationError("end must be on or after start")

        query = self.query_for_user(
            user_id,
            category_id=filters.category_id,
            txn_type=filters.type,
            start=filters.start,
            end=filters.end,
            search=filters.search,
        )
        total = query.order_by(None).count()

        sort_key = (filters.sort_by or "").lower()
        column = SORT_COLUMNS.get(sort_key, models.Transaction.occurred_at)
        if sort_key == "category":
            query = query.join(models.Category, models.Transaction.category_id == models.Category.id)
        ordering = column.desc() if filters.descending else column.asc()
        tiebreak = models.Transaction.id.desc() if filters.descending else models.Transaction.id.asc()
        rows = (
            query.order_by(ordering, tiebreak)
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
            .all()
        )
        return rows, total

    def recent(self, user_id: int, count: int = 10) -> list[models.Transaction]:
        return (
            self.query_for_user(user_id)
            .order_by(models.Transaction.occurred_at.desc(), models.Transaction.id.desc())
            .limit(max(1, min(count, MAX_PAGE_SIZE)))
            .all()
        )

    def totals(self, user_id: int, start: Optional[date] = None, end: Optional[date] = None) -> TransactionTotals:
        income = ZERO
        expense = ZERO
        rows = self.fetch(user_id, start=start, end=end)
        for txn in rows:
            if txn.type == models.TxnType.INCOME:
                income += to_decimal(txn.amount)
            else:
                expense += to_decimal(txn.amount)
        return TransactionTotals(total_income=income, total_expense=expense, transaction_count=len(rows))

    def get(self, txn_id: int, user_id: int) -> models.Transaction:
        txn = (
            self.db.query(models.Transaction)
            .filter(models.Transaction.id == txn_id, models.Transaction.user_id == user_id)
            .first()
        )
        if not txn:
            raise NotFoundError("Transaction", txn_id)
        return txn

    def _check_date(self, occurred_at: date, today: date) -> None:
        if occurred_at > today:
            raise ValidationError("Transaction date cannot be in the future")

    def create(self, payload: schemas.TransactionCreate, user_id: int, today: date) -> models.Transaction:
        self.categories.require_usable(payload.category_id, user_id)
        self._check_date(payload.occurred_at, today)
        txn = models.Transaction(
            user_id=user_id,
            category_id=payload.category_id,
            description=payload.description,
            amount=to_decimal(payload.amount),
            type=payload.type,
            occurred_at=payload.occurred_at,
            notes=payload.notes,
        )
        self.db.add(txn)
        self.db.commit()
        self.db.refresh(txn)
        logger.info("Created transaction %s for user %s", txn.id, user_id)
        return txn

    def update(
        self, txn_id: int, payload: schemas.TransactionUpdate, user_id: int, today: date
    ) -> models.Transaction:
        txn = self.get(txn_id, user_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("category_id") is not None and data["category_id"] != txn.category_id:
            self.categories.require_usable(data["category_id"], user_id)
        if data.get("occurred_at") is not None:
            self._check_date(data["occurred_at"], today)
        for field, value in data.items():
            if value is None and field != "notes":
                continue
            if field == "amount":
                value = to_decimal(value)
            setattr(txn, field, value)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("The recurring rule already has a transaction on this date") from exc
        self.db.refresh(txn)
        return txn

    def delete(self, txn_id: int, user_id: int) -> None:
        txn = self.get(txn_id, user_id)
        self.db.delete(txn)
        self.db.commit()
        logger.info("Deleted transaction %s for user %s", txn_id, user_id)
