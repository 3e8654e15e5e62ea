from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expense_api import models, schemas
from expense_api.core.exceptions import ConflictError, NotFoundError, ValidationError
from expense_api.services.category_service import CategoryService
from expense_api.utils.dates import month_bounds, period_label
from expense_api.utils.money import ZERO, percent_of, round2, to_decimal

logger = logging.getLogger(__name__)


class BudgetService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.categories = CategoryService(db)

    def _base_query(self, user_id: int):
        return self.db.query(models.Budget).filter(models.Budget.user_id == user_id)

    def list(self, user_id: int, month: Optional[int] = None, year: Optional[int] = None) -> list[models.Budget]:
        query = self._base_query(user_id)
        if month is not None:
            query = query.filter(models.Budget.month == month)
        if year is not None:
            query = query.filter(models.Budget.year == year)
        return query.order_by(models.Budget.year.desc(), models.Budget.month.desc(), models.Budget.id).all()

    def get(self, budget_id: int, user_id: int) -> models.Budget:
        budget = self._base_query(user_id).filter(models.Budget.id == budget_id).first()
        if not budget:
            raise NotFoundError("Budget", budget_id)
        return budget

    def spent(self, budget: models.Budget) -> Decimal:
        """Sum of EXPENSE transactions in the budget's category and month."""
        first, last = month_bounds(budget.year, budget.month)
        total = (
            self.db.query(func.sum(models.Transaction.amount))
            .filter(
                models.Transaction.user_id == budget.user_id,
                models.Transaction.category_id == budget.category_id,
                models.Transaction.type == models.TxnType.EXPENSE,
                models.Transaction.occurred_at >= first,
                models.Transaction.occurred_at <= last,
            )
            .scalar()
        )
        return to_decimal(total)

    def describe(self, budget: models.Budget) -> schemas.BudgetOut:
        amount = to_decimal(budget.amount)
        spent = self.spent(budget)
        percentage = percent_of(spent, amount)
        return schemas.BudgetOut(
            id=budget.id,
            user_id=budget.user_id,
            category_id=budget.category_id,
            category_name=budget.category.name,
            category_icon=budget.category.icon,
            category_color=budget.category.color,
            amount=amount,
            month=budget.month,
            year=budget.year,
            period=period_label(budget.year, budget.month),
            spent=spent,
            remaining=amount - spent,
            percentage_used=round2(percentage),
            status=models.BudgetStatus.from_percentage(percentage),
        )

    def summary(self, user_id: int, month: int, year: int) -> schemas.BudgetSummaryOut:
        items = [self.describe(b) for b in self.list(user_id, month=month, year=year)]
        total_budget = sum((to_decimal(i.amount) for i in items), ZERO)
        total_spent = sum((to_decimal(i.spent) for i in items), ZERO)
        return schemas.BudgetSummaryOut(
            month=month,
            year=year,
            period=period_label(year, month),
            total_budget=total_budget,
            total_spent=total_spent,
            total_remaining=total_budget - total_spent,
            overall_percentage_used=round2(percent_of(total_spent, total_budget)),
            budget_count=len(items),
            exceeded_count=sum(1 for i in items if i.status == models.BudgetStatus.EXCEEDED),
            approaching_count=sum(1 for i in items if i.status == models.BudgetStatus.APPROACHING),
            budgets=items,
        )

    def create(self, payload: schemas.BudgetCreate, user_id: int, today: date) -> models.Budget:
        self.categories.require_usable(payload.category_id, user_id)
        if (payload.year, payload.month) < (today.year, today.month):
            raise ValidationError("Cannot create a budget for a past month")
        duplicate = (
            self._base_query(user_id)
            .filter(
                models.Budget.category_id == payload.category_id,
                models.Budget.month == payload.month,
                models.Budget.year == payload.year,
            )
            .first()
        )
        if duplicate:
            raise ConflictError("A budget already exists for this category and month")

        budget = models.Budget(
            user_id=user_id,
            category_id=payload.category_id,
            amount=to_decimal(payload.amount),
            month=payload.month,
            year=payload.year,
        )
        self.db.add(budget)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("A budget already exists for this category and month") from exc
        self.db.refresh(budget)
        logger.info("Created budget %s for user %s (%s-%02d)", budget.id, user_id, budget.year, budget.month)
        return budget

    def update(self, budget_id: int, payload: schemas.BudgetUpdate, user_id: int) -> models.Budget:
        budget = self.get(budget_id, user_id)
        budget.amount = to_decimal(payload.amount)
        self.db.commit()
        self.db.refresh(budget)
        return budget

    def delete(self, budget_id: int, user_id: int) -> None:
        budget = self.get(budget_id, user_id)
        self.db.delete(budget)
        self.db.commit()
        logger.info("Deleted budget %s for user %s", budget_id, user_id)
