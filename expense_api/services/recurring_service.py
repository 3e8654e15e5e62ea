from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expense_api import models, schemas
from expense_api.core.config import settings
from expense_api.core.exceptions import ConflictError, NotFoundError, ValidationError
from expense_api.services.category_service import CategoryService
from expense_api.utils.dates import add_months, add_years, months_between
from expense_api.utils.money import to_decimal

logger = logging.getLogger(__name__)


@dataclass
class GeneratedOccurrence:
    recurring_rule_id: int
    transaction_id: int
    description: str
    amount: Decimal
    occurred_at: date


def occurrence_at(start: date, frequency: models.RecurringFrequency, index: int) -> date:
    """Return occurrence ``index`` of a schedule anchored at ``start``.

    Month and year steps are taken from the anchor, not from the previous
    occurrence, so a rule starting on the 31st keeps landing on month ends.
    """
    if frequency == models.RecurringFrequency.DAILY:
        return start + timedelta(days=index)
    if frequency == models.RecurringFrequency.WEEKLY:
        return start + timedelta(days=7 * index)
    if frequency == models.RecurringFrequency.MONTHLY:
        return add_months(start, index)
    if frequency == models.RecurringFrequency.YEARLY:
        return add_years(start, index)
    raise ValueError(f"Unsupported frequency: {frequency!r}")


def _first_index_after(start: date, frequency: models.RecurringFrequency, after: date) -> int:
    if after < start:
        return 0
    if frequency == models.RecurringFrequency.DAILY:
        index = (after - start).days + 1
    elif frequency == models.RecurringFrequency.WEEKLY:
        index = (after - start).days // 7 + 1
    elif frequency == models.RecurringFrequency.MONTHLY:
        index = months_between(start, after)
    else:
        index = after.year - start.year
    # the estimate never overshoots; step forward past clamped month ends
    while occurrence_at(start, frequency, index) <= after:
        index += 1
    return index


def next_occurrence(start: date, frequency: models.RecurringFrequency, cursor: date) -> date:
    """First occurrence of the schedule strictly after ``cursor``."""
    return occurrence_at(start, frequency, _first_index_after(start, frequency, cursor))


def iter_occurrences_after(start: date, frequency: models.RecurringFrequency, cursor: date) -> Iterator[date]:
    index = _first_index_after(start, frequency, cursor)
    while True:
        yield occurrence_at(start, frequency, index)
        index += 1


def generation_cursor(rule: models.RecurringRule) -> date:
    """Last date already covered by generation for ``rule``."""
    if rule.last_generated_at is not None:
        return rule.last_generated_at.date()
    return rule.start_date - timedelta(days=1)


class RecurringRuleService:
    """Recurring rule CRUD and materialization of due occurrences into transactions."""

    def __init__(self, db: Session, generation_cap: Optional[int] = None) -> None:
        self.db = db
        self.categories = CategoryService(db)
        self.generation_cap = generation_cap or settings.RECURRING_GENERATION_CAP

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def list(self, user_id: int, is_active: Optional[bool] = None) -> list[models.RecurringRule]:
        query = self.db.query(models.RecurringRule).filter(models.RecurringRule.user_id == user_id)
        if is_active is not None:
            query = query.filter(models.RecurringRule.is_active.is_(is_active))
        return query.order_by(models.RecurringRule.start_date, models.RecurringRule.id).all()

    def get(self, rule_id: int, user_id: int) -> models.RecurringRule:
        rule = (
            self.db.query(models.RecurringRule)
            .filter(models.RecurringRule.id == rule_id, models.RecurringRule.user_id == user_id)
            .first()
        )
        if not rule:
            raise NotFoundError("Recurring rule", rule_id)
        return rule

    def create(self, payload: schemas.RecurringRuleCreate, user_id: int) -> models.RecurringRule:
        self.categories.require_usable(payload.category_id, user_id)
        rule = models.RecurringRule(
            user_id=user_id,
            category_id=payload.category_id,
            description=payload.description,
            amount=to_decimal(payload.amount),
            type=payload.type,
            frequency=payload.frequency,
            start_date=payload.start_date,
            end_date=payload.end_date,
            notes=payload.notes,
            is_active=True,
        )
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        logger.info("Created recurring rule %s (%s) for user %s", rule.id, rule.frequency.value, user_id)
        return rule

    def update(self, rule_id: int, payload: schemas.RecurringRuleUpdate, user_id: int) -> models.RecurringRule:
        rule = self.get(rule_id, user_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("category_id") is not None and data["category_id"] != rule.category_id:
            self.categories.require_usable(data["category_id"], user_id)
        if data.get("end_date") is not None and data["end_date"] < rule.start_date:
            raise ValidationError("end_date must be on or after start_date")
        for field, value in data.items():
            if value is None and field not in ("end_date", "notes"):
                continue
            if field == "amount":
                value = to_decimal(value)
            setattr(rule, field, value)
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def delete(self, rule_id: int, user_id: int) -> None:
        rule = self.get(rule_id, user_id)
        self.db.delete(rule)
        self.db.commit()
        logger.info("Deleted recurring rule %s for user %s", rule_id, user_id)

    def toggle_active(self, rule_id: int, user_id: int) -> models.RecurringRule:
        rule = self.get(rule_id, user_id)
        rule.is_active = not rule.is_active
        self.db.commit()
        self.db.refresh(rule)
        logger.info("Recurring rule %s is now %s", rule_id, "active" if rule.is_active else "inactive")
        return rule

    def next_due_date(self, rule: models.RecurringRule) -> Optional[date]:
        if not rule.is_active:
            return None
        upcoming = next_occurrence(rule.start_date, rule.frequency, generation_cursor(rule))
        if rule.end_date is not None and upcoming > rule.end_date:
            return None
        return upcoming

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def due_dates(self, rule: models.RecurringRule, as_of: datetime) -> tuple[list[date], bool]:
        """Occurrences after the generation marker up to ``as_of``.

        Returns the dates and whether the generation cap cut the walk short.
        """
        limit = as_of.date()
        if rule.end_date is not None and rule.end_date < limit:
            limit = rule.end_date
        due: list[date] = []
        for occurrence in iter_occurrences_after(rule.start_date, rule.frequency, generation_cursor(rule)):
            if occurrence > limit:
                return due, False
            if len(due) >= self.generation_cap:
                return due, True
            due.append(occurrence)
        return due, False  # pragma: no cover

    def generate_due(self, rule: models.RecurringRule, as_of: datetime) -> list[GeneratedOccurrence]:
        self.categories.require_usable(rule.category_id, rule.user_id)

        # lock the rule row for the check-create-advance unit (no-op on SQLite)
        rule = (
            self.db.query(models.RecurringRule)
            .filter(models.RecurringRule.id == rule.id)
            .populate_existing()
            .with_for_update(of=models.RecurringRule)
            .one()
        )

        rule_id = rule.id
        due, capped = self.due_dates(rule, as_of)
        existing: set[date] = set()
        if due:
            existing = {
                row.occurred_at
                for row in self.db.query(models.Transaction.occurred_at).filter(
                    models.Transaction.source_rule_id == rule.id,
                    models.Transaction.occurred_at >= due[0],
                    models.Transaction.occurred_at <= due[-1],
                )
            }

        created: list[models.Transaction] = []
        for occurred_at in due:
            if occurred_at in existing:
                continue
            txn = models.Transaction(
                user_id=rule.user_id,
                category_id=rule.category_id,
                description=f"{rule.description} {models.AUTO_GENERATED_SUFFIX}",
                amount=rule.amount,
                type=rule.type,
                occurred_at=occurred_at,
                notes=rule.notes,
                source_rule_id=rule.id,
            )
            self.db.add(txn)
            created.append(txn)

        if capped:
            logger.warning(
                "Recurring rule %s hit the generation cap of %s occurrences; resuming after %s next run",
                rule.id,
                self.generation_cap,
                due[-1],
            )
            rule.last_generated_at = datetime.combine(due[-1], time.min)
        else:
            rule.last_generated_at = as_of

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Concurrent generation detected for recurring rule %s", rule_id)
            raise ConflictError(f"Occurrences for recurring rule {rule_id} were generated concurrently") from exc

        if created:
            logger.info("Generated %s transaction(s) for recurring rule %s", len(created), rule.id)
        return [
            GeneratedOccurrence(
                recurring_rule_id=rule.id,
                transaction_id=txn.id,
                description=txn.description,
                amount=to_decimal(txn.amount),
                occurred_at=txn.occurred_at,
            )
            for txn in created
        ]

    def generate_for_rule(self, rule_id: int, user_id: int, as_of: datetime) -> list[GeneratedOccurrence]:
        rule = self.get(rule_id, user_id)
        if not rule.is_active:
            raise ValidationError("Cannot generate transactions for an inactive recurring rule")
        return self.generate_due(rule, as_of)

    def generate_all_due(self, user_id: int, as_of: datetime) -> list[GeneratedOccurrence]:
        generated: list[GeneratedOccurrence] = []
        for rule in self.list(user_id, is_active=True):
            try:
                self.categories.require_usable(rule.category_id, user_id)
            except (NotFoundError, ValidationError) as exc:
                logger.warning("Skipping recurring rule %s: %s", rule.id, exc.message)
                continue
            generated.extend(self.generate_due(rule, as_of))
        return generated
