from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from expense_api import models
from expense_api.core.clock import Clock
from expense_api.core.database import get_db
from expense_api.core.deps import get_clock, get_current_user
from expense_api.schemas import (
    GeneratedOccurrenceOut,
    GenerateResultOut,
    RecurringRuleCreate,
    RecurringRuleOut,
    RecurringRuleUpdate,
)
from expense_api.services import RecurringRuleService


router = APIRouter(prefix="/recurring-rules", tags=["recurring-rules"])


def _rule_out(svc: RecurringRuleService, rule: models.RecurringRule) -> RecurringRuleOut:
    out = RecurringRuleOut.model_validate(rule, from_attributes=True)
    out.category_name = rule.category.name
    out.next_due_date = svc.next_due_date(rule)
    return out


def _generate_result(items) -> GenerateResultOut:
    return GenerateResultOut(
        generated_count=len(items),
        transactions=[GeneratedOccurrenceOut.model_validate(item, from_attributes=True) for item in items],
    )


@router.get("", response_model=list[RecurringRuleOut])
def list_recurring_rules(
    is_active: Optional[bool] = Query(None, description="Filter by active flag when provided"),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    svc = RecurringRuleService(db)
    return [_rule_out(svc, rule) for rule in svc.list(current_user.id, is_active=is_active)]


@router.post("", response_model=RecurringRuleOut, status_code=201)
def create_recurring_rule(
    payload: RecurringRuleCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    svc = RecurringRuleService(db)
    return _rule_out(svc, svc.create(payload, current_user.id))


@router.post("/generate", response_model=GenerateResultOut)
def generate_all_due(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    items = RecurringRuleService(db).generate_all_due(current_user.id, clock.now())
    return _generate_result(items)


@router.get("/{rule_id}", response_model=RecurringRuleOut)
def get_recurring_rule(rule_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    svc = RecurringRuleService(db)
    return _rule_out(svc, svc.get(rule_id, current_user.id))


@router.patch("/{rule_id}", response_model=RecurringRuleOut)
def update_recurring_rule(
    rule_id: int,
    payload: RecurringRuleUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    svc = RecurringRuleService(db)
    return _rule_out(svc, svc.update(rule_id, payload, current_user.id))


@router.delete("/{rule_id}", status_code=204)
def delete_recurring_rule(rule_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    RecurringRuleService(db).delete(rule_id, current_user.id)
    return Response(status_code=204)


@router.post("/{rule_id}/toggle", response_model=RecurringRuleOut)
def toggle_recurring_rule(rule_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    svc = RecurringRuleService(db)
    return _rule_out(svc, svc.toggle_active(rule_id, current_user.id))


@router.post("/{rule_id}/generate", response_model=GenerateResultOut)
def generate_for_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    items = RecurringRuleService(db).generate_for_rule(rule_id, current_user.id, clock.now())
    return _generate_result(items)
