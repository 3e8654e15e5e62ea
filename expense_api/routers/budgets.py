from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from expense_api.core.clock import Clock
from expense_api.core.database import get_db
from expense_api.core.deps import get_clock, get_current_user
from expense_api.schemas import BudgetCreate, BudgetOut, BudgetSummaryOut, BudgetUpdate
from expense_api.services import BudgetService


router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("", response_model=list[BudgetOut])
def list_budgets(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    svc = BudgetService(db)
    return [svc.describe(b) for b in svc.list(current_user.id, month=month, year=year)]


@router.get("/summary", response_model=BudgetSummaryOut)
def budget_summary(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    today = clock.today()
    return BudgetService(db).summary(current_user.id, month or today.month, year or today.year)


@router.get("/{budget_id}", response_model=BudgetOut)
def get_budget(budget_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    svc = BudgetService(db)
    return svc.describe(svc.get(budget_id, current_user.id))


@router.post("", response_model=BudgetOut, status_code=201)
def create_budget(
    payload: BudgetCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    svc = BudgetService(db)
    return svc.describe(svc.create(payload, current_user.id, today=clock.today()))


@router.patch("/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: int,
    payload: BudgetUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    svc = BudgetService(db)
    return svc.describe(svc.update(budget_id, payload, current_user.id))


@router.delete("/{budget_id}", status_code=204)
def delete_budget(budget_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    BudgetService(db).delete(budget_id, current_user.id)
    return Response(status_code=204)
