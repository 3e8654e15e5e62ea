from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from expense_api import models
from expense_api.core.clock import Clock
from expense_api.core.database import get_db
from expense_api.core.deps import get_clock, get_current_user
from expense_api.core.exceptions import ValidationError
from expense_api.schemas import TransactionCreate, TransactionOut, TransactionSummaryOut, TransactionUpdate
from expense_api.services import TransactionFilters, TransactionService
from expense_api.services.transaction_service import MAX_PAGE_SIZE


router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionOut])
def list_transactions(
    response: Response,
    category_id: Optional[int] = Query(None),
    type: Optional[models.TxnType] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("occurred_at", description="occurred_at | amount | description | category"),
    sort_order: str = Query("desc", description="asc | desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    filters = TransactionFilters(
        category_id=category_id,
        type=type,
        start=start,
        end=end,
        search=search,
        sort_by=sort_by,
        descending=sort_order.lower() != "asc",
        page=page,
        page_size=page_size,
    )
    rows, total = TransactionService(db).list(current_user.id, filters)
    response.headers["X-Total-Count"] = str(total)
    return rows


@router.get("/recent", response_model=list[TransactionOut])
def recent_transactions(
    count: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return TransactionService(db).recent(current_user.id, count=count)


@router.get("/summary", response_model=TransactionSummaryOut)
def transaction_summary(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    if start and end and end < start:
        raise ValidationError("end must be on or after start")
    totals = TransactionService(db).totals(current_user.id, start=start, end=end)
    return TransactionSummaryOut(
        start=start,
        end=end,
        total_income=totals.total_income,
        total_expense=totals.total_expense,
        net_balance=totals.net_balance,
        transaction_count=totals.transaction_count,
    )


@router.get("/{txn_id}", response_model=TransactionOut)
def get_transaction(txn_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    return TransactionService(db).get(txn_id, current_user.id)


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    return TransactionService(db).create(payload, current_user.id, today=clock.today())


@router.patch("/{txn_id}", response_model=TransactionOut)
def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    return TransactionService(db).update(txn_id, payload, current_user.id, today=clock.today())


@router.delete("/{txn_id}", status_code=204)
def delete_transaction(txn_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    TransactionService(db).delete(txn_id, current_user.id)
    return Response(status_code=204)
