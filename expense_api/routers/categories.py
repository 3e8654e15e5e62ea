from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from expense_api.core.database import get_db
from expense_api.core.deps import get_current_user
from expense_api.schemas import CategoryCreate, CategoryOut, CategoryUpdate
from expense_api.services import CategoryService


router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return CategoryService(db).list(current_user.id, include_inactive=include_inactive)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    return CategoryService(db).get(category_id, current_user.id)


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    return CategoryService(db).create(payload, current_user.id)


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return CategoryService(db).update(category_id, payload, current_user.id)


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db), current_user = Depends(get_current_user)):
    CategoryService(db).delete(category_id, current_user.id)
    return Response(status_code=204)
