from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from expense_api.core.clock import Clock
from expense_api.core.database import get_db
from expense_api.core.deps import get_clock, get_current_user
from expense_api.schemas import (
    BudgetPerformanceItem,
    CategoryBreakdownItem,
    FinancialOverviewOut,
    MonthlyComparisonItem,
    SpendingTrendItem,
    TopCategoryItem,
)
from expense_api.services import AnalyticsService


router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/overview", response_model=FinancialOverviewOut)
def financial_overview(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return AnalyticsService(db).financial_overview(current_user.id, start, end)


@router.get("/spending-trends", response_model=list[SpendingTrendItem])
def spending_trends(
    start: date = Query(...),
    end: date = Query(...),
    group_by: str = Query("monthly", description="daily | weekly | monthly"),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return AnalyticsService(db).spending_trends(current_user.id, start, end, group_by=group_by)


@router.get("/category-breakdown", response_model=list[CategoryBreakdownItem])
def category_breakdown(
    start: date = Query(...),
    end: date = Query(...),
    expense_only: bool = Query(True),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return AnalyticsService(db).category_breakdown(current_user.id, start, end, expense_only=expense_only)


@router.get("/top-categories", response_model=list[TopCategoryItem])
def top_categories(
    start: date = Query(...),
    end: date = Query(...),
    count: int = Query(5, ge=1, le=50),
    expense_only: bool = Query(True),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
):
    return AnalyticsService(db).top_categories(current_user.id, start, end, count=count, expense_only=expense_only)


@router.get("/monthly-comparison", response_model=list[MonthlyComparisonItem])
def monthly_comparison(
    number_of_months: int = Query(6, ge=1, le=60),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    return AnalyticsService(db).monthly_comparison(current_user.id, clock.today(), number_of_months=number_of_months)


@router.get("/budget-performance", response_model=list[BudgetPerformanceItem])
def budget_performance(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    return AnalyticsService(db).budget_performance(current_user.id, month, year, clock.now())
