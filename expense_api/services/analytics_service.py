from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from expense_api import models
from expense_api.core.exceptions import ValidationError
from expense_api.services.budget_service import BudgetService
from expense_api.services.transaction_service import TransactionService
from expense_api.utils.dates import (
    add_months,
    day_label,
    days_in_month,
    month_bounds,
    month_end,
    month_floor,
    month_label,
)
from expense_api.utils.money import HUNDRED, ZERO, percent_of, round2, to_decimal

logger = logging.getLogger(__name__)

TOP_CATEGORY_LIMIT = 5


@dataclass
class SpendingTrend:
    date: date
    period: str
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    net_balance: Decimal = ZERO
    transaction_count: int = 0


@dataclass
class CategoryBreakdown:
    category_id: int
    category_name: str
    category_icon: Optional[str]
    category_color: Optional[str]
    total_amount: Decimal
    transaction_count: int
    percentage: Decimal


@dataclass
class TopCategory(CategoryBreakdown):
    average_transaction: Decimal = ZERO


@dataclass
class FinancialOverview:
    start: date
    end: date
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    savings_rate: Decimal
    average_daily_income: Decimal
    average_daily_expense: Decimal
    total_transactions: int
    income_transactions: int
    expense_transactions: int
    top_expense_categories: list[TopCategory] = field(default_factory=list)
    top_income_categories: list[TopCategory] = field(default_factory=list)
    daily_trend: list[SpendingTrend] = field(default_factory=list)


@dataclass
class MonthlyComparison:
    year: int
    month: int
    month_name: str
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    transaction_count: int
    income_change: Decimal = ZERO
    expense_change: Decimal = ZERO


@dataclass
class BudgetPerformance:
    budget_id: int
    category_id: int
    category_name: str
    category_icon: Optional[str]
    category_color: Optional[str]
    budget_amount: Decimal
    actual_spent: Decimal
    remaining: Decimal
    percentage_used: Decimal
    status: models.BudgetStatus
    is_on_track: Optional[bool]


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("end date must be on or after start date")


def _split_totals(transactions: Iterable[models.Transaction]) -> tuple[Decimal, Decimal, int]:
    income = ZERO
    expense = ZERO
    count = 0
    for txn in transactions:
        count += 1
        if txn.type == models.TxnType.INCOME:
            income += to_decimal(txn.amount)
        else:
            expense += to_decimal(txn.amount)
    return income, expense, count


def _percent_change(current: Decimal, previous: Decimal) -> Decimal:
    if previous == 0:
        return ZERO
    return round2((current - previous) / previous * HUNDRED)


class AnalyticsService:
    """Time-bucketed rollups and budget scoring over a user's transactions.

    Every operation fetches the matching transactions once and aggregates in
    memory; nothing is cached between calls.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.transactions = TransactionService(db)
        self.budgets = BudgetService(db)

    # ------------------------------------------------------------------
    # Overview and trends
    # ------------------------------------------------------------------

    def financial_overview(self, user_id: int, start: date, end: date) -> FinancialOverview:
        _check_range(start, end)
        rows = self.transactions.fetch(user_id, start=start, end=end)
        income, expense, _ = _split_totals(rows)
        days = Decimal((end - start).days + 1)

        return FinancialOverview(
            start=start,
            end=end,
            total_income=income,
            total_expense=expense,
            net_balance=income - expense,
            savings_rate=round2(percent_of(income - expense, income)),
            average_daily_income=round2(income / days),
            average_daily_expense=round2(expense / days),
            total_transactions=len(rows),
            income_transactions=sum(1 for t in rows if t.type == models.TxnType.INCOME),
            expense_transactions=sum(1 for t in rows if t.type == models.TxnType.EXPENSE),
            top_expense_categories=self._top(
                self._breakdown([t for t in rows if t.type == models.TxnType.EXPENSE]), TOP_CATEGORY_LIMIT
            ),
            top_income_categories=self._top(
                self._breakdown([t for t in rows if t.type == models.TxnType.INCOME]), TOP_CATEGORY_LIMIT
            ),
            daily_trend=self._bucket(rows, start, end, "daily"),
        )

    def spending_trends(self, user_id: int, start: date, end: date, group_by: str = "monthly") -> list[SpendingTrend]:
        _check_range(start, end)
        rows = self.transactions.fetch(user_id, start=start, end=end)
        return self._bucket(rows, start, end, (group_by or "").lower())

    def _bucket(
        self, rows: list[models.Transaction], start: date, end: date, group_by: str
    ) -> list[SpendingTrend]:
        # (bucket first day, bucket last day, trend) in chronological order
        windows: list[tuple[date, date, SpendingTrend]] = []
        if group_by == "daily":
            current = start
            while current <= end:
                windows.append((current, current, SpendingTrend(date=current, period=day_label(current))))
                current += timedelta(days=1)
        elif group_by == "weekly":
            current = start
            week = 1
            while current <= end:
                last = min(current + timedelta(days=6), end)
                windows.append((current, last, SpendingTrend(date=current, period=f"Week {week}")))
                current += timedelta(days=7)
                week += 1
        else:
            current = month_floor(start)
            while current <= end:
                last = min(month_end(current), end)
                windows.append((current, last, SpendingTrend(date=current, period=month_label(current))))
                current = add_months(current, 1)

        index = 0
        for txn in rows:
            while index < len(windows) and txn.occurred_at > windows[index][1]:
                index += 1
            if index == len(windows):
                break
            first, last, trend = windows[index]
            if txn.occurred_at < first:
                continue
            trend.transaction_count += 1
            if txn.type == models.TxnType.INCOME:
                trend.total_income += to_decimal(txn.amount)
            else:
                trend.total_expense += to_decimal(txn.amount)

        trends = [trend for _, _, trend in windows]
        for trend in trends:
            trend.net_balance = trend.total_income - trend.total_expense
        return trends

    # ------------------------------------------------------------------
    # Category rollups
    # ------------------------------------------------------------------

    def _breakdown(self, rows: list[models.Transaction]) -> list[CategoryBreakdown]:
        totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[int, int] = defaultdict(int)
        categories: dict[int, models.Category] = {}
        for txn in rows:
            totals[txn.category_id] += to_decimal(txn.amount)
            counts[txn.category_id] += 1
            categories[txn.category_id] = txn.category

        grand_total = sum(totals.values(), ZERO)
        items = [
            CategoryBreakdown(
                category_id=category_id,
                category_name=categories[category_id].name,
                category_icon=categories[category_id].icon,
                category_color=categories[category_id].color,
                total_amount=total,
                transaction_count=counts[category_id],
                percentage=round2(percent_of(total, grand_total)),
            )
            for category_id, total in totals.items()
        ]
        items.sort(key=lambda item: item.total_amount, reverse=True)
        return items

    def category_breakdown(
        self, user_id: int, start: date, end: date, expense_only: bool = True
    ) -> list[CategoryBreakdown]:
        _check_range(start, end)
        txn_type = models.TxnType.EXPENSE if expense_only else models.TxnType.INCOME
        rows = self.transactions.fetch(user_id, start=start, end=end, txn_type=txn_type)
        return self._breakdown(rows)

    def top_categories(
        self, user_id: int, start: date, end: date, count: int = TOP_CATEGORY_LIMIT, expense_only: bool = True
    ) -> list[TopCategory]:
        if count < 1:
            raise ValidationError("count must be 1 or greater")
        items = self.category_breakdown(user_id, start, end, expense_only=expense_only)
        return self._top(items, count)

    def _top(self, items: list[CategoryBreakdown], count: int) -> list[TopCategory]:
        return [
            TopCategory(
                category_id=item.category_id,
                category_name=item.category_name,
                category_icon=item.category_icon,
                category_color=item.category_color,
                total_amount=item.total_amount,
                transaction_count=item.transaction_count,
                percentage=item.percentage,
                average_transaction=item.total_amount / item.transaction_count,
            )
            for item in items[:count]
        ]

    # ------------------------------------------------------------------
    # Month over month
    # ------------------------------------------------------------------

    def monthly_comparison(self, user_id: int, today: date, number_of_months: int = 6) -> list[MonthlyComparison]:
        if number_of_months < 1:
            raise ValidationError("number_of_months must be 1 or greater")

        current = month_floor(today)
        months = [add_months(current, -offset) for offset in range(number_of_months - 1, -1, -1)]
        rows = self.transactions.fetch(user_id, start=months[0], end=month_end(months[-1]))

        by_month: dict[tuple[int, int], list[models.Transaction]] = defaultdict(list)
        for txn in rows:
            by_month[(txn.occurred_at.year, txn.occurred_at.month)].append(txn)

        results: list[MonthlyComparison] = []
        previous: Optional[MonthlyComparison] = None
        for first in months:
            income, expense, count = _split_totals(by_month.get((first.year, first.month), []))
            item = MonthlyComparison(
                year=first.year,
                month=first.month,
                month_name=month_label(first),
                total_income=income,
                total_expense=expense,
                net_balance=income - expense,
                transaction_count=count,
            )
            if previous is not None:
                item.income_change = _percent_change(income, previous.total_income)
                item.expense_change = _percent_change(expense, previous.total_expense)
            results.append(item)
            previous = item
        return results

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def budget_performance(self, user_id: int, month: int, year: int, now: datetime) -> list[BudgetPerformance]:
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        first, last = month_bounds(year, month)
        budgets = self.budgets.list(user_id, month=month, year=year)
        if not budgets:
            return []

        spent: dict[int, Decimal] = defaultdict(lambda: ZERO)
        for txn in self.transactions.fetch(user_id, start=first, end=last, txn_type=models.TxnType.EXPENSE):
            spent[txn.category_id] += to_decimal(txn.amount)

        expected: Optional[Decimal] = None
        if (now.year, now.month) == (year, month):
            expected = Decimal(now.day) / Decimal(days_in_month(year, month)) * HUNDRED

        results: list[BudgetPerformance] = []
        for budget in budgets:
            amount = to_decimal(budget.amount)
            actual = spent[budget.category_id]
            percentage = percent_of(actual, amount)
            rounded = round2(percentage)
            results.append(
                BudgetPerformance(
                    budget_id=budget.id,
                    category_id=budget.category_id,
                    category_name=budget.category.name,
                    category_icon=budget.category.icon,
                    category_color=budget.category.color,
                    budget_amount=amount,
                    actual_spent=actual,
                    remaining=amount - actual,
                    percentage_used=rounded,
                    status=models.BudgetStatus.from_percentage(percentage),
                    is_on_track=None if expected is None else percentage <= expected,
                )
            )
        results.sort(key=lambda item: item.percentage_used, reverse=True)
        return results
