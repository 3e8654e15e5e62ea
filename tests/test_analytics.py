from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from expense_api import models
from expense_api.core.exceptions import ValidationError
from expense_api.services import AnalyticsService


def _txn(db, user, category, amount, occurred_at, txn_type=models.TxnType.EXPENSE, description="item"):
    txn = models.Transaction(
        user_id=user.id,
        category_id=category.id,
        description=description,
        amount=Decimal(str(amount)),
        type=txn_type,
        occurred_at=occurred_at,
    )
    db.add(txn)
    db.commit()
    return txn


def _budget(db, user, category, amount, month, year):
    budget = models.Budget(
        user_id=user.id,
        category_id=category.id,
        amount=Decimal(str(amount)),
        month=month,
        year=year,
    )
    db.add(budget)
    db.commit()
    return budget


def test_financial_overview_totals_and_savings_rate(db_session, user, categories):
    _txn(db_session, user, categories["Salary"], 5000, date(2025, 1, 3), models.TxnType.INCOME)
    _txn(db_session, user, categories["Housing"], 2000, date(2025, 1, 5))
    _txn(db_session, user, categories["Food & Dining"], 1500, date(2025, 1, 20))

    overview = AnalyticsService(db_session).financial_overview(user.id, date(2025, 1, 1), date(2025, 1, 31))
    assert overview.total_income == Decimal("5000")
    assert overview.total_expense == Decimal("3500")
    assert overview.net_balance == Decimal("1500")
    assert overview.savings_rate == Decimal("30.00")
    assert overview.average_daily_income == Decimal("161.29")
    assert overview.average_daily_expense == Decimal("112.90")
    assert overview.total_transactions == 3
    assert overview.income_transactions == 1
    assert overview.expense_transactions == 2
    assert [c.category_name for c in overview.top_expense_categories] == ["Housing", "Food & Dining"]
    assert [c.category_name for c in overview.top_income_categories] == ["Salary"]
    assert [c.average_transaction for c in overview.top_expense_categories] == [Decimal("2000"), Decimal("1500")]
    assert overview.top_income_categories[0].average_transaction == Decimal("5000")
    assert len(overview.daily_trend) == 31


def test_financial_overview_without_income_has_zero_savings_rate(db_session, user, categories):
    _txn(db_session, user, categories["Housing"], 100, date(2025, 1, 1))
    _txn(db_session, user, categories["Housing"], 40, date(2025, 1, 5))
    overview = AnalyticsService(db_session).financial_overview(user.id, date(2025, 1, 1), date(2025, 1, 1))
    assert overview.total_income == Decimal("0")
    assert overview.total_expense == Decimal("100")
    assert overview.net_balance == Decimal("-100")
    assert overview.savings_rate == Decimal("0")
    assert overview.average_daily_expense == Decimal("100.00")


def test_daily_trend_covers_every_day(db_session, user, categories):
    _txn(db_session, user, categories["Shopping"], 40, date(2025, 2, 27))
    _txn(db_session, user, categories["Salary"], 900, date(2025, 3, 1), models.TxnType.INCOME)
    start, end = date(2025, 2, 25), date(2025, 3, 4)

    trends = AnalyticsService(db_session).spending_trends(user.id, start, end, group_by="DAILY")
    assert len(trends) == (end - start).days + 1
    assert [t.date for t in trends] == [start + timedelta(days=i) for i in range(len(trends))]
    assert trends[0].period == "Feb 25"

    by_day = {t.date: t for t in trends}
    assert by_day[date(2025, 2, 27)].total_expense == Decimal("40")
    assert by_day[date(2025, 3, 1)].total_income == Decimal("900")
    assert by_day[date(2025, 3, 1)].net_balance == Decimal("900")
    assert by_day[date(2025, 2, 28)].transaction_count == 0


def test_weekly_trend_clamps_last_window(db_session, user, categories):
    _txn(db_session, user, categories["Shopping"], 10, date(2025, 1, 1))
    _txn(db_session, user, categories["Shopping"], 20, date(2025, 1, 8))
    _txn(db_session, user, categories["Shopping"], 30, date(2025, 1, 16))

    trends = AnalyticsService(db_session).spending_trends(user.id, date(2025, 1, 1), date(2025, 1, 16), "weekly")
    assert [t.period for t in trends] == ["Week 1", "Week 2", "Week 3"]
    assert [t.date for t in trends] == [date(2025, 1, 1), date(2025, 1, 8), date(2025, 1, 15)]
    assert [t.total_expense for t in trends] == [Decimal("10"), Decimal("20"), Decimal("30")]


def test_monthly_trend_and_unknown_group_by(db_session, user, categories):
    _txn(db_session, user, categories["Shopping"], 10, date(2025, 1, 20))
    _txn(db_session, user, categories["Shopping"], 25, date(2025, 3, 2))

    svc = AnalyticsService(db_session)
    trends = svc.spending_trends(user.id, date(2025, 1, 15), date(2025, 3, 10), "monthly")
    assert [t.period for t in trends] == ["Jan 2025", "Feb 2025", "Mar 2025"]
    assert trends[0].date == date(2025, 1, 1)
    assert [t.transaction_count for t in trends] == [1, 0, 1]

    fallback = svc.spending_trends(user.id, date(2025, 1, 15), date(2025, 3, 10), "quarterly")
    assert [t.period for t in fallback] == ["Jan 2025", "Feb 2025", "Mar 2025"]


def test_reversed_range_is_rejected(db_session, user):
    with pytest.raises(ValidationError):
        AnalyticsService(db_session).spending_trends(user.id, date(2025, 2, 1), date(2025, 1, 1))


def test_category_breakdown_percentages_sum_to_hundred(db_session, user, categories):
    _txn(db_session, user, categories["Housing"], 100, date(2025, 1, 2))
    _txn(db_session, user, categories["Food & Dining"], 100, date(2025, 1, 3))
    _txn(db_session, user, categories["Transportation"], 100, date(2025, 1, 4))
    _txn(db_session, user, categories["Salary"], 999, date(2025, 1, 5), models.TxnType.INCOME)

    svc = AnalyticsService(db_session)
    items = svc.category_breakdown(user.id, date(2025, 1, 1), date(2025, 1, 31))
    assert len(items) == 3
    assert all(item.percentage == Decimal("33.33") for item in items)
    assert abs(sum(item.percentage for item in items) - Decimal("100")) <= Decimal("0.05")

    income = svc.category_breakdown(user.id, date(2025, 1, 1), date(2025, 1, 31), expense_only=False)
    assert [(i.category_name, i.percentage) for i in income] == [("Salary", Decimal("100.00"))]


def test_top_categories_truncates_and_orders(db_session, user, categories):
    _txn(db_session, user, categories["Housing"], 100, date(2025, 1, 2))
    _txn(db_session, user, categories["Food & Dining"], 120, date(2025, 1, 3))
    _txn(db_session, user, categories["Food & Dining"], 80, date(2025, 1, 4))
    _txn(db_session, user, categories["Transportation"], 300, date(2025, 1, 5))

    top = AnalyticsService(db_session).top_categories(user.id, date(2025, 1, 1), date(2025, 1, 31), count=2)
    assert [t.total_amount for t in top] == [Decimal("300"), Decimal("200")]
    assert top[1].category_name == "Food & Dining"
    assert top[1].transaction_count == 2
    assert top[1].average_transaction == Decimal("100")


def test_monthly_comparison_percent_change(db_session, user, categories):
    _txn(db_session, user, categories["Salary"], 1000, date(2025, 2, 10), models.TxnType.INCOME)
    _txn(db_session, user, categories["Salary"], 1100, date(2025, 3, 10), models.TxnType.INCOME)
    _txn(db_session, user, categories["Housing"], 400, date(2025, 3, 11))

    result = AnalyticsService(db_session).monthly_comparison(user.id, date(2025, 3, 15), number_of_months=2)
    assert [(r.year, r.month) for r in result] == [(2025, 2), (2025, 3)]
    assert result[0].income_change == Decimal("0")
    assert result[1].income_change == Decimal("10.00")
    # previous expense is zero
    assert result[1].expense_change == Decimal("0")
    assert result[1].net_balance == Decimal("700")


def test_monthly_comparison_crosses_year_and_validates(db_session, user):
    svc = AnalyticsService(db_session)
    result = svc.monthly_comparison(user.id, date(2025, 2, 5), number_of_months=4)
    assert [r.month_name for r in result] == ["Nov 2024", "Dec 2024", "Jan 2025", "Feb 2025"]
    with pytest.raises(ValidationError):
        svc.monthly_comparison(user.id, date(2025, 2, 5), number_of_months=0)


def test_budget_performance_status_and_sorting(db_session, user, categories):
    _budget(db_session, user, categories["Food & Dining"], 500, 3, 2025)
    _budget(db_session, user, categories["Shopping"], 100, 3, 2025)
    _txn(db_session, user, categories["Food & Dining"], 425, date(2025, 3, 4))
    _txn(db_session, user, categories["Shopping"], 20, date(2025, 3, 2))
    # outside the month and income do not count
    _txn(db_session, user, categories["Food & Dining"], 50, date(2025, 2, 28))
    _txn(db_session, user, categories["Food & Dining"], 70, date(2025, 3, 5), models.TxnType.INCOME)

    now = datetime(2025, 3, 15, 10, 0)
    result = AnalyticsService(db_session).budget_performance(user.id, 3, 2025, now)
    assert [r.category_name for r in result] == ["Food & Dining", "Shopping"]

    food = result[0]
    assert food.actual_spent == Decimal("425")
    assert food.remaining == Decimal("75")
    assert food.percentage_used == Decimal("85.00")
    assert food.status == models.BudgetStatus.APPROACHING
    # 15 of 31 days elapsed: 48.39 % expected
    assert food.is_on_track is False
    assert result[1].is_on_track is True
    assert result[1].status == models.BudgetStatus.UNDER_BUDGET


def test_budget_performance_on_track_only_for_current_month(db_session, user, categories):
    _budget(db_session, user, categories["Housing"], 1000, 2, 2025)
    _txn(db_session, user, categories["Housing"], 1000, date(2025, 2, 1))

    result = AnalyticsService(db_session).budget_performance(user.id, 2, 2025, datetime(2025, 3, 15))
    assert result[0].status == models.BudgetStatus.EXCEEDED
    assert result[0].is_on_track is None


def test_budget_performance_on_track_uses_unrounded_percentage(db_session, user, categories):
    # April 15 of 30 days: half the month has elapsed
    _budget(db_session, user, categories["Housing"], 1000, 4, 2025)
    _txn(db_session, user, categories["Housing"], "500.04", date(2025, 4, 2))

    (item,) = AnalyticsService(db_session).budget_performance(user.id, 4, 2025, datetime(2025, 4, 15, 9))
    assert item.percentage_used == Decimal("50.00")
    assert item.is_on_track is False


def test_analytics_api_endpoints(client, db_session, user, categories):
    _txn(db_session, user, categories["Salary"], 5000, date(2025, 3, 1), models.TxnType.INCOME)
    _txn(db_session, user, categories["Housing"], 3500, date(2025, 3, 2))
    _budget(db_session, user, categories["Housing"], 5000, 3, 2025)

    overview = client.get("/api/analytics/overview", params={"start": "2025-03-01", "end": "2025-03-10"})
    assert overview.status_code == 200
    body = overview.json()
    assert body["savings_rate"] == 30.0
    assert len(body["daily_trend"]) == 10
    assert body["daily_trend"][0]["net_balance"] == 5000.0
    assert body["top_expense_categories"][0]["average_transaction"] == 3500.0

    trends = client.get(
        "/api/analytics/spending-trends",
        params={"start": "2025-03-01", "end": "2025-03-20", "group_by": "weekly"},
    )
    assert [t["period"] for t in trends.json()] == ["Week 1", "Week 2", "Week 3"]

    top = client.get(
        "/api/analytics/top-categories",
        params={"start": "2025-03-01", "end": "2025-03-31", "count": 1},
    ).json()
    assert top[0]["category_name"] == "Housing"
    assert top[0]["average_transaction"] == 3500.0

    comparison = client.get("/api/analytics/monthly-comparison", params={"number_of_months": 3}).json()
    assert [c["month_name"] for c in comparison] == ["Jan 2025", "Feb 2025", "Mar 2025"]

    performance = client.get("/api/analytics/budget-performance", params={"month": 3, "year": 2025}).json()
    assert performance[0]["percentage_used"] == 70.0
    assert performance[0]["status"] == "UNDER_BUDGET"
    assert performance[0]["is_on_track"] is False

    bad = client.get("/api/analytics/category-breakdown", params={"start": "2025-03-10", "end": "2025-03-01"})
    assert bad.status_code == 400
    assert bad.json()["error"] == "validation_error"
