"""
Services package

Business logic classes, each wrapping a SQLAlchemy session.
"""

from .analytics_service import AnalyticsService
from .budget_service import BudgetService
from .category_service import CategoryService
from .recurring_service import RecurringRuleService
from .transaction_service import TransactionFilters, TransactionService

__all__ = [
    "AnalyticsService",
    "BudgetService",
    "CategoryService",
    "RecurringRuleService",
    "TransactionFilters",
    "TransactionService",
]
