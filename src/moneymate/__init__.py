"""Moneymate - recurring transactions, savings goals and spending insights."""

from moneymate.models import Category, Frequency, Goal, RecurringTemplate, TransactionInstance
from moneymate.recurrence import is_due, materialize, select_due
from moneymate.store import MemoryRowStore, RestRowStore

__version__ = "0.1.0"
__all__ = [
    "Category",
    "Frequency",
    "Goal",
    "MemoryRowStore",
    "RecurringTemplate",
    "RestRowStore",
    "TransactionInstance",
    "is_due",
    "materialize",
    "select_due",
]
