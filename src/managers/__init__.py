"""
Managers Package

One manager per ledger area. Every manager is constructed with the shared
Ledger, a storage backend and an optional AuditLogger.
"""

from src.managers.cards import CardManager
from src.managers.credentials import CredentialManager
from src.managers.errors import (
    DuplicateRecordError,
    InvalidInputError,
    LedgerError,
    RecordNotFoundError,
)
from src.managers.expenses import ExpenseManager, RecurringView
from src.managers.income import IncomeManager
from src.managers.investments import InvestmentManager
from src.managers.loans import LoanManager
from src.managers.money_lent import MoneyLentManager
from src.managers.recurring import RecurringExpenseManager
from src.managers.settings import AISettingsManager

__all__ = [
    # Managers
    "AISettingsManager",
    "CardManager",
    "CredentialManager",
    "ExpenseManager",
    "IncomeManager",
    "InvestmentManager",
    "LoanManager",
    "MoneyLentManager",
    "RecurringExpenseManager",
    "RecurringView",
    # Errors
    "DuplicateRecordError",
    "InvalidInputError",
    "LedgerError",
    "RecordNotFoundError",
]
