"""
Data Models Package

This package contains all Pydantic models used in the Personal Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.card import Card, CardEMI, CardEMISummary, CardType
from src.models.credential import Credential
from src.models.expense import (
    EMI_CATEGORY,
    EXPENSE_CATEGORIES,
    RECURRING_CATEGORY,
    DismissedRecurring,
    EventSummary,
    EventTitleBreakdown,
    Expense,
    ExpenseCategory,
    ExpenseMonthGroup,
    RecurringExpense,
    RecurringFrequency,
    RecurringOccurrence,
)
from src.models.income import (
    BonusBreakdown,
    BonusPart,
    Deductions,
    IncomeSettings,
    MonthlyPayslip,
    Payslip,
    SalaryRecord,
    SlabTax,
    SurchargeSlab,
    TaxBreakdown,
    TaxSlab,
    default_surcharge_slabs,
    default_tax_slabs,
)
from src.models.investment import (
    Currency,
    DateFilter,
    DuplicateAction,
    ExchangeRate,
    HoldingValue,
    Investment,
    InvestmentGoal,
    InvestmentType,
    PortfolioSummary,
    SharePrice,
)
from src.models.ledger import AISettings, ChatMessage, Ledger, SecurityState
from src.models.loan import (
    AmortizationRow,
    LentReturn,
    LentStatus,
    Loan,
    LoanDeletionImpact,
    LoanSummary,
    MoneyLentRecord,
    MoneyLentTotals,
    RemainingBalance,
)
from src.models.query import QueryResult, StructuredQuery
from src.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Expense models
    "EMI_CATEGORY",
    "EXPENSE_CATEGORIES",
    "RECURRING_CATEGORY",
    "DismissedRecurring",
    "EventSummary",
    "EventTitleBreakdown",
    "Expense",
    "ExpenseCategory",
    "ExpenseMonthGroup",
    "RecurringExpense",
    "RecurringFrequency",
    "RecurringOccurrence",
    # Loan models
    "AmortizationRow",
    "LentReturn",
    "LentStatus",
    "Loan",
    "LoanDeletionImpact",
    "LoanSummary",
    "MoneyLentRecord",
    "MoneyLentTotals",
    "RemainingBalance",
    # Income models
    "BonusBreakdown",
    "BonusPart",
    "Deductions",
    "IncomeSettings",
    "MonthlyPayslip",
    "Payslip",
    "SalaryRecord",
    "SlabTax",
    "SurchargeSlab",
    "TaxBreakdown",
    "TaxSlab",
    "default_surcharge_slabs",
    "default_tax_slabs",
    # Investment models
    "Currency",
    "DateFilter",
    "DuplicateAction",
    "ExchangeRate",
    "HoldingValue",
    "Investment",
    "InvestmentGoal",
    "InvestmentType",
    "PortfolioSummary",
    "SharePrice",
    # Card models
    "Card",
    "CardEMI",
    "CardEMISummary",
    "CardType",
    # Other
    "AISettings",
    "ChatMessage",
    "Credential",
    "Ledger",
    "SecurityState",
    "QueryResult",
    "StructuredQuery",
    "ValidationIssue",
    "ValidationResult",
]
