"""
Personal Finance Tracker - Source Package

Expenses, loans, income tax, investments and credentials for one
household, kept in a single explicit Ledger object.

DESIGN PRINCIPLES:
1. All state lives in one Ledger that is passed in, never global
2. Every mutation is persisted immediately
3. Money is Decimal, rounded to paise only where the user sees it
4. The AI phrases answers; it never computes them
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Tracker Team"
