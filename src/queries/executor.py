"""
Query Execution Engine

DESIGN DECISION: Query execution is DETERMINISTIC.
The assistant turns a question into a StructuredQuery (through the LLM
or the keyword parser). This engine runs that query over the Ledger.
The LLM then only phrases the response from the QueryResult.

At no point does the LLM compute figures or run code against the data.
It can only see what this engine returns.

Investment queries run over the portfolio at current value, unless a
date range is given; then they run over the monthly purchase log within
that range, valued at the price paid.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from src.audit import AuditLogger
from src.calculations.valuation import monthly_amount, portfolio_amount
from src.managers.schedule import is_loan_emi
from src.models.audit import AuditEventBuilder
from src.models.expense import Expense
from src.models.investment import Investment
from src.models.ledger import Ledger
from src.models.query import QueryResult, StructuredQuery
from src.utils.dates import month_key
from src.utils.formatters import format_category
from src.utils.money import ZERO, money

logger = structlog.get_logger("queries")


class QueryExecutor:
    """
    Executes structured queries against the Ledger.

    GUARANTEES:
    - Only returns real data from the ledger
    - Never invents or estimates
    - Clear "no data found" if nothing matches
    """

    def __init__(self, ledger: Ledger, audit: Optional[AuditLogger] = None):
        self._ledger = ledger
        self._audit = audit

    def execute(self, query: StructuredQuery, provider: Optional[str] = None) -> QueryResult:
        rows = self._expense_rows(query) if query.target == "expenses" else self._investment_rows(query)
        amounts = [amount for _, amount, _ in rows]
        total = money(sum(amounts, ZERO))

        aggregation: Optional[dict] = None
        if query.aggregation == "sum":
            aggregation = {"total_amount": total, "count": len(rows)}
        elif query.aggregation == "count":
            aggregation = {"count": len(rows)}
        elif query.aggregation == "average":
            average = money(total / len(rows)) if rows else ZERO
            aggregation = {"average_amount": average, "count": len(rows)}
        elif query.aggregation == "group":
            aggregation = {
                "total_amount": total,
                "count": len(rows),
                "breakdown": self._breakdown(rows, query.group_by),
            }

        results = [record for record, _, _ in rows[:query.limit]]
        result = QueryResult(
            query_id=query.query_id,
            success=True,
            data_found=bool(rows),
            result_count=len(rows),
            results=results,
            aggregation_result=aggregation,
            query_description=self.describe(query),
        )

        logger.info("query_executed", target=query.target, aggregation=query.aggregation, count=len(rows))
        if self._audit:
            self._audit.log(AuditEventBuilder.query_executed(
                query.query_id, query.target, query.aggregation, len(rows), provider
            ))
        return result

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def _expense_rows(self, query: StructuredQuery) -> list[tuple[dict, Decimal, dict]]:
        """(result dict, amount, group keys) per matching expense, newest first."""
        matched = [e for e in self._ledger.expenses if self._expense_matches(e, query)]
        matched.sort(key=lambda e: e.expense_date, reverse=True)
        return [(self._expense_to_dict(e), e.amount, self._expense_keys(e)) for e in matched]

    @staticmethod
    def _expense_matches(expense: Expense, query: StructuredQuery) -> bool:
        if not query.include_loan_emis and is_loan_emi(expense):
            return False
        if query.category and expense.category.lower() != query.category.lower():
            return False
        if query.search:
            needle = query.search.lower()
            if needle not in expense.title.lower() and needle not in expense.description.lower():
                return False
        if query.date_from and expense.expense_date < query.date_from:
            return False
        if query.date_to and expense.expense_date > query.date_to:
            return False
        return True

    @staticmethod
    def _expense_to_dict(expense: Expense) -> dict:
        return {
            "id": str(expense.id),
            "title": expense.title,
            "amount": expense.amount,
            "category": expense.category,
            "date": expense.expense_date.isoformat(),
            "description": expense.description,
        }

    @staticmethod
    def _expense_keys(expense: Expense) -> dict:
        d = expense.expense_date
        return {
            "category": expense.category,
            "month": month_key(d.year, d.month),
            "year": str(d.year),
        }

    # =========================================================================
    # INVESTMENTS
    # =========================================================================

    def _investment_rows(self, query: StructuredQuery) -> list[tuple[dict, Decimal, dict]]:
        dated = query.date_from is not None or query.date_to is not None
        source: Iterable[Investment] = (
            self._ledger.monthly_investments if dated else self._ledger.investments
        )
        rate = self._ledger.exchange_rate.rate
        rows = []
        for inv in source:
            if not self._investment_matches(inv, query, dated):
                continue
            if dated:
                amount = monthly_amount(inv, rate)
            else:
                amount = portfolio_amount(inv, rate, self._ledger.gold_rate_per_gram, self._ledger.share_prices)
            amount = money(amount)
            rows.append((self._investment_to_dict(inv, amount), amount, self._investment_keys(inv)))
        rows.sort(key=lambda row: row[1], reverse=True)
        return rows

    @staticmethod
    def _investment_matches(inv: Investment, query: StructuredQuery, dated: bool) -> bool:
        if query.investment_type and inv.type.value != query.investment_type.upper():
            return False
        if query.goal and inv.goal.value != query.goal.upper():
            return False
        if query.search:
            needle = query.search.lower()
            if needle not in inv.name.lower() and needle not in inv.description.lower():
                return False
        if dated:
            if inv.investment_date is None:
                return False
            if query.date_from and inv.investment_date < query.date_from:
                return False
            if query.date_to and inv.investment_date > query.date_to:
                return False
        return True

    @staticmethod
    def _investment_to_dict(inv: Investment, amount: Decimal) -> dict:
        return {
            "id": str(inv.id),
            "name": inv.name,
            "type": inv.type.value,
            "goal": inv.goal.value,
            "currency": inv.currency.value,
            "quantity": inv.quantity,
            "amount": amount,
            "date": inv.investment_date.isoformat() if inv.investment_date else None,
        }

    @staticmethod
    def _investment_keys(inv: Investment) -> dict:
        d = inv.investment_date or inv.created_at.date()
        return {
            "type": inv.type.value,
            "goal": inv.goal.value,
            "currency": inv.currency.value,
            "month": month_key(d.year, d.month),
            "year": str(d.year),
        }

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _breakdown(rows: list[tuple[dict, Decimal, dict]], group_by: str) -> dict[str, dict]:
        """{group: {"total": amount, "count": n}}, largest total first."""
        groups: dict[str, dict] = {}
        for _, amount, keys in rows:
            group = groups.setdefault(keys[group_by], {"total": ZERO, "count": 0})
            group["total"] += amount
            group["count"] += 1
        ordered = sorted(groups.items(), key=lambda item: item[1]["total"], reverse=True)
        return {key: {"total": money(v["total"]), "count": v["count"]} for key, v in ordered}

    def describe(self, query: StructuredQuery) -> str:
        parts = {
            "sum": "Calculating total",
            "count": "Counting",
            "average": "Calculating average",
            "group": f"Breaking down by {query.group_by}",
            "none": "Listing",
        }[query.aggregation]
        desc = [f"{parts} {query.target}"]
        if query.category:
            desc.append(f"in {format_category(query.category)}")
        if query.investment_type:
            desc.append(f"of type {query.investment_type.upper()}")
        if query.goal:
            desc.append(f"with goal {query.goal.upper()}")
        if query.search:
            desc.append(f"matching '{query.search}'")
        date_str = self._date_range_str(query.date_from, query.date_to)
        if date_str:
            desc.append(date_str)
        return " ".join(desc)

    @staticmethod
    def _date_range_str(date_from: Optional[date], date_to: Optional[date]) -> str:
        if date_from and date_to:
            if date_from == date_to:
                return f"on {date_from.strftime('%d %b %Y')}"
            if date_from.month == date_to.month and date_from.year == date_to.year:
                return f"in {date_from.strftime('%B %Y')}"
            if date_from.year == date_to.year:
                return f"from {date_from.strftime('%b')} to {date_to.strftime('%b %Y')}"
            return f"from {date_from.strftime('%b %Y')} to {date_to.strftime('%b %Y')}"
        if date_from:
            return f"from {date_from.strftime('%d %b %Y')}"
        if date_to:
            return f"until {date_to.strftime('%d %b %Y')}"
        return ""
