"""
Question -> StructuredQuery

A QueryIntent is the loose shape a question is read into, either by the
LLM (as JSON) or by the keyword parser below. intent_to_query maps it
DETERMINISTICALLY onto a valid StructuredQuery: unknown categories,
types and groupings are dropped rather than guessed.
"""

import re
from datetime import date, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from src.models.expense import EMI_CATEGORY, EXPENSE_CATEGORIES
from src.models.investment import InvestmentGoal, InvestmentType
from src.models.query import StructuredQuery
from src.utils.dates import add_months, month_bounds

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4,
    "may": 5, "june": 6, "july": 7, "august": 8,
    "september": 9, "october": 10, "november": 11, "december": 12,
}

# Words that point at a category; checked before exact category names
CATEGORY_KEYWORDS = {
    "food": "Food & Dining",
    "dining": "Food & Dining",
    "restaurant": "Food & Dining",
    "shopping": "Shopping",
    "transport": "Transportation",
    "transportation": "Transportation",
    "fuel": "Transportation",
    "movie": "Entertainment",
    "entertainment": "Entertainment",
    "bills": "Bills & Utilities",
    "utilities": "Bills & Utilities",
    "electricity": "Bills & Utilities",
    "medical": "Healthcare",
    "health": "Healthcare",
    "healthcare": "Healthcare",
    "travel": "Travel",
    "trip": "Travel",
    "education": "Education",
    "groceries": "Groceries",
    "grocery": "Groceries",
    "emi": EMI_CATEGORY,
    "emis": EMI_CATEGORY,
}

INVESTMENT_KEYWORDS = {
    "shares": InvestmentType.SHARES,
    "share": InvestmentType.SHARES,
    "stocks": InvestmentType.SHARES,
    "stock": InvestmentType.SHARES,
    "gold": InvestmentType.GOLD,
    "epf": InvestmentType.EPF,
    "pf": InvestmentType.EPF,
    "fd": InvestmentType.FD,
    "fds": InvestmentType.FD,
}

INVESTMENT_HINTS = ("invest", "portfolio", "holding", "fixed deposit", "asset")

AGGREGATION_SYNONYMS = {
    "sum": "sum", "total": "sum",
    "count": "count", "number": "count",
    "average": "average", "avg": "average", "mean": "average",
    "group": "group", "breakdown": "group",
    "none": "none", "list": "none",
}

GROUP_SYNONYMS = {
    "category": "category", "categories": "category",
    "month": "month", "monthly": "month", "months": "month",
    "year": "year", "yearly": "year", "years": "year",
    "type": "type", "types": "type", "asset": "type",
    "goal": "goal", "goals": "goal",
    "currency": "currency", "currencies": "currency",
}

EXPENSE_GROUPS = {"category", "month", "year"}
INVESTMENT_GROUPS = {"type", "goal", "currency", "month", "year"}


class QueryIntent(BaseModel):
    """
    Parsed intent from a natural language question.

    This is what the LLM (or the keyword parser) extracts from the
    question. It is then converted to a StructuredQuery for execution.
    """

    target: str = Field(default="expenses", description="expenses or investments")
    category: Optional[str] = None
    investment_type: Optional[str] = None
    goal: Optional[str] = None
    search: Optional[str] = None
    time_reference: Optional[str] = Field(
        default=None,
        description="Time reference (last month, this year, March, 2024, last 6 months)"
    )
    aggregation: Optional[str] = None
    group_by: Optional[str] = None
    include_loan_emis: bool = True


def resolve_time_reference(
    time_ref: Optional[str],
    today: Optional[date] = None,
) -> tuple[Optional[date], Optional[date]]:
    """
    Convert a natural language time reference to a date range.

    This is DETERMINISTIC - no LLM involvement.
    """
    if not time_ref:
        return None, None

    time_ref = time_ref.lower().strip()
    today = today or date.today()

    if "this month" in time_ref or "current month" in time_ref:
        return month_bounds(today.year, today.month)

    if "last month" in time_ref or "previous month" in time_ref:
        end = today.replace(day=1) - timedelta(days=1)
        return month_bounds(end.year, end.month)

    match = re.search(r"last (\d{1,2}) months", time_ref)
    if match:
        return add_months(today, -int(match.group(1))), today

    if "this year" in time_ref or "current year" in time_ref:
        return date(today.year, 1, 1), date(today.year, 12, 31)

    if "last year" in time_ref or "previous year" in time_ref:
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)

    year_match = re.search(r"\b(20\d{2})\b", time_ref)
    for month_name, month_num in MONTHS.items():
        if re.search(rf"\b({month_name}|{month_name[:3]})\b", time_ref):
            if year_match:
                year = int(year_match.group(1))
            else:
                # A month later than the current one must be last year's
                year = today.year - 1 if month_num > today.month else today.year
            return month_bounds(year, month_num)

    if year_match:
        year = int(year_match.group(1))
        return date(year, 1, 1), date(year, 12, 31)

    return None, None


def _normalize_category(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    lowered = value.strip().lower()
    for category in EXPENSE_CATEGORIES + [EMI_CATEGORY]:
        if category.lower() == lowered:
            return category
    return CATEGORY_KEYWORDS.get(lowered)


def _normalize_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    upper = value.strip().upper()
    if upper in InvestmentType.__members__:
        return upper
    mapped = INVESTMENT_KEYWORDS.get(value.strip().lower())
    return mapped.value if mapped else None


def _normalize_goal(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    key = value.strip().upper().replace("-", "_").replace(" ", "_")
    return key if key in InvestmentGoal.__members__ else None


def intent_to_query(
    intent: QueryIntent,
    original_question: str,
    today: Optional[date] = None,
) -> StructuredQuery:
    """
    Convert parsed intent to an executable structured query.

    This is DETERMINISTIC - maps intent fields to query parameters.
    """
    target = "investments" if (intent.target or "").lower().startswith("invest") else "expenses"
    date_from, date_to = resolve_time_reference(intent.time_reference, today)

    aggregation = AGGREGATION_SYNONYMS.get((intent.aggregation or "none").lower(), "none")
    group_by = GROUP_SYNONYMS.get((intent.group_by or "").lower())
    allowed = EXPENSE_GROUPS if target == "expenses" else INVESTMENT_GROUPS
    if group_by not in allowed:
        group_by = None
    if group_by and aggregation == "none":
        aggregation = "group"
    if aggregation == "group" and group_by is None:
        group_by = "category" if target == "expenses" else "type"

    return StructuredQuery(
        original_question=original_question,
        target=target,
        category=_normalize_category(intent.category) if target == "expenses" else None,
        investment_type=_normalize_type(intent.investment_type) if target == "investments" else None,
        goal=_normalize_goal(intent.goal) if target == "investments" else None,
        search=(intent.search or "").strip() or None,
        date_from=date_from,
        date_to=date_to,
        include_loan_emis=intent.include_loan_emis,
        aggregation=aggregation,
        group_by=group_by if aggregation == "group" else None,
    )


class KeywordQueryParser:
    """
    Reads a question into a QueryIntent without an LLM.

    Used when no AI provider is configured or the provider's output
    cannot be parsed.
    """

    TIME_PATTERNS = (
        r"last \d{1,2} months",
        r"(this|current|last|previous) (month|year)",
        r"\b(" + "|".join(MONTHS) + r")\b( 20\d{2})?",
        r"\b20\d{2}\b",
    )

    def parse_intent(self, question: str, target: Optional[str] = None) -> QueryIntent:
        text = question.lower()
        words = set(re.findall(r"[a-z]+", text))

        if target is None:
            is_investment = (
                any(hint in text for hint in INVESTMENT_HINTS)
                or bool(words & set(INVESTMENT_KEYWORDS))
            )
            target = "investments" if is_investment else "expenses"

        intent = QueryIntent(target=target)

        if target == "expenses":
            for category in EXPENSE_CATEGORIES:
                if category.lower() in text:
                    intent.category = category
                    break
            else:
                for word, category in CATEGORY_KEYWORDS.items():
                    if word in words:
                        intent.category = category
                        break
            if re.search(r"(excluding|without|except) (loan|emi)", text):
                intent.include_loan_emis = False
                if intent.category == EMI_CATEGORY:
                    intent.category = None
        else:
            if "fixed deposit" in text:
                intent.investment_type = InvestmentType.FD.value
            for word, inv_type in INVESTMENT_KEYWORDS.items():
                if word in words:
                    intent.investment_type = inv_type.value
                    break
            if re.search(r"short[\s-]term", text):
                intent.goal = InvestmentGoal.SHORT_TERM.value
            elif re.search(r"long[\s-]term", text):
                intent.goal = InvestmentGoal.LONG_TERM.value

        for pattern in self.TIME_PATTERNS:
            match = re.search(pattern, text)
            if match:
                intent.time_reference = match.group(0)
                break

        group_match = re.search(r"\b(?:by|per|each)\s+([a-z]+)", text)
        if group_match and group_match.group(1) in GROUP_SYNONYMS:
            intent.group_by = group_match.group(1)
            intent.aggregation = "group"
        elif "breakdown" in words or "split" in words:
            intent.aggregation = "group"
        elif "how many" in text or words & {"count", "number"}:
            intent.aggregation = "count"
        elif words & {"average", "avg", "mean"}:
            intent.aggregation = "average"
        elif "how much" in text or words & {"total", "spent", "spend", "sum", "worth", "value"}:
            intent.aggregation = "sum"

        return intent

    def parse(
        self,
        question: str,
        target: Optional[str] = None,
        today: Optional[date] = None,
    ) -> StructuredQuery:
        return intent_to_query(self.parse_intent(question, target), question, today)
