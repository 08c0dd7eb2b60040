"""
System instructions and data context for the assistant.

The context blocks carry ledger data into a prompt. Amounts are computed
here, in Python, so the model never has to value a holding itself.
"""

import json
from decimal import Decimal
from typing import Iterable, Optional

from src.calculations.valuation import portfolio_amount
from src.models.expense import Expense
from src.models.investment import Investment, SharePrice

DEFAULT_INSTRUCTION = "You are a helpful financial assistant."

EXPENSES_INSTRUCTION = """You are an expense analysis expert. Analyze the expense data provided to answer user queries.
You can: calculate totals, group by categories/months/years, identify spending patterns, compare periods.
Provide insights with specific numbers, dates, and trends.
Use Indian Rupee (₹) for all amounts."""

INVESTMENTS_INSTRUCTION = """You are an expert investment portfolio analyst and financial advisor. Analyze the investment data provided to answer user queries.

Your capabilities:
- Calculate total portfolio value and asset allocation percentages
- Analyze diversification across investment types (SHARES, GOLD, FD, EPF)
- Compare SHORT_TERM vs LONG_TERM allocation
- Identify portfolio gaps and missing asset classes
- Provide diversification recommendations based on risk profile and goals

Investment Data Structure:
- Every investment has an "amount" field in INR
- SHARES: price x quantity, USD shares converted with the exchange rate
- GOLD: current gold rate per gram x quantity in grams
- FD and EPF: the deposited amount
- Use the "amount" field for all calculations

Use Indian Rupee (₹) for all amounts."""

# Used when phrasing a QueryResult; the figures are already computed
ANSWER_INSTRUCTION = """You answer questions about the user's personal finances using ONLY the data provided.
- Use simple language and format amounts in Indian Rupees (₹)
- If asked yes/no, answer clearly first
- Keep it concise
Do NOT add any figures that are not in the data. If the data does not fully answer the question, say so."""

# Used when asking the model to translate a question into a query
QUERY_INSTRUCTION = """You convert questions about personal finances into a JSON query object.
Respond with ONLY the JSON object, no explanation."""

CARD_BENEFITS_INSTRUCTION = """You are a financial information specialist for Indian credit cards.
Summarize the verified benefits of the named card as it is described on the issuing bank's official site.
Use short bullet points grouped under headings (no tables), covering where available:
base reward rate or cashback, milestone benefits, dining and food delivery, groceries, fuel,
travel and lounge access, entertainment, online and offline shopping, utilities and bills,
insurance, and annual fee with its waiver condition.
If you are not sure about a benefit, leave it out."""

INSTRUCTIONS = {
    "expenses": EXPENSES_INSTRUCTION,
    "investments": INVESTMENTS_INSTRUCTION,
    "default": DEFAULT_INSTRUCTION,
}


def system_instruction(mode: Optional[str]) -> str:
    return INSTRUCTIONS.get(mode or "default", DEFAULT_INSTRUCTION)


def _dump(rows: list[dict]) -> str:
    return json.dumps(rows, indent=2, default=str, ensure_ascii=False)


def format_expense_context(expenses: Iterable[Expense]) -> str:
    expenses = list(expenses)
    total = sum((e.amount for e in expenses), Decimal("0"))
    rows = [
        {
            "title": e.title,
            "description": e.description,
            "amount": str(e.amount),
            "category": e.category,
            "date": e.expense_date.isoformat(),
        }
        for e in expenses
    ]
    return f"EXPENSE DATA ({len(expenses)} transactions, Total: ₹{total:.2f}):\n{_dump(rows)}"


def format_investment_context(
    investments: Iterable[Investment],
    exchange_rate: Decimal,
    gold_rate: Decimal,
    share_prices: Iterable[SharePrice] = (),
) -> str:
    investments = list(investments)
    share_prices = list(share_prices)
    rows = []
    total = Decimal("0")
    for inv in investments:
        amount = portfolio_amount(inv, exchange_rate, gold_rate, share_prices)
        total += amount
        rows.append({
            "name": inv.name,
            "type": inv.type.value,
            "goal": inv.goal.value,
            "amount": f"{amount:.2f}",
            "price": str(inv.price) if inv.price is not None else None,
            "currency": inv.currency.value,
            "quantity": str(inv.quantity) if inv.quantity is not None else None,
        })
    header = (
        f"INVESTMENT PORTFOLIO ({len(investments)} items, Total: ₹{total:.2f}, "
        f"Exchange Rate: ₹{exchange_rate}, Gold Rate: ₹{gold_rate}/g)"
    )
    return f"{header}:\n{_dump(rows)}"


def with_context(prompt: str, context: str) -> str:
    if not context:
        return prompt
    return f"{context}\n\nUSER QUERY: {prompt}"
