"""
Ledger - the application state

Every collection the app works with lives on one Ledger instance that
is loaded from storage at startup and handed to each manager.

DESIGN DECISION: No module-level state. A manager receives the Ledger
and a storage backend in its constructor and persists after each
mutation, so tests can run any number of independent ledgers side by
side.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, SecretStr, field_serializer, field_validator

from src.models.card import Card
from src.models.credential import Credential
from src.models.expense import DismissedRecurring, Expense, RecurringExpense
from src.models.income import IncomeSettings, SalaryRecord
from src.models.investment import ExchangeRate, Investment, SharePrice
from src.models.loan import Loan, MoneyLentRecord

SUPPORTED_PROVIDERS = ("gemini", "groq", "chatgpt", "perplexity")


class AISettings(BaseModel):
    """Provider keys and fallback order entered in the app."""

    gemini_api_key: Optional[SecretStr] = None
    groq_api_key: Optional[SecretStr] = None
    chatgpt_api_key: Optional[SecretStr] = None
    perplexity_api_key: Optional[SecretStr] = None
    priority_order: list[str] = Field(
        default_factory=lambda: list(SUPPORTED_PROVIDERS)
    )

    @field_validator("priority_order")
    @classmethod
    def validate_priority_order(cls, v: list[str]) -> list[str]:
        cleaned = []
        for name in v:
            name = name.strip().lower()
            if name not in SUPPORTED_PROVIDERS:
                raise ValueError(f"Unknown AI provider: {name}")
            if name not in cleaned:
                cleaned.append(name)
        return cleaned

    @field_serializer(
        "gemini_api_key", "groq_api_key", "chatgpt_api_key", "perplexity_api_key",
        when_used="json",
    )
    def reveal_for_storage(self, v: Optional[SecretStr]) -> Optional[str]:
        return v.get_secret_value() if v else None

    def api_key_for(self, provider: str) -> Optional[str]:
        secret = getattr(self, f"{provider}_api_key", None)
        if secret is None:
            return None
        return secret.get_secret_value() or None


class SecurityState(BaseModel):
    """App lock state. Never exported in backups."""

    pin_hash: Optional[str] = Field(default=None, description="SHA-256 hex of the PIN")
    biometric_enabled: bool = False
    is_setup: bool = False


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    provider: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class Ledger(BaseModel):
    """All persisted data of the app."""

    expenses: list[Expense] = Field(default_factory=list)
    recurring_expenses: list[RecurringExpense] = Field(default_factory=list)
    dismissed_recurring: list[DismissedRecurring] = Field(default_factory=list)

    loans: list[Loan] = Field(default_factory=list)
    money_lent: list[MoneyLentRecord] = Field(default_factory=list)

    income: IncomeSettings = Field(default_factory=IncomeSettings)
    salaries: list[SalaryRecord] = Field(default_factory=list)

    investments: list[Investment] = Field(default_factory=list)
    monthly_investments: list[Investment] = Field(default_factory=list)
    share_prices: list[SharePrice] = Field(default_factory=list)
    exchange_rate: ExchangeRate = Field(default_factory=ExchangeRate)
    gold_rate_per_gram: Decimal = Field(default=Decimal("7000"), gt=0)

    credentials: list[Credential] = Field(default_factory=list)
    cards: list[Card] = Field(default_factory=list)

    chat_history: list[ChatMessage] = Field(default_factory=list)
    settings: AISettings = Field(default_factory=AISettings)
    security: SecurityState = Field(default_factory=SecurityState)

    def collection_sizes(self) -> dict[str, int]:
        """Record counts per collection, for logging."""
        return {
            "expenses": len(self.expenses),
            "recurring_expenses": len(self.recurring_expenses),
            "loans": len(self.loans),
            "money_lent": len(self.money_lent),
            "salaries": len(self.salaries),
            "investments": len(self.investments),
            "monthly_investments": len(self.monthly_investments),
            "credentials": len(self.credentials),
            "cards": len(self.cards),
        }
