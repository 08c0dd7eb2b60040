"""
Card Models

Payment cards and the EMIs (purchases converted to installments)
running on credit cards. Card number and CVV are SecretStr, like
credential passwords, and are only revealed when the ledger is
serialized for storage.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_serializer,
    field_validator,
    model_validator,
)

CARD_NUMBER_PATTERN = re.compile(r"^\d{13,19}$")
EXPIRY_PATTERN = re.compile(r"^\d{2}/(\d{2}|\d{4})$")
CVV_PATTERN = re.compile(r"^\d{3,4}$")

CARD_EMI_TITLE_PREFIX = "Card EMI: "


class CardType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class CardEMI(BaseModel):
    """A purchase repaid in monthly installments on a credit card."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    reason: str = Field(..., min_length=1, max_length=200)
    first_emi_date: date
    emi_amount: Optional[Decimal] = Field(default=None, gt=0)
    paid_count: int = Field(default=0, ge=0)
    total_count: int = Field(..., ge=1, le=600)
    completed: bool = False
    added_to_expenses: list[str] = Field(default_factory=list, description="YYYY-MM keys already auto-added")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def check_counts(self) -> "CardEMI":
        if self.paid_count > self.total_count:
            raise ValueError("Paid EMIs cannot exceed total EMIs")
        return self

    @property
    def expense_title(self) -> str:
        return f"{CARD_EMI_TITLE_PREFIX}{self.reason}"

    @property
    def remaining_count(self) -> int:
        return self.total_count - self.paid_count


class Card(BaseModel):
    """A credit or debit card."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    card_number: SecretStr
    expiry: str = Field(..., description="MM/YY or MM/YYYY")
    cvv: SecretStr
    card_type: CardType = CardType.CREDIT
    credit_limit: Optional[Decimal] = Field(default=None, gt=0)
    additional_data: str = ""
    benefits: Optional[str] = None
    benefits_fetched_at: Optional[datetime] = None
    emis: list[CardEMI] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @field_validator("card_number", mode="before")
    @classmethod
    def validate_card_number(cls, v):
        raw = v.get_secret_value() if isinstance(v, SecretStr) else str(v or "")
        cleaned = re.sub(r"\s", "", raw)
        if not CARD_NUMBER_PATTERN.match(cleaned):
            raise ValueError("Invalid card number (13-19 digits required)")
        return cleaned

    @field_validator("expiry")
    @classmethod
    def validate_expiry(cls, v: str) -> str:
        if not EXPIRY_PATTERN.match(v):
            raise ValueError("Invalid expiry format (use MM/YY or MM/YYYY)")
        return v

    @field_validator("cvv", mode="before")
    @classmethod
    def validate_cvv(cls, v):
        raw = v.get_secret_value() if isinstance(v, SecretStr) else str(v or "").strip()
        if not CVV_PATTERN.match(raw):
            raise ValueError("Invalid CVV (3-4 digits required)")
        return raw

    @model_validator(mode="after")
    def limit_only_for_credit(self) -> "Card":
        if self.card_type != CardType.CREDIT:
            self.credit_limit = None
        return self

    @field_serializer("card_number", "cvv", when_used="json")
    def reveal_for_storage(self, v: SecretStr) -> str:
        return v.get_secret_value()

    @property
    def last4(self) -> str:
        return self.card_number.get_secret_value()[-4:]

    @property
    def network(self) -> str:
        """Card network from the first digit."""
        return {
            "4": "Visa",
            "5": "Mastercard",
            "3": "Amex",
            "6": "Discover",
        }.get(self.card_number.get_secret_value()[0], "Unknown")

    @property
    def active_emis(self) -> list[CardEMI]:
        return [e for e in self.emis if not e.completed]

    def to_log_dict(self) -> dict:
        """Fields safe to log."""
        return {
            "card_id": str(self.id),
            "name": self.name,
            "card_type": self.card_type.value,
            "last4": self.last4,
        }


class CardEMISummary(BaseModel):
    """Totals over a card's running EMIs, in whole rupees."""

    total_emi_amount: Decimal
    total_pending: Decimal
    total_paid: Decimal
    progress: int = Field(ge=0, le=100, description="Percent of EMI value paid")
    next_emi_date: Optional[date] = None
    active_count: int
