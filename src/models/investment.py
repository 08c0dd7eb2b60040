"""
Investment Models

Two collections are kept: the portfolio (current holdings, one per
name/type/goal) and monthly investments (a dated log of purchases).
Which fields matter depends on the investment type:

    SHARES  quantity (whole units), price, currency
    GOLD    quantity (grams), price per gram
    EPF     amount
    FD      amount, tenure (months), interest rate, end date

DESIGN DECISION: One model with optional type-specific fields rather
than a class per type. The model validator enforces the per-type rules
so a holding is never saved half-filled.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.utils.money import money


# =============================================================================
# ENUMS
# =============================================================================

class InvestmentType(str, Enum):
    SHARES = "SHARES"
    GOLD = "GOLD"
    EPF = "EPF"
    FD = "FD"


class InvestmentGoal(str, Enum):
    SHORT_TERM = "SHORT_TERM"
    LONG_TERM = "LONG_TERM"


class Currency(str, Enum):
    INR = "INR"
    USD = "USD"


class DuplicateAction(str, Enum):
    """What to do when a SHARES/GOLD holding already exists."""
    ADD = "add"
    OVERRIDE = "override"


class DateFilter(str, Enum):
    THIS_MONTH = "this_month"
    LAST_6_MONTHS = "last_6_months"
    THIS_YEAR = "this_year"
    CUSTOM = "custom"
    ALL_TIME = "all_time"


# =============================================================================
# HOLDINGS
# =============================================================================

class Investment(BaseModel):
    """A holding in the portfolio, or one entry of the monthly log."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    type: InvestmentType
    goal: InvestmentGoal = InvestmentGoal.LONG_TERM
    description: str = ""

    # SHARES / GOLD
    quantity: Optional[Decimal] = None
    price: Optional[Decimal] = None
    currency: Currency = Currency.INR

    # EPF / FD
    amount: Optional[Decimal] = None

    # FD only
    tenure: Optional[int] = None
    interest_rate: Optional[Decimal] = None
    end_date: Optional[date] = None

    # Monthly log entries carry the purchase date; portfolio holdings do not
    investment_date: Optional[date] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def check_type_fields(self) -> "Investment":
        if self.type == InvestmentType.EPF and self.goal != InvestmentGoal.LONG_TERM:
            object.__setattr__(self, "goal", InvestmentGoal.LONG_TERM)

        errors = validate_investment_fields(self)
        if errors:
            raise ValueError("; ".join(f"{field}: {msg}" for field, msg in errors.items()))

        if self.price is not None:
            object.__setattr__(self, "price", money(self.price))
        return self

    @property
    def key(self) -> str:
        """Duplicate-detection key."""
        return f"{self.name}_{self.type.value}_{self.goal.value}"


def validate_investment_fields(inv: Investment) -> dict[str, str]:
    """
    Per-type field rules.

    Returns {field: message}; empty when valid.
    """
    errors: dict[str, str] = {}

    if inv.type == InvestmentType.SHARES:
        if inv.quantity is None or inv.quantity <= 0 or inv.quantity != inv.quantity.to_integral_value():
            errors["quantity"] = "Please enter a valid whole quantity greater than 0"
        if inv.price is None or inv.price <= 0:
            errors["price"] = "Please enter a valid price greater than 0"

    elif inv.type == InvestmentType.GOLD:
        if inv.quantity is None or inv.quantity <= 0:
            errors["quantity"] = "Please enter a valid quantity greater than 0"
        if inv.price is None or inv.price <= 0:
            errors["price"] = "Please enter a valid price per gram greater than 0"

    elif inv.type == InvestmentType.EPF:
        if inv.amount is None or inv.amount <= 0:
            errors["amount"] = "Please enter a valid amount greater than 0"

    elif inv.type == InvestmentType.FD:
        if inv.amount is None or inv.amount <= 0:
            errors["amount"] = "Please enter a valid amount greater than 0"
        if inv.tenure is None or inv.tenure <= 0:
            errors["tenure"] = "Please enter a valid tenure in months"
        if inv.interest_rate is None or inv.interest_rate < 0:
            errors["interest_rate"] = "Please enter a valid interest rate"
        if inv.end_date is None:
            errors["end_date"] = "Please select an end date"

    return errors


class SharePrice(BaseModel):
    """Latest known price for a share name."""

    name: str
    price: Decimal = Field(..., gt=0)
    currency: Currency = Currency.INR
    active: bool = True
    last_updated: datetime = Field(default_factory=datetime.utcnow)


class ExchangeRate(BaseModel):
    """USD to INR."""

    rate: Decimal = Field(default=Decimal("83"), gt=0)
    last_updated: Optional[datetime] = None


# =============================================================================
# VALUATION RESULTS
# =============================================================================

class HoldingValue(BaseModel):
    investment: Investment
    display_price: Optional[Decimal] = None
    value_inr: Decimal


class PortfolioSummary(BaseModel):
    """Portfolio value split by type and by goal."""

    total_value: Decimal
    by_type: dict[str, Decimal] = Field(default_factory=dict)
    by_goal: dict[str, Decimal] = Field(default_factory=dict)
    holdings: list[HoldingValue] = Field(default_factory=list)
