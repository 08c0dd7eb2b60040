"""
Investment manager

Portfolio holdings, the monthly purchase log, the share price registry
and the two rates used for valuation (USD to INR, gold per gram).

DESIGN DECISION: Portfolio holdings are unique per name, type and goal.
Adding a SHARES or GOLD holding that already exists needs an explicit
DuplicateAction: ADD merges the quantities and takes the latest price,
OVERRIDE replaces the holding. An FD or EPF duplicate is always an error.
Monthly entries never conflict; they are logged as-is and folded into the
portfolio.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

import structlog

from src.audit import AuditLogger
from src.calculations.valuation import (
    apply_date_filter,
    group_by_year_month,
    monthly_amount,
    summarize_portfolio,
)
from src.managers.base import BaseManager, is_blank
from src.managers.errors import DuplicateRecordError, InvalidInputError, LedgerError, RecordNotFoundError
from src.models.audit import AuditEventBuilder
from src.models.investment import (
    Currency,
    DateFilter,
    DuplicateAction,
    ExchangeRate,
    Investment,
    InvestmentType,
    PortfolioSummary,
    SharePrice,
)
from src.models.ledger import Ledger
from src.services.market import MarketDataService
from src.services.storage import LedgerStorageInterface
from src.utils.money import ZERO, Number, money

logger = structlog.get_logger("managers.investments")

# Fields each type carries; the rest are dropped before validation
TYPE_FIELDS = {
    InvestmentType.SHARES: {"quantity", "price", "currency"},
    InvestmentType.GOLD: {"quantity", "price"},
    InvestmentType.EPF: {"amount"},
    InvestmentType.FD: {"amount", "tenure", "interest_rate", "end_date"},
}
MERGEABLE_TYPES = (InvestmentType.SHARES, InvestmentType.GOLD)


def _as_type(value: Any) -> InvestmentType:
    try:
        return InvestmentType(value)
    except ValueError:
        raise InvalidInputError(f"Unknown investment type: {value}", {"type": "Unknown type"})


class InvestmentManager(BaseManager):
    entity_name = "investment"

    def __init__(
        self,
        ledger: Ledger,
        storage: LedgerStorageInterface,
        audit: Optional[AuditLogger] = None,
        market: Optional[MarketDataService] = None,
    ):
        super().__init__(ledger, storage, audit)
        self._market = market

    # =========================================================================
    # PORTFOLIO
    # =========================================================================

    def add_to_portfolio(
        self,
        name: str,
        type: Any,
        goal: Any = None,
        description: str = "",
        on_duplicate: Optional[DuplicateAction] = None,
        **fields: Any,
    ) -> Investment:
        """
        Add a holding to the portfolio.

        Args:
            fields: quantity, price, currency, amount, tenure,
                interest_rate, end_date (only those of the type are kept)
            on_duplicate: Required when a SHARES/GOLD holding with the
                same name and goal exists

        Raises:
            InvalidInputError: Missing name/type or invalid type fields
            DuplicateRecordError: FD/EPF duplicate, or a SHARES/GOLD
                duplicate without on_duplicate
        """
        candidate = self._candidate(name, type, goal, description, fields)
        existing = self._find_by_key(candidate.key)

        if existing is None:
            self._ledger.investments.append(candidate)
            result, merged = candidate, False
        elif candidate.type not in MERGEABLE_TYPES:
            raise DuplicateRecordError(
                f"{candidate.name} ({candidate.type.value}) already exists in the portfolio"
            )
        elif on_duplicate is None:
            raise DuplicateRecordError(
                f"{candidate.name} ({candidate.type.value}) already exists in the portfolio. "
                "Choose whether to add to it or override it."
            )
        elif DuplicateAction(on_duplicate) == DuplicateAction.ADD:
            result, merged = self._merge_into(existing, candidate), True
        else:
            result = self._rebuild(candidate, {"id": existing.id, "created_at": existing.created_at})
            self._replace(self._ledger.investments, existing, result)
            merged = True

        if result.type == InvestmentType.SHARES:
            self._register_share_price(result.name, result.price, result.currency)
        self._persist()
        self._record(AuditEventBuilder.investment_added(result.id, result.name, result.type.value, merged))
        return result

    def update(self, investment_id: Any, **updates: Any) -> Investment:
        """Edit a portfolio holding."""
        existing = self.get_by_id(investment_id)
        updated = self._rebuild(existing, self._clean_updates(existing, updates))
        self._replace(self._ledger.investments, existing, updated)
        if updated.type == InvestmentType.SHARES:
            self._register_share_price(updated.name, updated.price, updated.currency)
        self._persist()
        return updated

    def delete(self, investment_id: Any) -> Investment:
        """
        Remove a portfolio holding. Removing the last SHARES holding of a
        name deactivates its registry price.
        """
        investment = self.get_by_id(investment_id)
        self._ledger.investments.remove(investment)
        if investment.type == InvestmentType.SHARES and not self._holds_share(investment.name):
            for sp in self._ledger.share_prices:
                if sp.name == investment.name:
                    sp.active = False
        self._persist()
        return investment

    def get_by_id(self, investment_id: Any) -> Investment:
        return self._find(self._ledger.investments, investment_id)

    # =========================================================================
    # MONTHLY LOG
    # =========================================================================

    def add_monthly(
        self,
        name: str,
        type: Any,
        investment_date: Optional[date],
        goal: Any = None,
        description: str = "",
        **fields: Any,
    ) -> Investment:
        """
        Log a purchase and fold it into the portfolio.

        An existing SHARES/GOLD holding gains the quantity and takes the
        latest price; an existing FD/EPF holding is left alone; otherwise
        a new undated holding is created.
        """
        self._require(investment_date=investment_date)
        entry = self._candidate(name, type, goal, description, fields)
        entry = self._rebuild(entry, {"investment_date": investment_date})
        self._ledger.monthly_investments.append(entry)

        holding = self._find_by_key(entry.key)
        if holding is None:
            holding = self._rebuild(entry, {
                "id": uuid4(),
                "investment_date": None,
                "created_at": datetime.utcnow(),
            })
            self._ledger.investments.append(holding)
        elif holding.type in MERGEABLE_TYPES:
            self._merge_into(holding, entry)

        if entry.type == InvestmentType.SHARES:
            self._register_share_price(entry.name, entry.price, entry.currency)
        self._persist()
        self._record(AuditEventBuilder.investment_added(entry.id, entry.name, entry.type.value, merged=False))
        return entry

    def update_monthly(self, entry_id: Any, **updates: Any) -> Investment:
        """Edit a log entry. The portfolio is not re-synced."""
        existing = self._find(self._ledger.monthly_investments, entry_id)
        updated = self._rebuild(existing, self._clean_updates(existing, updates))
        self._replace(self._ledger.monthly_investments, existing, updated)
        self._persist()
        return updated

    def delete_monthly(self, entry_id: Any) -> Investment:
        entry = self._find(self._ledger.monthly_investments, entry_id)
        self._ledger.monthly_investments.remove(entry)
        self._persist()
        return entry

    def get_monthly(self) -> list[Investment]:
        """Newest purchase first."""
        return sorted(
            self._ledger.monthly_investments,
            key=lambda inv: inv.investment_date or date.min,
            reverse=True,
        )

    def filtered_monthly(
        self,
        date_filter: DateFilter = DateFilter.ALL_TIME,
        today: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        search: str = "",
    ) -> list[Investment]:
        entries = apply_date_filter(self.get_monthly(), DateFilter(date_filter), today, start, end)
        return self.search(search, entries) if search else entries

    def monthly_groups(self, entries: Optional[list[Investment]] = None) -> dict[int, dict[int, list[Investment]]]:
        return group_by_year_month(self.get_monthly() if entries is None else entries)

    def monthly_total(self, entries: Optional[list[Investment]] = None) -> Decimal:
        entries = self._ledger.monthly_investments if entries is None else entries
        rate = self._ledger.exchange_rate.rate
        return money(sum((monthly_amount(inv, rate) for inv in entries), ZERO))

    # =========================================================================
    # SEARCH & VALUATION
    # =========================================================================

    def search(self, query: str, investments: Optional[list[Investment]] = None) -> list[Investment]:
        """Case-insensitive match on name, description, type and goal."""
        items = self._ledger.investments if investments is None else investments
        needle = (query or "").strip().lower()
        if not needle:
            return list(items)
        return [
            inv for inv in items
            if needle in inv.name.lower()
            or needle in inv.description.lower()
            or needle in inv.type.value.lower()
            or needle in inv.goal.value.lower().replace("_", " ")
        ]

    def portfolio_summary(self) -> PortfolioSummary:
        return summarize_portfolio(
            self._ledger.investments,
            self._ledger.exchange_rate.rate,
            self._ledger.gold_rate_per_gram,
            self._ledger.share_prices,
        )

    # =========================================================================
    # SHARE PRICES
    # =========================================================================

    def get_share_prices(self) -> list[SharePrice]:
        return sorted(self._ledger.share_prices, key=lambda sp: sp.name.lower())

    def update_share_price(self, name: str, price: Optional[Number], currency: Any = Currency.INR) -> SharePrice:
        """Manual price edit; also reprices the portfolio's holdings of that name."""
        self._require(name=name, price=price)
        if self._number("price", price) <= 0:
            raise InvalidInputError("Please enter a valid price greater than 0", {"price": "Must be greater than 0"})
        entry = self._register_share_price(name.strip(), price, Currency(currency))
        self._reprice_holdings(entry)
        self._persist()
        return entry

    def delete_share_price(self, name: str) -> SharePrice:
        """
        Raises:
            LedgerError: The share is still held in the portfolio
        """
        entry = self._share_price(name)
        if entry is None:
            raise RecordNotFoundError("share price", name)
        if self._holds_share(name):
            raise LedgerError(f"Cannot delete the price of {name} while it is in the portfolio")
        self._ledger.share_prices.remove(entry)
        self._persist()
        return entry

    def refresh_share_prices(self) -> int:
        """
        Fetch prices for every SHARES holding. Names that fail keep their
        stored price.

        Returns:
            Number of prices updated
        """
        if self._market is None:
            return 0
        holdings = {
            inv.name: inv.currency
            for inv in self._ledger.investments
            if inv.type == InvestmentType.SHARES
        }
        prices = self._market.share_prices(holdings.items())
        for name, price in prices.items():
            entry = self._register_share_price(name, price, holdings[name])
            self._reprice_holdings(entry)
        if prices:
            self._persist()
            self._record(AuditEventBuilder.rate_updated("share prices", str(len(prices)), "market"))
        return len(prices)

    def _share_price(self, name: str) -> Optional[SharePrice]:
        for sp in self._ledger.share_prices:
            if sp.name == name:
                return sp
        return None

    def _register_share_price(self, name: str, price: Number, currency: Currency) -> SharePrice:
        entry = self._share_price(name)
        if entry is None:
            entry = SharePrice(name=name, price=money(price), currency=currency)
            self._ledger.share_prices.append(entry)
        else:
            entry.price = money(price)
            entry.currency = currency
            entry.active = True
            entry.last_updated = datetime.utcnow()
        return entry

    def _reprice_holdings(self, entry: SharePrice) -> None:
        for inv in self._ledger.investments:
            if inv.type == InvestmentType.SHARES and inv.name == entry.name:
                inv.price = entry.price
                inv.currency = entry.currency

    def _holds_share(self, name: str) -> bool:
        return any(
            inv.type == InvestmentType.SHARES and inv.name == name
            for inv in self._ledger.investments
        )

    # =========================================================================
    # RATES
    # =========================================================================

    def set_exchange_rate(self, rate: Optional[Number], source: str = "manual") -> ExchangeRate:
        message = "Please enter a valid exchange rate"
        if is_blank(rate) or self._number("rate", rate, message) <= 0:
            raise InvalidInputError(message, {"rate": "Must be greater than 0"})
        self._ledger.exchange_rate = ExchangeRate(rate=self._number("rate", rate), last_updated=datetime.utcnow())
        self._persist()
        self._record(AuditEventBuilder.rate_updated("USD/INR", str(self._ledger.exchange_rate.rate), source))
        return self._ledger.exchange_rate

    def refresh_exchange_rate(self) -> ExchangeRate:
        """Fetch the live rate; keep the stored one when the fetch fails."""
        if self._market is None:
            return self._ledger.exchange_rate
        rate, fetched = self._market.usd_inr_rate_or(self._ledger.exchange_rate.rate)
        if not fetched:
            return self._ledger.exchange_rate
        return self.set_exchange_rate(rate, source="market")

    def set_gold_rate(self, rate: Optional[Number]) -> Decimal:
        """Set the rate per gram and reprice every GOLD holding."""
        message = "Please enter a valid gold rate"
        if is_blank(rate) or self._number("rate", rate, message) <= 0:
            raise InvalidInputError(message, {"rate": "Must be greater than 0"})
        rate = money(rate)
        self._ledger.gold_rate_per_gram = rate
        for inv in self._ledger.investments:
            if inv.type == InvestmentType.GOLD:
                inv.price = rate
        self._persist()
        self._record(AuditEventBuilder.rate_updated("gold per gram", str(rate), "manual"))
        return rate

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _candidate(self, name: str, type: Any, goal: Any, description: str, fields: dict) -> Investment:
        self._require(name=name, type=type)
        inv_type = _as_type(type)
        unknown = set(fields) - set().union(*TYPE_FIELDS.values())
        if unknown:
            raise ValueError(f"Unknown investment fields: {', '.join(sorted(unknown))}")
        data = {k: v for k, v in fields.items() if k in TYPE_FIELDS[inv_type] and v not in (None, "")}
        if goal not in (None, ""):
            data["goal"] = goal
        return self._build(Investment, name=name, type=inv_type, description=description or "", **data)

    def _clean_updates(self, existing: Investment, updates: dict) -> dict:
        allowed = {"name", "goal", "description", "investment_date"} | TYPE_FIELDS[existing.type]
        unknown = set(updates) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        return {k: v for k, v in updates.items() if v is not None}

    def _find_by_key(self, key: str) -> Optional[Investment]:
        for inv in self._ledger.investments:
            if inv.key == key:
                return inv
        return None

    def _merge_into(self, holding: Investment, addition: Investment) -> Investment:
        changes = {
            "quantity": (holding.quantity or ZERO) + (addition.quantity or ZERO),
            "price": addition.price,
        }
        if holding.type == InvestmentType.SHARES:
            changes["currency"] = addition.currency
        merged = self._rebuild(holding, changes)
        self._replace(self._ledger.investments, holding, merged)
        logger.info("holding_merged", name=holding.name, quantity=str(merged.quantity))
        return merged
