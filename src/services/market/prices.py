"""
Market data via yfinance

DESIGN DECISION: Market data only ever refreshes values the user could
also type in by hand (share prices, USD to INR). A failed fetch is
therefore never fatal: callers keep the stored value and log the error.

Share names are looked up as tickers. INR holdings get the NSE suffix
(".NS") unless the name already carries an exchange suffix.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog
import yfinance as yf
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.models.investment import Currency

logger = structlog.get_logger("market")


class MarketDataError(Exception):
    """Raised when a price cannot be fetched."""
    pass


class MarketDataService:
    """Latest prices and exchange rates from Yahoo Finance."""

    def __init__(self):
        self._settings = get_settings().market

    def ticker_for(self, name: str, currency: Currency = Currency.INR) -> str:
        symbol = name.strip().upper().replace(" ", "")
        if currency == Currency.INR and "." not in symbol:
            symbol += self._settings.inr_ticker_suffix
        return symbol

    @retry(
        retry=retry_if_exception_type(MarketDataError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def last_close(self, symbol: str) -> Decimal:
        """Most recent closing price for a ticker symbol."""
        try:
            history = yf.Ticker(symbol).history(period="5d")
        except Exception as e:
            raise MarketDataError(f"Failed to fetch {symbol}: {e}")

        if history.empty or "Close" not in history:
            raise MarketDataError(f"No price data returned for {symbol}")

        price = history["Close"].iloc[-1]
        if hasattr(price, "item"):
            price = price.item()
        if not price or price <= 0:
            raise MarketDataError(f"Invalid price for {symbol}: {price}")
        return Decimal(str(price))

    def share_price(self, name: str, currency: Currency = Currency.INR) -> Decimal:
        symbol = self.ticker_for(name, currency)
        price = self.last_close(symbol)
        logger.info("share_price_fetched", name=name, symbol=symbol, price=str(price))
        return price

    def share_prices(self, holdings: Iterable[tuple[str, Currency]]) -> dict[str, Decimal]:
        """Prices for (name, currency) pairs. Names that fail are left out."""
        prices: dict[str, Decimal] = {}
        for name, currency in holdings:
            try:
                prices[name] = self.share_price(name, currency)
            except MarketDataError as e:
                logger.warning("share_price_failed", name=name, error=str(e))
        return prices

    def usd_inr_rate(self) -> Decimal:
        rate = self.last_close(self._settings.exchange_rate_ticker)
        logger.info("exchange_rate_fetched", rate=str(rate))
        return rate

    def usd_inr_rate_or(self, fallback: Optional[Decimal] = None) -> tuple[Decimal, bool]:
        """
        (rate, fetched). Falls back to the given rate, else the configured
        default, when the fetch fails.
        """
        try:
            return self.usd_inr_rate(), True
        except MarketDataError as e:
            rate = fallback or Decimal(str(self._settings.default_usd_inr_rate))
            logger.warning("exchange_rate_fallback", error=str(e), rate=str(rate))
            return rate, False
