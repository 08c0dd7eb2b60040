"""
Shared fixtures.

Every test gets its own Ledger and in-memory storage; nothing touches
the filesystem, the network or a real AI provider.
"""

from datetime import date
from decimal import Decimal

import pytest

from src.audit import AuditLogger
from src.models.ledger import Ledger
from src.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


@pytest.fixture(autouse=True)
def no_env_api_keys(monkeypatch):
    """Keep provider keys from the developer's environment out of tests."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def today():
    return date(2024, 3, 15)


class FakeMarket:
    """Stands in for MarketDataService with fixed prices."""

    def __init__(self, prices=None, rate=None):
        self.prices = prices or {}
        self.rate = rate
        self.requested = []

    def share_prices(self, holdings):
        holdings = list(holdings)
        self.requested.extend(holdings)
        return {name: self.prices[name] for name, _ in holdings if name in self.prices}

    def usd_inr_rate_or(self, fallback=None):
        if self.rate is None:
            return fallback or Decimal("83"), False
        return self.rate, True


@pytest.fixture
def fake_market():
    return FakeMarket(prices={"INFY": Decimal("1500.50")}, rate=Decimal("84.25"))


@pytest.fixture
def offline_market():
    """A market whose fetches all fail."""
    return FakeMarket()
