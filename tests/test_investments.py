"""
Tests for the investment manager and portfolio valuation.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.calculations.valuation import apply_date_filter, group_by_year_month
from src.managers import DuplicateRecordError, InvalidInputError, InvestmentManager, LedgerError
from src.models.investment import (
    Currency,
    DateFilter,
    DuplicateAction,
    InvestmentGoal,
)


@pytest.fixture
def manager(ledger, storage, audit, fake_market):
    return InvestmentManager(ledger, storage, audit, fake_market)


def add_shares(manager, name="INFY", quantity=10, price=1400, **kwargs):
    return manager.add_to_portfolio(name, "SHARES", quantity=quantity, price=price, **kwargs)


class TestTypeValidation:
    """Per-type field rules."""

    def test_shares_need_whole_quantity(self, manager):
        with pytest.raises(InvalidInputError):
            add_shares(manager, quantity="2.5")

    def test_gold_allows_fractional_grams(self, manager):
        gold = manager.add_to_portfolio("Gold coin", "GOLD", quantity="2.5", price=6500)
        assert gold.quantity == Decimal("2.5")

    def test_fd_needs_end_date(self, manager):
        with pytest.raises(InvalidInputError):
            manager.add_to_portfolio("SBI FD", "FD", amount=100000, tenure=12, interest_rate=7)

    def test_epf_forced_long_term(self, manager):
        epf = manager.add_to_portfolio("EPF", "EPF", goal="SHORT_TERM", amount=500000)
        assert epf.goal == InvestmentGoal.LONG_TERM

    def test_unknown_type(self, manager):
        with pytest.raises(InvalidInputError) as exc:
            manager.add_to_portfolio("Bitcoin", "CRYPTO", amount=1)
        assert "type" in exc.value.field_errors

    def test_fields_of_other_types_dropped(self, manager):
        """An EPF holding ignores quantity and price."""
        epf = manager.add_to_portfolio("EPF", "EPF", amount=500000, quantity=3, price=10)
        assert epf.quantity is None
        assert epf.price is None


class TestDuplicates:
    """Holdings are unique per name, type and goal."""

    def test_duplicate_needs_action(self, manager):
        add_shares(manager)
        with pytest.raises(DuplicateRecordError):
            add_shares(manager)

    def test_add_merges_quantity(self, manager, ledger):
        """ADD sums quantities and takes the latest price."""
        add_shares(manager)
        merged = add_shares(manager, quantity=5, price=1500, on_duplicate=DuplicateAction.ADD)
        assert merged.quantity == Decimal("15")
        assert merged.price == Decimal("1500.00")
        assert len(ledger.investments) == 1

    def test_override_keeps_id(self, manager, ledger):
        original = add_shares(manager)
        replaced = add_shares(manager, quantity=3, price=1600, on_duplicate="override")
        assert replaced.id == original.id
        assert replaced.quantity == Decimal("3")
        assert len(ledger.investments) == 1

    def test_different_goal_is_separate(self, manager, ledger):
        add_shares(manager)
        add_shares(manager, goal="SHORT_TERM")
        assert len(ledger.investments) == 2

    def test_fd_duplicate_rejected(self, manager):
        fd = dict(amount=100000, tenure=12, interest_rate=7, end_date=date(2025, 1, 1))
        manager.add_to_portfolio("SBI FD", "FD", **fd)
        with pytest.raises(DuplicateRecordError):
            manager.add_to_portfolio("SBI FD", "FD", on_duplicate=DuplicateAction.ADD, **fd)


class TestMonthlyLog:
    """Monthly purchases and their effect on the portfolio."""

    def test_new_name_creates_undated_holding(self, manager, ledger):
        entry = manager.add_monthly("INFY", "SHARES", date(2024, 3, 5), quantity=2, price=1450)
        holding = ledger.investments[0]
        assert entry.investment_date == date(2024, 3, 5)
        assert holding.investment_date is None
        assert holding.id != entry.id

    def test_existing_holding_gains_quantity(self, manager, ledger):
        add_shares(manager)
        manager.add_monthly("INFY", "SHARES", date(2024, 3, 5), quantity=2, price=1450)
        assert ledger.investments[0].quantity == Decimal("12")
        assert ledger.investments[0].price == Decimal("1450.00")

    def test_existing_fd_untouched(self, manager, ledger):
        fd = dict(amount=100000, tenure=12, interest_rate=7, end_date=date(2025, 1, 1))
        manager.add_to_portfolio("SBI FD", "FD", **fd)
        manager.add_monthly("SBI FD", "FD", date(2024, 3, 5), **fd)
        assert len(ledger.investments) == 1
        assert len(ledger.monthly_investments) == 1

    def test_date_required(self, manager):
        with pytest.raises(InvalidInputError):
            manager.add_monthly("INFY", "SHARES", None, quantity=2, price=1450)

    def test_edit_and_delete_entry(self, manager, ledger, storage):
        """Log edits leave the portfolio holding as it was."""
        entry = manager.add_monthly("INFY", "SHARES", date(2024, 3, 5), quantity=2, price=1450)

        updated = manager.update_monthly(entry.id, quantity=3, investment_date=date(2024, 3, 6))
        assert updated.id == entry.id
        assert storage.load().monthly_investments[0].quantity == Decimal("3")
        assert ledger.investments[0].quantity == Decimal("2")

        manager.delete_monthly(entry.id)
        assert manager.get_monthly() == []
        assert len(ledger.investments) == 1

    def test_entry_update_rejects_other_type_fields(self, manager):
        entry = manager.add_monthly("EPF", "EPF", date(2024, 3, 5), amount=3600)
        with pytest.raises(ValueError):
            manager.update_monthly(entry.id, tenure=12)

    def test_filters_and_groups(self, manager, today):
        manager.add_monthly("INFY", "SHARES", date(2024, 3, 5), quantity=2, price=1000)
        manager.add_monthly("Gold", "GOLD", date(2024, 1, 10), quantity=1, price=6000)
        manager.add_monthly("EPF", "EPF", date(2023, 6, 1), amount=3600)

        assert len(manager.filtered_monthly(DateFilter.THIS_MONTH, today)) == 1
        assert len(manager.filtered_monthly(DateFilter.THIS_YEAR, today)) == 2
        assert len(manager.filtered_monthly(DateFilter.LAST_6_MONTHS, today)) == 2
        assert len(manager.filtered_monthly(
            DateFilter.CUSTOM, today, date(2023, 1, 1), date(2023, 12, 31)
        )) == 1
        assert [e.name for e in manager.filtered_monthly(search="gold")] == ["Gold"]

        groups = manager.monthly_groups()
        assert list(groups) == [2024, 2023]
        assert list(groups[2024]) == [3, 1]
        assert manager.monthly_total() == Decimal("11600.00")

    def test_undated_dropped_unless_all_time(self, manager):
        holding = add_shares(manager)
        assert apply_date_filter([holding], DateFilter.THIS_YEAR) == []
        assert apply_date_filter([holding], DateFilter.ALL_TIME) == [holding]
        assert group_by_year_month([holding]) == {}


class TestValuation:
    """Portfolio value at current rates."""

    def test_summary_by_type_and_goal(self, manager, ledger):
        add_shares(manager, name="AAPL", quantity=2, price=100, currency=Currency.USD, goal="SHORT_TERM")
        manager.add_to_portfolio("Gold coin", "GOLD", quantity=10, price=6000)
        manager.add_to_portfolio("EPF", "EPF", amount=50000)
        manager.set_exchange_rate(80)
        manager.set_gold_rate(7000)

        summary = manager.portfolio_summary()
        assert summary.by_type == {
            "SHARES": Decimal("16000.00"),
            "GOLD": Decimal("70000.00"),
            "EPF": Decimal("50000.00"),
        }
        assert summary.by_goal["SHORT_TERM"] == Decimal("16000.00")
        assert summary.total_value == Decimal("136000.00")

    def test_gold_rate_reprices_holdings(self, manager, ledger):
        manager.add_to_portfolio("Gold coin", "GOLD", quantity=10, price=6000)
        manager.set_gold_rate(7200)
        assert ledger.investments[0].price == Decimal("7200.00")
        assert ledger.gold_rate_per_gram == Decimal("7200.00")

    def test_invalid_rates(self, manager):
        with pytest.raises(InvalidInputError):
            manager.set_gold_rate(0)
        with pytest.raises(InvalidInputError):
            manager.set_exchange_rate("")

    @pytest.mark.parametrize("rate", ["abc", "12,5", "nan"])
    def test_non_numeric_rates(self, manager, ledger, rate):
        """Text that is not a number is a field error, and nothing changes."""
        with pytest.raises(InvalidInputError) as exc:
            manager.set_exchange_rate(rate)
        assert "rate" in exc.value.field_errors
        with pytest.raises(InvalidInputError):
            manager.set_gold_rate(rate)
        assert ledger.gold_rate_per_gram == Decimal("7000")


class TestSharePrices:
    """The share price registry and market refresh."""

    def test_price_registered_on_add(self, manager, ledger):
        add_shares(manager)
        assert ledger.share_prices[0].name == "INFY"
        assert ledger.share_prices[0].price == Decimal("1400.00")

    def test_manual_update_reprices(self, manager, ledger):
        add_shares(manager)
        manager.update_share_price("INFY", 1550)
        assert ledger.investments[0].price == Decimal("1550.00")

    def test_non_numeric_share_price(self, manager, ledger):
        add_shares(manager)
        with pytest.raises(InvalidInputError) as exc:
            manager.update_share_price("INFY", "1.5k")
        assert "price" in exc.value.field_errors
        assert ledger.investments[0].price == Decimal("1400.00")

    def test_delete_held_share_price(self, manager):
        add_shares(manager)
        with pytest.raises(LedgerError):
            manager.delete_share_price("INFY")

    def test_deleting_holding_deactivates_price(self, manager, ledger):
        holding = add_shares(manager)
        manager.delete(holding.id)
        assert ledger.share_prices[0].active is False
        manager.delete_share_price("INFY")
        assert ledger.share_prices == []

    def test_readding_reactivates(self, manager, ledger):
        holding = add_shares(manager)
        manager.delete(holding.id)
        add_shares(manager)
        assert ledger.share_prices[0].active is True

    def test_refresh_share_prices(self, manager, ledger, fake_market):
        add_shares(manager)
        add_shares(manager, name="TCS", quantity=1, price=3800)
        assert manager.refresh_share_prices() == 1
        assert ledger.investments[0].price == Decimal("1500.50")
        assert ledger.investments[1].price == Decimal("3800.00")
        assert ("TCS", Currency.INR) in fake_market.requested

    def test_refresh_without_market(self, ledger, storage):
        assert InvestmentManager(ledger, storage).refresh_share_prices() == 0

    def test_refresh_exchange_rate(self, manager, ledger):
        manager.refresh_exchange_rate()
        assert ledger.exchange_rate.rate == Decimal("84.25")
        assert ledger.exchange_rate.last_updated is not None

    def test_failed_rate_keeps_stored(self, ledger, storage, offline_market):
        manager = InvestmentManager(ledger, storage, market=offline_market)
        assert manager.refresh_exchange_rate().rate == Decimal("83")
        assert ledger.exchange_rate.last_updated is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
