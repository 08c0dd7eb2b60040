"""
Tests for cards: validation, masking, limits, card EMIs and their
monthly auto-add.
"""

import asyncio

import pytest
from datetime import date
from decimal import Decimal

from src.ai import AIRouter
from src.ai.prompts import CARD_BENEFITS_INSTRUCTION
from src.managers import (
    AISettingsManager,
    CardManager,
    ExpenseManager,
    InvalidInputError,
    LedgerError,
    RecordNotFoundError,
)
from src.models.audit import AuditEventType
from src.models.card import Card, CardType
from src.models.expense import EMI_CATEGORY

VISA = "4111 1111 1111 1111"


@pytest.fixture
def manager(ledger, storage, audit):
    return CardManager(ledger, storage, audit)


@pytest.fixture
def card(manager):
    return manager.add("HDFC Regalia", VISA, "08/27", "123", credit_limit=100000)


class TestCards:
    """Adding, masking and validating cards."""

    def test_add_card(self, manager, card, storage, audit_storage):
        """Spaces are stripped from the number; the card is saved and audited."""
        assert card.card_number.get_secret_value() == "4111111111111111"
        assert card.network == "Visa"
        assert manager.masked_number(card) == "****1111"
        assert storage.load().cards[0].name == "HDFC Regalia"
        assert audit_storage.events[-1].event_type == AuditEventType.CARD_CHANGED

    def test_missing_fields(self, manager):
        with pytest.raises(InvalidInputError) as exc:
            manager.add("", "", "", None)
        assert set(exc.value.field_errors) == {"name", "card_number", "expiry", "cvv"}

    @pytest.mark.parametrize("number, expiry, cvv, field", [
        ("4111 1111", "08/27", "123", "card_number"),
        (VISA, "8-27", "123", "expiry"),
        (VISA, "08/27", "12", "cvv"),
    ])
    def test_malformed_details(self, manager, number, expiry, cvv, field):
        """Short numbers, bad expiry formats and short CVVs are rejected."""
        with pytest.raises(InvalidInputError) as exc:
            manager.add("Card", number, expiry, cvv)
        assert field in exc.value.field_errors

    def test_debit_card_has_no_limit(self, manager):
        debit = manager.add("SBI Debit", "5500000000000004", "01/2030", "999",
                            credit_limit=50000, card_type="debit")
        assert debit.card_type == CardType.DEBIT
        assert debit.credit_limit is None
        assert debit.network == "Mastercard"
        assert [c.name for c in manager.get_all("debit")] == ["SBI Debit"]

    def test_secrets_hidden_until_stored(self, card):
        """repr never shows the number or CVV; the JSON form keeps them."""
        assert "4111111111111111" not in repr(card)
        assert "123" not in str(card.cvv)

        restored = Card.model_validate_json(card.model_dump_json())
        assert restored.card_number.get_secret_value() == "4111111111111111"
        assert restored.cvv.get_secret_value() == "123"

    def test_rename_drops_benefits(self, manager, card):
        card.benefits = "5X reward points"
        same = manager.update(card.id, "HDFC Regalia", VISA, "09/28", "123", credit_limit=100000)
        assert same.benefits == "5X reward points"

        renamed = manager.update(card.id, "HDFC Infinia", VISA, "09/28", "123", credit_limit=100000)
        assert renamed.benefits is None
        assert renamed.expiry == "09/28"

    def test_delete_card(self, manager, card, ledger):
        manager.delete(card.id)
        assert ledger.cards == []
        with pytest.raises(RecordNotFoundError):
            manager.get_by_id(card.id)


class TestCardEmis:
    """EMIs on credit cards and the limit they use."""

    def test_used_and_available_limit(self, manager, card):
        """Pending installments count against the limit."""
        manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500, paid_count=2)
        manager.add_emi(card.id, "Laptop", date(2024, 2, 1), 12, None)

        assert manager.used_limit(card) == Decimal("10000")
        assert manager.available_limit(card) == Decimal("90000")

    def test_emi_summary(self, manager, card):
        assert manager.emi_summary(card) is None

        manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500, paid_count=2)
        summary = manager.emi_summary(card)
        assert summary.total_emi_amount == Decimal("15000")
        assert summary.total_pending == Decimal("10000")
        assert summary.total_paid == Decimal("5000")
        assert summary.progress == 33
        assert summary.next_emi_date == date(2024, 3, 10)
        assert summary.active_count == 1

    def test_paid_cannot_exceed_total(self, manager, card):
        with pytest.raises(InvalidInputError) as exc:
            manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500, paid_count=7)
        assert "paid_count" in exc.value.field_errors

    def test_non_numeric_emi_amount(self, manager, card):
        with pytest.raises(InvalidInputError):
            manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, "abc")

    def test_debit_card_rejects_emi(self, manager):
        debit = manager.add("SBI Debit", "5500000000000004", "01/30", "999", card_type="debit")
        with pytest.raises(LedgerError):
            manager.add_emi(debit.id, "Phone", date(2024, 1, 10), 6, 2500)

    def test_update_to_fully_paid_completes(self, manager, card):
        emi = manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500)
        updated = manager.update_emi(card.id, emi.id, "Phone", date(2024, 1, 10), 6, 2500, paid_count=6)
        assert updated.completed
        assert manager.emi_summary(card) is None

    def test_mark_complete_and_delete(self, manager, card):
        emi = manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500)
        done = manager.mark_emi_complete(card.id, emi.id)
        assert done.completed
        assert done.paid_count == 6
        assert manager.used_limit(card) == Decimal("0")

        manager.delete_emi(card.id, emi.id)
        assert card.emis == []
        with pytest.raises(RecordNotFoundError):
            manager.get_emi(card, emi.id)


class TestEmiAutoAdd:
    """Monthly installments added to expenses on startup."""

    def test_adds_every_month_due(self, manager, card, ledger, audit_storage, today):
        """Installments from the first EMI up to this month are added once each."""
        emi = manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500)
        assert manager.auto_add_emis(today) == 3

        assert [e.expense_date for e in ledger.expenses] == [
            date(2024, 1, 10), date(2024, 2, 10), date(2024, 3, 10),
        ]
        first = ledger.expenses[0]
        assert first.title == "Card EMI: Phone"
        assert first.category == EMI_CATEGORY
        assert first.amount == Decimal("2500")
        assert first.description == "Auto-added EMI payment 1/6 for HDFC Regalia"
        assert first.suggested_card == "HDFC Regalia"
        assert emi.added_to_expenses == ["2024-01", "2024-02", "2024-03"]
        assert audit_storage.events[-1].event_type == AuditEventType.CARD_EMI_AUTO_ADDED

    def test_waits_for_emi_day(self, manager, card, ledger, today):
        manager.add_emi(card.id, "Phone", date(2024, 1, 20), 6, 2500)
        assert manager.auto_add_emis(today) == 2
        assert ledger.expenses[-1].expense_date == date(2024, 2, 20)

    def test_idempotent(self, manager, card, today):
        manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500)
        manager.auto_add_emis(today)
        assert manager.auto_add_emis(today) == 0

    def test_stops_after_last_installment(self, manager, card, ledger, today):
        manager.add_emi(card.id, "Watch", date(2023, 11, 1), 3, 1000)
        assert manager.auto_add_emis(today) == 3
        assert ledger.expenses[-1].expense_date == date(2024, 1, 1)

    def test_deleted_installment_not_re_added(self, manager, card, ledger, storage, today):
        """A card EMI the user deleted stays deleted, even if its month is unmarked."""
        emi = manager.add_emi(card.id, "Phone", date(2024, 3, 10), 6, 2500)
        manager.auto_add_emis(today)
        ExpenseManager(ledger, storage).delete(ledger.expenses[0].id)
        emi.added_to_expenses.clear()

        assert manager.auto_add_emis(today) == 0
        assert ledger.expenses == []
        assert emi.added_to_expenses == []

    def test_existing_expense_marks_month(self, manager, card, ledger, storage, today):
        """An EMI already entered under the older title is not added again."""
        ExpenseManager(ledger, storage).add("EMI: Phone", 2500, EMI_CATEGORY, date(2024, 3, 10))
        emi = manager.add_emi(card.id, "Phone", date(2024, 3, 10), 6, 2500)

        assert manager.auto_add_emis(today) == 0
        assert len(ledger.expenses) == 1
        assert emi.added_to_expenses == ["2024-03"]

    def test_skips_completed_and_amountless(self, manager, card, ledger, today):
        done = manager.add_emi(card.id, "Phone", date(2024, 1, 10), 6, 2500)
        manager.mark_emi_complete(card.id, done.id)
        manager.add_emi(card.id, "Laptop", date(2024, 1, 10), 6, None)

        assert manager.auto_add_emis(today) == 0
        assert ledger.expenses == []


class TestBenefits:
    """Benefits text fetched from the configured AI provider."""

    class BenefitsProvider:
        name = "gemini"

        def __init__(self):
            self.calls = []

        async def complete(self, prompt, system_instruction, history=None):
            self.calls.append((prompt, system_instruction))
            return "- 4 reward points per 150 spent"

    def test_fetch_benefits(self, manager, card, ledger, storage):
        AISettingsManager(ledger, storage).set_api_key("gemini", "g-key")
        provider = self.BenefitsProvider()
        router = AIRouter(ledger, {"gemini": lambda key: provider})

        updated = asyncio.run(manager.fetch_benefits(card.id, router))

        assert updated.benefits == "- 4 reward points per 150 spent"
        assert updated.benefits_fetched_at is not None
        prompt, instruction = provider.calls[0]
        assert "HDFC Regalia" in prompt
        assert instruction == CARD_BENEFITS_INSTRUCTION
        assert storage.load().cards[0].benefits == updated.benefits

    def test_debit_cards_have_no_benefits(self, manager, ledger):
        debit = manager.add("SBI Debit", "5500000000000004", "01/30", "999", card_type="debit")
        with pytest.raises(LedgerError):
            asyncio.run(manager.fetch_benefits(debit.id, AIRouter(ledger, factories={})))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
