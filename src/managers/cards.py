"""
Card manager

Credit and debit cards with the EMIs running on credit cards. Each
active EMI is added to expenses once per month (titled
"Card EMI: <reason>", category emi) when its day arrives, from its first
installment up to the last; the month key is recorded on the EMI so a
month is only ever added once.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog

from src.ai.prompts import CARD_BENEFITS_INSTRUCTION
from src.ai.router import AIRouter
from src.managers.base import BaseManager
from src.managers.errors import InvalidInputError, LedgerError, RecordNotFoundError
from src.managers.schedule import amounts_match, is_dismissed
from src.models.audit import AuditEventBuilder
from src.models.card import Card, CardEMI, CardEMISummary, CardType
from src.models.expense import EMI_CATEGORY, Expense
from src.utils.dates import add_months, month_key
from src.utils.formatters import mask_card_number
from src.utils.money import ZERO, Number, whole

logger = structlog.get_logger("managers.cards")


def _emi_months_due(emi: CardEMI, today: date) -> int:
    """Installments whose date has come, capped at the EMI's total."""
    first = emi.first_emi_date
    elapsed = (today.year - first.year) * 12 + (today.month - first.month)
    if today.day < first.day:
        elapsed -= 1
    return max(0, min(elapsed + 1, emi.total_count))


class CardManager(BaseManager):
    entity_name = "card"

    # =========================================================================
    # CARDS
    # =========================================================================

    def add(
        self,
        name: str,
        card_number: Any,
        expiry: str,
        cvv: Any,
        additional_data: str = "",
        credit_limit: Optional[Number] = None,
        card_type: Any = CardType.CREDIT,
    ) -> Card:
        """
        Raises:
            InvalidInputError: A required field is blank, or the number,
                expiry or CVV is malformed
        """
        self._require(name=name, card_number=card_number, expiry=expiry, cvv=cvv)
        card = self._build(
            Card,
            name=name,
            card_number=str(card_number),
            expiry=expiry,
            cvv=str(cvv),
            card_type=card_type or CardType.CREDIT,
            credit_limit=credit_limit or None,
            additional_data=additional_data or "",
        )
        self._ledger.cards.append(card)
        self._persist()
        logger.info("card_added", **card.to_log_dict())
        self._record(AuditEventBuilder.card_changed(card.id, card.name, "added"))
        return card

    def update(
        self,
        card_id: Any,
        name: str,
        card_number: Any,
        expiry: str,
        cvv: Any,
        additional_data: str = "",
        credit_limit: Optional[Number] = None,
        card_type: Any = None,
    ) -> Card:
        """Replace the card's details. Benefits are dropped when the name changes."""
        existing = self.get_by_id(card_id)
        self._require(name=name, card_number=card_number, expiry=expiry, cvv=cvv)
        changes: dict[str, Any] = {
            "name": name,
            "card_number": str(card_number),
            "expiry": expiry,
            "cvv": str(cvv),
            "card_type": card_type or existing.card_type,
            "credit_limit": credit_limit or None,
            "additional_data": additional_data or "",
            "updated_at": datetime.utcnow(),
        }
        if name.strip() != existing.name:
            changes.update(benefits=None, benefits_fetched_at=None)
        updated = self._rebuild(existing, changes)
        self._replace(self._ledger.cards, existing, updated)
        self._persist()
        self._record(AuditEventBuilder.card_changed(updated.id, updated.name, "updated"))
        return updated

    def delete(self, card_id: Any) -> Card:
        """Remove the card and its EMIs. Expenses already added stay."""
        card = self.get_by_id(card_id)
        self._ledger.cards.remove(card)
        self._persist()
        self._record(AuditEventBuilder.card_changed(card.id, card.name, "deleted"))
        return card

    def get_by_id(self, card_id: Any) -> Card:
        return self._find(self._ledger.cards, card_id)

    def get_all(self, card_type: Any = None) -> list[Card]:
        cards = self._ledger.cards
        if card_type:
            cards = [c for c in cards if c.card_type == CardType(card_type)]
        return list(cards)

    def masked_number(self, card: Card) -> str:
        return mask_card_number(card.card_number.get_secret_value())

    # =========================================================================
    # LIMITS AND SUMMARIES
    # =========================================================================

    def used_limit(self, card: Card) -> Decimal:
        """What is still owed on the card's running EMIs."""
        total = sum(
            (emi.emi_amount * emi.remaining_count for emi in card.active_emis if emi.emi_amount),
            ZERO,
        )
        return whole(total)

    def available_limit(self, card: Card) -> Optional[Decimal]:
        if card.credit_limit is None:
            return None
        return whole(card.credit_limit - self.used_limit(card))

    def emi_summary(self, card: Card) -> Optional[CardEMISummary]:
        """Totals over running EMIs; None when the card has none."""
        active = card.active_emis
        if not active:
            return None

        total = pending = paid = ZERO
        next_date: Optional[date] = None
        for emi in active:
            if not emi.emi_amount:
                continue
            total += emi.emi_amount * emi.total_count
            pending += emi.emi_amount * emi.remaining_count
            paid += emi.emi_amount * emi.paid_count
            upcoming = add_months(emi.first_emi_date, emi.paid_count)
            if next_date is None or upcoming < next_date:
                next_date = upcoming

        progress = int(whole(paid / total * 100)) if total > 0 else 0
        return CardEMISummary(
            total_emi_amount=whole(total),
            total_pending=whole(pending),
            total_paid=whole(paid),
            progress=progress,
            next_emi_date=next_date,
            active_count=len(active),
        )

    # =========================================================================
    # EMIS
    # =========================================================================

    def add_emi(
        self,
        card_id: Any,
        reason: str,
        first_emi_date: Optional[date],
        total_count: Optional[int],
        emi_amount: Optional[Number] = None,
        paid_count: Optional[int] = 0,
    ) -> CardEMI:
        """
        Raises:
            InvalidInputError: Missing fields, or more paid EMIs than total
            LedgerError: The card is a debit card
        """
        card = self.get_by_id(card_id)
        if card.card_type != CardType.CREDIT:
            raise LedgerError("EMIs can only be added to credit cards")
        emi = self._new_emi(reason, first_emi_date, total_count, emi_amount, paid_count)
        card.emis.append(emi)
        card.updated_at = datetime.utcnow()
        self._persist()
        return emi

    def update_emi(
        self,
        card_id: Any,
        emi_id: Any,
        reason: str,
        first_emi_date: Optional[date],
        total_count: Optional[int],
        emi_amount: Optional[Number] = None,
        paid_count: Optional[int] = 0,
    ) -> CardEMI:
        """Edit an EMI; it is completed once every installment is paid."""
        card = self.get_by_id(card_id)
        existing = self.get_emi(card, emi_id)
        fresh = self._new_emi(reason, first_emi_date, total_count, emi_amount, paid_count)
        updated = self._rebuild(existing, {
            "reason": fresh.reason,
            "first_emi_date": fresh.first_emi_date,
            "emi_amount": fresh.emi_amount,
            "paid_count": fresh.paid_count,
            "total_count": fresh.total_count,
            "completed": fresh.paid_count >= fresh.total_count,
        })
        self._replace(card.emis, existing, updated)
        self._persist()
        return updated

    def mark_emi_complete(self, card_id: Any, emi_id: Any) -> CardEMI:
        card = self.get_by_id(card_id)
        emi = self.get_emi(card, emi_id)
        emi.completed = True
        emi.paid_count = emi.total_count
        self._persist()
        return emi

    def delete_emi(self, card_id: Any, emi_id: Any) -> CardEMI:
        card = self.get_by_id(card_id)
        emi = self.get_emi(card, emi_id)
        card.emis.remove(emi)
        self._persist()
        return emi

    def get_emi(self, card: Card, emi_id: Any) -> CardEMI:
        try:
            return self._find(card.emis, emi_id)
        except RecordNotFoundError:
            raise RecordNotFoundError("card EMI", emi_id) from None

    def _new_emi(
        self,
        reason: str,
        first_emi_date: Optional[date],
        total_count: Optional[int],
        emi_amount: Optional[Number],
        paid_count: Optional[int],
    ) -> CardEMI:
        self._require(reason=reason, first_emi_date=first_emi_date, total_count=total_count)
        total = self._integer("total_count", total_count)
        paid = self._integer("paid_count", paid_count or 0)
        if paid > total:
            raise InvalidInputError(
                "Paid EMIs cannot exceed total EMIs",
                {"paid_count": "Cannot exceed total EMIs"},
            )
        amount = None
        if emi_amount not in (None, ""):
            amount = self._number("emi_amount", emi_amount)
        return self._build(
            CardEMI,
            reason=reason,
            first_emi_date=first_emi_date,
            emi_amount=amount,
            paid_count=paid,
            total_count=total,
        )

    # =========================================================================
    # AUTOMATION
    # =========================================================================

    def auto_add_emis(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Add every card EMI installment that has fallen due and is not yet
        in expenses.

        Each installment is dated on the EMI's day in its month. A month
        that already has a matching expense (current or older title
        formats) is marked without adding; dismissed installments are
        skipped without marking.

        Returns:
            Number of expenses added
        """
        today = today or date.today()
        added: list[tuple[Expense, Card]] = []
        changed = False

        for card in self._ledger.cards:
            for emi in card.emis:
                if emi.completed or not emi.emi_amount:
                    continue
                for i in range(_emi_months_due(emi, today)):
                    due = add_months(emi.first_emi_date, i)
                    key = month_key(due.year, due.month)
                    if key in emi.added_to_expenses:
                        continue
                    title = emi.expense_title
                    if is_dismissed(self._ledger, title, due, emi.emi_amount):
                        logger.info("card_emi_dismissed_skipped", title=title, due=due.isoformat())
                        continue

                    if not self._has_emi_expense(card, emi, due):
                        expense = Expense(
                            title=title,
                            amount=emi.emi_amount,
                            category=EMI_CATEGORY,
                            expense_date=due,
                            description=f"Auto-added EMI payment {i + 1}/{emi.total_count} for {card.name}",
                            suggested_card=card.name,
                        )
                        self._ledger.expenses.append(expense)
                        added.append((expense, card))
                    emi.added_to_expenses.append(key)
                    changed = True

        if changed:
            self._persist()
        for expense, card in added:
            self._record(AuditEventBuilder.card_emi_auto_added(
                expense.id, card.name, expense.title, str(expense.amount), correlation_id
            ))
        if added:
            logger.info("card_emis_auto_added", count=len(added))
        return len(added)

    def _has_emi_expense(self, card: Card, emi: CardEMI, due: date) -> bool:
        titles = {
            emi.expense_title,
            f"EMI: {emi.reason}",
            f"EMI: {card.name} - {emi.reason}",
        }
        return any(
            e.title in titles and e.expense_date == due and amounts_match(e.amount, emi.emi_amount)
            for e in self._ledger.expenses
        )

    # =========================================================================
    # BENEFITS
    # =========================================================================

    async def fetch_benefits(self, card_id: Any, router: AIRouter) -> Card:
        """
        Ask the configured AI provider for the card's benefits and store them.

        Raises:
            LedgerError: The card is a debit card
            AIProviderError: Propagated from the router
        """
        card = self.get_by_id(card_id)
        if card.card_type != CardType.CREDIT:
            raise LedgerError("Benefits are only fetched for credit cards")
        reply = await router.call(
            f'What are the benefits of the "{card.name}" credit card?',
            CARD_BENEFITS_INSTRUCTION,
        )
        card.benefits = reply.text
        card.benefits_fetched_at = datetime.utcnow()
        self._persist()
        logger.info("card_benefits_fetched", card_id=str(card.id), provider=reply.provider)
        return card
