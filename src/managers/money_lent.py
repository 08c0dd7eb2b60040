"""Money lent to people, and the repayments received against it."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from src.managers.base import BaseManager, is_blank
from src.managers.errors import InvalidInputError, RecordNotFoundError
from src.models.audit import AuditEventBuilder
from src.models.loan import LentReturn, LentStatus, MoneyLentRecord, MoneyLentTotals
from src.utils.formatters import format_indian_number
from src.utils.money import ZERO, Number, money, to_decimal


class MoneyLentManager(BaseManager):
    entity_name = "record"

    def add(
        self,
        person_name: str,
        amount: Optional[Number],
        date_given: Optional[date],
        purpose: str,
        expected_return_date: Optional[date] = None,
        notes: str = "",
    ) -> MoneyLentRecord:
        self._require(person_name=person_name, amount=amount, date_given=date_given, purpose=purpose)
        record = self._build(
            MoneyLentRecord,
            person_name=person_name,
            amount=amount,
            date_given=date_given,
            purpose=purpose,
            expected_return_date=expected_return_date or None,
            notes=notes or "",
        )
        self._ledger.money_lent.append(record)
        self._persist()
        return record

    def update(
        self,
        record_id: Any,
        person_name: str,
        amount: Optional[Number],
        date_given: Optional[date],
        purpose: str,
        expected_return_date: Optional[date] = None,
        notes: str = "",
    ) -> MoneyLentRecord:
        existing = self.get_by_id(record_id)
        self._require(person_name=person_name, amount=amount, date_given=date_given, purpose=purpose)
        updated = self._rebuild(existing, {
            "person_name": person_name,
            "amount": amount,
            "date_given": date_given,
            "purpose": purpose,
            "expected_return_date": expected_return_date or None,
            "notes": notes or "",
            "updated_at": datetime.utcnow(),
        })
        self._replace(self._ledger.money_lent, existing, updated)
        self._persist()
        return updated

    def delete(self, record_id: Any) -> MoneyLentRecord:
        record = self.get_by_id(record_id)
        self._ledger.money_lent.remove(record)
        self._persist()
        return record

    def get_by_id(self, record_id: Any) -> MoneyLentRecord:
        return self._find(self._ledger.money_lent, record_id)

    def get_all(self) -> list[MoneyLentRecord]:
        return list(self._ledger.money_lent)

    # =========================================================================
    # RETURNS
    # =========================================================================

    def record_return(
        self,
        record_id: Any,
        return_date: Optional[date],
        amount: Optional[Number],
    ) -> MoneyLentRecord:
        """
        Raises:
            InvalidInputError: Missing date, non-positive amount, or more
                than the outstanding balance
        """
        if is_blank(return_date) or is_blank(amount) or self._number("amount", amount) <= 0:
            raise InvalidInputError("Valid return date and amount are required")

        record = self.get_by_id(record_id)
        outstanding = self.outstanding(record)
        if to_decimal(amount) > outstanding:
            raise InvalidInputError(
                f"Amount cannot exceed outstanding balance of ₹{format_indian_number(outstanding)}",
                {"amount": "Exceeds outstanding balance"},
            )

        record.returns.append(self._build(LentReturn, return_date=return_date, amount_returned=amount))
        record.updated_at = datetime.utcnow()
        self._persist()
        self._record(AuditEventBuilder.lent_return_recorded(
            record.id, record.person_name, str(money(amount)), str(self.outstanding(record))
        ))
        return record

    def delete_return(self, record_id: Any, index: int) -> MoneyLentRecord:
        record = self.get_by_id(record_id)
        if not 0 <= index < len(record.returns):
            raise RecordNotFoundError("return payment", index)
        del record.returns[index]
        self._persist()
        return record

    # =========================================================================
    # TOTALS
    # =========================================================================

    @staticmethod
    def total_returned(record: MoneyLentRecord) -> Decimal:
        return money(sum((r.amount_returned for r in record.returns), ZERO))

    def outstanding(self, record: MoneyLentRecord) -> Decimal:
        return money(record.amount - self.total_returned(record))

    def status(self, record: MoneyLentRecord) -> LentStatus:
        returned = self.total_returned(record)
        if returned == 0:
            return LentStatus.PENDING
        if returned < record.amount:
            return LentStatus.PARTIALLY_RETURNED
        return LentStatus.FULLY_RETURNED

    def totals(self) -> MoneyLentTotals:
        lent = sum((r.amount for r in self._ledger.money_lent), ZERO)
        returned = sum((self.total_returned(r) for r in self._ledger.money_lent), ZERO)
        return MoneyLentTotals(
            total_lent=money(lent),
            total_returned=money(returned),
            total_outstanding=money(lent - returned),
            record_count=len(self._ledger.money_lent),
        )

    def split_active_closed(self) -> tuple[list[MoneyLentRecord], list[MoneyLentRecord]]:
        """(records with an outstanding balance, fully returned records)."""
        active = [r for r in self._ledger.money_lent if self.status(r) != LentStatus.FULLY_RETURNED]
        closed = [r for r in self._ledger.money_lent if self.status(r) == LentStatus.FULLY_RETURNED]
        return active, closed
