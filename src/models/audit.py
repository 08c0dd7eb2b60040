"""
Audit Models for Personal Finance Tracker

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of what automation added on the user's behalf
2. Debugging information when things go wrong
3. A history of deletions, which the ledger itself forgets

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Secrets (passwords, API keys, PIN) never appear in event details.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_DELETED = "expense_deleted"
    RECURRING_AUTO_ADDED = "recurring_auto_added"

    # Loans
    LOAN_ADDED = "loan_added"
    LOAN_DELETED = "loan_deleted"
    EMI_AUTO_ADDED = "emi_auto_added"
    LENT_RETURN_RECORDED = "lent_return_recorded"

    # Income
    INCOME_SETTINGS_SAVED = "income_settings_saved"
    SALARY_RECORDED = "salary_recorded"

    # Investments
    INVESTMENT_ADDED = "investment_added"
    RATE_UPDATED = "rate_updated"

    # Cards
    CARD_CHANGED = "card_changed"
    CARD_EMI_AUTO_ADDED = "card_emi_auto_added"

    # Credentials
    CREDENTIAL_CHANGED = "credential_changed"

    # Backup and security
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"

    # Assistant
    AI_SETTINGS_SAVED = "ai_settings_saved"
    QUERY_EXECUTED = "query_executed"
    PROVIDER_FALLBACK = "provider_fallback"

    # System events
    SAVE_FAILED = "save_failed"
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'loan', 'query')"
    )
    entity_id: Optional[UUID] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Groups related events (e.g., one startup automation run)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action rather than automation?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for the AuditLog worksheet.

        Columns: event_id, timestamp, event_type, severity, entity_type,
        entity_id, correlation_id, description, details_json,
        error_message, is_user_action
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, title, amount)
        event = AuditEventBuilder.emi_auto_added(expense_id, title, amount, correlation_id)
    """

    @staticmethod
    def expense_added(
        expense_id: UUID,
        title: str,
        amount: str,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense added: {title} - ₹{amount}",
            details={"title": title, "amount": amount, "category": category},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        title: str,
        dismissed: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense deleted: {title}",
            details={"title": title, "recorded_dismissal": dismissed},
            is_user_action=True,
        )

    @staticmethod
    def emi_auto_added(
        expense_id: UUID,
        title: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EMI_AUTO_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Loan EMI auto-added: {title} - ₹{amount}",
            details={"title": title, "amount": amount},
        )

    @staticmethod
    def recurring_auto_added(
        expense_id: UUID,
        recurring_id: UUID,
        name: str,
        month_key: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_AUTO_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Recurring expense auto-added: {name} for {month_key}",
            details={"recurring_id": str(recurring_id), "month": month_key},
        )

    @staticmethod
    def loan_added(loan_id: UUID, bank_name: str, amount: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_ADDED,
            entity_type="loan",
            entity_id=loan_id,
            description=f"Loan added: {bank_name} - ₹{amount}",
            details={"bank_name": bank_name, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def loan_deleted(
        loan_id: UUID,
        bank_name: str,
        pending_emis: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_DELETED,
            severity=AuditSeverity.WARNING if pending_emis else AuditSeverity.INFO,
            entity_type="loan",
            entity_id=loan_id,
            description=f"Loan deleted: {bank_name}",
            details={"bank_name": bank_name, "pending_emis": pending_emis},
            is_user_action=True,
        )

    @staticmethod
    def lent_return_recorded(
        record_id: UUID,
        person_name: str,
        amount: str,
        outstanding: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LENT_RETURN_RECORDED,
            entity_type="money_lent",
            entity_id=record_id,
            description=f"Return of ₹{amount} recorded from {person_name}",
            details={"amount": amount, "outstanding": outstanding},
            is_user_action=True,
        )

    @staticmethod
    def salary_recorded(salary_id: UUID, month: int, year: int, amount: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALARY_RECORDED,
            entity_type="salary",
            entity_id=salary_id,
            description=f"Salary recorded for {month:02d}/{year}",
            details={"month": month, "year": year, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def income_settings_saved(changed_fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_SETTINGS_SAVED,
            entity_type="income",
            description="Income settings saved",
            details={"changed_fields": sorted(changed_fields)},
            is_user_action=True,
        )

    @staticmethod
    def investment_added(
        investment_id: UUID,
        name: str,
        investment_type: str,
        merged: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVESTMENT_ADDED,
            entity_type="investment",
            entity_id=investment_id,
            description=f"Investment {'merged' if merged else 'added'}: {name} ({investment_type})",
            details={"name": name, "type": investment_type, "merged": merged},
            is_user_action=True,
        )

    @staticmethod
    def rate_updated(kind: str, rate: str, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_UPDATED,
            entity_type="rate",
            description=f"{kind} updated to {rate} ({source})",
            details={"kind": kind, "rate": rate, "source": source},
        )

    @staticmethod
    def card_changed(card_id: UUID, name: str, action: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_CHANGED,
            entity_type="card",
            entity_id=card_id,
            description=f"Card {action}: {name}",
            details={"name": name, "action": action},
            is_user_action=True,
        )

    @staticmethod
    def card_emi_auto_added(
        expense_id: UUID,
        card_name: str,
        title: str,
        amount: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_EMI_AUTO_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Card EMI auto-added: {title} - ₹{amount}",
            details={"card": card_name, "title": title, "amount": amount},
        )

    @staticmethod
    def credential_changed(credential_id: UUID, service: str, action: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREDENTIAL_CHANGED,
            entity_type="credential",
            entity_id=credential_id,
            description=f"Credential {action}: {service}",
            details={"service": service, "action": action},
            is_user_action=True,
        )

    @staticmethod
    def backup(exported: bool, record_counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED if exported else AuditEventType.BACKUP_IMPORTED,
            entity_type="backup",
            description=f"Encrypted backup {'exported' if exported else 'imported'}",
            details=record_counts,
            is_user_action=True,
        )

    @staticmethod
    def query_executed(
        query_id: UUID,
        target: str,
        aggregation: str,
        result_count: int,
        provider: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            entity_type="query",
            entity_id=query_id,
            description=f"Query on {target} ({aggregation}) returned {result_count} results",
            details={
                "target": target,
                "aggregation": aggregation,
                "result_count": result_count,
                "provider": provider,
            },
        )

    @staticmethod
    def provider_fallback(failed_provider: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROVIDER_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="ai_provider",
            description=f"AI provider {failed_provider} rate limited, falling back",
            details={"provider": failed_provider},
            error_message=error[:500],
        )

    @staticmethod
    def save_failed(error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Failed to persist ledger",
            error_message=error[:500],
        )

    @staticmethod
    def ai_settings_saved(changed: str, providers_with_keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_SETTINGS_SAVED,
            entity_type="ai_settings",
            description=f"AI settings saved: {changed}",
            details={"changed": changed, "providers_with_keys": providers_with_keys},
            is_user_action=True,
        )
