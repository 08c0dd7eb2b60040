"""
Main Orchestrator for the Personal Finance Tracker

This module ties together all the components:
1. Storage (local JSON file, or Google Sheets) and the audit logger
2. The Ledger, loaded once and shared by every manager
3. The managers, the assistant and the backup/lock services
4. Startup automation (card EMIs, loan EMIs, then recurring expenses)

DESIGN DECISION: There is exactly one Ledger per app instance and it
is passed explicitly to everything that reads or changes it. Nothing
holds it in a module-level global, so tests build as many independent
component sets as they like.
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from src.agents import FinanceAssistant
from src.ai import AIRouter
from src.audit import AuditLogger, configure_log_level, create_correlation_id
from src.config import get_settings
from src.managers import (
    AISettingsManager,
    CardManager,
    CredentialManager,
    ExpenseManager,
    IncomeManager,
    InvestmentManager,
    LoanManager,
    MoneyLentManager,
    RecurringExpenseManager,
)
from src.models.ledger import Ledger
from src.queries import QueryExecutor
from src.security import BackupService, PinManager, SessionLock
from src.services.market import MarketDataService
from src.services.storage import (
    AuditStorageInterface,
    JsonFileLedgerStorage,
    JsonLinesAuditStorage,
    LedgerStorageInterface,
    StorageError,
)

logger = structlog.get_logger("orchestrator")


class StartupReport(BaseModel):
    correlation_id: UUID
    card_emis_added: int = 0
    emis_added: int = 0
    recurring_added: int = 0

    @property
    def total_added(self) -> int:
        return self.card_emis_added + self.emis_added + self.recurring_added


class AppComponents:
    """Everything the UI needs, wired to one Ledger."""

    def __init__(
        self,
        ledger: Ledger,
        storage: LedgerStorageInterface,
        audit: AuditLogger,
        market: Optional[MarketDataService] = None,
        router: Optional[AIRouter] = None,
    ):
        settings = get_settings()
        self.ledger = ledger
        self.storage = storage
        self.audit = audit

        self.expenses = ExpenseManager(ledger, storage, audit)
        self.recurring = RecurringExpenseManager(ledger, storage, audit)
        self.loans = LoanManager(ledger, storage, audit)
        self.money_lent = MoneyLentManager(ledger, storage, audit)
        self.income = IncomeManager(ledger, storage, audit, settings.app.professional_tax_monthly)
        self.investments = InvestmentManager(ledger, storage, audit, market)
        self.credentials = CredentialManager(ledger, storage, audit)
        self.ai_settings = AISettingsManager(ledger, storage, audit)
        self.cards = CardManager(ledger, storage, audit)

        self.router = router or AIRouter(ledger, audit=audit)
        self.executor = QueryExecutor(ledger, audit)
        self.assistant = FinanceAssistant(ledger, storage, self.router, self.executor)

        self.backup = BackupService(ledger, storage, audit)
        self.pin = PinManager(ledger, storage)
        self.session = SessionLock()

    def run_startup_automation(self, today: Optional[date] = None) -> StartupReport:
        """
        Add the card EMIs, loan EMIs and recurring expenses that have fallen due.

        Card EMIs run first, then loan EMIs, so a recurring template with
        the same title and amount sees the EMI as an identical expense
        and does not add a second one.
        """
        report = StartupReport(correlation_id=create_correlation_id())
        report.card_emis_added = self.cards.auto_add_emis(today, report.correlation_id)
        report.emis_added = self.loans.auto_add_emis(today, report.correlation_id)
        report.recurring_added = self.recurring.auto_add_to_expenses(today, report.correlation_id)
        logger.info(
            "startup_automation_complete",
            correlation_id=str(report.correlation_id),
            card_emis_added=report.card_emis_added,
            emis_added=report.emis_added,
            recurring_added=report.recurring_added,
        )
        return report


def _sheets_storage() -> tuple[LedgerStorageInterface, AuditStorageInterface]:
    from src.services.storage.google_sheets import (
        GoogleSheetsAuditStorage,
        GoogleSheetsClient,
        GoogleSheetsLedgerStorage,
    )

    client = GoogleSheetsClient()
    client.connect()
    return GoogleSheetsLedgerStorage(client), GoogleSheetsAuditStorage(client)


def create_app_components(
    storage: Optional[LedgerStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    market: Optional[MarketDataService] = None,
    router: Optional[AIRouter] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        storage: Ledger storage. Defaults to the configured backend;
            when Google Sheets is configured but unreachable the local
            JSON file is used instead.
        audit_storage: Where audit events go, defaulting to the
            backend's own audit sink
        market: Market data service; a live yfinance one by default
        router: AI router; one reading keys from the ledger by default

    Raises:
        StorageError: The stored ledger exists but cannot be read
    """
    settings = get_settings()
    configure_log_level("DEBUG" if settings.app.debug_mode else settings.app.log_level)

    if storage is None:
        if settings.storage.backend == "sheets":
            try:
                storage, sheets_audit = _sheets_storage()
                audit_storage = audit_storage or sheets_audit
            except (StorageError, ValidationError) as e:
                logger.warning("sheets_unavailable_using_local", error=str(e))
                storage = None
        if storage is None:
            storage = JsonFileLedgerStorage()
            audit_storage = audit_storage or JsonLinesAuditStorage()

    audit = AuditLogger(audit_storage)
    ledger = storage.load()
    logger.info("app_components_created", storage=type(storage).__name__, **ledger.collection_sizes())

    return AppComponents(
        ledger,
        storage,
        audit,
        market=market or MarketDataService(),
        router=router,
    )
