"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an alternative backend because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Each ledger collection gets its own worksheet with one record per row
(id, JSON). Single-valued parts of the ledger (income settings, rates,
AI settings) live as key/JSON rows on a "Settings" worksheet.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: a save rewrites each worksheet in turn
- The security block (PIN hash) is never written to Sheets
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.ledger import Ledger
from src.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)

logger = structlog.get_logger("storage.sheets")

# Ledger list fields and their worksheet titles
COLLECTION_SHEETS = {
    "expenses": "Expenses",
    "recurring_expenses": "RecurringExpenses",
    "dismissed_recurring": "DismissedRecurring",
    "loans": "Loans",
    "money_lent": "MoneyLent",
    "salaries": "Salaries",
    "investments": "Portfolio",
    "monthly_investments": "MonthlyInvestments",
    "share_prices": "SharePrices",
    "credentials": "Credentials",
    "cards": "Cards",
    "chat_history": "ChatHistory",
}

# Single-valued ledger fields, stored on the Settings worksheet
SETTINGS_KEYS = ["income", "exchange_rate", "gold_rate_per_gram", "settings"]

SETTINGS_SHEET = "Settings"
RECORD_COLUMNS = ["id", "record_json"]
SETTINGS_COLUMNS = ["key", "value_json"]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with a header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_sheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Records are JSON-serialized, one per row, so schema changes never
    require re-laying out columns.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def load(self) -> Ledger:
        try:
            data: dict = {}
            for field, title in COLLECTION_SHEETS.items():
                sheet = self._client.get_sheet(title, RECORD_COLUMNS)
                records = []
                for row in sheet.get_all_values()[1:]:  # Skip header
                    if len(row) < 2 or not row[1]:
                        continue
                    records.append(json.loads(row[1]))
                data[field] = records

            settings_sheet = self._client.get_sheet(SETTINGS_SHEET, SETTINGS_COLUMNS)
            for row in settings_sheet.get_all_values()[1:]:
                if len(row) >= 2 and row[0] in SETTINGS_KEYS and row[1]:
                    data[row[0]] = json.loads(row[1])

            ledger = Ledger.model_validate(data)
        except StorageConnectionError:
            raise
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Ledger data in Google Sheets is malformed: {e}")
        except Exception as e:
            raise StorageError(f"Failed to load ledger from Google Sheets: {e}")

        logger.info("ledger_loaded", backend="sheets", **ledger.collection_sizes())
        return ledger

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def save(self, ledger: Ledger) -> None:
        """Rewrite every worksheet from the ledger."""
        dumped = ledger.model_dump(mode="json")
        try:
            for field, title in COLLECTION_SHEETS.items():
                rows = [RECORD_COLUMNS]
                for record in dumped[field]:
                    rows.append([str(record.get("id", "")), json.dumps(record)])
                self._rewrite(self._client.get_sheet(title, RECORD_COLUMNS), rows)

            rows = [SETTINGS_COLUMNS]
            for key in SETTINGS_KEYS:
                rows.append([key, json.dumps(dumped[key])])
            self._rewrite(self._client.get_sheet(SETTINGS_SHEET, SETTINGS_COLUMNS), rows)
        except StorageConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save ledger to Google Sheets: {e}")

    @staticmethod
    def _rewrite(sheet: gspread.Worksheet, rows: list[list]) -> None:
        sheet.clear()
        sheet.update(range_name="A1", values=rows, value_input_option="RAW")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> Optional[AuditEvent]:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        try:
            return AuditEvent(
                event_id=UUID(safe_get(0)),
                timestamp=datetime.fromisoformat(safe_get(1)),
                event_type=AuditEventType(safe_get(2)),
                severity=AuditSeverity(safe_get(3, "info")),
                entity_type=safe_get(4) or None,
                entity_id=UUID(safe_get(5)) if safe_get(5) else None,
                correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
                description=safe_get(7),
                details=json.loads(safe_get(8)) if safe_get(8) else {},
                error_message=safe_get(9) or None,
                is_user_action=safe_get(10) == "True",
            )
        except (ValueError, ValidationError):
            return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to append audit event: {e}")

    def _all_events(self) -> list[AuditEvent]:
        try:
            rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to read audit log: {e}")
        events = [self._row_to_event(row) for row in rows if row and row[0]]
        return [e for e in events if e is not None]

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        events = [
            e for e in self._all_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._all_events(), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
