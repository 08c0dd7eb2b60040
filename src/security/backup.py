"""
Encrypted backup export and import

DESIGN DECISION: The security block (PIN hash, biometric flag, setup
flag) never leaves the device. Export drops it; import restores every
other collection in place on the live Ledger, so managers holding that
Ledger see the restored data, and keeps the current security block.
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from src.audit import AuditLogger
from src.models.audit import AuditEventBuilder
from src.models.ledger import Ledger
from src.security.crypto import BackupDecryptionError, decrypt_text, encrypt_text
from src.services.storage import LedgerStorageInterface

logger = structlog.get_logger("security.backup")

SECURITY_FIELD = "security"


class BackupService:
    def __init__(
        self,
        ledger: Ledger,
        storage: LedgerStorageInterface,
        audit: Optional[AuditLogger] = None,
        iterations: Optional[int] = None,
    ):
        self._ledger = ledger
        self._storage = storage
        self._audit = audit
        self._iterations = iterations

    def export_backup(self, password: str) -> str:
        """Encrypted backup text for the whole ledger minus security."""
        data = self._ledger.model_dump_json(exclude={SECURITY_FIELD})
        payload = encrypt_text(data, password, self._iterations)
        logger.info("backup_exported", **self._ledger.collection_sizes())
        if self._audit:
            self._audit.log(AuditEventBuilder.backup(True, self._ledger.collection_sizes()))
        return payload

    def import_backup(self, payload: str, password: str) -> Ledger:
        """
        Replace the ledger's data with the backup's.

        Raises:
            BackupDecryptionError: Wrong password, corrupted file, or the
                decrypted content is not a ledger
        """
        text = decrypt_text(payload, password, self._iterations)
        try:
            data = json.loads(text)
            data.pop(SECURITY_FIELD, None)
            imported = Ledger.model_validate(data)
        except (json.JSONDecodeError, TypeError, AttributeError, ValidationError) as e:
            logger.warning("backup_invalid", error=str(e))
            raise BackupDecryptionError("Backup content is not a valid ledger")

        for name in Ledger.model_fields:
            if name != SECURITY_FIELD:
                setattr(self._ledger, name, getattr(imported, name))
        self._storage.save(self._ledger)

        logger.info("backup_imported", **self._ledger.collection_sizes())
        if self._audit:
            self._audit.log(AuditEventBuilder.backup(False, self._ledger.collection_sizes()))
        return self._ledger
