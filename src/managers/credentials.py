"""Stored service logins. Passwords stay SecretStr end to end."""

from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import SecretStr

from src.managers.base import BaseManager
from src.models.audit import AuditEventBuilder
from src.models.credential import Credential

logger = structlog.get_logger("managers.credentials")


def _secret(password: Any) -> Optional[SecretStr]:
    if password is None or isinstance(password, SecretStr):
        return password
    return SecretStr(str(password))


class CredentialManager(BaseManager):
    entity_name = "credential"

    def add(
        self,
        service: str,
        username: str,
        password: Any,
        description: str = "",
        additional_details: str = "",
        tag: str = "",
    ) -> Credential:
        password = _secret(password)
        self._require(
            service=service,
            username=username,
            password=password.get_secret_value() if password else None,
        )
        credential = self._build(
            Credential,
            service=service,
            username=username,
            password=password,
            description=description or "",
            additional_details=additional_details or "",
            tag=tag or "",
        )
        self._ledger.credentials.append(credential)
        self._persist()
        logger.info("credential_added", **credential.to_log_dict())
        self._record(AuditEventBuilder.credential_changed(credential.id, credential.service, "added"))
        return credential

    def update(
        self,
        credential_id: Any,
        service: str,
        username: str,
        password: Any,
        description: str = "",
        additional_details: str = "",
        tag: str = "",
    ) -> Credential:
        existing = self.get_by_id(credential_id)
        password = _secret(password)
        self._require(
            service=service,
            username=username,
            password=password.get_secret_value() if password else None,
        )
        updated = self._rebuild(existing, {
            "service": service,
            "username": username,
            "password": password,
            "description": description or "",
            "additional_details": additional_details or "",
            "tag": tag or "",
            "updated_at": datetime.utcnow(),
        })
        self._replace(self._ledger.credentials, existing, updated)
        self._persist()
        self._record(AuditEventBuilder.credential_changed(updated.id, updated.service, "updated"))
        return updated

    def delete(self, credential_id: Any) -> Credential:
        credential = self.get_by_id(credential_id)
        self._ledger.credentials.remove(credential)
        self._persist()
        self._record(AuditEventBuilder.credential_changed(credential.id, credential.service, "deleted"))
        return credential

    def get_by_id(self, credential_id: Any) -> Credential:
        return self._find(self._ledger.credentials, credential_id)

    def get_all(self) -> list[Credential]:
        return sorted(self._ledger.credentials, key=lambda c: c.service.lower())

    def get_tags(self) -> list[str]:
        return sorted({c.tag for c in self._ledger.credentials if c.tag})

    def search(self, query: str = "", tag: str = "") -> list[Credential]:
        """Match service, username or tag, optionally within one tag."""
        needle = (query or "").strip().lower()
        results = []
        for credential in self.get_all():
            if tag and credential.tag != tag:
                continue
            if needle and not (
                needle in credential.service.lower()
                or needle in credential.username.lower()
                or needle in credential.tag.lower()
            ):
                continue
            results.append(credential)
        return results
