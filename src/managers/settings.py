"""
AI settings entered in the app

Keys typed on the Settings page override the ones from the environment.
A blank key clears the stored one, so the environment key (if any) is
used again.
"""

from typing import Optional

import structlog

from src.managers.base import BaseManager
from src.managers.errors import InvalidInputError
from src.models.audit import AuditEventBuilder
from src.models.ledger import SUPPORTED_PROVIDERS, AISettings

logger = structlog.get_logger("managers.settings")


class AISettingsManager(BaseManager):
    entity_name = "ai settings"

    @property
    def settings(self) -> AISettings:
        return self._ledger.settings

    def providers_with_keys(self) -> list[str]:
        return [p for p in SUPPORTED_PROVIDERS if self.settings.api_key_for(p)]

    def set_api_key(self, provider: str, api_key: Optional[str]) -> AISettings:
        provider = (provider or "").strip().lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise InvalidInputError(f"Unknown AI provider: {provider}", {"provider": "Unknown provider"})
        key = (api_key or "").strip() or None
        self._ledger.settings = self._rebuild(self.settings, {f"{provider}_api_key": key})
        self._persist()
        self._record(AuditEventBuilder.ai_settings_saved(f"{provider} key", self.providers_with_keys()))
        logger.info("api_key_saved", provider=provider, cleared=key is None)
        return self.settings

    def set_priority_order(self, order: list[str]) -> AISettings:
        """
        Providers are tried in this order. Providers left out are
        appended in their default position.
        """
        if not order:
            raise InvalidInputError("Choose at least one provider", {"priority_order": "Required"})
        full = list(order) + [p for p in SUPPORTED_PROVIDERS if p not in order]
        self._ledger.settings = self._rebuild(self.settings, {"priority_order": full})
        self._persist()
        self._record(AuditEventBuilder.ai_settings_saved("priority order", self.providers_with_keys()))
        return self.settings
