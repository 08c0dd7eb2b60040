"""
Provider router

Tries providers in the user's priority order, restricted to those with
an API key and a client, for at most `max_attempts` providers. Only a
rate-limit error moves on to the next provider; any other error is
raised immediately.
"""

from typing import Callable, Optional

import structlog
from pydantic import BaseModel

from src.ai.errors import (
    AIProviderError,
    AllProvidersFailedError,
    ProviderNotConfiguredError,
    RateLimitError,
)
from src.ai.providers import AIProviderInterface, GeminiProvider, GroqProvider, History
from src.audit import AuditLogger
from src.config import get_settings
from src.models.ledger import SUPPORTED_PROVIDERS, Ledger

logger = structlog.get_logger("ai.router")

ProviderFactory = Callable[[str], AIProviderInterface]

DEFAULT_FACTORIES: dict[str, ProviderFactory] = {
    "gemini": GeminiProvider,
    "groq": GroqProvider,
}


class AIReply(BaseModel):
    text: str
    provider: str
    attempts: int = 1

    @property
    def used_fallback(self) -> bool:
        return self.attempts > 1


class AIRouter:
    def __init__(
        self,
        ledger: Ledger,
        factories: Optional[dict[str, ProviderFactory]] = None,
        max_attempts: Optional[int] = None,
        audit: Optional[AuditLogger] = None,
    ):
        settings = get_settings()
        self._ledger = ledger
        self._factories = DEFAULT_FACTORIES if factories is None else factories
        self._max_attempts = max_attempts or settings.ai.max_attempts
        self._env_keys = {
            "gemini": settings.gemini.api_key,
            "groq": settings.groq.api_key,
        }
        self._audit = audit

    def api_key(self, provider: str) -> Optional[str]:
        """Key entered in the app, else the environment's."""
        return self._ledger.settings.api_key_for(provider) or self._env_keys.get(provider)

    def available_providers(self) -> list[str]:
        return [
            name for name in SUPPORTED_PROVIDERS
            if name in self._factories and self.api_key(name)
        ]

    def is_configured(self) -> bool:
        return bool(self.available_providers())

    def provider_order(self) -> list[str]:
        available = self.available_providers()
        return [name for name in self._ledger.settings.priority_order if name in available]

    async def call(
        self,
        prompt: str,
        system_instruction: str,
        history: Optional[History] = None,
    ) -> AIReply:
        """
        Raises:
            ProviderNotConfiguredError: No provider has a key
            AIProviderError: A provider failed for a non rate-limit reason
            AllProvidersFailedError: Every attempted provider was rate limited
        """
        order = self.provider_order()
        if not order:
            raise ProviderNotConfiguredError(
                "assistant", "No AI provider configured. Please add API keys in Settings."
            )

        attempts = min(self._max_attempts, len(order))
        last_error: Optional[AIProviderError] = None

        for i, name in enumerate(order[:attempts]):
            provider = self._factories[name](self.api_key(name))
            try:
                text = await provider.complete(prompt, system_instruction, history)
            except RateLimitError as e:
                last_error = e
                logger.warning("provider_rate_limited", provider=name, attempt=i + 1, error=str(e))
                if self._audit:
                    self._audit.log_provider_fallback(name, str(e))
                continue

            logger.info("provider_answered", provider=name, attempt=i + 1)
            return AIReply(text=text, provider=name, attempts=i + 1)

        raise AllProvidersFailedError(last_error)
