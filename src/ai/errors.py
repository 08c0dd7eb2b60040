"""AI provider errors."""

from typing import Optional

RATE_LIMIT_MARKERS = ("429", "rate limit", "quota", "RESOURCE_EXHAUSTED", "Resources exhausted")


def is_rate_limit_message(message: str) -> bool:
    lowered = message.lower()
    return any(marker.lower() in lowered for marker in RATE_LIMIT_MARKERS)


class AIProviderError(Exception):
    """A provider call failed."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class RateLimitError(AIProviderError):
    """Provider refused the call for rate or quota reasons; try the next one."""
    pass


class ProviderNotConfiguredError(AIProviderError):
    """No API key (or no client) for the provider."""

    def __init__(self, provider: str, message: str = "API key not configured. Please add it in Settings."):
        super().__init__(provider, message)


class AllProvidersFailedError(Exception):
    def __init__(self, last_error: Optional[Exception] = None):
        detail = str(last_error) if last_error else "Unknown error"
        super().__init__(f"All AI providers failed. Last error: {detail}")
        self.last_error = last_error
