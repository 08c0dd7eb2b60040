"""AI providers and the fallback router."""

from src.ai.errors import (
    AIProviderError,
    AllProvidersFailedError,
    ProviderNotConfiguredError,
    RateLimitError,
    is_rate_limit_message,
)
from src.ai.prompts import (
    format_expense_context,
    format_investment_context,
    system_instruction,
    with_context,
)
from src.ai.providers import AIProviderInterface, GeminiProvider, GroqProvider
from src.ai.router import AIReply, AIRouter

__all__ = [
    # Errors
    "AIProviderError",
    "AllProvidersFailedError",
    "ProviderNotConfiguredError",
    "RateLimitError",
    "is_rate_limit_message",
    # Prompts
    "format_expense_context",
    "format_investment_context",
    "system_instruction",
    "with_context",
    # Providers
    "AIProviderInterface",
    "AIReply",
    "AIRouter",
    "GeminiProvider",
    "GroqProvider",
]
