"""
AI completion providers

Each provider turns (system instruction, prompt, history) into reply
text, raising RateLimitError when the provider is throttling us and
AIProviderError for anything else.

DESIGN DECISION: Only Gemini and Groq have clients. ChatGPT and
Perplexity may still appear in the priority order and are reported as
not configured.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import requests
import structlog
from google.api_core import exceptions as google_exceptions

from src.ai.errors import AIProviderError, ProviderNotConfiguredError, RateLimitError, is_rate_limit_message
from src.config import GeminiSettings, GroqSettings

logger = structlog.get_logger("ai.providers")

# (role, content) pairs, oldest first
History = list[tuple[str, str]]


class AIProviderInterface(ABC):
    name: str = ""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        history: Optional[History] = None,
    ) -> str:
        """Reply text for the prompt."""
        pass


# =============================================================================
# GEMINI
# =============================================================================

class GeminiProvider(AIProviderInterface):
    name = "gemini"

    def __init__(self, api_key: str, settings: Optional[GeminiSettings] = None):
        if not api_key:
            raise ProviderNotConfiguredError(self.name)
        self._api_key = api_key
        self._settings = settings or GeminiSettings()

    def _model(self, system_instruction: str) -> "genai.GenerativeModel":
        genai.configure(api_key=self._api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=system_instruction,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        history: Optional[History] = None,
    ) -> str:
        contents = [
            {"role": "model" if role == "assistant" else "user", "parts": [text]}
            for role, text in (history or [])
        ]
        contents.append({"role": "user", "parts": [prompt]})
        try:
            response = await self._model(system_instruction).generate_content_async(contents)
        except google_exceptions.ResourceExhausted as e:
            raise RateLimitError(self.name, str(e))
        except google_exceptions.GoogleAPIError as e:
            if is_rate_limit_message(str(e)):
                raise RateLimitError(self.name, str(e))
            raise AIProviderError(self.name, str(e))

        try:
            text = response.text
        except ValueError as e:
            # Blocked or empty candidates
            raise AIProviderError(self.name, f"No response text: {e}")
        return text.strip()


# =============================================================================
# GROQ
# =============================================================================

class GroqProvider(AIProviderInterface):
    """OpenAI-compatible chat completions over HTTP."""

    name = "groq"

    def __init__(
        self,
        api_key: str,
        settings: Optional[GroqSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ProviderNotConfiguredError(self.name)
        self._api_key = api_key
        self._settings = settings or GroqSettings()
        self._session = session or requests.Session()

    def _payload(self, prompt: str, system_instruction: str, history: Optional[History]) -> dict:
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.extend({"role": role, "content": text} for role, text in (history or []))
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self._settings.model_name,
            "messages": messages,
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "top_p": self._settings.top_p,
            "stream": False,
        }

    def _post(self, payload: dict) -> str:
        try:
            response = self._session.post(
                self._settings.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise AIProviderError(self.name, f"Request failed: {e}")

        if response.status_code == 429:
            raise RateLimitError(self.name, "429 Groq API rate limit exceeded")
        if not response.ok:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            message = message or f"Groq API error: {response.status_code}"
            if is_rate_limit_message(message):
                raise RateLimitError(self.name, message)
            raise AIProviderError(self.name, message)

        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            raise AIProviderError(self.name, "No response from Groq API")
        return choices[0]["message"]["content"].strip()

    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        history: Optional[History] = None,
    ) -> str:
        payload = self._payload(prompt, system_instruction, history)
        return await asyncio.to_thread(self._post, payload)
