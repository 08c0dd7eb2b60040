"""
Tests for the AI provider router and the Gemini and Groq clients.

Providers are replaced with fakes; no test talks to a real API.
"""

import asyncio
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from src.ai import (
    AIProviderError,
    AIRouter,
    AllProvidersFailedError,
    GeminiProvider,
    GroqProvider,
    ProviderNotConfiguredError,
    RateLimitError,
    is_rate_limit_message,
)
from src.ai import providers
from src.config import GroqSettings
from src.managers import AISettingsManager, InvalidInputError
from src.models.audit import AuditEventType


class FakeProvider:
    """Returns a canned reply or raises a canned error."""

    def __init__(self, name, reply="ok", error=None):
        self.name = name
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, prompt, system_instruction, history=None):
        self.calls.append((prompt, system_instruction, history))
        if self.error:
            raise self.error
        return self.reply


def factories_for(*providers):
    made = {}

    def factory(provider):
        def build(api_key):
            made[provider.name] = api_key
            return provider
        return build

    table = {p.name: factory(p) for p in providers}
    return table, made


@pytest.fixture
def keys(ledger, storage):
    settings = AISettingsManager(ledger, storage)
    settings.set_api_key("gemini", "g-key")
    settings.set_api_key("groq", "q-key")
    return settings


class TestRouting:
    """Provider order and fallback."""

    def test_not_configured(self, ledger):
        router = AIRouter(ledger, factories={})
        assert not router.is_configured()
        with pytest.raises(ProviderNotConfiguredError):
            asyncio.run(router.call("hi", "sys"))

    def test_first_provider_answers(self, ledger, keys):
        gemini, groq = FakeProvider("gemini", "from gemini"), FakeProvider("groq")
        factories, made = factories_for(gemini, groq)
        reply = asyncio.run(AIRouter(ledger, factories).call("hi", "sys"))

        assert reply.text == "from gemini"
        assert reply.provider == "gemini"
        assert not reply.used_fallback
        assert made == {"gemini": "g-key"}
        assert groq.calls == []

    def test_rate_limit_falls_back(self, ledger, keys, audit, audit_storage):
        gemini = FakeProvider("gemini", error=RateLimitError("gemini", "429 quota"))
        groq = FakeProvider("groq", "from groq")
        factories, _ = factories_for(gemini, groq)
        reply = asyncio.run(AIRouter(ledger, factories, audit=audit).call("hi", "sys"))

        assert reply.provider == "groq"
        assert reply.attempts == 2
        assert audit_storage.events[-1].event_type == AuditEventType.PROVIDER_FALLBACK

    def test_other_errors_propagate(self, ledger, keys):
        gemini = FakeProvider("gemini", error=AIProviderError("gemini", "bad request"))
        groq = FakeProvider("groq")
        factories, _ = factories_for(gemini, groq)
        with pytest.raises(AIProviderError):
            asyncio.run(AIRouter(ledger, factories).call("hi", "sys"))
        assert groq.calls == []

    def test_all_rate_limited(self, ledger, keys):
        factories, _ = factories_for(
            FakeProvider("gemini", error=RateLimitError("gemini", "429")),
            FakeProvider("groq", error=RateLimitError("groq", "429")),
        )
        with pytest.raises(AllProvidersFailedError) as exc:
            asyncio.run(AIRouter(ledger, factories).call("hi", "sys"))
        assert isinstance(exc.value.last_error, RateLimitError)

    def test_max_attempts(self, ledger, keys):
        groq = FakeProvider("groq")
        factories, _ = factories_for(
            FakeProvider("gemini", error=RateLimitError("gemini", "429")), groq
        )
        with pytest.raises(AllProvidersFailedError):
            asyncio.run(AIRouter(ledger, factories, max_attempts=1).call("hi", "sys"))
        assert groq.calls == []

    def test_priority_order(self, ledger, keys):
        keys.set_priority_order(["groq"])
        assert ledger.settings.priority_order == ["groq", "gemini", "chatgpt", "perplexity"]

        factories, _ = factories_for(FakeProvider("gemini"), FakeProvider("groq", "from groq"))
        router = AIRouter(ledger, factories)
        assert router.provider_order() == ["groq", "gemini"]
        assert asyncio.run(router.call("hi", "sys")).provider == "groq"

    def test_providers_without_clients_skipped(self, ledger, keys):
        keys.set_api_key("chatgpt", "c-key")
        factories, _ = factories_for(FakeProvider("gemini"), FakeProvider("groq"))
        assert "chatgpt" not in AIRouter(ledger, factories).available_providers()

    def test_environment_key_used(self, ledger, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "env-key")
        factories, made = factories_for(FakeProvider("groq"))
        asyncio.run(AIRouter(ledger, factories).call("hi", "sys"))
        assert made == {"groq": "env-key"}


class TestAISettings:
    """Keys and order entered in the app."""

    def test_blank_key_clears(self, ledger, keys):
        keys.set_api_key("gemini", "  ")
        assert ledger.settings.gemini_api_key is None
        assert keys.providers_with_keys() == ["groq"]

    def test_unknown_provider(self, keys):
        with pytest.raises(InvalidInputError):
            keys.set_api_key("claude", "x")

    def test_empty_order(self, keys):
        with pytest.raises(InvalidInputError):
            keys.set_priority_order([])

    def test_key_hidden_in_repr(self, ledger, keys):
        assert "g-key" not in repr(ledger.settings)

    def test_key_persisted(self, keys, storage):
        assert storage.load().settings.api_key_for("gemini") == "g-key"


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.posted = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posted.append((url, json, headers))
        return self.response


class FakeGeminiModel:
    """Stands in for genai.GenerativeModel; replies or raises a canned error."""

    reply = "ok"
    error = None
    calls = []

    def __init__(self, model_name=None, system_instruction=None, generation_config=None):
        self.system_instruction = system_instruction

    async def generate_content_async(self, contents):
        FakeGeminiModel.calls.append((self.system_instruction, contents))
        if FakeGeminiModel.error is not None:
            raise FakeGeminiModel.error
        return SimpleNamespace(text=FakeGeminiModel.reply)


@pytest.fixture
def fake_gemini(monkeypatch):
    monkeypatch.setattr(providers.genai, "configure", lambda api_key: None)
    monkeypatch.setattr(providers.genai, "GenerativeModel", FakeGeminiModel)
    FakeGeminiModel.reply = "ok"
    FakeGeminiModel.error = None
    FakeGeminiModel.calls = []
    return FakeGeminiModel


class TestProviders:
    """Provider clients against fake transports."""

    def make_groq(self, response):
        session = FakeSession(response)
        return GroqProvider("q-key", GroqSettings(), session), session

    def test_groq_reply(self):
        groq, session = self.make_groq(
            FakeResponse(200, {"choices": [{"message": {"content": "  hello  "}}]})
        )
        text = asyncio.run(groq.complete("hi", "be brief", [("user", "earlier"), ("assistant", "ok")]))

        assert text == "hello"
        _, payload, headers = session.posted[0]
        assert [m["role"] for m in payload["messages"]] == ["system", "user", "assistant", "user"]
        assert headers["Authorization"] == "Bearer q-key"

    def test_groq_rate_limit(self):
        groq, _ = self.make_groq(FakeResponse(429))
        with pytest.raises(RateLimitError):
            asyncio.run(groq.complete("hi", ""))

    def test_groq_error_message(self):
        groq, _ = self.make_groq(FakeResponse(400, {"error": {"message": "model not found"}}))
        with pytest.raises(AIProviderError) as exc:
            asyncio.run(groq.complete("hi", ""))
        assert not isinstance(exc.value, RateLimitError)
        assert exc.value.message == "model not found"

    def test_groq_empty_choices(self):
        groq, _ = self.make_groq(FakeResponse(200, {"choices": []}))
        with pytest.raises(AIProviderError):
            asyncio.run(groq.complete("hi", ""))

    def test_gemini_reply(self, fake_gemini):
        fake_gemini.reply = "  hello  "
        gemini = GeminiProvider("g-key")
        text = asyncio.run(gemini.complete("hi", "be brief", [("user", "earlier"), ("assistant", "ok")]))

        assert text == "hello"
        system, contents = fake_gemini.calls[0]
        assert system == "be brief"
        assert [c["role"] for c in contents] == ["user", "model", "user"]

    @pytest.mark.parametrize("error", [
        google_exceptions.ResourceExhausted("Resource has been exhausted"),
        google_exceptions.GoogleAPIError("Daily quota reached for this project"),
    ])
    def test_gemini_rate_limit(self, fake_gemini, error):
        """Quota errors from Gemini let the router move to the next provider."""
        fake_gemini.error = error
        with pytest.raises(RateLimitError):
            asyncio.run(GeminiProvider("g-key").complete("hi", ""))

    def test_gemini_other_error(self, fake_gemini):
        fake_gemini.error = google_exceptions.InvalidArgument("API key not valid")
        with pytest.raises(AIProviderError) as exc:
            asyncio.run(GeminiProvider("g-key").complete("hi", ""))
        assert not isinstance(exc.value, RateLimitError)

    @pytest.mark.parametrize("provider", [GeminiProvider, GroqProvider])
    def test_key_required(self, provider):
        with pytest.raises(ProviderNotConfiguredError):
            provider("")

    @pytest.mark.parametrize("message,expected", [
        ("429 Too Many Requests", True),
        ("Quota exceeded for project", True),
        ("Resources exhausted", True),
        ("Invalid API key", False),
    ])
    def test_rate_limit_detection(self, message, expected):
        assert is_rate_limit_message(message) is expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
