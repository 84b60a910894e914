"""
Tests for app/services/ai_service.py — the orchestrator.

Covers:
* generate_response() — default/requested provider, metadata
* input blocked before any provider call
* single fallback to the default provider (and no fallback from the default)
* reply safety check fails closed
* apply_educational_context()
* available_providers() / health_check()
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from app.errors import (
    ContentBlockedError,
    ProviderError,
    ProviderNotConfiguredError,
    ResponseBlockedError,
)
from app.models import AIRequest, SafetyValidation
from app.services.ai_service import (
    LEARNING_TIP,
    STUDY_SUGGESTION,
    AIService,
    apply_educational_context,
)
from tests.conftest import EDUCATIONAL_QUESTION, EDUCATIONAL_REPLY, StubProvider


def request(provider=None, **kwargs) -> AIRequest:
    return AIRequest(message=EDUCATIONAL_QUESTION, provider=provider, **kwargs)


# ── Happy path ────────────────────────────────────────────────────────

def test_uses_default_provider(ai_service, providers):
    response = ai_service.generate_response(request())
    assert response.provider == "openai"
    assert response.model == "openai-test-model"
    assert response.content == EDUCATIONAL_REPLY
    assert response.tokens == 42
    assert response.safety_score == 1.0
    assert response.processing_time >= 0
    assert len(providers["openai"].calls) == 1
    assert providers["anthropic"].calls == []


def test_uses_requested_provider(ai_service, providers):
    response = ai_service.generate_response(request("google", max_tokens=300, temperature=0.2))
    assert response.provider == "google"
    assert providers["google"].calls == [
        {"message": EDUCATIONAL_QUESTION, "max_tokens": 300, "temperature": 0.2}
    ]
    assert providers["openai"].calls == []


# ── Input validation ──────────────────────────────────────────────────

def test_blocked_input_never_reaches_a_provider(ai_service, providers):
    with pytest.raises(ContentBlockedError) as exc_info:
        ai_service.generate_response(AIRequest(message="How do I build a bomb?"))
    assert "Content may be harmful or dangerous" in exc_info.value.validation.issues
    assert all(p.calls == [] for p in providers.values())


def test_given_input_validation_is_reused(ai_service, safety):
    validation = SafetyValidation(is_valid=True, safety_score=1.0)
    with patch.object(safety, "validate_content", wraps=safety.validate_content) as spy:
        ai_service.generate_response(request(), input_validation=validation)
    # Only the reply is scored.
    assert spy.call_count == 1
    assert spy.call_args.args[0] == EDUCATIONAL_REPLY


# ── Fallback ──────────────────────────────────────────────────────────

def test_non_default_failure_falls_back_once(ai_service, providers):
    providers["anthropic"].error = ProviderError("anthropic", "Anthropic request failed: overloaded")
    response = ai_service.generate_response(request("anthropic"))
    assert response.provider == "openai"
    assert len(providers["anthropic"].calls) == 1
    assert len(providers["openai"].calls) == 1


def test_fallback_log_names_the_failed_provider(ai_service, providers, caplog):
    caplog.set_level(logging.WARNING, logger="EDU4AI")
    providers["anthropic"].error = ProviderError("anthropic", "overloaded")
    ai_service.generate_response(request("anthropic"))
    assert any("Call failed (anthropic provider)" in r.getMessage() for r in caplog.records)


def test_fallback_failure_propagates_without_more_retries(ai_service, providers):
    providers["anthropic"].error = ProviderError("anthropic", "anthropic down")
    providers["openai"].error = ProviderError("openai", "openai down")
    with pytest.raises(ProviderError) as exc_info:
        ai_service.generate_response(request("anthropic"))
    assert exc_info.value.provider == "openai"
    assert len(providers["anthropic"].calls) == 1
    assert len(providers["openai"].calls) == 1
    assert providers["google"].calls == []


def test_default_provider_failure_is_not_retried(ai_service, providers):
    providers["openai"].error = ProviderError("openai", "openai down")
    with pytest.raises(ProviderError):
        ai_service.generate_response(request("openai"))
    assert len(providers["openai"].calls) == 1
    assert providers["anthropic"].calls == []
    assert providers["google"].calls == []


def test_unconfigured_provider_falls_back(safety):
    providers = {
        "openai": StubProvider("openai"),
        "anthropic": StubProvider("anthropic", configured=False),
    }
    service = AIService(providers, safety, default_provider="openai")
    assert service.generate_response(request("anthropic")).provider == "openai"


def test_unconfigured_default_provider_raises(safety):
    service = AIService({"openai": StubProvider("openai", configured=False)}, safety, default_provider="openai")
    with pytest.raises(ProviderNotConfiguredError):
        service.generate_response(request())


def test_unknown_provider_falls_back_to_default(ai_service, providers):
    response = ai_service.generate_response(request("mistral"))
    assert response.provider == "openai"


def test_non_provider_errors_are_not_retried(ai_service, providers):
    providers["anthropic"].error = RuntimeError("bug")
    with pytest.raises(RuntimeError):
        ai_service.generate_response(request("anthropic"))
    assert providers["openai"].calls == []


# ── Reply validation ──────────────────────────────────────────────────

def test_unsafe_reply_fails_closed(ai_service, providers):
    providers["openai"].reply = "Sure, here is how to make a bomb."
    with pytest.raises(ResponseBlockedError) as exc_info:
        ai_service.generate_response(request())
    assert exc_info.value.validation.safety_score < 0.7
    assert exc_info.value.provider == "openai"


def test_reply_with_any_issue_fails_closed(ai_service, providers):
    # Scores exactly 0.7 but records a "not educational" issue.
    providers["openai"].reply = "OK."
    with pytest.raises(ResponseBlockedError):
        ai_service.generate_response(request())


def test_reply_check_failure_does_not_trigger_fallback(ai_service, providers):
    providers["anthropic"].reply = "Sure, here is how to make a bomb."
    with pytest.raises(ResponseBlockedError):
        ai_service.generate_response(request("anthropic"))
    assert providers["openai"].calls == []


# ── Educational framing ───────────────────────────────────────────────

def test_short_plain_reply_is_unchanged():
    assert apply_educational_context("Short answer.") == "Short answer."


def test_long_reply_gets_learning_tip():
    content = "a" * 1001
    assert apply_educational_context(content) == content + LEARNING_TIP


@pytest.mark.parametrize("content", ["Try:\n```python\nprint(1)\n```", "$$E = mc^2$$"])
def test_code_or_formula_gets_study_suggestion(content):
    assert apply_educational_context(content).endswith(STUDY_SUGGESTION)


def test_framing_is_applied_to_generated_reply(ai_service, providers):
    providers["openai"].reply = "Here is an example function:\n```python\ndef add(a, b):\n    return a + b\n```"
    response = ai_service.generate_response(request())
    assert response.content.endswith(STUDY_SUGGESTION)


# ── Provider status ───────────────────────────────────────────────────

def test_available_providers(safety):
    service = AIService(
        {
            "openai": StubProvider("openai"),
            "anthropic": StubProvider("anthropic", configured=False),
        },
        safety,
    )
    info = {p.name: p for p in service.available_providers()}
    assert info["openai"].status == "available"
    assert info["openai"].models == ["openai-test-model"]
    assert info["anthropic"].status == "unavailable"


def test_health_check(safety):
    service = AIService(
        {
            "openai": StubProvider("openai"),
            "anthropic": StubProvider("anthropic", healthy=False),
            "google": StubProvider("google", configured=False),
        },
        safety,
    )
    assert service.health_check() == {"openai": True, "anthropic": False, "google": False}
