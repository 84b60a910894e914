"""
Shared pytest fixtures.

No test reaches a real AI provider or database server: providers are
``StubProvider`` instances (or real clients wired to LangChain's fake chat
model in test_providers.py) and persistence uses in-memory SQLite.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.db.database import init_db
from app.errors import ProviderNotConfiguredError
from app.models import AIResponse
from app.services.ai_service import AIService
from app.services.chat_service import ChatService
from app.services.providers import ProviderClient
from app.services.safety_service import SafetyService


EDUCATIONAL_REPLY = (
    "Great question! Let me explain how photosynthesis works, step by step: "
    "plants use light energy to turn water and carbon dioxide into sugar."
)
EDUCATIONAL_QUESTION = "Can you explain how photosynthesis works?"


class StubProvider(ProviderClient):
    """Provider that records calls and returns a canned reply or raises a canned error."""

    def __init__(self, name: str, reply: str = EDUCATIONAL_REPLY, error: Exception | None = None,
                 configured: bool = True, healthy: bool = True):
        self.name = name
        self.display_name = name.title()
        super().__init__("test-key" if configured else "", f"{name}-test-model")
        self.reply = reply
        self.error = error
        self.healthy = healthy
        self.calls: list[dict] = []

    def generate(self, message, max_tokens=None, temperature=None):
        self.calls.append({"message": message, "max_tokens": max_tokens, "temperature": temperature})
        if not self.is_configured:
            raise ProviderNotConfiguredError(self.name, f"{self.display_name} client not initialized")
        if self.error is not None:
            raise self.error
        return AIResponse(content=self.reply, provider=self.name, model=self.model, tokens=42)

    def ping(self) -> bool:
        return self.is_configured and self.healthy


@pytest.fixture
def safety() -> SafetyService:
    return SafetyService(
        blocked_keywords=["inappropriate", "harmful", "dangerous"],
        educational_topics=["math", "science", "literature", "history", "programming", "language"],
        min_safety_score=0.7,
        strict_issues=True,
    )


@pytest.fixture
def providers() -> dict[str, StubProvider]:
    return {
        "openai": StubProvider("openai"),
        "anthropic": StubProvider("anthropic"),
        "google": StubProvider("google"),
    }


@pytest.fixture
def ai_service(providers, safety) -> AIService:
    return AIService(providers, safety, default_provider="openai")


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test (also binds the module-level engine used by /health)."""
    return init_db("sqlite://")


@pytest.fixture
def chat_service(ai_service, safety, session_factory) -> ChatService:
    return ChatService(ai_service, safety, session_factory)


@pytest.fixture
def client(monkeypatch, safety, ai_service, chat_service) -> TestClient:
    """TestClient with the services injected; the lifespan is not run."""
    import app.main as main

    monkeypatch.setattr(main, "safety_service", safety)
    monkeypatch.setattr(main, "ai_service", ai_service)
    monkeypatch.setattr(main, "chat_service", chat_service)
    return TestClient(main.app)
