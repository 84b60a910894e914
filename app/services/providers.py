"""
PROVIDER CLIENTS MODULE
=======================

One client per AI provider (OpenAI, Anthropic, Google), all with the same
interface so the orchestrator never needs to know which SDK it is talking to.

Each client builds a LangChain chat model for its provider, sends the shared
educational system prompt plus the student's message through a ChatPromptTemplate,
and maps the reply to an AIResponse:
  - content: plain text (list-of-blocks replies, as Anthropic returns, are joined)
  - tokens: usage_metadata["total_tokens"] when the provider reports it, else None

Any SDK exception is wrapped in ProviderError so callers only handle one type.
A provider without an API key raises ProviderNotConfiguredError when called.
"""

import logging
from typing import Dict, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from app.errors import ProviderError, ProviderNotConfiguredError
from app.models import AIResponse
from config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_MODEL,
    DEFAULT_TEMPERATURE,
    EDUCATIONAL_SYSTEM_PROMPT,
    GOOGLE_API_KEY,
    GOOGLE_MODEL,
    MAX_TOKENS_PER_REQUEST,
    OPENAI_API_KEY,
    OPENAI_MODEL,
)

logger = logging.getLogger("EDU4AI")


def escape_curly_braces(text: str) -> str:
    """Double { and } so text can sit inside a prompt template without being read as a variable."""
    if not text:
        return text
    return text.replace("{", "{{").replace("}", "}}")


def _is_rate_limit_error(exc: Exception) -> bool:
    """True if the exception looks like a provider rate limit (429 / quota exceeded)."""
    msg = str(exc).lower()
    return "429" in msg or "rate limit" in msg or "rate_limit" in msg or "quota" in msg


def _extract_text(message: BaseMessage) -> str:
    """Return the text of a chat model reply; list replies keep only their text blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


# ==============================================================================
# BASE CLIENT
# ==============================================================================

class ProviderClient:
    """
    Common behaviour for all providers. Subclasses only say how to build their
    LangChain chat model (_create_llm) and what to call themselves.
    """

    name = "base"
    display_name = "Base"

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", escape_curly_braces(EDUCATIONAL_SYSTEM_PROMPT)),
            ("human", "{question}"),
        ])
        if self.is_configured:
            logger.info(f"{self.display_name} client initialized (model: {self.model})")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _create_llm(self, max_tokens: int, temperature: float) -> BaseChatModel:
        raise NotImplementedError

    def generate(
        self,
        message: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> AIResponse:
        """
        Send message to the provider and return the normalized reply.

        safety_score and processing_time on the result are left at their defaults;
        the orchestrator fills them in.
        """
        if not self.is_configured:
            raise ProviderNotConfiguredError(self.name, f"{self.display_name} client not initialized")

        llm = self._create_llm(
            max_tokens or MAX_TOKENS_PER_REQUEST,
            DEFAULT_TEMPERATURE if temperature is None else temperature,
        )
        chain = self.prompt | llm
        try:
            reply = chain.invoke({"question": message})
        except Exception as e:
            logger.error(f"{self.display_name} request failed: {e}")
            raise ProviderError(
                self.name,
                f"{self.display_name} request failed: {e}",
                rate_limited=_is_rate_limit_error(e),
            ) from e

        content = _extract_text(reply)
        if not content.strip():
            raise ProviderError(self.name, f"Empty response from {self.display_name}")

        usage = getattr(reply, "usage_metadata", None) or {}
        return AIResponse(
            content=content,
            provider=self.name,
            model=self.model,
            tokens=usage.get("total_tokens"),
        )

    def ping(self) -> bool:
        """Make the smallest possible call; True if the provider answered."""
        if not self.is_configured:
            return False
        try:
            self._create_llm(max_tokens=1, temperature=0).invoke("Hi")
            return True
        except Exception as e:
            logger.warning(f"{self.display_name} health check failed: {e}")
            return False


# ==============================================================================
# PROVIDER IMPLEMENTATIONS
# ==============================================================================

class OpenAIClient(ProviderClient):
    name = "openai"
    display_name = "OpenAI"

    def _create_llm(self, max_tokens: int, temperature: float) -> BaseChatModel:
        return ChatOpenAI(
            model=self.model,
            api_key=self.api_key,
            max_tokens=max_tokens,
            temperature=temperature,
        )


class AnthropicClient(ProviderClient):
    name = "anthropic"
    display_name = "Anthropic"

    def _create_llm(self, max_tokens: int, temperature: float) -> BaseChatModel:
        return ChatAnthropic(
            model=self.model,
            api_key=self.api_key,
            max_tokens=max_tokens,
            temperature=temperature,
        )


class GoogleClient(ProviderClient):
    name = "google"
    display_name = "Google AI"

    def _create_llm(self, max_tokens: int, temperature: float) -> BaseChatModel:
        return ChatGoogleGenerativeAI(
            model=self.model,
            google_api_key=self.api_key,
            max_output_tokens=max_tokens,
            temperature=temperature,
        )


def build_providers(
    openai_api_key: str = OPENAI_API_KEY,
    anthropic_api_key: str = ANTHROPIC_API_KEY,
    google_api_key: str = GOOGLE_API_KEY,
) -> Dict[str, ProviderClient]:
    """Create all three clients keyed by provider name; unconfigured ones are kept so they can report it."""
    providers: Dict[str, ProviderClient] = {
        "openai": OpenAIClient(openai_api_key, OPENAI_MODEL),
        "anthropic": AnthropicClient(anthropic_api_key, ANTHROPIC_MODEL),
        "google": GoogleClient(google_api_key, GOOGLE_MODEL),
    }
    if not any(client.is_configured for client in providers.values()):
        logger.warning("No AI providers configured. AI functionality will be limited.")
    return providers
