"""
AI SERVICE MODULE (ORCHESTRATOR)
================================

Turns one student message into one checked tutor reply. Used by ChatService for
POST /chat; also answers GET /providers and the provider part of GET /health.

FLOW (generate_response):
  1. Validate the message with SafetyService. If it is not valid, raise
     ContentBlockedError; no provider is called.
  2. Call the requested provider (or DEFAULT_AI_PROVIDER).
  3. If that call raises ProviderError and the requested provider was not the
     default, retry exactly once against the default. Otherwise re-raise.
  4. Append educational framing (learning tip / study suggestion) to the reply.
  5. Validate the reply the same way as the input. If it is not valid, raise
     ResponseBlockedError even though a reply was generated.
  6. Attach the reply's safety score and the total processing time (ms).

One request, one sequential chain of calls: no circuit breaker, no backoff, no
parallel fan-out across providers.
"""

import logging
import time
from typing import Dict, List, Optional

from app.errors import ContentBlockedError, ProviderError, ResponseBlockedError, UnknownProviderError
from app.models import AIRequest, AIResponse, ProviderInfo, SafetyValidation
from app.services.providers import ProviderClient
from app.services.safety_service import SafetyService
from app.utils.fallback import with_fallback
from config import DEFAULT_AI_PROVIDER

logger = logging.getLogger("EDU4AI")

LONG_RESPONSE_THRESHOLD = 1000

LEARNING_TIP = (
    "\n\n💡 **Learning Tip**: Take your time to understand each concept before moving "
    "to the next one. Feel free to ask follow-up questions if anything is unclear!"
)
STUDY_SUGGESTION = (
    "\n\n🔍 **Study Suggestion**: Try working through this example step by step. "
    "Understanding the process is more important than memorizing the result."
)


def apply_educational_context(content: str) -> str:
    """Add a learning tip to long replies and a study suggestion to replies with code or formulas."""
    if len(content) > LONG_RESPONSE_THRESHOLD:
        content += LEARNING_TIP
    if "```" in content or "$$" in content:
        content += STUDY_SUGGESTION
    return content


# ==============================================================================
# AI SERVICE CLASS
# ==============================================================================

class AIService:
    """
    Orchestrates safety checks and provider calls. Holds the provider registry
    (name -> ProviderClient) and the safety service; keeps no per-request state.
    """

    def __init__(
        self,
        providers: Dict[str, ProviderClient],
        safety_service: SafetyService,
        default_provider: str = DEFAULT_AI_PROVIDER,
    ):
        self.providers = providers
        self.safety_service = safety_service
        self.default_provider = default_provider

    def generate_response(
        self,
        request: AIRequest,
        input_validation: Optional[SafetyValidation] = None,
    ) -> AIResponse:
        """
        Generate a checked reply for request.message.

        input_validation may be passed when the caller has already validated the
        message, so it is not scored twice.
        """
        start_time = time.perf_counter()

        validation = input_validation or self.safety_service.validate_content(request.message)
        if not validation.is_valid:
            raise ContentBlockedError(validation)

        provider = request.provider or self.default_provider
        fallback = None
        if provider != self.default_provider:
            def fallback():
                logger.info(f"Attempting fallback to {self.default_provider}")
                return self._call_provider(self.default_provider, request)

        try:
            response = with_fallback(
                lambda: self._call_provider(provider, request),
                fallback,
                retry_on=(ProviderError,),
                name=f"{provider} provider",
            )
        except ProviderError as e:
            logger.error(f"AI generation failed ({e.provider}): {e.message}")
            raise

        response.content = apply_educational_context(response.content)

        response_check = self.safety_service.validate_content(response.content)
        response.safety_score = response_check.safety_score
        if not response_check.is_valid:
            logger.warning(
                f"Generated response from {response.provider} failed safety check "
                f"(score={response_check.safety_score:.2f}, issues={response_check.issues})"
            )
            raise ResponseBlockedError(response_check, response.provider)

        response.processing_time = int((time.perf_counter() - start_time) * 1000)

        logger.info(
            f"AI response generated successfully | provider={response.provider} model={response.model} "
            f"tokens={response.tokens} safety_score={response.safety_score:.2f} "
            f"processing_time={response.processing_time}ms"
        )
        return response

    def _call_provider(self, name: str, request: AIRequest) -> AIResponse:
        client = self.providers.get(name)
        if client is None:
            raise UnknownProviderError(name, f"Unknown AI provider: {name}")
        return client.generate(
            request.message,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )

    # ------------------------------------------------------------------------------
    # PROVIDER STATUS
    # ------------------------------------------------------------------------------

    def available_providers(self) -> List[ProviderInfo]:
        return [
            ProviderInfo(
                name=name,
                status="available" if client.is_configured else "unavailable",
                models=[client.model],
            )
            for name, client in self.providers.items()
        ]

    def health_check(self) -> Dict[str, bool]:
        """Ping each configured provider; unconfigured providers report False without a call."""
        return {name: client.ping() for name, client in self.providers.items()}
