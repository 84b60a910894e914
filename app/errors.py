"""
ERRORS MODULE
=============

Exception types raised by the services and turned into JSON error envelopes by
the exception handlers in app.main. Each error knows its HTTP status code and
how to render itself, so the services never deal with HTTP directly.

  AppError                    - Base class (500).
  InvalidRequestError         - Malformed input the schema could not catch (400).
  ContentBlockedError         - User message failed the safety check (400).
  ResponseBlockedError        - Generated reply failed the safety check (500).
  ProviderError               - Third-party AI call failed (500, or 429 on rate limits).
  ProviderNotConfiguredError  - Provider has no API key.
  UnknownProviderError        - Provider name is not supported.
  SessionNotFoundError        - No chat session with that id (404).
  ServiceUnavailableError     - Services not initialized yet (503).
"""

from typing import Any, Dict, Optional

from app.models import SafetyValidation


# User-friendly message when a provider rate limit (or quota) is exceeded.
RATE_LIMIT_MESSAGE = (
    "The AI provider's rate limit has been reached. "
    "Please wait a moment and try again."
)


class AppError(Exception):
    """Base error with an HTTP status code and a JSON payload."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class InvalidRequestError(AppError):
    status_code = 400


class ContentBlockedError(AppError):
    """The user's message failed safety validation; no provider was called."""

    status_code = 400

    def __init__(self, validation: SafetyValidation, message: str = "Message blocked by safety filters"):
        super().__init__(message)
        self.validation = validation

    def __str__(self) -> str:
        return f"Content blocked: {', '.join(self.validation.issues)}"

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.update(
            issues=self.validation.issues,
            suggestions=self.validation.suggestions,
            safetyScore=self.validation.safety_score,
        )
        return payload


class ResponseBlockedError(AppError):
    """A reply was generated but failed validation, so it is neither stored nor returned."""

    status_code = 500

    def __init__(self, validation: SafetyValidation, provider: str):
        super().__init__("Generated response failed safety check")
        self.validation = validation
        self.provider = provider

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["safetyScore"] = self.validation.safety_score
        return payload


class ProviderError(AppError):
    """A provider call failed. rate_limited errors are reported as 429."""

    def __init__(self, provider: str, message: str, rate_limited: bool = False):
        super().__init__(message, status_code=429 if rate_limited else 500)
        self.provider = provider
        self.rate_limited = rate_limited

    def to_payload(self) -> Dict[str, Any]:
        message = RATE_LIMIT_MESSAGE if self.rate_limited else self.message
        return {"success": False, "message": message, "provider": self.provider}


class ProviderNotConfiguredError(ProviderError):
    pass


class UnknownProviderError(ProviderError):
    pass


class SessionNotFoundError(AppError):
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__(f"Chat session '{session_id}' not found")
        self.session_id = session_id


class ServiceUnavailableError(AppError):
    status_code = 503
