"""
DATA MODELS MODULE
==================

This file defines the Pydantic models used for API requests, responses, and the
data passed between services. FastAPI uses these to validate incoming JSON and to
serialize responses. Field names are snake_case in Python and camelCase on the
wire (sessionId, safetyScore, ...), which is what the frontend expects.

MODELS:
  ChatRequest        - Body of POST /chat (message + optional session/provider options).
  ValidationRequest  - Body of POST /validate.
  SafetyValidation   - Result of a safety check (score, issues, suggestions).
  AIRequest          - What the chat service asks the orchestrator to generate.
  AIResponse         - Normalized reply from any provider, plus timing and safety score.
  ChatResponse       - Data returned by POST /chat (content + metadata + sessionId).
  MessageOut         - One stored message, as returned by GET /chat/history.
  SessionOut         - One chat session, as returned by GET /chat/sessions.
  ProviderInfo       - One entry of GET /providers.
  HealthResponse     - Data returned by GET /health.
  ApiResponse        - The {success, data, message} envelope around every response.
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

ProviderName = Literal["openai", "anthropic", "google"]
MessageRole = Literal["user", "assistant", "system"]


class APIModel(BaseModel):
    """Base model: camelCase aliases on the wire, snake_case names in code."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


# ==============================================================================
# REQUEST MODELS
# ==============================================================================

class ChatRequest(APIModel):
    """
    Request body for POST /chat.

    - message: Required, 1-2,000 characters (empty or too long returns 400).
    - session_id: Optional. If omitted, the server creates a new session and returns its id.
    - provider: Optional. One of openai / anthropic / google; defaults to DEFAULT_AI_PROVIDER.
    - max_tokens, temperature: Optional generation settings passed to the provider.
    """
    message: str = Field(..., min_length=1, max_length=2000)
    session_id: Optional[str] = None
    provider: Optional[ProviderName] = None
    max_tokens: Optional[int] = Field(None, ge=1, le=4000)
    temperature: Optional[float] = Field(None, ge=0, le=2)


class ValidationRequest(APIModel):
    """Request body for POST /validate. Longer than chat messages so the length check can be tried."""
    message: str = Field(..., min_length=1, max_length=10_000)


# ==============================================================================
# SAFETY AND GENERATION
# ==============================================================================

class SafetyValidation(APIModel):
    is_valid: bool
    safety_score: float = Field(..., ge=0, le=1)
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class EducationalContext(APIModel):
    is_educational: bool
    suggested_topics: List[str] = Field(default_factory=list)


class ValidationResponse(SafetyValidation):
    educational_context: EducationalContext


class AIRequest(APIModel):
    message: str
    provider: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


class AIResponse(APIModel):
    """
    A provider reply normalized to one shape.

    safety_score and processing_time (milliseconds) are filled in by the
    orchestrator after the reply has been checked.
    """
    content: str
    provider: str
    model: str
    tokens: Optional[int] = None
    safety_score: float = 0.0
    processing_time: int = 0


# ==============================================================================
# CHAT RESPONSES
# ==============================================================================

class ChatMetadata(APIModel):
    provider: str
    model: str
    tokens: Optional[int] = None
    safety_score: float
    processing_time: int


class ChatResponse(APIModel):
    content: str
    metadata: ChatMetadata
    session_id: str


class Pagination(APIModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class SessionRef(APIModel):
    id: str
    title: str


class MessageOut(APIModel):
    id: str
    session_id: str
    role: MessageRole
    content: str
    created_at: datetime
    provider: Optional[str] = None
    model: Optional[str] = None
    tokens: Optional[int] = None
    safety_score: Optional[float] = None
    processing_time: Optional[int] = None
    session: Optional[SessionRef] = None


class HistoryResponse(APIModel):
    messages: List[MessageOut]
    session_id: Optional[str] = None
    pagination: Pagination


class SessionOut(APIModel):
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    message_count: int = 0


class SessionsResponse(APIModel):
    sessions: List[SessionOut]
    pagination: Pagination


class ClearHistoryResponse(APIModel):
    session_id: str
    deleted_messages: int


# ==============================================================================
# PROVIDERS AND HEALTH
# ==============================================================================

class ProviderInfo(APIModel):
    name: str
    status: Literal["available", "unavailable"]
    models: List[str]


class ProvidersResponse(APIModel):
    providers: List[ProviderInfo]
    default_provider: str


class ServiceHealth(APIModel):
    database: bool
    ai_providers: Dict[str, bool]


class HealthResponse(APIModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: str
    services: ServiceHealth
    uptime: float
    version: str


class ApiResponse(BaseModel, Generic[T]):
    """The envelope around every successful response."""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
