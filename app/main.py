"""
EDU4.AI MAIN API
================

This module defines the FastAPI application and all HTTP endpoints of the
Edu4.AI tutor backend. A frontend (or the console client in test.py) sends
student messages here; the backend checks them, asks an AI provider for a
tutoring reply, checks the reply, and stores the conversation.

ENDPOINTS (prefix /api/v1):
  POST   /chat                    - Send a message, get a checked tutor reply + metadata.
  GET    /chat/history            - Stored messages (optionally for one session), paginated.
  DELETE /chat/history/{id}       - Delete a session and all its messages.
  GET    /chat/sessions           - Chat sessions, most recently active first.
  GET    /health                  - Database and AI provider status.
  POST   /validate                - Run the safety check on a message without sending it.
  GET    /providers               - Which AI providers are configured.
  GET    /ping                    - Liveness check (no prefix, no dependencies).

RESPONSES:
  Success: {"success": true, "data": {...}}
  Error:   {"success": false, "message": "...", ...}   (400 / 404 / 429 / 500 / 503)

STARTUP:
  The lifespan function validates config, connects the database, and builds the
  Safety, AI and Chat services. Any failure there is fatal: the error is logged
  and re-raised, so the server does not start half-initialized.
"""

import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.db.database import check_connection, close_db, init_db
from app.errors import AppError, ServiceUnavailableError
from app.models import (
    ApiResponse,
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    HealthResponse,
    HistoryResponse,
    ProvidersResponse,
    ServiceHealth,
    SessionsResponse,
    ValidationRequest,
    ValidationResponse,
)
from app.services.ai_service import AIService
from app.services.chat_service import ChatService
from app.services.providers import build_providers
from app.services.safety_service import SafetyService
from app.utils.time_info import get_timestamp, get_uptime_seconds
from config import (
    API_VERSION,
    APP_VERSION,
    CORS_ORIGINS,
    ENVIRONMENT,
    HOST,
    LOG_FILE,
    LOG_LEVEL,
    PORT,
    SUPPORTED_AI_PROVIDERS,
    validate_config,
)


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
def setup_logging() -> None:
    """Console logging always; a rotating file (10 MB x 5) as well when LOG_FILE is set."""
    handlers = [logging.StreamHandler()]
    if LOG_FILE:
        Path(LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(LOG_FILE, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
        )
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )


setup_logging()
logger = logging.getLogger("EDU4AI")


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCES
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and used by all route handlers.
safety_service: Optional[SafetyService] = None
ai_service: Optional[AIService] = None
chat_service: Optional[ChatService] = None


def print_title():
    """Print the startup banner to the console."""
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"
    RESET = "\033[0m"
    print(f"\n{BOLD}{CYAN}  ===  E D U 4 . A I  ==={RESET}\n  {WHITE}Safe AI tutoring backend{RESET}\n")


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    STARTUP (in this order, because each step needs the previous one):
      1. validate_config(): fail fast on an unknown default provider or bad threshold.
      2. init_db(): create the engine and tables, then check the connection.
      3. SafetyService, AIService (with all provider clients), ChatService.
    SHUTDOWN: dispose of the database engine.
    """
    global safety_service, ai_service, chat_service

    print_title()
    logger.info("=" * 60)
    logger.info(f"Edu4.AI - Starting Up ({ENVIRONMENT})...")
    logger.info("=" * 60)

    try:
        validate_config()

        logger.info("Initializing database...")
        init_db()
        if not check_connection():
            raise RuntimeError("Database connection check failed")
        logger.info("Database connected successfully")

        safety_service = SafetyService()
        ai_service = AIService(build_providers(), safety_service)
        chat_service = ChatService(ai_service, safety_service)

        available = [p.name for p in ai_service.available_providers() if p.status == "available"]
        logger.info("=" * 60)
        logger.info(f"Default provider: {ai_service.default_provider}")
        logger.info(f"Available providers: {', '.join(available) or 'none'}")
        logger.info(f"API: http://localhost:{PORT}/api/{API_VERSION}")
        logger.info(f"Docs: http://localhost:{PORT}/docs")
        logger.info("=" * 60)
    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Edu4.AI...")
    close_db()
    logger.info("All services disconnected. Goodbye!")


# -------------------------------------------------------------------------
# FASTAPI APP AND CORS
# -------------------------------------------------------------------------
app = FastAPI(
    title="Edu4.AI API",
    description="Safe AI tutoring chat backend",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# -------------------------------------------------------------------------
# ERROR HANDLERS
# -------------------------------------------------------------------------
# Every error leaves the API as {"success": false, "message": ...}.

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.status_code}): {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request data for {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Invalid request data",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "Endpoint not found", "path": request.url.path},
        )
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def _require(service, name: str):
    """Return service, or raise 503 if startup has not created it."""
    if service is None:
        raise ServiceUnavailableError(f"{name} not initialized")
    return service


# =========================================================================
# UNPREFIXED ENDPOINTS
# =========================================================================

@app.get("/")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    prefix = f"/api/{API_VERSION}"
    return {
        "message": "Edu4.AI API",
        "version": APP_VERSION,
        "endpoints": {
            f"{prefix}/chat": "Send a message to the tutor",
            f"{prefix}/chat/history": "Get chat history",
            f"{prefix}/chat/history/{{sessionId}}": "Delete a chat session",
            f"{prefix}/chat/sessions": "List chat sessions",
            f"{prefix}/health": "System health check",
            f"{prefix}/validate": "Check a message against the safety filter",
            f"{prefix}/providers": "List AI providers",
            "/ping": "Liveness check",
        },
    }


@app.get("/ping")
async def ping():
    return {"message": "pong", "timestamp": get_timestamp()}


# =========================================================================
# API ENDPOINTS
# =========================================================================
# Handlers that call providers or the database are plain functions so FastAPI
# runs them in its thread pool instead of blocking the event loop.

api = APIRouter(prefix=f"/api/{API_VERSION}")


@api.post("/chat", response_model=ApiResponse[ChatResponse])
def chat(body: ChatRequest, request: Request):
    """
    Send a message to the tutor.

    REQUEST BODY:
    {
        "message": "Can you explain how photosynthesis works?",
        "sessionId": "optional-session-id",
        "provider": "anthropic",          (optional: openai | anthropic | google)
        "maxTokens": 500,                 (optional, 1-4000)
        "temperature": 0.7                (optional, 0-2)
    }

    RESPONSE:
    {
        "success": true,
        "data": {
            "content": "...",
            "metadata": {"provider": "...", "model": "...", "tokens": 123,
                         "safetyScore": 1.0, "processingTime": 850},
            "sessionId": "..."
        }
    }

    A message that fails the safety check returns 400 with issues and suggestions.
    A reply that fails it returns 500 and is not stored.
    """
    service = _require(chat_service, "Chat service")
    client_info = {
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
    try:
        result = service.send_message(body, client_info)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error processing chat: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error processing chat: {e}")
    return ApiResponse(data=result)


@api.get("/chat/history", response_model=ApiResponse[HistoryResponse])
def chat_history(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Stored messages in chronological order; all sessions unless sessionId is given."""
    service = _require(chat_service, "Chat service")
    try:
        result = service.get_history(session_id=session_id, limit=limit, offset=offset)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to retrieve chat history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve chat history")
    return ApiResponse(data=result)


@api.delete("/chat/history/{session_id}", response_model=ApiResponse[ClearHistoryResponse])
def clear_chat_history(session_id: str):
    service = _require(chat_service, "Chat service")
    try:
        result = service.clear_history(session_id)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to clear chat history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to clear chat history")
    return ApiResponse(data=result, message="Chat history cleared successfully")


@api.get("/chat/sessions", response_model=ApiResponse[SessionsResponse])
def chat_sessions(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    service = _require(chat_service, "Chat service")
    try:
        result = service.get_sessions(limit=limit, offset=offset)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Failed to retrieve sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve sessions")
    return ApiResponse(data=result)


@api.get("/health", response_model=ApiResponse[HealthResponse])
def health(response: Response):
    """
    Database and provider status.

    healthy   - database reachable and at least one provider answered
    degraded  - database reachable but no provider answered
    unhealthy - database unreachable (HTTP 503)
    """
    database_ok = check_connection()
    if ai_service is not None:
        provider_health = ai_service.health_check()
    else:
        provider_health = {name: False for name in SUPPORTED_AI_PROVIDERS}

    if not database_ok:
        status = "unhealthy"
        response.status_code = 503
    elif any(provider_health.values()):
        status = "healthy"
    else:
        status = "degraded"

    return ApiResponse(
        success=status != "unhealthy",
        data=HealthResponse(
            status=status,
            timestamp=get_timestamp(),
            services=ServiceHealth(database=database_ok, ai_providers=provider_health),
            uptime=get_uptime_seconds(),
            version=APP_VERSION,
        ),
    )


@api.post("/validate", response_model=ApiResponse[ValidationResponse])
def validate_message(body: ValidationRequest):
    """Run the safety check and the educational-context check on a message without sending it."""
    service = _require(safety_service, "Safety service")
    validation = service.validate_content(body.message)
    service.log_safety_event(body.message, validation, "validated")
    return ApiResponse(
        data=ValidationResponse(
            **validation.model_dump(),
            educational_context=service.validate_educational_context(body.message),
        )
    )


@api.get("/providers", response_model=ApiResponse[ProvidersResponse])
def providers():
    service = _require(ai_service, "AI service")
    return ApiResponse(
        data=ProvidersResponse(
            providers=service.available_providers(),
            default_provider=service.default_provider,
        )
    )


app.include_router(api)


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m app.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py); used if someone does python -m app.main"""
    uvicorn.run(
        "app.main:app",
        host=HOST,
        port=PORT,
        reload=ENVIRONMENT == "development",
        log_level="info",
    )


if __name__ == "__main__":
    run()
