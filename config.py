"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all Edu4.AI backend settings: provider API keys, model
  names, safety thresholds, database URL, logging, and the tutor system prompt.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so API keys stay out of code).
  - Creates the database/ folder used by the default SQLite database.
  - Exposes OPENAI_API_KEY, ANTHROPIC_API_KEY, GOOGLE_API_KEY and their model names.
  - Defines the safety settings: minimum score, blocked keywords, educational topics.
  - Holds the educational tutor system prompt injected into every provider call.
  - validate_config() is called once at startup and fails fast on bad settings.

USAGE:
  Import what you need: `from config import DEFAULT_AI_PROVIDER, MIN_SAFETY_SCORE`
  All services import from here so behaviour is consistent.
"""

import os
import logging
from pathlib import Path
from typing import List
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logger = logging.getLogger("EDU4AI")


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


def _get_int(key: str, default: int) -> int:
    """Read an integer env var; empty or missing values fall back to default."""
    value = os.getenv(key, "").strip()
    return int(value) if value else default


def _get_bool(key: str, default: bool) -> bool:
    """Read a boolean env var ("true"/"false", case-insensitive)."""
    value = os.getenv(key, "").strip()
    return value.lower() == "true" if value else default


def _get_list(key: str, default: List[str]) -> List[str]:
    """Read a comma-separated env var into a list of non-empty, stripped items."""
    value = os.getenv(key, "").strip()
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


# -----------------------------------------------------------------------------
# BASE PATH
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent

# The default SQLite database lives here; created so the app can run without setup.
DATA_DIR = BASE_DIR / "database"
DATA_DIR.mkdir(parents=True, exist_ok=True)

# ============================================================================
# SERVER
# ============================================================================
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _get_int("PORT", 8000)
API_VERSION = os.getenv("API_VERSION", "v1")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

# Origins allowed to call the API from a browser (the Next.js frontend by default).
CORS_ORIGINS = _get_list("CORS_ORIGINS", ["http://localhost:3000"])

# ============================================================================
# DATABASE
# ============================================================================
# Any SQLAlchemy URL works (postgresql+psycopg://..., sqlite:///...).
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'edu4ai.db'}")

# ============================================================================
# AI PROVIDERS
# ============================================================================
# A provider is usable only if its key is set. Requests may pick a provider;
# if that provider fails, the request is retried once against the default.
SUPPORTED_AI_PROVIDERS = ("openai", "anthropic", "google")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "").strip()
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "").strip()

DEFAULT_AI_PROVIDER = os.getenv("DEFAULT_AI_PROVIDER", "openai").strip().lower()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-latest")
GOOGLE_MODEL = os.getenv("GOOGLE_MODEL", "gemini-2.0-flash")

MAX_TOKENS_PER_REQUEST = _get_int("MAX_TOKENS_PER_REQUEST", 4000)
DEFAULT_TEMPERATURE = 0.7

# ============================================================================
# SAFETY
# ============================================================================
# MIN_SAFETY_SCORE is given as a percentage in the environment (70 -> 0.7).
MIN_SAFETY_SCORE = _get_int("MIN_SAFETY_SCORE", 70) / 100

# When true, any recorded issue makes a message invalid regardless of its score.
# When false, only the score is compared with MIN_SAFETY_SCORE.
SAFETY_STRICT_ISSUES = _get_bool("SAFETY_STRICT_ISSUES", True)

# Messages longer than this lose points and are flagged as too long.
MAX_SAFE_CONTENT_LENGTH = 2000

BLOCKED_KEYWORDS = _get_list("BLOCKED_KEYWORDS", ["inappropriate", "harmful", "dangerous"])
EDUCATIONAL_TOPICS = _get_list(
    "EDUCATIONAL_TOPICS",
    ["math", "science", "literature", "history", "programming", "language"],
)

# ============================================================================
# LOGGING
# ============================================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Empty means console only; otherwise a rotating log file is written as well.
LOG_FILE = os.getenv("LOG_FILE", "").strip()

# ============================================================================
# TUTOR PERSONALITY CONFIGURATION
# ============================================================================
# Sent as the system message to every provider so all three behave the same way.

ASSISTANT_NAME = (os.getenv("ASSISTANT_NAME", "").strip() or "Edu4.AI")

_EDUCATIONAL_SYSTEM_PROMPT_BASE = """You are {assistant_name}, an expert AI tutor designed to help students learn safely and effectively. Your role is to:

1. Educational Focus: Only respond to educational queries related to academic subjects like mathematics, science, literature, history, programming, languages, and other learning topics.

2. Safe Learning Environment:
- Never provide answers to homework assignments directly
- Instead, guide students through problem-solving steps
- Encourage critical thinking and understanding
- Ask clarifying questions to assess student knowledge

3. Age-Appropriate Content:
- Keep all responses appropriate for students
- Use clear, understandable language
- Avoid complex jargon unless necessary for the subject

4. Encouraging Tone:
- Be supportive and encouraging
- Celebrate learning progress
- Help students overcome learning challenges
- Build confidence in their abilities

5. Safety Guidelines:
- Refuse to help with dangerous, harmful, or inappropriate content
- Redirect off-topic conversations back to educational matters
- Report if students seem to be in distress or danger

6. Teaching Methodology:
- Use examples and analogies to explain concepts
- Break down complex topics into manageable parts
- Provide practice problems when appropriate
- Suggest additional resources for deeper learning

Remember: Your goal is to facilitate learning, not to do the learning for the student. Always encourage understanding over memorization."""

EDUCATIONAL_SYSTEM_PROMPT = _EDUCATIONAL_SYSTEM_PROMPT_BASE.format(assistant_name=ASSISTANT_NAME)


def validate_config() -> None:
    """
    Check settings that would otherwise only fail on the first request.

    Raises ValueError for an unknown DEFAULT_AI_PROVIDER or a MIN_SAFETY_SCORE
    outside 0-100. Logs a warning (but does not fail) when no provider key is set,
    so the API can still serve history, validation and health endpoints.
    """
    if DEFAULT_AI_PROVIDER not in SUPPORTED_AI_PROVIDERS:
        raise ValueError(
            f"DEFAULT_AI_PROVIDER must be one of {', '.join(SUPPORTED_AI_PROVIDERS)}, "
            f"got '{DEFAULT_AI_PROVIDER}'"
        )
    if not 0 <= MIN_SAFETY_SCORE <= 1:
        raise ValueError("MIN_SAFETY_SCORE must be between 0 and 100")
    if not (OPENAI_API_KEY or ANTHROPIC_API_KEY or GOOGLE_API_KEY):
        logger.warning("No AI provider API keys configured. AI features will not work.")
