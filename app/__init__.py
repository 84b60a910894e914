"""
EDU4.AI APPLICATION PACKAGE
===========================

This directory is the main Python package for the Edu4.AI tutor backend.

  from app.main import app
  from app.models import ChatRequest
  from app.services.chat_service import ChatService

FILE STRUCTURE:
  app/
    __init__.py   - This file; marks 'app' as a package.
    main.py       - FastAPI app and all HTTP endpoints (/api/v1/chat, /health, /validate, ...).
    models.py     - Pydantic models for API requests, responses, and service results.
    errors.py     - Exception types and the JSON error payload each one renders.
    db/           - SQLAlchemy engine, session factory, and ORM tables.
    services/     - Business logic: safety scoring, provider clients, orchestration, chat storage.
    utils/        - Helpers: single-fallback call, timestamps/uptime.
"""
