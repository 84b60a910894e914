"""
SERVICES PACKAGE
=================

Business logic lives here. The API layer (app.main) calls these services;
they don't handle HTTP, only safety checks, provider calls, and chat data.

MODULES:
    safety_service - Keyword/pattern safety scoring of messages and replies
    providers      - OpenAI / Anthropic / Google clients behind one interface
    ai_service     - Orchestrator: check, call provider (with one fallback), check reply
    chat_service   - Sessions, message storage, history
"""
