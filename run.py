"""
RUN SCRIPT - Start the Edu4.AI server
=====================================

PURPOSE:
  Single entry point to start the backend.

WHAT IT DOES:
  - Imports the FastAPI app from app.main.
  - Runs it with uvicorn on HOST:PORT from config (default 0.0.0.0:8000).
  - reload is on in the development environment so code changes restart the server.

USAGE:
  python run.py

  API: http://localhost:8000/api/v1
  API docs: http://localhost:8000/docs

NOTE:
  Before running, set at least one of OPENAI_API_KEY, ANTHROPIC_API_KEY or
  GOOGLE_API_KEY in .env. DATABASE_URL defaults to a local SQLite file.
"""

import uvicorn

from config import ENVIRONMENT, HOST, PORT

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",                      # String path to the FastAPI app instance (module:variable).
        host=HOST,                           # 0.0.0.0 listens on all network interfaces.
        port=PORT,
        reload=ENVIRONMENT == "development"  # Auto-restart when .py files change.
    )
