# app/db/database.py

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL

logger = logging.getLogger("EDU4AI")

Base = declarative_base()

# Bound by init_db() at startup; tests bind their own engine the same way.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)
engine: Optional[Engine] = None


def create_db_engine(database_url: str = DATABASE_URL) -> Engine:
    """Create an engine; SQLite gets thread-safe settings and in-memory SQLite a single shared connection."""
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def init_db(database_url: str = DATABASE_URL) -> sessionmaker:
    """Create the engine, create missing tables, and bind SessionLocal to it."""
    global engine
    # Importing the models registers their tables on Base.metadata.
    from app.db import models  # noqa: F401

    engine = create_db_engine(database_url)
    Base.metadata.create_all(bind=engine)
    SessionLocal.configure(bind=engine)
    logger.info(f"Database initialized ({engine.url.render_as_string(hide_password=True)})")
    return SessionLocal


def check_connection(db_engine: Optional[Engine] = None) -> bool:
    """Run SELECT 1; False (and a warning) if the database cannot be reached."""
    db_engine = db_engine or engine
    if db_engine is None:
        return False
    try:
        with db_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


def close_db() -> None:
    if engine is not None:
        engine.dispose()
        logger.info("Database connections closed")
