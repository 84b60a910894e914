# app/db/models.py

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id = Column(String(64), primary_key=True, index=True)
    title = Column(String(100), nullable=False, default="New Chat Session")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    # "metadata" is reserved on declarative classes, so the attribute name differs from the column.
    session_metadata = Column("metadata", JSON, default=dict)

    messages = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(
        String(64), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(16), nullable=False)  # "user", "assistant" or "system"
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    # Filled for assistant messages; user messages only carry safety_score.
    provider = Column(String(32))
    model = Column(String(100))
    tokens = Column(Integer)
    safety_score = Column(Float)
    processing_time = Column(Integer)  # milliseconds
    message_metadata = Column("metadata", JSON)

    session = relationship("ChatSession", back_populates="messages")
