"""
CHAT SERVICE MODULE
===================

The conversation flow behind the /chat endpoints. Owns everything that touches
the database; the AI orchestrator never stores anything itself.

SEND MESSAGE:
  1. Resolve the session id (generate a UUID if the client sent none).
  2. Validate the message. If it is blocked, log a safety event and raise
     ContentBlockedError; nothing is stored.
  3. Create the session on its first message, then store the user message.
  4. Ask AIService for a reply (fallback and reply checks happen there).
  5. Store the assistant message with provider/model/tokens/safety score/time
     and update the session's metadata and updated_at. A session cleared while
     the reply was being generated is recreated.

A reply that fails its safety check raises before step 5, so it is never stored.

HISTORY / SESSIONS:
  get_history  - newest page first from the database, returned oldest-first.
  clear_history - delete a session and all its messages.
  get_sessions - most recently active sessions with their message counts.
"""

import logging
import re
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, sessionmaker

from app.db.database import SessionLocal
from app.db.models import ChatSession, Message
from app.errors import ContentBlockedError, InvalidRequestError, SessionNotFoundError
from app.models import (
    AIRequest,
    AIResponse,
    ChatMetadata,
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    HistoryResponse,
    MessageOut,
    Pagination,
    SafetyValidation,
    SessionOut,
    SessionRef,
    SessionsResponse,
)
from app.services.ai_service import AIService
from app.services.safety_service import SafetyService

logger = logging.getLogger("EDU4AI")

# Session ids end up in URLs and logs; keep them short and plain.
SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_TITLE_STRIP_RE = re.compile(r"[^A-Za-z0-9_\s]")
DEFAULT_SESSION_TITLE = "New Chat Session"


def generate_session_title(first_message: str) -> str:
    """Short title from the first message: first 50 chars, punctuation removed, cut to 30."""
    title = _TITLE_STRIP_RE.sub("", first_message[:50].strip())[:30]
    return title or DEFAULT_SESSION_TITLE


def _pagination(total: int, limit: int, offset: int) -> Pagination:
    return Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total)


# ==============================================================================
# CHAT SERVICE CLASS
# ==============================================================================

class ChatService:
    """
    Conversation flow and persistence. Every public method opens its own
    database session, so one instance can serve all requests.
    """

    def __init__(
        self,
        ai_service: AIService,
        safety_service: SafetyService,
        session_factory: sessionmaker = SessionLocal,
    ):
        self.ai_service = ai_service
        self.safety_service = safety_service
        self.session_factory = session_factory

    @contextmanager
    def _db(self) -> Iterator[Session]:
        """Session scope: commit on success, roll back and re-raise on error, always close."""
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def resolve_session_id(session_id: Optional[str]) -> str:
        """Return session_id if it is well-formed, a new UUID if it is None; raise otherwise."""
        if session_id is None:
            return str(uuid.uuid4())
        if not SESSION_ID_PATTERN.match(session_id):
            raise InvalidRequestError(
                "Invalid session_id: use 1-64 letters, digits, '-' or '_'"
            )
        return session_id

    # ------------------------------------------------------------------------------
    # SEND MESSAGE
    # ------------------------------------------------------------------------------

    def send_message(
        self,
        request: ChatRequest,
        client_info: Optional[Dict[str, Optional[str]]] = None,
    ) -> ChatResponse:
        client_info = client_info or {}
        session_id = self.resolve_session_id(request.session_id)

        logger.info(
            f"Chat request received | session={session_id} length={len(request.message)} "
            f"provider={request.provider} ip={client_info.get('ip')}"
        )

        validation = self.safety_service.validate_content(request.message)
        if not validation.is_valid:
            logger.warning(
                f"Message blocked by safety filter | session={session_id} "
                f"score={validation.safety_score:.2f} issues={validation.issues}"
            )
            self.safety_service.log_safety_event(request.message, validation, "blocked")
            raise ContentBlockedError(validation)

        self._store_user_message(session_id, request.message, validation)

        ai_response = self.ai_service.generate_response(
            AIRequest(
                message=request.message,
                provider=request.provider,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            ),
            input_validation=validation,
        )

        message_id = self._store_assistant_message(session_id, request.message, ai_response, client_info)

        logger.info(
            f"Chat response generated successfully | session={session_id} message={message_id} "
            f"provider={ai_response.provider} tokens={ai_response.tokens} "
            f"processing_time={ai_response.processing_time}ms safety_score={ai_response.safety_score:.2f}"
        )

        return ChatResponse(
            content=ai_response.content,
            metadata=ChatMetadata(
                provider=ai_response.provider,
                model=ai_response.model,
                tokens=ai_response.tokens,
                safety_score=ai_response.safety_score,
                processing_time=ai_response.processing_time,
            ),
            session_id=session_id,
        )

    def _store_user_message(self, session_id: str, content: str, validation: SafetyValidation) -> None:
        with self._db() as db:
            chat_session = db.get(ChatSession, session_id)
            if chat_session is None:
                chat_session = ChatSession(
                    id=session_id,
                    title=generate_session_title(content),
                    session_metadata={"firstMessage": content[:100], "messageCount": 0},
                )
                db.add(chat_session)
                logger.info(f"Created chat session {session_id}")

            db.add(Message(
                session_id=session_id,
                role="user",
                content=content,
                safety_score=validation.safety_score,
            ))
            metadata = dict(chat_session.session_metadata or {})
            metadata["messageCount"] = metadata.get("messageCount", 0) + 1
            chat_session.session_metadata = metadata

    def _store_assistant_message(
        self,
        session_id: str,
        first_message: str,
        response: AIResponse,
        client_info: Dict[str, Optional[str]],
    ) -> str:
        message_id = str(uuid.uuid4())
        with self._db() as db:
            chat_session = db.get(ChatSession, session_id)
            if chat_session is None:
                # Cleared while the reply was being generated.
                logger.warning(f"Chat session {session_id} disappeared before the reply was stored; recreating it")
                chat_session = ChatSession(
                    id=session_id,
                    title=generate_session_title(first_message),
                    session_metadata={"firstMessage": first_message[:100], "messageCount": 0},
                )
                db.add(chat_session)

            db.add(Message(
                id=message_id,
                session_id=session_id,
                role="assistant",
                content=response.content,
                provider=response.provider,
                model=response.model,
                tokens=response.tokens,
                safety_score=response.safety_score,
                processing_time=response.processing_time,
                message_metadata={
                    "requestId": str(uuid.uuid4()),
                    "userAgent": client_info.get("user_agent"),
                    "ip": client_info.get("ip"),
                },
            ))
            metadata = dict(chat_session.session_metadata or {})
            metadata.setdefault("provider", response.provider)
            metadata["lastProvider"] = response.provider
            metadata["messageCount"] = metadata.get("messageCount", 0) + 1
            chat_session.session_metadata = metadata
            chat_session.updated_at = datetime.now(timezone.utc)
        return message_id

    # ------------------------------------------------------------------------------
    # HISTORY AND SESSIONS
    # ------------------------------------------------------------------------------

    def get_history(self, session_id: Optional[str] = None, limit: int = 50, offset: int = 0) -> HistoryResponse:
        with self._db() as db:
            query = db.query(Message)
            if session_id:
                query = query.filter(Message.session_id == session_id)
            total = query.count()
            rows = (
                query.options(joinedload(Message.session))
                .order_by(Message.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            # Newest page from the database, returned in chronological order.
            messages = [
                MessageOut(
                    id=m.id,
                    session_id=m.session_id,
                    role=m.role,
                    content=m.content,
                    created_at=m.created_at,
                    provider=m.provider,
                    model=m.model,
                    tokens=m.tokens,
                    safety_score=m.safety_score,
                    processing_time=m.processing_time,
                    session=SessionRef(id=m.session.id, title=m.session.title) if m.session else None,
                )
                for m in reversed(rows)
            ]

        logger.info(
            f"Chat history retrieved | session={session_id} count={len(messages)} "
            f"total={total} limit={limit} offset={offset}"
        )
        return HistoryResponse(
            messages=messages,
            session_id=session_id,
            pagination=_pagination(total, limit, offset),
        )

    def clear_history(self, session_id: str) -> ClearHistoryResponse:
        self.resolve_session_id(session_id)
        with self._db() as db:
            chat_session = db.get(ChatSession, session_id)
            if chat_session is None:
                raise SessionNotFoundError(session_id)
            deleted = (
                db.query(Message)
                .filter(Message.session_id == session_id)
                .delete(synchronize_session=False)
            )
            db.delete(chat_session)

        logger.info(f"Chat history cleared | session={session_id} deleted_messages={deleted}")
        return ClearHistoryResponse(session_id=session_id, deleted_messages=deleted)

    def get_sessions(self, limit: int = 20, offset: int = 0) -> SessionsResponse:
        with self._db() as db:
            counts = (
                db.query(Message.session_id, func.count(Message.id).label("message_count"))
                .group_by(Message.session_id)
                .subquery()
            )
            rows = (
                db.query(ChatSession, func.coalesce(counts.c.message_count, 0))
                .outerjoin(counts, ChatSession.id == counts.c.session_id)
                .order_by(ChatSession.updated_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            total = db.query(ChatSession).count()
            sessions = [
                SessionOut(
                    id=s.id,
                    title=s.title,
                    created_at=s.created_at,
                    updated_at=s.updated_at,
                    metadata=s.session_metadata or {},
                    message_count=count,
                )
                for s, count in rows
            ]

        logger.info(f"Sessions retrieved | count={len(sessions)} total={total} limit={limit} offset={offset}")
        return SessionsResponse(sessions=sessions, pagination=_pagination(total, limit, offset))
