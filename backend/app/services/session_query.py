import asyncio
import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from backend.app.core.config import settings
from backend.app.core.timeutils import format_duration, seconds_between, to_iso, utcnow
from backend.app.db.quiz_store import QuizStore
from backend.app.models.analytics import QuizStatistics
from backend.app.models.session import (
    EnhancedQuizSession,
    ExportQuiz,
    ExportStudent,
    QuizEvent,
    QuizFilters,
    QuizSession,
    QuizSessionExport,
    SessionPage,
)
from backend.app.services.analytics import user_statistics

logger = logging.getLogger(__name__)

class SessionNotFoundError(LookupError):
    pass

def user_label(user_id: str) -> str:
    """Short, stable display form of a user id (no profile lookup exists)."""
    if len(user_id) > 12:
        return f"{user_id[:8]}...{user_id[-4:]}"
    return user_id[:12]

def enhance_session(doc: Dict[str, Any]) -> EnhancedQuizSession:
    session = QuizSession.model_validate(doc)
    label = user_label(session.user_id)
    time_spent = seconds_between(session.started_at, session.submitted_at)

    return EnhancedQuizSession(
        **session.model_dump(),
        user_email=label,
        user_name=f"User {label}",
        questions_attempted=len(session.final_answers),
        answers=dict(session.final_answers),
        time_spent=time_spent,
        time_spent_formatted=format_duration(time_spent) if time_spent is not None else None,
    )

def encode_cursor(started_at: str, key: str) -> str:
    raw = json.dumps([started_at, key]).encode()
    return base64.urlsafe_b64encode(raw).decode()

def decode_cursor(cursor: str) -> Tuple[str, str]:
    try:
        started_at, key = json.loads(base64.urlsafe_b64decode(cursor.encode()))
    except (binascii.Error, ValueError, TypeError) as e:
        raise ValueError(f"Invalid pagination cursor: {cursor!r}") from e
    return str(started_at), str(key)

def filters_to_criteria(filters: QuizFilters) -> Dict[str, Any]:
    criteria: Dict[str, Any] = {
        "chatbotId": filters.chatbot_id,
        "userId": filters.user_id,
    }
    if filters.difficulty != "all":
        criteria["difficulty"] = filters.difficulty
    if filters.completion_status != "all":
        criteria["completed"] = filters.completion_status == "completed"
    if filters.date_range is not None:
        criteria["startedFrom"] = to_iso(filters.date_range.start)
        criteria["startedTo"] = to_iso(filters.date_range.end)
    return criteria

class QuizSessionService:
    """Read side of the quiz subsystem: filtered session pages, export, event log."""

    def __init__(self, store: Optional[QuizStore] = None):
        self.store = store or QuizStore()

    async def query(self, filters: Optional[QuizFilters] = None, page_size: Optional[int] = None, cursor: Optional[str] = None) -> SessionPage:
        """
        Loads one page of sessions, newest `startedAt` first.
        `cursor` is the token returned with the previous page.
        """
        filters = filters or QuizFilters()
        page_size = page_size or settings.DEFAULT_PAGE_SIZE
        if page_size < 1:
            raise ValueError("page_size must be at least 1")

        after = decode_cursor(cursor) if cursor else None
        docs = await asyncio.to_thread(self.store.query_sessions, filters_to_criteria(filters), page_size, after)

        sessions = [enhance_session(doc) for doc in docs]
        next_cursor = encode_cursor(docs[-1]["startedAt"], docs[-1]["_key"]) if docs else None

        logger.info("Loaded %d quiz sessions (filters=%s)", len(sessions), filters.model_dump(exclude_none=True))
        return SessionPage(sessions=sessions, has_more=len(docs) == page_size, cursor=next_cursor)

    async def get_session(self, session_id: str) -> EnhancedQuizSession:
        doc = await asyncio.to_thread(self.store.get_session, session_id)
        if doc is None:
            raise SessionNotFoundError(f"Quiz session {session_id} not found")
        return enhance_session(doc)

    async def export_session(self, session_id: str) -> QuizSessionExport:
        session = await self.get_session(session_id)
        return QuizSessionExport(
            session_id=session.id,
            quiz_id=session.quiz_id,
            chatbot_id=session.chatbot_id,
            student=ExportStudent(user_id=session.user_id, name=session.user_name, email=session.user_email),
            quiz=ExportQuiz(
                difficulty=session.difficulty,
                started_at=session.started_at,
                submitted_at=session.submitted_at,
                completed=session.completed,
                time_spent=session.time_spent,
            ),
            answers=session.final_answers,
            summary=session.summary,
            exported_at=utcnow(),
        )

    async def list_events(self, quiz_id: Optional[str] = None) -> List[QuizEvent]:
        docs = await asyncio.to_thread(self.store.list_events, quiz_id)
        return [QuizEvent.model_validate(doc) for doc in docs]

    async def user_statistics(self, user_id: str) -> QuizStatistics:
        docs = await asyncio.to_thread(self.store.sessions_for_user, user_id)
        return user_statistics([QuizSession.model_validate(doc) for doc in docs])
