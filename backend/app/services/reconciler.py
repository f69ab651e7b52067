"""
Session Reconciler.

The quiz widget never sends a session id with `submitted` or `closed`, only the
quiz id, so every such event has to be matched back to the session document
created by its `started` event:

1. Submit: the newest *open* session for (quizId, userId) created within the
   lookback window. No match is a consistency error; a session is never
   fabricated, since a start-and-end-at-once session would skew analytics.
2. Close: the newest session for (quizId, userId), open or not. No match is
   logged and ignored; stale clients can close quizzes the server never saw.
"""
import asyncio
import datetime
import logging
from typing import Optional

from backend.app.core.config import settings
from backend.app.core.log_config import mask_user_id
from backend.app.core.timeutils import to_iso, utcnow
from backend.app.db.quiz_store import QuizStore
from backend.app.models.quiz import QuizCloseInfo, QuizSubmissionResult

logger = logging.getLogger(__name__)

class SessionReconciliationError(LookupError):
    """A submission could not be matched to an open session."""

class SessionReconciler:
    def __init__(self, store: Optional[QuizStore] = None, lookback_minutes: Optional[int] = None):
        self.store = store or QuizStore()
        if lookback_minutes is None:
            lookback_minutes = settings.SESSION_LOOKBACK_MINUTES
        self.lookback = datetime.timedelta(minutes=lookback_minutes)

    async def complete(self, result: QuizSubmissionResult, user_id: str) -> str:
        """
        Moves the matching open session to completed. Returns its key.
        Raises SessionReconciliationError when no open session matches.
        """
        now = utcnow()
        since = to_iso(now - self.lookback)

        session = await asyncio.to_thread(self.store.find_open_session, result.quiz_id, user_id, since)
        if session is None:
            logger.error(
                "No open session for submission quiz=%s user=%s submitted_at=%s",
                result.quiz_id, mask_user_id(user_id), result.submitted_at
            )
            raise SessionReconciliationError(
                f"No matching quiz session found for submission of quiz {result.quiz_id}"
            )

        fields = {
            "submittedAt": to_iso(result.submitted_at),
            "finalAnswers": dict(result.answers),
            "summary": result.summary.model_dump(exclude_none=True),
            "updatedAt": to_iso(now),
        }
        updated = await asyncio.to_thread(self.store.complete_session, session["_key"], fields)
        if not updated:
            # Completed by a concurrent close between lookup and update
            raise SessionReconciliationError(f"Quiz session {session['_key']} is already completed")

        logger.info(
            "Completed quiz session %s quiz=%s difficulty=%s score=%s/%s user=%s",
            session["_key"], result.quiz_id, session.get("difficulty"),
            result.summary.total_score, result.summary.total_max, mask_user_id(user_id)
        )
        return session["_key"]

    async def close(self, info: QuizCloseInfo, user_id: str) -> Optional[str]:
        """Stamps closedAt on the newest matching session. Returns its key, or None if none exists."""
        session = await asyncio.to_thread(self.store.find_latest_session, info.quiz_id, user_id)
        if session is None:
            logger.warning("No session to close for quiz=%s user=%s", info.quiz_id, mask_user_id(user_id))
            return None

        key = session["_key"]
        now = to_iso(utcnow())
        closed_at = to_iso(info.closed_at)

        if info.completed and info.summary is not None and not session.get("completed"):
            completed = await asyncio.to_thread(self.store.complete_session, key, {
                "closedAt": closed_at,
                "submittedAt": closed_at,
                "finalAnswers": dict(info.answers),
                "summary": info.summary.model_dump(exclude_none=True),
                "updatedAt": now,
            })
            if completed:
                logger.info("Closed and completed quiz session %s", key)
                return key

        await asyncio.to_thread(self.store.update_session, key, {"closedAt": closed_at, "updatedAt": now})
        logger.info("Closed quiz session %s (completed=%s)", key, session.get("completed", False))
        return key
