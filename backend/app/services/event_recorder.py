import asyncio
import logging
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from backend.app.core.log_config import mask_user_id
from backend.app.core.timeutils import to_iso, utcnow
from backend.app.db.quiz_store import QuizStore
from backend.app.models.quiz import (
    QuizAnswerChangeEvent,
    QuizCloseInfo,
    QuizEventType,
    QuizStartData,
    QuizSubmissionResult,
)
from backend.app.services.reconciler import SessionReconciler

logger = logging.getLogger(__name__)

PAYLOAD_MODELS = {
    QuizEventType.STARTED: QuizStartData,
    QuizEventType.ANSWER_CHANGED: QuizAnswerChangeEvent,
    QuizEventType.SUBMITTED: QuizSubmissionResult,
    QuizEventType.CLOSED: QuizCloseInfo,
}

class QuizEventRecorder:
    """
    Writes one `quizEvents` document per widget event and drives the
    session reconciler for the events that change session state.
    """

    def __init__(self, store: Optional[QuizStore] = None, reconciler: Optional[SessionReconciler] = None):
        self.store = store or QuizStore()
        self.reconciler = reconciler or SessionReconciler(self.store)

    def _event_doc(self, event_type: QuizEventType, quiz_id: str, chatbot_id: str, user_id: str, payload: BaseModel) -> Dict[str, Any]:
        now = to_iso(utcnow())
        return {
            "quizId": quiz_id,
            "chatbotId": chatbot_id,
            "userId": user_id,
            "eventType": event_type.value,
            "timestamp": now,
            "payload": payload.model_dump(mode="json", by_alias=True),
            "createdAt": now,
        }

    async def record_event(self, event_type: Union[QuizEventType, str], payload: Union[BaseModel, Dict[str, Any]], user_id: str):
        """Dispatches a raw widget event to the matching record_* method."""
        event_type = QuizEventType(event_type)
        if isinstance(payload, dict):
            payload = PAYLOAD_MODELS[event_type].model_validate(payload)

        if event_type is QuizEventType.STARTED:
            return await self.record_start(payload, user_id)
        if event_type is QuizEventType.ANSWER_CHANGED:
            return await self.record_answer_change(payload, user_id)
        if event_type is QuizEventType.SUBMITTED:
            return await self.record_submission(payload, user_id)
        return await self.record_close(payload, user_id)

    async def record_start(self, data: QuizStartData, user_id: str) -> str:
        """
        Creates the session document and logs the `started` event concurrently.
        Returns the new session key. Only a failed session write is raised:
        every later submit depends on it, whereas the event is just history.
        """
        now = to_iso(utcnow())
        session_doc = {
            "quizId": data.quiz_id,
            "chatbotId": data.chatbot_id,
            "userId": user_id,
            "startedAt": to_iso(data.started_at),
            "completed": False,
            "difficulty": data.selection.mode,
            "selection": data.selection.model_dump(by_alias=True),
            "finalAnswers": {},
            "createdAt": now,
            "updatedAt": now,
        }
        event_doc = self._event_doc(QuizEventType.STARTED, data.quiz_id, data.chatbot_id, user_id, data)

        session_result, event_result = await asyncio.gather(
            asyncio.to_thread(self.store.insert_session, session_doc),
            asyncio.to_thread(self.store.insert_event, event_doc),
            return_exceptions=True
        )

        if isinstance(event_result, BaseException):
            logger.warning("Failed to log quiz start event for quiz=%s: %s", data.quiz_id, event_result)
        if isinstance(session_result, BaseException):
            logger.error("Failed to create quiz session for quiz=%s: %s", data.quiz_id, session_result)
            raise session_result

        logger.info(
            "Quiz started quiz=%s difficulty=%s session=%s user=%s",
            data.quiz_id, data.selection.mode, session_result, mask_user_id(user_id)
        )
        return session_result

    async def record_answer_change(self, event: QuizAnswerChangeEvent, user_id: str) -> None:
        # Fires on every keystroke; a lost write is recovered by the next change
        chatbot_id = event.chatbot_id or event.quiz_id
        try:
            doc = self._event_doc(QuizEventType.ANSWER_CHANGED, event.quiz_id, chatbot_id, user_id, event)
            await asyncio.to_thread(self.store.insert_event, doc)
            logger.debug("Answer change logged quiz=%s question=%s", event.quiz_id, event.question_id)
        except Exception as e:
            logger.warning("Failed to log answer change for quiz=%s: %s", event.quiz_id, e)

    async def record_submission(self, result: QuizSubmissionResult, user_id: str) -> str:
        """
        Completes the matching session, then logs the `submitted` event.
        A rejected submission writes no event.
        """
        session_key = await self.reconciler.complete(result, user_id)

        event_doc = self._event_doc(QuizEventType.SUBMITTED, result.quiz_id, result.chatbot_id, user_id, result)
        try:
            await asyncio.to_thread(self.store.insert_event, event_doc)
        except Exception as e:
            logger.error("Failed to log quiz submission for quiz=%s: %s", result.quiz_id, e)
            raise

        logger.info(
            "Quiz submitted quiz=%s score=%s/%s (%s%%)",
            result.quiz_id, result.summary.total_score, result.summary.total_max, result.summary.percent
        )
        return session_key

    async def record_close(self, info: QuizCloseInfo, user_id: str) -> Optional[str]:
        event_doc = self._event_doc(QuizEventType.CLOSED, info.quiz_id, info.chatbot_id, user_id, info)

        session_key, event_result = await asyncio.gather(
            self.reconciler.close(info, user_id),
            asyncio.to_thread(self.store.insert_event, event_doc),
            return_exceptions=True
        )

        if isinstance(session_key, BaseException):
            logger.error("Failed to close quiz session for quiz=%s: %s", info.quiz_id, session_key)
            raise session_key
        if isinstance(event_result, BaseException):
            logger.error("Failed to log quiz close for quiz=%s: %s", info.quiz_id, event_result)
            raise event_result

        logger.info("Quiz closed quiz=%s completed=%s", info.quiz_id, info.completed)
        return session_key
