import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException
from backend.app.models.quiz import (
    QuizAnswerChangeEvent,
    QuizCloseInfo,
    QuizErrorPhase,
    QuizErrorReport,
    QuizStartData,
    QuizSubmissionResult,
    describe_quiz_error,
)
from backend.app.models.session import QuizEvent
from backend.app.services.event_recorder import QuizEventRecorder
from backend.app.services.reconciler import SessionReconciliationError
from backend.app.services.session_query import QuizSessionService

logger = logging.getLogger(__name__)

router = APIRouter()
recorder = QuizEventRecorder()
session_service = QuizSessionService(recorder.store)

@router.post("/start")
async def quiz_started(data: QuizStartData, user_id: str = Header(alias="X-User-Id")):
    """
    Records a quiz start and opens its session.
    The widget is only mounted after this returns.
    """
    try:
        session_id = await recorder.record_start(data, user_id)
        return {"status": "started", "sessionId": session_id}
    except Exception as e:
        raise HTTPException(status_code=500, detail=describe_quiz_error(e, QuizErrorPhase.INITIALIZATION))

@router.post("/answer", status_code=202)
async def answer_changed(event: QuizAnswerChangeEvent, background_tasks: BackgroundTasks, user_id: str = Header(alias="X-User-Id")):
    """
    Logs an answer change in the background.
    Always accepted: persistence failures are logged, never reported.
    """
    background_tasks.add_task(recorder.record_answer_change, event, user_id)
    return {"status": "accepted"}

@router.post("/submit")
async def quiz_submitted(result: QuizSubmissionResult, user_id: str = Header(alias="X-User-Id")):
    try:
        session_id = await recorder.record_submission(result, user_id)
        return {"status": "completed", "sessionId": session_id}
    except SessionReconciliationError as e:
        raise HTTPException(status_code=409, detail=describe_quiz_error(e, QuizErrorPhase.SUBMITTING))
    except Exception as e:
        raise HTTPException(status_code=500, detail=describe_quiz_error(e, QuizErrorPhase.SUBMITTING))

@router.post("/close")
async def quiz_closed(info: QuizCloseInfo, user_id: str = Header(alias="X-User-Id")):
    try:
        session_id = await recorder.record_close(info, user_id)
        return {"status": "closed", "sessionId": session_id}
    except Exception as e:
        raise HTTPException(status_code=500, detail=describe_quiz_error(e, QuizErrorPhase.SUBMITTING))

@router.post("/error")
async def quiz_error(report: QuizErrorReport):
    """
    Receives a widget-side failure (loading, submitting, initialization)
    and returns the message to show the user.
    """
    logger.error("Quiz widget error during %s: %s", report.phase.value, report.message)
    return {"message": describe_quiz_error(report.message, report.phase)}

@router.get("", response_model=List[QuizEvent])
async def list_quiz_events(quiz_id: Optional[str] = None):
    """
    Event log. Oldest first for a single quiz, newest first otherwise.
    """
    try:
        return await session_service.list_events(quiz_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
