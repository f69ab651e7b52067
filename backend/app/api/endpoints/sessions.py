from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from backend.app.core.config import settings
from backend.app.models.session import DateRange, QuizFilters, SessionPage
from backend.app.services.session_query import QuizSessionService

router = APIRouter()
session_service = QuizSessionService()

def session_filters(
    chatbot_id: Optional[str] = None,
    difficulty: Literal["all", "easy", "medium", "hard"] = "all",
    completion_status: Literal["all", "completed", "incomplete"] = "all",
    user_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> QuizFilters:
    """Query-string form of QuizFilters, shared by the session and analytics routes."""
    if (start is None) != (end is None):
        raise HTTPException(status_code=400, detail="Date range needs both 'start' and 'end'")
    date_range = DateRange(start=start, end=end) if start is not None else None
    return QuizFilters(
        chatbot_id=chatbot_id,
        difficulty=difficulty,
        completion_status=completion_status,
        user_id=user_id,
        date_range=date_range,
    )

@router.get("", response_model=SessionPage)
async def list_quiz_sessions(
    filters: QuizFilters = Depends(session_filters),
    page_size: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    cursor: Optional[str] = None,
):
    """
    One page of sessions, newest first.
    Pass the returned `cursor` back to fetch the next page.
    """
    try:
        return await session_service.query(filters, page_size, cursor)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
