from fastapi import APIRouter, Depends, HTTPException, Query
from backend.app.core.config import settings
from backend.app.models.analytics import QuizAnalytics, QuizStatistics
from backend.app.models.session import QuizFilters
from backend.app.api.endpoints.sessions import session_filters
from backend.app.services.analytics import aggregate
from backend.app.services.session_query import QuizSessionService

router = APIRouter()
session_service = QuizSessionService()

@router.get("/analytics", response_model=QuizAnalytics)
async def get_quiz_analytics(
    filters: QuizFilters = Depends(session_filters),
    page_size: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
):
    """
    Completion rate, scores, difficulty/category breakdowns and activity
    buckets for the newest `page_size` sessions matching the filters.
    """
    try:
        page = await session_service.query(filters, page_size)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return aggregate(page.sessions)

@router.get("/users/{user_id}/statistics", response_model=QuizStatistics)
async def get_user_statistics(user_id: str):
    try:
        return await session_service.user_statistics(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
