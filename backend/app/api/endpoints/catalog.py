from typing import List

from fastapi import APIRouter, HTTPException
from backend.app.models.chatbot import ChatbotWithQuiz, CourseInfo, QuizPool
from backend.app.services.catalog import QuizCatalogService

router = APIRouter()
catalog = QuizCatalogService()

@router.get("/chatbots", response_model=List[ChatbotWithQuiz])
async def list_chatbots():
    """
    All chatbots, newest first, with the quiz id seen in their sessions.
    """
    try:
        return await catalog.load_chatbots()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/courses", response_model=List[CourseInfo])
async def list_courses():
    """
    Courses derived from the chatbot list with chatbot and quiz counts.
    """
    try:
        return await catalog.load_courses()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/chatbots/{chatbot_id}/sessions/count")
async def count_chatbot_sessions(chatbot_id: str):
    return {"chatbotId": chatbot_id, "count": await catalog.count_sessions(chatbot_id)}

@router.get("/pools/{quiz_id}", response_model=QuizPool)
async def get_quiz_pool(quiz_id: str):
    try:
        return await catalog.load_quiz_pool(quiz_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
