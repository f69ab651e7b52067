from typing import Dict, List, Optional
from datetime import datetime

from backend.app.models.quiz import CamelModel

class ChatbotWithQuiz(CamelModel):
    chatbot_id: str
    title: str = "Untitled Chatbot"
    material_title: str = "Unknown Material"
    material_id: str = ""
    course_id: str = ""
    course_title: str = "Unknown Course"
    created_by: str = ""
    timestamp: Optional[str] = None
    quiz_id: Optional[str] = None # filled from the first session seen for the chatbot
    has_quiz: bool = True

class CourseInfo(CamelModel):
    course_id: str
    course_title: str
    chatbot_count: int = 0
    quiz_count: int = 0

class QuizQuestion(CamelModel):
    question_id: str
    question: str
    category: str
    difficulty: str = "medium"
    max_score: float = 100

class QuizPool(CamelModel):
    quiz_id: str
    chatbot_id: str
    questions: List[QuizQuestion] = []
    category_counts: Dict[str, int] = {}
    difficulty_breakdown: Dict[str, int] = {}
    total_questions: int = 0
    last_updated: datetime
