import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from backend.app.core.config import settings
from backend.app.core.timeutils import utcnow
from backend.app.db.quiz_store import QuizStore
from backend.app.models.chatbot import ChatbotWithQuiz, CourseInfo, QuizPool, QuizQuestion
from backend.app.models.quiz import DIFFICULTIES

logger = logging.getLogger(__name__)

def chatbot_from_doc(doc: Dict) -> ChatbotWithQuiz:
    course = doc.get("courseId") or {}
    material = doc.get("material") or {}
    return ChatbotWithQuiz(
        chatbot_id=doc["chatbotId"],
        title=doc.get("title") or "Untitled Chatbot",
        material_title=material.get("title") or "Unknown Material",
        material_id=material.get("id") or "",
        course_id=course.get("id") or "",
        course_title=course.get("title") or "Unknown Course",
        created_by=doc.get("createdBy") or "",
        timestamp=doc.get("timestamp") or utcnow().isoformat(),
    )

def fold_courses(chatbots: Iterable[ChatbotWithQuiz]) -> List[CourseInfo]:
    """Derives the course list from the chatbot list, sorted by course title."""
    courses: Dict[str, CourseInfo] = {}
    for chatbot in chatbots:
        course = courses.setdefault(
            chatbot.course_id,
            CourseInfo(course_id=chatbot.course_id, course_title=chatbot.course_title)
        )
        course.chatbot_count += 1
        if chatbot.quiz_id:
            course.quiz_count += 1
    return sorted(courses.values(), key=lambda c: c.course_title.lower())

def _question_text(answer: str) -> str:
    if not answer:
        return "Question text not available"
    words = answer.split()
    suffix = "..." if len(words) > 10 else ""
    return f"Question about: {' '.join(words[:10])}{suffix}"

class QuizCatalogService:
    """Chatbots that host quizzes, and the question pools observed for each quiz."""

    def __init__(self, store: Optional[QuizStore] = None):
        self.store = store or QuizStore()

    async def load_chatbots(self) -> List[ChatbotWithQuiz]:
        docs = await asyncio.to_thread(self.store.list_chatbots)
        chatbots = [chatbot_from_doc(doc) for doc in docs]

        for chatbot in chatbots:
            try:
                chatbot.quiz_id = await asyncio.to_thread(self.store.first_quiz_id, chatbot.chatbot_id)
            except Exception as e:
                logger.warning("Could not fetch quiz id for chatbot %s: %s", chatbot.chatbot_id, e)
                chatbot.quiz_id = None

        logger.info("Loaded %d chatbots with quiz information", len(chatbots))
        return chatbots

    async def load_courses(self) -> List[CourseInfo]:
        return fold_courses(await self.load_chatbots())

    async def load_quiz_pool(self, quiz_id: str) -> QuizPool:
        """
        Rebuilds the question pool of a quiz from its most recent sessions.
        Question ids come from summary items and final answers; the first
        answer seen for a question stands in for its text.
        """
        docs = await asyncio.to_thread(self.store.sessions_for_quiz, quiz_id, settings.QUIZ_POOL_SAMPLE_SIZE)

        sample_answers: Dict[str, str] = {}
        for doc in docs:
            for question_id in ((doc.get("summary") or {}).get("items") or {}):
                sample_answers.setdefault(question_id, "")
            for question_id, answer in (doc.get("finalAnswers") or {}).items():
                if not sample_answers.get(question_id):
                    sample_answers[question_id] = answer

        questions = [
            QuizQuestion(question_id=qid, question=_question_text(answer), category=settings.DEFAULT_CATEGORY)
            for qid, answer in sample_answers.items()
        ]
        if not questions:
            questions = [QuizQuestion(
                question_id="no-sessions-found",
                question="No quiz sessions found for this quiz ID. Question IDs will appear here once students take quizzes.",
                category=settings.DEFAULT_CATEGORY,
            )]

        category_counts: Dict[str, int] = {}
        difficulty_breakdown = {level: 0 for level in DIFFICULTIES}
        for question in questions:
            category_counts[question.category] = category_counts.get(question.category, 0) + 1
            difficulty_breakdown[question.difficulty] = difficulty_breakdown.get(question.difficulty, 0) + 1

        logger.info("Loaded quiz pool for %s: %d questions from %d sessions", quiz_id, len(questions), len(docs))
        return QuizPool(
            quiz_id=quiz_id,
            chatbot_id=docs[0].get("chatbotId", quiz_id) if docs else quiz_id,
            questions=questions,
            category_counts=category_counts,
            difficulty_breakdown=difficulty_breakdown,
            total_questions=len(questions),
            last_updated=utcnow(),
        )

    async def count_sessions(self, chatbot_id: str) -> int:
        try:
            return await asyncio.to_thread(self.store.count_sessions, chatbot_id)
        except Exception as e:
            logger.error("Error counting quiz sessions for chatbot %s: %s", chatbot_id, e)
            return 0
