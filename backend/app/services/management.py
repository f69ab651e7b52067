"""
QuizManagementContext: the state behind the quiz management screens.

An explicit object handed to whichever view needs it. Every state change is a
named command, and the reload cascade is part of the command contract:

- select_course()  filters the cached chatbots in memory, never refetches.
- select_chatbot() and update_filters() always refetch sessions and always
  recompute analytics, even when nothing appears to have changed.

Commands never raise. A failure leaves a single user-facing message in
`error`, the same way the widget's own error phases are surfaced.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from backend.app.core.config import settings
from backend.app.models.analytics import QuizAnalytics
from backend.app.models.chatbot import ChatbotWithQuiz, CourseInfo, QuizPool
from backend.app.models.quiz import QuizErrorPhase, describe_quiz_error
from backend.app.models.session import EnhancedQuizSession, QuizFilters
from backend.app.services.analytics import aggregate
from backend.app.services.catalog import QuizCatalogService, fold_courses
from backend.app.services.session_query import QuizSessionService

logger = logging.getLogger(__name__)

class QuizManagementContext:
    def __init__(
        self,
        sessions: Optional[QuizSessionService] = None,
        catalog: Optional[QuizCatalogService] = None,
        page_size: Optional[int] = None,
    ):
        self.session_service = sessions or QuizSessionService()
        self.catalog = catalog or QuizCatalogService(self.session_service.store)
        self.page_size = page_size or settings.DEFAULT_PAGE_SIZE
        self.reset()

    def reset(self):
        self.chatbots: List[ChatbotWithQuiz] = []
        self.courses: List[CourseInfo] = []
        self.filtered_chatbots: List[ChatbotWithQuiz] = []
        self.selected_course: Optional[CourseInfo] = None
        self.selected_chatbot: Optional[ChatbotWithQuiz] = None
        self.sessions: List[EnhancedQuizSession] = []
        self.has_more = False
        self.cursor: Optional[str] = None
        self.analytics: Optional[QuizAnalytics] = None
        self.filters = QuizFilters()
        self.selected_session: Optional[EnhancedQuizSession] = None
        self.quiz_pools: Dict[str, QuizPool] = {}
        self.loading = False
        self.error: Optional[str] = None

    def _fail(self, message: str, error: Exception):
        logger.error("%s: %s", message, error)
        self.error = f"{message}: {error}"
        self.loading = False

    # --- Selection ---

    async def load_chatbots(self):
        self.loading, self.error = True, None
        try:
            chatbots = await self.catalog.load_chatbots()
        except Exception as e:
            self._fail("Failed to load chatbots", e)
            return
        self.chatbots = chatbots
        self.courses = fold_courses(chatbots)
        self.filtered_chatbots = list(chatbots)
        self.loading = False
        logger.info("Loaded %d chatbots from %d courses", len(self.chatbots), len(self.courses))

    def select_course(self, course: Optional[CourseInfo]):
        self.selected_course = course
        if course is None:
            self.filtered_chatbots = list(self.chatbots)
        else:
            self.filtered_chatbots = [c for c in self.chatbots if c.course_id == course.course_id]
        self.selected_chatbot = None
        self.selected_session = None
        self.filters = self.filters.model_copy(update={"chatbot_id": None})
        self.sessions = []
        self.has_more, self.cursor = False, None
        self.recompute_analytics()

    async def select_chatbot(self, chatbot: Optional[ChatbotWithQuiz]):
        self.selected_chatbot = chatbot
        self.selected_session = None
        self.filters = self.filters.model_copy(update={"chatbot_id": chatbot.chatbot_id if chatbot else None})
        if chatbot is None:
            self.sessions = []
            self.has_more, self.cursor = False, None
            self.recompute_analytics()
            return
        await self.reload_sessions()

    async def update_filters(self, **changes: Any):
        try:
            self.filters = QuizFilters.model_validate({**self.filters.model_dump(), **changes})
        except ValidationError as e:
            self._fail("Invalid quiz filters", e)
            return
        await self.reload_sessions()

    def select_session(self, session: Optional[EnhancedQuizSession]):
        self.selected_session = session

    # --- Loading ---

    async def reload_sessions(self):
        """Refetches the first page for the current filters and recomputes analytics."""
        self.loading, self.error = True, None
        try:
            page = await self.session_service.query(self.filters, self.page_size)
        except Exception as e:
            self._fail("Failed to load quiz sessions", e)
            return
        self.sessions = page.sessions
        self.has_more, self.cursor = page.has_more, page.cursor
        self.loading = False
        self.recompute_analytics()

    async def load_more_sessions(self):
        if not self.has_more or not self.cursor:
            return
        self.loading, self.error = True, None
        try:
            page = await self.session_service.query(self.filters, self.page_size, self.cursor)
        except Exception as e:
            self._fail("Failed to load quiz sessions", e)
            return
        self.sessions = self.sessions + page.sessions
        self.has_more, self.cursor = page.has_more, page.cursor
        self.loading = False
        self.recompute_analytics()

    def recompute_analytics(self):
        try:
            self.analytics = aggregate(self.sessions)
        except Exception as e:
            self._fail("Failed to generate analytics", e)

    async def load_quiz_pool(self, quiz_id: str):
        self.loading, self.error = True, None
        try:
            pool = await self.catalog.load_quiz_pool(quiz_id)
        except Exception as e:
            self._fail("Failed to load quiz pool", e)
            return
        self.quiz_pools = {**self.quiz_pools, quiz_id: pool}
        self.loading = False

    async def export_session(self, session_id: str) -> Optional[Tuple[str, bytes]]:
        """Returns (filename, JSON bytes) ready to offer as a download, or None on failure."""
        self.loading, self.error = True, None
        try:
            export = await self.session_service.export_session(session_id)
        except Exception as e:
            self._fail("Failed to export session data", e)
            return None
        self.loading = False
        return f"quiz-session-{session_id}.json", export.model_dump_json(by_alias=True, indent=2).encode()

    # --- Errors ---

    def report_error(self, error: Exception, phase: QuizErrorPhase):
        logger.error("Quiz error during %s: %s", QuizErrorPhase(phase).value, error)
        self.error = describe_quiz_error(error, phase)

    def clear_error(self):
        self.error = None
