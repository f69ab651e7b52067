import datetime
import json

import pytest
from backend.app.models.quiz import QuizErrorPhase
from backend.app.services.catalog import QuizCatalogService
from backend.app.services.management import QuizManagementContext
from backend.app.services.session_query import QuizSessionService
from conftest import make_session_doc

T0 = datetime.datetime(2025, 4, 1, 10, 0, tzinfo=datetime.timezone.utc)

class CountingSessionService(QuizSessionService):
    def __init__(self, store):
        super().__init__(store)
        self.calls = []

    async def query(self, filters=None, page_size=None, cursor=None):
        self.calls.append((filters, cursor))
        return await super().query(filters, page_size, cursor)

def chatbot_doc(chatbot_id, course_id, course_title, timestamp):
    return {
        "chatbotId": chatbot_id,
        "title": f"Bot {chatbot_id}",
        "courseId": {"id": course_id, "title": course_title},
        "material": {"id": f"mat-{chatbot_id}", "title": "Lecture"},
        "createdBy": "educator-1",
        "timestamp": timestamp,
    }

@pytest.fixture
def seeded(store):
    store.chatbots = [
        chatbot_doc("bot-1", "bio", "Biology", "2025-01-01"),
        chatbot_doc("bot-2", "bio", "Biology", "2025-01-02"),
        chatbot_doc("bot-3", "chem", "Chemistry", "2025-01-03"),
    ]
    store.sessions["s1"] = make_session_doc("s1", T0, quiz_id="quiz-1", chatbot_id="bot-1", difficulty="easy",
                                            submitted_at=T0 + datetime.timedelta(minutes=2),
                                            summary={"total_score": 9, "total_max": 10, "percent": 90, "items": {}})
    store.sessions["s2"] = make_session_doc("s2", T0 + datetime.timedelta(hours=1), quiz_id="quiz-1",
                                            chatbot_id="bot-1", difficulty="hard")
    store.sessions["s3"] = make_session_doc("s3", T0, quiz_id="quiz-3", chatbot_id="bot-3")
    return store

def make_context(store):
    sessions = CountingSessionService(store)
    return QuizManagementContext(sessions=sessions, catalog=QuizCatalogService(store), page_size=50), sessions

@pytest.mark.asyncio
async def test_load_chatbots_folds_courses(seeded):
    context, _ = make_context(seeded)
    await context.load_chatbots()

    assert [c.chatbot_id for c in context.chatbots] == ["bot-3", "bot-2", "bot-1"]
    courses = {c.course_id: c for c in context.courses}
    assert [c.course_title for c in context.courses] == ["Biology", "Chemistry"]
    assert (courses["bio"].chatbot_count, courses["bio"].quiz_count) == (2, 1)
    assert (courses["chem"].chatbot_count, courses["chem"].quiz_count) == (1, 1)
    assert context.loading is False

@pytest.mark.asyncio
async def test_select_course_filters_cached_chatbots_without_refetch(seeded):
    context, sessions = make_context(seeded)
    await context.load_chatbots()
    seeded.failing.add("list_chatbots")

    bio = next(c for c in context.courses if c.course_id == "bio")
    context.select_course(bio)

    assert {c.chatbot_id for c in context.filtered_chatbots} == {"bot-1", "bot-2"}
    assert context.selected_chatbot is None
    assert context.sessions == []
    assert context.error is None
    assert sessions.calls == []

    context.select_course(None)
    assert len(context.filtered_chatbots) == 3

@pytest.mark.asyncio
async def test_select_course_drops_previous_chatbot_state(seeded):
    context, _ = make_context(seeded)
    await context.load_chatbots()
    await context.select_chatbot(next(c for c in context.chatbots if c.chatbot_id == "bot-1"))
    assert context.analytics.total_sessions == 2

    context.select_course(next(c for c in context.courses if c.course_id == "chem"))

    assert context.filters.chatbot_id is None
    assert context.analytics.total_sessions == 0
    assert context.analytics.difficulty_distribution == {"easy": 0, "medium": 0, "hard": 0}

    await context.update_filters(difficulty="medium")
    assert {s.chatbot_id for s in context.sessions} == {"bot-3"}

@pytest.mark.asyncio
async def test_select_chatbot_always_reloads_and_recomputes(seeded):
    context, sessions = make_context(seeded)
    await context.load_chatbots()
    bot = next(c for c in context.chatbots if c.chatbot_id == "bot-1")

    await context.select_chatbot(bot)
    assert [s.id for s in context.sessions] == ["s2", "s1"]
    assert context.analytics.total_sessions == 2
    assert context.analytics.completion_rate == 50
    assert context.filters.chatbot_id == "bot-1"

    first_analytics = context.analytics
    await context.select_chatbot(bot)
    assert len(sessions.calls) == 2
    assert context.analytics is not first_analytics

@pytest.mark.asyncio
async def test_update_filters_reloads(seeded):
    context, sessions = make_context(seeded)
    await context.load_chatbots()
    await context.select_chatbot(next(c for c in context.chatbots if c.chatbot_id == "bot-1"))

    await context.update_filters(difficulty="easy")

    assert [s.id for s in context.sessions] == ["s1"]
    assert context.analytics.difficulty_distribution == {"easy": 1, "medium": 0, "hard": 0}
    assert len(sessions.calls) == 2

@pytest.mark.asyncio
async def test_invalid_filter_sets_error(seeded):
    context, sessions = make_context(seeded)
    await context.update_filters(difficulty="impossible")

    assert context.error.startswith("Invalid quiz filters")
    assert sessions.calls == []

@pytest.mark.asyncio
async def test_failures_become_error_state(seeded):
    context, _ = make_context(seeded)
    seeded.failing.add("query_sessions")

    await context.update_filters(chatbot_id="bot-1")

    assert context.error == "Failed to load quiz sessions: query_sessions unavailable"
    assert context.loading is False

    context.clear_error()
    assert context.error is None

@pytest.mark.asyncio
async def test_export_session_download(seeded):
    context, _ = make_context(seeded)
    filename, content = await context.export_session("s1")

    assert filename == "quiz-session-s1.json"
    assert json.loads(content)["quiz"]["timeSpent"] == 120

    assert await context.export_session("missing") is None
    assert context.error.startswith("Failed to export session data")

@pytest.mark.asyncio
async def test_load_quiz_pool_is_cached(seeded):
    context, _ = make_context(seeded)
    await context.load_quiz_pool("quiz-1")

    assert context.quiz_pools["quiz-1"].quiz_id == "quiz-1"

def test_report_error_and_reset(store):
    context, _ = make_context(store)
    context.report_error(RuntimeError("timeout"), QuizErrorPhase.LOADING)
    assert context.error == "Quiz loading failed: timeout"

    context.reset()
    assert context.error is None
    assert context.filters.difficulty == "all"
