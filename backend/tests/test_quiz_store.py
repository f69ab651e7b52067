from unittest.mock import MagicMock

from backend.app.db.quiz_store import QuizStore

def make_store(rows):
    database = MagicMock()
    cursor = MagicMock()
    cursor.__iter__.return_value = iter(rows)
    database.aql.execute.return_value = cursor
    return QuizStore(database), database

def test_find_open_session_binds_window_and_pair():
    store, database = make_store([{"_key": "s1"}])

    session = store.find_open_session("quiz-1", "user-1", "2025-01-01T00:00:00.000+00:00")

    assert session == {"_key": "s1"}
    aql = database.aql.execute.call_args[0][0]
    assert "s.completed == false" in aql
    assert "s.createdAt >= @since" in aql
    assert "SORT s.createdAt DESC" in aql
    assert database.aql.execute.call_args[1]["bind_vars"] == {
        "quiz_id": "quiz-1",
        "user_id": "user-1",
        "since": "2025-01-01T00:00:00.000+00:00",
    }

def test_find_latest_session_has_no_completion_filter():
    store, database = make_store([])

    assert store.find_latest_session("quiz-1", "user-1") is None
    aql = database.aql.execute.call_args[0][0]
    assert "completed" not in aql

def test_complete_session_is_conditional():
    store, database = make_store([])

    assert store.complete_session("s1", {"summary": {}}) is False
    aql = database.aql.execute.call_args[0][0]
    assert "FILTER s.completed == false" in aql
    assert "completed: true" in aql

def test_query_sessions_builds_filters_and_keyset():
    store, database = make_store([])

    store.query_sessions(
        {"chatbotId": "bot-1", "completed": False, "userId": None, "startedFrom": "a", "startedTo": "b"},
        25,
        ("2025-01-01T00:00:00.000+00:00", "k9"),
    )

    aql = database.aql.execute.call_args[0][0]
    bind_vars = database.aql.execute.call_args[1]["bind_vars"]
    assert "FILTER s.chatbotId == @chatbotId" in aql
    assert "FILTER s.completed == @completed" in aql
    assert "userId" not in aql
    assert "SORT s.startedAt DESC, s._key DESC" in aql
    assert bind_vars == {
        "limit": 25,
        "chatbotId": "bot-1",
        "completed": False,
        "startedFrom": "a",
        "startedTo": "b",
        "after_started": "2025-01-01T00:00:00.000+00:00",
        "after_key": "k9",
    }

def test_inserts_return_document_keys():
    database = MagicMock()
    database.collection.return_value.insert.return_value = {"_key": "abc", "_id": "quizEvents/abc"}
    store = QuizStore(database)

    assert store.insert_event({"eventType": "started"}) == "abc"
    database.collection.assert_called_with("quizEvents")
    assert store.insert_session({"quizId": "q"}) == "abc"
    database.collection.assert_called_with("quizSessions")
