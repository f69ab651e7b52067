import copy
import datetime
import itertools

import pytest

class InMemoryQuizStore:
    """
    Dict-backed stand-in for QuizStore with the same method surface and
    query semantics, so services can be exercised without ArangoDB.
    Method names listed in `failing` raise RuntimeError.
    """

    def __init__(self):
        self.sessions = {}
        self.events = []
        self.chatbots = []
        self.failing = set()
        self._keys = itertools.count(1)

    def _check(self, name):
        if name in self.failing:
            raise RuntimeError(f"{name} unavailable")

    def _key(self):
        return f"{next(self._keys):06d}"

    def insert_event(self, doc):
        self._check("insert_event")
        key = self._key()
        self.events.append({"_key": key, **copy.deepcopy(doc)})
        return key

    def insert_session(self, doc):
        self._check("insert_session")
        key = self._key()
        self.sessions[key] = {"_key": key, **copy.deepcopy(doc)}
        return key

    def update_session(self, key, fields):
        self._check("update_session")
        self.sessions[key].update(copy.deepcopy(fields))

    def complete_session(self, key, fields):
        self._check("complete_session")
        session = self.sessions.get(key)
        if session is None or session["completed"]:
            return False
        session.update(copy.deepcopy(fields))
        session["completed"] = True
        return True

    def find_open_session(self, quiz_id, user_id, created_since):
        self._check("find_open_session")
        matches = [
            s for s in self.sessions.values()
            if s["quizId"] == quiz_id and s["userId"] == user_id
            and not s["completed"] and s["createdAt"] >= created_since
        ]
        matches.sort(key=lambda s: s["createdAt"], reverse=True)
        return copy.deepcopy(matches[0]) if matches else None

    def find_latest_session(self, quiz_id, user_id):
        self._check("find_latest_session")
        matches = [s for s in self.sessions.values() if s["quizId"] == quiz_id and s["userId"] == user_id]
        matches.sort(key=lambda s: s["createdAt"], reverse=True)
        return copy.deepcopy(matches[0]) if matches else None

    def get_session(self, key):
        self._check("get_session")
        return copy.deepcopy(self.sessions.get(key))

    def query_sessions(self, criteria, limit, after=None):
        self._check("query_sessions")
        result = []
        for s in self.sessions.values():
            if any(criteria.get(f) is not None and s.get(f) != criteria[f]
                   for f in ("chatbotId", "difficulty", "completed", "userId")):
                continue
            if criteria.get("startedFrom") is not None and s["startedAt"] < criteria["startedFrom"]:
                continue
            if criteria.get("startedTo") is not None and s["startedAt"] > criteria["startedTo"]:
                continue
            if after is not None and (s["startedAt"], s["_key"]) >= after:
                continue
            result.append(s)
        result.sort(key=lambda s: (s["startedAt"], s["_key"]), reverse=True)
        return copy.deepcopy(result[:limit])

    def sessions_for_quiz(self, quiz_id, limit):
        matches = [s for s in self.sessions.values() if s["quizId"] == quiz_id]
        matches.sort(key=lambda s: s["startedAt"], reverse=True)
        return copy.deepcopy(matches[:limit])

    def sessions_for_user(self, user_id):
        matches = [s for s in self.sessions.values() if s["userId"] == user_id]
        return copy.deepcopy(sorted(matches, key=lambda s: s["createdAt"]))

    def count_sessions(self, chatbot_id):
        self._check("count_sessions")
        return sum(1 for s in self.sessions.values() if s["chatbotId"] == chatbot_id)

    def first_quiz_id(self, chatbot_id):
        self._check("first_quiz_id")
        for s in self.sessions.values():
            if s["chatbotId"] == chatbot_id:
                return s["quizId"]
        return None

    def list_events(self, quiz_id=None):
        if quiz_id:
            return copy.deepcopy(sorted((e for e in self.events if e["quizId"] == quiz_id), key=lambda e: e["timestamp"]))
        return copy.deepcopy(sorted(self.events, key=lambda e: e["timestamp"], reverse=True))

    def list_chatbots(self):
        self._check("list_chatbots")
        return copy.deepcopy(sorted(self.chatbots, key=lambda c: c.get("timestamp", ""), reverse=True))

@pytest.fixture
def store():
    return InMemoryQuizStore()

def iso(dt):
    return dt.astimezone(datetime.timezone.utc).isoformat(timespec="milliseconds")

def make_session_doc(key, started_at, quiz_id="quiz-1", user_id="user-1", chatbot_id="bot-1",
                     difficulty="medium", submitted_at=None, summary=None, answers=None, completed=None):
    doc = {
        "_key": key,
        "quizId": quiz_id,
        "chatbotId": chatbot_id,
        "userId": user_id,
        "difficulty": difficulty,
        "startedAt": iso(started_at),
        "completed": bool(submitted_at) if completed is None else completed,
        "selection": {"mode": difficulty, "target": 5, "finalCount": 5},
        "finalAnswers": answers or {},
        "createdAt": iso(started_at),
        "updatedAt": iso(started_at),
    }
    if submitted_at is not None:
        doc["submittedAt"] = iso(submitted_at)
    if summary is not None:
        doc["summary"] = summary
    return doc
