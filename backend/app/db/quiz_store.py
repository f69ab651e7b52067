"""
QuizStore: every read and write the quiz subsystem makes against ArangoDB.

Methods are synchronous (python-arango is a blocking driver); services run them
through `asyncio.to_thread`. Timestamps arrive already normalised by
`backend.app.core.timeutils.to_iso`, so AQL can compare them as strings.
"""
from typing import Any, Dict, List, Optional, Tuple

from backend.app.db.arango import db, SESSIONS, EVENTS

class QuizStore:
    def __init__(self, database=None):
        # Resolved lazily so importing an endpoint module never opens a connection
        self._database = database

    @property
    def db(self):
        if self._database is None:
            self._database = db.get_db()
        return self._database

    # --- Writes ---

    def insert_event(self, doc: Dict[str, Any]) -> str:
        meta = self.db.collection(EVENTS).insert(doc)
        return meta["_key"]

    def insert_session(self, doc: Dict[str, Any]) -> str:
        meta = self.db.collection(SESSIONS).insert(doc)
        return meta["_key"]

    def update_session(self, key: str, fields: Dict[str, Any]) -> None:
        self.db.collection(SESSIONS).update({"_key": key, **fields}, merge=True)

    def complete_session(self, key: str, fields: Dict[str, Any]) -> bool:
        """
        Applies the completion fields only while the stored session is still open.
        Returns False when the session was already completed (or is gone).
        """
        aql = """
        FOR s IN quizSessions
            FILTER s._key == @key
            FILTER s.completed == false
            UPDATE s WITH MERGE(@fields, { completed: true }) IN quizSessions
            OPTIONS { mergeObjects: false }
            RETURN NEW._key
        """
        cursor = self.db.aql.execute(aql, bind_vars={"key": key, "fields": fields})
        return len(list(cursor)) > 0

    # --- Reconciliation lookups ---

    def find_open_session(self, quiz_id: str, user_id: str, created_since: str) -> Optional[Dict]:
        aql = """
        FOR s IN quizSessions
            FILTER s.quizId == @quiz_id
            FILTER s.userId == @user_id
            FILTER s.completed == false
            FILTER s.createdAt >= @since
            SORT s.createdAt DESC
            LIMIT 1
            RETURN s
        """
        cursor = self.db.aql.execute(
            aql,
            bind_vars={"quiz_id": quiz_id, "user_id": user_id, "since": created_since}
        )
        results = list(cursor)
        return results[0] if results else None

    def find_latest_session(self, quiz_id: str, user_id: str) -> Optional[Dict]:
        aql = """
        FOR s IN quizSessions
            FILTER s.quizId == @quiz_id
            FILTER s.userId == @user_id
            SORT s.createdAt DESC
            LIMIT 1
            RETURN s
        """
        cursor = self.db.aql.execute(aql, bind_vars={"quiz_id": quiz_id, "user_id": user_id})
        results = list(cursor)
        return results[0] if results else None

    # --- Session queries ---

    def get_session(self, key: str) -> Optional[Dict]:
        return self.db.collection(SESSIONS).get(key)

    def query_sessions(self, criteria: Dict[str, Any], limit: int, after: Optional[Tuple[str, str]] = None) -> List[Dict]:
        """
        criteria keys (all optional): chatbotId, difficulty, completed, userId,
        startedFrom, startedTo. `after` is the (startedAt, _key) of the last
        document of the previous page.
        """
        filters = []
        bind_vars: Dict[str, Any] = {"limit": limit}

        for field in ("chatbotId", "difficulty", "completed", "userId"):
            if criteria.get(field) is not None:
                filters.append(f"FILTER s.{field} == @{field}")
                bind_vars[field] = criteria[field]
        if criteria.get("startedFrom") is not None:
            filters.append("FILTER s.startedAt >= @startedFrom")
            bind_vars["startedFrom"] = criteria["startedFrom"]
        if criteria.get("startedTo") is not None:
            filters.append("FILTER s.startedAt <= @startedTo")
            bind_vars["startedTo"] = criteria["startedTo"]
        if after is not None:
            filters.append(
                "FILTER s.startedAt < @after_started OR "
                "(s.startedAt == @after_started AND s._key < @after_key)"
            )
            bind_vars["after_started"], bind_vars["after_key"] = after

        aql = "FOR s IN quizSessions\n" + "\n".join(filters) + """
            SORT s.startedAt DESC, s._key DESC
            LIMIT @limit
            RETURN s
        """
        return list(self.db.aql.execute(aql, bind_vars=bind_vars))

    def sessions_for_quiz(self, quiz_id: str, limit: int) -> List[Dict]:
        aql = """
        FOR s IN quizSessions
            FILTER s.quizId == @quiz_id
            SORT s.startedAt DESC
            LIMIT @limit
            RETURN s
        """
        return list(self.db.aql.execute(aql, bind_vars={"quiz_id": quiz_id, "limit": limit}))

    def sessions_for_user(self, user_id: str) -> List[Dict]:
        aql = """
        FOR s IN quizSessions
            FILTER s.userId == @user_id
            SORT s.createdAt ASC
            RETURN s
        """
        return list(self.db.aql.execute(aql, bind_vars={"user_id": user_id}))

    def count_sessions(self, chatbot_id: str) -> int:
        aql = """
        FOR s IN quizSessions
            FILTER s.chatbotId == @chatbot_id
            COLLECT WITH COUNT INTO total
            RETURN total
        """
        results = list(self.db.aql.execute(aql, bind_vars={"chatbot_id": chatbot_id}))
        return results[0] if results else 0

    def first_quiz_id(self, chatbot_id: str) -> Optional[str]:
        aql = """
        FOR s IN quizSessions
            FILTER s.chatbotId == @chatbot_id
            LIMIT 1
            RETURN s.quizId
        """
        results = list(self.db.aql.execute(aql, bind_vars={"chatbot_id": chatbot_id}))
        return results[0] if results else None

    # --- Event log & catalogue ---

    def list_events(self, quiz_id: Optional[str] = None) -> List[Dict]:
        if quiz_id:
            aql = """
            FOR e IN quizEvents
                FILTER e.quizId == @quiz_id
                SORT e.timestamp ASC
                RETURN e
            """
            cursor = self.db.aql.execute(aql, bind_vars={"quiz_id": quiz_id})
        else:
            aql = """
            FOR e IN quizEvents
                SORT e.timestamp DESC
                RETURN e
            """
            cursor = self.db.aql.execute(aql)
        return list(cursor)

    def list_chatbots(self) -> List[Dict]:
        aql = """
        FOR c IN chatbots
            SORT c.timestamp DESC
            RETURN c
        """
        return list(self.db.aql.execute(aql))
