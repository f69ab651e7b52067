import logging
import sys

from arango import ArangoClient
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

SESSIONS = "quizSessions"
EVENTS = "quizEvents"
CHATBOTS = "chatbots"

# (collection, fields) pairs backing the reconciler and session queries
INDEXES = [
    (SESSIONS, ["quizId", "userId", "createdAt"]),
    (SESSIONS, ["chatbotId", "startedAt"]),
    (SESSIONS, ["startedAt"]),
    (EVENTS, ["quizId", "timestamp"]),
]

class ArangoDB:
    def __init__(self):
        self.client = ArangoClient(hosts=settings.ARANGO_HOST)
        self.sys_db = self.client.db('_system', username=settings.ARANGO_USERNAME, password=settings.ARANGO_PASSWORD)
        self.db = None

    def initialize(self):
        try:
            if not self.sys_db.has_database(settings.ARANGO_DB_NAME):
                self.sys_db.create_database(settings.ARANGO_DB_NAME)

            self.db = self.client.db(settings.ARANGO_DB_NAME, username=settings.ARANGO_USERNAME, password=settings.ARANGO_PASSWORD)

            # Document Collections
            for col in [SESSIONS, EVENTS, CHATBOTS]:
                if not self.db.has_collection(col):
                    self.db.create_collection(col)

            # Persistent indexes are idempotent on identical definitions
            for col, fields in INDEXES:
                self.db.collection(col).add_index({"type": "persistent", "fields": fields})

            logger.info("Connected to ArangoDB: %s", settings.ARANGO_DB_NAME)
            return self.db
        except Exception as e:
            logger.critical("Failed to connect to ArangoDB: %s", e)
            sys.exit(1)

    def get_db(self):
        if not self.db:
            self.initialize()
        return self.db

db = ArangoDB()
