from pydantic import AliasChoices, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from backend.app.models.quiz import CamelModel, QuizEventType, QuizSelection, QuizSummary

class QuizEvent(CamelModel):
    """One immutable lifecycle record in the `quizEvents` log."""
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_key", "id"), serialization_alias="id")
    quiz_id: str
    chatbot_id: str
    user_id: str
    event_type: QuizEventType
    timestamp: datetime
    payload: Dict[str, Any] = {}
    created_at: Optional[datetime] = None

class QuizSession(CamelModel):
    """
    One quiz attempt, created on `started` and reconciled in place by later events.
    `submitted_at` and `summary` are only ever set by the completion update.
    """
    id: str = Field(validation_alias=AliasChoices("_key", "id"), serialization_alias="id")
    quiz_id: str
    chatbot_id: str
    user_id: str
    difficulty: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    completed: bool = False
    selection: Optional[QuizSelection] = None
    final_answers: Dict[str, str] = {}
    summary: Optional[QuizSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class EnhancedQuizSession(QuizSession):
    user_email: str
    user_name: str
    questions_attempted: int = 0
    answers: Dict[str, str] = {}
    time_spent: Optional[int] = None # seconds, only when submitted
    time_spent_formatted: Optional[str] = None

class DateRange(CamelModel):
    start: datetime
    end: datetime

class QuizFilters(CamelModel):
    chatbot_id: Optional[str] = None
    difficulty: Literal["all", "easy", "medium", "hard"] = "all"
    completion_status: Literal["all", "completed", "incomplete"] = "all"
    user_id: Optional[str] = None
    date_range: Optional[DateRange] = None

class SessionPage(CamelModel):
    sessions: List[EnhancedQuizSession] = []
    has_more: bool = False
    cursor: Optional[str] = None

# --- Export ---

class ExportStudent(CamelModel):
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None

class ExportQuiz(CamelModel):
    difficulty: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    completed: bool
    time_spent: Optional[int] = None

class QuizSessionExport(CamelModel):
    session_id: str
    quiz_id: str
    chatbot_id: str
    student: ExportStudent
    quiz: ExportQuiz
    answers: Dict[str, str] = {}
    summary: Optional[QuizSummary] = None
    exported_at: datetime
