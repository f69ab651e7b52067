"""
Payloads emitted by the quiz-taking widget.

The widget speaks camelCase JSON (`quizId`, `startedAt`, ...) except inside the
grading summary, which keeps the grader's snake_case keys (`total_score`).
"""
from enum import Enum
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Dict, Literal, Optional
from datetime import datetime

QuizDifficulty = Literal["easy", "medium", "hard"]
DIFFICULTIES = ("easy", "medium", "hard")

class QuizEventType(str, Enum):
    STARTED = "started"
    ANSWER_CHANGED = "answer_changed"
    SUBMITTED = "submitted"
    CLOSED = "closed"

class QuizErrorPhase(str, Enum):
    LOADING = "loading"
    SUBMITTING = "submitting"
    INITIALIZATION = "initialization"

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True

class QuizSelection(CamelModel):
    mode: QuizDifficulty
    target: int
    final_count: int

class QuizItemResult(BaseModel):
    score: float
    max_score: float
    verdict: Literal["correct", "incorrect"]
    reasoning: str = ""

class QuizSummary(BaseModel):
    quiz_id: Optional[str] = None
    chatbot_id: Optional[str] = None
    total_score: float
    total_max: float
    percent: float
    items: Dict[str, QuizItemResult] = {}

class QuizStartData(CamelModel):
    quiz_id: str
    chatbot_id: str
    started_at: datetime
    selection: QuizSelection

class QuizAnswerChangeEvent(CamelModel):
    quiz_id: str
    question_id: str
    value: str
    answers: Dict[str, str] = {}
    chatbot_id: Optional[str] = None # not always sent by the widget

class QuizSubmissionResult(CamelModel):
    quiz_id: str
    chatbot_id: str
    answers: Dict[str, str] = {}
    summary: QuizSummary
    started_at: datetime
    submitted_at: datetime

class QuizCloseInfo(CamelModel):
    quiz_id: str
    chatbot_id: str
    answers: Dict[str, str] = {}
    summary: Optional[QuizSummary] = None
    completed: bool = False
    closed_at: datetime

class QuizErrorReport(CamelModel):
    message: str
    phase: QuizErrorPhase

def describe_quiz_error(error, phase: QuizErrorPhase) -> str:
    """User-facing message for a failure in a given widget phase."""
    return f"Quiz {QuizErrorPhase(phase).value} failed: {error}"
