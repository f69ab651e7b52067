from pydantic import Field
from typing import Dict, Optional
from datetime import datetime

from backend.app.models.quiz import CamelModel

def _empty_distribution() -> Dict[str, int]:
    return {"easy": 0, "medium": 0, "hard": 0}

class CategoryPerformance(CamelModel):
    average_score: float = 0.0
    total_attempts: int = 0
    success_rate: float = 0.0

class TimeBasedStats(CamelModel):
    daily: Dict[str, int] = {}
    weekly: Dict[str, int] = {}
    monthly: Dict[str, int] = {}
    active_days: int = 0
    active_weeks: int = 0
    active_months: int = 0

class QuizAnalytics(CamelModel):
    total_sessions: int = 0
    completion_rate: float = 0.0
    average_score: float = 0.0
    average_time_spent: int = 0 # seconds
    average_time_spent_formatted: str = "0m 0s"
    difficulty_distribution: Dict[str, int] = Field(default_factory=_empty_distribution)
    category_performance: Dict[str, CategoryPerformance] = {}
    time_based_stats: TimeBasedStats = Field(default_factory=TimeBasedStats)

class QuizStatistics(CamelModel):
    """Per-user roll-up shown next to a student's quiz history."""
    total_quizzes: int = 0
    completed_quizzes: int = 0
    average_score: float = 0.0
    difficulty_breakdown: Dict[str, int] = {}
    last_quiz_date: Optional[datetime] = None
