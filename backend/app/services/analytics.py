"""
Analytics Aggregator.

Pure functions over already-loaded sessions: no I/O, no clock, no mutation of
the input. Every ratio is guarded so an empty or partial session set yields
zeros instead of NaN or infinities.
"""
import math
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from backend.app.core.config import settings
from backend.app.core.timeutils import format_duration, parse_timestamp
from backend.app.models.analytics import CategoryPerformance, QuizAnalytics, QuizStatistics, TimeBasedStats
from backend.app.models.quiz import DIFFICULTIES
from backend.app.models.session import EnhancedQuizSession, QuizSession

def _finite(values: Iterable[Optional[float]]) -> List[float]:
    return [float(v) for v in values if v is not None and math.isfinite(v)]

def _mean(values: Iterable[Optional[float]]) -> float:
    clean = _finite(values)
    return sum(clean) / len(clean) if clean else 0.0

def _percentage(part: int, whole: int) -> float:
    return 100.0 * part / whole if whole else 0.0

def difficulty_distribution(sessions: Iterable[QuizSession]) -> Dict[str, int]:
    """Counts per level; all three levels are always present. Unknown levels are not counted."""
    counts = {level: 0 for level in DIFFICULTIES}
    for session in sessions:
        if session.difficulty in counts:
            counts[session.difficulty] += 1
    return counts

def category_performance(
    sessions: Iterable[QuizSession],
    categories: Optional[Mapping[str, str]] = None,
    default_category: Optional[str] = None,
) -> Dict[str, CategoryPerformance]:
    categories = categories or {}
    default_category = default_category or settings.DEFAULT_CATEGORY

    scores = defaultdict(list)
    correct = Counter()
    for session in sessions:
        if not session.completed or session.summary is None:
            continue
        for question_id, item in session.summary.items.items():
            category = categories.get(question_id, default_category)
            scores[category].append(item.score)
            if item.verdict == "correct":
                correct[category] += 1

    return {
        category: CategoryPerformance(
            average_score=_mean(item_scores),
            total_attempts=len(item_scores),
            success_rate=_percentage(correct[category], len(item_scores)),
        )
        for category, item_scores in scores.items()
    }

def time_based_stats(sessions: Iterable[QuizSession]) -> TimeBasedStats:
    daily, weekly, monthly = Counter(), Counter(), Counter()
    for session in sessions:
        started = parse_timestamp(session.started_at)
        iso_year, iso_week, _ = started.isocalendar()
        daily[started.strftime("%Y-%m-%d")] += 1
        weekly[f"{iso_year}-W{iso_week:02d}"] += 1
        monthly[started.strftime("%Y-%m")] += 1

    return TimeBasedStats(
        daily=dict(sorted(daily.items())),
        weekly=dict(sorted(weekly.items())),
        monthly=dict(sorted(monthly.items())),
        active_days=len(daily),
        active_weeks=len(weekly),
        active_months=len(monthly),
    )

def aggregate(
    sessions: Sequence[EnhancedQuizSession],
    categories: Optional[Mapping[str, str]] = None,
    default_category: Optional[str] = None,
) -> QuizAnalytics:
    """
    Derives the dashboard statistics for a session set.

    `categories` maps question ids to category names; questions without an
    entry are grouped under `default_category` (settings.DEFAULT_CATEGORY).
    """
    total = len(sessions)
    completed = sum(1 for s in sessions if s.completed)

    average_score = _mean(s.summary.percent for s in sessions if s.summary is not None)
    average_time = int(round(_mean(s.time_spent for s in sessions if s.time_spent is not None)))

    return QuizAnalytics(
        total_sessions=total,
        completion_rate=_percentage(completed, total),
        average_score=average_score,
        average_time_spent=average_time,
        average_time_spent_formatted=format_duration(average_time),
        difficulty_distribution=difficulty_distribution(sessions),
        category_performance=category_performance(sessions, categories, default_category),
        time_based_stats=time_based_stats(sessions),
    )

def user_statistics(sessions: Sequence[QuizSession]) -> QuizStatistics:
    completed = [s for s in sessions if s.completed]
    return QuizStatistics(
        total_quizzes=len(sessions),
        completed_quizzes=len(completed),
        average_score=_mean(s.summary.percent for s in completed if s.summary is not None),
        difficulty_breakdown=difficulty_distribution(sessions),
        last_quiz_date=max((parse_timestamp(s.started_at) for s in sessions), default=None),
    )
