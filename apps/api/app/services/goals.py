"""
Goal progress and achievement rules. Pure functions, no DB access.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date as Date

from app.schemas.goals import Goal, GoalOut
from app.schemas.resources import LearningResource
from app.services.streaks import StudySession


def progress_percentage(goal: Goal) -> float:
    if goal.target_value <= 0:
        return 0.0
    return round(min(goal.current_value / goal.target_value * 100, 100.0), 1)


def to_goal_out(goal: Goal) -> GoalOut:
    pct = progress_percentage(goal)
    return GoalOut(
        **goal.model_dump(),
        progress_percentage=pct,
        is_completed=goal.status == "completed" or pct >= 100,
    )


def goal_current_value(
    goal: Goal,
    *,
    sessions: Sequence[StudySession],
    resources: Sequence[LearningResource],
    current_streak: int,
) -> int:
    if goal.type == "time":
        return sum(
            s.minutes_studied
            for s in sessions
            if goal.start_date <= s.date <= goal.end_date
        )
    if goal.type == "resources":
        return sum(1 for r in resources if r.status == "completed")
    return current_streak


@dataclass(frozen=True)
class AchievementRule:
    title: str
    description: str
    icon: str
    category: str   # 'streak' | 'time' | 'completion' | 'milestone'
    metric: str     # which LearnerTotals field drives this rule
    threshold: int


@dataclass(frozen=True)
class LearnerTotals:
    session_count: int
    total_minutes: int
    completed_resources: int
    current_streak: int
    longest_streak: int


ACHIEVEMENTS: list[AchievementRule] = [
    AchievementRule("First Steps",      "Log your first study session",  "🌱", "milestone",  "session_count",       1),
    AchievementRule("On a Roll",        "3-day study streak",            "🔥", "streak",     "longest_streak",      3),
    AchievementRule("Week Warrior",     "7-day study streak",            "⚡", "streak",     "longest_streak",      7),
    AchievementRule("Unstoppable",      "30-day study streak",           "🏅", "streak",     "longest_streak",      30),
    AchievementRule("Ten Hours In",     "Study for 10 hours in total",   "⏱️", "time",       "total_minutes",       600),
    AchievementRule("Centurion",        "Study for 100 hours in total",  "🎓", "time",       "total_minutes",       6000),
    AchievementRule("Finisher",         "Complete your first resource",  "✅", "completion", "completed_resources", 1),
    AchievementRule("Bookworm",         "Complete 10 resources",         "📚", "completion", "completed_resources", 10),
]


def learner_totals(
    *,
    sessions: Iterable[StudySession],
    resources: Iterable[LearningResource],
    current_streak: int,
    longest_streak: int,
) -> LearnerTotals:
    session_list = list(sessions)
    return LearnerTotals(
        session_count=len(session_list),
        total_minutes=sum(s.minutes_studied for s in session_list),
        completed_resources=sum(1 for r in resources if r.status == "completed"),
        current_streak=current_streak,
        longest_streak=longest_streak,
    )


def newly_earned(totals: LearnerTotals, already_earned: Iterable[str]) -> list[AchievementRule]:
    earned = set(already_earned)
    return [
        rule
        for rule in ACHIEVEMENTS
        if rule.title not in earned and getattr(totals, rule.metric) >= rule.threshold
    ]


def is_goal_open(goal: Goal, today: Date) -> bool:
    return goal.status == "active" and goal.start_date <= today <= goal.end_date
