"""Service folding past quiz sessions into dashboard statistics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from skillquest.constants.quiz_constants import (
    ACTIVITY_WINDOW_DAYS,
    WEEKLY_CHALLENGE_CATEGORY,
    WEEKLY_CHALLENGE_TARGET,
    WEEKLY_CHALLENGE_WINDOW_HOURS,
    WEEKLY_CHALLENGE_XP_BONUS,
)
from skillquest.core.models import Question, QuizSession, as_utc, utcnow
from skillquest.core.skill_groups import get_all_skill_groups, get_category_group
from skillquest.utils.numbers import percentage

QuestionLookup = Callable[[str], Optional[Question]]

_WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(slots=True)
class _SkillTally:
    """Mutable accumulator used internally."""

    total: int = 0
    correct: int = 0


@dataclass(frozen=True, slots=True)
class SkillScore:
    category: str
    score: int
    full_mark: int = 100


@dataclass(frozen=True, slots=True)
class ActivityPoint:
    day: str
    score: int


@dataclass(frozen=True, slots=True)
class WeeklyChallengeProgress:
    category: str
    completed_count: int
    target: int
    xp_bonus: int

    @property
    def is_complete(self) -> bool:
        return self.completed_count >= self.target

    @property
    def progress_percentage(self) -> int:
        return min(100, percentage(self.completed_count, self.target))


@dataclass(frozen=True, slots=True)
class AccuracySummary:
    accuracy: int
    correct_count: int
    wrong_count: int


@dataclass(frozen=True, slots=True)
class DashboardStats:
    """Immutable snapshot returned to consumers."""

    skill_matrix: list[SkillScore]
    activity: list[ActivityPoint]
    weekly_challenge: WeeklyChallengeProgress
    accuracy: AccuracySummary
    session_count: int


def compute_skill_matrix(
    sessions: Sequence[QuizSession],
    question_lookup: QuestionLookup,
) -> list[SkillScore]:
    """Per skill group accuracy; every group is present, empty groups score 0."""
    tallies = {group: _SkillTally() for group in get_all_skill_groups()}
    for session in sessions:
        for answer in session.answers:
            question = question_lookup(answer.question_id)
            category = question.category if question is not None else session.category
            tally = tallies[get_category_group(category)]
            tally.total += 1
            if answer.is_correct:
                tally.correct += 1
    return [
        SkillScore(category=group, score=percentage(tally.correct, tally.total))
        for group, tally in tallies.items()
    ]


def compute_activity_chart(
    sessions: Sequence[QuizSession],
    now: datetime | None = None,
) -> list[ActivityPoint]:
    """Summed session scores per weekday over the trailing week, oldest day first.

    A session counts when its start lies at most ``ACTIVITY_WINDOW_DAYS`` whole
    days before ``now``. Sessions started in the future are ignored.
    """
    now = as_utc(now or utcnow())
    today = now.date()
    days = [today - timedelta(days=offset) for offset in range(ACTIVITY_WINDOW_DAYS - 1, -1, -1)]
    buckets: dict[str, int] = {_WEEKDAY_NAMES[day.weekday()]: 0 for day in days}

    for session in sessions:
        elapsed = now - session.started_at
        if elapsed < timedelta(0):
            continue
        if elapsed // timedelta(days=1) > ACTIVITY_WINDOW_DAYS:
            continue
        started_local = session.started_at.astimezone(now.tzinfo)
        buckets[_WEEKDAY_NAMES[started_local.weekday()]] += session.total_score

    return [ActivityPoint(day=day, score=score) for day, score in buckets.items()]


def compute_weekly_challenge(
    sessions: Sequence[QuizSession],
    now: datetime | None = None,
    category: str = WEEKLY_CHALLENGE_CATEGORY,
    target: int = WEEKLY_CHALLENGE_TARGET,
    xp_bonus: int = WEEKLY_CHALLENGE_XP_BONUS,
) -> WeeklyChallengeProgress:
    """Count ``category`` sessions in the sliding window ending at ``now``."""
    now = as_utc(now or utcnow())
    window_start = now - timedelta(hours=WEEKLY_CHALLENGE_WINDOW_HOURS)
    count = sum(
        1
        for session in sessions
        if session.category == category and window_start <= session.started_at <= now
    )
    return WeeklyChallengeProgress(
        category=category,
        completed_count=count,
        target=target,
        xp_bonus=xp_bonus,
    )


def compute_accuracy(sessions: Sequence[QuizSession]) -> AccuracySummary:
    questions = sum(len(session.question_ids) for session in sessions)
    correct = sum(session.correct_count() for session in sessions)
    return AccuracySummary(
        accuracy=percentage(correct, questions),
        correct_count=correct,
        wrong_count=questions - correct,
    )


def build_dashboard_stats(
    sessions: Sequence[QuizSession],
    question_lookup: QuestionLookup,
    now: datetime | None = None,
) -> DashboardStats:
    now = as_utc(now or utcnow())
    return DashboardStats(
        skill_matrix=compute_skill_matrix(sessions, question_lookup),
        activity=compute_activity_chart(sessions, now),
        weekly_challenge=compute_weekly_challenge(sessions, now),
        accuracy=compute_accuracy(sessions),
        session_count=len(sessions),
    )
