"""Pure scoring, XP and leveling functions.

Nothing here touches storage or state. Entities call into the leveling helpers
(``rank_for_xp``, ``xp_at_level_start``) so the rank table lives in one place;
rank is always recomputed from the latest XP and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

from skillquest.constants.quiz_constants import (
    RANK_TIERS,
    TOP_RANK,
    XP_PER_LEVEL,
    XP_PER_SCORE_POINT,
)
from skillquest.utils.numbers import percentage

if TYPE_CHECKING:
    from skillquest.core.models import Answer, AnswerValue, Question


@dataclass(frozen=True, slots=True)
class ScoreSummary:
    """Final tally of a question set against its answers."""

    total_score: int
    max_score: int
    correct_count: int
    question_count: int
    accuracy: int


def is_answer_correct(question: Question, given: AnswerValue) -> bool:
    return question.is_correct_answer(given)


def calculate_max_score(questions: Iterable[Question]) -> int:
    return sum(question.weight for question in questions)


def calculate_total_score(questions: Sequence[Question], answers: Iterable[Answer]) -> int:
    """Sum the weights of questions whose recorded answer is correct.

    Answers are matched to questions by id, so unanswered questions and answers
    for unknown questions contribute nothing.
    """
    given_by_id = {answer.question_id: answer.user_answer for answer in answers}
    total = 0
    for question in questions:
        if question.id in given_by_id and is_answer_correct(question, given_by_id[question.id]):
            total += question.weight
    return total


def calculate_accuracy(correct_count: int, total_questions: int) -> int:
    return percentage(correct_count, total_questions)


def calculate_xp_reward(total_score: int) -> int:
    if total_score < 0:
        raise ValueError("Score cannot be negative.")
    return total_score * XP_PER_SCORE_POINT


def apply_xp_reward(previous_xp: int, reward: int) -> int:
    return previous_xp + reward


def level_for_xp(xp: int) -> int:
    """Every ``XP_PER_LEVEL`` XP is one level; level 1 starts at 0 XP."""
    if xp < 0:
        raise ValueError("XP cannot be negative.")
    return xp // XP_PER_LEVEL + 1


def xp_at_level_start(level: int) -> int:
    return (level - 1) * XP_PER_LEVEL


def xp_for_next_level(level: int) -> int:
    return level * XP_PER_LEVEL


def rank_for_xp(xp: int) -> str:
    for upper_bound, rank in RANK_TIERS:
        if xp < upper_bound:
            return rank
    return TOP_RANK


def score_session(questions: Sequence[Question], answers: Sequence[Answer]) -> ScoreSummary:
    """Score a completed question set; accuracy is over all questions, answered or not."""
    given_by_id = {answer.question_id: answer.user_answer for answer in answers}
    correct_count = sum(
        1
        for question in questions
        if question.id in given_by_id and is_answer_correct(question, given_by_id[question.id])
    )
    return ScoreSummary(
        total_score=calculate_total_score(questions, answers),
        max_score=calculate_max_score(questions),
        correct_count=correct_count,
        question_count=len(questions),
        accuracy=calculate_accuracy(correct_count, len(questions)),
    )
