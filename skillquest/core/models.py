"""Domain models for SkillQuest.

Every entity is a frozen dataclass that validates itself in ``__post_init__``;
an invalid entity is never observable. Updates go through ``replace`` which
builds (and re-validates) a new instance from the old fields plus overrides.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace as dataclass_replace
from datetime import datetime, timezone
from enum import Enum
import math
import re
from typing import Any, Iterable, Union

from skillquest.constants.quiz_constants import (
    MAX_QUESTION_WEIGHT,
    MIN_OPTION_COUNT,
    MIN_QUESTION_WEIGHT,
    MIXED_CATEGORY,
)
from skillquest.core.scoring import rank_for_xp, xp_at_level_start, xp_for_next_level
from skillquest.utils.numbers import percentage, round_half_up

AnswerValue = Union[int, tuple[int, ...]]

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class EntityValidationError(ValueError):
    """Raised when an entity would violate one of its invariants."""


class QuestionCategory(str, Enum):
    REACT = "react"
    HTML = "html"
    CSS = "css"
    BROWSER = "browser"
    NEXTJS = "nextjs"
    REACT_NATIVE = "react-native"
    WEB3 = "web3"
    MOBILE = "mobile"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    SYSTEM_DESIGN = "system-design"
    ARCHITECTURE = "architecture"
    NETWORKING = "networking"
    ALGORITHMS = "algorithms"
    PERFORMANCE = "performance"
    SECURITY = "security"
    TESTING = "testing"
    TOOLING = "tooling"
    SOFT_SKILLS = "soft-skills"


class Difficulty(str, Enum):
    JUNIOR = "junior"
    MIDDLE = "middle"
    SENIOR = "senior"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    CODE_REVIEW = "code-review"
    TRUE_FALSE = "true-false"


SESSION_CATEGORIES: frozenset[str] = frozenset(
    {category.value for category in QuestionCategory} | {MIXED_CATEGORY}
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_text(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise EntityValidationError(message)
    return value


def _coerce_enum(enum_type: type[Enum], value: Any, label: str) -> Any:
    try:
        return enum_type(value)
    except ValueError as exc:
        raise EntityValidationError(f"Unknown {label}: {value!r}") from exc


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _normalize_answer_value(value: Any, label: str) -> AnswerValue:
    """Accept an index or any iterable of indices; sets become tuples."""
    if _is_index(value):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        items = tuple(value)
        if not all(_is_index(item) for item in items):
            raise EntityValidationError(f"{label} must contain integer indices only.")
        return items
    raise EntityValidationError(f"{label} must be an index or a list of indices.")


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with stored timestamps."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _as_utc(value: Any, label: str) -> datetime:
    if not isinstance(value, datetime):
        raise EntityValidationError(f"{label} must be a datetime.")
    return as_utc(value)


def _is_non_negative_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


class _Entity:
    """Shared create/replace/serialize behaviour for the frozen entities."""

    __slots__ = ()

    @classmethod
    def create(cls, **props: Any):
        return cls(**props)

    def replace(self, **overrides: Any):
        return dataclass_replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = [entry.to_dict() if isinstance(entry, _Entity) else entry for entry in value]
            data[item.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        return cls(**data)


@dataclass(frozen=True, slots=True)
class Question(_Entity):
    """Weighted question with two or more options and one or several correct indices."""

    id: str
    category: QuestionCategory
    difficulty: Difficulty
    question_type: QuestionType
    question_text: str
    options: tuple[str, ...]
    correct_answer: AnswerValue
    explanation: str = ""
    tags: tuple[str, ...] = ()
    weight: int = 1
    code: str | None = None

    def __post_init__(self) -> None:
        _require_text(self.id, "Question ID cannot be empty.")
        object.__setattr__(self, "category", _coerce_enum(QuestionCategory, self.category, "category"))
        object.__setattr__(self, "difficulty", _coerce_enum(Difficulty, self.difficulty, "difficulty"))
        object.__setattr__(
            self, "question_type", _coerce_enum(QuestionType, self.question_type, "question type")
        )
        _require_text(self.question_text, "Question text cannot be empty.")

        options = tuple(self.options)
        if len(options) < MIN_OPTION_COUNT:
            raise EntityValidationError(f"Question must have at least {MIN_OPTION_COUNT} options.")
        if any(not isinstance(option, str) for option in options):
            raise EntityValidationError("Options must be strings.")
        object.__setattr__(self, "options", options)

        if not _is_index(self.weight) or not MIN_QUESTION_WEIGHT <= self.weight <= MAX_QUESTION_WEIGHT:
            raise EntityValidationError(
                f"Question weight must be between {MIN_QUESTION_WEIGHT} and {MAX_QUESTION_WEIGHT}."
            )

        correct = _normalize_answer_value(self.correct_answer, "Correct answer")
        indices = correct if isinstance(correct, tuple) else (correct,)
        if not indices:
            raise EntityValidationError("Correct answer must name at least one option.")
        if any(not 0 <= index < len(options) for index in indices):
            raise EntityValidationError("Correct answer index out of range.")
        object.__setattr__(self, "correct_answer", correct)

        object.__setattr__(self, "tags", tuple(self.tags))
        if self.explanation is None:
            object.__setattr__(self, "explanation", "")

    @property
    def has_multiple_answers(self) -> bool:
        return isinstance(self.correct_answer, tuple)

    def is_correct_answer(self, given: Any) -> bool:
        """Single answers compare by equality, index sets irrespective of order."""
        if isinstance(self.correct_answer, tuple):
            if not isinstance(given, (list, tuple, set, frozenset)):
                return False
            given_items = list(given)
            if not all(_is_index(item) for item in given_items):
                return False
            if len(given_items) != len(self.correct_answer):
                return False
            return sorted(given_items) == sorted(self.correct_answer)
        return _is_index(given) and given == self.correct_answer


@dataclass(frozen=True, slots=True)
class Answer(_Entity):
    """A committed choice for one question; ``is_correct`` is fixed at answer time."""

    question_id: str
    user_answer: AnswerValue
    is_correct: bool
    time_spent: float
    answered_at: datetime

    def __post_init__(self) -> None:
        _require_text(self.question_id, "Question ID cannot be empty.")
        user_answer = _normalize_answer_value(self.user_answer, "User answer")
        indices = user_answer if isinstance(user_answer, tuple) else (user_answer,)
        if any(index < 0 for index in indices):
            raise EntityValidationError("User answer indices cannot be negative.")
        object.__setattr__(self, "user_answer", user_answer)
        if not isinstance(self.is_correct, bool):
            raise EntityValidationError("is_correct must be a boolean.")
        if not _is_non_negative_number(self.time_spent):
            raise EntityValidationError("Time spent cannot be negative.")
        object.__setattr__(self, "answered_at", _as_utc(self.answered_at, "answered_at"))

    @classmethod
    def for_question(
        cls,
        question: Question,
        user_answer: Any,
        time_spent: float,
        answered_at: datetime | None = None,
    ) -> "Answer":
        return cls(
            question_id=question.id,
            user_answer=user_answer,
            is_correct=question.is_correct_answer(user_answer),
            time_spent=time_spent,
            answered_at=answered_at or utcnow(),
        )


@dataclass(frozen=True, slots=True)
class QuizSession(_Entity):
    """One attempt at a fixed question set; durable only once completed."""

    id: str
    user_id: str
    category: str
    question_ids: tuple[str, ...]
    started_at: datetime
    answers: tuple[Answer, ...] = ()
    completed_at: datetime | None = None
    total_score: int = 0
    max_score: int = 0

    def __post_init__(self) -> None:
        _require_text(self.id, "Quiz session ID cannot be empty.")
        _require_text(self.user_id, "User ID cannot be empty.")

        category = self.category.value if isinstance(self.category, Enum) else self.category
        if category not in SESSION_CATEGORIES:
            raise EntityValidationError(f"Unknown category: {category!r}")
        object.__setattr__(self, "category", category)

        question_ids = tuple(self.question_ids)
        if not question_ids:
            raise EntityValidationError("Quiz session must have at least one question.")
        if any(not isinstance(question_id, str) or not question_id.strip() for question_id in question_ids):
            raise EntityValidationError("Question IDs cannot be empty.")
        object.__setattr__(self, "question_ids", question_ids)

        answers = tuple(
            entry if isinstance(entry, Answer) else Answer.from_dict(entry) for entry in self.answers
        )
        if len(answers) > len(question_ids):
            raise EntityValidationError("A session cannot hold more answers than questions.")
        known_ids = set(question_ids)
        if any(answer.question_id not in known_ids for answer in answers):
            raise EntityValidationError("Answer references a question outside the session.")
        object.__setattr__(self, "answers", answers)

        started_at = _as_utc(self.started_at, "started_at")
        object.__setattr__(self, "started_at", started_at)
        if self.completed_at is not None:
            completed_at = _as_utc(self.completed_at, "completed_at")
            if completed_at < started_at:
                raise EntityValidationError("Completion time cannot precede start time.")
            object.__setattr__(self, "completed_at", completed_at)

        if not _is_index(self.total_score) or not _is_index(self.max_score):
            raise EntityValidationError("Scores must be integers.")
        if self.total_score < 0 or self.max_score < 0:
            raise EntityValidationError("Scores cannot be negative.")
        if self.total_score > self.max_score:
            raise EntityValidationError("Total score cannot exceed max score.")

    @staticmethod
    def compose_id(user_id: str, started_at: datetime) -> str:
        return f"{user_id}_{int(started_at.timestamp() * 1000)}"

    def is_completed(self) -> bool:
        return self.completed_at is not None and len(self.answers) == len(self.question_ids)

    def correct_count(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)

    def get_progress(self) -> int:
        return percentage(len(self.answers), len(self.question_ids))

    def get_accuracy(self) -> int:
        return percentage(self.correct_count(), len(self.answers))

    def get_score_percentage(self) -> int:
        return percentage(self.total_score, self.max_score)

    def get_duration(self, now: datetime | None = None) -> int:
        """Whole seconds from start to completion, or to ``now`` while still open."""
        end = self.completed_at or _as_utc(now or utcnow(), "now")
        return max(0, math.floor((end - self.started_at).total_seconds()))


@dataclass(frozen=True, slots=True)
class User(_Entity):
    """Authenticated user with cumulative XP; rank is derived, never stored."""

    id: str
    email: str
    display_name: str
    created_at: datetime
    level: int = 1
    xp: int = 0
    photo_url: str | None = None

    def __post_init__(self) -> None:
        _require_text(self.id, "User ID cannot be empty.")
        if not isinstance(self.email, str) or not _EMAIL_PATTERN.match(self.email):
            raise EntityValidationError("Invalid email address.")
        if not isinstance(self.display_name, str):
            raise EntityValidationError("Display name must be a string.")
        if not _is_index(self.level) or self.level < 1:
            raise EntityValidationError("User level must be at least 1.")
        if not _is_index(self.xp) or self.xp < 0:
            raise EntityValidationError("User XP cannot be negative.")
        object.__setattr__(self, "created_at", _as_utc(self.created_at, "created_at"))

    def get_rank(self) -> str:
        return rank_for_xp(self.xp)

    def get_xp_for_next_level(self) -> int:
        return xp_for_next_level(self.level)

    def get_progress_percentage(self) -> int:
        level_start = xp_at_level_start(self.level)
        needed = self.get_xp_for_next_level() - level_start
        progress = round_half_up((self.xp - level_start) / needed * 100)
        return min(100, max(0, progress))


def question_ids_of(questions: Iterable[Question]) -> tuple[str, ...]:
    return tuple(question.id for question in questions)
