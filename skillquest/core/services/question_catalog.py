"""Service holding the fixed question corpus with filtering and random sampling."""

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Iterable, Sequence

from skillquest.core.models import Difficulty, Question, QuestionCategory


@dataclass(frozen=True, slots=True)
class QuestionFilters:
    """Optional predicates, applied in field order; a falsy ``limit`` means no cap."""

    category: QuestionCategory | str | None = None
    difficulty: Difficulty | str | None = None
    tags: tuple[str, ...] | None = None
    limit: int | None = None


class QuestionCatalog:
    """In-memory corpus loaded once at startup and never mutated afterwards."""

    def __init__(
        self,
        questions: Iterable[Question],
        categories: Sequence[str] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._questions: tuple[Question, ...] = tuple(questions)
        self._by_id: dict[str, Question] = {}
        for question in self._questions:
            if question.id in self._by_id:
                raise ValueError(f"Duplicate question id {question.id!r}")
            self._by_id[question.id] = question
        if categories is None:
            categories = list(dict.fromkeys(question.category.value for question in self._questions))
        self._categories = tuple(categories)
        self._rng = rng or random.Random()

    def question_count(self) -> int:
        return len(self._questions)

    def get_all(self, filters: QuestionFilters | None = None) -> list[Question]:
        result = list(self._questions)
        if filters is None:
            return result

        if filters.category:
            category = QuestionCategory(filters.category)
            result = [q for q in result if q.category == category]

        if filters.difficulty:
            difficulty = Difficulty(filters.difficulty)
            result = [q for q in result if q.difficulty == difficulty]

        if filters.tags:
            wanted = set(filters.tags)
            result = [q for q in result if wanted.intersection(q.tags)]

        if filters.limit:
            result = result[: filters.limit]

        return result

    def get_by_id(self, question_id: str) -> Question | None:
        return self._by_id.get(question_id)

    def get_by_category(self, category: QuestionCategory | str, limit: int | None = None) -> list[Question]:
        return self.get_all(QuestionFilters(category=category, limit=limit))

    def get_random_questions(self, count: int, filters: QuestionFilters | None = None) -> list[Question]:
        """Sample ``count`` distinct questions; asking for more than exist returns them all."""
        if count < 0:
            raise ValueError("Question count cannot be negative.")
        pool = self.get_all(filters)
        self._shuffle(pool)
        return pool[: min(count, len(pool))]

    def get_categories(self) -> list[str]:
        return list(self._categories)

    def _shuffle(self, items: list[Question]) -> None:
        # Fisher-Yates: every permutation equally likely.
        for i in range(len(items) - 1, 0, -1):
            j = self._rng.randint(0, i)
            items[i], items[j] = items[j], items[i]
