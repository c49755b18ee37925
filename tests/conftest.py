from __future__ import annotations

from datetime import datetime, timedelta, timezone
import random

import pytest

from skillquest.core.models import Answer, Question, QuizSession, User
from skillquest.core.question_loader import load_default_corpus
from skillquest.core.services.question_catalog import QuestionCatalog
from skillquest.storage.document_store import InMemoryDocumentStore

# A Wednesday.
FIXED_NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def make_question():
    def factory(**overrides) -> Question:
        props = {
            "id": "q-1",
            "category": "typescript",
            "difficulty": "junior",
            "question_type": "multiple-choice",
            "question_text": "Which keyword declares a type alias?",
            "options": ["interface", "type", "alias", "typedef"],
            "correct_answer": 1,
            "weight": 1,
        }
        props.update(overrides)
        return Question.create(**props)

    return factory


@pytest.fixture
def weighted_questions(make_question) -> list[Question]:
    return [
        make_question(id="q-1", weight=3, correct_answer=0),
        make_question(id="q-2", weight=5, correct_answer=1),
        make_question(id="q-3", weight=2, correct_answer=2),
    ]


@pytest.fixture
def make_user():
    def factory(**overrides) -> User:
        props = {
            "id": "user-1",
            "email": "ada@example.com",
            "display_name": "Ada",
            "created_at": FIXED_NOW - timedelta(days=30),
        }
        props.update(overrides)
        return User.create(**props)

    return factory


@pytest.fixture
def make_session():
    """Build a completed session; ``correct`` lists per-question correctness."""

    def factory(
        started_at: datetime = FIXED_NOW,
        category: str = "typescript",
        question_ids: tuple[str, ...] = ("ts-001", "ts-002"),
        correct: tuple[bool, ...] = (True, False),
        total_score: int = 2,
        max_score: int = 5,
        user_id: str = "user-1",
    ) -> QuizSession:
        answers = [
            Answer.create(
                question_id=question_id,
                user_answer=0,
                is_correct=is_correct,
                time_spent=4.0,
                answered_at=started_at + timedelta(seconds=5 * (index + 1)),
            )
            for index, (question_id, is_correct) in enumerate(zip(question_ids, correct))
        ]
        return QuizSession.create(
            id=QuizSession.compose_id(user_id, started_at),
            user_id=user_id,
            category=category,
            question_ids=question_ids,
            answers=answers,
            started_at=started_at,
            completed_at=started_at + timedelta(minutes=2),
            total_score=total_score,
            max_score=max_score,
        )

    return factory


@pytest.fixture
def corpus():
    return load_default_corpus()


@pytest.fixture
def catalog(corpus) -> QuestionCatalog:
    return QuestionCatalog(corpus.questions, corpus.categories, rng=random.Random(1234))


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()
