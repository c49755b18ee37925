"""Wire schemas and converters between entities and stored documents.

Documents use camelCase keys. Everything read from the outside world passes
through a pydantic model first and then through the entity constructor, so a
malformed document fails here instead of leaking into the domain layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, ValidationError
from pydantic.alias_generators import to_camel

from skillquest.core.models import Answer, EntityValidationError, Question, QuizSession, User, utcnow
from skillquest.storage.errors import MalformedDocumentError


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionRecord(_Document):
    """Question record as it appears in the corpus file."""

    id: str
    category: str
    difficulty: str
    question_type: str = Field(alias="type")
    question_text: str = Field(alias="question")
    code: str | None = None
    options: list[str]
    correct_answer: StrictInt | list[StrictInt]
    explanation: str = ""
    tags: list[str] = Field(default_factory=list)
    weight: StrictInt

    def to_entity(self) -> Question:
        return Question.create(
            id=self.id,
            category=self.category,
            difficulty=self.difficulty,
            question_type=self.question_type,
            question_text=self.question_text,
            code=self.code,
            options=self.options,
            correct_answer=self.correct_answer,
            explanation=self.explanation,
            tags=self.tags,
            weight=self.weight,
        )


class AnswerDocument(_Document):
    question_id: str
    user_answer: StrictInt | list[StrictInt]
    is_correct: StrictBool
    time_spent: float
    answered_at: datetime


class QuizSessionDocument(_Document):
    user_id: str
    category: str
    question_ids: list[str]
    answers: list[AnswerDocument] = Field(default_factory=list)
    started_at: datetime
    completed_at: datetime | None = None
    total_score: StrictInt
    max_score: StrictInt


class UserDocument(_Document):
    email: str
    display_name: str
    photo_url: str | None = Field(default=None, alias="photoURL")
    level: StrictInt = 1
    xp: StrictInt = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _answer_value_to_wire(value: int | tuple[int, ...]) -> int | list[int]:
    return list(value) if isinstance(value, tuple) else value


def answer_to_document(answer: Answer) -> AnswerDocument:
    return AnswerDocument(
        question_id=answer.question_id,
        user_answer=_answer_value_to_wire(answer.user_answer),
        is_correct=answer.is_correct,
        time_spent=answer.time_spent,
        answered_at=answer.answered_at,
    )


def session_to_document(session: QuizSession) -> dict[str, Any]:
    document = QuizSessionDocument(
        user_id=session.user_id,
        category=session.category,
        question_ids=list(session.question_ids),
        answers=[answer_to_document(answer) for answer in session.answers],
        started_at=session.started_at,
        completed_at=session.completed_at,
        total_score=session.total_score,
        max_score=session.max_score,
    )
    return document.model_dump(by_alias=True, exclude_none=True)


def session_from_document(session_id: str, data: dict[str, Any]) -> QuizSession:
    try:
        document = QuizSessionDocument.model_validate(data)
        return QuizSession.create(
            id=session_id,
            user_id=document.user_id,
            category=document.category,
            question_ids=document.question_ids,
            answers=[
                Answer.create(
                    question_id=answer.question_id,
                    user_answer=answer.user_answer,
                    is_correct=answer.is_correct,
                    time_spent=answer.time_spent,
                    answered_at=answer.answered_at,
                )
                for answer in document.answers
            ],
            started_at=document.started_at,
            completed_at=document.completed_at,
            total_score=document.total_score,
            max_score=document.max_score,
        )
    except (ValidationError, EntityValidationError) as exc:
        raise MalformedDocumentError(f"Quiz session {session_id!r} is malformed: {exc}") from exc


def user_to_document(
    user: User,
    updated_at: datetime | None = None,
    include_created_at: bool = False,
) -> dict[str, Any]:
    """Profile fields for a merge-upsert; ``createdAt`` only when the document is first written."""
    document = UserDocument(
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
        level=user.level,
        xp=user.xp,
        created_at=user.created_at if include_created_at else None,
        updated_at=updated_at or utcnow(),
    )
    return document.model_dump(by_alias=True, exclude_none=True)


def user_from_document(user_id: str, data: dict[str, Any]) -> User:
    """Build a user from its stored profile; missing progress fields fall back to defaults."""
    try:
        document = UserDocument.model_validate(data)
        return User.create(
            id=user_id,
            email=document.email,
            display_name=document.display_name,
            photo_url=document.photo_url,
            created_at=document.created_at or utcnow(),
            level=document.level,
            xp=document.xp or 0,
        )
    except (ValidationError, EntityValidationError) as exc:
        raise MalformedDocumentError(f"User {user_id!r} is malformed: {exc}") from exc
