"""State transitions for the active quiz.

Each function takes the current ``QuizState`` and returns a new one. Misuse
(answering without a session, answering past the last question) is reported
through ``QuizState.error`` rather than raised, so callers check the state
before moving on. Entity validation failures still raise.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Sequence

from skillquest.core.models import Answer, Question, QuizSession, question_ids_of, utcnow
from skillquest.core.scoring import calculate_max_score

NO_ACTIVE_SESSION = "No active quiz session"
INVALID_QUESTION_INDEX = "Invalid question index"
NO_QUESTIONS_AVAILABLE = "No questions available for this quiz"
ANSWER_MISMATCH = "Answer does not belong to the current question"
QUIZ_NOT_FINISHED = "Quiz still has unanswered questions"
QUIZ_ALREADY_COMPLETED = "Quiz session is already completed"


@dataclass(frozen=True, slots=True)
class QuizState:
    current_session: QuizSession | None = None
    questions: tuple[Question, ...] = ()
    current_question_index: int = 0
    saving_session: bool = False
    error: str | None = None

    @property
    def current_question(self) -> Question | None:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def is_ready_to_finish(self) -> bool:
        session = self.current_session
        return (
            session is not None
            and session.completed_at is None
            and len(session.answers) == len(session.question_ids)
        )


def start_quiz(
    state: QuizState,
    user_id: str,
    category: str,
    questions: Sequence[Question],
    now: datetime | None = None,
) -> QuizState:
    if not questions:
        return replace(state, error=NO_QUESTIONS_AVAILABLE)
    started_at = now or utcnow()
    session = QuizSession.create(
        id=QuizSession.compose_id(user_id, started_at),
        user_id=user_id,
        category=category,
        question_ids=question_ids_of(questions),
        answers=[],
        started_at=started_at,
        total_score=0,
        max_score=calculate_max_score(questions),
    )
    return QuizState(current_session=session, questions=tuple(questions))


def answer_question(state: QuizState, answer: Answer) -> QuizState:
    session = state.current_session
    if session is None:
        return replace(state, error=NO_ACTIVE_SESSION)
    if session.completed_at is not None:
        return replace(state, error=QUIZ_ALREADY_COMPLETED)

    question = state.current_question
    if question is None:
        return replace(state, error=INVALID_QUESTION_INDEX)
    if answer.question_id != question.id:
        return replace(state, error=ANSWER_MISMATCH)

    score_gained = question.weight if answer.is_correct else 0
    updated = session.replace(
        answers=session.answers + (answer,),
        total_score=session.total_score + score_gained,
    )
    return replace(
        state,
        current_session=updated,
        current_question_index=state.current_question_index + 1,
        error=None,
    )


def complete_quiz(state: QuizState, now: datetime | None = None) -> QuizState:
    session = state.current_session
    if session is None:
        return replace(state, error=NO_ACTIVE_SESSION)
    if session.completed_at is not None:
        return replace(state, error=QUIZ_ALREADY_COMPLETED)
    if len(session.answers) != len(session.question_ids):
        return replace(state, error=QUIZ_NOT_FINISHED)
    completed = session.replace(completed_at=now or utcnow())
    return replace(state, current_session=completed, saving_session=True, error=None)


def mark_session_saved(state: QuizState) -> QuizState:
    return replace(state, saving_session=False)


def reset_quiz(state: QuizState) -> QuizState:
    return QuizState()


def set_error(state: QuizState, error: str | None) -> QuizState:
    return replace(state, error=error)
