from __future__ import annotations

from datetime import timedelta

import pytest

from skillquest.core.models import Answer, EntityValidationError
from skillquest.core.services.quiz_flow import (
    ANSWER_MISMATCH,
    INVALID_QUESTION_INDEX,
    NO_ACTIVE_SESSION,
    NO_QUESTIONS_AVAILABLE,
    QUIZ_ALREADY_COMPLETED,
    QUIZ_NOT_FINISHED,
    QuizState,
    answer_question,
    complete_quiz,
    mark_session_saved,
    reset_quiz,
    set_error,
    start_quiz,
)


@pytest.fixture
def started(weighted_questions, fixed_now) -> QuizState:
    return start_quiz(QuizState(), "user-1", "typescript", weighted_questions, now=fixed_now)


def _answer(state: QuizState, value, fixed_now) -> Answer:
    return Answer.for_question(state.current_question, value, time_spent=2.0, answered_at=fixed_now)


def _answer_all(state: QuizState, values, fixed_now) -> QuizState:
    for value in values:
        state = answer_question(state, _answer(state, value, fixed_now))
    return state


def test_start_creates_unsaved_session(started, fixed_now):
    session = started.current_session

    assert session.id == f"user-1_{int(fixed_now.timestamp() * 1000)}"
    assert session.question_ids == ("q-1", "q-2", "q-3")
    assert session.max_score == 10
    assert session.total_score == 0
    assert session.answers == ()
    assert session.completed_at is None
    assert started.current_question.id == "q-1"
    assert started.error is None


def test_start_without_questions_sets_error():
    state = start_quiz(QuizState(), "user-1", "mixed", [])

    assert state.current_session is None
    assert state.error == NO_QUESTIONS_AVAILABLE


def test_answers_accumulate_weighted_score(started, fixed_now):
    state = _answer_all(started, [0, 0, 2], fixed_now)

    assert state.current_session.total_score == 5
    assert state.current_question is None
    assert state.current_question_index == 3
    assert state.is_ready_to_finish


def test_answer_without_session_reports_error(make_question, fixed_now):
    answer = Answer.for_question(make_question(), 1, time_spent=1, answered_at=fixed_now)

    state = answer_question(QuizState(), answer)

    assert state.error == NO_ACTIVE_SESSION


def test_answer_past_last_question_reports_error(started, fixed_now):
    finished = _answer_all(started, [0, 1, 2], fixed_now)
    stray = Answer.create(question_id="q-1", user_answer=0, is_correct=True, time_spent=1, answered_at=fixed_now)

    state = answer_question(finished, stray)

    assert state.error == INVALID_QUESTION_INDEX
    assert state.current_session == finished.current_session


def test_answer_for_other_question_reports_error(started, fixed_now):
    wrong = Answer.create(question_id="q-3", user_answer=2, is_correct=True, time_spent=1, answered_at=fixed_now)

    state = answer_question(started, wrong)

    assert state.error == ANSWER_MISMATCH
    assert state.current_question_index == 0


def test_complete_stamps_completion_and_marks_saving(started, fixed_now):
    answered = _answer_all(started, [0, 1, 2], fixed_now)

    state = complete_quiz(answered, now=fixed_now + timedelta(minutes=1))

    assert state.current_session.completed_at == fixed_now + timedelta(minutes=1)
    assert state.current_session.is_completed()
    assert state.saving_session
    assert not state.is_ready_to_finish
    assert not mark_session_saved(state).saving_session


def test_complete_requires_every_answer(started, fixed_now):
    partial = _answer_all(started, [0], fixed_now)

    assert complete_quiz(partial).error == QUIZ_NOT_FINISHED
    assert complete_quiz(QuizState()).error == NO_ACTIVE_SESSION


def test_completed_session_cannot_be_completed_or_answered_again(started, fixed_now):
    done = complete_quiz(_answer_all(started, [0, 1, 2], fixed_now), now=fixed_now)
    stray = Answer.create(question_id="q-1", user_answer=0, is_correct=True, time_spent=1, answered_at=fixed_now)

    assert complete_quiz(done).error == QUIZ_ALREADY_COMPLETED
    assert answer_question(done, stray).error == QUIZ_ALREADY_COMPLETED


def test_completion_before_start_is_rejected(started, fixed_now):
    answered = _answer_all(started, [0, 1, 2], fixed_now)

    with pytest.raises(EntityValidationError):
        complete_quiz(answered, now=fixed_now - timedelta(minutes=1))


def test_reset_and_error_helpers(started):
    assert reset_quiz(started) == QuizState()
    assert set_error(started, "boom").error == "boom"
    assert set_error(started, None).error is None
