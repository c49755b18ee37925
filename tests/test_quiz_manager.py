from __future__ import annotations

import asyncio

import pytest

from skillquest.core.quiz_manager import NotSignedInError, QuizManager
from skillquest.core.services.auth_state import SyncStatus
from skillquest.core.services.task_scope import TaskScope
from skillquest.storage.identity import IdentityClaims, InMemoryIdentityProvider


@pytest.fixture
def manager(catalog, store) -> QuizManager:
    identity = InMemoryIdentityProvider(popup_claims=IdentityClaims(id="g-1", email="ada@example.com"))
    return QuizManager(catalog, store, identity, retry_delay_seconds=0)


async def _play(manager: QuizManager, correct: bool = True):
    outcome = None
    while manager.get_quiz_state().current_question is not None:
        question = manager.get_quiz_state().current_question
        given = question.correct_answer if correct else _wrong_answer(question)
        outcome = await manager.submit_answer(given, time_spent=3.0)
    return outcome


def _wrong_answer(question):
    if question.has_multiple_answers:
        return [0]
    return (question.correct_answer + 1) % len(question.options)


def test_requires_signed_in_user(manager):
    with pytest.raises(NotSignedInError):
        manager.require_current_user()


def test_full_quiz_awards_xp_and_feeds_dashboard(manager, store):
    async def scenario():
        manager.start()
        user = await manager.auth.sign_in_with_popup()
        await manager.wait_for_background_tasks()
        session = manager.start_quiz(user.id, category="typescript", count=3)
        outcome = await _play(manager)
        pending_status = manager.get_auth_state().sync_status
        await manager.wait_for_background_tasks()

        view = TaskScope("dashboard")
        stats = await manager.load_dashboard(user.id, view)
        history = await manager.load_history(user.id, view)
        view.close()
        return session, outcome, pending_status, stats, history

    session, outcome, pending_status, stats, history = asyncio.run(scenario())

    completion = outcome.completion
    assert completion is not None
    assert completion.session.id == session.id
    assert completion.session.total_score == session.max_score
    assert completion.xp_reward == session.max_score * 10
    assert pending_status is SyncStatus.PENDING
    assert manager.get_auth_state().sync_status is SyncStatus.CONFIRMED
    assert manager.get_current_user().xp == completion.xp_reward
    assert not manager.get_quiz_state().saving_session
    assert store.document_count("quizSessions") == 1

    assert stats.session_count == 1
    assert stats.weekly_challenge.completed_count == 1
    assert stats.accuracy.accuracy == 100
    assert [s.id for s in history] == [session.id]


def test_mixed_quiz_draws_from_every_category(manager):
    session = manager.start_quiz("user-1", count=24)

    assert session.category == "mixed"
    assert len(session.question_ids) == 24
    assert manager.get_quiz_state().current_question is not None


def test_wrong_answers_score_nothing(manager):
    async def scenario():
        manager.start_quiz("user-1", category="css", count=4)
        return await _play(manager, correct=False)

    outcome = asyncio.run(scenario())

    assert outcome.completion.session.total_score == 0
    assert outcome.completion.xp_reward == 0
    assert outcome.completion.user is None


def test_invalid_quiz_requests(manager):
    with pytest.raises(ValueError):
        manager.start_quiz("user-1", category="cobol")
    with pytest.raises(ValueError):
        manager.start_quiz("user-1", count=0)
    with pytest.raises(RuntimeError):
        manager.start_quiz("user-1", category="react", difficulty="senior", tags=["no-such-tag"])


def test_answer_without_quiz_is_rejected(manager):
    with pytest.raises(RuntimeError):
        asyncio.run(manager.submit_answer(0, time_spent=1))
    assert manager.get_quiz_state().error is not None


def test_reset_discards_the_active_quiz(manager):
    manager.start_quiz("user-1", category="react", count=2)

    manager.reset_quiz()

    assert manager.get_quiz_state().current_session is None


def test_closed_view_discards_results(manager):
    async def scenario():
        view = TaskScope("dashboard")
        view.close()
        return (
            await manager.load_dashboard("user-1", view),
            await manager.load_history("user-1", view),
        )

    assert asyncio.run(scenario()) == (None, None)


def test_history_by_category_respects_limit(manager):
    async def scenario():
        for _ in range(2):
            manager.start_quiz("user-1", category="react", count=1)
            await _play(manager)
            await asyncio.sleep(0.002)
        view = TaskScope("history")
        return await manager.load_history("user-1", view, category="react", limit=1)

    history = asyncio.run(scenario())

    assert len(history) == 1
    assert history[0].category == "react"


def test_quiz_store_notifies_subscribers(manager):
    seen = []
    unsubscribe = manager.quiz_store.subscribe(lambda state: seen.append(state.current_session))

    manager.start_quiz("user-1", category="react", count=1)
    unsubscribe()
    manager.reset_quiz()

    assert len(seen) == 1
    assert seen[0].category == "react"


def test_answer_after_completion_reports_completed_quiz(manager):
    async def scenario():
        manager.start_quiz("user-1", category="react", count=1)
        await _play(manager)
        await manager.submit_answer(0, time_spent=1)

    with pytest.raises(RuntimeError, match="already completed"):
        asyncio.run(scenario())
    assert manager.get_quiz_state().current_session.completed_at is not None
