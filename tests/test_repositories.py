from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from skillquest.storage.errors import MalformedDocumentError, PersistenceReadError, PersistenceWriteError
from skillquest.storage.session_repository import QuizSessionRepository
from skillquest.storage.user_repository import UserRepository

from fakes import FlakyStore


class TestQuizSessionRepository:
    def test_create_and_fetch(self, store, make_session):
        repository = QuizSessionRepository(store)
        session = make_session()

        async def scenario():
            saved = await repository.create(session)
            return saved, await repository.get_by_id(session.id)

        saved, fetched = asyncio.run(scenario())

        assert saved
        assert fetched == session

    def test_create_swallows_write_failures(self, make_session):
        repository = QuizSessionRepository(FlakyStore(fail_writes=True))

        assert asyncio.run(repository.create(make_session())) is False

    def test_update_and_delete_raise_on_failure(self, make_session):
        repository = QuizSessionRepository(FlakyStore(fail_writes=True))

        with pytest.raises(PersistenceWriteError):
            asyncio.run(repository.update(make_session()))
        with pytest.raises(PersistenceWriteError):
            asyncio.run(repository.delete("missing"))

    def test_update_merges_fields(self, store, make_session):
        repository = QuizSessionRepository(store)
        session = make_session(total_score=2, max_score=5)

        async def scenario():
            await repository.create(session)
            await repository.update(session.replace(total_score=4))
            return await repository.get_by_id(session.id)

        assert asyncio.run(scenario()).total_score == 4

    def test_get_by_id_raises_read_error(self):
        repository = QuizSessionRepository(FlakyStore(read_failures=1))

        with pytest.raises(PersistenceReadError):
            asyncio.run(repository.get_by_id("any"))

    def test_user_queries_are_newest_first(self, store, make_session, fixed_now):
        repository = QuizSessionRepository(store)
        sessions = [
            make_session(started_at=fixed_now - timedelta(days=2)),
            make_session(started_at=fixed_now, category="react"),
            make_session(started_at=fixed_now - timedelta(days=1)),
            make_session(started_at=fixed_now, user_id="user-2"),
        ]

        async def scenario():
            for session in sessions:
                await repository.create(session)
            return (
                await repository.get_by_user_id("user-1"),
                await repository.get_latest_sessions("user-1", 2),
                await repository.get_user_sessions_by_category("user-1", "typescript"),
            )

        all_sessions, latest, typescript = asyncio.run(scenario())

        assert [s.started_at for s in all_sessions] == [
            fixed_now,
            fixed_now - timedelta(days=1),
            fixed_now - timedelta(days=2),
        ]
        assert latest == all_sessions[:2]
        assert all(s.category == "typescript" for s in typescript)
        assert len(typescript) == 2

    def test_malformed_documents_are_skipped_in_lists(self, store, make_session):
        repository = QuizSessionRepository(store)
        session = make_session()

        async def scenario():
            await repository.create(session)
            await store.set("quizSessions", "broken", {"userId": "user-1", "startedAt": session.started_at})
            listed = await repository.get_by_user_id("user-1")
            return listed

        assert asyncio.run(scenario()) == [session]
        with pytest.raises(MalformedDocumentError):
            asyncio.run(repository.get_by_id("broken"))

    def test_delete_removes_session(self, store, make_session):
        repository = QuizSessionRepository(store)
        session = make_session()

        async def scenario():
            await repository.create(session)
            await repository.delete(session.id)
            return await repository.get_by_id(session.id)

        assert asyncio.run(scenario()) is None


class TestUserRepository:
    def test_save_is_merge_upsert(self, store, make_user):
        repository = UserRepository(store)
        user = make_user()

        async def scenario():
            await store.set("users", user.id, {"email": user.email, "displayName": "Old", "favourite": "tea"})
            saved = await repository.save_user(user.replace(xp=300))
            return saved, await store.get("users", user.id), await repository.get_user_by_id(user.id)

        saved, raw, fetched = asyncio.run(scenario())

        assert saved
        assert raw["favourite"] == "tea"
        assert raw["displayName"] == "Ada"
        assert fetched.xp == 300

    def test_progress_save_keeps_stored_creation_date(self, store, make_user, fixed_now):
        repository = UserRepository(store)
        joined = fixed_now - timedelta(days=1500)
        user = make_user()

        async def scenario():
            await store.set("users", user.id, {"email": user.email, "displayName": "Ada", "createdAt": joined})
            await repository.save_user(user.replace(xp=5000, level=6))
            return await store.get("users", user.id)

        raw = asyncio.run(scenario())

        assert raw["createdAt"] == joined
        assert raw["xp"] == 5000

    def test_created_profile_records_creation_date(self, store, make_user):
        repository = UserRepository(store)
        user = make_user()

        async def scenario():
            await repository.save_user(user, create=True)
            return await store.get("users", user.id)

        assert asyncio.run(scenario())["createdAt"] == user.created_at

    def test_save_failure_is_reported_not_raised(self, make_user):
        repository = UserRepository(FlakyStore(fail_writes=True))

        assert asyncio.run(repository.save_user(make_user())) is False

    def test_missing_user_is_none(self, store):
        assert asyncio.run(UserRepository(store).get_user_by_id("ghost")) is None

    def test_retry_recovers_from_transient_failures(self, make_user):
        store = FlakyStore(read_failures=2)
        repository = UserRepository(store)
        user = make_user(xp=1500, level=2)

        async def scenario():
            await repository.save_user(user, create=True)
            return await repository.get_user_by_id_with_retry(user.id, attempts=3, delay_seconds=0)

        fetched = asyncio.run(scenario())

        assert fetched.xp == 1500
        assert store.get_calls == 3

    def test_retry_gives_up_after_all_attempts(self):
        store = FlakyStore(read_failures=5)
        repository = UserRepository(store)

        with pytest.raises(PersistenceReadError):
            asyncio.run(repository.get_user_document_with_retry("user-1", attempts=3, delay_seconds=0))
        assert store.get_calls == 3
