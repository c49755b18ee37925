"""Service persisting a finished quiz and turning its score into XP."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from skillquest.constants.sync_constants import USER_FETCH_ATTEMPTS, USER_FETCH_RETRY_DELAY_SECONDS
from skillquest.core.models import QuizSession, User
from skillquest.core.scoring import apply_xp_reward, calculate_xp_reward, level_for_xp
from skillquest.core.services.auth_state import (
    AuthState,
    user_sync_confirmed,
    user_sync_failed,
    user_update_pending,
)
from skillquest.core.services.task_scope import TaskScope
from skillquest.core.state_store import StateStore
from skillquest.storage.errors import PersistenceReadError
from skillquest.storage.session_repository import QuizSessionRepository
from skillquest.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompletionResult:
    session: QuizSession
    session_saved: bool
    xp_reward: int
    user: User | None
    leveled_up: bool


class ProgressSync:
    """Runs the finish step: store the session, then award XP optimistically.

    The session write is awaited before the user is read, and it never raises.
    The XP update reaches the auth state immediately as ``PENDING``; the
    merge-upsert runs in the background and settles the state afterwards.
    """

    def __init__(
        self,
        session_repository: QuizSessionRepository,
        user_repository: UserRepository,
        auth_store: StateStore[AuthState],
        scope: TaskScope,
        fetch_attempts: int = USER_FETCH_ATTEMPTS,
        retry_delay_seconds: float = USER_FETCH_RETRY_DELAY_SECONDS,
    ) -> None:
        self._sessions = session_repository
        self._users = user_repository
        self._auth_store = auth_store
        self._scope = scope
        self._fetch_attempts = fetch_attempts
        self._retry_delay_seconds = retry_delay_seconds

    async def complete_session(self, session: QuizSession) -> CompletionResult:
        saved = await self._sessions.create(session)
        reward = calculate_xp_reward(session.total_score)

        user = await self._load_current_user(session.user_id)
        if user is None:
            logger.warning("No user %s to award %d XP to", session.user_id, reward)
            return CompletionResult(session, saved, reward, None, leveled_up=False)

        new_xp = apply_xp_reward(user.xp, reward)
        updated = user.replace(xp=new_xp, level=level_for_xp(new_xp))

        current = self._auth_store.state.user
        if current is not None and current.id == updated.id:
            self._auth_store.dispatch(user_update_pending, updated)
        self._scope.spawn(self._persist_user(updated), name=f"save-user-{updated.id}")

        logger.info(
            "Session %s scored %d/%d, awarded %d XP to %s",
            session.id,
            session.total_score,
            session.max_score,
            reward,
            updated.id,
        )
        return CompletionResult(
            session=session,
            session_saved=saved,
            xp_reward=reward,
            user=updated,
            leveled_up=updated.level > user.level,
        )

    async def _load_current_user(self, user_id: str) -> User | None:
        local = self._auth_store.state.user
        if local is not None and local.id != user_id:
            local = None
        try:
            stored = await self._users.get_user_by_id_with_retry(
                user_id,
                attempts=self._fetch_attempts,
                delay_seconds=self._retry_delay_seconds,
            )
        except PersistenceReadError:
            logger.warning("Could not read user %s; using local state", user_id, exc_info=True)
            return local
        return stored or local

    async def _persist_user(self, user: User) -> None:
        if await self._users.save_user(user):
            self._auth_store.dispatch(user_sync_confirmed, user)
        else:
            self._auth_store.dispatch(user_sync_failed, user)
