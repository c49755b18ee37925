"""Business logic facade shared by the API server and any other front end."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Sequence

from skillquest.constants.quiz_constants import DEFAULT_QUESTION_COUNT, MIXED_CATEGORY, RECENT_SESSION_LIMIT
from skillquest.constants.sync_constants import USER_FETCH_ATTEMPTS, USER_FETCH_RETRY_DELAY_SECONDS
from skillquest.core.models import Answer, Question, QuizSession, User
from skillquest.core.services.auth_service import AuthService
from skillquest.core.services.auth_state import AuthState
from skillquest.core.services.progress_sync import CompletionResult, ProgressSync
from skillquest.core.services.question_catalog import QuestionCatalog, QuestionFilters
from skillquest.core.services.quiz_flow import (
    NO_ACTIVE_SESSION,
    QUIZ_ALREADY_COMPLETED,
    QuizState,
    answer_question,
    complete_quiz,
    mark_session_saved,
    reset_quiz,
    set_error,
    start_quiz,
)
from skillquest.core.services.stats_aggregator import DashboardStats, build_dashboard_stats
from skillquest.core.services.task_scope import TaskScope
from skillquest.core.state_store import StateStore
from skillquest.storage.document_store import DocumentStore
from skillquest.storage.identity import IdentityProvider
from skillquest.storage.session_repository import QuizSessionRepository
from skillquest.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


class NotSignedInError(RuntimeError):
    """Raised when an operation needs a signed-in user and there is none."""


@dataclass(frozen=True, slots=True)
class AnswerOutcome:
    answer: Answer
    completion: CompletionResult | None = None


class QuizManager:
    """Facade for quiz services: catalog, quiz flow, progress sync, auth and stats."""

    def __init__(
        self,
        catalog: QuestionCatalog,
        store: DocumentStore,
        identity: IdentityProvider,
        fetch_attempts: int = USER_FETCH_ATTEMPTS,
        retry_delay_seconds: float = USER_FETCH_RETRY_DELAY_SECONDS,
    ) -> None:
        self._catalog = catalog

        # Persistence
        self._sessions = QuizSessionRepository(store)
        self._users = UserRepository(store)

        # State
        self._quiz_store: StateStore[QuizState] = StateStore(QuizState())
        self._auth_store: StateStore[AuthState] = StateStore(AuthState())

        # Services
        self._scope = TaskScope("quiz-manager")
        self._progress = ProgressSync(
            self._sessions,
            self._users,
            self._auth_store,
            self._scope,
            fetch_attempts=fetch_attempts,
            retry_delay_seconds=retry_delay_seconds,
        )
        self._auth = AuthService(
            identity,
            self._users,
            self._auth_store,
            self._scope,
            fetch_attempts=fetch_attempts,
            retry_delay_seconds=retry_delay_seconds,
        )

    # --- Accessors ---

    @property
    def catalog(self) -> QuestionCatalog:
        return self._catalog

    @property
    def auth(self) -> AuthService:
        return self._auth

    @property
    def quiz_store(self) -> StateStore[QuizState]:
        return self._quiz_store

    @property
    def auth_store(self) -> StateStore[AuthState]:
        return self._auth_store

    @property
    def session_repository(self) -> QuizSessionRepository:
        return self._sessions

    @property
    def user_repository(self) -> UserRepository:
        return self._users

    def get_quiz_state(self) -> QuizState:
        return self._quiz_store.state

    def get_auth_state(self) -> AuthState:
        return self._auth_store.state

    def get_current_user(self) -> User | None:
        return self._auth_store.state.user

    def require_current_user(self) -> User:
        user = self._auth_store.state.user
        if user is None:
            raise NotSignedInError("Sign in to continue.")
        return user

    # --- Lifecycle ---

    def start(self) -> None:
        self._auth.initialize()

    async def wait_for_background_tasks(self) -> None:
        await self._scope.drain()

    def close(self) -> None:
        self._auth.close()
        self._scope.close()

    # --- Catalog Delegation ---

    def get_categories(self) -> list[str]:
        return self._catalog.get_categories()

    def get_questions(self, filters: QuestionFilters | None = None) -> list[Question]:
        return self._catalog.get_all(filters)

    # --- Quiz Flow ---

    def start_quiz(
        self,
        user_id: str,
        category: str | None = None,
        count: int = DEFAULT_QUESTION_COUNT,
        difficulty: str | None = None,
        tags: Sequence[str] | None = None,
        now: datetime | None = None,
    ) -> QuizSession:
        if count < 1:
            raise ValueError("Question count must be at least 1.")
        session_category = category or MIXED_CATEGORY
        filters = QuestionFilters(
            category=None if session_category == MIXED_CATEGORY else session_category,
            difficulty=difficulty,
            tags=tuple(tags) if tags else None,
        )
        questions = self._catalog.get_random_questions(count, filters)
        state = self._quiz_store.dispatch(start_quiz, user_id, session_category, questions, now=now)
        if state.current_session is None or state.error:
            raise RuntimeError(state.error or NO_ACTIVE_SESSION)
        logger.info(
            "Started %s quiz %s with %d questions",
            session_category,
            state.current_session.id,
            len(questions),
        )
        return state.current_session

    async def submit_answer(
        self,
        user_answer: Any,
        time_spent: float,
        answered_at: datetime | None = None,
    ) -> AnswerOutcome:
        """Record an answer for the current question; the last one finishes the quiz."""
        state = self._quiz_store.state
        question = state.current_question
        if state.current_session is None or question is None:
            if state.current_session is not None and state.current_session.completed_at is not None:
                error = QUIZ_ALREADY_COMPLETED
            else:
                error = NO_ACTIVE_SESSION
            self._quiz_store.dispatch(set_error, error)
            raise RuntimeError(error)

        answer = Answer.for_question(question, user_answer, time_spent, answered_at)
        state = self._quiz_store.dispatch(answer_question, answer)
        if state.error:
            raise RuntimeError(state.error)

        if not state.is_ready_to_finish:
            return AnswerOutcome(answer)
        completion = await self.finish_quiz(now=answered_at)
        return AnswerOutcome(answer, completion)

    async def finish_quiz(self, now: datetime | None = None) -> CompletionResult:
        state = self._quiz_store.dispatch(complete_quiz, now=now)
        if state.error or state.current_session is None:
            raise RuntimeError(state.error or NO_ACTIVE_SESSION)
        try:
            return await self._progress.complete_session(state.current_session)
        finally:
            self._quiz_store.dispatch(mark_session_saved)

    def reset_quiz(self) -> None:
        self._quiz_store.dispatch(reset_quiz)

    # --- Views ---

    async def load_dashboard(
        self,
        user_id: str,
        scope: TaskScope,
        limit: int = RECENT_SESSION_LIMIT,
        now: datetime | None = None,
    ) -> DashboardStats | None:
        """Dashboard stats from the latest sessions, or ``None`` if ``scope`` closed meanwhile."""
        sessions = await self._sessions.get_latest_sessions(user_id, limit)
        if not scope.is_active:
            logger.debug("Dashboard view for %s closed; discarding result", user_id)
            return None
        return build_dashboard_stats(sessions, self._catalog.get_by_id, now=now)

    async def load_history(
        self,
        user_id: str,
        scope: TaskScope,
        category: str | None = None,
        limit: int | None = None,
    ) -> list[QuizSession] | None:
        if category:
            sessions = await self._sessions.get_user_sessions_by_category(user_id, category)
            if limit:
                sessions = sessions[:limit]
        else:
            sessions = await self._sessions.get_by_user_id(user_id, limit=limit)
        if not scope.is_active:
            logger.debug("History view for %s closed; discarding result", user_id)
            return None
        return sessions
