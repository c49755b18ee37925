"""Identity resolution: turn provider claims into a local user without waiting on the store."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Callable

from skillquest.constants.sync_constants import (
    DEFAULT_DISPLAY_NAME,
    USER_FETCH_ATTEMPTS,
    USER_FETCH_RETRY_DELAY_SECONDS,
)
from skillquest.core.models import EntityValidationError, User, utcnow
from skillquest.core.services.auth_state import (
    AuthState,
    auth_failed,
    auth_settled,
    begin_auth,
    mark_initialized,
    user_enriched,
    user_refreshed,
    user_resolved,
    user_signed_out,
)
from skillquest.core.services.task_scope import TaskScope
from skillquest.core.state_store import StateStore
from skillquest.storage.documents import user_from_document
from skillquest.storage.errors import PersistenceReadError
from skillquest.storage.identity import IdentityClaims, IdentityProvider
from skillquest.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


def user_from_claims(claims: IdentityClaims, now: datetime | None = None) -> User:
    """Local user built purely from identity claims, with level 1 and no XP."""
    return User.create(
        id=claims.id,
        email=claims.email or "",
        display_name=claims.display_name or DEFAULT_DISPLAY_NAME,
        photo_url=claims.photo_url or None,
        created_at=now or utcnow(),
        level=1,
        xp=0,
    )


class AuthService:
    """Signs users in and out and keeps the auth state in step with the identity provider.

    Sign-in returns as soon as the provider answers. Stored level/XP are pulled
    in by a background task (bounded retries with a fixed delay); when every
    attempt fails the defaults simply stay in place.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        user_repository: UserRepository,
        auth_store: StateStore[AuthState],
        scope: TaskScope,
        fetch_attempts: int = USER_FETCH_ATTEMPTS,
        retry_delay_seconds: float = USER_FETCH_RETRY_DELAY_SECONDS,
    ) -> None:
        self._identity = identity
        self._users = user_repository
        self._store = auth_store
        self._scope = scope
        self._fetch_attempts = fetch_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def current_user(self) -> User | None:
        return self._store.state.user

    def initialize(self) -> None:
        """Subscribe to identity changes once; later calls are no-ops."""
        if self._store.state.initialized:
            return
        self._store.dispatch(mark_initialized)
        self._unsubscribe = self._identity.on_identity_changed(self._on_identity_changed)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def sign_in_with_popup(self) -> User | None:
        """Returns ``None`` when the user cancelled the provider's popup."""
        self._store.dispatch(begin_auth)
        try:
            claims = await self._identity.sign_in_with_popup()
            if claims is None:
                self._store.dispatch(auth_settled)
                return None
            return self._resolve(claims)
        except Exception as exc:
            self._store.dispatch(auth_failed, str(exc))
            raise

    async def sign_in_with_password(self, email: str, password: str) -> User:
        self._store.dispatch(begin_auth)
        try:
            claims = await self._identity.sign_in_with_password(email, password)
            return self._resolve(claims)
        except Exception as exc:
            self._store.dispatch(auth_failed, str(exc))
            raise

    async def sign_up(self, email: str, password: str, display_name: str) -> User:
        self._store.dispatch(begin_auth)
        try:
            claims = await self._identity.sign_up(email, password, display_name)
            user = user_from_claims(
                IdentityClaims(
                    id=claims.id,
                    email=claims.email or email,
                    display_name=display_name,
                    photo_url=claims.photo_url,
                )
            )
        except Exception as exc:
            self._store.dispatch(auth_failed, str(exc))
            raise
        self._store.dispatch(user_resolved, user)
        self._scope.spawn(self._users.save_user(user, create=True), name=f"create-profile-{user.id}")
        return user

    async def sign_out(self) -> None:
        self._store.dispatch(begin_auth)
        try:
            await self._identity.sign_out()
        except Exception as exc:
            self._store.dispatch(auth_failed, str(exc))
            raise
        self._store.dispatch(user_signed_out)

    async def refresh_user(self) -> User | None:
        """Re-read the stored profile into state; read failures keep the current user."""
        current = self._store.state.user
        if current is None:
            return None
        try:
            stored = await self._users.get_user_by_id(current.id)
        except PersistenceReadError:
            logger.error("Failed to refresh user data for %s", current.id, exc_info=True)
            return current
        if stored is None:
            return current
        self._store.dispatch(user_refreshed, stored)
        return self._store.state.user

    def _on_identity_changed(self, claims: IdentityClaims | None) -> None:
        if claims is None:
            if self._store.state.user is not None:
                self._store.dispatch(user_signed_out)
            else:
                self._store.dispatch(auth_settled)
            return
        try:
            self._resolve(claims)
        except EntityValidationError:
            logger.error("Could not build a user from identity %s", claims.id, exc_info=True)
            self._store.dispatch(user_resolved, None)

    def _resolve(self, claims: IdentityClaims) -> User:
        current = self._store.state.user
        if current is not None and current.id == claims.id:
            self._store.dispatch(auth_settled)
            return current
        user = user_from_claims(claims)
        self._store.dispatch(user_resolved, user)
        self._scope.spawn(self._enrich(user), name=f"enrich-user-{user.id}")
        return user

    async def _enrich(self, user: User) -> None:
        try:
            data = await self._users.get_user_document_with_retry(
                user.id,
                attempts=self._fetch_attempts,
                delay_seconds=self._retry_delay_seconds,
            )
        except PersistenceReadError:
            logger.warning("Store unreachable for user %s; keeping identity defaults", user.id, exc_info=True)
            return

        if data is None:
            await self._users.save_user(user, create=True)
            return

        try:
            stored = user_from_document(user.id, data)
        except PersistenceReadError:
            logger.warning("Stored profile for %s is malformed; keeping defaults", user.id, exc_info=True)
            return
        enriched = user.replace(created_at=stored.created_at, level=stored.level, xp=stored.xp)
        self._store.dispatch(user_enriched, enriched)
