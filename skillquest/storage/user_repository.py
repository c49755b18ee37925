"""Repository for user profile documents (level, XP and identity fields)."""

from __future__ import annotations

import logging
from typing import Any

from skillquest.constants.sync_constants import (
    USER_FETCH_ATTEMPTS,
    USER_FETCH_RETRY_DELAY_SECONDS,
    USERS_COLLECTION,
)
from skillquest.core.models import User
from skillquest.storage.document_store import DocumentStore
from skillquest.storage.documents import user_from_document, user_to_document
from skillquest.storage.errors import PersistenceReadError
from skillquest.utils.retry import retry_async

logger = logging.getLogger(__name__)


class UserRepository:
    """Reads and merge-upserts ``users`` documents keyed by user id."""

    def __init__(self, store: DocumentStore, collection: str = USERS_COLLECTION) -> None:
        self._store = store
        self._collection = collection

    async def get_user_document(self, user_id: str) -> dict[str, Any] | None:
        try:
            return await self._store.get(self._collection, user_id)
        except Exception as exc:
            raise PersistenceReadError(f"Failed to get user: {exc}") from exc

    async def get_user_document_with_retry(
        self,
        user_id: str,
        attempts: int = USER_FETCH_ATTEMPTS,
        delay_seconds: float = USER_FETCH_RETRY_DELAY_SECONDS,
    ) -> dict[str, Any] | None:
        return await retry_async(
            lambda: self.get_user_document(user_id),
            attempts=attempts,
            delay_seconds=delay_seconds,
            description=f"Reading user {user_id}",
            retry_on=(PersistenceReadError,),
        )

    async def get_user_by_id(self, user_id: str) -> User | None:
        data = await self.get_user_document(user_id)
        if data is None:
            return None
        return user_from_document(user_id, data)

    async def get_user_by_id_with_retry(
        self,
        user_id: str,
        attempts: int = USER_FETCH_ATTEMPTS,
        delay_seconds: float = USER_FETCH_RETRY_DELAY_SECONDS,
    ) -> User | None:
        data = await self.get_user_document_with_retry(user_id, attempts, delay_seconds)
        if data is None:
            return None
        return user_from_document(user_id, data)

    async def save_user(self, user: User, create: bool = False) -> bool:
        """Merge-upsert the profile; failures are logged and reported as ``False``.

        ``createdAt`` is written only with ``create=True`` so progress updates
        never replace the stored account creation date.
        """
        document = user_to_document(user, include_created_at=create)
        try:
            await self._store.set(self._collection, user.id, document, merge=True)
        except Exception:
            logger.error("Save user %s failed", user.id, exc_info=True)
            return False
        return True
