"""Repository persisting completed quiz sessions in the document store."""

from __future__ import annotations

import logging

from skillquest.constants.sync_constants import QUIZ_SESSIONS_COLLECTION
from skillquest.core.models import QuizSession
from skillquest.storage.document_store import DocumentStore, StoredDocument
from skillquest.storage.documents import session_from_document, session_to_document
from skillquest.storage.errors import (
    MalformedDocumentError,
    PersistenceReadError,
    PersistenceWriteError,
)

logger = logging.getLogger(__name__)


class QuizSessionRepository:
    """Reads and writes ``quizSessions`` documents keyed by session id.

    ``create`` never raises: a failed write is logged and reported through the
    return value so the quiz flow always reaches its completed state. ``update``
    and ``delete`` raise ``PersistenceWriteError`` because their callers expect
    a definite outcome. Reads raise ``PersistenceReadError``.
    """

    def __init__(self, store: DocumentStore, collection: str = QUIZ_SESSIONS_COLLECTION) -> None:
        self._store = store
        self._collection = collection

    async def create(self, session: QuizSession) -> bool:
        try:
            await self._store.set(self._collection, session.id, session_to_document(session))
        except Exception:
            logger.error("Failed to create quiz session %s", session.id, exc_info=True)
            return False
        logger.info("Stored quiz session %s", session.id)
        return True

    async def update(self, session: QuizSession) -> None:
        try:
            await self._store.set(self._collection, session.id, session_to_document(session), merge=True)
        except Exception as exc:
            raise PersistenceWriteError(f"Failed to update quiz session: {exc}") from exc

    async def get_by_id(self, session_id: str) -> QuizSession | None:
        try:
            data = await self._store.get(self._collection, session_id)
        except Exception as exc:
            raise PersistenceReadError(f"Failed to get quiz session: {exc}") from exc
        if data is None:
            return None
        return session_from_document(session_id, data)

    async def get_by_user_id(self, user_id: str, limit: int | None = None) -> list[QuizSession]:
        """Sessions of ``user_id``, newest first."""
        return await self._query(
            "Failed to get user quiz sessions",
            where=[("userId", user_id)],
            limit=limit,
        )

    async def get_user_sessions_by_category(self, user_id: str, category: str) -> list[QuizSession]:
        return await self._query(
            "Failed to get user sessions by category",
            where=[("userId", user_id), ("category", category)],
        )

    async def get_latest_sessions(self, user_id: str, limit: int) -> list[QuizSession]:
        return await self._query(
            "Failed to get latest sessions",
            where=[("userId", user_id)],
            limit=limit,
        )

    async def delete(self, session_id: str) -> None:
        try:
            await self._store.delete(self._collection, session_id)
        except Exception as exc:
            raise PersistenceWriteError(f"Failed to delete quiz session: {exc}") from exc

    async def _query(
        self,
        failure_message: str,
        where: list[tuple[str, str]],
        limit: int | None = None,
    ) -> list[QuizSession]:
        try:
            documents = await self._store.query(
                self._collection,
                where=where,
                order_by="startedAt",
                descending=True,
                limit=limit,
            )
        except Exception as exc:
            raise PersistenceReadError(f"{failure_message}: {exc}") from exc
        return self._to_sessions(documents)

    @staticmethod
    def _to_sessions(documents: list[StoredDocument]) -> list[QuizSession]:
        sessions: list[QuizSession] = []
        for document in documents:
            try:
                sessions.append(session_from_document(document.id, document.data))
            except MalformedDocumentError:
                logger.warning("Skipping malformed quiz session %s", document.id, exc_info=True)
        return sessions
