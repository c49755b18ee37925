"""Document store interface and the in-memory implementation used by default.

The remote store is treated as eventually consistent and document oriented:
documents live in named collections, are keyed by id, and writes are either a
full replace or a merge-upsert that only touches the given top-level fields.
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Protocol, Sequence


@dataclass(frozen=True, slots=True)
class StoredDocument:
    id: str
    data: dict[str, Any]


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return a copy of the document, or ``None`` when it does not exist."""

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Replace the document, or with ``merge`` update only the given fields (creating it if absent)."""

    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove the document; deleting a missing document is not an error."""

    async def query(
        self,
        collection: str,
        where: Sequence[tuple[str, Any]] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[StoredDocument]:
        """Equality-filtered, optionally ordered and limited snapshot of a collection."""


class InMemoryDocumentStore:
    """Process-local document store; every call yields to the event loop once."""

    def __init__(self, latency_seconds: float = 0.0) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._latency_seconds = latency_seconds

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        await self._round_trip()
        document = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        await self._round_trip()
        documents = self._collections.setdefault(collection, {})
        incoming = copy.deepcopy(data)
        if merge and doc_id in documents:
            documents[doc_id].update(incoming)
        else:
            documents[doc_id] = incoming

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._round_trip()
        self._collections.get(collection, {}).pop(doc_id, None)

    async def query(
        self,
        collection: str,
        where: Sequence[tuple[str, Any]] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[StoredDocument]:
        await self._round_trip()
        matches = [
            (doc_id, document)
            for doc_id, document in self._collections.get(collection, {}).items()
            if all(document.get(field) == value for field, value in where)
        ]
        if order_by is not None:
            # Documents lacking the ordering field never match an ordered query.
            matches = [item for item in matches if item[1].get(order_by) is not None]
            matches.sort(key=lambda item: item[1][order_by], reverse=descending)
        if limit:
            matches = matches[:limit]
        return [StoredDocument(id=doc_id, data=copy.deepcopy(document)) for doc_id, document in matches]

    def document_count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    async def _round_trip(self) -> None:
        await asyncio.sleep(self._latency_seconds)
