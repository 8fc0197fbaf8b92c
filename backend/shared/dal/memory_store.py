"""In-memory document store for tests and single-process play."""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

from shared.dal.document_store import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    PreconditionFailedError,
    SnapshotCallback,
    Unsubscribe,
    get_field,
    set_field,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = structlog.get_logger()


class InMemoryDocumentStore(DocumentStore):
    """In-memory document store.

    Each operation yields to the event loop once before touching state, so
    concurrent callers interleave between their reads and writes the way
    they would against a remote store. The mutation itself runs without a
    suspension point and is therefore atomic per document.

    Documents are deep-copied on the way in and out; callers never share
    mutable state with the store or with each other.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._listeners: dict[tuple[str, str], list[SnapshotCallback]] = {}

    def new_id(self, collection: str) -> str:  # noqa: ARG002
        return uuid4().hex

    async def get(self, collection: str, doc_id: str) -> Document | None:
        await asyncio.sleep(0)
        document = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, collection: str, doc_id: str, document: Document) -> None:
        await asyncio.sleep(0)
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(document)
        self._notify(collection, doc_id)

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        await asyncio.sleep(0)
        current = self._collections.get(collection, {}).get(doc_id)
        if current is None:
            raise DocumentNotFoundError(collection, doc_id)

        for field_path, value in (expected or {}).items():
            if get_field(current, field_path) != value:
                raise PreconditionFailedError(collection, doc_id, field_path)

        updated = copy.deepcopy(current)
        for field_path, value in fields.items():
            set_field(updated, field_path, copy.deepcopy(value))
        self._collections[collection][doc_id] = updated
        self._notify(collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> None:
        await asyncio.sleep(0)
        if self._collections.get(collection, {}).pop(doc_id, None) is not None:
            self._notify(collection, doc_id)

    def subscribe(self, collection: str, doc_id: str, callback: SnapshotCallback) -> Unsubscribe:
        key = (collection, doc_id)
        self._listeners.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners and callback in listeners:
                listeners.remove(callback)
                if not listeners:
                    del self._listeners[key]

        self._deliver(callback, self._collections.get(collection, {}).get(doc_id), key)
        return unsubscribe

    async def query(
        self,
        collection: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        await asyncio.sleep(0)
        matches = [
            document
            for document in self._collections.get(collection, {}).values()
            if all(get_field(document, path) == value for path, value in (filters or {}).items())
        ]
        if order_by is not None:
            matches.sort(key=lambda document: get_field(document, order_by), reverse=descending)
        if limit is not None:
            matches = matches[:limit]
        return [copy.deepcopy(document) for document in matches]

    def listener_count(self, collection: str, doc_id: str) -> int:
        """Number of active subscriptions on a document."""
        return len(self._listeners.get((collection, doc_id), []))

    def _notify(self, collection: str, doc_id: str) -> None:
        key = (collection, doc_id)
        document = self._collections.get(collection, {}).get(doc_id)
        # Snapshot the list: a listener may unsubscribe while being notified.
        for callback in list(self._listeners.get(key, [])):
            self._deliver(callback, document, key)

    @staticmethod
    def _deliver(callback: SnapshotCallback, document: Document | None, key: tuple[str, str]) -> None:
        try:
            callback(copy.deepcopy(document) if document is not None else None)
        except Exception:
            logger.exception("snapshot listener failed", collection=key[0], doc_id=key[1])
