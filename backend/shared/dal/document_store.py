"""Abstract interface for a shared document store with push notifications."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

Document = dict[str, Any]

# Receives the latest document, or None once the document is deleted.
SnapshotCallback = Callable[[Document | None], None]
Unsubscribe = Callable[[], None]


class StoreError(Exception):
    """Store transport or availability failure not otherwise classified."""


class DocumentNotFoundError(StoreError):
    """A partial update targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"document {collection}/{doc_id} does not exist")


class PreconditionFailedError(StoreError):
    """A conditional update found a field with an unexpected value."""

    def __init__(self, collection: str, doc_id: str, field_path: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        self.field_path = field_path
        super().__init__(f"precondition on {collection}/{doc_id} field '{field_path}' failed")


def get_field(document: Mapping[str, Any], field_path: str) -> Any:  # noqa: ANN401
    """Read a dotted field path, returning None for any missing segment."""
    value: Any = document
    for part in field_path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def set_field(document: dict[str, Any], field_path: str, value: Any) -> None:  # noqa: ANN401
    """Write a dotted field path, creating intermediate maps as needed."""
    *parents, leaf = field_path.split(".")
    target = document
    for part in parents:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[leaf] = value


class DocumentStore(ABC):
    """Abstract interface for the shared record store.

    Implementations guarantee per-document serializability of single
    operations and deliver snapshots to subscribers in commit order. There is
    no cross-operation atomicity: callers that read, decide and write must use
    ``update(..., expected=...)`` to make the write conditional on what they read.
    """

    @abstractmethod
    def new_id(self, collection: str) -> str:
        """Allocate a fresh, unique document id."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None: ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, document: Document) -> None:
        """Create or fully replace a document."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        """Merge field-path values into an existing document.

        When ``expected`` is given, every listed field path must currently hold
        the given value or the update is rejected with PreconditionFailedError
        and nothing is written. Raises DocumentNotFoundError for a missing document.
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document. Deleting a missing document is a no-op."""

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        doc_id: str,
        callback: SnapshotCallback,
    ) -> Unsubscribe:
        """Register a snapshot listener and return its unsubscribe function.

        The callback receives the current snapshot immediately and then one
        snapshot per committed change, None after deletion.
        """

    @abstractmethod
    async def query(
        self,
        collection: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        """Return documents matching all equality filters, sorted and bounded."""
