"""Data access layer: the shared document store interface and implementations."""

from shared.dal.document_store import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    PreconditionFailedError,
    StoreError,
)
from shared.dal.memory_store import InMemoryDocumentStore

__all__ = [
    "Document",
    "DocumentNotFoundError",
    "DocumentStore",
    "InMemoryDocumentStore",
    "PreconditionFailedError",
    "StoreError",
]
