"""Infrastructure layer exports."""

from .store import (
    COLLECTIONS,
    SERVER_TIMESTAMP,
    DocumentStore,
    InMemoryDocumentStore,
    Increment,
    utcnow_iso,
)

__all__ = [
    "COLLECTIONS",
    "SERVER_TIMESTAMP",
    "DocumentStore",
    "InMemoryDocumentStore",
    "Increment",
    "utcnow_iso",
]
