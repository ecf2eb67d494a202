"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory → MongoDB, etc.) without changing
application code.

The interface models a document store: collections of dict documents
keyed by id, equality filters, a text index, sorted/paginated reads,
grouped counts and unique indexes. Single-document writes are atomic;
there are no cross-document transactions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


# =============================================================================
# Errors
# =============================================================================


class DuplicateKeyError(Exception):
    """A write would violate a unique index."""

    def __init__(self, collection: str, key: str, value: Any):
        self.collection = collection
        self.key = key
        self.value = value
        super().__init__(f"Duplicate value for {collection}.{key}: {value!r}")


# =============================================================================
# Queries
# =============================================================================


ASCENDING = 1
DESCENDING = -1


@dataclass
class FindQuery:
    """
    A filtered, sorted, paginated read.

    filters: equality match on each field
    text: free-text search against the collection's text index
    sort: (field, ASCENDING|DESCENDING) pairs, applied in order
    """

    filters: dict[str, Any] = field(default_factory=dict)
    text: str | None = None
    sort: list[tuple[str, int]] = field(default_factory=list)
    skip: int = 0
    limit: int | None = None


# =============================================================================
# Storage Interface
# =============================================================================


class DocumentStorage(ABC):
    """
    Storage for structured documents (users, tasks).

    Production Implementation: MongoDB
    Local Implementation: in-memory
    """

    @abstractmethod
    async def ensure_index(
        self,
        collection: str,
        fields: list[str],
        unique: bool = False,
        text: bool = False,
    ) -> None:
        """Declare a unique index on one field, or a text index over several."""
        pass

    @abstractmethod
    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a new document. Raises DuplicateKeyError on id or unique-index clash."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """First document matching all equality filters."""
        pass

    @abstractmethod
    async def find(self, collection: str, query: FindQuery) -> list[dict[str, Any]]:
        """Documents matching the query, sorted and paginated."""
        pass

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        text: str | None = None,
    ) -> int:
        """Number of documents matching the same filters find() would use."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        """Atomically apply a partial update. Returns the new document, or None if missing."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def group_count(
        self,
        collection: str,
        key: str,
        filters: dict[str, Any] | None = None,
    ) -> dict[Any, int]:
        """Count matching documents per distinct value of `key`."""
        pass


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    TASKS = "tasks"


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    documents: DocumentStorage

    async def ensure_indexes(self) -> None:
        """Create the indexes the services rely on."""
        await self.documents.ensure_index(Collections.USERS, ["email"], unique=True)
        await self.documents.ensure_index(Collections.TASKS, ["title", "description"], text=True)
