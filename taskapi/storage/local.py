"""
Local storage implementation for development and tests.

An in-memory document store that works without any external services.
Each method runs to completion without awaiting, so single-document
writes are atomic with respect to other requests on the event loop.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from taskapi.storage.base import (
    DESCENDING,
    DocumentStorage,
    DuplicateKeyError,
    FindQuery,
    StorageProvider,
)


_WORD = re.compile(r"\w+")


def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


# =============================================================================
# In-Memory Document Storage
# =============================================================================


class InMemoryDocumentStorage(DocumentStorage):
    """In-memory document storage for development."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._unique: dict[str, set[str]] = {}
        self._text: dict[str, list[str]] = {}

    def _collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(collection, {})

    async def ensure_index(
        self,
        collection: str,
        fields: list[str],
        unique: bool = False,
        text: bool = False,
    ) -> None:
        if text:
            self._text[collection] = list(fields)
        elif unique:
            if len(fields) != 1:
                raise ValueError("Unique indexes cover exactly one field")
            self._unique.setdefault(collection, set()).add(fields[0])

    def _check_unique(self, collection: str, id: str, doc: dict[str, Any]) -> None:
        for key in self._unique.get(collection, ()):
            value = doc.get(key)
            if value is None:
                continue
            for other_id, other in self._collection(collection).items():
                if other_id != id and other.get(key) == value:
                    raise DuplicateKeyError(collection, key, value)

    def _matches(self, collection: str, doc: dict[str, Any], filters: dict[str, Any] | None, text: str | None) -> bool:
        if filters:
            for key, value in filters.items():
                if doc.get(key) != value:
                    return False
        if text is not None:
            fields = self._text.get(collection)
            if not fields:
                raise ValueError(f"Text search requires a text index on '{collection}'")
            terms = set(_words(text))
            haystack = set(_words(" ".join(str(doc.get(f) or "") for f in fields)))
            if not terms & haystack:
                return False
        return True

    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> dict[str, Any]:
        docs = self._collection(collection)
        if id in docs:
            raise DuplicateKeyError(collection, "id", id)
        doc = {**copy.deepcopy(data), "id": id}
        self._check_unique(collection, id, doc)
        docs[id] = doc
        return copy.deepcopy(doc)

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self._data.get(collection, {}).values():
            if self._matches(collection, doc, filters, None):
                return copy.deepcopy(doc)
        return None

    async def find(self, collection: str, query: FindQuery) -> list[dict[str, Any]]:
        results = [
            doc for doc in self._data.get(collection, {}).values()
            if self._matches(collection, doc, query.filters, query.text)
        ]

        # Stable sorts applied from the least to the most significant key.
        # Missing values go last in either direction.
        for key, direction in reversed(query.sort):
            if direction == DESCENDING:
                results.sort(key=lambda d: (d.get(key) is not None, d.get(key)), reverse=True)
            else:
                results.sort(key=lambda d: (d.get(key) is None, d.get(key)))

        end = None if query.limit is None else query.skip + query.limit
        return [copy.deepcopy(doc) for doc in results[query.skip:end]]

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        text: str | None = None,
    ) -> int:
        return sum(
            1 for doc in self._data.get(collection, {}).values()
            if self._matches(collection, doc, filters, text)
        )

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        docs = self._data.get(collection, {})
        if id not in docs:
            return None
        updated = {**docs[id], **copy.deepcopy(updates), "id": id}
        self._check_unique(collection, id, updated)
        docs[id] = updated
        return copy.deepcopy(updated)

    async def delete(self, collection: str, id: str) -> bool:
        if collection in self._data and id in self._data[collection]:
            del self._data[collection][id]
            return True
        return False

    async def group_count(
        self,
        collection: str,
        key: str,
        filters: dict[str, Any] | None = None,
    ) -> dict[Any, int]:
        counts: dict[Any, int] = {}
        for doc in self._data.get(collection, {}).values():
            if self._matches(collection, doc, filters, None):
                value = doc.get(key)
                counts[value] = counts.get(value, 0) + 1
        return counts


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with local implementations."""
    return StorageProvider(documents=InMemoryDocumentStorage())
