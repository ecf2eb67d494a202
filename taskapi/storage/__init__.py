"""
Storage abstractions.

Integration Points:
- DocumentStorage → MongoDB (users, tasks)
"""

from taskapi.storage.base import (
    ASCENDING,
    DESCENDING,
    Collections,
    DocumentStorage,
    DuplicateKeyError,
    FindQuery,
    StorageProvider,
)
from taskapi.storage.local import InMemoryDocumentStorage, create_local_storage

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "Collections",
    "DocumentStorage",
    "DuplicateKeyError",
    "FindQuery",
    "StorageProvider",
    "InMemoryDocumentStorage",
    "create_local_storage",
]
