"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (local filesystem → S3, in-memory → MongoDB, etc.)
without changing application code.

Integration Points:
- ContentStorage → S3 or GridFS (uploaded documents)
- MetadataStorage → MongoDB (users, subjects, file records)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from pydantic import BaseModel


# =============================================================================
# Storage Interfaces
# =============================================================================


class ContentStorage(ABC):
    """
    Storage for binary content (uploaded PDFs, slides, images).

    Local Implementation: Filesystem
    """

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store content, return URL/path."""
        pass

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Retrieve content by key."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete content."""
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> AsyncIterator[str]:
        """List keys with optional prefix."""
        pass


class MetadataStorage(ABC):
    """
    Document storage for structured data (users, subjects, files).

    Filters are equality matches on top-level fields. A filter value may
    also be an operator dict, Mongo style:

        {"reset_password_expires": {"$gt": now}}

    Supported operators: $gt, $gte, $lt, $lte, $ne, $in.

    Local Implementations: in-memory, SQLite file
    """

    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Save (insert or replace) a document in a collection."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents with optional filters."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        """
        Partial update of a document.

        The whole update is applied as one write. Returns False if the
        document does not exist.
        """
        pass

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """First document matching filters, or None."""
        results = await self.query(collection, filters, limit=1)
        return results[0] if results else None


# =============================================================================
# Filters
# =============================================================================


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if op == "$ne":
        return actual != expected
    if op == "$in":
        return actual in expected
    # Ordering operators never match a missing value
    if actual is None:
        return False
    if op == "$gt":
        return actual > expected
    if op == "$gte":
        return actual >= expected
    if op == "$lt":
        return actual < expected
    if op == "$lte":
        return actual <= expected
    raise ValueError(f"Unsupported query operator: {op}")


def matches_filters(doc: dict[str, Any], filters: dict[str, Any]) -> bool:
    for key, expected in filters.items():
        actual = doc.get(key)
        if isinstance(expected, dict) and expected and all(k.startswith("$") for k in expected):
            if not all(_compare(op, actual, value) for op, value in expected.items()):
                return False
        elif actual != expected:
            return False
    return True


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    content: ContentStorage
    metadata: MetadataStorage


# =============================================================================
# Collection Names (for MetadataStorage)
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    SUBJECTS = "subjects"
    TOPICS = "topics"
    SUBTOPICS = "subtopics"
    FILES = "files"
