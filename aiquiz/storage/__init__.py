"""
Storage abstractions.

Integration Points:
- ContentStorage → S3 / GridFS (uploaded documents)
- MetadataStorage → MongoDB (users, subjects, file records)
"""

from aiquiz.storage.base import (
    ContentStorage,
    MetadataStorage,
    StorageProvider,
    Collections,
    matches_filters,
)
from aiquiz.storage.local import (
    InMemoryMetadataStorage,
    LocalContentStorage,
    create_local_storage,
)
from aiquiz.storage.sqlite import SQLiteMetadataStorage

__all__ = [
    "ContentStorage",
    "MetadataStorage",
    "StorageProvider",
    "Collections",
    "InMemoryMetadataStorage",
    "LocalContentStorage",
    "SQLiteMetadataStorage",
    "matches_filters",
    "create_local_storage",
]
