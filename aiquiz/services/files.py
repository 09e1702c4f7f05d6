"""
Bulk removal of uploaded files.

Deleting a subject, topic or subtopic takes its files with it: both the
records and the stored bytes.
"""

from __future__ import annotations

import logging
from typing import Any

from aiquiz.core.models import FileRecord
from aiquiz.storage.base import Collections, StorageProvider

logger = logging.getLogger(__name__)

BATCH = 500


async def delete_files(storage: StorageProvider, filters: dict[str, Any]) -> int:
    """Delete every file record matching `filters` and its content. Returns the count."""
    deleted = 0
    while True:
        docs = await storage.metadata.query(Collections.FILES, filters, limit=BATCH)
        if not docs:
            break
        for doc in docs:
            record = FileRecord.model_validate(doc)
            await storage.content.delete(record.content_key)
            await storage.metadata.delete(Collections.FILES, record.id)
            deleted += 1

    if deleted:
        logger.info(f"Deleted {deleted} files matching {filters}")
    return deleted


async def delete_subject_content(storage: StorageProvider, subject_id: str) -> int:
    """
    Delete all files of a subject, plus any stored bytes left under its
    content prefix without a record.
    """
    deleted = await delete_files(storage, {"subject_id": subject_id})

    orphans = [key async for key in storage.content.list_keys(f"{subject_id}/")]
    for key in orphans:
        await storage.content.delete(key)
    if orphans:
        logger.warning(f"Removed {len(orphans)} orphaned content objects of {subject_id}")

    return deleted
