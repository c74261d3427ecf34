"""Repositories package."""

from doc_catalog.repositories.entry_repository import EntryRepository
from doc_catalog.repositories.history_repository import HistoryRepository
from doc_catalog.repositories.permission_repository import PermissionRepository
from doc_catalog.repositories.sequence_repository import SequenceRepository

__all__ = [
    "EntryRepository",
    "HistoryRepository",
    "PermissionRepository",
    "SequenceRepository",
]
