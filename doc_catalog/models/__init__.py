"""SQLAlchemy models and pydantic schemas."""

from doc_catalog.models.database import (
    Base,
    DocumentEntry,
    EntryHistory,
    EntrySequence,
    HistoryAction,
    PermissionGrant,
)

__all__ = [
    "Base",
    "DocumentEntry",
    "EntryHistory",
    "EntrySequence",
    "HistoryAction",
    "PermissionGrant",
]
