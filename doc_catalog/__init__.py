"""Access-controlled catalog of document metadata."""

from doc_catalog.context import acting_as
from doc_catalog.errors import (
    CatalogError,
    DuplicateEntry,
    EntryNotFound,
    InvalidDocumentSize,
    InvalidMetadata,
    NotAuthorized,
    PermissionDenied,
)
from doc_catalog.services.entry_service import EntryService

__version__ = "0.1.0"

__all__ = [
    "CatalogError",
    "DuplicateEntry",
    "EntryNotFound",
    "EntryService",
    "InvalidDocumentSize",
    "InvalidMetadata",
    "NotAuthorized",
    "PermissionDenied",
    "acting_as",
]
