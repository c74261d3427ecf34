"""Services package."""

from doc_catalog.services.entry_service import EntryService
from doc_catalog.services.permission_service import PermissionLedger

__all__ = ["EntryService", "PermissionLedger"]
