"""Catalog error taxonomy.

Every error a catalog operation can raise derives from ``CatalogError`` and
carries a stable ``code``. Mutations validate and authorize before writing,
so catching one of these always means no state was changed.
"""

from typing import Any, Optional


class CatalogError(Exception):
    """Base exception for catalog errors."""

    code = "catalog_error"


class NotAuthorized(CatalogError):
    """Reserved for operations restricted to administrators."""

    code = "not_authorized"

    def __init__(self, principal: Optional[str] = None):
        self.principal = principal
        super().__init__(f"Principal '{principal}' is not authorized")


class EntryNotFound(CatalogError):
    """Raised when an entry id does not reference an existing entry."""

    code = "entry_not_found"

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"Entry '{entry_id}' not found")


class DuplicateEntry(CatalogError):
    """Reserved: entry ids come from a single sequence and cannot collide."""

    code = "duplicate_entry"

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"Entry '{entry_id}' already exists")


class ValidationFailed(CatalogError):
    """Base for submission parameter violations."""

    code = "validation_failed"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidMetadata(ValidationFailed):
    """Raised when name, summary or tags break their constraints."""

    code = "invalid_metadata"


class InvalidDocumentSize(ValidationFailed):
    """Raised when byte_count is out of range."""

    code = "invalid_document_size"

    def __init__(self, value: Any, reason: str):
        super().__init__("byte_count", value, reason)


class PermissionDenied(CatalogError):
    """Raised when the caller may not act on an entry."""

    code = "permission_denied"

    def __init__(self, entry_id: int, principal: str, action: str):
        self.entry_id = entry_id
        self.principal = principal
        self.action = action
        super().__init__(
            f"Principal '{principal}' may not {action} entry '{entry_id}'"
        )
