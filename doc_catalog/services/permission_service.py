"""Permission ledger - per-entry access flags."""

import logging
from typing import List

from sqlalchemy.orm import Session

from doc_catalog.models.database import PermissionGrant
from doc_catalog.repositories.permission_repository import PermissionRepository

logger = logging.getLogger(__name__)


class PermissionLedger:
    """Maps (entry id, principal) to a granted flag.

    The ledger works inside the caller's session and never commits, so its
    writes land or roll back together with the entry change that caused them.
    """

    def __init__(self, session: Session):
        self.session = session
        self.permission_repo = PermissionRepository(session)

    def grant(self, entry_id: int, principal: str) -> PermissionGrant:
        """Record that ``principal`` may access the entry. Idempotent."""
        grant = self.permission_repo.set_flag(entry_id, principal, True)
        logger.debug(f"Granted entry {entry_id} to {principal}")
        return grant

    def revoke(self, entry_id: int, principal: str) -> PermissionGrant:
        """Record that ``principal`` may no longer access the entry."""
        grant = self.permission_repo.set_flag(entry_id, principal, False)
        logger.debug(f"Revoked entry {entry_id} from {principal}")
        return grant

    def check(self, entry_id: int, principal: str) -> bool:
        """Stored flag, False when no row exists."""
        grant = self.permission_repo.get(entry_id, principal)
        return bool(grant and grant.granted)

    def grants_for(self, entry_id: int) -> List[PermissionGrant]:
        return self.permission_repo.list_by_entry(entry_id)

    def purge(self, entry_id: int) -> int:
        """Drop every row of an entry."""
        removed = self.permission_repo.delete_by_entry(entry_id)
        logger.debug(f"Purged {removed} permission rows of entry {entry_id}")
        return removed
