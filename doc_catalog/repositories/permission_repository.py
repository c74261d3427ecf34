"""Repository for permission grant operations."""

from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from doc_catalog.models.database import PermissionGrant


class PermissionRepository:
    """Repository for PermissionGrant operations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, entry_id: int, principal: str) -> Optional[PermissionGrant]:
        """Get the grant row of a principal on an entry."""
        result = self.session.execute(
            select(PermissionGrant).where(
                PermissionGrant.entry_id == entry_id,
                PermissionGrant.principal == principal,
            )
        )
        return result.scalar_one_or_none()

    def set_flag(self, entry_id: int, principal: str, granted: bool) -> PermissionGrant:
        """Insert or update the grant row."""
        grant = self.get(entry_id, principal)
        if grant is None:
            grant = PermissionGrant(entry_id=entry_id, principal=principal, granted=granted)
            self.session.add(grant)
        else:
            grant.granted = granted
        self.session.flush()
        return grant

    def list_by_entry(self, entry_id: int) -> List[PermissionGrant]:
        """All grant rows of an entry."""
        result = self.session.execute(
            select(PermissionGrant)
            .where(PermissionGrant.entry_id == entry_id)
            .order_by(PermissionGrant.id)
        )
        return list(result.scalars().all())

    def delete_by_entry(self, entry_id: int) -> int:
        """Delete all grant rows of an entry, returning how many went."""
        result = self.session.execute(
            delete(PermissionGrant).where(PermissionGrant.entry_id == entry_id)
        )
        self.session.flush()
        return result.rowcount or 0
