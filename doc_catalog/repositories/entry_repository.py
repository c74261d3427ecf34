"""Repository for document entry operations.

Methods flush but never commit; the calling service owns the transaction.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from doc_catalog.models.database import DocumentEntry, PermissionGrant
from doc_catalog.models.schemas import DocumentMetadata


class EntryRepository:
    """Repository for DocumentEntry CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        entry_id: int,
        creator: str,
        submission_height: int,
        metadata: DocumentMetadata,
    ) -> DocumentEntry:
        """Insert a new entry under an already allocated id."""
        entry = DocumentEntry(
            entry_id=entry_id,
            name=metadata.name,
            creator=creator,
            byte_count=metadata.byte_count,
            submission_height=submission_height,
            summary=metadata.summary,
            tags=list(metadata.tags),
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def get_by_id(self, entry_id: int) -> Optional[DocumentEntry]:
        """Get an entry by ID."""
        return self.session.get(DocumentEntry, entry_id)

    def list_entries(
        self,
        creator: Optional[str] = None,
        accessible_to: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[List[DocumentEntry], int]:
        """List entries with pagination.

        Args:
            creator: Only entries submitted by this principal
            accessible_to: Only entries this principal holds a grant on
        """
        query = select(DocumentEntry)
        if creator is not None:
            query = query.where(DocumentEntry.creator == creator)
        if accessible_to is not None:
            granted_ids = (
                select(PermissionGrant.entry_id)
                .where(
                    PermissionGrant.principal == accessible_to,
                    PermissionGrant.granted.is_(True),
                )
            )
            query = query.where(DocumentEntry.entry_id.in_(granted_ids))

        count_query = select(func.count()).select_from(query.subquery())
        total = self.session.execute(count_query).scalar() or 0

        query = (
            query.order_by(DocumentEntry.entry_id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        entries = self.session.execute(query).scalars().all()

        return list(entries), total

    def update(self, entry: DocumentEntry, metadata: DocumentMetadata) -> DocumentEntry:
        """Replace the mutable fields of an entry."""
        entry.name = metadata.name
        entry.byte_count = metadata.byte_count
        entry.summary = metadata.summary
        entry.tags = list(metadata.tags)
        self.session.flush()
        return entry

    def delete(self, entry: DocumentEntry) -> None:
        """Delete an entry."""
        self.session.delete(entry)
        self.session.flush()
