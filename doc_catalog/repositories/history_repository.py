"""Repository for entry history operations.

Handles the audit trail for all entry changes.
"""

from typing import List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from doc_catalog.models.database import EntryHistory, HistoryAction


class HistoryRepository:
    """Repository for EntryHistory operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        entry_id: int,
        principal: str,
        action: HistoryAction,
        height: int,
        change_summary: Optional[str] = None,
    ) -> EntryHistory:
        """Create a new history record."""
        record = EntryHistory(
            entry_id=entry_id,
            principal=principal,
            action=action,
            height=height,
            change_summary=change_summary,
        )
        self.session.add(record)
        self.session.flush()
        return record

    def get_by_entry(
        self,
        entry_id: int,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[List[EntryHistory], int]:
        """Get history records for an entry, newest first."""
        query = select(EntryHistory).where(EntryHistory.entry_id == entry_id)

        count_query = select(func.count()).select_from(query.subquery())
        total = self.session.execute(count_query).scalar() or 0

        query = (
            query.order_by(desc(EntryHistory.height), desc(EntryHistory.id))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        history = self.session.execute(query).scalars().all()

        return list(history), total

    def log_submission(self, entry_id: int, principal: str, height: int) -> EntryHistory:
        """Log entry submission."""
        return self.create(entry_id, principal, HistoryAction.SUBMITTED, height, "Entry submitted")

    def log_revision(
        self,
        entry_id: int,
        principal: str,
        height: int,
        changed_fields: List[str],
    ) -> EntryHistory:
        """Log entry revision with the fields that changed."""
        summary = (
            f"Changed: {', '.join(changed_fields)}" if changed_fields else "No field changed"
        )
        return self.create(entry_id, principal, HistoryAction.REVISED, height, summary)

    def log_withdrawal(self, entry_id: int, principal: str, height: int) -> EntryHistory:
        """Log entry withdrawal."""
        return self.create(entry_id, principal, HistoryAction.WITHDRAWN, height, "Entry withdrawn")

    def log_access_change(
        self,
        entry_id: int,
        principal: str,
        height: int,
        target: str,
        granted: bool,
    ) -> EntryHistory:
        """Log a grant or revoke issued by ``principal`` for ``target``."""
        action = HistoryAction.GRANTED if granted else HistoryAction.REVOKED
        verb = "granted to" if granted else "revoked from"
        return self.create(entry_id, principal, action, height, f"Access {verb} {target}")
