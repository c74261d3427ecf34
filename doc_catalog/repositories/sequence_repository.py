"""Repository for the entry id sequence and ordering height."""

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from doc_catalog.models.database import EntrySequence

ENTRY_SEQUENCE = "document_entries"

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class SequenceRepository:
    """Allocates entry ids and heights from a single persisted row.

    Both counters are advanced on the row locked with ``SELECT ... FOR
    UPDATE``, so every process sharing the database sees one order.
    """

    def __init__(self, session: Session, name: str = ENTRY_SEQUENCE):
        self.session = session
        self.name = name

    def _select_locked(self):
        return self.session.execute(
            select(EntrySequence)
            .where(EntrySequence.name == self.name)
            .with_for_update()
        ).scalar_one_or_none()

    def ensure_row(self) -> None:
        """Create the sequence row unless it exists. Safe to race."""
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is not None:
            self.session.execute(
                insert(EntrySequence.__table__)
                .values(name=self.name, value=0, last_height=0)
                .on_conflict_do_nothing(index_elements=["name"])
            )
            return

        try:
            with self.session.begin_nested():
                self.session.add(EntrySequence(name=self.name, value=0, last_height=0))
        except IntegrityError:
            # Created by a concurrent transaction; the savepoint is gone.
            return

    def _locked_row(self) -> EntrySequence:
        row = self._select_locked()
        if row is None:
            self.ensure_row()
            row = self._select_locked()
        return row

    def current(self) -> int:
        """Last allocated id, 0 before the first allocation."""
        value = self.session.execute(
            select(EntrySequence.value).where(EntrySequence.name == self.name)
        ).scalar_one_or_none()
        return value or 0

    def allocate(self) -> int:
        """Advance the id counter by one and return the new value.

        The row stays locked until the surrounding transaction ends, so the
        id is consumed only if the entry insert commits with it.
        """
        row = self._locked_row()
        row.value += 1
        self.session.flush()
        return row.value

    def advance_height(self) -> int:
        """Advance the ordering height by one and return it."""
        row = self._locked_row()
        row.last_height += 1
        self.session.flush()
        return row.last_height
