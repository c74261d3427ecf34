"""Entry service - document entry lifecycle with ownership checks."""

import logging
import math
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Session, sessionmaker

from doc_catalog.config import Settings, get_settings
from doc_catalog.context import current_principal, optional_principal
from doc_catalog.errors import EntryNotFound, PermissionDenied, ValidationFailed
from doc_catalog.models.database import DocumentEntry
from doc_catalog.models.schemas import (
    DocumentMetadata,
    EntryEssentials,
    EntryHistoryResponse,
    EntryIdentity,
    EntryListResponse,
    EntryProfile,
    EntrySummary,
    EntryView,
    HistoryListResponse,
)
from doc_catalog.repositories.entry_repository import EntryRepository
from doc_catalog.repositories.history_repository import HistoryRepository
from doc_catalog.repositories.sequence_repository import SequenceRepository
from doc_catalog.services.permission_service import PermissionLedger
from doc_catalog.services.validation import validate_submission

logger = logging.getLogger(__name__)

ProjectionT = TypeVar("ProjectionT", bound=BaseModel)

# Serializes every catalog operation in this process.
_operation_lock = threading.RLock()

_MUTABLE_FIELDS = ("name", "byte_count", "summary", "tags")


class _UnitOfWork:
    """Repositories sharing one session for the duration of an operation."""

    def __init__(self, session: Session):
        self.session = session
        self.entry_repo = EntryRepository(session)
        self.sequence_repo = SequenceRepository(session)
        self.history_repo = HistoryRepository(session)
        self.ledger = PermissionLedger(session)


class EntryService:
    """Service for the document catalog.

    This service:
    - Allocates entry ids from a single counter and never reuses them
    - Lets only the creator revise, withdraw or share an entry
    - Grants the creator access on submission
    - Records every mutation in the history table

    Each public method runs under a process-wide lock in its own
    transaction; a raised error means nothing was written.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        settings: Optional[Settings] = None,
        height_source: Optional[Callable[[], int]] = None,
    ):
        """Initialize the service.

        Args:
            session_factory: Factory producing sessions on the catalog store
            settings: Settings override, defaults to the cached settings
            height_source: Callable returning the ordering height; by default
                heights come from the stored sequence row
        """
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.height_source = height_source

    @contextmanager
    def _unit_of_work(self) -> Iterator[_UnitOfWork]:
        with _operation_lock:
            session = self.session_factory()
            try:
                yield _UnitOfWork(session)
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def _next_height(self, uow: _UnitOfWork) -> int:
        if self.height_source is None:
            return uow.sequence_repo.advance_height()
        return self.height_source()

    def _require_entry(self, uow: _UnitOfWork, entry_id: int) -> DocumentEntry:
        entry = uow.entry_repo.get_by_id(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        return entry

    def _require_creator(
        self,
        uow: _UnitOfWork,
        entry_id: int,
        action: str,
    ) -> tuple[DocumentEntry, str]:
        caller = current_principal()
        entry = self._require_entry(uow, entry_id)
        if entry.creator != caller:
            logger.warning(f"Denied {action} of entry {entry_id} to {caller}")
            raise PermissionDenied(entry_id, caller, action)
        return entry, caller

    def _validate(self, name, byte_count, summary, tags) -> DocumentMetadata:
        try:
            return validate_submission(name, byte_count, summary, tags)
        except ValidationFailed as e:
            logger.debug(f"Rejected submission parameters: {e}")
            raise

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def submit_document(
        self,
        name: str,
        byte_count: int,
        summary: str,
        tags: List[str],
    ) -> int:
        """Catalog a new document on behalf of the acting principal.

        Args:
            name: Document name, 1-80 bytes
            byte_count: Document size, 1 to 1,999,999,999
            summary: Summary text, 1-256 bytes
            tags: 1-8 tags of 1-40 bytes each

        Returns:
            The new entry id, one above the previous counter value

        Raises:
            InvalidMetadata: If name, summary or tags are invalid
            InvalidDocumentSize: If byte_count is out of range
        """
        caller = current_principal()
        metadata = self._validate(name, byte_count, summary, tags)

        with self._unit_of_work() as uow:
            height = self._next_height(uow)
            entry_id = uow.sequence_repo.allocate()
            uow.entry_repo.create(
                entry_id=entry_id,
                creator=caller,
                submission_height=height,
                metadata=metadata,
            )
            uow.ledger.grant(entry_id, caller)
            uow.history_repo.log_submission(entry_id, caller, height)

        logger.info(f"Entry {entry_id} submitted by {caller} at height {height}")
        return entry_id

    # Alternate name kept for callers of the older entry point.
    catalog_document = submit_document

    def revise_document(
        self,
        entry_id: int,
        name: str,
        byte_count: int,
        summary: str,
        tags: List[str],
    ) -> None:
        """Replace name, size, summary and tags of an entry.

        Raises:
            EntryNotFound: If the entry does not exist
            PermissionDenied: If the caller is not the creator
            InvalidMetadata: If name, summary or tags are invalid
            InvalidDocumentSize: If byte_count is out of range
        """
        with self._unit_of_work() as uow:
            entry, caller = self._require_creator(uow, entry_id, "revise")
            metadata = self._validate(name, byte_count, summary, tags)

            changed = [
                field for field in _MUTABLE_FIELDS
                if getattr(entry, field) != getattr(metadata, field)
            ]
            uow.entry_repo.update(entry, metadata)
            uow.history_repo.log_revision(entry_id, caller, self._next_height(uow), changed)

        logger.info(f"Entry {entry_id} revised by {caller}")

    def withdraw_document(self, entry_id: int) -> None:
        """Delete an entry irreversibly.

        Permission rows are kept unless ``cascade_permissions_on_withdraw``
        is set.

        Raises:
            EntryNotFound: If the entry does not exist
            PermissionDenied: If the caller is not the creator
        """
        with self._unit_of_work() as uow:
            entry, caller = self._require_creator(uow, entry_id, "withdraw")
            uow.entry_repo.delete(entry)
            if self.settings.cascade_permissions_on_withdraw:
                uow.ledger.purge(entry_id)
            uow.history_repo.log_withdrawal(entry_id, caller, self._next_height(uow))

        logger.info(f"Entry {entry_id} withdrawn by {caller}")

    def grant_access(self, entry_id: int, principal: str) -> None:
        """Let ``principal`` access an entry. Creator only."""
        with self._unit_of_work() as uow:
            _, caller = self._require_creator(uow, entry_id, "grant access to")
            uow.ledger.grant(entry_id, principal)
            uow.history_repo.log_access_change(
                entry_id, caller, self._next_height(uow), principal, granted=True
            )

        logger.info(f"Entry {entry_id} access granted to {principal} by {caller}")

    def revoke_access(self, entry_id: int, principal: str) -> None:
        """Withdraw access of ``principal``. The creator's own access stays."""
        with self._unit_of_work() as uow:
            entry, caller = self._require_creator(uow, entry_id, "revoke access to")
            if principal == entry.creator:
                logger.warning(f"Denied revoking creator access on entry {entry_id}")
                raise PermissionDenied(entry_id, caller, "revoke creator access to")
            uow.ledger.revoke(entry_id, principal)
            uow.history_repo.log_access_change(
                entry_id, caller, self._next_height(uow), principal, granted=False
            )

        logger.info(f"Entry {entry_id} access revoked from {principal} by {caller}")

    def validate_submission_parameters(
        self,
        name: str,
        byte_count: int,
        summary: str,
        tags: List[str],
    ) -> None:
        """Run the submission checks without touching the store."""
        self._validate(name, byte_count, summary, tags)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _check_read(self, uow: _UnitOfWork, entry_id: int) -> None:
        if not self.settings.enforce_read_permissions:
            return
        caller = current_principal()
        if not uow.ledger.check(entry_id, caller):
            logger.warning(f"Denied read of entry {entry_id} to {caller}")
            raise PermissionDenied(entry_id, caller, "read")

    def _project(self, entry_id: int, projection: Type[ProjectionT]) -> ProjectionT:
        with self._unit_of_work() as uow:
            entry = self._require_entry(uow, entry_id)
            self._check_read(uow, entry_id)
            return projection.model_validate(entry)

    def view_full(self, entry_id: int) -> EntryView:
        return self._project(entry_id, EntryView)

    def fetch_essentials(self, entry_id: int) -> EntryEssentials:
        return self._project(entry_id, EntryEssentials)

    def fetch_identity(self, entry_id: int) -> EntryIdentity:
        return self._project(entry_id, EntryIdentity)

    def extract_summary(self, entry_id: int) -> EntrySummary:
        return self._project(entry_id, EntrySummary)

    def generate_complete_profile(self, entry_id: int) -> EntryProfile:
        """Full entry plus caller-relative facts.

        Outside ``acting_as`` the caller facts are both False.
        """
        caller = optional_principal()
        with self._unit_of_work() as uow:
            entry = self._require_entry(uow, entry_id)
            self._check_read(uow, entry_id)
            view = EntryView.model_validate(entry)
            has_access = caller is not None and uow.ledger.check(entry_id, caller)
            return EntryProfile(
                **view.model_dump(),
                tag_count=len(view.tags),
                caller_is_creator=caller == view.creator,
                caller_has_access=has_access,
            )

    def has_access(self, entry_id: int, principal: Optional[str] = None) -> bool:
        """Ledger flag for ``principal``, defaulting to the caller."""
        if principal is None:
            principal = current_principal()
        with self._unit_of_work() as uow:
            return uow.ledger.check(entry_id, principal)

    def current_counter(self) -> int:
        """Last assigned entry id, 0 before the first submission."""
        with self._unit_of_work() as uow:
            return uow.sequence_repo.current()

    def _page_bounds(self, page: int, page_size: Optional[int]) -> tuple[int, int]:
        page = max(page, 1)
        page_size = page_size or self.settings.default_page_size
        page_size = min(max(page_size, 1), self.settings.max_page_size)
        return page, page_size

    def list_documents(
        self,
        creator: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> EntryListResponse:
        """List entries ordered by id.

        With ``enforce_read_permissions`` only entries granted to the caller
        are listed.

        Args:
            creator: Only entries submitted by this principal
            page: Page number, starting at 1
            page_size: Items per page, capped at ``max_page_size``

        Returns:
            EntryListResponse with paginated results
        """
        page, page_size = self._page_bounds(page, page_size)
        accessible_to = (
            current_principal() if self.settings.enforce_read_permissions else None
        )

        with self._unit_of_work() as uow:
            entries, total = uow.entry_repo.list_entries(
                creator=creator,
                accessible_to=accessible_to,
                page=page,
                page_size=page_size,
            )
            views = [EntryView.model_validate(e) for e in entries]

        total_pages = math.ceil(total / page_size) if total > 0 else 1
        return EntryListResponse(
            entries=views,
            count=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
        )

    def get_history(
        self,
        entry_id: int,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> HistoryListResponse:
        """Audit records of an entry, newest first.

        History outlives the entry itself, so a withdrawn id still has one.
        """
        page, page_size = self._page_bounds(page, page_size)

        with self._unit_of_work() as uow:
            self._check_read(uow, entry_id)
            records, total = uow.history_repo.get_by_entry(entry_id, page, page_size)
            history = [EntryHistoryResponse.model_validate(r) for r in records]

        total_pages = math.ceil(total / page_size) if total > 0 else 1
        return HistoryListResponse(
            history=history,
            count=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
        )
