"""Pydantic schemas for submissions and read projections."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from doc_catalog.models.database import HistoryAction


# =============================================================================
# Submission Schemas
# =============================================================================

class DocumentMetadata(BaseModel):
    """Validated submission parameters."""
    name: str
    byte_count: int
    summary: str
    tags: List[str]


# =============================================================================
# Projection Schemas
# =============================================================================

class EntryView(BaseModel):
    """Every stored field of an entry."""
    entry_id: int
    name: str
    creator: str
    byte_count: int
    submission_height: int
    summary: str
    tags: List[str]

    model_config = ConfigDict(from_attributes=True)


class EntryEssentials(BaseModel):
    """Fields needed to list or pick an entry."""
    entry_id: int
    name: str
    byte_count: int
    tags: List[str]

    model_config = ConfigDict(from_attributes=True)


class EntryIdentity(BaseModel):
    """Who submitted what."""
    name: str
    creator: str

    model_config = ConfigDict(from_attributes=True)


class EntrySummary(BaseModel):
    """Summary text of an entry."""
    entry_id: int
    summary: str

    model_config = ConfigDict(from_attributes=True)


class EntryProfile(EntryView):
    """Full entry plus facts derived for the caller."""
    tag_count: int
    caller_is_creator: bool
    caller_has_access: bool


class EntryListResponse(BaseModel):
    """Response for listing entries."""
    entries: List[EntryView]
    count: int
    page: int
    page_size: int
    total_pages: int


# =============================================================================
# History Schemas
# =============================================================================

class EntryHistoryResponse(BaseModel):
    """One audit record."""
    id: int
    entry_id: int
    principal: str
    action: HistoryAction
    change_summary: Optional[str] = None
    height: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryListResponse(BaseModel):
    """Response for listing history."""
    history: List[EntryHistoryResponse]
    count: int
    page: int
    page_size: int
    total_pages: int
