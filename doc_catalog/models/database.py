"""Database configuration and models."""

import enum
from datetime import datetime
from functools import lru_cache
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Engine,
    Enum as SQLEnum,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker, Session

from doc_catalog.config import get_settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class HistoryAction(enum.Enum):
    """Action type for history records."""
    SUBMITTED = "submitted"
    REVISED = "revised"
    WITHDRAWN = "withdrawn"
    GRANTED = "granted"
    REVOKED = "revoked"


class DocumentEntry(Base):
    """Metadata record of one cataloged document."""

    __tablename__ = "document_entries"

    entry_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    creator: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    byte_count: Mapped[int] = mapped_column(BigInteger, nullable=False)
    submission_height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    summary: Mapped[str] = mapped_column(String(256), nullable=False)
    tags: Mapped[list] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<DocumentEntry(entry_id={self.entry_id}, name={self.name})>"


class PermissionGrant(Base):
    """Access flag of one principal on one entry."""

    __tablename__ = "permission_grants"
    __table_args__ = (
        UniqueConstraint("entry_id", "principal", name="uq_permission_grants_entry_principal"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: rows may outlive a withdrawn entry.
    entry_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    principal: Mapped[str] = mapped_column(String(255), nullable=False)
    granted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<PermissionGrant(entry_id={self.entry_id}, "
            f"principal={self.principal}, granted={self.granted})>"
        )


class EntrySequence(Base):
    """Named counter row: last assigned entry id and last ordering height."""

    __tablename__ = "entry_sequences"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_height: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<EntrySequence(name={self.name}, value={self.value}, "
            f"last_height={self.last_height})>"
        )


class EntryHistory(Base):
    """Audit log for entry changes."""

    __tablename__ = "entry_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entry_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    principal: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    action: Mapped[HistoryAction] = mapped_column(SQLEnum(HistoryAction), nullable=False)
    change_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    height: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<EntryHistory(id={self.id}, entry_id={self.entry_id}, action={self.action})>"


@lru_cache
def get_engine() -> Engine:
    """Create the engine from settings on first use."""
    settings = get_settings()
    return create_engine(
        settings.database_url,
        echo=settings.db_echo,
        pool_pre_ping=settings.db_pool_pre_ping,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the configured engine."""
    return sessionmaker(bind=get_engine(), expire_on_commit=False)


def init_db(engine: Optional[Engine] = None) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(engine or get_engine())


def close_db() -> None:
    """Close database connections."""
    if get_engine.cache_info().currsize:
        get_engine().dispose()
