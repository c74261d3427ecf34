"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from doc_catalog.config import Settings
from doc_catalog.models.database import Base, init_db
from doc_catalog.services.entry_service import EntryService


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across sessions and threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env files."""
    return Settings(_env_file=None, database_url_override="sqlite://")


@pytest.fixture
def make_service(session_factory, settings):
    """Build an EntryService, optionally overriding settings fields."""
    def _make(**overrides):
        svc_settings = settings.model_copy(update=overrides) if overrides else settings
        return EntryService(session_factory, settings=svc_settings)
    return _make


@pytest.fixture
def service(make_service):
    """EntryService with default settings."""
    return make_service()


@pytest.fixture
def valid_params():
    """Valid submission parameters."""
    return {
        "name": "Paper A",
        "byte_count": 1024,
        "summary": "Summary text",
        "tags": ["ai", "nlp"],
    }
