"""
Pytest configuration and fixtures.

Store tests run against in-memory SQLite; engine tests use the fakes
from tests/__init__.py in place of the search provider and the AI model.
"""

from datetime import datetime, timezone

import pytest

from core.cache import MemoryCacheService
from database.database import create_session_factory, init_db
from database.repositories import SqlCompanyProfileStore, SqlJobSummaryStore
from tests import FakeAIService, FakeSearchClient, FrozenClock


@pytest.fixture
def now():
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now):
    return FrozenClock(now)


@pytest.fixture
def cache():
    return MemoryCacheService(default_ttl_seconds=300)


@pytest.fixture
def session_factory():
    engine, factory = create_session_factory("sqlite:///:memory:")
    init_db(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def job_store(session_factory):
    return SqlJobSummaryStore(session_factory)


@pytest.fixture
def company_store(session_factory):
    return SqlCompanyProfileStore(session_factory)


@pytest.fixture
def search_client():
    return FakeSearchClient()


@pytest.fixture
def ai_service():
    return FakeAIService()
