"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import Mock, MagicMock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PROPERTYHUB_BACKEND", "mock")
os.environ.setdefault("PROPERTYHUB_API_BASE_URL", "http://api.test/api")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose query builders chain onto themselves."""
    client = Mock()
    query = MagicMock()
    for method in ("select", "insert", "update", "upsert", "delete", "eq", "is_", "in_",
                   "gte", "lte", "or_", "contains", "order", "range", "limit"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[], count=0)
    client.table = Mock(return_value=query)
    client.query = query
    return client


@pytest.fixture
def sample_properties():
    """Seed listings used by the mock store."""
    from src.services.mock_store import sample_properties as build
    return build()


@pytest.fixture
def mock_store():
    """Empty in-memory backend."""
    from src.services.mock_store import MockPropertyStore
    return MockPropertyStore()


@pytest.fixture
def seeded_store():
    """In-memory backend holding the sample listings."""
    from src.services.mock_store import MockPropertyStore
    return MockPropertyStore.seeded()


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
