"""
Shared test fixtures and configuration.

Environment variables are set BEFORE any hackex imports to prevent
accidental connections to real databases or the explanation API.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Override settings before any code imports the settings singleton
os.environ["MONGODB_URL"] = "mongodb://localhost:27017"
os.environ["DATABASE_NAME"] = "test_hackex"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["OPENAI_API_KEY"] = ""
os.environ["WORKER_COUNT"] = "0"

import pytest  # noqa: E402

from tests.mocks.stores import (  # noqa: E402
    FakeCache,
    InMemoryArchiveStorage,
    InMemoryFindingRepository,
    InMemoryScanRepository,
)


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def state_store(fake_cache):
    from hackex.services.scan_state import ScanStateStore

    return ScanStateStore(cache=fake_cache, ttl_seconds=60)


@pytest.fixture
def archive_storage():
    return InMemoryArchiveStorage()


@pytest.fixture
def scan_repo():
    return InMemoryScanRepository()


@pytest.fixture
def finding_repo():
    return InMemoryFindingRepository()


@pytest.fixture
def offline_explainer():
    """Explanation service without API key, always answering from templates."""
    from hackex.services.explanation import ExplanationService, OpenAIExplanationBackend

    return ExplanationService(backend=OpenAIExplanationBackend(api_key=""))
