"""
Pytest configuration and fixtures.

Provides an isolated in-memory data store, seeded repositories and an API
client whose lifespan seeds the global store.
"""

import os

# Generous limits so API tests are not throttled; read when the limiter is imported
os.environ.setdefault("RATE_LIMIT_DEFAULT", "1000/minute")
os.environ.setdefault("RATE_LIMIT_CALCULATION", "1000/minute")
os.environ.setdefault("RATE_LIMIT_SYNC", "1000/minute")
os.environ.pop("MOCK_DATA_PATH", None)
os.environ.pop("MOCK_USERS_PER_ROLE", None)

import pytest
from fastapi.testclient import TestClient

from db.database import MockDataStore, close_data_store
from db.marketplace_repository import MarketplaceRepository
from db.user_repository import MockUserRepository
from services.marketplace_service import MarketplaceService


@pytest.fixture
def store():
    """Fresh in-memory store for one test."""
    return MockDataStore()


@pytest.fixture
def user_repository(store):
    repository = MockUserRepository(store, per_role=5, seed=42)
    repository.seed()
    return repository


@pytest.fixture
def marketplace_repository(store):
    repository = MarketplaceRepository(store)
    repository.seed_catalogue()
    return repository


@pytest.fixture
def marketplace_service(marketplace_repository, user_repository):
    return MarketplaceService(marketplace_repository, user_repository)


@pytest.fixture
def client():
    """
    API client with a freshly seeded global store.

    Entering the client runs the application lifespan; the global store is
    dropped afterwards so tests do not share RFQs or quotes.
    """
    from main import app
    from middleware.rate_limiter import limiter

    close_data_store()
    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    close_data_store()
