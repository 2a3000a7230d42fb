"""
Global test fixtures for docstore-identity.

This module provides shared fixtures for all tests including:
- Mock MongoDB (mongomock-motor) as the document store
- Settings factories for both storage strategies
- Storage provider, repositories and stores wired against the mock store
"""
import pytest
import pytest_asyncio

from docstore_identity.config import Settings
from docstore_identity.models import Role, User
from docstore_identity.repositories import IdentityRepositories
from docstore_identity.services import RoleStore, UserStore, create_identity_stores
from docstore_identity.storage import create_storage_provider

STRATEGIES = ["shared", "per_type"]


# =============================================================================
# Settings
# =============================================================================

def make_settings(**overrides) -> Settings:
    """Valid settings for tests; keyword arguments override fields."""
    values = {
        "connection_string": "mongodb://localhost:27017",
        "database_id": "identity_test",
        "container_id": "identity",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(params=STRATEGIES)
def settings(request) -> Settings:
    """Settings for each storage strategy."""
    return make_settings(storage_strategy=request.param)


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest_asyncio.fixture
async def mock_async_mongo_client():
    """
    Create an async mock MongoDB client using mongomock-motor.
    """
    from mongomock_motor import AsyncMongoMockClient
    client = AsyncMongoMockClient(tz_aware=True)
    yield client
    client.close()


# =============================================================================
# Provider / Store Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def provider(settings, mock_async_mongo_client):
    """Provisioned storage provider for the parametrized strategy."""
    return await create_storage_provider(settings, mock_async_mongo_client)


@pytest.fixture
def repositories(provider) -> IdentityRepositories:
    return IdentityRepositories.from_provider(provider)


@pytest_asyncio.fixture
async def stores(settings, mock_async_mongo_client) -> tuple[UserStore, RoleStore]:
    return await create_identity_stores(settings, mock_async_mongo_client)


@pytest.fixture
def user_store(stores) -> UserStore:
    return stores[0]


@pytest.fixture
def role_store(stores) -> RoleStore:
    return stores[1]


# =============================================================================
# Entity Factories
# =============================================================================

def make_user(user_name: str = "alice", **fields) -> User:
    """User with normalized name and email filled in."""
    email = fields.pop("email", f"{user_name}@example.com")
    return User(
        user_name=user_name,
        normalized_user_name=user_name.upper(),
        email=email,
        normalized_email=email.upper(),
        **fields,
    )


def make_role(name: str = "Admin") -> Role:
    return Role(name=name, normalized_name=name.upper())
