"""
Shared fixtures.

Everything runs against the in-memory document store with a fixed
signing secret and cheap password hashing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from taskapi.api.app import create_app
from taskapi.auth.context import Principal
from taskapi.auth.jwt import TokenSigner
from taskapi.config import Settings
from taskapi.core.models import Role, UserCreate
from taskapi.services import TaskService, UserService
from taskapi.storage import InMemoryDocumentStorage, StorageProvider


SECRET = "test-secret"


# =============================================================================
# Helpers
# =============================================================================


class CountingStorage(InMemoryDocumentStorage):
    """In-memory store that records every read and write."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, str]] = []

    async def insert(self, collection, id, data):
        self.calls.append(("insert", collection))
        return await super().insert(collection, id, data)

    async def get(self, collection, id):
        self.calls.append(("get", collection))
        return await super().get(collection, id)

    async def find_one(self, collection, filters):
        self.calls.append(("find_one", collection))
        return await super().find_one(collection, filters)

    async def find(self, collection, query):
        self.calls.append(("find", collection))
        return await super().find(collection, query)

    async def count(self, collection, filters=None, text=None):
        self.calls.append(("count", collection))
        return await super().count(collection, filters, text)

    async def update(self, collection, id, updates):
        self.calls.append(("update", collection))
        return await super().update(collection, id, updates)

    async def delete(self, collection, id):
        self.calls.append(("delete", collection))
        return await super().delete(collection, id)

    async def group_count(self, collection, key, filters=None):
        self.calls.append(("group_count", collection))
        return await super().group_count(collection, key, filters)


class StepClock:
    """Deterministic clock: each call is one second after the previous."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Settings / Storage / Services
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        jwt_secret_key=SECRET,
        password_hash_iterations=1_000,
        sentry_dsn="",
        bootstrap_admin_email="",
        bootstrap_admin_password="",
    )


@pytest.fixture
def signer(settings) -> TokenSigner:
    return TokenSigner.from_settings(settings)


@pytest_asyncio.fixture
async def storage() -> StorageProvider:
    provider = StorageProvider(documents=CountingStorage())
    await provider.ensure_indexes()
    return provider


@pytest.fixture
def user_service(storage, signer, settings) -> UserService:
    return UserService(storage, signer, settings.password_hash_iterations)


@pytest.fixture
def task_service(storage) -> TaskService:
    return TaskService(storage, clock=StepClock())


async def make_principal(
    users: UserService,
    name: str,
    role: Role = Role.USER,
) -> Principal:
    user = await users.create_user(
        UserCreate(name=name, email=f"{name.lower()}@example.com", password="password123"),
        role=role,
    )
    return Principal.from_user(user)


@pytest_asyncio.fixture
async def alice(user_service) -> Principal:
    return await make_principal(user_service, "Alice")


@pytest_asyncio.fixture
async def bob(user_service) -> Principal:
    return await make_principal(user_service, "Bob")


@pytest_asyncio.fixture
async def admin(user_service) -> Principal:
    return await make_principal(user_service, "Root", role=Role.ADMIN)


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def http_storage() -> StorageProvider:
    return StorageProvider(documents=CountingStorage())


@pytest.fixture
def client(settings, http_storage):
    app = create_app(settings=settings, storage=http_storage)
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, name: str, password: str = "password123") -> dict[str, Any]:
    """Register a user over HTTP and return the response data."""
    resp = client.post(
        "/users/register",
        json={"name": name, "email": f"{name.lower()}@example.com", "password": password},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
