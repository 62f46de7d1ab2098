"""
Pytest configuration and shared test fixtures.

Settings are cached and the application is built at import time, so the
environment is prepared before anything from agrimarket is imported. Every
test gets its own in-memory store; API tests route requests to it by
overriding the repository dependency.
"""

import os

os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_STORAGE_BACKEND", "memory")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key-with-at-least-32-characters")

from decimal import Decimal
from typing import AsyncGenerator, Callable
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from agrimarket.api.deps import get_repository
from agrimarket.core.security import create_access_token
from agrimarket.database.models import Order, Produce
from agrimarket.main import app
from agrimarket.repositories.memory import InMemoryRepository, InMemoryStore
from agrimarket.services.actors import Actor, UserRole
from agrimarket.services.catalog.service import ProduceCatalog
from agrimarket.services.orders.service import OrderService


# ============================================================================
# Actors
# ============================================================================


@pytest.fixture
def farmer() -> Actor:
    return Actor(id=uuid4(), role=UserRole.FARMER)


@pytest.fixture
def vendor() -> Actor:
    return Actor(id=uuid4(), role=UserRole.VENDOR)


@pytest.fixture
def outsider() -> Actor:
    """Vendor with no stake in the fixtures' orders."""
    return Actor(id=uuid4(), role=UserRole.VENDOR)


# ============================================================================
# Persistence
# ============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repository(store: InMemoryStore) -> InMemoryRepository:
    return InMemoryRepository(store)


@pytest.fixture
def new_repository(store: InMemoryStore) -> Callable[[], InMemoryRepository]:
    """Factory for extra units of work over the same store (one per request)."""
    return lambda: InMemoryRepository(store)


# ============================================================================
# Marketplace data
# ============================================================================


@pytest.fixture
async def produce(repository: InMemoryRepository, farmer: Actor) -> Produce:
    """Tomatoes at 25.00/kg, minimum 10 kg, 1000 kg available."""
    return await ProduceCatalog(repository).create_produce(
        farmer,
        name="Tomatoes",
        category="vegetables",
        price_per_kg=Decimal("25.00"),
        min_order_quantity=10,
        total_quantity=1000,
    )


@pytest.fixture
async def order(repository: InMemoryRepository, vendor: Actor, produce: Produce) -> Order:
    """300 kg of the produce fixture, total 7500.00."""
    return await OrderService(repository).create_order(vendor, produce.id, 300)


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def auth_headers() -> Callable[[Actor], dict[str, str]]:
    def build(actor: Actor) -> dict[str, str]:
        token = create_access_token(actor.id, actor.role)
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
async def async_client(store: InMemoryStore) -> AsyncGenerator[AsyncClient, None]:
    """
    Asynchronous test client bound to the test's in-memory store.

    Example:
        async def test_health(async_client):
            response = await async_client.get("/health")
            assert response.status_code == 200
    """

    async def override_repository():
        yield InMemoryRepository(store)

    app.dependency_overrides[get_repository] = override_repository
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
