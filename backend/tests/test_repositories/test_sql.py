"""
Tests for the SQLAlchemy repository backend.

Runs the marketplace services against an in-process SQLite database so the
mapping, ordering and rollback behaviour of SqlRepository are exercised
without a PostgreSQL server. Row locks are a no-op on SQLite; lock ordering
is covered by the in-memory backend tests.
"""

from decimal import Decimal
from typing import AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from agrimarket.database.base import utcnow
from agrimarket.database.models import Base, Negotiation, Produce
from agrimarket.repositories.sql import SqlRepository
from agrimarket.services.actors import Actor, Party
from agrimarket.services.catalog.service import ProduceCatalog
from agrimarket.services.errors import RepositoryError, WaitingForCounterpartError
from agrimarket.services.negotiations.service import NegotiationService
from agrimarket.services.orders.enums import NegotiationStatus, OrderStatus
from agrimarket.services.orders.service import OrderService


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def sql_repository(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[SqlRepository, None]:
    async with session_factory() as session:
        yield SqlRepository(session)


@pytest.fixture
def fresh_repository(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SqlRepository]:
    """Repository over a new session, as a separate request would get."""
    return lambda: SqlRepository(session_factory())


@pytest.fixture
async def sql_produce(sql_repository: SqlRepository, farmer: Actor) -> Produce:
    return await ProduceCatalog(sql_repository).create_produce(
        farmer,
        name="Tomatoes",
        category="vegetables",
        price_per_kg=Decimal("25.00"),
        min_order_quantity=10,
        total_quantity=1000,
    )


class TestSqlRepository:
    async def test_produce_round_trip(
        self,
        fresh_repository: Callable[[], SqlRepository],
        sql_produce: Produce,
    ) -> None:
        repository = fresh_repository()

        stored = await repository.get_produce(sql_produce.id)
        history = await repository.list_price_history(sql_produce.id)

        assert stored.name == "Tomatoes"
        assert stored.price_per_kg == Decimal("25.00")
        assert stored.available_quantity == 1000
        assert [entry.price for entry in history] == [Decimal("25.00")]
        await repository.session.close()

    async def test_order_status_is_stored_as_enum(
        self,
        sql_repository: SqlRepository,
        fresh_repository: Callable[[], SqlRepository],
        vendor: Actor,
        sql_produce: Produce,
    ) -> None:
        order = await OrderService(sql_repository).create_order(vendor, sql_produce.id, 300)

        repository = fresh_repository()
        orders = await repository.list_orders(status=OrderStatus.NEGOTIATION)

        assert [o.id for o in orders] == [order.id]
        assert orders[0].status is OrderStatus.NEGOTIATION
        assert orders[0].total_amount == Decimal("7500.00")
        await repository.session.close()

    async def test_bargaining_scenario(
        self,
        sql_repository: SqlRepository,
        fresh_repository: Callable[[], SqlRepository],
        vendor: Actor,
        farmer: Actor,
        sql_produce: Produce,
    ) -> None:
        produce_id = sql_produce.id
        order = await OrderService(sql_repository).create_order(vendor, produce_id, 300)
        order_id = order.id
        negotiations = NegotiationService(sql_repository)

        offer = await negotiations.create_negotiation(vendor, order_id, Decimal("23.00"))
        offer_id = offer.id
        # The rollback expires every instance the session holds.
        with pytest.raises(WaitingForCounterpartError):
            await negotiations.create_negotiation(vendor, order_id, Decimal("22.00"))
        await negotiations.respond_to_negotiation(
            farmer, offer_id, NegotiationStatus.ACCEPTED
        )

        repository = fresh_repository()
        settled = await repository.get_order(order_id)
        listing = await repository.get_produce(produce_id)
        history = await repository.list_price_history(produce_id)
        ledger = await repository.list_negotiations(order_id)

        assert settled.status == OrderStatus.ACCEPTED
        assert settled.price_per_kg == Decimal("23.00")
        assert settled.total_amount == Decimal("6900.00")
        assert settled.commission_amount == Decimal("345.00")
        assert listing.price_per_kg == Decimal("23.00")
        assert [entry.price for entry in history] == [Decimal("23.00"), Decimal("25.00")]
        assert [(e.round, e.sequence, e.status) for e in ledger] == [
            (1, 1, NegotiationStatus.ACCEPTED)
        ]
        await repository.session.close()

    async def test_ledger_order_with_tied_timestamps(
        self,
        sql_repository: SqlRepository,
        fresh_repository: Callable[[], SqlRepository],
        vendor: Actor,
        sql_produce: Produce,
    ) -> None:
        order = await OrderService(sql_repository).create_order(vendor, sql_produce.id, 300)
        order_id = order.id
        created_at = utcnow()

        async with sql_repository.transaction():
            for sequence, party in ((2, Party.FARMER), (1, Party.VENDOR)):
                await sql_repository.add_negotiation(
                    Negotiation(
                        order_id=order_id,
                        round=1,
                        sequence=sequence,
                        vendor_id=order.vendor_id,
                        farmer_id=order.farmer_id,
                        proposed_by=party,
                        offered_price=Decimal("24.00"),
                        status=NegotiationStatus.PENDING,
                        created_at=created_at,
                    )
                )

        repository = fresh_repository()
        ledger = await repository.list_negotiations(order_id)

        assert [(e.sequence, e.proposed_by) for e in ledger] == [
            (1, Party.VENDOR),
            (2, Party.FARMER),
        ]
        await repository.session.close()

    async def test_duplicate_ledger_sequence_is_rejected(
        self,
        sql_repository: SqlRepository,
        vendor: Actor,
        sql_produce: Produce,
    ) -> None:
        order = await OrderService(sql_repository).create_order(vendor, sql_produce.id, 300)
        entries = [
            Negotiation(
                order_id=order.id,
                round=1,
                sequence=1,
                vendor_id=order.vendor_id,
                farmer_id=order.farmer_id,
                proposed_by=party,
                offered_price=Decimal("24.00"),
                status=NegotiationStatus.PENDING,
            )
            for party in (Party.VENDOR, Party.FARMER)
        ]

        with pytest.raises(RepositoryError):
            async with sql_repository.transaction():
                for entry in entries:
                    await sql_repository.add_negotiation(entry)

    async def test_failed_write_rolls_back_transaction(
        self,
        sql_repository: SqlRepository,
        fresh_repository: Callable[[], SqlRepository],
        farmer: Actor,
    ) -> None:
        with pytest.raises(RepositoryError):
            async with sql_repository.transaction():
                await sql_repository.add_produce(
                    Produce(
                        farmer_id=farmer.id,
                        name="Garlic",
                        category="vegetables",
                        price_per_kg=Decimal("40.00"),
                        min_order_quantity=5,
                        available_quantity=50,
                        total_quantity=50,
                        is_active=True,
                    )
                )
                await sql_repository.add_produce(
                    Produce(
                        farmer_id=farmer.id,
                        name="Broken",
                        category="vegetables",
                        price_per_kg=Decimal("-1.00"),
                        min_order_quantity=5,
                        available_quantity=50,
                        total_quantity=50,
                        is_active=True,
                    )
                )

        repository = fresh_repository()
        assert await repository.list_produce(active_only=False) == []
        await repository.session.close()

    async def test_lock_requires_transaction(
        self, sql_repository: SqlRepository, vendor: Actor
    ) -> None:
        with pytest.raises(RuntimeError):
            await sql_repository.lock_order(vendor.id)
