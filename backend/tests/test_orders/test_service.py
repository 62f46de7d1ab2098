"""
Test suite for OrderService business logic.

Covers order creation against produce listings, status changes with their
permission rules, party-scoped reads and the repository transaction
boundaries. Runs against the in-memory repository.
"""

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from agrimarket.database.models import Order, Produce
from agrimarket.repositories.memory import InMemoryRepository
from agrimarket.services.actors import Actor, UserRole
from agrimarket.services.catalog.service import ProduceCatalog
from agrimarket.services.errors import (
    BelowMinimumError,
    ForbiddenError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    UnavailableError,
)
from agrimarket.services.orders.enums import OrderStatus
from agrimarket.services.orders.service import OrderService


@pytest.fixture
def service(repository: InMemoryRepository) -> OrderService:
    return OrderService(repository)


# ============================================================================
# Create Order Tests
# ============================================================================


class TestCreateOrder:
    """Order creation against a listing."""

    async def test_create_order_snapshots_listing(
        self,
        service: OrderService,
        vendor: Actor,
        farmer: Actor,
        produce: Produce,
    ) -> None:
        order = await service.create_order(vendor, produce.id, 300)

        assert order.vendor_id == vendor.id
        assert order.farmer_id == farmer.id
        assert order.produce_id == produce.id
        assert order.price_per_kg == Decimal("25.00")
        assert order.total_amount == Decimal("7500.00")
        assert order.status == OrderStatus.NEGOTIATION
        assert order.commission_amount is None

    async def test_create_order_does_not_decrement_stock(
        self,
        service: OrderService,
        repository: InMemoryRepository,
        vendor: Actor,
        produce: Produce,
    ) -> None:
        await service.create_order(vendor, produce.id, 300)

        stored = await repository.get_produce(produce.id)
        assert stored.available_quantity == 1000

    async def test_create_order_persists(
        self,
        service: OrderService,
        new_repository,
        vendor: Actor,
        produce: Produce,
    ) -> None:
        order = await service.create_order(vendor, produce.id, 300)

        stored = await new_repository().get_order(order.id)
        assert stored is not None
        assert stored.total_amount == Decimal("7500.00")

    async def test_farmer_cannot_create_order(
        self, service: OrderService, farmer: Actor, produce: Produce
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.create_order(farmer, produce.id, 300)

    async def test_missing_produce(self, service: OrderService, vendor: Actor) -> None:
        with pytest.raises(NotFoundError):
            await service.create_order(vendor, uuid4(), 300)

    async def test_inactive_produce(
        self,
        service: OrderService,
        repository: InMemoryRepository,
        vendor: Actor,
        farmer: Actor,
        produce: Produce,
    ) -> None:
        await ProduceCatalog(repository).update_produce(farmer, produce.id, is_active=False)

        with pytest.raises(UnavailableError):
            await service.create_order(vendor, produce.id, 300)

    async def test_below_minimum(
        self, service: OrderService, vendor: Actor, produce: Produce
    ) -> None:
        with pytest.raises(BelowMinimumError) as exc_info:
            await service.create_order(vendor, produce.id, 9)

        assert exc_info.value.context["minimum"] == 10

    async def test_minimum_quantity_is_accepted(
        self, service: OrderService, vendor: Actor, produce: Produce
    ) -> None:
        order = await service.create_order(vendor, produce.id, 10)

        assert order.total_amount == Decimal("250.00")

    async def test_insufficient_stock(
        self, service: OrderService, vendor: Actor, produce: Produce
    ) -> None:
        with pytest.raises(InsufficientStockError):
            await service.create_order(vendor, produce.id, 1001)

    async def test_failed_creation_writes_nothing(
        self,
        service: OrderService,
        repository: InMemoryRepository,
        vendor: Actor,
        produce: Produce,
    ) -> None:
        with pytest.raises(BelowMinimumError):
            await service.create_order(vendor, produce.id, 1)

        assert await repository.list_orders(vendor_id=vendor.id) == []


# ============================================================================
# Set Status Tests
# ============================================================================


class TestSetStatus:
    """Status changes and who may make them."""

    async def test_farmer_accepts(
        self, service: OrderService, farmer: Actor, order: Order
    ) -> None:
        updated = await service.set_status(farmer, order.id, OrderStatus.ACCEPTED)

        assert updated.status == OrderStatus.ACCEPTED
        assert updated.commission_amount == Decimal("375.00")

    async def test_vendor_cannot_accept(
        self, service: OrderService, vendor: Actor, order: Order
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.set_status(vendor, order.id, OrderStatus.ACCEPTED)

    async def test_vendor_can_cancel(
        self, service: OrderService, vendor: Actor, order: Order
    ) -> None:
        updated = await service.set_status(vendor, order.id, OrderStatus.CANCELLED)

        assert updated.status == OrderStatus.CANCELLED

    async def test_outsider_is_forbidden(
        self, service: OrderService, outsider: Actor, order: Order
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.set_status(outsider, order.id, OrderStatus.CANCELLED)

    async def test_farmer_with_vendor_id_is_not_the_vendor(
        self, service: OrderService, vendor: Actor, order: Order
    ) -> None:
        impostor = Actor(id=vendor.id, role=UserRole.FARMER)

        with pytest.raises(ForbiddenError):
            await service.set_status(impostor, order.id, OrderStatus.CANCELLED)

    async def test_missing_order(self, service: OrderService, farmer: Actor) -> None:
        with pytest.raises(NotFoundError):
            await service.set_status(farmer, uuid4(), OrderStatus.ACCEPTED)

    async def test_terminal_status_is_final(
        self, service: OrderService, farmer: Actor, order: Order
    ) -> None:
        await service.set_status(farmer, order.id, OrderStatus.REJECTED)

        with pytest.raises(InvalidStateError):
            await service.set_status(farmer, order.id, OrderStatus.ACCEPTED)

    async def test_reaccept_keeps_commission(
        self,
        service: OrderService,
        repository: InMemoryRepository,
        farmer: Actor,
        order: Order,
    ) -> None:
        await service.set_status(farmer, order.id, OrderStatus.ACCEPTED)

        stored = await repository.get_order(order.id)
        stored.commission_amount = Decimal("1.00")
        await repository.save_order(stored)

        updated = await service.set_status(farmer, order.id, OrderStatus.ACCEPTED)

        assert updated.commission_amount == Decimal("1.00")

    async def test_complete_after_accept(
        self, service: OrderService, farmer: Actor, order: Order
    ) -> None:
        await service.set_status(farmer, order.id, OrderStatus.ACCEPTED)
        completed = await service.set_status(farmer, order.id, OrderStatus.COMPLETED)

        assert completed.status == OrderStatus.COMPLETED
        assert completed.is_reviewable is True

    async def test_cannot_complete_from_negotiation(
        self, service: OrderService, farmer: Actor, order: Order
    ) -> None:
        with pytest.raises(InvalidStateError):
            await service.set_status(farmer, order.id, OrderStatus.COMPLETED)

    async def test_accept_with_stock_reservation(
        self,
        repository: InMemoryRepository,
        farmer: Actor,
        order: Order,
        produce: Produce,
    ) -> None:
        service = OrderService(repository, reserve_stock=True)

        await service.set_status(farmer, order.id, OrderStatus.ACCEPTED)

        stored = await repository.get_produce(produce.id)
        assert stored.available_quantity == 700

    async def test_failed_side_effect_rolls_back(
        self,
        repository: InMemoryRepository,
        farmer: Actor,
        order: Order,
    ) -> None:
        service = OrderService(repository)

        with patch.object(
            service.state_machine.commission,
            "apply",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(RuntimeError):
                await service.set_status(farmer, order.id, OrderStatus.ACCEPTED)

        stored = await repository.get_order(order.id)
        assert stored.status == OrderStatus.NEGOTIATION
        assert stored.commission_amount is None


# ============================================================================
# Read Tests
# ============================================================================


class TestReadOrders:
    """Party-scoped reads."""

    async def test_get_order_as_either_party(
        self, service: OrderService, vendor: Actor, farmer: Actor, order: Order
    ) -> None:
        assert (await service.get_order(vendor, order.id)).id == order.id
        assert (await service.get_order(farmer, order.id)).id == order.id

    async def test_get_order_as_outsider(
        self, service: OrderService, outsider: Actor, order: Order
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.get_order(outsider, order.id)

    async def test_get_missing_order(self, service: OrderService, vendor: Actor) -> None:
        with pytest.raises(NotFoundError):
            await service.get_order(vendor, uuid4())

    async def test_list_orders_by_party(
        self,
        service: OrderService,
        vendor: Actor,
        farmer: Actor,
        outsider: Actor,
        order: Order,
    ) -> None:
        assert [o.id for o in await service.list_orders(vendor)] == [order.id]
        assert [o.id for o in await service.list_orders(farmer)] == [order.id]
        assert await service.list_orders(outsider) == []

    async def test_list_orders_status_filter(
        self,
        service: OrderService,
        repository: InMemoryRepository,
        vendor: Actor,
        farmer: Actor,
        produce: Produce,
        order: Order,
    ) -> None:
        second = await service.create_order(vendor, produce.id, 50)
        await service.set_status(farmer, second.id, OrderStatus.ACCEPTED)

        accepted = await service.list_orders(vendor, status=OrderStatus.ACCEPTED)
        negotiating = await service.list_orders(vendor, status=OrderStatus.NEGOTIATION)

        assert [o.id for o in accepted] == [second.id]
        assert [o.id for o in negotiating] == [order.id]

    async def test_farmer_sees_only_own_listings_orders(
        self,
        service: OrderService,
        repository: InMemoryRepository,
        vendor: Actor,
        order: Order,
    ) -> None:
        other_farmer = Actor(id=uuid4(), role=UserRole.FARMER)
        other_produce = await ProduceCatalog(repository).create_produce(
            other_farmer,
            name="Onions",
            category="vegetables",
            price_per_kg=Decimal("18.00"),
            min_order_quantity=5,
            total_quantity=200,
        )
        await service.create_order(vendor, other_produce.id, 20)

        orders = await service.list_orders(other_farmer)

        assert len(orders) == 1
        assert orders[0].produce_id == other_produce.id
