"""
Order service layer.

Opens orders against produce listings, moves them through their lifecycle
and exposes them to the two parties involved. Every write runs in one
repository transaction with the order row locked, so concurrent status
changes and negotiation acceptances on the same order are serialized.
"""

import uuid
from decimal import Decimal
from typing import Optional

from agrimarket.core.logging import get_logger
from agrimarket.database.models import Order
from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.services.actors import Actor, Party, resolve_party
from agrimarket.services.catalog.service import ProduceCatalog
from agrimarket.services.errors import (
    BelowMinimumError,
    ForbiddenError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    UnavailableError,
)
from agrimarket.services.orders.commission import CommissionCalculator
from agrimarket.services.orders.enums import OrderStatus
from agrimarket.services.orders.state_machine import OrderStateMachine

logger = get_logger(__name__)


class OrderService:
    """
    Service for order business logic.

    Coordinates the repository, the produce catalog and the order state
    machine.
    """

    def __init__(
        self,
        repository: MarketplaceRepository,
        commission: Optional[CommissionCalculator] = None,
        reserve_stock: Optional[bool] = None,
    ):
        """
        Initialize order service.

        Args:
            repository: Marketplace repository for the current request
            commission: Commission calculator override
            reserve_stock: Stock reservation override
        """
        self.repository = repository
        self.catalog = ProduceCatalog(repository)
        self.state_machine = OrderStateMachine(
            repository,
            commission=commission,
            reserve_stock=reserve_stock,
        )

    async def create_order(
        self,
        actor: Actor,
        produce_id: uuid.UUID,
        quantity: int,
    ) -> Order:
        """
        Open an order for ``quantity`` kilograms of a listing.

        The listing's farmer and current price are copied onto the order.
        Stock is checked but not decremented.

        Args:
            actor: Calling vendor
            produce_id: Listing to order from
            quantity: Quantity in kilograms

        Returns:
            Created order in negotiation status

        Raises:
            ForbiddenError: If the actor is not a vendor
            NotFoundError: If the listing does not exist
            UnavailableError: If the listing is inactive
            BelowMinimumError: If quantity is below the listing minimum
            InsufficientStockError: If quantity exceeds availability
        """
        if not actor.is_vendor:
            raise ForbiddenError(
                "Only vendors can place orders",
                actor_id=str(actor.id),
                role=actor.role.value,
            )

        async with self.repository.transaction():
            produce = await self.catalog.get_produce(produce_id)

            if not produce.is_active:
                raise UnavailableError(
                    "Produce is not available",
                    produce_id=str(produce_id),
                )
            if quantity < produce.min_order_quantity:
                raise BelowMinimumError(
                    f"Minimum order quantity is {produce.min_order_quantity} kg",
                    produce_id=str(produce_id),
                    requested=quantity,
                    minimum=produce.min_order_quantity,
                )
            if not produce.can_supply(quantity):
                raise InsufficientStockError(
                    "Insufficient stock for this order",
                    produce_id=str(produce_id),
                    requested=quantity,
                    available=produce.available_quantity,
                )

            order = Order(
                produce_id=produce.id,
                vendor_id=actor.id,
                farmer_id=produce.farmer_id,
                quantity=quantity,
                status=OrderStatus.NEGOTIATION,
            )
            order.set_price(produce.price_per_kg)
            order = await self.repository.add_order(order)

        logger.info(
            "Order created",
            order_id=str(order.id),
            produce_id=str(produce_id),
            vendor_id=str(actor.id),
            farmer_id=str(order.farmer_id),
            quantity=quantity,
            total_amount=str(order.total_amount),
        )
        return order

    async def set_status(
        self,
        actor: Actor,
        order_id: uuid.UUID,
        status: OrderStatus,
    ) -> Order:
        """
        Move an order to ``status``.

        Only the farmer may accept. Entering ``accepted`` assesses the
        commission unless one is already recorded.

        Raises:
            NotFoundError: If the order does not exist
            ForbiddenError: If the actor is not a party, or a vendor accepts
            InvalidStateError: If the transition is not allowed
        """
        async with self.repository.transaction():
            order = await self.repository.lock_order(order_id)
            if order is None:
                raise NotFoundError("Order not found", order_id=str(order_id))

            party = self._require_party(actor, order)
            if status == OrderStatus.ACCEPTED and party is not Party.FARMER:
                raise ForbiddenError(
                    "Only the farmer can accept an order",
                    order_id=str(order_id),
                    actor_id=str(actor.id),
                )

            await self.state_machine.apply_transition(order, status, actor.id)
            order = await self.repository.save_order(order)

        return order

    async def accept_at_price(
        self,
        order: Order,
        price_per_kg: Decimal,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Order:
        """
        Settle a negotiated order at ``price_per_kg``.

        Reprices the listing, reprices the order, recomputes its total and
        moves it to accepted. Must run inside the caller's transaction with
        the order already locked; nothing is committed here.

        Raises:
            InvalidStateError: If the order price is already frozen
        """
        if order.status.is_price_frozen():
            raise InvalidStateError(
                "Order is no longer under negotiation",
                order_id=str(order.id),
                status=order.status.value,
            )

        produce = await self.repository.get_produce(order.produce_id, for_update=True)
        if produce is None:
            raise NotFoundError("Produce not found", produce_id=str(order.produce_id))

        await self.catalog.apply_negotiated_price(produce, price_per_kg)
        order.set_price(price_per_kg)
        await self.state_machine.apply_transition(order, OrderStatus.ACCEPTED, actor_id)
        return await self.repository.save_order(order)

    async def get_order(self, actor: Actor, order_id: uuid.UUID) -> Order:
        """
        Get an order visible to the actor.

        Raises:
            NotFoundError: If the order does not exist
            ForbiddenError: If the actor is not a party to the order
        """
        order = await self.repository.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found", order_id=str(order_id))
        self._require_party(actor, order)
        return order

    async def list_orders(
        self,
        actor: Actor,
        status: Optional[OrderStatus] = None,
    ) -> list[Order]:
        """Orders the actor is a party to, newest first."""
        if actor.is_vendor:
            return await self.repository.list_orders(vendor_id=actor.id, status=status)
        return await self.repository.list_orders(farmer_id=actor.id, status=status)

    @staticmethod
    def _require_party(actor: Actor, order: Order) -> Party:
        party = resolve_party(actor, order)
        if party is None:
            logger.warning(
                "Order access denied",
                order_id=str(order.id),
                actor_id=str(actor.id),
                role=actor.role.value,
            )
            raise ForbiddenError(
                "You are not a party to this order",
                order_id=str(order.id),
                actor_id=str(actor.id),
            )
        return party
