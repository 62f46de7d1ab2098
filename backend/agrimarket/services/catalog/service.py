"""
Produce catalog service.

Read access to produce listings for vendors, listing creation and edits for
farmers, and the two writes the order flow makes against a listing: repricing after
an accepted negotiation and, when enabled, reserving stock on acceptance.
"""

import uuid
from decimal import Decimal
from typing import Any, Optional

from agrimarket.core.logging import get_logger
from agrimarket.database.models import PriceHistory, Produce
from agrimarket.database.models.order import quantize_money
from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.services.actors import Actor
from agrimarket.services.errors import (
    ForbiddenError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
)

logger = get_logger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "name",
        "category",
        "description",
        "price_per_kg",
        "min_order_quantity",
        "available_quantity",
        "total_quantity",
        "is_active",
    }
)


class ProduceCatalog:
    """Service for produce listings and their price history."""

    def __init__(self, repository: MarketplaceRepository):
        """
        Initialize catalog service.

        Args:
            repository: Marketplace repository for the current request
        """
        self.repository = repository

    async def get_produce(self, produce_id: uuid.UUID) -> Produce:
        """
        Get a produce listing.

        Raises:
            NotFoundError: If the listing does not exist
        """
        produce = await self.repository.get_produce(produce_id)
        if produce is None:
            raise NotFoundError("Produce not found", produce_id=str(produce_id))
        return produce

    async def list_produce(
        self,
        active_only: bool = True,
        farmer_id: Optional[uuid.UUID] = None,
    ) -> list[Produce]:
        return await self.repository.list_produce(
            active_only=active_only,
            farmer_id=farmer_id,
        )

    async def create_produce(
        self,
        actor: Actor,
        name: str,
        category: str,
        price_per_kg: Decimal,
        min_order_quantity: int,
        total_quantity: int,
        available_quantity: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Produce:
        """
        Create a listing owned by the calling farmer.

        Args:
            actor: Calling farmer
            name: Crop name
            category: Crop category
            price_per_kg: Asking price per kilogram
            min_order_quantity: Smallest order accepted, in kilograms
            total_quantity: Total listed quantity, in kilograms
            available_quantity: Quantity available now; defaults to the total
            description: Optional description

        Returns:
            Created listing

        Raises:
            ForbiddenError: If the actor is not a farmer
            InvalidStateError: If the quantities are inconsistent
        """
        if not actor.is_farmer:
            raise ForbiddenError(
                "Only farmers can list produce",
                actor_id=str(actor.id),
                role=actor.role.value,
            )

        if available_quantity is None:
            available_quantity = total_quantity
        if available_quantity > total_quantity:
            raise InvalidStateError(
                "Available quantity cannot exceed total quantity",
                available_quantity=available_quantity,
                total_quantity=total_quantity,
            )

        produce = Produce(
            farmer_id=actor.id,
            name=name,
            category=category,
            description=description,
            price_per_kg=quantize_money(price_per_kg),
            min_order_quantity=min_order_quantity,
            available_quantity=available_quantity,
            total_quantity=total_quantity,
            is_active=True,
        )

        async with self.repository.transaction():
            produce = await self.repository.add_produce(produce)
            await self.repository.add_price_history(produce.id, produce.price_per_kg)

        logger.info(
            "Produce listed",
            produce_id=str(produce.id),
            farmer_id=str(actor.id),
            price_per_kg=str(produce.price_per_kg),
        )
        return produce

    async def update_produce(
        self,
        actor: Actor,
        produce_id: uuid.UUID,
        **fields: Any,
    ) -> Produce:
        """
        Edit a listing owned by the calling farmer.

        Only the given fields change. A price change appends a price history
        entry; setting ``is_active`` to False stops new orders on the listing.

        Args:
            actor: Calling farmer
            produce_id: Listing to edit
            **fields: New values, keyed by listing field name

        Returns:
            Updated listing

        Raises:
            ForbiddenError: If the actor is not the farmer who owns the listing
            NotFoundError: If the listing does not exist
            InvalidStateError: If the quantities become inconsistent
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        if not actor.is_farmer:
            raise ForbiddenError(
                "Only farmers can edit produce",
                actor_id=str(actor.id),
                role=actor.role.value,
            )

        async with self.repository.transaction():
            produce = await self.repository.get_produce(produce_id, for_update=True)
            if produce is None:
                raise NotFoundError("Produce not found", produce_id=str(produce_id))
            if produce.farmer_id != actor.id:
                raise ForbiddenError(
                    "You can only update your own produce",
                    produce_id=str(produce_id),
                    actor_id=str(actor.id),
                )

            previous_price = Decimal(produce.price_per_kg)
            if fields.get("price_per_kg") is not None:
                fields["price_per_kg"] = quantize_money(fields["price_per_kg"])
            for name, value in fields.items():
                setattr(produce, name, value)

            if produce.available_quantity > produce.total_quantity:
                raise InvalidStateError(
                    "Available quantity cannot exceed total quantity",
                    available_quantity=produce.available_quantity,
                    total_quantity=produce.total_quantity,
                )

            produce = await self.repository.save_produce(produce)
            if produce.price_per_kg != previous_price:
                await self.repository.add_price_history(produce.id, produce.price_per_kg)

        logger.info(
            "Produce updated",
            produce_id=str(produce_id),
            farmer_id=str(actor.id),
            fields=sorted(fields),
            is_active=produce.is_active,
        )
        return produce

    async def apply_negotiated_price(self, produce: Produce, price: Decimal) -> Produce:
        """
        Reprice a listing to an agreed negotiation price.

        Runs inside the caller's transaction. A history entry is appended
        only when the price actually changes.
        """
        price = quantize_money(price)
        previous = produce.price_per_kg
        produce.price_per_kg = price
        produce = await self.repository.save_produce(produce)

        if Decimal(previous) != price:
            await self.repository.add_price_history(produce.id, price)
            logger.info(
                "Produce repriced",
                produce_id=str(produce.id),
                previous_price=str(previous),
                price_per_kg=str(price),
            )
        return produce

    async def reserve_stock(self, produce_id: uuid.UUID, quantity: int) -> Produce:
        """
        Take ``quantity`` kilograms out of a listing's availability.

        Runs inside the caller's transaction and locks the listing row.

        Raises:
            NotFoundError: If the listing does not exist
            InsufficientStockError: If the listing no longer has the quantity
        """
        produce = await self.repository.get_produce(produce_id, for_update=True)
        if produce is None:
            raise NotFoundError("Produce not found", produce_id=str(produce_id))

        if not produce.can_supply(quantity):
            raise InsufficientStockError(
                "Insufficient stock for this order",
                produce_id=str(produce_id),
                requested=quantity,
                available=produce.available_quantity,
            )

        produce.available_quantity -= quantity
        produce = await self.repository.save_produce(produce)
        logger.info(
            "Stock reserved",
            produce_id=str(produce_id),
            quantity=quantity,
            remaining=produce.available_quantity,
        )
        return produce

    async def get_price_history(self, produce_id: uuid.UUID) -> list[PriceHistory]:
        """
        Price history of a listing, newest first.

        Raises:
            NotFoundError: If the listing does not exist
        """
        await self.get_produce(produce_id)
        return await self.repository.list_price_history(produce_id)
