"""
Repository contract shared by the SQL and in-memory backends.

Services talk to persistence only through MarketplaceRepository. Both
backends hand out ORM model instances; the in-memory backend simply never
attaches them to a session.

Writes made inside ``transaction()`` become visible to other callers all at
once when the block exits normally and are discarded if it raises. Nested
``transaction()`` blocks join the outer one.
"""

import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Optional

from agrimarket.database.models import Negotiation, Order, PriceHistory, Produce
from agrimarket.services.orders.enums import OrderStatus


class MarketplaceRepository(ABC):
    """Data access for produce, orders and negotiation ledgers."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Open (or join) a unit of work."""

    @abstractmethod
    async def lock_order(self, order_id: uuid.UUID) -> Optional[Order]:
        """
        Take the per-order write lock and return the freshly read order.

        The lock is held until the surrounding transaction ends. Only one
        writer per order may be inside a locked section at a time, which is
        what serializes concurrent offers and responses on one ledger.

        Returns:
            The order, or None if it does not exist
        """

    # Produce

    @abstractmethod
    async def get_produce(
        self,
        produce_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[Produce]:
        ...

    @abstractmethod
    async def list_produce(
        self,
        active_only: bool = True,
        farmer_id: Optional[uuid.UUID] = None,
    ) -> list[Produce]:
        ...

    @abstractmethod
    async def add_produce(self, produce: Produce) -> Produce:
        ...

    @abstractmethod
    async def save_produce(self, produce: Produce) -> Produce:
        ...

    @abstractmethod
    async def add_price_history(
        self,
        produce_id: uuid.UUID,
        price: Decimal,
    ) -> PriceHistory:
        ...

    @abstractmethod
    async def list_price_history(self, produce_id: uuid.UUID) -> list[PriceHistory]:
        """Price history of a listing, newest first."""

    # Orders

    @abstractmethod
    async def add_order(self, order: Order) -> Order:
        ...

    @abstractmethod
    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        ...

    @abstractmethod
    async def list_orders(
        self,
        vendor_id: Optional[uuid.UUID] = None,
        farmer_id: Optional[uuid.UUID] = None,
        status: Optional[OrderStatus] = None,
    ) -> list[Order]:
        """Orders matching every given filter, newest first."""

    @abstractmethod
    async def save_order(self, order: Order) -> Order:
        ...

    # Negotiations

    @abstractmethod
    async def add_negotiation(self, negotiation: Negotiation) -> Negotiation:
        ...

    @abstractmethod
    async def get_negotiation(self, negotiation_id: uuid.UUID) -> Optional[Negotiation]:
        ...

    @abstractmethod
    async def list_negotiations(self, order_id: uuid.UUID) -> list[Negotiation]:
        """Ledger of an order in insertion order (by ledger sequence)."""

    @abstractmethod
    async def save_negotiation(self, negotiation: Negotiation) -> Negotiation:
        ...
