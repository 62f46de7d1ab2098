"""
SQLAlchemy repository backend.

Wraps one AsyncSession. Reads use ``populate_existing`` so that an object
re-read after taking a row lock reflects the committed row rather than a
stale identity-map copy. Driver errors are logged, the transaction is rolled
back and the error is re-raised as RepositoryError.
"""

import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agrimarket.core.logging import get_logger
from agrimarket.database.models import Negotiation, Order, PriceHistory, Produce
from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.services.errors import RepositoryError
from agrimarket.services.orders.enums import OrderStatus

logger = get_logger(__name__)


class SqlRepository(MarketplaceRepository):
    """Repository over an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: Async database session owned by the caller
        """
        self.session = session
        self._depth = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Database transaction failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RepositoryError(
                "Database transaction failed",
                error=str(e),
                integrity_violation=isinstance(e, IntegrityError),
            ) from e
        except BaseException:
            await self.session.rollback()
            raise
        finally:
            self._depth = 0

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Database flush failed", error=str(e), error_type=type(e).__name__)
            raise RepositoryError("Database write failed", error=str(e)) from e

    async def _add(self, instance):
        self.session.add(instance)
        await self._flush()
        return instance

    async def _get(self, model, record_id: uuid.UUID, for_update: bool = False):
        stmt = (
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Database read failed",
                table=model.__tablename__,
                record_id=str(record_id),
                error=str(e),
            )
            raise RepositoryError("Database read failed", error=str(e)) from e
        return result.scalar_one_or_none()

    async def _all(self, stmt) -> list:
        try:
            result = await self.session.execute(
                stmt.execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            logger.error("Database query failed", error=str(e))
            raise RepositoryError("Database query failed", error=str(e)) from e
        return list(result.scalars().all())

    async def lock_order(self, order_id: uuid.UUID) -> Optional[Order]:
        if not self._depth:
            raise RuntimeError("Record locks require an open transaction")
        return await self._get(Order, order_id, for_update=True)

    # Produce

    async def get_produce(
        self,
        produce_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[Produce]:
        return await self._get(Produce, produce_id, for_update=for_update)

    async def list_produce(
        self,
        active_only: bool = True,
        farmer_id: Optional[uuid.UUID] = None,
    ) -> list[Produce]:
        stmt = select(Produce)
        if active_only:
            stmt = stmt.where(Produce.is_active.is_(True))
        if farmer_id is not None:
            stmt = stmt.where(Produce.farmer_id == farmer_id)
        return await self._all(stmt.order_by(Produce.created_at.desc()))

    async def add_produce(self, produce: Produce) -> Produce:
        return await self._add(produce)

    async def save_produce(self, produce: Produce) -> Produce:
        return await self._add(produce)

    async def add_price_history(
        self,
        produce_id: uuid.UUID,
        price: Decimal,
    ) -> PriceHistory:
        return await self._add(PriceHistory(produce_id=produce_id, price=price))

    async def list_price_history(self, produce_id: uuid.UUID) -> list[PriceHistory]:
        stmt = (
            select(PriceHistory)
            .where(PriceHistory.produce_id == produce_id)
            .order_by(PriceHistory.recorded_at.desc())
        )
        return await self._all(stmt)

    # Orders

    async def add_order(self, order: Order) -> Order:
        return await self._add(order)

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        return await self._get(Order, order_id)

    async def list_orders(
        self,
        vendor_id: Optional[uuid.UUID] = None,
        farmer_id: Optional[uuid.UUID] = None,
        status: Optional[OrderStatus] = None,
    ) -> list[Order]:
        stmt = select(Order)
        if vendor_id is not None:
            stmt = stmt.where(Order.vendor_id == vendor_id)
        if farmer_id is not None:
            stmt = stmt.where(Order.farmer_id == farmer_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        return await self._all(stmt.order_by(Order.created_at.desc()))

    async def save_order(self, order: Order) -> Order:
        return await self._add(order)

    # Negotiations

    async def add_negotiation(self, negotiation: Negotiation) -> Negotiation:
        return await self._add(negotiation)

    async def get_negotiation(self, negotiation_id: uuid.UUID) -> Optional[Negotiation]:
        return await self._get(Negotiation, negotiation_id)

    async def list_negotiations(self, order_id: uuid.UUID) -> list[Negotiation]:
        stmt = (
            select(Negotiation)
            .where(Negotiation.order_id == order_id)
            .order_by(Negotiation.sequence.asc())
        )
        return await self._all(stmt)

    async def save_negotiation(self, negotiation: Negotiation) -> Negotiation:
        return await self._add(negotiation)
