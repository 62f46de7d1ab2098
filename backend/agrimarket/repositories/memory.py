"""
In-process repository backend.

InMemoryStore holds committed rows as plain dictionaries, one table per
model, plus one asyncio.Lock per locked record. Each InMemoryRepository is a
unit of work over a shared store: it stages the instances it adds or saves
and copies their rows into the store in a single step when the outermost
transaction exits. Nothing awaits between the first and last row copied, so
other coroutines observe either none or all of a transaction's writes.
"""

import asyncio
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, Optional, Tuple, Type, TypeVar

from agrimarket.core.logging import get_logger
from agrimarket.database.base import Base, utcnow
from agrimarket.database.models import Negotiation, Order, PriceHistory, Produce
from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.services.orders.enums import OrderStatus

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
RecordKey = Tuple[str, uuid.UUID]


class InMemoryStore:
    """Committed rows and record locks shared by every repository instance."""

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[uuid.UUID, Dict[str, Any]]] = defaultdict(dict)
        self._locks: Dict[RecordKey, asyncio.Lock] = {}

    def lock_for(self, key: RecordKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def clear(self) -> None:
        self.tables.clear()
        self._locks.clear()


_store: Optional[InMemoryStore] = None


def get_memory_store() -> InMemoryStore:
    """Process-wide store used when the API runs with the memory backend."""
    global _store
    if _store is None:
        _store = InMemoryStore()
        logger.info("In-memory store created")
    return _store


def _apply_column_defaults(instance: Base) -> None:
    # Mirrors the Python-side defaults SQLAlchemy would apply on flush.
    for column in instance.__table__.columns:
        if getattr(instance, column.key, None) is not None or column.default is None:
            continue
        default = column.default
        if default.is_callable:
            setattr(instance, column.key, default.arg(None))
        elif default.is_scalar:
            setattr(instance, column.key, default.arg)


class InMemoryRepository(MarketplaceRepository):
    """
    Unit of work over an InMemoryStore.

    One instance serves one request. Concurrent requests must each use their
    own instance against the shared store.
    """

    def __init__(self, store: InMemoryStore):
        self.store = store
        self._depth = 0
        self._staged: Dict[RecordKey, Base] = {}
        self._held: Dict[RecordKey, asyncio.Lock] = {}

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
            self._commit()
        finally:
            self._depth = 0
            self._staged.clear()
            self._release_locks()

    def _commit(self) -> None:
        for (table, record_id), instance in self._staged.items():
            self.store.tables[table][record_id] = instance.to_row()
        logger.debug("In-memory transaction committed", records=len(self._staged))

    def _release_locks(self) -> None:
        for lock in self._held.values():
            lock.release()
        self._held.clear()

    async def _acquire(self, model: Type[Base], record_id: uuid.UUID) -> bool:
        """Hold a record's lock until the transaction ends; False if no such record."""
        if not self._depth:
            raise RuntimeError("Record locks require an open transaction")
        key = (model.__tablename__, record_id)
        if key in self._held:
            return True
        # Records are never deleted, so a missing one needs no lock.
        if key not in self._staged and record_id not in self.store.tables[key[0]]:
            return False
        lock = self.store.lock_for(key)
        await lock.acquire()
        self._held[key] = lock
        return True

    def _stage(self, instance: ModelT, is_new: bool = False) -> ModelT:
        if is_new:
            _apply_column_defaults(instance)
        elif hasattr(instance, "updated_at"):
            instance.updated_at = utcnow()

        key = (instance.__tablename__, instance.id)
        if self._depth:
            self._staged[key] = instance
        else:
            # Autocommit outside an explicit transaction.
            self.store.tables[key[0]][key[1]] = instance.to_row()
        return instance

    def _load(self, model: Type[ModelT], record_id: uuid.UUID) -> Optional[ModelT]:
        key = (model.__tablename__, record_id)
        staged = self._staged.get(key)
        if staged is not None:
            return staged
        row = self.store.tables[model.__tablename__].get(record_id)
        return model(**row) if row is not None else None

    def _scan(self, model: Type[ModelT]) -> list[ModelT]:
        table = model.__tablename__
        records: Dict[uuid.UUID, ModelT] = {
            record_id: model(**row)
            for record_id, row in self.store.tables[table].items()
        }
        for (staged_table, record_id), instance in self._staged.items():
            if staged_table == table:
                records[record_id] = instance
        return list(records.values())

    async def lock_order(self, order_id: uuid.UUID) -> Optional[Order]:
        if not await self._acquire(Order, order_id):
            return None
        return self._load(Order, order_id)

    # Produce

    async def get_produce(
        self,
        produce_id: uuid.UUID,
        for_update: bool = False,
    ) -> Optional[Produce]:
        if for_update and not await self._acquire(Produce, produce_id):
            return None
        return self._load(Produce, produce_id)

    async def list_produce(
        self,
        active_only: bool = True,
        farmer_id: Optional[uuid.UUID] = None,
    ) -> list[Produce]:
        items = [
            produce
            for produce in self._scan(Produce)
            if (not active_only or produce.is_active)
            and (farmer_id is None or produce.farmer_id == farmer_id)
        ]
        return sorted(items, key=lambda produce: produce.created_at, reverse=True)

    async def add_produce(self, produce: Produce) -> Produce:
        return self._stage(produce, is_new=True)

    async def save_produce(self, produce: Produce) -> Produce:
        return self._stage(produce)

    async def add_price_history(
        self,
        produce_id: uuid.UUID,
        price: Decimal,
    ) -> PriceHistory:
        return self._stage(PriceHistory(produce_id=produce_id, price=price), is_new=True)

    async def list_price_history(self, produce_id: uuid.UUID) -> list[PriceHistory]:
        entries = [
            entry for entry in self._scan(PriceHistory) if entry.produce_id == produce_id
        ]
        return sorted(entries, key=lambda entry: entry.recorded_at, reverse=True)

    # Orders

    async def add_order(self, order: Order) -> Order:
        return self._stage(order, is_new=True)

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        return self._load(Order, order_id)

    async def list_orders(
        self,
        vendor_id: Optional[uuid.UUID] = None,
        farmer_id: Optional[uuid.UUID] = None,
        status: Optional[OrderStatus] = None,
    ) -> list[Order]:
        orders = [
            order
            for order in self._scan(Order)
            if (vendor_id is None or order.vendor_id == vendor_id)
            and (farmer_id is None or order.farmer_id == farmer_id)
            and (status is None or order.status == status)
        ]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    async def save_order(self, order: Order) -> Order:
        return self._stage(order)

    # Negotiations

    async def add_negotiation(self, negotiation: Negotiation) -> Negotiation:
        return self._stage(negotiation, is_new=True)

    async def get_negotiation(self, negotiation_id: uuid.UUID) -> Optional[Negotiation]:
        return self._load(Negotiation, negotiation_id)

    async def list_negotiations(self, order_id: uuid.UUID) -> list[Negotiation]:
        entries = [
            entry for entry in self._scan(Negotiation) if entry.order_id == order_id
        ]
        return sorted(entries, key=lambda entry: entry.sequence)

    async def save_negotiation(self, negotiation: Negotiation) -> Negotiation:
        return self._stage(negotiation)
