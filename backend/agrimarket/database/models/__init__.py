"""
Database models package initialization.

Models are imported here so they are registered with the Base metadata for
Alembic and for ``create_all`` in tests.
"""

from agrimarket.database.base import Base, BaseModel, TimestampMixin, UUIDMixin
from agrimarket.database.models.negotiation import Negotiation
from agrimarket.database.models.order import Order
from agrimarket.database.models.produce import PriceHistory, Produce

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    "Negotiation",
    "Order",
    "PriceHistory",
    "Produce",
]
