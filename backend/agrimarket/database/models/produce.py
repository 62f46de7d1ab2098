"""
Produce listing and price history models.

A produce listing is a farmer's sellable crop with a per-kilogram price and
stock bounds. Orders snapshot the listing price when they are opened; an
accepted negotiation writes the agreed price back to the listing, and every
price change is appended to the listing's price history.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from agrimarket.database.base import Base, BaseModel, utcnow


class Produce(BaseModel):
    """
    Produce listing owned by a farmer.

    Attributes:
        farmer_id: Farmer who owns the listing
        name: Crop name
        category: Crop category (vegetables, fruits, grains...)
        description: Free-text description
        price_per_kg: Current asking price per kilogram
        min_order_quantity: Smallest order accepted, in kilograms
        available_quantity: Quantity currently available, in kilograms
        total_quantity: Total quantity listed, in kilograms
        is_active: Whether vendors may open orders against the listing
    """

    __tablename__ = "produce"

    farmer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Farmer who owns the listing",
    )

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="Crop name",
    )

    category: Mapped[str] = mapped_column(
        String(60),
        nullable=False,
        comment="Crop category",
    )

    description: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
        comment="Listing description",
    )

    price_per_kg: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Current price per kilogram",
    )

    min_order_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Minimum order quantity in kilograms",
    )

    available_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Available quantity in kilograms",
    )

    total_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Total listed quantity in kilograms",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the listing accepts new orders",
    )

    __table_args__ = (
        Index("ix_produce_farmer_active", "farmer_id", "is_active"),
        CheckConstraint("price_per_kg > 0", name="ck_produce_price_positive"),
        CheckConstraint(
            "min_order_quantity > 0",
            name="ck_produce_min_order_positive",
        ),
        CheckConstraint(
            "available_quantity >= 0",
            name="ck_produce_available_non_negative",
        ),
        CheckConstraint(
            "available_quantity <= total_quantity",
            name="ck_produce_available_within_total",
        ),
    )

    def can_supply(self, quantity: int) -> bool:
        """Check if ``quantity`` kilograms are currently available."""
        return quantity <= self.available_quantity


class PriceHistory(Base):
    """One recorded price of a produce listing."""

    __tablename__ = "price_history"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    produce_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("produce.id", ondelete="CASCADE"),
        nullable=False,
        comment="Listing the price belongs to",
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
    )

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_price_history_produce_recorded", "produce_id", "recorded_at"),
    )
