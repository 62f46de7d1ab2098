"""
Order model for the vendor/farmer negotiation lifecycle.

An order ties one vendor, one farmer and one produce listing to a quantity
and a per-kilogram price. The price starts as a snapshot of the listing and
can only change through an accepted negotiation; the total is always
quantity times price.
"""

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from agrimarket.database.base import BaseModel
from agrimarket.services.orders.enums import OrderStatus

CENTS = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Round a monetary amount half-up to currency minor units."""
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


class Order(BaseModel):
    """
    Order placed by a vendor against a farmer's produce listing.

    Attributes:
        produce_id: Listing the order was opened against
        vendor_id: Vendor who opened the order
        farmer_id: Farmer owning the listing, copied at creation
        quantity: Ordered quantity in kilograms
        price_per_kg: Current agreed or proposed price per kilogram
        total_amount: quantity * price_per_kg
        status: Current order status
        commission_amount: Platform commission, set once on acceptance
    """

    __tablename__ = "orders"

    produce_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("produce.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Produce listing the order references",
    )

    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Vendor who placed the order",
    )

    farmer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Farmer who owns the produce",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Ordered quantity in kilograms",
    )

    price_per_kg: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Price per kilogram",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Quantity times price per kilogram",
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            values_callable=lambda enum: [member.value for member in enum],
            create_constraint=True,
        ),
        nullable=False,
        default=OrderStatus.NEGOTIATION,
        index=True,
        comment="Current order status",
    )

    commission_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        comment="Platform commission assessed on acceptance",
    )

    __table_args__ = (
        Index("ix_orders_vendor_status", "vendor_id", "status"),
        Index("ix_orders_farmer_status", "farmer_id", "status"),
        CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
        CheckConstraint("price_per_kg > 0", name="ck_orders_price_positive"),
        CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
        CheckConstraint(
            "commission_amount IS NULL OR commission_amount >= 0",
            name="ck_orders_commission_non_negative",
        ),
    )

    def set_price(self, price_per_kg: Decimal) -> None:
        """Set the per-kilogram price and recompute the total."""
        self.price_per_kg = quantize_money(price_per_kg)
        self.total_amount = self.calculate_total()

    def calculate_total(self) -> Decimal:
        """Quantity times price, rounded to cents."""
        return quantize_money(Decimal(self.quantity) * Decimal(self.price_per_kg))

    @property
    def is_reviewable(self) -> bool:
        """Reviews may be written once the order has been fulfilled."""
        return self.status == OrderStatus.COMPLETED
