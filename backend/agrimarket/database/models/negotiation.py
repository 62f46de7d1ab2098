"""
Negotiation entry model.

Each entry is one price proposal on an order. Entries form an append-only
ledger per order; the only field that ever changes after insert is the
status, set once by the counterpart's response.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from agrimarket.database.base import BaseModel
from agrimarket.services.actors import Party
from agrimarket.services.orders.enums import NegotiationStatus


def _enum_values(enum) -> list[str]:
    return [member.value for member in enum]


class Negotiation(BaseModel):
    """
    One offer in an order's negotiation ledger.

    Attributes:
        order_id: Order the offer belongs to
        round: 1-based round number (two offers per round)
        sequence: 1-based position in the order's ledger
        vendor_id: Vendor of the order, copied from the order
        farmer_id: Farmer of the order, copied from the order
        proposed_by: Party who made the offer
        offered_price: Proposed price per kilogram
        message: Free-text note to the counterpart
        status: Pending until the counterpart responds
    """

    __tablename__ = "negotiations"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        comment="Order under negotiation",
    )

    round: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Negotiation round, starting at 1",
    )

    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Position in the order's ledger, starting at 1",
    )

    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    farmer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    proposed_by: Mapped[Party] = mapped_column(
        SQLEnum(
            Party,
            name="negotiation_party",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        comment="Party who made the offer",
    )

    offered_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Offered price per kilogram",
    )

    message: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
    )

    status: Mapped[NegotiationStatus] = mapped_column(
        SQLEnum(
            NegotiationStatus,
            name="negotiation_status",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=NegotiationStatus.PENDING,
    )

    __table_args__ = (
        Index("ix_negotiations_order_round", "order_id", "round"),
        UniqueConstraint("order_id", "sequence", name="uq_negotiations_order_sequence"),
        CheckConstraint("offered_price > 0", name="ck_negotiations_price_positive"),
        CheckConstraint("round >= 1", name="ck_negotiations_round_positive"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == NegotiationStatus.PENDING
