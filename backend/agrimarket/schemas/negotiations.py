"""Negotiation schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from agrimarket.schemas.common import CamelModel, Money, PositivePrice
from agrimarket.services.actors import Party
from agrimarket.services.orders.enums import NegotiationStatus, OrderStatus


class NegotiationCreateRequest(CamelModel):
    """Request body for a new offer."""

    order_id: UUID
    offered_price: PositivePrice = Field(..., description="Offered price per kilogram")
    message: Optional[str] = Field(None, max_length=1000)


class NegotiationRespondRequest(CamelModel):
    """Request body for answering an offer."""

    status: NegotiationStatus


class NegotiationResponse(CamelModel):
    """One entry of an order's negotiation ledger."""

    id: UUID
    order_id: UUID
    round: int
    sequence: int
    vendor_id: UUID
    farmer_id: UUID
    proposed_by: Party
    offered_price: Money
    message: Optional[str] = None
    status: NegotiationStatus
    created_at: datetime


class LedgerStateResponse(CamelModel):
    """Where an order's negotiation stands."""

    order_id: UUID
    order_status: OrderStatus
    entry_count: int
    max_entries: int
    current_round: int
    entries_remaining: int
    next_party: Optional[Party] = None
    exhausted: bool
    last_entry_status: Optional[NegotiationStatus] = None
    is_open: bool
