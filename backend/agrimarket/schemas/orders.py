"""Order schemas for API request/response validation."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from agrimarket.schemas.common import MAX_QUANTITY_KG, CamelModel, Money
from agrimarket.services.orders.enums import OrderStatus


class OrderCreateRequest(CamelModel):
    """Request body for opening an order.

    ``vendor_id`` must name the authenticated vendor.
    """

    produce_id: UUID = Field(..., description="Produce listing to order from")
    vendor_id: UUID = Field(..., description="Vendor placing the order")
    quantity: int = Field(
        ..., gt=0, le=MAX_QUANTITY_KG, description="Quantity in kilograms"
    )


class OrderStatusUpdate(CamelModel):
    """Request body for changing an order's status."""

    status: OrderStatus = Field(..., description="Target order status")


class OrderResponse(CamelModel):
    """Order with its current price and status."""

    id: UUID
    produce_id: UUID
    vendor_id: UUID
    farmer_id: UUID
    quantity: int
    price_per_kg: Money
    total_amount: Money
    status: OrderStatus
    commission_amount: Optional[Money] = None
    is_reviewable: bool
    created_at: datetime
    updated_at: datetime
