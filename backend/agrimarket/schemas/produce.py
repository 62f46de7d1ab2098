"""Produce listing schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from agrimarket.schemas.common import (
    MAX_QUANTITY_KG,
    CamelModel,
    Money,
    PositivePrice,
)


class ProduceCreateRequest(CamelModel):
    """Fields a farmer supplies when listing produce."""

    name: str = Field(..., min_length=1, max_length=120, description="Crop name")
    category: str = Field(..., min_length=1, max_length=60, description="Crop category")
    description: Optional[str] = Field(None, max_length=1000)
    price_per_kg: PositivePrice = Field(..., description="Asking price per kilogram")
    min_order_quantity: int = Field(
        ..., gt=0, le=MAX_QUANTITY_KG, description="Minimum order in kg"
    )
    total_quantity: int = Field(
        ..., gt=0, le=MAX_QUANTITY_KG, description="Total listed quantity in kg"
    )
    available_quantity: Optional[int] = Field(
        None,
        ge=0,
        le=MAX_QUANTITY_KG,
        description="Quantity available now; defaults to the total",
    )

    @model_validator(mode="after")
    def validate_quantities(self) -> "ProduceCreateRequest":
        """Available stock cannot exceed the listed total."""
        if (
            self.available_quantity is not None
            and self.available_quantity > self.total_quantity
        ):
            raise ValueError("availableQuantity cannot exceed totalQuantity")
        return self


class ProduceUpdateRequest(CamelModel):
    """
    Partial listing edit by its farmer.

    Omitted fields keep their value. Only ``description`` may be cleared
    with an explicit null.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    category: Optional[str] = Field(None, min_length=1, max_length=60)
    description: Optional[str] = Field(None, max_length=1000)
    price_per_kg: Optional[PositivePrice] = None
    min_order_quantity: Optional[int] = Field(None, gt=0, le=MAX_QUANTITY_KG)
    available_quantity: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY_KG)
    total_quantity: Optional[int] = Field(None, gt=0, le=MAX_QUANTITY_KG)
    is_active: Optional[bool] = Field(
        None, description="Inactive listings accept no new orders"
    )

    @model_validator(mode="after")
    def validate_fields(self) -> "ProduceUpdateRequest":
        for name in self.model_fields_set - {"description"}:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        if (
            self.available_quantity is not None
            and self.total_quantity is not None
            and self.available_quantity > self.total_quantity
        ):
            raise ValueError("availableQuantity cannot exceed totalQuantity")
        return self


class ProduceResponse(CamelModel):
    """Produce listing."""

    id: UUID
    farmer_id: UUID
    name: str
    category: str
    description: Optional[str] = None
    price_per_kg: Money
    min_order_quantity: int
    available_quantity: int
    total_quantity: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PriceHistoryResponse(CamelModel):
    """One recorded price of a listing."""

    id: UUID
    produce_id: UUID
    price: Money
    recorded_at: datetime
