"""
Shared schema building blocks.

Every API payload uses camelCase field names on the wire while the Python
side keeps snake_case; ``populate_by_name`` lets tests and services build
schemas with either spelling. Money amounts are Decimals internally and
JSON numbers on the wire. Quantities and prices are capped so that an order
total always fits its column.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Upper bounds keep quantity x price inside orders.total_amount, Numeric(12, 2).
MAX_QUANTITY_KG = 1_000_000
MAX_PRICE_PER_KG = Decimal("9999.99")

Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

PositivePrice = Annotated[
    Decimal,
    Field(gt=0, le=MAX_PRICE_PER_KG, max_digits=10, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class ErrorResponse(BaseModel):
    """Body of every business error response."""

    error: str
    message: str
    request_id: str


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Business rule violation"},
    401: {"description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Caller is not allowed to act"},
    404: {"model": ErrorResponse, "description": "Referenced record does not exist"},
}
