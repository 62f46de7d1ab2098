"""
Order API endpoints.

Vendors open orders against produce listings; both parties read them and
move them through their lifecycle. Negotiation ledgers nested under an order
are served from here as well.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from agrimarket.api.deps import CurrentActor, Repository
from agrimarket.schemas.common import ERROR_RESPONSES
from agrimarket.schemas.negotiations import LedgerStateResponse, NegotiationResponse
from agrimarket.schemas.orders import OrderCreateRequest, OrderResponse, OrderStatusUpdate
from agrimarket.services.errors import ForbiddenError
from agrimarket.services.negotiations.service import NegotiationService
from agrimarket.services.orders.enums import OrderStatus
from agrimarket.services.orders.service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"], responses=ERROR_RESPONSES)


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description="Open an order against a produce listing at the listing's current price",
)
async def create_order(
    request: OrderCreateRequest,
    actor: CurrentActor,
    repository: Repository,
) -> OrderResponse:
    """
    Create a new order in negotiation status.

    Raises:
        ForbiddenError: If ``vendorId`` is not the authenticated vendor
    """
    if request.vendor_id != actor.id:
        raise ForbiddenError(
            "vendorId must match the authenticated vendor",
            vendor_id=str(request.vendor_id),
            actor_id=str(actor.id),
        )

    order = await OrderService(repository).create_order(
        actor,
        produce_id=request.produce_id,
        quantity=request.quantity,
    )
    return OrderResponse.model_validate(order)


@router.get(
    "",
    response_model=list[OrderResponse],
    summary="List orders",
    description="Orders the caller is a party to, newest first",
)
async def list_orders(
    actor: CurrentActor,
    repository: Repository,
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
) -> list[OrderResponse]:
    orders = await OrderService(repository).list_orders(actor, status=order_status)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
)
async def get_order(
    order_id: UUID,
    actor: CurrentActor,
    repository: Repository,
) -> OrderResponse:
    order = await OrderService(repository).get_order(actor, order_id)
    return OrderResponse.model_validate(order)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
    description="Move an order through its lifecycle; only the farmer can accept",
)
async def update_order_status(
    order_id: UUID,
    request: OrderStatusUpdate,
    actor: CurrentActor,
    repository: Repository,
) -> OrderResponse:
    order = await OrderService(repository).set_status(actor, order_id, request.status)
    return OrderResponse.model_validate(order)


@router.get(
    "/{order_id}/negotiations",
    response_model=list[NegotiationResponse],
    summary="List negotiations",
    description="Negotiation ledger of the order, ordered by round",
)
async def list_order_negotiations(
    order_id: UUID,
    actor: CurrentActor,
    repository: Repository,
) -> list[NegotiationResponse]:
    entries = await NegotiationService(repository).list_negotiations(actor, order_id)
    return [NegotiationResponse.model_validate(entry) for entry in entries]


@router.get(
    "/{order_id}/negotiations/state",
    response_model=LedgerStateResponse,
    summary="Negotiation state",
    description="Rounds used, whose turn it is and whether the ledger is full",
)
async def get_negotiation_state(
    order_id: UUID,
    actor: CurrentActor,
    repository: Repository,
) -> LedgerStateResponse:
    state = await NegotiationService(repository).get_ledger_state(actor, order_id)
    return LedgerStateResponse.model_validate(state)
