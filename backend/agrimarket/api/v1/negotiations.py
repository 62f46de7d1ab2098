"""Negotiation API endpoints: make an offer, answer an offer."""

from uuid import UUID

from fastapi import APIRouter, status

from agrimarket.api.deps import CurrentActor, Repository
from agrimarket.schemas.common import ERROR_RESPONSES
from agrimarket.schemas.negotiations import (
    NegotiationCreateRequest,
    NegotiationRespondRequest,
    NegotiationResponse,
)
from agrimarket.services.negotiations.service import NegotiationService

router = APIRouter(
    prefix="/negotiations",
    tags=["negotiations"],
    responses=ERROR_RESPONSES,
)


@router.post(
    "",
    response_model=NegotiationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create negotiation offer",
    description="Append a price offer to an order's negotiation ledger",
)
async def create_negotiation(
    request: NegotiationCreateRequest,
    actor: CurrentActor,
    repository: Repository,
) -> NegotiationResponse:
    negotiation = await NegotiationService(repository).create_negotiation(
        actor,
        order_id=request.order_id,
        offered_price=request.offered_price,
        message=request.message,
    )
    return NegotiationResponse.model_validate(negotiation)


@router.patch(
    "/{negotiation_id}/status",
    response_model=NegotiationResponse,
    summary="Respond to negotiation",
    description="Accept, reject or counter the other party's pending offer",
)
async def respond_to_negotiation(
    negotiation_id: UUID,
    request: NegotiationRespondRequest,
    actor: CurrentActor,
    repository: Repository,
) -> NegotiationResponse:
    negotiation = await NegotiationService(repository).respond_to_negotiation(
        actor,
        negotiation_id,
        request.status,
    )
    return NegotiationResponse.model_validate(negotiation)
