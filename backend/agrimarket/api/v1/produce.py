"""
Produce catalog API endpoints.

Listing reads are open to any authenticated actor; creating a listing is
reserved to farmers and editing one to the farmer who owns it.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from agrimarket.api.deps import CurrentActor, Repository
from agrimarket.schemas.common import ERROR_RESPONSES
from agrimarket.schemas.produce import (
    PriceHistoryResponse,
    ProduceCreateRequest,
    ProduceResponse,
    ProduceUpdateRequest,
)
from agrimarket.services.catalog.service import ProduceCatalog

router = APIRouter(prefix="/produce", tags=["produce"], responses=ERROR_RESPONSES)


@router.get(
    "",
    response_model=list[ProduceResponse],
    summary="List produce",
    description="Active produce listings, newest first",
)
async def list_produce(
    actor: CurrentActor,
    repository: Repository,
    farmer_id: Optional[UUID] = Query(None, alias="farmerId"),
) -> list[ProduceResponse]:
    listings = await ProduceCatalog(repository).list_produce(
        active_only=True,
        farmer_id=farmer_id,
    )
    return [ProduceResponse.model_validate(produce) for produce in listings]


@router.post(
    "",
    response_model=ProduceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create produce listing",
)
async def create_produce(
    request: ProduceCreateRequest,
    actor: CurrentActor,
    repository: Repository,
) -> ProduceResponse:
    produce = await ProduceCatalog(repository).create_produce(
        actor,
        name=request.name,
        category=request.category,
        description=request.description,
        price_per_kg=request.price_per_kg,
        min_order_quantity=request.min_order_quantity,
        total_quantity=request.total_quantity,
        available_quantity=request.available_quantity,
    )
    return ProduceResponse.model_validate(produce)


@router.get(
    "/{produce_id}",
    response_model=ProduceResponse,
    summary="Get produce listing",
)
async def get_produce(
    produce_id: UUID,
    actor: CurrentActor,
    repository: Repository,
) -> ProduceResponse:
    produce = await ProduceCatalog(repository).get_produce(produce_id)
    return ProduceResponse.model_validate(produce)


@router.patch(
    "/{produce_id}",
    response_model=ProduceResponse,
    summary="Update produce listing",
    description="Edit the caller's own listing; omitted fields are left unchanged",
)
async def update_produce(
    produce_id: UUID,
    request: ProduceUpdateRequest,
    actor: CurrentActor,
    repository: Repository,
) -> ProduceResponse:
    produce = await ProduceCatalog(repository).update_produce(
        actor,
        produce_id,
        **request.model_dump(exclude_unset=True),
    )
    return ProduceResponse.model_validate(produce)


@router.get(
    "/{produce_id}/price-history",
    response_model=list[PriceHistoryResponse],
    summary="Produce price history",
    description="Recorded prices of a listing, newest first",
)
async def get_price_history(
    produce_id: UUID,
    actor: CurrentActor,
    repository: Repository,
) -> list[PriceHistoryResponse]:
    history = await ProduceCatalog(repository).get_price_history(produce_id)
    return [PriceHistoryResponse.model_validate(entry) for entry in history]
