"""
Negotiation service layer.

Appends offers to an order's ledger and records the counterpart's answer.
Each operation takes the order lock before reading the ledger, so two
concurrent offers on one order cannot both pass the turn check, and an
acceptance reprices the listing and the order and moves the order to
accepted in the same transaction as the entry update.
"""

import uuid
from decimal import Decimal
from typing import Optional

from agrimarket.core.logging import get_logger
from agrimarket.database.models import Negotiation, Order
from agrimarket.database.models.order import quantize_money
from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.services.actors import Actor, Party, resolve_party
from agrimarket.services.errors import ForbiddenError, NotFoundError
from agrimarket.services.negotiations.state_machine import (
    LedgerState,
    NegotiationStateMachine,
)
from agrimarket.services.orders.enums import NegotiationStatus
from agrimarket.services.orders.service import OrderService

logger = get_logger(__name__)


class NegotiationService:
    """Service for negotiation ledgers."""

    def __init__(
        self,
        repository: MarketplaceRepository,
        order_service: Optional[OrderService] = None,
        max_entries: Optional[int] = None,
    ):
        """
        Initialize negotiation service.

        Args:
            repository: Marketplace repository for the current request
            order_service: Order service sharing the same repository
            max_entries: Ledger size cap override
        """
        self.repository = repository
        self.orders = order_service or OrderService(repository)
        self.state_machine = NegotiationStateMachine(max_entries)

    async def create_negotiation(
        self,
        actor: Actor,
        order_id: uuid.UUID,
        offered_price: Decimal,
        message: Optional[str] = None,
    ) -> Negotiation:
        """
        Append an offer to the order's ledger.

        Args:
            actor: Vendor or farmer of the order
            order_id: Order under negotiation
            offered_price: Proposed price per kilogram
            message: Optional note to the counterpart

        Returns:
            Created pending entry

        Raises:
            NotFoundError: If the order does not exist
            ForbiddenError: If the actor is not a party to the order
            InvalidStateError: If the order is not under negotiation
            RoundLimitExceededError: If the ledger is full
            WaitingForCounterpartError: If the actor made the last offer
        """
        async with self.repository.transaction():
            order = await self.repository.lock_order(order_id)
            if order is None:
                raise NotFoundError("Order not found", order_id=str(order_id))

            party = self._require_party(actor, order)
            ledger = await self.repository.list_negotiations(order_id)
            round_number = self.state_machine.check_can_propose(order, ledger, party)

            negotiation = await self.repository.add_negotiation(
                Negotiation(
                    order_id=order.id,
                    round=round_number,
                    sequence=len(ledger) + 1,
                    vendor_id=order.vendor_id,
                    farmer_id=order.farmer_id,
                    proposed_by=party,
                    offered_price=quantize_money(offered_price),
                    message=message,
                    status=NegotiationStatus.PENDING,
                )
            )

        logger.info(
            "Negotiation offer created",
            negotiation_id=str(negotiation.id),
            order_id=str(order_id),
            round=round_number,
            proposed_by=party.value,
            offered_price=str(negotiation.offered_price),
        )
        return negotiation

    async def respond_to_negotiation(
        self,
        actor: Actor,
        negotiation_id: uuid.UUID,
        status: NegotiationStatus,
    ) -> Negotiation:
        """
        Answer a pending offer made by the other party.

        Accepting settles the order at the offered price; rejecting or
        countering only records the answer on the entry.

        Raises:
            NotFoundError: If the entry or its order does not exist
            ForbiddenError: If the actor is not a party, or made the offer
            InvalidStateError: If the entry or order can no longer be answered
        """
        async with self.repository.transaction():
            entry = await self.repository.get_negotiation(negotiation_id)
            if entry is None:
                raise NotFoundError(
                    "Negotiation not found",
                    negotiation_id=str(negotiation_id),
                )

            order = await self.repository.lock_order(entry.order_id)
            if order is None:
                raise NotFoundError("Order not found", order_id=str(entry.order_id))

            # Re-read under the lock; a concurrent response may have landed.
            entry = await self.repository.get_negotiation(negotiation_id)
            party = self._require_party(actor, order)
            self.state_machine.check_can_respond(order, entry, party, status)

            if status == NegotiationStatus.ACCEPTED:
                await self.orders.accept_at_price(order, entry.offered_price, actor.id)

            entry.status = status
            entry = await self.repository.save_negotiation(entry)

        logger.info(
            "Negotiation answered",
            negotiation_id=str(negotiation_id),
            order_id=str(entry.order_id),
            status=status.value,
            responded_by=party.value,
        )
        return entry

    async def list_negotiations(
        self,
        actor: Actor,
        order_id: uuid.UUID,
    ) -> list[Negotiation]:
        """
        Ledger of an order, ordered by round.

        Raises:
            NotFoundError: If the order does not exist
            ForbiddenError: If the actor is not a party to the order
        """
        await self._visible_order(actor, order_id)
        return await self.repository.list_negotiations(order_id)

    async def get_ledger_state(self, actor: Actor, order_id: uuid.UUID) -> LedgerState:
        """
        Where the order's negotiation stands: rounds used, whose turn it is
        and whether the ledger is full.
        """
        order = await self._visible_order(actor, order_id)
        ledger = await self.repository.list_negotiations(order_id)
        return self.state_machine.describe(order, ledger)

    async def _visible_order(self, actor: Actor, order_id: uuid.UUID) -> Order:
        order = await self.repository.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found", order_id=str(order_id))
        self._require_party(actor, order)
        return order

    @staticmethod
    def _require_party(actor: Actor, order: Order) -> Party:
        party = resolve_party(actor, order)
        if party is None:
            logger.warning(
                "Negotiation access denied",
                order_id=str(order.id),
                actor_id=str(actor.id),
                role=actor.role.value,
            )
            raise ForbiddenError(
                "You are not a party to this order",
                order_id=str(order.id),
                actor_id=str(actor.id),
            )
        return party
