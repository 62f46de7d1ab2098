"""Negotiation ledger rules.

A ledger is the ordered list of offers on one order. Offers alternate
strictly between the two parties, two offers make a round, and the ledger
holds at most ``max_negotiation_entries`` offers. These checks are pure
functions of the order and its ledger; the service runs them while holding
the order lock.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
from uuid import UUID

from agrimarket.core.config import get_settings
from agrimarket.database.models import Negotiation, Order
from agrimarket.services.actors import Party
from agrimarket.services.errors import (
    ForbiddenError,
    InvalidStateError,
    RoundLimitExceededError,
    WaitingForCounterpartError,
)
from agrimarket.services.orders.enums import NegotiationStatus, OrderStatus


@dataclass(frozen=True)
class LedgerState:
    """Snapshot of where an order's negotiation stands."""

    order_id: UUID
    order_status: OrderStatus
    entry_count: int
    max_entries: int
    current_round: int
    entries_remaining: int
    next_party: Optional[Party]
    exhausted: bool
    last_entry_status: Optional[NegotiationStatus]

    @property
    def is_open(self) -> bool:
        return self.order_status == OrderStatus.NEGOTIATION and not self.exhausted


class NegotiationStateMachine:
    """Turn, round and response rules for a negotiation ledger."""

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = (
            max_entries if max_entries is not None else get_settings().max_negotiation_entries
        )

    @staticmethod
    def next_round(entry_count: int) -> int:
        """Round number of the next offer: two offers per round, 1-based."""
        return entry_count // 2 + 1

    def check_can_propose(
        self,
        order: Order,
        ledger: Sequence[Negotiation],
        party: Party,
    ) -> int:
        """
        Check that ``party`` may append an offer to the ledger.

        The round cap is checked before the turn, so a full ledger always
        reports the cap regardless of whose turn it would be.

        Returns:
            Round number for the new offer

        Raises:
            InvalidStateError: If the order is not under negotiation
            RoundLimitExceededError: If the ledger is full
            WaitingForCounterpartError: If ``party`` made the last offer
        """
        if order.status != OrderStatus.NEGOTIATION:
            raise InvalidStateError(
                "Order is not open for negotiation",
                order_id=str(order.id),
                status=order.status.value,
            )

        if len(ledger) >= self.max_entries:
            raise RoundLimitExceededError(
                "Maximum negotiation rounds reached",
                order_id=str(order.id),
                entries=len(ledger),
                max_entries=self.max_entries,
            )

        if ledger and ledger[-1].proposed_by == party:
            waiting_on = party.counterpart.value
            raise WaitingForCounterpartError(
                f"Waiting for {waiting_on}'s response",
                order_id=str(order.id),
                waiting_on=waiting_on,
            )

        return self.next_round(len(ledger))

    def check_can_respond(
        self,
        order: Order,
        entry: Negotiation,
        party: Party,
        response: NegotiationStatus,
    ) -> None:
        """
        Check that ``party`` may answer ``entry`` with ``response``.

        Raises:
            ForbiddenError: If ``party`` made the offer
            InvalidStateError: If the response is not an answer, the entry
                was already answered, or the order left negotiation
        """
        if entry.proposed_by == party:
            raise ForbiddenError(
                "You can't respond to your own negotiation",
                negotiation_id=str(entry.id),
            )

        if not response.is_response():
            raise InvalidStateError(
                "Response must be accepted, rejected or countered",
                negotiation_id=str(entry.id),
                status=response.value,
            )

        if not entry.is_pending:
            raise InvalidStateError(
                "Negotiation has already been answered",
                negotiation_id=str(entry.id),
                status=entry.status.value,
            )

        if order.status != OrderStatus.NEGOTIATION:
            raise InvalidStateError(
                "Order is not open for negotiation",
                order_id=str(order.id),
                status=order.status.value,
            )

    def describe(self, order: Order, ledger: Sequence[Negotiation]) -> LedgerState:
        """Summarize the ledger for clients deciding what to do next."""
        count = len(ledger)
        exhausted = count >= self.max_entries
        last = ledger[-1] if ledger else None

        next_party: Optional[Party] = None
        if order.status == OrderStatus.NEGOTIATION and not exhausted and last is not None:
            next_party = last.proposed_by.counterpart

        return LedgerState(
            order_id=order.id,
            order_status=order.status,
            entry_count=count,
            max_entries=self.max_entries,
            current_round=last.round if last is not None else 0,
            entries_remaining=max(self.max_entries - count, 0),
            next_party=next_party,
            exhausted=exhausted,
            last_entry_status=last.status if last is not None else None,
        )
