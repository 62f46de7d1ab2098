"""Tests for the negotiation ledger rules."""

from decimal import Decimal
from uuid import uuid4

import pytest

from agrimarket.database.models import Negotiation, Order
from agrimarket.services.actors import Party
from agrimarket.services.errors import (
    ForbiddenError,
    InvalidStateError,
    RoundLimitExceededError,
    WaitingForCounterpartError,
)
from agrimarket.services.negotiations.state_machine import NegotiationStateMachine
from agrimarket.services.orders.enums import NegotiationStatus, OrderStatus


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def machine() -> NegotiationStateMachine:
    return NegotiationStateMachine(max_entries=6)


@pytest.fixture
def order() -> Order:
    order = Order(
        id=uuid4(),
        produce_id=uuid4(),
        vendor_id=uuid4(),
        farmer_id=uuid4(),
        quantity=300,
        status=OrderStatus.NEGOTIATION,
    )
    order.set_price(Decimal("25.00"))
    return order


def build_ledger(order: Order, first: Party, count: int) -> list[Negotiation]:
    """Alternating ledger of ``count`` entries opened by ``first``."""
    ledger = []
    party = first
    for index in range(count):
        ledger.append(
            Negotiation(
                id=uuid4(),
                order_id=order.id,
                round=index // 2 + 1,
                sequence=index + 1,
                vendor_id=order.vendor_id,
                farmer_id=order.farmer_id,
                proposed_by=party,
                offered_price=Decimal("24.00"),
                status=NegotiationStatus.COUNTERED,
            )
        )
        party = party.counterpart
    if ledger:
        ledger[-1].status = NegotiationStatus.PENDING
    return ledger


# ============================================================================
# Propose Tests
# ============================================================================


class TestCheckCanPropose:
    """Turn and round rules for new offers."""

    @pytest.mark.parametrize("party", [Party.VENDOR, Party.FARMER])
    def test_either_party_may_open(
        self, machine: NegotiationStateMachine, order: Order, party: Party
    ) -> None:
        assert machine.check_can_propose(order, [], party) == 1

    @pytest.mark.parametrize(
        "count,expected_round",
        [(1, 1), (2, 2), (3, 2), (4, 3), (5, 3)],
    )
    def test_round_numbers(
        self,
        machine: NegotiationStateMachine,
        order: Order,
        count: int,
        expected_round: int,
    ) -> None:
        ledger = build_ledger(order, Party.VENDOR, count)
        next_party = ledger[-1].proposed_by.counterpart

        assert machine.check_can_propose(order, ledger, next_party) == expected_round

    def test_same_party_must_wait(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        ledger = build_ledger(order, Party.VENDOR, 1)

        with pytest.raises(WaitingForCounterpartError) as exc_info:
            machine.check_can_propose(order, ledger, Party.VENDOR)

        assert exc_info.value.message == "Waiting for farmer's response"

    def test_farmer_waits_for_vendor(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        ledger = build_ledger(order, Party.FARMER, 1)

        with pytest.raises(WaitingForCounterpartError) as exc_info:
            machine.check_can_propose(order, ledger, Party.FARMER)

        assert exc_info.value.message == "Waiting for vendor's response"

    @pytest.mark.parametrize("party", [Party.VENDOR, Party.FARMER])
    def test_round_limit_checked_before_turn(
        self, machine: NegotiationStateMachine, order: Order, party: Party
    ) -> None:
        ledger = build_ledger(order, Party.VENDOR, 6)

        with pytest.raises(RoundLimitExceededError):
            machine.check_can_propose(order, ledger, party)

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.ACCEPTED,
            OrderStatus.REJECTED,
            OrderStatus.COMPLETED,
            OrderStatus.CANCELLED,
        ],
    )
    def test_order_must_be_negotiating(
        self, machine: NegotiationStateMachine, order: Order, status: OrderStatus
    ) -> None:
        order.status = status

        with pytest.raises(InvalidStateError):
            machine.check_can_propose(order, [], Party.VENDOR)

    def test_custom_cap(self, order: Order) -> None:
        machine = NegotiationStateMachine(max_entries=2)
        ledger = build_ledger(order, Party.VENDOR, 2)

        with pytest.raises(RoundLimitExceededError):
            machine.check_can_propose(order, ledger, Party.VENDOR)


# ============================================================================
# Respond Tests
# ============================================================================


class TestCheckCanRespond:
    """Rules for answering an offer."""

    def test_counterpart_may_respond(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        entry = build_ledger(order, Party.VENDOR, 1)[0]

        machine.check_can_respond(order, entry, Party.FARMER, NegotiationStatus.ACCEPTED)

    def test_owner_cannot_respond(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        entry = build_ledger(order, Party.VENDOR, 1)[0]

        with pytest.raises(ForbiddenError) as exc_info:
            machine.check_can_respond(
                order, entry, Party.VENDOR, NegotiationStatus.ACCEPTED
            )

        assert exc_info.value.message == "You can't respond to your own negotiation"

    def test_pending_is_not_a_response(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        entry = build_ledger(order, Party.VENDOR, 1)[0]

        with pytest.raises(InvalidStateError):
            machine.check_can_respond(order, entry, Party.FARMER, NegotiationStatus.PENDING)

    def test_answered_entry_is_closed(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        entry = build_ledger(order, Party.VENDOR, 1)[0]
        entry.status = NegotiationStatus.REJECTED

        with pytest.raises(InvalidStateError):
            machine.check_can_respond(
                order, entry, Party.FARMER, NegotiationStatus.ACCEPTED
            )

    def test_order_left_negotiation(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        entry = build_ledger(order, Party.VENDOR, 1)[0]
        order.status = OrderStatus.CANCELLED

        with pytest.raises(InvalidStateError):
            machine.check_can_respond(
                order, entry, Party.FARMER, NegotiationStatus.COUNTERED
            )


# ============================================================================
# Ledger State Tests
# ============================================================================


class TestDescribe:
    """Ledger summaries."""

    def test_empty_ledger(self, machine: NegotiationStateMachine, order: Order) -> None:
        state = machine.describe(order, [])

        assert state.entry_count == 0
        assert state.current_round == 0
        assert state.entries_remaining == 6
        assert state.next_party is None
        assert state.exhausted is False
        assert state.is_open is True

    def test_mid_negotiation(self, machine: NegotiationStateMachine, order: Order) -> None:
        state = machine.describe(order, build_ledger(order, Party.VENDOR, 3))

        assert state.current_round == 2
        assert state.entries_remaining == 3
        assert state.next_party == Party.FARMER
        assert state.last_entry_status == NegotiationStatus.PENDING

    def test_exhausted_ledger(self, machine: NegotiationStateMachine, order: Order) -> None:
        state = machine.describe(order, build_ledger(order, Party.VENDOR, 6))

        assert state.exhausted is True
        assert state.current_round == 3
        assert state.entries_remaining == 0
        assert state.next_party is None
        assert state.is_open is False

    def test_closed_order_has_no_next_party(
        self, machine: NegotiationStateMachine, order: Order
    ) -> None:
        order.status = OrderStatus.ACCEPTED

        state = machine.describe(order, build_ledger(order, Party.VENDOR, 2))

        assert state.next_party is None
        assert state.is_open is False
