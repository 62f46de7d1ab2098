"""Order state machine implementation with transition validation.

This module implements the OrderStateMachine class for managing order
lifecycle transitions with validation, guards and side effects. Side effects
run inside the caller's repository transaction, so a failing effect leaves
the order exactly as it was.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
from uuid import UUID

from agrimarket.core.config import get_settings
from agrimarket.core.logging import get_logger
from agrimarket.database.models import Order
from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.services.catalog.service import ProduceCatalog
from agrimarket.services.errors import InvalidStateError
from agrimarket.services.orders.commission import CommissionCalculator
from agrimarket.services.orders.enums import (
    OrderStatus,
    get_allowed_order_transitions,
    validate_order_status_transition,
)

logger = get_logger(__name__)

Guard = Callable[[Order], bool]
SideEffect = Callable[[Order, OrderStatus], Awaitable[None]]


class StateTransitionError(InvalidStateError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        message: str,
        current_state: OrderStatus,
        target_state: OrderStatus,
        **context: Any,
    ):
        super().__init__(
            message,
            current_state=current_state.value,
            target_state=target_state.value,
            **context,
        )
        self.current_state = current_state
        self.target_state = target_state


class OrderStateMachine:
    """State machine for order lifecycle transitions.

    Transition legality comes from ORDER_STATUS_TRANSITIONS. Who may request
    a transition is decided by the order service before it gets here.
    """

    def __init__(
        self,
        repository: MarketplaceRepository,
        commission: Optional[CommissionCalculator] = None,
        reserve_stock: Optional[bool] = None,
    ):
        """Initialize state machine.

        Args:
            repository: Repository of the surrounding transaction
            commission: Commission calculator, configured rate by default
            reserve_stock: Decrement produce stock on acceptance; defaults
                to the ``reserve_stock_on_accept`` setting
        """
        self.repository = repository
        self.catalog = ProduceCatalog(repository)
        self.commission = commission or CommissionCalculator()
        self.reserve_stock = (
            get_settings().reserve_stock_on_accept
            if reserve_stock is None
            else reserve_stock
        )
        self._transition_guards: Dict[
            Tuple[OrderStatus, OrderStatus], Guard
        ] = self._initialize_guards()
        self._side_effects: Dict[
            OrderStatus, SideEffect
        ] = self._initialize_side_effects()

    def _initialize_guards(self) -> Dict[Tuple[OrderStatus, OrderStatus], Guard]:
        return {
            (OrderStatus.NEGOTIATION, OrderStatus.ACCEPTED): self._guard_total_consistent,
            (OrderStatus.ACCEPTED, OrderStatus.ACCEPTED): self._guard_total_consistent,
            (OrderStatus.ACCEPTED, OrderStatus.COMPLETED): self._guard_commission_assessed,
        }

    def _initialize_side_effects(self) -> Dict[OrderStatus, SideEffect]:
        return {
            OrderStatus.ACCEPTED: self._effect_accepted,
        }

    def validate_transition(
        self,
        order: Order,
        target_status: OrderStatus,
        actor_id: Optional[UUID] = None,
    ) -> bool:
        """Validate if transition to target status is allowed.

        Args:
            order: Order instance to validate
            target_status: Desired target status
            actor_id: Actor requesting the transition

        Returns:
            True if transition is valid

        Raises:
            StateTransitionError: If transition is invalid
        """
        current_status = order.status

        if not validate_order_status_transition(current_status, target_status):
            allowed = get_allowed_order_transitions(current_status)
            raise StateTransitionError(
                f"Invalid transition from {current_status.value} to "
                f"{target_status.value}",
                current_state=current_status,
                target_state=target_status,
                allowed_transitions=sorted(s.value for s in allowed),
            )

        guard = self._transition_guards.get((current_status, target_status))
        if guard is not None and not guard(order):
            raise StateTransitionError(
                f"Transition guard failed for {current_status.value} -> "
                f"{target_status.value}",
                current_state=current_status,
                target_state=target_status,
                guard_failed=True,
            )

        logger.debug(
            "State transition validated",
            order_id=str(order.id),
            transition=f"{current_status.value}->{target_status.value}",
            actor_id=str(actor_id) if actor_id else None,
        )
        return True

    async def apply_transition(
        self,
        order: Order,
        target_status: OrderStatus,
        actor_id: Optional[UUID] = None,
    ) -> Order:
        """Apply state transition to order with side effects.

        The caller persists the order afterwards.

        Raises:
            StateTransitionError: If transition is invalid
            InsufficientStockError: If stock reservation is enabled and the
                listing can no longer supply the order
        """
        self.validate_transition(order, target_status, actor_id)

        previous_status = order.status
        side_effect = self._side_effects.get(target_status)
        if side_effect is not None:
            await side_effect(order, previous_status)

        order.status = target_status

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous_status.value,
            to_status=target_status.value,
            actor_id=str(actor_id) if actor_id else None,
        )
        return order

    def can_transition(self, order: Order, target_status: OrderStatus) -> bool:
        """Check if transition is possible without raising."""
        try:
            return self.validate_transition(order, target_status)
        except StateTransitionError:
            return False

    # Guards

    def _guard_total_consistent(self, order: Order) -> bool:
        return order.total_amount == order.calculate_total()

    def _guard_commission_assessed(self, order: Order) -> bool:
        return order.commission_amount is not None

    # Side effects

    async def _effect_accepted(self, order: Order, previous_status: OrderStatus) -> None:
        if self.reserve_stock and previous_status == OrderStatus.NEGOTIATION:
            await self.catalog.reserve_stock(order.produce_id, order.quantity)
        self.commission.apply(order)
