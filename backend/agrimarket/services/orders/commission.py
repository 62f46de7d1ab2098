"""Platform commission assessed when an order is accepted."""

from decimal import Decimal
from typing import Optional

from agrimarket.core.config import get_settings
from agrimarket.core.logging import get_logger
from agrimarket.database.models.order import Order, quantize_money

logger = get_logger(__name__)


class CommissionCalculator:
    """
    Computes the platform's cut of an order total.

    The rate defaults to the configured ``commission_rate`` (5%). Amounts are
    rounded half-up to cents.
    """

    def __init__(self, rate: Optional[Decimal] = None):
        self.rate = Decimal(rate) if rate is not None else get_settings().commission_rate

    def compute(self, order: Order) -> Decimal:
        """Commission owed on the order's current total."""
        return quantize_money(Decimal(order.total_amount) * self.rate)

    def apply(self, order: Order) -> Decimal:
        """
        Store the commission on the order unless one is already recorded.

        Re-entering the accepted state must not charge twice, so an existing
        amount is kept as is.

        Returns:
            The commission recorded on the order
        """
        if order.commission_amount is None:
            order.commission_amount = self.compute(order)
            logger.info(
                "Commission assessed",
                order_id=str(order.id),
                total_amount=str(order.total_amount),
                commission_amount=str(order.commission_amount),
                rate=str(self.rate),
            )
        return order.commission_amount
