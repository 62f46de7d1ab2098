"""
Marketplace service exceptions.

Every business rule violation raised by the catalog, order and negotiation
services derives from MarketplaceError. Each class carries a stable error
code and the HTTP status the API answers with, so the API layer can turn any
of them into a response in one place.
"""

from typing import Any

from fastapi import status


class MarketplaceError(Exception):
    """Base exception for marketplace service errors."""

    code = "marketplace_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class NotFoundError(MarketplaceError):
    """Referenced produce, order or negotiation does not exist."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(MarketplaceError):
    """Actor is not allowed to perform the operation."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(MarketplaceError):
    """Operation is not legal in the current order or negotiation state."""

    code = "invalid_state"


class UnavailableError(MarketplaceError):
    """Produce listing is not active."""

    code = "unavailable"


class BelowMinimumError(MarketplaceError):
    """Requested quantity is below the listing's minimum order quantity."""

    code = "below_minimum"


class InsufficientStockError(MarketplaceError):
    """Requested quantity exceeds what the listing has available."""

    code = "insufficient_stock"


class RoundLimitExceededError(MarketplaceError):
    """Negotiation ledger already holds the maximum number of offers."""

    code = "round_limit_exceeded"


class WaitingForCounterpartError(MarketplaceError):
    """Actor already made the last offer and must wait for a reply."""

    code = "waiting_for_counterpart"


class RepositoryError(MarketplaceError):
    """Persistence failure; the transaction has been rolled back."""

    code = "repository_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
