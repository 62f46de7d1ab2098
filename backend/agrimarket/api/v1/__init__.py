"""
API v1 package initialization.

Routers for produce listings, orders and negotiations.
"""

from agrimarket.api.v1.negotiations import router as negotiations_router
from agrimarket.api.v1.orders import router as orders_router
from agrimarket.api.v1.produce import router as produce_router

__all__ = ["negotiations_router", "orders_router", "produce_router"]
