"""
FastAPI dependencies for authentication and persistence.

This module resolves the calling farmer or vendor from the bearer token and
hands each request its own repository: an SQL repository over a fresh
session, or an in-memory repository over the process-wide store, depending
on the configured storage backend.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agrimarket.core.config import get_settings
from agrimarket.core.logging import get_logger, set_actor
from agrimarket.core.security import TokenError, actor_from_token
from agrimarket.database.connection import get_session
from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.repositories.memory import InMemoryRepository, get_memory_store
from agrimarket.repositories.sql import SqlRepository
from agrimarket.services.actors import Actor

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


async def get_repository() -> AsyncGenerator[MarketplaceRepository, None]:
    """
    Provide a repository scoped to the current request.

    Yields:
        Repository for the configured storage backend
    """
    if get_settings().storage_backend == "memory":
        yield InMemoryRepository(get_memory_store())
        return

    async with get_session() as session:
        yield SqlRepository(session)


async def get_current_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Actor:
    """
    Validate the bearer token and resolve the calling actor.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        logger.warning("Authentication failed: No credentials provided")
        raise credentials_exception

    try:
        actor = actor_from_token(credentials.credentials)
    except TokenError as e:
        logger.warning(
            "Authentication failed",
            code=e.code,
            error=str(e),
        )
        raise credentials_exception from e

    set_actor(str(actor.id), actor.role.value)
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
Repository = Annotated[MarketplaceRepository, Depends(get_repository)]
