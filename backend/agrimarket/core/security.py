"""
JWT verification for marketplace actors.

User accounts and login live in a separate identity service; this module only
issues and verifies the short-lived access tokens that carry an actor's id and
marketplace role. Token issuing is kept for local development and the test
suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from agrimarket.core.config import get_settings
from agrimarket.core.logging import get_logger
from agrimarket.services.actors import Actor, UserRole

logger = get_logger(__name__)

TOKEN_TYPE_ACCESS = "access"


class SecurityError(Exception):
    """Base exception for security-related errors."""

    def __init__(self, message: str, code: str, **context):
        super().__init__(message)
        self.code = code
        self.context = context


class TokenError(SecurityError):
    """Exception raised for token-related errors."""

    pass


def create_access_token(
    actor_id: UUID,
    role: UserRole,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token for an actor.

    Args:
        actor_id: Identifier of the farmer or vendor
        role: Marketplace role of the actor
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta
        or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )

    claims = {
        "sub": str(actor_id),
        "role": role.value,
        "type": TOKEN_TYPE_ACCESS,
        "iat": now,
        "exp": expire,
    }

    token = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)

    logger.debug(
        "Access token created",
        actor_id=str(actor_id),
        role=role.value,
        expires_at=expire.isoformat(),
    )
    return token


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Dictionary of decoded token claims

    Raises:
        TokenError: If token is empty, invalid or expired
    """
    if not token:
        raise TokenError("Token cannot be empty", code="EMPTY_TOKEN")

    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError as e:
        logger.warning("Token has expired", error=str(e))
        raise TokenError("Token has expired", code="TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning(
            "Invalid token",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise TokenError(
            "Invalid token",
            code="TOKEN_INVALID",
            original_error=str(e),
        ) from e


def actor_from_token(token: str) -> Actor:
    """
    Resolve the acting farmer or vendor from an access token.

    Raises:
        TokenError: If the token is invalid or its claims are malformed
    """
    payload = decode_token(token)

    if payload.get("type") != TOKEN_TYPE_ACCESS:
        raise TokenError("Not an access token", code="TOKEN_WRONG_TYPE")

    try:
        actor_id = UUID(payload["sub"])
        role = UserRole.from_string(payload["role"])
    except (KeyError, TypeError, ValueError) as e:
        raise TokenError(
            "Token claims are malformed",
            code="TOKEN_CLAIMS_INVALID",
            original_error=str(e),
        ) from e

    return Actor(id=actor_id, role=role)


def get_security_headers() -> Dict[str, str]:
    """
    Security headers added to every API response.

    HSTS is only sent in production, where TLS terminates in front of the app.
    """
    headers = {
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
    }
    if get_settings().is_production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers
