"""Inbound credential and caller-identity extraction."""

from typing import Optional

from fastapi import Security
from fastapi.security import APIKeyHeader

from access_service.core.exceptions import AuthorizationError, ValidationError

# Header names
AUTHORIZATION_HEADER = APIKeyHeader(name="Authorization", auto_error=False)
USER_ID_HEADER = APIKeyHeader(name="X-User-Id", auto_error=False)

BEARER_SCHEME = "bearer"


def parse_bearer_header(header_value: Optional[str]) -> str:
    """
    Extract the raw secret from an ``Authorization: Bearer <secret>`` header.

    Args:
        header_value: Raw header value, or None when the header is absent

    Returns:
        The secret with surrounding whitespace removed

    Raises:
        ValidationError: If the header is missing, uses another scheme, or has no token
    """
    if not header_value or not header_value.strip():
        raise ValidationError("Missing Authorization header.", field="authorization")
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        raise ValidationError(
            "Authorization header must use the Bearer scheme.", field="authorization"
        )
    token = token.strip()
    if not token or " " in token:
        raise ValidationError("Malformed Bearer token.", field="authorization")
    return token


async def bearer_secret(authorization: Optional[str] = Security(AUTHORIZATION_HEADER)) -> str:
    """FastAPI dependency: the raw secret carried by the Bearer header."""
    return parse_bearer_header(authorization)


async def require_caller_identity(user_id: Optional[str] = Security(USER_ID_HEADER)) -> str:
    """
    FastAPI dependency: the caller identity asserted by the upstream identity provider.

    Raises:
        AuthorizationError: If no identity was supplied
    """
    if not user_id or not user_id.strip():
        raise AuthorizationError("Unauthorized.")
    return user_id.strip()
