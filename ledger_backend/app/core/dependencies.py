"""
Authentication dependencies for FastAPI.

This module turns the bearer credential into the caller identity used by every
ledger route.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from ledger_backend.app.core.jwt import decode_access_token
from ledger_backend.app.core.exceptions import AuthenticationError

# HTTP Bearer security scheme (errors are raised by us, not by FastAPI)
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Security checks:
    1. A bearer token is present
    2. The signature and expiry are valid
    3. The payload names an integer user_id

    Returns:
        Decoded token payload; `roles` is normalised to a list

    Raises:
        AuthenticationError: 401 if authentication fails for any reason
    """
    if credentials is None:
        raise AuthenticationError("Missing Authorization header")

    # 1. Decode and validate JWT
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise AuthenticationError("Invalid token payload")

    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    payload["roles"] = roles

    return payload


def get_client_ip(request: Request) -> Optional[str]:
    """Originating client address, preferring the proxy-supplied X-Forwarded-For."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
