"""
Security guards for permission-based access control.

Provides dependencies for protecting endpoints.
"""

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header
from ledger_backend.app.core.config import settings
from ledger_backend.app.core.dependencies import get_current_user
from ledger_backend.app.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ForbiddenError,
)
from ledger_backend.app.models.enums import Permission, has_permission

logger = logging.getLogger(__name__)


def require_permission(permission: Permission):
    """
    Dependency factory for permission-based access control.

    Usage:
        @router.post("/payment-intents")
        async def create_intent(current_user: dict = Depends(require_permission(Permission.ACCESS_POS))):
            ...

    Raises:
        ForbiddenError 403 if none of the caller's roles grants the permission
    """
    async def permission_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not has_permission(current_user.get("roles"), permission):
            raise ForbiddenError(f"Access denied. Required permission: {permission.value}")

        return current_user

    return permission_checker


async def require_cron_secret(
    x_cron_secret: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Dependency guarding the external finalization trigger.

    Accepts the shared secret from `X-Cron-Secret` or `Authorization: Bearer`.
    The failure reason is logged but never returned to the caller.
    """
    expected = settings.cron_secret
    if not expected:
        logger.error("CRON_SECRET is not configured; refusing finalization trigger")
        raise ConfigurationError()

    supplied = x_cron_secret
    if not supplied and authorization and authorization.startswith("Bearer "):
        supplied = authorization[len("Bearer "):]

    if not supplied or not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("Rejected finalization trigger with invalid shared secret")
        raise AuthenticationError("Unauthorized")
