"""
Shared test helpers: identities, tokens and fresh reads.
"""

from ledger_backend.app.core.jwt import create_access_token

# Identities used across tests
MERCHANT_ID = 100
CUSTOMER_USER_ID = 200
STRANGER_ID = 300
CASHIER_ID = 400
OTHER_MERCHANT_ID = 500


def auth_headers(user_id: int, roles=("user",), **claims) -> dict:
    token = create_access_token({"sub": f"user-{user_id}", "user_id": user_id, "roles": list(roles), **claims})
    return {"Authorization": f"Bearer {token}"}


def identity(user_id: int, roles=("user",), **claims) -> dict:
    """Decoded-token shape passed to the domain services."""
    return {"sub": f"user-{user_id}", "user_id": user_id, "roles": list(roles), **claims}


async def reload(db, stmt):
    """Run a query bypassing the identity map so rows written by other sessions are current."""
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return list(result.scalars().all())
