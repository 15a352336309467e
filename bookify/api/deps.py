"""API dependencies for authentication and common operations.

Accounts live in the host application; requests carry its JWT. The ``sub``
claim is the account id, ``role`` is ``guest``, ``host`` or ``admin``.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bookify.core.exceptions import AuthorizationError
from bookify.core.security import verify_token
from bookify.database import get_db  # noqa: F401  re-exported for routers
from bookify.services.checkout_service import CheckoutService, checkout_service

# Security scheme
security = HTTPBearer()


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity taken from the token."""

    id: str
    role: str = "guest"
    email: str | None = None
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> CurrentUser:
    """Get the current authenticated user from JWT token."""
    claims = verify_token(credentials.credentials)
    return CurrentUser(
        id=str(claims["sub"]),
        role=claims.get("role") or "guest",
        email=claims.get("email"),
        name=claims.get("name"),
    )


async def get_current_host(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Get current user and verify they are a host."""
    if current_user.role not in ("host", "admin"):
        raise AuthorizationError("Host access required")
    return current_user


async def get_current_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Get current user and verify they are an admin."""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


def get_checkout_service() -> CheckoutService:
    """Checkout service dependency (overridden in tests)."""
    return checkout_service
