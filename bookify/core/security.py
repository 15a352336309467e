"""Bearer tokens.

Accounts live in the host application, which signs HS256 access tokens with
the shared secret. ``sub`` is the account id and ``role`` one of guest, host
or admin.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from bookify.config import settings
from bookify.core.exceptions import AuthenticationError

ROLES = ("guest", "host", "admin")


def create_access_token(
    subject: str,
    role: str = "guest",
    email: str | None = None,
    name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign an access token the way the host application does.

    Used by scripts and service-to-service calls.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    claims: dict[str, Any] = {
        "sub": subject,
        "role": role,
        "type": "access",
        "exp": datetime.now(UTC) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
    }
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """Decode an access token and check its claims.

    Raises:
        AuthenticationError: Bad signature, expired, wrong type or no subject
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {e}")

    if claims.get("type") != "access":
        raise AuthenticationError("Invalid token type")
    if not claims.get("sub"):
        raise AuthenticationError("Invalid token payload")
    if claims.get("role", "guest") not in ROLES:
        raise AuthenticationError("Unknown role")
    return claims
