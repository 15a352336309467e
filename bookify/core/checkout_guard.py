"""One in-flight checkout per guest.

Server-side counterpart of disabling the "pay" action while an attempt is
running. It does not make settlement safe on its own; the transaction does.
"""

import hashlib
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from bookify.core.exceptions import CheckoutInProgress


class CheckoutGuard:
    """In-memory registry of running checkout attempts.

    In production with several API workers, back this with Redis.
    """

    def __init__(self, ttl: timedelta = timedelta(minutes=5)):
        self._attempts: dict[str, datetime] = {}
        self._ttl = ttl

    def _cleanup_expired(self) -> None:
        """Drop attempts whose holder died without releasing."""
        now = datetime.now(UTC)
        expired = [k for k, started in self._attempts.items() if started + self._ttl < now]
        for k in expired:
            del self._attempts[k]

    def is_running(self, key: str) -> bool:
        self._cleanup_expired()
        return key in self._attempts

    def acquire(self, key: str) -> None:
        """Mark an attempt as running or raise CheckoutInProgress."""
        if self.is_running(key):
            raise CheckoutInProgress()
        self._attempts[key] = datetime.now(UTC)

    def release(self, key: str) -> None:
        self._attempts.pop(key, None)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the slot for ``key`` for the duration of the block."""
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)


def checkout_key(guest_id: str, params: dict[str, Any] | None = None) -> str:
    """Deterministic key for a guest's checkout attempt.

    Args:
        guest_id: Guest account id
        params: Extra scoping (omitted: one attempt per guest overall)

    Returns:
        SHA256 hash of guest + params
    """
    key_data = {"guest_id": guest_id, "params": params or {}}
    key_str = json.dumps(key_data, sort_keys=True, default=str)
    return hashlib.sha256(key_str.encode()).hexdigest()


# Global guard instance
checkout_guard = CheckoutGuard()
