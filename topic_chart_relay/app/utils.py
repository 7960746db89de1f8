"""
Small utilities: ISO timestamps and the per-request provider deadline.
"""

import time
from datetime import datetime, timezone
from typing import Optional

from .errors import ProviderTimeoutError


def utc_timestamp() -> str:
    """
    Current UTC time as ISO-8601 with millisecond precision and a Z suffix
    (the format browsers produce with Date.toISOString()).
    """
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Deadline:
    """
    Time budget shared by the provider calls of one request.
    A budget of None means no limit.
    """

    def __init__(self, seconds: Optional[float], clock=time.monotonic):
        self._clock = clock
        self.seconds = seconds
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def timeout_for(self, step: str) -> Optional[float]:
        """Remaining budget for the next call; raises once the budget is spent."""
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise ProviderTimeoutError(
                f"Provider deadline of {self.seconds}s expired before {step}"
            )
        return remaining
