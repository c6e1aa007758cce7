"""Clock abstraction for testable expiry handling.

Token expiry is computed from the provider's ``expires_in`` relative to an
injected ``Clock`` rather than calling ``time.time()`` directly, so that tests
can freeze time.

Example
-------
>>> from oauth_prompt.local_auth.clock import default_clock
>>> isinstance(default_clock(), float)
True
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Default implementation that delegates to ``time.time()``."""
    return time.time()


def utcnow(clock: Clock = default_clock) -> datetime:
    """Return the clock's current instant as an aware UTC datetime."""
    return datetime.fromtimestamp(clock(), tz=timezone.utc)
