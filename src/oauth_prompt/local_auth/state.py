"""Anti-forgery ``state`` nonce for the loopback redirect.

The nonce is 16 bytes read from a cryptographically secure source and
hex-encoded, giving a 32 character value that is round-tripped through the
provider and compared once the browser comes back to ``/done``.

Logging
-------
The nonce is never logged in full; only a short prefix appears at DEBUG level.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from typing import Callable, Final

from oauth_prompt.local_auth.errors import EntropyError

_LOG = logging.getLogger("oauth-prompt.local_auth.state")

STATE_BYTES: Final[int] = 16


def random_state(source: Callable[[int], bytes] = secrets.token_bytes) -> str:
    """Return a fresh hex-encoded nonce.

    Parameters
    ----------
    source:
        Callable returning *n* random bytes; defaults to
        :pyfunc:`secrets.token_bytes`.

    Raises
    ------
    EntropyError
        If the random source fails or returns a short read.  The flow cannot
        continue without entropy, so this is never retried.
    """
    try:
        buf = source(STATE_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise EntropyError(f"reading random source: {exc}") from exc
    if len(buf) != STATE_BYTES:
        raise EntropyError(
            f"reading random source: short read ({len(buf)} of {STATE_BYTES} bytes)"
        )
    state = buf.hex()
    _LOG.debug("Generated state %s****", state[:4])
    return state


def states_match(expected: str, received: str | None) -> bool:
    """Constant-time comparison of the generated and the returned nonce."""
    if received is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
