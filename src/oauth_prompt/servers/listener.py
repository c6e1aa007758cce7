"""Loopback listener with an OS-assigned port.

The capture server must be reachable from the operator's browser but never
from another machine, and its port must not be predictable.  We therefore bind
port ``0`` on ``127.0.0.1`` and fall back to ``[::1]`` on hosts without an
IPv4 loopback.
"""

from __future__ import annotations

import logging
import socket
from typing import Final

from oauth_prompt.local_auth.errors import ListenerError

_LOG = logging.getLogger("oauth-prompt.servers.listener")

IPV4_LOOPBACK: Final[str] = "127.0.0.1"
IPV6_LOOPBACK: Final[str] = "::1"


class LoopbackListener:
    """A bound, listening TCP socket on a loopback address."""

    def __init__(self, sock: socket.socket) -> None:
        self.socket = sock
        address = sock.getsockname()
        self.host: str = address[0]
        self.port: int = address[1]
        self._closed = False

    @property
    def netloc(self) -> str:
        """``host:port`` with IPv6 hosts in brackets."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def url(self, path: str = "/") -> str:
        return f"http://{self.netloc}{path}"

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.socket.close()
        _LOG.debug("Closed listener on %s", self.netloc)

    def __enter__(self) -> LoopbackListener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LoopbackListener({self.netloc!r}, closed={self._closed})"


def bind_loopback() -> LoopbackListener:
    """Bind an ephemeral port on the IPv4 loopback, else on the IPv6 one.

    Raises
    ------
    ListenerError
        If neither address can be bound; chained to the IPv4 error.
    """
    try:
        sock = socket.create_server((IPV4_LOOPBACK, 0))
    except OSError as err:
        _LOG.debug("Binding %s failed (%s); trying [%s]", IPV4_LOOPBACK, err, IPV6_LOOPBACK)
        try:
            sock = socket.create_server((IPV6_LOOPBACK, 0), family=socket.AF_INET6)
        except OSError:
            raise ListenerError(f"starting HTTP server: {err}") from err

    listener = LoopbackListener(sock)
    _LOG.debug("Listening on %s", listener.netloc)
    return listener
