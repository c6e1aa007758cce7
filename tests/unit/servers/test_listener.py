"""Unit tests for the loopback listener."""

from __future__ import annotations

import socket
from unittest.mock import MagicMock

import pytest

from oauth_prompt.local_auth.errors import ListenerError
from oauth_prompt.servers import listener as listener_mod
from oauth_prompt.servers.listener import LoopbackListener, bind_loopback


def test_binds_ephemeral_ipv4_loopback_port() -> None:
    with bind_loopback() as lst:
        assert lst.host == "127.0.0.1"
        assert lst.port > 0
        assert lst.netloc == f"127.0.0.1:{lst.port}"
        assert lst.url("/done") == f"http://127.0.0.1:{lst.port}/done"
        # the socket accepts connections
        with socket.create_connection(("127.0.0.1", lst.port), timeout=2):
            pass
    assert lst.closed


def test_close_is_idempotent() -> None:
    lst = bind_loopback()
    lst.close()
    lst.close()
    assert lst.socket.fileno() == -1


def test_falls_back_to_ipv6(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple] = []
    v6_sock = MagicMock()
    v6_sock.getsockname.return_value = ("::1", 5555, 0, 0)

    def fake_create_server(address, **kwargs):
        calls.append((address, kwargs))
        if address[0] == "127.0.0.1":
            raise OSError("ipv4 loopback unavailable")
        return v6_sock

    monkeypatch.setattr(listener_mod.socket, "create_server", fake_create_server)
    lst = bind_loopback()

    assert [c[0] for c in calls] == [("127.0.0.1", 0), ("::1", 0)]
    assert calls[1][1] == {"family": socket.AF_INET6}
    assert lst.netloc == "[::1]:5555"
    assert lst.url("/auth") == "http://[::1]:5555/auth"


def test_both_binds_failing_reports_first_error(monkeypatch: pytest.MonkeyPatch) -> None:
    errors = {"127.0.0.1": OSError("v4 down"), "::1": OSError("v6 down")}

    def fake_create_server(address, **kwargs):
        raise errors[address[0]]

    monkeypatch.setattr(listener_mod.socket, "create_server", fake_create_server)
    with pytest.raises(ListenerError, match="v4 down") as exc_info:
        bind_loopback()
    assert exc_info.value.__cause__ is errors["127.0.0.1"]


def test_repr_mentions_address() -> None:
    sock = MagicMock()
    sock.getsockname.return_value = ("127.0.0.1", 1234)
    assert "127.0.0.1:1234" in repr(LoopbackListener(sock))
