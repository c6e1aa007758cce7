"""Tests for the authorization-code and refresh-token grants."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest
import requests

from oauth_prompt.local_auth.errors import TokenExchangeError
from oauth_prompt.local_auth.exchange import exchange_code, refresh_token
from oauth_prompt.local_auth.models import ProviderConfig, Token

NOW = 1_790_000_000.0


def fake_clock() -> float:
    return NOW


CONFIG = ProviderConfig(
    client_id="dummy-client-id",
    client_secret="dummy-secret",
    auth_url="https://provider.test/o/oauth2/auth",
    token_url="https://provider.test/o/oauth2/token",
    scopes=("email",),
    redirect_url="http://127.0.0.1:40000/done",
)


def _response(
    status: int,
    body: str,
    *,
    json_body: Any = None,
    content_type: str = "application/json",
) -> SimpleNamespace:
    def _json() -> Any:
        if json_body is None:
            raise ValueError("not json")
        return json_body

    return SimpleNamespace(
        ok=200 <= status < 400,
        status_code=status,
        text=body,
        headers={"content-type": content_type},
        json=_json,
    )


@pytest.fixture()
def captured(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    """Patch requests.post and record the outgoing request."""
    state: dict[str, Any] = {
        "response": _response(
            200,
            "{}",
            json_body={
                "access_token": "access-xyz",
                "refresh_token": "refresh-xyz",
                "token_type": "Bearer",
                "expires_in": 3600,
            },
        )
    }

    def fake_post(url: str, *, data: dict, headers: dict, timeout: tuple[int, int]) -> Any:
        state["url"] = url
        state["data"] = data
        state["timeout"] = timeout
        response = state["response"]
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(requests, "post", fake_post, raising=True)
    return state


def test_exchange_posts_authorization_code_grant(captured: dict[str, Any]) -> None:
    tok = exchange_code(CONFIG, "dummy-code", clock=fake_clock)

    assert captured["url"] == CONFIG.token_url
    assert captured["data"] == {
        "grant_type": "authorization_code",
        "code": "dummy-code",
        "redirect_uri": "http://127.0.0.1:40000/done",
        "client_id": "dummy-client-id",
        "client_secret": "dummy-secret",
    }
    assert tok == Token(
        access_token="access-xyz",
        token_type="Bearer",
        refresh_token="refresh-xyz",
        expiry=datetime.fromtimestamp(NOW, tz=timezone.utc) + timedelta(seconds=3600),
    )


def test_exchange_parses_form_encoded_response(captured: dict[str, Any]) -> None:
    captured["response"] = _response(
        200,
        "access_token=gho_abc&scope=repo&token_type=bearer",
        content_type="application/x-www-form-urlencoded",
    )
    tok = exchange_code(CONFIG, "c", clock=fake_clock)
    assert tok.access_token == "gho_abc"
    assert tok.type == "Bearer"
    assert tok.expiry is None


def test_exchange_omits_empty_client_secret(captured: dict[str, Any]) -> None:
    cfg = ProviderConfig(
        client_id="public",
        client_secret="",
        auth_url=CONFIG.auth_url,
        token_url=CONFIG.token_url,
    )
    exchange_code(cfg, "c", clock=fake_clock)
    assert "client_secret" not in captured["data"]
    assert "redirect_uri" not in captured["data"]


def test_provider_rejection_is_surfaced_verbatim(captured: dict[str, Any]) -> None:
    body = '{"error": "invalid_grant", "error_description": "Bad Request"}'
    captured["response"] = _response(
        400, body, json_body={"error": "invalid_grant", "error_description": "Bad Request"}
    )
    with pytest.raises(TokenExchangeError) as exc_info:
        exchange_code(CONFIG, "used-code")

    err = exc_info.value
    assert err.status_code == 400
    assert err.error == "invalid_grant"
    assert err.description == "Bad Request"
    assert err.body == body
    assert "invalid_grant" in str(err)
    assert "used-code" not in str(err.to_payload())


def test_error_in_ok_body_is_rejected(captured: dict[str, Any]) -> None:
    captured["response"] = _response(
        200,
        "error=bad_verification_code",
        content_type="application/x-www-form-urlencoded",
    )
    with pytest.raises(TokenExchangeError) as exc_info:
        exchange_code(CONFIG, "c")
    assert exc_info.value.error == "bad_verification_code"


def test_missing_access_token_is_rejected(captured: dict[str, Any]) -> None:
    captured["response"] = _response(200, '{"token_type": "Bearer"}', json_body={"token_type": "Bearer"})
    with pytest.raises(TokenExchangeError, match="missing access_token"):
        exchange_code(CONFIG, "c")


def test_transport_error_is_wrapped(captured: dict[str, Any]) -> None:
    captured["response"] = requests.ConnectionError("connection refused")
    with pytest.raises(TokenExchangeError) as exc_info:
        exchange_code(CONFIG, "c")
    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)


def test_refresh_keeps_previous_refresh_token(captured: dict[str, Any]) -> None:
    captured["response"] = _response(
        200, "{}", json_body={"access_token": "fresh", "expires_in": 60}
    )
    old = Token(access_token="stale", refresh_token="r-1")
    new = refresh_token(CONFIG, old, clock=fake_clock)

    assert captured["data"]["grant_type"] == "refresh_token"
    assert captured["data"]["refresh_token"] == "r-1"
    assert new.access_token == "fresh"
    assert new.refresh_token == "r-1"


def test_refresh_without_refresh_token_fails(captured: dict[str, Any]) -> None:
    with pytest.raises(TokenExchangeError):
        refresh_token(CONFIG, Token(access_token="a"))
    assert "url" not in captured
