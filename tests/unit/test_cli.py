"""Unit tests for the oauth-prompt command line."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

import oauth_prompt.__main__ as cli
from oauth_prompt.local_auth.errors import StateMismatchError, TokenExchangeError
from oauth_prompt.local_auth.models import ProviderConfig, Token


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Give each test a private environment; --env-file writes into it."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("OAUTH_PROMPT_")}
    env["HOME"] = str(tmp_path)
    monkeypatch.setattr(os, "environ", env)


@pytest.fixture()
def calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    recorded: list[dict[str, Any]] = []

    def fake_acquire(file: str, config: ProviderConfig, **kwargs: Any) -> Token:
        recorded.append({"file": file, "config": config, **kwargs})
        return Token(
            "ya29.secret-access-token",
            refresh_token="r",
            expiry=datetime(2026, 10, 17, 13, 0, tzinfo=timezone.utc),
        )

    monkeypatch.setattr(cli, "acquire_token", fake_acquire)
    return recorded


def test_prints_masked_summary(calls: list[dict[str, Any]], capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    rc = cli.main(
        ["--provider", "google", "--client-id", "cid", "--client-secret", "s", "--scope", "a", "--scope", "b"]
    )
    assert rc == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary == {
        "token_file": str(tmp_path / ".oauth-prompt" / "token.json"),
        "token_type": "Bearer",
        "access_token": "ya29.s****",
        "has_refresh_token": True,
        "expiry": "2026-10-17T13:00:00+00:00",
    }
    cfg = calls[0]["config"]
    assert cfg.scopes == ("a", "b")
    assert cfg.auth_url == "https://accounts.google.com/o/oauth2/auth"
    assert calls[0]["timeout"] is None


def test_show_token_and_env_file(
    calls: list[dict[str, Any]], capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    env_file = tmp_path / "oauth.env"
    env_file.write_text(
        "OAUTH_PROMPT_CLIENT_ID=file-id\n"
        "OAUTH_PROMPT_AUTH_URL=https://p.test/auth\n"
        "OAUTH_PROMPT_TOKEN_URL=https://p.test/token\n",
        encoding="utf-8",
    )
    rc = cli.main(["--env-file", str(env_file), "--token-file", "/abs/tok.json", "--show-token", "--timeout", "30"])
    assert rc == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["access_token"] == "ya29.secret-access-token"
    assert summary["token_file"] == "/abs/tok.json"
    assert calls[0]["config"].client_id == "file-id"
    assert calls[0]["file"] == "/abs/tok.json"
    assert calls[0]["timeout"] == 30.0


def test_missing_configuration_exits_1(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 1
    payload = json.loads(capsys.readouterr().err)
    assert payload["error"] == "configuration_error"
    assert payload["missing"] == ["OAUTH_PROMPT_CLIENT_ID", "OAUTH_PROMPT_AUTH_URL", "OAUTH_PROMPT_TOKEN_URL"]


def test_flow_error_exits_1(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    def failing(*args: Any, **kwargs: Any) -> Token:
        raise StateMismatchError()

    monkeypatch.setattr(cli, "acquire_token", failing)
    rc = cli.main(["--provider", "google", "--client-id", "cid"])
    assert rc == 1
    assert json.loads(capsys.readouterr().err) == {"error": "state_mismatch", "message": "incorrect response"}


def test_bad_arguments_exit_2() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--provider", "unknown"])
    assert exc_info.value.code == 2


def test_provider_error_payload_has_no_secrets(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def failing(*args: Any, **kwargs: Any) -> Token:
        raise TokenExchangeError(
            "token endpoint returned 400: invalid_grant",
            status_code=400,
            error="invalid_grant",
            body='{"error": "invalid_grant", "code": "used-code"}',
        )

    monkeypatch.setattr(cli, "acquire_token", failing)
    rc = cli.main(["--provider", "google", "--client-id", "cid", "--client-secret", "top-secret"])
    assert rc == 1

    err = capsys.readouterr().err
    assert json.loads(err) == {
        "error": "token_exchange_error",
        "message": "token endpoint returned 400: invalid_grant",
        "status_code": 400,
        "provider_error": "invalid_grant",
    }
    assert "top-secret" not in err
    assert "used-code" not in err
