"""Token endpoint grants: authorization code and refresh token.

Both grants POST a form-encoded body to ``ProviderConfig.token_url`` with the
client credentials in the body.  A failed exchange is never retried: a code
is single use, so a second attempt with the same code cannot succeed.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlparse

import requests

from oauth_prompt.local_auth.clock import Clock, default_clock
from oauth_prompt.local_auth.errors import TokenExchangeError
from oauth_prompt.local_auth.log_utils import mask_sensitive
from oauth_prompt.local_auth.models import ProviderConfig, Token

_LOG = logging.getLogger("oauth-prompt.local_auth.exchange")

DEFAULT_TIMEOUT: tuple[int, int] = (5, 20)


def _parse_body(resp: requests.Response) -> dict[str, Any]:
    """Decode a token response that may be JSON or url-encoded."""
    content_type = (resp.headers.get("content-type") or "").split(";", 1)[0].strip()
    if content_type in ("application/x-www-form-urlencoded", "text/plain"):
        return dict(parse_qsl(resp.text, keep_blank_values=True))
    try:
        data = resp.json()
    except ValueError:
        # some providers answer url-encoded without a proper content type
        return dict(parse_qsl(resp.text, keep_blank_values=True))
    if not isinstance(data, dict):
        return {}
    return data


def _post(
    config: ProviderConfig,
    payload: Mapping[str, str],
    *,
    session: requests.Session | None,
    timeout: tuple[int, int],
) -> dict[str, Any]:
    if not config.token_url:
        raise TokenExchangeError("token endpoint not configured")

    body = dict(payload)
    body["client_id"] = config.client_id
    if config.client_secret:
        body["client_secret"] = config.client_secret  # noqa: S105

    poster = session.post if session is not None else requests.post
    try:
        resp = poster(
            config.token_url,
            data=body,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise TokenExchangeError(f"token request failed: {exc}") from exc

    data = _parse_body(resp)
    provider_error = data.get("error")
    if not resp.ok or provider_error:
        description = data.get("error_description")
        raise TokenExchangeError(
            f"token endpoint returned {resp.status_code}: {resp.text[:200]}",
            status_code=resp.status_code,
            error=str(provider_error) if provider_error else None,
            description=str(description) if description else None,
            body=resp.text,
        )
    if not data.get("access_token"):
        raise TokenExchangeError(
            "token response missing access_token",
            status_code=resp.status_code,
            body=resp.text,
        )
    return data


def _to_token(
    data: Mapping[str, Any], *, clock: Clock, previous: Token | None = None
) -> Token:
    try:
        return Token.from_response(data, clock=clock, previous=previous)
    except (TypeError, ValueError) as exc:
        raise TokenExchangeError(f"malformed token response: {exc}") from exc


def exchange_code(
    config: ProviderConfig,
    code: str,
    *,
    session: requests.Session | None = None,
    clock: Clock = default_clock,
    timeout: tuple[int, int] = DEFAULT_TIMEOUT,
) -> Token:
    """Exchange an authorization *code* for a token.

    Parameters
    ----------
    config:
        Provider configuration whose ``redirect_url`` matches the one used in
        the consent URL.
    code:
        The authorization code captured from the redirect.

    Raises
    ------
    TokenExchangeError
        On transport failure or any provider-side rejection.
    """
    payload = {"grant_type": "authorization_code", "code": code}
    if config.redirect_url:
        payload["redirect_uri"] = config.redirect_url

    data = _post(config, payload, session=session, timeout=timeout)
    token = _to_token(data, clock=clock)
    _LOG.info(
        "Exchanged code %s at %s (expiry=%s)",
        mask_sensitive(code),
        urlparse(config.token_url).netloc,
        token.expiry.isoformat() if token.expiry else "none",
    )
    return token


def refresh_token(
    config: ProviderConfig,
    token: Token,
    *,
    session: requests.Session | None = None,
    clock: Clock = default_clock,
    timeout: tuple[int, int] = DEFAULT_TIMEOUT,
) -> Token:
    """Return a new token obtained with ``token.refresh_token``.

    The previous refresh token is kept when the provider does not issue a new
    one.
    """
    if not token.refresh_token:
        raise TokenExchangeError("token has no refresh_token")

    payload = {"grant_type": "refresh_token", "refresh_token": token.refresh_token}
    data = _post(config, payload, session=session, timeout=timeout)
    new_token = _to_token(data, clock=clock, previous=token)
    _LOG.info(
        "Refreshed access token at %s (expiry=%s)",
        urlparse(config.token_url).netloc,
        new_token.expiry.isoformat() if new_token.expiry else "none",
    )
    return new_token
