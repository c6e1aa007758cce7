"""Interactive authorization-code flow with an on-disk token cache.

One call walks through::

    CACHE_LOOKUP ─ hit ──────────────────────────────────────────► CLIENT_READY
        │ miss
        ▼
    LISTENING → AWAITING_REDIRECT ─ bad state / provider error ──► FAILED
                      │ code
                      ▼
                  EXCHANGING ─ rejected ─────────────────────────► FAILED
                      │ ok
                      ▼
                  CACHE_WRITE ───────────────────────────────────► CLIENT_READY

The capture server is the only concurrent element; it is stopped and its
listener closed on every exit path before this module returns.
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import Callable, Mapping, Sequence
from urllib.parse import urlparse

from oauth_prompt.client import AuthorizedSession
from oauth_prompt.local_auth.errors import OAuthPromptError
from oauth_prompt.local_auth.exchange import exchange_code
from oauth_prompt.local_auth.log_utils import get_flow_logger
from oauth_prompt.local_auth.models import ProviderConfig, Token
from oauth_prompt.local_auth.state import random_state
from oauth_prompt.local_auth.store import TokenCache
from oauth_prompt.servers.callback import CallbackServer, Completion, build_callback_app
from oauth_prompt.servers.listener import LoopbackListener, bind_loopback
from oauth_prompt.utils.browser import DEFAULT_LAUNCHERS, LauncherSpec, open_url
from oauth_prompt.utils.environment import google_config

_LOG = logging.getLogger("oauth-prompt.flow")

Exchanger = Callable[[ProviderConfig, str], Token]
Notifier = Callable[..., object]


def _authorize(
    config: ProviderConfig,
    *,
    launchers: Sequence[LauncherSpec],
    notify: Notifier,
    exchanger: Exchanger,
    bind: Callable[[], LoopbackListener],
    state_source: Callable[[], str],
    timeout: float | None,
) -> Token:
    """Run the browser round trip and return the exchanged token."""
    state = state_source()
    listener = bind()
    log = get_flow_logger(
        flow_id=uuid.uuid4().hex,
        provider=urlparse(config.auth_url).netloc or None,
        netloc=listener.netloc,
    )

    completion = Completion()
    try:
        flow_config = config.with_redirect_url(listener.url("/done"))
        app = build_callback_app(flow_config.auth_code_url(state), state, completion)
        with CallbackServer(app, listener):
            try:
                log.info("Waiting for OAuth redirect on %s", listener.netloc)
                notify(listener.url("/auth"), launchers=launchers)
                code = completion.wait(timeout)
            finally:
                completion.close()
    except OAuthPromptError as exc:
        log.warning("OAuth flow failed: %s", exc)
        raise
    finally:
        listener.close()

    log.info("Received authorization code; exchanging")
    return exchanger(flow_config, code)


def acquire_token(
    file: str | os.PathLike,
    config: ProviderConfig,
    *,
    environ: Mapping[str, str] | None = None,
    launchers: Sequence[LauncherSpec] = DEFAULT_LAUNCHERS,
    notify: Notifier = open_url,
    exchanger: Exchanger = exchange_code,
    bind: Callable[[], LoopbackListener] = bind_loopback,
    state_source: Callable[[], str] = random_state,
    timeout: float | None = None,
) -> Token:
    """Return a token, from the cache *file* or by asking the operator.

    Parameters
    ----------
    file:
        Cache file; relative paths are resolved against ``$HOME``.
    config:
        Provider configuration.  It is never modified; the loopback redirect
        URL is set on a private copy.
    timeout:
        Seconds to wait for the browser redirect; ``None`` waits forever.

    Raises
    ------
    OAuthPromptError
        Any failure of the flow.  A corrupted cache file is reported rather
        than replaced, and nothing is written when the exchange fails.
    """
    cache = TokenCache(file, environ=environ)
    cached = cache.load()
    if cached is not None:
        _LOG.debug("Using cached token from %s", cache.path)
        return cached

    _LOG.info("No cached token at %s; starting interactive authorization", cache.path)
    token = _authorize(
        config,
        launchers=launchers,
        notify=notify,
        exchanger=exchanger,
        bind=bind,
        state_source=state_source,
        timeout=timeout,
    )
    cache.save(token)
    return token


def token(
    file: str | os.PathLike,
    config: ProviderConfig,
    **kwargs,
) -> AuthorizedSession:
    """Return an :class:`AuthorizedSession`, authorizing interactively if needed.

    Accepts the keyword arguments of :func:`acquire_token`.  Tokens refreshed
    by the session are written back to the cache file.
    """
    tok = acquire_token(file, config, **kwargs)
    cache = TokenCache(file, environ=kwargs.get("environ"))
    return AuthorizedSession(tok, config, on_refresh=cache.save)


def google_token(
    file: str | os.PathLike,
    client_id: str,
    client_secret: str,
    *scopes: str,
    **kwargs,
) -> AuthorizedSession:
    """Like :func:`token` with Google's authorization and token endpoints."""
    return token(file, google_config(client_id, client_secret, *scopes), **kwargs)
