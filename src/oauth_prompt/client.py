"""Authenticated HTTP client bound to one token and provider configuration."""

from __future__ import annotations

import logging
import threading
from typing import Callable

import requests

from oauth_prompt.local_auth.clock import Clock, default_clock
from oauth_prompt.local_auth.exchange import refresh_token
from oauth_prompt.local_auth.models import ProviderConfig, Token

_LOG = logging.getLogger("oauth-prompt.client")


class AuthorizedSession(requests.Session):
    """``requests.Session`` that attaches the bearer token to every request.

    An expired token is refreshed just in time, before the request is sent,
    when it carries a refresh token and the provider has a token endpoint.
    ``on_refresh`` is called with every refreshed token.
    """

    def __init__(
        self,
        token: Token,
        config: ProviderConfig,
        *,
        on_refresh: Callable[[Token], None] | None = None,
        clock: Clock = default_clock,
    ) -> None:
        super().__init__()
        self._token = token
        self._config = config
        self._on_refresh = on_refresh
        self._clock = clock
        self._refresh_lock = threading.Lock()

    @property
    def token(self) -> Token:
        return self._token

    @property
    def config(self) -> ProviderConfig:
        return self._config

    def _can_refresh(self) -> bool:
        return bool(self._token.refresh_token) and self._config.supports_refresh

    def _valid_token(self) -> Token:
        if not self._token.is_expired(clock=self._clock) or not self._can_refresh():
            return self._token
        with self._refresh_lock:
            # another thread may have refreshed while we waited
            if self._token.is_expired(clock=self._clock):
                # the refresh itself goes through requests.post, not this session
                self._token = refresh_token(self._config, self._token, clock=self._clock)
                if self._on_refresh is not None:
                    self._on_refresh(self._token)
        return self._token

    def prepare_request(self, request: requests.Request) -> requests.PreparedRequest:
        prepared = super().prepare_request(request)
        prepared.headers["Authorization"] = self._valid_token().authorization_header()
        return prepared
