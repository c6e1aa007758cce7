"""Prompt a local user for an OAuth 2.0 token and cache it on disk.

>>> from oauth_prompt import google_token
>>> session = google_token(".config/myapp/token.json", CLIENT_ID, CLIENT_SECRET,
...                        "https://www.googleapis.com/auth/drive.readonly")
>>> session.get("https://www.googleapis.com/drive/v3/files")

The first call opens the provider's consent page in a browser and captures
the redirect on a loopback port; later calls reuse the cached token.
"""

from __future__ import annotations

from .client import AuthorizedSession  # noqa: F401
from .flow import acquire_token, google_token, token  # noqa: F401
from .local_auth import (  # noqa: F401
    AuthorizationDeniedError,
    OAuthPromptError,
    ProviderConfig,
    StateMismatchError,
    Token,
    TokenCache,
    TokenCacheCorruptError,
    TokenExchangeError,
)
from .utils.browser import DEFAULT_LAUNCHERS, LauncherSpec  # noqa: F401

__all__ = [
    "AuthorizedSession",
    "acquire_token",
    "google_token",
    "token",
    "AuthorizationDeniedError",
    "OAuthPromptError",
    "ProviderConfig",
    "StateMismatchError",
    "Token",
    "TokenCache",
    "TokenCacheCorruptError",
    "TokenExchangeError",
    "DEFAULT_LAUNCHERS",
    "LauncherSpec",
]
