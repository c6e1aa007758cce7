"""Local authentication core package.

This namespace hosts the **HTTP-agnostic** building blocks of the interactive
authorization-code flow.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
state
    Random anti-forgery nonce generation and comparison.
models
    Immutable dataclasses for provider configuration and tokens.
store
    On-disk token cache.
exchange
    Token endpoint grants (authorization code, refresh token).
errors
    Exception types used by the flow.
log_utils
    Logging helpers (masking, flow-scoped adapter).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, default_clock  # noqa: F401
from .errors import (  # noqa: F401
    AuthorizationDeniedError,
    AuthorizationTimeoutError,
    ConfigurationError,
    EntropyError,
    ListenerError,
    NotifyError,
    OAuthPromptError,
    StateMismatchError,
    TokenCacheCorruptError,
    TokenCacheWriteError,
    TokenExchangeError,
)
from .exchange import exchange_code, refresh_token  # noqa: F401
from .log_utils import get_flow_logger, mask_sensitive  # noqa: F401
from .models import ProviderConfig, Token  # noqa: F401
from .state import random_state, states_match  # noqa: F401
from .store import TokenCache, dump_token, load_token, resolve_cache_path, save_token  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "default_clock",
    # errors
    "OAuthPromptError",
    "ConfigurationError",
    "ListenerError",
    "EntropyError",
    "NotifyError",
    "TokenCacheCorruptError",
    "TokenCacheWriteError",
    "StateMismatchError",
    "AuthorizationDeniedError",
    "AuthorizationTimeoutError",
    "TokenExchangeError",
    # exchange
    "exchange_code",
    "refresh_token",
    # logging helpers
    "get_flow_logger",
    "mask_sensitive",
    # models
    "ProviderConfig",
    "Token",
    # state
    "random_state",
    "states_match",
    # store
    "TokenCache",
    "dump_token",
    "load_token",
    "resolve_cache_path",
    "save_token",
]
