"""Configuration from environment variables and provider presets.

Variables (all optional unless noted)
-------------------------------------
OAUTH_PROMPT_PROVIDER
    Name of a preset in :data:`PROVIDER_PRESETS` (e.g. ``google``).
OAUTH_PROMPT_CLIENT_ID / OAUTH_PROMPT_CLIENT_SECRET
    Client credentials (the ID is required).
OAUTH_PROMPT_SCOPES
    Scopes separated by spaces and/or commas.
OAUTH_PROMPT_AUTH_URL / OAUTH_PROMPT_TOKEN_URL
    Endpoints; required unless a preset provides them, override it otherwise.
OAUTH_PROMPT_TOKEN_FILE
    Cache file, relative to ``$HOME`` unless absolute.
OAUTH_PROMPT_LOG_LEVEL
    Logging level name used by the CLI.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Final, Mapping

from oauth_prompt.local_auth.errors import ConfigurationError
from oauth_prompt.local_auth.models import ProviderConfig

logger = logging.getLogger("oauth-prompt.utils.environment")

ENV_PREFIX: Final[str] = "OAUTH_PROMPT_"
DEFAULT_TOKEN_FILE: Final[str] = ".oauth-prompt/token.json"
DEFAULT_LOG_LEVEL: Final[str] = "WARNING"

GOOGLE_AUTH_URL: Final[str] = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL: Final[str] = "https://accounts.google.com/o/oauth2/token"

# provider name -> (authorization endpoint, token endpoint)
PROVIDER_PRESETS: Final[dict[str, tuple[str, str]]] = {
    "google": (GOOGLE_AUTH_URL, GOOGLE_TOKEN_URL),
}


def _env(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(ENV_PREFIX + key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def split_scopes(raw: str | None) -> tuple[str, ...]:
    """Split a scope list separated by whitespace and/or commas."""
    if not raw:
        return ()
    return tuple(s for s in re.split(r"[\s,]+", raw) if s)


def google_config(client_id: str, client_secret: str, *scopes: str) -> ProviderConfig:
    """Return a configuration for Google's well-known OAuth endpoints."""
    return ProviderConfig(
        client_id=client_id,
        client_secret=client_secret,
        auth_url=GOOGLE_AUTH_URL,
        token_url=GOOGLE_TOKEN_URL,
        scopes=scopes,
    )


def provider_config_from_env(
    environ: Mapping[str, str] | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
) -> ProviderConfig:
    """Build a :class:`ProviderConfig` from ``OAUTH_PROMPT_*`` variables.

    Precedence (highest → lowest):
      1. non-empty *overrides* (``client_id``, ``client_secret``, ``scopes``,
         ``auth_url``, ``token_url``, ``provider``)
      2. environment variables
      3. endpoints of the selected preset

    Raises
    ------
    ConfigurationError
        If the provider is unknown or required values are missing.
    """
    env = os.environ if environ is None else environ
    over = {k: v for k, v in (overrides or {}).items() if v}

    provider = str(over.get("provider") or _env(env, "PROVIDER") or "").lower() or None
    preset_auth, preset_token = "", ""
    if provider:
        if provider not in PROVIDER_PRESETS:
            raise ConfigurationError(
                f"unknown provider {provider!r}; known: {', '.join(sorted(PROVIDER_PRESETS))}"
            )
        preset_auth, preset_token = PROVIDER_PRESETS[provider]

    client_id = str(over.get("client_id") or _env(env, "CLIENT_ID") or "")
    client_secret = str(over.get("client_secret") or _env(env, "CLIENT_SECRET") or "")
    auth_url = str(over.get("auth_url") or _env(env, "AUTH_URL") or preset_auth)
    token_url = str(over.get("token_url") or _env(env, "TOKEN_URL") or preset_token)

    scopes_override = over.get("scopes")
    if isinstance(scopes_override, str):
        scopes = split_scopes(scopes_override)
    elif scopes_override:
        scopes = tuple(str(s) for s in scopes_override)  # type: ignore[union-attr]
    else:
        scopes = split_scopes(_env(env, "SCOPES"))

    missing = tuple(
        ENV_PREFIX + name
        for name, value in (
            ("CLIENT_ID", client_id),
            ("AUTH_URL", auth_url),
            ("TOKEN_URL", token_url),
        )
        if not value
    )
    if missing:
        raise ConfigurationError(
            f"OAuth provider not configured; missing {', '.join(missing)}",
            missing=missing,
        )

    logger.debug("Loaded provider configuration (provider=%s, scopes=%d)", provider or "custom", len(scopes))
    return ProviderConfig(
        client_id=client_id,
        client_secret=client_secret,
        auth_url=auth_url,
        token_url=token_url,
        scopes=scopes,
    )


def token_file_from_env(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return _env(env, "TOKEN_FILE") or DEFAULT_TOKEN_FILE


def log_level_from_env(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return (_env(env, "LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()


def load_env_file(env_path: Path | None, environ: dict[str, str] | None = None) -> None:
    """Load KEY=VALUE pairs from a .env style file into *environ*.

    Existing variables are never overridden.
    """
    if env_path is None or not env_path.exists():
        return
    target = os.environ if environ is None else environ

    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip("'\"")
        if key and key not in target:
            target[key] = val
