"""On-disk token cache.

A single JSON object per file holds the token fields (``access_token``,
``token_type``, ``refresh_token``, ``expiry``).  The design follows these
rules:

* **Path resolution** – relative paths are joined to ``$HOME``; absolute
  paths are used verbatim.
* **Miss vs. corruption** – a missing or unreadable file is a cache miss, a
  file that exists but does not parse is an error.  A corrupted cache is
  surfaced rather than silently replaced by a fresh login.
* **Atomicity** – writes use *temp-file + os.replace*.
* **Stable form** – keys are sorted and separators compact, so saving a token
  that was just loaded reproduces the file byte-for-byte.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Final, Mapping

from oauth_prompt.local_auth.errors import TokenCacheCorruptError, TokenCacheWriteError
from oauth_prompt.local_auth.models import Token

_LOG = logging.getLogger("oauth-prompt.local_auth.store")

# Owner and group read/write, never executable (the umask still applies).
CACHE_FILE_MODE: Final[int] = 0o660


# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #
def resolve_cache_path(
    path: str | os.PathLike, environ: Mapping[str, str] | None = None
) -> Path:
    """Return the absolute cache path for *path*.

    Relative paths are interpreted against the ``HOME`` environment variable.
    """
    raw = os.fspath(path)
    if os.path.isabs(raw):
        return Path(raw)
    env = os.environ if environ is None else environ
    return Path(os.path.join(env.get("HOME", ""), raw))


def dump_token(token: Token) -> str:
    """Return the canonical serialised form of *token*."""
    return json.dumps(token.to_dict(), separators=(",", ":"), sort_keys=True)


def _atomic_write(path: Path, text: str, mode: int = CACHE_FILE_MODE) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp, path)  # atomic on POSIX
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #
def load_token(path: str | os.PathLike) -> Token | None:
    """Return the cached token, or ``None`` on a cache miss.

    Raises
    ------
    TokenCacheCorruptError
        If the file exists and was read but its content is not a valid token.
    """
    p = Path(path)
    try:
        data = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _LOG.debug("Token cache miss for %s: %s", p, exc)
        return None

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as exc:
        raise TokenCacheCorruptError(str(p), str(exc)) from exc
    if not isinstance(payload, dict):
        raise TokenCacheCorruptError(str(p), "expected a JSON object")
    try:
        token = Token.from_dict(payload)
    except (TypeError, ValueError) as exc:
        raise TokenCacheCorruptError(str(p), str(exc)) from exc

    _LOG.debug("Loaded cached token from %s", p)
    return token


def save_token(path: str | os.PathLike, token: Token) -> None:
    """Write *token* to *path*, replacing any previous content.

    Raises
    ------
    TokenCacheWriteError
        If the directory cannot be created or the file cannot be written.
    """
    p = Path(path)
    try:
        _atomic_write(p, dump_token(token))
    except OSError as exc:
        raise TokenCacheWriteError(str(p), str(exc)) from exc
    _LOG.info("Saved token to %s", p)


class TokenCache:
    """Token cache bound to one resolved file path."""

    def __init__(
        self, path: str | os.PathLike, *, environ: Mapping[str, str] | None = None
    ) -> None:
        self.path: Path = resolve_cache_path(path, environ)

    def load(self) -> Token | None:
        return load_token(self.path)

    def save(self, token: Token) -> None:
        save_token(self.path, token)

    def __repr__(self) -> str:
        return f"TokenCache({str(self.path)!r})"
