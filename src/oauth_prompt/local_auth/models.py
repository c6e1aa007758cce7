"""Typed, immutable records used by the local OAuth flow."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from urllib.parse import urlencode

from oauth_prompt.local_auth.clock import Clock, default_clock, utcnow

# Tokens are considered expired slightly early so a request never races expiry.
EXPIRY_LEEWAY_SECONDS = 10

# Zero time written for "no expiry" by tools that cannot store a null.
_ZERO_EXPIRY = datetime(1, 1, 1, tzinfo=timezone.utc)


def _format_expiry(expiry: datetime | None) -> str | None:
    if expiry is None:
        return None
    return expiry.isoformat()


def _parse_expiry(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("expiry must be an RFC 3339 string")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if parsed == _ZERO_EXPIRY:
        return None
    return parsed


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Client credentials and endpoints for one OAuth 2.0 provider.

    Instances are never mutated; :meth:`with_redirect_url` returns a patched
    copy so a configuration shared between callers stays untouched.
    """

    client_id: str
    client_secret: str
    auth_url: str
    token_url: str
    scopes: tuple[str, ...] = ()
    redirect_url: str = ""

    def __post_init__(self) -> None:
        # Accept any iterable of scopes but always store a tuple.
        if not isinstance(self.scopes, tuple):
            object.__setattr__(self, "scopes", tuple(self.scopes))

    def with_redirect_url(self, redirect_url: str) -> ProviderConfig:
        """Return a copy whose ``redirect_url`` is *redirect_url*."""
        return replace(self, redirect_url=redirect_url)

    @property
    def supports_refresh(self) -> bool:
        return bool(self.token_url)

    def auth_code_url(self, state: str) -> str:
        """Return the provider consent URL carrying *state*."""
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self.client_id,
        }
        if self.redirect_url:
            params["redirect_uri"] = self.redirect_url
        if self.scopes:
            params["scope"] = " ".join(self.scopes)
        params["state"] = state
        sep = "&" if "?" in self.auth_url else "?"
        return f"{self.auth_url}{sep}{urlencode(params)}"


@dataclass(frozen=True, slots=True)
class Token:
    """Snapshot of an OAuth access/refresh token pair."""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str | None = None
    expiry: datetime | None = None

    def __post_init__(self) -> None:
        # A naive expiry is taken to be UTC so it compares with utcnow().
        if self.expiry is not None and self.expiry.tzinfo is None:
            object.__setattr__(self, "expiry", self.expiry.replace(tzinfo=timezone.utc))

    # ------------------------------------------------------------------ #
    # serialisation                                                      #
    # ------------------------------------------------------------------ #
    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "refresh_token": self.refresh_token,
            "expiry": _format_expiry(self.expiry),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Token:
        """Build a token from its cached form.

        Raises
        ------
        ValueError
            If a field is missing or has the wrong type.  Unknown keys are
            ignored.
        """
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("access_token missing")
        token_type = data.get("token_type") or "Bearer"
        refresh_token = data.get("refresh_token")
        if not isinstance(token_type, str):
            raise ValueError("token_type must be a string")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise ValueError("refresh_token must be a string")
        return cls(
            access_token=access_token,
            token_type=token_type,
            refresh_token=refresh_token or None,
            expiry=_parse_expiry(data.get("expiry")),
        )

    @classmethod
    def from_response(
        cls,
        data: Mapping[str, Any],
        *,
        clock: Clock = default_clock,
        previous: Token | None = None,
    ) -> Token:
        """Build a token from a token-endpoint response body."""
        expiry = None
        expires_in = data.get("expires_in")
        if expires_in not in (None, ""):
            seconds = int(expires_in)
            if seconds > 0:
                expiry = utcnow(clock) + timedelta(seconds=seconds)
        refresh = data.get("refresh_token") or None
        if refresh is None and previous is not None:
            refresh = previous.refresh_token
        return cls(
            access_token=str(data["access_token"]),
            token_type=str(data.get("token_type") or "Bearer"),
            refresh_token=refresh,
            expiry=expiry,
        )

    # ------------------------------------------------------------------ #
    # helpers                                                            #
    # ------------------------------------------------------------------ #
    def is_expired(
        self, *, clock: Clock = default_clock, leeway: int = EXPIRY_LEEWAY_SECONDS
    ) -> bool:
        """Return *True* if the token is past (or about to pass) its expiry."""
        if self.expiry is None:
            return False
        return utcnow(clock) + timedelta(seconds=leeway) >= self.expiry

    @property
    def type(self) -> str:
        """Token type with the conventional capitalisation."""
        lowered = self.token_type.lower()
        if lowered in ("", "bearer"):
            return "Bearer"
        if lowered == "mac":
            return "MAC"
        if lowered == "basic":
            return "Basic"
        return self.token_type

    def authorization_header(self) -> str:
        return f"{self.type} {self.access_token}"
