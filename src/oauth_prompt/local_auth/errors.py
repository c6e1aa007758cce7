"""Exception types raised by the local OAuth flow.

Only lightweight, **data-carrying** exceptions live here so that the CLI and
library callers can turn them into user-friendly messages.  None of them ever
carries a secret (authorization code, token, nonce or client secret).
"""

from __future__ import annotations

from typing import Any


class OAuthPromptError(RuntimeError):
    """Base class for every failure of the interactive flow."""

    code: str = "oauth_prompt_error"

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.code, "message": str(self)}


# --------------------------------------------------------------------------- #
# configuration / environment                                                 #
# --------------------------------------------------------------------------- #
class ConfigurationError(OAuthPromptError, ValueError):
    """Raised when the provider configuration is incomplete."""

    code = "configuration_error"

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing: tuple[str, ...] = missing

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["missing"] = list(self.missing)
        return payload


class ListenerError(OAuthPromptError):
    """No loopback listener could be bound (neither IPv4 nor IPv6)."""

    code = "listener_error"


class EntropyError(OAuthPromptError):
    """The cryptographic random source failed."""

    code = "entropy_error"


class NotifyError(OAuthPromptError):
    """The consent URL could not be shown to the operator by any means."""

    code = "notify_error"

    def __init__(self, message: str = "failed to notify user about URL") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# token cache                                                                 #
# --------------------------------------------------------------------------- #
class TokenCacheCorruptError(OAuthPromptError):
    """A cached token file exists but cannot be parsed."""

    code = "token_cache_corrupt"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"unmarshal {path}: {reason}")
        self.path: str = path
        self.reason: str = reason

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["path"] = self.path
        return payload


class TokenCacheWriteError(OAuthPromptError):
    """The token could not be written to the cache file."""

    code = "token_cache_write_error"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"write {path}: {reason}")
        self.path: str = path


# --------------------------------------------------------------------------- #
# protocol                                                                    #
# --------------------------------------------------------------------------- #
class StateMismatchError(OAuthPromptError):
    """The ``state`` of the callback did not match the generated nonce."""

    code = "state_mismatch"

    def __init__(self, message: str = "incorrect response") -> None:
        super().__init__(message)


class AuthorizationDeniedError(OAuthPromptError):
    """The provider redirected back with an ``error`` instead of a code."""

    code = "authorization_denied"

    def __init__(
        self,
        error: str,
        *,
        description: str | None = None,
        uri: str | None = None,
    ) -> None:
        message = f"{error}: {description}" if description else error
        super().__init__(message)
        self.error: str = error
        self.description: str | None = description
        self.uri: str | None = uri

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["provider_error"] = self.error
        if self.description:
            payload["error_description"] = self.description
        if self.uri:
            payload["error_uri"] = self.uri
        return payload


class AuthorizationTimeoutError(OAuthPromptError):
    """No callback arrived within the caller-supplied timeout."""

    code = "authorization_timeout"


# --------------------------------------------------------------------------- #
# token exchange                                                              #
# --------------------------------------------------------------------------- #
class TokenExchangeError(OAuthPromptError):
    """The token endpoint rejected the request or could not be reached."""

    code = "token_exchange_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error: str | None = None,
        description: str | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code: int | None = status_code
        self.error: str | None = error
        self.description: str | None = description
        self.body: str | None = body

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        if self.error:
            payload["provider_error"] = self.error
        return payload
