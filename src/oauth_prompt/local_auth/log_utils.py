"""Logging helpers for the local OAuth flow.

Two concerns live here:

* :func:`mask_sensitive` shortens secrets (codes, tokens, nonces) before they
  reach a log record.
* :func:`get_flow_logger` returns a :class:`logging.LoggerAdapter` that only
  injects *non-sensitive* context:

  - ``flow_id``  – random identifier of one interactive flow (first 8 chars)
  - ``provider`` – host name of the authorization endpoint
  - ``netloc``   – loopback address the capture server listens on

Usage
-----
>>> from oauth_prompt.local_auth.log_utils import get_flow_logger
>>> log = get_flow_logger(flow_id="0f3c2a9d5b...", provider="accounts.google.com")
>>> log.info("Waiting for redirect")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


def mask_sensitive(value: str | None, keep: int = 4) -> str:
    """Return *value* with everything but the first *keep* characters hidden."""
    if not value:
        return "<empty>"
    if len(value) <= keep:
        return "*" * len(value)
    return f"{value[:keep]}****"


class _FlowLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted flow context into log records."""

    extra_keys = ("flow_id", "provider", "netloc")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if not extra or extra.get(k) is None:
                continue
            if k == "flow_id":
                extra_clean[k] = str(extra[k])[:8]
            else:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # call-site extras win
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_flow_logger(
    *,
    base_logger_name: str = "oauth-prompt.flow",
    flow_id: str | None = None,
    provider: str | None = None,
    netloc: str | None = None,
) -> _FlowLoggerAdapter:
    """Return a LoggerAdapter pre-filled with flow context."""
    logger = logging.getLogger(base_logger_name)
    return _FlowLoggerAdapter(
        logger,
        {"flow_id": flow_id, "provider": provider, "netloc": netloc},
    )
