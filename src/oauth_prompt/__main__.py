"""oauth-prompt command line.

Obtain (or reuse) a cached OAuth 2.0 token for a provider configured on the
command line or through ``OAUTH_PROMPT_*`` environment variables, then print a
short JSON summary.  The access token is masked unless ``--show-token`` is
given.

Example
-------
    oauth-prompt --provider google --client-id ID --client-secret SECRET \
        --scope https://www.googleapis.com/auth/drive.readonly
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from oauth_prompt.flow import acquire_token
from oauth_prompt.local_auth.errors import OAuthPromptError
from oauth_prompt.local_auth.log_utils import mask_sensitive
from oauth_prompt.local_auth.models import Token
from oauth_prompt.local_auth.store import resolve_cache_path
from oauth_prompt.utils.environment import (
    PROVIDER_PRESETS,
    load_env_file,
    log_level_from_env,
    provider_config_from_env,
    token_file_from_env,
)

_LOG = logging.getLogger("oauth-prompt.cli")


def _summary(token: Token, path: Path, show_token: bool) -> dict[str, Any]:
    return {
        "token_file": str(path),
        "token_type": token.type,
        "access_token": token.access_token if show_token else mask_sensitive(token.access_token, 6),
        "has_refresh_token": bool(token.refresh_token),
        "expiry": token.expiry.isoformat() if token.expiry else None,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oauth-prompt",
        description="Obtain an OAuth 2.0 token through the browser and cache it.",
    )
    parser.add_argument("--env-file", type=Path, help="Load KEY=VALUE pairs from this file first")
    parser.add_argument("--token-file", help="Token cache file (relative to $HOME unless absolute)")
    parser.add_argument("--provider", choices=sorted(PROVIDER_PRESETS), help="Endpoint preset")
    parser.add_argument("--client-id", help="OAuth client ID")
    parser.add_argument("--client-secret", help="OAuth client secret")
    parser.add_argument(
        "--scope",
        action="append",
        dest="scopes",
        metavar="SCOPE",
        help="Requested scope (repeatable)",
    )
    parser.add_argument("--auth-url", help="Authorization endpoint")
    parser.add_argument("--token-url", help="Token endpoint")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the browser redirect (default: wait forever)",
    )
    parser.add_argument("--log-level", help="Logging level (default: OAUTH_PROMPT_LOG_LEVEL or WARNING)")
    parser.add_argument(
        "--show-token",
        action="store_true",
        help="Print the full access token instead of a masked prefix",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_env_file(args.env_file)

    logging.basicConfig(
        level=(args.log_level or log_level_from_env()).upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        config = provider_config_from_env(
            overrides={
                "provider": args.provider,
                "client_id": args.client_id,
                "client_secret": args.client_secret,
                "scopes": args.scopes,
                "auth_url": args.auth_url,
                "token_url": args.token_url,
            }
        )
        token_file = args.token_file or token_file_from_env()
        token = acquire_token(token_file, config, timeout=args.timeout)
    except OAuthPromptError as exc:
        _LOG.debug("oauth-prompt failed", exc_info=True)
        print(json.dumps(exc.to_payload()), file=sys.stderr)
        return 1

    print(json.dumps(_summary(token, resolve_cache_path(token_file), args.show_token), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
