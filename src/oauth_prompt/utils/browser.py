"""Show the consent URL to the operator.

Launchers are tried in order and the first one that exits cleanly wins.  The
URL is always echoed to standard error as well, because a launcher may
"succeed" without a browser ever appearing (e.g. over SSH).  When every
launcher fails the instruction is written to the controlling terminal, or to
standard error when there is none.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Sequence, TextIO

from oauth_prompt.local_auth.errors import NotifyError

_LOG = logging.getLogger("oauth-prompt.utils.browser")

TTY_PATH = "/dev/tty"


@dataclass(frozen=True, slots=True)
class LauncherSpec:
    """An external program that opens a URL given as its last argument."""

    name: str
    argv_prefix: tuple[str, ...] = ()

    def command(self, url: str) -> list[str]:
        return [*(self.argv_prefix or (self.name,)), url]


DEFAULT_LAUNCHERS: tuple[LauncherSpec, ...] = (
    LauncherSpec("xdg-open"),
    LauncherSpec("google-chrome"),
    LauncherSpec("open"),  # macOS
)

Runner = Callable[..., object]


def _try_launchers(url: str, launchers: Sequence[LauncherSpec], runner: Runner) -> str | None:
    for spec in launchers:
        try:
            runner(
                spec.command(url),
                check=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            _LOG.debug("Launcher %s failed: %s", spec.name, exc)
            continue
        _LOG.debug("Opened consent URL with %s", spec.name)
        return spec.name
    return None


def open_url(
    url: str,
    *,
    launchers: Sequence[LauncherSpec] = DEFAULT_LAUNCHERS,
    runner: Runner = subprocess.run,
    stderr: TextIO | None = None,
    tty_path: str = TTY_PATH,
) -> str | None:
    """Point the operator at *url*.

    Returns
    -------
    str | None
        Name of the launcher that succeeded, or ``None`` when the operator was
        only told about the URL in text.

    Raises
    ------
    NotifyError
        If no launcher worked and the instruction could not be written either.
    """
    err = stderr if stderr is not None else sys.stderr
    try:
        err.write(f"oauth-prompt: {url}\n")
        err.flush()
    except (OSError, ValueError) as exc:
        _LOG.debug("Could not echo URL to stderr: %s", exc)

    launched = _try_launchers(url, launchers, runner)
    if launched is not None:
        return launched

    message = f"To log in, please visit {url}\n"
    try:
        tty = open(tty_path, "w", encoding="utf-8")  # noqa: SIM115
    except OSError as exc:
        _LOG.debug("Cannot open %s (%s); using stderr", tty_path, exc)
        try:
            err.write(message)
            err.flush()
        except (OSError, ValueError) as exc2:
            raise NotifyError() from exc2
        return None

    try:
        tty.write(message)
        tty.flush()
    except (OSError, ValueError) as exc:
        raise NotifyError() from exc
    finally:
        try:
            tty.close()
        except OSError:
            pass
    return None
