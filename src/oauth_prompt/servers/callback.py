"""Redirect capture server for the loopback OAuth flow.

Two routes are served on the ephemeral listener:

``/auth``
    Redirects (301) to the provider consent URL.  This is the URL shown to the
    operator, so the long consent URL never needs to be copied by hand.
``/done``
    The ``redirect_uri`` registered with the provider.  It validates the
    ``state`` nonce and hands the authorization code (or the provider error)
    to the waiting flow through a :class:`Completion`.

Handlers are intentionally thin and never reveal *why* a callback was rejected
to the remote caller.  Codes and nonces are never logged in full.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from urllib.parse import parse_qsl

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, RedirectResponse, Response
from starlette.routing import Route

from oauth_prompt.local_auth.errors import (
    AuthorizationDeniedError,
    AuthorizationTimeoutError,
    ListenerError,
    StateMismatchError,
)
from oauth_prompt.local_auth.log_utils import mask_sensitive
from oauth_prompt.local_auth.state import states_match
from oauth_prompt.servers.listener import LoopbackListener

_LOG = logging.getLogger("oauth-prompt.servers.callback")

SUCCESS_PAGE = """<html>
<head>
<title>Authenticated</title>
<script>
function done() {
	setTimeout(function() {window.close()}, 5000)
}
</script>
</head>
<body onload="done()">
Thanks for authenticating.
</body>
</html>
"""


def _html_page(title: str, body: str, status: int = 200) -> HTMLResponse:
    """Return a tiny status HTML page."""
    content = (
        "<!doctype html><html lang='en'>"
        "<head><meta charset='utf-8'><title>"
        f"{title}</title></head><body><h1>{title}</h1><p>{body}</p></body></html>"
    )
    return HTMLResponse(content, status_code=status)


# --------------------------------------------------------------------------- #
# Completion channel                                                          #
# --------------------------------------------------------------------------- #
class Completion:
    """One-shot hand-off of the callback result to the waiting flow.

    Any number of requests may try to signal; only the first one is kept.
    After :meth:`close` every signal is ignored.
    """

    def __init__(self) -> None:
        self._future: Future[str] = Future()
        self._lock = threading.Lock()
        self._closed = False

    def _offer(self, *, code: str | None = None, error: BaseException | None = None) -> bool:
        with self._lock:
            if self._closed or self._future.done():
                return False
            if error is not None:
                self._future.set_exception(error)
            else:
                self._future.set_result(code or "")
            return True

    def signal_code(self, code: str) -> bool:
        """Offer an authorization code; return *True* if it was accepted."""
        return self._offer(code=code)

    def signal_error(self, error: BaseException) -> bool:
        """Offer a failure; return *True* if it was accepted."""
        return self._offer(error=error)

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: float | None = None) -> str:
        """Block until a result is signalled and return the code.

        Raises
        ------
        StateMismatchError, AuthorizationDeniedError
            Whatever failure the capture server signalled.
        AuthorizationTimeoutError
            If *timeout* elapses first.
        """
        try:
            return self._future.result(timeout)
        except FutureTimeoutError:
            raise AuthorizationTimeoutError(
                f"no OAuth redirect received within {timeout} seconds"
            ) from None

    def close(self) -> None:
        with self._lock:
            self._closed = True


# --------------------------------------------------------------------------- #
# ASGI application                                                            #
# --------------------------------------------------------------------------- #
async def _form_values(request: Request) -> dict[str, str]:
    """Return form values, url-encoded POST body before query string."""
    values: dict[str, str] = {}
    if request.method == "POST":
        content_type = (request.headers.get("content-type") or "").split(";", 1)[0]
        if content_type.strip().lower() == "application/x-www-form-urlencoded":
            body = (await request.body()).decode("utf-8", errors="replace")
            for key, value in parse_qsl(body, keep_blank_values=True):
                values.setdefault(key, value)
    for key, value in request.query_params.multi_items():
        values.setdefault(key, value)
    return values


def build_callback_app(auth_url: str, state: str, completion: Completion) -> Starlette:
    """Return the Starlette app serving ``/auth`` and ``/done``."""

    async def _auth(request: Request) -> Response:  # noqa: D401
        _LOG.debug("Redirecting browser to consent page")
        return RedirectResponse(auth_url, status_code=301)

    async def _done(request: Request) -> Response:  # noqa: D401
        form = await _form_values(request)

        if not states_match(state, form.get("state")):
            accepted = completion.signal_error(StateMismatchError())
            _LOG.warning(
                "Rejected callback with state=%s (signalled=%s)",
                mask_sensitive(form.get("state")),
                accepted,
            )
            return Response(status_code=500)

        code = form.get("code")
        if code:
            accepted = completion.signal_code(code)
            _LOG.info("Captured authorization code %s (accepted=%s)", mask_sensitive(code), accepted)
            return HTMLResponse(SUCCESS_PAGE)

        provider_error = form.get("error")
        if provider_error:
            accepted = completion.signal_error(
                AuthorizationDeniedError(
                    provider_error,
                    description=form.get("error_description") or None,
                    uri=form.get("error_uri") or None,
                )
            )
            _LOG.warning("Provider returned error=%s (accepted=%s)", provider_error, accepted)
            return _html_page("Authorization failed", "You may close this window.", 500)

        _LOG.debug("Ignoring callback without code or error")
        return Response(status_code=500)

    return Starlette(
        routes=[
            Route("/auth", _auth, methods=["GET", "POST"]),
            Route("/done", _done, methods=["GET", "POST"]),
        ]
    )


# --------------------------------------------------------------------------- #
# Background server                                                           #
# --------------------------------------------------------------------------- #
class CallbackServer:
    """Serve *app* on an already-bound *listener* from a daemon thread."""

    def __init__(
        self,
        app: Starlette,
        listener: LoopbackListener,
        *,
        startup_timeout: float = 10.0,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self.listener = listener
        self.startup_timeout = startup_timeout
        self.shutdown_timeout = shutdown_timeout
        config = uvicorn.Config(
            app,
            log_config=None,
            log_level="warning",
            access_log=False,
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [listener.socket]},
            name=f"oauth-prompt-callback-{listener.port}",
            daemon=True,
        )

    def start(self) -> None:
        """Start serving and wait until the server accepts connections.

        Raises
        ------
        ListenerError
            If the server thread dies or does not come up in time.
        """
        self._thread.start()
        deadline = time.monotonic() + self.startup_timeout
        while not self._server.started:
            if not self._thread.is_alive():
                raise ListenerError(f"capture server on {self.listener.netloc} failed to start")
            if time.monotonic() > deadline:
                self.stop()
                raise ListenerError(f"capture server on {self.listener.netloc} did not start")
            time.sleep(0.01)
        _LOG.debug("Capture server running on %s", self.listener.netloc)

    def stop(self) -> None:
        """Stop serving and close the listener; safe to call repeatedly."""
        self._server.should_exit = True
        if self._thread.is_alive():
            self._thread.join(self.shutdown_timeout)
            if self._thread.is_alive():
                _LOG.warning("Capture server thread did not exit within %ss", self.shutdown_timeout)
        self.listener.close()

    def __enter__(self) -> CallbackServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
