"""Authorization window handling for popup OAuth 2.0 flows.

A popup authenticator shows the provider's authorization screen, waits for
the provider to redirect back to the redirect URI, and returns the
parameters carried by that redirect. Two strategies are provided:

- Callback: delegate the window to the caller (CLI prompt, embedded UI)
- Loopback: open the system browser and catch the redirect on a local server
"""

from __future__ import annotations

import asyncio
import logging
import socket
import webbrowser
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol
from urllib.parse import parse_qs, urlparse

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from popauth.client.models.errors import (
    AuthorizationDeniedError,
    PopupClosedError,
    PopupError,
    PopupTimeoutError,
)
from popauth.client.models.flow import AuthorizationResponse

logger = logging.getLogger(__name__)


class PopupAuthenticator(Protocol):
    """Protocol for the component hosting the provider's consent screen."""

    async def open(
        self,
        url: str,
        redirect_uri: str,
        popup_options: Mapping[str, Any] | None = None,
    ) -> AuthorizationResponse:
        """Show ``url`` and wait for the redirect to ``redirect_uri``.

        Args:
            url: Full authorization URL
            redirect_uri: URI the provider redirects back to
            popup_options: Provider specific window options

        Returns:
            Parameters from the redirect's query string and fragment

        Raises:
            PopupError: If the window fails, is closed or shows an error
        """
        ...


def parse_redirect_url(redirect_url: str) -> dict[str, str]:
    """Extract query and fragment parameters from a redirect URL.

    Fragment parameters (implicit flow) take precedence over query ones.
    """
    parsed = urlparse(redirect_url)
    params: dict[str, str] = {}
    for component in (parsed.query, parsed.fragment):
        for key, values in parse_qs(component).items():
            params[key] = values[0]
    return params


def response_from_params(params: Mapping[str, Any]) -> AuthorizationResponse:
    """Build the authorization response, raising on provider error pages.

    Raises:
        AuthorizationDeniedError: If the redirect carries an ``error``
    """
    if params.get("error"):
        raise AuthorizationDeniedError(
            params["error"],
            params.get("error_description"),
            params.get("error_uri"),
        )
    return AuthorizationResponse.from_params(params)


def _same_endpoint(url: str, redirect_uri: str) -> bool:
    actual, expected = urlparse(url), urlparse(redirect_uri)
    return (
        actual.scheme == expected.scheme
        and actual.netloc == expected.netloc
        and actual.path.rstrip("/") == expected.path.rstrip("/")
    )


class CallbackPopupAuthenticator:
    """Popup authenticator that hands the window over to a callback.

    The callback receives the authorization URL and returns the URL the
    window ended up on after the provider redirected it, or None if the
    user closed the window.
    """

    def __init__(self, callback_handler: Callable[[str], Awaitable[str | None]]):
        self.callback_handler = callback_handler

    async def open(
        self,
        url: str,
        redirect_uri: str,
        popup_options: Mapping[str, Any] | None = None,
    ) -> AuthorizationResponse:
        callback_url = await self.callback_handler(url)
        if not callback_url:
            raise PopupClosedError(
                "Authorization window was closed before the provider redirected"
            )

        if redirect_uri and not _same_endpoint(callback_url, redirect_uri):
            raise PopupError(
                f"Authorization window did not return to the redirect URI "
                f"{redirect_uri}"
            )

        logger.debug("Received authorization redirect from callback handler")
        return response_from_params(parse_redirect_url(callback_url))


# Implicit-flow responses live in the fragment, which browsers never send to
# the server; this page resubmits the fragment as a query string.
_FRAGMENT_RELAY_PAGE = """<!DOCTYPE html>
<html><body><script>
if (window.location.hash.length > 1) {
  window.location.replace(
    window.location.pathname + "?" + window.location.hash.substring(1));
} else {
  document.body.textContent = "No authorization response received.";
}
</script></body></html>
"""

_DONE_PAGE = """<!DOCTYPE html>
<html><body>
<p>Authorization complete. You may close this window.</p>
<script>window.close();</script>
</body></html>
"""


class LoopbackPopupAuthenticator:
    """Popup authenticator using the system browser and a loopback server.

    The redirect URI must point at this machine, e.g.
    ``http://127.0.0.1:8765/callback``. A Starlette app served by uvicorn
    listens on that host, port and path for the duration of one attempt.

    Recognized ``popup_options``: ``timeout`` (seconds, overrides the
    instance default) and ``new`` (``webbrowser`` window mode).
    """

    def __init__(
        self,
        open_browser: Callable[..., bool] = webbrowser.open,
        timeout: float | None = None,
    ):
        """Initialize loopback authenticator.

        Args:
            open_browser: Function opening a URL, ``webbrowser.open`` compatible
            timeout: Seconds to wait for the redirect, None waits forever
        """
        self._open_browser = open_browser
        self.timeout = timeout

    async def open(
        self,
        url: str,
        redirect_uri: str,
        popup_options: Mapping[str, Any] | None = None,
    ) -> AuthorizationResponse:
        options = dict(popup_options or {})
        timeout = options.get("timeout", self.timeout)

        parsed = urlparse(redirect_uri)
        host = parsed.hostname or "127.0.0.1"
        port = parsed.port if parsed.port is not None else 80
        path = parsed.path or "/"

        try:
            sock = socket.create_server((host, port))
        except OSError as e:
            raise PopupError(f"Cannot listen for redirect on {host}:{port}: {e}") from e

        loop = asyncio.get_running_loop()
        redirect: asyncio.Future[dict[str, str]] = loop.create_future()
        server = uvicorn.Server(
            uvicorn.Config(app=self._build_app(path, redirect), log_level="warning")
        )
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))
        logger.info(f"Listening for authorization redirect on {host}:{port}{path}")

        try:
            opened = await asyncio.to_thread(
                self._open_browser, url, new=options.get("new", 1)
            )
            if not opened:
                raise PopupError("Could not open a browser window for authorization")

            done, _ = await asyncio.wait(
                {redirect, serve_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if not done:
                raise PopupTimeoutError(
                    f"No authorization redirect received within {timeout} seconds"
                )
            if redirect not in done:
                raise PopupError("Redirect listener stopped before the redirect")

            params = redirect.result()
        finally:
            server.should_exit = True
            if not serve_task.done():
                await serve_task
            sock.close()

        logger.debug("Received authorization redirect on loopback listener")
        return response_from_params(params)

    def _build_app(
        self, path: str, redirect: asyncio.Future[dict[str, str]]
    ) -> Starlette:
        async def handle_redirect(request: Request) -> Response:
            params = dict(request.query_params)
            if not params:
                return HTMLResponse(_FRAGMENT_RELAY_PAGE)
            if not redirect.done():
                redirect.set_result(params)
            return HTMLResponse(_DONE_PAGE)

        return Starlette(routes=[Route(path, handle_redirect, methods=["GET"])])
