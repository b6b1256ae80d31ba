"""HTTP client used for the token exchange request."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from popauth.client.models.errors import ExchangeError

logger = logging.getLogger(__name__)


class HttpClient(Protocol):
    """Protocol for the HTTP client issuing token exchange requests."""

    async def post(
        self, url: str, payload: Mapping[str, Any], *, with_credentials: bool
    ) -> Any:
        """POST ``payload`` to ``url`` and return the response.

        Args:
            url: Token exchange endpoint
            payload: Request body fields
            with_credentials: Whether cookies should accompany the request
        """
        ...


class HttpxTransport:
    """Token exchange client backed by ``httpx.AsyncClient``.

    Sends the payload form-encoded as RFC 6749 requires. Cookies held by the
    underlying client are only sent when ``with_credentials`` is true, and
    cookies set by responses to uncredentialed requests are not kept.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the transport.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Pre-configured client to use instead of a new one
        """
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def post(
        self, url: str, payload: Mapping[str, Any], *, with_credentials: bool
    ) -> httpx.Response:
        """POST a form-encoded payload.

        Returns:
            The successful HTTP response

        Raises:
            ExchangeError: On network failure or a non-2xx response
        """
        logger.debug(f"Posting token exchange request to {url}")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        request = self._http_client.build_request(
            "POST", url, data=dict(payload), headers=headers
        )
        if not with_credentials:
            request.headers.pop("Cookie", None)
        previous_cookies = list(self._http_client.cookies.jar)

        try:
            response = await self._http_client.send(request)
        except httpx.HTTPError as e:
            raise ExchangeError(f"HTTP error during token exchange: {e}") from e

        if not with_credentials:
            self._forget_response_cookies(response, previous_cookies)

        if not response.is_success:
            raise ExchangeError(
                f"Token exchange failed with status {response.status_code}",
                response=response,
            )

        logger.info("Token exchange request succeeded")
        return response

    def _forget_response_cookies(
        self, response: httpx.Response, previous_cookies: list[Any]
    ) -> None:
        """Undo what an uncredentialed response stored in the shared jar."""
        jar = self._http_client.cookies.jar
        previous = {(c.domain, c.path, c.name): c for c in previous_cookies}
        stored = {(c.domain, c.path, c.name) for c in jar}

        for cookie in response.cookies.jar:
            key = (cookie.domain, cookie.path, cookie.name)
            if key in stored:
                jar.clear(*key)
            if key in previous:
                jar.set_cookie(previous[key])

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._http_client.aclose()
