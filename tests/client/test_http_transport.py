"""Tests for the httpx-backed token exchange transport."""

from urllib.parse import parse_qs

import httpx
import pytest

from popauth.client.collaborators.http import HttpxTransport
from popauth.client.models.errors import ExchangeError
from popauth.client.models.tokens import TokenResponse


class TestHttpxTransport:
    def setup_method(self):
        # Arrange
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body = {"access_token": "access-token-xyz", "token_type": "Bearer"}

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(self.status_code, json=self.body)

        self.http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            cookies={"session": "s-1"},
        )
        self.transport = HttpxTransport(http_client=self.http_client)

    async def test_posts_form_encoded_payload(self):
        # Act
        response = await self.transport.post(
            "https://api.example.com/auth/github",
            {"grant_type": "authorization_code", "code": "abc"},
            with_credentials=False,
        )

        # Assert
        assert response.status_code == 200
        request = self.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.example.com/auth/github"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.headers["Accept"] == "application/json"
        assert parse_qs(request.content.decode()) == {
            "grant_type": ["authorization_code"],
            "code": ["abc"],
        }

    async def test_cookies_only_sent_with_credentials(self):
        # Act
        await self.transport.post("https://api.example.com/t", {}, with_credentials=False)
        await self.transport.post("https://api.example.com/t", {}, with_credentials=True)

        # Assert
        assert "Cookie" not in self.requests[0].headers
        assert self.requests[1].headers["Cookie"] == "session=s-1"

    async def test_non_2xx_raises_exchange_error_with_response(self):
        # Arrange
        self.status_code = 400
        self.body = {"error": "invalid_grant"}

        # Act & Assert
        with pytest.raises(ExchangeError) as exc_info:
            await self.transport.post("https://api.example.com/t", {}, with_credentials=False)

        assert exc_info.value.response.status_code == 400
        assert len(self.requests) == 1

    async def test_network_error_raises_exchange_error(self):
        # Arrange
        def failing_handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = HttpxTransport(
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(failing_handler))
        )

        # Act & Assert
        with pytest.raises(ExchangeError) as exc_info:
            await transport.post("https://api.example.com/t", {}, with_credentials=False)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)



    async def test_uncredentialed_response_cookies_are_not_kept(self):
        """Test Set-Cookie from an uncredentialed exchange leaves the jar as it was."""
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(
                200,
                json=self.body,
                headers=[("Set-Cookie", "tracker=t-1"), ("Set-Cookie", "session=s-2")],
            )

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        http_client.cookies.set("session", "s-1", domain="api.example.com")
        transport = HttpxTransport(http_client=http_client)

        # Act
        await transport.post("https://api.example.com/t", {}, with_credentials=False)

        # Assert
        assert http_client.cookies.get("tracker") is None
        assert http_client.cookies.get("session") == "s-1"

    async def test_credentialed_response_cookies_are_kept(self):
        # Arrange
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json=self.body, headers={"Set-Cookie": "tracker=t-1"}
            )

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = HttpxTransport(http_client=http_client)

        # Act
        await transport.post("https://api.example.com/t", {}, with_credentials=True)

        # Assert
        assert http_client.cookies.get("tracker") == "t-1"


class TestTokenResponseParsing:
    def test_parses_success_response(self):
        # Arrange
        response = httpx.Response(
            200,
            json={
                "access_token": "access-token-xyz",
                "expires_in": 3600,
                "refresh_token": "refresh-token-abc",
                "user": {"id": 1},
            },
        )

        # Act
        token_response = TokenResponse.from_http_response(response)

        # Assert
        assert token_response.is_success()
        assert token_response.token_type == "Bearer"
        assert token_response.expires_in == 3600
        assert token_response.model_extra == {"user": {"id": 1}}
        assert token_response.calculate_expires_at() is not None

    def test_malformed_body_raises_exchange_error(self):
        # Arrange
        response = httpx.Response(200, content=b"<html>not json</html>")

        # Act & Assert
        with pytest.raises(ExchangeError) as exc_info:
            TokenResponse.from_http_response(response)

        assert exc_info.value.response is response
