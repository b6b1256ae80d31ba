"""Token exchange models for popup OAuth 2.0.

Contains the exchange options shared by all providers of an application and
the token endpoint response model.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from popauth.client.models.errors import ExchangeError

DEFAULT_EXCHANGE_PAYLOAD: dict[str, Any] = {"grant_type": "authorization_code"}


class OAuth2Options(BaseModel):
    """Application-wide token exchange options.

    ``base_url`` is joined in front of each provider's token URL when set.
    ``with_credentials`` asks the HTTP client to send its cookies along with
    the token request.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    base_url: str | None = None
    with_credentials: bool = False


class TokenResponse(BaseModel):
    """OAuth 2.0 token response (RFC 6749 Section 5).

    Represents the response from a token endpoint, including both
    successful responses (Section 5.1) and error responses (Section 5.2).
    Backends that proxy the exchange may add fields; they are kept.
    """

    model_config = ConfigDict(extra="allow")

    # Success response fields (RFC 6749 Section 5.1)
    access_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds until expiry
    refresh_token: str | None = None
    scope: str | None = None

    # Error response fields (RFC 6749 Section 5.2)
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_http_response(cls, response: httpx.Response) -> TokenResponse:
        """Parse a token endpoint response body.

        Raises:
            ExchangeError: If the body is not a JSON token response
        """
        try:
            return cls.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ExchangeError(
                f"Invalid token response format: {e}", response=response
            ) from e

    def is_success(self) -> bool:
        """Check if token response indicates success."""
        return self.error is None and self.access_token is not None

    def is_error(self) -> bool:
        """Check if token response indicates an error."""
        return self.error is not None

    def calculate_expires_at(self) -> float | None:
        """Calculate absolute expiry timestamp from expires_in.

        Returns:
            Unix timestamp when token expires, or None if no expiry
        """
        if self.expires_in is None:
            return None
        return time.time() + self.expires_in
