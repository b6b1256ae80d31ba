"""Authorization code to token exchange for popup OAuth 2.0 flows.

Maps the provider's redirect response onto a token endpoint payload and posts
it through the HTTP collaborator. The code verifier from the same attempt is
always attached (RFC 7636).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from popauth.client.collaborators.http import HttpClient
from popauth.client.models.flow import AuthorizationResponse
from popauth.client.models.provider import ProviderConfig
from popauth.client.models.security import PKCEParameters
from popauth.client.models.tokens import DEFAULT_EXCHANGE_PAYLOAD, OAuth2Options
from popauth.utils import join_url

logger = logging.getLogger(__name__)


class TokenExchanger:
    """Exchanges authorization codes through the application's token endpoint.

    Single attempt, fail fast: errors raised by the HTTP client propagate
    unchanged and nothing is retried.
    """

    def __init__(self, http_client: HttpClient):
        self._http_client = http_client

    async def exchange(
        self,
        config: ProviderConfig,
        options: OAuth2Options,
        pkce: PKCEParameters,
        response: AuthorizationResponse,
        user_data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Post the token exchange request for one authorization response.

        Args:
            config: Provider configuration of the attempt
            options: Application-wide exchange options
            pkce: PKCE parameters generated for the attempt
            response: Parameters the provider redirected back with
            user_data: Extra payload fields supplied by the caller

        Returns:
            Whatever the HTTP client returns for the request
        """
        payload = self.build_payload(config, pkce, response, user_data)
        url = self.token_url(config, options)

        logger.debug(
            f"Exchanging authorization code for provider {config.name} at {url}"
        )
        return await self._http_client.post(
            url, payload, with_credentials=options.with_credentials
        )

    @staticmethod
    def token_url(config: ProviderConfig, options: OAuth2Options) -> str:
        if options.base_url:
            return join_url(options.base_url, config.url)
        return config.url

    @staticmethod
    def build_payload(
        config: ProviderConfig,
        pkce: PKCEParameters,
        response: AuthorizationResponse,
        user_data: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build the token endpoint payload; later assignments win."""
        payload = dict(DEFAULT_EXCHANGE_PAYLOAD)
        payload.update(user_data or {})

        for key in config.response_params:
            if key == "code":
                payload[key] = response.code
            elif key == "client_id":
                payload[key] = config.client_id
            elif key == "redirect_uri":
                payload[key] = config.redirect_uri
            else:
                payload[key] = response.get(key)

        payload["code_verifier"] = pkce.code_verifier

        if response.state:
            payload["state"] = response.state

        return payload
