"""Popup OAuth 2.0 client orchestration.

Coordinates state persistence, PKCE generation, authorization request
construction, the popup window and token exchange to provide a complete
authorization code flow for one provider.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from popauth.client.collaborators.http import HttpClient, HttpxTransport
from popauth.client.collaborators.popup import (
    LoopbackPopupAuthenticator,
    PopupAuthenticator,
)
from popauth.client.collaborators.storage import Storage
from popauth.client.models.provider import (
    DEFAULT_PROVIDER_CONFIG,
    ProviderConfig,
    merge_provider_config,
)
from popauth.client.models.tokens import OAuth2Options
from popauth.client.primitives.pkce import PKCEGenerator
from popauth.client.services.request import RequestSerializer
from popauth.client.services.security import validate_state
from popauth.client.services.tokens import TokenExchanger

logger = logging.getLogger(__name__)


class OAuth2Client:
    """OAuth 2.0 authorization code client for one provider.

    Each call to :meth:`init` is one authorization attempt:

    1. Persist the anti-forgery state under ``<name>_state``
    2. Generate PKCE parameters for the attempt
    3. Build the authorization URL
    4. Open the popup and wait for the redirect
    5. Return the raw response (implicit flow, or no token URL), or validate
       state and exchange the code for tokens

    Attempts for the same provider name share one storage slot, so only the
    most recent attempt can pass state validation. Run attempts for a
    provider one at a time.
    """

    def __init__(
        self,
        http_client: HttpClient | None,
        storage: Storage,
        provider_config: ProviderConfig | Mapping[str, Any],
        options: OAuth2Options | None = None,
        popup: PopupAuthenticator | None = None,
        pkce_generator: PKCEGenerator | None = None,
        serializer: RequestSerializer | None = None,
    ):
        """Initialize the client.

        Args:
            http_client: Client for the token exchange; None creates an
                HttpxTransport owned by this client
            storage: Store for anti-forgery state values
            provider_config: Provider settings, merged over the defaults
            options: Application-wide exchange options
            popup: Authorization window strategy; defaults to loopback
            pkce_generator: PKCE generator override
            serializer: Authorization request serializer override
        """
        self._owned_http_client = None
        if http_client is None:
            http_client = self._owned_http_client = HttpxTransport()

        self.storage = storage
        self.provider_config = merge_provider_config(
            DEFAULT_PROVIDER_CONFIG, provider_config
        )
        self.options = options or OAuth2Options()
        self.popup = popup or LoopbackPopupAuthenticator()

        self._pkce_generator = pkce_generator or PKCEGenerator()
        self._serializer = serializer or RequestSerializer()
        self._token_exchanger = TokenExchanger(http_client)

    @property
    def state_key(self) -> str:
        return self.provider_config.state_key

    async def init(self, user_data: Mapping[str, Any] | None = None) -> Any:
        """Run one authorization attempt.

        Args:
            user_data: Extra fields for the token exchange payload

        Returns:
            The raw AuthorizationResponse for implicit flows or providers
            without a token URL, otherwise the token exchange response

        Raises:
            ProviderConfigError: If required provider settings are missing
            PopupError: If the authorization window fails (unwrapped)
            StateMismatchError: If the returned state differs from the stored one
            ExchangeError: If the token request fails (unwrapped)
        """
        config = self.provider_config
        config.ensure_authorizable()

        logger.info(f"Starting authorization flow for provider {config.name}")

        self._persist_state(config)

        pkce = self._pkce_generator.generate(config.code_challenge_method)
        attempt_config = config.model_copy(
            update={
                "code_challenge": pkce.code_challenge,
                "code_challenge_method": pkce.code_challenge_method,
            }
        )

        authorization_url = self.build_authorization_url(attempt_config)
        logger.debug(f"Opening authorization window for provider {config.name}")

        response = await self.popup.open(
            authorization_url, config.redirect_uri, config.popup_options
        )

        if config.response_type == "token" or not config.url:
            logger.info(f"Authorization response received for provider {config.name}")
            return response

        if response.state:
            validate_state(self.storage.get_item(self.state_key), response.state)

        result = await self._token_exchanger.exchange(
            attempt_config, self.options, pkce, response, user_data
        )
        logger.info(f"Completed authorization flow for provider {config.name}")
        return result

    def build_authorization_url(self, config: ProviderConfig | None = None) -> str:
        """Build the authorization URL from the currently persisted state."""
        config = config or self.provider_config
        query = self._serializer.serialize(config, self.storage)
        return f"{config.authorization_endpoint}?{query}"

    def _persist_state(self, config: ProviderConfig) -> None:
        if config.state is None:
            logger.debug(f"No state configured for provider {config.name}")
            return
        self.storage.set_item(self.state_key, config.state.resolve())

    async def aclose(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owned_http_client is not None:
            await self._owned_http_client.aclose()
