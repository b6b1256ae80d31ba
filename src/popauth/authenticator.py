"""Multi-provider entry point.

Holds the configured providers together with the collaborators they share
and runs one authorization attempt per :meth:`Authenticator.authenticate` call.
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
from popauth.client.collaborators.storage import MemoryStorage, Storage
from popauth.client.models.errors import ProviderConfigError
from popauth.client.models.provider import ProviderConfig
from popauth.client.models.tokens import OAuth2Options
from popauth.client.oauth_client import OAuth2Client
from popauth.config import load_providers

logger = logging.getLogger(__name__)


class Authenticator:
    """Front door for authenticating against any configured provider."""

    def __init__(
        self,
        providers: Mapping[str, ProviderConfig | Mapping[str, Any]],
        http_client: HttpClient | None = None,
        storage: Storage | None = None,
        popup: PopupAuthenticator | None = None,
        options: OAuth2Options | None = None,
    ):
        self.providers = load_providers(providers)
        self._owned_http_client = None
        if http_client is None:
            http_client = self._owned_http_client = HttpxTransport()
        self.http_client = http_client
        self.storage = storage or MemoryStorage()
        self.popup = popup or LoopbackPopupAuthenticator()
        self.options = options or OAuth2Options()

    def client_for(self, provider: str) -> OAuth2Client:
        """Build the OAuth client for a configured provider.

        Raises:
            ProviderConfigError: If the provider is not configured
        """
        try:
            config = self.providers[provider]
        except KeyError:
            raise ProviderConfigError(f"Unknown provider: {provider}") from None

        return OAuth2Client(
            self.http_client,
            self.storage,
            config,
            options=self.options,
            popup=self.popup,
        )

    async def authenticate(
        self, provider: str, user_data: Mapping[str, Any] | None = None
    ) -> Any:
        """Run an authorization attempt with ``provider``.

        See :meth:`OAuth2Client.init` for results and errors.
        """
        logger.debug(f"Authenticating with provider {provider}")
        return await self.client_for(provider).init(user_data)

    async def aclose(self) -> None:
        if self._owned_http_client is not None:
            await self._owned_http_client.aclose()
