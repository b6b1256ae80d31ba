"""Provider registry loading.

Providers are configured as a mapping from provider name to options, using
the same option names as :class:`~popauth.client.models.provider.ProviderConfig`::

    {
      "providers": {
        "github": {
          "clientId": "...",
          "authorizationEndpoint": "https://github.com/login/oauth/authorize",
          "redirectUri": "http://127.0.0.1:8765/callback",
          "url": "/auth/github",
          "scope": ["read:user"]
        }
      },
      "options": {"baseUrl": "https://api.example.com", "withCredentials": true}
    }

A file may also contain the provider mapping alone.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from popauth.client.models.errors import ProviderConfigError
from popauth.client.models.provider import (
    DEFAULT_PROVIDER_CONFIG,
    ProviderConfig,
    merge_provider_config,
)
from popauth.client.models.tokens import OAuth2Options

logger = logging.getLogger(__name__)


def load_providers(
    providers: Mapping[str, ProviderConfig | Mapping[str, Any]],
) -> dict[str, ProviderConfig]:
    """Build provider configs keyed by name, each merged over the defaults.

    The mapping key names the provider unless the options carry the same
    name explicitly; a different explicit name is rejected because the name
    namespaces the provider's storage key.

    Raises:
        ProviderConfigError: If a name conflicts or options are invalid
    """
    registry: dict[str, ProviderConfig] = {}

    for key, raw in providers.items():
        config = merge_provider_config(DEFAULT_PROVIDER_CONFIG, raw)
        if config.name is None:
            config = config.model_copy(update={"name": key})
        elif config.name != key:
            raise ProviderConfigError(
                f"Provider {key!r} declares a different name {config.name!r}"
            )
        registry[key] = config

    logger.debug(f"Loaded {len(registry)} provider configurations")
    return registry


def load_providers_file(
    path: str | os.PathLike[str],
) -> tuple[dict[str, ProviderConfig], OAuth2Options]:
    """Load providers and exchange options from a JSON file.

    Raises:
        ProviderConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ProviderConfigError(f"Failed to load provider file {path}: {e}") from e

    if not isinstance(document, dict):
        raise ProviderConfigError(f"Provider file {path} must contain a JSON object")

    if "providers" in document:
        providers = document["providers"]
        raw_options = document.get("options") or {}
    else:
        providers = document
        raw_options = {}

    try:
        options = OAuth2Options.model_validate(raw_options)
    except ValidationError as e:
        raise ProviderConfigError(f"Invalid options in {path}: {e}") from e

    logger.info(f"Loaded provider configuration from {path}")
    return load_providers(providers), options
