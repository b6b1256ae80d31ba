"""Authorization request serialization for popup OAuth 2.0 flows.

Turns a provider configuration into the canonical query string appended to
the provider's authorization endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

from popauth.client.collaborators.storage import Storage
from popauth.client.models.provider import ProviderConfig, UrlParam
from popauth.utils import encode_uri_component

logger = logging.getLogger(__name__)

_SKIP = object()


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    return str(value)


class RequestSerializer:
    """Builds authorization request query strings.

    Parameter order is part of the contract: ``default_url_params``, then
    ``required_url_params``, then ``optional_url_params``, each in configured
    order. Only ``redirect_uri`` is ever left out (when unset); every other
    parameter is emitted, with an empty value when it resolves to ``None``.
    This includes ``state``: with nothing persisted the query carries an
    empty ``state=`` rather than a placeholder such as ``null``.

    Values other than ``redirect_uri`` and ``state`` are not encoded.
    Booleans render as ``true``/``false`` and non-scope sequences are joined
    with commas.
    """

    def serialize(self, config: ProviderConfig, storage: Storage) -> str:
        """Serialize the configured URL parameters.

        Args:
            config: Provider configuration for the current attempt
            storage: Storage holding the attempt's persisted state value

        Returns:
            Query string without the leading ``?``
        """
        pairs: list[tuple[str, str]] = []

        for param in config.url_params:
            value = self._resolve(param, config, storage)
            if value is _SKIP:
                continue
            pairs.append((param.name, _stringify(value)))

        logger.debug(
            f"Serialized {len(pairs)} authorization parameters for "
            f"provider {config.name}"
        )
        return "&".join(f"{name}={value}" for name, value in pairs)

    def _resolve(self, param: UrlParam, config: ProviderConfig, storage: Storage) -> Any:
        if param.name == "state":
            stored = storage.get_item(config.state_key)
            return None if stored is None else encode_uri_component(stored)

        value = config.value_of(param.attribute)

        if param.name == "redirect_uri":
            return encode_uri_component(value) if value else _SKIP

        if param.name == "scope" and isinstance(value, (list, tuple)):
            delimiter = config.scope_delimiter or ""
            value = delimiter.join(value)
            if config.scope_prefix:
                value = delimiter.join([config.scope_prefix, value])

        return value

