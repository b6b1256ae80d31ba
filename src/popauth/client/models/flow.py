"""Authorization flow models for popup OAuth 2.0.

Contains the model for the parameters a provider sends back on redirect.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuthorizationResponse(BaseModel):
    """Parameters returned by the provider through the redirect.

    Providers may add arbitrary fields beside the standard ones; they are
    kept as extra attributes and reachable through :meth:`get`.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> AuthorizationResponse:
        return cls.model_validate(dict(params))

    def get(self, key: str, default: Any = None) -> Any:
        """Return any standard or provider specific field."""
        if key in type(self).model_fields:
            value = getattr(self, key)
        else:
            value = (self.model_extra or {}).get(key)
        return default if value is None else value

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None
