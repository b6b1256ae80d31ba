"""Exception hierarchy for popup OAuth 2.0 authentication errors.

Provides specific exception types for different failure modes to enable
precise error handling by callers. The core never retries; every error
propagates to the caller of ``OAuth2Client.init``.
"""

from __future__ import annotations

from typing import Any


class OAuth2Error(Exception):
    """Base exception for all popup OAuth 2.0 related errors."""

    pass


class ProviderConfigError(OAuth2Error):
    """Raised when a provider configuration is invalid or incomplete."""

    pass


class PKCEError(OAuth2Error):
    """Raised when PKCE parameters cannot be derived for the requested method."""

    pass


class PopupError(OAuth2Error):
    """Raised when the authorization window fails.

    Covers windows that could not be opened, were closed by the user, or
    were navigated by the provider to an error page.
    """

    pass


class PopupClosedError(PopupError):
    """Raised when the user closes the window before the provider redirects."""

    pass


class PopupTimeoutError(PopupError):
    """Raised when no redirect arrives within the popup's timeout."""

    pass


class AuthorizationDeniedError(PopupError):
    """Raised when the provider redirects back with an OAuth error response."""

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        error_uri: str | None = None,
    ):
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri
        message = f"Authorization failed: {error}"
        if error_description:
            message += f" ({error_description})"
        if error_uri:
            message += f" See: {error_uri}"
        super().__init__(message)


class StateMismatchError(OAuth2Error):
    """Raised when the returned state differs from the persisted state.

    Fatal to the attempt; it may indicate a CSRF attempt or a newer attempt
    for the same provider having overwritten the stored value.
    """

    pass


class ExchangeError(OAuth2Error):
    """Raised when the token endpoint request fails at the HTTP layer."""

    def __init__(self, message: str, response: Any | None = None):
        super().__init__(message)
        self.response = response
