"""Security utilities for popup OAuth 2.0 flows.

Provides cryptographically secure state generation and the constant-time
comparison used to validate state on redirect.
"""

from __future__ import annotations

import secrets
import string

from popauth.client.models.errors import StateMismatchError


def generate_state() -> str:
    """Generate cryptographically secure state parameter.

    Suitable as a provider's ``state`` producer.

    Returns:
        Cryptographically secure random state string (32 characters)
    """
    alphabet = string.ascii_letters + string.digits + "-._~"
    return "".join(secrets.choice(alphabet) for _ in range(32))


def validate_state(expected: str | None, actual: str) -> None:
    """Validate returned state matches the persisted value.

    Args:
        expected: State persisted when the attempt started, if any
        actual: State returned by the provider

    Raises:
        StateMismatchError: If the values differ or nothing was persisted
    """
    if expected is None or not secrets.compare_digest(
        expected.encode("utf-8"), actual.encode("utf-8")
    ):
        raise StateMismatchError(
            "State parameter value does not match original OAuth request state value"
        )
