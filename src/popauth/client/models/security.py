"""Security-related models for popup OAuth 2.0 authentication.

Contains PKCE parameters and other cryptographic primitives needed
for secure authorization code flows.
"""

from __future__ import annotations

from dataclasses import dataclass, field

SUPPORTED_CHALLENGE_METHODS = ("S256", "plain")


@dataclass(frozen=True)
class PKCEParameters:
    """PKCE (Proof Key for Code Exchange) parameters for one authorization attempt.

    Immutable parameters generated at the start of each attempt to prevent
    authorization code interception attacks (RFC 7636). Held in memory only
    until the attempt's token exchange completes.
    """

    code_verifier: str = field(repr=False)
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not (43 <= len(self.code_verifier) <= 128):
            raise ValueError("code_verifier must be 43-128 characters")
        if not (43 <= len(self.code_challenge) <= 128):
            raise ValueError("code_challenge must be 43-128 characters")
        if self.code_challenge_method not in SUPPORTED_CHALLENGE_METHODS:
            raise ValueError(
                f"Unsupported code challenge method: {self.code_challenge_method}"
            )
