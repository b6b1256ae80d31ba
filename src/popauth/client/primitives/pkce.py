"""PKCE (Proof Key for Code Exchange) generation for popup OAuth 2.0 flows.

Implements RFC 7636 verifier and challenge generation to prevent
authorization code interception attacks. Verifiers are never logged.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string

from popauth.client.models.errors import PKCEError
from popauth.client.models.security import PKCEParameters

# RFC 7636 Section 4.1 unreserved characters
VERIFIER_ALPHABET = string.ascii_letters + string.digits + "-._~"


class PKCEGenerator:
    """Generates one PKCE verifier/challenge pair per authorization attempt.

    Supports the ``S256`` transform, which is the default and must be used
    unless a provider explicitly requires ``plain``.
    """

    def __init__(self, verifier_length: int = 128):
        """Initialize the generator.

        Args:
            verifier_length: Code verifier length, 43-128 characters
        """
        if not 43 <= verifier_length <= 128:
            raise ValueError("code verifier length must be 43-128 characters")
        self.verifier_length = verifier_length

    def generate(self, method: str = "S256") -> PKCEParameters:
        """Generate fresh PKCE parameters.

        Args:
            method: Code challenge method, ``S256`` or ``plain``

        Returns:
            PKCEParameters: Immutable parameters for one attempt

        Raises:
            PKCEError: If the challenge method is not supported
        """
        code_verifier = self._generate_code_verifier()
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=self.derive_challenge(code_verifier, method),
            code_challenge_method=method,
        )

    @staticmethod
    def derive_challenge(code_verifier: str, method: str = "S256") -> str:
        """Derive the code challenge for a verifier.

        RFC 7636 Section 4.2: for S256 the challenge is
        BASE64URL-ENCODE(SHA256(ASCII(code_verifier))); for plain it is the
        verifier itself.
        """
        if method == "S256":
            digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
            return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
        if method == "plain":
            return code_verifier
        raise PKCEError(f"Unsupported code challenge method: {method}")

    def _generate_code_verifier(self) -> str:
        return "".join(
            secrets.choice(VERIFIER_ALPHABET) for _ in range(self.verifier_length)
        )
