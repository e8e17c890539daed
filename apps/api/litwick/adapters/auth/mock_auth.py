"""Deterministic identities for local runs and the test suite."""

from litwick.adapters.auth.base import AuthVerificationError, TokenVerifier
from litwick.schemas.auth import AuthPrincipal

_TOKEN_PREFIX = "test"


class MockTokenVerifier(TokenVerifier):
    """``test:<subject>`` or ``test:<subject>:<email>``; the e-mail defaults to ``<subject>@example.test``."""

    def verify_token(self, token: str) -> AuthPrincipal:
        prefix, _, rest = token.partition(":")
        if prefix != _TOKEN_PREFIX or not rest or rest.count(":") > 1:
            raise AuthVerificationError("Invalid bearer token")

        subject, has_email, email = rest.partition(":")
        subject = subject.strip()
        if not subject:
            raise AuthVerificationError("Bearer token missing user identity")

        email = email.strip() if has_email else f"{subject}@example.test"
        if not email:
            raise AuthVerificationError("Bearer token missing email")
        return AuthPrincipal(user_id=subject, email=email)


__all__ = ["MockTokenVerifier"]
