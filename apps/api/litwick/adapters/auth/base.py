"""Identity provider seam in front of the account directory."""

from abc import ABC, abstractmethod

from litwick.schemas.auth import AuthPrincipal


class AuthVerificationError(Exception):
    """The bearer token does not identify a caller; surfaced as 401 ``UNAUTHORIZED``."""


class TokenVerifier(ABC):
    @abstractmethod
    def verify_token(self, token: str) -> AuthPrincipal:
        """Return the subject that keys the caller's account and the e-mail used at checkout."""


__all__ = ["AuthVerificationError", "TokenVerifier"]
