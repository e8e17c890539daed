"""Firebase ID token verification for the account directory."""

from __future__ import annotations

from litwick.adapters.auth.base import AuthVerificationError, TokenVerifier
from litwick.schemas.auth import AuthPrincipal


class FirebaseTokenVerifier(TokenVerifier):
    """The Firebase ``uid`` keys the account; the verified e-mail is the payer e-mail at checkout.

    Tokens without an e-mail claim are rejected because checkout needs one.
    """

    def __init__(self, project_id: str | None, audience: str | None) -> None:
        self._project_id = project_id
        self._audience = audience

    def verify_token(self, token: str) -> AuthPrincipal:
        try:
            import firebase_admin
            from firebase_admin import auth as firebase_auth
        except ImportError as exc:  # pragma: no cover - depends on optional package
            raise AuthVerificationError("Firebase auth verifier is unavailable") from exc

        if not firebase_admin._apps:
            firebase_admin.initialize_app(options={"projectId": self._project_id} if self._project_id else None)

        try:
            claims = firebase_auth.verify_id_token(token, check_revoked=True)
        except Exception as exc:  # pragma: no cover - provider exception surface
            raise AuthVerificationError("Invalid bearer token") from exc

        if self._audience and claims.get("aud") != self._audience:
            raise AuthVerificationError("Invalid bearer token audience")

        subject = str(claims.get("uid") or claims.get("sub") or "").strip()
        email = str(claims.get("email") or "").strip()
        if not subject:
            raise AuthVerificationError("Bearer token missing user identity")
        if not email:
            raise AuthVerificationError("Bearer token missing email")
        return AuthPrincipal(user_id=subject, email=email)


__all__ = ["FirebaseTokenVerifier"]
