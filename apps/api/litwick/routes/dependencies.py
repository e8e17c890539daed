"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from litwick.adapters.auth import (
    AuthVerificationError,
    FirebaseTokenVerifier,
    MockTokenVerifier,
    TokenVerifier,
)
from litwick.adapters.payments import PaymentProvider
from litwick.adapters.transcription import TranscriptionProvider
from litwick.core.config import Settings, get_settings
from litwick.core.logging_safety import safe_log_identifier
from litwick.errors import ApiError
from litwick.repositories.memory import AccountRecord, InMemoryStore
from litwick.schemas.auth import AuthPrincipal
from litwick.services.accounts import AccountService
from litwick.services.dispatcher import JobDispatcher
from litwick.services.job_runner import JobRunner
from litwick.services.jobs import JobService
from litwick.services.ledger import LedgerService
from litwick.services.payments import PaymentService
from litwick.services.reconciler import PaymentReconciler

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _auth_error(message: str) -> ApiError:
    return ApiError(status_code=401, code="UNAUTHORIZED", message=message)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_token_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> TokenVerifier:
    """Resolve provider adapter from configuration."""
    if settings.auth_provider == "firebase":
        return FirebaseTokenVerifier(
            project_id=settings.firebase_project_id,
            audience=settings.firebase_audience,
        )
    return MockTokenVerifier()


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> AuthPrincipal:
    """Validate bearer token and attach normalized principal to request context."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid or missing bearer token")

    try:
        principal = verifier.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error(str(exc) or "Invalid bearer token") from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="uid"),
    )
    request.state.auth_principal = principal
    return principal


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_dispatcher(request: Request) -> JobDispatcher:
    return request.app.state.dispatcher


def get_transcription_provider(request: Request) -> TranscriptionProvider:
    return request.app.state.transcription_provider


def get_payment_provider(request: Request) -> PaymentProvider:
    return request.app.state.payment_provider


def get_ledger_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> LedgerService:
    return LedgerService(store)


def get_account_service(
    store: Annotated[InMemoryStore, Depends(get_store)],
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AccountService:
    return AccountService(store, ledger, signup_credits=settings.signup_credits)


def get_current_account(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> AccountRecord:
    return service.resolve_account(principal)


def get_job_service(
    store: Annotated[InMemoryStore, Depends(get_store)],
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
    dispatcher: Annotated[JobDispatcher, Depends(get_dispatcher)],
    provider: Annotated[TranscriptionProvider, Depends(get_transcription_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JobService:
    runner = JobRunner(
        store=store,
        ledger=ledger,
        provider=provider,
        poll_interval=settings.poll_interval_seconds,
        timeout=settings.job_timeout_seconds,
        export_formats=settings.export_formats,
    )
    return JobService(
        store,
        dispatcher=dispatcher,
        runner=runner,
        default_language=settings.default_language,
    )


def get_payment_service(
    store: Annotated[InMemoryStore, Depends(get_store)],
    provider: Annotated[PaymentProvider, Depends(get_payment_provider)],
) -> PaymentService:
    return PaymentService(store, provider)


def get_payment_reconciler(
    store: Annotated[InMemoryStore, Depends(get_store)],
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
    provider: Annotated[PaymentProvider, Depends(get_payment_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PaymentReconciler:
    return PaymentReconciler(
        store,
        ledger,
        provider,
        webhook_secret=settings.mercadopago_webhook_secret,
    )
