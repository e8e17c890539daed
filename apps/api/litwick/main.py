"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from litwick.core.config import get_settings
from litwick.core.providers import build_payment_provider, build_transcription_provider
from litwick.errors import ApiError
from litwick.repositories.memory import InMemoryStore
from litwick.routes import accounts_router, jobs_router, payments_router
from litwick.schemas.error import ErrorResponse
from litwick.services.dispatcher import JobDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    app.state.dispatcher.shutdown(cancel=True)
    app.state.transcription_provider.close()
    app.state.payment_provider.close()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Litwick API", version="1.0.0", lifespan=_lifespan)
    app.state.store = InMemoryStore()
    app.state.dispatcher = JobDispatcher(max_workers=settings.worker_max_workers)
    app.state.transcription_provider = build_transcription_provider(settings)
    app.state.payment_provider = build_payment_provider(settings)
    if settings.mercadopago_webhook_secret is None:
        logger.warning("config.webhook_secret_missing webhook_signature_verification=disabled")

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()})
        payload = ErrorResponse(
            code="VALIDATION_ERROR",
            message="Invalid request payload",
            details={"fields": fields},
        )
        return JSONResponse(status_code=400, content=payload.model_dump())

    api_prefix = "/api/v1"
    app.include_router(accounts_router, prefix=api_prefix)
    app.include_router(jobs_router, prefix=api_prefix)
    app.include_router(payments_router, prefix=api_prefix)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
