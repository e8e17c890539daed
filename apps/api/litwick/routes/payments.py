"""Payment routes.

Handlers that reach the payment provider are plain ``def``; the provider client blocks.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, status

from litwick.repositories.memory import AccountRecord
from litwick.routes.dependencies import get_current_account, get_payment_reconciler, get_payment_service
from litwick.schemas.error import ErrorResponse, NoLeakNotFoundError, ProviderFailureError
from litwick.schemas.payment import (
    CreatePaymentRequest,
    CreatePaymentResponse,
    CreditPackageList,
    PaymentCallbackResponse,
    PaymentList,
    WebhookAck,
    WebhookNotification,
)
from litwick.services.payments import PaymentService
from litwick.services.reconciler import PaymentReconciler, ReconcileOutcome

router = APIRouter(prefix="/payments", tags=["Payments"])


def _callback_message(outcome: ReconcileOutcome) -> str:
    if outcome.replayed:
        return "payment already processed"
    if not outcome.applied:
        return "payment pending"
    return f"payment {outcome.payment.status.value}"


@router.get("/packages", response_model=CreditPackageList)
async def list_packages(service: Annotated[PaymentService, Depends(get_payment_service)]) -> CreditPackageList:
    return service.list_packages()


@router.post(
    "",
    response_model=CreatePaymentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 502: {"model": ProviderFailureError}},
)
def create_payment(
    payload: CreatePaymentRequest,
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> CreatePaymentResponse:
    return service.create_payment(account=account, package_id=payload.package_id)


@router.get("", response_model=PaymentList)
async def list_payments(
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
) -> PaymentList:
    return service.list_payments(account_id=account.id)


@router.get(
    "/success",
    response_model=PaymentCallbackResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        409: {"model": ErrorResponse},
        502: {"model": ProviderFailureError},
    },
)
def payment_success(
    account: Annotated[AccountRecord, Depends(get_current_account)],
    reconciler: Annotated[PaymentReconciler, Depends(get_payment_reconciler)],
    service: Annotated[PaymentService, Depends(get_payment_service)],
    external_reference: Annotated[str | None, Query()] = None,
    provider_payment_id: Annotated[str | None, Query(alias="payment_id")] = None,
    payment_status: Annotated[str | None, Query(alias="status")] = None,
    preference_id: Annotated[str | None, Query()] = None,
) -> PaymentCallbackResponse:
    outcome = reconciler.handle_success_callback(
        account_id=account.id,
        external_reference=external_reference,
        provider_payment_id=provider_payment_id,
        status=payment_status,
        preference_id=preference_id,
    )
    return PaymentCallbackResponse(
        payment=service.to_payment(outcome.payment),
        replayed=outcome.replayed,
        message=_callback_message(outcome),
    )


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        502: {"model": ProviderFailureError},
    },
)
def payment_webhook(
    notification: WebhookNotification,
    reconciler: Annotated[PaymentReconciler, Depends(get_payment_reconciler)],
    data_id: Annotated[str | None, Query(alias="data.id")] = None,
    x_signature: Annotated[str | None, Header(alias="x-signature")] = None,
    x_request_id: Annotated[str | None, Header(alias="x-request-id")] = None,
) -> WebhookAck:
    outcome = reconciler.handle_webhook(
        query_data_id=data_id,
        signature_header=x_signature,
        request_id=x_request_id,
        notification=notification,
    )
    return WebhookAck(processed=outcome is not None and outcome.applied)
