"""Applies payment provider resolutions to local state exactly once."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import logging
from typing import Any, Literal

from litwick.adapters.payments.base import PaymentDetails, PaymentProvider, PaymentProviderError
from litwick.core.logging_safety import safe_log_identifier
from litwick.domain.signature import parse_signature_header, verify_signature
from litwick.errors import (
    AuthenticityError,
    InternalPersistenceError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from litwick.repositories.memory import InMemoryStore, PaymentRecord
from litwick.schemas.payment import PaymentStatus, WebhookNotification
from litwick.services.ledger import LedgerService

logger = logging.getLogger(__name__)

_TERMINAL_STATUS_BY_PROVIDER_STATUS: dict[str, PaymentStatus] = {
    "approved": PaymentStatus.APPROVED,
    "rejected": PaymentStatus.REJECTED,
    "cancelled": PaymentStatus.CANCELLED,
}


@dataclass(frozen=True, slots=True)
class PaymentResolution:
    payment_id: str
    provider_payment_id: str
    status: str
    source: Literal["webhook", "callback"]
    details: PaymentDetails | None = None
    preference_id: str | None = None


@dataclass(frozen=True, slots=True)
class ReconcileOutcome:
    payment: PaymentRecord
    replayed: bool
    applied: bool


def map_provider_status(status: str) -> PaymentStatus | None:
    """Terminal local status for a provider status; ``None`` while the provider is still deciding."""
    return _TERMINAL_STATUS_BY_PROVIDER_STATUS.get(status.strip().lower())


class PaymentReconciler:
    """Shared sink for the webhook and the browser return callback.

    Idempotency keys on the payment's own status: once it leaves ``pending``
    every later resolution is acknowledged without side effects, whichever
    path delivers it and in whatever order.
    """

    def __init__(
        self,
        store: InMemoryStore,
        ledger: LedgerService,
        provider: PaymentProvider,
        *,
        webhook_secret: str | None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._provider = provider
        self._webhook_secret = webhook_secret

    def reconcile(self, resolution: PaymentResolution) -> ReconcileOutcome:
        safe_payment_id = safe_log_identifier(resolution.payment_id, prefix="pid")
        payment: PaymentRecord | None = None
        try:
            with self._store.transaction():
                payment = self._store.get_payment(resolution.payment_id)
                if payment is None:
                    raise NotFoundError()

                if payment.status is not PaymentStatus.PENDING:
                    logger.info(
                        "payment.reconcile_replayed payment_id=%s status=%s source=%s",
                        safe_payment_id,
                        payment.status.value,
                        resolution.source,
                    )
                    return ReconcileOutcome(payment=payment, replayed=True, applied=False)

                new_status = map_provider_status(resolution.status)
                if new_status is None:
                    logger.info(
                        "payment.reconcile_pending payment_id=%s provider_status=%s source=%s",
                        safe_payment_id,
                        resolution.status,
                        resolution.source,
                    )
                    return ReconcileOutcome(payment=payment, replayed=False, applied=False)

                self._apply(payment, resolution, new_status)
        except (RuntimeError, InternalPersistenceError) as exc:
            # Rolled back; the provider has already settled.
            if payment is not None:
                logger.error(
                    "payment.reconcile_persist_failed payment_id=%s provider_status=%s source=%s",
                    safe_payment_id,
                    resolution.status,
                    resolution.source,
                )
                self._store.record_anomaly(
                    kind="payment_reconcile_failed",
                    entity_id=payment.id,
                    account_id=payment.account_id,
                    message=f"provider reported {resolution.status} but the update could not be persisted",
                )
            if isinstance(exc, InternalPersistenceError):
                raise
            raise InternalPersistenceError() from exc

        logger.info(
            "payment.reconciled payment_id=%s status=%s source=%s",
            safe_payment_id,
            payment.status.value,
            resolution.source,
        )
        return ReconcileOutcome(payment=payment, replayed=False, applied=True)

    def handle_webhook(
        self,
        *,
        query_data_id: str | None,
        signature_header: str | None,
        request_id: str | None,
        notification: WebhookNotification,
    ) -> ReconcileOutcome | None:
        """Verify and apply one provider notification; ``None`` when there is nothing to apply."""
        body_data_id = notification.data.id
        data_id = query_data_id or (str(body_data_id) if body_data_id is not None else "")
        self._verify_authenticity(data_id=data_id, signature_header=signature_header, request_id=request_id)

        if notification.type != "payment":
            logger.info("webhook.ignored type=%s action=%s", notification.type, notification.action)
            return None
        if not data_id:
            raise ValidationError("Missing payment id", code="WEBHOOK_PAYLOAD_INVALID")

        details = self._fetch_details(data_id)
        if not details.external_reference:
            logger.warning(
                "webhook.reference_missing provider_payment_id=%s",
                safe_log_identifier(data_id, prefix="ppid"),
            )
            return None

        return self.reconcile(
            PaymentResolution(
                payment_id=details.external_reference,
                provider_payment_id=details.provider_payment_id,
                status=details.status,
                source="webhook",
                details=details,
            )
        )

    def handle_success_callback(
        self,
        *,
        account_id: str,
        external_reference: str | None,
        provider_payment_id: str | None,
        status: str | None,
        preference_id: str | None,
    ) -> ReconcileOutcome:
        """Apply the browser return; the reported status is trusted only once the provider confirms it."""
        if not external_reference:
            raise ValidationError("Missing external reference", code="MISSING_EXTERNAL_REFERENCE")

        payment = self._store.get_payment_for_owner(account_id=account_id, payment_id=external_reference)
        if payment is None:
            raise NotFoundError()
        if payment.status is not PaymentStatus.PENDING:
            return ReconcileOutcome(payment=payment, replayed=True, applied=False)

        safe_payment_id = safe_log_identifier(payment.id, prefix="pid")
        if not provider_payment_id:
            logger.info("payment.callback_unconfirmed payment_id=%s reported_status=%s", safe_payment_id, status)
            return ReconcileOutcome(payment=payment, replayed=False, applied=False)

        details = self._fetch_details(provider_payment_id)
        if details.external_reference != payment.id:
            logger.warning(
                "payment.callback_reference_mismatch payment_id=%s provider_payment_id=%s",
                safe_payment_id,
                safe_log_identifier(provider_payment_id, prefix="ppid"),
            )
            raise ValidationError(
                "Provider payment does not belong to this purchase",
                code="PAYMENT_REFERENCE_MISMATCH",
                status_code=409,
            )
        if status and status.strip().lower() != details.status.strip().lower():
            logger.info(
                "payment.callback_status_differs payment_id=%s reported_status=%s provider_status=%s",
                safe_payment_id,
                status,
                details.status,
            )

        return self.reconcile(
            PaymentResolution(
                payment_id=payment.id,
                provider_payment_id=details.provider_payment_id,
                status=details.status,
                source="callback",
                details=details,
                preference_id=preference_id,
            )
        )

    def _apply(self, payment: PaymentRecord, resolution: PaymentResolution, new_status: PaymentStatus) -> None:
        now = datetime.now(UTC)
        audit: dict[str, Any] = {
            "provider_payment_id": resolution.provider_payment_id,
            "provider_status": resolution.status,
            "source": resolution.source,
            "processed_at": now.isoformat(),
        }
        if resolution.details is not None:
            audit["status_detail"] = resolution.details.status_detail
            audit["payment_type_id"] = resolution.details.payment_type_id
            audit["transaction_amount"] = resolution.details.transaction_amount
            payment.payment_method = resolution.details.payment_method_id

        if new_status is PaymentStatus.APPROVED:
            entry = self._ledger.credit(
                account_id=payment.account_id,
                amount=payment.credits_amount,
                description=f"Package purchase: {payment.package_name}",
            )
            audit["balance_before"] = entry.balance_before
            audit["balance_after"] = entry.balance_after
            payment.completed_at = now

        payment.status = new_status
        payment.provider_payment_id = resolution.provider_payment_id
        if resolution.preference_id and payment.preference_id is None:
            payment.preference_id = resolution.preference_id
        payment.payment_details = audit
        self._store.save_payment(payment)

    def _verify_authenticity(self, *, data_id: str, signature_header: str | None, request_id: str | None) -> None:
        if self._webhook_secret is None:
            logger.warning("webhook.signature_unverified reason=secret_not_configured")
            return

        header = parse_signature_header(signature_header)
        if header is None or not verify_signature(
            secret=self._webhook_secret,
            data_id=data_id,
            request_id=request_id or "",
            header=header,
        ):
            logger.warning(
                "webhook.signature_rejected request_id=%s header_present=%s",
                safe_log_identifier(request_id or "", prefix="rid"),
                signature_header is not None,
            )
            raise AuthenticityError()

    def _fetch_details(self, provider_payment_id: str) -> PaymentDetails:
        try:
            return self._provider.fetch_payment_details(provider_payment_id)
        except PaymentProviderError as exc:
            logger.warning(
                "payment.details_fetch_failed provider_payment_id=%s reason=%s",
                safe_log_identifier(provider_payment_id, prefix="ppid"),
                exc,
            )
            raise ProviderError(
                "Failed to get payment details",
                code="PAYMENT_LOOKUP_FAILED",
            ) from exc
