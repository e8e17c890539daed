"""Credit purchase service layer."""

import logging

from litwick.adapters.payments.base import PaymentProvider, PaymentProviderError
from litwick.core.logging_safety import safe_log_identifier
from litwick.domain.catalog import get_credit_package, list_credit_packages
from litwick.errors import ProviderError, ValidationError
from litwick.repositories.memory import AccountRecord, InMemoryStore, PaymentRecord
from litwick.schemas.payment import CreatePaymentResponse, CreditPackageList, Payment, PaymentList

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, store: InMemoryStore, provider: PaymentProvider) -> None:
        self._store = store
        self._provider = provider

    def list_packages(self) -> CreditPackageList:
        return CreditPackageList(packages=list_credit_packages())

    def create_payment(self, *, account: AccountRecord, package_id: str) -> CreatePaymentResponse:
        """Record a pending purchase, then ask the provider for a hosted checkout.

        The payment stays ``pending`` when the provider call fails so it remains
        visible for manual follow-up.
        """
        package = get_credit_package(package_id)
        if package is None:
            raise ValidationError(
                "Invalid package",
                code="INVALID_PACKAGE",
                details={"package_id": package_id},
            )

        payment = self._store.create_payment(
            account_id=account.id,
            amount=package.price,
            currency=package.currency,
            credits_amount=package.credits,
            package_id=package.id,
            package_name=package.name,
        )
        safe_payment_id = safe_log_identifier(payment.id, prefix="pid")

        try:
            session = self._provider.create_checkout(package, account.email, payment.id)
        except PaymentProviderError as exc:
            logger.warning("payment.checkout_failed payment_id=%s reason=%s", safe_payment_id, exc)
            raise ProviderError(
                "Failed to create payment preference",
                code="CHECKOUT_CREATION_FAILED",
                details={"payment_id": payment.id},
            ) from exc

        payment.preference_id = session.preference_id
        try:
            self._store.save_payment(payment)
        except RuntimeError:
            # Reconciliation keys on the payment id, not the preference.
            logger.warning("payment.preference_persist_failed payment_id=%s", safe_payment_id)

        logger.info(
            "payment.created payment_id=%s account_id=%s package_id=%s",
            safe_payment_id,
            safe_log_identifier(account.id, prefix="aid"),
            package.id,
        )
        return CreatePaymentResponse(
            payment_id=payment.id,
            init_point=session.checkout_url,
            preference_id=session.preference_id,
        )

    def list_payments(self, *, account_id: str) -> PaymentList:
        return PaymentList(payments=[self.to_payment(record) for record in self._store.list_payments_for_owner(account_id)])

    @staticmethod
    def to_payment(record: PaymentRecord) -> Payment:
        return Payment(
            id=record.id,
            account_id=record.account_id,
            provider_payment_id=record.provider_payment_id,
            preference_id=record.preference_id,
            status=record.status,
            amount=record.amount,
            currency=record.currency,
            credits_amount=record.credits_amount,
            package_name=record.package_name,
            payment_method=record.payment_method,
            payment_details=dict(record.payment_details) if record.payment_details is not None else None,
            created_at=record.created_at,
            updated_at=record.updated_at,
            completed_at=record.completed_at,
        )
