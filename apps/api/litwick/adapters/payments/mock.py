"""In-process payment provider for local development and tests."""

from __future__ import annotations

from itertools import count
from threading import Lock

from litwick.adapters.payments.base import CheckoutSession, PaymentDetails, PaymentProvider, PaymentProviderError
from litwick.schemas.payment import CreditPackage


class MockPaymentProvider(PaymentProvider):
    """Hands out fake checkout sessions and serves payments registered with ``settle``."""

    def __init__(self, *, checkout_url: str = "https://checkout.mock.test/pay") -> None:
        self.checkout_url = checkout_url
        self.checkout_error: str | None = None
        self.details_error: str | None = None
        self.checkouts: list[tuple[str, str, str]] = []
        self._payments: dict[str, PaymentDetails] = {}
        self._ids = count(1)
        self._lock = Lock()

    def create_checkout(self, package: CreditPackage, payer_email: str, payment_id: str) -> CheckoutSession:
        if self.checkout_error is not None:
            raise PaymentProviderError(self.checkout_error)
        with self._lock:
            preference_id = f"pref-{next(self._ids)}"
            self.checkouts.append((package.id, payer_email, payment_id))
        return CheckoutSession(checkout_url=f"{self.checkout_url}?pref_id={preference_id}", preference_id=preference_id)

    def settle(
        self,
        *,
        provider_payment_id: str,
        payment_id: str,
        status: str,
        payment_method_id: str = "visa",
        transaction_amount: float | None = None,
    ) -> PaymentDetails:
        """Register what ``fetch_payment_details`` will report for a provider payment."""
        details = PaymentDetails(
            provider_payment_id=provider_payment_id,
            status=status,
            external_reference=payment_id,
            payment_method_id=payment_method_id,
            payment_type_id="credit_card",
            status_detail="accredited" if status == "approved" else status,
            transaction_amount=transaction_amount,
        )
        with self._lock:
            self._payments[provider_payment_id] = details
        return details

    def fetch_payment_details(self, provider_payment_id: str) -> PaymentDetails:
        if self.details_error is not None:
            raise PaymentProviderError(self.details_error)
        with self._lock:
            details = self._payments.get(provider_payment_id)
        if details is None:
            raise PaymentProviderError(f"get_payment failed: 404 for {provider_payment_id}")
        return details


__all__ = ["MockPaymentProvider"]
