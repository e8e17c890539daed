"""Payment provider interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from litwick.schemas.payment import CreditPackage


class PaymentProviderError(Exception):
    """Raised when the payment provider cannot be reached or rejects a call."""


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    checkout_url: str
    preference_id: str


@dataclass(frozen=True, slots=True)
class PaymentDetails:
    provider_payment_id: str
    status: str
    external_reference: str | None = None
    payment_method_id: str | None = None
    payment_type_id: str | None = None
    status_detail: str | None = None
    transaction_amount: float | None = None


class PaymentProvider(ABC):
    """Provider-neutral hosted checkout interface."""

    @abstractmethod
    def create_checkout(self, package: CreditPackage, payer_email: str, payment_id: str) -> CheckoutSession:
        """Create a hosted checkout whose external reference is ``payment_id``."""

    @abstractmethod
    def fetch_payment_details(self, provider_payment_id: str) -> PaymentDetails:
        """Return the provider's authoritative view of a payment."""

    def close(self) -> None:
        """Release pooled connections; no-op for in-process providers."""


__all__ = ["CheckoutSession", "PaymentDetails", "PaymentProvider", "PaymentProviderError"]
