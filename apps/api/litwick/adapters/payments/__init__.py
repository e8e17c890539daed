"""Payment provider adapters."""

from .base import CheckoutSession, PaymentDetails, PaymentProvider, PaymentProviderError
from .mercadopago import MercadoPagoPaymentProvider
from .mock import MockPaymentProvider

__all__ = [
    "CheckoutSession",
    "MercadoPagoPaymentProvider",
    "MockPaymentProvider",
    "PaymentDetails",
    "PaymentProvider",
    "PaymentProviderError",
]
