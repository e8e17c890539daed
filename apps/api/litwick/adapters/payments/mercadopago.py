"""MercadoPago checkout adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from litwick.adapters.payments.base import CheckoutSession, PaymentDetails, PaymentProvider, PaymentProviderError
from litwick.schemas.payment import CreditPackage

logger = logging.getLogger(__name__)

_STATEMENT_DESCRIPTOR = "LITWICK - Créditos"


class MercadoPagoPaymentProvider(PaymentProvider):
    def __init__(
        self,
        *,
        access_token: str | None,
        frontend_url: str,
        webhook_url: str,
        base_url: str = "https://api.mercadopago.com",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._access_token = (access_token or "").strip()
        self._frontend_url = frontend_url.rstrip("/")
        self._webhook_url = webhook_url.rstrip("/")
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def create_checkout(self, package: CreditPackage, payer_email: str, payment_id: str) -> CheckoutSession:
        back_url = f"{self._frontend_url}/credits"
        payload: dict[str, Any] = {
            "items": [
                {
                    "id": package.id,
                    "title": f"{package.name} - {package.description}",
                    "description": package.description,
                    "quantity": 1,
                    "unit_price": package.price,
                    "currency_id": package.currency,
                }
            ],
            "payer": {"email": payer_email},
            "back_urls": {
                "success": f"{back_url}?payment_status=success",
                "failure": f"{back_url}?payment_status=failure",
                "pending": f"{back_url}?payment_status=pending",
            },
            "binary_mode": True,
            "external_reference": payment_id,
            "notification_url": f"{self._webhook_url}/api/v1/payments/webhook",
            "statement_descriptor": _STATEMENT_DESCRIPTOR,
            "purpose": "wallet_purchase",
        }
        body = self._request("POST", "/checkout/preferences", operation="create_preference", json=payload).json()
        preference_id = str(body.get("id") or "").strip()
        init_point = str(body.get("init_point") or "").strip()
        if not preference_id or not init_point:
            raise PaymentProviderError("failed to create preference: response missing id or init_point")
        return CheckoutSession(checkout_url=init_point, preference_id=preference_id)

    def fetch_payment_details(self, provider_payment_id: str) -> PaymentDetails:
        if not provider_payment_id.isdigit():
            raise PaymentProviderError(f"invalid payment id format: {provider_payment_id!r}")

        body = self._request("GET", f"/v1/payments/{provider_payment_id}", operation="get_payment").json()
        amount = body.get("transaction_amount")
        return PaymentDetails(
            provider_payment_id=str(body.get("id") or provider_payment_id),
            status=str(body.get("status") or ""),
            external_reference=body.get("external_reference") or None,
            payment_method_id=body.get("payment_method_id") or None,
            payment_type_id=body.get("payment_type_id") or None,
            status_detail=body.get("status_detail") or None,
            transaction_amount=float(amount) if amount is not None else None,
        )

    def _request(self, method: str, path: str, *, operation: str, **kwargs) -> httpx.Response:
        if not self._access_token:
            raise PaymentProviderError("MercadoPago access token not configured")

        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("mercadopago.request_failed operation=%s reason=%s", operation, type(exc).__name__)
            raise PaymentProviderError(f"{operation} failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.warning("mercadopago.request_rejected operation=%s status_code=%s", operation, response.status_code)
            raise PaymentProviderError(f"{operation} failed: {response.status_code}")
        return response


__all__ = ["MercadoPagoPaymentProvider"]
