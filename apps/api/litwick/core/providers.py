"""Builds external provider clients from configuration."""

from litwick.adapters.payments import MercadoPagoPaymentProvider, MockPaymentProvider, PaymentProvider
from litwick.adapters.transcription import (
    AssemblyAITranscriptionProvider,
    MockTranscriptionProvider,
    TranscriptionProvider,
)
from litwick.core.config import Settings


def build_transcription_provider(settings: Settings) -> TranscriptionProvider:
    if settings.transcription_provider == "assemblyai":
        return AssemblyAITranscriptionProvider(
            api_key=settings.assemblyai_api_key,
            base_url=settings.assemblyai_base_url,
            timeout=settings.provider_timeout_seconds,
        )
    return MockTranscriptionProvider()


def build_payment_provider(settings: Settings) -> PaymentProvider:
    if settings.payment_provider == "mercadopago":
        return MercadoPagoPaymentProvider(
            access_token=settings.mercadopago_access_token,
            frontend_url=settings.frontend_url,
            webhook_url=settings.webhook_url,
            base_url=settings.mercadopago_base_url,
            timeout=settings.provider_timeout_seconds,
        )
    return MockPaymentProvider()
