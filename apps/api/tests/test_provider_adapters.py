"""HTTP provider adapter tests using httpx mock transports."""

from __future__ import annotations

import json
import unittest

import httpx

from litwick.adapters.payments import MercadoPagoPaymentProvider, MockPaymentProvider, PaymentProviderError
from litwick.adapters.transcription import (
    AssemblyAITranscriptionProvider,
    MockTranscriptionProvider,
    ProviderJobStatus,
    TranscriptionProviderError,
)
from litwick.core.config import Settings
from litwick.core.providers import build_payment_provider, build_transcription_provider
from litwick.domain.catalog import get_credit_package


class AssemblyAIAdapterTests(unittest.TestCase):
    def _provider(self, handler, api_key: str | None = "aai-key") -> AssemblyAITranscriptionProvider:
        client = httpx.Client(base_url="https://aai.test/v2", transport=httpx.MockTransport(handler))
        self.addCleanup(client.close)
        return AssemblyAITranscriptionProvider(api_key=api_key, client=client)

    def test_submit_posts_audio_url_and_language(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "tr-1", "status": "queued"})

        provider_job_id = self._provider(handler).submit("https://files.test/a.mp3", "es")

        self.assertEqual(provider_job_id, "tr-1")
        self.assertEqual(seen[0].method, "POST")
        self.assertEqual(seen[0].url.path, "/v2/transcript")
        self.assertEqual(seen[0].headers["authorization"], "aai-key")
        self.assertEqual(json.loads(seen[0].content), {"audio_url": "https://files.test/a.mp3", "language_code": "es"})

    def test_poll_maps_status_and_converts_duration_to_milliseconds(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "tr-1", "status": "completed", "text": "hola", "audio_duration": 125.4})

        result = self._provider(handler).poll("tr-1")

        self.assertIs(result.status, ProviderJobStatus.COMPLETED)
        self.assertEqual(result.text, "hola")
        self.assertEqual(result.duration_ms, 125_400)

    def test_poll_surfaces_provider_error_detail(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "tr-1", "status": "error", "error": "bad audio"})

        result = self._provider(handler).poll("tr-1")

        self.assertIs(result.status, ProviderJobStatus.ERROR)
        self.assertEqual(result.error_detail, "bad audio")

    def test_export_fetches_subtitle_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/v2/transcript/tr-1/srt")
            return httpx.Response(200, text="1\n00:00:00,000 --> 00:00:01,000\nhola\n")

        self.assertIn("hola", self._provider(handler).fetch_export("tr-1", "srt"))

    def test_http_failures_become_provider_errors(self) -> None:
        def rejected(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        def unauthorized(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "Authentication error"})

        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        for handler in (rejected, unauthorized, unreachable):
            with self.subTest(handler=handler.__name__):
                with self.assertRaises(TranscriptionProviderError):
                    self._provider(handler).poll("tr-1")

    def test_missing_api_key_fails_before_any_request(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        with self.assertRaises(TranscriptionProviderError):
            self._provider(handler, api_key=None).submit("https://files.test/a.mp3", "es")
        self.assertEqual(calls, [])


class MercadoPagoAdapterTests(unittest.TestCase):
    def _provider(self, handler, access_token: str | None = "mp-token") -> MercadoPagoPaymentProvider:
        client = httpx.Client(base_url="https://mp.test", transport=httpx.MockTransport(handler))
        self.addCleanup(client.close)
        return MercadoPagoPaymentProvider(
            access_token=access_token,
            frontend_url="https://app.test/",
            webhook_url="https://api.test",
            client=client,
        )

    def test_checkout_preference_carries_external_reference_and_notification_url(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": "pref-77", "init_point": "https://mp.test/checkout?pref=77"})

        session = self._provider(handler).create_checkout(get_credit_package("basic"), "buyer@example.test", "pay-1")

        self.assertEqual(session.preference_id, "pref-77")
        self.assertEqual(session.checkout_url, "https://mp.test/checkout?pref=77")
        request = seen[0]
        self.assertEqual(request.url.path, "/checkout/preferences")
        self.assertEqual(request.headers["authorization"], "Bearer mp-token")
        payload = json.loads(request.content)
        self.assertEqual(payload["external_reference"], "pay-1")
        self.assertEqual(payload["notification_url"], "https://api.test/api/v1/payments/webhook")
        self.assertEqual(payload["payer"], {"email": "buyer@example.test"})
        self.assertEqual(payload["items"][0]["unit_price"], 5)
        self.assertEqual(payload["back_urls"]["success"], "https://app.test/credits?payment_status=success")
        self.assertTrue(payload["binary_mode"])

    def test_checkout_without_init_point_is_an_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"id": "pref-77"})

        with self.assertRaises(PaymentProviderError):
            self._provider(handler).create_checkout(get_credit_package("basic"), "buyer@example.test", "pay-1")

    def test_payment_details_are_normalized(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/v1/payments/123456")
            return httpx.Response(
                200,
                json={
                    "id": 123456,
                    "status": "approved",
                    "status_detail": "accredited",
                    "external_reference": "pay-1",
                    "payment_method_id": "visa",
                    "payment_type_id": "credit_card",
                    "transaction_amount": 5,
                },
            )

        details = self._provider(handler).fetch_payment_details("123456")

        self.assertEqual(details.provider_payment_id, "123456")
        self.assertEqual(details.status, "approved")
        self.assertEqual(details.external_reference, "pay-1")
        self.assertEqual(details.payment_method_id, "visa")
        self.assertEqual(details.transaction_amount, 5.0)

    def test_non_numeric_payment_id_is_rejected_without_request(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        with self.assertRaises(PaymentProviderError):
            self._provider(handler).fetch_payment_details("../admin")
        self.assertEqual(calls, [])

    def test_http_failures_become_provider_errors(self) -> None:
        def rejected(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "not found"})

        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        for handler in (rejected, unreachable):
            with self.subTest(handler=handler.__name__):
                with self.assertRaises(PaymentProviderError):
                    self._provider(handler).fetch_payment_details("1")
        with self.assertRaises(PaymentProviderError):
            self._provider(rejected, access_token="").fetch_payment_details("1")


class ProviderFactoryTests(unittest.TestCase):
    def test_factories_follow_settings(self) -> None:
        real = Settings(
            transcription_provider="assemblyai",
            payment_provider="mercadopago",
            assemblyai_api_key="k",
            mercadopago_access_token="t",
        )
        mock = Settings(transcription_provider="mock", payment_provider="mock")

        transcription = build_transcription_provider(real)
        payments = build_payment_provider(real)
        self.addCleanup(transcription.close)
        self.addCleanup(payments.close)

        self.assertIsInstance(transcription, AssemblyAITranscriptionProvider)
        self.assertIsInstance(payments, MercadoPagoPaymentProvider)
        self.assertIsInstance(build_transcription_provider(mock), MockTranscriptionProvider)
        self.assertIsInstance(build_payment_provider(mock), MockPaymentProvider)


if __name__ == "__main__":
    unittest.main()
