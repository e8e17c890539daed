"""AssemblyAI transcription adapter."""

from __future__ import annotations

import logging

import httpx

from litwick.adapters.transcription.base import (
    PollResult,
    ProviderJobStatus,
    TranscriptionProvider,
    TranscriptionProviderError,
)

logger = logging.getLogger(__name__)

_STATUS_MAP: dict[str, ProviderJobStatus] = {
    "queued": ProviderJobStatus.QUEUED,
    "processing": ProviderJobStatus.PROCESSING,
    "completed": ProviderJobStatus.COMPLETED,
    "error": ProviderJobStatus.ERROR,
}


class AssemblyAITranscriptionProvider(TranscriptionProvider):
    """Thin wrapper over the AssemblyAI v2 REST API sharing one pooled client."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.assemblyai.com/v2",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def submit(self, file_url: str, language: str) -> str:
        payload = {"audio_url": file_url, "language_code": language}
        body = self._request("POST", "/transcript", operation="submit", json=payload).json()
        provider_job_id = str(body.get("id") or "").strip()
        if not provider_job_id:
            raise TranscriptionProviderError("failed to create transcription: response missing id")
        return provider_job_id

    def poll(self, provider_job_id: str) -> PollResult:
        body = self._request("GET", f"/transcript/{provider_job_id}", operation="poll").json()
        raw_status = str(body.get("status") or "").lower()
        status = _STATUS_MAP.get(raw_status)
        if status is None:
            raise TranscriptionProviderError(f"failed to get transcription: unknown status {raw_status!r}")

        # audio_duration is reported in seconds.
        audio_duration = body.get("audio_duration")
        duration_ms = int(round(float(audio_duration) * 1000)) if audio_duration is not None else None
        return PollResult(
            status=status,
            text=body.get("text"),
            duration_ms=duration_ms,
            error_detail=body.get("error"),
        )

    def fetch_export(self, provider_job_id: str, export_format: str) -> str:
        response = self._request("GET", f"/transcript/{provider_job_id}/{export_format}", operation="export")
        return response.text

    def _request(self, method: str, path: str, *, operation: str, **kwargs) -> httpx.Response:
        if not self._api_key:
            raise TranscriptionProviderError("AssemblyAI API key not configured")

        try:
            response = self._client.request(method, path, headers={"authorization": self._api_key}, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("assemblyai.request_failed operation=%s reason=%s", operation, type(exc).__name__)
            raise TranscriptionProviderError(f"{operation} failed: {type(exc).__name__}") from exc

        if response.status_code == 401:
            raise TranscriptionProviderError(f"{operation} failed: 401 Unauthorized, check the AssemblyAI API key")
        if response.status_code >= 400:
            logger.warning("assemblyai.request_rejected operation=%s status_code=%s", operation, response.status_code)
            raise TranscriptionProviderError(f"{operation} failed: {response.status_code} {response.text}")
        return response


__all__ = ["AssemblyAITranscriptionProvider"]
