"""In-process transcription provider for local development and tests."""

from __future__ import annotations

from collections.abc import Iterable
from threading import Lock
from uuid import uuid4

from litwick.adapters.transcription.base import (
    PollResult,
    ProviderJobStatus,
    TranscriptionProvider,
    TranscriptionProviderError,
)


class MockTranscriptionProvider(TranscriptionProvider):
    """Completes every job after ``polls_before_completion`` in-progress polls.

    ``error_detail`` makes jobs end in provider error, ``submit_error`` makes
    submission fail, ``never_completes`` keeps jobs processing forever and
    formats in ``failing_exports`` raise on fetch.
    """

    def __init__(
        self,
        *,
        duration_ms: int = 60_000,
        text: str = "Mock transcript.",
        polls_before_completion: int = 0,
        error_detail: str | None = None,
        submit_error: str | None = None,
        never_completes: bool = False,
        failing_exports: Iterable[str] = (),
    ) -> None:
        self.duration_ms = duration_ms
        self.text = text
        self.polls_before_completion = polls_before_completion
        self.error_detail = error_detail
        self.submit_error = submit_error
        self.never_completes = never_completes
        self.failing_exports = set(failing_exports)
        self.submissions: list[tuple[str, str, str]] = []
        self.poll_counts: dict[str, int] = {}
        self._lock = Lock()

    def submit(self, file_url: str, language: str) -> str:
        if self.submit_error is not None:
            raise TranscriptionProviderError(self.submit_error)
        provider_job_id = f"mock-{uuid4()}"
        with self._lock:
            self.submissions.append((provider_job_id, file_url, language))
            self.poll_counts[provider_job_id] = 0
        return provider_job_id

    def poll(self, provider_job_id: str) -> PollResult:
        with self._lock:
            if provider_job_id not in self.poll_counts:
                raise TranscriptionProviderError(f"unknown job {provider_job_id}")
            self.poll_counts[provider_job_id] += 1
            count = self.poll_counts[provider_job_id]

        if self.never_completes or count <= self.polls_before_completion:
            return PollResult(status=ProviderJobStatus.PROCESSING)
        if self.error_detail is not None:
            return PollResult(status=ProviderJobStatus.ERROR, error_detail=self.error_detail)
        return PollResult(status=ProviderJobStatus.COMPLETED, text=self.text, duration_ms=self.duration_ms)

    def fetch_export(self, provider_job_id: str, export_format: str) -> str:
        if export_format in self.failing_exports:
            raise TranscriptionProviderError(f"failed to get {export_format}")
        if export_format == "vtt":
            return f"WEBVTT\n\n00:00:00.000 --> 00:00:05.000\n{self.text}\n"
        return f"1\n00:00:00,000 --> 00:00:05,000\n{self.text}\n"


__all__ = ["MockTranscriptionProvider"]
