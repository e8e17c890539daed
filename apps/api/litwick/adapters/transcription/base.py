"""Transcription provider interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class TranscriptionProviderError(Exception):
    """Raised when the transcription provider cannot be reached or rejects a call."""


class ProviderJobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class PollResult:
    status: ProviderJobStatus
    text: str | None = None
    duration_ms: int | None = None
    error_detail: str | None = None


class TranscriptionProvider(ABC):
    """Provider-neutral asynchronous transcription interface."""

    @abstractmethod
    def submit(self, file_url: str, language: str) -> str:
        """Start a transcription and return the provider job id."""

    @abstractmethod
    def poll(self, provider_job_id: str) -> PollResult:
        """Return the provider's current view of the job."""

    @abstractmethod
    def fetch_export(self, provider_job_id: str, export_format: str) -> str:
        """Return the job rendered in a subtitle format such as ``srt``."""

    def close(self) -> None:
        """Release pooled connections; no-op for in-process providers."""


__all__ = ["PollResult", "ProviderJobStatus", "TranscriptionProvider", "TranscriptionProviderError"]
