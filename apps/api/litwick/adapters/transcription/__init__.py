"""Transcription provider adapters."""

from .assemblyai import AssemblyAITranscriptionProvider
from .base import PollResult, ProviderJobStatus, TranscriptionProvider, TranscriptionProviderError
from .mock import MockTranscriptionProvider

__all__ = [
    "AssemblyAITranscriptionProvider",
    "MockTranscriptionProvider",
    "PollResult",
    "ProviderJobStatus",
    "TranscriptionProvider",
    "TranscriptionProviderError",
]
