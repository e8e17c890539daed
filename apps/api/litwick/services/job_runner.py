"""Drives one transcription job from submission to a terminal state."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
import logging
from threading import Event
import time

from litwick.adapters.transcription.base import (
    PollResult,
    ProviderJobStatus,
    TranscriptionProvider,
    TranscriptionProviderError,
)
from litwick.core.logging_safety import safe_log_identifier
from litwick.domain.billing import billed_minutes, duration_seconds
from litwick.errors import ApiError, InsufficientCreditsError
from litwick.repositories.memory import InMemoryStore, JobRecord
from litwick.schemas.job import JobStatus
from litwick.services.ledger import LedgerService

logger = logging.getLogger(__name__)

INSUFFICIENT_CREDITS_REASON = "insufficient credits"
CANCELLED_REASON = "transcription cancelled"


class _JobFailure(Exception):
    """Ends the run; the message becomes the job's error text."""


class JobRunner:
    """Submit, poll, bill and finalize a ``processing`` job.

    Every step persists its progress before the next one starts, so a crash
    leaves a record that shows how far the job got.
    """

    def __init__(
        self,
        *,
        store: InMemoryStore,
        ledger: LedgerService,
        provider: TranscriptionProvider,
        poll_interval: float = 3.0,
        timeout: float = 1800.0,
        export_formats: Sequence[str] = ("srt", "vtt"),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._provider = provider
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._export_formats = tuple(export_formats)
        self._clock = clock

    def run(self, job_id: str, cancel_event: Event) -> None:
        safe_job_id = safe_log_identifier(job_id, prefix="jid")
        job = self._store.get_job(job_id)
        if job is None or job.status is not JobStatus.PROCESSING:
            logger.warning(
                "job.run_skipped job_id=%s status=%s",
                safe_job_id,
                job.status if job is not None else None,
            )
            return

        logger.info("job.run_started job_id=%s", safe_job_id)
        try:
            self._execute(job, cancel_event)
        except _JobFailure as exc:
            self._fail(job, str(exc))
        except InsufficientCreditsError:
            self._fail(job, INSUFFICIENT_CREDITS_REASON)
        except Exception as exc:
            logger.exception("job.run_crashed job_id=%s", safe_job_id)
            self._fail(job, f"internal error: {type(exc).__name__}")

    def _execute(self, job: JobRecord, cancel_event: Event) -> None:
        provider_job_id = self._submit(job)
        result = self._wait_for_completion(job, provider_job_id, cancel_event)

        minutes = billed_minutes(result.duration_ms)
        if not self._ledger.has_sufficient_balance(job.account_id, minutes):
            account = self._store.get_account(job.account_id)
            raise InsufficientCreditsError(
                required=minutes,
                available=account.credits_remaining if account is not None else 0,
            )

        exports = self._fetch_exports(job, provider_job_id)
        self._complete(job, cancel_event, result=result, minutes=minutes, exports=exports)
        self._debit(job, minutes)

    def _submit(self, job: JobRecord) -> str:
        try:
            provider_job_id = self._provider.submit(job.file_url, job.language)
        except TranscriptionProviderError as exc:
            raise _JobFailure(f"failed to create transcription: {exc}") from exc

        job.provider_job_id = provider_job_id
        self._store.save_job(job)
        logger.info(
            "job.submitted job_id=%s provider_job_id=%s",
            safe_log_identifier(job.id, prefix="jid"),
            safe_log_identifier(provider_job_id, prefix="pjid"),
        )
        return provider_job_id

    def _wait_for_completion(self, job: JobRecord, provider_job_id: str, cancel_event: Event) -> PollResult:
        deadline = self._clock() + self._timeout
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise _JobFailure(f"transcription timeout after {self._timeout:g}s")
            if cancel_event.wait(min(self._poll_interval, remaining)):
                raise _JobFailure(CANCELLED_REASON)

            try:
                result = self._provider.poll(provider_job_id)
            except TranscriptionProviderError as exc:
                raise _JobFailure(f"failed to get transcription: {exc}") from exc

            if result.status is ProviderJobStatus.COMPLETED:
                return result
            if result.status is ProviderJobStatus.ERROR:
                raise _JobFailure(f"transcription failed: {result.error_detail or 'unknown provider error'}")

    def _fetch_exports(self, job: JobRecord, provider_job_id: str) -> dict[str, str]:
        exports: dict[str, str] = {}
        for export_format in self._export_formats:
            try:
                exports[export_format] = self._provider.fetch_export(provider_job_id, export_format)
            except TranscriptionProviderError as exc:
                logger.warning(
                    "job.export_skipped job_id=%s format=%s reason=%s",
                    safe_log_identifier(job.id, prefix="jid"),
                    export_format,
                    exc,
                )
        return exports

    def _complete(
        self,
        job: JobRecord,
        cancel_event: Event,
        *,
        result: PollResult,
        minutes: int,
        exports: dict[str, str],
    ) -> None:
        with self._store.transaction(job):
            # A cancel accepted before this point wins; after it, the job is no longer processing.
            if cancel_event.is_set():
                raise _JobFailure(CANCELLED_REASON)
            job.transcript_text = result.text or ""
            job.exports = exports
            job.duration_seconds = duration_seconds(result.duration_ms)
            job.credits_charged = minutes
            job.error_message = None
            job.completed_at = datetime.now(UTC)
            self._store.transition_job_status(job=job, new_status=JobStatus.COMPLETED)

        logger.info(
            "job.completed job_id=%s duration_seconds=%s billed_minutes=%s exports=%s",
            safe_log_identifier(job.id, prefix="jid"),
            job.duration_seconds,
            minutes,
            sorted(exports),
        )

    def _debit(self, job: JobRecord, minutes: int) -> None:
        # Job is already completed; record the failed debit as an anomaly.
        try:
            self._ledger.debit(
                account_id=job.account_id,
                amount=minutes,
                job_id=job.id,
                description=f"Transcription: {job.file_name}",
            )
        except ApiError as exc:
            logger.error(
                "job.debit_anomaly job_id=%s account_id=%s billed_minutes=%s code=%s",
                safe_log_identifier(job.id, prefix="jid"),
                safe_log_identifier(job.account_id, prefix="aid"),
                minutes,
                exc.payload.code,
            )
            self._store.record_anomaly(
                kind="job_completed_undebited",
                entity_id=job.id,
                account_id=job.account_id,
                message=f"job completed but {minutes} credit-minute debit failed: {exc.payload.code}",
            )

    def _fail(self, job: JobRecord, reason: str) -> None:
        safe_job_id = safe_log_identifier(job.id, prefix="jid")
        try:
            with self._store.transaction(job):
                job.error_message = reason
                self._store.transition_job_status(job=job, new_status=JobStatus.FAILED)
        except Exception:
            logger.exception("job.fail_persist_failed job_id=%s reason=%s", safe_job_id, reason)
            return
        logger.info("job.failed job_id=%s reason=%s", safe_job_id, reason)
