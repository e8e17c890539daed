"""Job runner lifecycle tests against scripted transcription providers."""

from __future__ import annotations

from itertools import count
from threading import Event
import unittest

from litwick.adapters.transcription import MockTranscriptionProvider, TranscriptionProviderError
from litwick.repositories.memory import InMemoryStore, JobRecord
from litwick.schemas.account import LedgerDirection
from litwick.schemas.job import JobStatus
from litwick.services.job_runner import CANCELLED_REASON, INSUFFICIENT_CREDITS_REASON, JobRunner
from litwick.services.ledger import LedgerService


class _FailingPollProvider(MockTranscriptionProvider):
    def poll(self, provider_job_id: str):
        raise TranscriptionProviderError("503 Service Unavailable")


class JobRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryStore()
        self.ledger = LedgerService(self.store)
        self.account = self.store.create_account(subject="user-1", email="user-1@example.test")

    def _fund(self, amount: int) -> None:
        self.ledger.credit(account_id=self.account.id, amount=amount, description="seed")

    def _processing_job(self) -> JobRecord:
        job = self.store.create_job(
            account_id=self.account.id,
            file_name="interview.mp3",
            file_url="https://files.example.test/interview.mp3",
            file_size=2048,
            language="es",
        )
        self.store.transition_job_status(job=job, new_status=JobStatus.PROCESSING)
        return job

    def _runner(self, provider: MockTranscriptionProvider, **kwargs) -> JobRunner:
        kwargs.setdefault("poll_interval", 0)
        return JobRunner(store=self.store, ledger=self.ledger, provider=provider, **kwargs)

    def _debits(self) -> list:
        return [
            entry
            for entry in self.store.list_ledger_entries_for_account(self.account.id)
            if entry.direction is LedgerDirection.DEBIT
        ]

    def test_completed_job_is_billed_in_whole_minutes(self) -> None:
        self._fund(300)
        job = self._processing_job()
        provider = MockTranscriptionProvider(duration_ms=125_000, text="hola mundo", polls_before_completion=2)

        self._runner(provider).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.COMPLETED)
        self.assertEqual(job.transcript_text, "hola mundo")
        self.assertEqual(job.duration_seconds, 125)
        self.assertEqual(job.credits_charged, 2)
        self.assertIsNotNone(job.completed_at)
        self.assertEqual(set(job.exports), {"srt", "vtt"})
        self.assertTrue(job.provider_job_id.startswith("mock-"))
        self.assertEqual(provider.poll_counts[job.provider_job_id], 3)
        self.assertEqual(self.account.credits_remaining, 298)
        debits = self._debits()
        self.assertEqual(len(debits), 1)
        self.assertEqual(debits[0].amount, 2)
        self.assertEqual(debits[0].job_id, job.id)

    def test_sub_minute_audio_bills_one_minute(self) -> None:
        self._fund(5)
        job = self._processing_job()

        self._runner(MockTranscriptionProvider(duration_ms=59_999)).run(job.id, Event())

        self.assertEqual(job.credits_charged, 1)
        self.assertEqual(self.account.credits_remaining, 4)

    def test_insufficient_credits_fails_job_without_ledger_entry(self) -> None:
        self._fund(10)
        job = self._processing_job()
        entries_before = len(self.store.ledger_entries)

        self._runner(MockTranscriptionProvider(duration_ms=1_800_000)).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, INSUFFICIENT_CREDITS_REASON)
        self.assertEqual(self.account.credits_remaining, 10)
        self.assertEqual(len(self.store.ledger_entries), entries_before)
        self.assertIsNone(job.transcript_text)

    def test_submission_failure_fails_job(self) -> None:
        self._fund(10)
        job = self._processing_job()

        self._runner(MockTranscriptionProvider(submit_error="401 Unauthorized")).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, "failed to create transcription: 401 Unauthorized")
        self.assertIsNone(job.provider_job_id)
        self.assertEqual(self._debits(), [])

    def test_provider_error_status_fails_job_with_provider_detail(self) -> None:
        self._fund(10)
        job = self._processing_job()

        self._runner(MockTranscriptionProvider(error_detail="audio file is corrupt")).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, "transcription failed: audio file is corrupt")
        self.assertEqual(self.account.credits_remaining, 10)

    def test_poll_failure_fails_job(self) -> None:
        self._fund(10)
        job = self._processing_job()

        self._runner(_FailingPollProvider()).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, "failed to get transcription: 503 Service Unavailable")

    def test_deadline_fails_job_with_timeout_reason(self) -> None:
        self._fund(10)
        job = self._processing_job()
        ticks = count()
        provider = MockTranscriptionProvider(never_completes=True)

        self._runner(provider, timeout=5, clock=lambda: float(next(ticks))).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, "transcription timeout after 5s")
        self.assertGreater(provider.poll_counts[job.provider_job_id], 0)
        self.assertEqual(self._debits(), [])

    def test_cancellation_signal_fails_job_without_debit(self) -> None:
        self._fund(10)
        job = self._processing_job()
        cancel_event = Event()
        cancel_event.set()
        provider = MockTranscriptionProvider()

        self._runner(provider, poll_interval=30).run(job.id, cancel_event)

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, CANCELLED_REASON)
        self.assertEqual(provider.poll_counts[job.provider_job_id], 0)
        self.assertEqual(self.account.credits_remaining, 10)

    def test_cancel_during_export_fetch_fails_job_without_debit(self) -> None:
        self._fund(10)
        job = self._processing_job()
        cancel_event = Event()

        class _CancelOnExportProvider(MockTranscriptionProvider):
            def fetch_export(self, provider_job_id: str, export_format: str) -> str:
                cancel_event.set()
                return super().fetch_export(provider_job_id, export_format)

        self._runner(_CancelOnExportProvider(duration_ms=120_000)).run(job.id, cancel_event)

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, CANCELLED_REASON)
        self.assertIsNone(job.transcript_text)
        self.assertIsNone(job.credits_charged)
        self.assertEqual(self._debits(), [])
        self.assertEqual(self.account.credits_remaining, 10)

    def test_failed_export_is_skipped_and_job_still_completes(self) -> None:
        self._fund(10)
        job = self._processing_job()

        self._runner(MockTranscriptionProvider(failing_exports=("vtt",))).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.COMPLETED)
        self.assertEqual(set(job.exports), {"srt"})

    def test_debit_failure_after_completion_records_anomaly(self) -> None:
        self._fund(10)
        job = self._processing_job()
        self.store.ledger_failpoint_account_id = self.account.id

        self._runner(MockTranscriptionProvider(duration_ms=120_000)).run(job.id, Event())

        self.assertEqual(job.status, JobStatus.COMPLETED)
        self.assertEqual(job.credits_charged, 2)
        self.assertEqual(self.account.credits_remaining, 10)
        self.assertEqual(self._debits(), [])
        self.assertEqual(len(self.store.anomalies), 1)
        anomaly = self.store.anomalies[0]
        self.assertEqual(anomaly.kind, "job_completed_undebited")
        self.assertEqual(anomaly.entity_id, job.id)

    def test_completion_persist_failure_fails_job_without_debit(self) -> None:
        self._fund(10)
        job = self._processing_job()
        runner = self._runner(MockTranscriptionProvider())
        provider_job_ids: list[str] = []
        original_submit = runner._submit

        def _submit_then_arm_failpoint(record: JobRecord) -> str:
            provider_job_id = original_submit(record)
            provider_job_ids.append(provider_job_id)
            self.store.job_write_failpoint_job_id = record.id
            return provider_job_id

        runner._submit = _submit_then_arm_failpoint
        runner.run(job.id, Event())

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error_message, "internal error: RuntimeError")
        self.assertIsNone(job.transcript_text)
        self.assertEqual(self._debits(), [])
        self.assertEqual(job.provider_job_id, provider_job_ids[0])

    def test_job_that_is_not_processing_is_skipped(self) -> None:
        job = self.store.create_job(
            account_id=self.account.id,
            file_name="interview.mp3",
            file_url="https://files.example.test/interview.mp3",
            file_size=2048,
            language="es",
        )
        provider = MockTranscriptionProvider()

        self._runner(provider).run(job.id, Event())
        self._runner(provider).run("missing-job", Event())

        self.assertEqual(job.status, JobStatus.PENDING)
        self.assertEqual(provider.submissions, [])


if __name__ == "__main__":
    unittest.main()
