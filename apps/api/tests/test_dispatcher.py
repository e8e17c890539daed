"""Background dispatcher tests."""

from __future__ import annotations

from threading import Event
import unittest

from litwick.services.dispatcher import JobDispatcher


class JobDispatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.dispatcher = JobDispatcher(max_workers=2)
        self.addCleanup(self.dispatcher.shutdown)

    def test_work_runs_detached_and_unregisters_when_done(self) -> None:
        seen: list[str] = []

        future = self.dispatcher.submit("job-1", lambda job_id, _event: seen.append(job_id))
        future.result(timeout=5)

        self.assertTrue(self.dispatcher.drain(timeout=5))
        self.assertEqual(seen, ["job-1"])
        self.assertFalse(self.dispatcher.is_active("job-1"))

    def test_cancel_sets_the_jobs_event(self) -> None:
        started = Event()
        observed: dict[str, bool] = {}

        def _work(_job_id: str, cancel_event: Event) -> None:
            started.set()
            observed["cancelled"] = cancel_event.wait(timeout=5)

        self.dispatcher.submit("job-1", _work)
        self.assertTrue(started.wait(timeout=5))

        self.assertTrue(self.dispatcher.cancel("job-1"))
        self.assertTrue(self.dispatcher.drain(timeout=5))
        self.assertTrue(observed["cancelled"])

    def test_cancel_unknown_job_returns_false(self) -> None:
        self.assertFalse(self.dispatcher.cancel("missing"))

    def test_duplicate_dispatch_is_rejected(self) -> None:
        release = Event()
        self.dispatcher.submit("job-1", lambda _job_id, _event: release.wait(timeout=5))
        try:
            with self.assertRaises(RuntimeError):
                self.dispatcher.submit("job-1", lambda _job_id, _event: None)
        finally:
            release.set()
        self.assertTrue(self.dispatcher.drain(timeout=5))

    def test_work_failure_is_contained(self) -> None:
        def _boom(_job_id: str, _event: Event) -> None:
            raise ValueError("boom")

        with self.assertLogs("litwick.services.dispatcher", level="ERROR") as captured:
            future = self.dispatcher.submit("job-1", _boom)
            future.result(timeout=5)

        self.assertIsNone(future.exception())
        self.assertTrue(any("dispatch.job_crashed" in line for line in captured.output))
        self.assertFalse(self.dispatcher.is_active("job-1"))

    def test_shutdown_cancels_in_flight_work_and_rejects_new_work(self) -> None:
        started = Event()
        observed: dict[str, bool] = {}

        def _work(_job_id: str, cancel_event: Event) -> None:
            started.set()
            observed["cancelled"] = cancel_event.wait(timeout=5)

        self.dispatcher.submit("job-1", _work)
        self.assertTrue(started.wait(timeout=5))

        self.dispatcher.shutdown(cancel=True)

        self.assertTrue(observed["cancelled"])
        with self.assertRaises(RuntimeError):
            self.dispatcher.submit("job-2", lambda _job_id, _event: None)


if __name__ == "__main__":
    unittest.main()
