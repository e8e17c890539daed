"""Detached execution of transcription jobs."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
import logging
from threading import Event, Lock

from litwick.core.logging_safety import safe_log_identifier

logger = logging.getLogger(__name__)

JobWork = Callable[[str, Event], None]


@dataclass(slots=True)
class _ActiveJob:
    future: Future[None]
    cancel_event: Event


class JobDispatcher:
    """Runs one unit of work per job id on a thread pool.

    Each job owns a cancellation event handed to its work function. Failures
    inside the work are logged here and never reach the caller that
    dispatched it.
    """

    def __init__(self, *, max_workers: int | None = None) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="litwick-job")
        self._active: dict[str, _ActiveJob] = {}
        self._lock = Lock()

    def submit(self, job_id: str, work: JobWork) -> Future[None]:
        """Schedule ``work(job_id, cancel_event)``; raises ``RuntimeError`` once shut down or if already active."""
        cancel_event = Event()
        with self._lock:
            if job_id in self._active:
                raise RuntimeError("Job is already dispatched")
            # Held across submit so a fast worker cannot unregister before registration.
            future = self._executor.submit(self._run, job_id, work, cancel_event)
            self._active[job_id] = _ActiveJob(future=future, cancel_event=cancel_event)

        logger.info("dispatch.submitted job_id=%s", safe_log_identifier(job_id, prefix="jid"))
        return future

    def cancel(self, job_id: str) -> bool:
        """Signal the job's work to stop at its next suspension point."""
        with self._lock:
            active = self._active.get(job_id)
        if active is None:
            return False
        active.cancel_event.set()
        logger.info("dispatch.cancel_requested job_id=%s", safe_log_identifier(job_id, prefix="jid"))
        return True

    def is_active(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._active

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for every job dispatched so far; ``False`` if the timeout elapsed first."""
        with self._lock:
            futures = [active.future for active in self._active.values()]
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self, *, cancel: bool = True) -> None:
        with self._lock:
            active_jobs = list(self._active.values())
        if cancel:
            for active in active_jobs:
                active.cancel_event.set()
        logger.info("dispatch.shutdown active_jobs=%s cancel=%s", len(active_jobs), cancel)
        self._executor.shutdown(wait=True)

    def _run(self, job_id: str, work: JobWork, cancel_event: Event) -> None:
        try:
            work(job_id, cancel_event)
        except Exception:
            logger.exception("dispatch.job_crashed job_id=%s", safe_log_identifier(job_id, prefix="jid"))
        finally:
            with self._lock:
                self._active.pop(job_id, None)
