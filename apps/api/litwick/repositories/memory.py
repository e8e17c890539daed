"""In-memory repositories used by the API and tests."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import copy
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from threading import RLock, get_ident
from typing import Any
from typing import Literal
from uuid import uuid4

from litwick.domain.job_fsm import ensure_transition
from litwick.schemas.account import LedgerDirection
from litwick.schemas.job import JobStatus
from litwick.schemas.payment import PaymentStatus


@dataclass(slots=True)
class AccountRecord:
    id: str
    subject: str
    email: str
    credits_remaining: int
    plan: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class LedgerEntryRecord:
    id: str
    account_id: str
    job_id: str | None
    direction: LedgerDirection
    amount: int
    balance_before: int
    balance_after: int
    description: str
    created_at: datetime


@dataclass(slots=True)
class JobRecord:
    id: str
    account_id: str
    file_name: str
    file_url: str
    file_size: int
    language: str
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    provider_job_id: str | None = None
    transcript_text: str | None = None
    exports: dict[str, str] | None = None
    duration_seconds: int | None = None
    credits_charged: int | None = None
    error_message: str | None = None
    completed_at: datetime | None = None


@dataclass(slots=True)
class PaymentRecord:
    id: str
    account_id: str
    status: PaymentStatus
    amount: float
    currency: str
    credits_amount: int
    package_id: str
    package_name: str
    created_at: datetime
    updated_at: datetime
    provider_payment_id: str | None = None
    preference_id: str | None = None
    payment_method: str | None = None
    payment_details: dict[str, Any] | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AnomalyRecord:
    kind: Literal["job_completed_undebited", "payment_reconcile_failed"]
    entity_id: str
    account_id: str
    message: str
    recorded_at: datetime


@dataclass(slots=True)
class _UndoLog:
    """Field values of every record touched since the transaction opened."""

    saved: dict[tuple[str, str], tuple[Any, dict[str, Any]]] = field(default_factory=dict)
    created: list[tuple[str, str]] = field(default_factory=list)
    ledger_length: int = 0
    anomaly_length: int = 0
    write_counts: tuple[int, int, int, int] = (0, 0, 0, 0)


@dataclass(slots=True)
class InMemoryStore:
    """Deterministic persistence layer with row-level atomicity emulated by one re-entrant lock."""

    accounts: dict[str, AccountRecord] = field(default_factory=dict)
    account_ids_by_subject: dict[str, str] = field(default_factory=dict)
    ledger_entries: list[LedgerEntryRecord] = field(default_factory=list)
    jobs: dict[str, JobRecord] = field(default_factory=dict)
    payments: dict[str, PaymentRecord] = field(default_factory=dict)
    anomalies: list[AnomalyRecord] = field(default_factory=list)
    account_write_count: int = 0
    ledger_write_count: int = 0
    job_write_count: int = 0
    payment_write_count: int = 0
    ledger_failpoint_account_id: str | None = None
    job_write_failpoint_job_id: str | None = None
    payment_write_failpoint_payment_id: str | None = None
    failpoint_message: str = "Injected persistence failure"
    _lock: RLock = field(default_factory=RLock, repr=False)
    _undo_logs: list[_UndoLog] = field(default_factory=list, repr=False)
    _undo_owner: int | None = field(default=None, repr=False)

    @contextmanager
    def transaction(self, *records: AccountRecord | JobRecord | PaymentRecord) -> Iterator[None]:
        """Serialize the enclosed read-modify-write and undo every write if it raises.

        Only the rows the block touches are saved: records passed in here and
        records returned by the ``get_*`` lookups while the block is open.
        Records fetched earlier and mutated inside must be passed in.
        """
        with self._lock:
            undo = _UndoLog(
                ledger_length=len(self.ledger_entries),
                anomaly_length=len(self.anomalies),
                write_counts=(
                    self.account_write_count,
                    self.ledger_write_count,
                    self.job_write_count,
                    self.payment_write_count,
                ),
            )
            self._undo_logs.append(undo)
            self._undo_owner = get_ident()
            try:
                for record in records:
                    self._track(record)
                yield
            except BaseException:
                self._rollback(undo)
                raise
            finally:
                self._undo_logs.pop()
                if not self._undo_logs:
                    self._undo_owner = None

    def create_account(self, *, subject: str, email: str, plan: str = "free") -> AccountRecord:
        with self._lock:
            now = datetime.now(UTC)
            account = AccountRecord(
                id=str(uuid4()),
                subject=subject,
                email=email,
                credits_remaining=0,
                plan=plan,
                created_at=now,
                updated_at=now,
            )
            self.accounts[account.id] = account
            self.account_ids_by_subject[subject] = account.id
            self.account_write_count += 1
            self._note_created("accounts", account.id)
            return account

    def get_account(self, account_id: str) -> AccountRecord | None:
        return self._track(self.accounts.get(account_id))

    def get_account_for_subject(self, subject: str) -> AccountRecord | None:
        account_id = self.account_ids_by_subject.get(subject)
        if account_id is None:
            return None
        return self._track(self.accounts.get(account_id))

    def append_ledger_entry(self, *, account: AccountRecord, entry: LedgerEntryRecord) -> None:
        """Insert the entry and move the balance to ``entry.balance_after``; call inside ``transaction()``."""
        with self._lock:
            self._track(account)
            self.ledger_entries.append(entry)
            self.ledger_write_count += 1
            if self.ledger_failpoint_account_id == account.id:
                self.ledger_failpoint_account_id = None
                raise RuntimeError(self.failpoint_message)
            account.credits_remaining = entry.balance_after
            account.updated_at = entry.created_at
            self.account_write_count += 1

    def list_ledger_entries_for_account(self, account_id: str) -> list[LedgerEntryRecord]:
        with self._lock:
            return [entry for entry in self.ledger_entries if entry.account_id == account_id]

    def create_job(
        self,
        *,
        account_id: str,
        file_name: str,
        file_url: str,
        file_size: int,
        language: str,
    ) -> JobRecord:
        with self._lock:
            now = datetime.now(UTC)
            job = JobRecord(
                id=str(uuid4()),
                account_id=account_id,
                file_name=file_name,
                file_url=file_url,
                file_size=file_size,
                language=language,
                status=JobStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self.jobs[job.id] = job
            self.job_write_count += 1
            self._note_created("jobs", job.id)
            return job

    def get_job(self, job_id: str) -> JobRecord | None:
        return self._track(self.jobs.get(job_id))

    def get_job_for_owner(self, account_id: str, job_id: str) -> JobRecord | None:
        job = self.jobs.get(job_id)
        if job is None or job.account_id != account_id:
            return None
        return self._track(job)

    def list_jobs_for_owner(self, account_id: str) -> list[JobRecord]:
        """Newest first; table insertion order is creation order."""
        with self._lock:
            jobs = [record for record in self.jobs.values() if record.account_id == account_id]
        jobs.reverse()
        return jobs

    def transition_job_status(self, *, job: JobRecord, new_status: JobStatus) -> None:
        """Apply an FSM-validated status mutation with consistent write bookkeeping."""
        with self._lock:
            self._track(job)
            ensure_transition(job.status, new_status)
            job.status = new_status
            self.save_job(job)

    def save_job(self, job: JobRecord) -> None:
        with self._lock:
            if self.job_write_failpoint_job_id == job.id:
                self.job_write_failpoint_job_id = None
                raise RuntimeError(self.failpoint_message)
            job.updated_at = datetime.now(UTC)
            self.job_write_count += 1

    def delete_job(self, job_id: str) -> None:
        with self._lock:
            self._track(self.jobs.get(job_id))
            if self.jobs.pop(job_id, None) is not None:
                self.job_write_count += 1

    def create_payment(
        self,
        *,
        account_id: str,
        amount: float,
        currency: str,
        credits_amount: int,
        package_id: str,
        package_name: str,
    ) -> PaymentRecord:
        with self._lock:
            now = datetime.now(UTC)
            payment = PaymentRecord(
                id=str(uuid4()),
                account_id=account_id,
                status=PaymentStatus.PENDING,
                amount=amount,
                currency=currency,
                credits_amount=credits_amount,
                package_id=package_id,
                package_name=package_name,
                created_at=now,
                updated_at=now,
            )
            self.payments[payment.id] = payment
            self.payment_write_count += 1
            self._note_created("payments", payment.id)
            return payment

    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        return self._track(self.payments.get(payment_id))

    def get_payment_for_owner(self, account_id: str, payment_id: str) -> PaymentRecord | None:
        payment = self.payments.get(payment_id)
        if payment is None or payment.account_id != account_id:
            return None
        return self._track(payment)

    def list_payments_for_owner(self, account_id: str) -> list[PaymentRecord]:
        with self._lock:
            payments = [record for record in self.payments.values() if record.account_id == account_id]
        payments.reverse()
        return payments

    def save_payment(self, payment: PaymentRecord) -> None:
        with self._lock:
            if self.payment_write_failpoint_payment_id == payment.id:
                self.payment_write_failpoint_payment_id = None
                raise RuntimeError(self.failpoint_message)
            payment.updated_at = datetime.now(UTC)
            self.payment_write_count += 1

    def record_anomaly(
        self,
        *,
        kind: Literal["job_completed_undebited", "payment_reconcile_failed"],
        entity_id: str,
        account_id: str,
        message: str,
    ) -> AnomalyRecord:
        with self._lock:
            anomaly = AnomalyRecord(
                kind=kind,
                entity_id=entity_id,
                account_id=account_id,
                message=message,
                recorded_at=datetime.now(UTC),
            )
            self.anomalies.append(anomaly)
            return anomaly

    def _track(self, record: Any) -> Any:
        if record is None or self._undo_owner != get_ident():
            return record
        key = (_TABLE_BY_RECORD_TYPE[type(record)], record.id)
        saved_values: dict[str, Any] | None = None
        for undo in self._undo_logs:
            if key in undo.saved:
                continue
            if saved_values is None:
                saved_values = {item.name: copy.deepcopy(getattr(record, item.name)) for item in fields(record)}
            undo.saved[key] = (record, saved_values)
        return record

    def _note_created(self, table_name: str, record_id: str) -> None:
        if self._undo_owner != get_ident():
            return
        for undo in self._undo_logs:
            undo.created.append((table_name, record_id))

    def _rollback(self, undo: _UndoLog) -> None:
        # Restore in place so record references held by callers stay valid.
        created = set(undo.created)
        for table_name, record_id in reversed(undo.created):
            record = getattr(self, table_name).pop(record_id, None)
            if isinstance(record, AccountRecord):
                self.account_ids_by_subject.pop(record.subject, None)
        for (table_name, record_id), (record, saved_values) in undo.saved.items():
            if (table_name, record_id) in created:
                continue
            for name, value in saved_values.items():
                setattr(record, name, value)
            getattr(self, table_name).setdefault(record_id, record)
        del self.ledger_entries[undo.ledger_length:]
        del self.anomalies[undo.anomaly_length:]
        (
            self.account_write_count,
            self.ledger_write_count,
            self.job_write_count,
            self.payment_write_count,
        ) = undo.write_counts


_TABLE_BY_RECORD_TYPE: dict[type, str] = {
    AccountRecord: "accounts",
    JobRecord: "jobs",
    PaymentRecord: "payments",
}
