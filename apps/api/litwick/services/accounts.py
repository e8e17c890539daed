"""Account directory and account-level read models."""

import logging

from litwick.core.logging_safety import safe_log_identifier
from litwick.repositories.memory import AccountRecord, InMemoryStore
from litwick.schemas.account import Account, Dashboard, DashboardStats, LedgerEntryList
from litwick.schemas.auth import AuthPrincipal
from litwick.schemas.job import JobStatus
from litwick.services.jobs import JobService
from litwick.services.ledger import LedgerService

logger = logging.getLogger(__name__)

SIGNUP_CREDIT_DESCRIPTION = "Signup credits"


class AccountService:
    def __init__(self, store: InMemoryStore, ledger: LedgerService, *, signup_credits: int) -> None:
        self._store = store
        self._ledger = ledger
        self._signup_credits = signup_credits

    def resolve_account(self, principal: AuthPrincipal) -> AccountRecord:
        """Return the caller's account, provisioning it with signup credits on first sight."""
        existing = self._store.get_account_for_subject(principal.user_id)
        if existing is not None:
            return existing

        with self._store.transaction():
            # Re-check under the lock; two first requests may race here.
            existing = self._store.get_account_for_subject(principal.user_id)
            if existing is not None:
                return existing

            account = self._store.create_account(subject=principal.user_id, email=principal.email)
            if self._signup_credits > 0:
                self._ledger.credit(
                    account_id=account.id,
                    amount=self._signup_credits,
                    description=SIGNUP_CREDIT_DESCRIPTION,
                )

        logger.info(
            "account.provisioned account_id=%s signup_credits=%s",
            safe_log_identifier(account.id, prefix="aid"),
            self._signup_credits,
        )
        return account

    def get_account(self, account: AccountRecord) -> Account:
        return self.to_account(account)

    def list_transactions(self, account: AccountRecord) -> LedgerEntryList:
        return LedgerEntryList(transactions=self._ledger.list_entries(account.id))

    def get_dashboard(self, account: AccountRecord) -> Dashboard:
        records = self._store.list_jobs_for_owner(account.id)
        stats = DashboardStats(
            total_transcriptions=len(records),
            completed_count=0,
            processing_count=0,
            failed_count=0,
            total_minutes_used=0,
            credits_remaining=account.credits_remaining,
        )
        for record in records:
            if record.status is JobStatus.COMPLETED:
                stats.completed_count += 1
                stats.total_minutes_used += record.credits_charged or 0
            elif record.status in (JobStatus.PENDING, JobStatus.PROCESSING):
                stats.processing_count += 1
            elif record.status is JobStatus.FAILED:
                stats.failed_count += 1

        return Dashboard(
            user=self.to_account(account),
            transcriptions=[JobService.to_job(record) for record in records],
            stats=stats,
        )

    @staticmethod
    def to_account(record: AccountRecord) -> Account:
        return Account(
            id=record.id,
            email=record.email,
            credits_remaining=record.credits_remaining,
            plan=record.plan,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
