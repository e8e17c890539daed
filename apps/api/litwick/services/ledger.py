"""Credit ledger: the only writer of account balances."""

from datetime import UTC, datetime
import logging
from uuid import uuid4

from litwick.core.logging_safety import safe_log_identifier
from litwick.errors import InternalPersistenceError, NotFoundError, ValidationError
from litwick.repositories.memory import InMemoryStore, LedgerEntryRecord
from litwick.schemas.account import LedgerDirection, LedgerEntry

logger = logging.getLogger(__name__)


class LedgerService:
    """Append-only credit-minute ledger.

    Every balance change is one entry written together with the new balance
    inside a store transaction, so concurrent debits and credits on the same
    account never act on a stale balance.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def credit(
        self,
        *,
        account_id: str,
        amount: int,
        description: str,
        job_id: str | None = None,
    ) -> LedgerEntryRecord:
        return self._apply(
            account_id=account_id,
            direction=LedgerDirection.CREDIT,
            amount=amount,
            description=description,
            job_id=job_id,
        )

    def debit(
        self,
        *,
        account_id: str,
        amount: int,
        description: str,
        job_id: str | None = None,
    ) -> LedgerEntryRecord:
        """Charge usage; a debit larger than the balance floors it at zero instead of failing."""
        return self._apply(
            account_id=account_id,
            direction=LedgerDirection.DEBIT,
            amount=amount,
            description=description,
            job_id=job_id,
        )

    def has_sufficient_balance(self, account_id: str, amount: int) -> bool:
        account = self._store.get_account(account_id)
        if account is None:
            raise NotFoundError()
        return account.credits_remaining >= amount

    def list_entries(self, account_id: str) -> list[LedgerEntry]:
        entries = self._store.list_ledger_entries_for_account(account_id)
        return [self.to_entry(entry) for entry in reversed(entries)]

    def _apply(
        self,
        *,
        account_id: str,
        direction: LedgerDirection,
        amount: int,
        description: str,
        job_id: str | None,
    ) -> LedgerEntryRecord:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                "Ledger amount must be a positive integer",
                code="INVALID_LEDGER_AMOUNT",
                details={"amount": amount},
            )

        safe_account_id = safe_log_identifier(account_id, prefix="aid")
        with self._store.transaction():
            account = self._store.get_account(account_id)
            if account is None:
                raise NotFoundError()

            balance_before = account.credits_remaining
            if direction is LedgerDirection.CREDIT:
                balance_after = balance_before + amount
            else:
                balance_after = max(balance_before - amount, 0)

            entry = LedgerEntryRecord(
                id=str(uuid4()),
                account_id=account.id,
                job_id=job_id,
                direction=direction,
                amount=amount,
                balance_before=balance_before,
                balance_after=balance_after,
                description=description,
                created_at=datetime.now(UTC),
            )
            try:
                self._store.append_ledger_entry(account=account, entry=entry)
            except RuntimeError as exc:
                logger.warning(
                    "ledger.write_failed account_id=%s direction=%s amount=%s reason=%s",
                    safe_account_id,
                    direction.value,
                    amount,
                    type(exc).__name__,
                )
                raise InternalPersistenceError() from exc

        if direction is LedgerDirection.DEBIT and amount > balance_before:
            logger.info(
                "ledger.debit_floored account_id=%s amount=%s balance_before=%s",
                safe_account_id,
                amount,
                balance_before,
            )
        logger.info(
            "ledger.applied account_id=%s direction=%s amount=%s balance_before=%s balance_after=%s",
            safe_account_id,
            direction.value,
            amount,
            balance_before,
            balance_after,
        )
        return entry

    @staticmethod
    def to_entry(record: LedgerEntryRecord) -> LedgerEntry:
        return LedgerEntry(
            id=record.id,
            account_id=record.account_id,
            job_id=record.job_id,
            direction=record.direction,
            amount=record.amount,
            balance_before=record.balance_before,
            balance_after=record.balance_after,
            description=record.description,
            created_at=record.created_at,
        )
