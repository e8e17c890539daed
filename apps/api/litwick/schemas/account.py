"""Account and credit ledger schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from litwick.schemas.job import Job


class LedgerDirection(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class Account(BaseModel):
    id: str
    email: str
    credits_remaining: int
    plan: str
    created_at: datetime
    updated_at: datetime


class LedgerEntry(BaseModel):
    id: str
    account_id: str
    job_id: str | None = None
    direction: LedgerDirection
    amount: int
    balance_before: int
    balance_after: int
    description: str
    created_at: datetime


class LedgerEntryList(BaseModel):
    transactions: list[LedgerEntry]


class DashboardStats(BaseModel):
    total_transcriptions: int
    completed_count: int
    processing_count: int
    failed_count: int
    total_minutes_used: int
    credits_remaining: int


class Dashboard(BaseModel):
    user: Account
    transcriptions: list[Job]
    stats: DashboardStats
