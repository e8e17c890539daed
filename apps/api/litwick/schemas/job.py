"""Transcription job schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Job(BaseModel):
    id: str
    account_id: str
    file_name: str
    file_url: str
    file_size: int
    language: str
    status: JobStatus
    provider_job_id: str | None = None
    transcript_text: str | None = None
    exports: dict[str, str] | None = None
    duration_seconds: int | None = None
    credits_charged: int | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class CreateJobRequest(BaseModel):
    file_name: str = Field(min_length=1)
    file_url: str = Field(min_length=1)
    file_size: int = Field(ge=0)
    language: str | None = None


class UpdateTranscriptRequest(BaseModel):
    transcript_text: str


class StartJobResponse(BaseModel):
    message: str
    job: Job


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class JobPage(BaseModel):
    transcriptions: list[Job]
    pagination: Pagination
