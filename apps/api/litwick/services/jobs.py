"""Transcription job service layer."""

from dataclasses import dataclass
import logging
import math
from pathlib import PurePosixPath

from litwick.core.logging_safety import safe_log_identifier
from litwick.errors import ApiError, InternalPersistenceError, NotFoundError, ValidationError
from litwick.repositories.memory import InMemoryStore, JobRecord
from litwick.schemas.job import Job, JobPage, JobStatus, Pagination, StartJobResponse
from litwick.services.dispatcher import JobDispatcher
from litwick.services.job_runner import JobRunner

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset(
    {".mp3", ".mp4", ".wav", ".m4a", ".flac", ".ogg", ".webm", ".avi", ".mov", ".mkv"}
)
MAX_FILE_SIZE_BYTES = 500 * 1024 * 1024
_PAGE_LIMIT_MAX = 100
_DOWNLOAD_MEDIA_TYPES: dict[str, str] = {
    "txt": "text/plain",
    "srt": "application/x-subrip",
    "vtt": "text/vtt",
}


@dataclass(frozen=True, slots=True)
class TranscriptDownload:
    content: str
    media_type: str
    filename: str


class JobService:
    def __init__(
        self,
        store: InMemoryStore,
        *,
        dispatcher: JobDispatcher,
        runner: JobRunner,
        default_language: str = "es",
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._runner = runner
        self._default_language = default_language

    def create_job(
        self,
        *,
        account_id: str,
        file_name: str,
        file_url: str,
        file_size: int,
        language: str | None,
    ) -> Job:
        extension = PurePosixPath(file_name).suffix.lower()
        if extension not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                f"unsupported file type: {extension or file_name}",
                code="UNSUPPORTED_FILE_TYPE",
                details={"allowed_extensions": sorted(ALLOWED_EXTENSIONS)},
            )
        if file_size > MAX_FILE_SIZE_BYTES:
            raise ValidationError(
                "file too large (max 500MB)",
                code="FILE_TOO_LARGE",
                details={"max_bytes": MAX_FILE_SIZE_BYTES},
            )

        record = self._store.create_job(
            account_id=account_id,
            file_name=file_name,
            file_url=file_url,
            file_size=file_size,
            language=(language or "").strip() or self._default_language,
        )
        logger.info(
            "job.created job_id=%s account_id=%s",
            safe_log_identifier(record.id, prefix="jid"),
            safe_log_identifier(account_id, prefix="aid"),
        )
        return self.to_job(record)

    def get_job(self, *, account_id: str, job_id: str) -> Job:
        return self.to_job(self._get_owned(account_id=account_id, job_id=job_id))

    def list_jobs(self, *, account_id: str, page: int, limit: int) -> JobPage:
        if page < 1 or limit < 1 or limit > _PAGE_LIMIT_MAX:
            raise ValidationError(
                "Invalid pagination parameters",
                details={"page": page, "limit": limit, "max_limit": _PAGE_LIMIT_MAX},
            )

        records = self._store.list_jobs_for_owner(account_id)
        offset = (page - 1) * limit
        return JobPage(
            transcriptions=[self.to_job(record) for record in records[offset : offset + limit]],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=len(records),
                total_pages=math.ceil(len(records) / limit),
            ),
        )

    def start_job(self, *, account_id: str, job_id: str) -> StartJobResponse:
        """Flip a pending job to processing and hand it to the dispatcher without waiting on it."""
        safe_job_id = safe_log_identifier(job_id, prefix="jid")
        dispatch_error: RuntimeError | None = None

        with self._store.transaction():
            record = self._get_owned(account_id=account_id, job_id=job_id)
            try:
                self._store.transition_job_status(job=record, new_status=JobStatus.PROCESSING)
            except ApiError:
                logger.warning("job.start_rejected job_id=%s current_status=%s", safe_job_id, record.status)
                raise
            except RuntimeError as exc:
                raise InternalPersistenceError() from exc

            try:
                self._dispatcher.submit(record.id, self._runner.run)
            except RuntimeError as exc:
                dispatch_error = exc
                record.error_message = "failed to schedule transcription"
                self._store.transition_job_status(job=record, new_status=JobStatus.FAILED)

        if dispatch_error is not None:
            logger.warning(
                "job.dispatch_failed job_id=%s reason=%s",
                safe_job_id,
                type(dispatch_error).__name__,
            )
            raise ApiError(
                status_code=503,
                code="WORKER_UNAVAILABLE",
                message="Failed to schedule transcription",
            ) from dispatch_error

        logger.info("job.started job_id=%s", safe_job_id)
        return StartJobResponse(message="transcription started", job=self.to_job(record))

    def cancel_job(self, *, account_id: str, job_id: str) -> Job:
        """Ask a processing job to stop; the runner finalizes it as failed."""
        with self._store.transaction():
            record = self._get_owned(account_id=account_id, job_id=job_id)
            if record.status is not JobStatus.PROCESSING:
                raise ValidationError(
                    "Only processing transcriptions can be cancelled",
                    code="JOB_NOT_PROCESSING",
                    status_code=409,
                    details={"current_status": record.status},
                )

            if not self._dispatcher.cancel(record.id):
                # No live worker owns this job.
                record.error_message = "transcription cancelled"
                self._store.transition_job_status(job=record, new_status=JobStatus.FAILED)

        logger.info("job.cancel_accepted job_id=%s", safe_log_identifier(record.id, prefix="jid"))
        return self.to_job(record)

    def update_transcript(self, *, account_id: str, job_id: str, transcript_text: str) -> Job:
        with self._store.transaction():
            record = self._get_owned(account_id=account_id, job_id=job_id)
            self._ensure_completed(record, code="TRANSCRIPT_NOT_EDITABLE")
            record.transcript_text = transcript_text
            try:
                self._store.save_job(record)
            except RuntimeError as exc:
                raise InternalPersistenceError() from exc
        return self.to_job(record)

    def delete_job(self, *, account_id: str, job_id: str) -> None:
        with self._store.transaction():
            record = self._get_owned(account_id=account_id, job_id=job_id)
            if record.status is JobStatus.PROCESSING:
                raise ValidationError(
                    "Processing transcriptions cannot be deleted",
                    code="JOB_PROCESSING",
                    status_code=409,
                    details={"current_status": record.status},
                )
            self._store.delete_job(record.id)
        logger.info("job.deleted job_id=%s", safe_log_identifier(job_id, prefix="jid"))

    def download(self, *, account_id: str, job_id: str, export_format: str) -> TranscriptDownload:
        normalized = export_format.strip().lower()
        media_type = _DOWNLOAD_MEDIA_TYPES.get(normalized)
        if media_type is None:
            raise ValidationError(
                "Unsupported download format",
                code="UNSUPPORTED_FORMAT",
                details={"format": export_format, "allowed_formats": sorted(_DOWNLOAD_MEDIA_TYPES)},
            )

        record = self._get_owned(account_id=account_id, job_id=job_id)
        self._ensure_completed(record, code="TRANSCRIPT_NOT_READY")

        if normalized == "txt":
            content = record.transcript_text or ""
        else:
            content = (record.exports or {}).get(normalized, "")
        return TranscriptDownload(
            content=content,
            media_type=media_type,
            filename=f"{PurePosixPath(record.file_name).stem}.{normalized}",
        )

    def _get_owned(self, *, account_id: str, job_id: str) -> JobRecord:
        record = self._store.get_job_for_owner(account_id=account_id, job_id=job_id)
        if record is None:
            raise NotFoundError()
        return record

    @staticmethod
    def _ensure_completed(record: JobRecord, *, code: str) -> None:
        if record.status is not JobStatus.COMPLETED:
            raise ValidationError(
                "Transcription is not completed",
                code=code,
                status_code=409,
                details={"current_status": record.status},
            )

    @staticmethod
    def to_job(record: JobRecord) -> Job:
        return Job(
            id=record.id,
            account_id=record.account_id,
            file_name=record.file_name,
            file_url=record.file_url,
            file_size=record.file_size,
            language=record.language,
            status=record.status,
            provider_job_id=record.provider_job_id,
            transcript_text=record.transcript_text,
            exports=dict(record.exports) if record.exports is not None else None,
            duration_seconds=record.duration_seconds,
            credits_charged=record.credits_charged,
            error_message=record.error_message,
            created_at=record.created_at,
            updated_at=record.updated_at,
            completed_at=record.completed_at,
        )
