"""Transcription routes."""

from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, Path, Query, Response, status

from litwick.repositories.memory import AccountRecord
from litwick.routes.dependencies import get_current_account, get_job_service
from litwick.schemas.error import ErrorResponse, FsmTransitionError, NoLeakNotFoundError
from litwick.schemas.job import CreateJobRequest, Job, JobPage, StartJobResponse, UpdateTranscriptRequest
from litwick.services.jobs import JobService

router = APIRouter(prefix="/transcriptions", tags=["Transcriptions"])


@router.post(
    "",
    response_model=Job,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def create_transcription(
    payload: CreateJobRequest,
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.create_job(
        account_id=account.id,
        file_name=payload.file_name,
        file_url=payload.file_url,
        file_size=payload.file_size,
        language=payload.language,
    )


@router.get("", response_model=JobPage, responses={400: {"model": ErrorResponse}})
async def list_transcriptions(
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> JobPage:
    return service.list_jobs(account_id=account.id, page=page, limit=limit)


@router.get(
    "/{transcriptionId}",
    response_model=Job,
    responses={404: {"model": NoLeakNotFoundError}},
)
async def get_transcription(
    job_id: Annotated[str, Path(alias="transcriptionId")],
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.get_job(account_id=account.id, job_id=job_id)


@router.post(
    "/{transcriptionId}/process",
    response_model=StartJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": NoLeakNotFoundError},
        409: {"model": FsmTransitionError},
        503: {"model": ErrorResponse},
    },
)
async def process_transcription(
    job_id: Annotated[str, Path(alias="transcriptionId")],
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> StartJobResponse:
    return service.start_job(account_id=account.id, job_id=job_id)


@router.post(
    "/{transcriptionId}/cancel",
    response_model=Job,
    responses={404: {"model": NoLeakNotFoundError}, 409: {"model": ErrorResponse}},
)
async def cancel_transcription(
    job_id: Annotated[str, Path(alias="transcriptionId")],
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.cancel_job(account_id=account.id, job_id=job_id)


@router.put(
    "/{transcriptionId}",
    response_model=Job,
    responses={404: {"model": NoLeakNotFoundError}, 409: {"model": ErrorResponse}},
)
async def update_transcription(
    job_id: Annotated[str, Path(alias="transcriptionId")],
    payload: UpdateTranscriptRequest,
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.update_transcript(
        account_id=account.id,
        job_id=job_id,
        transcript_text=payload.transcript_text,
    )


@router.delete(
    "/{transcriptionId}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": NoLeakNotFoundError}, 409: {"model": ErrorResponse}},
)
async def delete_transcription(
    job_id: Annotated[str, Path(alias="transcriptionId")],
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Response:
    service.delete_job(account_id=account.id, job_id=job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{transcriptionId}/download",
    response_class=Response,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        409: {"model": ErrorResponse},
    },
)
async def download_transcription(
    job_id: Annotated[str, Path(alias="transcriptionId")],
    account: Annotated[AccountRecord, Depends(get_current_account)],
    service: Annotated[JobService, Depends(get_job_service)],
    export_format: Annotated[str, Query(alias="format")] = "txt",
) -> Response:
    download = service.download(account_id=account.id, job_id=job_id, export_format=export_format)
    return Response(
        content=download.content,
        media_type=download.media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(download.filename)}"},
    )
