"""Transcription job lifecycle transition rules."""

from litwick.errors import ValidationError
from litwick.schemas.job import JobStatus

_TERMINAL_STATES: set[JobStatus] = {
    JobStatus.COMPLETED,
    JobStatus.FAILED,
}

_ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def is_terminal(status: JobStatus) -> bool:
    return status in _TERMINAL_STATES


def allowed_next_statuses(status: JobStatus) -> list[JobStatus]:
    """Return deterministically ordered allowed successors for a status."""
    return sorted(_ALLOWED_TRANSITIONS.get(status, set()), key=lambda s: s.value)


def ensure_transition(old_status: JobStatus, new_status: JobStatus) -> None:
    """Validate transition according to lifecycle rules."""
    if old_status in _TERMINAL_STATES:
        raise ValidationError(
            "Terminal state cannot be mutated",
            code="FSM_TERMINAL_IMMUTABLE",
            status_code=409,
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": [],
            },
        )

    if new_status not in _ALLOWED_TRANSITIONS.get(old_status, set()):
        raise ValidationError(
            "Invalid status transition",
            code="FSM_TRANSITION_INVALID",
            status_code=409,
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": allowed_next_statuses(old_status),
            },
        )
