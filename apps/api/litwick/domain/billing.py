"""Usage metering rules."""

MINIMUM_BILLED_MINUTES = 1


def billed_minutes(duration_ms: int | None) -> int:
    """Whole minutes of audio to charge, never less than the one-minute minimum."""
    minutes = max(duration_ms or 0, 0) // 1000 // 60
    return max(minutes, MINIMUM_BILLED_MINUTES)


def duration_seconds(duration_ms: int | None) -> int:
    return max(duration_ms or 0, 0) // 1000
