"""Timestamp helpers shared by the pipeline and the handle cache."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get the current UTC timestamp."""
    return datetime.now(tz=timezone.utc)


def epoch_ms(moment: datetime | None = None) -> int:
    """Milliseconds since the Unix epoch for ``moment`` (default: now)."""
    return int((moment or utc_now()).timestamp() * 1000)
