from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with millisecond precision and trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    """Timestamp string stored in created_at / updated_at columns."""
    return to_utc_z(utcnow())


def timestamp_for_filename(dt: Optional[datetime] = None) -> str:
    """Local-time stamp used in backup file names: YYYYMMDD-HHMMSS."""
    dt = dt or datetime.now()
    return dt.strftime("%Y%m%d-%H%M%S")
