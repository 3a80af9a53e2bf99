"""Small helpers shared by both stores: ids, timestamps, durations."""

import random
import string
from datetime import datetime, timezone

_BASE36 = string.digits + string.ascii_lowercase
_CHUNK = 11


def generate_id() -> str:
    """
    Two random base-36 chunks concatenated.

    Not cryptographic and not collision-free; fine for a catalog of a few
    thousand records. Uniqueness is still enforced by the stores.
    """
    return "".join(random.choices(_BASE36, k=_CHUNK)) + "".join(random.choices(_BASE36, k=_CHUNK))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we write is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_utc(value: datetime) -> datetime:
    """SQLite keeps the wall-clock time only, so everything is stored as UTC."""
    return ensure_aware(value).astimezone(timezone.utc)


def format_duration(total_seconds: int) -> str:
    """125 -> "02:05", 3725 -> "01:02:05"."""
    total_seconds = max(int(total_seconds), 0)
    minutes, seconds = divmod(total_seconds, 60)
    if minutes < 60:
        return f"{minutes:02d}:{seconds:02d}"
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
