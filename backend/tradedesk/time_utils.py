# Overview: Clock and timestamp formatting helpers.

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime; every DateTime column stores this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def period_key(when: datetime | None = None) -> str:
    """Month bucket for document counters, e.g. '202610'."""
    when = when or utcnow()
    return when.strftime("%Y%m")


def to_utc_z(value: datetime | None) -> str | None:
    """Render a stored timestamp as '2026-10-17T08:30:00Z'. Naive values are UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat() + "Z"


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    ISO-8601 text -> naive UTC datetime. Blank -> None.

    A value without an offset is taken to be UTC already; 'Z' and
    '+HH:MM' offsets are converted.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed
    return parsed.astimezone(timezone.utc).replace(tzinfo=None)
