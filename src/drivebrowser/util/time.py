from __future__ import annotations

from datetime import datetime, timezone

_MAX_FRACTION_DIGITS = 6


def parse_rfc3339(value: str) -> datetime:
    """
    Parse a Drive or Drive Activity timestamp into a UTC datetime.

    Both APIs use RFC3339. Drive Activity reports nanoseconds, which are
    cut to microseconds; a trailing 'Z' and numeric offsets are accepted.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("timestamp must be a non-empty string")

    text = _clip_fraction(value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp has no UTC offset: {value!r}")
    return parsed.astimezone(timezone.utc)


def parse_rfc3339_or_none(value: object) -> datetime | None:
    """Lenient variant for API payloads and saved state."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return parse_rfc3339(value)
    except ValueError:
        return None


def to_rfc3339(dt: datetime) -> str:
    """Format an aware datetime the way Drive does (UTC, 'Z' suffix)."""
    if dt.tzinfo is None:
        raise ValueError("naive datetime cannot be serialized")
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _clip_fraction(text: str) -> str:
    dot = text.find(".")
    if dot < 0:
        return text
    end = dot + 1
    while end < len(text) and text[end].isdigit():
        end += 1
    if end - dot - 1 <= _MAX_FRACTION_DIGITS:
        return text
    return text[: dot + 1 + _MAX_FRACTION_DIGITS] + text[end:]
