from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional, Tuple


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_retry_after(
    header_value: str,
    now: Optional[Callable[[], datetime]] = None,
) -> Tuple[datetime, str]:
    if header_value is None:
        raise ValueError("Retry-After header is missing")
    candidate = header_value.strip()
    if not candidate:
        raise ValueError("Retry-After header is empty")

    if candidate.isdigit():
        clock = now or _utcnow
        return clock() + timedelta(seconds=int(candidate)), "delta-seconds"

    cleaned = candidate
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc), "rfc3339"
    except ValueError:
        pass

    try:
        parsed = parsedate_to_datetime(candidate)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc), "http-date"
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Unable to parse Retry-After header: {candidate}") from exc
