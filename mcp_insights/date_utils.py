"""Shared timestamp normalization helpers."""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    if dt.microsecond:
        dt = dt.replace(microsecond=(dt.microsecond // 1000) * 1000)
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return dt.isoformat().replace("+00:00", "Z")


def _parse_datetime_token(token: str) -> datetime | None:
    cleaned = token.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y/%m/%d %H:%M:%S", "%Y/%m/%d"):
        try:
            return datetime.strptime(cleaned, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def normalize_timestamp(value: Any) -> str | None:
    """Convert mixed row timestamps into ISO-8601 UTC strings.

    Unparseable strings are kept as-is so the caller still sees what the
    storage layer handed over.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _format_datetime_utc(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds, as emitted by the log producer.
        try:
            return _format_datetime_utc(datetime.fromtimestamp(float(value) / 1000.0, timezone.utc))
        except (OverflowError, OSError, ValueError):
            return str(value)
    token = str(value).strip()
    if not token:
        return None
    parsed = _parse_datetime_token(token)
    if parsed is None:
        return token
    return _format_datetime_utc(parsed)


def iso_to_epoch(value: Any) -> float | None:
    token = normalize_timestamp(value)
    if not token:
        return None
    if _DATE_ONLY_RE.match(token):
        return datetime.fromisoformat(token).replace(tzinfo=timezone.utc).timestamp()
    parsed_dt = _parse_datetime_token(token)
    if not parsed_dt:
        return None
    dt = parsed_dt if parsed_dt.tzinfo else parsed_dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).timestamp()


def in_range(value: Any, start: Any = None, end: Any = None) -> bool:
    """True when ``value`` falls inside the inclusive [start, end] window.

    Missing bounds are open. A row without a parseable timestamp only
    matches an unbounded window.
    """
    if not start and not end:
        return True
    epoch = iso_to_epoch(value)
    if epoch is None:
        return False
    if start:
        start_epoch = iso_to_epoch(start)
        if start_epoch is not None and epoch < start_epoch:
            return False
    if end:
        end_epoch = iso_to_epoch(end)
        if end_epoch is not None and epoch > end_epoch:
            return False
    return True
