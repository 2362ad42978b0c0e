"""Row sources feeding the parsing core.

Storage is owned elsewhere; the API only needs something that can hand over
``RawRow`` batches for a set of filter criteria. ``JsonlRowSource`` replays a
JSONL export of the log table and is what the app uses out of the box.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from mcp_insights import config
from mcp_insights.date_utils import iso_to_epoch, in_range
from mcp_insights.models import RawRow

logger = logging.getLogger("mcp_insights.sources")


@dataclass
class RowQuery:
    hostname: str = ""
    company_code: int | None = None
    app_name: str = ""
    level: str = ""
    text: str = ""  # substring of message or meta
    ids: list[int] = field(default_factory=list)
    start: str | None = None
    end: str | None = None
    ascending: bool = False
    limit: int = 1000
    offset: int = 0


class LogRowSource(Protocol):
    async def fetch_rows(self, query: RowQuery) -> list[RawRow]: ...

    async def list_app_names(self) -> list[str]: ...

    async def ping(self) -> bool: ...


def _matches(row: RawRow, query: RowQuery, id_set: set[int]) -> bool:
    if query.hostname and row.hostname != query.hostname:
        return False
    if query.company_code is not None and row.company_code != query.company_code:
        return False
    if query.app_name and row.app_name != query.app_name:
        return False
    if query.level and row.level != query.level:
        return False
    if id_set and row.id not in id_set:
        return False
    if query.text:
        needle = query.text.lower()
        if needle not in row.message.lower() and needle not in (row.meta or "").lower():
            return False
    return in_range(row.timestamp, query.start, query.end)


def _sort_key(row: RawRow) -> tuple[float, int]:
    epoch = iso_to_epoch(row.timestamp)
    return (epoch if epoch is not None else float("-inf"), row.id)


class JsonlRowSource:
    """Serve rows from a JSONL export, one row object per line."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._rows: list[RawRow] | None = None

    def _load(self) -> list[RawRow]:
        if self._rows is not None:
            return self._rows
        rows: list[RawRow] = []
        if not self.path.exists():
            logger.warning("Row export not found: %s", self.path)
            self._rows = rows
            return rows
        with self.path.open("r", encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    rows.append(RawRow.model_validate(json.loads(line)))
                except (ValueError, OverflowError, ValidationError) as exc:
                    logger.warning("Skipping invalid row at %s:%s: %s", self.path, line_no, exc)
        logger.info("Loaded %s rows from %s", len(rows), self.path)
        self._rows = rows
        return rows

    def reload(self) -> None:
        self._rows = None

    async def fetch_rows(self, query: RowQuery) -> list[RawRow]:
        id_set = set(query.ids)
        matched = [row for row in self._load() if _matches(row, query, id_set)]
        matched.sort(key=_sort_key, reverse=not query.ascending)
        offset = max(0, query.offset)
        return matched[offset:offset + max(0, query.limit)]

    async def list_app_names(self) -> list[str]:
        return sorted({row.app_name for row in self._load() if "mcp" in row.app_name.lower()})

    async def ping(self) -> bool:
        return self.path.exists()


_source: LogRowSource | None = None


def get_row_source() -> LogRowSource:
    """Return the process-wide row source, defaulting to the configured export."""
    global _source
    if _source is None:
        _source = JsonlRowSource(config.ROWS_PATH)
    return _source


def set_row_source(source: LogRowSource | None) -> None:
    global _source
    _source = source
