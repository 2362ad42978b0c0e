"""Best-effort decoding of the ``meta`` column and typed access to its paths."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from mcp_insights import config
from mcp_insights.models import MetaDecodeNotice
from mcp_insights.observability import record_meta_decode_failure

logger = logging.getLogger("mcp_insights.parsers.meta")


def _reject_constant(token: str) -> float:
    raise ValueError(f"Invalid JSON constant: {token}")


def loads_strict(text: str) -> Any:
    """``json.loads`` that refuses the NaN and Infinity extensions."""
    return json.loads(text, parse_constant=_reject_constant)


@dataclass(frozen=True)
class DecodedMeta:
    """Parsed meta document.

    ``document`` holds whatever the JSON decoded to (normally an object).
    On failure it is an empty dict and ``notice`` describes what went wrong.
    """
    document: Any = field(default_factory=dict)
    notice: MetaDecodeNotice | None = None

    @property
    def ok(self) -> bool:
        return self.notice is None

    @property
    def mapping(self) -> dict[str, Any]:
        return self.document if isinstance(self.document, dict) else {}


def _build_notice(text: str, row_id: int | None, exc: Exception) -> MetaDecodeNotice:
    byte_length = len(text.encode("utf-8", errors="replace"))
    tail_chars = max(0, config.META_TAIL_PREVIEW_CHARS)
    return MetaDecodeNotice(
        rowId=row_id,
        metaLength=byte_length,
        truncated=byte_length == config.META_TRUNCATION_BYTES,
        tailPreview=text[-tail_chars:] if tail_chars else "",
        errorDetail=str(exc),
    )


def decode_meta(text: str | None, row_id: int | None = None) -> DecodedMeta:
    """Decode the meta text. Never raises.

    A null column is an ordinary empty document. Anything that fails to parse
    yields an empty document plus a logged notice; the notice is advisory and
    does not change the result.
    """
    if text is None:
        return DecodedMeta()
    try:
        return DecodedMeta(document=loads_strict(text))
    except (ValueError, TypeError, RecursionError) as exc:
        notice = _build_notice(str(text), row_id, exc)
        logger.warning(
            "Failed to parse meta JSON for row %s (length=%s truncated=%s): %s",
            notice.rowId,
            notice.metaLength,
            notice.truncated,
            notice.errorDetail,
            extra={"metaDecodeNotice": notice.model_dump()},
        )
        record_meta_decode_failure(truncated=notice.truncated)
        return DecodedMeta(notice=notice)


# ── Path accessors ─────────────────────────────────────────────────
# One function per documented path; each returns None when the path is
# missing or holds the wrong shape.

def meta_session_id(meta: DecodedMeta) -> str | None:
    value = meta.mapping.get("sessionId")
    if isinstance(value, str) and value:
        return value
    return None


def meta_tool(meta: DecodedMeta) -> Any:
    """Raw ``tool`` section; callers distinguish absent from malformed."""
    return meta.mapping.get("tool")


def _tool_mapping(meta: DecodedMeta) -> dict[str, Any]:
    tool = meta_tool(meta)
    return tool if isinstance(tool, dict) else {}


def meta_tool_name(meta: DecodedMeta) -> str | None:
    value = _tool_mapping(meta).get("name")
    if isinstance(value, str) and value:
        return value
    return None


def meta_tool_time(meta: DecodedMeta) -> str | None:
    value = _tool_mapping(meta).get("time")
    return value if isinstance(value, str) else None


def meta_tool_parameters(meta: DecodedMeta) -> dict[str, Any] | None:
    value = _tool_mapping(meta).get("parameters")
    return value if isinstance(value, dict) else None


def meta_tool_result(meta: DecodedMeta) -> Any:
    return _tool_mapping(meta).get("result")


def meta_gql_calls(meta: DecodedMeta) -> list[Any] | None:
    value = meta.mapping.get("gql")
    return value if isinstance(value, list) else None


def meta_first_gql_call(meta: DecodedMeta) -> dict[str, Any] | None:
    calls = meta_gql_calls(meta)
    if not calls:
        return None
    first = calls[0]
    return first if isinstance(first, dict) else None


def meta_first_gql_headers(meta: DecodedMeta) -> dict[str, Any] | None:
    call = meta_first_gql_call(meta)
    if call is None:
        return None
    headers = call.get("headers")
    return headers if isinstance(headers, dict) else None
