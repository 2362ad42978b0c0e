"""Pydantic models for log rows, tool runs, and prompt analytics."""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Literal, Optional

from mcp_insights.date_utils import normalize_timestamp

# ── Input rows ─────────────────────────────────────────────────────

class RawRow(BaseModel):
    """One stored log line, as handed over by the row source.

    Field names mirror the storage columns. Extra columns are ignored.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    hostname: str = ""
    company_code: Optional[int] = None
    app_name: str = ""
    level: str = ""
    timestamp: Optional[str] = None
    message: str = ""
    meta: Optional[str] = None  # nominally JSON, may be truncated

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value: Any) -> Optional[str]:
        return normalize_timestamp(value)

    @field_validator("hostname", "app_name", "level", "message", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class MetaDecodeNotice(BaseModel):
    rowId: Optional[int] = None
    metaLength: int = 0
    truncated: bool = False
    tailPreview: str = ""
    errorDetail: str = ""


# ── Tool runs ──────────────────────────────────────────────────────

ToolRunStatus = Literal["success", "failure", "unknown"]
EventStatus = Literal["success", "failure", "unknown", "none"]
ResultKindName = Literal["json", "html", "text"]


class ToolRun(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    timestamp: Optional[str] = None
    hostname: str = ""
    companyCode: Optional[int] = None
    appName: str = ""
    level: str = ""
    sessionId: str
    toolName: str
    userContext: Optional[str] = None
    parameters: Optional[dict[str, Any]] = None
    status: ToolRunStatus = "unknown"
    durationMs: Optional[int] = None
    mcpVersion: Optional[str] = None
    errorClass: Optional[str] = None  # only set for failures
    resultKind: ResultKindName = "text"
    resultText: Optional[list[str]] = None
    gqlCount: int = 0
    gqlMaxTimeMs: Optional[float] = None
    gqlQuery: Optional[str] = None


class LogEvent(BaseModel):
    """Any log row, tool run or not, normalized for timeline views."""
    id: int
    timestamp: Optional[str] = None
    hostname: str = ""
    companyCode: Optional[int] = None
    appName: str = ""
    level: str = ""
    message: str = ""
    sessionId: Optional[str] = None
    toolName: Optional[str] = None
    userName: Optional[str] = None
    userContext: Optional[str] = None
    toolStatus: EventStatus = "none"
    resultPreview: Optional[str] = None


# ── Prompt analytics ───────────────────────────────────────────────

class PromptSummary(BaseModel):
    userContext: Optional[str] = None
    toolName: str
    totalRuns: int = 0
    successCount: int = 0
    failureCount: int = 0
    avgDurationMs: Optional[int] = None
    minDurationMs: Optional[int] = None
    maxDurationMs: Optional[int] = None
    versionsUsed: list[str] = Field(default_factory=list)
    exampleRunIds: list[int] = Field(default_factory=list)


class VersionStats(BaseModel):
    version: str
    totalRuns: int = 0
    successCount: int = 0
    failureCount: int = 0
    successRate: float = 0.0  # 0-100
    avgDurationMs: Optional[int] = None
    exampleRunIds: list[int] = Field(default_factory=list)


class VersionComparison(BaseModel):
    userContext: str
    toolName: str
    byVersion: list[VersionStats] = Field(default_factory=list)


# ── API envelopes ──────────────────────────────────────────────────

class ToolRunPage(BaseModel):
    toolRuns: list[ToolRun] = Field(default_factory=list)
    hasMore: bool = False
    total: int = 0


class SessionTimeline(BaseModel):
    sessionId: str
    toolRuns: list[ToolRun] = Field(default_factory=list)
    count: int = 0
    events: Optional[list[LogEvent]] = None


class PromptSummaryList(BaseModel):
    summaries: list[PromptSummary] = Field(default_factory=list)
    total: int = 0


class AppNameList(BaseModel):
    appNames: list[str] = Field(default_factory=list)
