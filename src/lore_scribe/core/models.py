# ABOUTME: Per-item result values and run reports aggregated by every pipeline phase
# ABOUTME: Includes the download task state machine and the plain-text run log formats

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from lore_scribe.errors import ErrorKind, LoreScribeError


class ResultStatus(str, Enum):
    """Outcome of processing one item."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    EMPTY = "empty"
    ERROR = "error"


class ItemResult(BaseModel):
    """Result of one unit of work (a source file, a document, an index page)."""

    item_id: str
    label: str = ""
    status: ResultStatus
    detail: str = ""
    error_kind: ErrorKind | None = None

    @classmethod
    def success(cls, item_id: str, label: str = "", detail: str = "") -> "ItemResult":
        return cls(item_id=item_id, label=label, status=ResultStatus.SUCCESS, detail=detail)

    @classmethod
    def skipped(cls, item_id: str, label: str = "", detail: str = "") -> "ItemResult":
        return cls(item_id=item_id, label=label, status=ResultStatus.SKIPPED, detail=detail)

    @classmethod
    def empty(cls, item_id: str, label: str = "", detail: str = "") -> "ItemResult":
        return cls(item_id=item_id, label=label, status=ResultStatus.EMPTY, detail=detail)

    @classmethod
    def failure(cls, item_id: str, error: LoreScribeError, label: str = "") -> "ItemResult":
        return cls(item_id=item_id, label=label, status=ResultStatus.ERROR, detail=str(error), error_kind=error.kind)

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    def log_line(self) -> str:
        result = self.status.value.upper()
        if self.status == ResultStatus.ERROR:
            result = f"ERROR:{self.error_kind.value if self.error_kind else 'unknown'} ({self.detail})"
        elif self.status == ResultStatus.EMPTY:
            result = f"EMPTY ({self.detail})" if self.detail else "EMPTY"
        return f"{self.item_id} | {self.label or 'N/A'} | {result}"


class PhaseReport(BaseModel):
    """Aggregated results of one phase."""

    phase: str
    results: list[ItemResult] = Field(default_factory=list)

    def count(self, status: ResultStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def errors(self) -> list[ItemResult]:
        return [r for r in self.results if r.status == ResultStatus.ERROR]

    def summary(self) -> dict[str, int]:
        return {status.value: self.count(status) for status in ResultStatus}


class SyncReport(BaseModel):
    """Outcome of synchronizing one registry from a source folder."""

    registry: str
    source_files: int = 0
    total_entries: int = 0
    added: int = 0
    paths_assigned: int = 0
    directories_created: int = 0
    saved: bool = False
    cycle_breaks: list[str] = Field(default_factory=list)
    ingest: PhaseReport = Field(default_factory=lambda: PhaseReport(phase="ingest"))


class GenerationReport(BaseModel):
    """Outcome of one document generation run."""

    lore_paths_assigned: int = 0
    indexes: PhaseReport = Field(default_factory=lambda: PhaseReport(phase="indexes"))
    articles: PhaseReport = Field(default_factory=lambda: PhaseReport(phase="articles"))
    extracted: int = 0
    log_path: Path | None = None


class DownloadState(str, Enum):
    """States of a single download task."""

    PENDING = "pending"
    FETCHING = "fetching"
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"
    SKIPPED = "skipped"


class DownloadTask(BaseModel):
    """A URL to fetch into the image folder under ``filename``."""

    url: str
    filename: str
    entry_id: str | None = None
    state: DownloadState = DownloadState.PENDING
    attempts: int = 0
    result: str = ""

    def log_line(self) -> str:
        return f"{self.url or 'N/A'} | {self.filename or 'N/A'} | {self.result}"


class DownloadReport(BaseModel):
    """Every attempted or skipped download of a run."""

    tasks: list[DownloadTask] = Field(default_factory=list)
    registry_synced: int = 0
    log_path: Path | None = None

    def count(self, state: DownloadState) -> int:
        return sum(1 for t in self.tasks if t.state == state)

    def summary(self) -> dict[str, int]:
        return {state.value: self.count(state) for state in DownloadState if state != DownloadState.FETCHING}


DOWNLOAD_LOG_HEADER = "URL | FILENAME | RESULT"
EXTRACTION_LOG_HEADER = "ID | TITLE | RESULT"


def timestamp_slug(now: datetime | None = None) -> str:
    """YYYYMMDD-HHMMSS, used to keep run log names unique."""
    return (now or datetime.now()).strftime("%Y%m%d-%H%M%S")


def render_log(header: str, lines: list[str]) -> str:
    return f"{header}\n{'-' * 80}\n" + "\n".join(lines) + ("\n" if lines else "")
