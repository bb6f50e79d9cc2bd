# ABOUTME: Concurrent reader for folders of exported JSON records
# ABOUTME: Every file yields a SourceRecord carrying either parsed data or a tagged error

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lore_scribe.errors import LoreScribeError, ParseError, StorageError
from lore_scribe.utils.concurrency import run_bounded
from lore_scribe.utils.logging import get_logger

MAX_CONCURRENT_READS = 20

logger = get_logger(__name__)


@dataclass(slots=True)
class SourceRecord:
    """One source file: parsed data or the reason it could not be read."""

    filename: str
    data: dict[str, Any] | None = None
    error: LoreScribeError | None = None

    @property
    def ok(self) -> bool:
        return self.data is not None


def list_source_files(source_dir: Path, extension: str = ".json") -> list[Path]:
    """Files directly inside ``source_dir`` with the given extension, sorted by name."""
    if not source_dir.is_dir():
        raise StorageError(f"Source folder not found: {source_dir}")
    return sorted(p for p in source_dir.iterdir() if p.is_file() and p.name.endswith(extension))


async def read_json_file(path: Path) -> SourceRecord:
    """Read and parse a single JSON object. Never raises for per-file problems."""
    try:
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return SourceRecord(filename=path.name, error=StorageError(f"Failed to read {path.name}: {e}"))

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return SourceRecord(filename=path.name, error=ParseError(f"Malformed JSON in {path.name}: {e}"))

    if not isinstance(data, dict):
        return SourceRecord(
            filename=path.name, error=ParseError(f"Expected a JSON object in {path.name}, got {type(data).__name__}")
        )

    return SourceRecord(filename=path.name, data=data)


async def read_json_sources(
    source_dir: Path, max_concurrent: int = MAX_CONCURRENT_READS, extension: str = ".json"
) -> list[SourceRecord]:
    """Read every JSON file in a folder under a bounded pool.

    Completeness is guaranteed (one record per file); ordering across files is not.
    """
    files = list_source_files(Path(source_dir), extension)
    records = await run_bounded(files, read_json_file, max_concurrent)

    failed = [r for r in records if not r.ok]
    for record in failed:
        logger.warning("Skipping unreadable source file", filename=record.filename, error=str(record.error))

    logger.info("Source folder read", source_dir=str(source_dir), files=len(files), failed=len(failed))
    return records
