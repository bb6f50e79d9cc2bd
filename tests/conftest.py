# ABOUTME: Shared pytest fixtures for registry, generator and download tests
# ABOUTME: Provides an isolated Config rooted in tmp_path and helpers to write exported records

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from lore_scribe.config import Config


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config with every folder under tmp_path."""
    return Config(
        output_folder=tmp_path / "output",
        category_source_folder=tmp_path / "source" / "Categories",
        lore_source_folder=tmp_path / "source" / "Articles",
        image_source_folder=tmp_path / "source" / "images",
        log_mode="production",
    )


@pytest.fixture
def write_records() -> Callable[[Path, list[dict[str, Any]]], list[Path]]:
    """Write each record as ``<id>.json`` (or ``record_<n>.json``) into a folder."""

    def _write(folder: Path, records: list[dict[str, Any]]) -> list[Path]:
        folder.mkdir(parents=True, exist_ok=True)
        paths = []
        for index, record in enumerate(records):
            name = f"{record['id']}.json" if record.get("id") else f"record_{index}.json"
            path = folder / name
            path.write_text(json.dumps(record), encoding="utf-8")
            paths.append(path)
        return paths

    return _write
