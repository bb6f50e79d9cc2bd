# ABOUTME: Reading exported records from disk and normalizing them
# ABOUTME: Pipeline Stage 1: JSON files → tagged records → canonical registry entries

"""
Extraction Layer: Get raw records from exported folders

This layer handles:
- Bounded-concurrency reading and parsing of JSON source files
- Per-entity-class projection into canonical registry entries
- Tagging unreadable or invalid records instead of aborting the batch

Data Flow: Source folders → SourceRecord → NormalizedRecord → persistence/
"""

from .normalizer import PROJECTIONS, NormalizedRecord, normalize_record, normalize_records
from .source import SourceRecord, read_json_file, read_json_sources

__all__ = [
    "NormalizedRecord",
    "PROJECTIONS",
    "SourceRecord",
    "normalize_record",
    "normalize_records",
    "read_json_file",
    "read_json_sources",
]
