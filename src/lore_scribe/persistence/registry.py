# ABOUTME: JSON-file registry store with load/save/lookup and additive merge
# ABOUTME: Uses Pydantic TypeAdapter for validated (de)serialization of whole entry lists

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from lore_scribe.config import Config
from lore_scribe.errors import ParseError, StorageError
from lore_scribe.persistence.models import ImageEntry, RegistryEntry, RegistryModel
from lore_scribe.utils.logging import get_logger


@dataclass(slots=True)
class MergeResult[E: RegistryModel]:
    """Outcome of merging freshly normalized entries into a registry."""

    entries: list[E]
    added: list[E] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added)


class RegistryStore[E: RegistryModel]:
    """A persisted, ID-keyed collection of entries stored as one JSON array.

    A missing file is an empty registry, not an error. Saving always rewrites
    the whole file.
    """

    def __init__(self, root: Path, name: str, model: type[E]):
        self.root = Path(root)
        self.name = name
        self.model = model
        self._adapter = TypeAdapter(list[model])
        self.logger = get_logger(__name__).bind(registry=name)

    @property
    def path(self) -> Path:
        return self.root / self.name

    def exists(self) -> bool:
        return self.path.is_file()

    async def load(self) -> list[E]:
        """Load all entries, or an empty list when the file does not exist."""
        if not self.exists():
            self.logger.info("Registry file not found, starting empty", path=str(self.path))
            return []

        try:
            raw = await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read registry {self.path}: {e}") from e

        try:
            entries = self._adapter.validate_json(raw)
        except PydanticValidationError as e:
            raise ParseError(f"Registry {self.path} is not a valid entry list: {e}") from e

        self.logger.debug("Registry loaded", entries=len(entries))
        return entries

    async def save(self, entries: Sequence[E]) -> None:
        """Overwrite the registry file with the given entries."""
        payload = self._adapter.dump_json(list(entries), by_alias=True, exclude_none=True, indent=2)
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            raise StorageError(f"Failed to save registry {self.path}: {e}") from e
        self.logger.info("Registry saved", path=str(self.path), entries=len(entries))

    def _write(self, payload: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(payload)


def find_by_id[E: RegistryModel](entries: Iterable[E], entry_id: str) -> E | None:
    """Exact-ID lookup."""
    for entry in entries:
        if entry.id == entry_id:
            return entry
    return None


def index_by_id[E: RegistryModel](entries: Iterable[E]) -> dict[str, E]:
    """Map of ID to entry; the first occurrence of a duplicated ID wins."""
    index: dict[str, E] = {}
    for entry in entries:
        index.setdefault(entry.id, entry)
    return index


def merge_entries[E: RegistryModel](existing: list[E], incoming: Iterable[E]) -> MergeResult[E]:
    """Append entries whose ID is not registered yet.

    Existing entries are never replaced (first write wins for identity fields)
    and new entries always start with extracted=False.
    """
    known = index_by_id(existing)
    merged = list(existing)
    added: list[E] = []

    for entry in incoming:
        if entry.id in known:
            continue
        entry.extracted = False
        known[entry.id] = entry
        merged.append(entry)
        added.append(entry)

    return MergeResult(entries=merged, added=added)


def category_registry(config: Config) -> RegistryStore[RegistryEntry]:
    return RegistryStore(config.registry_dir, config.category_registry_name, RegistryEntry)


def lore_registry(config: Config) -> RegistryStore[RegistryEntry]:
    return RegistryStore(config.registry_dir, config.lore_registry_name, RegistryEntry)


def image_registry(config: Config) -> RegistryStore[ImageEntry]:
    return RegistryStore(config.registry_dir, config.image_registry_name, ImageEntry)
