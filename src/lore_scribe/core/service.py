# ABOUTME: High-level service API for synchronizing registries from exported source folders
# ABOUTME: Ingests, merges additively, resolves the category tree and mirrors it on disk

from __future__ import annotations

from pathlib import Path

from lore_scribe.config import Config
from lore_scribe.core.mirror import sync_file_system
from lore_scribe.core.models import ItemResult, SyncReport
from lore_scribe.core.tree import build_category_tree
from lore_scribe.errors import StorageError
from lore_scribe.extraction import normalize_records, read_json_sources
from lore_scribe.persistence import (
    LORE_CLASSES,
    EntityClass,
    RegistryModel,
    RegistryStore,
    category_registry,
    image_registry,
    lore_registry,
    merge_entries,
)
from lore_scribe.utils.logging import get_logger, with_async_operation_context

CATEGORY_CLASSES = frozenset({EntityClass.CATEGORY})
IMAGE_CLASSES = frozenset({EntityClass.IMAGE})


class RegistrySyncService:
    """Service that keeps the category, lore and image registries in step with their source folders."""

    def __init__(self, config: Config):
        self.config = config
        self.logger = get_logger(__name__)

    async def _ingest[E: RegistryModel](
        self, source_dir: Path, store: RegistryStore[E], accepted: frozenset[EntityClass]
    ) -> tuple[list[E], SyncReport]:
        """Read, normalize and merge one source folder into a registry (in memory)."""
        records = await read_json_sources(source_dir, self.config.max_concurrent_reads)
        normalized = normalize_records(records, accepted)

        existing = await store.load()
        merge = merge_entries(existing, (n.entry for n in normalized if n.entry is not None))
        added = {id(entry) for entry in merge.added}

        report = SyncReport(
            registry=store.name,
            source_files=len(records),
            total_entries=len(merge.entries),
            added=merge.added_count,
        )
        for item in normalized:
            if item.entry is None:
                error = item.error or StorageError("Unreadable source file")
                report.ingest.results.append(ItemResult.failure(item.source_filename, error, label=item.source_filename))
            elif id(item.entry) in added:
                report.ingest.results.append(ItemResult.success(item.entry.id, label=item.source_filename))
            else:
                report.ingest.results.append(
                    ItemResult.skipped(item.entry.id, label=item.source_filename, detail="already registered")
                )

        self.logger.info(
            "Source folder merged",
            registry=store.name,
            source_files=report.source_files,
            added=report.added,
            total_entries=report.total_entries,
            failed=len(report.ingest.errors),
        )
        return merge.entries, report

    @with_async_operation_context("sync_categories")
    async def sync_categories(self, source_dir: Path | None = None) -> SyncReport:
        """Merge category records, resolve reference paths and mirror them as directories."""
        store = category_registry(self.config)
        entries, report = await self._ingest(
            Path(source_dir or self.config.category_source_folder), store, CATEGORY_CLASSES
        )

        tree, assigned, tree_changed = build_category_tree(entries)
        report.paths_assigned = assigned
        report.cycle_breaks = list(tree.cycle_breaks)
        report.directories_created = sync_file_system(
            self.config.output_folder, (node.reference_path for node in tree.nodes.values())
        )

        if report.added or tree_changed:
            await store.save(entries)
            report.saved = True
        return report

    @with_async_operation_context("sync_lore")
    async def sync_lore(self, source_dir: Path | None = None) -> SyncReport:
        """Merge article-like records into the lore registry."""
        store = lore_registry(self.config)
        entries, report = await self._ingest(Path(source_dir or self.config.lore_source_folder), store, LORE_CLASSES)
        if report.added:
            await store.save(entries)
            report.saved = True
        return report

    @with_async_operation_context("sync_images")
    async def sync_images(self, source_dir: Path | None = None) -> SyncReport:
        """Merge image records into the image registry."""
        store = image_registry(self.config)
        entries, report = await self._ingest(Path(source_dir or self.config.image_source_folder), store, IMAGE_CLASSES)
        if report.added:
            await store.save(entries)
            report.saved = True
        return report

    async def registry_status(self) -> dict[str, dict[str, object]]:
        """Entry and extracted counts for each registry."""
        status: dict[str, dict[str, object]] = {}
        for store in (category_registry(self.config), lore_registry(self.config), image_registry(self.config)):
            entries = await store.load()
            status[store.name] = {
                "exists": store.exists(),
                "path": str(store.path),
                "entries": len(entries),
                "extracted": sum(1 for entry in entries if entry.extracted),
            }
        return status
