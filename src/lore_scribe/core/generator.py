# ABOUTME: Document generator that writes Markdown articles and category index pages
# ABOUTME: Buffers extracted flags in memory and persists the lore registry once per run

from __future__ import annotations

import asyncio
import posixpath
from pathlib import Path

from lore_scribe.config import Config
from lore_scribe.core.markup import LinkContext, MarkupTransformer, OutputMode, parse_metadata_to_frontmatter
from lore_scribe.core.mirror import sync_file_system
from lore_scribe.core.models import (
    EXTRACTION_LOG_HEADER,
    GenerationReport,
    ItemResult,
    render_log,
    timestamp_slug,
)
from lore_scribe.errors import LoreScribeError, PrerequisiteMissingError, StorageError, ValidationError
from lore_scribe.persistence import (
    ImageEntry,
    RegistryEntry,
    RegistryStore,
    category_registry,
    image_registry,
    index_by_id,
    lore_registry,
)
from lore_scribe.utils.concurrency import run_bounded
from lore_scribe.utils.logging import get_logger, with_async_operation_context, with_entity_context

SIDEBAR_KEY = "sidebar_custom"


def assign_lore_paths(categories: list[RegistryEntry], lore: list[RegistryEntry]) -> int:
    """Give each listed lore entry its category's reference path.

    Entries that already have a path keep it, so the first category listing an
    article wins. Returns the number of entries updated.
    """
    lore_index = index_by_id(lore)
    assigned = 0
    for category in categories:
        if not category.reference_path:
            continue
        for ref in category.articles or []:
            entry = lore_index.get(ref.id)
            if entry is None or entry.reference_path:
                continue
            entry.reference_path = category.reference_path
            assigned += 1
    return assigned


def reachable_ids(categories: list[RegistryEntry]) -> set[str]:
    """IDs of every article listed by at least one category."""
    return {ref.id for category in categories for ref in (category.articles or [])}


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class DocumentGenerator:
    """Generates the Markdown document tree from the synchronized registries."""

    def __init__(self, config: Config):
        self.config = config
        self.output_root = Path(config.output_folder)
        self.logger = get_logger(__name__)

    async def _load_required[E: (RegistryEntry, ImageEntry)](self, store: RegistryStore[E], command: str) -> list[E]:
        if not store.exists():
            raise PrerequisiteMissingError(store.name, command)
        return await store.load()

    @with_async_operation_context("process_lore")
    async def run(self) -> GenerationReport:
        """Generate index pages and every reachable, not yet extracted article."""
        category_store = category_registry(self.config)
        lore_store = lore_registry(self.config)

        categories = await self._load_required(category_store, "sync-categories")
        lore = await self._load_required(lore_store, "sync-lore")
        images = await self._load_required(image_registry(self.config), "sync-images")

        report = GenerationReport()
        report.lore_paths_assigned = assign_lore_paths(categories, lore)
        if report.lore_paths_assigned:
            await lore_store.save(lore)

        sync_file_system(self.output_root, (entry.reference_path for entry in [*categories, *lore]))

        category_index = index_by_id(c for c in categories if c.is_category)
        lore_index = index_by_id(lore)
        image_index = index_by_id(images)

        report.indexes.results = await run_bounded(
            list(category_index.values()),
            lambda category: self.write_index(category, category_index, lore_index),
            self.config.max_concurrent_processing,
        )

        reachable = reachable_ids(categories)
        candidates = [entry for entry in lore_index.values() if entry.id in reachable]
        pending = [entry for entry in candidates if not entry.extracted]
        report.articles.results = [
            ItemResult.skipped(entry.id, entry.title, "already extracted") for entry in candidates if entry.extracted
        ]

        results = await run_bounded(
            pending,
            lambda entry: self.generate_article(entry, lore_index, image_index),
            self.config.max_concurrent_processing,
        )
        report.articles.results.extend(results)

        # Flags are only flipped after the whole phase has finished
        for entry, result in zip(pending, results, strict=True):
            if result.ok and entry.mark_extracted():
                report.extracted += 1
        if report.extracted:
            await lore_store.save(lore)

        report.log_path = await self.write_run_log(report)

        self.logger.info(
            "Lore processing finished",
            indexes=report.indexes.summary(),
            articles=report.articles.summary(),
            extracted=report.extracted,
            log_path=str(report.log_path),
        )
        return report

    async def write_index(
        self,
        category: RegistryEntry,
        category_index: dict[str, RegistryEntry],
        lore_index: dict[str, RegistryEntry],
    ) -> ItemResult:
        """Write ``<referencePath>/index.md`` linking child categories and direct articles."""
        if not category.reference_path:
            return ItemResult.failure(category.id, ValidationError("Category has no reference path"), category.title)

        base = category.reference_path
        lines: list[str] = []

        for child_id in category.children or []:
            child = category_index.get(child_id)
            if child is None or not child.reference_path:
                continue
            lines.append(f"### [{child.title or child.id}]({posixpath.relpath(child.reference_path, base)})")

        for ref in category.articles or []:
            entry = lore_index.get(ref.id)
            title = ref.title or (entry.title if entry else "")
            if not title:
                continue
            target_dir = entry.reference_path if entry and entry.reference_path else base
            lines.append(f"### [{title}]({posixpath.relpath(f'{target_dir}/{ref.id}.md', base)})")

        if not lines:
            self.logger.info("Empty category, no index written", category_id=category.id)
            return ItemResult.empty(category.id, category.title, "no child categories or articles")

        content = parse_metadata_to_frontmatter({"title": category.title}) + "\n".join(lines) + "\n"
        path = self.output_root / base / "index.md"
        try:
            await asyncio.to_thread(_write_text, path, content)
        except OSError as e:
            return ItemResult.failure(category.id, StorageError(f"Failed to write {path}: {e}"), category.title)
        return ItemResult.success(category.id, category.title)

    def render_article(
        self,
        entry: RegistryEntry,
        lore_index: dict[str, RegistryEntry],
        image_index: dict[str, ImageEntry],
    ) -> str:
        """Frontmatter, optional cover image, title heading and transformed body.

        Raises:
            ValidationError: When the entry has no content or no reference path
            ReferenceResolutionError: When a link or image cannot be resolved
        """
        if not entry.content:
            raise ValidationError("Article has no content")
        if not entry.reference_path:
            raise ValidationError("Article has no reference path")

        context = LinkContext(
            reference_path=entry.reference_path,
            lore_index=lore_index,
            image_index=image_index,
            image_folder=self.config.image_folder_name,
        )
        body = MarkupTransformer(context).transform(entry.content)

        metadata: dict[str, str] = {"title": entry.title, "slug": entry.slug}
        side_panel = "\n".join(part for part in (entry.side_panel_top, entry.side_panel_bottom) if part)
        if side_panel:
            metadata[SIDEBAR_KEY] = MarkupTransformer(context, OutputMode.HTML).transform(side_panel)

        cover = ""
        if entry.cover_id:
            image = image_index.get(entry.cover_id)
            if image is not None:
                cover = f"![{entry.title}]({context.relative(f'{context.image_folder}/{image.filename}')})\n\n"
            else:
                self.logger.warning("Cover image not registered", entity_id=entry.id, cover_id=entry.cover_id)

        frontmatter = parse_metadata_to_frontmatter(metadata, literal_keys=(SIDEBAR_KEY,))
        return f"{frontmatter}{cover}# {entry.title}\n\n{body}"

    async def generate_article(
        self,
        entry: RegistryEntry,
        lore_index: dict[str, RegistryEntry],
        image_index: dict[str, ImageEntry],
    ) -> ItemResult:
        """Render and write one article. Never raises for per-article problems."""
        with with_entity_context(entry.id, entry.entity_class.value) as logger:
            try:
                document = self.render_article(entry, lore_index, image_index)
            except LoreScribeError as e:
                logger.error("Article generation failed", error=str(e), error_kind=e.kind.value)
                return ItemResult.failure(entry.id, e, entry.title)

            path = self.output_root / str(entry.reference_path) / f"{entry.id}.md"
            try:
                await asyncio.to_thread(_write_text, path, document)
            except OSError as e:
                error = StorageError(f"Failed to write {path}: {e}")
                logger.error("Article write failed", error=str(error))
                return ItemResult.failure(entry.id, error, entry.title)

            logger.debug("Article written", path=str(path))
            return ItemResult.success(entry.id, entry.title)

    async def write_run_log(self, report: GenerationReport) -> Path:
        """Write ``lore_extraction_log_<timestamp>.txt`` in the output root."""
        lines = [result.log_line() for result in [*report.indexes.results, *report.articles.results]]
        path = self.output_root / f"lore_extraction_log_{timestamp_slug()}.txt"
        try:
            await asyncio.to_thread(_write_text, path, render_log(EXTRACTION_LOG_HEADER, lines))
        except OSError as e:
            raise StorageError(f"Failed to write run log {path}: {e}") from e
        return path
