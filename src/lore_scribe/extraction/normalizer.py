# ABOUTME: Projects raw exported JSON records into canonical registry entries
# ABOUTME: One pure projection per entity class; unknown classes and missing identity fields are reported, not raised

from __future__ import annotations

import posixpath
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any
from urllib.parse import unquote, urlparse

from pydantic import ValidationError as PydanticValidationError

from lore_scribe.errors import LoreScribeError, UnknownEntityClassError, ValidationError
from lore_scribe.extraction.source import SourceRecord
from lore_scribe.persistence.models import ArticleRef, EntityClass, ImageEntry, RegistryEntry
from lore_scribe.utils.logging import get_logger

REQUIRED_FIELDS = ("id", "entityClass", "url")

logger = get_logger(__name__)

Entry = RegistryEntry | ImageEntry
Projection = Callable[[dict[str, Any], EntityClass], Entry]


@dataclass(slots=True)
class NormalizedRecord:
    """Result of normalizing one source record."""

    source_filename: str
    entry: Entry | None = None
    error: LoreScribeError | None = None

    @property
    def ok(self) -> bool:
        return self.entry is not None


def _text(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    return str(value)


def _ref_id(raw: dict[str, Any], key: str) -> str | None:
    """Foreign key from either a nested ``{key: {id}}`` object or a flat ``{key}Id`` field."""
    nested = raw.get(key)
    if isinstance(nested, dict) and nested.get("id") is not None:
        return str(nested["id"])
    flat = raw.get(f"{key}Id")
    return str(flat) if flat is not None else None


def _identity(raw: dict[str, Any], entity_class: EntityClass) -> dict[str, Any]:
    return {
        "id": str(raw["id"]),
        "entity_class": entity_class,
        "title": _text(raw, "title") or "",
        "slug": _text(raw, "slug") or "",
        "url": str(raw["url"]),
    }


def _project_lore(raw: dict[str, Any], entity_class: EntityClass) -> RegistryEntry:
    return RegistryEntry(
        **_identity(raw, entity_class),
        content=_text(raw, "content"),
        cover_id=_ref_id(raw, "cover"),
        category_id=_ref_id(raw, "category"),
    )


def _project_article(raw: dict[str, Any], entity_class: EntityClass) -> RegistryEntry:
    entry = _project_lore(raw, entity_class)
    entry.side_panel_top = _text(raw, "sidepanelcontenttop")
    return entry


def _project_person(raw: dict[str, Any], entity_class: EntityClass) -> RegistryEntry:
    entry = _project_article(raw, entity_class)
    entry.side_panel_bottom = _text(raw, "sidepanelcontent")
    return entry


def _project_category(raw: dict[str, Any], entity_class: EntityClass) -> RegistryEntry:
    articles = [
        ArticleRef.model_validate({**item, "id": str(item["id"])})
        for item in raw.get("articles") or []
        if isinstance(item, dict) and item.get("id") is not None
    ]
    return RegistryEntry(
        **_identity(raw, entity_class),
        content=_text(raw, "description"),
        parent_id=_ref_id(raw, "parent"),
        children=[],
        articles=articles,
    )


def is_plain_filename(name: str) -> bool:
    """True for a bare file name with no directory part on either path flavour."""
    if name in ("", ".", ".."):
        return False
    return PurePosixPath(name).name == name and PureWindowsPath(name).name == name


def _filename_from_url(url: str) -> str:
    return unquote(posixpath.basename(urlparse(url).path))


def _project_image(raw: dict[str, Any], entity_class: EntityClass) -> ImageEntry:
    url = str(raw["url"])
    filename = _text(raw, "filename") or _filename_from_url(url)
    if not filename:
        raise ValidationError(f"Image {raw['id']} has no filename and none can be derived from {url}")
    if not is_plain_filename(filename):
        raise ValidationError(f"Image {raw['id']} filename {filename!r} is not a plain file name")
    return ImageEntry(
        id=str(raw["id"]),
        url=url,
        filename=filename,
        entity_class=entity_class,
        title=_text(raw, "title") or "",
        page_url=_text(raw, "pageUrl"),
    )


PROJECTIONS: dict[EntityClass, Projection] = {
    EntityClass.ARTICLE: _project_article,
    EntityClass.PERSON: _project_person,
    EntityClass.LOCATION: _project_lore,
    EntityClass.ORGANIZATION: _project_lore,
    EntityClass.SPECIES: _project_lore,
    EntityClass.ITEM: _project_lore,
    EntityClass.CATEGORY: _project_category,
    EntityClass.IMAGE: _project_image,
}


def unwrap_record(raw: dict[str, Any]) -> dict[str, Any]:
    """Exports sometimes wrap the entity in a ``fullContent`` envelope."""
    inner = raw.get("fullContent")
    return inner if isinstance(inner, dict) else raw


def parse_entity_class(value: object) -> EntityClass:
    try:
        return EntityClass(value)
    except ValueError:
        raise UnknownEntityClassError(value) from None


def normalize_record(raw: dict[str, Any], source_filename: str = "") -> NormalizedRecord:
    """Project one raw record into its canonical entry shape."""
    record = unwrap_record(raw)

    missing = [name for name in REQUIRED_FIELDS if record.get(name) in (None, "")]
    if missing:
        return NormalizedRecord(
            source_filename=source_filename,
            error=ValidationError(f"Missing required field(s): {', '.join(missing)}"),
        )

    try:
        entity_class = parse_entity_class(record["entityClass"])
        entry = PROJECTIONS[entity_class](record, entity_class)
    except LoreScribeError as e:
        return NormalizedRecord(source_filename=source_filename, error=e)
    except PydanticValidationError as e:
        return NormalizedRecord(
            source_filename=source_filename,
            error=ValidationError(f"Record {record['id']} does not fit its {record['entityClass']} shape: {e}"),
        )

    return NormalizedRecord(source_filename=source_filename, entry=entry)


def normalize_records(
    records: Iterable[SourceRecord], accepted: frozenset[EntityClass] | None = None
) -> list[NormalizedRecord]:
    """Normalize every readable source record.

    Unreadable records keep their read error. Entries whose class is not in
    ``accepted`` become validation failures so each registry only holds the
    classes it is meant for.
    """
    results: list[NormalizedRecord] = []

    for source in records:
        if source.data is None:
            results.append(NormalizedRecord(source_filename=source.filename, error=source.error))
            continue

        normalized = normalize_record(source.data, source.filename)
        if normalized.entry is not None and accepted is not None and normalized.entry.entity_class not in accepted:
            normalized = NormalizedRecord(
                source_filename=source.filename,
                error=ValidationError(
                    f"Entity class {normalized.entry.entity_class.value} is not accepted by this registry"
                ),
            )

        if normalized.error is not None:
            logger.warning(
                "Skipping record",
                filename=source.filename,
                error=str(normalized.error),
                error_kind=normalized.error.kind.value,
            )
        results.append(normalized)

    return results
