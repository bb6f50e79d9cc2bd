# ABOUTME: Tests for per-entity-class record projection
# ABOUTME: Covers class-specific fields, envelopes, and skip-and-log failures

import pytest

from lore_scribe.errors import ErrorKind, UnknownEntityClassError, ValidationError
from lore_scribe.extraction.normalizer import normalize_record, normalize_records
from lore_scribe.extraction.source import SourceRecord
from lore_scribe.persistence.models import LORE_CLASSES, EntityClass, ImageEntry, RegistryEntry


def _article(**overrides):
    record = {
        "id": "a1",
        "entityClass": "Article",
        "url": "https://world.test/a1",
        "title": "Founding",
        "slug": "founding",
        "content": "[b]Hello[/b]",
    }
    record.update(overrides)
    return record


class TestProjections:
    """Test the projection chosen for each entity class."""

    def test_article_fields(self):
        result = normalize_record(
            _article(sidepanelcontenttop="[b]Ruler[/b]", cover={"id": "img1"}, category={"id": "c1"}),
            "a1.json",
        )

        assert result.ok
        entry = result.entry
        assert isinstance(entry, RegistryEntry)
        assert entry.entity_class == EntityClass.ARTICLE
        assert entry.content == "[b]Hello[/b]"
        assert entry.side_panel_top == "[b]Ruler[/b]"
        assert entry.side_panel_bottom is None
        assert entry.cover_id == "img1"
        assert entry.category_id == "c1"
        assert entry.extracted is False

    def test_person_keeps_bottom_side_panel(self):
        result = normalize_record(_article(entityClass="Person", sidepanelcontent="Born in winter"))

        assert result.entry.entity_class == EntityClass.PERSON
        assert result.entry.side_panel_bottom == "Born in winter"

    def test_location_uses_flat_foreign_keys(self):
        """Flat ``coverId`` fields work as well as nested objects."""
        result = normalize_record(_article(entityClass="Location", coverId="img9"))

        assert result.entry.cover_id == "img9"
        assert result.entry.side_panel_top is None

    def test_category_fields(self):
        result = normalize_record(
            {
                "id": "c2",
                "entityClass": "Category",
                "url": "https://world.test/c2",
                "title": "Kingdoms",
                "slug": "kingdoms-category",
                "description": "All kingdoms",
                "parent": {"id": "c1"},
                "articles": [{"id": "a1", "title": "Founding", "entityClass": "Article"}, {"title": "no id"}],
            }
        )

        entry = result.entry
        assert entry.is_category
        assert entry.content == "All kingdoms"
        assert entry.parent_id == "c1"
        assert entry.children == []
        assert [ref.id for ref in entry.articles] == ["a1"]
        assert entry.articles[0].title == "Founding"

    def test_image_filename_derived_from_url(self):
        result = normalize_record(
            {"id": 7, "entityClass": "Image", "url": "https://cdn.test/images/big%20map.png?size=1", "title": "Map"}
        )

        entry = result.entry
        assert isinstance(entry, ImageEntry)
        assert entry.id == "7"
        assert entry.filename == "big map.png"

    def test_full_content_envelope_is_unwrapped(self):
        result = normalize_record({"fullContent": _article()})

        assert result.ok
        assert result.entry.id == "a1"


class TestFailures:
    """Invalid records are reported, never raised."""

    def test_unknown_entity_class(self):
        result = normalize_record(_article(entityClass="Spaceship"), "odd.json")

        assert not result.ok
        assert isinstance(result.error, UnknownEntityClassError)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.source_filename == "odd.json"

    def test_missing_identity_fields(self):
        record = _article()
        del record["url"]
        record["entityClass"] = ""

        result = normalize_record(record)

        assert isinstance(result.error, ValidationError)
        assert "entityClass" in str(result.error)
        assert "url" in str(result.error)

    def test_image_without_any_filename(self):
        result = normalize_record({"id": "i1", "entityClass": "Image", "url": "https://cdn.test/"})

        assert isinstance(result.error, ValidationError)

    @pytest.mark.parametrize("filename", ["../escaped.png", "/etc/cover.png", "sub\\cover.png", ".."])
    def test_image_filename_with_directory_part(self, filename):
        record = {"id": "i1", "entityClass": "Image", "url": "https://cdn.test/a.png", "filename": filename}

        result = normalize_record(record)

        assert result.entry is None
        assert isinstance(result.error, ValidationError)

    def test_encoded_slash_in_url_filename(self):
        result = normalize_record({"id": "i1", "entityClass": "Image", "url": "https://cdn.test/x/..%2Fescaped.png"})

        assert isinstance(result.error, ValidationError)


class TestNormalizeRecords:
    """Test batch normalization with registry class filtering."""

    def test_read_errors_and_rejected_classes_are_kept_as_failures(self):
        sources = [
            SourceRecord(filename="a1.json", data=_article()),
            SourceRecord(filename="c1.json", data=_article(id="c1", entityClass="Category")),
            SourceRecord(filename="broken.json", error=ValidationError("unreadable")),
        ]

        results = normalize_records(sources, accepted=LORE_CLASSES)

        assert [r.ok for r in results] == [True, False, False]
        assert "not accepted" in str(results[1].error)
        assert str(results[2].error) == "unreadable"
