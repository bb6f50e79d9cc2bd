# ABOUTME: Tests for the markup transformer and frontmatter serialization
# ABOUTME: Covers tables, inline tags, quotes, reference resolution, and HTML mode

import pytest

from lore_scribe.core.markup import (
    LinkContext,
    MarkupTransformer,
    OutputMode,
    parse_metadata_to_frontmatter,
    parse_table,
    transform_content,
)
from lore_scribe.errors import ErrorKind, ReferenceResolutionError
from lore_scribe.persistence.models import EntityClass, ImageEntry, RegistryEntry


@pytest.fixture
def context() -> LinkContext:
    lore = {
        "p1": RegistryEntry(
            id="p1",
            entity_class=EntityClass.PERSON,
            title="Arachne",
            url="https://world.test/p1",
            reference_path="world/people",
        ),
        "orphan": RegistryEntry(id="orphan", entity_class=EntityClass.ARTICLE, url="https://world.test/orphan"),
    }
    images = {"map": ImageEntry(id="map", url="https://cdn.test/map.png", filename="map.png", title="Map")}
    return LinkContext(reference_path="world/kingdoms", lore_index=lore, image_index=images)


class TestTables:
    """Test table conversion."""

    def test_header_table_is_three_lines(self):
        markup = "[table][tr][th]Name[/th][th]Age[/th][/tr][tr][td]Alice[/td][td]30[/td][/tr][/table]"

        assert transform_content(markup).splitlines() == [
            "| Name | Age |",
            "| --- | --- |",
            "| Alice | 30 |",
        ]

    def test_headerless_table_gets_blank_header(self):
        result = parse_table("[tr][td]a[/td][td]b[/td][/tr][tr][td]c[/td][td]d[/td][/tr]")

        assert result.splitlines() == ["|  |  |", "| --- | --- |", "| a | b |", "| c | d |"]

    def test_cell_line_breaks_and_pipes(self):
        result = parse_table("[tr][td]one\ntwo[/td][td]a|b[/td][/tr]")

        assert "| one<br>two | a\\|b |" in result.splitlines()

    def test_inline_tags_inside_cells(self):
        result = transform_content("[table][tr][th]Who[/th][/tr][tr][td][b]Mira[/b][/td][/tr][/table]")

        assert "| **Mira** |" in result.splitlines()

    def test_html_table(self):
        result = parse_table("[tr][th]Name[/th][/tr][tr][td]Alice[/td][/tr]", OutputMode.HTML)

        assert result == "<table><thead><tr><th>Name</th></tr></thead><tbody><tr><td>Alice</td></tr></tbody></table>"

    def test_empty_table(self):
        assert transform_content("[table][/table]") == ""


class TestSimpleTags:
    """Test fixed-grammar inline and block tags."""

    def test_headings_and_emphasis(self):
        result = transform_content("[h1]Title[/h1]\n[h3]Sub[/h3]\n[b]bold[/b] [i]it[/i] [s]gone[/s] [u]under[/u]")

        assert result == "# Title\n### Sub\n**bold** *it* ~~gone~~ <u>under</u>"

    def test_lists_breaks_and_rules(self):
        result = transform_content("[ul]\n[li]One[/li]\n[li]Two[/li]\n[/ul]a[br]b[hr]")

        assert result == "\n* One\n* Two\na<br>b\n---\n"

    def test_crlf_is_normalized(self):
        assert transform_content("line one\r\nline two") == "line one\nline two"

    def test_html_mode(self):
        result = transform_content("[h2]Ruler[/h2][b]Queen[/b]", mode=OutputMode.HTML)

        assert result == "<h2>Ruler</h2><strong>Queen</strong>"

    def test_alignment_only_survives_in_html(self):
        markup = "[center]Middle[/center]"

        assert transform_content(markup) == "Middle"
        assert transform_content(markup, mode=OutputMode.HTML) == '<div style="text-align: center">Middle</div>'

    def test_url_tags(self):
        assert transform_content("[url:https://x.test]Site[/url]") == "[Site](https://x.test)"
        assert transform_content("[url]https://x.test[/url]") == "[https://x.test](https://x.test)"

    def test_quote_becomes_admonition(self):
        result = transform_content("[quote]Line one\nLine two|Mira[/quote]")

        assert '!!! quote "Mira"' in result
        assert "    Line one\n    Line two" in result

    def test_quote_without_author(self):
        result = transform_content("[quote]Alone[/quote]")

        assert result == "\n!!! quote\n    Alone\n"

    def test_table_pipes_inside_quote_are_not_an_author(self):
        markup = "[quote][table][tr][td]Alice[/td][td]30[/td][/tr][/table]Closing words[/quote]"

        result = transform_content(markup)

        assert result.startswith("\n!!! quote\n")
        assert "    | Alice | 30 |" in result
        assert "    Closing words" in result

    def test_quoted_table_with_author(self):
        result = transform_content("[quote][table][tr][td]Alice[/td][/tr][/table]|Mira[/quote]")

        assert '!!! quote "Mira"' in result
        assert "    | Alice |" in result

    def test_empty_content(self):
        assert transform_content(None) == ""
        assert transform_content("") == ""


class TestReferences:
    """Test entity link and image resolution."""

    def test_entity_link_is_relative_to_citing_directory(self, context):
        result = MarkupTransformer(context).transform("Meet @[Arachne](person:p1).")

        assert result == "Meet [Arachne](../people/p1.md)."

    def test_missing_entity_fails(self, context):
        with pytest.raises(ReferenceResolutionError) as exc_info:
            MarkupTransformer(context).transform("@[Ghost](person:nobody)")

        assert exc_info.value.kind == ErrorKind.REFERENCE_RESOLUTION

    def test_entity_without_reference_path_fails(self, context):
        with pytest.raises(ReferenceResolutionError):
            MarkupTransformer(context).transform("@[Lost](article:orphan)")

    def test_links_need_registries(self):
        with pytest.raises(ReferenceResolutionError):
            transform_content("@[Arachne](person:p1)")

    def test_image_markdown_and_html(self, context):
        assert MarkupTransformer(context).transform("[img:map]") == "![Map](../../img/map.png)"
        assert (
            MarkupTransformer(context, OutputMode.HTML).transform("[img:map|right]")
            == '<img src="../../img/map.png" alt="Map">'
        )

    def test_missing_image_fails(self, context):
        with pytest.raises(ReferenceResolutionError):
            MarkupTransformer(context).transform("[img:unknown]")

    def test_root_level_document(self, context):
        context.reference_path = ""

        assert MarkupTransformer(context).transform("[img:map]") == "![Map](img/map.png)"


class TestFrontmatter:
    """Test metadata serialization."""

    def test_quoted_values(self):
        assert parse_metadata_to_frontmatter({"title": "Founding", "slug": "founding"}) == (
            '---\ntitle: "Founding"\nslug: "founding"\n---\n\n'
        )

    def test_quotes_are_escaped_and_none_skipped(self):
        result = parse_metadata_to_frontmatter({"title": 'The "Crown"', "cover": None, "draft": False})

        assert result == '---\ntitle: "The \\"Crown\\""\ndraft: "false"\n---\n\n'

    def test_multiline_value_is_literal_block(self):
        result = parse_metadata_to_frontmatter({"title": "A", "sidebar_custom": "<p>one</p>\n<p>two</p>"})

        assert result == '---\ntitle: "A"\nsidebar_custom: |\n  <p>one</p>\n  <p>two</p>\n---\n\n'

    def test_literal_keys_force_block(self):
        result = parse_metadata_to_frontmatter({"sidebar_custom": "<b>x</b>"}, literal_keys=("sidebar_custom",))

        assert result == "---\nsidebar_custom: |\n  <b>x</b>\n---\n\n"

    def test_empty_metadata(self):
        assert parse_metadata_to_frontmatter({}) == ""
