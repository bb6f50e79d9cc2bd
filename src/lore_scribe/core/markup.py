# ABOUTME: Converts the bracketed lore markup vocabulary into Markdown or HTML
# ABOUTME: Resolves entity links and image references to paths relative to the citing document

import posixpath
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lore_scribe.errors import ReferenceResolutionError
from lore_scribe.persistence.models import ImageEntry, RegistryEntry

ENTITY_LINK_PATTERN = re.compile(r"@\[([^\]]*)\]\(([A-Za-z]+):([^)\s]+)\)")
IMAGE_PATTERN = re.compile(r"\[img:([^\]|]+)(?:\|[^\]]*)?\]")
TABLE_PATTERN = re.compile(r"\[table\](.*?)\[/table\]", re.DOTALL)
ROW_PATTERN = re.compile(r"\[tr\](.*?)\[/tr\]", re.DOTALL)
CELL_PATTERN = re.compile(r"\[(th|td)\](.*?)\[/\1\]", re.DOTALL)
QUOTE_PATTERN = re.compile(r"\[quote\](.*?)\[/quote\]", re.DOTALL)
URL_WITH_TEXT_PATTERN = re.compile(r"\[url:([^\]]+)\](.*?)\[/url\]", re.DOTALL)
BARE_URL_PATTERN = re.compile(r"\[url\](.*?)\[/url\]", re.DOTALL)
ALIGN_PATTERN = re.compile(r"\[(center|left|right|justify)\](.*?)\[/\1\]", re.DOTALL)
SIMPLE_TAG_PATTERN = re.compile(r"\[(/?)(h[1-6]|b|i|u|s|ul|ol|li|p|br|hr)\]")


class OutputMode(str, Enum):
    """Rendering target of a transform."""

    MARKDOWN = "markdown"
    HTML = "html"


# (opening, closing) replacements per tag
MARKDOWN_TAGS: dict[str, tuple[str, str]] = {
    **{f"h{n}": ("#" * n + " ", "") for n in range(1, 7)},
    "b": ("**", "**"),
    "i": ("*", "*"),
    "u": ("<u>", "</u>"),
    "s": ("~~", "~~"),
    "ul": ("", ""),
    "ol": ("", ""),
    "li": ("* ", ""),
    "p": ("", "\n"),
    "br": ("<br>", ""),
    "hr": ("\n---\n", ""),
}

HTML_TAGS: dict[str, tuple[str, str]] = {
    **{f"h{n}": (f"<h{n}>", f"</h{n}>") for n in range(1, 7)},
    "b": ("<strong>", "</strong>"),
    "i": ("<em>", "</em>"),
    "u": ("<u>", "</u>"),
    "s": ("<s>", "</s>"),
    "ul": ("<ul>", "</ul>"),
    "ol": ("<ol>", "</ol>"),
    "li": ("<li>", "</li>"),
    "p": ("<p>", "</p>"),
    "br": ("<br>", ""),
    "hr": ("<hr>", ""),
}


@dataclass(slots=True)
class LinkContext:
    """What a transform needs to resolve references for one citing document.

    Attributes:
        reference_path: Directory of the citing document, relative to the output root
        lore_index: Lore registry entries by ID
        image_index: Image registry entries by ID
        image_folder: Image directory name under the output root
    """

    reference_path: str = ""
    lore_index: Mapping[str, RegistryEntry] = field(default_factory=dict)
    image_index: Mapping[str, ImageEntry] = field(default_factory=dict)
    image_folder: str = "img"

    def relative(self, target: str) -> str:
        """Path to ``target`` (relative to the output root) as seen from the citing directory."""
        return posixpath.relpath(target, start=self.reference_path or ".")

    def entity_path(self, entity_id: str) -> str:
        cited = self.lore_index.get(entity_id)
        if cited is None:
            raise ReferenceResolutionError(f"Linked entity {entity_id} is not in the lore registry")
        if not cited.reference_path:
            raise ReferenceResolutionError(f"Linked entity {entity_id} has no reference path")
        return self.relative(f"{cited.reference_path}/{cited.id}.md")

    def image(self, image_id: str) -> tuple[ImageEntry, str]:
        image = self.image_index.get(image_id)
        if image is None:
            raise ReferenceResolutionError(f"Image {image_id} is not in the image registry")
        return image, self.relative(f"{self.image_folder}/{image.filename}")


def _format_cell(text: str) -> str:
    return text.strip().replace("\r\n", "\n").replace("\n", "<br>").replace("|", "\\|")


def parse_table(table_markup: str, mode: OutputMode = OutputMode.MARKDOWN) -> str:
    """Convert one ``[table]...[/table]`` block.

    The first row is the header when it only uses ``[th]`` cells. Otherwise a
    blank header row is emitted so the Markdown table stays well formed.
    """
    rows: list[tuple[bool, list[str]]] = []
    for row_match in ROW_PATTERN.finditer(table_markup):
        cells = CELL_PATTERN.findall(row_match.group(1))
        if cells:
            rows.append((all(tag == "th" for tag, _ in cells), [_format_cell(text) for _, text in cells]))

    if not rows:
        return ""

    has_header = rows[0][0]
    header = rows[0][1] if has_header else []
    body = [cells for _, cells in (rows[1:] if has_header else rows)]

    if mode == OutputMode.HTML:
        html = ["<table>"]
        if header:
            html.append("<thead><tr>" + "".join(f"<th>{h}</th>" for h in header) + "</tr></thead>")
        html.append("<tbody>")
        html.extend("<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>" for cells in body)
        html.append("</tbody></table>")
        return "".join(html)

    width = max(len(cells) for _, cells in rows)
    if not header:
        header = [""] * width

    lines = [
        "| " + " | ".join(header) + " |",
        "| " + " | ".join("---" for _ in header) + " |",
    ]
    lines.extend("| " + " | ".join(cells) + " |" for cells in body)
    return "\n".join(lines) + "\n"


def parse_quote(quote_markup: str, mode: OutputMode = OutputMode.MARKDOWN) -> str:
    """``[quote]text|Author[/quote]`` as an admonition (Markdown) or blockquote (HTML)."""
    text, sep, tail = quote_markup.rpartition("|")
    # Pipes from a converted table end a line; only a single-line tail names the author
    if not sep or not tail.strip() or "\n" in tail.rstrip():
        text, tail = quote_markup, ""
    text = text.strip()
    author = tail.strip()

    if mode == OutputMode.HTML:
        footer = f"<footer>{author}</footer>" if author else ""
        return f"<blockquote><p>{text}</p>{footer}</blockquote>"

    title = f' "{author}"' if author else ""
    body = "\n".join(f"    {line}" if line.strip() else "" for line in text.split("\n"))
    return f"\n!!! quote{title}\n{body}\n"


class MarkupTransformer:
    """Transforms lore markup for one citing document.

    Tables are converted before inline tags so cell contents still go through
    the inline pass. Unresolvable entity links and images raise
    ``ReferenceResolutionError``; the caller fails the whole document.
    """

    def __init__(self, context: LinkContext | None = None, mode: OutputMode = OutputMode.MARKDOWN):
        self.context = context
        self.mode = mode
        self.tags = HTML_TAGS if mode == OutputMode.HTML else MARKDOWN_TAGS

    def transform(self, content: str | None) -> str:
        if not content:
            return ""

        text = content.replace("\r\n", "\n")
        text = TABLE_PATTERN.sub(lambda m: parse_table(m.group(1), self.mode), text)
        text = ENTITY_LINK_PATTERN.sub(self._replace_entity_link, text)
        text = IMAGE_PATTERN.sub(self._replace_image, text)
        text = QUOTE_PATTERN.sub(lambda m: parse_quote(m.group(1), self.mode), text)
        text = URL_WITH_TEXT_PATTERN.sub(lambda m: self._link(m.group(2).strip(), m.group(1).strip()), text)
        text = BARE_URL_PATTERN.sub(lambda m: self._link(m.group(1).strip(), m.group(1).strip()), text)
        text = ALIGN_PATTERN.sub(self._replace_alignment, text)
        return SIMPLE_TAG_PATTERN.sub(self._replace_simple_tag, text)

    def _require_context(self) -> LinkContext:
        if self.context is None:
            raise ReferenceResolutionError("References cannot be resolved without registries")
        return self.context

    def _link(self, text: str, href: str) -> str:
        if self.mode == OutputMode.HTML:
            return f'<a href="{href}">{text}</a>'
        return f"[{text}]({href})"

    def _replace_entity_link(self, match: re.Match[str]) -> str:
        display_name, _entity_class, entity_id = match.groups()
        return self._link(display_name, self._require_context().entity_path(entity_id))

    def _replace_image(self, match: re.Match[str]) -> str:
        # Table cells escape pipes before the image pass runs
        image, path = self._require_context().image(match.group(1).strip().rstrip("\\"))
        alt = image.title or image.filename
        if self.mode == OutputMode.HTML:
            return f'<img src="{path}" alt="{alt}">'
        return f"![{alt}]({path})"

    def _replace_alignment(self, match: re.Match[str]) -> str:
        alignment, inner = match.groups()
        if self.mode == OutputMode.HTML:
            return f'<div style="text-align: {alignment}">{inner}</div>'
        return inner

    def _replace_simple_tag(self, match: re.Match[str]) -> str:
        closing, tag = match.groups()
        opening_text, closing_text = self.tags[tag]
        return closing_text if closing else opening_text


def transform_content(
    content: str | None, context: LinkContext | None = None, mode: OutputMode = OutputMode.MARKDOWN
) -> str:
    return MarkupTransformer(context, mode).transform(content)


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def parse_metadata_to_frontmatter(metadata: Mapping[str, Any] | None, literal_keys: Iterable[str] = ()) -> str:
    """Render metadata as a frontmatter block.

    Values are double quoted; multi-line values and ``literal_keys`` are written
    as indented literal blocks. ``None`` values are left out.
    """
    if not metadata:
        return ""

    literal = set(literal_keys)
    lines = ["---"]
    for key, value in metadata.items():
        if value is None:
            continue
        text = str(value).lower() if isinstance(value, bool) else str(value)
        text = text.replace("\r\n", "\n")
        if key in literal or "\n" in text:
            lines.append(f"{key}: |")
            lines.extend(f"  {line}" if line else "" for line in text.split("\n"))
        else:
            lines.append(f"{key}: {_quote(text)}")
    lines.append("---")
    return "\n".join(lines) + "\n\n"
