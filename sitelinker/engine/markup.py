"""Paragraph segmentation and link rewriting over raw HTML strings.

Segmentation works on the original string rather than a parsed tree so
that every text region carries its absolute offset and the rewriter can
splice links straight into the source. Malformed markup degrades to fewer
eligible regions; nothing here raises on bad HTML.
"""

from __future__ import annotations

import html as html_lib
import re
from typing import FrozenSet, Iterable, List, Sequence

from bs4 import BeautifulSoup, FeatureNotFound

from .types import LinkInsertion, Paragraph, TextRegion

# Tags inside which links should never be inserted
EXCLUDED_TAGS: FrozenSet[str] = frozenset({
    "a",
    "code",
    "pre",
    "kbd",
    "samp",
    "script",
    "style",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "button",
    "nav",
    "header",
    "footer",
})

VOID_TAGS: FrozenSet[str] = frozenset({
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "source",
    "track",
    "wbr",
})

# Elements whose bodies are raw text and never scanned for markup
RAW_TEXT_TAGS: FrozenSet[str] = frozenset({"script", "style", "textarea"})

_TOKEN_RE = re.compile(r"<!--.*?(?:-->|\Z)|<[^>]*>", re.DOTALL)
_TAG_NAME_RE = re.compile(r"^<\s*(/)?\s*([a-zA-Z][\w:-]*)")
_ENTITY_RE = re.compile(r"&(?:#[0-9]+|#[xX][0-9a-fA-F]+|[a-zA-Z][a-zA-Z0-9]*);")


class _OpenContainer:
    """A container element whose closing tag has not been reached yet."""

    def __init__(self, name: str, start: int, depth: int, index: int) -> None:
        self.name = name
        self.start = start
        self.depth = depth
        self.index = index
        self.regions: List[TextRegion] = []

    def close(self, html: str, end: int) -> Paragraph:
        return Paragraph(
            html=html[self.start:end],
            start=self.start,
            end=end,
            index=self.index,
            regions=self.regions,
        )


def extract_paragraphs(
    html: str,
    container_tags: Sequence[str] = ("p",),
    excluded_tags: Iterable[str] = EXCLUDED_TAGS,
) -> List[Paragraph]:
    """Return paragraph containers of ``html`` with their safe text regions.

    The whole document is walked with a single element stack, so a
    container only opens when no excluded element encloses it. Comments
    are skipped and raw-text elements such as ``<script>`` are jumped over
    without looking inside. A container left open at the end of the input
    runs to the end of the input.
    """

    if not html or not container_tags:
        return []

    containers = {tag.lower() for tag in container_tags}
    excluded = {tag.lower() for tag in excluded_tags}
    paragraphs: List[Paragraph] = []
    stack: List[str] = []
    excluded_depth = 0
    current: _OpenContainer | None = None
    cursor = 0

    def unwind(depth: int) -> None:
        nonlocal excluded_depth
        while len(stack) > depth:
            if stack.pop() in excluded:
                excluded_depth -= 1

    while cursor < len(html):
        token = _TOKEN_RE.search(html, cursor)
        text_end = token.start() if token else len(html)
        if current is not None and not excluded_depth and html[cursor:text_end].strip():
            current.regions.append(
                TextRegion(
                    text=html[cursor:text_end],
                    start=cursor,
                    end=text_end,
                    paragraph_index=current.index,
                )
            )
        if token is None:
            break
        cursor = token.end()

        name_match = _TAG_NAME_RE.match(token.group(0))
        if name_match is None:
            continue
        closing, name = name_match.group(1), name_match.group(2).lower()
        self_closing = token.group(0).endswith("/>")

        if closing:
            if name not in stack:
                continue
            unwind(len(stack) - 1 - stack[::-1].index(name))
            if current is not None and len(stack) <= current.depth:
                own_close = name == current.name and len(stack) == current.depth
                paragraphs.append(current.close(html, token.end() if own_close else token.start()))
                current = None
            continue

        if name in RAW_TEXT_TAGS and not self_closing:
            raw_end = re.compile(rf"</{name}\s*>", re.IGNORECASE).search(html, cursor)
            cursor = raw_end.end() if raw_end else len(html)
            continue
        if self_closing or name in VOID_TAGS:
            continue

        if name in containers and not excluded_depth:
            if current is not None and name == current.name:
                # a new container of the same kind ends the unclosed one
                unwind(current.depth)
                paragraphs.append(current.close(html, token.start()))
                current = None
            if current is None:
                current = _OpenContainer(name, token.start(), len(stack), len(paragraphs))
        stack.append(name)
        if name in excluded:
            excluded_depth += 1

    if current is not None:
        paragraphs.append(current.close(html, len(html)))
    return paragraphs


def extract_text_regions(
    html: str,
    container_tags: Sequence[str] = ("p",),
    excluded_tags: Iterable[str] = EXCLUDED_TAGS,
) -> List[TextRegion]:
    """Return every safe text region of ``html`` in document order."""

    regions: List[TextRegion] = []
    for paragraph in extract_paragraphs(html, container_tags, excluded_tags):
        regions.extend(paragraph.regions)
    return regions


def entity_spans(text: str) -> List[tuple[int, int]]:
    """Return ``(start, end)`` spans of character references in ``text``."""

    return [match.span() for match in _ENTITY_RE.finditer(text)]


def _soup(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "lxml")
    except FeatureNotFound:
        # Fallback to html.parser if lxml isn't installed
        return BeautifulSoup(html, "html.parser")


def strip_tags(html: str) -> str:
    """Return the text content of ``html`` with tags replaced by spaces."""

    if not html:
        return ""
    return _soup(html).get_text(" ")


def count_words(text: str) -> int:
    return len(text.split())


def existing_links(html: str) -> List[str]:
    """Return the href of every ``<a href>`` already in ``html``, in document order."""

    if not html or "<a" not in html.lower():
        return []
    return [str(anchor["href"]) for anchor in _soup(html).find_all("a", href=True)]


def apply_insertions(html: str, insertions: Sequence[LinkInsertion], link_class: str | None = None) -> str:
    """Splice the insertions into ``html`` as anchor tags.

    Insertions are applied from the highest offset down so earlier edits
    never shift the offsets of the ones still pending. Insertions must not
    overlap.
    """

    result = html
    class_attr = f' class="{html_lib.escape(link_class)}"' if link_class else ""
    for insertion in sorted(insertions, key=lambda item: item.position, reverse=True):
        end = insertion.position + insertion.length
        original = result[insertion.position:end]
        link = (
            f'<a href="{html_lib.escape(insertion.href)}"{class_attr}>'
            f"{html_lib.escape(html_lib.unescape(original), quote=False)}</a>"
        )
        result = result[:insertion.position] + link + result[end:]
    return result
