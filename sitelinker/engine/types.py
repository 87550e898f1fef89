"""Typed data structures used by the internal linking pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

ROOT = "root"
NESTED = "nested"

PARENT = "parent"
CHILD = "child"
ANCESTOR = "ancestor"
DESCENDANT = "descendant"
SIBLING = "sibling"
RELATED = "related"

RELATION_KINDS = (PARENT, CHILD, ANCESTOR, DESCENDANT, SIBLING, RELATED)


@dataclass(frozen=True)
class Entity:
    """A category (root) or subcategory (nested) node of the content hierarchy."""

    id: str
    slug: str
    title: str
    parent_id: Optional[str] = None
    related_ids: Tuple[str, ...] = ()
    description: str = ""
    content: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return ROOT if self.parent_id is None else NESTED


@dataclass(frozen=True)
class PageContext:
    """The entity whose page is currently being rendered."""

    entity: Entity

    @property
    def id(self) -> str:
        return self.entity.id

    @property
    def kind(self) -> str:
        return self.entity.kind


@dataclass(frozen=True)
class LinkTarget:
    """Eligible destination for a link on the current page."""

    id: str
    url: str
    title: str
    anchors: List[str]
    relation: str
    priority: int


@dataclass(frozen=True)
class TextRegion:
    """Literal text inside a container, outside excluded elements.

    ``start`` and ``end`` are absolute offsets into the full HTML string.
    """

    text: str
    start: int
    end: int
    paragraph_index: int


@dataclass(frozen=True)
class Paragraph:
    """A paragraph-level container and the safe text regions it holds."""

    html: str
    start: int
    end: int
    index: int
    regions: List[TextRegion] = field(default_factory=list)


@dataclass(frozen=True)
class LinkInsertion:
    """Instruction to wrap ``html[position:position + length]`` in a link."""

    position: int
    length: int
    href: str
    text: str
    target_id: str = ""


@dataclass(frozen=True)
class LinkingResult:
    """Outcome of one linking pass over a page."""

    html: str
    links_inserted: int
    targets_used: List[str]
    insertions: List[LinkInsertion] = field(default_factory=list)
