"""Read-only hierarchy store over categories and subcategories.

The store is built once per build pass from a flat sequence of entities.
It keeps an adjacency index (``parent id -> child ids``) so that child,
descendant, ancestor and sibling lookups never rescan the full entity list.
Unresolvable parent references simply end a walk; integrity problems are
reported by :func:`validate_entities`, not raised here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set

from .types import ROOT, Entity


class EntityStore:
    """Graph oracle for parent, child and cross-reference edges."""

    def __init__(self, entities: Iterable[Entity]) -> None:
        self._entities: Dict[str, Entity] = {}
        for entity in entities:
            # First definition wins; duplicates surface in validate_entities.
            self._entities.setdefault(entity.id, entity)

        children: Dict[str, List[str]] = {}
        for entity in self._entities.values():
            if entity.parent_id is not None:
                children.setdefault(entity.parent_id, []).append(entity.id)
        self._children = {key: tuple(value) for key, value in children.items()}

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)

    def get(self, entity_id: str | None) -> Optional[Entity]:
        if entity_id is None:
            return None
        return self._entities.get(entity_id)

    def children_of(self, entity_id: str) -> List[str]:
        return list(self._children.get(entity_id, ()))

    def descendants_of(self, entity_id: str) -> Set[str]:
        """Return the transitive closure over child edges, excluding ``entity_id``."""

        found: Set[str] = set()
        stack = list(self._children.get(entity_id, ()))
        while stack:
            child_id = stack.pop()
            if child_id in found or child_id == entity_id:
                continue
            found.add(child_id)
            stack.extend(self._children.get(child_id, ()))
        return found

    def ancestors_of(self, entity_id: str) -> List[str]:
        """Return resolvable ancestors, nearest first."""

        ancestors: List[str] = []
        entity = self.get(entity_id)
        seen = {entity_id}
        while entity is not None and entity.parent_id is not None:
            parent = self.get(entity.parent_id)
            if parent is None or parent.id in seen:
                break
            ancestors.append(parent.id)
            seen.add(parent.id)
            entity = parent
        return ancestors

    def siblings_of(self, entity_id: str) -> List[str]:
        """Other nested entities sharing ``entity_id``'s parent."""

        entity = self.get(entity_id)
        if entity is None or entity.kind == ROOT:
            return []
        return [sibling for sibling in self._children.get(entity.parent_id, ()) if sibling != entity_id]

    def path_segments(self, entity_id: str) -> List[str]:
        entity = self.get(entity_id)
        if entity is None:
            return []
        segments = [entity.slug]
        for ancestor_id in self.ancestors_of(entity_id):
            segments.append(self._entities[ancestor_id].slug)
        segments.reverse()
        return segments

    def full_path(self, entity_id: str) -> str:
        """Return the slash-joined slug path, e.g. ``crm-software/crm-for-startups``."""

        return "/".join(self.path_segments(entity_id))

    def url_for(self, entity_id: str) -> str:
        path = self.full_path(entity_id)
        return f"/{path}/" if path else "/"

    def find_by_path(self, path: str) -> Optional[Entity]:
        """Resolve a slug path to its entity, walking root to leaf."""

        segments = [segment for segment in path.strip("/").split("/") if segment]
        if not segments:
            return None
        current: Optional[Entity] = None
        for segment in segments:
            if current is None:
                candidates: Sequence[str] = [entity.id for entity in self if entity.kind == ROOT]
            else:
                candidates = self._children.get(current.id, ())
            match = next((self._entities[cid] for cid in candidates if self._entities[cid].slug == segment), None)
            if match is None:
                return None
            current = match
        return current

    def breadcrumbs(self, entity_id: str) -> List[Dict[str, str]]:
        """Return ``{"title", "url"}`` crumbs from the root down to ``entity_id``."""

        chain = list(reversed(self.ancestors_of(entity_id)))
        if entity_id in self:
            chain.append(entity_id)
        return [{"title": self._entities[cid].title, "url": self.url_for(cid)} for cid in chain]


@dataclass
class ValidationReport:
    """Errors and warnings found while checking the entity data set."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_entities(
    entities: Sequence[Entity],
    synonyms: Mapping[str, Sequence[str]] | None = None,
    declared_children: Mapping[str, Sequence[str]] | None = None,
) -> ValidationReport:
    """Check the raw entity list for problems the store tolerates silently."""

    report = ValidationReport()
    by_id: Dict[str, Entity] = {}
    for entity in entities:
        if entity.id in by_id:
            report.errors.append(f'Duplicate ID "{entity.id}"')
            continue
        by_id[entity.id] = entity

    for entity in by_id.values():
        if entity.parent_id is not None and entity.parent_id not in by_id:
            report.errors.append(f'"{entity.id}" references missing parent "{entity.parent_id}"')
        for related_id in entity.related_ids:
            if related_id not in by_id:
                report.errors.append(f'"{entity.id}" references missing related entity "{related_id}"')
            elif related_id == entity.id:
                report.warnings.append(f'"{entity.id}" lists itself as related')

    for entity in by_id.values():
        seen = {entity.id}
        parent_id = entity.parent_id
        while parent_id is not None and parent_id in by_id:
            if parent_id in seen:
                report.errors.append(f'Circular parent reference involving "{entity.id}"')
                break
            seen.add(parent_id)
            parent_id = by_id[parent_id].parent_id

    for parent_id, child_ids in (declared_children or {}).items():
        for child_id in child_ids:
            child = by_id.get(child_id)
            if child is None:
                report.errors.append(f'"{parent_id}" lists missing child "{child_id}"')
            elif child.parent_id != parent_id:
                report.warnings.append(
                    f'"{parent_id}" lists "{child_id}" as a child but its parent is "{child.parent_id}"'
                )

    if synonyms is not None:
        for entity_id in by_id:
            if not synonyms.get(entity_id):
                report.warnings.append(f'"{entity_id}" has no anchor synonyms')

    return report
