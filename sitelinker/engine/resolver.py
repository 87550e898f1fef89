"""Link target resolution from hierarchy and cross-reference edges.

Given the page being rendered, the resolver decides which other entities
may be linked to, classifies each one by its relation to the page, and
attaches the URL, anchors and priority tier the placement loop works with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Set

from .anchors import AnchorVocabulary, anchors_for_entity
from .config import EngineConfig
from .store import EntityStore
from .types import (
    ANCESTOR,
    CHILD,
    DESCENDANT,
    NESTED,
    PARENT,
    RELATED,
    ROOT,
    SIBLING,
    Entity,
    LinkTarget,
    PageContext,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Neighbourhood:
    """Structural relatives of the current page, computed once per pass."""

    parent_id: Optional[str]
    children: FrozenSet[str]
    descendants: FrozenSet[str]
    ancestors: FrozenSet[str]
    siblings: FrozenSet[str]
    related: FrozenSet[str]


def build_neighbourhood(context: PageContext, store: EntityStore) -> Neighbourhood:
    entity = context.entity
    return Neighbourhood(
        parent_id=entity.parent_id,
        children=frozenset(store.children_of(entity.id)),
        descendants=frozenset(store.descendants_of(entity.id)),
        ancestors=frozenset(store.ancestors_of(entity.id)),
        siblings=frozenset(store.siblings_of(entity.id)),
        related=frozenset(entity.related_ids),
    )


def excluded_ids(context: PageContext, neighbourhood: Neighbourhood, config: EngineConfig) -> Set[str]:
    """Return entity ids that must never become targets for this page."""

    excluded: Set[str] = set()
    if not config.get("allow_self_link", False):
        excluded.add(context.id)

    if not config.policy("relation_policy", "exclude_hierarchy", True):
        return excluded

    excluded |= neighbourhood.children
    excluded |= neighbourhood.descendants
    if context.kind == NESTED:
        if neighbourhood.parent_id is not None:
            excluded.add(neighbourhood.parent_id)
        excluded |= neighbourhood.ancestors
        excluded |= neighbourhood.siblings
    return excluded


def classify_relation(context: PageContext, candidate: Entity, neighbourhood: Neighbourhood) -> str:
    """Return the relation kind of ``candidate`` with respect to the page."""

    if context.kind == ROOT:
        if candidate.id in neighbourhood.children:
            return CHILD
        if candidate.id in neighbourhood.descendants:
            return DESCENDANT
        return RELATED

    if candidate.id == neighbourhood.parent_id:
        return PARENT
    if candidate.id in neighbourhood.children:
        return CHILD
    if candidate.id in neighbourhood.ancestors:
        return ANCESTOR
    if candidate.id in neighbourhood.descendants:
        return DESCENDANT
    if candidate.id in neighbourhood.related:
        return RELATED
    if candidate.id in neighbourhood.siblings:
        return SIBLING
    return RELATED


def relation_allowed(relation: str, config: EngineConfig) -> bool:
    if relation in (config.policy("relation_policy", "exclude_relations", []) or []):
        return False
    include = config.policy("relation_policy", "include_relations", []) or []
    if include:
        return relation in include
    return True


def calculate_priority(relation: str, candidate: Entity, config: EngineConfig) -> int:
    """Fixed priority tiers; higher is tried first."""

    if relation == RELATED:
        priority = config.priority("related")
    elif relation == SIBLING:
        priority = config.priority("sibling")
    else:
        priority = config.priority("default")

    if config.policy("target_policy", "prefer_nested", True) and candidate.kind == NESTED:
        priority += config.priority("nested_bonus")
    return priority


def build_target(
    candidate: Entity,
    relation: str,
    store: EntityStore,
    vocabulary: AnchorVocabulary | None,
    config: EngineConfig,
) -> Optional[LinkTarget]:
    anchors = anchors_for_entity(candidate, vocabulary, config)
    if not anchors:
        return None
    return LinkTarget(
        id=candidate.id,
        url=store.url_for(candidate.id),
        title=candidate.title,
        anchors=anchors,
        relation=relation,
        priority=calculate_priority(relation, candidate, config),
    )


def resolve_targets(
    context: PageContext,
    store: EntityStore,
    vocabulary: AnchorVocabulary | None,
    config: EngineConfig,
) -> List[LinkTarget]:
    """Return eligible link targets for the page, highest priority first."""

    neighbourhood = build_neighbourhood(context, store)
    excluded = excluded_ids(context, neighbourhood, config)
    disallowed = set(config.policy("target_policy", "disallow_targets", []) or [])

    targets: List[LinkTarget] = []
    for candidate in store:
        if candidate.id in excluded or candidate.id in disallowed:
            continue
        relation = classify_relation(context, candidate, neighbourhood)
        if not relation_allowed(relation, config):
            continue
        target = build_target(candidate, relation, store, vocabulary, config)
        if target is not None:
            targets.append(target)

    targets.sort(key=lambda item: item.priority, reverse=True)
    logger.debug("Resolved %d link targets for %s (%d excluded)", len(targets), context.id, len(excluded))
    return targets
