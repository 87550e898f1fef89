"""Anchor vocabulary and per-entity anchor selection."""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Sequence

from .config import EngineConfig
from .types import Entity


class AnchorVocabulary:
    """Ordered synonym lists keyed by entity id.

    A missing entry is valid and yields no synonyms; the entity title can
    still serve as an anchor when the anchor policy allows it.
    """

    def __init__(self, synonyms: Mapping[str, Sequence[str]] | None = None) -> None:
        self._synonyms: Dict[str, List[str]] = {
            key: [str(value) for value in values]
            for key, values in (synonyms or {}).items()
            if isinstance(values, (list, tuple))
        }

    def synonyms_for(self, entity_id: str) -> List[str]:
        return list(self._synonyms.get(entity_id, []))

    def as_dict(self) -> Dict[str, List[str]]:
        return {key: list(values) for key, values in self._synonyms.items()}


def anchors_for_entity(
    entity: Entity,
    vocabulary: AnchorVocabulary | None,
    config: EngineConfig,
) -> List[str]:
    """Return candidate link texts for ``entity``: title first, then synonyms."""

    source = config.policy("anchor_policy", "source", "both")
    limit = int(config.policy("anchor_policy", "max_anchors_per_target", 5))

    phrases: List[str] = []
    if source in ("title", "both"):
        phrases.append(entity.title)
    if source in ("synonyms", "both") and vocabulary is not None:
        phrases.extend(vocabulary.synonyms_for(entity.id))

    anchors: List[str] = []
    seen = set()
    for phrase in phrases:
        cleaned = clean_anchor(phrase)
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        anchors.append(cleaned)
    return anchors[:limit]


def clean_anchor(phrase: str) -> str:
    """Collapse internal whitespace but preserve the original casing."""

    return re.sub(r"\s+", " ", str(phrase).strip())


def anchor_key(anchor: str, case_sensitive: bool) -> str:
    """Return the deduplication key for an anchor under the case policy."""

    cleaned = clean_anchor(anchor)
    return cleaned if case_sensitive else cleaned.lower()
