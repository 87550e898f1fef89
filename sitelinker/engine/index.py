"""Coordinator for the internal linking pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Set, Tuple

from . import markup as markup_module
from . import placement as placement_module
from . import resolver as resolver_module
from .anchors import AnchorVocabulary
from .config import EngineConfig, load_config, validate_config
from .store import EntityStore
from .types import LinkingResult, PageContext, Paragraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineContext:
    """Shared, read-only inputs of a linking pass."""

    store: EntityStore
    vocabulary: AnchorVocabulary | None
    config: EngineConfig


def add_internal_links(
    html: str,
    context: PageContext,
    store: EntityStore,
    vocabulary: AnchorVocabulary | None = None,
    config: EngineConfig | None = None,
) -> LinkingResult:
    """Return ``html`` with internal links inserted into its paragraphs."""

    engine_config = config or load_config(None)
    validate_config(engine_config)
    pipe_context = PipelineContext(store=store, vocabulary=vocabulary, config=engine_config)
    result, _ = _run(html, context, pipe_context)
    return result


def _unchanged(html: str) -> LinkingResult:
    return LinkingResult(html=html, links_inserted=0, targets_used=[], insertions=[])


def _run(
    html: str,
    context: PageContext,
    pipe_context: PipelineContext,
) -> Tuple[LinkingResult, Dict[str, Any]]:
    config = pipe_context.config
    trace: Dict[str, Any] = {"page": context.id, "enabled": bool(config.get("enabled", True))}

    if not html or not trace["enabled"]:
        return _unchanged(html), trace

    total_words = markup_module.count_words(markup_module.strip_tags(html))
    existing = markup_module.existing_links(html)
    # links already on the page count against the same budget
    budget = max(0, placement_module.compute_budget(total_words, config) - len(existing))
    trace.update(total_words=total_words, existing_links=len(existing), budget=budget)
    if budget == 0:
        logger.debug("No link budget left for %s (%d words, %d links)", context.id, total_words, len(existing))
        return _unchanged(html), trace

    targets = resolver_module.resolve_targets(context, pipe_context.store, pipe_context.vocabulary, config)
    trace["targets"] = targets
    if not targets:
        return _unchanged(html), trace

    paragraphs = _paragraphs(html, config)
    eligible = placement_module.eligible_paragraphs(paragraphs, config)
    trace.update(paragraphs=paragraphs, eligible_paragraphs=[p.index for p in eligible])
    regions = [region for paragraph in eligible for region in paragraph.regions]
    if not regions:
        return _unchanged(html), trace

    skip_urls: Set[str] = set()
    if config.get("skip_linked_targets", True):
        skip_urls = set(existing)

    insertions = placement_module.place_links(targets, regions, budget, config, skip_urls=skip_urls)
    trace["insertions"] = insertions
    rewritten = markup_module.apply_insertions(html, insertions, link_class=config.get("link_class"))

    targets_used: List[str] = []
    for insertion in insertions:
        if insertion.href not in targets_used:
            targets_used.append(insertion.href)

    logger.debug(
        "Inserted %d/%d links on %s: %s",
        len(insertions),
        budget,
        context.id,
        ", ".join(targets_used) or "-",
    )
    result = LinkingResult(
        html=rewritten,
        links_inserted=len(insertions),
        targets_used=targets_used,
        insertions=list(insertions),
    )
    return result, trace


def _paragraphs(html: str, config: EngineConfig) -> List[Paragraph]:
    container_tags = config.policy("placement_policy", "container_tags", ["p"]) or ["p"]
    extra = config.policy("placement_policy", "extra_excluded_tags", []) or []
    excluded = markup_module.EXCLUDED_TAGS | {tag.lower() for tag in extra}
    return markup_module.extract_paragraphs(html, container_tags, excluded)


def explain(
    html: str,
    context: PageContext,
    store: EntityStore,
    vocabulary: AnchorVocabulary | None = None,
    config: EngineConfig | None = None,
) -> Dict[str, Any]:
    """Return diagnostics describing how a linking pass treats one page."""

    engine_config = config or load_config(None)
    validate_config(engine_config)
    pipe_context = PipelineContext(store=store, vocabulary=vocabulary, config=engine_config)
    result, trace = _run(html, context, pipe_context)

    return {
        "page": context.id,
        "enabled": trace["enabled"],
        "total_words": trace.get("total_words", 0),
        "existing_links": trace.get("existing_links", 0),
        "budget": trace.get("budget", 0),
        "targets": [
            {
                "id": target.id,
                "url": target.url,
                "relation": target.relation,
                "priority": target.priority,
                "anchors": list(target.anchors),
            }
            for target in trace.get("targets", [])
        ],
        "paragraphs": [
            {
                "index": paragraph.index,
                "eligible": paragraph.index in trace.get("eligible_paragraphs", []),
                "regions": [region.text for region in paragraph.regions],
            }
            for paragraph in trace.get("paragraphs", [])
        ],
        "insertions": [
            {"target": item.target_id, "href": item.href, "text": item.text, "position": item.position}
            for item in result.insertions
        ],
        "links_inserted": result.links_inserted,
    }


def dry_run(
    pages: Sequence[Tuple[PageContext, str]],
    store: EntityStore,
    vocabulary: AnchorVocabulary | None = None,
    config: EngineConfig | None = None,
) -> Dict[str, float | int | Dict[str, int]]:
    """Return aggregate linking metrics for a batch of ``(context, html)`` pages."""

    engine_config = config or load_config(None)
    validate_config(engine_config)
    pipe_context = PipelineContext(store=store, vocabulary=vocabulary, config=engine_config)

    total_pages = len(pages) or 1
    pages_with_links = 0
    total_links = 0
    inbound_counts: Dict[str, int] = {entity.id: 0 for entity in store}

    for context, html in pages:
        result, _ = _run(html, context, pipe_context)
        if result.links_inserted:
            pages_with_links += 1
        total_links += result.links_inserted
        for insertion in result.insertions:
            inbound_counts[insertion.target_id] = inbound_counts.get(insertion.target_id, 0) + 1

    orphans = sum(1 for count in inbound_counts.values() if count == 0)
    return {
        "pages": len(pages),
        "coverage": pages_with_links / total_pages,
        "total_links": total_links,
        "mean_links_per_page": total_links / total_pages,
        "orphan_rate": orphans / (len(inbound_counts) or 1),
        "inbound_counts": inbound_counts,
    }
