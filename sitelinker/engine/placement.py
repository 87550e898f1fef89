"""Link budget and placement logic."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Optional, Sequence, Set, Tuple

from .anchors import anchor_key
from .config import EngineConfig
from .markup import count_words, entity_spans, strip_tags
from .types import LinkInsertion, LinkTarget, Paragraph, TextRegion

Span = Tuple[int, int]


def compute_budget(total_words: int, config: EngineConfig) -> int:
    """Return the maximum number of links allowed for content of this length."""

    if total_words < int(config.get("min_words_before_linking", 0)):
        return 0
    budget = int(config.get("max_links_per_page", 0))
    divisor = config.get("links_per_words")
    if divisor:
        budget = min(budget, total_words // int(divisor))
    return max(0, budget)


def eligible_paragraphs(paragraphs: Sequence[Paragraph], config: EngineConfig) -> List[Paragraph]:
    """Apply the placement policy's paragraph filters."""

    filtered = list(paragraphs)
    if config.policy("placement_policy", "skip_first_paragraph", False) and len(filtered) > 1:
        filtered = filtered[1:]

    min_words = int(config.policy("placement_policy", "min_paragraph_words", 0))
    if min_words > 0:
        filtered = [p for p in filtered if count_words(strip_tags(p.html)) >= min_words]
    return filtered


@lru_cache(maxsize=2048)
def anchor_pattern(anchor: str, case_sensitive: bool) -> re.Pattern[str]:
    """Compile a whole-phrase matcher for ``anchor``.

    The phrase may not start or end inside a word, and each run of
    whitespace in the anchor matches any run of whitespace in the text.
    """

    body = r"\s+".join(re.escape(part) for part in anchor.split())
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(rf"(?<!\w){body}(?!\w)", flags)


def _overlaps(start: int, end: int, spans: Sequence[Span]) -> bool:
    return any(start < span_end and span_start < end for span_start, span_end in spans)


def find_first_occurrence(
    anchor: str,
    regions: Sequence[TextRegion],
    claimed: Sequence[Span],
    case_sensitive: bool,
    full_paragraphs: Set[int] | None = None,
) -> Optional[Tuple[TextRegion, int, int]]:
    """Return ``(region, start, end)`` for the first usable match of ``anchor``.

    ``start`` and ``end`` are absolute offsets. Matches overlapping an
    already claimed span or cutting through a character reference are
    skipped in favour of later occurrences.
    """

    pattern = anchor_pattern(anchor, case_sensitive)
    for region in regions:
        if full_paragraphs and region.paragraph_index in full_paragraphs:
            continue
        references = entity_spans(region.text)
        for match in pattern.finditer(region.text):
            if _overlaps(match.start(), match.end(), references):
                continue
            start = region.start + match.start()
            end = region.start + match.end()
            if _overlaps(start, end, claimed):
                continue
            return region, start, end
    return None


def place_links(
    targets: Sequence[LinkTarget],
    regions: Sequence[TextRegion],
    budget: int,
    config: EngineConfig,
    skip_urls: Set[str] | None = None,
) -> List[LinkInsertion]:
    """Choose where each target gets linked, highest priority first.

    For each target the anchors are tried longest first and the first anchor
    that matches wins; a target is linked at most once. Placement stops as
    soon as ``budget`` insertions have been committed.
    """

    if budget <= 0 or not targets or not regions:
        return []

    case_sensitive = config.case_sensitive
    dedupe = bool(config.get("dedupe_anchors", True))
    one_per_paragraph = bool(config.policy("placement_policy", "one_link_per_paragraph", False))

    insertions: List[LinkInsertion] = []
    used_anchors: Set[str] = set()
    claimed: List[Span] = []
    full_paragraphs: Set[int] = set()

    for target in sorted(targets, key=lambda item: item.priority, reverse=True):
        if len(insertions) >= budget:
            break
        if skip_urls and target.url in skip_urls:
            continue

        for anchor in sorted(target.anchors, key=len, reverse=True):
            key = anchor_key(anchor, case_sensitive)
            if dedupe and key in used_anchors:
                continue

            found = find_first_occurrence(anchor, regions, claimed, case_sensitive, full_paragraphs)
            if found is None:
                continue

            region, start, end = found
            insertions.append(
                LinkInsertion(
                    position=start,
                    length=end - start,
                    href=target.url,
                    text=region.text[start - region.start:end - region.start],
                    target_id=target.id,
                )
            )
            used_anchors.add(key)
            claimed.append((start, end))
            if one_per_paragraph:
                full_paragraphs.add(region.paragraph_index)
            break

    return insertions
