"""Service functions connecting the site's data files to the linking engine.

These functions load the category/subcategory JSON data and the anchor
synonym file once per process, build the read-only
:class:`~sitelinker.engine.store.EntityStore` and engine configuration from
Django settings, and expose small helpers the views and template tags use to
render and link page content.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .engine.anchors import AnchorVocabulary
from .engine.config import ConfigurationError, EngineConfig, load_config
from .engine.index import add_internal_links
from .engine.store import EntityStore, ValidationReport, validate_entities
from .engine.types import Entity, LinkingResult, PageContext

logger = logging.getLogger(__name__)

CATEGORIES_FILE = 'categories.json'
SUBCATEGORIES_FILE = 'subcategories.json'

# Content sections rendered on entity pages, in display order
CONTENT_SECTIONS: Tuple[Tuple[str, str], ...] = (
    ('overview', 'Overview'),
    ('keyBenefits', 'Key Benefits'),
    ('whyChoose', 'Why Choose'),
    ('gettingStarted', 'Getting Started'),
)


def _options() -> Dict[str, Any]:
    return dict(getattr(settings, 'SITELINKER', {}) or {})


def _language() -> str:
    language = _options().get('LANGUAGE') or getattr(settings, 'LANGUAGE_CODE', 'en')
    return str(language).split('-')[0].lower()


def read_json(path: Path) -> Any:
    """Read a JSON data file, raising ``ImproperlyConfigured`` when unusable."""

    try:
        with path.open('r', encoding='utf-8') as stream:
            return json.load(stream)
    except FileNotFoundError as exc:
        raise ImproperlyConfigured(f'Data file not found: {path}') from exc
    except json.JSONDecodeError as exc:
        raise ImproperlyConfigured(f'Invalid JSON in {path}: {exc}') from exc


def localized(value: Any, language: str) -> str:
    """Pick the ``language`` variant of a possibly localized string."""

    if isinstance(value, dict):
        chosen = value.get(language) or value.get('en')
        if chosen is None and value:
            chosen = next(iter(value.values()))
        return str(chosen or '')
    return '' if value is None else str(value)


def parse_entities(
    categories: Sequence[Mapping[str, Any]],
    subcategories: Sequence[Mapping[str, Any]],
    language: str = 'en',
) -> Tuple[List[Entity], Dict[str, List[str]]]:
    """Convert raw category records into entities.

    Returns the entities (categories first, then subcategories, in file
    order) and the ``subcategoryIds`` lists declared on categories, which
    are only used for validation since children are derived from
    ``parentCategoryId``.
    """

    entities: List[Entity] = []
    declared_children: Dict[str, List[str]] = {}

    for record in categories:
        entities.append(_entity_from_record(record, None, language))
        if record.get('subcategoryIds'):
            declared_children[str(record['id'])] = [str(item) for item in record['subcategoryIds']]

    for record in subcategories:
        parent_id = record.get('parentCategoryId')
        entities.append(_entity_from_record(record, str(parent_id) if parent_id else None, language))

    return entities, declared_children


def _entity_from_record(record: Mapping[str, Any], parent_id: str | None, language: str) -> Entity:
    content = record.get('content') or {}
    return Entity(
        id=str(record['id']),
        slug=str(record.get('slug') or record['id']),
        title=localized(record.get('title'), language),
        parent_id=parent_id,
        related_ids=tuple(str(item) for item in record.get('relatedCategoryIds') or ()),
        description=localized(record.get('description'), language),
        content={
            key: [localized(item, language) for item in items]
            for key, items in content.items()
            if isinstance(items, list)
        },
    )


def load_entities(data_dir: Path, language: str = 'en') -> Tuple[List[Entity], Dict[str, List[str]]]:
    categories = read_json(data_dir / CATEGORIES_FILE)
    subcategories = read_json(data_dir / SUBCATEGORIES_FILE)
    if not isinstance(categories, list) or not isinstance(subcategories, list):
        raise ImproperlyConfigured(f'Category data in {data_dir} must be JSON lists.')
    return parse_entities(categories, subcategories, language)


def load_anchor_vocabulary(path: Path) -> AnchorVocabulary:
    """Load the ``entity id -> synonyms`` file; a missing file means no synonyms."""

    if not path.exists():
        logger.warning('Anchor synonyms file %s not found; using titles only', path)
        return AnchorVocabulary({})
    data = read_json(path)
    if not isinstance(data, dict):
        raise ImproperlyConfigured(f'{path} must contain a JSON object.')
    return AnchorVocabulary(data)


def _data_dir() -> Path:
    data_dir = _options().get('DATA_DIR')
    if not data_dir:
        raise ImproperlyConfigured('SITELINKER["DATA_DIR"] must be set.')
    return Path(data_dir)


@lru_cache(maxsize=None)
def get_entities() -> Tuple[Tuple[Entity, ...], Dict[str, List[str]]]:
    entities, declared_children = load_entities(_data_dir(), _language())
    logger.info('Loaded %d entities from %s', len(entities), _data_dir())
    return tuple(entities), declared_children


@lru_cache(maxsize=None)
def get_entity_store() -> EntityStore:
    entities, _ = get_entities()
    return EntityStore(entities)


@lru_cache(maxsize=None)
def get_vocabulary() -> AnchorVocabulary:
    anchors_file = Path(_options().get('ANCHORS_FILE') or 'anchors.json')
    if not anchors_file.is_absolute():
        anchors_file = _data_dir() / anchors_file
    return load_anchor_vocabulary(anchors_file)


@lru_cache(maxsize=None)
def get_linking_config() -> EngineConfig:
    options = _options()
    try:
        return load_config(options.get('CONFIG_FILE'), options.get('LINKING') or {})
    except ConfigurationError as exc:
        raise ImproperlyConfigured(f'Invalid internal linking configuration: {exc}') from exc


def clear_caches() -> None:
    """Drop cached data so the next call reloads it from settings."""

    for cached in (get_entities, get_entity_store, get_vocabulary, get_linking_config):
        cached.cache_clear()


def validate_data() -> ValidationReport:
    entities, declared_children = get_entities()
    return validate_entities(entities, get_vocabulary().as_dict(), declared_children)


def resolve_entity(entity: Entity | str) -> Entity | None:
    if isinstance(entity, Entity):
        return entity
    return get_entity_store().get(str(entity))


def render_content_html(entity: Entity) -> str:
    """Build the page body HTML from an entity's description and content sections.

    Content strings are authored at build time and treated as trusted HTML.
    """

    parts: List[str] = []
    if entity.description:
        parts.append(f'<p>{entity.description}</p>')
    for key, heading in CONTENT_SECTIONS:
        paragraphs = [item for item in entity.content.get(key, []) if item.strip()]
        if not paragraphs:
            continue
        parts.append(f'<h2>{heading}</h2>')
        parts.extend(f'<p>{item}</p>' for item in paragraphs)
    return '\n'.join(parts)


def link_entity_html(html: str, entity: Entity | str) -> LinkingResult:
    """Insert internal links into ``html`` rendered for ``entity``'s page."""

    resolved = resolve_entity(entity)
    if resolved is None:
        logger.warning('Cannot link content for unknown entity %r', entity)
        return LinkingResult(html=html, links_inserted=0, targets_used=[])
    return add_internal_links(
        html,
        PageContext(resolved),
        get_entity_store(),
        get_vocabulary(),
        get_linking_config(),
    )
