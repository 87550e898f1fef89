"""Template filters that run the internal linking engine at render time."""

from __future__ import annotations

from django import template
from django.utils.safestring import SafeString, mark_safe

from ..engine.types import Entity
from ..services import link_entity_html

register = template.Library()


@register.filter(name='internal_links')
def internal_links(html: str, entity: Entity | str) -> SafeString:
    """Return ``html`` with internal links for the page of ``entity``.

    Usage: ``{{ body|internal_links:entity }}`` where ``entity`` is an
    :class:`~sitelinker.engine.types.Entity` or an entity id. The content is
    build-time authored HTML and is marked safe.
    """

    result = link_entity_html(str(html or ''), entity)
    return mark_safe(result.html)
