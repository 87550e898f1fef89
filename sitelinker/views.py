"""Django views for the sitelinker app.

Entity pages are addressed by their hierarchical slug path and render the
entity's content with internal links inserted by the linking engine.
"""

from __future__ import annotations

from django.http import Http404, HttpRequest, HttpResponse
from django.shortcuts import render
from django.utils.safestring import mark_safe
from django.views.decorators.http import require_GET

from .services import get_entity_store, link_entity_html, render_content_html


@require_GET
def entity_page(request: HttpRequest, path: str) -> HttpResponse:
    """Render a category or subcategory page found by its slug path."""

    store = get_entity_store()
    entity = store.find_by_path(path)
    if entity is None:
        raise Http404(f'No category or subcategory at /{path}/')

    result = link_entity_html(render_content_html(entity), entity)
    return render(
        request,
        'sitelinker/entity_page.html',
        {
            'entity': entity,
            'breadcrumbs': store.breadcrumbs(entity.id),
            'children': [store.get(child_id) for child_id in store.children_of(entity.id)],
            'content': mark_safe(result.html),
            'links_inserted': result.links_inserted,
        },
    )
