"""Shared fixtures for engine tests."""

from __future__ import annotations

from typing import Dict, Iterable, List

import pytest

from sitelinker.engine.anchors import AnchorVocabulary
from sitelinker.engine.config import load_config
from sitelinker.engine.store import EntityStore
from sitelinker.engine.types import Entity, PageContext


@pytest.fixture()
def engine_config():
    """Provide a mutable copy of the default engine configuration."""

    return load_config(None)


def make_entity(
    id: str,
    title: str | None = None,
    *,
    parent: str | None = None,
    related: Iterable[str] | None = None,
    slug: str | None = None,
) -> Entity:
    return Entity(
        id=id,
        slug=slug or id,
        title=title or id.replace("-", " ").title(),
        parent_id=parent,
        related_ids=tuple(related or ()),
    )


def words(count: int, word: str = "lorem") -> str:
    return " ".join([word] * count)


CRM_SYNONYMS: Dict[str, List[str]] = {
    "crm-software": ["CRM", "customer relationship management"],
    "project-management": ["project management software", "project management tools"],
    "email-marketing": ["email marketing platforms", "email campaigns"],
    "crm-for-startups": ["startup CRM"],
    "crm-for-enterprise": ["enterprise CRM"],
    "free-crm-for-startups": ["free CRM"],
    "task-management": ["task tracking"],
}


@pytest.fixture()
def crm_store() -> EntityStore:
    return EntityStore(
        [
            make_entity("crm-software", "CRM Software"),
            make_entity("project-management", "Project Management"),
            make_entity("email-marketing", "Email Marketing"),
            make_entity(
                "crm-for-startups",
                "CRM for Startups",
                parent="crm-software",
                related=["project-management", "email-marketing"],
            ),
            make_entity("crm-for-enterprise", "CRM for Enterprise", parent="crm-software"),
            make_entity("free-crm-for-startups", "Free CRM for Startups", parent="crm-for-startups"),
            make_entity("task-management", "Task Management", parent="project-management"),
        ]
    )


@pytest.fixture()
def crm_vocabulary() -> AnchorVocabulary:
    return AnchorVocabulary(CRM_SYNONYMS)


@pytest.fixture()
def startups_page(crm_store) -> PageContext:
    return PageContext(crm_store.get("crm-for-startups"))
