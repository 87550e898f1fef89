"""End-to-end linking pass tests."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from sitelinker.engine.anchors import AnchorVocabulary
from sitelinker.engine.config import ConfigurationError, EngineConfig, load_config
from sitelinker.engine.index import add_internal_links, dry_run, explain
from sitelinker.engine.markup import count_words, strip_tags
from sitelinker.engine.store import EntityStore
from sitelinker.engine.types import PageContext

from .conftest import make_entity, words


def startups_html() -> str:
    first = "Many teams pair a CRM with project management software to keep delivery on track."
    second = "Others rely on email marketing platforms to nurture leads."
    return (
        "<h2>Overview</h2>\n"
        f"<p>{first} {words(112)}</p>\n"
        f"<p>{second} {words(114)}</p>"
    )


def _hrefs(html: str):
    return [anchor["href"] for anchor in BeautifulSoup(html, "html.parser").find_all("a")]


def test_crm_for_startups_scenario(crm_store, crm_vocabulary, startups_page, engine_config):
    html = startups_html()
    assert count_words(strip_tags(html)) == 250

    result = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert result.links_inserted == 2
    assert result.targets_used == ["/project-management/", "/email-marketing/"]
    assert '<a href="/project-management/">project management software</a>' in result.html
    assert '<a href="/email-marketing/">email marketing platforms</a>' in result.html
    assert "/crm-software/" not in result.html
    assert "free-crm-for-startups" not in result.html


def test_thin_content_gets_no_links(crm_store, crm_vocabulary, startups_page, engine_config):
    engine_config.raw["min_words_before_linking"] = 80
    engine_config.raw["links_per_words"] = 10
    html = f"<p>We compare project management software and email marketing platforms. {words(31)}</p>"
    assert count_words(strip_tags(html)) == 40

    result = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert result.links_inserted == 0
    assert result.html == html
    assert result.targets_used == []


def test_related_entities_are_linked(crm_store, startups_page, engine_config):
    vocabulary = AnchorVocabulary({"email-marketing": ["email campaigns"]})
    html = f"<p>Startups run email campaigns from day one. {words(120)}</p>"

    result = add_internal_links(html, startups_page, crm_store, vocabulary, engine_config)

    assert "/email-marketing/" in result.targets_used


def test_no_hierarchy_targets_by_default(crm_store, crm_vocabulary, startups_page, engine_config):
    engine_config.raw["links_per_words"] = None
    html = (
        "<p>CRM Software, CRM for Enterprise, Free CRM for Startups and CRM for Startups "
        f"all appear here next to Task Management. {words(60)}</p>"
    )

    result = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert result.targets_used == ["/project-management/task-management/"]


def test_second_pass_adds_nothing_and_never_nests(crm_store, crm_vocabulary, startups_page, engine_config):
    html = startups_html().replace("leads.", "leads with project management software.")

    first = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)
    second = add_internal_links(first.html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert second.links_inserted == 0
    assert second.html == first.html
    soup = BeautifulSoup(second.html, "html.parser")
    assert all(anchor.find("a") is None for anchor in soup.find_all("a"))
    assert _hrefs(second.html) == ["/project-management/", "/email-marketing/"]


def test_existing_links_and_code_are_left_alone(crm_store, crm_vocabulary, startups_page, engine_config):
    engine_config.raw["skip_linked_targets"] = False
    engine_config.raw["links_per_words"] = None
    html = (
        '<p>Read <a href="/elsewhere/">project management software</a> reviews and run '
        f"<code>email marketing platforms</code> checks. {words(120)}</p>"
    )

    result = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert result.links_inserted == 0
    assert result.html == html


@pytest.mark.parametrize(
    "wrapped",
    [
        '<a href="/card/"><p>Compare project management software here.</p></a>',
        "<footer><p>Compare project management software here.</p></footer>",
        '<script>var t = "<p>Compare project management software here.</p>";</script>',
        "<!-- <p>Compare project management software here.</p> -->",
    ],
)
def test_paragraphs_inside_excluded_elements_get_no_links(
    wrapped, crm_store, crm_vocabulary, startups_page, engine_config
):
    engine_config.raw["links_per_words"] = None
    html = f"{wrapped}<div>{words(120)}</div>"

    result = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert result.links_inserted == 0
    assert result.html == html


def test_existing_links_use_up_the_budget(crm_store, crm_vocabulary, startups_page, engine_config):
    html = (
        "<p>Teams pair project management software with email marketing platforms "
        f"and task tracking every day. {words(236)}</p>"
    )
    assert count_words(strip_tags(html)) == 250

    first = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)
    second = add_internal_links(first.html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert first.targets_used == ["/project-management/task-management/", "/project-management/"]
    assert second.links_inserted == 0
    assert second.html == first.html
    assert len(_hrefs(second.html)) == 2
    assert explain(first.html, startups_page, crm_store, crm_vocabulary, engine_config)["existing_links"] == 2


def test_output_is_deterministic(crm_store, crm_vocabulary, startups_page, engine_config):
    html = startups_html()

    first = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)
    second = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert first == second


def test_disabled_engine_returns_input(crm_store, crm_vocabulary, startups_page, engine_config):
    engine_config.raw["enabled"] = False
    html = startups_html()

    result = add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config)

    assert result.html == html
    assert result.links_inserted == 0


def test_content_without_paragraphs_or_targets(crm_store, crm_vocabulary, startups_page, engine_config):
    html = f"<div>project management software {words(120)}</div>"
    assert add_internal_links(html, startups_page, crm_store, crm_vocabulary, engine_config).links_inserted == 0

    lonely = EntityStore([make_entity("solo", "Solo")])
    page = PageContext(lonely.get("solo"))
    text = f"<p>Solo {words(120)}</p>"
    assert add_internal_links(text, page, lonely, None, engine_config).links_inserted == 0
    assert add_internal_links("", page, lonely, None, engine_config).html == ""


def test_invalid_config_is_rejected_up_front(crm_store, startups_page):
    config = EngineConfig(dict(load_config(None).raw, max_links_per_page=-3))

    with pytest.raises(ConfigurationError):
        add_internal_links("<p>anything</p>", startups_page, crm_store, None, config)


def test_explain_reports_budget_targets_and_insertions(crm_store, crm_vocabulary, startups_page, engine_config):
    details = explain(startups_html(), startups_page, crm_store, crm_vocabulary, engine_config)

    assert details["total_words"] == 250
    assert details["budget"] == 2
    assert [target["id"] for target in details["targets"]] == [
        "task-management",
        "project-management",
        "email-marketing",
    ]
    assert [paragraph["eligible"] for paragraph in details["paragraphs"]] == [True, True]
    assert [item["target"] for item in details["insertions"]] == ["project-management", "email-marketing"]


def test_dry_run_aggregates_pages(crm_store, crm_vocabulary, startups_page, engine_config):
    pages = [
        (startups_page, startups_html()),
        (PageContext(crm_store.get("email-marketing")), "<p>Too short.</p>"),
    ]

    metrics = dry_run(pages, crm_store, crm_vocabulary, engine_config)

    assert metrics["pages"] == 2
    assert metrics["coverage"] == 0.5
    assert metrics["total_links"] == 2
    assert metrics["inbound_counts"]["project-management"] == 1
    assert metrics["orphan_rate"] == pytest.approx(5 / 7)
