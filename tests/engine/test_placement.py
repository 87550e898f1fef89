"""Link budget and placement tests."""

from __future__ import annotations

from sitelinker.engine.markup import extract_paragraphs, extract_text_regions
from sitelinker.engine.placement import compute_budget, eligible_paragraphs, place_links
from sitelinker.engine.types import LinkTarget


def make_target(id: str, *anchors: str, priority: int = 100) -> LinkTarget:
    return LinkTarget(
        id=id,
        url=f"/{id}/",
        title=anchors[0],
        anchors=list(anchors),
        relation="related",
        priority=priority,
    )


def test_budget_follows_word_count(engine_config):
    assert compute_budget(49, engine_config) == 0
    assert compute_budget(99, engine_config) == 0
    assert compute_budget(250, engine_config) == 2
    assert compute_budget(5000, engine_config) == 5

    engine_config.raw["links_per_words"] = None
    assert compute_budget(60, engine_config) == 5

    engine_config.raw["min_words_before_linking"] = 80
    assert compute_budget(40, engine_config) == 0


def test_longest_anchor_wins_within_a_target(engine_config):
    html = "<p>Our CRM for Startups guide covers the basics.</p>"
    target = make_target("crm-for-startups", "CRM", "CRM for Startups")

    insertions = place_links([target], extract_text_regions(html), 5, engine_config)

    assert len(insertions) == 1
    assert insertions[0].text == "CRM for Startups"
    assert html[insertions[0].position:insertions[0].position + insertions[0].length] == "CRM for Startups"


def test_matches_respect_word_boundaries_and_case_policy(engine_config):
    html = "<p>CRMs and eCRM tools aside, a crm still wins.</p>"
    target = make_target("crm", "CRM")

    insertions = place_links([target], extract_text_regions(html), 5, engine_config)
    assert [item.text for item in insertions] == ["crm"]

    engine_config.raw["anchor_policy"]["case_sensitive"] = True
    assert place_links([target], extract_text_regions(html), 5, engine_config) == []


def test_anchor_whitespace_matches_line_breaks(engine_config):
    html = "<p>Teams adopt project\n  management tools early.</p>"
    target = make_target("project-management", "project management tools")

    insertions = place_links([target], extract_text_regions(html), 5, engine_config)

    assert insertions[0].text == "project\n  management tools"


def test_first_occurrence_in_document_order(engine_config):
    html = "<p>Nothing here.</p><p>First email campaigns mention.</p><p>Second email campaigns mention.</p>"
    target = make_target("email-marketing", "email campaigns")

    insertions = place_links([target], extract_text_regions(html), 5, engine_config)

    assert insertions[0].position == html.index("email campaigns")


def test_dedupe_blocks_reusing_an_anchor(engine_config):
    html = "<p>Pick a CRM today. Every CRM needs data.</p>"
    first = make_target("crm-software", "CRM", priority=120)
    second = make_target("crm-guides", "CRM", priority=100)

    insertions = place_links([second, first], extract_text_regions(html), 5, engine_config)
    assert [item.target_id for item in insertions] == ["crm-software"]

    engine_config.raw["dedupe_anchors"] = False
    insertions = place_links([second, first], extract_text_regions(html), 5, engine_config)
    assert [item.target_id for item in insertions] == ["crm-software", "crm-guides"]
    assert insertions[0].position < insertions[1].position


def test_matches_never_overlap_claimed_spans(engine_config):
    html = "<p>Compare email marketing platforms before buying.</p>"
    email = make_target("email-marketing", "email marketing", priority=120)
    platforms = make_target("platforms", "marketing platforms", priority=100)

    insertions = place_links([email, platforms], extract_text_regions(html), 5, engine_config)

    assert [item.target_id for item in insertions] == ["email-marketing"]


def test_matches_do_not_cut_character_references(engine_config):
    html = "<p>R&amp;D budgets fund the amp rebuild.</p>"
    target = make_target("amp", "amp")

    insertions = place_links([target], extract_text_regions(html), 5, engine_config)

    assert insertions[0].position == html.index("the amp") + len("the ")


def test_one_link_per_paragraph(engine_config):
    engine_config.raw["placement_policy"]["one_link_per_paragraph"] = True
    html = "<p>Task tracking and email campaigns together.</p><p>Later, email campaigns again.</p>"
    tasks = make_target("task-management", "task tracking", priority=120)
    email = make_target("email-marketing", "email campaigns", priority=100)

    insertions = place_links([tasks, email], extract_text_regions(html), 5, engine_config)

    assert [item.target_id for item in insertions] == ["task-management", "email-marketing"]
    assert insertions[1].position == html.index("email campaigns again")


def test_budget_stops_placement_in_priority_order(engine_config):
    html = "<p>alpha beta gamma</p>"
    targets = [
        make_target("gamma", "gamma", priority=10),
        make_target("alpha", "alpha", priority=100),
        make_target("beta", "beta", priority=50),
    ]

    insertions = place_links(targets, extract_text_regions(html), 2, engine_config)

    assert [item.target_id for item in insertions] == ["alpha", "beta"]
    assert place_links(targets, extract_text_regions(html), 0, engine_config) == []


def test_targets_already_linked_are_skipped(engine_config):
    html = "<p>alpha beta</p>"
    targets = [make_target("alpha", "alpha"), make_target("beta", "beta")]

    insertions = place_links(targets, extract_text_regions(html), 5, engine_config, skip_urls={"/alpha/"})

    assert [item.target_id for item in insertions] == ["beta"]


def test_paragraph_filters(engine_config):
    html = "<p>Short intro.</p><p>This paragraph has comfortably more than ten words in it overall.</p>"
    paragraphs = extract_paragraphs(html)

    assert [p.index for p in eligible_paragraphs(paragraphs, engine_config)] == [1]

    engine_config.raw["placement_policy"]["min_paragraph_words"] = 0
    engine_config.raw["placement_policy"]["skip_first_paragraph"] = True
    assert [p.index for p in eligible_paragraphs(paragraphs, engine_config)] == [1]
