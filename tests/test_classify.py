from __future__ import annotations

import pytest

from deckbridge.core.classify.detect import detect_archetype
from deckbridge.core.classify.infer import TextLeaf, infer_archetype
from deckbridge.core.config import ClassifierConfig


def _root(doc, *children):
    """A slide whose direct children are (kind, name[, font size]) stubs."""
    root = doc.create_slide()
    for spec in children:
        kind, name = spec[0], spec[1]
        node = {"text": doc.create_text, "frame": doc.create_frame, "rect": doc.create_rectangle}[kind]()
        node.name = name
        if len(spec) > 2:
            node.font_size = spec[2]
        root.append_child(node)
    return root


@pytest.mark.parametrize(
    "children, expected",
    [
        ([("frame", "bullets-container"), ("text", "headline")], "bullets"),
        ([("frame", "big-idea-container")], "big-idea"),
        ([("frame", "title-container")], "title"),
        ([("rect", "title-gradient-bg")], "title"),
        ([("frame", "section-container")], "section"),
        ([("frame", "quote-container")], "quote"),
        ([("frame", "summary-container")], "summary"),
        ([("frame", "video-container")], "video"),
        ([("frame", "two-column-container")], "two-column"),
        ([("text", "eyebrow"), ("text", "headline")], "position-cards"),
        ([("text", "card-0-title")], "position-cards"),
        ([("text", "left-title"), ("text", "headline")], "two-column"),
        ([("text", "quote"), ("text", "attribution")], "quote"),
        ([("text", "bullet-0"), ("text", "bullet-1")], "bullets"),
        ([("text", "item-0")], "summary"),
        ([("text", "stage-0-label")], "timeline"),
        ([("text", "headline"), ("text", "chart-placeholder")], "chart"),
        ([("text", "col-0"), ("text", "cell-0-0")], "comparison"),
        ([("text", "headline"), ("text", "chart-placeholder"), ("text", "col-0")], "comparison"),
        ([("text", "headline", 96), ("text", "subline", 36)], "title"),
        ([("text", "headline", 72), ("text", "subline", 32)], "big-idea"),
        ([("text", "headline", 64)], "section"),
        ([("text", "Title 1"), ("rect", "")], "unknown"),
        ([], "unknown"),
    ],
)
def test_name_rules(doc, children, expected):
    assert detect_archetype(_root(doc, *children)) == expected


def test_only_direct_children_are_considered(doc):
    root = _root(doc, ("frame", "wrapper"))
    inner = doc.create_text()
    inner.name = "bullet-0"
    root.children[0].append_child(inner)
    assert detect_archetype(root) == "unknown"


def test_title_font_threshold_is_configurable(doc):
    root = _root(doc, ("text", "headline", 72), ("text", "subline", 32))
    assert detect_archetype(root, title_font=70) == "title"


# content-based inference


def leaf(text, x, y, size, bold=False):
    return TextLeaf(text=text, x=x, y=y, font_size=size, bold=bold)


def test_infer_title():
    r = infer_archetype([leaf("Launch", 200, 380, 96, True), leaf("Q3 plan", 200, 520, 36)])
    assert r.archetype == "title"
    assert (r.content.headline, r.content.subline) == ("Launch", "Q3 plan")
    assert r.extras == []


def test_infer_title_tie_goes_to_the_later_leaf():
    r = infer_archetype([leaf("First", 200, 300, 100), leaf("Second", 200, 500, 100)])
    assert (r.content.headline, r.content.subline) == ("Second", "First")


def test_infer_section():
    r = infer_archetype([leaf("Part two", 200, 450, 72, True)])
    assert r.archetype == "section"
    assert r.content.headline == "Part two"


def test_infer_quote_with_extras():
    r = infer_archetype([leaf("“Stay hungry”", 200, 350, 48), leaf("— Jobs", 200, 450, 28), leaf("2005", 200, 900, 20)])
    assert r.archetype == "quote"
    assert (r.content.quote, r.content.attribution) == ("Stay hungry", "Jobs")
    assert r.extras == ["2005"]


def test_infer_bullets():
    leaves = [
        leaf("Agenda", 200, 180, 56, True),
        leaf("• One", 200, 300, 36),
        leaf("• Two", 200, 380, 36),
        leaf("footer", 200, 1000, 20),
    ]
    r = infer_archetype(leaves)
    assert r.archetype == "bullets"
    assert r.content.headline == "Agenda"
    assert r.content.bullets == ["One", "Two"]
    assert r.extras == ["footer"]
    assert r.to_dict()["extras"] == ["footer"]


def test_infer_two_column():
    leaves = [
        leaf("Compare", 200, 150, 56, True),
        leaf("Before", 200, 300, 36, True),
        leaf("Manual", 200, 360, 28),
        leaf("After", 1000, 300, 36, True),
        leaf("Automatic", 1000, 360, 28),
    ]
    r = infer_archetype(leaves)
    assert r.archetype == "two-column"
    assert r.content.headline == "Compare"
    assert (r.content.left.title, r.content.left.body) == ("Before", "Manual")
    assert (r.content.right.title, r.content.right.body) == ("After", "Automatic")


def test_infer_chart():
    leaves = [leaf("Revenue", 200, 150, 56, True), leaf("[Chart: bar]", 860, 500, 28), leaf("Up 20%", 200, 820, 28)]
    r = infer_archetype(leaves)
    assert r.archetype == "chart"
    assert r.content.chart.type == "bar"
    assert r.content.takeaway == "Up 20%"


def test_infer_timeline():
    leaves = [
        leaf("Roadmap", 200, 150, 56, True),
        leaf("Plan", 100, 420, 28, True),
        leaf("Build", 400, 420, 28, True),
        leaf("Ship", 700, 420, 28, True),
        leaf("Q1", 100, 470, 22),
        leaf("Q2", 400, 470, 22),
    ]
    r = infer_archetype(leaves)
    assert r.archetype == "timeline"
    assert r.content.headline == "Roadmap"
    assert [(s.label, s.description) for s in r.content.stages] == [("Plan", "Q1"), ("Build", "Q2"), ("Ship", None)]


def test_infer_summary():
    leaves = [leaf("Recap", 200, 180, 72, True), leaf("Faster", 200, 300, 36), leaf("Cheaper", 200, 360, 36)]
    r = infer_archetype(leaves)
    assert r.archetype == "summary"
    assert r.content.headline == "Recap"
    assert r.content.items == ["Faster", "Cheaper"]


def test_infer_big_idea():
    r = infer_archetype([leaf("Think big", 200, 380, 72, True), leaf("Because", 200, 500, 24)])
    assert r.archetype == "big-idea"
    assert (r.content.headline, r.content.subline) == ("Think big", "Because")


def test_infer_unknown_degrades_to_headline_and_subline():
    r = infer_archetype([leaf("alpha", 100, 100, 20), leaf("beta", 100, 200, 20), leaf("gamma", 100, 300, 20)])
    assert r.archetype == "unknown"
    assert (r.content.headline, r.content.subline) == ("alpha", "beta")
    assert r.extras == ["gamma"]
    assert r.rule is None


def test_infer_empty_slide():
    r = infer_archetype([])
    assert r.archetype == "unknown"
    assert r.extras == []


def test_blank_text_is_never_an_extra():
    r = infer_archetype([leaf("Part two", 200, 450, 72, True)])
    assert r.extras == []
    r = infer_archetype([leaf("a", 100, 100, 20), leaf("b", 100, 200, 20), leaf("   ", 100, 300, 20)])
    assert r.extras == []


def test_thresholds_come_from_config():
    leaves = [leaf("Launch", 200, 380, 70, True), leaf("Q3", 200, 520, 36)]
    assert infer_archetype(leaves).archetype == "big-idea"
    assert infer_archetype(leaves, ClassifierConfig(title_min_font=64)).archetype == "title"


def test_two_column_body_size_comes_from_config():
    leaves = [
        leaf("Compare", 200, 150, 56, True),
        leaf("Before", 200, 300, 36, True),
        leaf("Manual", 200, 360, 44),
        leaf("After", 1000, 300, 36, True),
        leaf("Automatic", 1000, 360, 44),
    ]
    assert infer_archetype(leaves).content.left.body == ""
    r = infer_archetype(leaves, ClassifierConfig(column_body_max_font=48))
    assert (r.content.left.body, r.content.right.body) == ("Manual", "Automatic")
