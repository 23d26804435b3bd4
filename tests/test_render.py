from __future__ import annotations

import base64

import pytest

from deckbridge.core.canvas.nodes import FrameNode, RectangleNode, TextNode
from deckbridge.core.classify.detect import detect_archetype
from deckbridge.core.errors import ContentError
from deckbridge.core.ir.types import VisualRegion, slide_from_dict
from deckbridge.core.render.archetypes import create_slide, visual_box
from deckbridge.core.sync.update import find_named_text

# 1x1 transparent png
PNG_1X1 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="

SAMPLES = {
    "title": {"headline": "Launch", "subline": "Q3 plan"},
    "section": {"headline": "Part two"},
    "big-idea": {"headline": "Think big", "subline": "Why it matters"},
    "bullets": {"headline": "Agenda", "bullets": ["One", "Two"]},
    "two-column": {
        "headline": "Compare",
        "left": {"title": "Before", "body": "Manual"},
        "right": {"title": "After", "body": "Automatic"},
    },
    "quote": {"quote": "Ship it", "attribution": "Eng Lead"},
    "summary": {"headline": "Recap", "items": ["Faster", "Cheaper"]},
    "chart": {"headline": "Revenue", "chart": {"type": "bar"}, "takeaway": "Up 20%"},
    "video": {"headline": "Demo", "video_url": "https://example.com/v", "caption": "Watch it"},
    "timeline": {"headline": "Roadmap", "stages": [{"label": "Plan", "description": "Q1"}, {"label": "Ship"}]},
    "comparison": {"headline": "Options", "columns": ["Feature", "Us"], "rows": [["Speed", "Fast"]]},
    "position-cards": {
        "eyebrow": "WHY US",
        "headline": "Pick one",
        "cards": [{"label": "A", "title": "Alpha", "body": "First", "badge": "New", "badge_color": "green"}],
        "features": [{"label": "Fast", "description": "very"}],
    },
}


def _render(document, archetype, content, index=0, **extra):
    slide = slide_from_dict({"id": f"s-{archetype}", "archetype": archetype, "content": content, **extra})
    return create_slide(document, slide, index)


def _names(node):
    return [c.name for c in node.children]


@pytest.mark.parametrize("archetype", sorted(SAMPLES))
def test_rendered_slide_is_detected_as_its_archetype(doc, archetype):
    root = _render(doc, archetype, SAMPLES[archetype])
    assert detect_archetype(root) == archetype


@pytest.mark.parametrize("archetype", sorted(SAMPLES))
def test_names_are_stable_across_renders(doc, archetype):
    def subtree_names(root):
        return [n.name for n in root.find_all()]

    first = _render(doc, archetype, SAMPLES[archetype])
    second = _render(doc, archetype, SAMPLES[archetype], index=1)
    assert subtree_names(first) == subtree_names(second)
    assert {n.id for n in first.find_all()}.isdisjoint(n.id for n in second.find_all())


def test_title_grammar(doc):
    root = _render(doc, "title", SAMPLES["title"])
    assert _names(root) == ["title-gradient-bg", "title-container"]

    box = root.children[1]
    assert isinstance(box, FrameNode) and box.is_flow
    assert (box.x, box.y) == (200, 380)
    headline, subline = box.children
    assert (headline.name, headline.font_size, headline.is_bold) == ("headline", 96, True)
    assert (subline.name, subline.font_size, subline.is_bold) == ("subline", 36, False)
    # stacked by the flow frame
    assert subline.y > headline.y + headline.height - 1


def test_absent_optional_fields_produce_no_nodes(doc):
    root = _render(doc, "title", {"headline": "Only"})
    box = root.children[1]
    assert _names(box) == ["headline"]

    root = _render(doc, "chart", {"headline": "Revenue"}, index=1)
    assert "takeaway" not in _names(root)
    assert find_named_text(root, "chart-placeholder").characters == "[Chart: data]"


def test_bullets_are_decorated_and_indexed(doc):
    root = _render(doc, "bullets", {"headline": "Agenda", "bullets": ["One", "Two", "Three"]})
    box = root.find_child(lambda n: n.name == "bullets-container")
    assert [c.name for c in box.children] == ["bullet-0", "bullet-1", "bullet-2"]
    assert [c.characters for c in box.children] == ["• One", "• Two", "• Three"]
    assert {c.font_size for c in box.children} == {36}


def test_quote_decorations(doc):
    root = _render(doc, "quote", SAMPLES["quote"])
    assert find_named_text(root, "quote").characters == '"Ship it"'
    assert find_named_text(root, "attribution").characters == "— Eng Lead"


def test_timeline_stage_names(doc):
    root = _render(doc, "timeline", SAMPLES["timeline"])
    names = _names(root)
    assert ["stage-0-marker", "stage-0-label", "stage-0-desc", "stage-1-marker", "stage-1-label"] == [
        n for n in names if n.startswith("stage-")
    ]
    assert find_named_text(root, "stage-1-desc") is None


def test_comparison_grid_names(doc):
    root = _render(doc, "comparison", SAMPLES["comparison"])
    texts = {c.name: c.characters for c in root.children if isinstance(c, TextNode)}
    assert texts["col-0"] == "Feature"
    assert texts["col-1"] == "Us"
    assert texts["cell-0-0"] == "Speed"
    assert texts["cell-0-1"] == "Fast"


def test_position_cards_default_features_header(doc):
    root = _render(doc, "position-cards", SAMPLES["position-cards"])
    names = set(_names(root))
    assert {"eyebrow", "card-0-bg", "card-0-badge", "card-0-badge-bg", "features-bg", "feature-0-dot"} <= names
    assert find_named_text(root, "features-header").characters == "KEY FEATURES"


def test_unknown_archetype_renders_headline_only(doc):
    root = _render(doc, "mystery", {"headline": "Hello", "subline": "ignored"})
    assert _names(root) == ["headline"]
    headline = root.children[0]
    assert (headline.x, headline.y, headline.font_size) == (200, 200, 64)


def test_design_surface_slides_are_named_and_spaced(design_doc):
    first = _render(design_doc, "section", {"headline": "Intro"}, index=0)
    second = _render(design_doc, "section", {"headline": "Next"}, index=1)
    assert first.name == "Slide 1: Intro"
    assert second.name == "Slide 2: Next"
    assert (first.x, second.x) == (0, 2000)
    assert (second.width, second.height) == (1920, 1080)
    assert design_doc.slide_nodes() == [first, second]


def test_speaker_notes_are_kept_on_the_root(doc):
    root = _render(doc, "section", {"headline": "Intro"}, speaker_notes="say hi")
    assert root.speaker_notes == "say hi"


def test_visual_box_defaults():
    assert visual_box(VisualRegion(position="right"), 1920, 1080) == (1920 - 702 - 100, (1080 - 702) / 2, 702, 702)
    assert visual_box(VisualRegion(position="center"), 1920, 1080) == ((1920 - 756) / 2, (1080 - 756) / 2, 756, 756)
    assert visual_box(VisualRegion(position="below"), 1920, 1080) == ((1920 - 768) / 2, 1080 - 378 - 100, 768, 378)
    assert visual_box(VisualRegion(position="right", width=400, height=300), 1920, 1080) == (1420, 390, 400, 300)


def test_cycle_visual_is_rendered_on_top(doc):
    content = {"headline": "Loop", "visual": {"type": "cycle", "nodes": ["Build", "Measure", "Learn"]}}
    root = _render(doc, "section", content)
    assert _names(root)[-1] == "visual"
    visual = root.children[-1]
    assert isinstance(visual, FrameNode)
    assert (visual.x, visual.y, visual.width, visual.height) == (1118, 189, 702, 702)
    labels = [c.characters for c in visual.children if c.name.startswith("label-")]
    assert labels == ["Build", "Measure", "Learn"]
    # the overlay does not change what the slide is
    assert detect_archetype(root) == "section"


def test_image_visual_fits_its_box(doc):
    content = {"headline": "Pic", "visual": {"type": "image", "content": PNG_1X1}}
    root = _render(doc, "section", content)
    visual = root.children[-1]
    assert isinstance(visual, RectangleNode)
    assert (visual.width, visual.height) == (702, 702)
    assert visual.fills[0]["type"] == "IMAGE"
    assert visual.fills[0]["blob"] == base64.b64decode(PNG_1X1)


def test_image_visual_accepts_data_uri(doc):
    content = {"headline": "Pic", "visual": {"type": "image", "content": f"data:image/png;base64,{PNG_1X1}"}}
    root = _render(doc, "section", content)
    assert root.children[-1].fills[0]["blob"] == base64.b64decode(PNG_1X1)


def test_failed_render_leaves_no_root_behind(doc):
    with pytest.raises(ContentError):
        _render(doc, "section", {"headline": "Bad", "visual": {"type": "image", "content": "not base64!"}})
    assert doc.slide_nodes() == []
