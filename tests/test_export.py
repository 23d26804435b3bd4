from __future__ import annotations

import json

from deckbridge.core.canvas.fonts import get_font_name
from deckbridge.core.canvas.storage import ClientStorage
from deckbridge.core.classify.export import classify_element, export_deck, reading_order
from deckbridge.core.config import ClassifierConfig
from deckbridge.core.sync.apply import apply_ir

PNG_1X1 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="


def _pull(doc, storage):
    return export_deck(doc, storage)


def test_named_slides_round_trip_through_apply(doc, storage, deck, make_slide):
    slides = [
        make_slide("intro", "title", headline="Launch", subline="Q3 plan"),
        make_slide("agenda", "bullets", headline="Agenda", bullets=["One", "Two"]),
        make_slide("voice", "quote", quote="Ship it", attribution="Eng Lead"),
        make_slide("roadmap", "timeline", headline="Roadmap", stages=[{"label": "Plan", "description": "Q1"}, {"label": "Ship"}]),
        make_slide("grid", "comparison", headline="Options", columns=["Feature", "Us"], rows=[["Speed", "Fast"]]),
    ]
    apply_ir(doc, deck(*slides), storage)

    pulled = _pull(doc, storage)
    by_id = {s.id: s for s in pulled.slides}
    assert list(by_id) == ["intro", "agenda", "voice", "roadmap", "grid"]
    for raw in slides:
        got = by_id[raw["id"]]
        assert got.archetype == raw["archetype"]
        assert got.content.to_dict() == raw["content"]
        assert got.extras is None


def test_unmapped_slides_get_positional_ids(doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("a", "section", headline="A"), make_slide("b", "section", headline="B")), storage)
    pulled = export_deck(doc, ClientStorage())
    assert [s.id for s in pulled.slides] == ["slide-1", "slide-2"]
    assert pulled.title == "Pulled Deck"


def test_hand_made_leaves_become_extras(doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("b", "bullets", headline="Agenda", bullets=["One", "Two"])), storage)
    root = doc.slide_nodes()[0]
    note = doc.create_text()
    note.font_name = root.children[0].font_name
    note.characters = "Draft only"
    note.name = "Text 9"
    root.append_child(note)

    slide = _pull(doc, storage).slides[0]
    assert slide.archetype == "bullets"
    assert slide.content.bullets == ["One", "Two"]
    assert slide.extras == ["Draft only"]


def test_hand_made_slide_is_inferred(doc, storage):
    root = doc.create_slide()
    bold = get_font_name(doc, True)
    regular = get_font_name(doc, False)
    for text, x, y, size, font in (
        ("Agenda", 200, 180, 56, bold),
        ("• Hire", 200, 300, 36, regular),
        ("• Ship", 200, 380, 36, regular),
    ):
        t = doc.create_text()
        t.font_name = font
        t.font_size = size
        t.characters = text
        t.x, t.y = x, y
        root.append_child(t)

    slide = _pull(doc, storage).slides[0]
    assert slide.archetype == "bullets"
    assert slide.content.to_dict() == {"headline": "Agenda", "bullets": ["Hire", "Ship"]}
    assert [e["text"] for e in slide.elements] == ["Agenda", "• Hire", "• Ship"]
    assert [e["type"] for e in slide.elements] == ["headline", "bullet", "bullet"]


def test_elements_are_positioned_relative_to_the_slide(doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("s", "section", headline="Part two")), storage)
    slide = _pull(doc, storage).slides[0]
    (element,) = slide.elements
    assert (element["x"], element["y"]) == (200, 450)
    assert element["name"] == "headline"
    assert element["parentName"] == "section-container"
    assert element["depth"] == 2
    assert element["fontSize"] == 72
    assert element["isBold"] is True
    assert element["isInDiagram"] is False
    assert slide.has_diagram is False


def test_cycle_visual_is_reconstructed(doc, storage, deck, make_slide):
    visual = {"type": "cycle", "nodes": ["Build", "Measure", "Learn"], "colors": ["cyan", "green", "pink"], "icons": ["rocket", "chart", "nope"]}
    apply_ir(doc, deck(make_slide("loop", "section", headline="Loop", visual=visual)), storage)

    slide = _pull(doc, storage).slides[0]
    assert slide.archetype == "section"
    assert slide.extras is None
    got = slide.content.visual.to_dict()
    assert got["type"] == "cycle"
    assert got["position"] == "right"
    assert "width" not in got
    assert got["nodes"] == ["Build", "Measure", "Learn"]
    assert got["colors"] == ["cyan", "green", "pink"]
    assert got["icons"] == ["rocket", "chart", "nope"]
    assert slide.has_diagram is True


def test_explicitly_sized_visual_keeps_its_size(doc, storage, deck, make_slide):
    visual = {"type": "cycle", "position": "center", "width": 500, "height": 400, "nodes": ["A", "B"]}
    apply_ir(doc, deck(make_slide("loop", "section", headline="Loop", visual=visual)), storage)
    got = _pull(doc, storage).slides[0].content.visual.to_dict()
    assert (got["position"], got["width"], got["height"]) == ("center", 500, 400)


def test_image_visual_is_reconstructed(doc, storage, deck, make_slide):
    visual = {"type": "image", "position": "below", "content": PNG_1X1}
    apply_ir(doc, deck(make_slide("pic", "section", headline="Pic", visual=visual)), storage)
    got = _pull(doc, storage).slides[0].content.visual
    assert got.type == "image"
    assert got.content == PNG_1X1


def test_containers_list_addable_flow_frames(doc, storage, deck, make_slide):
    apply_ir(
        doc,
        deck(
            make_slide("b", "bullets", headline="Agenda", bullets=["One", "Two"]),
            make_slide("s", "summary", headline="Recap", items=["x", "y", "z"]),
        ),
        storage,
    )
    pulled = _pull(doc, storage)
    kinds = {c["name"]: (c["element_type"], c["child_count"]) for c in pulled.containers}
    assert kinds["bullets-container"] == ("bullet", 2)
    assert kinds["items-container"] == ("item", 3)
    assert kinds["summary-container"][0] == "other"

    data = json.loads(pulled.to_json())
    assert data["deck"] == {"title": "Pulled Deck"}
    assert len(data["containers"]) == len(pulled.containers)
    assert data["slides"][0]["node_id"] == doc.slide_nodes()[0].id


def test_speaker_notes_are_exported(doc, storage, deck):
    ir = json.dumps({"slides": [{"id": "n", "archetype": "section", "content": {"headline": "X"}, "speaker_notes": "hello"}]})
    apply_ir(doc, ir, storage)
    assert _pull(doc, storage).slides[0].speaker_notes == "hello"


def test_design_surface_slides_are_exported(design_doc, storage, deck, make_slide):
    apply_ir(design_doc, deck(make_slide("a", "section", headline="A"), make_slide("b", "quote", quote="Q", attribution="W")), storage)
    pulled = _pull(design_doc, storage)
    assert [(s.id, s.archetype) for s in pulled.slides] == [("a", "section"), ("b", "quote")]


def test_reading_order_groups_rows():
    items = [{"x": 500, "y": 110}, {"x": 100, "y": 100}, {"x": 100, "y": 400}]
    assert reading_order(items) == [{"x": 100, "y": 100}, {"x": 500, "y": 110}, {"x": 100, "y": 400}]
    assert reading_order(items, tolerance=5) == [{"x": 100, "y": 100}, {"x": 500, "y": 110}, {"x": 100, "y": 400}]
    assert reading_order([{"x": 500, "y": 100}, {"x": 100, "y": 120}], tolerance=5)[0] == {"x": 500, "y": 100}


def test_classify_element_roles():
    assert classify_element("AGENDA", 14, True, 60, 80, 1, "") == "section_label"
    assert classify_element("Big", 56, True, 200, 180, 1, "") == "headline"
    assert classify_element('"Ship it"', 48, True, 200, 600, 2, "quote-container") == "quote"
    assert classify_element("— Eng", 28, False, 200, 700, 2, "quote-container") == "attribution"
    assert classify_element("• One", 36, False, 200, 300, 2, "bullets-container") == "bullet"
    assert classify_element("A long sentence inside a frame", 28, False, 200, 800, 2, "box") == "accent_text"
    assert classify_element("Node", 32, True, 10, 10, 3, "visual") == "diagram_text"
    assert classify_element("tiny", 14, False, 200, 900, 1, "") == "caption"
    assert classify_element("sub", 32, False, 200, 500, 1, "") == "subline"
    assert classify_element("plain", 24, False, 200, 900, 1, "") == "body_text"


def test_classify_element_thresholds_come_from_config():
    assert classify_element("Big", 40, True, 200, 180, 1, "") == "body_text"
    assert classify_element("Big", 40, True, 200, 180, 1, "", ClassifierConfig(element_headline_min_font=40)) == "headline"
    assert classify_element("small", 22, False, 200, 900, 1, "") == "body_text"
    assert classify_element("small", 22, False, 200, 900, 1, "", ClassifierConfig(caption_max_font=24)) == "caption"


def test_three_bullets_round_trip_with_a_hand_added_note(doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("b", "bullets", headline="Agenda", bullets=["Hire", "Build", "Ship"])), storage)
    root = doc.slide_nodes()[0]
    note = doc.create_text()
    note.font_name = get_font_name(doc, False)
    note.characters = "ask finance"
    note.x, note.y = 1500, 950
    root.append_child(note)

    slide = _pull(doc, storage).slides[0]
    assert slide.archetype == "bullets"
    assert slide.content.bullets == ["Hire", "Build", "Ship"]
    assert slide.extras == ["ask finance"]


def test_rows_within_tolerance_sort_by_x():
    same_y = [{"x": 900, "y": 300}, {"x": 200, "y": 300}]
    assert [i["x"] for i in reading_order(same_y)] == [200, 900]
    close = [{"x": 900, "y": 310}, {"x": 200, "y": 340}]
    assert [i["x"] for i in reading_order(close)] == [200, 900]
