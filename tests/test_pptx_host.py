from __future__ import annotations

import pytest
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.util import Emu, Inches, Pt

from deckbridge.core.canvas.nodes import Document, FrameNode, SlideNode, TextNode
from deckbridge.core.canvas.pptx_host import load_document, save_document
from deckbridge.core.classify.detect import detect_archetype
from deckbridge.core.classify.export import export_deck
from deckbridge.core.sync.apply import apply_ir
from deckbridge.core.sync.update import find_named_text


def _texts(root):
    return sorted((n.name, n.characters) for n in root.find_all(lambda n: isinstance(n, TextNode)))


def test_saved_slides_load_back_unchanged(tmp_path, doc, storage, deck, make_slide):
    apply_ir(
        doc,
        deck(
            make_slide("a", "bullets", headline="Agenda", bullets=["One", "Two"]),
            make_slide("q", "quote", quote="Ship it", attribution="Eng Lead"),
        ),
        storage,
    )
    path = tmp_path / "deck.pptx"
    save_document(doc, path)

    loaded = load_document(path)
    assert loaded.editor_type == "slides"
    assert loaded.document_id == doc.document_id

    before, after = doc.slide_nodes(), loaded.slide_nodes()
    assert [(n.id, n.name) for n in after] == [(n.id, n.name) for n in before]
    for old, new in zip(before, after):
        assert isinstance(new, SlideNode)
        assert detect_archetype(new) == detect_archetype(old)
        assert _texts(new) == _texts(old)

    bullet = find_named_text(after[0], "bullet-1")
    original = find_named_text(before[0], "bullet-1")
    assert (bullet.id, bullet.font_name, bullet.font_size) == (original.id, original.font_name, original.font_size)


def test_mapping_still_resolves_after_reload(tmp_path, doc, storage, deck, make_slide):
    ir = deck(make_slide("a", "section", headline="Part one"), make_slide("b", "section", headline="Part two"))
    apply_ir(doc, ir, storage)
    path = tmp_path / "deck.pptx"
    save_document(doc, path)

    loaded = load_document(path)
    assert [s.id for s in export_deck(loaded, storage).slides] == ["a", "b"]

    result = apply_ir(loaded, deck(make_slide("a", "section", headline="Part 1"), make_slide("b", "section", headline="Part two")), storage)
    assert (result.created, result.updated) == (0, 2)
    assert find_named_text(loaded.slide_nodes()[0], "headline").characters == "Part 1"


def test_speaker_notes_survive(tmp_path, doc, storage):
    apply_ir(doc, '{"slides": [{"id": "n", "archetype": "section", "content": {"headline": "X"}, "speaker_notes": "hello"}]}', storage)
    path = tmp_path / "deck.pptx"
    save_document(doc, path)
    assert load_document(path).slide_nodes()[0].speaker_notes == "hello"


def test_design_surface_round_trip(tmp_path, design_doc, storage, deck, make_slide):
    apply_ir(design_doc, deck(make_slide("a", "section", headline="A"), make_slide("b", "title", headline="B", subline="b")), storage)
    path = tmp_path / "design.pptx"
    save_document(design_doc, path)

    loaded = load_document(path)
    assert loaded.editor_type == "design"
    roots = loaded.slide_nodes()
    assert all(isinstance(r, FrameNode) and r.parent is loaded.page for r in roots)
    assert [(r.id, r.name, r.x) for r in roots] == [(r.id, r.name, r.x) for r in design_doc.slide_nodes()]
    assert [s.archetype for s in export_deck(loaded, storage).slides] == ["section", "title"]


def test_editor_type_can_be_forced(tmp_path, doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("a", "section", headline="A")), storage)
    path = tmp_path / "deck.pptx"
    save_document(doc, path)
    loaded = load_document(path, editor_type="design", available_fonts=["Arial"])
    assert loaded.editor_type == "design"
    assert loaded.available_fonts == {"Arial"}
    assert all(r.parent is loaded.page for r in loaded.slide_nodes())


def test_hand_made_deck_is_classified(tmp_path, storage):
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    box = slide.shapes.add_textbox(Inches(1), Inches(3), Inches(8), Inches(1))
    box.text_frame.text = "Welcome"
    box.text_frame.paragraphs[0].runs[0].font.size = Pt(36)
    path = tmp_path / "plain.pptx"
    prs.save(str(path))

    loaded = load_document(path)
    (root,) = loaded.slide_nodes()
    (leaf,) = root.children
    assert isinstance(leaf, TextNode)
    assert (leaf.characters, leaf.font_size) == ("Welcome", 72)

    pulled = export_deck(loaded, storage)
    (got,) = pulled.slides
    assert (got.id, got.archetype) == ("slide-1", "section")
    assert got.content.to_dict() == {"headline": "Welcome"}


def test_empty_document_saves(tmp_path):
    path = tmp_path / "empty.pptx"
    assert save_document(Document(document_id="e"), path) == []
    loaded = load_document(path)
    assert loaded.slide_nodes() == []
    assert loaded.document_id == "e"


def _shape_with_text(shapes, text):
    for shape in shapes:
        if shape.shape_type == MSO_SHAPE_TYPE.GROUP:
            found = _shape_with_text(shape.shapes, text)
            if found is not None:
                return found
        elif shape.has_text_frame and shape.text_frame.text == text:
            return shape
    return None


def test_edits_made_in_powerpoint_survive_reload(tmp_path, doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("s", "section", headline="Original")), storage)
    before = find_named_text(doc.slide_nodes()[0], "headline")
    path = tmp_path / "deck.pptx"
    save_document(doc, path)

    prs = Presentation(str(path))
    box = _shape_with_text(prs.slides[0].shapes, "Original")
    box.text_frame.paragraphs[0].runs[0].text = "Edited by human"
    box.left = box.left + Emu(635000)
    prs.save(str(path))

    loaded = load_document(path)
    headline = find_named_text(loaded.slide_nodes()[0], "headline")
    assert headline.id == before.id
    assert headline.characters == "Edited by human"
    assert headline.x == pytest.approx(before.x + 100)
    assert (headline.y, headline.font_size, headline.font_name) == (before.y, before.font_size, before.font_name)

    (got,) = export_deck(loaded, storage).slides
    assert got.id == "s"
    assert got.content.to_dict()["headline"] == "Edited by human"


def test_restyled_run_is_read_back(tmp_path, doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("s", "section", headline="Original")), storage)
    path = tmp_path / "deck.pptx"
    save_document(doc, path)

    prs = Presentation(str(path))
    run = _shape_with_text(prs.slides[0].shapes, "Original").text_frame.paragraphs[0].runs[0]
    run.font.size = Pt(20)
    run.font.name = "Georgia"
    prs.save(str(path))

    headline = find_named_text(load_document(path).slide_nodes()[0], "headline")
    assert headline.font_size == 40
    assert headline.font_name.family == "Georgia"
