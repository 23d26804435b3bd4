from __future__ import annotations

from deckbridge.core.sync.apply import apply_ir
from deckbridge.core.sync.mapping import load_mapping
from deckbridge.core.sync.slides import delete_slides, reorder_slides
from deckbridge.core.sync.update import find_named_text


def _three(doc, storage, deck, make_slide):
    apply_ir(
        doc,
        deck(*(make_slide(s.lower(), "section", headline=s) for s in ("A", "B", "C"))),
        storage,
    )
    return doc.slide_nodes()


def test_delete_drops_the_mapping_entry(doc, storage, deck, make_slide):
    a, b, c = _three(doc, storage, deck, make_slide)
    result = delete_slides(doc, [b.id], storage)

    assert result.deleted == 1
    assert result.deleted_names == ["B"]
    assert doc.slide_nodes() == [a, c]
    assert load_mapping(storage, doc).entries == {"a": a.id, "c": c.id}
    assert result.notifications[-1] == ('✓ Deleted: "B"', False)


def test_deleted_slide_is_recreated_on_next_apply(doc, storage, deck, make_slide):
    a, b, c = _three(doc, storage, deck, make_slide)
    delete_slides(doc, [b.id], storage)
    result = apply_ir(doc, deck(*(make_slide(s.lower(), "section", headline=s) for s in ("A", "B", "C"))), storage)
    assert result.created == 1
    assert result.updated == 2


def test_delete_rejects_unknown_ids_and_non_slides(doc, storage, deck, make_slide):
    a, _, _ = _three(doc, storage, deck, make_slide)
    headline = find_named_text(a, "headline")
    result = delete_slides(doc, ["9999", headline.id], storage)

    assert result.deleted == 0
    assert result.failed == ["9999", headline.id]
    assert len(doc.slide_nodes()) == 3
    assert result.notifications[-1] == ("2 slides not found", True)


def test_nested_frames_are_not_slides_on_the_design_surface(design_doc, storage, deck, make_slide):
    (root,) = _three(design_doc, storage, deck, make_slide)[:1]
    inner = root.find_one(lambda n: n.name == "section-container")
    result = delete_slides(design_doc, [inner.id], storage)
    assert result.failed == [inner.id]
    assert inner.parent is root


def test_reorder_moves_listed_slides_to_the_front(doc, storage, deck, make_slide):
    a, b, c = _three(doc, storage, deck, make_slide)
    result = reorder_slides(doc, [c.id, a.id])

    assert result.success is True
    assert result.count == 2
    assert doc.slide_nodes() == [c, a, b]
    assert result.before_order == ["A", "B", "C"]
    assert result.after_order == ["C", "A"]
    assert result.notifications[-1] == ('✓ Reordered: "C", "A" moved', False)


def test_reorder_skips_invalid_ids(doc, storage, deck, make_slide):
    a, b, c = _three(doc, storage, deck, make_slide)
    result = reorder_slides(doc, ["9999", b.id])
    assert result.success is True
    assert doc.slide_nodes() == [b, a, c]
    assert ("Slide not found or wrong type: 9999", True) in result.notifications


def test_reorder_with_nothing_valid(doc):
    result = reorder_slides(doc, ["9999"])
    assert result.success is False
    assert result.error == "No valid slides found"
    assert result.to_dict() == {"success": False, "error": "No valid slides found"}
