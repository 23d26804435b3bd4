from __future__ import annotations

import pytest

from deckbridge.core.canvas.nodes import TextNode
from deckbridge.core.errors import ContentError
from deckbridge.core.sync.apply import apply_ir
from deckbridge.core.sync.update import PatchChange, apply_patches, find_named_text


@pytest.fixture
def bullets_slide(doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("b", "bullets", headline="Agenda", bullets=["One", "Two"])), storage)
    return doc.slide_nodes()[0]


def _container(root, name):
    return root.find_one(lambda n: n.name == name)


def _bullets(root):
    box = _container(root, "bullets-container")
    return [(c.name, c.characters) for c in box.children if isinstance(c, TextNode)]


def test_edit_text(doc, bullets_slide):
    headline = find_named_text(bullets_slide, "headline")
    result = apply_patches(doc, [PatchChange(headline.id, "Plan")])
    assert result.updated == 1
    assert headline.characters == "Plan"
    assert result.notifications[-1] == ("Patched 1, added 0, deleted 0 elements", False)


def test_add_bullet_appends_and_decorates(doc, bullets_slide):
    box = _container(bullets_slide, "bullets-container")
    result = apply_patches(doc, [PatchChange(box.id, "Three", action="add")])
    assert result.added == 1
    assert _bullets(bullets_slide)[-1] == ("bullet-2", "• Three")
    new = result.new_elements[0]
    assert (new["name"], new["container"]) == ("bullet-2", box.id)


def test_add_at_position_renumbers(doc, bullets_slide):
    box = _container(bullets_slide, "bullets-container")
    apply_patches(doc, [PatchChange(box.id, "• Zero", action="add", position=0)])
    assert _bullets(bullets_slide) == [("bullet-0", "• Zero"), ("bullet-1", "• One"), ("bullet-2", "• Two")]


def test_added_bullet_copies_the_sibling_style(doc, bullets_slide):
    box = _container(bullets_slide, "bullets-container")
    apply_patches(doc, [PatchChange(box.id, "Three", action="add")])
    first, *_, added = [c for c in box.children if isinstance(c, TextNode)]
    assert added.font_size == first.font_size
    assert added.font_name == first.font_name
    assert added.fills == first.fills
    assert added.y > first.y


def test_delete_renumbers_the_sequence(doc, bullets_slide):
    first = find_named_text(bullets_slide, "bullet-0")
    result = apply_patches(doc, [PatchChange(first.id, action="delete")])
    assert result.deleted == 1
    assert result.deleted_elements[0]["name"] == "bullet-0"
    assert _bullets(bullets_slide) == [("bullet-0", "• Two")]
    assert doc.get_node_by_id(first.id) is None


def test_failures_do_not_stop_other_changes(doc, bullets_slide):
    headline = find_named_text(bullets_slide, "headline")
    box = _container(bullets_slide, "bullets-container")
    changes = [
        PatchChange("9999", "x"),
        PatchChange(headline.id, "x", action="add"),
        PatchChange(box.id, "x"),
        PatchChange(box.id, None, action="add"),
        PatchChange(headline.id, None),
        PatchChange(headline.id, "Still applied"),
    ]
    result = apply_patches(doc, changes)
    assert result.failed == ["9999", headline.id, box.id, box.id, headline.id]
    assert result.updated == 1
    assert headline.characters == "Still applied"
    message, error = result.notifications[-1]
    assert error is True
    assert message.endswith("(5 failed)")


def test_summary_items_can_be_added(doc, storage, deck, make_slide):
    apply_ir(doc, deck(make_slide("s", "summary", headline="Recap", items=["a"])), storage)
    root = doc.slide_nodes()[0]
    items = _container(root, "items-container")
    apply_patches(doc, [PatchChange(items.id, "b", action="add")])
    assert [(c.name, c.characters) for c in items.children] == [("item-0", "a"), ("item-1", "b")]


def test_change_from_dict():
    change = PatchChange.from_dict({"target": "256", "text": "x", "action": "add", "position": 2})
    assert change == PatchChange("256", "x", "add", 2)
    assert PatchChange.from_dict({"target": "256", "text": "x"}).action == "edit"

    for bad in (
        [],
        {"text": "x"},
        {"target": "256", "action": "move"},
        {"target": "256", "text": 3},
        {"target": "256", "position": True},
    ):
        with pytest.raises(ContentError):
            PatchChange.from_dict(bad)


def test_result_dict(doc, bullets_slide):
    box = _container(bullets_slide, "bullets-container")
    data = apply_patches(doc, [PatchChange(box.id, "Three", action="add")]).to_dict()
    assert data["added"] == 1
    assert data["newElements"][0]["name"] == "bullet-2"
    assert data["failed"] == []
