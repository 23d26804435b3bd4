from __future__ import annotations

import orjson
import pytest

from deckbridge.core.canvas.nodes import Document
from deckbridge.core.canvas.storage import ClientStorage
from deckbridge.core.sync.mapping import IdentityMapping, load_mapping, save_mapping, storage_key


def test_storage_file_round_trip(tmp_path):
    path = tmp_path / "state" / "client.json"
    store = ClientStorage(path)
    store.set("k", {"a": "256"})
    store.set("other", [1, 2])

    reopened = ClientStorage(path)
    assert reopened.get("k") == {"a": "256"}
    assert reopened.keys() == ["k", "other"]
    assert orjson.loads(path.read_bytes())["other"] == [1, 2]

    reopened.delete("other")
    assert ClientStorage(path).keys() == ["k"]


def test_in_memory_storage_writes_nothing(tmp_path):
    store = ClientStorage()
    store.set("k", 1)
    assert store.get("k") == 1
    assert store.get("missing", "default") == "default"
    assert list(tmp_path.iterdir()) == []


def test_storage_must_hold_an_object(tmp_path):
    path = tmp_path / "client.json"
    path.write_bytes(b"[1, 2]")
    with pytest.raises(TypeError):
        ClientStorage(path)


def test_empty_storage_file_is_empty(tmp_path):
    path = tmp_path / "client.json"
    path.write_bytes(b"")
    assert ClientStorage(path).keys() == []


def test_one_slide_id_per_node():
    mapping = IdentityMapping()
    mapping.set("a", "256")
    mapping.set("b", "256")
    assert mapping.entries == {"b": "256"}
    mapping.set("b", "300")
    assert mapping.get("b") == "300"
    assert len(mapping) == 1


def test_stale_entries_resolve_to_nothing(doc):
    slide = doc.create_slide()
    mapping = IdentityMapping({"live": slide.id, "gone": "9999"})
    assert mapping.resolve(doc, "live") is slide
    assert mapping.resolve(doc, "gone") is None
    assert mapping.resolve(doc, "never") is None

    slide.remove()
    assert mapping.resolve(doc, "live") is None


def test_drop_node_and_reverse():
    mapping = IdentityMapping({"a": "256", "b": "300"})
    assert mapping.reverse() == {"256": "a", "300": "b"}
    assert mapping.drop_node("256") == ["a"]
    assert mapping.entries == {"b": "300"}


def test_mappings_are_keyed_by_document(storage):
    one = Document(document_id="one")
    two = Document(document_id="two")
    save_mapping(storage, one, IdentityMapping({"s": "256"}))
    assert storage_key(one) == "deckbridge_id_mapping:one"
    assert load_mapping(storage, one).entries == {"s": "256"}
    assert load_mapping(storage, two).entries == {}
    save_mapping(storage, one, IdentityMapping({"s": "257"}), key="custom")
    assert storage.get("custom:one") == {"s": "257"}


def test_malformed_stored_mapping_is_ignored(storage, doc):
    storage.set(storage_key(doc), ["not", "a", "mapping"])
    assert len(load_mapping(storage, doc)) == 0
