"""Identity mapping: IR slide id -> visual node id.

Stored in client storage under "<key>:<document id>" so mappings of different
documents never mix. Loaded once at run start, saved once at run end.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from deckbridge.core.canvas.nodes import Document, SceneNode
from deckbridge.core.canvas.storage import ClientStorage

MAPPING_KEY = "deckbridge_id_mapping"


def storage_key(document: Document, key: str = MAPPING_KEY) -> str:
    return f"{key}:{document.document_id}"


@dataclass
class IdentityMapping:
    entries: dict[str, str] = field(default_factory=dict)

    def get(self, slide_id: str) -> str | None:
        return self.entries.get(slide_id)

    def set(self, slide_id: str, node_id: str) -> None:
        # at most one slide id per node
        for sid in [s for s, n in self.entries.items() if n == node_id and s != slide_id]:
            del self.entries[sid]
        self.entries[slide_id] = node_id

    def resolve(self, document: Document, slide_id: str) -> SceneNode | None:
        """The live node mapped to `slide_id`; a stale entry resolves to None."""
        node_id = self.entries.get(slide_id)
        if node_id is None:
            return None
        return document.get_node_by_id(node_id)

    def drop_node(self, node_id: str) -> list[str]:
        """Remove every entry pointing at `node_id`; returns the slide ids dropped."""
        dropped = [s for s, n in self.entries.items() if n == node_id]
        for s in dropped:
            del self.entries[s]
        return dropped

    def clear(self) -> None:
        self.entries.clear()

    def reverse(self) -> dict[str, str]:
        return {n: s for s, n in self.entries.items()}

    def __len__(self) -> int:
        return len(self.entries)


def load_mapping(storage: ClientStorage, document: Document, key: str = MAPPING_KEY) -> IdentityMapping:
    raw = storage.get(storage_key(document, key)) or {}
    if not isinstance(raw, dict):
        raw = {}
    return IdentityMapping({str(k): str(v) for k, v in raw.items()})


def save_mapping(storage: ClientStorage, document: Document, mapping: IdentityMapping, key: str = MAPPING_KEY) -> None:
    storage.set(storage_key(document, key), dict(mapping.entries))
