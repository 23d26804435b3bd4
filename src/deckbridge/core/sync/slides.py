"""Slide-level operations addressed by node id: delete and reorder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from deckbridge.core.canvas.nodes import ChildrenNode, Document, FrameNode, SlideNode
from deckbridge.core.canvas.storage import ClientStorage
from deckbridge.core.sync.mapping import MAPPING_KEY, load_mapping, save_mapping
from deckbridge.core.sync.notify import Notices, Notifier, quoted_list


def _is_slide_root(node: Any) -> bool:
    # design surface: only top-level frames are slides
    if isinstance(node, FrameNode):
        return node.parent is node.document.page
    return isinstance(node, SlideNode)


@dataclass
class DeleteResult:
    deleted: int = 0
    failed: list[str] = field(default_factory=list)
    deleted_names: list[str] = field(default_factory=list)
    notifications: list[tuple[str, bool]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"deleted": self.deleted, "failed": list(self.failed), "deletedNames": list(self.deleted_names)}


def delete_slides(
    document: Document,
    node_ids: list[str],
    storage: ClientStorage,
    mapping_key: str = MAPPING_KEY,
    notify: Optional[Notifier] = None,
) -> DeleteResult:
    """Remove slide nodes and every mapping entry that points at them."""
    result = DeleteResult()
    notices = Notices(notify)
    mapping = load_mapping(storage, document, mapping_key)

    for node_id in node_ids:
        node = document.get_node_by_id(node_id)
        if node is None:
            notices(f"Slide not found: {node_id}", error=True)
            result.failed.append(node_id)
            continue
        if not _is_slide_root(node):
            notices(f"Node {node_id} is not a slide (type: {node.type})", error=True)
            result.failed.append(node_id)
            continue

        name = node.name or node_id
        mapping.drop_node(node_id)
        node.remove()
        result.deleted += 1
        result.deleted_names.append(name)
        notices(f'Deleted slide: "{name}" ({node_id})')

    save_mapping(storage, document, mapping, mapping_key)

    if result.deleted:
        names = result.deleted_names
        listed = (
            ", ".join(f'"{n}"' for n in names) if len(names) <= 3 else f'"{names[0]}" + {len(names) - 1} more'
        )
        notices(f"✓ Deleted: {listed}")
    if result.failed:
        notices(f"{len(result.failed)} slides not found", error=True)
    result.notifications = list(notices.messages)
    return result


@dataclass
class ReorderResult:
    success: bool = False
    count: int = 0
    before_order: list[str] = field(default_factory=list)
    after_order: list[str] = field(default_factory=list)
    error: str | None = None
    notifications: list[tuple[str, bool]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.success:
            out.update(count=self.count, beforeOrder=list(self.before_order), afterOrder=list(self.after_order))
        else:
            out["error"] = self.error
        return out


def reorder_slides(document: Document, node_ids: list[str], notify: Optional[Notifier] = None) -> ReorderResult:
    """Move the given slides, in the given order, to the front of their container.

    Ids that do not resolve to a slide are skipped; slides not listed keep their
    relative order after the listed ones.
    """
    result = ReorderResult()
    notices = Notices(notify)

    slides: list[ChildrenNode] = []
    for node_id in node_ids:
        node = document.get_node_by_id(node_id)
        if _is_slide_root(node):
            slides.append(node)  # type: ignore[arg-type]
            result.after_order.append(node.name or node_id)  # type: ignore[union-attr]
        else:
            notices(f"Slide not found or wrong type: {node_id}", error=True)

    if not slides:
        result.error = "No valid slides found"
        notices(result.error, error=True)
        result.notifications = list(notices.messages)
        return result

    parent = slides[0].parent
    if parent is None:
        result.error = "Cannot access slide container"
        notices(result.error, error=True)
        result.notifications = list(notices.messages)
        return result

    result.before_order = [c.name or c.id for c in parent.children if _is_slide_root(c)]

    # inserting at 0 in reverse leaves the listed slides first, in order
    for slide in reversed(slides):
        parent.insert_child(0, slide)

    moved = [
        after
        for before, after in zip(result.before_order, result.after_order)
        if before != after
    ]
    if moved:
        notices(f"✓ Reordered: {quoted_list(moved, len(moved))} moved")
    else:
        notices(f"✓ Order unchanged ({len(slides)} slides)")

    result.success = True
    result.count = len(slides)
    result.notifications = list(notices.messages)
    return result
