"""Text-only edits of rendered slides: update-in-place and targeted patches.

Only characters change (plus the font, when the node's own font cannot be
loaded and a fallback has to be substituted). Position, size, colour and every
other visual property are left as they are.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from deckbridge.core.canvas.fonts import FONT_FALLBACKS, get_font_name, load_font_with_fallback
from deckbridge.core.canvas.nodes import ChildrenNode, Document, FontName, FrameNode, TextNode, solid
from deckbridge.core.errors import ContentError, FontUnavailableError
from deckbridge.core.ir.types import SlideContent
from deckbridge.core.render import names
from deckbridge.core.render.palette import COLORS
from deckbridge.core.sync.notify import Notices, Notifier

PATCH_ACTIONS = ("edit", "add", "delete")


def find_named_text(parent: ChildrenNode, name: str) -> TextNode | None:
    """First text leaf called `name`, searching through nested frames."""
    for child in parent.children:
        if isinstance(child, TextNode) and child.name == name:
            return child
        if isinstance(child, FrameNode):
            found = find_named_text(child, name)
            if found is not None:
                return found
    return None


def ensure_font(node: TextNode, fallbacks: list[str] | None = None) -> str | None:
    """Make `node` editable: load its font, or substitute one from the chain.

    Returns a description of the substitution ("Old Family Style → New"), or
    None when the node's own font loaded. Raises FontUnavailableError when
    nothing in the chain loads.
    """
    doc = node.document
    font = node.font_name
    if isinstance(font, FontName):
        try:
            doc.load_font(font)
            return None
        except FontUnavailableError:
            pass
        for family in fallbacks or FONT_FALLBACKS:
            candidate = FontName(family, "Bold" if font.is_bold else "Regular")
            try:
                doc.load_font(candidate)
            except FontUnavailableError:
                continue
            node.font_name = candidate
            return f"{font} → {family}"
        raise FontUnavailableError(f"no font available for node {node.id} (was {font})")

    # mixed runs: one fallback font for the whole leaf
    fallback = get_font_name(doc, False, fallbacks)
    node.font_name = fallback
    return f"mixed → {fallback.family}"


def update_text_in_place(node: TextNode, text: str, fallbacks: list[str] | None = None) -> str | None:
    substitution = ensure_font(node, fallbacks)
    node.characters = text
    return substitution


@dataclass
class UpdateReport:
    updated: list[str] = field(default_factory=list)
    # fields with a value but no leaf of that name (e.g. deleted by hand)
    missing: list[str] = field(default_factory=list)
    font_substitutions: list[str] = field(default_factory=list)


def update_content_in_place(
    root: ChildrenNode, content: SlideContent, fallbacks: list[str] | None = None
) -> UpdateReport:
    """Write every present text field of `content` into the leaf of the same name."""
    report = UpdateReport()
    for name, text in names.field_texts(content):
        if not text:
            continue
        node = find_named_text(root, name)
        if node is None:
            report.missing.append(name)
            continue
        if node.characters == text:
            continue
        sub = update_text_in_place(node, text, fallbacks)
        report.updated.append(name)
        if sub:
            report.font_substitutions.append(sub)
    return report


# patches


@dataclass
class PatchChange:
    target: str
    text: str | None = None
    action: str = "edit"
    # add only: insert position, None or -1 appends
    position: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "PatchChange":
        if not isinstance(data, dict):
            raise ContentError(f"patch change must be an object, got {type(data).__name__}")
        target = data.get("target")
        if not isinstance(target, str) or not target:
            raise ContentError("patch change needs a target node id")
        action = data.get("action") or "edit"
        if action not in PATCH_ACTIONS:
            raise ContentError(f"patch action must be one of {', '.join(PATCH_ACTIONS)}, got {action!r}")
        text = data.get("text")
        if text is not None and not isinstance(text, str):
            raise ContentError("patch text must be a string")
        position = data.get("position")
        if position is not None and (isinstance(position, bool) or not isinstance(position, int)):
            raise ContentError("patch position must be an integer")
        return cls(target=target, text=text, action=action, position=position)


@dataclass
class PatchResult:
    updated: int = 0
    added: int = 0
    deleted: int = 0
    failed: list[str] = field(default_factory=list)
    font_substitutions: list[str] = field(default_factory=list)
    new_elements: list[dict[str, str]] = field(default_factory=list)
    deleted_elements: list[dict[str, str]] = field(default_factory=list)
    notifications: list[tuple[str, bool]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated": self.updated,
            "added": self.added,
            "deleted": self.deleted,
            "failed": list(self.failed),
            "fontSubstitutions": list(self.font_substitutions),
            "newElements": list(self.new_elements),
            "deletedElements": list(self.deleted_elements),
        }


_SEQUENCES = ((names.BULLET_RE, "bullet"), (names.ITEM_RE, "item"))


def _sequence_prefix(container: FrameNode) -> str | None:
    for child in container.children:
        for pattern, prefix in _SEQUENCES:
            if isinstance(child, TextNode) and pattern.match(child.name):
                return prefix
    if container.name == names.BULLETS_CONTAINER:
        return "bullet"
    if container.name == names.ITEMS_CONTAINER:
        return "item"
    return None


def renumber(container: ChildrenNode, prefix: str) -> None:
    """Rename the container's `prefix-<i>` leaves to run 0..n-1 in child order."""
    i = 0
    for child in container.children:
        if isinstance(child, TextNode) and child.name.startswith(f"{prefix}-"):
            child.name = f"{prefix}-{i}"
            i += 1


def _add_text(container: FrameNode, text: str, position: int | None, fallbacks: list[str] | None) -> TextNode:
    doc: Document = container.document
    template = next((c for c in reversed(container.children) if isinstance(c, TextNode)), None)
    prefix = _sequence_prefix(container)
    if prefix == "bullet" and not text.startswith(names.BULLET_MARKERS):
        text = names.decorate_bullet(text)

    node = doc.create_text()
    if template is not None:
        font = template.font_name
        if isinstance(font, FontName):
            try:
                doc.load_font(font)
            except FontUnavailableError:
                font = get_font_name(doc, font.is_bold, fallbacks)
        else:
            font = get_font_name(doc, False, fallbacks)
        node.font_name = font
        node.font_size = template.font_size
        node.fills = [dict(p) for p in template.fills]
        node.text_align_horizontal = template.text_align_horizontal
        if template.text_auto_resize != "WIDTH_AND_HEIGHT":
            node.resize(template.width, template.height)
            node.text_auto_resize = template.text_auto_resize
    else:
        node.font_name = get_font_name(doc, False, fallbacks)
        node.font_size = 36
        node.fills = [solid(COLORS["body"])]
    node.characters = text
    node.name = f"{prefix}-new" if prefix else "text"

    if position is None or position < 0:
        container.append_child(node)
    else:
        container.insert_child(position, node)
    if prefix:
        renumber(container, prefix)
    return node


def apply_patches(
    document: Document,
    changes: list[PatchChange],
    fallbacks: list[str] | None = None,
    notify: Optional[Notifier] = None,
) -> PatchResult:
    """Apply targeted edits by node id; a failing change never stops the others."""
    result = PatchResult()
    notices = Notices(notify)
    load_font_with_fallback(document, fallbacks)

    for change in changes:
        try:
            node = document.get_node_by_id(change.target)
            if node is None:
                notices(f"Node not found: {change.target}", error=True)
                result.failed.append(change.target)
                continue

            if change.action == "add":
                if not isinstance(node, FrameNode) or not node.is_flow:
                    notices(f"Node {change.target} is not a flow container (type: {node.type})", error=True)
                    result.failed.append(change.target)
                    continue
                if not change.text:
                    notices(f"No text for add into {change.target}", error=True)
                    result.failed.append(change.target)
                    continue
                new = _add_text(node, change.text, change.position, fallbacks)
                result.added += 1
                result.new_elements.append({"id": new.id, "name": new.name, "container": node.id})
                notices(f"Added {new.name} to {node.name}")
                continue

            if not isinstance(node, TextNode):
                notices(f"Node {change.target} is not a text node (type: {node.type})", error=True)
                result.failed.append(change.target)
                continue

            if change.action == "delete":
                parent = node.parent
                name = node.name
                node.remove()
                if parent is not None:
                    for pattern, prefix in _SEQUENCES:
                        if pattern.match(name):
                            renumber(parent, prefix)
                result.deleted += 1
                result.deleted_elements.append(
                    {"id": change.target, "name": name, "container": parent.id if parent is not None else ""}
                )
                notices(f"Deleted {name} ({change.target})")
                continue

            if change.text is None:
                notices(f"No text for edit of {change.target}", error=True)
                result.failed.append(change.target)
                continue
            sub = update_text_in_place(node, change.text, fallbacks)
            if sub:
                result.font_substitutions.append(sub)
            result.updated += 1
            notices(f'Patched {change.target}: "{change.text[:30]}"')
        except Exception as e:
            notices(f"Failed to patch {change.target}: {e}", error=True)
            result.failed.append(change.target)

    subs = sorted(set(result.font_substitutions))
    counts = f"Patched {result.updated}, added {result.added}, deleted {result.deleted} elements"
    if subs:
        counts += f" ({len(subs)} font sub{'s' if len(subs) > 1 else ''})"
    if result.failed:
        counts += f" ({len(result.failed)} failed)"
    notices(counts, error=bool(result.failed))
    result.notifications = list(notices.messages)
    return result
