"""Apply engine: IR -> visual tree, one slide at a time.

Per slide: resolve the mapped node; skip it when locked; create it when absent;
otherwise compare the archetype detected from its children's names with the
slide's archetype and either update text in place or rebuild the subtree. A
failing slide is reported and the run moves on. The identity mapping is saved
once, after the last slide.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from deckbridge.core.canvas.fonts import load_font_with_fallback
from deckbridge.core.canvas.nodes import SLIDE_HEIGHT, SLIDE_WIDTH, ChildrenNode, Document, FrameNode, SlideNode
from deckbridge.core.canvas.storage import ClientStorage
from deckbridge.core.classify.detect import detect_archetype
from deckbridge.core.config import SyncConfig
from deckbridge.core.ir.parse import parse_ir
from deckbridge.core.ir.types import IRDocument, Slide, slide_from_dict
from deckbridge.core.render.archetypes import create_slide, render_slide_content
from deckbridge.core.render.primitives import set_slide_background
from deckbridge.core.sync.mapping import IdentityMapping, load_mapping, save_mapping
from deckbridge.core.sync.notify import Notices, Notifier, quoted_list
from deckbridge.core.sync.update import update_content_in_place

APPLY_MODES = ("append", "replace")

_DESIGN_PREFIX = re.compile(r"^Slide \d+: ")


@dataclass
class SlideOutcome:
    slide_id: str
    outcome: str  # created | updated | rebuilt | skipped | failed
    node_id: str | None = None
    name: str | None = None
    error: str | None = None
    missing_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"slide_id": self.slide_id, "outcome": self.outcome}
        for k in ("node_id", "name", "error"):
            v = getattr(self, k)
            if v is not None:
                out[k] = v
        if self.missing_fields:
            out["missing_fields"] = list(self.missing_fields)
        return out


@dataclass
class ApplyResult:
    mode: str = "append"
    created: int = 0
    # in-place updates and rebuilds
    updated: int = 0
    rebuilt: int = 0
    skipped: int = 0
    replaced: int = 0
    start_index: int | None = None
    created_names: list[str] = field(default_factory=list)
    updated_names: list[str] = field(default_factory=list)
    font_substitutions: list[str] = field(default_factory=list)
    outcomes: list[SlideOutcome] = field(default_factory=list)
    notifications: list[tuple[str, bool]] = field(default_factory=list)

    @property
    def failed(self) -> list[SlideOutcome]:
        return [o for o in self.outcomes if o.outcome == "failed"]

    @property
    def count(self) -> int:
        return self.created + self.updated

    def summary(self) -> str:
        parts: list[str] = []
        if self.replaced:
            parts.append(f"Replaced {self.replaced} old slides")
        if self.created:
            parts.append(f"Created: {quoted_list(self.created_names, self.created)}")
        if self.updated:
            parts.append(f"Updated: {quoted_list(self.updated_names, self.updated)}")
        if self.skipped:
            parts.append(f"{self.skipped} skipped (locked)")
        if self.failed:
            parts.append(f"{len(self.failed)} failed")
        text = " • ".join(parts) if parts else "Nothing to apply"
        if self.mode == "append" and self.start_index is not None:
            text += f" at position {self.start_index}"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "count": self.count,
            "created": self.created,
            "updated": self.updated,
            "rebuilt": self.rebuilt,
            "skipped": self.skipped,
            "replaced": self.replaced,
            "failed": [o.to_dict() for o in self.failed],
            "createdNames": list(self.created_names),
            "updatedNames": list(self.updated_names),
            "fontSubstitutions": list(self.font_substitutions),
            "startIndex": self.start_index,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def _slide_roots_to_replace(document: Document) -> list[ChildrenNode]:
    if document.editor_type == "slides":
        return [n for n in document.page.children if isinstance(n, SlideNode)]
    # design surface: every top-level frame of slide size
    return [
        n
        for n in document.page.children
        if isinstance(n, FrameNode) and n.width == SLIDE_WIDTH and n.height == SLIDE_HEIGHT
    ]


def _rename(document: Document, root: ChildrenNode, slide: Slide) -> str:
    name = slide.display_name
    if document.editor_type == "slides":
        root.name = name
        return name
    # keep the "Slide <n>: " marker export depends on
    m = _DESIGN_PREFIX.match(root.name)
    if m:
        prefix = m.group(0)
    elif root in document.page.children:
        prefix = f"Slide {document.page.children.index(root) + 1}: "
    else:
        prefix = f"Slide {len(document.slide_nodes()) + 1}: "
    root.name = f"{prefix}{name}"
    return name


def _rebuild(document: Document, root: ChildrenNode, slide: Slide) -> None:
    for child in list(root.children):
        child.remove()
    if isinstance(root, SlideNode):
        set_slide_background(root)
    render_slide_content(root, slide.content)


def _move_created(document: Document, node: ChildrenNode, target: int) -> None:
    page = document.page
    target = min(target, len(page.children) - 1)
    if page.children.index(node) != target:
        page.insert_child(target, node)


def _raw_slide_id(raw: Any, i: int) -> str:
    if isinstance(raw, dict) and isinstance(raw.get("id"), str) and raw["id"]:
        return raw["id"]
    return f"#{i + 1}"


def apply_ir(
    document: Document,
    ir: str | IRDocument,
    storage: ClientStorage,
    config: SyncConfig | None = None,
    mode: str = "append",
    start_index: int | None = None,
    notify: Optional[Notifier] = None,
) -> ApplyResult:
    """Synchronize `document` with the IR.

    Raises IRParseError for unparseable IR and FontUnavailableError when no font
    of the fallback chain loads; in both cases nothing is applied. Every other
    error is recorded against its slide.
    """
    cfg = config or SyncConfig()
    if mode not in APPLY_MODES:
        raise ValueError(f"unsupported apply mode: {mode}")
    doc_ir = parse_ir(ir) if isinstance(ir, str) else ir
    notices = Notices(notify)
    result = ApplyResult(mode=mode, start_index=start_index)

    # fail before touching the tree if no font can be loaded at all
    load_font_with_fallback(document, cfg.fonts.fallbacks)

    if mode == "replace":
        for root in _slide_roots_to_replace(document):
            root.remove()
            result.replaced += 1
        mapping = IdentityMapping()
        save_mapping(storage, document, mapping, cfg.mapping_key)
    else:
        mapping = load_mapping(storage, document, cfg.mapping_key)

    for i, raw in enumerate(doc_ir.slides):
        slide_id = _raw_slide_id(raw, i)
        try:
            slide = slide_from_dict(raw)
            existing = mapping.resolve(document, slide.id)
            if existing is not None and not isinstance(existing, ChildrenNode):
                # mapped to something that is no longer a slide root
                existing = None

            if existing is not None and slide.is_locked:
                result.skipped += 1
                result.outcomes.append(SlideOutcome(slide.id, "skipped", existing.id, existing.name))
                notices(f"Skipped {slide.id} (locked)")
                continue

            if existing is not None:
                current = detect_archetype(existing, cfg.classifier.title_detect_font)
                name = _rename(document, existing, slide)
                if slide.speaker_notes is not None:
                    existing.speaker_notes = slide.speaker_notes  # type: ignore[attr-defined]

                if current == slide.archetype:
                    report = update_content_in_place(existing, slide.content, cfg.fonts.fallbacks)
                    result.font_substitutions.extend(report.font_substitutions)
                    result.outcomes.append(
                        SlideOutcome(slide.id, "updated", existing.id, name, missing_fields=report.missing)
                    )
                    notices(f'Updated: "{name}"')
                else:
                    _rebuild(document, existing, slide)
                    result.rebuilt += 1
                    result.outcomes.append(SlideOutcome(slide.id, "rebuilt", existing.id, name))
                    notices(f'Re-rendered: "{name}" ({current} → {slide.archetype})')
                result.updated += 1
                result.updated_names.append(name)
                continue

            position = len(document.slide_nodes())
            node = create_slide(document, slide, position)
            if start_index is not None and document.editor_type == "slides":
                _move_created(document, node, start_index + result.created)
            mapping.set(slide.id, node.id)
            result.created += 1
            result.created_names.append(slide.display_name)
            result.outcomes.append(SlideOutcome(slide.id, "created", node.id, slide.display_name))
            notices(f'Created: "{slide.display_name}"')
        except Exception as e:
            result.outcomes.append(SlideOutcome(slide_id, "failed", error=str(e)))
            notices(f"Error on slide {i + 1} ({slide_id}): {e}", error=True)

    save_mapping(storage, document, mapping, cfg.mapping_key)
    notices(f"✓ {result.summary()}", error=bool(result.failed))
    result.notifications = list(notices.messages)
    return result
