"""Reverse path: visual tree -> IR.

For every slide root (SLIDE nodes, or "Slide" frames on the design surface):

- a rich read of every text leaf in the subtree (`elements`), with an inferred
  role, position relative to the slide, font size and nesting,
- the archetype and content: by names when the slide was rendered by us,
  otherwise by content-based inference over the leaves in reading order,
- extras (text not attributed to any field), speaker notes and, for names,
  the visual region rebuilt from the `visual` overlay.

Slide ids come from the identity mapping read in reverse; unmapped slides get
`slide-<n>`.
"""

from __future__ import annotations

import base64
import functools
import re
from dataclasses import dataclass
from typing import Any, Optional

from deckbridge.core.canvas.nodes import (
    ChildrenNode,
    Document,
    EllipseNode,
    FrameNode,
    SceneNode,
    TextNode,
    first_solid_color,
)
from deckbridge.core.canvas.storage import ClientStorage
from deckbridge.core.classify.detect import detect_archetype
from deckbridge.core.classify.infer import TextLeaf, infer_archetype
from deckbridge.core.config import ClassifierConfig, SyncConfig
from deckbridge.core.ir.types import (
    UNKNOWN_ARCHETYPE,
    BigIdeaContent,
    BulletsContent,
    Card,
    ChartContent,
    ChartSpec,
    Column,
    ComparisonContent,
    DeckIR,
    Feature,
    GenericContent,
    PositionCardsContent,
    QuoteContent,
    SectionContent,
    Slide,
    SlideContent,
    SummaryContent,
    TimelineContent,
    TimelineStage,
    TitleContent,
    TwoColumnContent,
    VideoContent,
    VisualRegion,
)
from deckbridge.core.render import names
from deckbridge.core.render.archetypes import visual_box
from deckbridge.core.render.palette import BADGE_COLORS, nearest_diagram_color
from deckbridge.core.sync.mapping import load_mapping
from deckbridge.core.sync.notify import Notices, Notifier

DECK_TITLE = "Pulled Deck"
DEFAULT_FONT_SIZE = 24.0

_BULLET_LEAD = re.compile(r"^(?:•|[-•]\s)")


# rich read


@dataclass
class LeafInfo:
    node: TextNode
    x: float
    y: float
    depth: int
    parent_name: str

    @property
    def font_size(self) -> float:
        return self.node.font_size

    @property
    def in_diagram(self) -> bool:
        parent = self.parent_name.lower()
        return self.depth >= 3 or "diagram" in parent or self.parent_name == names.VISUAL


def collect_leaves(root: ChildrenNode) -> list[LeafInfo]:
    """Every text leaf under `root`, positioned relative to it, in tree order."""
    out: list[LeafInfo] = []
    for node in root.find_all(lambda n: isinstance(n, TextNode)):
        x, y = node.position_in(root)
        parent = node.parent
        out.append(LeafInfo(node, x, y, node.depth_in(root) + 1, parent.name if parent is not None else ""))  # type: ignore[arg-type]
    return out


def classify_element(
    text: str,
    font_size: float,
    bold: bool,
    x: float,
    y: float,
    depth: int,
    parent_name: str,
    config: ClassifierConfig | None = None,
) -> str:
    """Role of one text leaf on its slide, from position, size and nesting."""
    c = config or ClassifierConfig()
    parent = parent_name.lower()
    if y < c.label_max_y and font_size <= c.label_max_font and (text.upper() == text or "label" in parent):
        return "section_label"
    if font_size >= c.element_headline_min_font and bold and y < c.element_headline_max_y:
        return "headline"
    if text.startswith(names.QUOTE_MARKS):
        return "quote"
    if text.startswith(names.ATTRIBUTION_MARKS):
        return "attribution"
    if _BULLET_LEAD.match(text):
        return "bullet"
    if depth >= 2 and c.accent_min_font <= font_size <= c.accent_max_font and len(text) > c.accent_min_chars:
        return "accent_text"
    if depth >= 3 or "diagram" in parent or "flow" in parent:
        return "diagram_text"
    if font_size <= c.caption_max_font:
        return "caption"
    if c.subline_min_y < y < c.subline_max_y and not bold and c.subline_min_font <= font_size <= c.subline_max_font:
        return "subline"
    return "body_text"


def element_info(leaf: LeafInfo, config: ClassifierConfig | None = None) -> dict[str, Any]:
    node = leaf.node
    return {
        "id": node.id,
        "name": node.name,
        "type": classify_element(
            node.characters, node.font_size, node.is_bold, leaf.x, leaf.y, leaf.depth, leaf.parent_name, config
        ),
        "text": node.characters,
        "x": leaf.x,
        "y": leaf.y,
        "fontSize": node.font_size or DEFAULT_FONT_SIZE,
        "isBold": node.is_bold,
        "width": node.width,
        "height": node.height,
        "parentName": leaf.parent_name,
        "depth": leaf.depth,
        "isInDiagram": leaf.in_diagram,
    }


def reading_order(items: list[Any], tolerance: float = 50.0, key: Any = None) -> list[Any]:
    """Sort top to bottom; items within `tolerance` vertically are one row, ordered by x."""
    pos = key or (lambda it: (it["x"], it["y"]) if isinstance(it, dict) else (it.x, it.y))

    def cmp(a: Any, b: Any) -> float:
        (ax, ay), (bx, by) = pos(a), pos(b)
        if abs(ay - by) > tolerance:
            return ay - by
        return ax - bx

    return sorted(items, key=functools.cmp_to_key(cmp))


def has_diagram(elements: list[dict[str, Any]]) -> bool:
    return any(e["isInDiagram"] for e in elements) or sum(1 for e in elements if e["depth"] >= 2) > 5


# addable containers

_CONTAINER_KINDS = {
    names.BULLETS_CONTAINER: ("bullet", "Add a bullet: action 'add' with this id as target"),
    names.ITEMS_CONTAINER: ("item", "Add a summary item: action 'add' with this id as target"),
    names.COLUMNS_CONTAINER: ("column", "Holds the two columns; text is added to a column frame"),
}


def addable_containers(root: ChildrenNode) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for node in root.find_all(lambda n: isinstance(n, FrameNode) and n.is_flow):
        kind, hint = _CONTAINER_KINDS.get(node.name, ("other", "Add text: action 'add' with this id as target"))
        out.append(
            {
                "id": node.id,
                "name": node.name,
                "slide_id": root.id,
                "slide_name": root.name,
                "child_count": len(node.children),  # type: ignore[attr-defined]
                "element_type": kind,
                "hint": hint,
            }
        )
    return out


# name-based read


class NamedTexts:
    """Text leaves of a slide by name (first in tree order), tracking which were used."""

    def __init__(self, leaves: list[TextNode]) -> None:
        self._by_name: dict[str, TextNode] = {}
        for t in leaves:
            self._by_name.setdefault(t.name, t)
        self.claimed: set[str] = set()

    def get(self, name: str) -> str | None:
        node = self._by_name.get(name)
        if node is None:
            return None
        self.claimed.add(node.id)
        return node.characters

    def node(self, name: str) -> TextNode | None:
        return self._by_name.get(name)

    def indexed(self, pattern: Any) -> list[tuple[int, str]]:
        out = []
        for idx, name in names.indexed(((n, n) for n in self._by_name), pattern):
            out.append((idx, self.get(name) or ""))
        return out

    def matching(self, pattern: Any) -> list[tuple[Any, str]]:
        """(match, text) for every name matching `pattern`."""
        out = []
        for name in list(self._by_name):
            m = pattern.match(name)
            if m:
                out.append((m, self.get(name) or ""))
        return out


def _read_title(t: NamedTexts) -> SlideContent:
    return TitleContent(headline=t.get(names.HEADLINE) or "", subline=t.get(names.SUBLINE))


def _read_big_idea(t: NamedTexts) -> SlideContent:
    return BigIdeaContent(headline=t.get(names.HEADLINE) or "", subline=t.get(names.SUBLINE))


def _read_section(t: NamedTexts) -> SlideContent:
    return SectionContent(headline=t.get(names.HEADLINE) or "")


def _read_bullets(t: NamedTexts) -> SlideContent:
    bullets = [names.strip_bullet(text) for _, text in t.indexed(names.BULLET_RE)]
    return BulletsContent(headline=t.get(names.HEADLINE) or "", bullets=bullets)


def _read_two_column(t: NamedTexts) -> SlideContent:
    return TwoColumnContent(
        headline=t.get(names.HEADLINE) or "",
        left=Column(title=t.get(names.LEFT_TITLE) or "", body=t.get(names.LEFT_BODY) or ""),
        right=Column(title=t.get(names.RIGHT_TITLE) or "", body=t.get(names.RIGHT_BODY) or ""),
    )


def _read_quote(t: NamedTexts) -> SlideContent:
    return QuoteContent(
        quote=names.strip_quote(t.get(names.QUOTE) or ""),
        attribution=names.strip_attribution(t.get(names.ATTRIBUTION) or ""),
    )


def _read_summary(t: NamedTexts) -> SlideContent:
    return SummaryContent(headline=t.get(names.HEADLINE) or "", items=[text for _, text in t.indexed(names.ITEM_RE)])


def _read_chart(t: NamedTexts) -> SlideContent:
    return ChartContent(
        headline=t.get(names.HEADLINE) or "",
        chart=ChartSpec(type=names.parse_chart_type(t.get(names.CHART_PLACEHOLDER) or ""), placeholder=True),
        takeaway=t.get(names.TAKEAWAY),
    )


def _read_video(t: NamedTexts) -> SlideContent:
    return VideoContent(
        headline=t.get(names.HEADLINE) or "",
        video_url=t.get(names.VIDEO_URL) or "",
        caption=t.get(names.CAPTION),
    )


def _read_timeline(t: NamedTexts) -> SlideContent:
    descs = dict(t.indexed(names.STAGE_DESC_RE))
    stages = [TimelineStage(label=label, description=descs.get(i)) for i, label in t.indexed(names.STAGE_LABEL_RE)]
    return TimelineContent(headline=t.get(names.HEADLINE) or "", stages=stages)


def _read_comparison(t: NamedTexts) -> SlideContent:
    columns = [text for _, text in t.indexed(names.COLUMN_RE)]
    cells: dict[int, dict[int, str]] = {}
    for m, text in t.matching(names.CELL_RE):
        cells.setdefault(int(m.group(1)), {})[int(m.group(2))] = text
    rows = [[row[c] for c in sorted(row)] for _, row in sorted(cells.items())]
    return ComparisonContent(headline=t.get(names.HEADLINE) or "", columns=columns, rows=rows)


def _badge_color(node: TextNode | None) -> str | None:
    color = first_solid_color(node.fills) if node is not None else None
    if color is None:
        return None
    return min(BADGE_COLORS, key=lambda k: sum((a - b) ** 2 for a, b in zip(color, BADGE_COLORS[k])))


def _read_position_cards(t: NamedTexts) -> SlideContent:
    cards: dict[int, dict[str, str]] = {}
    for m, text in t.matching(names.CARD_RE):
        cards.setdefault(int(m.group(1)), {})[m.group(2)] = text
    features: dict[int, dict[str, str]] = {}
    for m, text in t.matching(names.FEATURE_RE):
        features.setdefault(int(m.group(1)), {})[m.group(2)] = text

    card_list = []
    for i, parts in sorted(cards.items()):
        badge = parts.get("badge")
        card_list.append(
            Card(
                label=parts.get("label", ""),
                title=parts.get("title", ""),
                body=parts.get("body", ""),
                badge=badge,
                badge_color=_badge_color(t.node(names.card_part(i, "badge"))) if badge else None,
            )
        )
    return PositionCardsContent(
        eyebrow=t.get(names.EYEBROW),
        headline=t.get(names.HEADLINE),
        subline=t.get(names.SUBLINE),
        cards=card_list or None,
        features=[Feature(label=p.get("label", ""), description=p.get("desc", "")) for _, p in sorted(features.items())]
        or None,
        features_header=t.get(names.FEATURES_HEADER),
    )


NAMED_READERS = {
    "title": _read_title,
    "big-idea": _read_big_idea,
    "section": _read_section,
    "bullets": _read_bullets,
    "two-column": _read_two_column,
    "quote": _read_quote,
    "summary": _read_summary,
    "chart": _read_chart,
    "video": _read_video,
    "timeline": _read_timeline,
    "comparison": _read_comparison,
    "position-cards": _read_position_cards,
}


# visual region


def _visual_placement(node: SceneNode, root: ChildrenNode) -> tuple[str, float | None, float | None]:
    """(position, width, height); the size is None where it equals the position's default."""
    parent_w, parent_h = root.width, root.height
    for position in ("right", "center", "below"):
        default = visual_box(VisualRegion(position=position), parent_w, parent_h)
        sized = visual_box(VisualRegion(position=position, width=node.width, height=node.height), parent_w, parent_h)
        if abs(sized[0] - node.x) <= 1 and abs(sized[1] - node.y) <= 1:
            if abs(default[2] - node.width) <= 1 and abs(default[3] - node.height) <= 1:
                return position, None, None
            return position, round(node.width, 2), round(node.height, 2)
    return "right", round(node.width, 2), round(node.height, 2)


def read_visual(root: ChildrenNode) -> tuple[VisualRegion | None, set[str]]:
    """Rebuild the visual region from the `visual` child; returns it and the text ids it used."""
    node = root.find_child(lambda n: n.name == names.VISUAL)
    if node is None:
        return None, set()

    position, width, height = _visual_placement(node, root)
    if not isinstance(node, FrameNode):
        image = next((f for f in node.fills if f.get("type") == "IMAGE"), None)
        if image is None:
            return None, set()
        content = base64.b64encode(image["blob"]).decode("ascii")
        return VisualRegion(type="image", position=position, width=width, height=height, content=content), set()

    claimed: set[str] = set()
    labels = []
    for i, text_node in names.indexed(
        ((c.name, c) for c in node.children if isinstance(c, TextNode)), names.DIAGRAM_LABEL_RE
    ):
        labels.append((i, text_node))
        claimed.add(text_node.id)

    circles = dict(
        names.indexed(((c.name, c) for c in node.children if isinstance(c, EllipseNode)), names.DIAGRAM_NODE_RE)
    )
    colors: list[str] = []
    icons: list[str] = []
    for i, _ in labels:
        circle = circles.get(i)
        stroke = first_solid_color(circle.strokes) if circle is not None else None
        colors.append(nearest_diagram_color(stroke) if stroke is not None else "white")
        icons.append(_icon_at(node, circle) if circle is not None else "")

    visual = VisualRegion(
        type="cycle",
        position=position,
        width=width,
        height=height,
        nodes=[t.characters for _, t in labels],
        colors=colors if any(c != "white" for c in colors) else None,
        icons=icons if any(icons) else None,
    )
    return visual, claimed


def _icon_at(container: FrameNode, circle: SceneNode) -> str:
    cx, cy = circle.x + circle.width / 2, circle.y + circle.height / 2
    r = circle.width / 2
    for child in container.children:
        m = names.ICON_RE.match(child.name)
        if not m:
            continue
        ix, iy = child.x + child.width / 2, child.y + child.height / 2
        if (ix - cx) ** 2 + (iy - cy) ** 2 <= r * r:
            return m.group(1)
    return ""


# slides


def _content_leaves(root: ChildrenNode, leaves: list[LeafInfo]) -> list[LeafInfo]:
    """Leaves outside the visual overlay."""
    visual = root.find_child(lambda n: n.name == names.VISUAL)
    if visual is None:
        return leaves
    return [leaf for leaf in leaves if visual not in leaf.node.ancestors()]


def export_slide(root: ChildrenNode, slide_id: str, config: ClassifierConfig | None = None) -> Slide:
    cfg = config or ClassifierConfig()
    leaves = reading_order(collect_leaves(root), cfg.row_tolerance)
    elements = [element_info(leaf, cfg) for leaf in leaves]
    content_leaves = _content_leaves(root, leaves)

    archetype = detect_archetype(root, cfg.title_detect_font)
    extras: list[str]
    if archetype != UNKNOWN_ARCHETYPE:
        texts = NamedTexts([leaf.node for leaf in content_leaves])
        content = NAMED_READERS[archetype](texts)
        visual, claimed = read_visual(root)
        content.visual = visual
        extras = [
            leaf.node.characters
            for leaf in content_leaves
            if leaf.node.id not in texts.claimed and leaf.node.id not in claimed and leaf.node.characters.strip()
        ]
    else:
        inference = infer_archetype(
            [
                TextLeaf(
                    text=leaf.node.characters,
                    x=leaf.x,
                    y=leaf.y,
                    font_size=leaf.node.font_size or DEFAULT_FONT_SIZE,
                    bold=leaf.node.is_bold,
                    width=leaf.node.width,
                    node_id=leaf.node.id,
                )
                for leaf in content_leaves
            ],
            cfg,
        )
        archetype, content, extras = inference.archetype, inference.content, inference.extras

    return Slide(
        id=slide_id,
        archetype=archetype,
        status="draft",
        content=content if content is not None else GenericContent(),
        extras=extras or None,
        speaker_notes=getattr(root, "speaker_notes", "") or None,
        node_id=root.id,
        elements=elements,
        has_diagram=has_diagram(elements),
    )


def export_deck(
    document: Document,
    storage: ClientStorage,
    config: SyncConfig | None = None,
    notify: Optional[Notifier] = None,
) -> DeckIR:
    """Reconstruct the IR of every slide in the document."""
    cfg = config or SyncConfig()
    notices = Notices(notify)
    reverse = load_mapping(storage, document, cfg.mapping_key).reverse()

    slides: list[Slide] = []
    containers: list[dict[str, Any]] = []
    for root in document.slide_nodes():
        try:
            slide_id = reverse.get(root.id) or f"slide-{len(slides) + 1}"
            slides.append(export_slide(root, slide_id, cfg.classifier))
            containers.extend(addable_containers(root))
        except Exception as e:
            notices(f'Error processing slide "{root.name}": {e}', error=True)

    rich = sum(1 for s in slides if s.elements)
    diagrams = sum(1 for s in slides if s.has_diagram)
    notices(f"Pulled {len(slides)} slides ({rich} with elements, {diagrams} with diagrams)")
    return DeckIR(title=document.title or DECK_TITLE, slides=slides, containers=containers)
