"""Archetype renderer: (archetype, content) -> named subtree.

Each archetype has a fixed grammar on the 1920 x 1080 canvas. Flow frames are
used where text length varies (title, section, big-idea, two-column, quote,
summary, video, bullet list); absolute positions where the layout is a grid
(chart, timeline, comparison, position-cards). Only fields present in the
content produce nodes. Leaf names come from `names`.
"""

from __future__ import annotations

import base64
import binascii
from typing import Callable

from pptx.parts.image import Image as PptxImage

from deckbridge.core.canvas.nodes import ChildrenNode, Document, FrameNode, SceneNode, image_fill, linear_gradient, solid
from deckbridge.core.errors import ContentError
from deckbridge.core.ir.types import (
    BigIdeaContent,
    BulletsContent,
    ChartContent,
    ComparisonContent,
    GenericContent,
    PositionCardsContent,
    QuoteContent,
    SectionContent,
    Slide,
    SlideContent,
    SummaryContent,
    TimelineContent,
    TitleContent,
    TwoColumnContent,
    VideoContent,
    VisualRegion,
)
from deckbridge.core.render import names
from deckbridge.core.render.diagrams import render_cycle_diagram
from deckbridge.core.render.palette import (
    BADGE_COLORS,
    COLORS,
    PANEL_FILL,
    PLAY_ICON_FILL,
    ROW_FILL,
    SLIDE_HEIGHT,
    SLIDE_WIDTH,
    TITLE_GRADIENT_END,
    VIDEO_FILL,
)
from deckbridge.core.render.primitives import (
    add_ellipse,
    add_flow_text,
    add_rect,
    add_text,
    create_flow_frame,
    create_slide_root,
    set_slide_background,
)

LEFT_MARGIN = 200
CONTENT_WIDTH = 1520
DESIGN_SLIDE_SPACING = 2000
DEFAULT_FEATURES_HEADER = "KEY FEATURES"


def _title(parent: ChildrenNode, c: TitleContent) -> None:
    bg = parent.document.create_rectangle()
    bg.name = names.TITLE_GRADIENT_BG
    bg.resize(SLIDE_WIDTH, SLIDE_HEIGHT)
    bg.fills = [linear_gradient([(0.0, COLORS["bg"]), (1.0, TITLE_GRADIENT_END)], angle=135)]
    parent.append_child(bg)

    box = create_flow_frame(parent, names.TITLE_CONTAINER, LEFT_MARGIN, 380, "VERTICAL", 24)
    if c.headline:
        add_flow_text(box, c.headline, 96, True, COLORS["headline"], CONTENT_WIDTH, names.HEADLINE)
    if c.subline:
        add_flow_text(box, c.subline, 36, False, COLORS["muted"], CONTENT_WIDTH, names.SUBLINE)


def _section(parent: ChildrenNode, c: SectionContent) -> None:
    box = create_flow_frame(parent, names.SECTION_CONTAINER, LEFT_MARGIN, 450, "VERTICAL", 24)
    if c.headline:
        add_flow_text(box, c.headline, 72, True, COLORS["headline"], CONTENT_WIDTH, names.HEADLINE)


def _big_idea(parent: ChildrenNode, c: BigIdeaContent) -> None:
    box = create_flow_frame(parent, names.BIG_IDEA_CONTAINER, LEFT_MARGIN, 380, "VERTICAL", 40)
    if c.headline:
        add_flow_text(box, c.headline, 72, True, COLORS["white"], CONTENT_WIDTH, names.HEADLINE)
    if c.subline:
        add_flow_text(box, c.subline, 32, False, COLORS["muted"], CONTENT_WIDTH, names.SUBLINE)


def _bullets(parent: ChildrenNode, c: BulletsContent) -> None:
    if c.headline:
        add_text(parent, c.headline, LEFT_MARGIN, 180, 56, True, COLORS["headline"], name=names.HEADLINE)
    if c.bullets:
        box = create_flow_frame(parent, names.BULLETS_CONTAINER, LEFT_MARGIN, 300, "VERTICAL", 32)
        for i, text in enumerate(c.bullets):
            add_flow_text(box, names.decorate_bullet(text), 36, False, COLORS["body"], CONTENT_WIDTH, names.bullet(i))


def _column(columns: FrameNode, name: str, title: str, body: str, title_color, title_name: str, body_name: str) -> None:
    col = create_flow_frame(columns, name, 0, 0, "VERTICAL", 16)
    col.counter_axis_sizing_mode = "FIXED"
    col.resize(740, col.height)
    add_flow_text(col, title, 36, True, title_color, 740, title_name)
    add_flow_text(col, body, 28, False, COLORS["body"], 740, body_name)


def _two_column(parent: ChildrenNode, c: TwoColumnContent) -> None:
    box = create_flow_frame(parent, names.TWO_COLUMN_CONTAINER, LEFT_MARGIN, 150, "VERTICAL", 48)
    if c.headline:
        add_flow_text(box, c.headline, 56, True, COLORS["headline"], CONTENT_WIDTH, names.HEADLINE)

    columns = create_flow_frame(box, names.COLUMNS_CONTAINER, 0, 0, "HORIZONTAL", 40)
    if c.left is not None:
        _column(columns, names.LEFT_COLUMN, c.left.title, c.left.body, COLORS["accent"], names.LEFT_TITLE, names.LEFT_BODY)
    if c.right is not None:
        _column(
            columns, names.RIGHT_COLUMN, c.right.title, c.right.body, COLORS["headline"], names.RIGHT_TITLE, names.RIGHT_BODY
        )


def _quote(parent: ChildrenNode, c: QuoteContent) -> None:
    box = create_flow_frame(parent, names.QUOTE_CONTAINER, LEFT_MARGIN, 350, "VERTICAL", 40)
    if c.quote:
        add_flow_text(box, names.decorate_quote(c.quote), 48, True, COLORS["white"], CONTENT_WIDTH, names.QUOTE)
    if c.attribution:
        add_flow_text(
            box, names.decorate_attribution(c.attribution), 28, False, COLORS["muted"], CONTENT_WIDTH, names.ATTRIBUTION
        )


def _summary(parent: ChildrenNode, c: SummaryContent) -> None:
    box = create_flow_frame(parent, names.SUMMARY_CONTAINER, LEFT_MARGIN, 180, "VERTICAL", 48)
    if c.headline:
        add_flow_text(box, c.headline, 72, True, COLORS["headline"], CONTENT_WIDTH, names.HEADLINE)
    if c.items:
        items = create_flow_frame(box, names.ITEMS_CONTAINER, 0, 0, "VERTICAL", 24)
        for i, text in enumerate(c.items):
            add_flow_text(items, text, 36, False, COLORS["body"], CONTENT_WIDTH, names.item(i))


def _chart(parent: ChildrenNode, c: ChartContent) -> None:
    if c.headline:
        add_text(parent, c.headline, LEFT_MARGIN, 150, 56, True, COLORS["headline"], name=names.HEADLINE)
    add_rect(parent, LEFT_MARGIN, 280, CONTENT_WIDTH, 500, PANEL_FILL, COLORS["dimmed"], dashed=True)
    chart_type = c.chart.type if c.chart is not None else None
    add_text(parent, names.chart_placeholder(chart_type), 860, 500, 28, False, COLORS["muted"], name=names.CHART_PLACEHOLDER)
    if c.takeaway:
        add_text(parent, c.takeaway, LEFT_MARGIN, 820, 28, False, COLORS["muted"], name=names.TAKEAWAY)


def _video(parent: ChildrenNode, c: VideoContent) -> None:
    doc = parent.document
    box = create_flow_frame(parent, names.VIDEO_CONTAINER, LEFT_MARGIN, 150, "VERTICAL", 32)
    if c.headline:
        add_flow_text(box, c.headline, 56, True, COLORS["headline"], CONTENT_WIDTH, names.HEADLINE)

    # 16:9 placeholder
    placeholder = doc.create_frame()
    placeholder.name = names.VIDEO_PLACEHOLDER
    placeholder.resize(1200, 675)
    placeholder.fills = [solid(VIDEO_FILL)]
    placeholder.strokes = [solid(COLORS["dimmed"])]
    placeholder.stroke_weight = 2
    placeholder.corner_radius = 8
    box.append_child(placeholder)

    add_ellipse(placeholder, 550, 287, 100, 100, COLORS["white"], names.PLAY_CIRCLE, opacity=0.9)
    triangle = doc.create_polygon()
    triangle.name = names.PLAY_TRIANGLE
    triangle.point_count = 3
    triangle.resize(36, 36)
    triangle.rotation = -90
    triangle.x = 600
    triangle.y = 320
    triangle.fills = [solid(PLAY_ICON_FILL)]
    placeholder.append_child(triangle)

    if c.video_url:
        add_flow_text(box, c.video_url, 20, False, COLORS["blue"], CONTENT_WIDTH, names.VIDEO_URL)
    if c.caption:
        add_flow_text(box, c.caption, 24, False, COLORS["muted"], CONTENT_WIDTH, names.CAPTION)


def _timeline(parent: ChildrenNode, c: TimelineContent) -> None:
    if c.headline:
        add_text(parent, c.headline, LEFT_MARGIN, 150, 56, True, COLORS["headline"], name=names.HEADLINE)
    stages = c.stages or []
    if not stages:
        return
    stage_w = CONTENT_WIDTH / len(stages)
    for i, stage in enumerate(stages):
        x = LEFT_MARGIN + i * stage_w
        add_ellipse(parent, x + stage_w / 2 - 20, 340, 40, 40, COLORS["blue"], names.stage_marker(i))
        if i < len(stages) - 1:
            add_rect(parent, x + stage_w / 2 + 20, 356, stage_w - 40, 8, COLORS["dimmed"])
        add_text(parent, stage.label, x + 10, 420, 28, True, COLORS["white"], stage_w - 20, names.stage_label(i))
        if stage.description:
            add_text(parent, stage.description, x + 10, 470, 22, False, COLORS["muted"], stage_w - 20, names.stage_desc(i))


def _comparison(parent: ChildrenNode, c: ComparisonContent) -> None:
    if c.headline:
        add_text(parent, c.headline, LEFT_MARGIN, 150, 56, True, COLORS["headline"], name=names.HEADLINE)
    cols = c.columns or []
    rows = c.rows or []
    col_w = CONTENT_WIDTH / max(len(cols), 1)
    start_y = 300
    row_h = 80

    add_rect(parent, LEFT_MARGIN, start_y - 10, CONTENT_WIDTH, 60, PANEL_FILL)
    for i, header in enumerate(cols):
        add_text(parent, header, 210 + i * col_w, start_y, 28, True, COLORS["headline"], col_w - 20, names.column(i))

    for r, row in enumerate(rows):
        y = start_y + 70 + r * row_h
        if r % 2 == 0:
            add_rect(parent, LEFT_MARGIN, y - 10, CONTENT_WIDTH, row_h, ROW_FILL)
        for ci, value in enumerate(row):
            add_text(parent, value, 210 + ci * col_w, y, 24, False, COLORS["body"], col_w - 20, names.cell(r, ci))


def _position_cards(parent: ChildrenNode, c: PositionCardsContent) -> None:
    if c.eyebrow:
        add_text(parent, c.eyebrow, 60, 80, 14, True, COLORS["cyan"], name=names.EYEBROW)
    if c.headline:
        add_text(parent, c.headline, 60, 120, 52, True, COLORS["white"], 1800, names.HEADLINE)
    if c.subline:
        add_text(parent, c.subline, 60, 200, 52, True, COLORS["white"], 1800, names.SUBLINE)

    cards = (c.cards or [])[:3]
    card_w, card_gap, card_h = 460, 40, 280
    top = 310
    for i, card in enumerate(cards):
        x = 60 + i * (card_w + card_gap)
        highlight = i == 1 and len(cards) == 3
        add_rect(
            parent,
            x,
            top,
            card_w,
            card_h,
            COLORS["cardBgHighlight"] if highlight else COLORS["cardBg"],
            COLORS["cyan"] if highlight else None,
            name=names.card_part(i, "bg"),
            corner_radius=16,
        )
        add_text(parent, card.label, x + 24, top + 24, 12, True, COLORS["muted"], card_w - 48, names.card_part(i, "label"))
        add_text(parent, card.title, x + 24, top + 56, 28, True, COLORS["white"], card_w - 48, names.card_part(i, "title"))
        add_text(parent, card.body, x + 24, top + 100, 18, False, COLORS["muted"], card_w - 48, names.card_part(i, "body"))
        if card.badge:
            color = BADGE_COLORS.get(card.badge_color or "cyan", COLORS["cyan"])
            badge_y = top + card_h - 50
            add_rect(parent, x + 24, badge_y, 100, 32, color, name=names.card_part(i, "badge-bg"), corner_radius=16, opacity=0.15)
            add_text(parent, card.badge, x + 36, badge_y + 7, 14, True, color, name=names.card_part(i, "badge"))

    features = c.features or []
    if not features:
        return
    features_y = 640
    add_rect(parent, 60, features_y, 1800, 160, COLORS["featureBg"], name=names.FEATURES_BG, corner_radius=16)
    header = c.features_header or DEFAULT_FEATURES_HEADER
    add_text(parent, header, 85, features_y + 24, 12, True, COLORS["muted"], 1760, names.FEATURES_HEADER)

    # four per row
    col_w, row_h = 420, 40
    for i, feature in enumerate(features):
        fx = 85 + (i % 4) * col_w
        fy = features_y + 60 + (i // 4) * row_h
        add_ellipse(parent, fx, fy + 4, 12, 12, COLORS["orange"], names.feature_part(i, "dot"))
        add_text(parent, feature.label, fx + 20, fy, 16, True, COLORS["white"], name=names.feature_part(i, "label"))
        # inline after the label (approximate label width)
        label_w = len(feature.label) * 9
        add_text(
            parent,
            feature.description,
            fx + 20 + label_w + 8,
            fy,
            16,
            False,
            COLORS["muted"],
            max(col_w - label_w - 40, 40),
            names.feature_part(i, "desc"),
        )


def _default(parent: ChildrenNode, c: SlideContent) -> None:
    headline = c.title_text
    if headline:
        add_text(parent, headline, LEFT_MARGIN, 200, 64, True, COLORS["headline"], name=names.HEADLINE)


RENDERERS: dict[type, Callable[[ChildrenNode, SlideContent], None]] = {
    TitleContent: _title,
    SectionContent: _section,
    BigIdeaContent: _big_idea,
    BulletsContent: _bullets,
    TwoColumnContent: _two_column,
    QuoteContent: _quote,
    SummaryContent: _summary,
    ChartContent: _chart,
    VideoContent: _video,
    TimelineContent: _timeline,
    ComparisonContent: _comparison,
    PositionCardsContent: _position_cards,
    GenericContent: _default,
}


# visual region


def visual_box(visual: VisualRegion, parent_w: float, parent_h: float) -> tuple[float, float, float, float]:
    """(x, y, width, height) of the visual region inside a parent of the given size."""
    position = visual.position or "right"
    if position == "right":
        default_w = default_h = round(parent_h * 0.65)
    elif position == "center":
        default_w = default_h = round(parent_h * 0.7)
    else:
        default_w, default_h = round(parent_w * 0.4), round(parent_h * 0.35)
    w = visual.width or default_w
    h = visual.height or default_h

    if position == "right":
        return parent_w - w - 100, (parent_h - h) / 2, w, h
    if position == "below":
        return (parent_w - w) / 2, parent_h - h - 100, w, h
    return (parent_w - w) / 2, (parent_h - h) / 2, w, h


def decode_image(content: str) -> bytes:
    data = content.strip()
    if data.startswith("data:"):
        data = data.split(",", 1)[-1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ContentError(f"visual.content is not valid base64: {e}") from e


def _render_image(parent: ChildrenNode, visual: VisualRegion, x: float, y: float, w: float, h: float) -> SceneNode:
    blob = decode_image(visual.content or "")
    try:
        px_w, px_h = PptxImage.from_blob(blob).size
    except Exception as e:
        raise ContentError(f"visual.content is not a supported image: {e}") from e

    # fit inside the box, keeping the aspect ratio
    scale = min(w / max(px_w, 1), h / max(px_h, 1))
    node = parent.document.create_rectangle()
    node.name = names.VISUAL
    node.resize(px_w * scale, px_h * scale)
    node.x = x
    node.y = y
    node.fills = [image_fill(blob)]
    parent.append_child(node)
    return node


def render_visual(parent: ChildrenNode, visual: VisualRegion) -> SceneNode | None:
    parent_w = parent.width or SLIDE_WIDTH
    parent_h = parent.height or SLIDE_HEIGHT
    x, y, w, h = visual_box(visual, parent_w, parent_h)

    if visual.kind == "image" and visual.content:
        return _render_image(parent, visual, x, y, w, h)
    if visual.kind == "cycle" and visual.nodes:
        return render_cycle_diagram(parent, visual.nodes, visual.colors or [], visual.icons or [], x, y, w, h)
    return None


def render_slide_content(parent: ChildrenNode, content: SlideContent) -> None:
    """Render `content` into `parent`, then its visual region (if any) on top."""
    renderer = RENDERERS.get(type(content), _default)
    renderer(parent, content)
    if content.visual is not None:
        render_visual(parent, content.visual)


# slide roots


def design_slide_name(index: int, slide: Slide) -> str:
    return f"Slide {index + 1}: {slide.display_name}"


def create_slide(document: Document, slide: Slide, index: int) -> ChildrenNode:
    """Create the slide root for `slide` (appended to the page) and render it.

    `index` is the slide's ordinal on the page; on the design surface it drives
    the frame's name and horizontal placement. A root whose content fails to
    render is removed again before the error propagates.
    """
    if document.editor_type == "slides":
        root: ChildrenNode = document.create_slide()
        root.name = slide.display_name
        set_slide_background(root)
        root.speaker_notes = slide.speaker_notes or ""  # type: ignore[attr-defined]
    else:
        frame = create_slide_root(document.page, design_slide_name(index, slide), index * DESIGN_SLIDE_SPACING)
        frame.speaker_notes = slide.speaker_notes or ""
        root = frame

    try:
        render_slide_content(root, slide.content)
    except Exception:
        root.remove()
        raise
    return root
