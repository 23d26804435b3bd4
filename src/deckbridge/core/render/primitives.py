from __future__ import annotations

from deckbridge.core.canvas.fonts import get_font_name
from deckbridge.core.canvas.nodes import (
    RGB,
    ChildrenNode,
    EllipseNode,
    FrameNode,
    RectangleNode,
    SceneNode,
    TextNode,
    solid,
)
from deckbridge.core.render.palette import COLORS, SLIDE_HEIGHT, SLIDE_WIDTH


def add_text(
    parent: ChildrenNode,
    text: str,
    x: float,
    y: float,
    font_size: float,
    bold: bool = False,
    color: RGB = COLORS["white"],
    max_width: float | None = None,
    name: str | None = None,
) -> TextNode:
    """Add a text leaf; with `max_width` the width is fixed and the text wraps."""
    node = parent.document.create_text()
    node.x = x
    node.y = y
    if name:
        node.name = name

    node.font_name = get_font_name(parent.document, bold)
    node.font_size = font_size
    node.fills = [solid(color)]
    node.characters = text

    if max_width:
        node.resize(max_width, node.height)
        node.text_auto_resize = "HEIGHT"

    parent.append_child(node)
    return node


def add_flow_text(
    parent: FrameNode,
    text: str,
    font_size: float,
    bold: bool = False,
    color: RGB = COLORS["white"],
    max_width: float | None = None,
    name: str | None = None,
) -> TextNode:
    # position comes from the flow frame
    return add_text(parent, text, 0, 0, font_size, bold, color, max_width, name)


def add_rect(
    parent: ChildrenNode,
    x: float,
    y: float,
    w: float,
    h: float,
    fill: RGB,
    stroke: RGB | None = None,
    dashed: bool = False,
    name: str | None = None,
    corner_radius: float = 0.0,
    opacity: float = 1.0,
) -> RectangleNode:
    rect = parent.document.create_rectangle()
    if name:
        rect.name = name
    rect.x = x
    rect.y = y
    rect.resize(w, h)
    rect.fills = [solid(fill, opacity)]
    rect.corner_radius = corner_radius
    if stroke is not None:
        rect.strokes = [solid(stroke)]
        rect.stroke_weight = 2
        if dashed:
            rect.dash_pattern = [10, 5]
    parent.append_child(rect)
    return rect


def add_ellipse(
    parent: ChildrenNode,
    x: float,
    y: float,
    w: float,
    h: float,
    fill: RGB | None,
    name: str | None = None,
    opacity: float = 1.0,
) -> EllipseNode:
    ellipse = parent.document.create_ellipse()
    if name:
        ellipse.name = name
    ellipse.resize(w, h)
    ellipse.x = x
    ellipse.y = y
    ellipse.fills = [solid(fill, opacity)] if fill is not None else []
    parent.append_child(ellipse)
    return ellipse


def create_flow_frame(
    parent: ChildrenNode,
    name: str,
    x: float,
    y: float,
    direction: str = "VERTICAL",
    spacing: float = 24,
    padding: float = 0,
) -> FrameNode:
    """Transparent frame stacking its children with fixed spacing, hugging its content."""
    frame = parent.document.create_frame()
    frame.name = name
    frame.layout_mode = direction
    frame.primary_axis_sizing_mode = "AUTO"
    frame.counter_axis_sizing_mode = "AUTO"
    frame.item_spacing = spacing
    frame.set_padding(padding)
    frame.fills = []
    frame.clips_content = False

    parent.append_child(frame)
    frame.x = x
    frame.y = y
    return frame


def set_slide_background(node: SceneNode) -> None:
    node.fills = [solid(COLORS["bg"])]


def create_slide_root(parent: ChildrenNode, name: str, x: float) -> FrameNode:
    """A full-size slide frame for the design surface."""
    frame = parent.document.create_frame()
    frame.name = name
    frame.resize(SLIDE_WIDTH, SLIDE_HEIGHT)
    frame.fills = [solid(COLORS["bg"])]
    parent.append_child(frame)
    frame.x = x
    frame.y = 0
    return frame
