"""Cycle diagram overlay.

Nodes sit evenly on a circle (first at the top, then clockwise). Each pair of
consecutive nodes is joined by a quadratic curve bowed toward the centre and
ending in a triangular arrowhead. Icons are built from a few primitive shapes.
"""

from __future__ import annotations

import math

from deckbridge.core.canvas.fonts import get_font_name
from deckbridge.core.canvas.nodes import RGB, ChildrenNode, FrameNode, SceneNode, solid
from deckbridge.core.render import names
from deckbridge.core.render.palette import DIAGRAM_COLORS, DIAGRAM_NODE_FILL

NODE_RADIUS = 45.0
ORBIT = 0.35  # of min(width, height)
CURVE_OFFSET = 30.0
ARROW_SIZE = 12.0
LABEL_FONT_SIZE = 32.0
LABEL_GAP = 8.0
ICON_SCALE = 1.1  # of NODE_RADIUS

ICONS = ("presence", "lightbulb", "refresh", "chart", "magnet", "rocket", "target", "users", "check", "star")


def diagram_color(token: str | None) -> RGB:
    return DIAGRAM_COLORS.get(token or "white", DIAGRAM_COLORS["white"])


def node_positions(n: int, width: float, height: float) -> list[tuple[float, float]]:
    cx, cy = width / 2, height / 2
    radius = min(width, height) * ORBIT
    out: list[tuple[float, float]] = []
    for i in range(n):
        angle = -math.pi / 2 + 2 * math.pi * i / n
        out.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return out


def _f(v: float) -> str:
    return f"{v:.2f}"


def connector_geometry(
    start: tuple[float, float], end: tuple[float, float], center: tuple[float, float]
) -> tuple[tuple[float, float], tuple[float, float], tuple[float, float]]:
    """(start point, control point, end point) of the curve from node `start` to node `end`."""
    (fx, fy), (tx, ty), (cx, cy) = start, end, center
    mid_x, mid_y = (fx + tx) / 2, (fy + ty) / 2
    dx, dy = cx - mid_x, cy - mid_y
    dist = math.hypot(dx, dy) or 1.0
    ctrl = (mid_x + dx / dist * CURVE_OFFSET, mid_y + dy / dist * CURVE_OFFSET)

    a_start = math.atan2(ty - fy, tx - fx)
    a_end = math.atan2(fy - ty, fx - tx)
    p0 = (fx + NODE_RADIUS * math.cos(a_start), fy + NODE_RADIUS * math.sin(a_start))
    p1 = (tx + NODE_RADIUS * math.cos(a_end), ty + NODE_RADIUS * math.sin(a_end))
    return p0, ctrl, p1


def arrowhead(tip: tuple[float, float], ctrl: tuple[float, float]) -> list[tuple[float, float]]:
    # direction of the curve at its end: control point -> end point
    angle = math.atan2(tip[1] - ctrl[1], tip[0] - ctrl[0])
    left = (tip[0] - ARROW_SIZE * math.cos(angle - math.pi / 6), tip[1] - ARROW_SIZE * math.sin(angle - math.pi / 6))
    right = (tip[0] - ARROW_SIZE * math.cos(angle + math.pi / 6), tip[1] - ARROW_SIZE * math.sin(angle + math.pi / 6))
    return [tip, left, right]


def _shape(container: ChildrenNode, kind: str, name: str, x: float, y: float, w: float, h: float) -> SceneNode:
    doc = container.document
    node: SceneNode = {
        "ellipse": doc.create_ellipse,
        "rect": doc.create_rectangle,
        "polygon": doc.create_polygon,
        "star": doc.create_star,
    }[kind]()
    node.name = name
    node.resize(w, h)
    node.x = x
    node.y = y
    container.append_child(node)
    return node


def render_icon(container: ChildrenNode, icon_name: str, cx: float, cy: float, size: float, color: RGB) -> list[SceneNode]:
    """Draw `icon_name` centred on (cx, cy); unknown names draw a plain dot."""
    s = size
    half = s / 2
    fill = [solid(color)]
    shapes: list[SceneNode] = []

    def add(kind: str, part: str | None, x: float, y: float, w: float, h: float) -> SceneNode:
        node = _shape(container, kind, names.icon(icon_name, part), x, y, w, h)
        node.fills = list(fill)
        shapes.append(node)
        return node

    if icon_name == "presence":
        add("ellipse", "head", cx - s * 0.2, cy - half, s * 0.4, s * 0.4)
        add("ellipse", "body", cx - s * 0.35, cy, s * 0.7, s * 0.5)
    elif icon_name == "lightbulb":
        add("ellipse", "bulb", cx - s * 0.35, cy - half, s * 0.7, s * 0.7)
        base = add("rect", "base", cx - s * 0.175, cy + s * 0.15, s * 0.35, s * 0.25)
        base.corner_radius = 2
    elif icon_name == "refresh":
        arc = add("ellipse", "arc", cx - s * 0.4, cy - s * 0.4, s * 0.8, s * 0.8)
        arc.fills = []
        arc.strokes = [solid(color)]
        arc.stroke_weight = s * 0.12
        arc.arc_data = {"starting_angle": 0.0, "ending_angle": 4.7, "inner_radius": 0.7}  # type: ignore[attr-defined]
        head = add("polygon", "arrow", cx + s * 0.25, cy - s * 0.5, s * 0.25, s * 0.25)
        head.rotation = 90
    elif icon_name == "chart":
        add("rect", "bar1", cx - s * 0.4, cy + s * 0.1, s * 0.2, s * 0.3)
        add("rect", "bar2", cx - s * 0.1, cy - s * 0.1, s * 0.2, s * 0.5)
        add("rect", "bar3", cx + s * 0.2, cy - s * 0.4, s * 0.2, s * 0.8)
    elif icon_name == "magnet":
        add("rect", "left", cx - s * 0.4, cy - s * 0.35, s * 0.25, s * 0.7)
        add("rect", "right", cx + s * 0.15, cy - s * 0.35, s * 0.25, s * 0.7)
        bottom = add("rect", "bottom", cx - s * 0.4, cy + s * 0.1, s * 0.8, s * 0.25)
        bottom.corner_radius = s * 0.1
    elif icon_name == "rocket":
        add("ellipse", "body", cx - s * 0.175, cy - s * 0.4, s * 0.35, s * 0.8)
        add("polygon", "fin", cx - s * 0.25, cy + s * 0.2, s * 0.5, s * 0.3)
    elif icon_name == "target":
        for part, k in (("outer", 0.9), ("middle", 0.5)):
            ring = add("ellipse", part, cx - s * k / 2, cy - s * k / 2, s * k, s * k)
            ring.fills = []
            ring.strokes = [solid(color)]
            ring.stroke_weight = s * 0.08
        add("ellipse", "center", cx - s * 0.1, cy - s * 0.1, s * 0.2, s * 0.2)
    elif icon_name == "users":
        back = [solid((color[0] * 0.7, color[1] * 0.7, color[2] * 0.7))]
        add("ellipse", "head1", cx - s * 0.35, cy - s * 0.4, s * 0.3, s * 0.3).fills = back
        add("ellipse", "body1", cx - s * 0.4, cy - s * 0.05, s * 0.4, s * 0.35).fills = list(back)
        add("ellipse", "head2", cx + s * 0.05, cy - s * 0.45, s * 0.35, s * 0.35)
        add("ellipse", "body2", cx, cy, s * 0.5, s * 0.4)
    elif icon_name == "check":
        add("rect", "1", cx - s * 0.25, cy - s * 0.1, s * 0.15, s * 0.5).rotation = -45
        add("rect", "2", cx + s * 0.1, cy - s * 0.35, s * 0.15, s * 0.8).rotation = 45
    elif icon_name == "star":
        star = add("star", None, cx - s * 0.45, cy - s * 0.45, s * 0.9, s * 0.9)
        star.point_count = 5  # type: ignore[attr-defined]
        star.inner_radius = 0.4  # type: ignore[attr-defined]
    else:
        add("ellipse", None, cx - s * 0.25, cy - s * 0.25, s * 0.5, s * 0.5)
    return shapes


def render_cycle_diagram(
    parent: ChildrenNode,
    labels: list[str],
    colors: list[str],
    icons: list[str],
    x: float,
    y: float,
    width: float,
    height: float,
) -> FrameNode:
    doc = parent.document
    container = doc.create_frame()
    container.name = names.VISUAL
    container.resize(width, height)
    container.fills = []
    container.clips_content = False
    parent.append_child(container)
    container.x = x
    container.y = y

    n = len(labels)
    center = (width / 2, height / 2)
    positions = node_positions(n, width, height)

    def token(seq: list[str], i: int) -> str | None:
        return seq[i] if i < len(seq) else None

    # connectors first so they sit behind the nodes
    for i in range(n):
        color = diagram_color(token(colors, i))
        p0, ctrl, p1 = connector_geometry(positions[i], positions[(i + 1) % n], center)

        line = doc.create_vector()
        line.name = names.connector(i)
        line.vector_paths = [
            {
                "winding_rule": "NONZERO",
                "data": f"M {_f(p0[0])} {_f(p0[1])} Q {_f(ctrl[0])} {_f(ctrl[1])} {_f(p1[0])} {_f(p1[1])}",
            }
        ]
        line.strokes = [solid(color)]
        line.stroke_weight = 3
        line.stroke_cap = "ROUND"
        container.append_child(line)

        tip, left, right = arrowhead(p1, ctrl)
        arrow = doc.create_vector()
        arrow.name = names.arrow(i)
        arrow.vector_paths = [
            {
                "winding_rule": "NONZERO",
                "data": (
                    f"M {_f(tip[0])} {_f(tip[1])} L {_f(left[0])} {_f(left[1])} "
                    f"L {_f(right[0])} {_f(right[1])} Z"
                ),
            }
        ]
        arrow.fills = [solid(color)]
        arrow.strokes = []
        container.append_child(arrow)

    label_font = get_font_name(doc, bold=True)
    for i, (px, py) in enumerate(positions):
        color = diagram_color(token(colors, i))

        circle = _shape(container, "ellipse", names.diagram_node(i), px - NODE_RADIUS, py - NODE_RADIUS, NODE_RADIUS * 2, NODE_RADIUS * 2)
        circle.fills = [solid(DIAGRAM_NODE_FILL)]
        circle.strokes = [solid(color)]
        circle.stroke_weight = 3

        icon_name = token(icons, i)
        if icon_name:
            render_icon(container, icon_name, px, py, NODE_RADIUS * ICON_SCALE, color)

        text = doc.create_text()
        text.name = names.diagram_label(i)
        text.font_name = label_font
        text.font_size = LABEL_FONT_SIZE
        text.characters = labels[i]
        text.fills = [solid(color)]
        text.text_align_horizontal = "CENTER"
        text.x = px - text.width / 2
        text.y = py + NODE_RADIUS + LABEL_GAP
        container.append_child(text)

    return container
