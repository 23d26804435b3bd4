"""In-process visual tree.

This is the host surface the sync engine writes to and reads from: a document
owning a page of slides (or, on the design surface, top-level slide frames),
nested frames with optional flow layout, and text/shape leaves. Geometry is in
logical canvas units (a slide is 1920 x 1080).

Ids are decimal strings allocated per document starting at 256, so they can be
stored directly as pptx slide ids and shape ids (see `pptx_host`).
"""

from __future__ import annotations

import math
import re
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from deckbridge.core.errors import FontNotLoadedError, FontUnavailableError

SLIDE_WIDTH = 1920.0
SLIDE_HEIGHT = 1080.0

FIRST_NODE_ID = 256

# deterministic text metrics (em fractions)
GLYPH_WIDTH = 0.55
LINE_HEIGHT = 1.2

RGB = tuple[float, float, float]


@dataclass(frozen=True)
class FontName:
    family: str
    style: str = "Regular"

    @property
    def is_bold(self) -> bool:
        return "Bold" in self.style

    def __str__(self) -> str:
        return f"{self.family} {self.style}"


class _Mixed:
    def __repr__(self) -> str:
        return "MIXED"


# font_name of a text node whose runs use more than one font
MIXED = _Mixed()


def solid(color: RGB, opacity: float = 1.0) -> dict[str, Any]:
    return {"type": "SOLID", "color": tuple(color), "opacity": float(opacity)}


def linear_gradient(stops: list[tuple[float, RGB]], angle: float = 135.0) -> dict[str, Any]:
    return {
        "type": "GRADIENT_LINEAR",
        "stops": [(float(p), tuple(c)) for p, c in stops],
        "angle": float(angle),
    }


def image_fill(blob: bytes) -> dict[str, Any]:
    return {"type": "IMAGE", "blob": blob, "scale_mode": "FIT"}


def first_solid_color(paints: list[dict[str, Any]]) -> RGB | None:
    for p in paints:
        if p.get("type") == "SOLID":
            return tuple(p["color"])  # type: ignore[return-value]
    return None


class SceneNode:
    type = "NODE"

    def __init__(self, document: "Document", node_id: str) -> None:
        self.document = document
        self.id = node_id
        self.name = ""
        self.parent: ChildrenNode | None = None
        self._x = 0.0
        self._y = 0.0
        self._width = 100.0
        self._height = 100.0
        self.rotation = 0.0
        self.opacity = 1.0
        self.fills: list[dict[str, Any]] = []
        self.strokes: list[dict[str, Any]] = []
        self.stroke_weight = 1.0
        self.dash_pattern: list[float] = []
        self.corner_radius = 0.0
        self.locked = False

    def __repr__(self) -> str:
        return f"<{self.type} id={self.id} name={self.name!r}>"

    @property
    def x(self) -> float:
        return self._x

    # children of a flow frame are positioned by the frame

    @x.setter
    def x(self, value: float) -> None:
        if not self._in_flow():
            self._x = float(value)

    @property
    def y(self) -> float:
        return self._y

    @y.setter
    def y(self, value: float) -> None:
        if not self._in_flow():
            self._y = float(value)

    def _in_flow(self) -> bool:
        return isinstance(self.parent, FrameNode) and self.parent.is_flow

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    def resize(self, width: float, height: float) -> None:
        self._width = max(float(width), 0.01)
        self._height = max(float(height), 0.01)
        self._notify_parent()

    @property
    def removed(self) -> bool:
        return self.document.get_node_by_id(self.id) is not self

    def remove(self) -> None:
        if self.parent is not None:
            self.parent._detach(self)
        self.document._unregister(self)

    def ancestors(self) -> Iterator["ChildrenNode"]:
        p = self.parent
        while p is not None:
            yield p
            p = p.parent

    def depth_in(self, root: "SceneNode") -> int:
        depth = 0
        for a in self.ancestors():
            if a is root:
                return depth
            depth += 1
        raise ValueError(f"{self!r} is not inside {root!r}")

    def position_in(self, root: "SceneNode") -> tuple[float, float]:
        """Position relative to `root` (summing the offsets of the containers between)."""
        x, y = self._x, self._y
        for a in self.ancestors():
            if a is root:
                return x, y
            x += a.x
            y += a.y
        raise ValueError(f"{self!r} is not inside {root!r}")

    def _notify_parent(self) -> None:
        if isinstance(self.parent, FrameNode):
            self.parent.relayout()


class ChildrenNode(SceneNode):
    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self.children: list[SceneNode] = []

    def append_child(self, child: SceneNode) -> None:
        self.insert_child(len(self.children) + (0 if child.parent is not self else -1), child)

    def insert_child(self, index: int, child: SceneNode) -> None:
        if child is self or (isinstance(child, ChildrenNode) and self in list(child_descendants(child))):
            raise ValueError("cannot insert a node into itself")
        if child.parent is not None:
            child.parent._detach(child)
        index = max(0, min(index, len(self.children)))
        self.children.insert(index, child)
        child.parent = self
        self._children_changed()

    def _detach(self, child: SceneNode) -> None:
        self.children.remove(child)
        child.parent = None
        self._children_changed()

    def _children_changed(self) -> None:
        pass

    def find_all(self, predicate: Callable[[SceneNode], bool] | None = None) -> list[SceneNode]:
        return [n for n in child_descendants(self) if predicate is None or predicate(n)]

    def find_one(self, predicate: Callable[[SceneNode], bool]) -> SceneNode | None:
        for n in child_descendants(self):
            if predicate(n):
                return n
        return None

    def find_child(self, predicate: Callable[[SceneNode], bool]) -> SceneNode | None:
        for n in self.children:
            if predicate(n):
                return n
        return None


def child_descendants(node: ChildrenNode) -> Iterator[SceneNode]:
    for c in node.children:
        yield c
        if isinstance(c, ChildrenNode):
            yield from child_descendants(c)


class PageNode(ChildrenNode):
    type = "PAGE"


class SlideNode(ChildrenNode):
    type = "SLIDE"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self._width = SLIDE_WIDTH
        self._height = SLIDE_HEIGHT
        self.speaker_notes = ""


class FrameNode(ChildrenNode):
    """A container; with `layout_mode` set it stacks its children (flow layout)."""

    type = "FRAME"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self._layout_mode = "NONE"
        self._item_spacing = 0.0
        self.padding_top = 0.0
        self.padding_right = 0.0
        self.padding_bottom = 0.0
        self.padding_left = 0.0
        self.primary_axis_sizing_mode = "AUTO"
        self.counter_axis_sizing_mode = "AUTO"
        self.clips_content = True
        # used when the frame is a design-surface slide
        self.speaker_notes = ""

    @property
    def layout_mode(self) -> str:
        return self._layout_mode

    @layout_mode.setter
    def layout_mode(self, value: str) -> None:
        if value not in ("NONE", "VERTICAL", "HORIZONTAL"):
            raise ValueError(f"unsupported layout mode: {value}")
        self._layout_mode = value
        self.relayout()

    @property
    def item_spacing(self) -> float:
        return self._item_spacing

    @item_spacing.setter
    def item_spacing(self, value: float) -> None:
        self._item_spacing = float(value)
        self.relayout()

    def set_padding(self, padding: float) -> None:
        self.padding_top = self.padding_right = self.padding_bottom = self.padding_left = float(padding)
        self.relayout()

    @property
    def is_flow(self) -> bool:
        return self._layout_mode != "NONE"

    def _children_changed(self) -> None:
        self.relayout()

    def relayout(self) -> None:
        if self._layout_mode == "NONE":
            return
        vertical = self._layout_mode == "VERTICAL"
        cursor = self.padding_top if vertical else self.padding_left
        cross = 0.0
        for child in self.children:
            if vertical:
                child._x = self.padding_left
                child._y = cursor
                cursor += child.height + self._item_spacing
                cross = max(cross, child.width)
            else:
                child._x = cursor
                child._y = self.padding_top
                cursor += child.width + self._item_spacing
                cross = max(cross, child.height)
        if self.children:
            cursor -= self._item_spacing

        if vertical:
            if self.primary_axis_sizing_mode == "AUTO":
                self._height = max(cursor + self.padding_bottom, 0.01)
            if self.counter_axis_sizing_mode == "AUTO":
                self._width = max(cross + self.padding_left + self.padding_right, 0.01)
        else:
            if self.primary_axis_sizing_mode == "AUTO":
                self._width = max(cursor + self.padding_right, 0.01)
            if self.counter_axis_sizing_mode == "AUTO":
                self._height = max(cross + self.padding_top + self.padding_bottom, 0.01)
        self._notify_parent()


def _wrapped_line_count(line: str, width: float, glyph: float) -> int:
    capacity = max(1, int(width // glyph)) if glyph > 0 else 1
    count, used = 1, 0
    for word in line.split(" "):
        if used and used + 1 + len(word) > capacity:
            count += 1
            used = 0
        used = len(word) if used == 0 else used + 1 + len(word)
        # a word longer than a line breaks mid-word
        while used > capacity:
            count += 1
            used -= capacity
    return count


class TextNode(SceneNode):
    type = "TEXT"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self._characters = ""
        self._font_name: FontName | _Mixed = FontName("Inter", "Regular")
        # per-run fonts, only meaningful when font_name is MIXED
        self.run_fonts: list[FontName] = []
        self._font_size = 12.0
        self.text_align_horizontal = "LEFT"
        self._text_auto_resize = "WIDTH_AND_HEIGHT"
        self.fills = [solid((0.0, 0.0, 0.0))]
        self._measure()

    def fonts_in_use(self) -> list[FontName]:
        if isinstance(self._font_name, FontName):
            return [self._font_name]
        return list(dict.fromkeys(self.run_fonts))

    def _require_loaded(self, fonts: list[FontName]) -> None:
        for f in fonts:
            if not self.document.is_font_loaded(f):
                raise FontNotLoadedError(f"font {f} is not loaded (node {self.id})")

    @property
    def characters(self) -> str:
        return self._characters

    @characters.setter
    def characters(self, value: str) -> None:
        self._require_loaded(self.fonts_in_use())
        self._characters = str(value)
        self._measure()
        self._notify_parent()

    @property
    def font_name(self) -> FontName | _Mixed:
        return self._font_name

    @font_name.setter
    def font_name(self, value: FontName) -> None:
        if not isinstance(value, FontName):
            raise TypeError("font_name must be a FontName")
        self._require_loaded([value])
        self._font_name = value
        self.run_fonts = []
        self._measure()
        self._notify_parent()

    @property
    def font_size(self) -> float:
        return self._font_size

    @font_size.setter
    def font_size(self, value: float) -> None:
        self._font_size = float(value)
        self._measure()
        self._notify_parent()

    @property
    def is_bold(self) -> bool:
        return isinstance(self._font_name, FontName) and self._font_name.is_bold

    @property
    def text_auto_resize(self) -> str:
        return self._text_auto_resize

    @text_auto_resize.setter
    def text_auto_resize(self, value: str) -> None:
        if value not in ("WIDTH_AND_HEIGHT", "HEIGHT", "NONE"):
            raise ValueError(f"unsupported auto-resize mode: {value}")
        self._text_auto_resize = value
        self._measure()
        self._notify_parent()

    def _measure(self) -> None:
        lines = self._characters.split("\n")
        glyph = self._font_size * GLYPH_WIDTH
        line_h = self._font_size * LINE_HEIGHT
        if self._text_auto_resize == "WIDTH_AND_HEIGHT":
            self._width = max(max(len(line) for line in lines) * glyph, 1.0)
            self._height = len(lines) * line_h
        elif self._text_auto_resize == "HEIGHT":
            n = sum(_wrapped_line_count(line, self._width, glyph) for line in lines)
            self._height = n * line_h


class RectangleNode(SceneNode):
    type = "RECTANGLE"


class EllipseNode(SceneNode):
    type = "ELLIPSE"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self.arc_data: dict[str, float] | None = None


class PolygonNode(SceneNode):
    type = "POLYGON"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self.point_count = 3

    def vertices(self) -> list[tuple[float, float]]:
        """Vertices in node space, first vertex at the top, clockwise."""
        n = max(int(self.point_count), 3)
        cx, cy = self._width / 2, self._height / 2
        out: list[tuple[float, float]] = []
        for i in range(n):
            a = -math.pi / 2 + 2 * math.pi * i / n
            out.append((cx + cx * math.cos(a), cy + cy * math.sin(a)))
        return out


class StarNode(SceneNode):
    type = "STAR"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self.point_count = 5
        self.inner_radius = 0.38

    def vertices(self) -> list[tuple[float, float]]:
        n = max(int(self.point_count), 3)
        cx, cy = self._width / 2, self._height / 2
        out: list[tuple[float, float]] = []
        for i in range(n * 2):
            r = 1.0 if i % 2 == 0 else self.inner_radius
            a = -math.pi / 2 + math.pi * i / n
            out.append((cx + cx * r * math.cos(a), cy + cy * r * math.sin(a)))
        return out


_PATH_TOKEN = re.compile(r"[MLQZmlqz]|-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")


def parse_path(data: str) -> list[tuple[str, list[float]]]:
    """Parse an absolute M/L/Q/Z path into (command, coordinates) pairs."""
    out: list[tuple[str, list[float]]] = []
    cmd: str | None = None
    nums: list[float] = []
    for tok in _PATH_TOKEN.findall(data):
        if tok.isalpha():
            if cmd is not None:
                out.append((cmd, nums))
            cmd = tok.upper()
            nums = []
        else:
            nums.append(float(tok))
    if cmd is not None:
        out.append((cmd, nums))
    return out


class VectorNode(SceneNode):
    type = "VECTOR"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self._vector_paths: list[dict[str, str]] = []
        self.stroke_cap = "NONE"

    @property
    def vector_paths(self) -> list[dict[str, str]]:
        return self._vector_paths

    @vector_paths.setter
    def vector_paths(self, value: list[dict[str, str]]) -> None:
        self._vector_paths = [dict(p) for p in value]
        xs: list[float] = [1.0]
        ys: list[float] = [1.0]
        for p in self._vector_paths:
            for _, nums in parse_path(p.get("data", "")):
                xs.extend(nums[0::2])
                ys.extend(nums[1::2])
        # path coordinates are node-space; the box spans from the node origin
        self._width = max(xs)
        self._height = max(ys)


class ForeignNode(SceneNode):
    """Loaded content the canvas does not model (tables, charts, connectors, ...).

    Kept as its source DrawingML element and written back unchanged.
    """

    type = "FOREIGN"

    def __init__(self, document: "Document", node_id: str) -> None:
        super().__init__(document, node_id)
        self.xml: Any = None
        self.source_part: Any = None


class Document:
    """The host document: node registry, page, font loading."""

    def __init__(
        self,
        editor_type: str = "slides",
        *,
        document_id: str | None = None,
        available_fonts: list[str] | set[str] | None = None,
    ) -> None:
        if editor_type not in ("slides", "design"):
            raise ValueError(f"unsupported editor type: {editor_type}")
        self.editor_type = editor_type
        self.document_id = document_id or uuid.uuid4().hex
        self.title = ""
        self.available_fonts = set(available_fonts) if available_fonts is not None else None
        self._loaded_fonts: set[FontName] = set()
        self._nodes: dict[str, SceneNode] = {}
        self._next_id = FIRST_NODE_ID
        self.page = PageNode(self, "0:1")

    # ids / registry

    def _allocate_id(self, preferred: str | None = None) -> str:
        if preferred is not None and preferred.isdigit() and int(preferred) >= FIRST_NODE_ID and preferred not in self._nodes:
            self._next_id = max(self._next_id, int(preferred) + 1)
            return preferred
        while str(self._next_id) in self._nodes:
            self._next_id += 1
        nid = str(self._next_id)
        self._next_id += 1
        return nid

    def _create(self, cls: type, node_id: str | None = None) -> Any:
        node = cls(self, self._allocate_id(node_id))
        self._nodes[node.id] = node
        return node

    def _unregister(self, node: SceneNode) -> None:
        if self._nodes.get(node.id) is node:
            del self._nodes[node.id]
        if isinstance(node, ChildrenNode):
            for c in node.children:
                self._unregister(c)

    def get_node_by_id(self, node_id: str) -> SceneNode | None:
        return self._nodes.get(str(node_id))

    # node creation

    def create_slide(self, index: int | None = None) -> SlideNode:
        slide = self._create(SlideNode)
        if index is None:
            self.page.append_child(slide)
        else:
            self.page.insert_child(index, slide)
        return slide

    def create_frame(self) -> FrameNode:
        return self._create(FrameNode)

    def create_text(self) -> TextNode:
        return self._create(TextNode)

    def create_rectangle(self) -> RectangleNode:
        return self._create(RectangleNode)

    def create_ellipse(self) -> EllipseNode:
        return self._create(EllipseNode)

    def create_polygon(self) -> PolygonNode:
        return self._create(PolygonNode)

    def create_star(self) -> StarNode:
        return self._create(StarNode)

    def create_vector(self) -> VectorNode:
        return self._create(VectorNode)

    # slide roots

    def slide_nodes(self) -> list[ChildrenNode]:
        """Slide-like roots in page order.

        Slides surface: every SLIDE node. Design surface: top-level frames whose
        name carries the "Slide" marker.
        """
        if self.editor_type == "slides":
            return [n for n in self.page.children if isinstance(n, SlideNode)]
        return [n for n in self.page.children if isinstance(n, FrameNode) and "Slide" in n.name]

    # fonts

    def load_font(self, font: FontName) -> None:
        if self.available_fonts is not None and font.family not in self.available_fonts:
            raise FontUnavailableError(f"font family not available: {font.family}")
        self._loaded_fonts.add(font)

    def is_font_loaded(self, font: FontName) -> bool:
        return font in self._loaded_fonts
