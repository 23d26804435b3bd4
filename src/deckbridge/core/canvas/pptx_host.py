"""Persist the visual tree as a .pptx file (python-pptx).

Saving always writes a fresh presentation:

- slides surface: one pptx slide per SLIDE node; the node id becomes the
  slide id, the node name the slide name, its fill the slide background;
- design surface: one pptx slide per top-level frame, drawn as a group.

Every shape written carries its node's full record as JSON in a
`p:cNvPr/a:extLst/a:ext` element, so loading a saved file rebuilds the same
tree (ids, names, flow layout, fonts) regardless of what the drawing itself
can express. Shapes without that record (hand-made decks) are mapped onto the
closest node type; anything else is kept as a FOREIGN node holding its
DrawingML and written back as-is.

Geometry: a slide is 1920 x 1080 canvas units on a 16:9 deck, so one unit is
6350 EMU and a font size of n units is n / 2 pt.
"""

from __future__ import annotations

import copy
from io import BytesIO
from pathlib import Path
from typing import Any, Callable

import orjson
from lxml import etree
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.dml import MSO_COLOR_TYPE, MSO_FILL, MSO_LINE_DASH_STYLE
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE, MSO_SHAPE_TYPE
from pptx.enum.text import MSO_AUTO_SIZE, PP_ALIGN
from pptx.oxml.ns import qn
from pptx.oxml.xmlchemy import OxmlElement
from pptx.util import Emu

from deckbridge.core.canvas.nodes import (
    MIXED,
    SLIDE_HEIGHT,
    SLIDE_WIDTH,
    ChildrenNode,
    Document,
    EllipseNode,
    FontName,
    ForeignNode,
    FrameNode,
    PolygonNode,
    RectangleNode,
    SceneNode,
    SlideNode,
    StarNode,
    TextNode,
    VectorNode,
    first_solid_color,
    image_fill,
    parse_path,
    solid,
)
from deckbridge.core.errors import DocumentError

SLIDE_WIDTH_EMU = 12192000
SLIDE_HEIGHT_EMU = 6858000
EMU_PER_UNIT = SLIDE_WIDTH_EMU / SLIDE_WIDTH
BLANK_LAYOUT = 6

META_URI = "{6B7D2F38-5C1E-4F0B-9D8A-3E2C1B0A9F47}"
META_NS = "urn:deckbridge:node"
META_TAG = f"{{{META_NS}}}node"

DEFAULT_FAMILY = "Calibri"
DEFAULT_FONT_SIZE = 36.0  # 18 pt
CURVE_STEPS = 12
_EPS = 0.01

_R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

_ALIGN_TO_PPTX = {"LEFT": PP_ALIGN.LEFT, "CENTER": PP_ALIGN.CENTER, "RIGHT": PP_ALIGN.RIGHT}
_ALIGN_FROM_PPTX = {PP_ALIGN.CENTER: "CENTER", PP_ALIGN.RIGHT: "RIGHT"}


def _emu(v: float) -> Emu:
    return Emu(int(round(v * EMU_PER_UNIT)))


def _rgb(color: Any) -> RGBColor:
    r, g, b = (max(0, min(255, int(round(float(c) * 255)))) for c in color[:3])
    return RGBColor(r, g, b)


def _from_rgb(rgb: Any) -> tuple[float, float, float]:
    return (rgb[0] / 255, rgb[1] / 255, rgb[2] / 255)


# node records


def _paint_record(p: dict[str, Any]) -> dict[str, Any]:
    # image bytes live in the picture part, not in the record
    return {k: v for k, v in p.items() if k != "blob"}


def _paint_from_record(p: dict[str, Any]) -> dict[str, Any]:
    out = dict(p)
    if "color" in out:
        out["color"] = tuple(out["color"])
    if "stops" in out:
        out["stops"] = [(float(pos), tuple(c)) for pos, c in out["stops"]]
    return out


def node_record(node: SceneNode) -> dict[str, Any]:
    rec: dict[str, Any] = {
        "id": node.id,
        "type": node.type,
        "name": node.name,
        "x": node.x,
        "y": node.y,
        "width": node.width,
        "height": node.height,
        "rotation": node.rotation,
        "opacity": node.opacity,
        "fills": [_paint_record(p) for p in node.fills],
        "strokes": [_paint_record(p) for p in node.strokes],
        "stroke_weight": node.stroke_weight,
        "dash_pattern": list(node.dash_pattern),
        "corner_radius": node.corner_radius,
        "locked": node.locked,
    }
    if isinstance(node, FrameNode):
        rec.update(
            layout_mode=node.layout_mode,
            item_spacing=node.item_spacing,
            padding=[node.padding_top, node.padding_right, node.padding_bottom, node.padding_left],
            primary_axis_sizing_mode=node.primary_axis_sizing_mode,
            counter_axis_sizing_mode=node.counter_axis_sizing_mode,
            clips_content=node.clips_content,
            speaker_notes=node.speaker_notes,
        )
    elif isinstance(node, TextNode):
        font = node.font_name
        rec.update(
            characters=node.characters,
            font_name="MIXED" if font is MIXED else [font.family, font.style],  # type: ignore[union-attr]
            run_fonts=[[f.family, f.style] for f in node.run_fonts],
            font_size=node.font_size,
            text_align_horizontal=node.text_align_horizontal,
            text_auto_resize=node.text_auto_resize,
        )
    elif isinstance(node, EllipseNode):
        rec["arc_data"] = node.arc_data
    elif isinstance(node, StarNode):
        rec.update(point_count=node.point_count, inner_radius=node.inner_radius)
    elif isinstance(node, PolygonNode):
        rec["point_count"] = node.point_count
    elif isinstance(node, VectorNode):
        rec.update(vector_paths=node.vector_paths, stroke_cap=node.stroke_cap)
    return rec


_NODE_TYPES: dict[str, type] = {
    cls.type: cls
    for cls in (FrameNode, TextNode, RectangleNode, EllipseNode, PolygonNode, StarNode, VectorNode)
}


def node_from_record(document: Document, rec: dict[str, Any]) -> SceneNode:
    """Rebuild a node exactly as recorded; fonts are not required to be loaded."""
    cls = _NODE_TYPES.get(rec.get("type", ""))
    if cls is None:
        raise DocumentError(f"unknown node type in record: {rec.get('type')!r}")
    node = document._create(cls, rec.get("id"))
    node.name = rec.get("name", "")
    node.rotation = float(rec.get("rotation", 0.0))
    node.opacity = float(rec.get("opacity", 1.0))
    node.fills = [_paint_from_record(p) for p in rec.get("fills", [])]
    node.strokes = [_paint_from_record(p) for p in rec.get("strokes", [])]
    node.stroke_weight = float(rec.get("stroke_weight", 1.0))
    node.dash_pattern = list(rec.get("dash_pattern", []))
    node.corner_radius = float(rec.get("corner_radius", 0.0))
    node.locked = bool(rec.get("locked", False))

    if isinstance(node, FrameNode):
        node._layout_mode = rec.get("layout_mode", "NONE")
        node._item_spacing = float(rec.get("item_spacing", 0.0))
        node.padding_top, node.padding_right, node.padding_bottom, node.padding_left = rec.get("padding", [0, 0, 0, 0])
        node.primary_axis_sizing_mode = rec.get("primary_axis_sizing_mode", "AUTO")
        node.counter_axis_sizing_mode = rec.get("counter_axis_sizing_mode", "AUTO")
        node.clips_content = bool(rec.get("clips_content", True))
        node.speaker_notes = rec.get("speaker_notes", "")
    elif isinstance(node, TextNode):
        font = rec.get("font_name")
        node._font_name = MIXED if font == "MIXED" else FontName(*font)
        node.run_fonts = [FontName(*f) for f in rec.get("run_fonts", [])]
        node._font_size = float(rec.get("font_size", DEFAULT_FONT_SIZE))
        node._characters = rec.get("characters", "")
        node.text_align_horizontal = rec.get("text_align_horizontal", "LEFT")
        node._text_auto_resize = rec.get("text_auto_resize", "NONE")
    elif isinstance(node, EllipseNode):
        node.arc_data = rec.get("arc_data")
    elif isinstance(node, StarNode):
        node.point_count = rec.get("point_count", 5)
        node.inner_radius = rec.get("inner_radius", 0.38)
    elif isinstance(node, PolygonNode):
        node.point_count = rec.get("point_count", 3)
    elif isinstance(node, VectorNode):
        node._vector_paths = [dict(p) for p in rec.get("vector_paths", [])]
        node.stroke_cap = rec.get("stroke_cap", "NONE")

    node._x = float(rec.get("x", 0.0))
    node._y = float(rec.get("y", 0.0))
    node._width = float(rec.get("width", 100.0))
    node._height = float(rec.get("height", 100.0))
    return node


def _attach(parent: ChildrenNode, child: SceneNode) -> None:
    # keeps recorded geometry; no relayout
    parent.children.append(child)
    child.parent = parent


def _write_record(shape_el: Any, rec: dict[str, Any]) -> None:
    c_nv_pr = shape_el.xpath("./*[1]/p:cNvPr")[0]
    ext_lst = c_nv_pr.find(qn("a:extLst"))
    if ext_lst is None:
        ext_lst = etree.SubElement(c_nv_pr, qn("a:extLst"))
    ext = etree.SubElement(ext_lst, qn("a:ext"))
    ext.set("uri", META_URI)
    holder = etree.SubElement(ext, META_TAG, nsmap={"db": META_NS})
    holder.text = orjson.dumps(rec).decode("utf-8")


def _read_record(shape_el: Any) -> dict[str, Any] | None:
    for ext in shape_el.xpath("./*[1]/p:cNvPr/a:extLst/a:ext"):
        if ext.get("uri") != META_URI:
            continue
        holder = ext.find(META_TAG)
        if holder is not None and holder.text:
            try:
                return orjson.loads(holder.text)
            except orjson.JSONDecodeError:
                return None
    return None


# styling helpers


def _set_no_fill(shape: Any) -> None:
    try:
        shape.fill.background()
    except Exception:
        pass


def _set_no_line(shape: Any) -> None:
    try:
        shape.line.fill.background()
    except Exception:
        pass
    # theme outline refs would otherwise draw a default line
    try:
        st_el = shape._element.find(qn("p:style"))
        if st_el is not None:
            ln_ref = st_el.find(qn("a:lnRef"))
            if ln_ref is not None:
                ln_ref.set("idx", "0")
    except Exception:
        pass


def _set_solid_fill_alpha_xml(shape: Any, alpha01: float) -> None:
    """Opacity of a solid fill, 0..1; written as DrawingML a:alpha."""
    a = max(0.0, min(1.0, float(alpha01)))
    try:
        clr = shape._element.spPr.find(qn("a:solidFill")).find(qn("a:srgbClr"))
    except Exception:
        return
    if clr is None:
        return
    for tag in ("a:alpha", "a:alphaMod", "a:alphaOff"):
        el = clr.find(qn(tag))
        if el is not None:
            clr.remove(el)
    ael = OxmlElement("a:alpha")
    ael.set("val", str(int(round(a * 100000))))
    clr.append(ael)


def _apply_fill(shape: Any, node: SceneNode) -> None:
    paint = next((p for p in node.fills if p.get("type") in ("SOLID", "GRADIENT_LINEAR")), None)
    if paint is None:
        _set_no_fill(shape)
        return
    if paint["type"] == "SOLID":
        shape.fill.solid()
        shape.fill.fore_color.rgb = _rgb(paint["color"])
        alpha = float(paint.get("opacity", 1.0)) * node.opacity
        if alpha < 1.0:
            _set_solid_fill_alpha_xml(shape, alpha)
        return
    shape.fill.gradient()
    shape.fill.gradient_angle = float(paint.get("angle", 0.0)) % 360
    stops = paint.get("stops") or []
    if stops:
        g = shape.fill.gradient_stops
        first, last = stops[0], stops[-1]
        g[0].position, g[0].color.rgb = float(first[0]), _rgb(first[1])
        g[len(g) - 1].position, g[len(g) - 1].color.rgb = float(last[0]), _rgb(last[1])


def _apply_line(shape: Any, node: SceneNode) -> None:
    color = first_solid_color(node.strokes)
    if color is None or node.stroke_weight <= 0:
        _set_no_line(shape)
        return
    shape.line.color.rgb = _rgb(color)
    shape.line.width = _emu(node.stroke_weight)
    if node.dash_pattern:
        shape.line.dash_style = MSO_LINE_DASH_STYLE.DASH


def _apply_rotation(shape: Any, node: SceneNode) -> None:
    if node.rotation:
        shape.rotation = -node.rotation % 360


# writing


def _flatten_quad(p0: tuple[float, float], c: tuple[float, float], p1: tuple[float, float]) -> list[tuple[float, float]]:
    out = []
    for i in range(1, CURVE_STEPS + 1):
        t = i / CURVE_STEPS
        u = 1 - t
        out.append((u * u * p0[0] + 2 * u * t * c[0] + t * t * p1[0], u * u * p0[1] + 2 * u * t * c[1] + t * t * p1[1]))
    return out


def _contours(node: SceneNode) -> list[tuple[list[tuple[float, float]], bool]]:
    """(points in node space, closed) per contour."""
    if isinstance(node, (PolygonNode, StarNode)):
        return [(node.vertices(), True)]
    contours: list[tuple[list[tuple[float, float]], bool]] = []
    for path in node.vector_paths:  # type: ignore[attr-defined]
        points: list[tuple[float, float]] = []
        for cmd, nums in parse_path(path.get("data", "")):
            if cmd == "M":
                if points:
                    contours.append((points, False))
                points = [(nums[0], nums[1])]
            elif cmd == "L":
                points.extend(zip(nums[0::2], nums[1::2]))
            elif cmd == "Q" and points:
                for i in range(0, len(nums) - 3, 4):
                    points.extend(_flatten_quad(points[-1], (nums[i], nums[i + 1]), (nums[i + 2], nums[i + 3])))
            elif cmd == "Z" and points:
                contours.append((points, True))
                points = []
        if points:
            contours.append((points, False))
    return contours


def _write_freeform(shapes: Any, node: SceneNode, ox: float, oy: float) -> Any:
    contours = _contours(node)
    if not contours:
        return _write_rectangle(shapes, node, ox, oy)
    (first, closed), rest = contours[0], contours[1:]
    builder = shapes.build_freeform(ox + first[0][0], oy + first[0][1], scale=EMU_PER_UNIT)
    builder.add_line_segments([(ox + x, oy + y) for x, y in first[1:]], close=closed)
    for points, closed in rest:
        builder.move_to(ox + points[0][0], oy + points[0][1])
        builder.add_line_segments([(ox + x, oy + y) for x, y in points[1:]], close=closed)
    shape = builder.convert_to_shape()
    _apply_fill(shape, node)
    _apply_line(shape, node)
    return shape


def _write_rectangle(shapes: Any, node: SceneNode, ox: float, oy: float) -> Any:
    left, top, width, height = _emu(ox), _emu(oy), _emu(node.width), _emu(node.height)
    image = next((p for p in node.fills if p.get("type") == "IMAGE" and p.get("blob")), None)
    if image is not None:
        pic = shapes.add_picture(BytesIO(image["blob"]), left, top, width, height)
        _apply_rotation(pic, node)
        return pic

    kind = MSO_AUTO_SHAPE_TYPE.ROUNDED_RECTANGLE if node.corner_radius > 0 else MSO_AUTO_SHAPE_TYPE.RECTANGLE
    shape = shapes.add_shape(kind, left, top, width, height)
    if node.corner_radius > 0:
        shape.adjustments[0] = min(node.corner_radius / max(min(node.width, node.height), 0.01), 0.5)
    _apply_fill(shape, node)
    _apply_line(shape, node)
    _apply_rotation(shape, node)
    return shape


def _write_ellipse(shapes: Any, node: SceneNode, ox: float, oy: float) -> Any:
    shape = shapes.add_shape(MSO_AUTO_SHAPE_TYPE.OVAL, _emu(ox), _emu(oy), _emu(node.width), _emu(node.height))
    _apply_fill(shape, node)
    _apply_line(shape, node)
    _apply_rotation(shape, node)
    return shape


def _write_text(shapes: Any, node: TextNode, ox: float, oy: float) -> Any:
    box = shapes.add_textbox(_emu(ox), _emu(oy), _emu(node.width), _emu(node.height))
    tf = box.text_frame
    tf.margin_left = tf.margin_right = tf.margin_top = tf.margin_bottom = Emu(0)
    tf.auto_size = MSO_AUTO_SIZE.NONE
    tf.word_wrap = node.text_auto_resize != "WIDTH_AND_HEIGHT"

    font = node.font_name if isinstance(node.font_name, FontName) else (node.run_fonts[0] if node.run_fonts else None)
    color = first_solid_color(node.fills)
    for i, line in enumerate(node.characters.split("\n")):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        align = _ALIGN_TO_PPTX.get(node.text_align_horizontal)
        if align is not None:
            p.alignment = align
        run = p.add_run()
        run.text = line
        run.font.size = _emu(node.font_size)
        if font is not None:
            run.font.name = font.family
            run.font.bold = font.is_bold
        if color is not None:
            run.font.color.rgb = _rgb(color)
    _apply_rotation(box, node)
    return box


def _write_foreign(shapes: Any, node: ForeignNode, slide: Any, warnings: list[str]) -> Any:
    if node.xml is None:
        return None
    el = copy.deepcopy(node.xml)
    try:
        _relink(el, node.source_part, slide.part)
    except Exception as e:
        warnings.append(f"dropped {node.name or node.id}: cannot carry its linked parts ({e})")
        return None
    c_nv_pr = el.xpath("./*[1]/p:cNvPr")
    if c_nv_pr:
        c_nv_pr[0].set("id", str(slide.shapes._next_shape_id))
    shapes._spTree.append(el)
    return el


def _relink(el: Any, source_part: Any, target_part: Any) -> None:
    """Re-create the relationships `el` references on `target_part` and rewrite its rIds."""
    for sub in el.iter():
        for key, value in list(sub.attrib.items()):
            if not key.startswith(f"{{{_R_NS}}}"):
                continue
            if source_part is None:
                raise DocumentError("no source part for relationship reference")
            rel = source_part.rels[value]
            if rel.is_external:
                new_rid = target_part.relate_to(rel.target_ref, rel.reltype, is_external=True)
            else:
                new_rid = target_part.relate_to(rel.target_part, rel.reltype)
            sub.set(key, new_rid)


def _write_node(shapes: Any, node: SceneNode, ox: float, oy: float, slide: Any, warnings: list[str]) -> None:
    """Write `node` with its top-left at (ox, oy) in slide units."""
    if isinstance(node, ForeignNode):
        _write_foreign(shapes, node, slide, warnings)
        return

    if isinstance(node, FrameNode):
        group = shapes.add_group_shape()
        _write_record(group._element, node_record(node))
        if any(p.get("type") in ("SOLID", "GRADIENT_LINEAR", "IMAGE") for p in node.fills):
            backdrop = _write_rectangle(group.shapes, node, ox, oy)
            _write_record(backdrop._element, {"fill_of": node.id})
        for child in node.children:
            _write_node(group.shapes, child, ox + child.x, oy + child.y, slide, warnings)
        return

    writer = _WRITERS.get(type(node))
    if writer is None:
        warnings.append(f"skipped {node!r}: no pptx shape for this node type")
        return
    shape = writer(shapes, node, ox, oy)
    _write_record(shape._element, node_record(node))


_WRITERS: dict[type, Callable[..., Any]] = {
    TextNode: _write_text,
    RectangleNode: _write_rectangle,
    EllipseNode: _write_ellipse,
    PolygonNode: _write_freeform,
    StarNode: _write_freeform,
    VectorNode: _write_freeform,
}


def _set_slide_id(prs: Any, node_id: str) -> None:
    sld_ids = prs.slides._sldIdLst
    used = {s.id for s in sld_ids}
    if node_id.isdigit() and 256 <= int(node_id) < 2**31 and int(node_id) not in used:
        sld_ids[-1].id = int(node_id)


def _set_notes(slide: Any, text: str) -> None:
    if text:
        slide.notes_slide.notes_text_frame.text = text


def save_document(document: Document, path: str | Path) -> list[str]:
    """Write the document to `path`; returns warnings for content that could not be kept."""
    prs = Presentation()
    prs.slide_width = Emu(SLIDE_WIDTH_EMU)
    prs.slide_height = Emu(SLIDE_HEIGHT_EMU)
    layout = prs.slide_layouts[BLANK_LAYOUT]
    warnings: list[str] = []

    cp = prs.core_properties
    cp.title = document.title or ""
    cp.identifier = document.document_id
    cp.category = document.editor_type

    for top in document.page.children:
        slide = prs.slides.add_slide(layout)
        if isinstance(top, SlideNode):
            _set_slide_id(prs, top.id)
            slide._element.cSld.set("name", top.name)
            bg = first_solid_color(top.fills)
            if bg is not None:
                slide.background.fill.solid()
                slide.background.fill.fore_color.rgb = _rgb(bg)
            _set_notes(slide, top.speaker_notes)
            for child in top.children:
                _write_node(slide.shapes, child, child.x, child.y, slide, warnings)
        else:
            # design surface: the top-level node is drawn from the slide origin
            slide._element.cSld.set("name", top.name)
            _set_notes(slide, getattr(top, "speaker_notes", ""))
            _write_node(slide.shapes, top, 0.0, 0.0, slide, warnings)

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    try:
        prs.save(str(out))
    except OSError as e:
        raise DocumentError(f"cannot write {out}: {e}") from e
    return warnings


# reading


class _Space:
    """Maps shape EMU coordinates (possibly inside group child space) to slide units."""

    def __init__(self, unit: float, ox: float = 0.0, oy: float = 0.0, sx: float = 1.0, sy: float = 1.0) -> None:
        self.unit = unit
        self.ox, self.oy, self.sx, self.sy = ox, oy, sx, sy

    def point(self, x: float, y: float) -> tuple[float, float]:
        return (self.ox + x * self.sx) / self.unit, (self.oy + y * self.sy) / self.unit

    def size(self, w: float, h: float) -> tuple[float, float]:
        return w * self.sx / self.unit, h * self.sy / self.unit

    def inside(self, group: Any) -> "_Space":
        xfrm = group._element.grpSpPr.find(qn("a:xfrm"))
        if xfrm is None:
            return self
        off, ext = xfrm.find(qn("a:off")), xfrm.find(qn("a:ext"))
        ch_off, ch_ext = xfrm.find(qn("a:chOff")), xfrm.find(qn("a:chExt"))
        if off is None or ext is None or ch_off is None or ch_ext is None:
            return self
        gx, gy = float(off.get("x")), float(off.get("y"))
        gsx = float(ext.get("cx")) / float(ch_ext.get("cx")) if float(ch_ext.get("cx")) else 1.0
        gsy = float(ext.get("cy")) / float(ch_ext.get("cy")) if float(ch_ext.get("cy")) else 1.0
        cx, cy = float(ch_off.get("x")), float(ch_off.get("y"))
        # child -> group parent space, then this space
        return _Space(
            self.unit,
            self.ox + (gx - cx * gsx) * self.sx,
            self.oy + (gy - cy * gsy) * self.sy,
            self.sx * gsx,
            self.sy * gsy,
        )


def _geometry(shape: Any, space: _Space) -> tuple[float, float, float, float]:
    x, y = space.point(float(shape.left or 0), float(shape.top or 0))
    w, h = space.size(float(shape.width or 0), float(shape.height or 0))
    return x, y, w, h


def _place(node: SceneNode, parent: ChildrenNode, origin: tuple[float, float], geo: tuple[float, float, float, float]) -> None:
    x, y, w, h = geo
    node._x, node._y = x - origin[0], y - origin[1]
    node._width, node._height = max(w, 0.01), max(h, 0.01)
    _attach(parent, node)


def _run_color(run: Any) -> tuple[float, float, float] | None:
    try:
        if run.font.color.type == MSO_COLOR_TYPE.RGB:
            return _from_rgb(run.font.color.rgb)
    except Exception:
        pass
    return None


def _text_values(shape: Any) -> dict[str, Any]:
    """Text, first run size and colour, distinct run fonts and alignment of a text frame."""
    tf = shape.text_frame
    runs = [r for p in tf.paragraphs for r in p.runs if r.text]
    size = next((r.font.size for r in runs if r.font.size is not None), None)
    fonts = [FontName(r.font.name or DEFAULT_FAMILY, "Bold" if r.font.bold else "Regular") for r in runs]
    return {
        "text": "\n".join(p.text for p in tf.paragraphs),
        "font_size": size.pt * 2 if size is not None else None,
        "fonts": list(dict.fromkeys(fonts)),
        "color": next((c for c in (_run_color(r) for r in runs) if c is not None), None),
        "align": _ALIGN_FROM_PPTX.get(tf.paragraphs[0].alignment, "LEFT"),
    }


def _set_fonts(node: TextNode, fonts: list[FontName]) -> None:
    if len({f.family for f in fonts}) > 1:
        node._font_name = MIXED
        node.run_fonts = fonts
    else:
        node._font_name = fonts[0] if fonts else FontName(DEFAULT_FAMILY, "Regular")
        node.run_fonts = []


def _load_text(document: Document, shape: Any) -> TextNode | None:
    live = _text_values(shape)
    if not live["text"].strip():
        return None

    node: TextNode = document._create(TextNode)
    node.name = shape.name or ""
    node._characters = live["text"]
    node._text_auto_resize = "NONE"
    node._font_size = live["font_size"] if live["font_size"] is not None else DEFAULT_FONT_SIZE
    _set_fonts(node, live["fonts"])
    if live["color"] is not None:
        node.fills = [solid(live["color"])]
    node.text_align_horizontal = live["align"]
    return node


def _refresh_text(node: TextNode, shape: Any) -> None:
    """Carry edits made to a recorded text box over onto its node.

    Values the writer would have produced unchanged keep the recorded ones, so
    an untouched box reloads exactly as it was saved.
    """
    if not getattr(shape, "has_text_frame", False) or not shape.has_text_frame:
        return
    live = _text_values(shape)
    if live["text"] != node.characters:
        node._characters = live["text"]
    if live["font_size"] is not None and abs(live["font_size"] - node.font_size) > _EPS:
        node._font_size = live["font_size"]

    written = node.font_name if isinstance(node.font_name, FontName) else (node.run_fonts[0] if node.run_fonts else None)
    as_written = [] if written is None else [FontName(written.family, "Bold" if written.is_bold else "Regular")]
    if live["fonts"] and live["fonts"] != as_written:
        _set_fonts(node, live["fonts"])

    recorded = first_solid_color(node.fills)
    if live["color"] is not None and (recorded is None or str(_rgb(recorded)) != str(_rgb(live["color"]))):
        node.fills = [solid(live["color"])]
    if node.text_align_horizontal in _ALIGN_TO_PPTX and live["align"] != node.text_align_horizontal:
        node.text_align_horizontal = live["align"]


def _refresh_geometry(node: SceneNode, shape: Any, space: _Space, origin: tuple[float, float]) -> None:
    # moves and resizes; differences below EMU rounding keep the recorded value
    x, y, w, h = _geometry(shape, space)
    live = (x - origin[0], y - origin[1], max(w, 0.01), max(h, 0.01))
    for attr, value in zip(("_x", "_y", "_width", "_height"), live):
        if abs(getattr(node, attr) - value) > _EPS:
            setattr(node, attr, value)


def _solid_fill_of(shape: Any) -> list[dict[str, Any]]:
    try:
        if shape.fill.type == MSO_FILL.SOLID and shape.fill.fore_color.type == MSO_COLOR_TYPE.RGB:
            return [solid(_from_rgb(shape.fill.fore_color.rgb))]
    except Exception:
        pass
    return []


def _solid_line_of(shape: Any) -> list[dict[str, Any]]:
    try:
        if shape.line.fill.type == MSO_FILL.SOLID and shape.line.color.type == MSO_COLOR_TYPE.RGB:
            return [solid(_from_rgb(shape.line.color.rgb))]
    except Exception:
        pass
    return []


def _load_plain_shape(
    document: Document,
    parent: ChildrenNode,
    shape: Any,
    space: _Space,
    origin: tuple[float, float],
    slide: Any,
) -> None:
    """Map a shape without a node record onto the closest node type."""
    geo = _geometry(shape, space)
    try:
        st = shape.shape_type
    except Exception:
        st = None

    if st == MSO_SHAPE_TYPE.GROUP:
        frame: FrameNode = document._create(FrameNode)
        frame.name = shape.name or ""
        _place(frame, parent, origin, geo)
        inner = space.inside(shape)
        for child in shape.shapes:
            _load_shape(document, frame, child, inner, (geo[0], geo[1]), slide)
        return

    if st == MSO_SHAPE_TYPE.PICTURE:
        pic: RectangleNode = document._create(RectangleNode)
        pic.name = shape.name or ""
        pic.fills = [image_fill(shape.image.blob)]
        _place(pic, parent, origin, geo)
        return

    if st == MSO_SHAPE_TYPE.AUTO_SHAPE:
        try:
            oval = shape.auto_shape_type == MSO_AUTO_SHAPE_TYPE.OVAL
        except Exception:
            oval = False
        fills = _solid_fill_of(shape)
        strokes = _solid_line_of(shape)
        if fills or strokes or not (shape.has_text_frame and shape.text_frame.text.strip()):
            node: SceneNode = document._create(EllipseNode if oval else RectangleNode)
            node.name = shape.name or ""
            node.fills, node.strokes = fills, strokes
            _place(node, parent, origin, geo)

    if getattr(shape, "has_text_frame", False) and shape.has_text_frame:
        text = _load_text(document, shape)
        if text is not None:
            _place(text, parent, origin, geo)
            return
    # empty text boxes and placeholders carry nothing to keep
    if st in (MSO_SHAPE_TYPE.AUTO_SHAPE, MSO_SHAPE_TYPE.TEXT_BOX, MSO_SHAPE_TYPE.PLACEHOLDER):
        return

    foreign: ForeignNode = document._create(ForeignNode)
    foreign.name = shape.name or ""
    foreign.xml = copy.deepcopy(shape._element)
    foreign.source_part = slide.part
    _place(foreign, parent, origin, geo)


def _load_shape(
    document: Document,
    parent: ChildrenNode,
    shape: Any,
    space: _Space,
    origin: tuple[float, float],
    slide: Any,
) -> None:
    rec = _read_record(shape._element)
    if rec is None:
        _load_plain_shape(document, parent, shape, space, origin, slide)
        return
    if "fill_of" in rec:
        return

    # identity, type and styling come from the record; text and box from the shape
    node = node_from_record(document, rec)
    if isinstance(node, (TextNode, RectangleNode, EllipseNode)):
        _refresh_geometry(node, shape, space, origin)
    if isinstance(node, TextNode):
        _refresh_text(node, shape)
    _attach(parent, node)
    if isinstance(node, FrameNode):
        # a top-level design frame is drawn from the slide origin
        at = (0.0, 0.0) if parent is document.page else (origin[0] + node.x, origin[1] + node.y)
        inner = space.inside(shape)
        for child in shape.shapes:
            _load_shape(document, node, child, inner, at, slide)
    elif isinstance(node, RectangleNode):
        for i, p in enumerate(node.fills):
            if p.get("type") == "IMAGE" and not p.get("blob"):
                try:
                    node.fills[i] = image_fill(shape.image.blob)
                except Exception:
                    pass


def _load_background(slide: Any) -> list[dict[str, Any]]:
    bg = slide._element.cSld.bg
    if bg is None:
        return []
    try:
        fill = slide.background.fill
        if fill.type == MSO_FILL.SOLID and fill.fore_color.type == MSO_COLOR_TYPE.RGB:
            return [solid(_from_rgb(fill.fore_color.rgb))]
    except Exception:
        pass
    return []


def _notes(slide: Any) -> str:
    if not slide.has_notes_slide:
        return ""
    return slide.notes_slide.notes_text_frame.text or ""


def load_document(
    path: str | Path,
    editor_type: str | None = None,
    available_fonts: list[str] | set[str] | None = None,
) -> Document:
    """Read a .pptx into a document.

    The editor type comes from `editor_type`, else from what `save_document`
    recorded, else "slides".
    """
    p = Path(path)
    try:
        prs = Presentation(str(p))
    except Exception as e:
        raise DocumentError(f"cannot read {p}: {e}") from e

    cp = prs.core_properties
    kind = editor_type or (cp.category if cp.category in ("slides", "design") else "slides")
    document = Document(kind, document_id=cp.identifier or None, available_fonts=available_fonts)
    document.title = cp.title or ""

    unit = float(prs.slide_width or SLIDE_WIDTH_EMU) / SLIDE_WIDTH
    space = _Space(unit)

    for i, slide in enumerate(prs.slides):
        name = slide._element.cSld.get("name", "")
        if kind == "slides":
            root: ChildrenNode = document._create(SlideNode, str(slide.slide_id))
            root.name = name
            root.fills = _load_background(slide)
            root.speaker_notes = _notes(slide)  # type: ignore[attr-defined]
            _attach(document.page, root)
            for shape in slide.shapes:
                _load_shape(document, root, shape, space, (0.0, 0.0), slide)
            continue

        shapes = list(slide.shapes)
        rec = _read_record(shapes[0]._element) if len(shapes) == 1 else None
        if rec is not None and rec.get("type") == FrameNode.type:
            # a frame saved by us; its record holds the page position
            _load_shape(document, document.page, shapes[0], space, (0.0, 0.0), slide)
            continue

        frame: FrameNode = document._create(FrameNode)
        frame.name = f"Slide {i + 1}: {name}" if name else f"Slide {i + 1}"
        frame._x, frame._y = i * 2000.0, 0.0
        frame._width, frame._height = SLIDE_WIDTH, float(prs.slide_height or SLIDE_HEIGHT_EMU) / unit
        frame.fills = _load_background(slide)
        frame.speaker_notes = _notes(slide)
        _attach(document.page, frame)
        for shape in shapes:
            _load_shape(document, frame, shape, space, (0.0, 0.0), slide)

    return document
