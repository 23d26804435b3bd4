"""IR data model.

Slide content is a closed tagged union: one dataclass per archetype, each holding
only the fields that archetype renders. Keys a variant does not recognize are
kept in `unknown_fields` and written back by `to_dict`, never rendered.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar

from deckbridge.core.errors import ContentError

ARCHETYPES = (
    "title",
    "section",
    "big-idea",
    "bullets",
    "two-column",
    "quote",
    "summary",
    "chart",
    "video",
    "timeline",
    "comparison",
    "position-cards",
)
UNKNOWN_ARCHETYPE = "unknown"
STATUSES = ("draft", "locked", "stub")
VISUAL_KINDS = ("image", "cycle")
VISUAL_POSITIONS = ("right", "center", "below")
BADGE_COLORS = ("green", "cyan", "orange")


# field parsers: (key, value) -> parsed value, ContentError on a wrong shape


def _str(key: str, v: Any) -> str | None:
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"{key} must be a string, got {type(v).__name__}")
    return v


def _num(key: str, v: Any) -> float | None:
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ContentError(f"{key} must be a number, got {type(v).__name__}")
    return float(v)


def _str_list(key: str, v: Any) -> list[str] | None:
    if v is None:
        return None
    if not isinstance(v, list):
        raise ContentError(f"{key} must be a list, got {type(v).__name__}")
    return [_str(f"{key}[{i}]", x) or "" for i, x in enumerate(v)]


def _matrix(key: str, v: Any) -> list[list[str]] | None:
    if v is None:
        return None
    if not isinstance(v, list):
        raise ContentError(f"{key} must be a list of rows, got {type(v).__name__}")
    return [_str_list(f"{key}[{i}]", row) or [] for i, row in enumerate(v)]


def _record(cls: type) -> Callable[[str, Any], Any]:
    def parse(key: str, v: Any) -> Any:
        if v is None:
            return None
        return cls.from_dict(v, key)

    return parse


def _record_list(cls: type) -> Callable[[str, Any], Any]:
    def parse(key: str, v: Any) -> Any:
        if v is None:
            return None
        if not isinstance(v, list):
            raise ContentError(f"{key} must be a list, got {type(v).__name__}")
        return [cls.from_dict(x, f"{key}[{i}]") for i, x in enumerate(v)]

    return parse


def _dump(v: Any) -> Any:
    if isinstance(v, _Record):
        return v.to_dict()
    if isinstance(v, list):
        return [_dump(x) for x in v]
    return v


def _require_mapping(key: str, data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ContentError(f"{key} must be an object, got {type(data).__name__}")
    return data


class _Record:
    """Mixin for dataclasses parsed from / dumped to a JSON object by `_parsers`."""

    _parsers: ClassVar[dict[str, Callable[[str, Any], Any]]] = {}
    _required: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_dict(cls, data: Any, key: str = "content") -> Any:
        data = _require_mapping(key, data)
        kwargs: dict[str, Any] = {}
        unknown: dict[str, Any] = {}
        for k, v in data.items():
            parser = cls._parsers.get(k)
            if parser is None:
                unknown[k] = v
            else:
                kwargs[k] = parser(f"{key}.{k}", v)
        for k in cls._required:
            if kwargs.get(k) is None:
                kwargs[k] = ""
        obj = cls(**kwargs)
        if unknown:
            obj.unknown_fields = unknown
        return obj

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for k in self._parsers:
            v = getattr(self, k)
            if v is not None:
                out[k] = _dump(v)
        out.update(getattr(self, "unknown_fields", {}) or {})
        return out


@dataclass
class Column(_Record):
    title: str = ""
    body: str = ""
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    _parsers = {"title": _str, "body": _str}
    _required = ("title", "body")


@dataclass
class ChartSpec(_Record):
    type: str = "data"
    placeholder: bool | None = None
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    _parsers = {"type": _str, "placeholder": lambda k, v: None if v is None else bool(v)}
    _required = ("type",)


@dataclass
class TimelineStage(_Record):
    label: str = ""
    description: str | None = None
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    _parsers = {"label": _str, "description": _str}
    _required = ("label",)


def _badge_color(key: str, v: Any) -> str | None:
    s = _str(key, v)
    if s is not None and s not in BADGE_COLORS:
        raise ContentError(f"{key} must be one of {', '.join(BADGE_COLORS)}, got {s!r}")
    return s


@dataclass
class Card(_Record):
    label: str = ""
    title: str = ""
    body: str = ""
    badge: str | None = None
    badge_color: str | None = None
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    _parsers = {"label": _str, "title": _str, "body": _str, "badge": _str, "badge_color": _badge_color}
    _required = ("label", "title", "body")


@dataclass
class Feature(_Record):
    label: str = ""
    description: str = ""
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    _parsers = {"label": _str, "description": _str}
    _required = ("label", "description")


def _visual_kind(key: str, v: Any) -> str | None:
    s = _str(key, v)
    if s is not None and s not in VISUAL_KINDS:
        raise ContentError(f"{key} must be one of {', '.join(VISUAL_KINDS)}, got {s!r}")
    return s


def _visual_position(key: str, v: Any) -> str | None:
    s = _str(key, v)
    if s is not None and s not in VISUAL_POSITIONS:
        raise ContentError(f"{key} must be one of {', '.join(VISUAL_POSITIONS)}, got {s!r}")
    return s


@dataclass
class VisualRegion(_Record):
    """Optional overlay: an embedded image or a generated cycle diagram.

    On the wire the kind is the `type` key. `content` holds the image as base64
    (a `data:` URI prefix is accepted).
    """

    type: str = "cycle"
    position: str | None = None
    width: float | None = None
    height: float | None = None
    nodes: list[str] | None = None
    colors: list[str] | None = None
    icons: list[str] | None = None
    content: str | None = None
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    _parsers = {
        "type": _visual_kind,
        "position": _visual_position,
        "width": _num,
        "height": _num,
        "nodes": _str_list,
        "colors": _str_list,
        "icons": _str_list,
        "content": _str,
    }
    _required = ("type",)

    @property
    def kind(self) -> str:
        return self.type

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        for k in ("width", "height"):
            v = out.get(k)
            if isinstance(v, float) and v.is_integer():
                out[k] = int(v)
        return out


_COMMON = {"visual": _record(VisualRegion)}


@dataclass
class SlideContent(_Record):
    archetype: ClassVar[str] = UNKNOWN_ARCHETYPE

    visual: VisualRegion | None = None
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    @property
    def title_text(self) -> str | None:
        return getattr(self, "headline", None)


@dataclass
class GenericContent(SlideContent):
    """Content of a slide whose archetype tag is not recognized."""

    headline: str | None = None
    subline: str | None = None

    _parsers = {"headline": _str, "subline": _str, **_COMMON}


@dataclass
class TitleContent(SlideContent):
    archetype = "title"
    headline: str | None = None
    subline: str | None = None

    _parsers = {"headline": _str, "subline": _str, **_COMMON}


@dataclass
class SectionContent(SlideContent):
    archetype = "section"
    headline: str | None = None

    _parsers = {"headline": _str, **_COMMON}


@dataclass
class BigIdeaContent(SlideContent):
    archetype = "big-idea"
    headline: str | None = None
    subline: str | None = None

    _parsers = {"headline": _str, "subline": _str, **_COMMON}


@dataclass
class BulletsContent(SlideContent):
    archetype = "bullets"
    headline: str | None = None
    bullets: list[str] | None = None

    _parsers = {"headline": _str, "bullets": _str_list, **_COMMON}


@dataclass
class TwoColumnContent(SlideContent):
    archetype = "two-column"
    headline: str | None = None
    left: Column | None = None
    right: Column | None = None

    _parsers = {"headline": _str, "left": _record(Column), "right": _record(Column), **_COMMON}


@dataclass
class QuoteContent(SlideContent):
    archetype = "quote"
    quote: str | None = None
    attribution: str | None = None

    _parsers = {"quote": _str, "attribution": _str, **_COMMON}


@dataclass
class SummaryContent(SlideContent):
    archetype = "summary"
    headline: str | None = None
    items: list[str] | None = None

    _parsers = {"headline": _str, "items": _str_list, **_COMMON}


@dataclass
class ChartContent(SlideContent):
    archetype = "chart"
    headline: str | None = None
    chart: ChartSpec | None = None
    takeaway: str | None = None

    _parsers = {"headline": _str, "chart": _record(ChartSpec), "takeaway": _str, **_COMMON}


@dataclass
class VideoContent(SlideContent):
    archetype = "video"
    headline: str | None = None
    video_url: str | None = None
    caption: str | None = None

    _parsers = {"headline": _str, "video_url": _str, "caption": _str, **_COMMON}


@dataclass
class TimelineContent(SlideContent):
    archetype = "timeline"
    headline: str | None = None
    stages: list[TimelineStage] | None = None

    _parsers = {"headline": _str, "stages": _record_list(TimelineStage), **_COMMON}


@dataclass
class ComparisonContent(SlideContent):
    archetype = "comparison"
    headline: str | None = None
    columns: list[str] | None = None
    rows: list[list[str]] | None = None

    _parsers = {"headline": _str, "columns": _str_list, "rows": _matrix, **_COMMON}


@dataclass
class PositionCardsContent(SlideContent):
    archetype = "position-cards"
    eyebrow: str | None = None
    headline: str | None = None
    subline: str | None = None
    cards: list[Card] | None = None
    features: list[Feature] | None = None
    features_header: str | None = None

    _parsers = {
        "eyebrow": _str,
        "headline": _str,
        "subline": _str,
        "cards": _record_list(Card),
        "features": _record_list(Feature),
        "features_header": _str,
        **_COMMON,
    }


CONTENT_TYPES: dict[str, type[SlideContent]] = {
    cls.archetype: cls
    for cls in (
        TitleContent,
        SectionContent,
        BigIdeaContent,
        BulletsContent,
        TwoColumnContent,
        QuoteContent,
        SummaryContent,
        ChartContent,
        VideoContent,
        TimelineContent,
        ComparisonContent,
        PositionCardsContent,
    )
}


def content_from_dict(archetype: str, data: Any) -> SlideContent:
    cls = CONTENT_TYPES.get(archetype, GenericContent)
    return cls.from_dict({} if data is None else data)


@dataclass
class Slide:
    id: str
    archetype: str
    status: str = "draft"
    content: SlideContent = field(default_factory=GenericContent)
    extras: list[str] | None = None
    speaker_notes: str | None = None
    # rich read (export only)
    node_id: str | None = None
    elements: list[dict[str, Any]] | None = None
    has_diagram: bool | None = None

    @property
    def is_locked(self) -> bool:
        return self.status == "locked"

    @property
    def display_name(self) -> str:
        return self.content.title_text or self.archetype

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "archetype": self.archetype,
            "status": self.status,
            "content": self.content.to_dict(),
        }
        if self.extras:
            out["extras"] = list(self.extras)
        if self.speaker_notes:
            out["speaker_notes"] = self.speaker_notes
        if self.node_id is not None:
            out["node_id"] = self.node_id
        if self.elements is not None:
            out["elements"] = self.elements
        if self.has_diagram is not None:
            out["has_diagram"] = self.has_diagram
        return out


def slide_from_dict(data: dict[str, Any]) -> Slide:
    """Convert one raw slide record; raises ContentError on a wrong shape."""
    data = _require_mapping("slide", data)
    sid = _str("id", data.get("id"))
    archetype = _str("archetype", data.get("archetype"))
    if not sid or not archetype:
        raise ContentError("slide needs a non-empty id and archetype")
    status = _str("status", data.get("status")) or "draft"
    if status not in STATUSES:
        raise ContentError(f"status must be one of {', '.join(STATUSES)}, got {status!r}")
    return Slide(
        id=sid,
        archetype=archetype,
        status=status,
        content=content_from_dict(archetype, data.get("content")),
        extras=_str_list("extras", data.get("extras")),
        speaker_notes=_str("speaker_notes", data.get("speaker_notes")),
    )


@dataclass
class IRDocument:
    """Parsed IR envelope; slides stay raw until converted one at a time."""

    title: str | None = None
    slides: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class DeckIR:
    title: str | None = None
    slides: list[Slide] = field(default_factory=list)
    containers: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.title is not None:
            out["deck"] = {"title": self.title}
        out["slides"] = [s.to_dict() for s in self.slides]
        if self.containers is not None:
            out["containers"] = self.containers
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)
