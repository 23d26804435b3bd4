"""Stable node names and text decorations.

A rendered node's name is the only persistent link between an IR field and its
visual counterpart. The renderer, the update path and the classifier all take
names (and the bullet/quote/attribution/chart decorations) from here.
"""

from __future__ import annotations

import re
from typing import Iterable, TypeVar

from deckbridge.core.ir.types import (
    BulletsContent,
    ChartContent,
    ComparisonContent,
    PositionCardsContent,
    QuoteContent,
    SlideContent,
    SummaryContent,
    TimelineContent,
    TwoColumnContent,
    VideoContent,
)

T = TypeVar("T")

# text leaves
HEADLINE = "headline"
SUBLINE = "subline"
EYEBROW = "eyebrow"
QUOTE = "quote"
ATTRIBUTION = "attribution"
TAKEAWAY = "takeaway"
CHART_PLACEHOLDER = "chart-placeholder"
VIDEO_URL = "video-url"
CAPTION = "caption"
LEFT_TITLE = "left-title"
LEFT_BODY = "left-body"
RIGHT_TITLE = "right-title"
RIGHT_BODY = "right-body"
FEATURES_HEADER = "features-header"

# containers and decorations
TITLE_GRADIENT_BG = "title-gradient-bg"
TITLE_CONTAINER = "title-container"
SECTION_CONTAINER = "section-container"
BIG_IDEA_CONTAINER = "big-idea-container"
BULLETS_CONTAINER = "bullets-container"
TWO_COLUMN_CONTAINER = "two-column-container"
COLUMNS_CONTAINER = "columns-container"
LEFT_COLUMN = "left-column"
RIGHT_COLUMN = "right-column"
QUOTE_CONTAINER = "quote-container"
SUMMARY_CONTAINER = "summary-container"
ITEMS_CONTAINER = "items-container"
VIDEO_CONTAINER = "video-container"
VIDEO_PLACEHOLDER = "video-placeholder"
PLAY_CIRCLE = "play-circle"
PLAY_TRIANGLE = "play-triangle"
FEATURES_BG = "features-bg"
VISUAL = "visual"


def bullet(i: int) -> str:
    return f"bullet-{i}"


def item(i: int) -> str:
    return f"item-{i}"


def stage_marker(i: int) -> str:
    return f"stage-{i}-marker"


def stage_label(i: int) -> str:
    return f"stage-{i}-label"


def stage_desc(i: int) -> str:
    return f"stage-{i}-desc"


def column(i: int) -> str:
    return f"col-{i}"


def cell(r: int, c: int) -> str:
    return f"cell-{r}-{c}"


def card_part(i: int, part: str) -> str:
    # part: bg, label, title, body, badge-bg, badge
    return f"card-{i}-{part}"


def feature_part(i: int, part: str) -> str:
    # part: dot, label, desc
    return f"feature-{i}-{part}"


def connector(i: int) -> str:
    return f"connector-{i}"


def arrow(i: int) -> str:
    return f"arrow-{i}"


def diagram_node(i: int) -> str:
    return f"node-{i}"


def diagram_label(i: int) -> str:
    return f"label-{i}"


def icon(name: str, part: str | None = None) -> str:
    return f"icon-{name}-{part}" if part else f"icon-{name}"


BULLET_RE = re.compile(r"^bullet-(\d+)$")
ITEM_RE = re.compile(r"^item-(\d+)$")
STAGE_LABEL_RE = re.compile(r"^stage-(\d+)-label$")
STAGE_DESC_RE = re.compile(r"^stage-(\d+)-desc$")
COLUMN_RE = re.compile(r"^col-(\d+)$")
CELL_RE = re.compile(r"^cell-(\d+)-(\d+)$")
CARD_RE = re.compile(r"^card-(\d+)-(label|title|body|badge)$")
FEATURE_RE = re.compile(r"^feature-(\d+)-(label|desc)$")
DIAGRAM_NODE_RE = re.compile(r"^node-(\d+)$")
DIAGRAM_LABEL_RE = re.compile(r"^label-(\d+)$")
ICON_RE = re.compile(r"^icon-([a-z]+)")

SEQUENCE_PREFIXES = ("bullet-", "item-", "stage-", "col-", "cell-", "card-", "feature-")


def indexed(pairs: Iterable[tuple[str, T]], pattern: re.Pattern[str]) -> list[tuple[int, T]]:
    """(index, value) for every name matching `pattern`, sorted by index."""
    out: list[tuple[int, T]] = []
    for name, value in pairs:
        m = pattern.match(name)
        if m:
            out.append((int(m.group(1)), value))
    out.sort(key=lambda p: p[0])
    return out


# decorations

BULLET_MARKERS = ("•", "-")
QUOTE_MARKS = ('"', "“", "”")
ATTRIBUTION_MARKS = ("—", "-")

_BULLET_PREFIX = re.compile(r"^[•-]\s*")
_QUOTE_ENDS = re.compile(r'^["“”]|["“”]$')
_ATTRIBUTION_PREFIX = re.compile(r"^[—-]\s*")
_CHART_TYPE = re.compile(r"\[Chart:\s*(\w+)\]")


def decorate_bullet(text: str) -> str:
    return f"• {text}"


def strip_bullet(text: str) -> str:
    return _BULLET_PREFIX.sub("", text)


def decorate_quote(text: str) -> str:
    return f'"{text}"'


def strip_quote(text: str) -> str:
    return _QUOTE_ENDS.sub("", text)


def decorate_attribution(text: str) -> str:
    return f"— {text}"


def strip_attribution(text: str) -> str:
    return _ATTRIBUTION_PREFIX.sub("", text)


def chart_placeholder(chart_type: str | None) -> str:
    return f"[Chart: {chart_type or 'data'}]"


def parse_chart_type(text: str) -> str:
    m = _CHART_TYPE.search(text)
    return m.group(1) if m else "data"


def field_texts(content: SlideContent) -> list[tuple[str, str | None]]:
    """(leaf name, rendered text) for every text field of `content`.

    Absent fields give None. The text is exactly what the renderer writes,
    decorations included.
    """
    out: list[tuple[str, str | None]] = []
    c = content

    if isinstance(c, QuoteContent):
        out.append((QUOTE, decorate_quote(c.quote) if c.quote else None))
        out.append((ATTRIBUTION, decorate_attribution(c.attribution) if c.attribution else None))
    elif isinstance(c, PositionCardsContent):
        out.append((EYEBROW, c.eyebrow))
        out.append((HEADLINE, c.headline))
        out.append((SUBLINE, c.subline))
        for i, card in enumerate((c.cards or [])[:3]):
            out.append((card_part(i, "label"), card.label))
            out.append((card_part(i, "title"), card.title))
            out.append((card_part(i, "body"), card.body))
            out.append((card_part(i, "badge"), card.badge))
        if c.features:
            out.append((FEATURES_HEADER, c.features_header))
        for i, feature in enumerate(c.features or []):
            out.append((feature_part(i, "label"), feature.label))
            out.append((feature_part(i, "desc"), feature.description))
    else:
        out.append((HEADLINE, getattr(c, "headline", None)))
        if hasattr(c, "subline"):
            out.append((SUBLINE, getattr(c, "subline")))

    if isinstance(c, BulletsContent):
        for i, b in enumerate(c.bullets or []):
            out.append((bullet(i), decorate_bullet(b)))
    elif isinstance(c, TwoColumnContent):
        if c.left is not None:
            out.append((LEFT_TITLE, c.left.title))
            out.append((LEFT_BODY, c.left.body))
        if c.right is not None:
            out.append((RIGHT_TITLE, c.right.title))
            out.append((RIGHT_BODY, c.right.body))
    elif isinstance(c, SummaryContent):
        for i, it in enumerate(c.items or []):
            out.append((item(i), it))
    elif isinstance(c, ChartContent):
        if c.chart is not None:
            out.append((CHART_PLACEHOLDER, chart_placeholder(c.chart.type)))
        out.append((TAKEAWAY, c.takeaway))
    elif isinstance(c, VideoContent):
        out.append((VIDEO_URL, c.video_url))
        out.append((CAPTION, c.caption))
    elif isinstance(c, TimelineContent):
        for i, stage in enumerate(c.stages or []):
            out.append((stage_label(i), stage.label))
            out.append((stage_desc(i), stage.description))
    elif isinstance(c, ComparisonContent):
        for i, col in enumerate(c.columns or []):
            out.append((column(i), col))
        for r, row in enumerate(c.rows or []):
            for ci, value in enumerate(row):
                out.append((cell(r, ci), value))

    v = c.visual
    if v is not None and v.kind == "cycle":
        for i, label in enumerate(v.nodes or []):
            out.append((diagram_label(i), label))
    return out
