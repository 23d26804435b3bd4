"""Content-based archetype inference for slides without recognizable names.

Works on the bag of text leaves of a slide (text, position, font size,
boldness, width). `RULES` is tried in order and the first rule whose predicate
holds builds the content; the leaves it used are claimed. Unclaimed non-empty
text is returned verbatim as extras. When no rule matches the slide is
"unknown": first leaf as headline, second as subline.

All thresholds come from `ClassifierConfig`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from deckbridge.core.config import ClassifierConfig
from deckbridge.core.ir.types import (
    UNKNOWN_ARCHETYPE,
    BigIdeaContent,
    BulletsContent,
    ChartContent,
    ChartSpec,
    Column,
    GenericContent,
    QuoteContent,
    SectionContent,
    SlideContent,
    SummaryContent,
    TimelineContent,
    TimelineStage,
    TitleContent,
    TwoColumnContent,
)
from deckbridge.core.render import names


@dataclass(eq=False)
class TextLeaf:
    text: str
    x: float
    y: float
    font_size: float
    bold: bool = False
    width: float = 0.0
    node_id: str | None = None


def _js_round(v: float) -> int:
    # half away from zero for the positive coordinates used here
    return math.floor(v + 0.5)


def _first(leaves: list[TextLeaf], pred: Callable[[TextLeaf], bool]) -> TextLeaf | None:
    return next((t for t in leaves if pred(t)), None)


def _is_bullet(t: TextLeaf) -> bool:
    return t.text.startswith(names.BULLET_MARKERS)


def _is_quote(t: TextLeaf) -> bool:
    return t.text.startswith(names.QUOTE_MARKS)


def _is_attribution(t: TextLeaf) -> bool:
    return t.text.startswith(names.ATTRIBUTION_MARKS)


@dataclass
class Signals:
    """Whole-slide measurements shared by the rules."""

    leaves: list[TextLeaf]
    config: ClassifierConfig
    largest: TextLeaf
    bullets: list[TextLeaf]
    left: list[TextLeaf]
    right: list[TextLeaf]
    band: list[TextLeaf]

    @classmethod
    def measure(cls, leaves: list[TextLeaf], config: ClassifierConfig) -> "Signals":
        largest = leaves[0]
        for t in leaves[1:]:
            # ties go to the later leaf
            if t.font_size >= largest.font_size:
                largest = t
        split = config.slide_width / 2 - config.column_split_offset
        return cls(
            leaves=leaves,
            config=config,
            largest=largest,
            bullets=[t for t in leaves if _is_bullet(t)],
            left=[t for t in leaves if t.x < split],
            right=[t for t in leaves if t.x >= split],
            band=[t for t in leaves if config.timeline_band_top < t.y < config.timeline_band_bottom],
        )

    @property
    def count(self) -> int:
        return len(self.leaves)

    def headline(self, min_font: float, exclude: tuple[TextLeaf, ...] = ()) -> TextLeaf | None:
        return _first(self.leaves, lambda t: t.font_size >= min_font and t not in exclude)


# a build returns the content and the leaves it used
Built = tuple[SlideContent, list[Optional[TextLeaf]]]


@dataclass(frozen=True)
class Rule:
    archetype: str
    predicate: Callable[[Signals], bool]
    build: Callable[[Signals], Built]


def _text(t: TextLeaf | None, default: str | None = "") -> str | None:
    return t.text if t is not None else default


# title


def _title_matches(s: Signals) -> bool:
    c = s.config
    return s.largest.font_size >= c.title_min_font and s.count <= c.title_max_leaves


def _build_title(s: Signals) -> Built:
    sub = _first(s.leaves, lambda t: t is not s.largest)
    return TitleContent(headline=s.largest.text, subline=_text(sub, None)), [s.largest, sub]


# section


def _section_matches(s: Signals) -> bool:
    return s.count == 1 and s.largest.font_size >= s.config.section_min_font


def _build_section(s: Signals) -> Built:
    return SectionContent(headline=s.largest.text), [s.largest]


# quote


def _quote_matches(s: Signals) -> bool:
    return any(_is_quote(t) for t in s.leaves) and any(_is_attribution(t) for t in s.leaves)


def _build_quote(s: Signals) -> Built:
    quote = _first(s.leaves, _is_quote)
    attribution = _first(s.leaves, _is_attribution)
    content = QuoteContent(
        quote=names.strip_quote(quote.text) if quote else "",
        attribution=names.strip_attribution(attribution.text) if attribution else "",
    )
    return content, [quote, attribution]


# bullets


def _bullets_matches(s: Signals) -> bool:
    return len(s.bullets) >= s.config.min_bullets


def _build_bullets(s: Signals) -> Built:
    headline = _first(s.leaves, lambda t: t.font_size >= s.config.headline_min_font and not _is_bullet(t))
    content = BulletsContent(headline=_text(headline), bullets=[names.strip_bullet(t.text) for t in s.bullets])
    return content, [headline, *s.bullets]


# two-column


def _two_column_matches(s: Signals) -> bool:
    n = s.config.min_column_leaves
    return len(s.left) >= n and len(s.right) >= n


def _build_two_column(s: Signals) -> Built:
    headline = s.headline(s.config.headline_min_font)

    def title_and_body(side: list[TextLeaf]) -> tuple[TextLeaf | None, TextLeaf | None]:
        title = _first(side, lambda t: t.bold and t is not headline)
        body_max = s.config.column_body_max_font
        body = _first(side, lambda t: not t.bold and t is not headline and t.font_size < body_max)
        return title, body

    lt, lb = title_and_body(s.left)
    rt, rb = title_and_body(s.right)
    content = TwoColumnContent(
        headline=_text(headline),
        left=Column(title=_text(lt) or "", body=_text(lb) or ""),
        right=Column(title=_text(rt) or "", body=_text(rb) or ""),
    )
    return content, [headline, lt, lb, rt, rb]


# chart


def _chart_matches(s: Signals) -> bool:
    return any(s.config.chart_marker in t.text for t in s.leaves)


def _build_chart(s: Signals) -> Built:
    headline = s.headline(s.config.headline_min_font)
    chart = _first(s.leaves, lambda t: s.config.chart_marker in t.text)
    takeaway = _first(s.leaves, lambda t: t.y > s.config.takeaway_min_y and t is not chart and t is not headline)
    content = ChartContent(
        headline=_text(headline),
        chart=ChartSpec(type=names.parse_chart_type(chart.text if chart else ""), placeholder=True),
        takeaway=_text(takeaway, None),
    )
    return content, [headline, chart, takeaway]


# timeline


def _timeline_matches(s: Signals) -> bool:
    c = s.config
    if len(s.band) < c.timeline_min_leaves:
        return False
    rows = {_js_round(t.y / c.timeline_row_bucket) for t in s.band}
    return len(rows) <= c.timeline_max_rows


def _build_timeline(s: Signals) -> Built:
    c = s.config
    headline = s.headline(c.headline_min_font)
    stage_leaves = [t for t in s.leaves if t is not headline and t.y > c.timeline_band_top]

    # stages are columns of leaves, bucketed by x, in first-seen order
    groups: dict[int, list[TextLeaf]] = {}
    for t in stage_leaves:
        groups.setdefault(_js_round(t.x / c.timeline_stage_bucket), []).append(t)
    stages: list[TimelineStage] = []
    for group in groups.values():
        group.sort(key=lambda t: t.y)
        stages.append(TimelineStage(label=group[0].text, description=group[1].text if len(group) > 1 else None))

    return TimelineContent(headline=_text(headline), stages=stages), [headline, *stage_leaves]


# summary


def _summary_items(s: Signals) -> tuple[TextLeaf | None, list[TextLeaf]]:
    c = s.config
    headline = s.headline(c.summary_headline_min_font)
    items = [
        t
        for t in s.leaves
        if t is not headline and c.summary_item_min_font <= t.font_size <= c.summary_item_max_font
    ]
    return headline, items


def _summary_matches(s: Signals) -> bool:
    c = s.config
    if not c.summary_min_leaves <= s.count <= c.summary_max_leaves:
        return False
    return len(_summary_items(s)[1]) >= c.summary_min_items


def _build_summary(s: Signals) -> Built:
    headline, items = _summary_items(s)
    return SummaryContent(headline=_text(headline), items=[t.text for t in items]), [headline, *items]


# big-idea


def _big_idea_matches(s: Signals) -> bool:
    return s.largest.font_size >= s.config.big_idea_min_font and s.count == s.config.big_idea_leaves


def _build_big_idea(s: Signals) -> Built:
    sub = _first(s.leaves, lambda t: t is not s.largest)
    return BigIdeaContent(headline=s.largest.text, subline=_text(sub, None)), [s.largest, sub]


RULES: list[Rule] = [
    Rule("title", _title_matches, _build_title),
    Rule("section", _section_matches, _build_section),
    Rule("quote", _quote_matches, _build_quote),
    Rule("bullets", _bullets_matches, _build_bullets),
    Rule("two-column", _two_column_matches, _build_two_column),
    Rule("chart", _chart_matches, _build_chart),
    Rule("timeline", _timeline_matches, _build_timeline),
    Rule("summary", _summary_matches, _build_summary),
    Rule("big-idea", _big_idea_matches, _build_big_idea),
]


@dataclass
class Inference:
    archetype: str
    content: SlideContent
    extras: list[str] = field(default_factory=list)
    rule: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"archetype": self.archetype, "content": self.content.to_dict()}
        if self.extras:
            out["extras"] = list(self.extras)
        return out


def infer_archetype(leaves: list[TextLeaf], config: ClassifierConfig | None = None) -> Inference:
    """Classify a slide from its text leaves (given in reading order)."""
    cfg = config or ClassifierConfig()
    if not leaves:
        return Inference(UNKNOWN_ARCHETYPE, GenericContent())

    signals = Signals.measure(leaves, cfg)
    for rule in RULES:
        if rule.predicate(signals):
            content, used = rule.build(signals)
            return Inference(rule.archetype, content, _extras(leaves, used), rule.archetype)

    first = leaves[0]
    second = leaves[1] if len(leaves) > 1 else None
    content = GenericContent(headline=first.text, subline=_text(second, None))
    return Inference(UNKNOWN_ARCHETYPE, content, _extras(leaves, [first, second]))


def _extras(leaves: list[TextLeaf], claimed: list[TextLeaf | None]) -> list[str]:
    used = {id(t) for t in claimed if t is not None}
    return [t.text for t in leaves if id(t) not in used and t.text.strip()]
