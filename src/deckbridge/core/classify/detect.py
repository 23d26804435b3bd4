"""Name-based archetype detection.

Looks only at the names of a slide root's direct children: the containers and
leaves the renderer names (see `render.names`). Rules are tried in order and
the first match wins. Used by the apply engine to decide between update-in-place
and rebuild, and by export before falling back to content-based inference.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from deckbridge.core.canvas.nodes import ChildrenNode, FrameNode, TextNode
from deckbridge.core.ir.types import UNKNOWN_ARCHETYPE
from deckbridge.core.render import names as n

DEFAULT_TITLE_FONT = 90.0


@dataclass
class ChildNames:
    """Names of the direct children of a slide root, split by kind."""

    texts: set[str]
    frames: set[str]
    others: set[str]
    headline_font: float | None = None

    @property
    def all(self) -> set[str]:
        return self.texts | self.frames | self.others

    def text_prefixed(self, *prefixes: str) -> bool:
        return any(name.startswith(prefixes) for name in self.texts)


def child_names(root: ChildrenNode) -> ChildNames:
    texts: set[str] = set()
    frames: set[str] = set()
    others: set[str] = set()
    headline_font = None
    for child in root.children:
        if isinstance(child, TextNode):
            texts.add(child.name)
            if child.name == n.HEADLINE and headline_font is None:
                headline_font = child.font_size
        elif isinstance(child, FrameNode):
            frames.add(child.name)
        else:
            others.add(child.name)
    return ChildNames(texts, frames, others, headline_font)


@dataclass(frozen=True)
class NameRule:
    archetype: str
    matches: Callable[[ChildNames], bool]


def _frame(name: str) -> Callable[[ChildNames], bool]:
    return lambda c: name in c.frames


def _is_position_cards(c: ChildNames) -> bool:
    if c.all & {n.EYEBROW, n.FEATURES_HEADER, n.FEATURES_BG}:
        return True
    return any(n.CARD_RE.match(name) or n.FEATURE_RE.match(name) for name in c.texts)


# flow containers first, then leaf names, then the headline-only fallbacks
NAME_RULES: list[NameRule] = [
    NameRule("bullets", _frame(n.BULLETS_CONTAINER)),
    NameRule("big-idea", _frame(n.BIG_IDEA_CONTAINER)),
    NameRule("title", lambda c: n.TITLE_CONTAINER in c.frames or n.TITLE_GRADIENT_BG in c.all),
    NameRule("section", _frame(n.SECTION_CONTAINER)),
    NameRule("quote", _frame(n.QUOTE_CONTAINER)),
    NameRule("summary", _frame(n.SUMMARY_CONTAINER)),
    NameRule("video", _frame(n.VIDEO_CONTAINER)),
    NameRule("two-column", _frame(n.TWO_COLUMN_CONTAINER)),
    NameRule("position-cards", _is_position_cards),
    NameRule("two-column", lambda c: bool(c.texts & {n.LEFT_TITLE, n.RIGHT_TITLE})),
    NameRule("quote", lambda c: n.QUOTE in c.texts and n.ATTRIBUTION in c.texts),
    NameRule("bullets", lambda c: c.text_prefixed("bullet-")),
    NameRule("summary", lambda c: c.text_prefixed("item-")),
    NameRule("timeline", lambda c: c.text_prefixed("stage-")),
    NameRule("comparison", lambda c: c.text_prefixed("col-", "cell-")),
    NameRule("chart", lambda c: n.CHART_PLACEHOLDER in c.texts),
]


def detect_archetype(root: ChildrenNode, title_font: float = DEFAULT_TITLE_FONT) -> str:
    """Archetype of a rendered slide root from its children's names, or "unknown"."""
    c = child_names(root)
    for rule in NAME_RULES:
        if rule.matches(c):
            return rule.archetype

    # headline + subline leaves only: title and big-idea differ by headline size
    if n.HEADLINE in c.texts and n.SUBLINE in c.texts:
        if c.headline_font is not None and c.headline_font >= title_font:
            return "title"
        return "big-idea"
    if c.texts == {n.HEADLINE}:
        return "section"
    return UNKNOWN_ARCHETYPE
