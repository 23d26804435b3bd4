"""Font fallback chain.

Families are tried in order; the first one whose Regular and Bold styles both
load is cached process-wide and reused. `FONT_CACHE.clear()` resets it.
"""

from __future__ import annotations

from dataclasses import dataclass

from deckbridge.core.canvas.nodes import Document, FontName
from deckbridge.core.errors import FontUnavailableError

FONT_FALLBACKS = ["Supply", "Inter", "SF Pro Display", "Helvetica Neue", "Arial"]


@dataclass(frozen=True)
class LoadedFont:
    family: str
    regular: FontName
    bold: FontName


class FontCache:
    def __init__(self) -> None:
        self._font: LoadedFont | None = None

    @property
    def font(self) -> LoadedFont | None:
        return self._font

    def set(self, font: LoadedFont) -> None:
        self._font = font

    def clear(self) -> None:
        self._font = None


FONT_CACHE = FontCache()


def try_load_font(document: Document, family: str) -> LoadedFont | None:
    regular = FontName(family, "Regular")
    bold = FontName(family, "Bold")
    try:
        document.load_font(regular)
        document.load_font(bold)
    except FontUnavailableError:
        return None
    return LoadedFont(family, regular, bold)


def load_font_with_fallback(document: Document, fallbacks: list[str] | None = None) -> LoadedFont:
    cached = FONT_CACHE.font
    # the cached family still has to be loaded into this document
    if cached is not None and try_load_font(document, cached.family) is not None:
        return cached

    chain = list(fallbacks or FONT_FALLBACKS)
    for family in chain:
        loaded = try_load_font(document, family)
        if loaded is not None:
            FONT_CACHE.set(loaded)
            return loaded
    raise FontUnavailableError(f"no font available from fallback chain: {', '.join(chain)}")


def get_font_name(document: Document, bold: bool = False, fallbacks: list[str] | None = None) -> FontName:
    fonts = load_font_with_fallback(document, fallbacks)
    return fonts.bold if bold else fonts.regular
