"""IR package: the deck description consumed and produced by the sync engine.

Public API:
- `parse_ir(text) -> IRDocument`
- `slide_from_dict(raw) -> Slide`
- `content_from_dict(archetype, data) -> SlideContent`
- `validate_deck(doc) -> list[ValidationWarning]`

    from deckbridge.core.ir import parse_ir, validate_deck
"""

from __future__ import annotations

from .parse import parse_ir
from .types import (
    ARCHETYPES,
    DeckIR,
    IRDocument,
    Slide,
    SlideContent,
    VisualRegion,
    content_from_dict,
    slide_from_dict,
)
from .validate import ValidationWarning, validate_deck

__all__ = [
    "ARCHETYPES",
    "DeckIR",
    "IRDocument",
    "Slide",
    "SlideContent",
    "VisualRegion",
    "ValidationWarning",
    "content_from_dict",
    "parse_ir",
    "slide_from_dict",
    "validate_deck",
]
