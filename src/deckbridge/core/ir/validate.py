"""Authoring checks for an IR deck.

Errors: missing or duplicate slide id, unknown status or archetype, missing
required field, wrongly shaped content. Warnings: word and item limits per archetype.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from deckbridge.core.errors import ContentError
from deckbridge.core.ir.types import STATUSES, IRDocument, content_from_dict


@dataclass
class ValidationWarning:
    slide_id: str
    field: str
    message: str
    severity: str  # "warning" | "error"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# archetype -> (required fields, {field: {"max_words": n} | {"max_items": n}})
ARCHETYPE_RULES: dict[str, tuple[tuple[str, ...], dict[str, dict[str, int]]]] = {
    "title": (("headline",), {"headline": {"max_words": 8}, "subline": {"max_words": 15}}),
    "section": (("headline",), {"headline": {"max_words": 5}}),
    "big-idea": (("headline", "subline"), {"headline": {"max_words": 12}, "subline": {"max_words": 20}}),
    "bullets": (("headline", "bullets"), {"headline": {"max_words": 8}, "bullets": {"max_items": 3}}),
    "two-column": (("headline", "left", "right"), {"headline": {"max_words": 8}}),
    "quote": (("quote", "attribution"), {"quote": {"max_words": 30}}),
    "summary": (("headline", "items"), {"headline": {"max_words": 8}, "items": {"max_items": 3}}),
    "chart": (("headline",), {"headline": {"max_words": 10}, "takeaway": {"max_words": 15}}),
    "video": (("video_url",), {"headline": {"max_words": 8}, "caption": {"max_words": 15}}),
    "timeline": (("headline", "stages"), {"headline": {"max_words": 8}, "stages": {"max_items": 5}}),
    "comparison": (
        ("headline", "columns", "rows"),
        {"headline": {"max_words": 8}, "columns": {"max_items": 4}, "rows": {"max_items": 5}},
    ),
    "position-cards": (
        ("headline", "cards"),
        {"headline": {"max_words": 10}, "cards": {"max_items": 3}, "features": {"max_items": 8}},
    ),
}


def count_words(text: str) -> int:
    return len(text.split())


def validate_deck(doc: IRDocument) -> list[ValidationWarning]:
    warnings: list[ValidationWarning] = []
    seen: set[str] = set()

    for raw in doc.slides:
        sid = str(raw.get("id", ""))
        if sid in seen:
            warnings.append(ValidationWarning(sid, "id", f"Duplicate slide id: {sid}", "error"))
        seen.add(sid)
        if not sid:
            warnings.append(ValidationWarning(sid, "id", "Missing slide id", "error"))
        status = raw.get("status", "draft")
        if status not in STATUSES:
            warnings.append(ValidationWarning(sid, "status", f"Unknown status: {status}", "error"))

        archetype = raw.get("archetype")
        rules = ARCHETYPE_RULES.get(archetype)  # type: ignore[arg-type]
        if rules is None:
            warnings.append(ValidationWarning(sid, "archetype", f"Unknown archetype: {archetype}", "error"))
            continue

        content = raw.get("content") or {}
        try:
            content_from_dict(archetype, content)
        except ContentError as e:
            warnings.append(ValidationWarning(sid, "content", str(e), "error"))
            continue

        required, constraints = rules
        for f in required:
            value = content.get(f)
            if value is None or value == "" or value == []:
                warnings.append(ValidationWarning(sid, f, f"Missing required field: {f}", "error"))

        for f, limit in constraints.items():
            value = content.get(f)
            if value is None:
                continue
            max_words = limit.get("max_words")
            if max_words and isinstance(value, str):
                n = count_words(value)
                if n > max_words:
                    warnings.append(ValidationWarning(sid, f, f"{f} has {n} words (max {max_words})", "warning"))
            max_items = limit.get("max_items")
            if max_items and isinstance(value, list) and len(value) > max_items:
                warnings.append(
                    ValidationWarning(sid, f, f"{f} has {len(value)} items (max {max_items})", "warning")
                )

    return warnings
