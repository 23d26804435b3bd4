"""Sync configuration.

Defaults reproduce the engine's built-in behaviour; a JSON file (validated against
`config.schema.json`) can override any field:

    {
      "mapping_key": "deckbridge_id_mapping",
      "fonts": {"fallbacks": ["Inter", "Arial"], "available": ["Arial"]},
      "classifier": {"title_min_font": 84, "row_tolerance": 40}
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from deckbridge.core.canvas.fonts import FONT_FALLBACKS
from deckbridge.core.errors import ConfigError
from deckbridge.core.sync.mapping import MAPPING_KEY
from deckbridge.core.validate.schema_validate import load_schema, validate_instance


@dataclass
class ClassifierConfig:
    """Thresholds used by the reverse classifier and the export sort.

    The values are hand-tuned heuristics, not invariants.
    """

    slide_width: float = 1920.0
    slide_height: float = 1080.0
    # title: one dominant leaf, at most one companion
    title_min_font: float = 80.0
    title_max_leaves: int = 2
    # section: a single leaf
    section_min_font: float = 60.0
    # headline pick for bullets / two-column / chart / timeline
    headline_min_font: float = 48.0
    min_bullets: int = 2
    # two-column: split at width / 2 - offset
    column_split_offset: float = 100.0
    min_column_leaves: int = 2
    # two-column: body text below this size; larger text is a headline
    column_body_max_font: float = 40.0
    # timeline: leaves inside a horizontal band, on few distinct rows
    timeline_band_top: float = 350.0
    timeline_band_bottom: float = 550.0
    timeline_min_leaves: int = 3
    timeline_row_bucket: float = 50.0
    timeline_max_rows: int = 2
    timeline_stage_bucket: float = 300.0
    chart_marker: str = "[Chart"
    takeaway_min_y: float = 700.0
    summary_min_leaves: int = 3
    summary_max_leaves: int = 5
    summary_headline_min_font: float = 60.0
    summary_item_min_font: float = 28.0
    summary_item_max_font: float = 40.0
    summary_min_items: int = 2
    big_idea_min_font: float = 60.0
    big_idea_leaves: int = 2
    # name-based title/big-idea tie-break
    title_detect_font: float = 90.0
    # export reading order: leaves closer than this vertically share a row
    row_tolerance: float = 50.0
    # per-leaf roles in the exported elements
    label_max_y: float = 200.0
    label_max_font: float = 24.0
    element_headline_min_font: float = 48.0
    element_headline_max_y: float = 500.0
    accent_min_font: float = 20.0
    accent_max_font: float = 36.0
    accent_min_chars: int = 20
    caption_max_font: float = 18.0
    subline_min_y: float = 400.0
    subline_max_y: float = 650.0
    subline_min_font: float = 28.0
    subline_max_font: float = 40.0


@dataclass
class FontConfig:
    fallbacks: list[str] = field(default_factory=lambda: list(FONT_FALLBACKS))
    # None: every family loads
    available: list[str] | None = None


@dataclass
class SyncConfig:
    mapping_key: str = MAPPING_KEY
    storage_path: str | None = None
    fonts: FontConfig = field(default_factory=FontConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)


def _apply(obj: Any, data: dict[str, Any]) -> None:
    names = {f.name for f in fields(obj)}
    for k, v in data.items():
        if k in names:
            setattr(obj, k, v)


def config_from_dict(data: dict[str, Any]) -> SyncConfig:
    errors = validate_instance(load_schema("config"), data)
    if errors:
        raise ConfigError("configuration does not conform to config.schema.json", errors)

    cfg = SyncConfig()
    if "mapping_key" in data:
        cfg.mapping_key = data["mapping_key"]
    if "storage_path" in data:
        cfg.storage_path = data["storage_path"]
    _apply(cfg.fonts, data.get("fonts") or {})
    _apply(cfg.classifier, data.get("classifier") or {})

    c = cfg.classifier
    if c.timeline_band_top >= c.timeline_band_bottom:
        raise ConfigError("classifier.timeline_band_top must be below timeline_band_bottom")
    if c.summary_min_leaves > c.summary_max_leaves:
        raise ConfigError("classifier.summary_min_leaves exceeds summary_max_leaves")
    return cfg


def load_config(path: str | Path | None) -> SyncConfig:
    """Load configuration from a JSON file; `None` gives the defaults."""
    if path is None:
        return SyncConfig()
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"config not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"config is not valid JSON: {p} ({e})") from e
    if not isinstance(data, dict):
        raise ConfigError(f"expected config at {p} to be a JSON object")
    return config_from_dict(data)
