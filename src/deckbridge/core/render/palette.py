from __future__ import annotations

from deckbridge.core.canvas.nodes import RGB, SLIDE_HEIGHT, SLIDE_WIDTH

__all__ = ["COLORS", "DIAGRAM_COLORS", "SLIDE_WIDTH", "SLIDE_HEIGHT", "BADGE_COLORS", "nearest_diagram_color"]

# dark theme
COLORS: dict[str, RGB] = {
    "bg": (0.06, 0.06, 0.1),
    "headline": (0.996, 0.953, 0.78),  # warm cream
    "body": (0.83, 0.83, 0.85),
    "muted": (0.61, 0.64, 0.69),
    "accent": (0.86, 0.15, 0.15),
    "white": (0.98, 0.98, 0.98),
    "blue": (0.05, 0.6, 1.0),
    "dimmed": (0.3, 0.3, 0.35),
    # position-cards
    "cyan": (0.0, 0.74, 0.84),
    "green": (0.22, 0.78, 0.55),
    "orange": (0.95, 0.55, 0.15),
    "cardBg": (0.1, 0.1, 0.12),
    "cardBgHighlight": (0.12, 0.14, 0.16),
    "featureBg": (0.08, 0.08, 0.1),
}

TITLE_GRADIENT_END: RGB = (0.1, 0.1, 0.18)
PANEL_FILL: RGB = (0.1, 0.1, 0.13)
ROW_FILL: RGB = (0.08, 0.08, 0.11)
VIDEO_FILL: RGB = (0.08, 0.08, 0.1)
PLAY_ICON_FILL: RGB = (0.1, 0.1, 0.15)

BADGE_COLORS: dict[str, RGB] = {
    "green": COLORS["green"],
    "orange": COLORS["orange"],
    "cyan": COLORS["cyan"],
}

DIAGRAM_COLORS: dict[str, RGB] = {
    "cyan": (0.0, 0.74, 0.84),
    "green": (0.3, 0.69, 0.31),
    "orange": (1.0, 0.6, 0.0),
    "pink": (0.91, 0.12, 0.39),
    "purple": (0.61, 0.15, 0.69),
    "blue": (0.13, 0.59, 0.95),
    "white": (1.0, 1.0, 1.0),
}
DIAGRAM_NODE_FILL: RGB = (0.1, 0.1, 0.12)


def nearest_diagram_color(color: RGB) -> str:
    """Token of the diagram color closest to `color` (squared RGB distance)."""
    best = "white"
    best_d = float("inf")
    for token, c in DIAGRAM_COLORS.items():
        d = sum((a - b) ** 2 for a, b in zip(color, c))
        if d < best_d:
            best, best_d = token, d
    return best
