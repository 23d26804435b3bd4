from __future__ import annotations

import json
from typing import Any, Callable

import pytest

from deckbridge.core.canvas.fonts import FONT_CACHE
from deckbridge.core.canvas.nodes import Document
from deckbridge.core.canvas.storage import ClientStorage


@pytest.fixture(autouse=True)
def _fresh_font_cache():
    # the resolved family is cached process-wide
    FONT_CACHE.clear()
    yield
    FONT_CACHE.clear()


@pytest.fixture
def doc() -> Document:
    return Document("slides", document_id="doc-1")


@pytest.fixture
def design_doc() -> Document:
    return Document("design", document_id="design-1")


@pytest.fixture
def storage() -> ClientStorage:
    return ClientStorage()


@pytest.fixture
def deck() -> Callable[..., str]:
    """IR text for the given slide records."""

    def build(*slides: dict[str, Any], title: str = "Test deck") -> str:
        return json.dumps({"deck": {"title": title}, "slides": list(slides)})

    return build


def slide(sid: str, archetype: str, status: str = "draft", **content: Any) -> dict[str, Any]:
    return {"id": sid, "archetype": archetype, "status": status, "content": content}


@pytest.fixture
def make_slide() -> Callable[..., dict[str, Any]]:
    return slide
