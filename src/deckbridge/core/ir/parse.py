from __future__ import annotations

import json

from deckbridge.core.errors import IRParseError
from deckbridge.core.ir.types import IRDocument
from deckbridge.core.validate.schema_validate import load_schema, validate_instance


def parse_ir(text: str) -> IRDocument:
    """Decode IR text and check the deck envelope.

    Raises IRParseError (nothing should be applied) on malformed JSON or when the
    envelope does not conform to `ir.schema.json`. Slide content records are not
    checked here; they are converted one slide at a time by the apply engine.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise IRParseError(f"IR is not valid JSON: {e}") from e

    errors = validate_instance(load_schema("ir"), data)
    if errors:
        raise IRParseError("IR does not conform to ir.schema.json", errors)

    deck = data.get("deck") or {}
    return IRDocument(title=deck.get("title"), slides=list(data["slides"]))
