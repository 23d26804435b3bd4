from __future__ import annotations


class DeckBridgeError(Exception):
    """Base class for errors raised by deckbridge."""


class IRParseError(DeckBridgeError):
    """The IR text is not valid JSON or does not have the deck envelope.

    `details` holds one "$[...]: message" line per schema violation.
    """

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = list(details or [])


class ContentError(DeckBridgeError):
    """A slide's content record has a field of the wrong shape."""


class FontUnavailableError(DeckBridgeError):
    """A font family (or every family of a fallback chain) cannot be loaded."""


class FontNotLoadedError(DeckBridgeError):
    """Text was edited with a font that has not been loaded into the document."""


class ConfigError(DeckBridgeError):
    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = list(details or [])


class DocumentError(DeckBridgeError):
    """A pptx document cannot be read or written."""
