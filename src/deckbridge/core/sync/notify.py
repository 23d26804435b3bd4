from __future__ import annotations

from typing import Callable, Optional

# notify(message, error=False)
Notifier = Callable[..., None]


class Notices:
    """Collects notifications and forwards each one to an optional notifier."""

    def __init__(self, notify: Optional[Notifier] = None) -> None:
        self._notify = notify
        self.messages: list[tuple[str, bool]] = []

    def __call__(self, message: str, error: bool = False) -> None:
        self.messages.append((message, error))
        if self._notify is not None:
            self._notify(message, error=error)

    @property
    def errors(self) -> list[str]:
        return [m for m, err in self.messages if err]


def quoted_list(names: list[str], count: int, noun: str = "slides", limit: int = 2) -> str:
    """'"A", "B"' for a short list, otherwise '<count> <noun>'."""
    if len(names) <= limit:
        return ", ".join(f'"{n}"' for n in names)
    return f"{count} {noun}"
