from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


class ClientStorage:
    """Host key/value storage.

    Backed by a JSON file when `path` is given (written on every `set`/`delete`),
    otherwise kept in memory for the lifetime of the object.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._data: dict[str, Any] = {}
        if self.path is not None and self.path.exists():
            raw = self.path.read_bytes()
            data = orjson.loads(raw) if raw.strip() else {}
            if not isinstance(data, dict):
                raise TypeError(f"expected client storage at {self.path} to be a JSON object")
            self._data = data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> list[str]:
        return sorted(self._data)

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(orjson.dumps(self._data, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS))
