"""Key/value persistence for local nudge state."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from loguru import logger


class NudgeStateStore(Protocol):
    def load(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def save(self, key: str, value: Dict[str, Any]) -> None:
        ...


class MemoryStateStore:
    """Process-local store; state is lost with the process."""

    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, Any]] = {}

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._items.get(key)
        return dict(value) if value is not None else None

    def save(self, key: str, value: Dict[str, Any]) -> None:
        self._items[key] = dict(value)

    def clear(self) -> None:
        self._items.clear()


class JsonFileStateStore:
    """All keys kept in one JSON document on disk.

    An unreadable or corrupt file is treated as empty so callers fall back
    to their defaults.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read nudge state", path=str(self.path), error=str(exc))
            return {}
        if not isinstance(document, dict):
            logger.warning("Ignoring malformed nudge state", path=str(self.path))
            return {}
        return document

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._read_all().get(key)
        return value if isinstance(value, dict) else None

    def save(self, key: str, value: Dict[str, Any]) -> None:
        document = self._read_all()
        document[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
