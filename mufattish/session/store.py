"""
Local key-value persistence for the application session.

The core never touches a Store; InspectorSession reads and writes fixed
keys through this interface. Values must be JSON-compatible.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol, Union

logger = logging.getLogger(__name__)

# Keys used by InspectorSession.
KEY_TEACHERS = "mufattish_teachers"
KEY_REPORTS = "mufattish_reports_map"
KEY_TENURE_REPORTS = "mufattish_tenure_reports_map"
KEY_SEMINARS = "mufattish_seminars"
KEY_SETTINGS = "mufattish_settings"


class Store(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryStore:
    """Dict-backed store. Values are copied through JSON so callers cannot alias them."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        return default if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def keys(self) -> list[str]:
        return list(self._data)


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(content or "", encoding=encoding)
    os.replace(tmp, path)


class JsonFileStore:
    """
    Whole-document JSON file store.

    Every set() rewrites the file atomically (temp file + os.replace). A
    corrupt file is moved aside to <name>.corrupt and the store starts empty.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            aside = self.path.with_suffix(self.path.suffix + ".corrupt")
            os.replace(self.path, aside)
            logger.error("[store] %s is not valid JSON (%s); moved to %s", self.path, e, aside)
            return {}
        if not isinstance(data, dict):
            logger.error("[store] %s does not hold a JSON object; ignored", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        atomic_write_text(self.path, json.dumps(self._data, ensure_ascii=False, indent=2))
        logger.debug("[store] %s saved (%s)", self.path, key)
