"""Durable key/value file of string slots."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class PreferencesFile:
    """A named JSON file mapping keys to string values.

    A missing file reads as empty. A file that cannot be read or parsed is
    logged and also treated as empty; the next write replaces it.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get_string(self, key: str, default: str | None = None) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else default

    def put_string(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def _read(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(f"[PREFS] Ignoring unreadable preferences file {self._path}: {exc}")
            return {}
        if not isinstance(payload, dict):
            logger.warning(f"[PREFS] Ignoring non-object preferences file {self._path}")
            return {}
        return payload

    def _write(self, data: dict[str, object]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        try:
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


__all__ = ["PreferencesFile"]
