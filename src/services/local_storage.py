"""File-backed string key-value store used as the local development fallback."""

import json
import os
from pathlib import Path
from typing import Optional
from src.utils.errors import StorageError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class LocalStorage:
    """
    String-keyed slots persisted in a single JSON object on disk.

    Values are opaque strings; callers serialize their own data. A missing
    file reads as an empty store.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Failed to read local storage {self.path}: {e}") from e

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise StorageError(f"Local storage {self.path} is corrupt: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Local storage {self.path} is not a JSON object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write local storage {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StorageError as e:
            # A corrupt file must not block new writes
            logger.warning("Overwriting unreadable local storage", path=str(self.path), error=str(e))
            data = {}
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)
