"""Key/value storage backends for persisted client state."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Optional, Protocol

from modules.errors import PersistenceError

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStorage(Protocol):
    """Minimal string storage, modelled after browser local storage."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def _check_quota(key: str, value: str, quota_bytes: Optional[int]) -> None:
    if quota_bytes is None:
        return
    size = len(value.encode("utf-8"))
    if size > quota_bytes:
        raise PersistenceError(
            f"Storage quota exceeded for '{key}': {size} bytes > {quota_bytes} bytes."
        )


class MemoryStorage:
    """Process-local storage, used by tests and throwaway sessions."""

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota_bytes)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """Persist each key as ``<root_dir>/<key>.json``."""

    def __init__(self, root_dir: Path, quota_bytes: Optional[int] = None) -> None:
        self.root_dir = Path(root_dir)
        self.quota_bytes = quota_bytes

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self.root_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Could not read '{key}': {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota_bytes)
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Could not write '{key}': {exc}") from exc

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Could not remove '{key}': {exc}") from exc
