"""Prompt history tracking."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, List, Tuple

from modules.errors import PersistenceError
from modules.services.storage_service import KeyValueStorage

logger = logging.getLogger(__name__)

HISTORY_KEY = "promptHistory"


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A prompt produced by a successful generation."""

    prompt: str
    timestamp: int  # epoch milliseconds

    def __post_init__(self) -> None:
        if not self.prompt:
            raise ValueError("History entries require a non-empty prompt.")


def _parse_entries(raw: str) -> List[HistoryEntry]:
    data: Any = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("history must be a JSON array")
    entries: List[HistoryEntry] = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError("history item must be an object")
        prompt = item.get("prompt")
        timestamp = item.get("timestamp")
        # bool is an int subclass; reject it explicitly.
        if not isinstance(prompt, str) or isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("history item has invalid fields")
        entries.append(HistoryEntry(prompt=prompt, timestamp=timestamp))
    return entries


class HistoryStore:
    """Newest-first prompt log; storage is a best-effort cache of memory."""

    def __init__(self, storage: KeyValueStorage, key: str = HISTORY_KEY) -> None:
        self.storage = storage
        self.key = key
        self._entries: List[HistoryEntry] = []

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        """Return the in-memory log, newest first."""
        return tuple(self._entries)

    def load(self) -> Tuple[HistoryEntry, ...]:
        """Read the persisted log; anything unreadable yields an empty log."""
        try:
            raw = self.storage.get_item(self.key)
        except PersistenceError as exc:
            logger.warning("Failed to load history from storage: %s", exc)
            raw = None

        entries: List[HistoryEntry] = []
        if raw:
            try:
                entries = _parse_entries(raw)
            except ValueError as exc:
                logger.warning("Discarding unreadable history under '%s': %s", self.key, exc)
                entries = []
        self._entries = entries
        return self.entries

    def append(self, entry: HistoryEntry) -> Tuple[HistoryEntry, ...]:
        """Prepend an entry and try to persist the whole log."""
        self._entries = [entry, *self._entries]
        payload = json.dumps([asdict(item) for item in self._entries], ensure_ascii=False)
        try:
            self.storage.set_item(self.key, payload)
        except PersistenceError as exc:
            logger.error("Failed to save history to storage: %s", exc)
        return self.entries

    def clear(self) -> None:
        """Drop the persisted copy (best-effort) and empty the log."""
        try:
            self.storage.remove_item(self.key)
        except PersistenceError as exc:
            logger.error("Failed to clear history from storage: %s", exc)
        self._entries = []
