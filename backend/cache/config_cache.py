"""
Parsed-config cache keyed by the sha256 of the stored payload.

Owned by whoever builds the ConfigService; nothing here is module-global, so a
test can create a fresh cache per case. A hit returns a deep copy so callers
never mutate the cached object graph.
"""
from __future__ import annotations

import hashlib
from typing import Dict, Optional, Tuple

from models_config import AppConfig


def _payload_key(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ConfigCache:
    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[str, AppConfig]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, slot: str, payload: str) -> Optional[AppConfig]:
        """Cached config for slot, only if it was parsed from this exact payload."""
        entry = self._entries.get(slot)
        if entry is None or entry[0] != _payload_key(payload):
            self.misses += 1
            return None
        self.hits += 1
        return entry[1].model_copy(deep=True)

    def set(self, slot: str, payload: str, config: AppConfig) -> None:
        self._entries[slot] = (_payload_key(payload), config.model_copy(deep=True))

    def invalidate(self, slot: Optional[str] = None) -> None:
        """Drop one slot, or everything when slot is None."""
        if slot is None:
            self._entries.clear()
        else:
            self._entries.pop(slot, None)
