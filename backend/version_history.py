"""
Rollback-capable version history: newest first, capped, oldest evicted on append.

Entries are validated one by one. An entry that no longer validates is skipped
when listing but kept in the stored list, so appending never drops it. A
history payload that is not a JSON list at all is moved aside to
VERSIONS_QUARANTINE_KEY before a new list is started.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from errors import ConfigParseError
from models_config import AppConfig, ConfigVersion, utc_now_iso
from settings import VERSION_HISTORY_LIMIT
from store import VERSIONS_KEY, VERSIONS_QUARANTINE_KEY, KeyValueStore, StoreQuotaExceeded

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _entry_id(entry: Any) -> Optional[int]:
    raw = entry.get("id") if isinstance(entry, dict) else None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class VersionHistory:
    def __init__(
        self,
        store: KeyValueStore,
        limit: int = VERSION_HISTORY_LIMIT,
        clock_ms: Callable[[], int] = _epoch_ms,
    ):
        self.store = store
        self.limit = limit
        self._clock_ms = clock_ms

    def _entries(self) -> List[Any]:
        """Raw stored entries. Raises ConfigParseError when the payload is not a JSON list."""
        raw = self.store.get(VERSIONS_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ConfigParseError(f"version history is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise ConfigParseError("version history must be a JSON list")
        return data

    def _parse(self, entry: Any) -> Optional[ConfigVersion]:
        try:
            return ConfigVersion.model_validate(entry)
        except ValidationError as e:
            logger.warning(
                "VERSION_INVALID client=%s id=%s errors=%s",
                self.store.client_id, entry.get("id") if isinstance(entry, dict) else None, e.error_count(),
            )
            return None

    def list(self) -> List[ConfigVersion]:
        """Readable versions, newest first."""
        try:
            entries = self._entries()
        except ConfigParseError as e:
            logger.warning("VERSIONS_PARSE_ERR client=%s err=%s", self.store.client_id, str(e)[:200])
            return []
        return [version for version in map(self._parse, entries) if version is not None]

    def get(self, version_id: str) -> Optional[ConfigVersion]:
        for version in self.list():
            if version.id == version_id:
                return version
        return None

    def _next_id(self, entries: List[Any]) -> str:
        # Millisecond ids; bumped past every stored id so ids stay unique and sortable.
        candidate = self._clock_ms()
        stored = [i for i in map(_entry_id, entries) if i is not None]
        if stored:
            candidate = max(candidate, max(stored) + 1)
        return str(candidate)

    def _quarantine(self) -> None:
        raw = self.store.get(VERSIONS_KEY) or ""
        self.store.set(VERSIONS_QUARANTINE_KEY, raw)
        logger.error(
            "VERSIONS_QUARANTINED client=%s bytes=%s key=%s",
            self.store.client_id, len(raw), VERSIONS_QUARANTINE_KEY,
        )

    def append(self, config: AppConfig, description: Optional[str] = None) -> ConfigVersion:
        """Snapshot a deep copy of config and evict beyond the limit in the same write."""
        try:
            entries = self._entries()
        except ConfigParseError:
            self._quarantine()
            entries = []
        version = ConfigVersion(
            id=self._next_id(entries),
            config=config.model_copy(deep=True),
            created_at=utc_now_iso(),
            description=description,
        )
        entries.insert(0, version.model_dump(mode="json", by_alias=True, exclude_none=True))
        evicted = max(0, len(entries) - self.limit)
        del entries[self.limit:]
        while True:
            try:
                self.store.set(VERSIONS_KEY, json.dumps(entries))
                break
            except StoreQuotaExceeded:
                # Under quota pressure shed the oldest snapshots, never the new one.
                if len(entries) <= 1:
                    raise
                entries.pop()
                evicted += 1
        logger.info(
            "VERSION_SAVED id=%s description=%r kept=%s evicted=%s",
            version.id, description, len(entries), evicted,
        )
        return version
