"""
Client-scoped key-value store holding the config slots.

Every backend stores text values under string keys for one client id and can
enforce a byte quota across all of that client's keys, like a browser origin.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from settings import Settings

logger = logging.getLogger(__name__)

LIVE_KEY = "mx_config_live"
DRAFT_KEY = "mx_config_draft"
VERSIONS_KEY = "mx_config_versions"
VERSIONS_QUARANTINE_KEY = "mx_config_versions_unreadable"
ASSESSMENTS_KEY = "mx_stored_assessments"
AUDIT_KEY = "mx_migration_audit"


class StoreQuotaExceeded(Exception):
    def __init__(self, key: str, required_bytes: int, quota_bytes: int):
        self.key = key
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes
        super().__init__(f"writing {key} needs {required_bytes} bytes, quota is {quota_bytes}")


def _size(value: str) -> int:
    return len(value.encode("utf-8"))


class KeyValueStore(ABC):
    def __init__(self, client_id: str = "default", quota_bytes: Optional[int] = None):
        self.client_id = client_id
        self.quota_bytes = quota_bytes

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    def set(self, key: str, value: str) -> None:
        """Write value; raises StoreQuotaExceeded without touching the old value."""
        if self.quota_bytes is not None:
            others = sum(_size(self.get(k) or "") for k in self.keys() if k != key)
            required = others + _size(value)
            if required > self.quota_bytes:
                raise StoreQuotaExceeded(key, required, self.quota_bytes)
        self._write(key, value)

    def used_bytes(self) -> int:
        return sum(_size(self.get(k) or "") for k in self.keys())


class MemoryStore(KeyValueStore):
    def __init__(self, client_id: str = "default", quota_bytes: Optional[int] = None):
        super().__init__(client_id, quota_bytes)
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class FileStore(KeyValueStore):
    """One JSON text file per key under <root>/<client_id>/."""

    def __init__(self, root: Path, client_id: str = "default", quota_bytes: Optional[int] = None):
        super().__init__(client_id, quota_bytes)
        self.root = Path(root)

    @property
    def client_dir(self) -> Path:
        return self.root / self.client_id

    def _ensure_dir(self) -> Path:
        self.client_dir.mkdir(parents=True, exist_ok=True)
        return self.client_dir

    def _path(self, key: str) -> Path:
        return self.client_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self._ensure_dir()
        tmp = self._path(key).with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(self._path(key))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        if not self.client_dir.is_dir():
            return []
        return sorted(p.stem for p in self.client_dir.glob("*.json"))


class SqlStore(KeyValueStore):
    """Rows of the config_slots table, one per (client_id, key)."""

    def __init__(self, session_factory, client_id: str = "default", quota_bytes: Optional[int] = None):
        super().__init__(client_id, quota_bytes)
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        from db.models import ConfigSlot
        db = self._session_factory()
        try:
            row = db.get(ConfigSlot, (self.client_id, key))
            return row.value if row else None
        finally:
            db.close()

    def _write(self, key: str, value: str) -> None:
        from db.models import ConfigSlot
        db = self._session_factory()
        try:
            row = db.get(ConfigSlot, (self.client_id, key))
            if row:
                row.value = value
            else:
                db.add(ConfigSlot(client_id=self.client_id, key=key, value=value))
            db.commit()
        finally:
            db.close()

    def delete(self, key: str) -> None:
        from db.models import ConfigSlot
        db = self._session_factory()
        try:
            row = db.get(ConfigSlot, (self.client_id, key))
            if row:
                db.delete(row)
                db.commit()
        finally:
            db.close()

    def keys(self) -> List[str]:
        from db.models import ConfigSlot
        db = self._session_factory()
        try:
            rows = db.query(ConfigSlot.key).filter(ConfigSlot.client_id == self.client_id).order_by(ConfigSlot.key)
            return [r[0] for r in rows]
        finally:
            db.close()


def open_store(settings: Settings) -> KeyValueStore:
    """Build the backend named by settings.store_backend."""
    if settings.store_backend == "memory":
        store: KeyValueStore = MemoryStore(settings.client_id, settings.quota_bytes)
    elif settings.store_backend == "sql":
        from db.session import make_sessionmaker
        store = SqlStore(make_sessionmaker(settings.database_url, create_tables=True), settings.client_id, settings.quota_bytes)
    else:
        store = FileStore(settings.store_dir, settings.client_id, settings.quota_bytes)
    logger.info("STORE_OPEN backend=%s client=%s", settings.store_backend, settings.client_id)
    return store
