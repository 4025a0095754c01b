"""
Environment-driven settings for the taxonomy config core.

TAXONOMY_CLIENT_ID            Scope for every persisted slot (default "default").
TAXONOMY_STORE                file | sql | memory (default "file").
TAXONOMY_STORE_DIR            Root directory for the file store.
DATABASE_URL                  SQLAlchemy URL for the sql store.
CONFIG_SIZE_THRESHOLD_BYTES   Serialized size above which embedded logos are stripped.
CONFIG_QUOTA_BYTES            Optional hard quota for the store (unset = unlimited).
MAX_EMBEDDED_LOGO_BYTES       Embedded (data:) logos larger than this are stripped.
LOG_LEVEL                     Root log level for the CLI.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

_BACKEND_DIR = Path(__file__).resolve().parent


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


CLIENT_ID = (os.environ.get("TAXONOMY_CLIENT_ID") or "").strip() or "default"
STORE_BACKEND = (os.environ.get("TAXONOMY_STORE") or "").strip().lower() or "file"
STORE_DIR = Path(os.environ.get("TAXONOMY_STORE_DIR", str(_BACKEND_DIR / "store")))
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///taxonomy.db")
CONFIG_SIZE_THRESHOLD_BYTES = _int_env("CONFIG_SIZE_THRESHOLD_BYTES", 4_000_000)
CONFIG_QUOTA_BYTES = _int_env("CONFIG_QUOTA_BYTES", None)
MAX_EMBEDDED_LOGO_BYTES = _int_env("MAX_EMBEDDED_LOGO_BYTES", 51_200)
LOG_LEVEL = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()

# Fixed by the persisted layout, not tunable.
VERSION_HISTORY_LIMIT = 20


class Settings(BaseModel):
    """Snapshot of the environment, injectable into stores and services."""
    client_id: str = CLIENT_ID
    store_backend: Literal["file", "sql", "memory"] = STORE_BACKEND  # type: ignore[assignment]
    store_dir: Path = STORE_DIR
    database_url: str = DATABASE_URL
    size_threshold_bytes: int = Field(default=CONFIG_SIZE_THRESHOLD_BYTES, gt=0)
    quota_bytes: Optional[int] = CONFIG_QUOTA_BYTES
    max_embedded_logo_bytes: int = Field(default=MAX_EMBEDDED_LOGO_BYTES, ge=0)
    log_level: str = LOG_LEVEL


def get_settings() -> Settings:
    return Settings()
