"""Add backend to path so tests can use direct imports (from models_config import ...)."""
import os
import sys

_backend_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

import pytest  # noqa: E402

from cache.config_cache import ConfigCache  # noqa: E402
from services.config_service import ConfigService  # noqa: E402
from store import MemoryStore  # noqa: E402


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(client_id="test")


@pytest.fixture
def service(store: MemoryStore) -> ConfigService:
    return ConfigService(store, cache=ConfigCache())
