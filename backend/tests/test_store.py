"""Key-value store contract, run against every backend."""
import json

import pytest

from db import make_sessionmaker
from settings import Settings
from store import (
    VERSIONS_KEY,
    VERSIONS_QUARANTINE_KEY,
    FileStore,
    MemoryStore,
    SqlStore,
    StoreQuotaExceeded,
    open_store,
)
from version_history import VersionHistory
from taxonomy import create_default_config


def _memory(tmp_path, client_id="c1", quota=None):
    return MemoryStore(client_id, quota)


def _file(tmp_path, client_id="c1", quota=None):
    return FileStore(tmp_path / "store", client_id, quota)


def _sql(tmp_path, client_id="c1", quota=None):
    factory = make_sessionmaker(f"sqlite:///{tmp_path / 'slots.db'}", create_tables=True)
    return SqlStore(factory, client_id, quota)


BACKENDS = [_memory, _file, _sql]


@pytest.mark.parametrize("make_store", BACKENDS)
def test_get_set_delete(tmp_path, make_store):
    store = make_store(tmp_path)
    assert store.get("mx_config_live") is None
    store.set("mx_config_live", '{"sections": []}')
    assert store.get("mx_config_live") == '{"sections": []}'
    store.set("mx_config_live", "{}")
    assert store.get("mx_config_live") == "{}"
    assert store.keys() == ["mx_config_live"]
    store.delete("mx_config_live")
    assert store.get("mx_config_live") is None
    store.delete("mx_config_live")
    assert store.keys() == []


@pytest.mark.parametrize("make_store", BACKENDS)
def test_quota_rejects_write_and_keeps_old_value(tmp_path, make_store):
    store = make_store(tmp_path, quota=10)
    store.set("a", "12345")
    with pytest.raises(StoreQuotaExceeded) as exc_info:
        store.set("b", "123456")
    assert exc_info.value.required_bytes == 11
    assert store.get("b") is None
    # Replacing a key only counts the other keys against the quota
    store.set("a", "1234567890")
    assert store.used_bytes() == 10


@pytest.mark.parametrize("make_store", [_file, _sql])
def test_clients_are_isolated(tmp_path, make_store):
    first = make_store(tmp_path, client_id="acme")
    second = make_store(tmp_path, client_id="globex")
    first.set("mx_config_live", "acme")
    assert second.get("mx_config_live") is None
    assert second.keys() == []


def test_file_store_layout(tmp_path):
    store = _file(tmp_path, client_id="acme")
    store.set("mx_config_draft", "{}")
    assert (tmp_path / "store" / "acme" / "mx_config_draft.json").read_text(encoding="utf-8") == "{}"
    assert not list((tmp_path / "store" / "acme").glob("*.tmp"))


def test_open_store_builds_backend_from_settings(tmp_path):
    store = open_store(Settings(store_backend="file", store_dir=tmp_path, client_id="acme", quota_bytes=99))
    assert isinstance(store, FileStore)
    assert store.client_dir == tmp_path / "acme"
    assert store.quota_bytes == 99
    assert isinstance(open_store(Settings(store_backend="memory")), MemoryStore)
    sql = open_store(Settings(store_backend="sql", database_url=f"sqlite:///{tmp_path / 'x.db'}"))
    assert isinstance(sql, SqlStore)


# --- Version history on top of a store ---
def test_version_history_ids_are_strictly_increasing_with_fixed_clock():
    history = VersionHistory(MemoryStore(), clock_ms=lambda: 1_000)
    config = create_default_config()
    first = history.append(config, "one")
    second = history.append(config, "two")
    assert (first.id, second.id) == ("1000", "1001")
    assert history.get("1000").description == "one"
    assert history.get("missing") is None


def test_version_history_sheds_oldest_under_quota_pressure():
    config = create_default_config()
    entry_size = len(json.dumps(config.model_dump(mode="json", by_alias=True, exclude_none=True)))
    store = MemoryStore(quota_bytes=entry_size * 3)
    history = VersionHistory(store)
    for i in range(6):
        history.append(config, f"v{i}")
    versions = history.list()
    assert versions[0].description == "v5"
    assert 1 <= len(versions) < 6


def test_version_history_unreadable_payload_reads_empty():
    store = MemoryStore()
    store.set("mx_config_versions", "not json")
    assert VersionHistory(store).list() == []


def test_version_history_keeps_invalid_entry_when_appending():
    store = MemoryStore()
    history = VersionHistory(store)
    good = history.append(create_default_config(), "good")
    invalid = {
        "id": str(int(good.id) + 1),
        "config": {"sections": [{"id": "erp", "label": "ERP", "options": [{"id": "sap"}]}]},
        "createdAt": "2026-01-01T00:00:00.000Z",
    }
    store.set(VERSIONS_KEY, json.dumps([invalid, *json.loads(store.get(VERSIONS_KEY))]))
    assert [v.id for v in history.list()] == [good.id]

    newest = history.append(create_default_config(), "after")

    assert [v.id for v in history.list()] == [newest.id, good.id]
    assert json.loads(store.get(VERSIONS_KEY))[1] == invalid
    assert int(newest.id) > int(invalid["id"])


def test_version_history_moves_unreadable_payload_aside():
    store = MemoryStore()
    store.set(VERSIONS_KEY, "not json")
    history = VersionHistory(store)
    history.append(create_default_config(), "fresh")
    assert store.get(VERSIONS_QUARANTINE_KEY) == "not json"
    assert [v.description for v in history.list()] == ["fresh"]
