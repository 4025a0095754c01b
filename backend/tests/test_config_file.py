"""Export/import round trip through files, plus a CLI smoke test."""
import json

import pytest
from typer.testing import CliRunner

import cli
from config_file import (
    PRE_IMPORT_LABEL,
    config_info,
    create_rollback_point,
    default_export_filename,
    export_config,
    import_config,
    rollback_package_id,
)
from errors import ConfigParseError
from models_config import CURRENT_SCHEMA_VERSION
from services.config_service import ConfigService
from settings import Settings
from store import FileStore
from taxonomy import create_default_config

LEGACY_FILE = {
    "schemaVersion": 1,
    "sections": [
        {"id": "erp", "label": "ERP Systems", "options": [{"id": "sap", "name": "SAP"}]},
        {"id": "plant_floor", "label": "Plant Floor", "options": [
            {"id": "acme_hmi", "name": "Acme HMI", "categories": ["automation.scada"]},
        ]},
    ],
}


def test_default_export_filename():
    name = default_export_filename()
    assert name.startswith("taxonomy-config-")
    assert name.endswith(".json")


def test_export_writes_camel_case_json(service, tmp_path):
    target = export_config(service, tmp_path / "out" / "config.json")
    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["schemaVersion"] == CURRENT_SCHEMA_VERSION
    assert len(data["sections"]) == 6


def test_import_upgrades_and_publishes_with_backup(service, tmp_path):
    service.publish(create_default_config())
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps(LEGACY_FILE), encoding="utf-8")

    live = import_config(service, path)

    assert live.schema_version == CURRENT_SCHEMA_VERSION
    assert [s.id for s in live.sections][-1] == "plant_floor"
    assert live.find_global_brand("acme_hmi").assigned_sections == ["plant_floor", "automation.scada"]
    descriptions = [v.description for v in service.list_versions()]
    assert PRE_IMPORT_LABEL in descriptions


def test_import_invalid_file_leaves_live_alone(service, tmp_path):
    service.publish(create_default_config())
    before = service.read_live().updated_at
    path = tmp_path / "broken.json"
    path.write_text("{oops", encoding="utf-8")
    with pytest.raises(ConfigParseError):
        import_config(service, path)
    assert service.read_live().updated_at == before


def test_rollback_point_and_info(service):
    service.publish(create_default_config())
    version = create_rollback_point(service, "Before demo")
    assert rollback_package_id(version).startswith("rollback_")
    assert ":" not in rollback_package_id(version)
    info = config_info(service)
    assert info["versionsCount"] == 1
    assert info["size"].endswith("KB")


# --- CLI ---
@pytest.fixture
def cli_store(tmp_path, monkeypatch):
    settings = Settings(store_backend="file", store_dir=tmp_path / "store", client_id="cli")
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    return FileStore(settings.store_dir, settings.client_id)


def test_cli_snapshot_versions_and_rollback(cli_store):
    runner = CliRunner()

    result = runner.invoke(cli.app, ["snapshot", "first", "point"])
    assert result.exit_code == 0, result.output
    assert "Rollback point created" in result.output

    result = runner.invoke(cli.app, ["versions"])
    assert result.exit_code == 0
    assert "first point" in result.output

    version_id = ConfigService(cli_store).list_versions()[0].id
    result = runner.invoke(cli.app, ["rollback", version_id])
    assert result.exit_code == 0, result.output
    assert cli_store.get("mx_config_live") is not None


def test_cli_rollback_unknown_version_fails(cli_store):
    result = CliRunner().invoke(cli.app, ["rollback", "nope"])
    assert result.exit_code == 1


def test_cli_import_migrate_and_info(cli_store, tmp_path):
    runner = CliRunner()
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps(LEGACY_FILE), encoding="utf-8")

    result = runner.invoke(cli.app, ["import", str(path), "--no-backup"])
    assert result.exit_code == 0, result.output
    assert f"schema {CURRENT_SCHEMA_VERSION}" in result.output

    result = runner.invoke(cli.app, ["migrate"])
    assert result.exit_code == 0
    assert "nothing to do" in result.output

    result = runner.invoke(cli.app, ["info"])
    assert result.exit_code == 0
    assert "Client:        cli" in result.output


def test_cli_export(cli_store, tmp_path):
    target = tmp_path / "export.json"
    result = CliRunner().invoke(cli.app, ["export", str(target)])
    assert result.exit_code == 0, result.output
    assert json.loads(target.read_text(encoding="utf-8"))["schemaVersion"] == CURRENT_SCHEMA_VERSION
