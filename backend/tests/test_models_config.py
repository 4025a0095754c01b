"""Tests for the config data model: section paths, camelCase persistence, parse errors."""
import json

import pytest

from errors import ConfigParseError
from models_config import (
    AppConfig,
    BrandOption,
    ConfigSection,
    SectionPath,
    count_brands,
    dump_config,
    find_option,
    find_section,
    iter_locations,
    parse_config,
    utc_now_iso,
)


def _config() -> AppConfig:
    return AppConfig(
        schema_version=3,
        sections=[
            ConfigSection(
                id="erp",
                label="ERP",
                multi=False,
                options=[BrandOption(id="sap", name="SAP", synonyms=["SAP ECC"])],
            ),
            ConfigSection(
                id="automation",
                label="Automation",
                subcategories=[
                    ConfigSection(id="scada", label="SCADA", options=[BrandOption(id="ignition", name="Ignition")]),
                    ConfigSection(id="plc", label="PLC"),
                ],
            ),
        ],
        synonym_map={"sap ecc": "sap"},
    )


# --- SectionPath ---
def test_section_path_parse_and_format():
    path = SectionPath.parse("data_analytics.historians")
    assert path.section_id == "data_analytics"
    assert path.subcategory_id == "historians"
    assert path.is_subcategory
    assert path.format() == "data_analytics.historians"
    assert str(path.parent()) == "data_analytics"


def test_section_path_top_level():
    path = SectionPath.parse(" erp ")
    assert path == SectionPath("erp")
    assert not path.is_subcategory
    assert path.format() == "erp"


@pytest.mark.parametrize("raw", ["", "a.b.c", ".scada", "automation."])
def test_section_path_rejects_malformed(raw):
    with pytest.raises(ValueError):
        SectionPath.parse(raw)


def test_section_path_is_hashable():
    assert {SectionPath("a", "b"): 1}[SectionPath.parse("a.b")] == 1


# --- Serialization ---
def test_dump_uses_camel_case_keys():
    data = json.loads(dump_config(_config()))
    assert "schemaVersion" in data
    assert "synonymMap" in data
    assert "systemOptions" in data["sections"][0]
    assert "schema_version" not in data
    # None fields are omitted rather than written as null
    assert "globalBrands" not in data


def test_parse_accepts_camel_case_and_keeps_unknown_keys():
    payload = json.dumps({
        "schemaVersion": 2,
        "updatedAt": "2025-01-01T00:00:00.000Z",
        "sections": [{
            "id": "erp",
            "label": "ERP",
            "options": [{"id": "sap", "name": "SAP", "isLinkedToGlobal": True, "globalId": "sap", "vendorNote": "x"}],
        }],
        "customFlag": {"keep": True},
    })
    config = parse_config(payload)
    assert config.schema_version == 2
    option = config.sections[0].options[0]
    assert option.is_linked_to_global is True
    assert option.global_id == "sap"

    round_trip = json.loads(dump_config(config))
    assert round_trip["customFlag"] == {"keep": True}
    assert round_trip["sections"][0]["options"][0]["vendorNote"] == "x"


def test_parse_config_accepts_dict():
    config = parse_config({"sections": []})
    assert config.schema_version == 1
    assert config.status == "published"


@pytest.mark.parametrize("payload", [
    "{not json",
    "[]",
    json.dumps({"schemaVersion": 3}),
    json.dumps({"sections": [{"id": "erp"}]}),
    json.dumps({"sections": [], "status": "archived"}),
])
def test_parse_config_rejects_invalid_payloads(payload):
    with pytest.raises(ConfigParseError):
        parse_config(payload)


def test_utc_now_iso_has_millisecond_precision():
    stamp = utc_now_iso()
    assert stamp.endswith("Z")
    assert len(stamp.split(".")[1]) == 4  # "123Z"


# --- Query helpers ---
def test_iter_locations_canonical_order():
    paths = [path.format() for path, _ in iter_locations(_config())]
    assert paths == ["erp", "automation", "automation.scada", "automation.plc"]


def test_find_section_and_option():
    config = _config()
    assert find_section(config, "automation.scada").label == "SCADA"
    assert find_section(config, SectionPath("automation", "missing")) is None
    path, option = find_option(config, "ignition")
    assert path == SectionPath("automation", "scada")
    assert option.name == "Ignition"
    assert find_option(config, "nope") is None
    assert count_brands(config) == 2
