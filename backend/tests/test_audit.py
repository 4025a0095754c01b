"""Migration audit: counts, the no-deletion guard, and the bounded audit list."""
import pytest

import audit
from errors import MigrationSafetyError
from models_config import AppConfig, BrandOption, ConfigSection, GlobalBrand
from store import MemoryStore


def _config(section_count: int, brand_count: int = 0, schema_version: int = 1) -> AppConfig:
    return AppConfig(
        schema_version=schema_version,
        sections=[
            ConfigSection(id=f"s{i}", label=f"S{i}", options=[BrandOption(id=f"o{i}", name=f"O{i}")])
            for i in range(section_count)
        ],
        global_brands=[GlobalBrand(id=f"g{i}", name=f"G{i}") for i in range(brand_count)],
    )


def test_build_audit_counts_and_added_options():
    result = audit.build_audit(_config(2, 1), _config(3, 2, schema_version=3))
    assert result.sections_count_before == 2
    assert result.sections_count_after == 3
    assert result.global_brands_count_after == 2
    assert result.options_added == ["o2"]
    audit.assert_no_deletion(result)


def test_section_loss_is_a_safety_violation():
    with pytest.raises(MigrationSafetyError, match="sections count decreased"):
        audit.assert_no_deletion(audit.build_audit(_config(3), _config(2)))


def test_global_brand_loss_is_a_safety_violation():
    with pytest.raises(MigrationSafetyError, match="global brands"):
        audit.assert_no_deletion(audit.build_audit(_config(1, 2), _config(1, 1)))


def test_audit_log_is_bounded_newest_first():
    store = MemoryStore()
    for i in range(audit.AUDIT_LOG_LIMIT + 5):
        audit.log(store, audit.build_audit(_config(1), _config(1 + i)))
    entries = audit.read_log(store)
    assert len(entries) == audit.AUDIT_LOG_LIMIT
    assert entries[0].sections_count_after == audit.AUDIT_LOG_LIMIT + 5


def test_missing_option_is_counted_as_deletion():
    before = _config(2)
    after = _config(2, schema_version=3)
    after.sections[1].options = []
    result = audit.build_audit(before, after)
    assert result.options_removed == ["o1"]
    assert result.deletions_count == 1
    with pytest.raises(MigrationSafetyError, match="deleted 1 option"):
        audit.assert_no_deletion(result)
