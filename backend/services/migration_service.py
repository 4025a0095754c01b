"""
Taxonomy migration pipeline.

Brings a config of any earlier schema version up to CURRENT_SCHEMA_VERSION
without deleting user data. Steps run in a fixed order on deep copies:

  1. migrate_historians_alias         stored assessment records (staged, committed last)
  2. deduplicate_sections             superseded alias subcategories
  3. consolidate_cross_listed_brands  synthesize global brands (additive only)
  4. setup_referenced_cross_listing   one physical instance per option id
  5. stamp schema version / updatedAt

A snapshot of the pre-migration config is written to version history first;
repeating a migration of the same config reuses it instead of stacking copies.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from models_config import (
    CURRENT_SCHEMA_VERSION,
    AppConfig,
    BrandOption,
    ConfigSection,
    GlobalBrand,
    SectionPath,
    dump_config,
    find_section,
    iter_locations,
    iter_options,
    utc_now_iso,
)
from store import ASSESSMENTS_KEY, KeyValueStore
from version_history import VersionHistory

logger = logging.getLogger(__name__)

MIGRATION_SNAPSHOT_LABEL = "Before taxonomy expansion"

LEGACY_HISTORIANS_CATEGORY = "Platforms/Historians"
HISTORIANS_CATEGORY = "Historians / Time-Series"

# Legacy sensor categories consolidated into the current structure.
LEGACY_CATEGORY_MAPPINGS: Dict[str, str] = {
    "IoT Sensors": "Sensors",
    "Environmental Sensors": "Sensors",
    "Safety Sensors": "Sensors",
}

# Subcategories replaced by a first-class location; removed once the target exists.
SUPERSEDED_SUBCATEGORIES: Dict[SectionPath, SectionPath] = {
    SectionPath("sensors_monitoring", "platforms_historians"): SectionPath("data_analytics", "historians"),
}

Assessment = Dict[str, Any]


def needs_migration(config: AppConfig) -> bool:
    return config.schema_version < CURRENT_SCHEMA_VERSION


def _dedupe(items: Sequence[str]) -> List[str]:
    seen: set = set()
    out: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


# --- Step 1: stored assessments ---


def _migrate_sensor(sensor: Any) -> Tuple[Any, bool]:
    if not isinstance(sensor, dict):
        return sensor, False
    category = sensor.get("category")
    if category == LEGACY_HISTORIANS_CATEGORY:
        return {**sensor, "category": HISTORIANS_CATEGORY, "migrated": True}, True
    if category in LEGACY_CATEGORY_MAPPINGS:
        return {**sensor, "category": LEGACY_CATEGORY_MAPPINGS[category], "migrated": True}, True
    return sensor, False


def migrate_assessment_data(assessment: Assessment) -> Tuple[Assessment, int]:
    """Copy of one stored assessment with legacy sensor categories rewritten and tagged."""
    integrations = assessment.get("integrations") if isinstance(assessment, dict) else None
    sensors = integrations.get("sensorsMonitoring") if isinstance(integrations, dict) else None
    if not isinstance(sensors, list):
        return assessment, 0
    changed = 0
    migrated_sensors = []
    for sensor in sensors:
        new_sensor, did = _migrate_sensor(sensor)
        changed += int(did)
        migrated_sensors.append(new_sensor)
    if not changed:
        return assessment, 0
    return {**assessment, "integrations": {**integrations, "sensorsMonitoring": migrated_sensors}}, changed


def needs_category_migration(assessment: Assessment) -> bool:
    sensors = ((assessment or {}).get("integrations") or {}).get("sensorsMonitoring") or []
    legacy = set(LEGACY_CATEGORY_MAPPINGS) | {LEGACY_HISTORIANS_CATEGORY}
    return any(isinstance(s, dict) and s.get("category") in legacy for s in sensors)


def migrate_historians_alias(
    config: AppConfig, assessments: List[Assessment]
) -> Tuple[AppConfig, List[Assessment], int]:
    """
    Rewrite legacy categories inside stored assessments.

    The config itself is returned as an untouched copy; records that changed are
    tagged ``migrated: true`` instead of silently rewriting history.
    """
    migrated: List[Assessment] = []
    total = 0
    for assessment in assessments:
        new_assessment, changed = migrate_assessment_data(assessment)
        total += changed
        migrated.append(new_assessment)
    return config.model_copy(deep=True), migrated, total


# --- Step 2: superseded alias subcategories ---


def _absorb_options(target: ConfigSection, options: List[BrandOption]) -> None:
    existing = {option.id: option for option in target.options}
    for option in options:
        if option.id in existing:
            kept = existing[option.id]
            kept.synonyms = _dedupe([*kept.synonyms, *option.synonyms])
        else:
            target.options.append(option)
            existing[option.id] = option


def deduplicate_sections(config: AppConfig) -> AppConfig:
    working = config.model_copy(deep=True)
    for legacy_path, target_path in SUPERSEDED_SUBCATEGORIES.items():
        parent = find_section(working, legacy_path.parent())
        legacy = find_section(working, legacy_path)
        target = find_section(working, target_path)
        if parent is None or legacy is None or target is None:
            continue
        if legacy.options:
            # Stored data under the legacy location is moved, never dropped.
            logger.info(
                "DEDUP_SECTION_MOVE from=%s to=%s options=%s",
                legacy_path, target_path, len(legacy.options),
            )
            _absorb_options(target, legacy.options)
        parent.subcategories = [sub for sub in parent.subcategories or [] if sub.id != legacy_path.subcategory_id]
        logger.info("DEDUP_SECTION_REMOVED path=%s superseded_by=%s", legacy_path, target_path)
    return working


# --- Step 3: global brand synthesis ---


def _global_state(option: BrandOption) -> str:
    return option.state if option.state in ("active", "deprecated", "hidden") else "active"


def consolidate_cross_listed_brands(config: AppConfig) -> AppConfig:
    """Create a GlobalBrand for every cross-listed option that lacks one. Additive only."""
    working = config.model_copy(deep=True)
    global_brands = list(working.global_brands or [])
    known = {brand.id for brand in global_brands}
    created: List[str] = []
    for path, option in iter_options(working):
        if not option.categories or option.id in known:
            continue
        global_brands.append(
            GlobalBrand(
                id=option.id,
                name=option.name,
                logo=option.logo,
                synonyms=list(option.synonyms),
                state=_global_state(option),
                assigned_sections=_dedupe([path.format(), *option.categories]),
            )
        )
        known.add(option.id)
        created.append(option.id)
    if created or working.global_brands is not None:
        working.global_brands = global_brands
    if created:
        logger.info("GLOBAL_BRANDS_CREATED count=%s ids=%s", len(created), created[:20])
    return working


# --- Step 4: single physical instance per option id ---


def _absorb_duplicate(kept: BrandOption, kept_path: SectionPath, dup: BrandOption, dup_path: SectionPath) -> None:
    conflicts = [
        name for name in ("name", "logo", "state")
        if getattr(kept, name) != getattr(dup, name)
    ]
    if set(dup.synonyms) - set(kept.synonyms):
        conflicts.append("synonyms")
    if conflicts:
        logger.warning(
            "DEDUP_CONFLICT id=%s kept=%s dropped=%s fields=%s",
            kept.id, kept_path, dup_path, ",".join(conflicts),
        )
    kept.synonyms = _dedupe([*kept.synonyms, *dup.synonyms])
    kept.categories = _dedupe([*(kept.categories or []), *(dup.categories or []), dup_path.format()])
    if dup.meta:
        merged = dict(dup.meta)
        merged.update(kept.meta or {})
        kept.meta = merged


def setup_referenced_cross_listing(config: AppConfig) -> AppConfig:
    """
    Keep the first physical instance of each option id (canonical walk order).

    Later instances are folded into the first one and their locations recorded as
    cross-listings. A global brand's assigned_sections is reordered so its
    discovered primary location comes first.
    """
    working = config.model_copy(deep=True)
    primary: Dict[str, Tuple[SectionPath, BrandOption]] = {}
    dropped_paths: Dict[str, List[str]] = {}
    for path, container in iter_locations(working):
        kept: List[BrandOption] = []
        for option in container.options:
            first = primary.get(option.id)
            if first is None:
                primary[option.id] = (path, option)
                kept.append(option)
                continue
            _absorb_duplicate(first[1], first[0], option, path)
            dropped_paths.setdefault(option.id, []).append(path.format())
        container.options = kept
    for brand in working.global_brands or []:
        found = primary.get(brand.id)
        if found is None:
            continue
        primary_path = found[0].format()
        brand.assigned_sections = _dedupe(
            [primary_path, *brand.assigned_sections, *dropped_paths.get(brand.id, [])]
        )
    if dropped_paths:
        logger.info(
            "CROSS_LISTING_DEDUPED ids=%s instances_removed=%s",
            len(dropped_paths), sum(len(v) for v in dropped_paths.values()),
        )
    return working


# --- Pipeline ---
def _content(config: AppConfig) -> dict:
    # updatedAt is stamped on parse when missing, so it is not part of the content
    data = json.loads(dump_config(config))
    data.pop("updatedAt", None)
    return data


@dataclass
class StagedMigration:
    """Migrated config plus assessment rewrites not yet written to the store."""
    config: AppConfig
    assessments: List[Assessment] = field(default_factory=list)
    rewritten: int = 0


class MigrationService:
    def __init__(
        self,
        store: KeyValueStore,
        history: Optional[VersionHistory] = None,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.store = store
        self.history = history or VersionHistory(store)
        self._clock = clock

    def load_assessments(self) -> List[Assessment]:
        raw = self.store.get(ASSESSMENTS_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("ASSESSMENTS_PARSE_ERR client=%s err=%s", self.store.client_id, str(e)[:200])
            return []
        return data if isinstance(data, list) else []

    def save_assessments(self, assessments: List[Assessment]) -> None:
        self.store.set(ASSESSMENTS_KEY, json.dumps(assessments))

    def create_migration_snapshot(self, config: AppConfig, description: str = MIGRATION_SNAPSHOT_LABEL) -> None:
        """Snapshot config, unless the newest version already is this exact migration snapshot."""
        versions = self.history.list()
        if versions and versions[0].description == description:
            if _content(versions[0].config) == _content(config):
                logger.info("MIGRATION_SNAPSHOT_REUSED id=%s", versions[0].id)
                return
        version = self.history.append(config, description)
        logger.info("MIGRATION_SNAPSHOT id=%s", version.id)

    def stage_taxonomy_migration(self, config: AppConfig, snapshot_of: Optional[AppConfig] = None) -> StagedMigration:
        """
        Snapshot, then run the five steps in order. Nothing but the snapshot is
        persisted; commit() writes the assessment rewrites once the caller has
        stored the migrated config.

        snapshot_of is what gets written to history before step 1 (defaults to
        config).
        """
        logger.info("MIGRATION_START schema=%s target=%s", config.schema_version, CURRENT_SCHEMA_VERSION)
        self.create_migration_snapshot(snapshot_of if snapshot_of is not None else config)

        working, assessments, rewritten = migrate_historians_alias(config, self.load_assessments())
        working = deduplicate_sections(working)
        working = consolidate_cross_listed_brands(working)
        working = setup_referenced_cross_listing(working)
        working.schema_version = CURRENT_SCHEMA_VERSION
        working.updated_at = self._clock()
        logger.info("MIGRATION_DONE schema=%s staged_assessments=%s", working.schema_version, rewritten)
        return StagedMigration(config=working, assessments=assessments, rewritten=rewritten)

    def commit(self, staged: StagedMigration) -> None:
        if staged.rewritten:
            self.save_assessments(staged.assessments)
            logger.info("ASSESSMENTS_MIGRATED records=%s", staged.rewritten)

    def run_taxonomy_migration(self, config: AppConfig, snapshot_of: Optional[AppConfig] = None) -> AppConfig:
        """Stage and commit in one call; returns the migrated copy."""
        staged = self.stage_taxonomy_migration(config, snapshot_of)
        self.commit(staged)
        return staged.config
