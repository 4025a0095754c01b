"""
Config lifecycle: live / draft / publish / rollback over a client-scoped store.

Slots: live config, draft config, version history. The read path is split in
two explicit steps so it can be tested in isolation:

    read_live()          parse the live slot or synthesize the default; no writes
    needs_migration(c)   schema gate
    migrate(c)           three-way merge onto the default skeleton + migration pipeline

get_live() is the orchestrating call that chains them and publishes an upgraded
config exactly once.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import audit
from cache.config_cache import ConfigCache
from errors import ConfigCapacityError, ConfigParseError, NoDraftError, VersionNotFoundError
from image_utils import strip_oversized_logos
from models_config import (
    AppConfig,
    ConfigSection,
    ConfigVersion,
    GlobalBrand,
    SectionPath,
    count_brands,
    count_logos,
    dump_config,
    parse_config,
    utc_now_iso,
)
from services import brand_links
from services.events import CONFIG_REFRESH, CONFIG_UPDATED, ConfigEvents
from services.migration_service import MigrationService, StagedMigration, needs_migration
from services.synonym_resolver import merge_synonym_maps
from settings import CONFIG_SIZE_THRESHOLD_BYTES, MAX_EMBEDDED_LOGO_BYTES, Settings
from store import DRAFT_KEY, LIVE_KEY, KeyValueStore, StoreQuotaExceeded, open_store
from taxonomy import create_default_config
from version_history import VersionHistory

logger = logging.getLogger(__name__)

PRE_PUBLISH_LABEL = "Pre-publish backup"
PRE_ROLLBACK_LABEL = "Pre-rollback backup"
MANUAL_SNAPSHOT_LABEL = "Manual snapshot"
REFRESH_DELAY_MS = 100


def _size(payload: str) -> int:
    return len(payload.encode("utf-8"))


# --- Three-way merge for stale schemas ---


def _merge_section(stored: ConfigSection, skeleton: ConfigSection) -> Tuple[ConfigSection, List[str]]:
    """Stored section with any skeleton subcategories it lacks grafted on; existing ones untouched."""
    merged = stored.model_copy(deep=True)
    grafted: List[str] = []
    existing = {sub.id for sub in merged.subcategories or []}
    for sub in skeleton.subcategories or []:
        if sub.id in existing:
            continue
        if merged.subcategories is None:
            merged.subcategories = []
        merged.subcategories.append(sub.model_copy(deep=True))
        grafted.append(SectionPath(stored.id, sub.id).format())
    return merged, grafted


def merge_with_defaults(stored: AppConfig, defaults: AppConfig) -> AppConfig:
    """
    Three-way merge of a stale stored config onto the current default skeleton.

    Sections follow the skeleton's declaration order; sections the skeleton does
    not know are kept after it in stored order. Stored sections and
    subcategories are never overwritten, only missing ones are grafted in.
    Synonyms: defaults as base, stored entries win. Global brands: stored list
    verbatim when present, otherwise the defaults.
    """
    merged = stored.model_copy(deep=True)
    stored_by_id = {section.id: section for section in stored.sections}
    skeleton_ids = {section.id for section in defaults.sections}
    sections: List[ConfigSection] = []
    grafted: List[str] = []
    for skeleton in defaults.sections:
        current = stored_by_id.get(skeleton.id)
        if current is None:
            sections.append(skeleton.model_copy(deep=True))
            grafted.append(skeleton.id)
            continue
        section, added = _merge_section(current, skeleton)
        sections.append(section)
        grafted.extend(added)
    sections.extend(s.model_copy(deep=True) for s in stored.sections if s.id not in skeleton_ids)
    merged.sections = sections

    merged.synonym_map = merge_synonym_maps(defaults.synonym_map, stored.synonym_map)
    if stored.global_brands is None:
        merged.global_brands = [b.model_copy(deep=True) for b in defaults.global_brands or []]
    if not merged.result_copy:
        merged.result_copy = dict(defaults.result_copy)
    if merged.cross_listing_enabled is None:
        merged.cross_listing_enabled = defaults.cross_listing_enabled
    if grafted:
        logger.info("SCHEMA_MERGE grafted=%s paths=%s", len(grafted), grafted[:20])
    return merged


class ConfigService:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        cache: Optional[ConfigCache] = None,
        history: Optional[VersionHistory] = None,
        migrations: Optional[MigrationService] = None,
        events: Optional[ConfigEvents] = None,
        size_threshold_bytes: int = CONFIG_SIZE_THRESHOLD_BYTES,
        max_embedded_logo_bytes: int = MAX_EMBEDDED_LOGO_BYTES,
        default_factory: Callable[[], AppConfig] = create_default_config,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.store = store
        self.cache = cache if cache is not None else ConfigCache()
        self.history = history or VersionHistory(store)
        self.migrations = migrations or MigrationService(store, self.history, clock=clock)
        self.events = events or ConfigEvents()
        self.size_threshold_bytes = size_threshold_bytes
        self.max_embedded_logo_bytes = max_embedded_logo_bytes
        self._default_factory = default_factory
        self._clock = clock
        self.last_audit: Optional[audit.MigrationAudit] = None
        # Assessment rewrites of the last migrate(), written once its config is live.
        self._pending_migration: Optional[StagedMigration] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConfigService":
        return cls(
            open_store(settings),
            size_threshold_bytes=settings.size_threshold_bytes,
            max_embedded_logo_bytes=settings.max_embedded_logo_bytes,
        )

    # --- Slots ---

    def _read_slot(self, key: str) -> Optional[AppConfig]:
        """Parsed slot or None when empty. Raises ConfigParseError on bad payloads."""
        raw = self.store.get(key)
        if not raw:
            return None
        cached = self.cache.get(key, raw)
        if cached is not None:
            return cached
        config = parse_config(raw)
        self.cache.set(key, raw, config)
        return config

    def _write_slot(self, key: str, config: AppConfig) -> AppConfig:
        """
        Persist config under key, stripping oversized embedded logos when the
        payload is over the size threshold or the store rejects it.
        """
        payload = dump_config(config)
        optimized = False
        if _size(payload) > self.size_threshold_bytes:
            config, _ = strip_oversized_logos(config, self.max_embedded_logo_bytes)
            payload = dump_config(config)
            optimized = True
            logger.info("CONFIG_OPTIMIZED slot=%s size=%s", key, _size(payload))
        try:
            self.store.set(key, payload)
        except StoreQuotaExceeded as e:
            if optimized:
                raise ConfigCapacityError(_size(payload), e.quota_bytes) from e
            config, stripped = strip_oversized_logos(config, self.max_embedded_logo_bytes)
            if not stripped:
                raise ConfigCapacityError(_size(payload), e.quota_bytes) from e
            payload = dump_config(config)
            try:
                self.store.set(key, payload)
            except StoreQuotaExceeded as retry_error:
                raise ConfigCapacityError(_size(payload), retry_error.quota_bytes) from retry_error
        self.cache.set(key, payload, config)
        return config

    def _clear_slot(self, key: str) -> None:
        self.store.delete(key)
        self.cache.invalidate(key)

    def invalidate_cache(self) -> None:
        self.cache.invalidate()

    # --- Read path ---

    def _stored_live(self) -> Optional[AppConfig]:
        try:
            return self._read_slot(LIVE_KEY)
        except ConfigParseError as e:
            logger.warning("LIVE_PARSE_ERR client=%s err=%s", self.store.client_id, str(e)[:300])
            return None

    def read_live(self) -> AppConfig:
        """Stored live config, or a freshly synthesized default. Never writes."""
        stored = self._stored_live()
        if stored is not None:
            return stored
        logger.info("LIVE_DEFAULT client=%s", self.store.client_id)
        return self._default_factory()

    def needs_migration(self, config: AppConfig) -> bool:
        return needs_migration(config)

    def migrate(self, config: AppConfig) -> AppConfig:
        """
        Merge onto the default skeleton, run the pipeline and the no-deletion check.

        Stored assessment rewrites stay pending until the migrated config is
        published (get_live / publish); a failed publish leaves them untouched.
        """
        self._pending_migration = None
        merged = merge_with_defaults(config, self._default_factory())
        staged = self.migrations.stage_taxonomy_migration(merged, snapshot_of=config)
        result = audit.build_audit(config, staged.config)
        audit.assert_no_deletion(result)
        self.last_audit = result
        self._pending_migration = staged
        return staged.config.model_copy(deep=True)

    def _commit_migration(self, published_from: Optional[AppConfig] = None) -> None:
        """Write the pending assessment rewrites once the migrated config is live."""
        staged = self._pending_migration
        if staged is None:
            return
        if published_from is not None and published_from.updated_at != staged.config.updated_at:
            return
        self._pending_migration = None
        self.migrations.commit(staged)
        if self.last_audit is not None:
            audit.log(self.store, self.last_audit)

    def get_live(self) -> AppConfig:
        """
        Live config, upgraded in place when its schema is stale.

        Not side-effect free: a stale stored config is migrated and published
        before it is returned.
        """
        config = self.read_live()
        if not self.needs_migration(config):
            return config
        upgraded = self.migrate(config)
        published = self._promote(upgraded, action="migrated")
        self._commit_migration()
        return published

    def get_draft(self) -> Optional[AppConfig]:
        try:
            return self._read_slot(DRAFT_KEY)
        except ConfigParseError as e:
            logger.warning("DRAFT_PARSE_ERR client=%s err=%s", self.store.client_id, str(e)[:300])
            return None

    # --- Draft / publish ---

    def create_draft_from_live(self) -> AppConfig:
        return self.save_draft(self.get_live())

    def save_draft(self, config: AppConfig) -> AppConfig:
        """Persist a copy of config as the draft; returns what was stored."""
        draft = config.model_copy(deep=True)
        draft.status = "draft"
        draft.updated_at = self._clock()
        stored = self._write_slot(DRAFT_KEY, draft)
        logger.info("DRAFT_SAVED client=%s brands=%s", self.store.client_id, count_brands(stored))
        return stored

    def publish(self, config: Optional[AppConfig] = None) -> AppConfig:
        """Promote config (or the stored draft) to live, backing up the outgoing live first."""
        to_publish = config if config is not None else self.get_draft()
        if to_publish is None:
            raise NoDraftError()
        current = self._stored_live()
        if current is not None:
            self.history.append(current, PRE_PUBLISH_LABEL)
        published = self._promote(to_publish, action="published")
        self._commit_migration(to_publish)
        return published

    def _promote(self, config: AppConfig, action: str) -> AppConfig:
        live = config.model_copy(deep=True)
        live.status = "published"
        live.updated_at = self._clock()
        live = self._write_slot(LIVE_KEY, live)
        self._clear_slot(DRAFT_KEY)
        logger.info(
            "CONFIG_PUBLISHED client=%s action=%s sections=%s brands=%s logos=%s",
            self.store.client_id, action, len(live.sections), count_brands(live), count_logos(live),
        )
        self._notify(live, action)
        return live

    def _notify(self, config: AppConfig, action: str) -> None:
        self.events.emit(CONFIG_UPDATED, {
            "action": action,
            "timestamp": config.updated_at,
            "sectionCount": len(config.sections),
            "brandCount": count_brands(config),
            "logoCount": count_logos(config),
        })
        self.events.emit(CONFIG_REFRESH, {
            "force": True,
            "delayMs": REFRESH_DELAY_MS,
            "timestamp": config.updated_at,
        })

    # --- Versions ---

    def list_versions(self) -> List[ConfigVersion]:
        return self.history.list()

    def save_version(self, config: AppConfig, description: Optional[str] = None) -> ConfigVersion:
        return self.history.append(config, description)

    def create_snapshot(self, description: str = MANUAL_SNAPSHOT_LABEL) -> ConfigVersion:
        return self.history.append(self.read_live(), description)

    def rollback(self, version_id: str) -> AppConfig:
        """Hard-replace live with a stored snapshot; the outgoing live is backed up first."""
        version = self.history.get(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)
        current = self._stored_live()
        if current is not None:
            self.history.append(current, PRE_ROLLBACK_LABEL)
        restored = self._write_slot(LIVE_KEY, version.config.model_copy(deep=True))
        self._pending_migration = None
        self._clear_slot(DRAFT_KEY)
        logger.info("CONFIG_ROLLED_BACK client=%s version=%s", self.store.client_id, version_id)
        self._notify(restored, "rolled_back")
        return restored

    # --- Brand linking (returned configs go back through save_draft / publish) ---

    def link_option_to_global_brand(
        self, config: AppConfig, option_id: str, global_id: str, path: Optional[SectionPath] = None
    ) -> AppConfig:
        return brand_links.link_option_to_global_brand(config, option_id, global_id, path)

    def unlink_option_from_global_brand(
        self, config: AppConfig, option_id: str, path: Optional[SectionPath] = None
    ) -> AppConfig:
        return brand_links.unlink_option_from_global_brand(config, option_id, path)

    def sync_linked_options_from_global_brand(self, config: AppConfig, global_id: str) -> AppConfig:
        return brand_links.sync_linked_options_from_global_brand(config, global_id)

    def create_global_brand_from_option(
        self, config: AppConfig, option_id: str, path: Optional[SectionPath] = None
    ) -> Tuple[AppConfig, GlobalBrand]:
        return brand_links.create_global_brand_from_option(config, option_id, path)

    # --- Reporting helpers ---

    def info(self) -> Dict[str, Any]:
        config = self.read_live()
        payload = dump_config(config)
        return {
            "clientId": self.store.client_id,
            "schemaVersion": config.schema_version,
            "status": config.status,
            "updatedAt": config.updated_at,
            "sizeBytes": _size(payload),
            "sectionsCount": len(config.sections),
            "brandsCount": count_brands(config),
            "globalBrandsCount": len(config.global_brands or []),
            "versionsCount": len(self.history.list()),
            "hasDraft": self.store.get(DRAFT_KEY) is not None,
        }
