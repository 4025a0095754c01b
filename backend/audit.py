"""Migration audit helper. Call after a schema upgrade, before persisting."""
from __future__ import annotations

import json
import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from errors import MigrationSafetyError
from models_config import AppConfig, count_global_brands, count_sections, iter_options, utc_now_iso
from store import AUDIT_KEY, KeyValueStore

logger = logging.getLogger(__name__)

AUDIT_LOG_LIMIT = 50


class MigrationAudit(BaseModel):
    timestamp: str = Field(default_factory=utc_now_iso)
    schema_version_before: int
    schema_version_after: int
    sections_count_before: int
    sections_count_after: int
    global_brands_count_before: int
    global_brands_count_after: int
    options_added: List[str] = Field(default_factory=list)
    # Option ids present before and absent after. Folded duplicates keep their id.
    options_removed: List[str] = Field(default_factory=list)
    deletions_count: int = 0


def build_audit(before: AppConfig, after: AppConfig, options_added: Optional[List[str]] = None) -> MigrationAudit:
    before_ids = {option.id for _, option in iter_options(before)}
    after_ids = {option.id for _, option in iter_options(after)}
    if options_added is None:
        options_added = sorted(after_ids - before_ids)
    removed = sorted(before_ids - after_ids)
    return MigrationAudit(
        schema_version_before=before.schema_version,
        schema_version_after=after.schema_version,
        sections_count_before=count_sections(before),
        sections_count_after=count_sections(after),
        global_brands_count_before=count_global_brands(before),
        global_brands_count_after=count_global_brands(after),
        options_added=options_added,
        options_removed=removed,
        deletions_count=len(removed),
    )


def assert_no_deletion(audit: MigrationAudit) -> None:
    if audit.sections_count_after < audit.sections_count_before:
        raise MigrationSafetyError(
            f"SAFETY VIOLATION: sections count decreased "
            f"({audit.sections_count_before} -> {audit.sections_count_after})"
        )
    if audit.global_brands_count_after < audit.global_brands_count_before:
        raise MigrationSafetyError(
            f"SAFETY VIOLATION: global brands count decreased "
            f"({audit.global_brands_count_before} -> {audit.global_brands_count_after})"
        )
    if audit.deletions_count > 0:
        raise MigrationSafetyError(
            f"SAFETY VIOLATION: migration deleted {audit.deletions_count} option(s): "
            f"{', '.join(audit.options_removed[:20])}"
        )


def log(store: KeyValueStore, audit: MigrationAudit) -> None:
    """Append the audit to the store's audit list (bounded) and the log."""
    raw = store.get(AUDIT_KEY)
    try:
        entries = json.loads(raw) if raw else []
    except ValueError:
        logger.warning("AUDIT_PARSE_ERR client=%s; starting a new audit list", store.client_id)
        entries = []
    entries.insert(0, audit.model_dump(mode="json"))
    del entries[AUDIT_LOG_LIMIT:]
    store.set(AUDIT_KEY, json.dumps(entries))
    logger.info(
        "MIGRATION_AUDIT schema=%s->%s sections=%s->%s global_brands=%s->%s added=%s removed=%s",
        audit.schema_version_before, audit.schema_version_after,
        audit.sections_count_before, audit.sections_count_after,
        audit.global_brands_count_before, audit.global_brands_count_after,
        len(audit.options_added), audit.deletions_count,
    )


def read_log(store: KeyValueStore) -> List[MigrationAudit]:
    raw = store.get(AUDIT_KEY)
    if not raw:
        return []
    return [MigrationAudit.model_validate(entry) for entry in json.loads(raw)]
