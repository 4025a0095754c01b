"""
File-based export/import of a full AppConfig, plus rollback points.

An imported file goes through the same schema check as the live read path
before it is trusted as live.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from models_config import AppConfig, ConfigVersion, dump_config, parse_config
from services.config_service import ConfigService

logger = logging.getLogger(__name__)

PRE_IMPORT_LABEL = "Pre-import backup"
ROLLBACK_POINT_LABEL = "Manual rollback point"


def default_export_filename() -> str:
    return f"taxonomy-config-{datetime.now(timezone.utc).date().isoformat()}.json"


def export_config(service: ConfigService, path: Optional[Path] = None) -> Path:
    """Write the live config as pretty JSON; returns the path written."""
    target = Path(path) if path else Path(default_export_filename())
    target.parent.mkdir(parents=True, exist_ok=True)
    config = service.get_live()
    data = json.loads(dump_config(config))
    with open(target, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info("CONFIG_EXPORTED path=%s", target)
    return target


def load_config_file(path: Path) -> AppConfig:
    """Parse a config file. Raises ConfigParseError for invalid content."""
    text = Path(path).read_text(encoding="utf-8")
    return parse_config(text)


def import_config(service: ConfigService, path: Path, backup: bool = True) -> AppConfig:
    """Parse, upgrade if stale, optionally snapshot the current live, then publish."""
    config = load_config_file(path)
    if service.needs_migration(config):
        logger.info("CONFIG_IMPORT_MIGRATE path=%s schema=%s", path, config.schema_version)
        config = service.migrate(config)
    if backup:
        service.create_snapshot(PRE_IMPORT_LABEL)
    published = service.publish(config)
    logger.info("CONFIG_IMPORTED path=%s", path)
    return published


def config_info(service: ConfigService) -> Dict[str, Any]:
    info = service.info()
    info["size"] = f"{round(info['sizeBytes'] / 1024)}KB"
    return info


def create_rollback_point(service: ConfigService, description: str = ROLLBACK_POINT_LABEL) -> ConfigVersion:
    version = service.create_snapshot(description)
    logger.info("ROLLBACK_POINT id=%s description=%r", version.id, description)
    return version


def rollback_package_id(version: ConfigVersion) -> str:
    return "rollback_" + re.sub(r"[:.]", "-", version.created_at)
