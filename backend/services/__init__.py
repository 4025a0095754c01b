"""Config core services."""

from services.synonym_resolver import (
    resolve,
    resolve_many,
    resolve_with_fallback,
    Resolution,
)
from services.migration_service import MigrationService, needs_migration
from services.config_service import ConfigService

__all__ = [
    "resolve",
    "resolve_many",
    "resolve_with_fallback",
    "Resolution",
    "MigrationService",
    "needs_migration",
    "ConfigService",
]
