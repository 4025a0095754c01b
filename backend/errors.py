"""Error taxonomy for the config core. Everything here is raised to the caller."""
from __future__ import annotations


class ConfigError(Exception):
    """Base class for config core failures."""


class ConfigParseError(ConfigError):
    """Stored or imported payload is not a valid AppConfig."""


class ConfigCapacityError(ConfigError):
    """Serialized config does not fit the store, even after stripping embedded images."""

    def __init__(self, size_bytes: int, quota_bytes: int | None = None):
        self.size_bytes = size_bytes
        self.quota_bytes = quota_bytes
        limit = f" (quota {quota_bytes} bytes)" if quota_bytes else ""
        super().__init__(
            f"Configuration is {size_bytes} bytes and does not fit the store{limit}. "
            "Reduce logo image sizes or replace embedded logos with URLs."
        )


class NotFoundError(ConfigError):
    """A referenced version, global brand or option does not exist."""


class VersionNotFoundError(NotFoundError):
    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"Version {version_id} not found")


class GlobalBrandNotFoundError(NotFoundError):
    def __init__(self, global_id: str):
        self.global_id = global_id
        super().__init__(f"Global brand {global_id} not found")


class OptionNotFoundError(NotFoundError):
    def __init__(self, option_id: str):
        self.option_id = option_id
        super().__init__(f"Brand option {option_id} not found")


class NoDraftError(ConfigError):
    """publish() was called without a config and no draft is stored."""

    def __init__(self) -> None:
        super().__init__("No draft config to publish")


class MigrationSafetyError(ConfigError):
    """A migration reduced the number of sections or global brands."""
