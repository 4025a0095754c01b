"""
Taxonomy configuration data model.

AppConfig is the sole root: sections -> subcategories -> brand options, plus the
global brand library and the synonym map. Persisted JSON uses camelCase keys;
Python attributes are snake_case and either spelling is accepted on input.
Unknown keys are kept so a stored config survives a round trip untouched.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from errors import ConfigParseError

OptionState = Literal["active", "deprecated", "hidden", "optional"]
SectionState = Literal["active", "optional", "hidden"]
ConfigStatus = Literal["draft", "published"]

DEFAULT_SYSTEM_OPTIONS = ["None", "Not sure"]

# Bump when a step is added to the taxonomy migration pipeline.
CURRENT_SCHEMA_VERSION = 3


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class SectionPath:
    """Typed location in the taxonomy: a top-level section, optionally one subcategory."""
    section_id: str
    subcategory_id: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> "SectionPath":
        text = (raw or "").strip()
        if not text:
            raise ValueError("section path must not be empty")
        parts = text.split(".")
        if len(parts) > 2 or not all(parts):
            raise ValueError(f"invalid section path: {raw!r}")
        return cls(parts[0], parts[1] if len(parts) == 2 else None)

    def format(self) -> str:
        if self.subcategory_id:
            return f"{self.section_id}.{self.subcategory_id}"
        return self.section_id

    def parent(self) -> "SectionPath":
        return SectionPath(self.section_id)

    @property
    def is_subcategory(self) -> bool:
        return self.subcategory_id is not None

    def __str__(self) -> str:
        return self.format()


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class BrandOption(_ConfigModel):
    """A single selectable integration target inside one taxonomy location."""
    id: str
    name: str
    logo: Optional[str] = None
    synonyms: List[str] = Field(default_factory=list)
    state: OptionState = "active"
    # Cross-listing: other section paths this brand appears under
    categories: Optional[List[str]] = None
    global_id: Optional[str] = None
    is_linked_to_global: Optional[bool] = None
    meta: Optional[Dict[str, Any]] = None


class GlobalBrand(_ConfigModel):
    """Canonical deduplicated brand. assigned_sections[0] is the primary location."""
    id: str
    name: str
    logo: Optional[str] = None
    synonyms: List[str] = Field(default_factory=list)
    state: Literal["active", "deprecated", "hidden"] = "active"
    assigned_sections: List[str] = Field(default_factory=list)
    section_specific_meta: Optional[Dict[str, Any]] = None


class ConfigSection(_ConfigModel):
    id: str
    label: str
    description: Optional[str] = None
    multi: bool = True
    options: List[BrandOption] = Field(default_factory=list)
    system_options: List[str] = Field(default_factory=lambda: list(DEFAULT_SYSTEM_OPTIONS))
    subcategories: Optional[List["ConfigSection"]] = None
    # Redirect to another section's subcategory, e.g. "data_analytics.historians"
    alias_of: Optional[str] = None
    state: Optional[SectionState] = None

    def find_subcategory(self, subcategory_id: str) -> Optional["ConfigSection"]:
        for sub in self.subcategories or []:
            if sub.id == subcategory_id:
                return sub
        return None


class AppConfig(_ConfigModel):
    schema_version: int = 1
    status: ConfigStatus = "published"
    updated_at: str = Field(default_factory=utc_now_iso)
    sections: List[ConfigSection] = Field(default_factory=list)
    synonym_map: Dict[str, str] = Field(default_factory=dict)
    global_brands: Optional[List[GlobalBrand]] = None
    cross_listing_enabled: Optional[bool] = None
    # Header/template strings for the report renderer; opaque here.
    result_copy: Dict[str, Any] = Field(default_factory=dict)

    def find_global_brand(self, global_id: str) -> Optional[GlobalBrand]:
        for brand in self.global_brands or []:
            if brand.id == global_id:
                return brand
        return None


class ConfigVersion(_ConfigModel):
    """Immutable snapshot of a full AppConfig."""
    id: str
    config: AppConfig
    created_at: str = Field(default_factory=utc_now_iso)
    description: Optional[str] = None


# --- Serialization ---


def dump_config(config: AppConfig) -> str:
    return config.model_dump_json(by_alias=True, exclude_none=True)


def parse_config(payload: str | bytes | Dict[str, Any]) -> AppConfig:
    """Parse a stored/imported payload. Raises ConfigParseError on anything invalid."""
    try:
        data = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
    except (TypeError, ValueError) as e:
        raise ConfigParseError(f"config payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigParseError("config payload must be a JSON object")
    if not isinstance(data.get("sections"), list):
        raise ConfigParseError("config payload is missing the sections array")
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(f"config payload failed validation: {e.error_count()} error(s)") from e


def config_size_bytes(config: AppConfig) -> int:
    return len(dump_config(config).encode("utf-8"))


# --- Query helpers (read by renderers and the migration pipeline) ---


def iter_locations(config: AppConfig) -> Iterator[Tuple[SectionPath, ConfigSection]]:
    """Every option container in canonical order: a section, then each of its subcategories."""
    for section in config.sections:
        yield SectionPath(section.id), section
        for sub in section.subcategories or []:
            yield SectionPath(section.id, sub.id), sub


def iter_options(config: AppConfig) -> Iterator[Tuple[SectionPath, BrandOption]]:
    """All physical options, left to right, top to bottom."""
    for path, container in iter_locations(config):
        for option in container.options:
            yield path, option


def find_section(config: AppConfig, path: SectionPath | str) -> Optional[ConfigSection]:
    if isinstance(path, str):
        path = SectionPath.parse(path)
    for section in config.sections:
        if section.id != path.section_id:
            continue
        if path.subcategory_id is None:
            return section
        return section.find_subcategory(path.subcategory_id)
    return None


def find_option(config: AppConfig, option_id: str) -> Optional[Tuple[SectionPath, BrandOption]]:
    """First physical instance of an option id, in canonical order."""
    for path, option in iter_options(config):
        if option.id == option_id:
            return path, option
    return None


def count_brands(config: AppConfig) -> int:
    return sum(1 for _ in iter_options(config))


def count_logos(config: AppConfig) -> int:
    return sum(1 for _, option in iter_options(config) if option.logo)


def count_sections(config: AppConfig) -> int:
    return len(config.sections)


def count_global_brands(config: AppConfig) -> int:
    return len(config.global_brands or [])
