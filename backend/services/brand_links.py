"""
Brand-linking operations between physical options and the global brand library.

Every function takes a config and returns a modified deep copy; the input is
never mutated, so a not-found error leaves nothing half-applied. None of them
adds a physical option: an option id stays in exactly one location.
"""
from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from errors import GlobalBrandNotFoundError, OptionNotFoundError
from models_config import AppConfig, BrandOption, GlobalBrand, SectionPath, iter_options

logger = logging.getLogger(__name__)

# Fields a linked option mirrors from its global brand.
MIRRORED_FIELDS = ("name", "logo", "synonyms", "state")


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]", "_", (text or "").lower())
    slug = re.sub(r"_+", "_", slug)
    return slug.strip("_")


def _locate(config: AppConfig, option_id: str, path: Optional[SectionPath] = None) -> Tuple[SectionPath, BrandOption]:
    for option_path, option in iter_options(config):
        if option.id == option_id and (path is None or option_path == path):
            return option_path, option
    raise OptionNotFoundError(option_id)


def _global(config: AppConfig, global_id: str) -> GlobalBrand:
    brand = config.find_global_brand(global_id)
    if brand is None:
        raise GlobalBrandNotFoundError(global_id)
    return brand


def _mirror(option: BrandOption, brand: GlobalBrand) -> None:
    option.name = brand.name
    option.logo = brand.logo
    option.synonyms = list(brand.synonyms)
    option.state = brand.state
    option.global_id = brand.id
    option.is_linked_to_global = True


def _release(config: AppConfig, previous_id: Optional[str], location: str) -> None:
    """Drop a logical location from the brand an option was linked to; its primary stays."""
    previous = config.find_global_brand(previous_id) if previous_id else None
    if previous is None or location not in previous.assigned_sections:
        return
    if previous.assigned_sections[0] == location:
        return
    previous.assigned_sections = [path for path in previous.assigned_sections if path != location]
    logger.info("BRAND_LOCATION_RELEASED global=%s path=%s", previous.id, location)


def link_option_to_global_brand(
    config: AppConfig, option_id: str, global_id: str, path: Optional[SectionPath] = None
) -> AppConfig:
    """Overwrite the option's mirrored fields from the global brand and mark it linked."""
    working = config.model_copy(deep=True)
    brand = _global(working, global_id)
    option_path, option = _locate(working, option_id, path)
    location = option_path.format()
    if option.global_id and option.global_id != global_id:
        _release(working, option.global_id, location)
    _mirror(option, brand)
    if location not in brand.assigned_sections:
        brand.assigned_sections.append(location)
    logger.info("BRAND_LINKED option=%s global=%s path=%s", option_id, global_id, location)
    return working


def unlink_option_from_global_brand(
    config: AppConfig, option_id: str, path: Optional[SectionPath] = None
) -> AppConfig:
    """Drop the back-reference; last-synced values stay on the option as its own data."""
    working = config.model_copy(deep=True)
    option_path, option = _locate(working, option_id, path)
    previous = option.global_id
    _release(working, previous, option_path.format())
    option.global_id = None
    option.is_linked_to_global = None
    logger.info("BRAND_UNLINKED option=%s global=%s", option_id, previous)
    return working


def sync_linked_options_from_global_brand(config: AppConfig, global_id: str) -> AppConfig:
    """Re-broadcast the global brand's current fields to every option linked to it."""
    working = config.model_copy(deep=True)
    brand = _global(working, global_id)
    synced = 0
    for _, option in iter_options(working):
        if option.global_id == global_id and option.is_linked_to_global:
            _mirror(option, brand)
            synced += 1
    logger.info("BRAND_SYNCED global=%s options=%s", global_id, synced)
    return working


def _fresh_global_id(config: AppConfig, option_id: str) -> str:
    base = slugify(option_id) or "brand"
    taken = {brand.id for brand in config.global_brands or []}
    if base not in taken:
        return base
    n = 2
    while f"{base}_{n}" in taken:
        n += 1
    return f"{base}_{n}"


def create_global_brand_from_option(
    config: AppConfig, option_id: str, path: Optional[SectionPath] = None
) -> Tuple[AppConfig, GlobalBrand]:
    """
    Promote an option into a new global brand and link the option to it.

    The option's location becomes the brand's primary assigned section, followed
    by any cross-listed categories it already declares.
    """
    working = config.model_copy(deep=True)
    option_path, option = _locate(working, option_id, path)
    assigned = [option_path.format()]
    for category in option.categories or []:
        if category not in assigned:
            assigned.append(category)
    brand = GlobalBrand(
        id=_fresh_global_id(working, option.id),
        name=option.name,
        logo=option.logo,
        synonyms=list(option.synonyms),
        state=option.state if option.state in ("active", "deprecated", "hidden") else "active",
        assigned_sections=assigned,
    )
    working.global_brands = [*(working.global_brands or []), brand]
    _mirror(option, brand)
    logger.info("GLOBAL_BRAND_CREATED id=%s from_option=%s path=%s", brand.id, option_id, option_path)
    return working, brand.model_copy(deep=True)
