"""Embedded logo helpers: size estimates and the lossy stripping pass used before persisting."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from models_config import AppConfig, iter_options

logger = logging.getLogger(__name__)


def is_embedded_image(logo: Optional[str]) -> bool:
    return bool(logo) and logo.strip().startswith("data:image/")


def estimate_image_bytes(data_url: str) -> int:
    """Decoded size of a base64 data URL (base64 is ~4/3 of the binary)."""
    _, _, payload = data_url.partition(",")
    payload = payload.strip()
    padding = len(payload) - len(payload.rstrip("="))
    return max(0, (len(payload) * 3) // 4 - padding)


def validate_image_size(data_url: str, max_size_kb: int = 100) -> bool:
    return estimate_image_bytes(data_url) <= max_size_kb * 1024


def _oversized(logo: Optional[str], max_bytes: int) -> bool:
    return is_embedded_image(logo) and estimate_image_bytes(logo or "") > max_bytes


def strip_oversized_logos(config: AppConfig, max_bytes: int) -> Tuple[AppConfig, List[str]]:
    """
    Copy of config with embedded logos above max_bytes removed.

    URL logos are never touched. Returns the copy and the ids (options and
    global brands) whose logo was dropped.
    """
    optimized = config.model_copy(deep=True)
    stripped: List[str] = []
    for _, option in iter_options(optimized):
        if _oversized(option.logo, max_bytes):
            option.logo = None
            stripped.append(option.id)
    for brand in optimized.global_brands or []:
        if _oversized(brand.logo, max_bytes):
            brand.logo = None
            stripped.append(brand.id)
    if stripped:
        logger.warning("LOGOS_STRIPPED count=%s max_bytes=%s ids=%s", len(stripped), max_bytes, stripped[:20])
    return optimized, stripped
