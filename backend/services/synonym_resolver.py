"""
Synonym resolution: map free-text brand names to canonical option / global brand ids.

Two tiers: exact lookup in the config's synonym map (keys are lowercase), then an
ordered list of regex fallback patterns where the first match wins.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Pattern, Sequence, Tuple

from pydantic import BaseModel

from models_config import AppConfig, iter_options

logger = logging.getLogger(__name__)

Confidence = Literal["exact", "pattern", "none"]
FallbackPatterns = Sequence[Tuple[str, Pattern[str]]]


class Resolution(BaseModel):
    id: str
    confidence: Confidence


def _normalize(text: str) -> str:
    return text.strip().lower()


def resolve(raw_name: str, synonym_map: Mapping[str, str]) -> str:
    """Canonical id for raw_name, or raw_name unchanged when nothing maps."""
    if not raw_name or not isinstance(raw_name, str):
        return raw_name
    resolved = synonym_map.get(_normalize(raw_name))
    if resolved:
        logger.debug("SYNONYM_EXACT input=%r id=%s", raw_name, resolved)
        return resolved
    return raw_name


def resolve_many(names: Iterable[str], synonym_map: Mapping[str, str]) -> List[str]:
    return [resolve(name, synonym_map) for name in names]


def resolve_with_fallback(
    raw_name: str,
    synonym_map: Mapping[str, str],
    patterns: Optional[FallbackPatterns] = None,
) -> Resolution:
    """Exact tier, then patterns in declaration order (first match wins), else 'none'."""
    exact = resolve(raw_name, synonym_map)
    if exact != raw_name:
        return Resolution(id=exact, confidence="exact")
    if patterns and isinstance(raw_name, str) and raw_name:
        text = raw_name.lower()
        for canonical_id, pattern in patterns:
            if pattern.search(text):
                logger.debug("SYNONYM_PATTERN input=%r id=%s", raw_name, canonical_id)
                return Resolution(id=canonical_id, confidence="pattern")
    return Resolution(id=raw_name, confidence="none")


def reverse_synonym_map(synonym_map: Mapping[str, str]) -> Dict[str, List[str]]:
    """canonical id -> synonyms that point at it, in map order."""
    reverse: Dict[str, List[str]] = {}
    for synonym, canonical_id in synonym_map.items():
        reverse.setdefault(canonical_id, []).append(synonym)
    return reverse


# Ordered: earlier entries win when a name matches several patterns.
COMMON_FALLBACK_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("palantir_foundry", re.compile(r"foundry|palantir", re.I)),
    ("aveva_pi", re.compile(r"pi\s*(system|server)?|osisoft", re.I)),
    ("ignition", re.compile(r"ignition|inductive", re.I)),
    ("wonderware", re.compile(r"wonderware|aveva.*system", re.I)),
    ("schneider", re.compile(r"schneider|aveva.*plant", re.I)),
    ("rockwell", re.compile(r"rockwell|factorytalk|rslogix", re.I)),
    ("siemens", re.compile(r"siemens|step\s*7|tia", re.I)),
    ("honeywell", re.compile(r"honeywell|experion|dcs", re.I)),
    ("emerson", re.compile(r"emerson|deltav", re.I)),
    ("yokogawa", re.compile(r"yokogawa|centum", re.I)),
)


def resolve_system_id(raw_name: str, synonym_map: Mapping[str, str]) -> str:
    return resolve_with_fallback(raw_name, synonym_map, COMMON_FALLBACK_PATTERNS).id


# --- Synonym dictionary merging ---


def normalize_synonym_map(synonym_map: Mapping[str, str]) -> Dict[str, str]:
    """Lowercase/trim keys; on a collision after normalization the later entry wins."""
    normalized: Dict[str, str] = {}
    for key, value in synonym_map.items():
        norm = _normalize(str(key))
        if norm and value:
            normalized[norm] = value
    return normalized


def merge_synonym_maps(base: Mapping[str, str], override: Mapping[str, str]) -> Dict[str, str]:
    """base provides defaults; override wins on key collisions."""
    merged = normalize_synonym_map(base)
    merged.update(normalize_synonym_map(override))
    return merged


def build_synonym_map(config: AppConfig) -> Dict[str, str]:
    """
    Synonym map extended with option names and synonyms.

    Explicit entries in config.synonym_map always win; among derived entries the
    first option in canonical order claims a contested name.
    """
    derived: Dict[str, str] = {}
    for _, option in iter_options(config):
        for text in [option.name, *option.synonyms]:
            key = _normalize(text or "")
            if key and key not in derived:
                derived[key] = option.global_id if option.is_linked_to_global and option.global_id else option.id
    for brand in config.global_brands or []:
        for text in [brand.name, *brand.synonyms]:
            key = _normalize(text or "")
            if key and key not in derived:
                derived[key] = brand.id
    return merge_synonym_maps(derived, config.synonym_map)
