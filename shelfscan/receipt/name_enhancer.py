"""Product name enhancement for OCR'd receipt item names.

Every successful rewrite raises the running confidence and appends an entry to
the audit trail, so callers can show why "G-P MUSTARD" became
"Grey Poupon Mustard".
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache

from shelfscan.domain.receipt import clamp01

from .item_categories import ItemCategoryRuleLayers, categorize_item
from .name_dictionaries import NameDictionaries, default_name_dictionaries

DEFAULT_BASE_CONFIDENCE = 0.7
CHAR_FIX_BOOST = 0.05
DICTIONARY_BOOST = 0.1
PHRASE_BOOST = 0.1
OVER_CORRECTION_RATIO = 0.5
OVER_CORRECTION_PENALTY = 0.7
MIN_ENHANCED_LENGTH = 3

# Trailing register codes: UPC runs, tax flags, size/status tokens.
# Flags after a lowercase word are part of an already readable name ("Vitamin C").
TECHNICAL_CODE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\d{12,}[A-Z]*\b"),
    re.compile(r"(?<![a-z\s])\s+[A-Z]{1,2}$"),
    re.compile(r"(?<![a-z]\s)\b(F|T|E|X|KF|MD|LG|SM|XL|XXL)$"),
)

# (pattern, replacement, description); only where a letter context makes the misread plausible
CHARACTER_FIXES: tuple[tuple[re.Pattern[str], str, str], ...] = (
    (re.compile(r"\b0(?=[A-Z])"), "O", "0 -> O"),
    (re.compile(r"\b1(?=[A-Z])"), "I", "1 -> I"),
    (re.compile(r"(?<=[A-Z])0(?=[A-Z])"), "O", "0 -> O"),
    (re.compile(r"(?<=[A-Z])1(?=[A-Z])"), "I", "1 -> I"),
    (re.compile(r"\bVV"), "W", "VV -> W"),
    (re.compile(r"\bU([AEIOU])"), r"O\1", "U -> O"),
)

_DISALLOWED_CHARS = re.compile(r"[^\w\s&'/%.-]")
_NUMERIC_ONLY = re.compile(r"[\d\s.,/%-]+")


@dataclass(frozen=True)
class NameEnhancement:
    original_name: str
    enhanced_name: str
    category: str | None
    confidence: float
    applied_corrections: tuple[str, ...] = ()


@lru_cache(maxsize=2048)
def _word_pattern(key: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(key) + r"\b", re.IGNORECASE)


def _apply_table(name: str, table: Mapping[str, str], label: str, corrections: list[str]) -> tuple[str, int]:
    """Apply one dictionary; returns the new name and the number of keys that hit."""
    hits = 0
    # Longer keys first so "LND O LKS" wins over any single-word key inside it
    for key in sorted(table, key=lambda k: (-len(k), k)):
        replacement = table[key]
        name, count = _word_pattern(key).subn(replacement, name)
        if count:
            hits += 1
            corrections.append(f"{label}: {key} -> {replacement or '(removed)'}")
    return name, hits


def title_case(name: str) -> str:
    """Capitalize the first letter of each word and lower the rest.

    Unlike str.title() this leaves "TATE'S" as "Tate's".
    """
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split())


def strip_technical_codes(name: str) -> str:
    cleaned = name.strip()
    for pattern in TECHNICAL_CODE_PATTERNS:
        cleaned = pattern.sub("", cleaned).strip()
    return cleaned


def enhance_name(
    raw: str,
    store_name: str = "",
    base_confidence: float = DEFAULT_BASE_CONFIDENCE,
    *,
    dictionaries: NameDictionaries | None = None,
    rule_layers: ItemCategoryRuleLayers | None = None,
) -> NameEnhancement:
    """
    Turn a raw receipt item name into a readable product name.

    Args:
        raw: Item name as printed on the receipt
        store_name: Detected or hinted store; selects the store brand dictionary
        base_confidence: Starting confidence before boosts and penalties
        dictionaries: Substitution tables; defaults to the built-in set
        rule_layers: Category rules; defaults to the built-in set

    Returns:
        NameEnhancement with the enhanced name, category and audit trail.
        Names that end up numeric or shorter than 3 characters come back with
        an empty enhanced name and confidence 0.
    """
    tables = dictionaries or default_name_dictionaries()
    corrections: list[str] = []
    confidence = base_confidence
    original = raw.strip()

    name = strip_technical_codes(original)
    if name != original:
        corrections.append("Removed technical codes")

    for pattern, replacement, description in CHARACTER_FIXES:
        name, count = pattern.subn(replacement, name)
        if count:
            confidence += CHAR_FIX_BOOST
            corrections.append(f"OCR fix: {description}")

    for table, label in (
        (tables.store_terms(store_name), "Store brand"),
        (tables.food_terms, "Food term"),
        (tables.store_brand_prefixes, "Store prefix"),
        (tables.national_brands, "Brand"),
        (tables.units, "Unit"),
    ):
        name, hits = _apply_table(name, table, label, corrections)
        confidence += DICTIONARY_BOOST * hits

    for pattern, replacement in tables.phrases:
        name, count = re.subn(pattern, replacement, name, flags=re.IGNORECASE)
        if count:
            confidence += PHRASE_BOOST
            corrections.append(f"Phrase: {replacement}")

    name = _DISALLOWED_CHARS.sub(" ", name)
    name = title_case(re.sub(r"\s+", " ", name).strip())

    if len(name) < MIN_ENHANCED_LENGTH or _NUMERIC_ONLY.fullmatch(name):
        return NameEnhancement(
            original_name=raw,
            enhanced_name="",
            category=None,
            confidence=0.0,
            applied_corrections=("Invalid product name",),
        )

    # Shrinking a name by more than half usually means a dictionary over-matched
    if original and (len(original) - len(name)) / len(original) > OVER_CORRECTION_RATIO:
        confidence *= OVER_CORRECTION_PENALTY
        corrections.append("Over-correction penalty")

    return NameEnhancement(
        original_name=raw,
        enhanced_name=name,
        category=categorize_item(name, rule_layers=rule_layers),
        confidence=clamp01(confidence),
        applied_corrections=tuple(corrections),
    )
