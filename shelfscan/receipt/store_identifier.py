"""Identify the issuing store from receipt text.

Tiers, in order of trust:
1. Known chain keywords anywhere in the text (source="keyword").
2. Address fragments fuzzy-matched against a static location registry
   (source="address"); also used to corroborate tier 1.
3. An injected online geocoder, consulted only when an address was found but
   the registry match is weak (source="online").
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from shelfscan.domain.receipt import ExtractedAddress, GeocodeHint, StoreIdentity, StoreLocation

from .ocr_parser.fields_parser import extract_address
from .text_similarity import string_similarity

KEYWORD_CONFIDENCE = 0.95
ONLINE_CONFIDENCE = 0.8
ADDRESS_ACCEPT_THRESHOLD = 0.6
ONLINE_LOOKUP_THRESHOLD = 0.8

# (keyword, canonical store name)
DEFAULT_STORE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("WALMART", "WALMART"),
    ("TARGET", "TARGET"),
    ("SAFEWAY", "SAFEWAY"),
    ("KROGER", "KROGER"),
    ("COSTCO", "COSTCO"),
    ("WHOLE FOODS", "WHOLE FOODS"),
    ("WINCO", "WINCO"),
    ("TRADER JOE", "TRADER JOE'S"),
    ("TRADER JOE'S", "TRADER JOE'S"),
    ("PUBLIX", "PUBLIX"),
    ("ALBERTSONS", "ALBERTSONS"),
    ("SPROUTS", "SPROUTS"),
)

# Chains recognised in online place names
ONLINE_CHAIN_NAMES: tuple[str, ...] = (
    "WALMART",
    "TARGET",
    "SAFEWAY",
    "KROGER",
    "COSTCO",
    "HOME DEPOT",
    "LOWES",
    "BEST BUY",
    "MACY'S",
    "KOHLS",
)

DEFAULT_STORE_LOCATIONS: tuple[StoreLocation, ...] = (
    StoreLocation(
        store_name="WALMART",
        address="9455 MISSISSAUGA ROAD",
        city="BRAMPTON",
        state="ON",
        zip_code="L6X 0Z8",
        store_number="1079",
        phone="905-451-6307",
    ),
    StoreLocation(
        store_name="WALMART",
        address="882 S. STATE ROAD 136",
        city="GREENWOOD",
        state="IN",
        zip_code="46143",
        store_number="5483",
    ),
    StoreLocation(
        store_name="SAFEWAY",
        address="1554 FIRST STREET",
        city="LIVERMORE",
        state="CA",
        zip_code="94550",
        store_number="910",
    ),
)

# Component weights, out of 100
STREET_WEIGHT = 40
CITY_WEIGHT = 20
STATE_WEIGHT = 15
ZIP_WEIGHT = 15
STORE_NUMBER_WEIGHT = 10
PHONE_WEIGHT = 5

_STREET_SUFFIXES = re.compile(r"\b(STREET|ST|ROAD|RD|AVENUE|AVE|BOULEVARD|BLVD|DRIVE|DR)\b")

Geocoder = Callable[[str], GeocodeHint | None]


def build_store_keywords(configs: Sequence[Mapping[str, Any]] | None = None) -> tuple[tuple[str, str], ...]:
    """Merge built-in chain keywords with `[[stores]]` entries from config files."""
    keywords = list(DEFAULT_STORE_KEYWORDS)
    for config in configs or ():
        for store in config.get("stores", []):
            if not isinstance(store, Mapping):
                continue
            name = str(store.get("name") or "").strip().upper()
            if not name:
                continue
            raw_keywords = store.get("keywords") or [name]
            if isinstance(raw_keywords, str):
                raw_keywords = [raw_keywords]
            for keyword in raw_keywords:
                kw = str(keyword).strip().upper()
                if kw:
                    keywords.append((kw, name))
    return tuple(keywords)


def build_store_registry(configs: Sequence[Mapping[str, Any]] | None = None) -> tuple[StoreLocation, ...]:
    """Merge built-in store locations with `[[locations]]` entries from config files."""
    registry: tuple[StoreLocation, ...] = DEFAULT_STORE_LOCATIONS
    for config in configs or ():
        for raw in config.get("locations", []):
            if not isinstance(raw, Mapping):
                continue
            try:
                location = StoreLocation(
                    store_name=str(raw["store_name"]).strip().upper(),
                    address=str(raw["address"]).strip().upper(),
                    city=str(raw.get("city", "")).strip().upper(),
                    state=str(raw.get("state", "")).strip().upper(),
                    zip_code=str(raw.get("zip_code", "")).strip().upper(),
                    store_number=str(raw["store_number"]) if raw.get("store_number") else None,
                    phone=str(raw["phone"]) if raw.get("phone") else None,
                )
            except KeyError:
                continue
            registry = add_store_location(registry, location)
    return registry


def add_store_location(
    registry: tuple[StoreLocation, ...], location: StoreLocation
) -> tuple[StoreLocation, ...]:
    """Return a registry including location, unless that address/city pair already exists."""
    for existing in registry:
        if (
            existing.store_name == location.store_name
            and existing.address == location.address
            and existing.city == location.city
        ):
            return registry
    return (*registry, location)


def identify_store_by_keyword(text: str, keywords: Iterable[tuple[str, str]] = DEFAULT_STORE_KEYWORDS) -> StoreIdentity | None:
    """Find the first known chain name in text, trying longer keywords first."""
    text_upper = text.upper()
    for keyword, store_name in sorted(keywords, key=lambda item: len(item[0]), reverse=True):
        pattern = r"\b" + re.escape(keyword.upper()) + r"\b"
        if re.search(pattern, text_upper):
            return StoreIdentity(name=store_name, confidence=KEYWORD_CONFIDENCE, source="keyword")
    return None


def _normalize_street(address: str) -> str:
    normalized = _STREET_SUFFIXES.sub("", address.upper())
    normalized = re.sub(r"[^\w\s]", "", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def _normalize_token(value: str) -> str:
    return re.sub(r"[^\w]", "", value.upper())


def score_address_match(address: ExtractedAddress, location: StoreLocation) -> float:
    """Weighted match score in [0, 1]; only components present on both sides count."""
    score = 0.0
    max_score = 0

    if address.street and location.address:
        max_score += STREET_WEIGHT
        score += string_similarity(_normalize_street(address.street), _normalize_street(location.address)) * STREET_WEIGHT

    if address.city and location.city:
        max_score += CITY_WEIGHT
        if _normalize_token(address.city) == _normalize_token(location.city):
            score += CITY_WEIGHT

    if address.state and location.state:
        max_score += STATE_WEIGHT
        if address.state.upper() == location.state.upper():
            score += STATE_WEIGHT

    if address.zip_code and location.zip_code:
        max_score += ZIP_WEIGHT
        if _normalize_token(address.zip_code) == _normalize_token(location.zip_code):
            score += ZIP_WEIGHT

    if address.store_number and location.store_number:
        max_score += STORE_NUMBER_WEIGHT
        if address.store_number == location.store_number:
            score += STORE_NUMBER_WEIGHT

    if address.phone and location.phone:
        max_score += PHONE_WEIGHT
        if re.sub(r"\D", "", address.phone) == re.sub(r"\D", "", location.phone):
            score += PHONE_WEIGHT

    return score / max_score if max_score else 0.0


def lookup_store_by_address(
    address: ExtractedAddress,
    registry: Iterable[StoreLocation] = DEFAULT_STORE_LOCATIONS,
) -> StoreIdentity | None:
    """Best registry match scoring above the acceptance threshold, if any."""
    best: StoreIdentity | None = None
    for location in registry:
        score = score_address_match(address, location)
        if score > ADDRESS_ACCEPT_THRESHOLD and (best is None or score > best.confidence):
            best = StoreIdentity(name=location.store_name, confidence=score, source="address")
    return best


def store_chain_from_place_name(place_name: str) -> str | None:
    upper_name = place_name.upper()
    for chain in ONLINE_CHAIN_NAMES:
        if chain in upper_name:
            return chain
    return None


def identify_store(
    text: str,
    *,
    keywords: Iterable[tuple[str, str]] = DEFAULT_STORE_KEYWORDS,
    registry: Iterable[StoreLocation] = DEFAULT_STORE_LOCATIONS,
    geocoder: Geocoder | None = None,
    address: ExtractedAddress | None = None,
) -> StoreIdentity | None:
    """Run the keyword, address and online tiers and return the best identity.

    Args:
        text: Receipt text.
        keywords: (keyword, store name) pairs for tier 1.
        registry: Known store locations for tier 2.
        geocoder: Optional online lookup for tier 3. It must not raise.
        address: Pre-extracted address; extracted from text when omitted.
    """
    keyword_hit = identify_store_by_keyword(text, keywords)
    if address is None:
        address = extract_address(text)

    address_hit = lookup_store_by_address(address, registry) if not address.is_empty() else None

    if keyword_hit is not None:
        if address_hit is not None and address_hit.name == keyword_hit.name:
            return max(keyword_hit, address_hit, key=lambda identity: identity.confidence)
        return keyword_hit

    if address_hit is not None and address_hit.confidence >= ONLINE_LOOKUP_THRESHOLD:
        return address_hit

    if geocoder is not None and address.street:
        hint = geocoder(address.query_string())
        if hint is not None:
            return StoreIdentity(name=hint.store_name, confidence=ONLINE_CONFIDENCE, source="online")

    return address_hit
