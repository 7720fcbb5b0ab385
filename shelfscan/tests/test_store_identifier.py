"""Tests for store identification tiers."""

from __future__ import annotations

from pathlib import Path

from shelfscan.domain.receipt import ExtractedAddress, GeocodeHint, StoreLocation
from shelfscan.receipt.store_identifier import (
    DEFAULT_STORE_LOCATIONS,
    add_store_location,
    build_store_keywords,
    build_store_registry,
    identify_store,
    identify_store_by_keyword,
    lookup_store_by_address,
    score_address_match,
    store_chain_from_place_name,
)
from shelfscan.runtime.store_rules import load_known_store_keywords, load_store_locations

LIVERMORE_ADDRESS = ExtractedAddress(
    street="1554 FIRST STREET",
    city="LIVERMORE",
    state="CA",
    zip_code="94550",
    store_number="910",
)


def test_exact_registry_address_identifies_store() -> None:
    identity = lookup_store_by_address(LIVERMORE_ADDRESS)

    assert identity is not None
    assert identity.name == "SAFEWAY"
    assert identity.confidence > 0.9
    assert identity.source == "address"


def test_exact_address_scores_one() -> None:
    safeway = next(loc for loc in DEFAULT_STORE_LOCATIONS if loc.store_name == "SAFEWAY")

    assert score_address_match(LIVERMORE_ADDRESS, safeway) == 1.0


def test_partial_address_below_threshold_is_rejected() -> None:
    address = ExtractedAddress(street="77 ELM STREET", state="CA")

    assert lookup_store_by_address(address) is None


def test_keyword_tier_prefers_longer_keywords() -> None:
    identity = identify_store_by_keyword("welcome to trader joe's market")

    assert identity is not None
    assert identity.name == "TRADER JOE'S"
    assert identity.source == "keyword"
    assert identity.confidence == 0.95


def test_keyword_requires_word_boundary() -> None:
    assert identify_store_by_keyword("TARGETED SAVINGS") is None


def test_identify_store_from_text_without_keyword_uses_address() -> None:
    text = "Store 910\n1554 First Street\nLIVERMORE CA 94550\nMILK 3.99"
    identity = identify_store(text)

    assert identity is not None
    assert identity.name == "SAFEWAY"
    assert identity.source == "address"


def test_geocoder_consulted_only_for_weak_address() -> None:
    calls: list[str] = []

    def geocoder(query: str) -> GeocodeHint | None:
        calls.append(query)
        return GeocodeHint(store_name="TARGET", formatted_address="1 Main St")

    identity = identify_store("400 Oak Avenue\nSPRINGFIELD IL 62701", geocoder=geocoder)

    assert identity is not None
    assert identity.name == "TARGET"
    assert identity.source == "online"
    assert calls == ["400 OAK AVENUE, SPRINGFIELD, IL, 62701"]

    calls.clear()
    identify_store("1554 First Street\nLIVERMORE CA 94550", geocoder=geocoder)
    assert calls == []


def test_keyword_hit_wins_over_geocoder() -> None:
    def geocoder(query: str) -> GeocodeHint | None:
        raise AssertionError("geocoder should not be called")

    identity = identify_store("WALMART\n400 Oak Avenue\nSPRINGFIELD IL 62701", geocoder=geocoder)

    assert identity is not None
    assert identity.name == "WALMART"


def test_store_chain_from_place_name() -> None:
    assert store_chain_from_place_name("Safeway Livermore") == "SAFEWAY"
    assert store_chain_from_place_name("Joe's Corner Deli") is None


def test_add_store_location_skips_duplicates() -> None:
    duplicate = StoreLocation("SAFEWAY", "1554 FIRST STREET", "LIVERMORE", "CA", "94550")

    assert add_store_location(DEFAULT_STORE_LOCATIONS, duplicate) == DEFAULT_STORE_LOCATIONS


def test_build_store_config_overlays() -> None:
    keywords = build_store_keywords([{"stores": [{"name": "Bob's Market", "keywords": ["BOBS MKT"]}]}])
    registry = build_store_registry(
        [{"locations": [{"store_name": "bobs", "address": "1 Main St", "city": "Town", "state": "ca"}]}]
    )

    assert ("BOBS MKT", "BOB'S MARKET") in keywords
    assert registry[-1] == StoreLocation("BOBS", "1 MAIN ST", "TOWN", "CA", "")


def test_runtime_store_loaders_read_toml(tmp_path: Path) -> None:
    keywords_path = tmp_path / "store_keywords.toml"
    keywords_path.write_text('[[stores]]\nname = "Corner Grocer"\nkeywords = ["CORNER GROCER"]\n', encoding="utf-8")
    locations_path = tmp_path / "store_locations.toml"
    locations_path.write_text(
        '[[locations]]\nstore_name = "CORNER GROCER"\naddress = "12 PINE ROAD"\n'
        'city = "OAKTOWN"\nstate = "OR"\nzip_code = "97001"\n',
        encoding="utf-8",
    )

    assert ("CORNER GROCER", "CORNER GROCER") in load_known_store_keywords(str(keywords_path))
    assert load_store_locations(str(locations_path))[-1].city == "OAKTOWN"
    assert load_store_locations(str(tmp_path / "missing.toml")) == DEFAULT_STORE_LOCATIONS
