"""Tests for product name enhancement."""

from __future__ import annotations

from pathlib import Path

import pytest
from shelfscan.receipt.name_dictionaries import build_name_dictionaries
from shelfscan.receipt.name_enhancer import enhance_name, strip_technical_codes, title_case
from shelfscan.runtime.name_rules import load_name_dictionaries


def test_store_brand_abbreviation_expanded() -> None:
    result = enhance_name("G-P MUSTARD", "SAFEWAY")

    assert result.enhanced_name == "Grey Poupon Mustard"
    assert result.confidence > 0.7
    assert result.category == "Pantry & Dry Goods"
    assert "Store brand: G-P -> GREY POUPON" in result.applied_corrections


def test_store_brand_table_ignored_for_other_stores() -> None:
    assert "Grey Poupon" not in enhance_name("G-P MUSTARD", "WALMART").enhanced_name


def test_store_name_with_suffix_selects_brand_table() -> None:
    assert enhance_name("LND O LKS BUTTER", "SAFEWAY #910").enhanced_name == "Land O Lakes Butter"


@pytest.mark.parametrize(
    ("name", "store"),
    [
        ("Grey Poupon Mustard", "SAFEWAY"),
        ("Land O Lakes Butter", "SAFEWAY"),
        ("Great Value Whole Milk", "WALMART"),
        ("Organic Bananas", ""),
        ("Vitamin C", ""),
        ("Vitamin E", ""),
    ],
)
def test_enhancement_is_a_fixed_point(name: str, store: str) -> None:
    once = enhance_name(name, store).enhanced_name
    twice = enhance_name(once, store).enhanced_name

    assert once == name
    assert twice == once


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("BNLS CHICK BRST", "Boneless Chicken Breast"),
        ("PUB DICED TOMATOES", "Diced Tomatoes"),
        ("PUBLIX TOM/PASTE", "Tomato Paste"),
        ("JIF RD FT CREAMY", "Jif Reduced Fat Creamy"),
        ("PUBLIX FF LT VANIL", "Fat Free Light Vanilla"),
        ("PF W/G WHEAT BREAD", "Whole Grain Wheat Bread"),
        ("GV WHL MLK 1 GAL", "Great Value Whole Milk 1 Gallon"),
    ],
)
def test_dictionary_and_phrase_rewrites(raw: str, expected: str) -> None:
    store = "WALMART" if raw.startswith("GV") else "PUBLIX"
    assert enhance_name(raw, store).enhanced_name == expected


def test_ocr_character_fixes_raise_confidence() -> None:
    result = enhance_name("C0FFEE BEANS")

    assert result.enhanced_name == "Coffee Beans"
    assert result.confidence == pytest.approx(0.75)
    assert "OCR fix: 0 -> O" in result.applied_corrections


def test_invalid_names_get_zero_confidence() -> None:
    result = enhance_name("12.99")

    assert result.enhanced_name == ""
    assert result.confidence == 0.0
    assert result.category is None
    assert result.applied_corrections == ("Invalid product name",)


def test_heavy_shrink_is_penalized() -> None:
    result = enhance_name("PUBLIX PUB PBX PF MILK", "PUBLIX")

    assert result.enhanced_name == "Milk"
    assert "Over-correction penalty" in result.applied_corrections
    assert result.confidence == pytest.approx(0.77)


def test_strip_technical_codes() -> None:
    assert strip_technical_codes("MILK 2% 012345678901 F") == "MILK 2%"
    assert strip_technical_codes("ORANGE JUICE S") == "ORANGE JUICE"
    assert strip_technical_codes("Vitamin C") == "Vitamin C"
    assert strip_technical_codes("Vitamin E") == "Vitamin E"


def test_title_case_keeps_apostrophes() -> None:
    assert title_case("TATE'S BAKE SHOP") == "Tate's Bake Shop"


def test_config_overlay_adds_food_terms(tmp_path: Path) -> None:
    config = tmp_path / "name_corrections.toml"
    config.write_text('[food_terms]\nBNNA = "banana"\n\n[store_brands.COSTCO]\nKS = "KIRKLAND"\n', encoding="utf-8")

    dictionaries = load_name_dictionaries(str(config))

    assert enhance_name("BNNA ORGANIC", dictionaries=dictionaries).enhanced_name == "Banana Organic"
    assert dictionaries.store_terms("COSTCO WHOLESALE")["KS"] == "KIRKLAND"
    assert build_name_dictionaries().store_terms("COSTCO") == {}
