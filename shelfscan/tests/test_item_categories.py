"""Tests for receipt item category matching."""

from pathlib import Path

import pytest
from shelfscan.domain.receipt import PRODUCT_CATEGORIES
from shelfscan.receipt.item_categories import build_item_category_rule_layers, categorize_item
from shelfscan.runtime.item_category_rules import load_item_category_rule_layers


@pytest.mark.parametrize(
    ("description", "expected"),
    [
        ("Milk Whole Gallon", "Dairy & Eggs"),
        ("Bread Wheat Loaf", "Bakery"),
        ("Grey Poupon Mustard", "Pantry & Dry Goods"),
        ("Land O Lakes Butter", "Dairy & Eggs"),
        ("Peanut Butter", "Pantry & Dry Goods"),
        ("Ice Cream Vanilla", "Frozen Foods"),
        ("Spindrift Raspberry Lime", "Beverages"),
        ("Chicken Breast Boneless", "Meat & Seafood"),
        ("Tomatoes On Vine", "Fresh Produce"),
        ("Signature Toothpaste", "Personal Care"),
        ("Motor Oil 5W30", "Automotive"),
    ],
)
def test_builtin_rules(description: str, expected: str) -> None:
    assert categorize_item(description) == expected


def test_unmatched_description_returns_default() -> None:
    assert categorize_item("Mystery Item") is None
    assert categorize_item("Mystery Item", default="Other") == "Other"


def test_keywords_match_whole_words_only() -> None:
    # "TEA" must not match inside "STEAK"
    assert categorize_item("Ribeye Steak") == "Meat & Seafood"


def test_all_builtin_categories_are_known() -> None:
    layers = build_item_category_rule_layers()

    assert {category for _keywords, category, _priority in layers.rules} <= set(PRODUCT_CATEGORIES)


def test_overlay_rules_take_priority_over_builtins() -> None:
    layers = build_item_category_rule_layers(
        [{"rules": [{"keywords": ["MILK"], "category": "Beverages"}, {"keywords": "X", "category": "Nope"}]}]
    )

    assert categorize_item("Milk Whole Gallon", rule_layers=layers) == "Beverages"
    assert all(category != "Nope" for _keywords, category, _priority in layers.rules)


def test_load_item_category_rule_layers_from_toml(tmp_path: Path) -> None:
    config = tmp_path / "item_classifier.toml"
    config.write_text(
        '[[rules]]\nkeywords = ["KOMBUCHA"]\ncategory = "Beverages"\npriority = 5\n',
        encoding="utf-8",
    )

    layers = load_item_category_rule_layers((str(config),))

    assert categorize_item("GT Kombucha Gingerade", rule_layers=layers) == "Beverages"
    assert layers.rules[0] == (("KOMBUCHA",), "Beverages", 105)


def test_default_loader_without_config_file_uses_builtins() -> None:
    assert load_item_category_rule_layers() == build_item_category_rule_layers()
