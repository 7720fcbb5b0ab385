"""Item categorization for enhanced receipt names.

Rules are ordered: the first rule with a keyword found in the description wins,
so specific phrases ("ICE CREAM", "PEANUT BUTTER") are listed before the
generic words they contain ("CREAM", "BUTTER").
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from shelfscan.domain.receipt import PRODUCT_CATEGORIES

# Rule format: (keywords, category)
ITEM_RULES: list[tuple[tuple[str, ...], str]] = [
    (("MOTOR OIL", "WIPER", "ANTIFREEZE"), "Automotive"),
    (("ICE CREAM", "FROZEN", "POPSICLE", "PIZZA"), "Frozen Foods"),
    (("PEANUT BUTTER", "TOMATO PASTE", "OLIVE OIL", "BROTH", "SOUP", "PASTA", "PENNE", "FUSILLI", "NOODLE",
      "RICE", "CEREAL", "OATS", "GRANOLA", "FLOUR", "SUGAR", "BEANS", "CANNED", "MUSTARD", "KETCHUP",
      "MAYONNAISE", "SAUCE", "HOISIN", "SRIRACHA", "OIL", "VINEGAR"), "Pantry & Dry Goods"),
    (("CAT FOOD", "DOG FOOD", "LITTER", "PET"), "Pet Supplies"),
    (("DIAPER", "BABY", "INFANT FORMULA", "WIPES"), "Baby & Kids"),
    (("VITAMIN", "TYLENOL", "ADVIL", "ASPIRIN", "IBUPROFEN", "MEDICINE", "ALLERGY", "BANDAGE"), "Pharmacy"),
    (("TOOTHPASTE", "TOOTHBRUSH", "MOUTHWASH", "MOUTHRINSE", "SHAMPOO", "CONDITIONER", "DEODORANT", "SOAP",
      "LOTION", "RAZOR"), "Personal Care"),
    (("DETERGENT", "CLEANER", "BLEACH", "PAPER TOWEL", "TOILET PAPER", "TISSUE", "TRASH BAG", "FOIL",
      "DISH", "DRYER SHEET", "SPONGE"), "Household & Cleaning"),
    (("SODA", "JUICE", "WATER", "SPARKLING", "COFFEE", "TEA", "COLA", "LEMONADE", "SPINDRIFT"), "Beverages"),
    (("MILK", "CHEESE", "PARMESAN", "CHEDDAR", "BUTTER", "YOGURT", "CREAM", "EGG"), "Dairy & Eggs"),
    (("CHICKEN", "BEEF", "PORK", "TURKEY", "BACON", "SAUSAGE", "HAM", "PEPPERONI", "FISH", "SALMON",
      "SHRIMP", "TUNA", "MEAT", "BURGER", "STEAK"), "Meat & Seafood"),
    (("APPLE", "BANANA", "ORANGE", "POTATO", "ONION", "CARROT", "LETTUCE", "TOMATO", "PEPPER", "LIME",
      "LEMON", "AVOCADO", "BROCCOLI", "GRAPE", "BERRY", "BERRIES", "SHALLOT", "SPINACH", "CUCUMBER",
      "PRODUCE"), "Fresh Produce"),
    (("BREAD", "BAGEL", "MUFFIN", "COOKIE", "CAKE", "DONUT", "CROISSANT", "BUN", "TORTILLA", "LOAF"), "Bakery"),
    (("CHIPS", "CANDY", "CHOCOLATE", "POPCORN", "PRETZEL", "CRACKERS", "DORITOS", "CHEETOS", "FRITOS",
      "TOSTITOS", "NUTS"), "Snacks & Candy"),
    (("BATTERY", "BATTERIES", "CHARGER", "CABLE", "HEADPHONES"), "Electronics"),
    (("SOCKS", "SHIRT", "GLOVES"), "Clothing"),
    (("FLOWER", "PLANT", "SEEDS", "POTTING SOIL"), "Home & Garden"),
    (("PAPER", "PEN", "PENCIL", "NOTEBOOK", "TAPE"), "Office Supplies"),
]

RuleEntry = tuple[tuple[str, ...], str, int]


@dataclass(frozen=True)
class ItemCategoryRuleLayers:
    """Ordered keyword rules; earlier entries win."""

    rules: tuple[RuleEntry, ...]


def _normalize_keywords(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        raw_keywords = [raw]
    elif isinstance(raw, (list, tuple)):
        raw_keywords = list(raw)
    else:
        return ()
    return tuple(kw for kw in (str(item).strip().upper() for item in raw_keywords) if kw)


def build_item_category_rule_layers(
    classifier_configs: Sequence[Mapping[str, Any]] | None = None,
) -> ItemCategoryRuleLayers:
    """Build merged rules from built-ins and `[[rules]]` config overlays.

    Overlay rules carry a layer priority (config index * 100 plus the rule's own
    priority) and are evaluated before built-ins; ties keep file order.
    Categories outside the fixed enumeration are ignored.
    """
    rules: list[RuleEntry] = [(keywords, category, 0) for keywords, category in ITEM_RULES]

    for idx, config in enumerate(classifier_configs or (), start=1):
        layer_priority = idx * 100
        for rule in config.get("rules", []):
            if not isinstance(rule, Mapping):
                continue

            keywords = _normalize_keywords(rule.get("keywords"))
            category = str(rule.get("category") or "").strip()
            if not keywords or category not in PRODUCT_CATEGORIES:
                continue

            priority = int(rule.get("priority", 0)) + layer_priority
            rules.append((keywords, category, priority))

    # Stable sort keeps declaration order among equal priorities.
    rules.sort(key=lambda rule: rule[2], reverse=True)
    return ItemCategoryRuleLayers(rules=tuple(rules))


@lru_cache(maxsize=1)
def _get_default_rule_layers() -> ItemCategoryRuleLayers:
    """Built-in-only default rules (no file I/O, no runtime deps)."""
    return build_item_category_rule_layers()


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Whole words, allowing a plural suffix on the last word.
    return re.compile(r"\b" + re.escape(keyword) + r"(?:S|ES)?\b")


def categorize_item(
    description: str,
    default: str | None = None,
    *,
    rule_layers: ItemCategoryRuleLayers | None = None,
) -> str | None:
    """
    Categorize an item description using first-match keyword rules.

    Args:
        description: Item name, raw or enhanced
        default: Value returned when nothing matches
        rule_layers: Optional rule layers; defaults to built-in rules

    Returns:
        A category from PRODUCT_CATEGORIES, or default
    """
    desc_upper = description.upper()
    layers = rule_layers or _get_default_rule_layers()
    for keywords, category, _priority in layers.rules:
        for keyword in keywords:
            if _keyword_pattern(keyword).search(desc_upper):
                return category
    return default
