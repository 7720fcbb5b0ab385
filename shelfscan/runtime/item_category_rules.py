"""Runtime loader for receipt item categorization rules."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from shelfscan.receipt.item_categories import ItemCategoryRuleLayers, build_item_category_rule_layers
from shelfscan.runtime.paths import get_paths
from shelfscan.runtime.toml_config import load_toml


@lru_cache(maxsize=8)
def load_item_category_rule_layers(
    classifier_paths: tuple[str, ...] | None = None,
) -> ItemCategoryRuleLayers:
    """Load item-category rules from runtime-configured files into pure in-memory layers."""
    if classifier_paths is None:
        classifier_files = [get_paths().item_classifier_rules]
    else:
        classifier_files = [Path(path) for path in classifier_paths]

    classifier_configs = tuple(load_toml(path) for path in classifier_files)
    return build_item_category_rule_layers(classifier_configs=classifier_configs)
