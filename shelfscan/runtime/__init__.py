"""Runtime infrastructure for shelfscan.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- Environment settings via PipelineSettings
- TOML rule overlays for stores, item categories and product names

Usage:
    from shelfscan.runtime import get_logger, get_paths

    logger = get_logger(__name__)
    paths = get_paths()
    print(paths.root, paths.learning)
"""

from shelfscan.runtime.item_category_rules import load_item_category_rule_layers
from shelfscan.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    set_log_level,
)
from shelfscan.runtime.name_rules import load_name_dictionaries
from shelfscan.runtime.paths import ProjectPaths, get_paths, reset_paths
from shelfscan.runtime.settings import PipelineSettings
from shelfscan.runtime.store_rules import load_known_store_keywords, load_store_locations

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Rules
    "load_known_store_keywords",
    "load_store_locations",
    "load_item_category_rule_layers",
    "load_name_dictionaries",
    # Settings
    "PipelineSettings",
    # Paths
    "get_paths",
    "reset_paths",
    "ProjectPaths",
]
