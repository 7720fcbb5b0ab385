"""Runtime loaders for store keywords and the store location registry."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from shelfscan.domain.receipt import StoreLocation
from shelfscan.receipt.store_identifier import build_store_keywords, build_store_registry
from shelfscan.runtime.paths import get_paths
from shelfscan.runtime.toml_config import load_toml


@lru_cache(maxsize=4)
def load_known_store_keywords(config_path: str | None = None) -> tuple[tuple[str, str], ...]:
    """
    Load (keyword, store name) pairs: built-ins plus store_keywords.toml.

    Args:
        config_path: Optional TOML path override. If None, uses the default data path.

    Returns:
        Tuple of (keyword, canonical store name), built-ins first.
    """
    path = Path(config_path) if config_path is not None else get_paths().store_keywords
    return build_store_keywords((load_toml(path),))


@lru_cache(maxsize=4)
def load_store_locations(config_path: str | None = None) -> tuple[StoreLocation, ...]:
    """Load the store location registry: built-ins plus store_locations.toml."""
    path = Path(config_path) if config_path is not None else get_paths().store_locations
    return build_store_registry((load_toml(path),))
