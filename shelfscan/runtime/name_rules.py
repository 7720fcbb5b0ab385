"""Runtime loader for product name correction dictionaries."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from shelfscan.receipt.name_dictionaries import NameDictionaries, build_name_dictionaries
from shelfscan.runtime.paths import get_paths
from shelfscan.runtime.toml_config import load_toml


@lru_cache(maxsize=4)
def load_name_dictionaries(config_path: str | None = None) -> NameDictionaries:
    """Built-in dictionaries overlaid with name_corrections.toml, if present."""
    path = Path(config_path) if config_path is not None else get_paths().name_corrections
    return build_name_dictionaries((load_toml(path),))
