"""Shared pytest fixtures for shelfscan tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from shelfscan.runtime.item_category_rules import load_item_category_rule_layers
from shelfscan.runtime.name_rules import load_name_dictionaries
from shelfscan.runtime.paths import reset_paths
from shelfscan.runtime.store_rules import load_known_store_keywords, load_store_locations

_ENV_VARS = (
    "SHELFSCAN_AI_API_KEY",
    "SHELFSCAN_AI_MODEL",
    "SHELFSCAN_AI_BASE_URL",
    "SHELFSCAN_PLACES_API_KEY",
    "SHELFSCAN_MAX_INPUT_CHARS",
    "SHELFSCAN_LEARNING_MAX_RECORDS",
)


def _clear_loader_caches() -> None:
    load_known_store_keywords.cache_clear()
    load_store_locations.cache_clear()
    load_item_category_rule_layers.cache_clear()
    load_name_dictionaries.cache_clear()


@pytest.fixture(autouse=True)
def shelfscan_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point all user data at a temp directory and keep network collaborators off."""
    home = tmp_path / "shelfscan-home"
    monkeypatch.setenv("SHELFSCAN_HOME", str(home))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_paths()
    _clear_loader_caches()
    yield home
    reset_paths()
    _clear_loader_caches()
