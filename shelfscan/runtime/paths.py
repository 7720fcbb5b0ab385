"""Centralized path management for shelfscan.

All user data (config overlays, learned corrections) lives under one root,
``~/.shelfscan`` unless SHELFSCAN_HOME points elsewhere.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _get_data_root() -> Path:
    """Determine the data root directory."""
    override = os.environ.get("SHELFSCAN_HOME")
    if override:
        return Path(override).expanduser()
    return Path("~/.shelfscan").expanduser()


@dataclass
class ProjectPaths:
    """Container for all shelfscan data paths."""

    root: Path = field(default_factory=_get_data_root)

    def __post_init__(self) -> None:
        # Ensure root is resolved to absolute path
        self.root = self.root.resolve()

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        """Configuration directory (config/)."""
        return self.root / "config"

    @property
    def store_keywords(self) -> Path:
        """Extra store name keywords TOML file."""
        return self.config / "store_keywords.toml"

    @property
    def store_locations(self) -> Path:
        """Extra store location registry TOML file."""
        return self.config / "store_locations.toml"

    @property
    def item_classifier_rules(self) -> Path:
        """Item category rule overlay TOML file."""
        return self.config / "item_classifier.toml"

    @property
    def name_corrections(self) -> Path:
        """Product name dictionary overlay TOML file."""
        return self.config / "name_corrections.toml"

    # --- Learning data ---
    @property
    def learning(self) -> Path:
        """Learned patterns and feedback log directory."""
        return self.root / "learning"

    def ensure_directories(self) -> None:
        """Create the config and learning directories if they don't exist."""
        self.config.mkdir(parents=True, exist_ok=True)
        self.learning.mkdir(parents=True, exist_ok=True)


# Module-level singleton
_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance."""
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def reset_paths() -> None:
    """Forget the cached singleton so SHELFSCAN_HOME is read again."""
    global _paths
    _paths = None
