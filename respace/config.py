"""
Configuration management for review stores.

The configuration is stored as a TOML file in the store directory
(``<vault>/.respace`` unless RESPACE_STORE_PATH says otherwise). It holds
the daily new-item limit and where the review snapshot lives.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import tomli_w

from .review_store import (
    DEFAULT_DATA_LOCATION,
    DEFAULT_NEW_ITEMS_PER_DAY,
    validate_new_items_per_day,
)


CONFIG_FILENAME = "respace.toml"
CONFIG_VERSION = 1
STORE_DIRNAME = ".respace"
DEFAULT_AUTOSAVE_SECONDS = 120


def validate_data_location(location: str) -> str:
    """Snapshot path must be a vault-relative .json path."""
    if not location.endswith(".json"):
        raise ValueError(f"data_location must end with .json: {location!r}")
    if ".." in location:
        raise ValueError(f"data_location must not contain '..': {location!r}")
    if location.startswith("/") or Path(location).is_absolute():
        raise ValueError(f"data_location must be relative to the vault: {location!r}")
    return location


@dataclass
class ReviewConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    new_items_per_day: int = DEFAULT_NEW_ITEMS_PER_DAY
    autosave_seconds: int = DEFAULT_AUTOSAVE_SECONDS
    data_location: str = DEFAULT_DATA_LOCATION

    def __post_init__(self):
        validate_new_items_per_day(self.new_items_per_day)
        validate_data_location(self.data_location)
        if self.autosave_seconds < 0:
            raise ValueError(f"autosave_seconds must be >= 0: {self.autosave_seconds}")

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_store_dir(vault: Path) -> Path:
    """Store directory for a vault, respecting RESPACE_STORE_PATH."""
    override = os.environ.get("RESPACE_STORE_PATH")
    if override:
        return Path(override).expanduser()
    return Path(vault) / STORE_DIRNAME


def load_config(store_path: Path) -> ReviewConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid config {config_path}: {e}") from e

    # Validate version
    version = data.get("store", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    review = data.get("review", {})
    storage = data.get("storage", {})
    return ReviewConfig(
        path=store_path,
        version=version,
        created=data.get("store", {}).get("created", ""),
        new_items_per_day=review.get("new_items_per_day", DEFAULT_NEW_ITEMS_PER_DAY),
        autosave_seconds=review.get("autosave_seconds", DEFAULT_AUTOSAVE_SECONDS),
        data_location=storage.get("data_location", DEFAULT_DATA_LOCATION),
    )


def save_config(config: ReviewConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    # Ensure directory exists
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "review": {
            "new_items_per_day": config.new_items_per_day,
            "autosave_seconds": config.autosave_seconds,
        },
        "storage": {
            "data_location": config.data_location,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> ReviewConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    else:
        config = ReviewConfig(path=store_path)
        save_config(config)
        return config


def update_config(
    store_path: Path,
    *,
    new_items_per_day: Optional[int] = None,
    data_location: Optional[str] = None,
    autosave_seconds: Optional[int] = None,
) -> ReviewConfig:
    """Change settings and save. Values are validated before anything is written."""
    config = load_or_create_config(store_path)
    if new_items_per_day is not None:
        config.new_items_per_day = validate_new_items_per_day(new_items_per_day)
    if data_location is not None:
        config.data_location = validate_data_location(data_location)
    if autosave_seconds is not None:
        if autosave_seconds < 0:
            raise ValueError(f"autosave_seconds must be >= 0: {autosave_seconds}")
        config.autosave_seconds = autosave_seconds
    save_config(config)
    return config
