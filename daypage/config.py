"""
Configuration management for journal stores.

The configuration is stored as a TOML file in the store directory.
It selects the storage backend and the search result limits.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# tomli_w for writing TOML (tomllib is read-only)
try:
    import tomli_w
except ImportError:
    tomli_w = None  # type: ignore


CONFIG_FILENAME = "daypage.toml"
CONFIG_VERSION = 1

# Performance guardrails: result lists are capped and report the true total
DEFAULT_MAX_ENTRY_RESULTS = 200
DEFAULT_MAX_TAG_RESULTS = 200


@dataclass
class SearchConfig:
    """Result-size limits for the two search modes."""
    max_entry_results: int = DEFAULT_MAX_ENTRY_RESULTS
    max_tag_results: int = DEFAULT_MAX_TAG_RESULTS


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    backend: str = "local"
    search: SearchConfig = field(default_factory=SearchConfig)

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_config_dir() -> Path:
    """
    Directory holding the config file.

    Priority:
    1. DAYPAGE_CONFIG environment variable
    2. ~/.daypage
    """
    env = os.environ.get("DAYPAGE_CONFIG")
    if env:
        return Path(env).expanduser().resolve()
    return Path.home() / ".daypage"


def get_default_store_path(config: Optional[StoreConfig] = None) -> Path:
    """
    Directory holding the journal databases.

    DAYPAGE_STORE_PATH wins; otherwise the config's own directory.
    """
    env = os.environ.get("DAYPAGE_STORE_PATH")
    if env:
        return Path(env).expanduser().resolve()
    if config is not None:
        return config.path
    return get_config_dir()


def _positive_int(value, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return default
    return value


def load_config(store_path: Path) -> StoreConfig:
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

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    search = data.get("search", {})

    return StoreConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        backend=store.get("backend", "local"),
        search=SearchConfig(
            max_entry_results=_positive_int(
                search.get("max_entry_results"), DEFAULT_MAX_ENTRY_RESULTS),
            max_tag_results=_positive_int(
                search.get("max_tag_results"), DEFAULT_MAX_TAG_RESULTS),
        ),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    if tomli_w is None:
        raise RuntimeError("tomli_w is required to save config. Install with: pip install tomli-w")

    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "backend": config.backend,
        },
        "search": {
            "max_entry_results": config.search.max_entry_results,
            "max_tag_results": config.search.max_tag_results,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    config = StoreConfig(path=store_path)
    save_config(config)
    return config
