"""
Configuration management for note stores.

The configuration is stored as a TOML file in the store directory.
It specifies storage behavior (encryption, backup retention), which
annotator to use, and analysis parameters.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import tomli_w


CONFIG_FILENAME = "notecli.toml"
CONFIG_VERSION = 1

STORE_PATH_ENV = "NOTECLI_STORE_PATH"
ENCRYPTION_KEY_ENV = "NOTECLI_ENCRYPTION_KEY"


@dataclass
class ProviderConfig:
    """Configuration for a single provider."""
    name: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # Storage
    encrypt: bool = False
    backup_retention: int = 0  # 0 keeps every backup

    # Analysis
    annotator: ProviderConfig = field(default_factory=lambda: ProviderConfig("lexicon"))
    summary_length: int = 100
    similar_limit: int = 3

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_default_store_path() -> Path:
    """Store directory from NOTECLI_STORE_PATH, else ~/.notecli."""
    env = os.environ.get(STORE_PATH_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".notecli"


def get_encryption_key() -> Optional[str]:
    """
    Encryption key supplied by the hosting process.

    The store never generates or persists keys; hosts read it from the
    environment and pass it to NoteStore.
    """
    return os.environ.get(ENCRYPTION_KEY_ENV) or None


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

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid config {config_path}: {e}") from e

    # Validate version
    version = data.get("store", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    storage = data.get("storage", {})
    analysis = data.get("analysis", {})
    annotator = data.get("annotator", {"name": "lexicon"})

    retention = int(storage.get("backup_retention", 0))
    if retention < 0:
        raise ValueError(f"backup_retention must be >= 0, got {retention}")

    return StoreConfig(
        path=store_path,
        version=version,
        created=data.get("store", {}).get("created", ""),
        encrypt=bool(storage.get("encrypt", False)),
        backup_retention=retention,
        annotator=ProviderConfig(
            name=annotator.get("name", "lexicon"),
            params={k: v for k, v in annotator.items() if k != "name"},
        ),
        summary_length=int(analysis.get("summary_length", 100)),
        similar_limit=int(analysis.get("similar_limit", 3)),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    annotator = {"name": config.annotator.name}
    annotator.update(config.annotator.params)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "storage": {
            "encrypt": config.encrypt,
            "backup_retention": config.backup_retention,
        },
        "annotator": annotator,
        "analysis": {
            "summary_length": config.summary_length,
            "similar_limit": config.similar_limit,
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
    else:
        config = StoreConfig(path=store_path)
        save_config(config)
        return config
