"""Configuration for modpack-sync (stored as YAML)."""

import os
from pathlib import Path
from typing import Optional

import platformdirs
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .constants import APP_AUTHOR, APP_NAME, CONFIG_ENV_VAR, CONFIG_FILE, DEFAULT_TIMEOUT
from .core import SyncMode
from .errors import ConfigError
from .utils import atomic_write_text


class SyncConfig(BaseModel):
    """Where the mods come from and where they go."""

    remote_url: str  # e.g. https://example.com/mods/plugins.zip
    target_dir: Path  # e.g. .../Valheim/BepInEx/plugins
    mode: SyncMode = "in-place"
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    workspace_dir: Optional[Path] = None
    confirm: bool = True  # ask before replacing the mod folder

    @field_validator("remote_url")
    @classmethod
    def _remote_url_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("remote_url must not be empty")
        return value


def default_config_path() -> Path:
    """Config location: $MODPACK_SYNC_CONFIG, else the platform config dir."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return Path(platformdirs.user_config_dir(APP_NAME, APP_AUTHOR)) / CONFIG_FILE


def load_config(path: Optional[Path] = None) -> SyncConfig:
    """Load configuration.

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the file is not valid YAML or misses required fields
    """
    path = Path(path) if path else default_config_path()
    if not path.exists():
        raise FileNotFoundError(f"Configuration not found at {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    try:
        return SyncConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e


def save_config(config: SyncConfig, path: Optional[Path] = None) -> Path:
    """Save configuration atomically and return the path written."""
    path = Path(path) if path else default_config_path()
    config_text = yaml.safe_dump(
        config.model_dump(mode="json", exclude_none=True),
        default_flow_style=False,
        sort_keys=False,
    )
    atomic_write_text(path, config_text)
    return path
