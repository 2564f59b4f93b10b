"""Runtime settings.

Resolution order, later wins:

    defaults  ←  {data_dir}/config.json  ←  WAYFARER_* environment variables

A `.env` file is loaded into the environment first (existing variables win),
so it behaves like any other environment source.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from wayfarer.errors import WayfarerError

logger = logging.getLogger(__name__)

ENV_PREFIX = "WAYFARER_"
DEFAULT_DATA_DIR = Path("data")


class ConfigError(WayfarerError):
    """Raised when stored or environment configuration is invalid."""


class Settings(BaseModel):
    typewriter_cps: float = Field(default=20.0, gt=0)
    generation_timeout: float = Field(default=30.0, gt=0)
    storage_prefix: str = "wayfarer"
    autosave: bool = True
    data_dir: str = str(DEFAULT_DATA_DIR)
    content_path: str = "presets/voyage.json"

    # Content generation backend
    provider_url: str = ""
    api_key: str = ""
    provider_format: Literal["koboldcpp", "openai"] = "koboldcpp"
    model: str = ""

    @property
    def saves_dir(self) -> Path:
        return Path(self.data_dir) / "saves"


def _config_path(data_dir: Path) -> Path:
    return Path(data_dir) / "config.json"


def _read_stored(data_dir: Path) -> dict[str, Any]:
    path = _config_path(data_dir)
    if not path.is_file():
        return {}
    try:
        stored = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(stored, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return stored


def _from_env() -> dict[str, str]:
    values: dict[str, str] = {}
    for name in Settings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = raw
    return values


def load_settings(data_dir: Path | None = None) -> Settings:
    """Build Settings from defaults, the stored config file and the environment."""
    load_dotenv()
    resolved = Path(data_dir or os.getenv(f"{ENV_PREFIX}DATA_DIR", str(DEFAULT_DATA_DIR)))

    merged: dict[str, Any] = {}
    merged.update(_read_stored(resolved))
    merged.update(_from_env())
    merged["data_dir"] = str(resolved)
    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    logger.debug("settings loaded from %s", resolved)
    return settings


def update_config(fields: dict[str, Any], data_dir: Path | None = None) -> Settings:
    """Merge fields into the stored config and persist. Returns the merged settings."""
    resolved = Path(data_dir or DEFAULT_DATA_DIR)
    stored = _read_stored(resolved)
    stored.update(fields)
    stored.pop("data_dir", None)
    try:
        Settings.model_validate({**stored, "data_dir": str(resolved)})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    resolved.mkdir(parents=True, exist_ok=True)
    _config_path(resolved).write_text(json.dumps(stored, indent=2))
    return load_settings(resolved)
