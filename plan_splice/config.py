"""Project settings from .splice/config.yaml plus SPLICE_* environment overrides."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

SPLICE_DIR = ".splice"
CONFIG_FILE = "config.yaml"

_ENV_OVERRIDES = {
    "SPLICE_BASE_DIR": "base_dir",
    "SPLICE_INCLUDE_PREFIX": "include_prefix",
    "SPLICE_MODULAR_PREFIX": "modular_prefix",
    "SPLICE_LOG_LEVEL": "log_level",
}


@dataclass
class Settings:
    base_dir: Path = field(default_factory=Path.cwd)
    include_prefix: str = ""   # fallback prefix for import references
    modular_prefix: str = ""   # fallback prefix for modular references
    plugins_dir: Path | None = None
    log_level: str = "WARNING"


def load_settings(cwd: str | Path | None = None) -> Settings:
    root = Path(cwd) if cwd else Path.cwd()
    splice_dir = root / SPLICE_DIR
    values: dict[str, str] = {}

    config_path = splice_dir / CONFIG_FILE
    if config_path.is_file():
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid config: expected a mapping in {config_path}")
        for key in ("base_dir", "include_prefix", "modular_prefix", "plugins_dir", "log_level"):
            if raw.get(key) is not None:
                values[key] = str(raw[key])
        logger.debug("Loaded settings from %s", config_path)

    for env_name, key in _ENV_OVERRIDES.items():
        if env_name in os.environ:
            values[key] = os.environ[env_name]

    base_dir = Path(values["base_dir"]) if "base_dir" in values else root
    if not base_dir.is_absolute():
        base_dir = root / base_dir

    plugins_dir = Path(values["plugins_dir"]) if "plugins_dir" in values else splice_dir / "plugins"
    if not plugins_dir.is_absolute():
        plugins_dir = root / plugins_dir

    return Settings(
        base_dir=base_dir,
        include_prefix=values.get("include_prefix", ""),
        modular_prefix=values.get("modular_prefix", ""),
        plugins_dir=plugins_dir,
        log_level=values.get("log_level", "WARNING").upper(),
    )
