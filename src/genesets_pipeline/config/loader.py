"""Configuration loading with YAML parsing and validation."""

import os
from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import PipelineConfig

CONFIG_ENV_VAR = "GENESETS_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/default.yaml")


def default_config_path() -> Path:
    """Return the config path from $GENESETS_CONFIG, else config/default.yaml."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Read a YAML settings file into a validated PipelineConfig.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If a setting is missing or out of range
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return pydantic_yaml.parse_yaml_raw_as(
        PipelineConfig, config_path.read_text(encoding="utf-8")
    )


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> PipelineConfig:
    """
    Load settings and apply CLI overrides such as ``{"species": "mouse"}``.

    Keys may be dotted (``"api.timeout_seconds"``). None values are ignored
    so unset options keep the file value. The merged settings are validated
    again.
    """
    settings = load_config(config_path).model_dump()

    for key, value in overrides.items():
        if value is None:
            continue
        *parents, leaf = key.split(".")
        target = settings
        for part in parents:
            target = target[part]
        target[leaf] = value

    return PipelineConfig.model_validate(settings)
