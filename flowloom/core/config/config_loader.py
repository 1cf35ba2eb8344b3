"""Configuration loading for FlowLoom.

Settings come from ``config/flowloom.yaml`` and are overridden by
environment variables (a ``.env`` file is loaded first). Missing or broken
config files fall back to defaults with a warning.

Environment overrides:
  FLOWLOOM_CONFIG_DIR     directory holding flowloom.yaml
  FLOWLOOM_RESOURCE_DIR   root directory for per-project diagram folders
  FLOWLOOM_LINK_PREFIX    URL prefix used in link manifests
  PLANTUML_JAR_PATH       local PlantUML JAR
  PLANTUML_SERVER_URL     PlantUML server for HTTP rendering
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..constants import DEFAULT_LINK_PREFIX, DEFAULT_OUTPUT_FORMAT, DEFAULT_RESOURCE_DIR

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "flowloom.yaml"

_ENV_OVERRIDES = {
    "FLOWLOOM_RESOURCE_DIR": "resource_dir",
    "FLOWLOOM_LINK_PREFIX": "link_prefix",
    "PLANTUML_JAR_PATH": "plantuml_jar_path",
    "PLANTUML_SERVER_URL": "plantuml_server_url",
}


class DiagramSettings(BaseModel):
    """Runtime settings for diagram generation and rendering."""
    resource_dir: str = Field(DEFAULT_RESOURCE_DIR, description="Root for project diagram folders")
    link_prefix: str = Field(DEFAULT_LINK_PREFIX, description="URL prefix for manifest links")
    output_format: str = Field(DEFAULT_OUTPUT_FORMAT, description="Rendered image format")
    plantuml_jar_path: Optional[str] = Field(None, description="Local PlantUML JAR")
    plantuml_server_url: str = Field(
        "https://www.plantuml.com/plantuml", description="PlantUML server for HTTP fallback"
    )
    render_timeout: int = Field(60, gt=0, description="JAR render timeout in seconds")
    http_timeout: float = Field(30.0, gt=0, description="HTTP render timeout in seconds")

    @field_validator("output_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("png", "svg"):
            raise ValueError(f"output_format must be 'png' or 'svg', got '{value}'")
        return value

    @field_validator("link_prefix")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


def get_config_path() -> Path:
    """Directory holding flowloom.yaml."""
    env_dir = os.environ.get("FLOWLOOM_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path(__file__).parent.parent.parent.parent / "config"


def _load_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.exists():
        logger.info("%s not found at %s, using defaults", CONFIG_FILE_NAME, config_file)
        return {}

    try:
        with open(config_file, "r") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Error loading %s: %s — using defaults", config_file, e)
        return {}

    if not isinstance(config, dict):
        logger.warning("%s is not a mapping — using defaults", config_file)
        return {}
    return config


def _flatten(config: Dict[str, Any]) -> Dict[str, Any]:
    """Map the sectioned YAML layout onto DiagramSettings field names."""
    diagrams = config.get("diagrams") or {}
    plantuml = config.get("plantuml") or {}

    values = {
        "resource_dir": diagrams.get("resource_dir"),
        "link_prefix": diagrams.get("link_prefix"),
        "output_format": diagrams.get("output_format"),
        "plantuml_jar_path": plantuml.get("jar_path"),
        "plantuml_server_url": plantuml.get("server_url"),
        "render_timeout": plantuml.get("render_timeout"),
        "http_timeout": plantuml.get("http_timeout"),
    }
    return {k: v for k, v in values.items() if v is not None}


def load_settings(config_dir: Optional[Path] = None) -> DiagramSettings:
    """Build settings from YAML plus environment overrides (uncached)."""
    config_file = (config_dir or get_config_path()) / CONFIG_FILE_NAME
    values = _flatten(_load_yaml(config_file))

    for env_name, field_name in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[field_name] = env_value

    try:
        return DiagramSettings(**values)
    except ValidationError as e:
        logger.warning("Invalid diagram settings (%s) — using defaults", e)
        return DiagramSettings()


@lru_cache(maxsize=1)
def get_settings() -> DiagramSettings:
    return load_settings()


def reload_settings() -> DiagramSettings:
    """Drop the cached settings and read them again."""
    get_settings.cache_clear()
    return get_settings()
