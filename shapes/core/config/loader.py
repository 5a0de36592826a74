"""
Configuration loader — reads the shapes config file into domain models.

The file lists additional template repositories:

    repositories:
      - path: ~/my-templates
        main: main

A bare YAML list of repositories is accepted as well.  A missing file is
not an error; it simply adds nothing.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from shapes.core.models.repository import RepositoryInfo, ShapesConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SHAPES_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/shapes/config.yml")

# Built-in templates ship as package data.  In a git checkout of shapes the
# same directory is what ``shapes update`` pulls.
PACKAGE_ROOT = Path(__file__).resolve().parents[2]
FACTORY_REPO = RepositoryInfo(path=str(PACKAGE_ROOT / "templates"), main="master")


class ConfigError(Exception):
    """Raised when the shapes config file is unreadable or invalid."""


def config_path() -> Path:
    """Location of the config file: ``$SHAPES_CONFIG`` or the user default."""
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(os.path.expanduser(override or str(DEFAULT_CONFIG_PATH)))


def load_config(path: Path | None = None) -> ShapesConfig:
    """Load and validate the config file.

    Args:
        path: Explicit config path.  Defaults to ``config_path()``.

    Returns:
        Validated ShapesConfig (empty if the file does not exist).

    Raises:
        ConfigError: If the file cannot be read, is not YAML, or does not
            match the schema.
    """
    if path is None:
        path = config_path()

    if not path.is_file():
        logger.debug("No config file at %s", path)
        return ShapesConfig()

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return ShapesConfig()

    if isinstance(data, list):
        data = {"repositories": data}

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = ShapesConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid shapes configuration: {e}") from e

    logger.info("Loaded %d extra repositories from %s", len(config.repositories), path)
    return config


def repositories(config: ShapesConfig | None = None) -> list[RepositoryInfo]:
    """The factory repository followed by every configured one."""
    if config is None:
        config = load_config()
    return [FACTORY_REPO, *config.repositories]
