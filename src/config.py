"""Runtime options for planning, selection and extraction.

All recognized options live on one ``JarJarConfig`` value. Values come
from, in increasing precedence: defaults in ``constants``, a YAML file
(``--config``, ``JARJAR_CONFIG`` or ``./jarjar.yml``), and the
``JARJAR_CACHE_DIR`` environment variable.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JarJarConfig:
    """Recognized jar-in-jar options."""

    jar_directory: str = Constants.JAR_DIRECTORY
    metadata_path: str = Constants.METADATA_PATH
    cache_dir: str = Constants.DEFAULT_CACHE_DIR
    default_range: str = Constants.DEFAULT_RANGE_TEMPLATE

    def embedded_path(self, artifact: str, version: str) -> str:
        """Archive-internal path for ``<artifact>-<version>.jar``."""
        directory = self.jar_directory.strip("/")
        name = f"{artifact}-{version}.jar"
        return f"{directory}/{name}" if directory else name

    def default_range_for(self, version: str) -> str:
        """Range spec used when a declaration does not name one."""
        return self.default_range.format(version=version)


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ValueError(f"Config file {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    # Allow the options to sit under a top-level "jarjar" section.
    section = data.get("jarjar", data)
    if not isinstance(section, dict):
        raise ValueError(f"Config section 'jarjar' in {path} must be a mapping")
    return section


def _locate_config(path: Optional[str]) -> Optional[str]:
    if path:
        return path
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        return env_path
    if Path(Constants.CONFIG_FILE).is_file():
        return Constants.CONFIG_FILE
    return None


def load_config(path: Optional[str] = None) -> JarJarConfig:
    """Load a ``JarJarConfig``.

    An explicitly named file that does not exist is an error; unknown keys
    are logged and ignored.
    """
    config = JarJarConfig()
    config_path = _locate_config(path)
    if config_path is not None:
        if not os.path.isfile(config_path):
            raise FileNotFoundError(f"Config file not found: {config_path}")
        data = _read_yaml(config_path)
        known = {f.name for f in fields(JarJarConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys in %s: %s", config_path, ", ".join(unknown))
        overrides = {key: str(value) for key, value in data.items() if key in known}
        config = replace(config, **overrides)
        logger.debug("Loaded config from %s", config_path)

    env_cache = os.environ.get(Constants.ENV_CACHE_DIR)
    if env_cache:
        config = replace(config, cache_dir=env_cache)
    return config
