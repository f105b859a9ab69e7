"""
Loader configuration
"""

import os
import pathlib
import logging
from dataclasses import dataclass, field, fields
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Use ~/.cache/graphcache/ for cache storage
HOME_DIR = str(pathlib.Path.home())
DEFAULT_CACHE_DIR = os.path.join(HOME_DIR, ".cache", "graphcache")

ENV_PREFIX = "GRAPHCACHE_"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class LoaderConfig:
    """Settings that control where models come from and whether they are cached"""
    cache_models: bool = True
    debug: bool = False
    model_base_path: str = ""
    cache_dir: str = field(default=DEFAULT_CACHE_DIR)
    model_defs_path: Optional[str] = None  # Defaults to the bundled models.json
    trace_io: bool = False  # Log every HTTP request made by the loader
    show_progress: bool = False  # Progress bar while downloading weight shards

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoaderConfig":
        """
        Build a config from a mapping, ignoring unknown keys.

        Args:
            data: Mapping with any of the config field names

        Returns:
            LoaderConfig instance
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_file(cls, path: str) -> "LoaderConfig":
        """
        Read a YAML (or JSON) config file.

        Args:
            path: Path to the config file

        Returns:
            LoaderConfig instance
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, 'r') as file:
            data = yaml.safe_load(file) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")

        return cls.from_dict(data)

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "LoaderConfig":
        """Override fields from GRAPHCACHE_* environment variables"""
        environ = os.environ if environ is None else environ

        if environ.get(f"{ENV_PREFIX}CACHE_DIR"):
            self.cache_dir = environ[f"{ENV_PREFIX}CACHE_DIR"]
        if environ.get(f"{ENV_PREFIX}MODEL_BASE_PATH"):
            self.model_base_path = environ[f"{ENV_PREFIX}MODEL_BASE_PATH"]
        if environ.get(f"{ENV_PREFIX}MODEL_DEFS"):
            self.model_defs_path = environ[f"{ENV_PREFIX}MODEL_DEFS"]
        if environ.get(f"{ENV_PREFIX}DEBUG"):
            self.debug = environ[f"{ENV_PREFIX}DEBUG"].lower() in _TRUE_VALUES
        if environ.get(f"{ENV_PREFIX}PROGRESS"):
            self.show_progress = environ[f"{ENV_PREFIX}PROGRESS"].lower() in _TRUE_VALUES
        if environ.get(f"{ENV_PREFIX}CACHE_MODELS"):
            self.cache_models = environ[f"{ENV_PREFIX}CACHE_MODELS"].lower() in _TRUE_VALUES

        return self


def load_config(path: Optional[str] = None) -> LoaderConfig:
    """
    Load the loader configuration.

    Args:
        path: Optional config file; environment overrides are always applied

    Returns:
        LoaderConfig instance
    """
    config = LoaderConfig.from_file(path) if path else LoaderConfig()
    return config.apply_env()
