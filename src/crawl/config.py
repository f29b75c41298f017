"""Crawl configuration loading.

Settings come from a YAML file, looked up in order:
- An explicit path passed to load_config() (or `--config` on the command line)
- The CRAWL_CONFIG environment variable
- The user config file (~/.config/crawl/config.yaml)

A missing user config file means defaults; a missing explicit file is an error.

Environment Variables:
    CRAWL_CONFIG:     Path to the YAML config file.
    CRAWL_TABLE_PATH: Colon-separated (or semicolon on Windows) directories
                      searched for table files before those in the config.

Example config.yaml:
    max_call_depth: 32
    table_paths:
      - ~/games/tables
    seed: 1234
    log_level: INFO
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .runtime.context import DEFAULT_MAX_CALL_DEPTH

logger = logging.getLogger(__name__)

# Environment variable names
CRAWL_CONFIG = "CRAWL_CONFIG"
CRAWL_TABLE_PATH = "CRAWL_TABLE_PATH"

USER_CONFIG_PATH = Path("~/.config/crawl/config.yaml")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Invalid or unreadable configuration."""
    pass


@dataclass
class CrawlConfig:
    """Settings for running Crawl programs."""
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    table_paths: List[str] = field(default_factory=list)
    clamp_to_min: bool = False
    seed: Optional[int] = None
    strict: bool = False          # Don't run anything if parsing failed
    log_level: str = "WARNING"
    source_path: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<config>") -> "CrawlConfig":
        """
        Build a config from a parsed YAML mapping.

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        known = {f.name for f in fields(cls)} - {"source_path"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"{source}: unknown setting(s): {', '.join(unknown)}")

        config = cls(source_path=source)
        for key, value in data.items():
            setattr(config, key, _validate(key, value, source))
        return config


def _validate(key: str, value: Any, source: str) -> Any:
    def bad(expected: str) -> ConfigError:
        return ConfigError(f"{source}: '{key}' must be {expected}, got {value!r}")

    if key == "max_call_depth":
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise bad("a positive integer")
        return value
    if key == "table_paths":
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            raise bad("a list of directories")
        return list(value)
    if key in ("clamp_to_min", "strict"):
        if not isinstance(value, bool):
            raise bad("true or false")
        return value
    if key == "seed":
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise bad("an integer")
        return value
    if key == "log_level":
        if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
            raise bad(f"one of {', '.join(LOG_LEVELS)}")
        return value.upper()
    raise ConfigError(f"{source}: unknown setting: {key}")


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML config file; an empty file is an empty mapping."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config format in {path}: expected mapping at root")
    return data


def _env_table_paths() -> List[str]:
    env_path = os.environ.get(CRAWL_TABLE_PATH)
    if not env_path:
        return []
    return [p.strip() for p in env_path.split(os.pathsep) if p.strip()]


def load_config(path: Optional[Union[str, Path]] = None) -> CrawlConfig:
    """
    Load configuration.

    Args:
        path: Optional explicit config file (overrides CRAWL_CONFIG and the
            user config file)

    Returns:
        CrawlConfig, with CRAWL_TABLE_PATH directories ahead of configured ones

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid
    """
    explicit = path if path is not None else os.environ.get(CRAWL_CONFIG)

    if explicit:
        config_path = Path(explicit).expanduser()
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = USER_CONFIG_PATH.expanduser()

    if config_path.is_file():
        config = CrawlConfig.from_dict(_load_yaml(config_path), str(config_path))
        logger.debug("loaded config from %s", config_path)
    else:
        config = CrawlConfig()

    config.table_paths = _env_table_paths() + config.table_paths
    return config
