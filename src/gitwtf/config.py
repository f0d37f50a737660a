"""Configuration loading."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".git-wtfrc"

DEFAULT_VERSIONS = ["heads/main", "heads/master", "heads/next", "heads/edge"]
DEFAULT_MAX_COMMITS = 5

KNOWN_KEYS = ("versions", "ignore", "max_commits")
LEGACY_VERSIONS_KEY = "integration-branches"


class ConfigError(Exception):
    """Configuration could not be read or coerced."""


def _as_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    if isinstance(value, (str, int, float)):
        return [str(value)]
    raise ConfigError(f"'{key}' must be a list of ref names, got {type(value).__name__}")


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"'{key}' must be an integer, got {value!r}") from err


@dataclass
class Config:
    """Resolved configuration."""

    versions: list[str] = field(default_factory=lambda: list(DEFAULT_VERSIONS))
    ignore: list[str] = field(default_factory=list)
    max_commits: int = DEFAULT_MAX_COMMITS

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "Config":
        """Build a config from defaults overridden by the keys present in `data`."""
        data = dict(data)
        if LEGACY_VERSIONS_KEY in data:
            data.setdefault("versions", data[LEGACY_VERSIONS_KEY])
            del data[LEGACY_VERSIONS_KEY]

        for key in data:
            if key not in KNOWN_KEYS:
                logger.warning("Ignoring unknown config key '%s'", key)

        config = cls()
        if "versions" in data:
            config.versions = _as_list("versions", data["versions"])
        if "ignore" in data:
            config.ignore = _as_list("ignore", data["ignore"])
        if "max_commits" in data:
            config.max_commits = _as_int("max_commits", data["max_commits"])
        return config

    def to_mapping(self) -> dict[str, Any]:
        return {
            "versions": list(self.versions),
            "ignore": list(self.ignore),
            "max_commits": self.max_commits,
        }

    def to_yaml(self) -> str:
        """Render the config in the format `load_config` reads back."""
        return yaml.safe_dump(self.to_mapping(), default_flow_style=False, sort_keys=False)

    def is_version(self, ref_names: set[str]) -> bool:
        return bool(ref_names & set(self.versions))

    def is_ignored(self, ref_names: set[str]) -> bool:
        return bool(ref_names & set(self.ignore))


def find_config_file(start: Path) -> Optional[Path]:
    """Search `start` and each of its parents for a config file."""
    start = start.resolve()
    for directory in [start, *start.parents]:
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a config file into a mapping.

    Raises:
        ConfigError: If the file can't be read, isn't valid YAML or isn't a mapping
    """
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as err:
        raise ConfigError(f"Failed to read {path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Failed to parse {path}: {err}") from err

    # An empty file loads as None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(start: Path = Path(".")) -> Config:
    """Load defaults merged with the nearest config file above `start`."""
    path = find_config_file(start)
    if path is None:
        logger.debug("No %s found above %s, using defaults", CONFIG_FILENAME, start)
        return Config()

    logger.debug("Loading config from %s", path)
    return Config.from_mapping(read_config_file(path))
