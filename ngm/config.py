"""
Configuration

Settings live in the "config" section of the registry file (.ngm.json).
Every key is optional; absent keys take the defaults below. Unknown keys
are logged and ignored so that older versions can read newer files.
"""

import logging
from dataclasses import dataclass, field

from .serializable import Serializable

logger = logging.getLogger(__name__)

CONFIG_VERSION = 1

DEFAULT_FALLBACK_BRANCHES = ["dev", "development", "master", "main"]


class ConfigError(ValueError):
    """Raised when the config section cannot be used by this version."""


@dataclass
class NgmConfig(Serializable):
    version: int = CONFIG_VERSION
    # Command run when no command token is given
    default_command: str = "status"
    # Branches tried, in order, when a repository leaves a project
    fallback_branches: list[str] = field(
        default_factory=lambda: list(DEFAULT_FALLBACK_BRANCHES)
    )
    git_timeout: int = 60
    max_workers: int = 8


KNOWN_CONFIG_KEYS = frozenset(f for f in NgmConfig.__dataclass_fields__)


def load_config(data: dict | None) -> NgmConfig:
    """Build an NgmConfig from the raw config section."""
    if not data:
        return NgmConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"config must be an object, got {type(data).__name__}")

    version = data.get("version", CONFIG_VERSION)
    if not isinstance(version, int):
        raise ConfigError(f"config version must be an integer, got {version!r}")
    if version > CONFIG_VERSION:
        raise ConfigError(
            f"Registry config version {version} is newer than this version "
            f"of ngm ({CONFIG_VERSION}). Please upgrade ngm."
        )

    unknown_keys = set(data.keys()) - KNOWN_CONFIG_KEYS
    if unknown_keys:
        logger.warning("Unknown config keys (ignored): %s", ", ".join(sorted(unknown_keys)))

    config = NgmConfig.from_dict({k: v for k, v in data.items() if k in KNOWN_CONFIG_KEYS})
    if config.git_timeout <= 0:
        raise ConfigError(f"git_timeout must be positive, got {config.git_timeout}")
    if config.max_workers <= 0:
        raise ConfigError(f"max_workers must be positive, got {config.max_workers}")
    return config
