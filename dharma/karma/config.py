"""
Configuration for the karmic seed store.

All tunable parameters live here, not in code. Delays are in seconds.
"""

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

import yaml


MIN_TIME_SCALE = 0.1
_DEFAULT_CHECK_INTERVAL = 1.0


@dataclass
class StoreConfig:
    """
    Store-wide settings.

    Bad values are clamped, never rejected: a store always comes up.
    """
    max_seeds: int = 1000
    default_min_delay: float = 1.0
    default_max_delay: float = 300.0
    ripening_check_interval: float = 1.0    # seconds between sweeps
    enable_auto_ripening: bool = True
    time_scale: float = 1.0                 # >1 speeds every delay up

    def __post_init__(self) -> None:
        self.max_seeds = max(1, int(self.max_seeds))
        self.default_min_delay = max(0.0, float(self.default_min_delay))
        self.default_max_delay = max(self.default_min_delay, float(self.default_max_delay))
        if self.ripening_check_interval <= 0:
            self.ripening_check_interval = _DEFAULT_CHECK_INTERVAL
        self.ripening_check_interval = float(self.ripening_check_interval)
        self.enable_auto_ripening = bool(self.enable_auto_ripening)
        self.time_scale = max(MIN_TIME_SCALE, float(self.time_scale))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """Build from a dict, ignoring unknown keys and defaulting missing ones."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# Default configuration - matches config/karma_defaults.yaml
_DEFAULT_CONFIG = StoreConfig()

# Active configuration (can be replaced at runtime)
_active_config: StoreConfig = _DEFAULT_CONFIG


def get_config() -> StoreConfig:
    """Get the active store configuration."""
    return _active_config


def set_config(config: StoreConfig) -> None:
    """Set the active store configuration."""
    global _active_config
    _active_config = config


def reset_config() -> None:
    """Reset to default configuration."""
    global _active_config
    _active_config = _DEFAULT_CONFIG


# =============================================================================
# YAML LOADING
# =============================================================================

_REQUIRED_FIELDS = (
    "max_seeds",
    "default_min_delay",
    "default_max_delay",
    "ripening_check_interval",
    "enable_auto_ripening",
    "time_scale",
)


def load_config_from_yaml(path: Union[str, Path]) -> StoreConfig:
    """
    Load a StoreConfig from a YAML file.

    Expected layout:

        store:
          max_seeds: 1000
          default_min_delay: 1.0
          ...

    Args:
        path: Path to the YAML file

    Returns:
        Parsed StoreConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML is malformed or a field is missing
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("YAML root must be a dictionary")

    section = data.get("store")
    if not isinstance(section, dict):
        raise ValueError("Missing required field: store")

    for name in _REQUIRED_FIELDS:
        if name not in section:
            raise ValueError(f"Missing required field: store.{name}")

    return StoreConfig(
        max_seeds=int(section["max_seeds"]),
        default_min_delay=float(section["default_min_delay"]),
        default_max_delay=float(section["default_max_delay"]),
        ripening_check_interval=float(section["ripening_check_interval"]),
        enable_auto_ripening=bool(section["enable_auto_ripening"]),
        time_scale=float(section["time_scale"]),
    )
