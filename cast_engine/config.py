"""Central configuration for the cast engine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


# Resolve project root relative to this file
PROJECT_ROOT = Path(__file__).resolve().parent.parent
PALETTES_DIR = PROJECT_ROOT / "palettes"

SUPPORTED_SPEEDS = (0.5, 1.0, 2.0, 4.0)
MIN_TICK_MS = 10.0


class ConfigError(Exception):
    """Raised when a config file cannot be read or is invalid."""

    pass


@dataclass
class PlayerConfig:
    """Player configuration assembled from CLI flags, config file, and defaults."""

    # Playback
    speed: float = 1.0
    min_tick_ms: float = MIN_TICK_MS  # floor between ticks sharing a timestamp

    # Output
    palette: str = "xterm"
    palettes_dir: Path = field(default_factory=lambda: PALETTES_DIR)
    compact: bool = False

    # Snapshot rendering
    font_size: int = 16

    def __post_init__(self) -> None:
        self.palettes_dir = Path(self.palettes_dir)
        if self.speed <= 0:
            raise ConfigError(f"speed must be positive (got {self.speed})")
        if self.min_tick_ms < 0:
            raise ConfigError(f"min_tick_ms must not be negative (got {self.min_tick_ms})")
        if self.font_size <= 0:
            raise ConfigError(f"font_size must be positive (got {self.font_size})")

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str = "<unknown>") -> "PlayerConfig":
        """Build a config from a mapping, rejecting unknown keys and bad types."""
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                raise ConfigError(f"{source}: unknown config key '{key}'")
            if key in ("speed", "min_tick_ms"):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(f"{source}: '{key}' must be a number (got {value!r})")
                value = float(value)
            elif key == "font_size":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(f"{source}: 'font_size' must be an integer (got {value!r})")
            elif key == "compact":
                if not isinstance(value, bool):
                    raise ConfigError(f"{source}: 'compact' must be true or false (got {value!r})")
            elif not isinstance(value, str):
                raise ConfigError(f"{source}: '{key}' must be a string (got {value!r})")
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> "PlayerConfig":
        """Load a YAML config file."""
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text())
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: config must be a mapping")
        return cls.from_dict(data, source=str(path))

    @property
    def min_tick_s(self) -> float:
        return self.min_tick_ms / 1000.0
