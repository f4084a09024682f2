"""ANSI palette loader, validator, and registry.

A palette maps the sixteen ANSI colours (0-7 normal, 8-15 bright) to
RGB hex strings, plus the default foreground and background. Palettes
are either built in or read from YAML/JSON files:

    id: solarized
    foreground: "#839496"
    background: "#002b36"
    colors: ["#073642", "#dc322f", ...]   # exactly 16 entries
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from cast_engine.config import PALETTES_DIR

HEX_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
PALETTE_SUFFIXES = (".yaml", ".yml", ".json")
ANSI_COLOR_COUNT = 16


class PaletteError(Exception):
    """Raised when a palette is unknown or invalid."""

    pass


@dataclass(frozen=True)
class Palette:
    """A fully resolved 16-colour terminal palette."""

    id: str
    foreground: str
    background: str
    colors: tuple[str, ...]

    def color(self, index: int) -> str:
        """Hex string for ANSI colour 0-15."""
        return self.colors[index]


BUILTIN_PALETTES: dict[str, Palette] = {
    "xterm": Palette(
        id="xterm",
        foreground="#e5e5e5",
        background="#000000",
        colors=(
            "#000000", "#cd0000", "#00cd00", "#cdcd00",
            "#0000ee", "#cd00cd", "#00cdcd", "#e5e5e5",
            "#7f7f7f", "#ff0000", "#00ff00", "#ffff00",
            "#5c5cff", "#ff00ff", "#00ffff", "#ffffff",
        ),
    ),
    "monokai": Palette(
        id="monokai",
        foreground="#f8f8f2",
        background="#272822",
        colors=(
            "#272822", "#f92672", "#a6e22e", "#f4bf75",
            "#66d9ef", "#ae81ff", "#a1efe4", "#f8f8f2",
            "#75715e", "#f92672", "#a6e22e", "#f4bf75",
            "#66d9ef", "#ae81ff", "#a1efe4", "#f9f8f5",
        ),
    ),
}

DEFAULT_PALETTE = BUILTIN_PALETTES["xterm"]


# ── Loader ────────────────────────────────────────────────────────────────

def validate_palette_data(data: object, source: str = "<unknown>") -> list[str]:
    """Validate palette data. Returns list of error messages (empty = valid)."""
    if not isinstance(data, dict):
        return [f"{source}: palette must be a mapping"]

    errors = []
    if "id" not in data:
        errors.append(f"{source}: missing required field 'id'")

    for key in ("foreground", "background"):
        val = data.get(key)
        if val is None:
            errors.append(f"{source}: missing required color '{key}'")
        elif not isinstance(val, str) or not HEX_RE.match(val):
            errors.append(f"{source}: color '{key}' must be a #rrggbb string (got {val!r})")

    colors = data.get("colors")
    if not isinstance(colors, list):
        errors.append(f"{source}: 'colors' must be a list of {ANSI_COLOR_COUNT} hex strings")
    else:
        if len(colors) != ANSI_COLOR_COUNT:
            errors.append(
                f"{source}: 'colors' needs exactly {ANSI_COLOR_COUNT} entries (got {len(colors)})"
            )
        for i, val in enumerate(colors):
            if not isinstance(val, str) or not HEX_RE.match(val):
                errors.append(f"{source}: colors[{i}] must be a #rrggbb string (got {val!r})")

    return errors


def load_palette_from_dict(data: dict) -> Palette:
    """Build a Palette from validated data."""
    return Palette(
        id=str(data["id"]),
        foreground=data["foreground"].lower(),
        background=data["background"].lower(),
        colors=tuple(c.lower() for c in data["colors"]),
    )


def load_palette_file(path: Path) -> Palette:
    """Read and validate a palette file."""
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise PaletteError(f"Invalid palette file {path}: {e}") from e

    errors = validate_palette_data(data, source=str(path))
    if errors:
        raise PaletteError("Palette validation failed:\n  " + "\n  ".join(errors))

    return load_palette_from_dict(data)


def load_palette(name: str, palettes_dir: Optional[Path] = None) -> Palette:
    """Resolve a palette by built-in name, file path, or name in palettes_dir."""
    if name in BUILTIN_PALETTES:
        return BUILTIN_PALETTES[name]

    path = Path(name)
    if path.is_file():
        return load_palette_file(path)

    palettes_dir = palettes_dir or PALETTES_DIR
    for suffix in PALETTE_SUFFIXES:
        candidate = palettes_dir / f"{name}{suffix}"
        if candidate.is_file():
            return load_palette_file(candidate)

    available = list_palettes(palettes_dir)
    raise PaletteError(
        f"Palette '{name}' not found. Available: {', '.join(available)}"
    )


def list_palettes(palettes_dir: Optional[Path] = None) -> list[str]:
    """List built-in and on-disk palette names."""
    palettes_dir = palettes_dir or PALETTES_DIR
    names = set(BUILTIN_PALETTES)
    if palettes_dir.exists():
        names.update(
            p.stem for p in palettes_dir.iterdir() if p.suffix in PALETTE_SUFFIXES
        )
    return sorted(names)
