"""Monospace font lookup for snapshot rendering.

Fonts are located through fontconfig (``fc-list``) in order of
preference; the bold face is looked up next to the regular file.
Without fontconfig or any preferred family, Pillow's bundled font is
used so rendering never fails for lack of fonts.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from PIL import ImageFont

PREFERRED_FAMILIES = (
    "JetBrains Mono",
    "DejaVu Sans Mono",
    "Cascadia Mono",
    "Fira Mono",
    "Source Code Pro",
    "Liberation Mono",
    "Noto Sans Mono",
)

DEFAULT_FONT_SIZE = 16
FC_LIST_FORMAT = "%{file}\\t%{family}\\n"


@dataclass
class FontStack:
    """Loaded regular and (optional) bold faces at one size."""

    primary: ImageFont.ImageFont
    primary_path: str
    size: int = DEFAULT_FONT_SIZE
    bold: Optional[ImageFont.ImageFont] = None

    def font_for(self, bold: bool) -> ImageFont.ImageFont:
        return self.bold if bold and self.bold is not None else self.primary


@lru_cache(maxsize=1)
def monospace_font_files() -> dict[str, str]:
    """Map lower-cased family name to font file for installed monospace fonts."""
    try:
        proc = subprocess.run(
            ["fc-list", ":spacing=mono", f"--format={FC_LIST_FORMAT}"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired):
        return {}

    files: dict[str, str] = {}
    for row in proc.stdout.splitlines():
        path, _, names = row.partition("\t")
        if not path or not names:
            continue
        # One file can list several family aliases
        for name in names.split(","):
            files.setdefault(name.strip().lower(), path)
    return files


def locate_family(family: str) -> Optional[str]:
    """Font file for a family: exact name first, then any alias starting with it."""
    files = monospace_font_files()
    wanted = family.lower()
    if wanted in files:
        return files[wanted]
    return next((p for name, p in sorted(files.items()) if name.startswith(wanted)), None)


def _default_font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 has no sized default font
        return ImageFont.load_default()


def _bold_variant(path: str) -> Optional[str]:
    """JetBrainsMono-Regular.ttf -> -Bold.ttf, DejaVuSansMono.ttf -> -Bold.ttf."""
    p = Path(path)
    candidates = [path.replace("Regular", "Bold")] if "Regular" in path else []
    candidates.append(str(p.with_name(f"{p.stem}-Bold{p.suffix}")))
    for candidate in candidates:
        if candidate != path and Path(candidate).exists():
            return candidate
    return None


def _truetype(path: Optional[str], size: int) -> Optional[ImageFont.FreeTypeFont]:
    if not path:
        return None
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        return None


def resolve_font_stack(size: int = DEFAULT_FONT_SIZE) -> FontStack:
    """Load the first usable preferred family, or Pillow's default font."""
    for family in PREFERRED_FAMILIES:
        path = locate_family(family)
        regular = _truetype(path, size)
        if regular is None:
            continue
        bold_path = _bold_variant(path)
        return FontStack(
            primary=regular,
            primary_path=path,
            size=size,
            bold=_truetype(bold_path, size),
        )

    return FontStack(primary=_default_font(size), primary_path="<default>", size=size)
