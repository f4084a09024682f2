"""Snapshot renderer: visible terminal output to a PNG image.

Renders the styled spans of a playback position using Pillow with:
  - Terminal window chrome (title bar, padding, rounded corners)
  - Per-cell foreground/background colours from the active palette
  - Bold, dim, underline, strike-through and inverse attributes
  - Line wrapping at the recording's column count
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw

from cast_engine.ansi import Style, StyledSpan
from cast_engine.fonts import FontStack, resolve_font_stack
from cast_engine.palettes import DEFAULT_PALETTE, Palette
from cast_engine.timeline import Timeline

DEFAULT_COLS = 80
DEFAULT_ROWS = 24
TAB_WIDTH = 8

Cell = tuple[str, Style]


# ── Layout ────────────────────────────────────────────────────────────────

@dataclass
class TerminalLayout:
    """Layout dimensions for the terminal frame."""

    cols: int = DEFAULT_COLS
    rows: int = DEFAULT_ROWS

    margin: int = 16
    title_bar_h: int = 28
    padding: int = 12
    corner_radius: int = 8

    line_height: int = 24
    char_width: int = 10

    dot_radius: int = 5
    dot_spacing: int = 16

    @property
    def canvas_w(self) -> int:
        return 2 * self.margin + 2 * self.padding + self.cols * self.char_width

    @property
    def canvas_h(self) -> int:
        return (
            2 * self.margin
            + self.title_bar_h
            + 2 * self.padding
            + self.rows * self.line_height
        )

    @property
    def content_x(self) -> int:
        return self.margin + self.padding

    @property
    def content_y(self) -> int:
        return self.margin + self.title_bar_h + self.padding


def compute_layout(cols: int, rows: int, font_size: int) -> TerminalLayout:
    """Compute layout dimensions for a terminal of cols x rows cells."""
    scale = font_size / 16
    return TerminalLayout(
        cols=cols,
        rows=rows,
        margin=int(16 * scale),
        title_bar_h=int(28 * scale),
        padding=int(12 * scale),
        corner_radius=int(8 * scale),
        line_height=int(font_size * 1.5),
        char_width=max(1, int(font_size * 0.6)),
        dot_radius=max(1, int(5 * scale)),
        dot_spacing=int(16 * scale),
    )


# ── Cell grid ─────────────────────────────────────────────────────────────

def wrap_cells(spans: list[StyledSpan], cols: int) -> list[list[Cell]]:
    """Lay spans out on a grid of at most cols cells per line."""
    lines: list[list[Cell]] = [[]]
    for span in spans:
        for ch in span.text:
            if ch == "\n":
                lines.append([])
                continue
            if ch == "\t":
                width = TAB_WIDTH - (len(lines[-1]) % TAB_WIDTH)
                cells = [(" ", span.style)] * width
            else:
                cells = [(ch, span.style)]
            for cell in cells:
                if len(lines[-1]) >= cols:
                    lines.append([])
                lines[-1].append(cell)
    return lines


def _blend(fg: str, bg: str, amount: float = 0.5) -> str:
    """Mix fg toward bg; used for dim text."""
    f = [int(fg[i : i + 2], 16) for i in (1, 3, 5)]
    b = [int(bg[i : i + 2], 16) for i in (1, 3, 5)]
    mixed = [round(fc + (bc - fc) * amount) for fc, bc in zip(f, b)]
    return "#{:02x}{:02x}{:02x}".format(*mixed)


# ── Renderer ──────────────────────────────────────────────────────────────

class SnapshotRenderer:
    """Renders styled terminal output into an image.

    Usage:
        renderer = SnapshotRenderer.for_timeline(player.timeline, palette)
        image = renderer.render(player.visible_output_spans())
        export_snapshot(image, "frame.png")
    """

    def __init__(
        self,
        palette: Palette = DEFAULT_PALETTE,
        cols: int = DEFAULT_COLS,
        rows: int = DEFAULT_ROWS,
        font_size: int = 16,
        font_stack: Optional[FontStack] = None,
        title: str = "cast-engine",
    ) -> None:
        self.palette = palette
        self.font_size = font_size
        self.layout = compute_layout(cols, rows, font_size)
        self.font_stack = font_stack or resolve_font_stack(font_size)
        self.title = title

    @classmethod
    def for_timeline(
        cls,
        timeline: Timeline,
        palette: Palette = DEFAULT_PALETTE,
        font_size: int = 16,
        font_stack: Optional[FontStack] = None,
    ) -> "SnapshotRenderer":
        """Size the terminal from the recording header (80x24 if absent)."""
        title = timeline.header.get("title")
        return cls(
            palette=palette,
            cols=timeline.width or DEFAULT_COLS,
            rows=timeline.height or DEFAULT_ROWS,
            font_size=font_size,
            font_stack=font_stack,
            title=title if isinstance(title, str) and title else "cast-engine",
        )

    def render(self, spans: list[StyledSpan]) -> Image.Image:
        """Render the last screenful of spans."""
        layout = self.layout
        palette = self.palette
        img = Image.new("RGB", (layout.canvas_w, layout.canvas_h), palette.background)
        draw = ImageDraw.Draw(img)

        # Terminal panel and title bar
        draw.rounded_rectangle(
            (layout.margin // 2, layout.margin // 2,
             layout.canvas_w - layout.margin // 2, layout.canvas_h - layout.margin // 2),
            radius=layout.corner_radius,
            outline=_blend(palette.foreground, palette.background, 0.7),
            fill=palette.background,
        )
        self._draw_title_bar(draw)

        lines = wrap_cells(spans, layout.cols)[-layout.rows :]
        y = layout.content_y
        for line in lines:
            x = layout.content_x
            for ch, style in line:
                self._draw_cell(draw, x, y, ch, style)
                x += layout.char_width
            y += layout.line_height

        return img

    def _draw_title_bar(self, draw: ImageDraw.ImageDraw) -> None:
        layout = self.layout
        dot_colors = ["#ff5f56", "#ffbd2e", "#27c93f"]
        dot_x = layout.margin + layout.padding
        dot_y = layout.margin + layout.title_bar_h // 2
        for color in dot_colors:
            draw.ellipse(
                (dot_x - layout.dot_radius, dot_y - layout.dot_radius,
                 dot_x + layout.dot_radius, dot_y + layout.dot_radius),
                fill=color,
            )
            dot_x += layout.dot_spacing

        font = self.font_stack.primary
        try:
            bbox = draw.textbbox((0, 0), self.title, font=font)
            title_x = (layout.canvas_w - (bbox[2] - bbox[0])) // 2
            title_y = dot_y - (bbox[3] - bbox[1]) // 2
            draw.text(
                (title_x, title_y),
                self.title,
                fill=_blend(self.palette.foreground, self.palette.background),
                font=font,
            )
        except (UnicodeEncodeError, ValueError, OSError):
            pass

    def _draw_cell(
        self,
        draw: ImageDraw.ImageDraw,
        x: int,
        y: int,
        ch: str,
        style: Style,
    ) -> None:
        layout = self.layout
        palette = self.palette
        fg, bg = style.colors(palette)
        fg = fg or palette.foreground
        if style.dim:
            fg = _blend(fg, bg or palette.background)

        if bg:
            draw.rectangle(
                (x, y, x + layout.char_width - 1, y + layout.line_height - 1), fill=bg
            )
        if ch != " ":
            try:
                draw.text((x, y), ch, fill=fg, font=self.font_stack.font_for(style.bold))
            except (UnicodeEncodeError, ValueError, OSError):
                # Glyph the font cannot encode (bitmap fallback font)
                pass
        if style.underline:
            uy = y + layout.line_height - 2
            draw.line((x, uy, x + layout.char_width - 1, uy), fill=fg)
        if style.strike:
            sy = y + layout.line_height // 2
            draw.line((x, sy, x + layout.char_width - 1, sy), fill=fg)


# ── Export ────────────────────────────────────────────────────────────────

@dataclass
class ExportResult:
    """Result of an export operation."""

    format: str
    path: Path
    size_bytes: int = 0
    resolution: tuple[int, int] = (0, 0)

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024

    def __str__(self) -> str:
        return (
            f"{self.format.upper()}: {self.path.name} "
            f"({self.size_kb:.1f}KB, {self.resolution[0]}x{self.resolution[1]})"
        )


def export_snapshot(image: Image.Image, path: str | Path) -> ExportResult:
    """Save a rendered snapshot as PNG."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format="PNG", optimize=True)
    return ExportResult(
        format="png",
        path=path,
        size_bytes=path.stat().st_size,
        resolution=image.size,
    )
