"""ANSI escape handling: tokenizing, stripping, and SGR-to-markup.

Handles:
  - CSI, OSC, DCS/SOS/PM/APC, charset designation and other escapes,
    split on well-formed sequence boundaries
  - SGR (colour/style) sequences, translated to styled spans
  - Everything else (cursor movement, erase, bracketed paste, modes,
    window titles) removed
  - \\r\\n and lone \\r normalized to \\n
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, replace
from typing import Iterator, Optional

from cast_engine.palettes import DEFAULT_PALETTE, Palette

logger = logging.getLogger(__name__)


# One alternative per escape family. Each matches a complete sequence or,
# when the terminator is missing, the truncated prefix so it can be dropped
# without eating the text that follows.
ESCAPE_RE = re.compile(
    r"\x1b\[(?P<params>[0-?]*)(?P<inter>[ -/]*)(?P<final>[@-~])?"  # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)?"  # OSC
    r"|\x1b[PX^_][^\x1b]*(?:\x1b\\)?"  # DCS, SOS, PM, APC
    r"|\x1b[ -/]+[0-~]?"  # nF: charset designation etc.
    r"|\x1b[0-~]?"  # Fp/Fe/Fs, or a lone ESC
)

SGR_PARAMS_RE = re.compile(r"^[0-9;:]*$")
SGR_RE = re.compile(r"\x1b\[([0-9;:]*)m")

# C0 controls other than \t and \n, plus DEL
CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

# Compact mode, tolerant of SGR sequences interleaved with whitespace
_SGR = r"\x1b\[[0-9;:]*m"
TRAILING_WS_RE = re.compile(rf"[ \t]+(?=(?:{_SGR})*(?:\n|$))")
NEWLINE_RUN_RE = re.compile(rf"\n(?:(?:{_SGR})*\n){{3,}}")
TRAILING_BLANK_RE = re.compile(rf"(?:\s|{_SGR})+$")

_CUBE_LEVELS = (0, 95, 135, 175, 215, 255)


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


# ── Tokenizing ────────────────────────────────────────────────────────────

def tokenize(text: str) -> Iterator[tuple[str, str]]:
    """Split text into ("text", chunk), ("sgr", params) and ("drop", seq) tokens."""
    pos = 0
    for m in ESCAPE_RE.finditer(text):
        if m.start() > pos:
            yield "text", text[pos : m.start()]
        seq = m.group(0)
        final = m.group("final")
        if (
            final == "m"
            and not m.group("inter")
            and SGR_PARAMS_RE.match(m.group("params"))
        ):
            yield "sgr", m.group("params")
        else:
            if seq.startswith("\x1b[") and final is None:
                logger.debug("dropping truncated CSI sequence %r", seq)
            elif len(seq) == 1:
                logger.debug("dropping lone ESC")
            yield "drop", seq
        pos = m.end()
    if pos < len(text):
        yield "text", text[pos:]


def sanitize(text: str) -> str:
    """Normalize newlines and keep only text and SGR sequences."""
    out = []
    for kind, value in tokenize(normalize_newlines(text)):
        if kind == "text":
            out.append(CONTROL_RE.sub("", value))
        elif kind == "sgr":
            out.append(f"\x1b[{value}m")
    return "".join(out)


def strip_ansi(text: str) -> str:
    """Remove all escape sequences and control characters from text."""
    return SGR_RE.sub("", sanitize(text))


def _keep_sgr(text: str) -> str:
    return "".join(m.group(0) for m in SGR_RE.finditer(text))


def compact_text(text: str) -> str:
    """Readability clean-up for sanitized text.

    Limits runs of blank lines to two, drops trailing whitespace on each
    line and trims the end. SGR sequences are kept in place.
    """
    text = TRAILING_WS_RE.sub("", text)
    text = NEWLINE_RUN_RE.sub(lambda m: _keep_sgr(m.group(0)) + "\n\n\n", text)
    return TRAILING_BLANK_RE.sub(lambda m: _keep_sgr(m.group(0)), text)


# ── SGR state ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Style:
    """Text attributes set by SGR sequences. Colours are #rrggbb or None."""

    fg: Optional[str] = None
    bg: Optional[str] = None
    bold: bool = False
    dim: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    inverse: bool = False

    def colors(self, palette: Palette) -> tuple[Optional[str], Optional[str]]:
        """Effective (fg, bg), None meaning the palette default."""
        if not self.inverse:
            return self.fg, self.bg
        return self.bg or palette.background, self.fg or palette.foreground

    def css(self, palette: Palette) -> str:
        fg, bg = self.colors(palette)
        rules = []
        if fg:
            rules.append(f"color:{fg}")
        if bg:
            rules.append(f"background-color:{bg}")
        if self.bold:
            rules.append("font-weight:bold")
        if self.dim:
            rules.append("opacity:0.6")
        if self.italic:
            rules.append("font-style:italic")
        decorations = [
            name
            for name, on in (("underline", self.underline), ("line-through", self.strike))
            if on
        ]
        if decorations:
            rules.append(f"text-decoration:{' '.join(decorations)}")
        return ";".join(rules)


DEFAULT_STYLE = Style()


@dataclass(frozen=True)
class StyledSpan:
    """A run of text sharing one style."""

    text: str
    style: Style = DEFAULT_STYLE


def color_256(index: int, palette: Palette) -> Optional[str]:
    """Hex colour for an xterm 256-colour index."""
    if 0 <= index < 16:
        return palette.color(index)
    if 16 <= index < 232:
        index -= 16
        r, g, b = index // 36, (index // 6) % 6, index % 6
        return "#{:02x}{:02x}{:02x}".format(
            _CUBE_LEVELS[r], _CUBE_LEVELS[g], _CUBE_LEVELS[b]
        )
    if 232 <= index < 256:
        level = 8 + (index - 232) * 10
        return f"#{level:02x}{level:02x}{level:02x}"
    return None


def _sgr_codes(params: str) -> list[int]:
    """Flatten SGR parameters, accepting colon sub-parameters."""
    codes: list[int] = []
    for group in params.split(";"):
        if ":" not in group:
            codes.append(int(group) if group else 0)
            continue
        parts = group.split(":")
        if parts[0] == "4":
            # 4:0 is "no underline", 4:1..4:5 are underline styles
            codes.append(24 if parts[1:2] == ["0"] else 4)
            continue
        if parts[0] in ("38", "48") and parts[1:2] == ["2"] and len(parts) == 6:
            # 38:2:<colour space>:r:g:b
            del parts[2]
        codes.extend(int(p) if p else 0 for p in parts)
    return codes


def _extended_color(codes: list[int], i: int, palette: Palette) -> tuple[Optional[str], int]:
    """Decode 38/48 extended colour at codes[i]. Returns (colour, last index used)."""
    if i + 1 >= len(codes):
        return None, i
    mode = codes[i + 1]
    if mode == 5 and i + 2 < len(codes):
        return color_256(codes[i + 2], palette), i + 2
    if mode == 2 and i + 4 < len(codes):
        r, g, b = codes[i + 2], codes[i + 3], codes[i + 4]
        if all(0 <= c <= 255 for c in (r, g, b)):
            return f"#{r:02x}{g:02x}{b:02x}", i + 4
        return None, i + 4
    return None, i + 1


def apply_sgr(style: Style, params: str, palette: Palette = DEFAULT_PALETTE) -> Style:
    """Return the style after applying one SGR parameter string."""
    if not params:
        return DEFAULT_STYLE

    try:
        codes = _sgr_codes(params)
    except ValueError:
        # Parameter too long to convert; ignore the whole sequence
        logger.debug("ignoring SGR sequence with oversized parameter")
        return style

    i = 0
    while i < len(codes):
        c = codes[i]
        if c == 0:
            style = DEFAULT_STYLE
        elif c == 1:
            style = replace(style, bold=True)
        elif c == 2:
            style = replace(style, dim=True)
        elif c == 3:
            style = replace(style, italic=True)
        elif c == 4:
            style = replace(style, underline=True)
        elif c == 7:
            style = replace(style, inverse=True)
        elif c == 9:
            style = replace(style, strike=True)
        elif c == 22:
            style = replace(style, bold=False, dim=False)
        elif c == 23:
            style = replace(style, italic=False)
        elif c == 24:
            style = replace(style, underline=False)
        elif c == 27:
            style = replace(style, inverse=False)
        elif c == 29:
            style = replace(style, strike=False)
        elif 30 <= c <= 37:
            style = replace(style, fg=palette.color(c - 30))
        elif 90 <= c <= 97:
            style = replace(style, fg=palette.color(c - 90 + 8))
        elif 40 <= c <= 47:
            style = replace(style, bg=palette.color(c - 40))
        elif 100 <= c <= 107:
            style = replace(style, bg=palette.color(c - 100 + 8))
        elif c == 39:
            style = replace(style, fg=None)
        elif c == 49:
            style = replace(style, bg=None)
        elif c in (38, 48):
            color, i = _extended_color(codes, i, palette)
            if color is not None:
                style = replace(style, **{"fg" if c == 38 else "bg": color})
        i += 1
    return style


# ── Rendering ─────────────────────────────────────────────────────────────

def to_spans(
    text: str,
    palette: Palette = DEFAULT_PALETTE,
    compact: bool = False,
) -> list[StyledSpan]:
    """Convert raw terminal output into styled spans."""
    clean = sanitize(text)
    if compact:
        clean = compact_text(clean)

    spans: list[StyledSpan] = []
    style = DEFAULT_STYLE
    pos = 0
    for m in SGR_RE.finditer(clean):
        if m.start() > pos:
            _append_span(spans, clean[pos : m.start()], style)
        style = apply_sgr(style, m.group(1), palette)
        pos = m.end()
    if pos < len(clean):
        _append_span(spans, clean[pos:], style)
    return spans


def _append_span(spans: list[StyledSpan], text: str, style: Style) -> None:
    if spans and spans[-1].style == style:
        spans[-1] = StyledSpan(spans[-1].text + text, style)
    else:
        spans.append(StyledSpan(text, style))


def spans_to_html(spans: list[StyledSpan], palette: Palette = DEFAULT_PALETTE) -> str:
    """Render spans as HTML; unstyled text is only escaped."""
    out = []
    for span in spans:
        text = html.escape(span.text, quote=False)
        css = span.style.css(palette)
        if css:
            out.append(f'<span style="{css}">{text}</span>')
        else:
            out.append(text)
    return "".join(out)


def render_markup(
    text: str,
    palette: Palette = DEFAULT_PALETTE,
    compact: bool = False,
) -> str:
    """Raw terminal output to HTML markup."""
    return spans_to_html(to_spans(text, palette, compact), palette)


def render_text(text: str, compact: bool = False) -> str:
    """Raw terminal output to plain text."""
    return "".join(span.text for span in to_spans(text, compact=compact))
