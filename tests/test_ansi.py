"""Tests for ANSI tokenizing, stripping, and markup rendering."""

from cast_engine.ansi import (
    DEFAULT_STYLE,
    Style,
    StyledSpan,
    apply_sgr,
    color_256,
    compact_text,
    render_markup,
    render_text,
    sanitize,
    strip_ansi,
    to_spans,
    tokenize,
)
from cast_engine.palettes import BUILTIN_PALETTES, DEFAULT_PALETTE

XTERM = DEFAULT_PALETTE


class TestStripAnsi:
    def test_no_ansi(self):
        assert strip_ansi("hello world") == "hello world"

    def test_basic_colors(self):
        assert strip_ansi("\033[31mred\033[0m") == "red"

    def test_256_color(self):
        assert strip_ansi("\033[38;5;196mtext\033[0m") == "text"

    def test_cursor_movement_and_erase(self):
        assert strip_ansi("\033[2J\033[H\033[10;5Hhi\033[K") == "hi"

    def test_private_modes(self):
        assert strip_ansi("\033[?2004h\033[?25lprompt\033[?25h") == "prompt"

    def test_osc_title_bel_and_st(self):
        assert strip_ansi("\033]0;my title\007a\033]2;other\033\\b") == "ab"

    def test_charset_designation(self):
        assert strip_ansi("\033(Bplain\033)0") == "plain"

    def test_dcs(self):
        assert strip_ansi("x\033Pq#0;2;0;0;0\033\\y") == "xy"

    def test_truncated_csi_keeps_following_text(self):
        assert strip_ansi("before\033[31") == "before"

    def test_lone_escape(self):
        assert strip_ansi("a\033") == "a"

    def test_control_characters_removed(self):
        assert strip_ansi("a\x07b\x08c\tz") == "abc\tz"


class TestNewlines:
    def test_crlf(self):
        assert strip_ansi("a\r\nb") == "a\nb"

    def test_lone_cr(self):
        assert strip_ansi("a\rb") == "a\nb"


class TestTokenize:
    def test_token_kinds(self):
        tokens = list(tokenize("a\033[1mb\033[Kc"))
        assert tokens == [
            ("text", "a"),
            ("sgr", "1"),
            ("text", "b"),
            ("drop", "\033[K"),
            ("text", "c"),
        ]

    def test_private_sgr_like_sequence_dropped(self):
        # ESC[>4;1m sets a keyboard mode, it is not a colour
        assert [k for k, _ in tokenize("\033[>4;1m")] == ["drop"]


class TestApplySgr:
    def test_reset(self):
        style = apply_sgr(Style(bold=True, fg="#ff0000"), "0")
        assert style == DEFAULT_STYLE

    def test_empty_params_reset(self):
        assert apply_sgr(Style(bold=True), "") == DEFAULT_STYLE

    def test_attributes(self):
        style = apply_sgr(DEFAULT_STYLE, "1;3;4;9")
        assert style.bold and style.italic and style.underline and style.strike

    def test_attribute_off_codes(self):
        style = apply_sgr(Style(bold=True, dim=True, underline=True), "22;24")
        assert style == DEFAULT_STYLE

    def test_standard_and_bright_colors(self):
        style = apply_sgr(DEFAULT_STYLE, "31;102")
        assert style.fg == XTERM.color(1)
        assert style.bg == XTERM.color(10)

    def test_default_color_codes(self):
        style = apply_sgr(Style(fg="#111111", bg="#222222"), "39;49")
        assert style.fg is None
        assert style.bg is None

    def test_256_color(self):
        assert apply_sgr(DEFAULT_STYLE, "38;5;196").fg == "#ff0000"
        assert apply_sgr(DEFAULT_STYLE, "48;5;232").bg == "#080808"

    def test_truecolor(self):
        assert apply_sgr(DEFAULT_STYLE, "38;2;10;20;30").fg == "#0a141e"

    def test_truecolor_colon_form(self):
        assert apply_sgr(DEFAULT_STYLE, "38:2::10:20:30").fg == "#0a141e"

    def test_incomplete_extended_color_ignored(self):
        assert apply_sgr(DEFAULT_STYLE, "38;5").fg is None

    def test_codes_after_extended_color(self):
        style = apply_sgr(DEFAULT_STYLE, "38;5;21;1")
        assert style.fg == "#0000ff"
        assert style.bold

    def test_palette_used(self):
        monokai = BUILTIN_PALETTES["monokai"]
        assert apply_sgr(DEFAULT_STYLE, "32", monokai).fg == monokai.color(2)


class TestColor256:
    def test_low_indices_use_palette(self):
        assert color_256(9, XTERM) == XTERM.color(9)

    def test_cube(self):
        assert color_256(16, XTERM) == "#000000"
        assert color_256(231, XTERM) == "#ffffff"

    def test_grayscale(self):
        assert color_256(255, XTERM) == "#eeeeee"

    def test_out_of_range(self):
        assert color_256(300, XTERM) is None


class TestSpans:
    def test_plain(self):
        assert to_spans("hello") == [StyledSpan("hello")]

    def test_adjacent_same_style_merged(self):
        spans = to_spans("\033[31ma\033[31mb\033[0mc")
        assert spans == [
            StyledSpan("ab", Style(fg=XTERM.color(1))),
            StyledSpan("c"),
        ]

    def test_style_carries_across_drops(self):
        spans = to_spans("\033[1mbold\033[Kstill")
        assert spans == [StyledSpan("boldstill", Style(bold=True))]


class TestRenderMarkup:
    def test_plain_text_escaped(self):
        assert render_markup("a < b & c > d") == "a &lt; b &amp; c &gt; d"

    def test_quotes_not_escaped(self):
        assert render_markup('say "hi"') == 'say "hi"'

    def test_colored_span(self):
        html = render_markup("\033[31mred\033[0m plain")
        assert html == f'<span style="color:{XTERM.color(1)}">red</span> plain'

    def test_bold_underline(self):
        html = render_markup("\033[1;4mx")
        assert html == '<span style="font-weight:bold;text-decoration:underline">x</span>'

    def test_inverse_swaps_defaults(self):
        html = render_markup("\033[7mx")
        assert f"color:{XTERM.background}" in html
        assert f"background-color:{XTERM.foreground}" in html

    def test_markup_text_matches_plain_render(self):
        raw = "\033[32mok\033[0m\r\n\033[2Kdone"
        assert render_text(raw) == "ok\ndone"
        assert "ok" in render_markup(raw) and "\033" not in render_markup(raw)

    def test_empty(self):
        assert render_markup("") == ""
        assert render_text("") == ""


class TestCompact:
    def test_trailing_whitespace(self):
        assert compact_text("a   \nb\t\n") == "a\nb"

    def test_blank_line_runs_limited(self):
        assert compact_text("a\n\n\n\n\n\nb") == "a\n\n\nb"

    def test_sgr_preserved(self):
        assert compact_text("\033[31ma  \033[0m\n\n\n\n\nb   ") == "\033[31ma\033[0m\n\n\nb"

    def test_compact_render(self):
        assert render_text("x  \r\n\r\n\r\n\r\n\r\ny\r\n\r\n", compact=True) == "x\n\n\ny"

    def test_not_compact_by_default(self):
        assert render_text("x  \n") == "x  \n"

    def test_sanitize_keeps_only_sgr(self):
        assert sanitize("\033[1m\033[2Ja\033[0m") == "\033[1ma\033[0m"


class TestPlainText:
    def test_unchanged_apart_from_newlines(self):
        assert render_markup("hello world\r\n  indented\ttab") == "hello world\n  indented\ttab"

    def test_oversized_sgr_parameter_ignored(self):
        raw = "a\x1b[" + "1" * 5000 + "mb"
        assert render_text(raw) == "ab"
        assert render_markup(raw) == "ab"

    def test_oversized_sgr_keeps_current_style(self):
        spans = to_spans("\x1b[1mx\x1b[" + "9" * 5000 + "my")
        assert spans == [StyledSpan("xy", Style(bold=True))]
