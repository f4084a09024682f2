"""CLI entrypoint for the cast engine.

Usage:
    python -m cast_engine session.cast
    python -m cast_engine session.cast --at 42 --markup html --thought
    python -m cast_engine session.cast --play --speed 2
    python scripts/render-snapshot.py session.cast --at 42 --snapshot frame.png
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from cast_engine import __version__
from cast_engine.config import SUPPORTED_SPEEDS, ConfigError, PlayerConfig
from cast_engine.markers import format_time
from cast_engine.palettes import PaletteError, list_palettes, load_palette
from cast_engine.panel import render_panel
from cast_engine.player import Player
from cast_engine.scheduler import BlockingScheduler, ManualScheduler
from cast_engine.timeline import EventKind

NO_SESSION_TEXT = "No terminal session"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cast-engine",
        description="Replay and inspect agent terminal sessions recorded as asciicast",
        epilog="Examples:\n"
        "  %(prog)s run.cast --ticks\n"
        "  %(prog)s run.cast --at 90 --markup text --thought\n"
        "  %(prog)s run.cast --play --speed 4\n"
        "  %(prog)s run.cast --at 90 --snapshot frame.png --palette monokai\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("recording", nargs="?", type=Path, help="Path to a .cast file")

    # Position
    parser.add_argument(
        "--at",
        type=float,
        default=None,
        help="Playback position in seconds (default: end of recording)",
    )

    # Views
    parser.add_argument(
        "--markup",
        choices=["html", "text"],
        default=None,
        help="Print visible terminal output at --at",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        default=None,
        help="Collapse blank lines and trailing whitespace in output",
    )
    parser.add_argument(
        "--thought",
        action="store_true",
        help="Print the active agent thought at --at",
    )
    parser.add_argument(
        "--ticks",
        action="store_true",
        help="List scrubber tick marks",
    )
    parser.add_argument(
        "--events",
        action="store_true",
        help="Show the first 30 events and exit",
    )

    # Playback
    parser.add_argument(
        "--play",
        action="store_true",
        help="Replay the session to stdout in real time",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=None,
        help=f"Playback speed multiplier ({', '.join(f'{s:g}' for s in SUPPORTED_SPEEDS)})",
    )

    # Rendering
    parser.add_argument(
        "--palette",
        default=None,
        help="ANSI palette name or YAML/JSON path (default: xterm)",
    )
    parser.add_argument(
        "--snapshot",
        type=Path,
        default=None,
        help="Render visible output at --at to a PNG file",
    )
    parser.add_argument(
        "--font-size",
        type=int,
        default=None,
        help="Snapshot font size (default: 16)",
    )

    # Config
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file",
    )
    parser.add_argument(
        "--list-palettes",
        action="store_true",
        help="List available palettes and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def build_config(args: argparse.Namespace) -> PlayerConfig:
    """Defaults < config file < CLI flags."""
    config = PlayerConfig.from_file(args.config) if args.config else PlayerConfig()
    overrides = {
        "speed": args.speed,
        "palette": args.palette,
        "compact": args.compact,
        "font_size": args.font_size,
    }
    data = {
        "speed": config.speed,
        "min_tick_ms": config.min_tick_ms,
        "palette": config.palette,
        "palettes_dir": config.palettes_dir,
        "compact": config.compact,
        "font_size": config.font_size,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    return PlayerConfig(**data)


def print_summary(player: Player) -> None:
    timeline = player.timeline
    header = timeline.header
    print(f"  events: {len(timeline)} "
          f"(output={timeline.count(EventKind.OUTPUT)}, "
          f"input={timeline.count(EventKind.INPUT)}, "
          f"markers={timeline.count(EventKind.MARKER)})")
    print(f"  duration: {format_time(player.max_time)} ({player.max_time:.1f}s)")
    if header:
        print(f"  terminal: {header.get('width', '?')}x{header.get('height', '?')}, "
              f"version {header.get('version')}")
    if not timeline.markers.has_real_markers:
        print("  no agent markers, navigation ticks are synthetic")


def print_events(player: Player, limit: int = 30) -> None:
    events = player.timeline.events
    for event in events[:limit]:
        d = event.to_dict()
        text = d["payload"].encode("unicode_escape").decode("ascii")
        print(f"  [{d['t']:9.3f}s] {d['type']}  {text[:60]}")
    if len(events) > limit:
        print(f"  ... and {len(events) - limit} more events")


def print_ticks(player: Player) -> None:
    for tick in player.marker_ticks():
        kind = "marker" if tick.is_real_marker else "nav"
        print(f"  {tick.timestamp_offset:9.3f}s  {kind:6s}  {tick.label}")


def play_to_stdout(player: Player, scheduler: BlockingScheduler, show_thoughts: bool) -> None:
    """Stream newly visible output as the clock advances."""
    state = {"text": "", "thought": None}

    def on_change(p: Player) -> None:
        text = p.visible_output_text()
        # Only stream forward progress; a backwards seek prints nothing
        if len(text) > len(state["text"]) and text.startswith(state["text"]):
            sys.stdout.write(text[len(state["text"]):])
            sys.stdout.flush()
        state["text"] = text

        thought = p.active_thought()
        if show_thoughts and thought is not None and thought is not state["thought"]:
            state["thought"] = thought
            print(f"\n── {p.position_label()} ──")
            print(render_panel(thought))

    unsubscribe = player.subscribe(on_change)
    try:
        player.play()
        scheduler.run()
    finally:
        unsubscribe()
        player.close()
    print()


def run(args: argparse.Namespace) -> int:
    """Execute the requested views over one recording."""

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    try:
        config = build_config(args)

        if args.list_palettes:
            print("Available palettes:")
            for name in list_palettes(config.palettes_dir):
                print(f"  {name}")
            return 0

        if args.recording is None:
            print("✗ Error: a recording path is required", file=sys.stderr)
            return 2

        palette = load_palette(config.palette, config.palettes_dir)

        print(f"▸ Loading recording: {args.recording}", file=sys.stderr)
        text = args.recording.read_text(encoding="utf-8", errors="replace")

        scheduler = BlockingScheduler() if args.play else ManualScheduler()
        player = Player(scheduler, config=config, palette=palette)
        player.load(text)

        if not player.has_session:
            print(NO_SESSION_TEXT)
            return 0

        if args.events:
            print_events(player)
            return 0

        if args.play:
            print(f"▸ Playing at {player.speed:g}x (Ctrl-C to stop)", file=sys.stderr)
            if args.at is not None:
                player.seek(args.at)
            try:
                play_to_stdout(player, scheduler, show_thoughts=args.thought)
            except KeyboardInterrupt:
                print(f"\n▸ Paused at {format_time(player.current_time)}", file=sys.stderr)
            return 0

        player.seek(player.max_time if args.at is None else args.at)
        viewed = False

        if args.markup == "html":
            print(player.visible_output_markup())
            viewed = True
        elif args.markup == "text":
            print(player.visible_output_text())
            viewed = True

        if args.thought:
            label = player.position_label()
            if label:
                print(f"── {label} ──")
            print(render_panel(player.active_thought()))
            viewed = True

        if args.ticks:
            print_ticks(player)
            viewed = True

        if args.snapshot:
            # Pillow is only needed for snapshots
            from cast_engine.renderer import SnapshotRenderer, export_snapshot

            renderer = SnapshotRenderer.for_timeline(
                player.timeline, palette, font_size=config.font_size
            )
            image = renderer.render(player.visible_output_spans())
            result = export_snapshot(image, args.snapshot)
            print(f"▸ Snapshot at {format_time(player.current_time)}: {result}",
                  file=sys.stderr)
            viewed = True

        if not viewed:
            print_summary(player)

        return 0

    except (ConfigError, PaletteError, OSError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
