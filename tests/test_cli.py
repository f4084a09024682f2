"""Tests for the command-line entrypoint."""

import pytest

from cast_engine import __version__
from cast_engine.cli import build_parser, main, run


@pytest.fixture
def cast_file(tmp_path, agent_cast):
    path = tmp_path / "agent.cast"
    path.write_text(agent_cast)
    return path


def invoke(*argv):
    return run(build_parser().parse_args([str(a) for a in argv]))


class TestSummary:
    def test_default_summary(self, cast_file, capsys):
        assert invoke(cast_file) == 0
        out = capsys.readouterr().out
        assert "events: 6 (output=3, input=1, markers=2)" in out
        assert "duration: 0:10" in out
        assert "terminal: 80x24" in out

    def test_synthetic_note(self, tmp_path, plain_cast, capsys):
        path = tmp_path / "plain.cast"
        path.write_text(plain_cast)
        invoke(path)
        assert "no agent markers" in capsys.readouterr().out

    def test_empty_recording(self, tmp_path, capsys):
        path = tmp_path / "empty.cast"
        path.write_text('{"version": 2}\n')
        assert invoke(path) == 0
        assert "No terminal session" in capsys.readouterr().out


class TestViews:
    def test_markup_text(self, cast_file, capsys):
        invoke(cast_file, "--at", 2, "--markup", "text")
        assert capsys.readouterr().out == "$ git clone repo\ncloned\n\n"

    def test_markup_html(self, cast_file, capsys):
        invoke(cast_file, "--markup", "html")
        out = capsys.readouterr().out
        assert '<span style="color:#00cd00">cloned</span>' in out

    def test_palette_flag(self, cast_file, capsys):
        invoke(cast_file, "--markup", "html", "--palette", "monokai")
        assert "color:#a6e22e" in capsys.readouterr().out

    def test_thought(self, cast_file, capsys):
        invoke(cast_file, "--at", 7, "--thought")
        out = capsys.readouterr().out
        assert "Action 2 of 2" in out
        assert "State Analysis:" in out
        assert "(30s timeout)" in out

    def test_no_thought_yet(self, cast_file, capsys):
        invoke(cast_file, "--at", 0, "--thought")
        assert "No agent thinking data yet" in capsys.readouterr().out

    def test_ticks(self, cast_file, capsys):
        invoke(cast_file, "--ticks")
        out = capsys.readouterr().out
        assert "Agent Thinking 1 • 0:01" in out
        assert "Agent Thinking 2 • 0:05" in out

    def test_events(self, cast_file, capsys):
        invoke(cast_file, "--events")
        out = capsys.readouterr().out
        assert out.count("\n") == 6
        assert "\\x1b[32mcloned" in out

    def test_snapshot(self, cast_file, tmp_path, capsys):
        out_path = tmp_path / "frame.png"
        assert invoke(cast_file, "--snapshot", out_path, "--font-size", 8) == 0
        assert out_path.exists()
        assert "Snapshot" in capsys.readouterr().err


class TestPlay:
    def test_streams_output(self, tmp_path, make_cast, capsys):
        path = tmp_path / "quick.cast"
        path.write_text(make_cast([0.0, "o", "one\r\n"], [0.02, "o", "two\r\n"]))
        assert invoke(path, "--play", "--speed", 4) == 0
        assert "one\ntwo\n" in capsys.readouterr().out


class TestConfigAndErrors:
    def test_config_file(self, cast_file, tmp_path, capsys):
        config = tmp_path / "player.yaml"
        config.write_text("palette: monokai\n")
        invoke(cast_file, "--config", config, "--markup", "html")
        assert "color:#a6e22e" in capsys.readouterr().out

    def test_flag_overrides_config(self, cast_file, tmp_path, capsys):
        config = tmp_path / "player.yaml"
        config.write_text("palette: monokai\n")
        invoke(cast_file, "--config", config, "--palette", "xterm", "--markup", "html")
        assert "color:#00cd00" in capsys.readouterr().out

    def test_bad_config(self, cast_file, tmp_path, capsys):
        config = tmp_path / "player.yaml"
        config.write_text("speed: -1\n")
        assert invoke(cast_file, "--config", config) == 1
        assert "✗ Error:" in capsys.readouterr().err

    def test_missing_recording(self, tmp_path, capsys):
        assert invoke(tmp_path / "missing.cast") == 1
        assert "✗ Error:" in capsys.readouterr().err

    def test_unknown_palette(self, cast_file, capsys):
        assert invoke(cast_file, "--palette", "no-such-palette") == 1
        assert "not found" in capsys.readouterr().err

    def test_recording_required(self, capsys):
        assert invoke() == 2

    def test_list_palettes(self, capsys):
        assert invoke("--list-palettes") == 0
        out = capsys.readouterr().out
        assert "xterm" in out and "solarized-dark" in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out
