"""Tests for player configuration."""

from pathlib import Path

import pytest

from cast_engine.config import MIN_TICK_MS, PALETTES_DIR, ConfigError, PlayerConfig


class TestPlayerConfig:
    def test_defaults(self):
        config = PlayerConfig()
        assert config.speed == 1.0
        assert config.min_tick_ms == MIN_TICK_MS
        assert config.min_tick_s == 0.01
        assert config.palette == "xterm"
        assert config.palettes_dir == PALETTES_DIR
        assert config.compact is False

    @pytest.mark.parametrize("field,value", [("speed", 0), ("min_tick_ms", -1), ("font_size", 0)])
    def test_invalid_values(self, field, value):
        with pytest.raises(ConfigError, match=field):
            PlayerConfig(**{field: value})

    def test_from_dict(self):
        config = PlayerConfig.from_dict({"speed": 2, "compact": True, "palettes_dir": "/tmp/p"})
        assert config.speed == 2.0
        assert config.compact is True
        assert config.palettes_dir == Path("/tmp/p")

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="unknown config key 'sped'"):
            PlayerConfig.from_dict({"sped": 2})

    @pytest.mark.parametrize(
        "data",
        [{"speed": "fast"}, {"speed": True}, {"font_size": 12.5}, {"compact": "yes"}, {"palette": 3}],
    )
    def test_wrong_types(self, data):
        with pytest.raises(ConfigError):
            PlayerConfig.from_dict(data)


class TestConfigFile:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "player.yaml"
        path.write_text("speed: 4\npalette: monokai\nfont_size: 20\n")
        config = PlayerConfig.from_file(path)
        assert config.speed == 4.0
        assert config.palette == "monokai"
        assert config.font_size == 20

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert PlayerConfig.from_file(path) == PlayerConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read config"):
            PlayerConfig.from_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("speed: [1\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            PlayerConfig.from_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            PlayerConfig.from_file(path)
