"""Tests for configuration loading."""

import pytest

from panelplace.config import DEFAULT_CONFIG_PATH, LayoutConfig, load_config
from panelplace.errors import ConfigError
from panelplace.layout.abstraction import Size


class TestLayoutConfig:
    """Tests for the settings dataclass."""

    def test_defaults(self):
        config = LayoutConfig()
        assert config.grid_size == 20
        assert config.snap_distance == 15
        assert config.history_depth == 50
        assert config.commit_throttle_ms == 32
        assert config.preview_debounce_ms == 16
        assert config.container_size == Size(1200, 800)

    def test_cell_size_defaults_to_grid(self):
        assert LayoutConfig(grid_size=40).index_cell_size == 40
        assert LayoutConfig(grid_size=40, cell_size=100).index_cell_size == 100
        assert LayoutConfig(grid_size=0).index_cell_size == 20

    @pytest.mark.parametrize("field,value", [
        ("grid_size", -1),
        ("min_gap", -5),
        ("history_depth", 0),
        ("commit_throttle_ms", -1),
        ("cell_size", 0),
        ("search_rings", 0),
        ("container_width", 0),
    ])
    def test_bad_values_rejected(self, field, value):
        with pytest.raises(ConfigError):
            LayoutConfig(**{field: value})

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigError, match="grid_sise"):
            LayoutConfig.from_dict({"grid_sise": 10})

    def test_dict_round_trip(self):
        config = LayoutConfig(grid_size=10, min_gap=4)
        assert LayoutConfig.from_dict(config.to_dict()) == config


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_bundled_defaults(self):
        assert DEFAULT_CONFIG_PATH.exists()
        assert load_config() == LayoutConfig()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("layout:\n  grid_size: 10\n  min_gap: 8\n")

        config = load_config(path)
        assert config.grid_size == 10
        assert config.min_gap == 8
        assert config.snap_distance == 15

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_missing_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("other:\n  grid_size: 10\n")
        with pytest.raises(ConfigError, match="missing required section"):
            load_config(path)

    def test_symlink_refused(self, tmp_path):
        target = tmp_path / "real.yaml"
        target.write_text("layout:\n  grid_size: 10\n")
        link = tmp_path / "link.yaml"
        link.symlink_to(target)

        with pytest.raises(ConfigError, match="symlink"):
            load_config(link)

    def test_parse_error(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("layout: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(path)
