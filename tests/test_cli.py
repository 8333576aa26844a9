"""Tests for the command-line interface."""

import json

import pytest

from panelplace.cli import main, parse_size
from panelplace.io.serializer import load_layout_from_file, save_layout_to_file
from panelplace.layout.abstraction import Position, Size


@pytest.fixture
def layout_file(tmp_path, sample_panels):
    return save_layout_to_file(sample_panels, tmp_path / "layout.json", name="desk")


@pytest.fixture
def overlapping_file(tmp_path, overlapping_panels):
    return save_layout_to_file(overlapping_panels, tmp_path / "overlap.json")


class TestParseSize:
    def test_valid(self):
        assert parse_size("1200x800") == Size(1200, 800)

    @pytest.mark.parametrize("text", ["1200", "axb", "0x100"])
    def test_invalid(self, text):
        import argparse
        with pytest.raises(argparse.ArgumentTypeError):
            parse_size(text)


class TestCommands:
    """Test each sub-command end to end."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_validate_clean(self, layout_file, capsys):
        assert main(["validate", str(layout_file)]) == 0
        assert "passed" in capsys.readouterr().out

    def test_validate_overlap_with_report(self, overlapping_file, tmp_path, capsys):
        report = tmp_path / "report.json"
        assert main(["validate", str(overlapping_file), "-o", str(report)]) == 1

        data = json.loads(report.read_text())
        assert data["valid"] is False
        assert data["errors"] == ["Panels a and b overlap"]

    def test_validate_small_container(self, layout_file):
        assert main(["validate", str(layout_file), "--container", "500x500"]) == 1

    def test_missing_layout(self, tmp_path, capsys):
        assert main(["report", str(tmp_path / "none.json")]) == 1
        assert "cannot load" in capsys.readouterr().out

    def test_optimize_writes_output(self, overlapping_file, tmp_path):
        output = tmp_path / "tidy.yaml"
        assert main(["optimize", str(overlapping_file), "-o", str(output)]) == 0

        assert main(["validate", str(output)]) == 0

    def test_optimize_dry_run(self, overlapping_file):
        before = overlapping_file.read_text()
        assert main(["optimize", str(overlapping_file), "--dry-run"]) == 0
        assert overlapping_file.read_text() == before

    def test_report(self, layout_file, capsys):
        assert main(["report", str(layout_file)]) == 0
        out = capsys.readouterr().out
        assert "# Layout report: desk" in out
        assert "- Panels: 3" in out

    def test_place(self, layout_file):
        assert main(["place", str(layout_file), "--id", "clock", "--size", "100x100"]) == 0

        result = load_layout_from_file(layout_file)
        clock = [p for p in result.panels if p.id == "clock"][0]
        assert clock.position == Position(300, 0)

    def test_place_duplicate(self, layout_file):
        assert main(["place", str(layout_file), "--id", "notes", "--size", "100x100"]) == 1

    def test_bad_config(self, layout_file, tmp_path, capsys):
        config = tmp_path / "bad.yaml"
        config.write_text("layout:\n  grid_sise: 5\n")

        assert main(["report", str(layout_file), "--config", str(config)]) == 1
        assert "Configuration error" in capsys.readouterr().out
