"""Tests for temperature, speed and retraction extraction."""

import pytest

from gcode_report.models.layer import SpeedSummary
from gcode_report.parser import parse_gcode
from gcode_report.segmenter import LayerSegmenter
from gcode_report.telemetry import (
    count_retractions,
    extract_temperatures,
    summarize_speeds,
    total_extrusion,
)


class TestExtractTemperatures:
    """Test per-layer temperature targets."""

    def test_cura_layers(self, cura_gcode):
        """Test that each layer gets the target in effect at its start."""
        parsed = parse_gcode(cura_gcode)
        samples = extract_temperatures(parsed, LayerSegmenter().segment(parsed))

        assert [s.layer_index for s in samples] == [0, 1, 2]
        assert [s.nozzle_temp for s in samples] == [200.0, 210.0, 210.0]
        assert [s.bed_temp for s in samples] == [60.0, 60.0, 60.0]

    def test_target_set_inside_first_layer(self):
        """Test that a layer uses the first target set within it."""
        parsed = parse_gcode(";LAYER:0\n;TYPE:FILL\nG1 X1 E1\nM109 R215\nG1 X2 E2\n")
        samples = extract_temperatures(parsed, LayerSegmenter().segment(parsed))

        assert samples[0].nozzle_temp == 215.0
        assert samples[0].bed_temp is None

    def test_command_without_target_ignored(self):
        """Test that M104 without S or R does not set a target."""
        parsed = parse_gcode("M104 T0\n;LAYER:0\n;TYPE:FILL\nG1 X1 E1\n")
        samples = extract_temperatures(parsed, LayerSegmenter().segment(parsed))

        assert samples[0].nozzle_temp is None

    def test_no_layers(self):
        """Test that a file without layers has no samples."""
        parsed = parse_gcode("M104 S200\n")

        assert extract_temperatures(parsed, LayerSegmenter().segment(parsed)) == ()


class TestSummarizeSpeeds:
    """Test feed rate statistics."""

    def test_cura_speeds(self, cura_gcode):
        """Test print and travel feed statistics of the sample file."""
        speeds = summarize_speeds(parse_gcode(cura_gcode))

        assert speeds.print_min == 1200.0
        assert speeds.print_max == 2400.0
        assert speeds.print_avg == pytest.approx(9600.0 / 7)
        assert speeds.travel_avg == pytest.approx(2250.0)

    def test_no_moves(self):
        """Test that files without moves give an empty summary."""
        assert summarize_speeds(parse_gcode("M104 S200\n")) == SpeedSummary()

    def test_moves_without_feed_skipped(self):
        """Test that moves before the first F word are ignored."""
        speeds = summarize_speeds(parse_gcode("G1 X1 E1\nG1 X2 E2 F600\n"))

        assert speeds.print_min == speeds.print_max == 600.0
        assert speeds.travel_avg is None


class TestRetractions:
    """Test retraction counting."""

    def test_cura_retractions(self, cura_gcode):
        """Test that the sample file retracts once."""
        assert count_retractions(parse_gcode(cura_gcode)) == 1

    def test_multi_move_wipe_counts_once(self):
        """Test that consecutive retracting moves are one retraction."""
        text = "G1 X1 E1\nG1 X2 E0.8\nG1 X3 E0.6\nG1 X4 E1.6\nG1 E1.0\n"

        assert count_retractions(parse_gcode(text)) == 2

    def test_firmware_retraction(self):
        """Test G10/G11 firmware retraction."""
        assert count_retractions(parse_gcode("G10\nG11\nG10\nG10\n")) == 2

    def test_no_retractions(self):
        """Test a file that only extrudes."""
        assert count_retractions(parse_gcode("G1 X1 E1\nG1 X2 E2\n")) == 0


class TestTotalExtrusion:
    """Test filament length computation."""

    def test_cura_extrusion(self, cura_gcode):
        """Test that retractions and re-primes do not cancel out."""
        assert total_extrusion(parse_gcode(cura_gcode)) == pytest.approx(7.5)

    def test_relative_extrusion(self):
        """Test extrusion with M83 relative E."""
        text = "M83\nG1 X1 E0.5\nG1 X2 E0.5\nG1 E-0.8\n"

        assert total_extrusion(parse_gcode(text)) == pytest.approx(1.0)

    def test_empty(self):
        """Test that no moves means no extrusion."""
        assert total_extrusion(parse_gcode("")) == 0.0
