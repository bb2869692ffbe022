"""Tests for payload field resolution."""

import pytest

from gcode_report.fields import (
    ISSUE_LINE_FIELDS,
    PATCH_ORIGINAL_FIELDS,
    resolve,
    to_bool,
    to_float,
    to_int,
    to_label,
    to_line_index,
    to_line_indexes,
    to_verbatim,
)


class TestResolve:
    """Test priority resolution."""

    def test_priority_order(self):
        """Test that the earliest present candidate wins."""
        payload = {"line": 7, "event_line_index": 3, "line_index": 5}

        assert resolve(payload, ISSUE_LINE_FIELDS, to_line_index) == 3

    def test_skips_null_and_unconvertible(self):
        """Test that null or unusable candidates fall through."""
        payload = {"event_line_index": None, "line_index": "n/a", "line": "12"}

        assert resolve(payload, ISSUE_LINE_FIELDS, to_line_index) == 12

    def test_nothing_found(self):
        """Test that no candidate gives None."""
        assert resolve({}, ISSUE_LINE_FIELDS, to_line_index) is None

    def test_verbatim_text_kept(self):
        """Test that G-code text keeps its whitespace."""
        payload = {"original": "G1 X10  ; wall "}

        assert resolve(payload, PATCH_ORIGINAL_FIELDS, to_verbatim) == "G1 X10  ; wall "


class TestConverters:
    """Test value converters."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (42, 42),
            ("42", 42),
            (" 42 ", 42),
            (42.0, 42),
            ("123: G1 X10 Y5", 123),
            (">>> 88: M104 S200 <<<", 88),
            (0, None),
            ("0", None),
            (-3, None),
            (2.5, None),
            (True, None),
            ("G1 X10", None),
            ([1], None),
        ],
    )
    def test_to_line_index(self, value, expected):
        """Test line number conversion."""
        assert to_line_index(value) == expected

    def test_to_line_indexes(self):
        """Test that member lines are deduplicated in order."""
        assert to_line_indexes([5, "3", 5, "x", "7: G1"]) == (5, 3, 7)
        assert to_line_indexes([]) is None
        assert to_line_indexes("5") is None

    def test_to_label(self):
        """Test label conversion."""
        assert to_label("  high ") == "high"
        assert to_label("   ") is None
        assert to_label(3) == "3"
        assert to_label(None) is None

    def test_to_bool(self):
        """Test boolean conversion."""
        assert to_bool(True) is True
        assert to_bool("yes") is True
        assert to_bool("false") is False
        assert to_bool(0) is False
        assert to_bool("maybe") is None

    def test_to_int_and_float(self):
        """Test numeric conversion."""
        assert to_int("12") == 12
        assert to_int("-4") == -4
        assert to_int(3.0) == 3
        assert to_int(3.5) is None
        assert to_float("2.5") == 2.5
        assert to_float("x") is None
        assert to_float(False) is None
