"""
Tests for free-text time parsing.

These cover the 12/24-hour detection, the separator and AM/PM variants
people actually type, and the work-window placement of bare hours.
"""

from datetime import time

import pytest

from timetrack.services.time_string_service import (
    format_time,
    has_period,
    is_24_hour_format,
    is_valid_time_format,
    normalize_time,
)


class TestNormalizeTime:
    """Accepted input and the time of day it becomes."""

    @pytest.mark.parametrize("text, expected", [
        ("900", time(9, 0)),
        ("1300", time(13, 0)),
        ("1730", time(17, 30)),
        ("5:30PM", time(17, 30)),
        ("05", time(17, 0)),
        ("9:00a", time(9, 0)),
        ("9", time(9, 0)),
        ("7", time(19, 0)),
        ("7:00", time(19, 0)),
        ("7:01", time(7, 1)),
        ("6:59", time(18, 59)),
        ("6:45", time(18, 45)),
        ("12", time(12, 0)),
        ("12:30", time(12, 30)),
        ("12am", time(0, 0)),
        ("12:15 pm", time(12, 15)),
        ("930", time(9, 30)),
        ("9.30", time(9, 30)),
        ("9;30", time(9, 30)),
        ("5p", time(17, 0)),
        ("6am", time(6, 0)),
        ("0830", time(8, 30)),
        ("8:05 am", time(8, 5)),
        ("11:59 PM", time(23, 59)),
        ("23:59", time(23, 59)),
        ("17:30 PM", time(17, 30)),
        ("1300pm", time(13, 0)),
        (" 10:15 ", time(10, 15)),
    ])
    def test_accepted_input(self, text, expected):
        assert normalize_time(text) == expected

    @pytest.mark.parametrize("text", [
        None,
        "",
        "   ",
        "25:00",
        "24",
        "2400",
        "abc",
        "1:5",
        "12345",
        "17:30 AM",
        "13am",
        "9:60",
        "0",
        "00:30",
        "9:00 xm",
        "9:00:00",
        "-9",
        "1\u0663:00",
        "\u0669\u0660\u0660",
    ])
    def test_rejected_input_returns_none(self, text):
        assert normalize_time(text) is None

    def test_explicit_period_is_never_moved(self):
        """6am is outside the work window but was asked for explicitly"""
        assert normalize_time("6:00 AM") == time(6, 0)
        assert normalize_time("8 pm") == time(20, 0)

    def test_custom_work_window(self):
        assert normalize_time("7:30", work_start=time(8, 0), work_end=time(20, 0)) == time(19, 30)
        assert normalize_time("7:30", work_start=time(7, 0), work_end=time(19, 0)) == time(7, 30)

    def test_window_edges_are_shifted(self):
        """Only times strictly inside the window are kept as typed"""
        assert normalize_time("8", work_start=time(8, 0), work_end=time(20, 0)) == time(20, 0)
        assert normalize_time("8:01", work_start=time(8, 0), work_end=time(20, 0)) == time(8, 1)

    def test_same_input_same_output(self):
        assert normalize_time("545") == normalize_time("545") == time(17, 45)


class TestCanonicalRoundTrip:
    """Normalizing the display form of a parsed time gives the same time back."""

    @pytest.mark.parametrize("value", [
        time(0, 0),
        time(5, 0),
        time(9, 30),
        time(12, 0),
        time(13, 5),
        time(18, 59),
        time(23, 59),
    ])
    def test_display_form_reparses(self, value):
        assert normalize_time(format_time(value)) == value

    @pytest.mark.parametrize("text", ["900", "1730", "05", "5:30PM", "12am"])
    def test_normalized_output_is_stable(self, text):
        first = normalize_time(text)
        assert normalize_time(format_time(first)) == first

    def test_format_time_of_none_is_empty(self):
        assert format_time(None) == ""
        assert format_time(time(17, 30)) == "05:30 PM"


class TestFormatDetection:

    @pytest.mark.parametrize("text, expected", [
        ("1730", True),
        ("17", True),
        ("13:00", True),
        ("23 pm", True),
        ("900", False),
        ("130", False),
        ("05", False),
        ("12:00", False),
        ("24:00", False),
    ])
    def test_is_24_hour_format(self, text, expected):
        assert is_24_hour_format(text) is expected

    def test_has_period(self):
        assert has_period("5:30PM")
        assert has_period("5a")
        assert not has_period("1730")

    def test_valid_format(self):
        assert is_valid_time_format("9:00 am")
        assert is_valid_time_format("1730 pm")
        assert not is_valid_time_format("1730 am")
        assert not is_valid_time_format(None)
