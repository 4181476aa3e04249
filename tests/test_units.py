#!/usr/bin/env python3
"""Tests for odometer unit conversion and formatting."""
import pytest
from garage import OdometerUnit, convert_odometer, format_odometer, unit_label

MI = OdometerUnit.MI
KM = OdometerUnit.KM


class TestConvertOdometer:
    """Tests for convert_odometer."""

    def test_miles_to_kilometers(self):
        assert convert_odometer(1000, MI, KM) == 1609

    def test_kilometers_to_miles(self):
        assert convert_odometer(1000, KM, MI) == 621

    def test_result_is_rounded(self):
        """Converted readings are whole numbers."""
        assert convert_odometer(48000, MI, KM) == 77248
        assert convert_odometer(1, MI, KM) == 2

    def test_same_unit_unchanged(self):
        assert convert_odometer(48000, MI, MI) == 48000
        assert convert_odometer(12345.6, KM, KM) == 12345.6

    def test_zero(self):
        assert convert_odometer(0, MI, KM) == 0
        assert convert_odometer(0, KM, MI) == 0

    @pytest.mark.parametrize("value", [0, 1, 7, 499, 5000, 48000, 99999])
    def test_round_trip_within_one_unit(self, value):
        """Rounding is lossy, so a round trip lands within 1 unit, not exactly."""
        back = convert_odometer(convert_odometer(value, MI, KM), KM, MI)
        assert abs(back - value) <= 1


class TestFormatOdometer:
    """Tests for format_odometer and unit_label."""

    def test_formats_with_separator_and_unit(self):
        assert format_odometer(48000, MI) == "48,000 mi"
        assert format_odometer(77248, KM) == "77,248 km"

    def test_unit_label(self):
        assert unit_label(MI) == "miles"
        assert unit_label(KM) == "kilometers"
