"""
Unit tests for calibrated color matching.
"""

import pytest

from services.calibration import CalibrationTable
from services.errors import InvalidParameterKey
from services.interfaces import RGBColor
from services.utils.color_matching import ColorMatcher, ColorSpaceStrategy
from utils.color_conversion import MAX_HSV_DISTANCE, MAX_RGB_DISTANCE


def single_entry_table(color):
    return CalibrationTable.from_rows({'ph': [(6.0, 8.0, color, 'ok')]})


class TestColorMatcherRGB:
    """Test cases for RGB matching against the default calibration."""

    def setup_method(self):
        """Set up test fixtures."""
        self.matcher = ColorMatcher(CalibrationTable.default(), ColorSpaceStrategy.RGB)

    def test_exact_reference_color(self):
        result = self.matcher.match(RGBColor(255, 220, 50), 'ph')
        assert result.value == 7.0
        assert result.status == 'ok'
        assert result.confidence == 1.0
        assert result.distance == 0.0

    def test_close_color_snaps_to_midpoint(self):
        result = self.matcher.match(RGBColor(250, 215, 55), 'ph')
        assert result.value == 7.0
        assert result.status == 'ok'
        assert 0.95 < result.confidence < 1.0

    def test_interpolates_between_two_closest(self):
        # Equidistant (84.4) from the 6.8-7.2 and 7.2-7.6 entries
        result = self.matcher.match(RGBColor(175, 210, 75), 'ph')
        assert result.value == 7.2
        assert result.status == 'ok'
        assert result.confidence == 0.81

    def test_status_follows_interpolated_value(self):
        # Closest entry is 'low' (0.5-1.0) but the interpolated value lands in 'ok'
        result = self.matcher.match(RGBColor(200, 230, 175), 'freeChlorine')
        assert result.value == 1.4
        assert result.status == 'ok'
        assert result.confidence == 0.86

    def test_every_reference_color_maps_to_its_own_range(self):
        table = CalibrationTable.default()
        for key in table.parameter_keys:
            for entry in table.entries(key):
                result = self.matcher.match(entry.reference_color, key)
                assert result.value == pytest.approx(round(entry.midpoint, 1))
                assert result.status == entry.status
                assert result.confidence == 1.0

    def test_value_never_negative(self):
        for color in (RGBColor(0, 0, 0), RGBColor(255, 255, 255), RGBColor(10, 200, 30)):
            for key in CalibrationTable.default().parameter_keys:
                assert self.matcher.match(color, key).value >= 0

    def test_unknown_parameter(self):
        with pytest.raises(InvalidParameterKey):
            self.matcher.match(RGBColor(255, 220, 50), 'copper')

    def test_confidence_floor(self):
        matcher = ColorMatcher(single_entry_table((255, 255, 255)), ColorSpaceStrategy.RGB)
        result = matcher.match(RGBColor(0, 0, 0), 'ph')
        assert result.value == 7.0
        assert result.confidence == 0.3

    def test_confidence_decreases_with_distance(self):
        matcher = ColorMatcher(single_entry_table((100, 100, 100)), ColorSpaceStrategy.RGB)
        confidences = [
            matcher.match(RGBColor(100 + d, 100, 100), 'ph').confidence
            for d in range(0, 156, 5)
        ]
        assert all(a >= b for a, b in zip(confidences, confidences[1:]))
        assert confidences[0] == 1.0

    def test_default_max_distance(self):
        assert self.matcher.settings['max_distance'] == MAX_RGB_DISTANCE


class TestColorMatcherHSV:
    """Test cases for HSV matching."""

    def setup_method(self):
        self.matcher = ColorMatcher(CalibrationTable.default(), ColorSpaceStrategy.HSV)

    def test_strategy_from_string(self):
        assert ColorMatcher(CalibrationTable.default(), 'hsv').strategy is ColorSpaceStrategy.HSV

    def test_exact_reference_color(self):
        result = self.matcher.match(RGBColor(255, 220, 50), 'ph')
        assert result.value == 7.0
        assert result.status == 'ok'
        assert result.confidence == 1.0

    def test_opposite_hue_hits_floor(self):
        matcher = ColorMatcher(single_entry_table((0, 255, 255)), ColorSpaceStrategy.HSV)
        result = matcher.match(RGBColor(255, 0, 0), 'ph')
        assert result.confidence == pytest.approx(0.1)

    def test_distance_uses_hsv(self):
        assert self.matcher.distance(RGBColor(255, 0, 0), RGBColor(0, 255, 255)) == pytest.approx(180.0)
        rgb_matcher = ColorMatcher(CalibrationTable.default(), ColorSpaceStrategy.RGB)
        assert rgb_matcher.distance(RGBColor(255, 0, 0), RGBColor(0, 255, 255)) == pytest.approx(441.67, abs=0.01)

    def test_invalid_strategy(self):
        with pytest.raises(ValueError):
            ColorMatcher(CalibrationTable.default(), 'lab')

    def test_default_max_distance(self):
        assert self.matcher.settings['max_distance'] == MAX_HSV_DISTANCE
