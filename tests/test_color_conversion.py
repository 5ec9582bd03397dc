"""
Unit tests for color space conversion and distances.
"""

import numpy as np
import pytest

from services.interfaces import HSVColor, RGBColor
from utils.color_conversion import (
    MAX_RGB_DISTANCE,
    hex_to_rgb,
    hsv_distance,
    hsv_to_rgb,
    hue_difference,
    rgb_distance,
    rgb_to_hex,
    rgb_to_hsv,
    saturation_value,
    to_grayscale,
)


class TestColorConversion:
    """Test cases for RGB/HSV conversion."""

    def setup_method(self):
        self.colors = [
            RGBColor(255, 0, 0),
            RGBColor(0, 255, 0),
            RGBColor(0, 0, 255),
            RGBColor(255, 220, 50),
            RGBColor(200, 160, 220),
            RGBColor(37, 142, 201),
            RGBColor(128, 128, 128),
            RGBColor(0, 0, 0),
            RGBColor(255, 255, 255),
        ]

    def test_round_trip_within_one(self):
        for color in self.colors:
            back = hsv_to_rgb(rgb_to_hsv(color))
            assert abs(back.r - color.r) <= 1
            assert abs(back.g - color.g) <= 1
            assert abs(back.b - color.b) <= 1

    def test_primary_hues(self):
        assert rgb_to_hsv(RGBColor(255, 0, 0)).h == pytest.approx(0.0)
        assert rgb_to_hsv(RGBColor(0, 255, 0)).h == pytest.approx(120.0)
        assert rgb_to_hsv(RGBColor(0, 0, 255)).h == pytest.approx(240.0)

    def test_achromatic_has_zero_hue_and_saturation(self):
        hsv = rgb_to_hsv(RGBColor(128, 128, 128))
        assert hsv.h == 0.0
        assert hsv.s == 0.0
        assert hsv.v == pytest.approx(50.2, abs=0.1)

    def test_hue_stays_below_360(self):
        hsv = rgb_to_hsv(RGBColor(255, 0, 1))
        assert 0.0 <= hsv.h < 360.0

    def test_rgb_channels_clamped(self):
        color = RGBColor(300, -5, 127.6)
        assert color.as_tuple() == (255, 0, 128)


class TestColorDistance:
    """Test cases for distance functions."""

    def test_identity(self):
        color = RGBColor(12, 200, 99)
        assert rgb_distance(color, color) == 0.0
        hsv = rgb_to_hsv(color)
        assert hsv_distance(hsv, hsv) == 0.0

    def test_symmetry(self):
        a = RGBColor(255, 220, 50)
        b = RGBColor(120, 160, 140)
        assert rgb_distance(a, b) == rgb_distance(b, a)
        assert hsv_distance(rgb_to_hsv(a), rgb_to_hsv(b)) == hsv_distance(rgb_to_hsv(b), rgb_to_hsv(a))

    def test_rgb_distance_range(self):
        assert rgb_distance(RGBColor(0, 0, 0), RGBColor(255, 255, 255)) == pytest.approx(MAX_RGB_DISTANCE, abs=0.01)

    def test_hue_difference_wraps(self):
        assert hue_difference(350.0, 10.0) == pytest.approx(20.0)
        assert hue_difference(0.0, 180.0) == pytest.approx(180.0)

    def test_hue_ignored_for_gray(self):
        # Hue contributes in proportion to the lower saturation
        gray_a = HSVColor(0.0, 0.0, 50.0)
        gray_b = HSVColor(180.0, 0.0, 50.0)
        assert hsv_distance(gray_a, gray_b) == 0.0

    def test_hsv_distance_weights(self):
        a = HSVColor(0.0, 100.0, 100.0)
        b = HSVColor(180.0, 100.0, 100.0)
        assert hsv_distance(a, b) == pytest.approx(180.0)
        c = HSVColor(0.0, 50.0, 100.0)
        assert hsv_distance(a, c) == pytest.approx(40.0)


class TestPixelHelpers:
    """Test cases for array helpers."""

    def test_grayscale_weights(self):
        rgb = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        gray = to_grayscale(rgb)
        assert gray.shape == (1, 3)
        assert gray[0, 0] == pytest.approx(76, abs=1)
        assert gray[0, 1] == pytest.approx(150, abs=1)
        assert gray[0, 2] == pytest.approx(29, abs=1)

    def test_saturation_value(self):
        pixels = np.array([[255, 0, 0], [0, 0, 0], [100, 100, 100]])
        saturation, value = saturation_value(pixels)
        assert saturation.tolist() == pytest.approx([1.0, 0.0, 0.0])
        assert value.tolist() == pytest.approx([1.0, 0.0, 100 / 255])

    def test_hex_round_trip(self):
        assert rgb_to_hex(RGBColor(164, 198, 57)) == '#A4C639'
        assert hex_to_rgb('#A4C639') == RGBColor(164, 198, 57)
        assert hex_to_rgb('a4c639') == RGBColor(164, 198, 57)

    def test_invalid_hex(self):
        with pytest.raises(ValueError):
            hex_to_rgb('#12345')
        with pytest.raises(ValueError):
            hex_to_rgb('#GGGGGG')
