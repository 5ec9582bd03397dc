"""
Color space conversion utilities for the strip analysis service.
Handles RGB/HSV conversion, grayscale and color distance functions.
"""

import math
from typing import Union

import cv2
import numpy as np

from services.interfaces import HSVColor, RGBColor

# Maximum possible RGB distance: sqrt(255^2 * 3)
MAX_RGB_DISTANCE = 441.67

# Empirical ceiling of hsv_distance, used for confidence scaling
MAX_HSV_DISTANCE = 200.0

HSV_SATURATION_WEIGHT = 0.8
HSV_VALUE_WEIGHT = 0.6


def rgb_to_hsv(color: RGBColor) -> HSVColor:
    """
    Convert RGB to HSV.

    Args:
        color: RGB color (0-255 channels)

    Returns:
        HSV color with h in [0, 360), s and v in [0, 100].
        Achromatic colors get hue 0 and saturation 0.
    """
    r = color.r / 255.0
    g = color.g / 255.0
    b = color.b / 255.0

    c_max = max(r, g, b)
    c_min = min(r, g, b)
    diff = c_max - c_min

    h = 0.0
    s = 0.0
    if diff != 0:
        s = diff / c_max
        if c_max == r:
            h = ((g - b) / diff) % 6
        elif c_max == g:
            h = (b - r) / diff + 2
        else:
            h = (r - g) / diff + 4
        h *= 60.0
        if h >= 360.0:
            h -= 360.0

    return HSVColor(h=h, s=s * 100.0, v=c_max * 100.0)


def hsv_to_rgb(color: HSVColor) -> RGBColor:
    """
    Convert HSV back to RGB (channels rounded to integers).

    Args:
        color: HSV color

    Returns:
        RGB color
    """
    h = (color.h % 360.0) / 60.0
    s = color.s / 100.0
    v = color.v / 100.0

    c = v * s
    x = c * (1 - abs(h % 2 - 1))
    m = v - c

    sector = int(h)
    if sector == 0:
        r, g, b = c, x, 0.0
    elif sector == 1:
        r, g, b = x, c, 0.0
    elif sector == 2:
        r, g, b = 0.0, c, x
    elif sector == 3:
        r, g, b = 0.0, x, c
    elif sector == 4:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return RGBColor((r + m) * 255, (g + m) * 255, (b + m) * 255)


def rgb_distance(a: RGBColor, b: RGBColor) -> float:
    """Euclidean distance in RGB space, in [0, 441.67]."""
    return math.sqrt((a.r - b.r) ** 2 + (a.g - b.g) ** 2 + (a.b - b.b) ** 2)


def hue_difference(h1: float, h2: float) -> float:
    """Circular hue difference in degrees, in [0, 180]."""
    diff = abs(h1 - h2) % 360.0
    return min(diff, 360.0 - diff)


def hsv_distance(a: HSVColor, b: HSVColor) -> float:
    """
    Perceptual distance in HSV space.

    Hue contributes proportionally to the lower of the two saturations, so
    grayish colors are not penalized for hue mismatch.
    """
    hue_weight = min(a.s, b.s) / 100.0
    hue_term = hue_difference(a.h, b.h) * hue_weight
    sat_term = abs(a.s - b.s) * HSV_SATURATION_WEIGHT
    val_term = abs(a.v - b.v) * HSV_VALUE_WEIGHT
    return math.sqrt(hue_term ** 2 + sat_term ** 2 + val_term ** 2)


def to_grayscale(rgb: np.ndarray) -> np.ndarray:
    """
    Convert an (H, W, 3) RGB array to grayscale (0.299r + 0.587g + 0.114b).

    Args:
        rgb: Image array in RGB format (uint8)

    Returns:
        Single-channel uint8 image
    """
    return cv2.cvtColor(np.ascontiguousarray(rgb), cv2.COLOR_RGB2GRAY)


def saturation_value(pixels: np.ndarray):
    """
    Per-pixel HSV saturation and value (both 0-1) for an (N, 3) RGB array.

    Returns:
        Tuple of (saturation, value) float arrays
    """
    pixels = pixels.astype(np.float64)
    c_max = pixels.max(axis=1)
    c_min = pixels.min(axis=1)
    saturation = np.divide(c_max - c_min, c_max, out=np.zeros_like(c_max), where=c_max > 0)
    return saturation, c_max / 255.0


def rgb_to_hex(color: Union[RGBColor, tuple]) -> str:
    """
    Convert RGB values to hex color string.

    Args:
        color: RGBColor or (r, g, b) tuple

    Returns:
        Hex color string (e.g., "#A4C639")
    """
    r, g, b = color.as_tuple() if isinstance(color, RGBColor) else color
    return f'#{r:02X}{g:02X}{b:02X}'


def hex_to_rgb(value: str) -> RGBColor:
    """
    Parse a "#RRGGBB" (or "RRGGBB") hex string.

    Raises:
        ValueError: If the string is not a 6-digit hex color
    """
    digits = value.strip().lstrip('#')
    if len(digits) != 6:
        raise ValueError(f'Invalid hex color: {value!r}')
    try:
        return RGBColor(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))
    except ValueError:
        raise ValueError(f'Invalid hex color: {value!r}') from None
