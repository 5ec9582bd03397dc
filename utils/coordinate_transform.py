"""
Coordinate transformation utilities for the strip analysis service.
Handles the working (downscaled) image and mapping regions back to the
original image.
"""

import logging
from typing import Tuple

import cv2

from services.interfaces import PixelBuffer, Rect

logger = logging.getLogger(__name__)


def downscale_for_analysis(buffer: PixelBuffer, max_dimension: int) -> Tuple[PixelBuffer, float, float]:
    """
    Downscale a buffer so its longest side is at most ``max_dimension``.

    Args:
        buffer: Original image
        max_dimension: Longest allowed side (<= 0 disables downscaling)

    Returns:
        Tuple of (working_buffer, scale_x, scale_y) where scale_* map working
        coordinates back to the original (original = working * scale)
    """
    longest = max(buffer.width, buffer.height)
    if max_dimension <= 0 or longest <= max_dimension:
        return buffer, 1.0, 1.0

    ratio = max_dimension / longest
    new_width = max(1, int(round(buffer.width * ratio)))
    new_height = max(1, int(round(buffer.height * ratio)))
    resized = cv2.resize(buffer.pixels, (new_width, new_height), interpolation=cv2.INTER_AREA)

    logger.debug(f'Downscaled {buffer.width}x{buffer.height} -> {new_width}x{new_height} for analysis')
    return PixelBuffer(resized), buffer.width / new_width, buffer.height / new_height


def rect_to_original(rect: Rect, scale_x: float, scale_y: float) -> Rect:
    """
    Transform a rectangle from working-image to original-image coordinates.

    Args:
        rect: Rectangle in working coordinates
        scale_x: Horizontal scale (original / working)
        scale_y: Vertical scale (original / working)

    Returns:
        Rectangle in original coordinates
    """
    if scale_x == 1.0 and scale_y == 1.0:
        return rect
    return rect.scaled(scale_x, scale_y)
