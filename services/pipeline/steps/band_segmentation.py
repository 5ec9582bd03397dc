"""
Band segmentation for located test strips.

Splits a strip into one sub-region per reagent pad, and provides the fixed
proportional band layout used when no strip could be located.
"""

import logging
from typing import List, Sequence

from services.interfaces import Rect

logger = logging.getLogger(__name__)

# Share of each slice kept along the strip axis (reduces cross-band bleed)
BAND_LENGTH_RATIO = 0.4

# Share of the strip width kept across the strip axis
BAND_WIDTH_RATIO = 0.8

# Fallback band centers as a fraction of image height, per pad count
FALLBACK_POSITIONS = {
    3: (0.25, 0.5, 0.75),
    6: (0.18, 0.28, 0.38, 0.52, 0.64, 0.78),
}
FALLBACK_X_RATIO = 0.3
FALLBACK_WIDTH_RATIO = 0.4
FALLBACK_HEIGHT_RATIO = 0.04
FALLBACK_MIN_HEIGHT = 8


class BandSegmenter:
    """Compute per-pad sample regions."""

    def segment(self, bounds: Rect, is_vertical: bool, count: int) -> List[Rect]:
        """
        Divide a strip into ``count`` ordered band regions.

        The strip is cut into count + 1 equal slices along its long axis; band
        i is centered on the boundary after slice i, keeps 40% of a slice
        along the axis and 80% of the strip across it.

        Args:
            bounds: Strip bounds
            is_vertical: True for strips running top-to-bottom
            count: Number of pads

        Returns:
            Regions ordered top-to-bottom (vertical) or left-to-right (horizontal)
        """
        if count <= 0:
            raise ValueError(f'count must be positive, got {count}')

        if is_vertical:
            slice_length = bounds.height / (count + 1)
            band_height = slice_length * BAND_LENGTH_RATIO
            band_width = bounds.width * BAND_WIDTH_RATIO
            x = bounds.x + (bounds.width - band_width) / 2
            return [
                Rect(x, bounds.y + (i + 1) * slice_length - band_height / 2, band_width, band_height)
                for i in range(count)
            ]

        slice_length = bounds.width / (count + 1)
        band_width = slice_length * BAND_LENGTH_RATIO
        band_height = bounds.height * BAND_WIDTH_RATIO
        y = bounds.y + (bounds.height - band_height) / 2
        return [
            Rect(bounds.x + (i + 1) * slice_length - band_width / 2, y, band_width, band_height)
            for i in range(count)
        ]

    def fallback_regions(self, width: int, height: int, count: int) -> List[Rect]:
        """
        Fixed proportional band regions for images where no strip was found.

        Assumes a vertical strip roughly centered in the frame.

        Args:
            width: Image width
            height: Image height
            count: Number of pads

        Returns:
            Regions ordered top-to-bottom
        """
        positions = self.fallback_positions(count)
        band_height = max(FALLBACK_MIN_HEIGHT, height * FALLBACK_HEIGHT_RATIO)
        x = width * FALLBACK_X_RATIO
        band_width = max(1.0, width * FALLBACK_WIDTH_RATIO)
        return [
            Rect(x, height * position - band_height / 2, band_width, band_height)
            for position in positions
        ]

    @staticmethod
    def fallback_positions(count: int) -> Sequence[float]:
        if count <= 0:
            raise ValueError(f'count must be positive, got {count}')
        if count in FALLBACK_POSITIONS:
            return FALLBACK_POSITIONS[count]
        step = 1.0 / (count + 1)
        return tuple(step * (i + 1) for i in range(count))
