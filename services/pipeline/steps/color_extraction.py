"""
Color extraction for test strip pads.
Finds the dominant color of a sample region while filtering background,
shadow and glare pixels.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from config.analysis_config import get_analysis_config
from services.interfaces import WHITE, PixelBuffer, Rect, RGBColor
from utils.color_conversion import saturation_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleResult:
    """Dominant color of one region."""
    color: RGBColor
    confidence: float
    pixel_count: int = 0


EMPTY_SAMPLE = SampleResult(color=WHITE, confidence=0.0, pixel_count=0)


class RegionSampler:
    """
    Robust dominant-color extraction for a rectangular region.

    Pipeline:
    1. Shrink the region to its center to avoid pad edges
    2. Walk pixels on a stride, dropping transparent, near-white and
       near-black pixels (and low-saturation glare unless it dominates)
    3. Quantize into RGB buckets, keeping the most saturated pixel per bucket
    4. Pick the bucket with the best count/saturation/brightness score
    """

    # Pixels below this saturation (0-100) and above this value are glare/gray
    GRAY_MAX_SATURATION = 15.0
    GRAY_MIN_VALUE = 80.0

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize region sampler.

        Args:
            config: Optional sampler config (defaults to analysis_config sampler section)
        """
        self.config = config or get_analysis_config()['sampler']
        self.logger = logging.getLogger(__name__)

    def sample(self, buffer: PixelBuffer, region: Rect) -> SampleResult:
        """
        Extract the dominant color of ``region``.

        Out-of-bounds parts of the region are skipped. When no pixel survives
        filtering, white with confidence 0 is returned.

        Args:
            buffer: Source pixels
            region: Region to sample (buffer coordinates)

        Returns:
            SampleResult with color and confidence (0-1)
        """
        window = self._center_window(region)
        if window is None:
            return EMPTY_SAMPLE

        view = buffer.view(window)
        if view is None:
            return EMPTY_SAMPLE

        stride = max(1, int(self.config['stride']))
        pixels = view[::stride, ::stride].reshape(-1, 4).astype(np.int32)
        rgb = self._filter_pixels(pixels)
        if len(rgb) == 0:
            self.logger.debug(f'No usable pixels in region {region}')
            return EMPTY_SAMPLE

        return self._dominant_bucket(rgb)

    def mean_color(self, buffer: PixelBuffer, region: Rect) -> Optional[RGBColor]:
        """Plain mean color of a region (no filtering); None if fully outside."""
        view = buffer.view(region)
        if view is None:
            return None
        mean = view[..., :3].reshape(-1, 3).mean(axis=0)
        return RGBColor(*mean)

    def _center_window(self, region: Rect) -> Optional[Rect]:
        ratio = float(self.config['center_ratio'])
        width = region.width * ratio
        height = region.height * ratio
        if width <= 0 or height <= 0:
            return None
        return Rect(
            region.x + (region.width - width) / 2,
            region.y + (region.height - height) / 2,
            width,
            height
        )

    def _filter_pixels(self, pixels: np.ndarray) -> np.ndarray:
        """Drop transparent, background, shadow and (minority) glare pixels."""
        opaque = pixels[:, 3] > self.config['min_alpha']
        rgb = pixels[opaque, :3]

        white = np.all(rgb > self.config['white_threshold'], axis=1)
        black = np.all(rgb < self.config['black_threshold'], axis=1)
        rgb = rgb[~(white | black)]
        if len(rgb) == 0:
            return rgb

        saturation, value = saturation_value(rgb)
        gray = (saturation * 100 < self.GRAY_MAX_SATURATION) & (value * 100 > self.GRAY_MIN_VALUE)
        gray_count = int(gray.sum())
        if 0 < gray_count <= len(rgb) - gray_count:
            rgb = rgb[~gray]
        return rgb

    def _dominant_bucket(self, rgb: np.ndarray) -> SampleResult:
        bucket_size = max(1, int(self.config['bucket_size']))
        quantized = rgb // bucket_size
        keys = quantized[:, 0] * 65536 + quantized[:, 1] * 256 + quantized[:, 2]
        _, inverse, counts = np.unique(keys, return_inverse=True, return_counts=True)
        inverse = inverse.reshape(-1)

        saturation, value = saturation_value(rgb)

        # Representative per bucket: most saturated, then brightest, then first seen
        order = np.lexsort((np.arange(len(rgb)), -value, -saturation, inverse))
        _, first = np.unique(inverse[order], return_index=True)
        representatives = order[first]

        rep_saturation = saturation[representatives]
        rep_value = value[representatives]
        scores = counts * (1.0 + rep_saturation) * (0.5 + rep_value / 2.0)
        best = int(np.argmax(scores))

        total = len(rgb)
        dominance = counts[best] / total
        support = min(1.0, total / max(1, int(self.config['min_support'])))
        confidence = round(float(dominance * support), 2)

        r, g, b = rgb[representatives[best]]
        return SampleResult(color=RGBColor(int(r), int(g), int(b)), confidence=confidence, pixel_count=total)
