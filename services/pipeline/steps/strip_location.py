"""
Strip location step.

Combines the edge-window detector's geometry with band color variation:
a real strip has pads of different colors, a plain rectangle does not.
"""

import itertools
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from config.analysis_config import get_analysis_config
from services.detection.methods.edge_window_detector import EdgeWindowDetector
from services.interfaces import PixelBuffer, Rect, StripCandidate
from services.pipeline.steps.band_segmentation import BandSegmenter
from services.pipeline.steps.color_extraction import RegionSampler
from utils.color_conversion import rgb_distance

logger = logging.getLogger(__name__)

# Mean pairwise band distance that counts as full variation
VARIATION_SCALE = 100.0


class StripLocator:
    """Find the most plausible strip in an image."""

    def __init__(
        self,
        detector: Optional[EdgeWindowDetector] = None,
        segmenter: Optional[BandSegmenter] = None,
        sampler: Optional[RegionSampler] = None,
        config: Optional[Dict] = None
    ):
        self.config = config or get_analysis_config()['locator']
        self.detector = detector or EdgeWindowDetector(self.config)
        self.segmenter = segmenter or BandSegmenter()
        self.sampler = sampler or RegionSampler()
        self.logger = logging.getLogger(__name__)

    def locate(self, buffer: PixelBuffer, band_count: int = 6) -> Optional[StripCandidate]:
        """
        Locate the strip and lay out its bands.

        Each window candidate is re-scored as the average of its window score
        and the color variation between its bands.

        Args:
            buffer: Working image
            band_count: Number of pads on the strip

        Returns:
            Best candidate with ``band_regions`` filled in, or None if no
            candidate reaches the minimum confidence
        """
        windows = self.detector.find_windows(buffer)
        if not windows:
            self.logger.info('No strip-shaped region with edge support')
            return None

        best = None
        for window in windows:
            bands = self.segmenter.segment(window.bounds, window.is_vertical, band_count)
            variation = self.color_variation(buffer, bands)
            confidence = (window.confidence + variation) / 2
            self.logger.debug(
                f'Candidate {window.bounds.to_dict()} vertical={window.is_vertical}: '
                f'window={window.confidence:.3f} variation={variation:.3f} confidence={confidence:.3f}'
            )
            if best is None or confidence > best.confidence:
                best = replace(window, confidence=confidence, band_regions=tuple(bands))

        if best.confidence < self.config['min_confidence']:
            self.logger.info(
                f'Best strip candidate confidence {best.confidence:.3f} below '
                f'threshold {self.config["min_confidence"]}'
            )
            return None

        self.logger.info(
            f'Strip located at {best.bounds.to_dict()} '
            f'({"vertical" if best.is_vertical else "horizontal"}, confidence {best.confidence:.3f})'
        )
        return best

    def color_variation(self, buffer: PixelBuffer, bands: List[Rect]) -> float:
        """Mean pairwise RGB distance between band mean colors, scaled to 0-1."""
        colors = [
            color for color in (self.sampler.mean_color(buffer, band) for band in bands)
            if color is not None
        ]
        pairs = list(itertools.combinations(colors, 2))
        if not pairs:
            return 0.0
        mean_distance = sum(rgb_distance(a, b) for a, b in pairs) / len(pairs)
        return min(1.0, mean_distance / VARIATION_SCALE)
