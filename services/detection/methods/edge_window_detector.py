"""
Sliding-window edge detection method for strip detection.
"""

import logging
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from config.analysis_config import get_analysis_config
from services.interfaces import METHOD_LOCAL, PixelBuffer, Rect, StripCandidate
from utils.color_conversion import to_grayscale

from .base_detector import BaseStripDetector

logger = logging.getLogger(__name__)

# (score, top, left, width, height) in scan coordinates
Window = Tuple[float, int, int, int, int]


class _WindowBudget:
    """Caps the number of windows evaluated per detection."""

    def __init__(self, limit: int):
        self.remaining = limit
        self.exhausted = False

    def take(self, count: int) -> bool:
        if count > self.remaining:
            self.exhausted = True
            return False
        self.remaining -= count
        return True


class EdgeWindowDetector(BaseStripDetector):
    """
    Detect strip-shaped windows on a gradient map.

    Step-by-step pipeline:
    1. Convert to grayscale
    2. Sobel gradient magnitude (clipped to 255)
    3. Slide windows of plausible strip proportions over the image, both
       upright and transposed; score each by mean border edge strength
       times an aspect-ratio preference
    4. Return the best-scoring windows as candidates

    Candidate confidence here is the window score alone; the pipeline's
    strip locator combines it with band color variation.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize detector.

        Args:
            config: Optional locator config (defaults to analysis_config locator section)
        """
        super().__init__()
        self.config = config or get_analysis_config()['locator']

    def detect(self, buffer: PixelBuffer, band_count: int = 6) -> Optional[StripCandidate]:
        candidates = self.find_windows(buffer)
        return candidates[0] if candidates else None

    def find_windows(self, buffer: PixelBuffer) -> List[StripCandidate]:
        """
        Score windows and return the top candidates, best first.

        Args:
            buffer: Input pixels

        Returns:
            Up to ``top_candidates`` candidates whose window score exceeds
            ``min_window_score``; empty when nothing strip-shaped has edge support
        """
        edges = self.edge_map(buffer)
        budget = _WindowBudget(int(self.config['max_windows']))

        windows = [
            (score, Rect(left, top, width, height), True)
            for score, top, left, width, height in self._scan(edges, budget)
        ]
        # Transposed scan finds horizontal strips; map back by swapping axes
        windows += [
            (score, Rect(top, left, height, width), False)
            for score, top, left, width, height in self._scan(edges.T, budget)
        ]

        if budget.exhausted:
            self.logger.warning(
                f'Window budget of {self.config["max_windows"]} exhausted on '
                f'{buffer.width}x{buffer.height} image, search truncated'
            )

        windows.sort(key=lambda w: (-w[0], w[1].y, w[1].x, w[1].width, w[1].height))
        windows = windows[:int(self.config['top_candidates'])]
        self.logger.debug(f'{len(windows)} strip-shaped windows kept')

        return [
            StripCandidate(bounds=bounds, is_vertical=is_vertical, confidence=score, method=METHOD_LOCAL)
            for score, bounds, is_vertical in windows
        ]

    def edge_map(self, buffer: PixelBuffer) -> np.ndarray:
        """Sobel gradient magnitude of the grayscale image, clipped to 0-255."""
        gray = to_grayscale(buffer.rgb)
        gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
        gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
        return np.clip(cv2.magnitude(gx, gy), 0, 255)

    def aspect_score(self, aspect: float) -> float:
        """1.0 at the peak aspect ratio, falling off linearly on either side."""
        peak = self.config['peak_aspect']
        return max(0.0, 1.0 - 0.5 * abs(aspect - peak) / peak)

    def _scan(self, edges: np.ndarray, budget: _WindowBudget) -> List[Window]:
        """
        Score all windows of plausible strip proportions whose long axis runs
        along the rows of ``edges``.
        """
        height, width = edges.shape
        short_side = min(height, width)
        long_side = max(height, width)
        step = max(1, int(self.config['window_step']))

        min_w = max(1, int(round(short_side * self.config['min_width_ratio'])))
        max_w = int(short_side * self.config['max_width_ratio'])
        min_h = max(1, int(round(long_side * self.config['min_length_ratio'])))
        keep = int(self.config['top_candidates'])
        min_score = self.config['min_window_score']

        # Prefix sums along columns (for vertical borders) and rows (for horizontal borders)
        col_cum = np.zeros((height + 1, width), dtype=np.float64)
        col_cum[1:] = np.cumsum(edges, axis=0)
        row_cum = np.zeros((height, width + 1), dtype=np.float64)
        row_cum[:, 1:] = np.cumsum(edges, axis=1)

        results: List[Window] = []
        for w in range(min_w, min(max_w, width) + 1, step):
            for h in range(min_h, height + 1, step):
                aspect = h / w
                if aspect < self.config['min_aspect']:
                    continue
                if aspect > self.config['max_aspect']:
                    break

                xs = np.arange(0, width - w + 1, step)
                ys = np.arange(0, height - h + 1, step)
                if not budget.take(len(xs) * len(ys)):
                    return results

                Y = ys[:, None]
                X = xs[None, :]
                left = col_cum[Y + h, X] - col_cum[Y, X]
                right = col_cum[Y + h, X + w - 1] - col_cum[Y, X + w - 1]
                top = row_cum[Y, X + w] - row_cum[Y, X]
                bottom = row_cum[Y + h - 1, X + w] - row_cum[Y + h - 1, X]

                edge_score = (left + right + top + bottom) / (2 * (w + h)) / 255.0
                scores = (edge_score * self.aspect_score(aspect)).ravel()

                k = min(keep, scores.size)
                best = np.argpartition(-scores, k - 1)[:k]
                for index in best:
                    score = float(scores[index])
                    if score > min_score:
                        row, col = divmod(int(index), len(xs))
                        results.append((score, int(ys[row]), int(xs[col]), w, h))

        return results
