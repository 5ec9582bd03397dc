"""
Visualization helpers for strip detection and band sampling results.
"""

import cv2
import numpy as np
from typing import List, Optional, Tuple

from services.interfaces import AnalysisResult, BandSample, PixelBuffer, Rect, StripCandidate


def buffer_to_bgr(buffer: PixelBuffer) -> np.ndarray:
    """Convert an RGBA pixel buffer to a writable BGR image for drawing."""
    return cv2.cvtColor(buffer.pixels, cv2.COLOR_RGBA2BGR)


def _corners(rect: Rect) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    return (int(round(rect.x)), int(round(rect.y))), (int(round(rect.right)), int(round(rect.bottom)))


def visualize_strip_boundaries(
    image: np.ndarray,
    strip: Optional[StripCandidate],
    color: Tuple[int, int, int] = (0, 255, 0)
) -> np.ndarray:
    """Visualize strip boundaries."""
    vis = image.copy()

    if strip:
        top_left, bottom_right = _corners(strip.bounds)
        cv2.rectangle(vis, top_left, bottom_right, color, 3)
        cv2.putText(vis, f'Strip {strip.confidence:.2f}', (top_left[0], max(12, top_left[1] - 10)),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)

    return vis


def visualize_bands(
    image: np.ndarray,
    bands: List[BandSample],
    color: Tuple[int, int, int] = (255, 0, 0)
) -> np.ndarray:
    """Visualize band sample regions with a swatch of the sampled color."""
    vis = image.copy()

    for band in bands:
        top_left, bottom_right = _corners(band.region)
        cv2.rectangle(vis, top_left, bottom_right, color, 2)

        # Swatch of the dominant color to the right of the band
        r, g, b = band.dominant_color.as_tuple()
        swatch_left = bottom_right[0] + 6
        swatch_size = max(8, bottom_right[1] - top_left[1])
        cv2.rectangle(vis, (swatch_left, top_left[1]),
                      (swatch_left + swatch_size, top_left[1] + swatch_size), (b, g, r), -1)
        cv2.rectangle(vis, (swatch_left, top_left[1]),
                      (swatch_left + swatch_size, top_left[1] + swatch_size), (0, 0, 0), 1)
        cv2.putText(vis, band.parameter_key, (swatch_left + swatch_size + 4, top_left[1] + swatch_size),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, color, 1)

    return vis


def create_final_visualization(buffer: PixelBuffer, result: AnalysisResult) -> np.ndarray:
    """Create final visualization with strip, bands and method annotations (BGR)."""
    vis = buffer_to_bgr(buffer)

    if result.strip:
        vis = visualize_strip_boundaries(vis, result.strip, (0, 255, 0))

    vis = visualize_bands(vis, result.bands, (255, 0, 0))

    cv2.putText(vis, f'Method: {result.method}', (10, 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 255), 1)
    cv2.putText(vis, f'Readings: {len(result.readings)}', (10, 40),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 255), 1)

    return vis
