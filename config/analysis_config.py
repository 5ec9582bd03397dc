"""
Analysis pipeline configuration.

Thresholds and limits for strip location, band sampling and color matching.
All values can be overridden through environment variables.
"""

import os
from typing import Dict

from utils.color_conversion import MAX_HSV_DISTANCE, MAX_RGB_DISTANCE

# Color matching strategy: 'rgb' or 'hsv'
COLOR_SPACE: str = os.getenv('COLOR_SPACE', 'rgb').lower()

# Wall-clock budget for one synchronous analysis (seconds)
ANALYSIS_TIMEOUT_SECONDS: float = float(os.getenv('ANALYSIS_TIMEOUT_SECONDS', '5.0'))

# Request timeout for loading images from URLs (seconds)
IMAGE_LOAD_TIMEOUT: int = int(os.getenv('IMAGE_LOAD_TIMEOUT', '30'))

# Longest side of the working image; larger inputs are downscaled
ANALYSIS_MAX_DIMENSION: int = int(os.getenv('ANALYSIS_MAX_DIMENSION', '400'))

# Confidence multiplier applied when falling back to fixed band positions
FALLBACK_CONFIDENCE_MULTIPLIER: float = float(os.getenv('FALLBACK_CONFIDENCE_MULTIPLIER', '0.7'))

# Strip locator
LOCATOR_MIN_CONFIDENCE: float = float(os.getenv('LOCATOR_MIN_CONFIDENCE', '0.3'))
LOCATOR_MIN_WINDOW_SCORE: float = float(os.getenv('LOCATOR_MIN_WINDOW_SCORE', '0.2'))
LOCATOR_WINDOW_STEP: int = int(os.getenv('LOCATOR_WINDOW_STEP', '10'))
LOCATOR_TOP_CANDIDATES: int = int(os.getenv('LOCATOR_TOP_CANDIDATES', '5'))
LOCATOR_MAX_WINDOWS: int = int(os.getenv('LOCATOR_MAX_WINDOWS', '1000000'))
LOCATOR_MIN_WIDTH_RATIO: float = float(os.getenv('LOCATOR_MIN_WIDTH_RATIO', '0.10'))  # of short side
LOCATOR_MAX_WIDTH_RATIO: float = float(os.getenv('LOCATOR_MAX_WIDTH_RATIO', '0.40'))  # of short side
LOCATOR_MIN_LENGTH_RATIO: float = float(os.getenv('LOCATOR_MIN_LENGTH_RATIO', '0.30'))  # of long side
LOCATOR_MIN_ASPECT: float = float(os.getenv('LOCATOR_MIN_ASPECT', '2.0'))
LOCATOR_MAX_ASPECT: float = float(os.getenv('LOCATOR_MAX_ASPECT', '8.0'))
LOCATOR_PEAK_ASPECT: float = float(os.getenv('LOCATOR_PEAK_ASPECT', '4.0'))

# Region sampler
SAMPLER_CENTER_RATIO: float = float(os.getenv('SAMPLER_CENTER_RATIO', '0.5'))
SAMPLER_STRIDE: int = int(os.getenv('SAMPLER_STRIDE', '2'))
SAMPLER_BUCKET_SIZE: int = int(os.getenv('SAMPLER_BUCKET_SIZE', '20'))
SAMPLER_MIN_ALPHA: int = int(os.getenv('SAMPLER_MIN_ALPHA', '200'))
SAMPLER_WHITE_THRESHOLD: int = int(os.getenv('SAMPLER_WHITE_THRESHOLD', '240'))
SAMPLER_BLACK_THRESHOLD: int = int(os.getenv('SAMPLER_BLACK_THRESHOLD', '30'))
SAMPLER_MIN_SUPPORT: int = int(os.getenv('SAMPLER_MIN_SUPPORT', '4'))

# Color matcher, per color space
MATCHER_SETTINGS: Dict[str, Dict[str, float]] = {
    'rgb': {
        'snap_threshold': float(os.getenv('MATCHER_RGB_SNAP_THRESHOLD', '50')),
        'max_distance': float(os.getenv('MATCHER_RGB_MAX_DISTANCE', str(MAX_RGB_DISTANCE))),
        'min_confidence': float(os.getenv('MATCHER_RGB_MIN_CONFIDENCE', '0.3')),
    },
    'hsv': {
        'snap_threshold': float(os.getenv('MATCHER_HSV_SNAP_THRESHOLD', '30')),
        'max_distance': float(os.getenv('MATCHER_HSV_MAX_DISTANCE', str(MAX_HSV_DISTANCE))),
        'min_confidence': float(os.getenv('MATCHER_HSV_MIN_CONFIDENCE', '0.1')),
    },
}


def get_analysis_config() -> Dict:
    """
    Get analysis configuration dictionary.

    Returns:
        Dictionary with pipeline, locator, sampler and matcher parameters
    """
    return {
        'color_space': COLOR_SPACE,
        'timeout_seconds': ANALYSIS_TIMEOUT_SECONDS,
        'image_load_timeout': IMAGE_LOAD_TIMEOUT,
        'max_dimension': ANALYSIS_MAX_DIMENSION,
        'fallback_confidence_multiplier': FALLBACK_CONFIDENCE_MULTIPLIER,
        'locator': {
            'min_confidence': LOCATOR_MIN_CONFIDENCE,
            'min_window_score': LOCATOR_MIN_WINDOW_SCORE,
            'window_step': LOCATOR_WINDOW_STEP,
            'top_candidates': LOCATOR_TOP_CANDIDATES,
            'max_windows': LOCATOR_MAX_WINDOWS,
            'min_width_ratio': LOCATOR_MIN_WIDTH_RATIO,
            'max_width_ratio': LOCATOR_MAX_WIDTH_RATIO,
            'min_length_ratio': LOCATOR_MIN_LENGTH_RATIO,
            'min_aspect': LOCATOR_MIN_ASPECT,
            'max_aspect': LOCATOR_MAX_ASPECT,
            'peak_aspect': LOCATOR_PEAK_ASPECT,
        },
        'sampler': {
            'center_ratio': SAMPLER_CENTER_RATIO,
            'stride': SAMPLER_STRIDE,
            'bucket_size': SAMPLER_BUCKET_SIZE,
            'min_alpha': SAMPLER_MIN_ALPHA,
            'white_threshold': SAMPLER_WHITE_THRESHOLD,
            'black_threshold': SAMPLER_BLACK_THRESHOLD,
            'min_support': SAMPLER_MIN_SUPPORT,
        },
        'matcher': {space: dict(values) for space, values in MATCHER_SETTINGS.items()},
    }
