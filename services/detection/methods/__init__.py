"""
Detection methods for strip detection.
"""

from .base_detector import BaseStripDetector
from .edge_window_detector import EdgeWindowDetector

__all__ = [
    'BaseStripDetector',
    'EdgeWindowDetector',
]
