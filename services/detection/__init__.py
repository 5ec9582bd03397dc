"""
Detection services and utilities.

Detectors:
- EdgeWindowDetector: local sliding-window strip locator
- RemoteStripDetector: optional remote object-detection service

Utilities:
- detector_adapters: Convert remote responses to StripCandidate
- methods: Base detection methods
"""

from services.detection.methods import BaseStripDetector, EdgeWindowDetector
from services.detection.remote_detector import RemoteStripDetector

__all__ = [
    'BaseStripDetector',
    'EdgeWindowDetector',
    'RemoteStripDetector'
]
