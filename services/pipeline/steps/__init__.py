"""
Pipeline step services.

Steps:
- StripLocator: Finds the strip and lays out its bands
- BandSegmenter: Computes per-pad sample regions
- RegionSampler: Extracts the dominant color of a region
"""

from services.pipeline.steps.band_segmentation import BandSegmenter
from services.pipeline.steps.color_extraction import RegionSampler, SampleResult
from services.pipeline.steps.strip_location import StripLocator

__all__ = [
    'BandSegmenter',
    'RegionSampler',
    'SampleResult',
    'StripLocator'
]
