"""
Tests for strip detection: the edge-window detector and the strip locator.
"""

import logging

import numpy as np
import pytest

from config.analysis_config import get_analysis_config
from services.detection import EdgeWindowDetector
from services.interfaces import METHOD_LOCAL, Rect
from services.pipeline.steps import StripLocator

from conftest import STRIP_BOUNDS, make_strip_buffer, make_uniform_buffer


def locator_config(**overrides):
    config = dict(get_analysis_config()['locator'])
    config.update(overrides)
    return config


class TestEdgeWindowDetector:
    """Test cases for EdgeWindowDetector."""

    def setup_method(self):
        """Set up test fixtures."""
        self.detector = EdgeWindowDetector(locator_config())

    def test_method_name(self):
        assert self.detector.get_method_name() == 'edge_window'

    def test_finds_exact_strip_window(self, strip_buffer):
        candidate = self.detector.detect(strip_buffer)
        assert candidate is not None
        assert candidate.bounds == Rect(*STRIP_BOUNDS)
        assert candidate.is_vertical is True
        assert candidate.method == METHOD_LOCAL
        assert candidate.confidence == pytest.approx(1.0)

    def test_finds_horizontal_strip(self, horizontal_strip_buffer):
        candidate = self.detector.detect(horizontal_strip_buffer)
        assert candidate is not None
        assert candidate.bounds == Rect(80, 120, 240, 60)
        assert candidate.is_vertical is False

    def test_windows_sorted_and_capped(self, strip_buffer):
        windows = self.detector.find_windows(strip_buffer)
        assert 0 < len(windows) <= self.detector.config['top_candidates']
        scores = [window.confidence for window in windows]
        assert scores == sorted(scores, reverse=True)
        assert all(score > self.detector.config['min_window_score'] for score in scores)

    def test_deterministic(self, strip_buffer):
        assert self.detector.find_windows(strip_buffer) == self.detector.find_windows(strip_buffer)

    def test_featureless_image_has_no_windows(self, uniform_buffer):
        assert self.detector.find_windows(uniform_buffer) == []
        assert self.detector.detect(uniform_buffer) is None

    def test_edge_map(self, strip_buffer, uniform_buffer):
        assert not np.any(self.detector.edge_map(uniform_buffer))
        edges = self.detector.edge_map(strip_buffer)
        assert edges.shape == (strip_buffer.height, strip_buffer.width)
        assert edges.max() == 255

    def test_aspect_score(self):
        assert self.detector.aspect_score(4.0) == 1.0
        assert self.detector.aspect_score(2.0) == pytest.approx(0.75)
        assert self.detector.aspect_score(8.0) == pytest.approx(0.5)

    def test_window_budget_exhausted(self, strip_buffer, caplog):
        detector = EdgeWindowDetector(locator_config(max_windows=10))
        with caplog.at_level(logging.WARNING):
            assert detector.find_windows(strip_buffer) == []
        assert 'budget' in caplog.text


class TestStripLocator:
    """Test cases for StripLocator."""

    def setup_method(self):
        self.locator = StripLocator(config=locator_config())

    def test_locates_strip_with_bands(self, strip_buffer):
        strip = self.locator.locate(strip_buffer, band_count=6)
        assert strip is not None
        assert strip.bounds == Rect(*STRIP_BOUNDS)
        assert strip.is_vertical is True
        assert strip.confidence > 0.9
        assert len(strip.band_regions) == 6
        ys = [band.y for band in strip.band_regions]
        assert ys == sorted(ys)

    def test_band_count_follows_request(self, strip_buffer):
        strip = self.locator.locate(strip_buffer, band_count=3)
        assert strip is not None
        assert len(strip.band_regions) == 3

    def test_locates_horizontal_strip(self, horizontal_strip_buffer):
        strip = self.locator.locate(horizontal_strip_buffer)
        assert strip is not None
        assert strip.is_vertical is False
        xs = [band.x for band in strip.band_regions]
        assert xs == sorted(xs)

    def test_nothing_to_locate(self, uniform_buffer):
        assert self.locator.locate(uniform_buffer) is None

    def test_plain_rectangle_has_no_variation(self):
        buffer = make_strip_buffer(pad_colors=[])
        strip = self.locator.locate(buffer)
        assert strip is not None
        assert strip.confidence == pytest.approx(0.5)

    def test_below_minimum_confidence(self):
        locator = StripLocator(config=locator_config(min_confidence=0.9))
        assert locator.locate(make_strip_buffer(pad_colors=[])) is None

    def test_color_variation(self, strip_buffer):
        bands = [Rect(0, 0, 10, 10), Rect(0, 20, 10, 10)]
        assert self.locator.color_variation(make_uniform_buffer((40, 40, 40)), bands) == 0.0
        assert self.locator.color_variation(strip_buffer, bands[:1]) == 0.0
        strip_bands = self.locator.segmenter.segment(Rect(*STRIP_BOUNDS), True, 6)
        assert 0.5 < self.locator.color_variation(strip_buffer, strip_bands) <= 1.0
