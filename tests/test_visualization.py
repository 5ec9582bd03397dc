"""
Tests for result visualization.
"""

import numpy as np

from services.pipeline import AnalysisPipeline
from services.utils.color_matching import ColorSpaceStrategy
from utils.detection_visualization import buffer_to_bgr, create_final_visualization


class TestVisualization:
    """Test cases for annotated result images."""

    def setup_method(self):
        self.pipeline = AnalysisPipeline(strategy=ColorSpaceStrategy.RGB, use_remote=False)

    def test_buffer_to_bgr(self, strip_buffer):
        bgr = buffer_to_bgr(strip_buffer)
        assert bgr.shape == (strip_buffer.height, strip_buffer.width, 3)
        # ph pad (255, 220, 50) stored as BGR
        pad_row = int(round(80 + 2 * 240 / 7))
        assert tuple(bgr[pad_row, 150]) == (50, 220, 255)

    def test_final_visualization_draws_annotations(self, strip_buffer):
        result = self.pipeline.analyze(strip_buffer)
        vis = create_final_visualization(strip_buffer, result)
        assert vis.shape == (strip_buffer.height, strip_buffer.width, 3)
        assert not np.array_equal(vis, buffer_to_bgr(strip_buffer))

    def test_fallback_visualization(self, uniform_buffer):
        result = self.pipeline.analyze(uniform_buffer)
        vis = create_final_visualization(uniform_buffer, result)
        assert vis.shape == (uniform_buffer.height, uniform_buffer.width, 3)
