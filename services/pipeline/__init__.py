"""
Pipeline services for test strip analysis.

Main orchestrator: AnalysisPipeline
Pipeline steps: StripLocator, BandSegmenter, RegionSampler
"""

from services.pipeline.context import AnalysisContext, AnalysisStage
from services.pipeline.pipeline import AnalysisPipeline, combine_confidence, parameter_keys_for

__all__ = [
    'AnalysisPipeline',
    'AnalysisContext',
    'AnalysisStage',
    'combine_confidence',
    'parameter_keys_for'
]
