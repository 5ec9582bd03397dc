"""
Analysis Context - Shared state container for the analysis pipeline.

Holds the working image, stage history and intermediate results as an
analysis progresses, and enforces the wall-clock deadline at every stage
transition.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from services.errors import AnalysisTimeout
from services.interfaces import BandSample, PixelBuffer, ParameterReading, Rect, StripCandidate
from utils.coordinate_transform import rect_to_original


class AnalysisStage(str, Enum):
    IDLE = 'idle'
    LOCATING = 'locating'
    SEGMENTING = 'segmenting'
    FALLBACK_SAMPLING = 'fallback_sampling'
    SAMPLING = 'sampling'
    MATCHING = 'matching'
    DONE = 'done'


# Allowed transitions; anything else is a programming error
TRANSITIONS: Dict[AnalysisStage, tuple] = {
    AnalysisStage.IDLE: (AnalysisStage.LOCATING,),
    AnalysisStage.LOCATING: (AnalysisStage.SEGMENTING, AnalysisStage.FALLBACK_SAMPLING),
    AnalysisStage.SEGMENTING: (AnalysisStage.SAMPLING,),
    AnalysisStage.FALLBACK_SAMPLING: (AnalysisStage.SAMPLING,),
    AnalysisStage.SAMPLING: (AnalysisStage.MATCHING,),
    AnalysisStage.MATCHING: (AnalysisStage.DONE,),
    AnalysisStage.DONE: (),
}


@dataclass
class AnalysisContext:
    """
    Holds all state during one analysis call.

    The context is created per call and never shared, so concurrent analyses
    need no coordination.
    """
    # Input
    original: PixelBuffer
    working: PixelBuffer
    parameter_keys: List[str]
    timeout: Optional[float] = None

    # Working image -> original image scale factors
    scale_x: float = 1.0
    scale_y: float = 1.0

    # State
    stage: AnalysisStage = AnalysisStage.IDLE
    stages: List[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)

    # Results (accumulated)
    strip: Optional[StripCandidate] = None
    method: Optional[str] = None
    confidence_multiplier: float = 1.0
    regions: List[Rect] = field(default_factory=list)
    samples: List[BandSample] = field(default_factory=list)
    readings: Dict[str, ParameterReading] = field(default_factory=dict)

    def __post_init__(self):
        self.stages.append(self.stage.value)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed * 1000)

    def check_deadline(self) -> None:
        """Raise AnalysisTimeout if the wall-clock budget is spent."""
        if self.timeout is not None and self.elapsed >= self.timeout:
            raise AnalysisTimeout(
                f'Analysis timeout after {self.elapsed:.2f}s in stage {self.stage.value} - '
                'please try with a smaller or clearer image',
                stage=self.stage.value
            )

    def advance(self, stage: AnalysisStage) -> None:
        """Move to ``stage`` after checking the deadline."""
        if stage not in TRANSITIONS[self.stage]:
            raise RuntimeError(f'Invalid stage transition {self.stage.value} -> {stage.value}')
        self.check_deadline()
        self.stage = stage
        self.stages.append(stage.value)

    def to_original(self, rect: Rect) -> Rect:
        """Map a working-image rectangle to original image coordinates."""
        return rect_to_original(rect, self.scale_x, self.scale_y)
