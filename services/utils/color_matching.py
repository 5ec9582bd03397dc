"""
Color matching for the strip analysis service.
Maps an extracted pad color to a calibrated value, status and confidence.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from config.analysis_config import get_analysis_config
from services.calibration import CalibrationEntry, CalibrationTable, get_calibration_table
from services.interfaces import RGBColor
from utils.color_conversion import hsv_distance, rgb_distance, rgb_to_hsv

logger = logging.getLogger(__name__)


class ColorSpaceStrategy(str, Enum):
    """Comparison space used by the matcher."""
    RGB = 'rgb'
    HSV = 'hsv'


@dataclass(frozen=True)
class MatchResult:
    """Calibrated reading for one color."""
    value: float
    status: str
    confidence: float
    distance: float


@dataclass(frozen=True)
class _RankedEntry:
    entry: CalibrationEntry
    distance: float


class ColorMatcher:
    """
    Match colors against a calibration table.

    Close matches snap to the closest entry's midpoint; otherwise the value is
    interpolated between the two closest entries, each weighted by the other's
    distance so the closer entry dominates. Status is always derived from the
    final value.
    """

    def __init__(
        self,
        calibration: Optional[CalibrationTable] = None,
        strategy: ColorSpaceStrategy = ColorSpaceStrategy.RGB,
        settings: Optional[Dict[str, float]] = None
    ):
        """
        Initialize color matcher.

        Args:
            calibration: Calibration table (defaults to get_calibration_table())
            strategy: Comparison space (RGB or HSV)
            settings: Optional snap_threshold/max_distance/min_confidence overrides
        """
        self.calibration = calibration or get_calibration_table()
        self.strategy = ColorSpaceStrategy(strategy)
        self.settings = settings or get_analysis_config()['matcher'][self.strategy.value]
        self.logger = logging.getLogger(__name__)

    def match(self, color: RGBColor, parameter_key: str) -> MatchResult:
        """
        Map ``color`` to a value for ``parameter_key``.

        Args:
            color: Extracted pad color
            parameter_key: Calibration parameter (e.g. 'ph')

        Returns:
            MatchResult with value (1 decimal), status and confidence (2 decimals)

        Raises:
            InvalidParameterKey: If the calibration has no such parameter
        """
        ranked = self._rank(color, parameter_key)
        closest = ranked[0]
        second = ranked[1] if len(ranked) > 1 else None

        value = closest.entry.midpoint
        if second is not None and closest.distance >= self.settings['snap_threshold']:
            total = closest.distance + second.distance
            if total > 0:
                weight_closest = second.distance / total
                weight_second = closest.distance / total
                value = closest.entry.midpoint * weight_closest + second.entry.midpoint * weight_second

        if not math.isfinite(value) or value < 0:
            value = closest.entry.midpoint

        status = self.calibration.status_for_value(parameter_key, value)
        if status != closest.entry.status:
            self.logger.debug(
                f'{parameter_key}: status {closest.entry.status} of closest entry '
                f'replaced by {status} for value {value:.2f}'
            )

        confidence = 1.0 - closest.distance / self.settings['max_distance']
        confidence = max(self.settings['min_confidence'], min(1.0, confidence))

        return MatchResult(
            value=round(value, 1),
            status=status,
            confidence=round(confidence, 2),
            distance=closest.distance
        )

    def distance(self, a: RGBColor, b: RGBColor) -> float:
        """Distance between two colors in the matcher's comparison space."""
        if self.strategy is ColorSpaceStrategy.HSV:
            return hsv_distance(rgb_to_hsv(a), rgb_to_hsv(b))
        return rgb_distance(a, b)

    def _rank(self, color: RGBColor, parameter_key: str) -> List[_RankedEntry]:
        entries = self.calibration.entries(parameter_key)
        ranked = [_RankedEntry(entry, self.distance(color, entry.reference_color)) for entry in entries]
        ranked.sort(key=lambda item: item.distance)
        return ranked
