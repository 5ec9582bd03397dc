"""
Base class for all strip detection methods.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from services.interfaces import PixelBuffer, StripCandidate

logger = logging.getLogger(__name__)


class BaseStripDetector(ABC):
    """Base class for all strip detection methods."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def detect(self, buffer: PixelBuffer, band_count: int = 6) -> Optional[StripCandidate]:
        """
        Detect test strip in image.

        Args:
            buffer: Input pixels
            band_count: Number of pads expected on the strip

        Returns:
            Best StripCandidate, or None if no confident strip was found
        """
        pass

    def get_method_name(self) -> str:
        """
        Return method name for logging/identification.

        Returns:
            Method name (e.g., 'edge_window', 'remote')
        """
        name = self.__class__.__name__.replace('Detector', '')
        return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()
