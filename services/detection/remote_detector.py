"""
Remote strip detection client.
Posts the working image to an optional object-detection service and converts
the returned bounding box into a StripCandidate.
"""

import logging
from typing import Dict, Optional

import cv2
import requests

from config.remote_detection_config import get_remote_detection_config
from services.errors import RemoteDetectionUnavailable
from services.interfaces import PixelBuffer, StripCandidate

from .detector_adapters import contract_to_candidate, detr_objects_to_candidate
from .methods.base_detector import BaseStripDetector

logger = logging.getLogger(__name__)


class RemoteStripDetector(BaseStripDetector):
    """
    Client for a remote strip detection endpoint.

    Accepts either response shape:
    - detection contract: {"stripDetected", "stripBounds", "processingMethod"}
    - raw object detection output: [{"score", "label", "box"}]
    """

    def __init__(self, config: Optional[Dict] = None, session: Optional[requests.Session] = None):
        """
        Initialize remote detector.

        Args:
            config: Optional config (defaults to get_remote_detection_config())
            session: Optional requests session (connection reuse)
        """
        super().__init__()
        self.config = config or get_remote_detection_config()
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.config.get('url'))

    def detect(self, buffer: PixelBuffer, band_count: int = 6) -> Optional[StripCandidate]:
        """
        Ask the remote service for the strip location.

        Args:
            buffer: Working image
            band_count: Unused; bands are segmented by the pipeline

        Returns:
            StripCandidate in ``buffer`` coordinates, or None if the service saw no strip

        Raises:
            RemoteDetectionUnavailable: If the service is not configured or the call failed
        """
        if not self.is_configured:
            raise RemoteDetectionUnavailable('Remote detection URL not configured')

        payload = self._encode(buffer)
        headers = {}
        if self.config.get('token'):
            headers['Authorization'] = f'Bearer {self.config["token"]}'

        url = self.config['url']
        try:
            if self.config.get('upload') == 'multipart':
                response = self.session.post(
                    url,
                    files={'image': ('strip.png', payload, 'image/png')},
                    headers=headers,
                    timeout=self.config['timeout']
                )
            else:
                headers['Content-Type'] = 'image/png'
                response = self.session.post(
                    url,
                    data=payload,
                    headers=headers,
                    timeout=self.config['timeout']
                )
            response.raise_for_status()
            result = response.json()
        except requests.RequestException as e:
            self.logger.warning(f'Remote detection request failed: {e}')
            raise RemoteDetectionUnavailable(f'Remote detection request failed: {e}') from e
        except ValueError as e:
            self.logger.warning(f'Remote detection returned invalid JSON: {e}')
            raise RemoteDetectionUnavailable('Remote detection returned invalid JSON') from e

        candidate = self._to_candidate(result, buffer)

        if candidate is None:
            self.logger.info('Remote detection found no strip')
        else:
            self.logger.info(f'Remote detection found strip at {candidate.bounds.to_dict()}')
        return candidate

    def _to_candidate(self, result, buffer: PixelBuffer) -> Optional[StripCandidate]:
        """
        Convert a decoded response body to a candidate.

        Raises:
            RemoteDetectionUnavailable: If the body does not have a supported shape
        """
        try:
            if isinstance(result, list):
                return detr_objects_to_candidate(
                    result,
                    min_score=self.config['min_object_score'],
                    confidence=self.config['strip_confidence'],
                    image_width=buffer.width,
                    image_height=buffer.height
                )
            if isinstance(result, dict):
                return contract_to_candidate(
                    result,
                    confidence=self.config['strip_confidence'],
                    image_width=buffer.width,
                    image_height=buffer.height
                )
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            self.logger.warning(f'Malformed remote detection response: {e}')
            raise RemoteDetectionUnavailable(f'Malformed remote detection response: {e}') from e
        raise RemoteDetectionUnavailable(f'Unexpected remote response type: {type(result).__name__}')

    def _encode(self, buffer: PixelBuffer) -> bytes:
        bgra = cv2.cvtColor(buffer.pixels, cv2.COLOR_RGBA2BGRA)
        success, encoded = cv2.imencode('.png', bgra)
        if not success:
            raise RemoteDetectionUnavailable('Failed to encode image for remote detection')
        return encoded.tobytes()
