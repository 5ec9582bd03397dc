"""
Adapter functions to convert remote detector outputs to StripCandidate format.
"""

import logging
from typing import Dict, List, Optional

from services.errors import RemoteDetectionUnavailable
from services.interfaces import METHOD_REMOTE, Rect, RemoteDetectionResponse, StripCandidate

logger = logging.getLogger(__name__)


def bounds_to_candidate(
    bounds: Dict,
    confidence: float,
    image_width: int,
    image_height: int
) -> Optional[StripCandidate]:
    """
    Convert an {x, y, width, height} box to a StripCandidate clipped to the image.

    Args:
        bounds: Box dictionary
        confidence: Confidence to assign
        image_width: Width of the image the box refers to
        image_height: Height of the image the box refers to

    Returns:
        StripCandidate, or None if the box is malformed, degenerate or outside the image
    """
    if not isinstance(bounds, dict):
        logger.warning(f'Malformed strip bounds from remote detector: {bounds!r}')
        return None
    try:
        x = float(bounds.get('x', 0) or 0)
        y = float(bounds.get('y', 0) or 0)
        width = float(bounds.get('width', 0) or 0)
        height = float(bounds.get('height', 0) or 0)
    except (TypeError, ValueError):
        logger.warning(f'Malformed strip bounds from remote detector: {bounds}')
        return None

    left = max(0.0, x)
    top = max(0.0, y)
    right = min(float(image_width), x + width)
    bottom = min(float(image_height), y + height)
    if not (right - left > 0 and bottom - top > 0):
        logger.warning(f'Remote strip bounds {bounds} fall outside {image_width}x{image_height} image')
        return None

    rect = Rect(left, top, right - left, bottom - top)
    return StripCandidate(
        bounds=rect,
        is_vertical=rect.height >= rect.width,
        confidence=confidence,
        method=METHOD_REMOTE
    )


def contract_to_candidate(
    response: RemoteDetectionResponse,
    confidence: float,
    image_width: int,
    image_height: int
) -> Optional[StripCandidate]:
    """
    Convert a {stripDetected, stripBounds, processingMethod} response.

    Raises:
        RemoteDetectionUnavailable: If the service reported an error or the
            bounds are not a mapping
    """
    if response.get('processingMethod') == 'error':
        raise RemoteDetectionUnavailable('Remote detection service reported an error')

    if not response.get('stripDetected') or not response.get('stripBounds'):
        return None

    bounds = response['stripBounds']
    if not isinstance(bounds, dict):
        raise RemoteDetectionUnavailable(f'Malformed stripBounds from remote detector: {bounds!r}')

    return bounds_to_candidate(bounds, confidence, image_width, image_height)


def detr_objects_to_candidate(
    objects: List[Dict],
    min_score: float,
    confidence: float,
    image_width: int,
    image_height: int
) -> Optional[StripCandidate]:
    """
    Convert raw object-detection output ([{score, label, box: {xmin, ymin, xmax, ymax}}]).

    The first object above ``min_score`` with a box is taken as the strip.
    Objects with a non-numeric score or a non-mapping box are skipped.
    """
    for obj in objects:
        if not isinstance(obj, dict) or not isinstance(obj.get('box'), dict):
            continue
        try:
            score = float(obj.get('score', 0) or 0)
        except (TypeError, ValueError):
            logger.warning(f'Skipping remote object with invalid score: {obj.get("score")!r}')
            continue
        if score <= min_score:
            continue

        box = obj['box']
        try:
            xmin = float(box.get('xmin') or 0)
            ymin = float(box.get('ymin') or 0)
            xmax = float(box.get('xmax') or 100)
            ymax = float(box.get('ymax') or 100)
        except (TypeError, ValueError):
            logger.warning(f'Skipping remote object with invalid box: {box!r}')
            continue

        bounds = {'x': xmin, 'y': ymin, 'width': xmax - xmin, 'height': ymax - ymin}
        logger.debug(f'Remote object {obj.get("label")} score={score} box={box}')
        return bounds_to_candidate(bounds, confidence, image_width, image_height)

    return None
