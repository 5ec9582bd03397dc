"""
Remote strip detection configuration.

The remote detector is optional; it is enabled only when
REMOTE_DETECTION_URL is set.
"""

import os
from typing import Dict, Optional

# Endpoint accepting image bytes (detection contract or raw DETR output)
REMOTE_DETECTION_URL: Optional[str] = os.getenv('REMOTE_DETECTION_URL') or None

# Bearer token sent with each request (e.g. Hugging Face API key)
REMOTE_DETECTION_TOKEN: Optional[str] = (
    os.getenv('REMOTE_DETECTION_TOKEN') or os.getenv('HUGGINGFACE_API_KEY') or None
)

# Upload style: 'raw' posts image bytes (Hugging Face inference),
# 'multipart' posts an 'image' form field (detection contract endpoints)
REMOTE_DETECTION_UPLOAD: str = os.getenv('REMOTE_DETECTION_UPLOAD', 'raw').lower()

# Request timeout in seconds
REMOTE_DETECTION_TIMEOUT: float = float(os.getenv('REMOTE_DETECTION_TIMEOUT', '3.0'))

# Minimum object score accepted from raw DETR responses
REMOTE_MIN_OBJECT_SCORE: float = float(os.getenv('REMOTE_MIN_OBJECT_SCORE', '0.3'))

# Confidence assigned to a remote bounding box (the contract carries none)
REMOTE_STRIP_CONFIDENCE: float = float(os.getenv('REMOTE_STRIP_CONFIDENCE', '0.9'))


def get_remote_detection_config() -> Dict:
    """
    Get remote detection configuration dictionary.

    Returns:
        Dictionary with remote detection parameters
    """
    return {
        'url': REMOTE_DETECTION_URL,
        'token': REMOTE_DETECTION_TOKEN,
        'upload': REMOTE_DETECTION_UPLOAD,
        'timeout': REMOTE_DETECTION_TIMEOUT,
        'min_object_score': REMOTE_MIN_OBJECT_SCORE,
        'strip_confidence': REMOTE_STRIP_CONFIDENCE,
    }
