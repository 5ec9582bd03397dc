"""
Image loading utilities for the strip analysis service.
Supports loading images from local paths, HTTP(S) URLs (e.g. S3 signed URLs)
and raw encoded bytes, and converting them to RGBA pixel buffers.
"""

import asyncio
import logging
from typing import Optional, Union
from urllib.parse import urlparse

import cv2
import numpy as np
import requests

from config.analysis_config import IMAGE_LOAD_TIMEOUT
from services.errors import ImageLoadError
from services.interfaces import PixelBuffer

logger = logging.getLogger(__name__)

ImageSource = Union[str, bytes, bytearray, np.ndarray, PixelBuffer]

MIN_IMAGE_SIDE = 10


def is_url(source: str) -> bool:
    return urlparse(source).scheme in ('http', 'https')


def load_image(image_path: str, timeout: Optional[float] = None) -> np.ndarray:
    """
    Load image from local path or URL (S3 signed URL).

    Args:
        image_path: Path to image (local file path or HTTP/HTTPS URL)
        timeout: Request timeout in seconds for URL downloads

    Returns:
        OpenCV image array (BGR, BGRA or grayscale, alpha preserved)

    Raises:
        ImageLoadError: If the path is invalid or the image cannot be fetched or decoded
    """
    if not image_path:
        raise ImageLoadError('image_path cannot be empty')

    timeout = IMAGE_LOAD_TIMEOUT if timeout is None else timeout

    if is_url(image_path):
        logger.info(f'Loading image from URL: {image_path}')
        try:
            response = requests.get(image_path, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f'Failed to download image from URL: {e}')
            raise ImageLoadError(f'Failed to load image from URL: {str(e)}') from e
        return decode_image(response.content, image_path)

    logger.info(f'Loading image from local path: {image_path}')
    image = cv2.imread(image_path, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ImageLoadError(f'Failed to decode image: {image_path}')
    return _validate(image, image_path)


def decode_image(data: bytes, name: str = 'bytes') -> np.ndarray:
    """
    Decode encoded image bytes (PNG, JPEG, ...) with alpha preserved.

    Raises:
        ImageLoadError: If the bytes are empty or not a decodable image
    """
    if not data:
        raise ImageLoadError(f'Image is empty: {name}')
    image_array = np.frombuffer(bytes(data), np.uint8)
    image = cv2.imdecode(image_array, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ImageLoadError(f'Failed to decode image: {name}')
    return _validate(image, name)


def to_pixel_buffer(image: np.ndarray) -> PixelBuffer:
    """
    Convert an OpenCV image (BGR, BGRA or grayscale) to an RGBA PixelBuffer.

    16-bit images are scaled down to 8 bits.
    """
    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    elif image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2:
        rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 1:
        rgba = cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 3:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    elif image.shape[2] == 4:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    else:
        raise ImageLoadError(f'Unsupported channel count: {image.shape[2]}')
    return PixelBuffer(rgba)


def load_pixel_buffer(source: ImageSource, timeout: Optional[float] = None) -> PixelBuffer:
    """
    Load a PixelBuffer from a path, URL, encoded bytes or decoded array.

    Args:
        source: Local path, HTTP(S) URL, encoded bytes, OpenCV array or PixelBuffer
        timeout: Request timeout in seconds for URL downloads

    Returns:
        RGBA PixelBuffer

    Raises:
        ImageLoadError: If the source cannot be loaded
    """
    if isinstance(source, PixelBuffer):
        return source
    if isinstance(source, np.ndarray):
        return to_pixel_buffer(_validate(source, 'array'))
    if isinstance(source, (bytes, bytearray)):
        return to_pixel_buffer(decode_image(source))
    if isinstance(source, str):
        return to_pixel_buffer(load_image(source, timeout=timeout))
    raise ImageLoadError(f'Unsupported image source type: {type(source).__name__}')


async def load_pixel_buffer_async(source: ImageSource, timeout: Optional[float] = None) -> PixelBuffer:
    """Awaitable load_pixel_buffer; file and network IO run in a worker thread."""
    return await asyncio.to_thread(load_pixel_buffer, source, timeout)


def validate_image_format(image_path: str) -> bool:
    """
    Validate that image path has a supported format.

    Args:
        image_path: Path to image file

    Returns:
        True if format is supported, False otherwise
    """
    supported_formats = ('.jpg', '.jpeg', '.png', '.webp', '.bmp')
    return image_path.lower().endswith(supported_formats)


def get_image_info(buffer: PixelBuffer) -> dict:
    """
    Get basic information about a pixel buffer.

    Returns:
        Dictionary with width, height and whether any pixel is transparent
    """
    return {
        'width': buffer.width,
        'height': buffer.height,
        'has_transparency': bool((buffer.pixels[..., 3] < 255).any()),
    }


def _validate(image: np.ndarray, name: str) -> np.ndarray:
    if image.size == 0:
        raise ImageLoadError(f'Image is empty: {name}')
    height, width = image.shape[:2]
    if height < MIN_IMAGE_SIDE or width < MIN_IMAGE_SIDE:
        raise ImageLoadError(f'Image too small: {width}x{height} pixels')
    logger.debug(f'Successfully loaded image {name}: {width}x{height} pixels')
    return image
