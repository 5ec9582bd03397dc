"""
Service interfaces and type definitions for the strip analysis service.

This module defines the data structures passed between pipeline components:
pixel buffers, geometry, colors, and the per-analysis result types.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Literal, Optional, Tuple, TypedDict

import numpy as np

Status = Literal['low', 'ok', 'high']

METHOD_LOCAL = 'robust-strip-detection'
METHOD_REMOTE = 'ai-detection'
METHOD_FALLBACK = 'fallback-center-analysis'
METHOD_MANUAL = 'manual-override'


def _clamp_channel(value: float) -> int:
    return int(max(0, min(255, round(value))))


@dataclass(frozen=True)
class RGBColor:
    """RGB color, channels clamped to 0-255."""
    r: int
    g: int
    b: int

    def __post_init__(self):
        object.__setattr__(self, 'r', _clamp_channel(self.r))
        object.__setattr__(self, 'g', _clamp_channel(self.g))
        object.__setattr__(self, 'b', _clamp_channel(self.b))

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def to_dict(self) -> Dict[str, int]:
        return {'r': self.r, 'g': self.g, 'b': self.b}

    @classmethod
    def from_dict(cls, data: Dict) -> 'RGBColor':
        return cls(data['r'], data['g'], data['b'])


WHITE = RGBColor(255, 255, 255)


@dataclass(frozen=True)
class HSVColor:
    """HSV color: h in [0, 360), s and v in [0, 100]."""
    h: float
    s: float
    v: float

    def to_dict(self) -> Dict[str, float]:
        return {'h': self.h, 's': self.s, 'v': self.v}


@dataclass(frozen=True)
class Rect:
    """
    Rectangle in pixel-buffer coordinates.

    Coordinates may be fractional (band layouts are computed in floats);
    they are converted to integer pixel bounds only when sampling.
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if not (self.width > 0 and self.height > 0):
            raise ValueError(f'Rect must have positive size, got {self.width}x{self.height}')

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def pixel_bounds(self, buffer_width: int, buffer_height: int) -> Optional[Tuple[int, int, int, int]]:
        """
        Integer (left, top, right, bottom) bounds clipped to the buffer.

        Returns None when the rectangle lies entirely outside the buffer.
        """
        left = max(0, int(math.floor(self.x)))
        top = max(0, int(math.floor(self.y)))
        right = min(buffer_width, int(math.ceil(self.right)))
        bottom = min(buffer_height, int(math.ceil(self.bottom)))
        if left >= right or top >= bottom:
            return None
        return left, top, right, bottom

    def scaled(self, sx: float, sy: float) -> 'Rect':
        return Rect(self.x * sx, self.y * sy, self.width * sx, self.height * sy)

    def to_dict(self) -> Dict[str, float]:
        return {
            'x': round(self.x, 2),
            'y': round(self.y, 2),
            'width': round(self.width, 2),
            'height': round(self.height, 2),
        }


class PixelBuffer:
    """
    Immutable RGBA pixel grid.

    Wraps a read-only ``uint8`` array of shape ``(height, width, 4)``.
    """

    __slots__ = ('_pixels',)

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f'PixelBuffer expects an (H, W, 4) RGBA array, got shape {pixels.shape}')
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError('PixelBuffer cannot be empty')
        data = np.array(pixels, dtype=np.uint8, copy=True)
        data.setflags(write=False)
        self._pixels = data

    @classmethod
    def from_rgb(cls, rgb: np.ndarray, alpha: int = 255) -> 'PixelBuffer':
        """Build a buffer from an (H, W, 3) RGB array with constant alpha."""
        h, w = rgb.shape[:2]
        rgba = np.empty((h, w, 4), dtype=np.uint8)
        rgba[..., :3] = rgb
        rgba[..., 3] = alpha
        return cls(rgba)

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    @property
    def width(self) -> int:
        return int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self._pixels.shape[0])

    @property
    def rgb(self) -> np.ndarray:
        return self._pixels[..., :3]

    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def view(self, rect: Rect) -> Optional[np.ndarray]:
        """Read-only view of the pixels inside ``rect``; None if fully outside."""
        clipped = rect.pixel_bounds(self.width, self.height)
        if clipped is None:
            return None
        left, top, right, bottom = clipped
        return self._pixels[top:bottom, left:right]

    def __repr__(self):
        return f'PixelBuffer({self.width}x{self.height})'


@dataclass(frozen=True)
class StripCandidate:
    """Located strip with its band sub-regions."""
    bounds: Rect
    is_vertical: bool
    confidence: float
    band_regions: Tuple[Rect, ...] = ()
    method: str = METHOD_LOCAL

    def to_dict(self) -> Dict:
        return {
            'bounds': self.bounds.to_dict(),
            'orientation': 'vertical' if self.is_vertical else 'horizontal',
            'confidence': round(self.confidence, 3),
            'method': self.method,
        }


@dataclass(frozen=True)
class BandSample:
    """Dominant color sampled from one band."""
    parameter_key: str
    region: Rect
    dominant_color: RGBColor
    sample_confidence: float

    def to_dict(self) -> Dict:
        return {
            'parameter_key': self.parameter_key,
            'region': self.region.to_dict(),
            'dominant_color': self.dominant_color.to_dict(),
            'sample_confidence': self.sample_confidence,
        }


@dataclass(frozen=True)
class ParameterReading:
    """One chemical reading, the externally visible unit of output."""
    parameter_key: str
    value: float
    status: Status
    unit: str
    confidence: float
    detected_color: RGBColor
    method: str

    def with_override(self, value: float, status: Status) -> 'ParameterReading':
        """Replace value/status wholesale, as a manual override does."""
        return replace(self, value=value, status=status, confidence=1.0, method=METHOD_MANUAL)

    def to_dict(self) -> Dict:
        return {
            'parameter_key': self.parameter_key,
            'value': self.value,
            'status': self.status,
            'unit': self.unit,
            'confidence': self.confidence,
            'detected_color': self.detected_color.to_dict(),
            'method': self.method,
        }


@dataclass
class AnalysisResult:
    """Complete result of one analysis call."""
    readings: Dict[str, ParameterReading]
    strip_type: str
    method: str
    color_space: str
    strip: Optional[StripCandidate] = None
    bands: List[BandSample] = field(default_factory=list)
    stages: List[str] = field(default_factory=list)
    processing_time_ms: int = 0

    def to_dict(self) -> Dict:
        return {
            'readings': {key: reading.to_dict() for key, reading in self.readings.items()},
            'strip_type': self.strip_type,
            'method': self.method,
            'color_space': self.color_space,
            'strip': self.strip.to_dict() if self.strip else None,
            'bands': [band.to_dict() for band in self.bands],
            'stages': list(self.stages),
            'processing_time_ms': self.processing_time_ms,
        }


class RemoteDetectionResponse(TypedDict, total=False):
    """Response contract of the optional remote detection service."""
    stripDetected: bool
    stripBounds: Dict[str, float]
    processingMethod: Literal['ai', 'fallback', 'error']
