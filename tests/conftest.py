"""
Shared fixtures: synthetic strip photos built with numpy.

The default strip is a 60x240 gray body at (120, 80) on a white 300x400
background, with six 48x20 pads centered on the band positions.
"""

import cv2
import numpy as np
import pytest
import requests

from services.interfaces import PixelBuffer

STRIP_BOUNDS = (120, 80, 60, 240)  # x, y, width, height
STRIP_BODY = (90, 90, 90)
BACKGROUND = (255, 255, 255)
IMAGE_SIZE = (300, 400)  # width, height

# Reference colors of the in-range ("ok") entry for each parameter
OK_PAD_COLORS = {
    'freeChlorine': (255, 240, 150),
    'ph': (255, 220, 50),
    'totalAlkalinity': (200, 200, 100),
    'totalChlorine': (255, 220, 200),
    'totalHardness': (200, 160, 220),
    'cyanuricAcid': (255, 200, 140),
}

OK_VALUES = {
    'freeChlorine': 2.0,
    'ph': 7.0,
    'totalAlkalinity': 100.0,
    'totalChlorine': 2.0,
    'totalHardness': 300.0,
    'cyanuricAcid': 40.0,
}


# Remote detector bodies with a valid envelope but unusable fields
MALFORMED_REMOTE_PAYLOADS = [
    [{'score': 'high', 'label': 'strip', 'box': {'xmin': 120, 'ymin': 80, 'xmax': 180, 'ymax': 320}}],
    [{'score': 0.9, 'label': 'strip', 'box': [120, 80, 180, 320]}],
    [{'score': 0.9, 'label': 'strip', 'box': {'xmin': 'left', 'ymin': 0, 'xmax': 50, 'ymax': 200}}],
    {'stripDetected': True, 'stripBounds': [120, 80, 60, 240], 'processingMethod': 'ai'},
    {'stripDetected': True, 'stripBounds': {'x': 'a', 'width': 60}, 'processingMethod': 'ai'},
]


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Server Error')

    def json(self):
        if self.invalid_json:
            raise ValueError('Expecting value')
        return self.payload


class FakeSession:
    """Records posts and replays a canned response or error."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def remote_config(**overrides):
    config = {
        'url': 'https://detector.example.com/detect',
        'token': 'secret',
        'upload': 'raw',
        'timeout': 3.0,
        'min_object_score': 0.3,
        'strip_confidence': 0.9,
    }
    config.update(overrides)
    return config


def make_strip_rgb(pad_colors, horizontal=False, body=STRIP_BODY, scale=1):
    """RGB array of a strip photo with the given pad colors (top to bottom)."""
    width, height = IMAGE_SIZE
    x, y, strip_w, strip_h = STRIP_BOUNDS

    rgb = np.empty((height, width, 3), dtype=np.uint8)
    rgb[:] = BACKGROUND
    rgb[y:y + strip_h, x:x + strip_w] = body

    slice_length = strip_h / (len(pad_colors) + 1)
    for i, color in enumerate(pad_colors):
        center = y + (i + 1) * slice_length
        top = int(round(center - 10))
        bottom = int(round(center + 10))
        rgb[top:bottom, x + 6:x + strip_w - 6] = color

    if horizontal:
        rgb = np.ascontiguousarray(np.transpose(rgb, (1, 0, 2)))
    if scale != 1:
        rgb = np.repeat(np.repeat(rgb, scale, axis=0), scale, axis=1)
    return rgb


def make_strip_buffer(pad_colors=None, horizontal=False, body=STRIP_BODY, scale=1):
    if pad_colors is None:
        pad_colors = list(OK_PAD_COLORS.values())
    return PixelBuffer.from_rgb(make_strip_rgb(pad_colors, horizontal, body, scale))


def make_uniform_buffer(color, width=300, height=400):
    rgb = np.empty((height, width, 3), dtype=np.uint8)
    rgb[:] = color
    return PixelBuffer.from_rgb(rgb)


@pytest.fixture
def strip_buffer():
    """Vertical 6-pad strip with every pad at its in-range reference color."""
    return make_strip_buffer()


@pytest.fixture
def horizontal_strip_buffer():
    return make_strip_buffer(horizontal=True)


@pytest.fixture
def uniform_buffer():
    """Featureless image: nothing for the locator to find."""
    return make_uniform_buffer(OK_PAD_COLORS['ph'])


@pytest.fixture
def strip_factory():
    return make_strip_buffer


@pytest.fixture
def ok_pad_colors():
    return dict(OK_PAD_COLORS)


@pytest.fixture
def ok_values():
    return dict(OK_VALUES)


@pytest.fixture
def strip_png_bytes():
    """Default strip encoded as PNG."""
    rgb = make_strip_rgb(list(OK_PAD_COLORS.values()))
    success, encoded = cv2.imencode('.png', cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
    assert success
    return encoded.tobytes()


@pytest.fixture
def strip_image_path(tmp_path, strip_png_bytes):
    path = tmp_path / 'strip.png'
    path.write_bytes(strip_png_bytes)
    return str(path)
