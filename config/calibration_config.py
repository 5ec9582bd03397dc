"""
Calibration reference data configuration.

Default reference colors for the 6-in-1 pool strip. Each row is
(range_low, range_high, (r, g, b), status); rows are ascending and
contiguous per parameter. Set CALIBRATION_FILE to load an alternate set
(e.g. a different strip brand) from YAML instead.
"""

import os
from typing import Dict, Optional

INF = float('inf')

# Optional YAML calibration file overriding the defaults below
CALIBRATION_FILE: Optional[str] = os.getenv('CALIBRATION_FILE') or None

# Reading order on the strip, top to bottom
PARAMETER_ORDER = (
    'freeChlorine',
    'ph',
    'totalAlkalinity',
    'totalChlorine',
    'totalHardness',
    'cyanuricAcid',
)

STRIP_TYPES: Dict[str, tuple] = {
    '3-in-1': PARAMETER_ORDER[:3],
    '6-in-1': PARAMETER_ORDER,
}

DEFAULT_STRIP_TYPE = os.getenv('DEFAULT_STRIP_TYPE', '6-in-1')

PARAMETER_UNITS: Dict[str, str] = {
    'freeChlorine': 'ppm',
    'ph': '',
    'totalAlkalinity': 'ppm',
    'totalChlorine': 'ppm',
    'totalHardness': 'ppm',
    'cyanuricAcid': 'ppm',
}

REFERENCE_COLORS: Dict[str, tuple] = {
    'freeChlorine': (
        (0.0, 0.5, (255, 255, 240), 'low'),
        (0.5, 1.0, (255, 220, 200), 'low'),
        (1.0, 3.0, (255, 240, 150), 'ok'),
        (3.0, 5.0, (255, 220, 100), 'high'),
        (5.0, 10.0, (240, 180, 80), 'high'),
        (10.0, INF, (200, 140, 60), 'high'),
    ),
    'ph': (
        (6.2, 6.8, (255, 255, 0), 'low'),
        (6.8, 7.2, (255, 220, 50), 'ok'),
        (7.2, 7.6, (255, 200, 100), 'ok'),
        (7.6, 8.0, (255, 150, 120), 'high'),
        (8.0, 8.4, (240, 80, 160), 'high'),
        (8.4, 9.0, (200, 50, 150), 'high'),
    ),
    'totalAlkalinity': (
        (0.0, 60.0, (255, 255, 100), 'low'),
        (60.0, 80.0, (220, 220, 80), 'low'),
        (80.0, 120.0, (200, 200, 100), 'ok'),
        (120.0, 150.0, (150, 180, 120), 'ok'),
        (150.0, 180.0, (120, 160, 140), 'high'),
        (180.0, 240.0, (100, 140, 160), 'high'),
    ),
    'totalChlorine': (
        (0.0, 1.0, (240, 200, 160), 'low'),
        (1.0, 3.0, (255, 220, 200), 'ok'),
        (3.0, 5.0, (255, 180, 180), 'high'),
        (5.0, 10.0, (255, 140, 160), 'high'),
        (10.0, INF, (220, 120, 150), 'high'),
    ),
    'totalHardness': (
        (0.0, 100.0, (150, 200, 255), 'low'),
        (100.0, 200.0, (180, 180, 240), 'low'),
        (200.0, 400.0, (200, 160, 220), 'ok'),
        (400.0, 500.0, (180, 140, 200), 'high'),
        (500.0, 1000.0, (160, 120, 180), 'high'),
    ),
    'cyanuricAcid': (
        (0.0, 20.0, (255, 255, 150), 'low'),
        (20.0, 30.0, (255, 240, 120), 'low'),
        (30.0, 50.0, (255, 200, 140), 'ok'),
        (50.0, 80.0, (255, 160, 160), 'ok'),
        (80.0, 100.0, (240, 140, 180), 'high'),
        (100.0, 240.0, (220, 120, 160), 'high'),
    ),
}
