"""
Utility services for test strip analysis.

Utilities:
- ColorMatcher: Color to calibrated value matching (RGB or HSV)
"""

from services.utils.color_matching import ColorMatcher, ColorSpaceStrategy, MatchResult

__all__ = [
    'ColorMatcher',
    'ColorSpaceStrategy',
    'MatchResult'
]
