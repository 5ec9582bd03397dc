"""
Error types for the strip analysis service.

Only ImageLoadError and AnalysisTimeout propagate out of the pipeline.
The others are raised by individual components and absorbed by the
pipeline's fallback chain.
"""


class AnalysisError(Exception):
    """Base class for all analysis errors."""

    error_code = 'ANALYSIS_ERROR'


class ImageLoadError(AnalysisError):
    """Source image could not be fetched or decoded."""

    error_code = 'IMAGE_LOAD_ERROR'


class NoStripDetected(AnalysisError):
    """Strip locator found no candidate above the confidence threshold."""

    error_code = 'NO_STRIP_DETECTED'


class RemoteDetectionUnavailable(AnalysisError):
    """Optional remote detection service is missing or failed."""

    error_code = 'REMOTE_DETECTION_UNAVAILABLE'


class AnalysisTimeout(AnalysisError):
    """Pipeline exceeded its wall-clock budget."""

    error_code = 'ANALYSIS_TIMEOUT'

    def __init__(self, message: str = 'Analysis timeout - please try with a smaller or clearer image',
                 stage: str = None):
        super().__init__(message)
        self.stage = stage


class InvalidParameterKey(AnalysisError, KeyError):
    """Calibration lookup for an unknown parameter key."""

    error_code = 'INVALID_PARAMETER_KEY'

    def __init__(self, parameter_key: str):
        super().__init__(f'Unknown parameter key: {parameter_key}')
        self.parameter_key = parameter_key

    def __str__(self):
        return f'Unknown parameter key: {self.parameter_key}'


class CalibrationError(AnalysisError, ValueError):
    """Calibration table failed validation."""

    error_code = 'CALIBRATION_ERROR'
