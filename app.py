"""
Strip Analysis Service - Flask Application
Computer vision service turning water test strip photos into chemical readings
"""

from flask import Flask, request, jsonify, g
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import asyncio
import cv2
import numpy as np
import logging
import uuid
from dotenv import load_dotenv
import os
from typing import Dict, Optional, Tuple

# Load environment variables before config modules read them
load_dotenv()

# Import services
from config.calibration_config import DEFAULT_STRIP_TYPE, STRIP_TYPES
from services.calibration import get_calibration_table
from services.errors import AnalysisTimeout, ImageLoadError, InvalidParameterKey
from services.pipeline import AnalysisPipeline
from services.utils.color_matching import ColorSpaceStrategy
from utils.color_conversion import hex_to_rgb
from services.interfaces import RGBColor
from utils.image_loader import validate_image_format

# Configure logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)
CORS(app)

# Determine if we're in production mode
is_production = os.getenv('FLASK_DEBUG', 'False').lower() != 'true'

COLOR_SPACES = tuple(strategy.value for strategy in ColorSpaceStrategy)


# Request ID middleware for tracing
@app.before_request
def generate_request_id():
    """Generate or use existing request ID for tracing."""
    g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
    logger.debug(f'[Request {g.request_id}] {request.method} {request.path}')


@app.after_request
def add_request_id_header(response):
    """Add request ID to response headers."""
    if hasattr(g, 'request_id'):
        response.headers['X-Request-ID'] = g.request_id
    return response


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize error messages for production.

    In production, returns generic messages to prevent information disclosure.
    In development, returns full error details for debugging.

    Args:
        error: Exception object

    Returns:
        Sanitized error message string
    """
    if is_production:
        return "An internal error occurred. Please try again later."
    return str(error)


def error_response(message: str, error_code: str, status: int):
    return jsonify({
        'success': False,
        'error': message,
        'error_code': error_code
    }), status


# Rate limiting configuration
app.config['RATELIMIT_ENABLED'] = os.getenv('RATELIMIT_ENABLED', 'true').lower() == 'true'
limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=["200 per hour", "20 per minute"],
    storage_uri=os.getenv('RATELIMIT_STORAGE_URI', 'memory://'),
    headers_enabled=True
)

# Configuration
app.config['MAX_CONTENT_LENGTH'] = 10 * 1024 * 1024  # 10MB max file size

# Initialize services: one pipeline per comparison space, sharing the calibration
calibration_table = get_calibration_table()
pipelines: Dict[str, AnalysisPipeline] = {
    strategy.value: AnalysisPipeline(calibration=calibration_table, strategy=strategy)
    for strategy in ColorSpaceStrategy
}
default_color_space = os.getenv('COLOR_SPACE', 'rgb').lower()
if default_color_space not in pipelines:
    logger.warning(f'Unknown COLOR_SPACE {default_color_space!r}, using rgb')
    default_color_space = 'rgb'


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': 'strip-analysis-service',
        'opencv_version': cv2.__version__,
        'numpy_version': np.__version__,
        'remote_detection': pipelines[default_color_space].remote_detector is not None
    })


@app.route('/calibration', methods=['GET'])
def get_calibration():
    """Active calibration table and supported strip types."""
    return jsonify({
        'success': True,
        'data': {
            'calibration': calibration_table.to_dict(),
            'strip_types': {name: list(keys) for name, keys in STRIP_TYPES.items()},
            'default_strip_type': DEFAULT_STRIP_TYPE,
            'color_spaces': list(COLOR_SPACES)
        }
    })


def validate_analyze_options(data: Dict) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate strip_type / color_space options shared by JSON and multipart requests.

    Returns:
        Tuple of (is_valid, error_message, error_code)
    """
    strip_type = data.get('strip_type')
    if strip_type is not None and strip_type not in STRIP_TYPES:
        return False, f'strip_type must be one of: {", ".join(STRIP_TYPES)}', 'INVALID_PARAMETER'

    color_space = data.get('color_space')
    if color_space is not None and (not isinstance(color_space, str) or color_space.lower() not in COLOR_SPACES):
        return False, f'color_space must be one of: {", ".join(COLOR_SPACES)}', 'INVALID_PARAMETER'

    return True, None, None


def validate_analyze_request(data: Dict) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate analyze strip JSON request.

    Args:
        data: Request JSON data

    Returns:
        Tuple of (is_valid, error_message, error_code)
    """
    if not isinstance(data, dict):
        return False, 'Request must be JSON object', 'INVALID_PARAMETER'

    if 'image_path' not in data:
        return False, 'image_path is required', 'MISSING_PARAMETER'

    if not isinstance(data['image_path'], str) or not data['image_path'].strip():
        return False, 'image_path must be a non-empty string', 'INVALID_PARAMETER'

    return validate_analyze_options(data)


@app.route('/analyze-strip', methods=['POST'])
@limiter.limit("10 per minute")  # More restrictive for heavy image processing
def analyze_strip():
    """
    Analyze a test strip image.

    Pipeline: Image → Strip Location → Band Segmentation → Color Sampling → Color Matching

    Request (JSON):
    - image_path: Path to test strip image (S3 URL or local path)
    - strip_type: '3-in-1' or '6-in-1' (default: DEFAULT_STRIP_TYPE)
    - color_space: 'rgb' or 'hsv' (default: COLOR_SPACE)

    Request (multipart/form-data):
    - image: Uploaded image file
    - strip_type, color_space: as above, as form fields

    Returns:
    - Reading per parameter (value, status, unit, confidence, detected color)
    - Detection method, strip bounds and band samples
    - Processing time
    """
    request_id = getattr(g, 'request_id', 'unknown')

    try:
        if request.files:
            upload = request.files.get('image')
            if upload is None:
                return error_response('image file is required', 'MISSING_PARAMETER', 400)
            if upload.filename and not validate_image_format(upload.filename):
                return error_response(f'Unsupported image format: {upload.filename}', 'INVALID_PARAMETER', 400)
            data = request.form.to_dict()
            source = upload.read()
            source_name = upload.filename or 'upload'
        else:
            data = request.get_json(silent=True)
            if not data:
                return error_response('No JSON data provided', 'MISSING_PARAMETER', 400)
            is_valid, error_msg, error_code = validate_analyze_request(data)
            if not is_valid:
                return error_response(error_msg, error_code, 400)
            source = data['image_path'].strip()
            source_name = source

        is_valid, error_msg, error_code = validate_analyze_options(data)
        if not is_valid:
            return error_response(error_msg, error_code, 400)

        strip_type = data.get('strip_type') or DEFAULT_STRIP_TYPE
        color_space = (data.get('color_space') or default_color_space).lower()
        pipeline = pipelines[color_space]

        logger.info(f'[Request {request_id}] Analyzing {source_name} as {strip_type} ({color_space})')

        result = asyncio.run(pipeline.analyze_source(source, strip_type=strip_type))

        return jsonify({
            'success': True,
            'data': result.to_dict()
        })

    except ImageLoadError as e:
        logger.error(f'[Request {request_id}] Failed to load image: {e}')
        return error_response(f'Failed to load image: {str(e)}', e.error_code, 400)
    except AnalysisTimeout as e:
        logger.warning(f'[Request {request_id}] {e}')
        return error_response(str(e), e.error_code, 504)
    except Exception as e:
        logger.error(f'[Request {request_id}] Error in analyze_strip: {str(e)}', exc_info=True)
        return error_response(sanitize_error_message(e), 'INTERNAL_ERROR', 500)


def parse_color(value) -> RGBColor:
    """Accept {"r", "g", "b"}, [r, g, b] or "#RRGGBB"."""
    if isinstance(value, str):
        return hex_to_rgb(value)
    if isinstance(value, dict):
        return RGBColor(int(value['r']), int(value['g']), int(value['b']))
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return RGBColor(*(int(channel) for channel in value))
    raise ValueError(f'Unsupported color value: {value!r}')


@app.route('/match-color', methods=['POST'])
@limiter.limit("60 per minute")  # Lightweight lookup
def match_color():
    """
    Map a single color to a calibrated reading (manual color override).

    Request (JSON):
    - parameter_key: Calibration parameter (e.g. 'ph')
    - color: {"r", "g", "b"}, [r, g, b] or "#RRGGBB"
    - color_space: 'rgb' or 'hsv' (optional)
    """
    request_id = getattr(g, 'request_id', 'unknown')
    data = request.get_json(silent=True)
    if not data:
        return error_response('No JSON data provided', 'MISSING_PARAMETER', 400)

    for field in ('parameter_key', 'color'):
        if field not in data:
            return error_response(f'{field} is required', 'MISSING_PARAMETER', 400)

    if not isinstance(data['parameter_key'], str) or not data['parameter_key'].strip():
        return error_response('parameter_key must be a non-empty string', 'INVALID_PARAMETER', 400)

    is_valid, error_msg, error_code = validate_analyze_options(data)
    if not is_valid:
        return error_response(error_msg, error_code, 400)

    try:
        color = parse_color(data['color'])
    except (KeyError, TypeError, ValueError) as e:
        return error_response(f'Invalid color: {e}', 'INVALID_PARAMETER', 400)

    color_space = (data.get('color_space') or default_color_space).lower()
    key = data['parameter_key']
    try:
        match = pipelines[color_space].matcher.match(color, key)
    except InvalidParameterKey as e:
        return error_response(str(e), 'INVALID_PARAMETER', 400)

    logger.info(f'[Request {request_id}] Matched {color.as_tuple()} for {key}: {match.value} ({match.status})')
    return jsonify({
        'success': True,
        'data': {
            'parameter_key': key,
            'value': match.value,
            'status': match.status,
            'unit': calibration_table.unit(key),
            'confidence': match.confidence,
            'color': color.to_dict(),
            'color_space': color_space
        }
    })


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    logger.info(f'Starting Strip Analysis Service on port {port}')
    app.run(host='0.0.0.0', port=port, debug=debug)
