#!/usr/bin/env python3
"""
Command-line strip analysis.

Thin wrapper around AnalysisPipeline: loads an image, prints one reading per
parameter and optionally saves an annotated visualization.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

import cv2

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from config.calibration_config import DEFAULT_STRIP_TYPE, STRIP_TYPES
from services.calibration import load_calibration_file, get_calibration_table
from services.errors import AnalysisError
from services.pipeline import AnalysisPipeline
from services.utils.color_matching import ColorSpaceStrategy
from utils.color_conversion import rgb_to_hex
from utils.detection_visualization import create_final_visualization
from utils.image_loader import get_image_info, load_pixel_buffer

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description='Analyze a water test strip image')
    parser.add_argument('image_path', help='Path or URL of test strip image')
    parser.add_argument('--strip-type', choices=sorted(STRIP_TYPES), default=DEFAULT_STRIP_TYPE,
                        help=f'Strip type (default: {DEFAULT_STRIP_TYPE})')
    parser.add_argument('--color-space', choices=[s.value for s in ColorSpaceStrategy], default=None,
                        help='Color comparison space (default: COLOR_SPACE env or rgb)')
    parser.add_argument('--calibration', type=str, default=None, help='YAML calibration file')
    parser.add_argument('--timeout', type=float, default=None, help='Analysis timeout in seconds')
    parser.add_argument('--no-remote', action='store_true', help='Never call the remote detector')
    parser.add_argument('--json', action='store_true', help='Print the full result as JSON')
    parser.add_argument('--save-visualization', type=str, default=None,
                        help='Write an annotated image to this path')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        calibration = load_calibration_file(args.calibration) if args.calibration else get_calibration_table()
        buffer = load_pixel_buffer(args.image_path)
    except AnalysisError as e:
        print(f"✗ {e}")
        sys.exit(1)

    pipeline = AnalysisPipeline(
        calibration=calibration,
        strategy=ColorSpaceStrategy(args.color_space) if args.color_space else None,
        use_remote=not args.no_remote
    )

    try:
        result = pipeline.analyze(buffer, strip_type=args.strip_type, timeout=args.timeout)
    except AnalysisError as e:
        print(f"✗ Analysis failed ({e.error_code}): {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        info = get_image_info(buffer)
        print(f"\n{'='*70}")
        print(f"Image: {args.image_path} ({info['width']}x{info['height']})")
        print(f"Strip type: {result.strip_type}  Color space: {result.color_space}")
        print(f"Method: {result.method}  Time: {result.processing_time_ms}ms")
        if result.strip:
            bounds = result.strip.bounds
            print(f"Strip: ({bounds.x:.0f}, {bounds.y:.0f}) {bounds.width:.0f}x{bounds.height:.0f} "
                  f"confidence {result.strip.confidence:.2f}")
        print(f"{'='*70}")
        for key, reading in result.readings.items():
            unit = f' {reading.unit}' if reading.unit else ''
            print(f"  {key:<16} {reading.value:>7}{unit:<4}  {reading.status:<4}  "
                  f"confidence {reading.confidence:.2f}  color {rgb_to_hex(reading.detected_color)}")

    if args.save_visualization:
        output_path = Path(args.save_visualization)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        vis = create_final_visualization(buffer, result)
        if not cv2.imwrite(str(output_path), vis):
            print(f"✗ Failed to write visualization: {output_path}")
            sys.exit(1)
        print(f"\n✓ Visualization saved to: {output_path}")


if __name__ == '__main__':
    main()
