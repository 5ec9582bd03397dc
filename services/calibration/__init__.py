"""
Calibration reference data.

- CalibrationTable: frozen per-parameter reference entries
- load_calibration_file: build a table from YAML
- get_calibration_table: default or CALIBRATION_FILE table
"""

from services.calibration.table import (
    CalibrationEntry,
    CalibrationTable,
    get_calibration_table,
    load_calibration_file,
)

__all__ = [
    'CalibrationEntry',
    'CalibrationTable',
    'get_calibration_table',
    'load_calibration_file'
]
