"""
Calibration table for test strip parameters.

A CalibrationTable is a frozen, validated mapping from parameter key to its
ordered reference entries. It is built once (from the defaults in
config.calibration_config or from a YAML file) and passed into the pipeline.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml

from config.calibration_config import (
    CALIBRATION_FILE,
    PARAMETER_UNITS,
    REFERENCE_COLORS,
)
from services.errors import CalibrationError, InvalidParameterKey
from services.interfaces import RGBColor

logger = logging.getLogger(__name__)

VALID_STATUSES = ('low', 'ok', 'high')


@dataclass(frozen=True)
class CalibrationEntry:
    """One value range with its reference color and status."""
    range_low: float
    range_high: float
    reference_color: RGBColor
    status: str

    @property
    def is_open_ended(self) -> bool:
        return math.isinf(self.range_high)

    @property
    def midpoint(self) -> float:
        """Representative value; an open-ended range is represented by its lower bound."""
        if self.is_open_ended:
            return self.range_low
        return self.range_low + (self.range_high - self.range_low) * 0.5

    def contains(self, value: float) -> bool:
        return self.range_low <= value and (value < self.range_high or self.is_open_ended)

    def to_dict(self) -> Dict:
        return {
            'range': [self.range_low, None if self.is_open_ended else self.range_high],
            'color': self.reference_color.to_dict(),
            'status': self.status,
        }


class CalibrationTable:
    """
    Read-only per-parameter calibration data.

    Usage:
        table = CalibrationTable.default()
        entries = table.entries('ph')
        status = table.status_for_value('ph', 7.4)
    """

    __slots__ = ('_entries', '_units', 'name')

    def __init__(
        self,
        entries: Mapping[str, Iterable[CalibrationEntry]],
        units: Optional[Mapping[str, str]] = None,
        name: str = 'default'
    ):
        self._entries = MappingProxyType({key: tuple(rows) for key, rows in entries.items()})
        self._units = MappingProxyType(dict(units or {}))
        self.name = name
        self.validate()

    def __setattr__(self, key, value):
        if hasattr(self, key):
            raise AttributeError(f'CalibrationTable is read-only: cannot set {key}')
        object.__setattr__(self, key, value)

    @classmethod
    def from_rows(
        cls,
        rows: Mapping[str, Iterable[Tuple]],
        units: Optional[Mapping[str, str]] = None,
        name: str = 'default'
    ) -> 'CalibrationTable':
        """
        Build a table from (range_low, range_high, (r, g, b), status) rows.
        """
        entries = {}
        for key, key_rows in rows.items():
            entries[key] = [
                CalibrationEntry(float(low), float(high), RGBColor(*color), status)
                for low, high, color, status in key_rows
            ]
        return cls(entries, units, name)

    @classmethod
    def default(cls) -> 'CalibrationTable':
        return cls.from_rows(REFERENCE_COLORS, PARAMETER_UNITS, name='default')

    @property
    def parameter_keys(self) -> Tuple[str, ...]:
        return tuple(self._entries.keys())

    def __contains__(self, parameter_key: str) -> bool:
        return parameter_key in self._entries

    def entries(self, parameter_key: str) -> Tuple[CalibrationEntry, ...]:
        try:
            return self._entries[parameter_key]
        except KeyError:
            raise InvalidParameterKey(parameter_key) from None

    def unit(self, parameter_key: str) -> str:
        if parameter_key not in self._entries:
            raise InvalidParameterKey(parameter_key)
        return self._units.get(parameter_key, '')

    def status_for_value(self, parameter_key: str, value: float) -> str:
        """
        Status of the range containing ``value``.

        Values below the first range take the first status, values above the
        last range take the last status.
        """
        entries = self.entries(parameter_key)
        for entry in entries:
            if entry.contains(value):
                return entry.status
        if value < entries[0].range_low:
            return entries[0].status
        return entries[-1].status

    def validate(self) -> None:
        """
        Check that every parameter's ranges are ascending, contiguous and
        non-overlapping.

        Raises:
            CalibrationError: If any parameter violates the invariants
        """
        if not self._entries:
            raise CalibrationError('Calibration table has no parameters')

        for key, entries in self._entries.items():
            if not entries:
                raise CalibrationError(f'{key}: no calibration entries')
            for index, entry in enumerate(entries):
                if entry.status not in VALID_STATUSES:
                    raise CalibrationError(f'{key}[{index}]: invalid status {entry.status!r}')
                if math.isnan(entry.range_low) or math.isnan(entry.range_high):
                    raise CalibrationError(f'{key}[{index}]: range bounds must be numbers')
                if not entry.range_low < entry.range_high:
                    raise CalibrationError(
                        f'{key}[{index}]: range {entry.range_low}-{entry.range_high} is empty'
                    )
                if entry.is_open_ended and index != len(entries) - 1:
                    raise CalibrationError(f'{key}[{index}]: only the last range may be open-ended')
                if index > 0:
                    previous = entries[index - 1]
                    if not math.isclose(previous.range_high, entry.range_low):
                        kind = 'overlaps' if entry.range_low < previous.range_high else 'leaves a gap after'
                        raise CalibrationError(
                            f'{key}[{index}]: range {entry.range_low}-{entry.range_high} '
                            f'{kind} {previous.range_low}-{previous.range_high}'
                        )

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'parameters': {
                key: {
                    'unit': self._units.get(key, ''),
                    'entries': [entry.to_dict() for entry in entries],
                }
                for key, entries in self._entries.items()
            },
        }

    def __repr__(self):
        return f'CalibrationTable(name={self.name!r}, parameters={list(self._entries)})'


def load_calibration_file(path: Union[str, Path]) -> CalibrationTable:
    """
    Load a calibration table from YAML.

    Expected format:
        name: brand-x
        parameters:
          ph:
            unit: ""
            entries:
              - {range: [6.2, 6.8], color: [255, 255, 0], status: low}
              - {range: [6.8, null], color: [255, 220, 50], status: ok}

    A null upper bound marks an open-ended range.

    Raises:
        CalibrationError: If the file is missing, malformed or invalid
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise CalibrationError(f'Failed to read calibration file {path}: {e}') from e

    if not isinstance(data, dict) or not isinstance(data.get('parameters'), dict):
        raise CalibrationError(f'{path}: expected a mapping with a "parameters" section')

    rows = {}
    units = {}
    for key, section in data['parameters'].items():
        if not isinstance(section, dict) or not isinstance(section.get('entries'), list):
            raise CalibrationError(f'{path}: parameter {key} needs an "entries" list')
        units[key] = section.get('unit', PARAMETER_UNITS.get(key, ''))
        key_rows = []
        for item in section['entries']:
            try:
                low, high = item['range']
                color = item['color']
                if isinstance(color, dict):
                    color = (color['r'], color['g'], color['b'])
                key_rows.append((low, float('inf') if high is None else high, tuple(color), item['status']))
            except (KeyError, TypeError, ValueError) as e:
                raise CalibrationError(f'{path}: invalid entry for {key}: {item!r}') from e
        rows[key] = key_rows

    table = CalibrationTable.from_rows(rows, units, name=str(data.get('name', path.stem)))
    logger.info(f'Loaded calibration {table.name!r} from {path} ({len(rows)} parameters)')
    return table


def get_calibration_table() -> CalibrationTable:
    """
    Get the process-wide calibration table.

    Uses CALIBRATION_FILE when set, otherwise the built-in defaults.
    """
    if CALIBRATION_FILE:
        return load_calibration_file(CALIBRATION_FILE)
    return CalibrationTable.default()
