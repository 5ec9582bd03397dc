"""
Unit tests for the calibration table.
"""

import math

import pytest

from config.calibration_config import PARAMETER_ORDER
from services.calibration import CalibrationTable, load_calibration_file
from services.errors import CalibrationError, InvalidParameterKey
from services.interfaces import RGBColor


class TestDefaultCalibration:
    """Test cases for the built-in calibration table."""

    def setup_method(self):
        """Set up test fixtures."""
        self.table = CalibrationTable.default()

    def test_all_parameters_present(self):
        assert self.table.parameter_keys == PARAMETER_ORDER

    def test_entries_ascending(self):
        for key in self.table.parameter_keys:
            entries = self.table.entries(key)
            lows = [entry.range_low for entry in entries]
            assert lows == sorted(lows)

    def test_units(self):
        assert self.table.unit('ph') == ''
        assert self.table.unit('freeChlorine') == 'ppm'

    def test_unknown_key(self):
        with pytest.raises(InvalidParameterKey) as exc_info:
            self.table.entries('copper')
        assert exc_info.value.parameter_key == 'copper'
        # Also usable as a KeyError
        with pytest.raises(KeyError):
            self.table.unit('copper')

    def test_status_for_value(self):
        assert self.table.status_for_value('ph', 7.4) == 'ok'
        assert self.table.status_for_value('ph', 6.5) == 'low'
        assert self.table.status_for_value('ph', 8.2) == 'high'

    def test_status_outside_ranges(self):
        assert self.table.status_for_value('ph', 5.0) == 'low'
        assert self.table.status_for_value('ph', 12.0) == 'high'
        assert self.table.status_for_value('freeChlorine', 50.0) == 'high'

    def test_open_ended_midpoint_is_lower_bound(self):
        last = self.table.entries('freeChlorine')[-1]
        assert last.is_open_ended
        assert last.midpoint == 10.0

    def test_read_only(self):
        with pytest.raises(AttributeError):
            self.table.name = 'other'
        with pytest.raises(TypeError):
            self.table._entries['ph'] = ()

    def test_to_dict(self):
        data = self.table.to_dict()
        ph = data['parameters']['ph']
        assert ph['unit'] == ''
        assert ph['entries'][1] == {'range': [6.8, 7.2], 'color': {'r': 255, 'g': 220, 'b': 50}, 'status': 'ok'}
        assert data['parameters']['freeChlorine']['entries'][-1]['range'] == [10.0, None]


class TestCalibrationValidation:
    """Test cases for range validation at construction."""

    def test_overlapping_ranges_rejected(self):
        rows = {'ph': [(6.0, 7.0, (1, 1, 1), 'low'), (6.5, 8.0, (2, 2, 2), 'ok')]}
        with pytest.raises(CalibrationError, match='overlaps'):
            CalibrationTable.from_rows(rows)

    def test_gap_rejected(self):
        rows = {'ph': [(6.0, 7.0, (1, 1, 1), 'low'), (7.5, 8.0, (2, 2, 2), 'ok')]}
        with pytest.raises(CalibrationError, match='gap'):
            CalibrationTable.from_rows(rows)

    def test_only_last_may_be_open_ended(self):
        rows = {'ph': [(6.0, math.inf, (1, 1, 1), 'low'), (7.0, 8.0, (2, 2, 2), 'ok')]}
        with pytest.raises(CalibrationError):
            CalibrationTable.from_rows(rows)

    def test_invalid_status_rejected(self):
        rows = {'ph': [(6.0, 7.0, (1, 1, 1), 'fine')]}
        with pytest.raises(CalibrationError, match='status'):
            CalibrationTable.from_rows(rows)

    def test_empty_range_rejected(self):
        rows = {'ph': [(7.0, 7.0, (1, 1, 1), 'ok')]}
        with pytest.raises(CalibrationError):
            CalibrationTable.from_rows(rows)

    def test_empty_table_rejected(self):
        with pytest.raises(CalibrationError):
            CalibrationTable({})

    def test_calibration_error_is_value_error(self):
        with pytest.raises(ValueError):
            CalibrationTable.from_rows({'ph': []})


class TestCalibrationFile:
    """Test cases for YAML calibration loading."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / 'brand.yaml'
        path.write_text(
            'name: brand-x\n'
            'parameters:\n'
            '  ph:\n'
            '    unit: ""\n'
            '    entries:\n'
            '      - {range: [6.0, 7.0], color: [250, 200, 40], status: low}\n'
            '      - {range: [7.0, 7.8], color: {r: 240, g: 150, b: 90}, status: ok}\n'
            '      - {range: [7.8, null], color: [200, 60, 120], status: high}\n'
        )
        table = load_calibration_file(path)
        assert table.name == 'brand-x'
        assert table.parameter_keys == ('ph',)
        entries = table.entries('ph')
        assert entries[1].reference_color == RGBColor(240, 150, 90)
        assert entries[2].is_open_ended
        assert table.status_for_value('ph', 9.0) == 'high'

    def test_missing_file(self, tmp_path):
        with pytest.raises(CalibrationError):
            load_calibration_file(tmp_path / 'missing.yaml')

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text('parameters: [1, 2')
        with pytest.raises(CalibrationError):
            load_calibration_file(path)

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / 'bad_entry.yaml'
        path.write_text(
            'parameters:\n'
            '  ph:\n'
            '    entries:\n'
            '      - {range: [6.0], color: [1, 2, 3], status: ok}\n'
        )
        with pytest.raises(CalibrationError):
            load_calibration_file(path)

    def test_contiguity_checked_on_load(self, tmp_path):
        path = tmp_path / 'gap.yaml'
        path.write_text(
            'parameters:\n'
            '  ph:\n'
            '    entries:\n'
            '      - {range: [6.0, 7.0], color: [1, 2, 3], status: low}\n'
            '      - {range: [7.2, 8.0], color: [4, 5, 6], status: ok}\n'
        )
        with pytest.raises(CalibrationError):
            load_calibration_file(path)
