"""
Unit tests for value conversion.
"""
import datetime
import decimal
import uuid

import numpy as np
import pandas as pd
import pytest
from dataaccess.conversion import TypeConverter, change_type, default_value


class TestTypeConverter:

    @pytest.mark.parametrize(('value', 'expected'), [
        (np.int32(5), 5),
        (np.float64(1.5), 1.5),
        (np.bool_(True), True),
        (np.float64('nan'), None),
        (float('inf'), None),
        (np.datetime64('NaT'), None),
        (pd.NA, None),
        (pd.NaT, None),
        ('text', 'text'),
        (None, None),
    ])
    def test_convert_value(self, value, expected):
        """Test numpy and pandas values become plain Python values"""
        assert TypeConverter.convert_value(value) == expected

    def test_timestamp(self):
        result = TypeConverter.convert_value(pd.Timestamp('2024-01-02 03:04:05'))
        assert result == datetime.datetime(2024, 1, 2, 3, 4, 5)
        assert type(result) is datetime.datetime


class TestChangeType:

    @pytest.mark.parametrize(('value', 'type_', 'expected'), [
        ('42', int, 42),
        (2.6, int, 3),
        (decimal.Decimal('3'), float, 3.0),
        (1.1, decimal.Decimal, decimal.Decimal('1.1')),
        (b'abc', str, 'abc'),
        (datetime.date(2024, 1, 2), str, '2024-01-02'),
        ('2024-01-02T03:04:05', datetime.datetime, datetime.datetime(2024, 1, 2, 3, 4, 5)),
        (datetime.datetime(2024, 1, 2, 3, 4), datetime.date, datetime.date(2024, 1, 2)),
        ('12:30', datetime.time, datetime.time(12, 30)),
        ('hello', bytes, b'hello'),
    ])
    def test_conversions(self, value, type_, expected):
        assert change_type(value, type_) == expected

    def test_uuid(self):
        value = uuid.uuid4()
        assert change_type(str(value), uuid.UUID) == value
        assert change_type(value.bytes, uuid.UUID) == value

    def test_bool_is_not_int(self):
        """Test bool values are converted when an int is requested"""
        result = change_type(True, int)
        assert result == 1
        assert type(result) is int

    def test_invalid(self):
        with pytest.raises(ValueError):
            change_type('abc', int)
        with pytest.raises(ValueError):
            change_type('maybe', bool)

    def test_null_rejected(self):
        with pytest.raises(TypeError):
            change_type(None, int)


def test_default_value():
    assert default_value(int) == 0
    assert default_value(str) == ''
    assert default_value(datetime.datetime) is None
