"""
Value conversion between Python, NumPy/Pandas and database values.

This module provides:
- TypeConverter: normalize parameter values before they reach a driver
- change_type: general-purpose conversion of a raw column value to a type
- default_value: the zero-equivalent value of a type
"""
import datetime
import decimal
import logging
import math
import uuid
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

NUMPY_FLOAT_TYPES = (np.floating,)
NUMPY_INT_TYPES = (np.integer, np.unsignedinteger)

_TRUE_STRINGS = {'true', 't', 'yes', 'y', '1'}
_FALSE_STRINGS = {'false', 'f', 'no', 'n', '0'}


def _convert_numpy_value(val: Any) -> float | int | bool | datetime.datetime | None:
    """Convert NumPy value to Python type."""
    if isinstance(val, np.floating) and np.isnan(val):
        return None

    if isinstance(val, np.datetime64):
        if np.isnat(val):
            return None
        return pd.Timestamp(val).to_pydatetime()

    return val.item()


class TypeConverter:
    """Parameter value normalization.

    NumPy scalars become Python scalars; NaN, NaT and pandas NA become None.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a driver-compatible format."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if isinstance(value, (*NUMPY_FLOAT_TYPES, *NUMPY_INT_TYPES, np.bool_, np.datetime64)):
            return _convert_numpy_value(value)

        if isinstance(value, pd.Timestamp):
            return None if pd.isna(value) else value.to_pydatetime()

        if pd.api.types.is_scalar(value) and pd.isna(value):
            return None

        return value


def default_value(type_: type) -> Any:
    """Zero-equivalent value of a type, None when it has no argument-free constructor.
    """
    try:
        return type_()
    except TypeError:
        return None


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f'Cannot interpret {value!r} as a boolean')
    return bool(value)


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, float | decimal.Decimal):
        return int(round(value))
    return int(value)


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, float):
        return decimal.Decimal(str(value))
    if isinstance(value, str):
        return decimal.Decimal(value.strip())
    return decimal.Decimal(value)


def _to_str(value: Any) -> str:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode('utf-8')
    if isinstance(value, datetime.date | datetime.time):
        return value.isoformat()
    return str(value)


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, str):
        return dateutil.parser.parse(value)
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, int | float):
        return datetime.datetime.fromtimestamp(value)
    raise TypeError(f'Cannot interpret {type(value).__name__} as a datetime')


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, str):
        return dateutil.parser.parse(value).date()
    raise TypeError(f'Cannot interpret {type(value).__name__} as a date')


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, str):
        return dateutil.parser.parse(value).time()
    raise TypeError(f'Cannot interpret {type(value).__name__} as a time')


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, bytes) and len(value) == 16:
        return uuid.UUID(bytes=value)
    return uuid.UUID(str(value))


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode('utf-8')
    return bytes(value)


_CONVERTERS = {
    bool: _to_bool,
    int: _to_int,
    float: float,
    decimal.Decimal: _to_decimal,
    str: _to_str,
    datetime.datetime: _to_datetime,
    datetime.date: _to_date,
    datetime.time: _to_time,
    uuid.UUID: _to_uuid,
    bytes: _to_bytes,
}


def change_type(value: Any, type_: type) -> Any:
    """Convert a non-null value to `type_`.

    Numeric values are widened or narrowed (floats round half to even when
    narrowed to int), strings are parsed, dates and times go through
    dateutil. Types without a dedicated rule are called with the value.

    Raises ValueError, TypeError or ArithmeticError when the value cannot be
    represented; callers translate these into ConversionError.
    """
    value = TypeConverter.convert_value(value)
    if value is None:
        raise TypeError(f'Cannot convert a null value to {type_.__name__}')

    # bool is an int subclass and datetime is a date subclass
    if type(value) is type_ or (isinstance(value, type_) and type_ not in {int, datetime.date}):
        return value

    converter = _CONVERTERS.get(type_, type_)
    return converter(value)
