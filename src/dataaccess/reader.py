"""
Typed access to the current row of a reader.
"""
import decimal
import enum
import logging
from typing import Any, TypeVar

from dataaccess.conversion import change_type, default_value
from dataaccess.exceptions import ConversionError, InvalidArgument
from dataaccess.protocols import Reader

logger = logging.getLogger(__name__)

T = TypeVar('T')

_CONVERSION_ERRORS = (ValueError, TypeError, ArithmeticError, decimal.InvalidOperation)


def _resolve_ordinal(reader: Reader, column: int | str) -> int:
    if reader is None:
        raise InvalidArgument('The reader cannot be None')
    if isinstance(column, str):
        return reader.get_ordinal(column)
    if column < 0:
        raise InvalidArgument('The index cannot be less than zero')
    return column


def _zero_member(type_: type[enum.Enum]) -> enum.Enum | None:
    """Value 0 of the enum, else its first declared member.

    Flags always have a 0 value, even when no member is declared for it.
    An enum without members has no default and yields None.
    """
    try:
        return type_(0)
    except (ValueError, TypeError):
        return next(iter(type_), None)


def _to_enum(raw: Any, type_: type[enum.Enum]) -> enum.Enum:
    try:
        return type_(raw)
    except ValueError:
        if isinstance(raw, str) and raw in type_.__members__:
            return type_[raw]
        if isinstance(raw, str) and raw.strip().lstrip('-').isdigit():
            return type_(int(raw))
        raise


def _convert(raw: Any, type_: type[T], ordinal: int) -> T:
    try:
        if isinstance(type_, type) and issubclass(type_, enum.Enum):
            return _to_enum(raw, type_)
        return change_type(raw, type_)
    except _CONVERSION_ERRORS as exc:
        raise ConversionError(
            f'Cannot convert column {ordinal} value {raw!r} to {getattr(type_, "__name__", type_)}'
        ) from exc


def get_value(reader: Reader, column: int | str, type_: type[T]) -> T:
    """Read a column of the current row converted to `type_`.

    NULL yields the type's zero-equivalent: ``0`` for int, ``''`` for str,
    the member valued 0 (or the first member) for an Enum, None for types
    without an argument-free constructor.

    Args:
        reader: Reader positioned on a row
        column: Ordinal or column name
        type_: Destination type

    Raises
        InvalidArgument: If the reader is None or the ordinal is negative
        ConversionError: If a non-null value cannot be converted
    """
    ordinal = _resolve_ordinal(reader, column)

    if reader.is_null(ordinal):
        if isinstance(type_, type) and issubclass(type_, enum.Enum):
            return _zero_member(type_)
        return default_value(type_)

    return _convert(reader.get_value(ordinal), type_, ordinal)


def get_value_or_none(reader: Reader, column: int | str, type_: type[T]) -> T | None:
    """Like `get_value` but NULL yields None.
    """
    ordinal = _resolve_ordinal(reader, column)
    if reader.is_null(ordinal):
        return None
    return _convert(reader.get_value(ordinal), type_, ordinal)
