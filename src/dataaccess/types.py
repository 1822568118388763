"""
Value types shared by the binder, the command factory and the execution engine.

This module provides:
- CommandType, ParameterDirection, ConnectionState: the enumerations used
  across the driver capability surface
- DbType: declared parameter type tags and their Python equivalents
- Parameter: a bound command parameter
- ParameterCollection: a command's parameters, unique by name
- CommandSpec: an immutable description of a command to run
"""
import datetime
import decimal
import uuid
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from dataaccess.exceptions import InvalidArgument

PARAMETER_MARKER = '@'


class CommandType(Enum):
    """How the command text is interpreted."""
    STORED_PROCEDURE = auto()
    TEXT = auto()


class ParameterDirection(Enum):
    """Direction of a command parameter."""
    INPUT = auto()
    OUTPUT = auto()
    INPUT_OUTPUT = auto()
    RETURN_VALUE = auto()


class ConnectionState(Enum):
    """Observable connection state."""
    CLOSED = auto()
    OPEN = auto()


class DbType(Enum):
    """Declared parameter types.
    """
    ANSI_STRING = auto()
    STRING = auto()
    BOOLEAN = auto()
    INT16 = auto()
    INT32 = auto()
    INT64 = auto()
    DECIMAL = auto()
    DOUBLE = auto()
    DATE = auto()
    DATETIME = auto()
    TIME = auto()
    BINARY = auto()
    GUID = auto()
    OBJECT = auto()

    @property
    def python_type(self) -> type | None:
        """Python type values of this DbType are coerced to, None for OBJECT."""
        return _PYTHON_TYPES.get(self)


_PYTHON_TYPES: dict[DbType, type] = {
    DbType.ANSI_STRING: str,
    DbType.STRING: str,
    DbType.BOOLEAN: bool,
    DbType.INT16: int,
    DbType.INT32: int,
    DbType.INT64: int,
    DbType.DECIMAL: decimal.Decimal,
    DbType.DOUBLE: float,
    DbType.DATE: datetime.date,
    DbType.DATETIME: datetime.datetime,
    DbType.TIME: datetime.time,
    DbType.BINARY: bytes,
    DbType.GUID: uuid.UUID,
}


@dataclass
class Parameter:
    """A command parameter.

    The name carries the parameter marker once it has been bound. Output,
    input/output and return-value parameters receive their value after the
    command has executed.
    """
    name: str = ''
    value: Any = None
    db_type: DbType | None = None
    size: int | None = None
    direction: ParameterDirection = ParameterDirection.INPUT

    @property
    def bare_name(self) -> str:
        """Name without the parameter marker."""
        return self.name[1:] if self.name.startswith(PARAMETER_MARKER) else self.name

    @property
    def is_input(self) -> bool:
        return self.direction in {ParameterDirection.INPUT, ParameterDirection.INPUT_OUTPUT}

    @property
    def is_output(self) -> bool:
        return self.direction in {ParameterDirection.OUTPUT, ParameterDirection.INPUT_OUTPUT,
                                  ParameterDirection.RETURN_VALUE}


class ParameterCollection:
    """Ordered parameters of a command, unique by case-insensitive name.

    Adding a parameter whose name is already present replaces the existing
    one in place.
    """

    def __init__(self) -> None:
        self._items: list[Parameter] = []

    def add(self, parameter: Parameter) -> Parameter:
        key = parameter.name.lower()
        for i, existing in enumerate(self._items):
            if existing.name.lower() == key:
                self._items[i] = parameter
                return parameter
        self._items.append(parameter)
        return parameter

    def clear(self) -> None:
        self._items.clear()

    def __getitem__(self, key: int | str) -> Parameter:
        if isinstance(key, int):
            return self._items[key]
        lowered = key.lower()
        for parameter in self._items:
            if lowered in {parameter.name.lower(), parameter.bare_name.lower()}:
                return parameter
        raise KeyError(key)

    def __contains__(self, name: str) -> bool:
        try:
            self[name]
        except KeyError:
            return False
        return True

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f'ParameterCollection({self._items!r})'


@dataclass(frozen=True)
class CommandSpec:
    """Everything needed to build a command, minus the connection."""
    text: str
    command_type: CommandType = CommandType.STORED_PROCEDURE
    parameters: Mapping[str, Any] | Any | None = field(default=None, compare=False)
    timeout: int | None = None

    def __post_init__(self):
        if not isinstance(self.text, str) or not self.text.strip():
            raise InvalidArgument('The command text cannot be None or whitespace')
        if self.timeout is not None and self.timeout < 0:
            raise InvalidArgument('The command timeout cannot be negative')

    @classmethod
    def of(cls, text: 'str | CommandSpec',
           command_type: CommandType = CommandType.STORED_PROCEDURE,
           parameters: Any = None, timeout: int | None = None) -> 'CommandSpec':
        """Return `text` unchanged when it is already a CommandSpec.

        A CommandSpec carries its own parameters and timeout; passing either
        alongside one raises InvalidArgument.
        """
        if isinstance(text, CommandSpec):
            if parameters is not None or timeout is not None:
                raise InvalidArgument('Parameters and timeout must be set on the CommandSpec itself')
            return text
        return cls(text, command_type, parameters, timeout)
