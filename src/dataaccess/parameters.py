"""
Parameter binding for commands.

Every binder normalizes the parameter name to carry a single leading ``@``,
so binding ``id`` and ``@id`` produce the same parameter. Values can be
supplied one at a time or from a parameter source:

- a mapping of name to value
- a dataclass instance (one parameter per field)
- a NamedTuple instance (one parameter per field)
"""
import dataclasses
import logging
from collections.abc import Mapping
from typing import Any

from dataaccess.exceptions import InvalidArgument
from dataaccess.protocols import Command
from dataaccess.types import PARAMETER_MARKER, DbType, Parameter
from dataaccess.types import ParameterDirection

logger = logging.getLogger(__name__)

__all__ = [
    'add_parameter',
    'add_in_out_parameter',
    'add_out_parameter',
    'add_return_parameter',
    'add_parameters',
    'normalize_parameter_name',
    'to_parameter_dict',
]


def normalize_parameter_name(name: str) -> str:
    """Prefix `name` with the parameter marker unless it already has one.
    """
    if name is None or not str(name).strip():
        raise InvalidArgument('The name cannot be None or whitespace')
    name = str(name).strip()
    if name == PARAMETER_MARKER:
        raise InvalidArgument('The name cannot consist of the parameter marker alone')
    if name[:1].casefold() == PARAMETER_MARKER.casefold():
        return name
    return PARAMETER_MARKER + name


def _add_parameter(command: Command, name: str, value: Any, db_type: DbType | None,
                   size: int | None, direction: ParameterDirection) -> Parameter:
    if command is None:
        raise InvalidArgument('The command cannot be None')

    name = normalize_parameter_name(name)
    param = command.create_parameter()
    param.name = name
    param.value = value
    param.direction = direction
    if db_type is not None:
        param.db_type = db_type
    if size is not None:
        param.size = size
    command.parameters.add(param)
    return param


def add_parameter(command: Command, name: str, value: Any = None,
                  db_type: DbType | None = None, size: int | None = None,
                  direction: ParameterDirection = ParameterDirection.INPUT) -> Parameter:
    """Add a parameter to the command and return it.

    The returned parameter can be inspected after execution to read output
    and return values.

    Raises InvalidArgument if the command is None or the name is empty.
    """
    return _add_parameter(command, name, value, db_type, size, direction)


def add_in_out_parameter(command: Command, name: str, value: Any = None,
                         db_type: DbType | None = None, size: int | None = None) -> Parameter:
    """Add an input/output parameter.
    """
    return _add_parameter(command, name, value, db_type, size, ParameterDirection.INPUT_OUTPUT)


def add_out_parameter(command: Command, name: str, db_type: DbType | None = None,
                      size: int | None = None) -> Parameter:
    """Add an output parameter.
    """
    return _add_parameter(command, name, None, db_type, size, ParameterDirection.OUTPUT)


def add_return_parameter(command: Command, name: str, db_type: DbType | None = None,
                         size: int | None = None) -> Parameter:
    """Add a return-value parameter.
    """
    return _add_parameter(command, name, None, db_type, size, ParameterDirection.RETURN_VALUE)


def to_parameter_dict(source: Any) -> dict[str, Any]:
    """Turn a parameter source into a name to value mapping.

    Field order for dataclasses and NamedTuples follows their declaration,
    which callers should not depend on.
    """
    if source is None:
        return {}
    if isinstance(source, Mapping):
        return dict(source)
    if dataclasses.is_dataclass(source) and not isinstance(source, type):
        return {f.name: getattr(source, f.name) for f in dataclasses.fields(source)}
    if isinstance(source, tuple) and hasattr(source, '_asdict'):
        return dict(source._asdict())
    raise InvalidArgument(
        f'Unsupported parameter source {type(source).__name__}; '
        'expected a mapping, a dataclass or a NamedTuple')


def add_parameters(command: Command, source: Any) -> list[Parameter]:
    """Bind every entry of a parameter source as an input parameter.
    """
    if command is None:
        raise InvalidArgument('The command cannot be None')
    params = [add_parameter(command, name, value) for name, value in to_parameter_dict(source).items()]
    logger.debug(f'Bound {len(params)} parameters')
    return params
