"""Driver capability protocols.

The execution engine only talks to these interfaces. Any driver binding that
satisfies them can be used; the built-in bindings live in
`dataaccess.connection` and `dataaccess.cursor`.

Bindings with a native non-blocking path additionally expose the optional
``*_async`` coroutines listed in `AsyncConnection`, `AsyncCommand` and
`AsyncReader`. The engine uses them when present.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dataaccess.adapter import DataAdapter
    from dataaccess.types import CommandType, ConnectionState, Parameter


@runtime_checkable
class Reader(Protocol):
    """Forward-only row cursor."""

    def read(self) -> bool:
        """Advance to the next row, False when there are no more rows."""
        ...

    def is_null(self, ordinal: int) -> bool:
        ...

    def get_value(self, ordinal: int) -> Any:
        """Raw value of a column of the current row."""
        ...

    def get_ordinal(self, name: str) -> int:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Command(Protocol):
    """Executable command."""

    command_text: str
    command_type: CommandType
    command_timeout: int | None

    @property
    def parameters(self) -> Any:
        """Mutable collection supporting ``add(parameter)`` and iteration."""
        ...

    def create_parameter(self) -> Parameter:
        ...

    def execute_reader(self) -> Reader:
        ...

    def execute_scalar(self) -> Any:
        ...

    def execute_non_query(self) -> int:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Connection(Protocol):
    """Connection able to create commands."""

    @property
    def state(self) -> ConnectionState:
        ...

    def open(self) -> None:
        ...

    def close(self) -> None:
        ...

    def create_command(self) -> Command:
        ...


@runtime_checkable
class AsyncConnection(Protocol):
    async def open_async(self) -> None:
        ...

    async def close_async(self) -> None:
        ...


@runtime_checkable
class AsyncCommand(Protocol):
    async def execute_reader_async(self) -> Reader:
        ...

    async def execute_scalar_async(self) -> Any:
        ...

    async def execute_non_query_async(self) -> int:
        ...


@runtime_checkable
class AsyncReader(Protocol):
    async def read_async(self) -> bool:
        ...


@runtime_checkable
class ProviderFactory(Protocol):
    """Driver-supplied object that manufactures data adapters."""

    def create_data_adapter(self) -> DataAdapter:
        ...


@runtime_checkable
class DataAdapterFactory(Protocol):
    """Implemented by connections that create their own data adapter."""

    def create_data_adapter(self) -> DataAdapter:
        ...
