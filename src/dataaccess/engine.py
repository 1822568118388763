"""
Command execution with deterministic resource cleanup.

Every function takes a connection and a command description, opens the
connection when it is CLOSED, creates and runs the command and releases what
it created on every exit path. A connection is closed by the engine only when
``dispose_connection=True``; otherwise it stays as the engine found it (or
OPEN, if the engine had to open it).

The ``*_async`` functions have the same contracts. They await a binding's
native coroutine (``open_async``, ``execute_reader_async``, ``read_async``,
``close_async``, ...) when it has one, and otherwise run the blocking call in
a worker thread.
"""
import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import AsyncExitStack, ExitStack, closing
from typing import Any, Self, TypeVar

from dataaccess.command import create_command, ensure_connection
from dataaccess.exceptions import InvalidArgument
from dataaccess.protocols import Command, Connection, Reader
from dataaccess.types import CommandSpec, CommandType, ConnectionState

__all__ = [
    'ScopedReader',
    'execute_reader',
    'execute_reader_mapped',
    'execute_scalar',
    'execute_non_query',
    'execute_command_reader_mapped',
    'execute_reader_async',
    'execute_reader_mapped_async',
    'execute_scalar_async',
    'execute_non_query_async',
    'execute_command_reader_mapped_async',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _ensure_convert(convert: Callable[[Reader], T] | None) -> None:
    if convert is None:
        raise InvalidArgument('The row conversion function cannot be None')


def _open(connection: Connection) -> None:
    if connection.state == ConnectionState.CLOSED:
        connection.open()


def _drain(reader: Reader, convert: Callable[[Reader], T]) -> list[T]:
    results = []
    while reader.read():
        results.append(convert(reader))
    return results


def _release(resources: list[Any]) -> None:
    """Close resources in reverse order of acquisition.
    """
    with ExitStack() as stack:
        for resource in resources:
            stack.callback(resource.close)


async def _in_thread(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking call in a worker thread.

    When the caller is cancelled the call is still waited for, so nothing
    the worker is using gets closed underneath it.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait([task])
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f'Worker call failed after cancellation: {task.exception()!r}')
        raise


async def _call(obj: Any, name: str) -> Any:
    """Await `obj.<name>_async()` if present, else run `obj.<name>()` in a thread."""
    native = getattr(obj, f'{name}_async', None)
    if callable(native):
        return await native()
    return await _in_thread(getattr(obj, name))


async def _open_async(connection: Connection) -> None:
    if connection.state == ConnectionState.CLOSED:
        await _call(connection, 'open')


async def _release_async(resources: list[Any]) -> None:
    async with AsyncExitStack() as stack:
        for resource in resources:
            stack.push_async_callback(_call, resource, 'close')


class ScopedReader:
    """Reader returned by `execute_reader` that owns what was created for it.

    Closing it closes the driver reader, then the command, then the
    connection when the call was made with ``dispose_connection=True``.
    Everything else is delegated to the driver reader.
    """

    def __init__(self, resources: list[Any]) -> None:
        self._resources = resources
        self.reader: Reader = resources[-1]
        self.closed = False

    def __getattr__(self, name: str) -> Any:
        return getattr(self.reader, name)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_async()

    def __iter__(self) -> Iterator[Self]:
        while self.read():
            yield self

    async def __aiter__(self):
        while await self.read_async():
            yield self

    def read(self) -> bool:
        return self.reader.read()

    async def read_async(self) -> bool:
        return await _call(self.reader, 'read')

    def is_null(self, ordinal: int) -> bool:
        return self.reader.is_null(ordinal)

    def get_value(self, ordinal: int) -> Any:
        return self.reader.get_value(ordinal)

    def get_ordinal(self, name: str) -> int:
        return self.reader.get_ordinal(name)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        _release(self._resources)

    async def close_async(self) -> None:
        if self.closed:
            return
        self.closed = True
        await _release_async(self._resources)


def _spec(command_text: str | CommandSpec, command_type: CommandType,
          parameters: Any, timeout: int | None) -> CommandSpec:
    return CommandSpec.of(command_text, command_type, parameters, timeout)


def _run(connection: Connection, spec: CommandSpec, dispose_connection: bool,
         action: Callable[[Command], T]) -> T:
    with ExitStack() as stack:
        if dispose_connection:
            stack.callback(connection.close)
        _open(connection)
        command = stack.enter_context(closing(create_command(connection, spec)))
        return action(command)


async def _run_async(connection: Connection, spec: CommandSpec, dispose_connection: bool,
                     action: Callable[[Command], Any]) -> Any:
    async with AsyncExitStack() as stack:
        if dispose_connection:
            stack.push_async_callback(_call, connection, 'close')
        await _open_async(connection)
        command = create_command(connection, spec)
        stack.push_async_callback(_call, command, 'close')
        return await action(command)


def execute_command_reader_mapped(command: Command, convert: Callable[[Reader], T]) -> list[T]:
    """Execute an existing command and map each row with `convert`.

    The reader is closed before returning; the command stays open and is
    still owned by the caller.
    """
    if command is None:
        raise InvalidArgument('The command cannot be None')
    _ensure_convert(convert)
    reader = command.execute_reader()
    if reader is None:
        return []
    with closing(reader):
        return _drain(reader, convert)


def execute_reader(connection: Connection, command_text: str | CommandSpec,
                   command_type: CommandType = CommandType.STORED_PROCEDURE,
                   parameters: Any = None, timeout: int | None = None,
                   dispose_connection: bool = False) -> ScopedReader:
    """Execute a command and return a reader over its rows.

    The caller must close the returned reader (or use it as a context
    manager). Closing it closes the command, and the connection too when
    `dispose_connection` is set.

    Raises
        InvalidArgument: If the connection is None or the command text is empty
    """
    ensure_connection(connection)
    spec = _spec(command_text, command_type, parameters, timeout)

    resources: list[Any] = [connection] if dispose_connection else []
    try:
        _open(connection)
        command = create_command(connection, spec)
        resources.append(command)
        resources.append(command.execute_reader())
    except BaseException:
        _release(resources)
        raise
    return ScopedReader(resources)


def execute_reader_mapped(connection: Connection, convert: Callable[[Reader], T],
                          command_text: str | CommandSpec,
                          command_type: CommandType = CommandType.STORED_PROCEDURE,
                          parameters: Any = None, timeout: int | None = None,
                          dispose_connection: bool = False) -> list[T]:
    """Execute a command and map every row with `convert`, in cursor order.

    Returns an empty list when the command returns no rows. The reader and
    the command are always released, then the connection if
    `dispose_connection` is set.

    Raises
        InvalidArgument: If the connection or `convert` is None, or the
            command text is empty
    """
    ensure_connection(connection)
    _ensure_convert(convert)
    spec = _spec(command_text, command_type, parameters, timeout)
    return _run(connection, spec, dispose_connection,
                lambda command: execute_command_reader_mapped(command, convert))


def execute_scalar(connection: Connection, command_text: str | CommandSpec,
                   command_type: CommandType = CommandType.STORED_PROCEDURE,
                   parameters: Any = None, timeout: int | None = None,
                   dispose_connection: bool = False) -> Any:
    """Execute a command and return the first column of the first row, or None."""
    ensure_connection(connection)
    spec = _spec(command_text, command_type, parameters, timeout)
    return _run(connection, spec, dispose_connection, lambda command: command.execute_scalar())


def execute_non_query(connection: Connection, command_text: str | CommandSpec,
                      command_type: CommandType = CommandType.STORED_PROCEDURE,
                      parameters: Any = None, timeout: int | None = None,
                      dispose_connection: bool = False) -> int:
    """Execute a command and return the number of affected rows."""
    ensure_connection(connection)
    spec = _spec(command_text, command_type, parameters, timeout)
    return _run(connection, spec, dispose_connection, lambda command: command.execute_non_query())


async def execute_command_reader_mapped_async(command: Command,
                                              convert: Callable[[Reader], T]) -> list[T]:
    """Async form of `execute_command_reader_mapped`.

    Without a native ``read_async`` the whole result is drained in a single
    worker thread call. A cancelled call waits for that worker before the
    reader is closed.
    """
    if command is None:
        raise InvalidArgument('The command cannot be None')
    _ensure_convert(convert)
    reader = await _call(command, 'execute_reader')
    if reader is None:
        return []
    try:
        if callable(getattr(reader, 'read_async', None)):
            results = []
            while await reader.read_async():
                results.append(convert(reader))
            return results
        return await _in_thread(_drain, reader, convert)
    finally:
        await _call(reader, 'close')


async def execute_reader_async(connection: Connection, command_text: str | CommandSpec,
                               command_type: CommandType = CommandType.STORED_PROCEDURE,
                               parameters: Any = None, timeout: int | None = None,
                               dispose_connection: bool = False) -> ScopedReader:
    """Async form of `execute_reader`. Close the reader with `close_async`
    or ``async with``.
    """
    ensure_connection(connection)
    spec = _spec(command_text, command_type, parameters, timeout)

    resources: list[Any] = [connection] if dispose_connection else []
    try:
        await _open_async(connection)
        command = create_command(connection, spec)
        resources.append(command)
        resources.append(await _call(command, 'execute_reader'))
    except BaseException:
        await _release_async(resources)
        raise
    return ScopedReader(resources)


async def execute_reader_mapped_async(connection: Connection, convert: Callable[[Reader], T],
                                      command_text: str | CommandSpec,
                                      command_type: CommandType = CommandType.STORED_PROCEDURE,
                                      parameters: Any = None, timeout: int | None = None,
                                      dispose_connection: bool = False) -> list[T]:
    """Async form of `execute_reader_mapped`."""
    ensure_connection(connection)
    _ensure_convert(convert)
    spec = _spec(command_text, command_type, parameters, timeout)
    return await _run_async(connection, spec, dispose_connection,
                            lambda command: execute_command_reader_mapped_async(command, convert))


async def execute_scalar_async(connection: Connection, command_text: str | CommandSpec,
                               command_type: CommandType = CommandType.STORED_PROCEDURE,
                               parameters: Any = None, timeout: int | None = None,
                               dispose_connection: bool = False) -> Any:
    """Async form of `execute_scalar`."""
    ensure_connection(connection)
    spec = _spec(command_text, command_type, parameters, timeout)
    return await _run_async(connection, spec, dispose_connection,
                            lambda command: _call(command, 'execute_scalar'))


async def execute_non_query_async(connection: Connection, command_text: str | CommandSpec,
                                  command_type: CommandType = CommandType.STORED_PROCEDURE,
                                  parameters: Any = None, timeout: int | None = None,
                                  dispose_connection: bool = False) -> int:
    """Async form of `execute_non_query`."""
    ensure_connection(connection)
    spec = _spec(command_text, command_type, parameters, timeout)
    return await _run_async(connection, spec, dispose_connection,
                            lambda command: _call(command, 'execute_non_query'))
