"""
Data adapter resolution.

`create_data_adapter()` finds the adapter type for a connection without
knowing the driver in advance:

1. Built-in connections map directly to their adapter class.
2. Connections implementing `DataAdapterFactory` create their own adapter.
3. Drivers registered with `register_provider_factory()` are asked for their
   provider factory, matched along the connection type's MRO.

Anything else raises `UnsupportedDriver`.
"""
import logging
import threading
from collections.abc import Callable, Iterable
from contextlib import closing
from typing import Any

from dataaccess.connection import PostgresConnection, SQLiteConnection
from dataaccess.exceptions import InvalidArgument, UnsupportedDriver
from dataaccess.options import pandas_numpy_data_loader
from dataaccess.parameters import add_parameter, normalize_parameter_name
from dataaccess.parameters import to_parameter_dict
from dataaccess.protocols import Command, Connection, DataAdapterFactory, ProviderFactory
from dataaccess.types import ConnectionState

__all__ = [
    'DataAdapter',
    'SQLiteDataAdapter',
    'PostgresDataAdapter',
    'create_data_adapter',
    'resolve_adapter',
    'register_provider_factory',
    'unregister_provider_factory',
]

logger = logging.getLogger(__name__)

ProviderHook = Callable[[Connection], ProviderFactory]

_provider_hooks: dict[type, ProviderHook] = {}
_provider_hooks_lock = threading.Lock()


def _bind_row(command: Command, row: Any) -> None:
    """Set the row's values on the command's parameters.

    Parameters already declared on the command keep their type, size and
    direction; only names the command lacks are added as inputs.
    """
    for name, value in to_parameter_dict(row).items():
        key = normalize_parameter_name(name)
        if key in command.parameters:
            command.parameters[key].value = value
        else:
            add_parameter(command, key, value)


class DataAdapter:
    """Bulk fill and update through four commands.

    The select command fills a result; the insert, update and delete
    commands are run once per changed row with the row bound as input
    parameters.
    """

    def __init__(self, connection: Connection | None = None) -> None:
        self.connection = connection
        self.select_command: Command | None = None
        self.insert_command: Command | None = None
        self.update_command: Command | None = None
        self.delete_command: Command | None = None

    def __repr__(self) -> str:
        return f'{type(self).__name__}(connection={self.connection!r})'

    def _default_data_loader(self) -> Callable[..., Any]:
        options = getattr(self.connection, 'options', None)
        return getattr(options, 'data_loader', None) or pandas_numpy_data_loader

    def _ensure_open(self) -> None:
        if self.connection is not None and self.connection.state == ConnectionState.CLOSED:
            self.connection.open()

    def fill(self, data_loader: Callable[..., Any] | None = None, **kwargs: Any) -> Any:
        """Run the select command and load its rows.

        Args:
            data_loader: Callable ``(rows, columns, **kwargs)``; the
                connection's configured loader (a pandas DataFrame by
                default) when None
            **kwargs: Passed through to the data loader

        Returns
            Whatever the data loader returns
        """
        if self.select_command is None:
            raise InvalidArgument('The select command has not been set')
        data_loader = data_loader or self._default_data_loader()
        self._ensure_open()

        with closing(self.select_command.execute_reader()) as reader:
            columns = [reader.get_name(i) for i in range(reader.field_count)]
            rows = []
            while reader.read():
                rows.append({name: reader.get_value(i) for i, name in enumerate(columns)})

        logger.debug(f'Filled {len(rows)} rows from {self.select_command.command_text!r}')
        return data_loader(rows, columns, **kwargs)

    def _apply(self, command: Command | None, rows: Iterable[Any], kind: str) -> int:
        rows = list(rows)
        if not rows:
            return 0
        if command is None:
            raise InvalidArgument(f'The {kind} command has not been set')
        affected = 0
        for row in rows:
            _bind_row(command, row)
            count = command.execute_non_query()
            affected += max(count, 0)
        logger.debug(f'{kind.capitalize()} affected {affected} rows')
        return affected

    def update(self, inserted: Iterable[Any] = (), updated: Iterable[Any] = (),
               deleted: Iterable[Any] = ()) -> int:
        """Write changed rows back and return the total affected row count.

        Each row is a mapping, dataclass or NamedTuple. Deletes run first,
        then updates, then inserts.
        """
        self._ensure_open()
        return (self._apply(self.delete_command, deleted, 'delete')
                + self._apply(self.update_command, updated, 'update')
                + self._apply(self.insert_command, inserted, 'insert'))


class SQLiteDataAdapter(DataAdapter):
    """Data adapter for `SQLiteConnection`."""


class PostgresDataAdapter(DataAdapter):
    """Data adapter for `PostgresConnection`."""


_BUILTIN_ADAPTERS: dict[type, type[DataAdapter]] = {
    SQLiteConnection: SQLiteDataAdapter,
    PostgresConnection: PostgresDataAdapter,
}


def register_provider_factory(connection_type: type, hook: ProviderHook) -> None:
    """Register how to obtain the provider factory for a driver's connections.

    `hook` receives the connection and returns an object with a
    ``create_data_adapter()`` method. Subclasses of `connection_type` use
    the hook too unless they have one of their own.
    """
    if connection_type is None or hook is None:
        raise InvalidArgument('The connection type and hook cannot be None')
    with _provider_hooks_lock:
        _provider_hooks[connection_type] = hook
    logger.debug(f'Registered provider factory hook for {connection_type.__qualname__}')


def unregister_provider_factory(connection_type: type) -> None:
    """Remove a hook added by `register_provider_factory`. No-op when absent."""
    with _provider_hooks_lock:
        _provider_hooks.pop(connection_type, None)


def _provider_factory_for(connection: Connection) -> ProviderFactory | None:
    with _provider_hooks_lock:
        hook = next((_provider_hooks[cls] for cls in type(connection).__mro__
                     if cls in _provider_hooks), None)
    if hook is None:
        return None
    return hook(connection)


def resolve_adapter(connection: Connection) -> DataAdapter:
    """Create an empty data adapter suited to `connection`.

    Raises
        InvalidArgument: If the connection is None
        UnsupportedDriver: If no adapter can be found for the connection type
    """
    if connection is None:
        raise InvalidArgument('The connection cannot be None')

    adapter_cls = _BUILTIN_ADAPTERS.get(type(connection))
    if adapter_cls is not None:
        return adapter_cls(connection)

    if isinstance(connection, DataAdapterFactory):
        return connection.create_data_adapter()

    factory = _provider_factory_for(connection)
    if factory is not None:
        return factory.create_data_adapter()

    raise UnsupportedDriver(type(connection))


def create_data_adapter(connection: Connection, select_command: Command | None = None,
                        insert_command: Command | None = None,
                        update_command: Command | None = None,
                        delete_command: Command | None = None) -> DataAdapter:
    """Create a data adapter for `connection` with the given commands attached.

    Nothing is executed.
    """
    adapter = resolve_adapter(connection)
    adapter.select_command = select_command
    adapter.insert_command = insert_command
    adapter.update_command = update_command
    adapter.delete_command = delete_command
    return adapter
