"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for creating connections from options
2. The `ConnectionWrapper` class implementing the `Connection` protocol on top
   of a SQLAlchemy engine, with one subclass per built-in dialect
3. Engine creation and management through a thread-safe registry

SQLAlchemy is used for engine and connection management only. Commands run
directly on the checked-out DB-API connection through `DbCommand`.
"""
import atexit
import logging
import threading
from dataclasses import replace
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from dataaccess.cursor import DbCommand
from dataaccess.options import DatabaseOptions
from dataaccess.strategy import DatabaseStrategy, get_strategy
from dataaccess.types import ConnectionState
from dataaccess.utils import get_dialect_name

__all__ = [
    'ConnectionWrapper',
    'SQLiteConnection',
    'PostgresConnection',
    'connect',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def get_engine_for_options(options: DatabaseOptions) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Engines never pool connections; closing a connection releases it.
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        strategy = get_strategy(options.drivername)
        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        engine_kwargs.update(strategy.get_engine_kwargs(options))

        engine = sa.create_engine(strategy.build_connection_url(options), **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """Connection over a SQLAlchemy engine.

    The wrapper starts CLOSED. `open()` checks a connection out of the
    engine and configures the raw DB-API connection through the dialect
    strategy; `close()` returns it. Execution counts and timing are tracked
    per wrapper.
    """

    dialect: str | None = None

    def __init__(self, engine: Engine, options: DatabaseOptions | None = None) -> None:
        self.engine = engine
        self.options = options
        self.sa_connection: sa.engine.Connection | None = None
        self.dbapi_connection: Any = None
        if self.dialect is None:
            self.dialect = get_dialect_name(engine)
        self.strategy: DatabaseStrategy = get_strategy(self.dialect)
        self.calls = 0
        self.time = 0.0

    @classmethod
    def from_engine(cls, engine: Engine, options: DatabaseOptions | None = None) -> 'ConnectionWrapper':
        """Wrap an existing engine in the connection class for its dialect."""
        connection_cls = _CONNECTION_TYPES.get(get_dialect_name(engine), cls)
        return connection_cls(engine, options)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.engine.url!r}, state={self.state.name})'

    @property
    def state(self) -> ConnectionState:
        if self.sa_connection is None or self.sa_connection.closed:
            return ConnectionState.CLOSED
        return ConnectionState.OPEN

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def open(self) -> None:
        """Check out a connection from the engine. No-op when already open."""
        if self.state == ConnectionState.OPEN:
            return
        self.sa_connection = self.engine.connect()
        self.dbapi_connection = self.sa_connection.connection.driver_connection
        try:
            self.strategy.configure_connection(self.dbapi_connection)
        except Exception:
            self.close()
            raise
        logger.debug(f'Opened {self.dialect} connection')

    def close(self) -> None:
        """Return the connection to the engine. No-op when already closed."""
        if self.sa_connection is None:
            return
        sa_connection, self.sa_connection = self.sa_connection, None
        self.dbapi_connection = None
        if not sa_connection.closed:
            sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')

    def create_command(self) -> DbCommand:
        """Create a command on this connection.

        The default command timeout from the options is applied, if any.
        """
        command = DbCommand(self)
        if self.options is not None and self.options.command_timeout:
            command.command_timeout = self.options.command_timeout
        return command


class SQLiteConnection(ConnectionWrapper):
    """Connection to a SQLite database through sqlite3."""
    dialect = 'sqlite'


class PostgresConnection(ConnectionWrapper):
    """Connection to PostgreSQL through psycopg."""
    dialect = 'postgresql'


_CONNECTION_TYPES: dict[str, type[ConnectionWrapper]] = {
    'sqlite': SQLiteConnection,
    'postgresql': PostgresConnection,
}


def connect(options: DatabaseOptions | dict[str, Any] | None = None,
            **kw: Any) -> ConnectionWrapper:
    """Create a closed connection for the given options.

    Args:
        options: DatabaseOptions, or a dictionary of option values
        **kw: Option values overriding those in `options`

    Returns
        ConnectionWrapper subclass for the dialect, in the CLOSED state
    """
    if isinstance(options, DatabaseOptions):
        options = replace(options, **kw) if kw else options
    else:
        options = DatabaseOptions(**{**(options or {}), **kw})

    engine = get_engine_for_options(options)
    connection_cls = _CONNECTION_TYPES[options.drivername]
    return connection_cls(engine, options)
