"""
Data access exception classes.

Errors raised by this package derive from `DatabaseError`. Errors raised by
the underlying drivers are never wrapped; the tuples at the bottom of this
module group them for use in ``except`` clauses.
"""
import sqlite3

import psycopg


class DatabaseError(Exception):
    """Base class for all data access errors.
    """


class InvalidArgument(DatabaseError, ValueError):
    """A required handle, name, command text or callback is missing or invalid.
    """


class UnsupportedDriver(DatabaseError):
    """No data adapter could be resolved for a connection type.
    """

    def __init__(self, connection_type: type) -> None:
        self.connection_type = connection_type
        name = f'{connection_type.__module__}.{connection_type.__qualname__}'
        super().__init__(f'Could not create a data adapter for {name}')


class ConversionError(DatabaseError, TypeError):
    """A non-null column value could not be converted to the requested type.
    """


class QueryError(DatabaseError):
    """The driver binding cannot run a command as requested.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    QueryError,
    )

OperationalError = (
    psycopg.OperationalError,
    sqlite3.OperationalError,
    )
