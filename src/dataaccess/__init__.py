"""
Driver-agnostic data access for PostgreSQL, SQLite, and any driver exposing
the connection / command / reader capabilities in `dataaccess.protocols`.

Commands are run with module functions that take care of opening the
connection and releasing the command:

- execute_reader(cn, text, ...) / execute_reader_mapped(cn, convert, text, ...)
- execute_scalar(cn, text, ...)
- execute_non_query(cn, text, ...)

Each has an ``*_async`` counterpart with the same contract.
"""
__version__ = '0.1.1'

from dataaccess.adapter import DataAdapter, PostgresDataAdapter, SQLiteDataAdapter
from dataaccess.adapter import create_data_adapter, register_provider_factory
from dataaccess.adapter import resolve_adapter, unregister_provider_factory
from dataaccess.command import create_command
from dataaccess.connection import ConnectionWrapper, PostgresConnection
from dataaccess.connection import SQLiteConnection, connect
from dataaccess.engine import ScopedReader, execute_command_reader_mapped
from dataaccess.engine import execute_command_reader_mapped_async
from dataaccess.engine import execute_non_query, execute_non_query_async
from dataaccess.engine import execute_reader, execute_reader_async
from dataaccess.engine import execute_reader_mapped, execute_reader_mapped_async
from dataaccess.engine import execute_scalar, execute_scalar_async
from dataaccess.exceptions import ConversionError, DatabaseError, DbConnectionError
from dataaccess.exceptions import IntegrityError, InvalidArgument, OperationalError
from dataaccess.exceptions import ProgrammingError, QueryError, UnsupportedDriver
from dataaccess.options import DatabaseOptions, iterdict_data_loader
from dataaccess.options import pandas_numpy_data_loader, pandas_pyarrow_data_loader
from dataaccess.parameters import add_in_out_parameter, add_out_parameter
from dataaccess.parameters import add_parameter, add_parameters
from dataaccess.parameters import add_return_parameter
from dataaccess.reader import get_value, get_value_or_none
from dataaccess.types import CommandSpec, CommandType, ConnectionState, DbType
from dataaccess.types import Parameter, ParameterDirection

__all__ = [
    'CommandSpec',
    'CommandType',
    'ConnectionState',
    'ConnectionWrapper',
    'ConversionError',
    'DataAdapter',
    'DatabaseError',
    'DatabaseOptions',
    'DbConnectionError',
    'DbType',
    'IntegrityError',
    'InvalidArgument',
    'OperationalError',
    'Parameter',
    'ParameterDirection',
    'PostgresConnection',
    'PostgresDataAdapter',
    'ProgrammingError',
    'QueryError',
    'SQLiteConnection',
    'SQLiteDataAdapter',
    'ScopedReader',
    'UnsupportedDriver',
    'add_in_out_parameter',
    'add_out_parameter',
    'add_parameter',
    'add_parameters',
    'add_return_parameter',
    'connect',
    'create_command',
    'create_data_adapter',
    'execute_command_reader_mapped',
    'execute_command_reader_mapped_async',
    'execute_non_query',
    'execute_non_query_async',
    'execute_reader',
    'execute_reader_async',
    'execute_reader_mapped',
    'execute_reader_mapped_async',
    'execute_scalar',
    'execute_scalar_async',
    'get_value',
    'get_value_or_none',
    'iterdict_data_loader',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'register_provider_factory',
    'resolve_adapter',
    'unregister_provider_factory',
]
