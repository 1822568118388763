"""
Command and reader implementations over DB-API 2.0 cursors (PEP-249).

`DbCommand` satisfies the `Command` protocol and `DataReader` the `Reader`
protocol for any connection wrapped by `ConnectionWrapper`. Dialect details
(paramstyle, stored procedure calls, timeouts) come from the connection's
strategy.
"""
import logging
import time
from collections.abc import Callable, Iterator
from functools import wraps
from typing import TYPE_CHECKING, Any, Self

from dataaccess.exceptions import InvalidArgument, QueryError
from dataaccess.types import CommandType, ConnectionState, Parameter
from dataaccess.types import ParameterCollection

if TYPE_CHECKING:
    from dataaccess.connection import ConnectionWrapper

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, cursor: Any, sql: str, params: dict | None):
        start = time.time()
        logger.debug(f'SQL:\n{sql}\nparams: {params}')
        try:
            result = func(self, cursor, sql, params)
            if hasattr(cursor, 'statusmessage'):
                logger.debug(f'Query result: {cursor.statusmessage}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{sql}\nparams: {params}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class DataReader:
    """Forward-only reader over a DB-API cursor.
    """

    def __init__(self, cursor: Any, on_close: Callable[[], None] | None = None) -> None:
        self.dbapi_cursor = cursor
        self._on_close = on_close
        self._names = [desc[0] for desc in cursor.description] if cursor.description else []
        self._row: tuple | None = None
        self.closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[Self]:
        """Advance through the rows, yielding the reader positioned on each."""
        while self.read():
            yield self

    @property
    def field_count(self) -> int:
        """Number of columns in the current result set."""
        return len(self._names)

    def get_name(self, ordinal: int) -> str:
        return self._names[ordinal]

    def get_ordinal(self, name: str) -> int:
        """Ordinal of a column, exact match first then case-insensitive.

        Raises IndexError if no column has that name.
        """
        if name in self._names:
            return self._names.index(name)
        lowered = name.lower()
        for i, column in enumerate(self._names):
            if column.lower() == lowered:
                return i
        raise IndexError(f'Column {name!r} not found in {self._names}')

    def read(self) -> bool:
        """Advance to the next row."""
        if self.closed:
            raise QueryError('The reader is closed')
        if not self._names:
            return False
        row = self.dbapi_cursor.fetchone()
        self._row = tuple(row) if row is not None else None
        return self._row is not None

    def _current(self) -> tuple:
        if self._row is None:
            raise QueryError('No current row; call read() first')
        return self._row

    def is_null(self, ordinal: int) -> bool:
        return self._current()[ordinal] is None

    def get_value(self, ordinal: int) -> Any:
        return self._current()[ordinal]

    def get_values(self) -> tuple:
        return self._current()

    def to_dict(self) -> dict[str, Any]:
        """Current row keyed by column name."""
        return dict(zip(self._names, self._current()))

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._row = None
        if self._on_close is not None:
            self._on_close()
        else:
            self.dbapi_cursor.close()


class DbCommand:
    """Command bound to a `ConnectionWrapper`.

    Text commands refer to parameters with ``@name`` markers; stored
    procedure commands are rendered by the dialect strategy. Each execution
    opens a DB-API cursor which is released when the result has been
    consumed, or when the returned reader is closed.
    """

    def __init__(self, connwrapper: 'ConnectionWrapper') -> None:
        self.connwrapper = connwrapper
        self.command_text = ''
        self.command_type = CommandType.TEXT
        self.command_timeout: int | None = None
        self._parameters = ParameterCollection()
        self._cursors: list[Any] = []
        self._timeout_applied = False
        self.closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def parameters(self) -> ParameterCollection:
        return self._parameters

    @property
    def strategy(self) -> Any:
        return self.connwrapper.strategy

    def create_parameter(self) -> Parameter:
        return Parameter()

    def _raw_connection(self) -> Any:
        if self.connwrapper.state != ConnectionState.OPEN:
            raise QueryError('The connection is not open')
        return self.connwrapper.dbapi_connection

    def _prepare(self) -> tuple[str, dict[str, Any] | None]:
        if self.closed:
            raise QueryError('The command is closed')
        if not self.command_text or not self.command_text.strip():
            raise InvalidArgument('The command text cannot be None or whitespace')
        if self.command_type == CommandType.STORED_PROCEDURE:
            return self.strategy.build_procedure_call(self.command_text, self.parameters)
        return self.strategy.build_text_command(self.command_text, self.parameters)

    @dumpsql
    def _run(self, cursor: Any, sql: str, params: dict[str, Any] | None) -> None:
        if params is None:
            cursor.execute(sql)
        else:
            cursor.execute(sql, params)

    def _execute(self) -> Any:
        raw_conn = self._raw_connection()
        sql, params = self._prepare()
        if self.command_timeout:
            self.strategy.apply_command_timeout(raw_conn, self.command_timeout)
            self._timeout_applied = True

        cursor = raw_conn.cursor()
        self._cursors.append(cursor)
        try:
            self._run(cursor, sql, params)
        except Exception:
            self._release(cursor)
            raise
        return cursor

    def _release(self, cursor: Any) -> None:
        if cursor in self._cursors:
            self._cursors.remove(cursor)
        if self.connwrapper.state != ConnectionState.OPEN:
            return
        cursor.close()
        if self._timeout_applied and not self._cursors:
            self._timeout_applied = False
            self.strategy.clear_command_timeout(self.connwrapper.dbapi_connection)

    def _collect_output_values(self, cursor: Any, row: tuple | None) -> None:
        if row is None or not any(p.is_output for p in self.parameters):
            return
        names = [desc[0] for desc in cursor.description]
        self.strategy.collect_output_values(dict(zip(names, row)), self.parameters)

    def execute_non_query(self) -> int:
        """Execute and return the driver-reported affected row count."""
        cursor = self._execute()
        try:
            if cursor.description is not None:
                self._collect_output_values(cursor, cursor.fetchone())
            return cursor.rowcount
        finally:
            self._release(cursor)

    def execute_scalar(self) -> Any:
        """Execute and return the first column of the first row, or None."""
        cursor = self._execute()
        try:
            if cursor.description is None:
                return None
            row = cursor.fetchone()
            self._collect_output_values(cursor, row)
            return row[0] if row is not None else None
        finally:
            self._release(cursor)

    def execute_reader(self) -> DataReader:
        """Execute and return a reader over the result rows.

        Closing the reader releases the underlying cursor.
        """
        cursor = self._execute()
        return DataReader(cursor, on_close=lambda: self._release(cursor))

    def close(self) -> None:
        """Release every open cursor. Safe to call more than once."""
        for cursor in list(self._cursors):
            self._release(cursor)
        self.closed = True
