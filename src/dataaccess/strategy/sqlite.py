"""
SQLite-specific strategy implementation.

This module implements the DatabaseStrategy interface for the sqlite3 driver.
It handles SQLite's features and limitations such as:
- Named ``:name`` placeholders
- No stored procedures
- No statement timeout; a progress handler aborts statements past a deadline
- Foreign keys disabled by default
"""
import logging
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from dataaccess.exceptions import QueryError
from dataaccess.strategy.base import DatabaseStrategy, register_strategy
from dataaccess.types import Parameter

if TYPE_CHECKING:
    from dataaccess.options import DatabaseOptions

logger = logging.getLogger(__name__)

# Number of SQLite VM instructions between deadline checks
PROGRESS_HANDLER_STEPS = 1000


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for SQLite."""
        return f'sqlite:///{options.database}'

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite.

        Async execution may run a blocking command on a worker thread, so the
        connection must not be pinned to the thread that opened it.
        """
        connect_args: dict[str, Any] = {'check_same_thread': False}
        if options.timeout:
            connect_args['timeout'] = options.timeout
        return {'connect_args': connect_args}

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for SQLite.
        """
        self.enable_autocommit(raw_conn)
        raw_conn.execute('PRAGMA foreign_keys = ON')

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def render_placeholder(self, name: str) -> str:
        return f':{name}'

    def build_procedure_call(self, procedure: str,
                             parameters: Iterable[Parameter]) -> tuple[str, dict[str, Any]]:
        raise QueryError(f'SQLite does not support stored procedures ({procedure}); '
                         'use CommandType.TEXT')

    def apply_command_timeout(self, raw_conn: Any, seconds: int) -> None:
        """Interrupt statements running past the deadline.

        The interrupted statement raises sqlite3.OperationalError.
        """
        deadline = time.monotonic() + seconds

        def check_deadline() -> int:
            return 1 if time.monotonic() > deadline else 0

        raw_conn.set_progress_handler(check_deadline, PROGRESS_HANDLER_STEPS)
        logger.debug(f'Applied {seconds}s command timeout')

    def clear_command_timeout(self, raw_conn: Any) -> None:
        raw_conn.set_progress_handler(None, 0)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']
