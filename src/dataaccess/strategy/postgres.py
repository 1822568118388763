"""
PostgreSQL-specific strategy implementation.

This module implements the DatabaseStrategy interface for the psycopg driver.
It handles PostgreSQL's features such as:
- Pyformat ``%(name)s`` placeholders (literal percent signs are doubled)
- Stored procedures invoked with CALL and named argument notation
- OUT and INOUT arguments returned as a single result row
- statement_timeout for command timeouts
"""
import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from dataaccess.exceptions import QueryError
from dataaccess.strategy.base import DatabaseStrategy, register_strategy
from dataaccess.types import Parameter, ParameterDirection

if TYPE_CHECKING:
    from dataaccess.options import DatabaseOptions

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z0-9_$]*')


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    escape_percent = True

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query_parts = []
        if options.timeout:
            query_parts.append(f'connect_timeout={options.timeout}')
        if options.appname:
            query_parts.append(f'application_name={options.appname}')

        url = (f'postgresql+psycopg://{options.username}:{options.password}'
               f'@{options.hostname}:{options.port}/{options.database}')

        if query_parts:
            url += '?' + '&'.join(query_parts)

        return url

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    def configure_connection(self, raw_conn: Any) -> None:
        """Switch the psycopg connection to autocommit.

        Any transaction left open by SQLAlchemy's connect-time checks is
        rolled back first; psycopg refuses to change autocommit mid-transaction.
        """
        if not raw_conn.autocommit:
            raw_conn.rollback()
            raw_conn.autocommit = True

    def render_placeholder(self, name: str) -> str:
        return f'%({name})s'

    def build_procedure_call(self, procedure: str,
                             parameters: Iterable[Parameter]) -> tuple[str, dict[str, Any]]:
        """Render ``CALL procedure(name => %(name)s, ...)``.

        OUT arguments are passed as NULL, as PostgreSQL requires; their values
        come back in the row the CALL returns. Return-value parameters have no
        CALL argument.
        """
        args = []
        values: dict[str, Any] = {}
        for param in parameters:
            if param.direction == ParameterDirection.RETURN_VALUE:
                continue
            name = param.bare_name
            if not _IDENTIFIER.fullmatch(name):
                raise QueryError(f'Invalid procedure argument name: {name!r}')
            if param.direction == ParameterDirection.OUTPUT:
                args.append(f'{name} => NULL')
            else:
                args.append(f'{name} => %({name})s')
                values[name] = self.parameter_value(param)

        sql = f"CALL {procedure.replace('%', '%%')}({', '.join(args)})"
        return sql, values

    def apply_command_timeout(self, raw_conn: Any, seconds: int) -> None:
        raw_conn.execute("SELECT set_config('statement_timeout', %s, false)",
                         (str(seconds * 1000),))
        logger.debug(f'Applied {seconds}s statement_timeout')

    def clear_command_timeout(self, raw_conn: Any) -> None:
        raw_conn.execute('RESET statement_timeout')

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']
