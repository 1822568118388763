"""
Base strategy interface for driver bindings.

Defines the abstract base class that all dialect-specific strategy implementations
must inherit from. A strategy knows how its DB-API driver is configured, which
paramstyle it expects, how stored procedures are called and how command
timeouts are enforced. `DbCommand` and `ConnectionWrapper` delegate every
dialect decision to it.
"""
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from dataaccess.conversion import TypeConverter, change_type
from dataaccess.sql import marker_names, standardize_placeholders
from dataaccess.types import Parameter, ParameterDirection

if TYPE_CHECKING:
    from dataaccess.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for dialect-specific behavior.
    """

    #: Driver paramstyle uses ``%`` so literal percent signs need escaping
    escape_percent: bool = False

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> str:
        """Build the database connection URL for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            Connection URL string suitable for SQLAlchemy
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Configure a freshly opened raw DBAPI connection.
        """

    @abstractmethod
    def render_placeholder(self, name: str) -> str:
        """Driver placeholder for the named parameter.

        Args:
            name: Parameter name without the marker

        Returns
            Placeholder text, e.g. ':name' or '%(name)s'
        """

    @abstractmethod
    def build_procedure_call(self, procedure: str,
                             parameters: Iterable[Parameter]) -> tuple[str, dict[str, Any]]:
        """Render a stored procedure invocation.

        Args:
            procedure: Procedure name as given by the caller
            parameters: Bound command parameters

        Returns
            SQL text and the parameter values keyed by bare name
        """

    @abstractmethod
    def apply_command_timeout(self, raw_conn: Any, seconds: int) -> None:
        """Limit the duration of the next statement on `raw_conn`.
        """

    @abstractmethod
    def clear_command_timeout(self, raw_conn: Any) -> None:
        """Undo `apply_command_timeout`.
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def parameter_value(self, parameter: Parameter) -> Any:
        """Value handed to the driver for an input parameter.

        NumPy/Pandas values are normalized, the value is coerced to the
        declared DbType and strings/bytes are truncated to the declared size.
        """
        value = TypeConverter.convert_value(parameter.value)
        if value is None:
            return None
        if parameter.db_type is not None and parameter.db_type.python_type is not None:
            value = change_type(value, parameter.db_type.python_type)
        if parameter.size and isinstance(value, str | bytes):
            value = value[:parameter.size]
        return value

    def build_text_command(self, text: str,
                           parameters: Iterable[Parameter]) -> tuple[str, dict[str, Any] | None]:
        """Render a text command in the driver's paramstyle.

        Only parameters referenced by an ``@name`` marker are passed on.
        Returns None for the parameters when the text has no markers.
        """
        names = {name.lower() for name in marker_names(text)}
        if not names:
            return text, None

        values = {p.bare_name: self.parameter_value(p)
                  for p in parameters if p.is_input and p.bare_name.lower() in names}
        by_lower = {name.lower(): name for name in values}

        def render(name: str) -> str:
            return self.render_placeholder(by_lower.get(name.lower(), name))

        return standardize_placeholders(text, render, self.escape_percent), values

    def collect_output_values(self, row: dict[str, Any] | None,
                              parameters: Iterable[Parameter]) -> None:
        """Copy output values from a procedure's result row onto the parameters.

        Columns are matched to parameters by case-insensitive bare name; a
        return-value parameter also accepts a column named 'return_value'.
        """
        if not row:
            return
        lowered = {str(k).lower(): v for k, v in row.items()}
        for param in parameters:
            if not param.is_output:
                continue
            key = param.bare_name.lower()
            if key in lowered:
                param.value = lowered[key]
            elif param.direction == ParameterDirection.RETURN_VALUE and 'return_value' in lowered:
                param.value = lowered['return_value']
