"""Low-level connection utilities with no internal dependencies.

These utilities work with ConnectionWrapper instances and SQLAlchemy engines
and connections, and import nothing from the rest of the package.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)


def get_dialect_name(obj: Any) -> str:
    """Get dialect name for a database connection or engine.
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    if hasattr(obj, 'engine') and hasattr(obj.engine, 'dialect'):
        return str(obj.engine.dialect.name).lower()

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')
