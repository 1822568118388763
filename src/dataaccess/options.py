import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow as pa

from dataaccess.strategy import get_available_dialects, get_strategy_class
from dataaccess.strategy import is_supported_dialect

__all__ = [
    'DatabaseOptions',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not data:
        return []
    return list(data)


def _empty_dataframe(columns) -> pd.DataFrame:
    """Create empty DataFrame with column metadata."""
    return pd.DataFrame(columns=list(columns))


def pandas_numpy_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not data:
        return _empty_dataframe(columns)

    return pd.DataFrame.from_records(list(data), columns=list(columns))


def pandas_pyarrow_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not data:
        return _empty_dataframe(columns)

    column_names = list(columns)
    columns_data = [[row[col] for row in data] for col in column_names]
    return pa.table(columns_data, names=column_names).to_pandas(types_mapper=pd.ArrowDtype)


def _scriptname() -> str | None:
    return Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else None


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `postgresql`, `sqlite`

    - timeout: seconds to wait when connecting (0 for the driver default)
    - command_timeout: default per-command timeout applied to every command
      created by the connection (0 for none)
    - data_loader: turns rows into a result for `DataAdapter.fill`
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    command_timeout: int = 0
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or _scriptname() or 'python_console'
        if self.command_timeout and self.command_timeout < 0:
            raise ValueError('command_timeout cannot be negative')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if self.data_loader is None:
            self.data_loader = pandas_numpy_data_loader
