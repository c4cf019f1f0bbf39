import os
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

import pandas as pd
import pyarrow as pa

from dbmap.exceptions import UnsupportedDialectError
from dbmap.strategy import get_available_dialects, get_strategy_class
from dbmap.strategy import is_supported_dialect
from dbmap.types import Record

__all__ = [
    'DatabaseOptions',
    'load_options',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]


def iterdict_data_loader(data: list[Record], columns: list[str],
                         column_types: dict[str, str] | None = None, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts the same arguments as the DataFrame loaders for compatibility,
    but only turns records into plain dicts.
    """
    if not data:
        return []
    return [row.to_dict() for row in data]


def _empty_dataframe(columns: list[str], column_types: dict[str, str] | None) -> pd.DataFrame:
    """Create empty DataFrame with column metadata."""
    df = pd.DataFrame(columns=columns)
    df.attrs['column_types'] = dict(column_types or {})
    return df


def pandas_numpy_data_loader(data: list[Record], columns: list[str],
                             column_types: dict[str, str] | None = None, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    Includes type information in the DataFrame.attrs attribute.
    """
    if not data:
        return _empty_dataframe(columns, column_types)

    df = pd.DataFrame.from_records([row.to_dict() for row in data], columns=columns)
    df.attrs['column_types'] = dict(column_types or {})
    return df


def pandas_pyarrow_data_loader(data: list[Record], columns: list[str],
                               column_types: dict[str, str] | None = None, **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not data:
        return _empty_dataframe(columns, column_types)

    columns_data = [[row.get(col) for row in data] for col in columns]
    df = pa.table(columns_data, names=columns).to_pandas(types_mapper=pd.ArrowDtype)
    df.attrs['column_types'] = dict(column_types or {})
    return df


def _scriptname() -> str | None:
    """Name of the running script without its extension."""
    script = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else ''
    return os.path.splitext(script)[0] or None


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `postgres`, `mysql`, `sqlserver`

    SQL Server connects through pyodbc; `odbc_driver` names the installed
    ODBC driver.

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)
    """
    drivername: str = 'postgres'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    odbc_driver: str = 'ODBC Driver 18 for SQL Server'
    data_loader: Callable[..., Any] | None = None
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            raise UnsupportedDialectError(self.drivername, get_available_dialects())
        self.appname = self.appname or _scriptname() or 'python_console'
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if not self.port:
            self.port = strategy_cls.default_port
        if self.data_loader is None:
            self.data_loader = pandas_numpy_data_loader

    def __str__(self) -> str:
        return (f'{self.drivername}://{self.username}@{self.hostname}:{self.port}'
                f'/{self.database}')


def _section_values(section: Any) -> dict[str, Any]:
    """Read option values from a mapping or an attribute namespace."""
    if isinstance(section, Mapping):
        return dict(section)
    return {k: v for k, v in vars(section).items() if not k.startswith('_')}


def load_options(options: 'DatabaseOptions | Mapping[str, Any] | str | None' = None,
                 config: Any | None = None, **kw: Any) -> DatabaseOptions:
    """Build DatabaseOptions from any of the accepted option forms.

    Args:
        options: Can be:
                - DatabaseOptions object
                - Name of a section on ``config`` (dotted names walk nested sections)
                - Dictionary of options
                - None, to use keyword arguments only
        config: Configuration object or module holding named sections
        **kw: Additional keyword arguments to override options

    Unknown keys in a config section are ignored.

    Returns
        DatabaseOptions
    """
    known = {f.name for f in fields(DatabaseOptions)}
    overrides = {k: v for k, v in kw.items() if k in known}

    if isinstance(options, DatabaseOptions):
        return replace(options, **overrides) if overrides else options

    if isinstance(options, str):
        if config is None:
            raise ValueError(f'config is required to load options section {options!r}')
        section = config
        for name in options.split('.'):
            section = section[name] if isinstance(section, Mapping) else getattr(section, name)
        values = _section_values(section)
    elif options is None:
        values = {}
    else:
        values = dict(options)

    values = {k: v for k, v in values.items() if k in known}
    values.update(overrides)
    return DatabaseOptions(**values)
