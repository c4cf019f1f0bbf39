"""
Type handling for database values.

This module provides:
- Record: the immutable associative row returned by decoding
- Coercion: raw driver value + engine type name -> canonical scalar
- Type names: per-engine rendering of cursor metadata as type names
- TypeConverter: normalize Python/NumPy/Pandas values before SQL rendering
"""
import datetime
import decimal
import logging
import math
import uuid
from collections.abc import Callable, Iterator, Mapping
from typing import Any

import numpy as np
import pandas as pd
from psycopg.postgres import types as pg_types
from pymysql.constants import FIELD_TYPE, FLAG

from dbmap.exceptions import TypeConversionError

logger = logging.getLogger(__name__)

BINARY_CHARSET = 63


# Record - decoded row

class Record(Mapping):
    """Read-only mapping of column name to canonical value.

    Values are reachable by key or attribute::

        >>> r = Record(name='widget', qty=5)
        >>> r['name'], r.qty
        ('widget', 5)
    """

    __slots__ = ('_data',)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        object.__setattr__(self, '_data', dict(*args, **kwargs))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError('Record is read-only')

    def __reduce__(self):
        return (Record, (self._data,))

    def __repr__(self) -> str:
        return f'Record({self._data!r})'

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def get_string(self, column: str) -> str:
        """Textual value of a column, empty string when missing or null.
        """
        value = self._data.get(column)
        if value is None:
            return ''
        return render_text(value)

    def get_int(self, column: str) -> int:
        """Integer value of a column, 0 when missing or not an integer.
        """
        try:
            return int(self.get_string(column))
        except ValueError:
            return 0

    def get_float(self, column: str) -> float:
        """Float value of a column, 0.0 when missing or not a number.
        """
        try:
            return float(self.get_string(column))
        except ValueError:
            return 0.0


# Coercion - driver value -> canonical scalar

def render_text(value: Any) -> str:
    """Default textual rendering of a raw driver value."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode('utf-8', errors='replace')
    if isinstance(value, bool):
        return '1' if value else '0'
    return str(value)


def _parse_int(text: str) -> int:
    return int(text)


def _parse_uint(text: str) -> int:
    value = int(text)
    if value < 0:
        raise ValueError(f'negative value {value} for unsigned column')
    return value


def _parse_float(text: str) -> float:
    return float(text)


def _parse_flag(text: str) -> bool:
    return int(text) == 1


def _parse_text(text: str) -> str:
    return text


TEXT_COERCIONS: dict[str, Callable[[str], Any]] = {
    'INT': _parse_int,
    'BIGINT': _parse_int,
    'UNSIGNED BIGINT': _parse_uint,
    'UNSIGNED INT': _parse_uint,
    'FLOAT': _parse_float,
    'TINYINT': _parse_flag,
    'BIT': _parse_flag,
    'VARCHAR': _parse_text,
    'TEXT': _parse_text,
    'TIMESTAMP': _parse_text,
    'VARBINARY': _parse_text,
}


def coerce_passthrough(value: Any, type_name: str, column: str | None = None) -> Any:
    """Return the driver value unchanged.

    psycopg already hands back natively typed values.
    """
    return value


def coerce_text(value: Any, type_name: str, column: str | None = None) -> Any:
    """Re-parse a driver value from its text rendering by declared type name.

    A null raw value is null for every type. Unknown type names keep the
    text rendering and log a warning; parse failures of known numeric types
    raise TypeConversionError.
    """
    if value is None:
        return None

    if isinstance(value, (bytes, bytearray)) and type_name.upper() == 'BIT':
        return int.from_bytes(bytes(value), 'big') == 1

    parse = TEXT_COERCIONS.get(type_name.upper())
    text = render_text(value)
    if parse is None:
        logger.warning(f'Unknown type: {type_name} (column {column}), keeping text value')
        return text

    try:
        return parse(text)
    except ValueError as err:
        raise TypeConversionError(column or '?', type_name, value) from err


# Type names - cursor metadata -> engine type name

def postgres_type_name(type_code: int) -> str:
    """Name of a PostgreSQL type OID from the psycopg registry."""
    info = pg_types.get(type_code)
    if info is None:
        return str(type_code)
    return info.name


_MYSQL_NAMES: dict[int, str] = {
    FIELD_TYPE.DECIMAL: 'DECIMAL',
    FIELD_TYPE.NEWDECIMAL: 'DECIMAL',
    FIELD_TYPE.TINY: 'TINYINT',
    FIELD_TYPE.SHORT: 'SMALLINT',
    FIELD_TYPE.INT24: 'MEDIUMINT',
    FIELD_TYPE.LONG: 'INT',
    FIELD_TYPE.LONGLONG: 'BIGINT',
    FIELD_TYPE.FLOAT: 'FLOAT',
    FIELD_TYPE.DOUBLE: 'DOUBLE',
    FIELD_TYPE.NULL: 'NULL',
    FIELD_TYPE.TIMESTAMP: 'TIMESTAMP',
    FIELD_TYPE.DATE: 'DATE',
    FIELD_TYPE.NEWDATE: 'DATE',
    FIELD_TYPE.TIME: 'TIME',
    FIELD_TYPE.DATETIME: 'DATETIME',
    FIELD_TYPE.YEAR: 'YEAR',
    FIELD_TYPE.BIT: 'BIT',
    FIELD_TYPE.JSON: 'JSON',
    FIELD_TYPE.ENUM: 'ENUM',
    FIELD_TYPE.SET: 'SET',
    FIELD_TYPE.GEOMETRY: 'GEOMETRY',
}

# (text name, binary name)
_MYSQL_STRING_NAMES: dict[int, tuple[str, str]] = {
    FIELD_TYPE.VARCHAR: ('VARCHAR', 'VARBINARY'),
    FIELD_TYPE.VAR_STRING: ('VARCHAR', 'VARBINARY'),
    FIELD_TYPE.STRING: ('CHAR', 'BINARY'),
    FIELD_TYPE.TINY_BLOB: ('TINYTEXT', 'TINYBLOB'),
    FIELD_TYPE.MEDIUM_BLOB: ('MEDIUMTEXT', 'MEDIUMBLOB'),
    FIELD_TYPE.LONG_BLOB: ('LONGTEXT', 'LONGBLOB'),
    FIELD_TYPE.BLOB: ('TEXT', 'BLOB'),
}

_MYSQL_SIGNED = {FIELD_TYPE.TINY, FIELD_TYPE.SHORT, FIELD_TYPE.INT24,
                 FIELD_TYPE.LONG, FIELD_TYPE.LONGLONG}


def mysql_type_name(type_code: int, flags: int = 0, charsetnr: int | None = None) -> str:
    """Name of a MySQL column type from its wire metadata.

    Integer types carry an ``UNSIGNED`` prefix when flagged; string and blob
    types report their binary variant for the binary character set.
    """
    if type_code in _MYSQL_STRING_NAMES:
        text_name, binary_name = _MYSQL_STRING_NAMES[type_code]
        return binary_name if charsetnr == BINARY_CHARSET else text_name

    name = _MYSQL_NAMES.get(type_code, f'UNKNOWN({type_code})')
    if type_code in _MYSQL_SIGNED and flags & FLAG.UNSIGNED:
        return f'UNSIGNED {name}'
    return name


_SQLSERVER_NAMES: dict[type, str] = {
    bool: 'BIT',
    int: 'BIGINT',
    float: 'FLOAT',
    str: 'VARCHAR',
    bytes: 'VARBINARY',
    bytearray: 'VARBINARY',
    decimal.Decimal: 'DECIMAL',
    datetime.datetime: 'DATETIME',
    datetime.date: 'DATE',
    datetime.time: 'TIME',
    uuid.UUID: 'UNIQUEIDENTIFIER',
}


# integer column size (precision) -> declared integer type
_SQLSERVER_INT_SIZES: dict[int, str] = {
    3: 'TINYINT',
    5: 'SMALLINT',
    10: 'INT',
    19: 'BIGINT',
}


def sqlserver_type_name(type_code: Any, column_size: int | None = None) -> str:
    """Name of a SQL Server column type from pyodbc's description.

    pyodbc reports the Python class it will return for the column, which is
    ``int`` for every integer type; the declared column size tells them apart.
    Without a size an integer column is named ``BIGINT``.
    """
    if type_code is int and column_size in _SQLSERVER_INT_SIZES:
        return _SQLSERVER_INT_SIZES[column_size]
    if isinstance(type_code, type):
        return _SQLSERVER_NAMES.get(type_code, type_code.__name__.upper())
    return str(type_code).upper()


# Type Converter - Python -> SQL text preparation

class TypeConverter:
    """Normalize NumPy and Pandas values to plain Python values.

    Missing markers (NaN, NaT, pd.NA) become None. Strings are never
    touched: an empty string is a value, not a null.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a plain Python value."""
        if value is None:
            return None

        if isinstance(value, str):
            return value

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if isinstance(value, np.datetime64):
            if np.isnat(value):
                return None
            return pd.Timestamp(value).to_pydatetime()

        if isinstance(value, (np.floating, np.integer, np.bool_)):
            if isinstance(value, np.floating) and np.isnan(value):
                return None
            return value.item()

        if pd.api.types.is_scalar(value) and pd.isna(value):
            return None

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        return value
