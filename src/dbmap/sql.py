"""
SQL text generation helpers.

No parameters are ever bound: values are rendered into statement text by
:func:`format_for_sql`, which routes every quoted literal through the active
strategy's ``quote_literal``. Identifiers are embedded unquoted and must pass
:func:`validate_identifier` first.
"""
import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from dbmap.exceptions import ValidationError
from dbmap.types import TypeConverter, render_text

if TYPE_CHECKING:
    from dbmap.strategy import DatabaseStrategy

logger = logging.getLogger(__name__)

__all__ = [
    'validate_identifier',
    'validate_native_type',
    'format_for_sql',
    'parse_id',
    'render_id',
    'build_select_sql',
]

IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
NATIVE_TYPE_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9_ ]*(\([A-Za-z0-9, ]*\))?(\[\])?( [A-Za-z ]+)?$')

# type tokens whose values are written as quoted string literals
QUOTED_TYPE_TOKENS = ('char', 'text', 'date', 'timestamp')


def validate_identifier(name: str, kind: str = 'identifier') -> str:
    """Return ``name`` if it is a plain SQL identifier, else raise.

    Raises
        ValidationError: If the name is empty or contains anything but
        letters, digits and underscores (or starts with a digit)
    """
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
        raise ValidationError(f'Invalid {kind} name: {name!r}')
    return name


def validate_native_type(native_type: str) -> str:
    """Return ``native_type`` if it looks like a column type token, else raise.

    Accepts forms such as ``integer``, ``varchar(50)``, ``numeric(10, 2)``,
    ``nvarchar(max)``, ``double precision``, ``int unsigned`` and ``integer[]``.
    """
    if not isinstance(native_type, str) or not NATIVE_TYPE_PATTERN.match(native_type.strip()):
        raise ValidationError(f'Invalid column type: {native_type!r}')
    return native_type.strip()


def format_for_sql(native_type: str, value: Any, strategy: 'DatabaseStrategy') -> str:
    """Render a value as an SQL literal for a column of the given type.

    Rules, in order:

    1. ``None`` (and NaN/NaT/NA) is ``NULL``.
    2. An empty rendering is ``NULL`` unless the type contains ``char``.
    3. Types containing ``char``, ``text``, ``date`` or ``timestamp`` get a
       quoted, escaped string literal.
    4. Anything else is emitted unquoted.

    Examples
        >>> from dbmap.strategy import get_strategy
        >>> pg = get_strategy('postgres')
        >>> format_for_sql('integer', '', pg)
        'NULL'
        >>> format_for_sql('varchar(10)', '', pg)
        "''"
        >>> format_for_sql('text', "it's", pg)
        "'it''s'"
        >>> format_for_sql('integer', 42, pg)
        '42'
    """
    value = TypeConverter.convert_value(value)
    if value is None:
        return 'NULL'

    type_lower = (native_type or '').lower()
    text = render_text(value)

    if 'char' not in type_lower and text == '':
        return 'NULL'

    if any(token in type_lower for token in QUOTED_TYPE_TOKENS):
        return strategy.quote_literal(text)

    if isinstance(value, (bool, int, float)):
        return strategy.render_scalar(value)
    return text


def parse_id(value: Any) -> int | None:
    """Integer value of an ``id`` field, None when it does not parse.

    Whole-number floats, as read back from a float64 DataFrame column, are
    integers too.

    >>> parse_id(7.0), parse_id('7.0'), parse_id(7.5)
    (7, 7, None)
    """
    value = TypeConverter.convert_value(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = render_text(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def render_id(value: Any, strategy: 'DatabaseStrategy') -> str:
    """Render an ``id`` selector: integers bare, anything else quoted."""
    parsed = parse_id(value)
    if parsed is not None:
        return str(parsed)
    if value is None:
        return 'NULL'
    return strategy.quote_literal(render_text(value))


def build_select_sql(table: str, columns: Sequence[str] | None = None,
                     where: str | None = None, order_by: Sequence[str] | str | None = None,
                     direction: str | None = None) -> str:
    """Generate a SELECT statement.

    Args:
        table: Table name
        columns: List of columns to select (None for *)
        where: WHERE clause (without 'WHERE' keyword), embedded verbatim
        order_by: Sort column or list of sort columns
        direction: 'asc' or 'desc', applied after the sort keys

    Returns
        SQL query string
    """
    validate_identifier(table, 'table')

    if columns:
        select_clause = 'SELECT ' + ', '.join(validate_identifier(col, 'column') for col in columns)
    else:
        select_clause = 'SELECT *'

    sql = f'{select_clause} FROM {table}'

    if where:
        sql += f' WHERE {where}'

    if isinstance(order_by, str):
        order_by = [order_by]
    if order_by:
        sql += ' ORDER BY ' + ', '.join(validate_identifier(key, 'column') for key in order_by)
        if direction:
            if direction.lower() not in {'asc', 'desc'}:
                raise ValidationError(f'Invalid sort direction: {direction!r}')
            sql += f' {direction.upper()}'

    return sql
