"""
Record decoding: turn executed cursors into lists of Records.
"""
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from dbmap.sql import build_select_sql
from dbmap.types import Record

if TYPE_CHECKING:
    from dbmap.connection import Database
    from dbmap.cursor import Cursor
    from dbmap.strategy import DatabaseStrategy

logger = logging.getLogger(__name__)


def decode(cursor: 'Cursor', strategy: 'DatabaseStrategy | None' = None) -> list[Record]:
    """Decode every row of an executed cursor.

    Column names and type names are read once, before the first row. Each
    value is coerced by the strategy; a coercion failure aborts the decode
    and no partial result is returned.
    """
    strategy = strategy or cursor.db.strategy
    names = cursor.column_names()
    if not names:
        return []
    types = cursor.column_types()

    records = []
    for row in cursor:
        records.append(Record({
            name: strategy.coerce_value(value, types.get(name, ''), name)
            for name, value in zip(names, row)
            }))
    logger.debug(f'Decoded {len(records)} rows with columns {names}')
    return records


def query(db: 'Database', sql: str) -> list[Record]:
    """Execute a statement and decode its result set.
    """
    strategy = db.strategy
    with db.cursor(sql) as cursor:
        return decode(cursor, strategy)


def query_frame(db: 'Database', sql: str,
                data_loader: Callable[..., Any] | None = None) -> Any:
    """Execute a statement and shape the decoded rows with a data loader.

    The loader defaults to the handle options' ``data_loader``.
    """
    strategy = db.strategy
    with db.cursor(sql) as cursor:
        records = decode(cursor, strategy)
        columns = cursor.column_names()
        column_types = cursor.column_types()
    loader = data_loader or db.data_loader
    return loader(records, columns, column_types=column_types)


def select(db: 'Database', table: str, columns: Sequence[str] | None = None,
           where: str | None = None, order_by: Sequence[str] | str | None = None,
           direction: str | None = None) -> list[Record]:
    """Select rows from one table.

    ``where`` is embedded verbatim; table, column and sort key names are
    validated identifiers.
    """
    return query(db, build_select_sql(table, columns, where, order_by, direction))
