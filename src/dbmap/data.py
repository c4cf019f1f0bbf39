"""
Data operations for database access (INSERT, UPDATE, DELETE, upsert).

Every value is rendered into the statement text with format_for_sql using
the column types of a freshly fetched schema; the schema cache is always
bypassed here so mutations never act on stale column types. Rows are
addressed by their ``id`` column only.
"""
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from dbmap.exceptions import ValidationError
from dbmap.schema import fetch_schema
from dbmap.sql import format_for_sql, parse_id, render_id, validate_identifier

if TYPE_CHECKING:
    from dbmap.connection import Database

logger = logging.getLogger(__name__)

__all__ = ['insert', 'update', 'delete', 'delete_where', 'upsert']


def _format_fields(db: 'Database', table: str, record: Mapping[str, Any],
                   exclude: set[str] | frozenset[str] = frozenset()) -> tuple[list[str], list[str]]:
    """Column names (catalog casing) and SQL literals for each record field.
    """
    strategy = db.strategy
    table_schema = fetch_schema(db, table, bypass_cache=True)
    case_map = {col.name.lower(): col for col in table_schema.columns}

    columns, values = [], []
    for key, value in record.items():
        if key in exclude:
            continue
        validate_identifier(key, 'column')
        col = case_map.get(key.lower())
        if col is None:
            raise ValidationError(f'Column {key} not found in {table}')
        columns.append(col.name)
        values.append(format_for_sql(col.native_type, value, strategy))
    return columns, values


def _id_key(record: Mapping[str, Any]) -> str | None:
    """The record key naming the ``id`` column, matched case-insensitively."""
    for key in record:
        if isinstance(key, str) and key.lower() == 'id':
            return key
    return None


def insert(db: 'Database', table: str, record: Mapping[str, Any]) -> int:
    """Insert one row and return its generated id.

    An empty record inserts a row of column defaults.
    """
    validate_identifier(table, 'table')
    columns, values = _format_fields(db, table, record)
    return db.strategy.insert_returning_id(db, table, columns, values)


def update(db: 'Database', table: str, record: Mapping[str, Any]) -> int:
    """Update the row selected by ``record['id']`` and return the affected row count.

    The ``id`` key matches in any case and is never assigned. A record
    with nothing but ``id`` updates nothing and returns 0.
    """
    validate_identifier(table, 'table')
    id_key = _id_key(record)
    if id_key is None:
        raise ValidationError(f'Cannot update {table}: record has no id')
    selector = render_id(record[id_key], db.strategy)

    columns, values = _format_fields(db, table, record, exclude={id_key})
    if not columns:
        logger.debug(f'Nothing to update in {table} for id={selector}')
        return 0

    assignments = ', '.join(f'{col} = {val}' for col, val in zip(columns, values))
    return db.execute(f'UPDATE {table} SET {assignments} WHERE id = {selector}')


def delete(db: 'Database', table: str, record: Mapping[str, Any]) -> int:
    """Delete the row selected by ``record['id']``.
    """
    validate_identifier(table, 'table')
    id_key = _id_key(record)
    if id_key is None:
        raise ValidationError(f'Cannot delete from {table}: record has no id')
    selector = render_id(record[id_key], db.strategy)
    return db.execute(f'DELETE FROM {table} WHERE id = {selector}')


def delete_where(db: 'Database', table: str, predicate: str) -> int:
    """Delete every row matching a raw predicate, embedded verbatim.
    """
    validate_identifier(table, 'table')
    if not predicate or not predicate.strip():
        raise ValidationError(f'Refusing to delete from {table} without a predicate')
    return db.execute(f'DELETE FROM {table} WHERE {predicate}')


def upsert(db: 'Database', table: str, record: Mapping[str, Any]) -> int:
    """Update when ``record['id']`` parses to a non-negative integer, else insert.

    Returns the parsed id after an update, the generated id after an insert.
    An unparsable or negative id is dropped before inserting.
    """
    id_key = _id_key(record)
    row_id = parse_id(record[id_key]) if id_key is not None else None
    fields = {k: v for k, v in record.items() if k != id_key}
    if row_id is None or row_id < 0:
        return insert(db, table, fields)

    update(db, table, {**fields, 'id': row_id})
    return row_id
