"""
Driver-agnostic table access for PostgreSQL, MySQL and SQL Server.

All operations can be called either as:
- Module functions: dbmap.insert(db, table, record)
- Database methods: db.insert(table, record)

The module functions are facades over the Database methods.
"""
__version__ = '0.1.0'

from collections.abc import Mapping
from typing import Any

from dbmap.connection import Database, connect, dispose_all_engines
from dbmap.exceptions import ConnectionFailure, DatabaseError, ValidationError
from dbmap.exceptions import DbConnectionError, ImportSchemaError
from dbmap.exceptions import IncompleteAnnotationError, IntegrityError
from dbmap.exceptions import IntegrityViolationError, OperationalError
from dbmap.exceptions import ProgrammingError, QueryError, TypeConversionError
from dbmap.exceptions import UniqueViolation, UnsupportedDialectError
from dbmap.options import DatabaseOptions, iterdict_data_loader, load_options
from dbmap.options import pandas_numpy_data_loader, pandas_pyarrow_data_loader
from dbmap.schema import ColumnSpec, Link, TableSchema, build_links
from dbmap.sql import format_for_sql
from dbmap.types import Record


def select(db: Database, table: str, columns: list[str] | None = None,
           where: str | None = None, order_by: list[str] | str | None = None,
           direction: str | None = None) -> list[Record]:
    """Select rows from one table.
    """
    return db.select(table, columns, where, order_by, direction)


def execute(db: Database, sql: str) -> int:
    """Execute a statement and return the affected row count.
    """
    return db.execute(sql)


def list_tables(db: Database) -> list[str]:
    return db.list_tables()


def fetch_schema(db: Database, table: str, bypass_cache: bool = False) -> TableSchema:
    """Read one table's columns from the catalog.

    A nonexistent table yields a schema with no columns.
    """
    return db.fetch_schema(table, bypass_cache=bypass_cache)


def fetch_all_schemas(db: Database, bypass_cache: bool = False) -> list[TableSchema]:
    return db.fetch_all_schemas(bypass_cache=bypass_cache)


def create_table(db: Database, table_schema: TableSchema) -> None:
    db.create_table(table_schema)


def delete_table(db: Database, table: str) -> None:
    db.delete_table(table)


def add_column(db: Database, table: str, name: str, native_type: str,
               comment: str = '') -> None:
    db.add_column(table, name, native_type, comment)


def delete_column(db: Database, table: str, name: str) -> None:
    db.delete_column(table, name)


def insert(db: Database, table: str, record: Mapping[str, Any]) -> int:
    """Insert a row and return its generated id.
    """
    return db.insert(table, record)


def update(db: Database, table: str, record: Mapping[str, Any]) -> int:
    """Update the row selected by the record's id.
    """
    return db.update(table, record)


def delete(db: Database, table: str, record: Mapping[str, Any]) -> int:
    return db.delete(table, record)


def delete_where(db: Database, table: str, predicate: str) -> int:
    return db.delete_where(table, predicate)


def upsert(db: Database, table: str, record: Mapping[str, Any]) -> int:
    """Update when the record has a usable id, otherwise insert.
    """
    return db.upsert(table, record)


__all__ = [
    'Database',
    'DatabaseOptions',
    'connect',
    'dispose_all_engines',
    'load_options',
    'iterdict_data_loader',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'Record',
    'ColumnSpec',
    'TableSchema',
    'Link',
    'build_links',
    'format_for_sql',
    'select',
    'execute',
    'list_tables',
    'fetch_schema',
    'fetch_all_schemas',
    'create_table',
    'delete_table',
    'add_column',
    'delete_column',
    'insert',
    'update',
    'delete',
    'delete_where',
    'upsert',
    'DatabaseError',
    'ConnectionFailure',
    'QueryError',
    'TypeConversionError',
    'IntegrityViolationError',
    'ValidationError',
    'UnsupportedDialectError',
    'IncompleteAnnotationError',
    'ImportSchemaError',
    'DbConnectionError',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
    'UniqueViolation',
]
