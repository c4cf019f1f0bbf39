"""
JSON schema files: export a live database's tables, create or drop the
tables a file describes.

File format: a list of ``{"name": <table>, "columns": {<column>: <descriptor>}}``
objects, descriptor being ``native_type[|comment]``.
"""
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from dbmap.exceptions import ImportSchemaError
from dbmap.schema import TableSchema, create_table, delete_table, fetch_all_schemas

if TYPE_CHECKING:
    from dbmap.connection import Database

logger = logging.getLogger(__name__)

__all__ = ['save_schema', 'load_schema_file', 'import_schema', 'clear_import_schema']


def save_schema(db: 'Database', path: str | Path) -> None:
    """Write every base table's schema to ``path``.
    """
    schemas = fetch_all_schemas(db, bypass_cache=True)
    Path(path).write_text(json.dumps([s.to_dict() for s in schemas], indent=1))
    logger.info(f'Saved {len(schemas)} table schemas to {path}')


def load_schema_file(path: str | Path, db: 'Database | None' = None) -> list[TableSchema]:
    """Read table schemas from a schema file, bound to ``db`` when given."""
    entries = json.loads(Path(path).read_text())
    return [TableSchema.from_dict(entry, bind=db) for entry in entries]


def import_schema(db: 'Database', path: str | Path) -> list[str]:
    """Create every table in the file.

    Every table is attempted; failures are logged and then raised together.

    Returns
        Names of the tables created

    Raises
        ImportSchemaError: If any table could not be created
    """
    created, failures = [], {}
    for table_schema in load_schema_file(path, db):
        try:
            create_table(db, table_schema)
            created.append(table_schema.name)
        except Exception as err:
            logger.error(f'Failed to create {table_schema.name}: {err}')
            failures[table_schema.name] = err
    if failures:
        raise ImportSchemaError(failures)
    return created


def clear_import_schema(db: 'Database', path: str | Path) -> list[str]:
    """Drop every table in the file, with the same error policy as import_schema.
    """
    dropped, failures = [], {}
    for table_schema in load_schema_file(path, db):
        try:
            delete_table(db, table_schema.name)
            dropped.append(table_schema.name)
        except Exception as err:
            logger.error(f'Failed to drop {table_schema.name}: {err}')
            failures[table_schema.name] = err
    if failures:
        raise ImportSchemaError(failures)
    return dropped
