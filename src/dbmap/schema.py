"""
Table schema descriptors, introspection and DDL operations.

This module provides:
- ColumnSpec / TableSchema: ordered, structured column descriptions where the
  native type and the documentation comment are separate fields
- Introspection from the engine catalog (fetch_schema, fetch_all_schemas,
  list_tables, list_sequences) with a TTL cache and a bypass_cache parameter
- Materialization (create_table, delete_table, add_column, delete_column)
- Link inference from `<table>_id` column names for documentation

A table that does not exist introspects as a TableSchema with no columns;
callers check ``is_empty`` when existence is the question.
"""
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dbmap.cache import Cache, cacheable_schema
from dbmap.exceptions import IncompleteAnnotationError, ValidationError
from dbmap.query import query
from dbmap.sql import validate_identifier, validate_native_type

if TYPE_CHECKING:
    from dbmap.connection import Database

logger = logging.getLogger(__name__)

__all__ = [
    'ColumnSpec',
    'TableSchema',
    'Link',
    'build_links',
    'list_tables',
    'list_sequences',
    'fetch_schema',
    'fetch_all_schemas',
    'create_table',
    'delete_table',
    'add_column',
    'delete_column',
]

# textual renderings of a missing comment
_NULL_COMMENTS = {'<nil>', 'none', 'null'}


def clean_comment(value: Any) -> str | None:
    """Normalize a catalog comment: blank or placeholder text means no comment."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in _NULL_COMMENTS:
        return None
    return text


@dataclass(frozen=True)
class ColumnSpec:
    """One column: native type token plus optional documentation comment.
    """
    name: str
    native_type: str
    comment: str | None = None

    @classmethod
    def parse(cls, name: str, descriptor: str) -> 'ColumnSpec':
        """Build from a ``native_type[|comment]`` descriptor string.

        Splits on the first pipe only, so a comment may itself contain pipes.

        >>> ColumnSpec.parse('qty', 'integer|units on hand | approx')
        ColumnSpec(name='qty', native_type='integer', comment='units on hand | approx')
        """
        native_type, sep, comment = descriptor.partition('|')
        return cls(name, native_type.strip(), clean_comment(comment) if sep else None)

    @property
    def descriptor(self) -> str:
        """``native_type`` with ``|comment`` appended when there is one."""
        if self.comment:
            return f'{self.native_type}|{self.comment}'
        return self.native_type


@dataclass(frozen=True)
class TableSchema:
    """Ordered column description of one table.

    ``bind`` is the handle the descriptor was fetched from or created for;
    it is never serialized and does not take part in equality.
    """
    name: str
    columns: tuple[ColumnSpec, ...] = ()
    bind: 'Database | None' = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'columns', tuple(self.columns))

    @classmethod
    def from_types(cls, name: str, types: Mapping[str, str],
                   bind: 'Database | None' = None) -> 'TableSchema':
        """Build from a mapping of column name to descriptor string, in mapping order.
        """
        columns = [ColumnSpec.parse(col, descriptor) for col, descriptor in types.items()]
        return cls(name, columns, bind)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], bind: 'Database | None' = None) -> 'TableSchema':
        """Build from ``{"name": ..., "columns": {column: descriptor}}``.

        ``columns`` may also be a list of ``{"name", "native_type", "comment"}``
        objects.
        """
        columns = data.get('columns') or {}
        if isinstance(columns, Mapping):
            return cls.from_types(data['name'], columns, bind)
        specs = [ColumnSpec(c['name'], c['native_type'], clean_comment(c.get('comment')))
                 for c in columns]
        return cls(data['name'], specs, bind)

    def to_dict(self) -> dict[str, Any]:
        return {'name': self.name,
                'columns': {col.name: col.descriptor for col in self.columns}}

    def column(self, name: str) -> ColumnSpec | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    @property
    def types(self) -> dict[str, str]:
        """Column name to native type token."""
        return {col.name: col.native_type for col in self.columns}

    @property
    def is_empty(self) -> bool:
        return not self.columns

    def fetch(self, bypass_cache: bool = False) -> 'TableSchema':
        """Re-read this table from the bound handle.
        """
        if self.bind is None:
            raise ValidationError(f'Schema for {self.name} is not bound to a database')
        return fetch_schema(self.bind, self.name, bypass_cache=bypass_cache)


@dataclass(frozen=True)
class Link:
    """Documentation-only reference from one table to another."""
    source: str
    destination: str


def build_links(schemas: Iterable[TableSchema]) -> list[Link]:
    """Infer links from column names: ``<...>_<table>_id`` points at ``<table>``.

    Not checked against foreign key constraints.
    """
    links = []
    for table_schema in schemas:
        for col in table_schema.columns:
            if not col.name.endswith('_id'):
                continue
            tokens = col.name.split('_')
            destination = tokens[-2]
            if destination:
                links.append(Link(table_schema.name, destination))
    return links


# Introspection

def list_tables(db: 'Database') -> list[str]:
    """Base table names in the order the catalog query returns them.
    """
    return [row.get_string('name') for row in query(db, db.strategy.list_tables_sql())]


def list_sequences(db: 'Database') -> list[str]:
    """Sequence names, empty for engines without sequence objects.
    """
    sql = db.strategy.list_sequences_sql()
    if sql is None:
        return []
    return [row.get_string('name') for row in query(db, sql)]


@cacheable_schema('table_schema', ttl=300)
def fetch_schema(db: 'Database', table: str) -> TableSchema:
    """Read a table's columns from the engine catalog, in ordinal order.

    Pass ``bypass_cache=True`` for a guaranteed round trip.
    """
    validate_identifier(table, 'table')
    rows = query(db, db.strategy.columns_sql(table))
    columns = [ColumnSpec(row.get_string('name'), row.get_string('type'),
                          clean_comment(row.get('comment')))
               for row in rows]
    if not columns:
        logger.debug(f'No columns found for {table}')
    return TableSchema(table, columns, bind=db)


def fetch_all_schemas(db: 'Database', bypass_cache: bool = False) -> list[TableSchema]:
    """Fetch every base table's schema; the first failure aborts the whole fetch.
    """
    return [fetch_schema(db, table, bypass_cache=bypass_cache) for table in list_tables(db)]


# Materialization

def _annotate(db: 'Database', table: str, column: ColumnSpec) -> None:
    """Issue the separate comment statement for a column, where the engine needs one."""
    statement = db.strategy.comment_statement(table, column.name, column.comment)
    if statement is None:
        return
    try:
        db.execute(statement)
    except Exception as err:
        raise IncompleteAnnotationError(table, column.name, err) from err


def _column_definition(db: 'Database', column: ColumnSpec) -> str:
    strategy = db.strategy
    if column.name == 'id':
        definition = f'id {strategy.auto_increment_clause()}'
    else:
        definition = f'{column.name} {validate_native_type(column.native_type)}'
    if column.comment:
        definition += strategy.inline_comment(column.comment)
    return definition


def create_table(db: 'Database', table_schema: TableSchema) -> None:
    """Create a table, then annotate its commented columns one statement each.

    A column named ``id`` always becomes the engine's auto-increment primary
    key regardless of its declared type. If the CREATE fails nothing else
    runs; if an annotation fails the table stays and IncompleteAnnotationError
    is raised.
    """
    table = validate_identifier(table_schema.name, 'table')
    if table_schema.is_empty:
        raise ValidationError(f'Cannot create table {table} without columns')
    for col in table_schema.columns:
        validate_identifier(col.name, 'column')

    definitions = [_column_definition(db, col) for col in table_schema.columns]
    db.execute(f"CREATE TABLE {table} ({', '.join(definitions)})")
    Cache.get_instance().clear_for_table(table, id(db))
    logger.info(f'Created table {table} with {len(definitions)} columns')

    for col in table_schema.columns:
        if col.comment:
            _annotate(db, table, col)


def delete_table(db: 'Database', table: str) -> None:
    """Drop a table and its ``sq_<table>`` sequence if one exists.
    """
    validate_identifier(table, 'table')
    strategy = db.strategy
    db.execute(f'DROP TABLE {table}')
    Cache.get_instance().clear_for_table(table, id(db))
    sequence_sql = strategy.drop_sequence_sql(table)
    if sequence_sql:
        db.execute(sequence_sql)
    logger.info(f'Dropped table {table}')


def add_column(db: 'Database', table: str, name: str, native_type: str,
               comment: str = '') -> None:
    """Add one column, annotating it when ``comment`` is not blank.
    """
    validate_identifier(table, 'table')
    column = ColumnSpec(validate_identifier(name, 'column'), native_type, clean_comment(comment))
    db.execute(f'ALTER TABLE {table} ADD {_column_definition(db, column)}')
    Cache.get_instance().clear_for_table(table, id(db))
    if column.comment:
        _annotate(db, table, column)


def delete_column(db: 'Database', table: str, name: str) -> None:
    validate_identifier(table, 'table')
    validate_identifier(name, 'column')
    db.execute(db.strategy.drop_column_sql(table, name))
    Cache.get_instance().clear_for_table(table, id(db))
