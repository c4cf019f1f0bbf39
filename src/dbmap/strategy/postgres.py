"""
PostgreSQL-specific strategy implementation.

This module implements the DatabaseStrategy interface for PostgreSQL:
- Catalog queries against information_schema with col_description comments
- Type names from the psycopg type registry
- Passthrough coercion (psycopg returns native Python values)
- COMMENT ON COLUMN annotations and RETURNING id inserts
"""
import logging
from typing import TYPE_CHECKING, Any

from dbmap.strategy.base import DatabaseStrategy, register_strategy
from dbmap.types import coerce_passthrough, postgres_type_name

if TYPE_CHECKING:
    from dbmap.connection import Database
    from dbmap.options import DatabaseOptions

logger = logging.getLogger(__name__)


def _escape_string_literal(s: str) -> str:
    """Escape a string for use as a PostgreSQL string literal."""
    return s.replace("'", "''")


@register_strategy('postgres')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    sa_drivername = 'postgresql+psycopg'
    default_port = 5432
    schema = 'public'

    @property
    def dialect_name(self) -> str:
        return 'postgres'

    def url_query(self, options: 'DatabaseOptions') -> dict[str, str]:
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname
        return query

    def configure_connection(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn = getattr(raw_conn, 'driver_connection', raw_conn)
        raw_conn.autocommit = True

    def list_tables_sql(self) -> str:
        return f"""
select table_name::varchar as name
from information_schema.tables
where table_schema = '{self.schema}' and table_type = 'BASE TABLE'
order by table_name
"""

    def list_sequences_sql(self) -> str:
        return f"""
select sequence_name::varchar as name
from information_schema.sequences
where sequence_schema = '{self.schema}'
order by sequence_name
"""

    def columns_sql(self, table: str) -> str:
        """Describe columns with varchar/char shorthand and length suffix.
        """
        return f"""
select
    c.column_name::varchar as name,
    replace(replace(c.data_type, 'character varying', 'varchar'), 'character', 'char')
        || coalesce('(' || c.character_maximum_length || ')', '') as type,
    col_description(format('%I.%I', c.table_schema, c.table_name)::regclass, c.ordinal_position) as comment
from information_schema.columns c
where c.table_schema = '{self.schema}' and c.table_name = '{_escape_string_literal(table)}'
order by c.ordinal_position
"""

    def column_type_names(self, dbapi_cursor: Any) -> dict[str, str]:
        return {desc[0]: postgres_type_name(desc[1])
                for desc in (dbapi_cursor.description or [])}

    def coerce_value(self, value: Any, type_name: str, column: str | None = None) -> Any:
        return coerce_passthrough(value, type_name, column)

    def quote_literal(self, text: str) -> str:
        """Quote text, switching to an E'' literal when it holds backslashes.
        """
        quoted = "'" + _escape_string_literal(text) + "'"
        if '\\' in text:
            quoted = 'E' + quoted.replace('\\', '\\\\')
        return quoted

    def auto_increment_clause(self) -> str:
        return 'SERIAL PRIMARY KEY'

    def comment_statement(self, table: str, column: str, comment: str) -> str:
        return f'COMMENT ON COLUMN {table}.{column} IS {self.quote_literal(comment)}'

    def insert_returning_id(self, db: 'Database', table: str,
                            columns: list[str], values: list[str]) -> int:
        sql = self.insert_sql(table, columns, values, returning='RETURNING id')
        with db.cursor(sql) as cursor:
            row = cursor.fetchone()
        logger.debug(f'Inserted into {table=} with id={row[0]}')
        return row[0]
