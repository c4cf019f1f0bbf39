"""
MySQL-specific strategy implementation.

This module implements the DatabaseStrategy interface for MySQL:
- Catalog queries scoped to the connection's current database
- Type names built from pymysql field metadata (signedness, binary charset)
- Text re-parsing coercion by declared type name
- Inline column comments and last-insert-id retrieval
"""
import logging
from typing import TYPE_CHECKING, Any

from pymysql.converters import escape_string

from dbmap.strategy.base import DatabaseStrategy, register_strategy
from dbmap.types import coerce_text, mysql_type_name

if TYPE_CHECKING:
    from dbmap.connection import Database
    from dbmap.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific operations.
    """

    sa_drivername = 'mysql+pymysql'
    default_port = 3306

    @property
    def dialect_name(self) -> str:
        return 'mysql'

    def url_query(self, options: 'DatabaseOptions') -> dict[str, str]:
        query = {'charset': 'utf8mb4'}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        return query

    def configure_connection(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for MySQL.
        """
        raw_conn = getattr(raw_conn, 'driver_connection', raw_conn)
        raw_conn.autocommit(True)

    def list_tables_sql(self) -> str:
        return """
SELECT TABLE_NAME AS name
FROM information_schema.TABLES
WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE'
ORDER BY TABLE_NAME
"""

    def columns_sql(self, table: str) -> str:
        """Describe columns as DATA_TYPE plus optional maximum length.
        """
        return f"""
SELECT
    COLUMN_NAME AS name,
    CAST(CONCAT(DATA_TYPE, COALESCE(CONCAT('(', CHARACTER_MAXIMUM_LENGTH, ')'), '')) AS CHAR(255)) AS type,
    CAST(COLUMN_COMMENT AS CHAR(1024)) AS comment
FROM INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = {self.quote_literal(table)}
ORDER BY ORDINAL_POSITION
"""

    def column_type_names(self, dbapi_cursor: Any) -> dict[str, str]:
        """Read signedness and charset from pymysql's field packets when present.
        """
        result = getattr(dbapi_cursor, '_result', None)
        fields = getattr(result, 'fields', None)
        if fields:
            return {field.name: mysql_type_name(field.type_code, field.flags, field.charsetnr)
                    for field in fields}
        return {desc[0]: mysql_type_name(desc[1])
                for desc in (dbapi_cursor.description or [])}

    def coerce_value(self, value: Any, type_name: str, column: str | None = None) -> Any:
        return coerce_text(value, type_name, column)

    def quote_literal(self, text: str) -> str:
        return "'" + escape_string(text) + "'"

    def auto_increment_clause(self) -> str:
        return 'SERIAL PRIMARY KEY'

    def inline_comment(self, comment: str) -> str:
        return f' COMMENT {self.quote_literal(comment)}'

    def drop_column_sql(self, table: str, column: str) -> str:
        return f'alter table {table} drop {column}'

    def drop_sequence_sql(self, table: str) -> None:
        """MySQL has no sequence objects."""
        return None

    def insert_sql(self, table: str, columns: list[str], values: list[str],
                   returning: str = '') -> str:
        if not columns:
            return f'INSERT INTO {table} () VALUES ()'
        return super().insert_sql(table, columns, values, returning)

    def insert_returning_id(self, db: 'Database', table: str,
                            columns: list[str], values: list[str]) -> int:
        """Insert, then read the driver's last insert id.
        """
        sql = self.insert_sql(table, columns, values)
        with db.cursor(sql) as cursor:
            new_id = cursor.lastrowid
        logger.debug(f'Inserted into {table=} with id={new_id}')
        return new_id
