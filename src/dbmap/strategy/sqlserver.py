"""
SQL Server-specific strategy implementation.

This module implements the DatabaseStrategy interface for SQL Server:
- Catalog queries against INFORMATION_SCHEMA with MS_Description comments
- Type names from the Python classes pyodbc reports per column
- Text re-parsing coercion shared with MySQL
- IDENTITY primary keys, extended-property annotations, OUTPUT INSERTED.id
"""
import logging
from typing import TYPE_CHECKING, Any

from dbmap.strategy.base import DatabaseStrategy, register_strategy
from dbmap.types import coerce_text, sqlserver_type_name

if TYPE_CHECKING:
    from dbmap.connection import Database
    from dbmap.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('sqlserver')
class SQLServerStrategy(DatabaseStrategy):
    """SQL Server-specific operations"""

    sa_drivername = 'mssql+pyodbc'
    default_port = 1433
    schema = 'dbo'

    @property
    def dialect_name(self) -> str:
        return 'sqlserver'

    def url_query(self, options: 'DatabaseOptions') -> dict[str, str]:
        return {'driver': options.odbc_driver, 'TrustServerCertificate': 'yes'}

    def configure_connection(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQL Server"""
        raw_conn = getattr(raw_conn, 'driver_connection', raw_conn)
        raw_conn.autocommit = True

    def list_tables_sql(self) -> str:
        return """
SELECT TABLE_NAME AS name
FROM INFORMATION_SCHEMA.TABLES
WHERE TABLE_TYPE = 'BASE TABLE'
ORDER BY TABLE_NAME
"""

    def list_sequences_sql(self) -> str:
        return """
SELECT SEQUENCE_NAME AS name
FROM INFORMATION_SCHEMA.SEQUENCES
ORDER BY SEQUENCE_NAME
"""

    def columns_sql(self, table: str) -> str:
        """Describe columns with (max) for unbounded lengths and MS_Description comments"""
        return f"""
SELECT
    c.COLUMN_NAME AS name,
    CAST(c.DATA_TYPE + COALESCE('(' + CASE WHEN c.CHARACTER_MAXIMUM_LENGTH = -1 THEN 'max'
        ELSE CAST(c.CHARACTER_MAXIMUM_LENGTH AS varchar(10)) END + ')', '') AS varchar(255)) AS type,
    CAST(ep.value AS nvarchar(4000)) AS comment
FROM INFORMATION_SCHEMA.COLUMNS c
LEFT JOIN sys.extended_properties ep
    ON ep.class = 1
    AND ep.major_id = OBJECT_ID(c.TABLE_SCHEMA + '.' + c.TABLE_NAME)
    AND ep.minor_id = COLUMNPROPERTY(ep.major_id, c.COLUMN_NAME, 'ColumnId')
    AND ep.name = 'MS_Description'
WHERE c.TABLE_NAME = {self.quote_literal(table)}
ORDER BY c.ORDINAL_POSITION
"""

    def column_type_names(self, dbapi_cursor: Any) -> dict[str, str]:
        """Type names from pyodbc's description.

        Entries are ``(name, type_code, display_size, internal_size, ...)``;
        ``internal_size`` is the declared column size.
        """
        return {desc[0]: sqlserver_type_name(desc[1], desc[3] if len(desc) > 3 else None)
                for desc in (dbapi_cursor.description or [])}

    def coerce_value(self, value: Any, type_name: str, column: str | None = None) -> Any:
        return coerce_text(value, type_name, column)

    def quote_literal(self, text: str) -> str:
        return "N'" + text.replace("'", "''") + "'"

    def render_scalar(self, value: Any) -> str:
        """SQL Server has no boolean literals; bit columns take 1 and 0"""
        if isinstance(value, bool):
            return '1' if value else '0'
        return str(value)

    def auto_increment_clause(self) -> str:
        return 'INT IDENTITY(1,1) PRIMARY KEY'

    def comment_statement(self, table: str, column: str, comment: str) -> str:
        return (
            "EXEC sys.sp_addextendedproperty @name = N'MS_Description', "
            f'@value = {self.quote_literal(comment)}, '
            f"@level0type = N'SCHEMA', @level0name = N'{self.schema}', "
            f"@level1type = N'TABLE', @level1name = N'{table}', "
            f"@level2type = N'COLUMN', @level2name = N'{column}'"
            )

    def insert_returning_id(self, db: 'Database', table: str,
                            columns: list[str], values: list[str]) -> int:
        """Insert with an OUTPUT clause carrying the identity value"""
        if columns:
            sql = (f"INSERT INTO {table}({','.join(columns)}) OUTPUT INSERTED.id "
                   f"VALUES ({','.join(values)})")
        else:
            sql = f'INSERT INTO {table} OUTPUT INSERTED.id DEFAULT VALUES'
        with db.cursor(sql) as cursor:
            row = cursor.fetchone()
        logger.debug(f'Inserted into {table=} with id={row[0]}')
        return int(row[0])
