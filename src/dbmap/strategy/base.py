"""
Base strategy interface for database operations.

Defines the abstract base class that all engine-specific strategy implementations
must inherit from. The strategy pattern keeps every engine difference (catalog
queries, type names, value coercion, literal quoting, DDL clauses, generated id
retrieval) in one object selected when a handle is created, so the rest of the
package never branches on the engine discriminator.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dbmap.connection import Database
    from dbmap.options import DatabaseOptions

# Registry of discriminator -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for an engine discriminator.

    Usage:
        @register_strategy('postgres')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for engine-specific operations.
    """

    #: SQLAlchemy ``drivername`` used to build connection URLs
    sa_drivername: str = ''

    #: Port used when options leave it unset
    default_port: int = 0

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the engine discriminator (e.g., 'postgres', 'mysql')."""

    # Connection

    def url_query(self, options: 'DatabaseOptions') -> dict[str, str]:
        """Extra query-string arguments for the connection URL.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            Mapping of URL query arguments
        """
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this engine.
        """
        return ['hostname', 'username', 'password', 'database']

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this engine.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or empty
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or empty')

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Prepare a raw DB-API connection for use (autocommit on).

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    # Introspection

    @abstractmethod
    def list_tables_sql(self) -> str:
        """SQL listing base table names in a column named ``name``.
        """

    def list_sequences_sql(self) -> str | None:
        """SQL listing sequence names, None when the engine has no sequences.
        """
        return None

    @abstractmethod
    def columns_sql(self, table: str) -> str:
        """SQL describing the columns of a table.

        The statement returns ``name``, ``type`` and ``comment`` columns in
        ordinal order. ``type`` is the normalized native type token.

        Args:
            table: Validated table name
        """

    @abstractmethod
    def column_type_names(self, dbapi_cursor: Any) -> dict[str, str]:
        """Map each result column of an executed cursor to its engine type name.

        Args:
            dbapi_cursor: Raw DB-API cursor after execute()
        """

    # Coercion

    @abstractmethod
    def coerce_value(self, value: Any, type_name: str, column: str | None = None) -> Any:
        """Convert a raw driver value to its canonical scalar.

        Args:
            value: Value as returned by the driver
            type_name: Engine type name of the originating column
            column: Column name, used in error messages
        """

    # Literals

    @abstractmethod
    def quote_literal(self, text: str) -> str:
        """Quote and escape text as an SQL string literal.
        """

    def render_scalar(self, value: Any) -> str:
        """Render a non-quoted value (number, boolean) as SQL text.
        """
        if isinstance(value, bool):
            return 'TRUE' if value else 'FALSE'
        return str(value)

    # DDL

    @abstractmethod
    def auto_increment_clause(self) -> str:
        """Column definition used for the ``id`` column on table creation.
        """

    def inline_comment(self, comment: str) -> str:
        """Column comment clause appended to a column definition.

        Engines that annotate with separate statements return ''.
        """
        return ''

    def comment_statement(self, table: str, column: str, comment: str) -> str | None:
        """Statement annotating a column, None when comments are inline.
        """
        return None

    def drop_column_sql(self, table: str, column: str) -> str:
        return f'alter table {table} drop column {column}'

    def drop_sequence_sql(self, table: str) -> str | None:
        """Statement dropping the ``sq_<table>`` sequence if it exists.
        """
        return f'drop sequence if exists sq_{table}'

    # Mutation

    @abstractmethod
    def insert_returning_id(self, db: 'Database', table: str,
                            columns: list[str], values: list[str]) -> int:
        """Execute an INSERT of preformatted literals and return the generated id.

        Args:
            db: Handle to execute on
            table: Validated table name
            columns: Validated column names
            values: SQL literals, one per column

        Returns
            Generated identifier of the new row
        """

    def insert_sql(self, table: str, columns: list[str], values: list[str],
                   returning: str = '') -> str:
        """Build ``INSERT INTO t(c1,c2) VALUES (v1,v2)[ returning]``."""
        if not columns:
            sql = f'INSERT INTO {table} DEFAULT VALUES'
        else:
            sql = f"INSERT INTO {table}({','.join(columns)}) VALUES ({','.join(values)})"
        if returning:
            sql += f' {returning}'
        return sql
