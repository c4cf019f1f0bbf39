"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for creating new database handles
2. The `Database` handle binding an engine discriminator to a live DB-API connection
3. Engine creation and management through a thread-safe registry

SQLAlchemy is used only to build URLs, create engines and hand out raw
driver connections; all statements run as plain text on DB-API cursors in
autocommit mode.
"""
import atexit
import logging
import threading
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from dbmap import data, query, schema, schemafile, templates
from dbmap.cache import Cache
from dbmap.cursor import Cursor
from dbmap.options import DatabaseOptions, load_options, pandas_numpy_data_loader
from dbmap.sql import format_for_sql
from dbmap.strategy import get_strategy

if TYPE_CHECKING:
    from dbmap.schema import TableSchema
    from dbmap.strategy import DatabaseStrategy
    from dbmap.types import Record

__all__ = [
    'Database',
    'connect',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DatabaseOptions,
                            url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    strategy = get_strategy(options.drivername)
    return url_creator(
        drivername=strategy.sa_drivername,
        username=options.username,
        password=options.password,
        host=options.hostname,
        port=options.port,
        database=options.database,
        query=strategy.url_query(options)
    )


def get_engine_for_options(options: DatabaseOptions, use_pool: bool = False,
                           pool_size: int = 5, pool_recycle: int = 300,
                           pool_timeout: int = 30,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    key = f'{str(options)}_{use_pool}_{pool_size}_{pool_recycle}_{pool_timeout}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        url = create_url_from_options(options)

        engine_kwargs: dict[str, Any] = {'echo': False}

        if not use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = pool_size
            engine_kwargs['pool_recycle'] = pool_recycle
            engine_kwargs['pool_timeout'] = pool_timeout
            engine_kwargs['max_overflow'] = 10
            engine_kwargs['pool_pre_ping'] = True

        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class Database:
    """Handle for one logical connection: engine discriminator plus live connection.

    The discriminator picks the strategy (SQL dialect, coercion rules) used
    by every operation and never changes. Any discriminator is accepted at
    construction; operations on an unknown one raise UnsupportedDialectError.

    Tracks statement count and execution time, and supports the context
    manager protocol for explicit release.
    """

    def __init__(self, dialect: str, connection: Any,
                 options: DatabaseOptions | None = None,
                 sa_connection: sa.engine.Connection | None = None) -> None:
        """Initialize a handle

        Args:
            dialect: Engine discriminator ('postgres', 'mysql', 'sqlserver')
            connection: DB-API connection in autocommit mode
            options: Options the connection was created from, if any
            sa_connection: SQLAlchemy connection owning ``connection``, if any
        """
        self.dialect = dialect
        self.dbapi_connection = connection
        self.options = options
        self.sa_connection = sa_connection
        self.calls = 0
        self.time = 0
        self.closed = False
        self._strategy: DatabaseStrategy | None = None

    def __enter__(self) -> Self:
        """Support for context manager protocol
        """
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Release the connection when exiting the context manager
        """
        self.close()

    def __repr__(self) -> str:
        return f'Database({self.dialect!r}, calls={self.calls})'

    @property
    def strategy(self) -> 'DatabaseStrategy':
        """Strategy for this handle's discriminator, resolved on first use."""
        if self._strategy is None:
            self._strategy = get_strategy(self.dialect)
        return self._strategy

    @property
    def data_loader(self) -> Callable[..., Any]:
        if self.options is not None and self.options.data_loader is not None:
            return self.options.data_loader
        return pandas_numpy_data_loader

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    @contextmanager
    def cursor(self, sql: str) -> Iterator[Cursor]:
        """Execute ``sql`` and yield the cursor, closing it exactly once on exit.
        """
        cursor = Cursor(self.dbapi_connection.cursor(), self)
        try:
            cursor.execute(sql)
            yield cursor
        finally:
            cursor.close()

    def execute(self, sql: str) -> int:
        """Execute a statement and return the affected row count.
        """
        with self.cursor(sql) as cursor:
            return cursor.rowcount

    def close(self) -> None:
        """Close the connection. Closing twice is a no-op.
        """
        if self.closed:
            return
        self.closed = True
        Cache.get_instance().clear_for_owner(id(self))
        if self.sa_connection is not None:
            self.sa_connection.close()
        else:
            self.dbapi_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')

    # Decoding

    def query(self, sql: str) -> list['Record']:
        return query.query(self, sql)

    def query_frame(self, sql: str, data_loader: Callable[..., Any] | None = None) -> Any:
        return query.query_frame(self, sql, data_loader)

    def select(self, table: str, columns: Sequence[str] | None = None,
               where: str | None = None, order_by: Sequence[str] | str | None = None,
               direction: str | None = None) -> list['Record']:
        return query.select(self, table, columns, where, order_by, direction)

    # Schema

    def list_tables(self) -> list[str]:
        return schema.list_tables(self)

    def list_sequences(self) -> list[str]:
        return schema.list_sequences(self)

    def fetch_schema(self, table: str, bypass_cache: bool = False) -> 'TableSchema':
        return schema.fetch_schema(self, table, bypass_cache=bypass_cache)

    def fetch_all_schemas(self, bypass_cache: bool = False) -> list['TableSchema']:
        return schema.fetch_all_schemas(self, bypass_cache=bypass_cache)

    def table(self, name: str) -> 'TableSchema':
        """Unfetched descriptor bound to this handle, for table-scoped calls."""
        return schema.TableSchema(name, bind=self)

    def create_table(self, table_schema: 'TableSchema') -> None:
        schema.create_table(self, table_schema)

    def delete_table(self, table: str) -> None:
        schema.delete_table(self, table)

    def add_column(self, table: str, name: str, native_type: str, comment: str = '') -> None:
        schema.add_column(self, table, name, native_type, comment)

    def delete_column(self, table: str, name: str) -> None:
        schema.delete_column(self, table, name)

    # Mutation

    def format_for_sql(self, native_type: str, value: Any) -> str:
        return format_for_sql(native_type, value, self.strategy)

    def insert(self, table: str, record: Mapping[str, Any]) -> int:
        return data.insert(self, table, record)

    def update(self, table: str, record: Mapping[str, Any]) -> int:
        return data.update(self, table, record)

    def delete(self, table: str, record: Mapping[str, Any]) -> int:
        return data.delete(self, table, record)

    def delete_where(self, table: str, predicate: str) -> int:
        return data.delete_where(self, table, predicate)

    def upsert(self, table: str, record: Mapping[str, Any]) -> int:
        return data.upsert(self, table, record)

    # Schema files

    def save_schema(self, path: str) -> None:
        schemafile.save_schema(self, path)

    def import_schema(self, path: str) -> list[str]:
        return schemafile.import_schema(self, path)

    def clear_import_schema(self, path: str) -> list[str]:
        return schemafile.clear_import_schema(self, path)

    # Documentation

    def generate_schema_document(self, template_path: str, output_path: str) -> None:
        templates.generate_schema_document(self, template_path, output_path)

    def generate_table_documents(self, template_path: str, output_folder: str,
                                 extension: str) -> list:
        return templates.generate_table_documents(self, template_path, output_folder, extension)


def configure_connection(sa_connection: sa.engine.Connection, dialect: str) -> None:
    """Configure a SQLAlchemy connection with engine-specific settings.
    """
    strategy = get_strategy(dialect)
    strategy.configure_connection(sa_connection.connection)


def connect(options: DatabaseOptions | Mapping[str, Any] | str | None = None,
            config: Any | None = None, **kw: Any) -> Database:
    """Connect to a database using SQLAlchemy for connection management

    Args:
        options: Can be:
                - DatabaseOptions object
                - Name of a section on ``config``
                - Dictionary of options
                - None, with options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Connection pooling options:
        use_pool: Whether to use connection pooling (default: False)
        pool_max_connections: Maximum connections in pool (default: 5)
        pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
        pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    Returns
        Database handle for the connection
    """
    options = load_options(options, config, **kw)

    engine = get_engine_for_options(options, use_pool=options.use_pool,
                                    pool_size=options.pool_max_connections,
                                    pool_recycle=options.pool_max_idle_time,
                                    pool_timeout=options.pool_wait_timeout)

    sa_connection = engine.connect()
    configure_connection(sa_connection, options.drivername)

    return Database(options.drivername, sa_connection.connection, options, sa_connection)
