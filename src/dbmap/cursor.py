"""
Cursor adapter over DB-API 2.0 cursors (PEP-249).

Statements are executed as plain text: values are already serialized into
the SQL, so no parameters are ever bound.
"""
import logging
import time
from collections.abc import Iterator
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dbmap.connection import Database

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL statements and their timing."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}')
        try:
            result = func(self, operation, *args, **kwargs)
            if hasattr(self.dbapi_cursor, 'statusmessage'):
                logger.debug(f'Query result: {self.dbapi_cursor.statusmessage}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}')
            raise
        finally:
            elapsed = time.time() - start
            self.db.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Narrow cursor interface used by the decoder and the mutator.

    Exposes column names, per-column engine type names and raw rows of
    the last executed statement.
    """

    def __init__(self, cursor: Any, db: 'Database') -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying DB-API cursor
            db: The handle that opened this cursor
        """
        self.dbapi_cursor = cursor
        self.db = db
        self.closed = False

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    def __iter__(self) -> Iterator[tuple]:
        """Return iterator for cursor results."""
        return IterChunk(self.dbapi_cursor)

    @property
    def description(self) -> list[tuple] | None:
        """Column descriptions for last query."""
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        return self.dbapi_cursor.rowcount

    @property
    def lastrowid(self) -> Any:
        """Identifier generated by the last insert, where the driver reports one."""
        return getattr(self.dbapi_cursor, 'lastrowid', None)

    def column_names(self) -> list[str]:
        """Result column names in positional order, empty for statements without rows."""
        return [desc[0] for desc in (self.description or [])]

    def column_types(self) -> dict[str, str]:
        """Map each result column name to its engine type name."""
        if self.description is None:
            return {}
        return self.db.strategy.column_type_names(self.dbapi_cursor)

    def fetchone(self) -> tuple | None:
        """Fetch next row."""
        return self.dbapi_cursor.fetchone()

    def fetchall(self) -> list[tuple]:
        """Fetch all remaining rows."""
        return self.dbapi_cursor.fetchall()

    def close(self) -> None:
        """Close cursor. Closing twice is a no-op."""
        if self.closed:
            return
        self.closed = True
        self.dbapi_cursor.close()

    @dumpsql
    def execute(self, operation: str) -> int:
        """Execute a database operation."""
        self.dbapi_cursor.execute(operation)
        return self.dbapi_cursor.rowcount


def IterChunk(cursor: Any, size: int = 5000) -> Iterator[tuple]:
    """Iterate through cursor results in chunks."""
    while True:
        chunked = cursor.fetchmany(size)
        if not chunked:
            break
        yield from chunked
