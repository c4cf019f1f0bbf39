"""
Database-specific exception classes.

Driver exceptions are never wrapped or retried: they reach the caller as
raised by psycopg, pymysql or pyodbc. The groups at the bottom of this
module let callers catch a failure kind across drivers.
"""
import psycopg
import pymysql


class DatabaseError(Exception):
    """Base class for all dbmap errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining database connection.
    """


class QueryError(DatabaseError):
    """Error in query syntax or execution.
    """


class TypeConversionError(DatabaseError):
    """A raw column value could not be coerced to its declared type.
    """

    def __init__(self, column: str, type_name: str, value) -> None:
        self.column = column
        self.type_name = type_name
        self.value = value
        super().__init__(f'Cannot convert {value!r} in column {column!r} to {type_name}')


class IntegrityViolationError(DatabaseError):
    """Database constraint violation error.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class UnsupportedDialectError(DatabaseError, ValueError):
    """Engine discriminator has no registered strategy.
    """

    def __init__(self, dialect: str, available: list[str] | None = None) -> None:
        self.dialect = dialect
        msg = f'no driver for {dialect!r}'
        if available:
            msg += f' (available: {available})'
        super().__init__(msg)


class IncompleteAnnotationError(QueryError):
    """Table was created but a column comment statement failed.

    The table is left in place; only the annotation is missing.
    """

    def __init__(self, table: str, column: str, cause: BaseException) -> None:
        self.table = table
        self.column = column
        self.__cause__ = cause
        super().__init__(f'Created {table} but failed to comment column {column}: {cause}')


class ImportSchemaError(DatabaseError):
    """One or more tables of a schema file could not be processed.
    """

    def __init__(self, failures: dict[str, BaseException]) -> None:
        self.failures = failures
        super().__init__(f"Schema import failed for: {', '.join(failures)}")


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    pymysql.OperationalError,
    pymysql.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    psycopg.IntegrityError,
    pymysql.IntegrityError,
    IntegrityViolationError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    pymysql.ProgrammingError,
    pymysql.DatabaseError,
    QueryError,
    )

OperationalError = (
    psycopg.OperationalError,
    pymysql.OperationalError,
    )

UniqueViolation = (
    psycopg.errors.UniqueViolation,
    pymysql.IntegrityError,
    IntegrityViolationError,
    )
