"""
Database strategy factory for engine-specific operations.
"""
from functools import lru_cache

from dbmap.exceptions import UnsupportedDialectError
from dbmap.strategy.base import _STRATEGY_REGISTRY
from dbmap.strategy.base import DatabaseStrategy as DatabaseStrategy
from dbmap.strategy.base import register_strategy as register_strategy
from dbmap.strategy.mysql import MySQLStrategy as MySQLStrategy
from dbmap.strategy.postgres import PostgresStrategy as PostgresStrategy
from dbmap.strategy.sqlserver import SQLServerStrategy as SQLServerStrategy


def _validate_dialect(dialect: str) -> None:
    """Raise UnsupportedDialectError if dialect is not registered."""
    if dialect not in _STRATEGY_REGISTRY:
        raise UnsupportedDialectError(dialect, list(_STRATEGY_REGISTRY.keys()))


@lru_cache(maxsize=8)
def _get_strategy(dialect: str) -> DatabaseStrategy:
    """Get cached strategy instance for a dialect."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]()


def get_strategy(dialect: str) -> DatabaseStrategy:
    """Get strategy instance for an engine discriminator.
    """
    return _get_strategy(dialect)


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_STRATEGY_REGISTRY.keys())


def is_supported_dialect(dialect: str) -> bool:
    """Check if a dialect is supported."""
    return dialect in _STRATEGY_REGISTRY


def get_strategy_class(dialect: str) -> type['DatabaseStrategy']:
    """Get the strategy class for a dialect without instantiating."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]
