"""
Schema metadata caching.

Introspected table schemas are kept in cachetools TTL caches, one per cache
name, shared across handles. Entries are keyed by the owning handle and the
table name so that one handle never sees another database's tables.
"""
import functools
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Cache manager for the dbmap package.

    Thread-safe singleton that manages all TTL caches.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 300) -> cachetools.TTLCache:
        """Get or create a TTL cache with the given name.

        Args:
            name: Name of the cache
            maxsize: Maximum cache size
            ttl: Time-to-live in seconds

        Returns
            TTLCache instance
        """
        if name not in self._caches:
            with self._lock:
                if name not in self._caches:
                    self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
        return self._caches[name]

    def clear_all(self) -> None:
        """Clear all managed caches."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_cache(self, name: str) -> None:
        """Clear a specific cache by name."""
        with self._lock:
            if name in self._caches:
                self._caches[name].clear()

    def clear_for_table(self, table_name: str, owner: int | None = None) -> None:
        """Drop cached entries for a table.

        Args:
            table_name: Name of the table to clear cache entries for
            owner: Only clear entries of this handle id, all handles when None
        """
        table_lower = table_name.lower()
        with self._lock:
            for cache in self._caches.values():
                for key in list(cache.keys()):
                    key_owner, _, key_table = key.partition(':')
                    if key_table != table_lower:
                        continue
                    if owner is not None and key_owner != str(owner):
                        continue
                    cache.pop(key, None)
                    logger.debug(f'Cleared cache entry {key} for table {table_name}')

    def clear_for_owner(self, owner: int) -> None:
        """Drop every cached entry of one handle id."""
        prefix = f'{owner}:'
        with self._lock:
            for cache in self._caches.values():
                for key in [k for k in cache.keys() if k.startswith(prefix)]:
                    cache.pop(key, None)


def _create_cache_key(owner: object, table: str) -> str:
    """Key an entry by handle identity and case-folded table name."""
    return f'{id(owner)}:{table.lower()}'


def cacheable_schema(cache_name: str, ttl: int = 300, maxsize: int = 50):
    """Decorator for caching per-table introspection methods.

    The decorated method takes ``(self, table, ...)`` and accepts a
    ``bypass_cache`` keyword that forces a fresh lookup. A fresh lookup
    still refreshes the cached entry.

    Args:
        cache_name: Name of the cache
        ttl: Time-to-live in seconds
        maxsize: Maximum cache size
    """
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, table, *args, bypass_cache=False, **kwargs):
            cache = Cache.get_instance().get_cache(cache_name, ttl=ttl, maxsize=maxsize)
            cache_key = _create_cache_key(self, table)

            if not bypass_cache and cache_key in cache:
                logger.debug(f'Cache hit for {method.__name__}({table})')
                return cache[cache_key]

            if bypass_cache:
                logger.debug(f'Bypassing cache for {method.__name__}({table})')
            else:
                logger.debug(f'Cache miss for {method.__name__}({table})')
            result = method(self, table, *args, **kwargs)
            cache[cache_key] = result
            return result

        return wrapper
    return decorator
