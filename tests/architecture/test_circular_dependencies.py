import importlib

import pytest

# Modules in dependency order
MODULES = [
    # Independent modules (no internal deps)
    'dbmap.exceptions',
    'dbmap.cache',

    # Type system, strategies and options
    'dbmap.types',
    'dbmap.strategy.base',
    'dbmap.strategy.postgres',
    'dbmap.strategy.mysql',
    'dbmap.strategy.sqlserver',
    'dbmap.strategy',
    'dbmap.sql',
    'dbmap.options',

    # Decoding
    'dbmap.cursor',
    'dbmap.query',

    # Operations
    'dbmap.schema',
    'dbmap.data',
    'dbmap.schemafile',
    'dbmap.templates',

    # Handle and main package
    'dbmap.connection',
    'dbmap',
]


@pytest.mark.parametrize('module', MODULES)
def test_module_imports(module):
    """Each module imports on its own without a circular dependency."""
    importlib.import_module(module)


def test_strategies_register_on_package_import():
    strategy = importlib.import_module('dbmap.strategy')
    assert set(strategy.get_available_dialects()) == {'postgres', 'mysql', 'sqlserver'}


if __name__ == '__main__':
    __import__('pytest').main([__file__])
