"""
Unit tests for SQL generation utilities.
"""
import numpy as np
import pytest
from dbmap.exceptions import ValidationError
from dbmap.sql import build_select_sql, parse_id, render_id
from dbmap.sql import validate_identifier, validate_native_type
from dbmap.strategy import get_strategy


def test_simple_select():
    assert build_select_sql('users') == 'SELECT * FROM users'


def test_select_with_columns():
    assert build_select_sql('users', ['id', 'name']) == 'SELECT id, name FROM users'


def test_select_with_where():
    result = build_select_sql('users', where='active = TRUE')
    assert result == 'SELECT * FROM users WHERE active = TRUE'


@pytest.mark.parametrize(('order_by', 'direction', 'expected'), [
    ('name', None, 'SELECT * FROM users ORDER BY name'),
    (['name', 'id'], 'desc', 'SELECT * FROM users ORDER BY name, id DESC'),
    (['name'], 'ASC', 'SELECT * FROM users ORDER BY name ASC'),
])
def test_select_with_order(order_by, direction, expected):
    assert build_select_sql('users', order_by=order_by, direction=direction) == expected


def test_select_rejects_bad_direction():
    with pytest.raises(ValidationError):
        build_select_sql('users', order_by='name', direction='sideways')


@pytest.mark.parametrize('name', ['users', '_tmp', 'Item2', 'a_b_c'])
def test_valid_identifiers(name):
    assert validate_identifier(name) == name


@pytest.mark.parametrize('name', ['', '2fast', 'users;drop', 'a b', 'a.b', 'x"', None])
def test_invalid_identifiers(name):
    with pytest.raises(ValidationError):
        validate_identifier(name, 'table')


@pytest.mark.parametrize('native_type', ['integer', 'varchar(50)', 'numeric(10, 2)',
                                         'nvarchar(max)', 'double precision',
                                         'int unsigned', 'timestamp with time zone',
                                         'varchar(20) binary', 'integer[]',
                                         'varchar(10)[]'])
def test_valid_native_types(native_type):
    assert validate_native_type(native_type) == native_type


@pytest.mark.parametrize('native_type', ['', 'int); drop table x', "text default 'x'", '(int)',
                                         'integer[1]', 'text[]; drop'])
def test_invalid_native_types(native_type):
    with pytest.raises(ValidationError):
        validate_native_type(native_type)


@pytest.mark.parametrize(('value', 'expected'), [
    (5, 5),
    ('12', 12),
    (' 7 ', 7),
    ('-1', -1),
    ('abc', None),
    ('', None),
    (None, None),
    (True, None),
    (2.5, None),
    (7.0, 7),
    (np.float64(7), 7),
    ('7.0', 7),
    ('7.5', None),
    ('nan', None),
])
def test_parse_id(value, expected):
    assert parse_id(value) == expected


def test_render_id():
    pg = get_strategy('postgres')
    assert render_id('42', pg) == '42'
    assert render_id(7, pg) == '7'
    assert render_id(7.0, pg) == '7'
    assert render_id("o'k", pg) == "'o''k'"


if __name__ == '__main__':
    __import__('pytest').main([__file__])
