"""
Unit tests for record decoding and cursor lifetime.
"""
import pytest
from dbmap.exceptions import TypeConversionError, UnsupportedDialectError
from dbmap.query import decode
from dbmap.types import Record
from pymysql.constants import FIELD_TYPE
from tests.fixtures.mocks import INT4, VARCHAR


def test_postgres_rows_pass_through(fake_db):
    db = fake_db('postgres')
    db.dbapi_connection.respond('select', [('id', INT4), ('name', VARCHAR)],
                                [(1, 'widget'), (2, None)])
    rows = db.query('select id, name from items')
    assert rows == [{'id': 1, 'name': 'widget'}, {'id': 2, 'name': None}]
    assert all(isinstance(r, Record) for r in rows)


def test_mysql_rows_are_reparsed(fake_db):
    db = fake_db('mysql')
    db.dbapi_connection.respond(
        'select',
        [('id', FIELD_TYPE.LONGLONG), ('active', FIELD_TYPE.TINY), ('name', FIELD_TYPE.VAR_STRING)],
        [(b'1', b'1', b'widget'), (b'2', b'2', None)])
    rows = db.query('select id, active, name from items')
    assert rows == [{'id': 1, 'active': True, 'name': 'widget'},
                    {'id': 2, 'active': False, 'name': None}]


def test_sqlserver_tinyint_decodes_as_flag(fake_db):
    db = fake_db('sqlserver')
    db.dbapi_connection.respond(
        'select',
        [('flag', int, None, 3, 3, 0, True), ('qty', int, None, 10, 10, 0, True)],
        [(1, 1), (2, 2), (0, None)])
    rows = db.query('select flag, qty from items')
    assert [r.flag for r in rows] == [True, False, False]
    assert [r.qty for r in rows] == [1, 2, None]
    assert rows[0].flag is True


def test_statement_without_result_set_decodes_to_empty(fake_db):
    db = fake_db('postgres')
    assert db.query('create table t (id int)') == []


def test_type_names_read_once_per_statement(fake_db, mocker):
    db = fake_db('mysql')
    db.dbapi_connection.respond('select', [('n', FIELD_TYPE.LONG)], [(b'1',), (b'2',), (b'3',)])
    spy = mocker.spy(db.strategy, 'column_type_names')
    assert [r.n for r in db.query('select n from t')] == [1, 2, 3]
    assert spy.call_count == 1


def test_decode_failure_discards_rows_and_closes_cursor(fake_db):
    db = fake_db('mysql')
    conn = db.dbapi_connection
    conn.respond('select', [('n', FIELD_TYPE.LONG)], [(b'1',), (b'oops',), (b'3',)])
    with pytest.raises(TypeConversionError):
        db.query('select n from t')
    assert conn.cursor_closes == 1
    assert conn.cursors[0].closed


def test_cursor_closed_exactly_once_on_success(fake_db):
    db = fake_db('postgres')
    db.dbapi_connection.respond('select', [('id', INT4)], [(1,)])
    db.query('select id from t')
    db.query('select id from t')
    assert db.dbapi_connection.cursor_closes == 2


def test_cursor_closed_when_execute_fails(fake_db):
    db = fake_db('postgres')
    db.dbapi_connection.fail('select', RuntimeError('syntax error'))
    with pytest.raises(RuntimeError, match='syntax error'):
        db.query('select broken')
    assert db.dbapi_connection.cursor_closes == 1


def test_cursor_closed_when_caller_abandons_block(fake_db):
    db = fake_db('postgres')
    db.dbapi_connection.respond('select', [('id', INT4)], [(1,), (2,)])
    with pytest.raises(LookupError):
        with db.cursor('select id from t') as cursor:
            next(iter(cursor))
            raise LookupError('caller gave up')
    assert db.dbapi_connection.cursor_closes == 1


def test_unknown_dialect_fails_before_executing(fake_db):
    db = fake_db('oracle')
    with pytest.raises(UnsupportedDialectError, match='no driver'):
        db.query('select 1')
    assert db.dbapi_connection.executed == []


def test_decode_counts_calls(fake_db):
    db = fake_db('postgres')
    db.query('select 1')
    db.execute('delete from t')
    assert db.calls == 2


def test_decode_uses_cursor_strategy_by_default(fake_db):
    db = fake_db('mysql')
    db.dbapi_connection.respond('select', [('n', FIELD_TYPE.LONG)], [(b'9',)])
    with db.cursor('select n from t') as cursor:
        assert decode(cursor) == [{'n': 9}]


if __name__ == '__main__':
    __import__('pytest').main([__file__])
