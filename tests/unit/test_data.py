"""
Unit tests for insert, update, delete and upsert statement generation.
"""
import numpy as np
import pytest
from dbmap.exceptions import ValidationError
from tests.fixtures.mocks import INT4


def statements(db):
    """Executed statements other than catalog lookups."""
    return [sql for sql in db.dbapi_connection.executed
            if 'information_schema.columns' not in sql.lower()]


def catalog_queries(db):
    return len(db.dbapi_connection.executed) - len(statements(db))


class TestInsert:

    def test_postgres_returns_generated_id(self, items_db):
        db = items_db('postgres')
        db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(1,)])
        new_id = db.insert('items', {'name': 'widget', 'qty': 5})
        assert new_id == 1
        assert statements(db) == ["INSERT INTO items(name,qty) VALUES ('widget',5) RETURNING id"]

    def test_mysql_reads_last_insert_id(self, items_db):
        db = items_db('mysql')
        db.dbapi_connection.respond('INSERT INTO items', rowcount=1, lastrowid=12)
        assert db.insert('items', {'name': "it's", 'active': True}) == 12
        assert statements(db) == ["INSERT INTO items(name,active) VALUES ('it\\'s',TRUE)"]

    def test_sqlserver_uses_output_clause(self, items_db):
        db = items_db('sqlserver')
        db.dbapi_connection.respond('OUTPUT INSERTED.id', [('id', int)], [(3,)])
        assert db.insert('items', {'name': 'widget', 'active': False}) == 3
        assert statements(db) == ["INSERT INTO items(name,active) OUTPUT INSERTED.id VALUES (N'widget',0)"]

    @pytest.mark.parametrize(('dialect', 'expected'), [
        ('postgres', 'INSERT INTO items DEFAULT VALUES RETURNING id'),
        ('mysql', 'INSERT INTO items () VALUES ()'),
        ('sqlserver', 'INSERT INTO items OUTPUT INSERTED.id DEFAULT VALUES'),
    ])
    def test_empty_record_inserts_defaults(self, items_db, dialect, expected):
        db = items_db(dialect)
        db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(4,)], lastrowid=4)
        assert db.insert('items', {}) == 4
        assert statements(db) == [expected]

    def test_column_names_follow_catalog_casing(self, items_db):
        db = items_db('postgres')
        db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(1,)])
        db.insert('items', {'NAME': 'widget'})
        assert statements(db) == ["INSERT INTO items(name) VALUES ('widget') RETURNING id"]

    def test_unknown_column_is_rejected(self, items_db):
        db = items_db('postgres')
        with pytest.raises(ValidationError, match='colour'):
            db.insert('items', {'name': 'widget', 'colour': 'red'})
        assert statements(db) == []

    def test_null_and_empty_values(self, items_db):
        db = items_db('postgres')
        db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(1,)])
        db.insert('items', {'name': '', 'qty': ''})
        db.insert('items', {'name': None, 'qty': None})
        assert statements(db) == [
            "INSERT INTO items(name,qty) VALUES ('',NULL) RETURNING id",
            'INSERT INTO items(name,qty) VALUES (NULL,NULL) RETURNING id',
            ]


class TestUpdate:

    def test_update_sets_fields_by_id(self, items_db):
        db = items_db('postgres')
        db.dbapi_connection.respond('UPDATE items', rowcount=1)
        assert db.update('items', {'id': 1, 'qty': 7, 'name': 'gadget'}) == 1
        assert statements(db) == ["UPDATE items SET qty = 7, name = 'gadget' WHERE id = 1"]

    def test_text_id_is_quoted(self, items_db):
        db = items_db('postgres')
        db.update('items', {'id': 'abc', 'qty': 1})
        assert statements(db) == ["UPDATE items SET qty = 1 WHERE id = 'abc'"]

    @pytest.mark.parametrize('row_id', [7.0, np.float64(7)])
    def test_float_id_renders_as_integer(self, items_db, row_id):
        db = items_db('postgres')
        db.update('items', {'id': row_id, 'qty': 1})
        assert statements(db) == ['UPDATE items SET qty = 1 WHERE id = 7']

    def test_id_key_matches_any_case(self, items_db):
        db = items_db('postgres')
        db.update('items', {'ID': 3, 'qty': 1})
        db.delete('items', {'Id': 3})
        assert statements(db) == ['UPDATE items SET qty = 1 WHERE id = 3',
                                  'DELETE FROM items WHERE id = 3']

    def test_missing_row_updates_nothing(self, items_db):
        db = items_db('postgres')
        assert db.update('items', {'id': 99, 'qty': 1}) == 0

    def test_id_only_record_is_a_no_op(self, items_db):
        db = items_db('postgres')
        assert db.update('items', {'id': 1}) == 0
        assert statements(db) == []

    def test_record_without_id_is_rejected(self, items_db):
        db = items_db('postgres')
        with pytest.raises(ValidationError):
            db.update('items', {'qty': 1})
        assert db.dbapi_connection.executed == []


class TestDelete:

    def test_delete_by_id(self, items_db):
        db = items_db('mysql')
        db.dbapi_connection.respond('DELETE FROM items', rowcount=1)
        assert db.delete('items', {'id': '5', 'name': 'ignored'}) == 1
        assert db.dbapi_connection.executed == ['DELETE FROM items WHERE id = 5']

    def test_delete_without_id_is_rejected(self, items_db):
        db = items_db('mysql')
        with pytest.raises(ValidationError):
            db.delete('items', {'name': 'widget'})

    def test_delete_where_embeds_predicate(self, fake_db):
        db = fake_db('postgres')
        db.dbapi_connection.respond('DELETE FROM items', rowcount=3)
        assert db.delete_where('items', 'qty < 0') == 3
        assert db.dbapi_connection.executed == ['DELETE FROM items WHERE qty < 0']

    @pytest.mark.parametrize('predicate', ['', '   ', None])
    def test_delete_where_requires_predicate(self, fake_db, predicate):
        db = fake_db('postgres')
        with pytest.raises(ValidationError):
            db.delete_where('items', predicate)
        assert db.dbapi_connection.executed == []


class TestUpsert:

    @pytest.mark.parametrize('record', [
        {'name': 'widget'},
        {'id': None, 'name': 'widget'},
        {'id': 'abc', 'name': 'widget'},
        {'id': '-1', 'name': 'widget'},
        {'id': '', 'name': 'widget'},
    ])
    def test_inserts_without_usable_id(self, items_db, record):
        db = items_db('postgres')
        db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(8,)])
        assert db.upsert('items', record) == 8
        assert statements(db) == ["INSERT INTO items(name) VALUES ('widget') RETURNING id"]

    def test_updates_with_parsed_id(self, items_db):
        db = items_db('postgres')
        assert db.upsert('items', {'id': '7', 'qty': 2}) == 7
        assert statements(db) == ['UPDATE items SET qty = 2 WHERE id = 7']

    @pytest.mark.parametrize('row_id', [7.0, np.float64(7), '7.0'])
    def test_whole_number_float_id_updates(self, items_db, row_id):
        db = items_db('postgres')
        assert db.upsert('items', {'id': row_id, 'qty': 2}) == 7
        assert statements(db) == ['UPDATE items SET qty = 2 WHERE id = 7']

    def test_fractional_id_inserts(self, items_db):
        db = items_db('postgres')
        db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(8,)])
        assert db.upsert('items', {'id': 7.5, 'qty': 2}) == 8
        assert statements(db) == ['INSERT INTO items(qty) VALUES (2) RETURNING id']

    @pytest.mark.parametrize('id_key', ['ID', 'Id'])
    def test_id_key_matches_any_case(self, items_db, id_key):
        db = items_db('postgres')
        assert db.upsert('items', {id_key: '7', 'qty': 2}) == 7
        assert statements(db) == ['UPDATE items SET qty = 2 WHERE id = 7']

    def test_uppercase_unusable_id_is_dropped_before_insert(self, items_db):
        db = items_db('postgres')
        db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(8,)])
        assert db.upsert('items', {'ID': None, 'qty': 2}) == 8
        assert statements(db) == ['INSERT INTO items(qty) VALUES (2) RETURNING id']

    def test_update_of_missing_row_still_returns_id(self, items_db):
        db = items_db('postgres')
        db.dbapi_connection.respond('UPDATE items', rowcount=0)
        assert db.upsert('items', {'id': 0, 'qty': 2}) == 0


def test_mutations_always_refetch_catalog(items_db):
    db = items_db('postgres')
    db.fetch_schema('items')
    db.dbapi_connection.respond('INSERT INTO items', [('id', INT4)], [(1,)])
    db.insert('items', {'name': 'a'})
    db.update('items', {'id': 1, 'name': 'b'})
    assert catalog_queries(db) == 3


if __name__ == '__main__':
    __import__('pytest').main([__file__])
