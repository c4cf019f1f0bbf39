import pickle

import pytest
from dbmap.types import Record


def test_record_is_read_only_mapping():
    r = Record(name='widget', qty=5)
    assert r['name'] == 'widget'
    assert r.qty == 5
    assert dict(r) == {'name': 'widget', 'qty': 5}
    assert len(r) == 2
    with pytest.raises(TypeError):
        r['qty'] = 6
    with pytest.raises(AttributeError):
        r.qty = 6


def test_missing_attribute_raises_attribute_error():
    with pytest.raises(AttributeError):
        Record(a=1).b


def test_getters_are_lenient():
    r = Record(name='widget', qty=5, price=2.5, note=None, bad='x')
    assert r.get_string('name') == 'widget'
    assert r.get_string('note') == ''
    assert r.get_string('missing') == ''
    assert r.get_int('qty') == 5
    assert r.get_int('bad') == 0
    assert r.get_int('missing') == 0
    assert r.get_float('price') == 2.5
    assert r.get_float('qty') == 5.0
    assert r.get_float('bad') == 0.0


def test_get_string_decodes_bytes():
    assert Record(raw=b'abc').get_string('raw') == 'abc'


def test_record_pickles_and_compares():
    r = Record(id=1, name='a')
    assert pickle.loads(pickle.dumps(r)) == r
    assert r == {'id': 1, 'name': 'a'}
    assert r.to_dict() == {'id': 1, 'name': 'a'}


if __name__ == '__main__':
    __import__('pytest').main([__file__])
