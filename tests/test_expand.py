"""
Tests for JSON-LD expansion.
"""

import pytest

from ldproc import jsonld
from ldproc.errors import InvalidValueObject, JsonLdError, ListOfListsError

FOAF = 'http://xmlns.com/foaf/0.1/'
EX = 'http://example.org/'

ALICE = {
    '@context': {'name': FOAF + 'name'},
    '@id': 'http://example.com/Alice',
    'name': 'Alice'
}


def test_alice():
    assert jsonld.expand(ALICE) == [{
        '@id': 'http://example.com/Alice',
        FOAF + 'name': [{'@value': 'Alice'}]
    }]


def test_input_is_not_changed():
    doc = {
        '@context': {'name': FOAF + 'name'},
        'name': ['Alice', 'Al'],
    }
    before = repr(doc)
    jsonld.expand(doc)
    assert repr(doc) == before


def test_expansion_is_idempotent():
    doc = {
        '@context': {
            '@vocab': EX,
            'knows': {'@type': '@id'},
            'tags': {'@container': '@list'},
            'label': {'@container': '@language'},
            'ex': EX
        },
        '@id': 'ex:alice',
        '@type': 'Person',
        'knows': ['ex:bob', 'ex:carol'],
        'tags': ['a', 'b'],
        'label': {'en': 'Alice', 'fr': 'Alice'},
        'age': 42,
        'height': 1.72,
        'active': True,
        'friend': {'@id': 'ex:dave', 'name': 'Dave'}
    }
    expanded = jsonld.expand(doc)
    assert jsonld.expand(expanded) == expanded
    assert jsonld.expand(expanded, {'expandContext': {}}) == expanded


def test_native_values_and_types():
    doc = {
        '@context': {
            '@vocab': EX,
            'xsd': 'http://www.w3.org/2001/XMLSchema#',
            'date': {'@type': 'xsd:date'},
            'homepage': {'@type': '@id'}
        },
        'date': '2020-01-01',
        'homepage': 'http://example.com/',
        'count': 3
    }
    assert jsonld.expand(doc) == [{
        EX + 'date': [{
            '@value': '2020-01-01',
            '@type': 'http://www.w3.org/2001/XMLSchema#date'
        }],
        EX + 'homepage': [{'@id': 'http://example.com/'}],
        EX + 'count': [{'@value': 3}]
    }]


def test_language_and_json_values():
    doc = {
        '@context': {
            '@vocab': EX,
            '@language': 'EN',
            'data': {'@type': '@json'},
            'code': {'@language': None}
        },
        'title': 'Hello',
        'code': 'x1',
        'data': {'b': [1, 2], 'a': None}
    }
    assert jsonld.expand(doc) == [{
        EX + 'title': [{'@value': 'Hello', '@language': 'en'}],
        EX + 'code': [{'@value': 'x1'}],
        EX + 'data': [{'@value': {'b': [1, 2], 'a': None}, '@type': '@json'}]
    }]


def test_reverse_property():
    doc = {
        '@context': {'@vocab': EX, 'parent': {'@reverse': EX + 'child'}},
        '@id': EX + 'bob',
        'parent': {'@id': EX + 'alice'}
    }
    assert jsonld.expand(doc) == [{
        '@id': EX + 'bob',
        '@reverse': {EX + 'child': [{'@id': EX + 'alice'}]}
    }]


def test_relative_ids_resolve_against_base():
    doc = {'@id': 'alice', EX + 'p': {'@id': '../bob'}}
    assert jsonld.expand(doc, {'base': 'http://example.com/a/b'}) == [{
        '@id': 'http://example.com/a/alice',
        EX + 'p': [{'@id': 'http://example.com/bob'}]
    }]


def test_free_floating_values_are_dropped():
    doc = {'@context': {'@vocab': EX}, '@graph': [
        'text', {'@value': 1}, {'@id': EX + 'only-id'},
        {'@id': EX + 'x', 'p': 1}]}
    assert jsonld.expand(doc) == [{
        '@id': EX + 'x', EX + 'p': [{'@value': 1}]}]


def test_unknown_keywords_are_dropped():
    doc = {'@context': {'@vocab': EX}, '@foo': 'bar', 'p': 'v'}
    assert jsonld.expand(doc) == [{EX + 'p': [{'@value': 'v'}]}]


def test_lists():
    doc = {
        '@context': {'@vocab': EX},
        'p': {'@list': [1, {'@value': 'two'}, None]},
        'q': {'@list': []}
    }
    assert jsonld.expand(doc) == [{
        EX + 'p': [{'@list': [{'@value': 1}, {'@value': 'two'}]}],
        EX + 'q': [{'@list': []}]
    }]


@pytest.mark.parametrize('value', [
    {'@list': [[1, 2]]},
    {'@list': [{'@list': [1]}]},
])
def test_list_of_lists_raises(value):
    doc = {'@context': {'@vocab': EX}, 'p': value}
    with pytest.raises(ListOfListsError) as excinfo:
        jsonld.expand(doc)
    assert excinfo.value.code == 'list of lists'


def test_list_container_of_lists_raises():
    doc = {
        '@context': {'p': {'@id': EX + 'p', '@container': '@list'}},
        'p': [[1], [2]]
    }
    with pytest.raises(ListOfListsError):
        jsonld.expand(doc)


@pytest.mark.parametrize('value', [
    {'@value': 'x', EX + 'other': 'y'},
    {'@value': 'x', '@type': EX + 'T', '@language': 'en'},
])
def test_invalid_value_object_raises(value):
    with pytest.raises(InvalidValueObject) as excinfo:
        jsonld.expand({EX + 'p': value})
    assert excinfo.value.code == 'invalid value object'


def test_typed_value_needs_absolute_type():
    with pytest.raises(JsonLdError) as excinfo:
        jsonld.expand({EX + 'p': {'@value': 'x', '@type': 'relative'}})
    assert excinfo.value.code == 'invalid typed value'


def test_colliding_keywords_raise():
    doc = {'@context': {'id': '@id'}, '@id': EX + 'a', 'id': EX + 'b'}
    with pytest.raises(JsonLdError) as excinfo:
        jsonld.expand(doc)
    assert excinfo.value.code == 'colliding keywords'


def test_ordered_expansion():
    doc = {'@context': {'@vocab': EX}, 'b': 1, 'a': 2, 'c': 3}
    expanded = jsonld.expand(doc, {'ordered': True})
    assert list(expanded[0]) == [EX + 'a', EX + 'b', EX + 'c']


def test_context_url_from_remote_document(offline_loader):
    offline_loader.add_document(
        'http://example.com/ctx', {'@context': {'name': FOAF + 'name'}})
    offline_loader.add_document(
        'http://example.com/doc', {'name': 'Alice'},
        content_type='application/json',
        context_url='http://example.com/ctx')
    expanded = jsonld.expand(
        'http://example.com/doc', {'documentLoader': offline_loader})
    assert expanded == [{FOAF + 'name': [{'@value': 'Alice'}]}]


def _person_context(**scoped):
    scoped['name'] = FOAF + 'name'
    return {
        '@vocab': EX,
        'Person': {'@id': EX + 'Person', '@context': scoped}
    }


def test_type_scoped_context_does_not_propagate():
    doc = {
        '@context': _person_context(),
        '@type': 'Person',
        'name': 'Alice',
        'knows': {'name': 'Bob'}
    }
    assert jsonld.expand(doc) == [{
        '@type': [EX + 'Person'],
        FOAF + 'name': [{'@value': 'Alice'}],
        EX + 'knows': [{EX + 'name': [{'@value': 'Bob'}]}]
    }]


def test_type_scoped_context_with_propagate():
    doc = {
        '@context': _person_context(**{'@propagate': True}),
        '@type': 'Person',
        'knows': {'name': 'Bob'}
    }
    assert jsonld.expand(doc) == [{
        '@type': [EX + 'Person'],
        EX + 'knows': [{FOAF + 'name': [{'@value': 'Bob'}]}]
    }]


def test_nested_properties():
    doc = {
        '@context': {
            '@vocab': EX,
            'labels': '@nest',
            'main': {'@id': EX + 'main', '@nest': 'labels'}
        },
        '@id': EX + 's',
        'labels': {'main': 'Main', 'other': 'Other'}
    }
    assert jsonld.expand(doc) == [{
        '@id': EX + 's',
        EX + 'main': [{'@value': 'Main'}],
        EX + 'other': [{'@value': 'Other'}]
    }]


def test_nested_value_must_be_a_node():
    doc = {'@context': {'@vocab': EX, 'labels': '@nest'}, 'labels': 'x'}
    with pytest.raises(JsonLdError) as excinfo:
        jsonld.expand(doc)
    assert excinfo.value.code == 'invalid @nest value'


def test_included_nodes():
    doc = {
        '@context': {'@vocab': EX},
        '@id': EX + 'a',
        '@included': [{'@id': EX + 'b', 'name': 'B'}]
    }
    assert jsonld.expand(doc) == [{
        '@id': EX + 'a',
        '@included': [{'@id': EX + 'b', EX + 'name': [{'@value': 'B'}]}]
    }]


def test_container_maps():
    doc = {
        '@context': {
            '@vocab': EX,
            'posts': {'@id': EX + 'post', '@container': '@index'},
            'friends': {'@id': EX + 'friend', '@container': '@id'},
            'pets': {'@id': EX + 'pet', '@container': '@type'},
            'claims': {
                '@id': EX + 'claim', '@container': ['@graph', '@index']}
        },
        '@id': EX + 'alice',
        'posts': {'en': 'Hello', 'de': 'Hallo'},
        'friends': {EX + 'bob': {'name': 'Bob'}},
        'pets': {'Cat': {'name': 'Tom'}},
        'claims': {'c1': {'@id': EX + 'c', 'name': 'C'}}
    }
    assert jsonld.expand(doc) == [{
        '@id': EX + 'alice',
        EX + 'post': [
            {'@value': 'Hello', '@index': 'en'},
            {'@value': 'Hallo', '@index': 'de'}
        ],
        EX + 'friend': [
            {'@id': EX + 'bob', EX + 'name': [{'@value': 'Bob'}]}],
        EX + 'pet': [
            {'@type': [EX + 'Cat'], EX + 'name': [{'@value': 'Tom'}]}],
        EX + 'claim': [{
            '@graph': [{'@id': EX + 'c', EX + 'name': [{'@value': 'C'}]}],
            '@index': 'c1'
        }]
    }]
