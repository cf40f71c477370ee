"""
Tests for JSON-LD compaction.
"""

import pytest

from ldproc import jsonld
from ldproc.compaction import compact_iri
from ldproc.context import ContextResolver, get_initial_context
from ldproc.errors import JsonLdError

FOAF = 'http://xmlns.com/foaf/0.1/'
EX = 'http://example.org/'

CONTEXT = {
    '@vocab': EX,
    'ex': EX,
    'knows': {'@type': '@id'},
    'tags': {'@container': '@list'},
    'label': {'@container': '@language'},
    'parent': {'@reverse': EX + 'child'}
}


def _active_context(local_ctx, options=None):
    options = options or {}
    return ContextResolver(None, options).resolve(
        get_initial_context(options), local_ctx)


@pytest.mark.parametrize('doc', [
    {
        '@context': CONTEXT,
        '@id': 'ex:alice',
        '@type': 'Person',
        'name': 'Alice',
        'knows': ['ex:bob', 'ex:carol'],
        'tags': ['a', 'b'],
        'age': 42
    },
    {
        '@context': CONTEXT,
        '@id': 'ex:bob',
        'label': {'en': 'Bob', 'fr': 'Robert'}
    },
    {
        '@context': CONTEXT,
        '@id': 'ex:bob',
        'parent': {'@id': 'ex:alice', 'name': 'Alice'}
    },
    {
        '@context': CONTEXT,
        '@graph': [
            {'@id': 'ex:alice', 'name': 'Alice'},
            {'@id': 'ex:bob', 'name': 'Bob'}
        ]
    },
])
def test_round_trip(doc):
    compacted = jsonld.compact(jsonld.expand(doc), CONTEXT)
    assert compacted == doc


MAPS = {
    '@vocab': EX,
    'ex': EX,
    'posts': {'@id': EX + 'post', '@container': '@index'},
    'friends': {'@id': EX + 'friend', '@container': '@id'},
    'pets': {'@id': EX + 'pet', '@container': '@type'},
    'claims': {'@id': EX + 'claim', '@container': ['@graph', '@index']},
    'labels': '@nest',
    'main': {'@id': EX + 'main', '@nest': 'labels'}
}


@pytest.mark.parametrize('doc', [
    {'@context': MAPS, '@id': 'ex:alice',
     'posts': {'en': 'Hello', 'de': 'Hallo'}},
    {'@context': MAPS, '@id': 'ex:alice',
     'friends': {'ex:bob': {'name': 'Bob'}}},
    {'@context': MAPS, '@id': 'ex:alice', 'pets': {'Cat': {'name': 'Tom'}}},
    {'@context': MAPS, '@id': 'ex:alice',
     'claims': {'c1': {'@id': 'ex:c', 'name': 'C'}}},
    {'@context': MAPS, '@id': 'ex:s',
     'labels': {'main': 'Main'}, 'other': 'Other'},
    {'@context': MAPS, '@id': 'ex:a', 'name': 'A',
     '@included': [{'@id': 'ex:b', 'name': 'B'}]},
])
def test_round_trip_maps_and_nesting(doc):
    compacted = jsonld.compact(jsonld.expand(doc), MAPS)
    assert compacted == doc


@pytest.mark.parametrize('propagate', [False, True])
def test_round_trip_type_scoped_context(propagate):
    ctx = {
        '@vocab': EX,
        'Person': {
            '@id': EX + 'Person',
            '@context': {'@propagate': propagate, 'name': FOAF + 'name'}
        }
    }
    doc = {
        '@context': ctx,
        '@type': 'Person',
        'name': 'Alice',
        'knows': {'name': 'Bob'}
    }
    expanded = jsonld.expand(doc)
    inner_name = FOAF + 'name' if propagate else EX + 'name'
    assert inner_name in expanded[0][EX + 'knows'][0]
    assert jsonld.compact(expanded, ctx) == doc


def test_alice():
    expanded = [{
        '@id': 'http://example.com/Alice',
        FOAF + 'name': [{'@value': 'Alice'}]
    }]
    ctx = {'name': FOAF + 'name'}
    assert jsonld.compact(expanded, ctx) == {
        '@context': ctx,
        '@id': 'http://example.com/Alice',
        'name': 'Alice'
    }


def test_context_comes_first():
    compacted = jsonld.compact(
        {'@id': EX + 'a', EX + 'p': 'v'}, {'@vocab': EX})
    assert list(compacted) == ['@context', '@id', 'p']


def test_no_compact_arrays():
    doc = {'@id': EX + 'a', EX + 'p': 'v'}
    compacted = jsonld.compact(
        doc, {'@vocab': EX}, {'compactArrays': False})
    assert compacted == {
        '@context': {'@vocab': EX},
        '@graph': [{'@id': EX + 'a', 'p': ['v']}]
    }


def test_graph_option_always_outputs_graph():
    doc = {'@id': EX + 'a', EX + 'p': 'v'}
    compacted = jsonld.compact(doc, {'@vocab': EX}, {'graph': True})
    assert compacted == {
        '@context': {'@vocab': EX},
        '@graph': [{'@id': EX + 'a', 'p': 'v'}]
    }


def test_graph_keyword_alias():
    ctx = {'@vocab': EX, 'items': '@graph'}
    doc = [{'@id': EX + 'a', EX + 'p': 'v'}, {'@id': EX + 'b', EX + 'p': 'w'}]
    compacted = jsonld.compact(doc, ctx)
    assert compacted['items'] == [
        {'@id': EX + 'a', 'p': 'v'}, {'@id': EX + 'b', 'p': 'w'}]


def test_empty_input():
    ctx = {'@vocab': EX}
    assert jsonld.compact([], ctx) == {'@context': ctx}


def test_empty_context_is_not_output():
    assert jsonld.compact({'@id': EX + 'a', EX + 'p': 'v'}, {}) == {
        '@id': EX + 'a', EX + 'p': 'v'}


def test_null_context_raises():
    with pytest.raises(JsonLdError) as excinfo:
        jsonld.compact({}, None)
    assert excinfo.value.code == 'invalid local context'


def test_active_context_option():
    result = jsonld.compact(
        {EX + 'p': 'v'}, {'@vocab': EX}, {'activeCtx': True})
    assert result['compacted'] == {'@context': {'@vocab': EX}, 'p': 'v'}
    assert result['activeCtx']['@vocab'] == EX


def test_type_coercion_is_respected():
    ctx = {'homepage': {'@id': FOAF + 'homepage', '@type': '@id'}}
    doc = {FOAF + 'homepage': [
        {'@id': 'http://example.com/'}, {'@value': 'not an IRI'}]}
    compacted = jsonld.compact(doc, ctx)
    # only the IRI value matches the coerced term
    assert compacted['homepage'] == 'http://example.com/'
    assert compacted[FOAF + 'homepage'] == 'not an IRI'


def test_relative_ids_against_base():
    doc = {'@id': 'http://example.com/a/b', EX + 'p': 'v'}
    compacted = jsonld.compact(
        doc, {'@vocab': EX}, {'base': 'http://example.com/a/'})
    assert compacted['@id'] == 'b'


class TestCompactIri:
    def setup_method(self):
        self.ctx = _active_context({
            '@vocab': EX,
            'foaf': FOAF,
            'name': FOAF + 'name',
            'type': '@type'
        })

    def test_term(self):
        assert compact_iri(self.ctx, FOAF + 'name', vocab=True) == 'name'

    def test_curie(self):
        assert compact_iri(self.ctx, FOAF + 'mbox', vocab=True) == \
            'foaf:mbox'

    def test_vocab(self):
        assert compact_iri(self.ctx, EX + 'Thing', vocab=True) == 'Thing'

    def test_keyword_alias(self):
        assert compact_iri(self.ctx, '@type') == 'type'
        assert compact_iri(self.ctx, '@id') == '@id'

    def test_unrelated_iri(self):
        assert compact_iri(self.ctx, 'urn:x:1', vocab=True) == 'urn:x:1'
