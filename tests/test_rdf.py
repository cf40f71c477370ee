"""
Tests for conversion between JSON-LD and RDF datasets.
"""

import pytest

from ldproc import jsonld
from ldproc.errors import JsonLdError
from ldproc.rdf import canonical_double

EX = 'http://example.org/'
RDF = 'http://www.w3.org/1999/02/22-rdf-syntax-ns#'
XSD = 'http://www.w3.org/2001/XMLSchema#'


def _iri(value):
    return {'type': 'IRI', 'value': value}


def _literal(value, datatype=XSD + 'string', language=None):
    rval = {'type': 'literal', 'value': value, 'datatype': datatype}
    if language is not None:
        rval['language'] = language
    return rval


class TestToRdf:
    def test_alice(self):
        doc = {
            '@context': {'name': 'http://xmlns.com/foaf/0.1/name'},
            '@id': 'http://example.com/Alice',
            'name': 'Alice'
        }
        assert jsonld.to_rdf(doc) == {'@default': [{
            'subject': _iri('http://example.com/Alice'),
            'predicate': _iri('http://xmlns.com/foaf/0.1/name'),
            'object': _literal('Alice')
        }]}

    def test_literals(self):
        doc = {
            '@context': {'@vocab': EX, '@language': 'en'},
            '@id': EX + 's',
            '@type': 'Thing',
            'flag': True,
            'count': 7,
            'ratio': 0.5,
            'label': 'hello',
            'code': {'@value': 'x', '@type': EX + 'Code'},
            'data': {'@value': {'b': 1, 'a': [1.0, None]}, '@type': '@json'}
        }
        objects = {
            t['predicate']['value']: t['object']
            for t in jsonld.to_rdf(doc)['@default']}
        assert objects == {
            RDF + 'type': _iri(EX + 'Thing'),
            EX + 'flag': _literal('true', XSD + 'boolean'),
            EX + 'count': _literal('7', XSD + 'integer'),
            EX + 'ratio': _literal('5.0E-1', XSD + 'double'),
            EX + 'label': _literal('hello', RDF + 'langString', 'en'),
            EX + 'code': _literal('x', EX + 'Code'),
            EX + 'data': _literal('{"a":[1,null],"b":1}', RDF + 'JSON'),
        }

    @pytest.mark.parametrize('value, expected', [
        (10 ** 21, _literal('1.0E21', XSD + 'double')),
        (-(10 ** 22), _literal('-1.0E22', XSD + 'double')),
        (10 ** 21 - 1, _literal('999999999999999999999', XSD + 'integer')),
    ])
    def test_large_integers(self, value, expected):
        doc = {'@id': EX + 's', EX + 'p': value}
        assert jsonld.to_rdf(doc)['@default'][0]['object'] == expected

    def test_blank_nodes_and_lists(self):
        doc = {
            '@context': {'@vocab': EX},
            '@id': EX + 's',
            'items': {'@list': ['a', 'b']}
        }
        nquads = jsonld.to_rdf(doc, {'format': 'application/n-quads'})
        assert nquads == (
            '<http://example.org/s> <http://example.org/items> _:b0 .\n'
            '_:b0 <%(rdf)sfirst> "a" .\n'
            '_:b0 <%(rdf)srest> _:b1 .\n'
            '_:b1 <%(rdf)sfirst> "b" .\n'
            '_:b1 <%(rdf)srest> <%(rdf)snil> .\n' % {'rdf': RDF})

    def test_named_graph(self):
        doc = {
            '@context': {'@vocab': EX},
            '@id': EX + 'g',
            '@graph': {'@id': EX + 's', 'p': 'v'}
        }
        dataset = jsonld.to_rdf(doc)
        assert dataset['@default'] == []
        assert dataset[EX + 'g'] == [{
            'subject': _iri(EX + 's'),
            'predicate': _iri(EX + 'p'),
            'object': _literal('v')
        }]

    def test_relative_iris_are_skipped(self):
        doc = {'@id': 'relative', EX + 'p': {'@id': 'other'}}
        assert jsonld.to_rdf(doc) == {'@default': []}

    def test_duplicates_are_dropped(self):
        doc = {'@context': {'@vocab': EX}, '@graph': [
            {'@id': EX + 's', 'p': {'@list': ['a']}},
            {'@id': EX + 's', 'q': 'v'},
            {'@id': EX + 's', 'q': 'v'}
        ]}
        triples = jsonld.to_rdf(doc)['@default']
        keys = [repr(sorted(t.items())) for t in triples]
        assert len(keys) == len(set(keys))

    def test_generalized_rdf(self):
        doc = {'@id': EX + 's', '_:p': 'v'}
        assert jsonld.to_rdf(doc) == {'@default': []}
        dataset = jsonld.to_rdf(doc, {'produceGeneralizedRdf': True})
        assert dataset['@default'][0]['predicate'] == {
            'type': 'blank node', 'value': '_:b0'}

    def test_unknown_format(self):
        with pytest.raises(JsonLdError):
            jsonld.to_rdf({}, {'format': 'text/turtle'})


class TestFromRdf:
    def test_nquads_input(self):
        nquads = (
            '<http://example.com/Alice> <http://xmlns.com/foaf/0.1/name> '
            '"Alice" .\n')
        assert jsonld.from_rdf(nquads) == [{
            '@id': 'http://example.com/Alice',
            'http://xmlns.com/foaf/0.1/name': [{'@value': 'Alice'}]
        }]

    def test_types_and_literals(self):
        nquads = (
            '<http://example.org/s> <%(rdf)stype> <http://example.org/T> .\n'
            '<http://example.org/s> <http://example.org/n> '
            '"5"^^<%(xsd)sinteger> .\n'
            '<http://example.org/s> <http://example.org/l> "hi"@en .\n'
            % {'rdf': RDF, 'xsd': XSD})
        assert jsonld.from_rdf(nquads) == [{
            '@id': EX + 's',
            '@type': [EX + 'T'],
            EX + 'n': [{'@value': '5', '@type': XSD + 'integer'}],
            EX + 'l': [{'@value': 'hi', '@language': 'en'}]
        }]

    def test_use_rdf_type(self):
        nquads = '<%ss> <%stype> <%sT> .\n' % (EX, RDF, EX)
        assert jsonld.from_rdf(nquads, {'useRdfType': True}) == [
            {'@id': EX + 's', RDF + 'type': [{'@id': EX + 'T'}]}]

    @pytest.mark.parametrize('lexical,datatype,expected', [
        ('true', 'boolean', True),
        ('false', 'boolean', False),
        ('-12', 'integer', -12),
        ('4.5E1', 'double', 45.0),
        ('1.5', 'double', 1.5),
    ])
    def test_native_types(self, lexical, datatype, expected):
        nquads = '<%ss> <%sp> "%s"^^<%s%s> .\n' % (
            EX, EX, lexical, XSD, datatype)
        output = jsonld.from_rdf(nquads, {'useNativeTypes': True})
        value = output[0][EX + 'p'][0]
        assert value == {'@value': expected}
        assert type(value['@value']) is type(expected)

    @pytest.mark.parametrize('lexical,datatype', [
        ('yes', 'boolean'),
        ('1.5', 'integer'),
        ('abc', 'double'),
    ])
    def test_invalid_native_forms_are_kept(self, lexical, datatype):
        nquads = '<%ss> <%sp> "%s"^^<%s%s> .\n' % (
            EX, EX, lexical, XSD, datatype)
        output = jsonld.from_rdf(nquads, {'useNativeTypes': True})
        assert output[0][EX + 'p'] == [
            {'@value': lexical, '@type': XSD + datatype}]

    def test_json_literal(self):
        nquads = '<%ss> <%sp> "{\\"a\\":[1,2]}"^^<%sJSON> .\n' % (
            EX, EX, RDF)
        assert jsonld.from_rdf(nquads)[0][EX + 'p'] == [
            {'@value': {'a': [1, 2]}, '@type': '@json'}]

    def test_invalid_json_literal(self):
        nquads = '<%ss> <%sp> "{oops"^^<%sJSON> .\n' % (EX, EX, RDF)
        with pytest.raises(JsonLdError) as excinfo:
            jsonld.from_rdf(nquads)
        assert excinfo.value.code == 'invalid JSON literal'

    def test_list(self):
        nquads = (
            '<%(ex)ss> <%(ex)sp> _:l1 .\n'
            '_:l1 <%(rdf)sfirst> "a" .\n'
            '_:l1 <%(rdf)srest> _:l2 .\n'
            '_:l2 <%(rdf)sfirst> "b" .\n'
            '_:l2 <%(rdf)srest> <%(rdf)snil> .\n' % {'ex': EX, 'rdf': RDF})
        assert jsonld.from_rdf(nquads) == [{
            '@id': EX + 's',
            EX + 'p': [{'@list': [{'@value': 'a'}, {'@value': 'b'}]}]
        }]

    def test_empty_list(self):
        nquads = '<%ss> <%sp> <%snil> .\n' % (EX, EX, RDF)
        assert jsonld.from_rdf(nquads) == [
            {'@id': EX + 's', EX + 'p': [{'@list': []}]}]

    def test_list_missing_terminator_does_not_raise(self):
        nquads = (
            '<%(ex)ss> <%(ex)sp> _:l1 .\n'
            '_:l1 <%(rdf)sfirst> "a" .\n'
            '_:l1 <%(rdf)srest> _:l2 .\n'
            '_:l2 <%(rdf)sfirst> "b" .\n' % {'ex': EX, 'rdf': RDF})
        output = jsonld.from_rdf(nquads)
        # the chain stays a set of plain nodes
        assert output == [
            {'@id': '_:l1',
             RDF + 'first': [{'@value': 'a'}],
             RDF + 'rest': [{'@id': '_:l2'}]},
            {'@id': '_:l2', RDF + 'first': [{'@value': 'b'}]},
            {'@id': EX + 's', EX + 'p': [{'@id': '_:l1'}]},
        ]

    def test_list_node_with_extra_property_is_kept(self):
        nquads = (
            '<%(ex)ss> <%(ex)sp> _:l1 .\n'
            '_:l1 <%(rdf)sfirst> "a" .\n'
            '_:l1 <%(rdf)sfirst> "c" .\n'
            '_:l1 <%(rdf)srest> _:l2 .\n'
            '_:l2 <%(rdf)sfirst> "b" .\n'
            '_:l2 <%(rdf)srest> <%(rdf)snil> .\n' % {'ex': EX, 'rdf': RDF})
        output = jsonld.from_rdf(nquads)
        head = [node for node in output if node['@id'] == '_:l1'][0]
        assert head[RDF + 'first'] == [{'@value': 'a'}, {'@value': 'c'}]
        assert head[RDF + 'rest'] == [{'@list': [{'@value': 'b'}]}]

    def test_shared_list_node_is_not_converted(self):
        nquads = (
            '<%(ex)ss> <%(ex)sp> _:l1 .\n'
            '<%(ex)st> <%(ex)sp> _:l1 .\n'
            '_:l1 <%(rdf)sfirst> "a" .\n'
            '_:l1 <%(rdf)srest> <%(rdf)snil> .\n' % {'ex': EX, 'rdf': RDF})
        output = jsonld.from_rdf(nquads)
        assert [node['@id'] for node in output] == [
            '_:l1', EX + 's', EX + 't']

    def test_named_graphs(self):
        nquads = (
            '<%(ex)ss> <%(ex)sp> "v" <%(ex)sg> .\n'
            '<%(ex)ss> <%(ex)sp> "w" .\n' % {'ex': EX})
        assert jsonld.from_rdf(nquads) == [
            {'@id': EX + 'g', '@graph': [
                {'@id': EX + 's', EX + 'p': [{'@value': 'v'}]}]},
            {'@id': EX + 's', EX + 'p': [{'@value': 'w'}]},
        ]

    def test_unknown_format(self):
        with pytest.raises(JsonLdError):
            jsonld.from_rdf('', {'format': 'text/turtle'})

    def test_parse_error(self):
        with pytest.raises(JsonLdError):
            jsonld.from_rdf('this is not n-quads\n')


def test_round_trip():
    doc = {
        '@context': {'@vocab': EX},
        '@id': EX + 's',
        '@type': 'Thing',
        'name': 'thing',
        'items': {'@list': [{'@id': EX + 'a'}, 'b']},
        'count': 3,
        'flag': False
    }
    nquads = jsonld.to_rdf(doc, {'format': 'application/n-quads'})
    expanded = jsonld.from_rdf(nquads, {'useNativeTypes': True})
    assert expanded == jsonld.expand(doc)


@pytest.mark.parametrize('value,expected', [
    (45, '4.5E1'),
    (1.0, '1.0E0'),
    (0.00015, '1.5E-4'),
    (-2.5e20, '-2.5E20'),
    (123456.789, '1.23456789E5'),
])
def test_canonical_double(value, expected):
    assert canonical_double(value) == expected
