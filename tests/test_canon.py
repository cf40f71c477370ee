"""
Tests for RDF dataset canonicalization.
"""

import copy
import random
import re

import pytest

from ldproc import canon, jsonld
from ldproc.errors import CanonicalizationComplexityExceeded, JsonLdError
from ldproc.nquads import parse_nquads

NQUADS = 'application/n-quads'
EX = 'http://example.org/'

MIXED = [
    '_:a <http://example.org/knows> _:b .',
    '_:b <http://example.org/knows> _:c .',
    '_:c <http://example.org/name> "Carol" .',
    '_:a <http://example.org/name> "Alice" .',
    '<http://example.org/doc> <http://example.org/about> _:a _:g .',
    '_:b <http://example.org/name> "Bob"@en _:g .',
]

RING = [
    '_:a <http://example.org/p> _:b .',
    '_:b <http://example.org/p> _:c .',
    '_:c <http://example.org/p> _:a .',
]


def _normalize(lines, **options):
    opts = {'inputFormat': NQUADS, 'format': NQUADS}
    opts.update(options)
    return jsonld.normalize('\n'.join(lines) + '\n', opts)


def _relabel(lines, mapping):
    return [
        re.sub(r'_:(\w+)', lambda m: '_:' + mapping[m.group(1)], line)
        for line in lines]


def _labels(nquads):
    return set(re.findall(r'_:\w+', nquads))


def test_single_blank_node():
    assert _normalize(['_:x <http://example.org/p> "v" .']) == \
        '_:c14n0 <http://example.org/p> "v" .\n'


def test_no_blank_nodes():
    lines = [
        '<http://example.org/b> <http://example.org/p> "2" .',
        '<http://example.org/a> <http://example.org/p> "1" .',
    ]
    assert _normalize(lines) == (
        '<http://example.org/a> <http://example.org/p> "1" .\n'
        '<http://example.org/b> <http://example.org/p> "2" .\n')


def test_labels_are_canonical():
    assert _labels(_normalize(MIXED)) == {
        '_:c14n0', '_:c14n1', '_:c14n2', '_:c14n3'}


@pytest.mark.parametrize('seed', range(5))
def test_quad_order_does_not_matter(seed):
    shuffled = list(MIXED)
    random.Random(seed).shuffle(shuffled)
    assert _normalize(shuffled) == _normalize(MIXED)


def test_blank_node_labels_do_not_matter():
    relabeled = _relabel(
        MIXED, {'a': 'n9', 'b': 'zz', 'c': 'first', 'g': 'graph1'})
    assert _normalize(relabeled) == _normalize(MIXED)


def test_symmetric_ring_is_deterministic():
    expected = _normalize(RING)
    assert _labels(expected) == {'_:c14n0', '_:c14n1', '_:c14n2'}
    relabeled = _relabel(RING, {'a': 'y', 'b': 'z', 'c': 'x'})
    assert _normalize(list(reversed(relabeled))) == expected


def test_non_isomorphic_datasets_differ():
    other = list(RING)
    other[2] = '_:a <http://example.org/p> _:c .'
    assert _normalize(other) != _normalize(RING)


def test_urgna2012():
    result = _normalize(MIXED, algorithm='URGNA2012')
    assert _labels(result) == {'_:c14n0', '_:c14n1', '_:c14n2', '_:c14n3'}
    assert _normalize(list(reversed(MIXED)), algorithm='URGNA2012') == result


def test_dataset_output_by_default():
    dataset = jsonld.normalize(
        '_:x <http://example.org/p> "v" .\n', {'inputFormat': NQUADS})
    assert dataset == {'@default': [{
        'subject': {'type': 'blank node', 'value': '_:c14n0'},
        'predicate': {'type': 'IRI', 'value': EX + 'p'},
        'object': {
            'type': 'literal', 'value': 'v',
            'datatype': 'http://www.w3.org/2001/XMLSchema#string'}
    }]}


def test_input_dataset_is_not_changed():
    dataset = parse_nquads('\n'.join(MIXED))
    before = copy.deepcopy(dataset)
    canon.normalize(dataset, {'format': NQUADS})
    assert dataset == before


def test_json_ld_input():
    doc = {'@context': {'@vocab': EX}, 'name': 'x'}
    assert jsonld.normalize(doc, {'format': NQUADS}) == \
        '_:c14n0 <http://example.org/name> "x" .\n'


def test_complexity_limit():
    # every node of a complete graph looks like every other one
    clique = [
        '_:n%d <http://example.org/p> _:n%d .' % (i, j)
        for i in range(6) for j in range(6) if i != j]
    with pytest.raises(CanonicalizationComplexityExceeded) as excinfo:
        _normalize(clique, maxWork=10)
    assert excinfo.value.code == 'canonicalization complexity exceeded'
    assert excinfo.value.details == {'maxWork': 10}


def test_no_work_limit():
    assert _labels(_normalize(RING, maxWork=None)) == {
        '_:c14n0', '_:c14n1', '_:c14n2'}


def test_unknown_algorithm():
    with pytest.raises(JsonLdError) as excinfo:
        _normalize(RING, algorithm='URDNA1999')
    assert excinfo.value.type == 'jsonld.NormalizeError'


def test_unknown_output_format():
    with pytest.raises(JsonLdError) as excinfo:
        _normalize(RING, format='text/turtle')
    assert excinfo.value.type == 'jsonld.UnknownFormat'


def test_unknown_input_format():
    with pytest.raises(JsonLdError) as excinfo:
        jsonld.normalize('', {'inputFormat': 'text/turtle'})
    assert excinfo.value.type == 'jsonld.NormalizeError'


def test_invalid_n_quads_input():
    with pytest.raises(JsonLdError) as excinfo:
        jsonld.normalize('not a quad\n', {'inputFormat': NQUADS})
    assert excinfo.value.type == 'jsonld.NormalizeError'


def test_permutations():
    seen = [list(p) for p in canon.permutations(['c', 'a', 'b'])]
    assert seen[0] == ['a', 'b', 'c']
    assert len(seen) == 6
    assert sorted(map(tuple, seen)) == sorted(
        [('a', 'b', 'c'), ('a', 'c', 'b'), ('b', 'a', 'c'),
         ('b', 'c', 'a'), ('c', 'a', 'b'), ('c', 'b', 'a')])


def test_literal_with_unicode_line_breaks():
    value = 'a\u2028b\x85c'
    doc = {'@id': EX + 's', EX + 'p': value}
    dataset = jsonld.normalize(doc)
    assert dataset['@default'][0]['object']['value'] == value
    assert jsonld.normalize(doc, {'format': NQUADS}) == \
        '<http://example.org/s> <http://example.org/p> "%s" .\n' % value
