"""
Tests for values typed with XSD integer-derived datatypes.

Typed string values keep their lexical form through framing, compaction and
RDF conversion; only native numbers are reformatted.
"""

import pytest

from ldproc import jsonld

EX = 'http://example.org/'
XSD = 'http://www.w3.org/2001/XMLSchema#'
NQUADS = 'application/n-quads'


def _typed(datatype, lexical, id_='s'):
    return {
        '@context': {'@vocab': EX},
        '@id': EX + id_,
        'v': {'@type': XSD + datatype, '@value': lexical}
    }


@pytest.mark.parametrize('datatype, lexical', [
    ('int', '2147483647'),
    ('int', '-2147483648'),
    ('long', '9223372036854775807'),
    ('integer', '0'),
    ('integer', '007'),
])
def test_coerced_term_keeps_lexical_form(datatype, lexical):
    frame = {
        '@context': {
            '@vocab': EX,
            'v': {'@id': EX + 'v', '@type': XSD + datatype}
        },
        'v': {}
    }
    framed = jsonld.frame(_typed(datatype, lexical), frame)
    assert framed['v'] == lexical


def test_uncoerced_term_keeps_value_object():
    framed = jsonld.frame(
        _typed('int', '789'), {'@context': {'@vocab': EX}, 'v': {}})
    assert framed['v'] == {'@type': XSD + 'int', '@value': '789'}


def test_term_with_other_datatype_is_not_selected():
    ctx = {
        '@vocab': EX,
        'asLong': {'@id': EX + 'v', '@type': XSD + 'long'}
    }
    compacted = jsonld.compact(_typed('int', '789'), ctx)
    assert 'asLong' not in compacted
    assert compacted['v'] == {'@type': XSD + 'int', '@value': '789'}


def test_value_pattern_selects_by_datatype():
    doc = {'@graph': [_typed('int', '456', 'a'), _typed('long', '456', 'b')]}
    frame = {
        '@context': {'@vocab': EX},
        'v': {'@type': XSD + 'long', '@value': '456'}
    }
    framed = jsonld.frame(doc, frame)
    assert framed['@id'] == EX + 'b'


@pytest.mark.parametrize('value, expected', [
    ({'@type': XSD + 'long', '@value': '9223372036854775807'},
     '"9223372036854775807"^^<%slong>' % XSD),
    ({'@type': XSD + 'integer', '@value': '007'},
     '"007"^^<%sinteger>' % XSD),
    (9223372036854775807, '"9223372036854775807"^^<%sinteger>' % XSD),
])
def test_to_rdf(value, expected):
    doc = {'@id': EX + 's', EX + 'v': value}
    nquads = jsonld.to_rdf(doc, {'format': NQUADS})
    assert nquads == '<%ss> <%sv> %s .\n' % (EX, EX, expected)
