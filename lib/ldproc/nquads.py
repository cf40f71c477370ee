"""
Parsing and serialization of RDF datasets as N-Quads.

.. module:: ldproc.nquads
  :synopsis: N-Quads reader and writer
"""

import re

from ldproc.util import RDF_LANGSTRING, XSD_STRING

__all__ = [
    'parse_nquads', 'serialize_nquads', 'serialize_nquad', 'ParserError']

_ESCAPES = {
    '\\': '\\\\',
    '\t': '\\t',
    '\n': '\\n',
    '\r': '\\r',
    '"': '\\"',
}
_UNESCAPES = {
    't': '\t', 'b': '\b', 'n': '\n', 'r': '\r', 'f': '\f',
    '"': '"', "'": "'", '\\': '\\',
}
_ESCAPE_RE = re.compile(r'[\\\t\n\r"]')
_UNESCAPE_RE = re.compile(
    r'\\(?:([tbnrf"\'\\])|u([0-9A-Fa-f]{4})|U([0-9A-Fa-f]{8}))')

# partial regexes
_IRI = '(?:<([^:]+:[^>]*)>)'
_BNODE = '(_:(?:[A-Za-z0-9_][A-Za-z0-9_.-]*))'
_PLAIN = '"([^"\\\\]*(?:\\\\.[^"\\\\]*)*)"'
_DATATYPE = '(?:\\^\\^' + _IRI + ')'
_LANGUAGE = '(?:@([a-zA-Z]+(?:-[a-zA-Z0-9]+)*))'
_LITERAL = '(?:' + _PLAIN + '(?:' + _DATATYPE + '|' + _LANGUAGE + ')?)'
_WS = '[ \\t]+'
_WSO = '[ \\t]*'

# quad part regexes
_SUBJECT = '(?:' + _IRI + '|' + _BNODE + ')' + _WS
_PROPERTY = _IRI + _WS
_OBJECT = '(?:' + _IRI + '|' + _BNODE + '|' + _LITERAL + ')' + _WSO
# literals are not allowed as graph names in the RDF data model
_GRAPH = '(?:\\.|(?:(?:' + _IRI + '|' + _BNODE + ')' + _WSO + '\\.))'

EMPTY = re.compile('^' + _WSO + '(?:#.*)?$')
QUAD = re.compile(
    '^' + _WSO + _SUBJECT + _PROPERTY + _OBJECT + _GRAPH + _WSO +
    '(?:#.*)?$')


class ParserError(ValueError):
    """
    Raised when N-Quads input cannot be parsed.
    """

    def __init__(self, message, line_number=None):
        ValueError.__init__(self, message)
        self.line_number = line_number


def escape(value):
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], value)


def unescape(value):
    def replace(match):
        if match.group(1):
            return _UNESCAPES[match.group(1)]
        return chr(int(match.group(2) or match.group(3), 16))
    return _UNESCAPE_RE.sub(replace, value)


def parse_nquads(input_):
    """
    Parses RDF in the form of N-Quads.

    :param input_: the N-Quads input to parse.

    :return: an RDF dataset.
    """
    dataset = {}
    seen = {}

    for line_number, line in enumerate(re.split(r'\r?\n', input_), 1):
        # skip empty lines and comments
        if EMPTY.match(line):
            continue

        match = QUAD.match(line)
        if match is None:
            raise ParserError(
                'Error while parsing N-Quads; invalid quad %r at line %d.' %
                (line, line_number), line_number=line_number)
        match = match.groups()

        triple = {}

        # get subject
        if match[0] is not None:
            triple['subject'] = {'type': 'IRI', 'value': match[0]}
        else:
            triple['subject'] = {'type': 'blank node', 'value': match[1]}

        # get predicate
        triple['predicate'] = {'type': 'IRI', 'value': match[2]}

        # get object
        if match[3] is not None:
            triple['object'] = {'type': 'IRI', 'value': match[3]}
        elif match[4] is not None:
            triple['object'] = {'type': 'blank node', 'value': match[4]}
        else:
            object = {'type': 'literal', 'value': unescape(match[5])}
            if match[6] is not None:
                object['datatype'] = match[6]
            elif match[7] is not None:
                object['datatype'] = RDF_LANGSTRING
                object['language'] = match[7]
            else:
                object['datatype'] = XSD_STRING
            triple['object'] = object

        # get graph name ('@default' is used for the default graph)
        name = match[8] or match[9] or '@default'

        # add triple if unique to its graph
        key = serialize_nquad(triple)
        keys = seen.setdefault(name, set())
        if key not in keys:
            keys.add(key)
            dataset.setdefault(name, []).append(triple)

    return dataset


def serialize_nquads(dataset):
    """
    Converts an RDF dataset to N-Quads.

    :param dataset: the RDF dataset to convert.

    :return: the N-Quads string, one sorted line per quad.
    """
    quads = []
    for graph_name, triples in dataset.items():
        name = None if graph_name == '@default' else graph_name
        for triple in triples:
            quads.append(serialize_nquad(triple, name))
    quads.sort()
    return ''.join(quads)


def _term(term):
    if term['type'] == 'IRI':
        return '<' + term['value'] + '>'
    return term['value']


def serialize_nquad(triple, graph_name=None):
    """
    Converts an RDF triple and graph name to an N-Quad string (a single
    quad).

    :param triple: the RDF triple or quad to convert (a triple or quad
        may be passed, if a triple is passed then `graph_name` should be
        given to specify the name of the graph the triple is in, `None`
        for the default graph).
    :param graph_name: the name of the graph containing the triple, None
        for the default graph.

    :return: the N-Quad string.
    """
    s = triple['subject']
    p = triple['predicate']
    o = triple['object']
    g = triple['name']['value'] if 'name' in triple else graph_name

    quad = _term(s) + ' ' + _term(p) + ' '

    # object is IRI, bnode, or literal
    if o['type'] == 'literal':
        quad += '"' + escape(o['value']) + '"'
        datatype = o.get('datatype', XSD_STRING)
        if datatype == RDF_LANGSTRING:
            if o.get('language'):
                quad += '@' + o['language']
        elif datatype != XSD_STRING:
            quad += '^^<' + datatype + '>'
    else:
        quad += _term(o)

    if g is not None:
        if g.startswith('_:'):
            quad += ' ' + g
        else:
            quad += ' <' + g + '>'

    return quad + ' .\n'
