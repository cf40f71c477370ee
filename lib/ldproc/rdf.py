"""
Conversion between expanded JSON-LD and RDF datasets.

A dataset maps graph names ('@default' for the default graph) to lists of
triples. Each triple is a dict of 'subject', 'predicate' and 'object' terms,
and each term is a dict with a 'type' ('IRI', 'blank node' or 'literal'), a
'value' and, for literals, a 'datatype' and an optional 'language'.

.. module:: ldproc.rdf
  :synopsis: JSON-LD to RDF and back
"""

import json
import logging
import re

from ldproc.errors import JsonLdError
from ldproc.flattening import create_node_map
from ldproc.identifier_issuer import IdentifierIssuer
from ldproc.numfmt import canonical_json
from ldproc.util import (
    RDF_FIRST, RDF_JSON_LITERAL, RDF_LANGSTRING, RDF_LIST, RDF_NIL, RDF_REST,
    RDF_TYPE, XSD_BOOLEAN, XSD_DOUBLE, XSD_INTEGER, XSD_STRING,
    add_value, is_absolute_iri, is_array, is_bool, is_double, is_integer,
    is_keyword, is_list, is_numeric, is_object, is_string,
    is_subject_reference, is_value)

log = logging.getLogger(__name__)

# lexical forms that may be converted to native values
INTEGER_LEXICAL = re.compile(r'^[+-]?[0-9]+$')
DOUBLE_LEXICAL = re.compile(
    r'^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([Ee][+-]?[0-9]+)?$')


def to_rdf(expanded, options):
    """
    Outputs the RDF dataset found in an expanded JSON-LD document.

    :param expanded: the expanded JSON-LD input.
    :param options: the RDF serialization options.
      [produceGeneralizedRdf] True to output generalized RDF, False to
        produce only standard RDF (default: False).

    :return: the RDF dataset.
    """
    options = dict(options or {})
    options.setdefault('produceGeneralizedRdf', False)

    # create node map for default graph (and any named graphs)
    issuer = IdentifierIssuer('_:b')
    node_map = {'@default': {}}
    create_node_map(expanded, node_map, '@default', issuer)

    dataset = {}
    for graph_name, graph in sorted(node_map.items()):
        # skip relative IRIs
        if graph_name == '@default' or is_absolute_iri(graph_name):
            dataset[graph_name] = graph_to_rdf(graph, issuer, options)
        else:
            log.debug('Skipping graph with relative name %r.', graph_name)
    return dataset


def graph_to_rdf(graph, issuer, options):
    """
    Creates an array of RDF triples for the given graph.

    :param graph: the graph (a node map) to create RDF triples for.
    :param issuer: the IdentifierIssuer for issuing blank node identifiers.
    :param options: the RDF serialization options.

    :return: the array of RDF triples for the given graph, without
      duplicates.
    """
    rval = []
    seen = set()

    def emit(triple):
        key = _triple_key(triple)
        if key not in seen:
            seen.add(key)
            rval.append(triple)

    for id_, node in sorted(graph.items()):
        for property, items in sorted(node.items()):
            if property == '@type':
                property = RDF_TYPE
            elif is_keyword(property):
                continue

            # skip relative IRI subjects and predicates
            if not (is_absolute_iri(id_) and is_absolute_iri(property)):
                continue

            subject = _resource(id_)
            if property.startswith('_:'):
                # skip bnode predicates unless producing generalized RDF
                if not options.get('produceGeneralizedRdf'):
                    continue
                predicate = {'type': 'blank node', 'value': property}
            else:
                predicate = {'type': 'IRI', 'value': property}

            for item in items:
                if is_list(item):
                    list_to_rdf(
                        item['@list'], issuer, subject, predicate, emit)
                    continue
                object = object_to_rdf(item)
                # skip None objects (they are relative IRIs)
                if object is not None:
                    emit({
                        'subject': subject,
                        'predicate': predicate,
                        'object': object
                    })
    return rval


def list_to_rdf(list_, issuer, subject, predicate, emit):
    """
    Converts a @list value into a linked list of blank node RDF triples
    (an RDF collection).

    :param list_: the @list value.
    :param issuer: the IdentifierIssuer for issuing blank node identifiers.
    :param subject: the subject for the head of the list.
    :param predicate: the predicate for the head of the list.
    :param emit: the callable receiving each triple.
    """
    first = {'type': 'IRI', 'value': RDF_FIRST}
    rest = {'type': 'IRI', 'value': RDF_REST}
    nil = {'type': 'IRI', 'value': RDF_NIL}

    for item in list_:
        blank_node = {'type': 'blank node', 'value': issuer.get_id()}
        emit({'subject': subject, 'predicate': predicate, 'object': blank_node})

        subject = blank_node
        predicate = first
        if is_list(item):
            list_to_rdf(item['@list'], issuer, subject, predicate, emit)
        else:
            object = object_to_rdf(item)
            if object is not None:
                emit({'subject': subject, 'predicate': predicate,
                      'object': object})
        predicate = rest

    emit({'subject': subject, 'predicate': predicate, 'object': nil})


def canonical_double(value):
    """
    Formats a number in the canonical xsd:double lexical form, eg 4.5E1.
    """
    return re.sub(
        r'(\d)0*E\+?(-?)0*(\d)', r'\1E\2\3', '%1.15E' % value)


def object_to_rdf(item):
    """
    Converts a JSON-LD value object to an RDF literal or a JSON-LD string
    or node object to an RDF resource.

    :param item: the JSON-LD value or node object.

    :return: the RDF literal or RDF resource, None for a relative IRI.
    """
    if not is_value(item):
        id_ = item['@id'] if is_object(item) else item
        object = _resource(id_)
        # skip relative IRIs
        if object['type'] == 'IRI' and not is_absolute_iri(id_):
            return None
        return object

    object = {'type': 'literal'}
    value = item['@value']
    datatype = item.get('@type')

    if datatype == '@json':
        object['value'] = canonical_json(value)
        object['datatype'] = RDF_JSON_LITERAL
    # convert to XSD datatypes as appropriate
    elif is_bool(value):
        object['value'] = 'true' if value else 'false'
        object['datatype'] = datatype or XSD_BOOLEAN
    elif is_double(value) or (
            is_numeric(value) and datatype == XSD_DOUBLE) or (
            is_integer(value) and abs(value) >= 1e21):
        object['value'] = canonical_double(value)
        object['datatype'] = datatype or XSD_DOUBLE
    elif (datatype == XSD_DOUBLE and is_string(value) and
            DOUBLE_LEXICAL.match(value)):
        # canonical lexical form of a typed double string
        object['value'] = canonical_double(float(value))
        object['datatype'] = datatype
    elif is_integer(value):
        object['value'] = str(value)
        object['datatype'] = datatype or XSD_INTEGER
    elif '@language' in item:
        object['value'] = value
        object['datatype'] = datatype or RDF_LANGSTRING
        object['language'] = item['@language']
    else:
        object['value'] = value
        object['datatype'] = datatype or XSD_STRING

    # skip relative datatype IRIs
    if not is_absolute_iri(object['datatype']):
        return None
    return object


def rdf_to_object(o, use_native_types):
    """
    Converts an RDF triple object to a JSON-LD object.

    :param o: the RDF triple object to convert.
    :param use_native_types: True to output native types, False not to.

    :return: the JSON-LD object.
    """
    # convert IRI/BlankNode object to JSON-LD
    if o['type'] == 'IRI' or o['type'] == 'blank node':
        return {'@id': o['value']}

    # convert literal object to JSON-LD
    rval = {'@value': o['value']}

    if 'language' in o:
        rval['@language'] = o['language']
        return rval

    type_ = o.get('datatype', XSD_STRING)
    if type_ == RDF_JSON_LITERAL:
        try:
            rval['@value'] = json.loads(o['value'])
        except ValueError as cause:
            raise JsonLdError(
                'Invalid JSON literal in RDF dataset.', 'jsonld.RdfError',
                {'value': o['value']}, code='invalid JSON literal',
                cause=cause)
        rval['@type'] = '@json'
        return rval

    if use_native_types:
        native = _native_value(o['value'], type_)
        if native is not None:
            rval['@value'] = native
            return rval

    if type_ != XSD_STRING:
        rval['@type'] = type_
    return rval


def _native_value(lexical, type_):
    # only valid lexical forms are converted
    if type_ == XSD_BOOLEAN:
        if lexical == 'true':
            return True
        if lexical == 'false':
            return False
    elif type_ == XSD_INTEGER:
        if INTEGER_LEXICAL.match(lexical):
            return int(lexical)
    elif type_ == XSD_DOUBLE:
        if DOUBLE_LEXICAL.match(lexical):
            return float(lexical)
    return None


def from_rdf(dataset, options):
    """
    Converts an RDF dataset to expanded JSON-LD.

    Well-formed RDF collections become @list objects. Chains that are not
    well-formed are left as ordinary nodes.

    :param dataset: the RDF dataset.
    :param options: the RDF serialization options.
      [useNativeTypes] True to convert XSD types into native types
        (boolean, integer, double), False not to (default: False).
      [useRdfType] True to use rdf:type, False to use @type
        (default: False).

    :return: the expanded JSON-LD output.
    """
    use_native_types = options.get('useNativeTypes', False)
    use_rdf_type = options.get('useRdfType', False)

    default_graph = {}
    graph_map = {'@default': default_graph}
    referenced_once = {}

    for name, graph in dataset.items():
        graph_map.setdefault(name, {})
        if name != '@default' and name not in default_graph:
            default_graph[name] = {'@id': name}
        node_map = graph_map[name]
        for triple in graph:
            s = triple['subject']['value']
            p = triple['predicate']['value']
            o = triple['object']

            node = node_map.setdefault(s, {'@id': s})

            object_is_id = o['type'] in ('IRI', 'blank node')
            if object_is_id and o['value'] not in node_map:
                node_map[o['value']] = {'@id': o['value']}

            if p == RDF_TYPE and not use_rdf_type and object_is_id:
                add_value(
                    node, '@type', o['value'],
                    {'propertyIsArray': True, 'allowDuplicate': False})
                continue

            value = rdf_to_object(o, use_native_types)
            add_value(
                node, p, value,
                {'propertyIsArray': True, 'allowDuplicate': False})

            # object may be an RDF list/partial list node but we
            # can't know easily until all triples are read
            if not object_is_id:
                continue
            usage = {'node': node, 'property': p, 'value': value}
            if o['value'] == RDF_NIL:
                # track rdf:nil uniquely per graph
                node_map[o['value']].setdefault('usages', []).append(usage)
            elif o['value'] in referenced_once:
                # object referenced more than once
                referenced_once[o['value']] = False
            else:
                referenced_once[o['value']] = usage

    for name, graph_object in graph_map.items():
        if RDF_NIL in graph_object:
            _convert_lists(graph_object, referenced_once)

    result = []
    for subject, node in sorted(default_graph.items()):
        if subject in graph_map and subject != '@default':
            node['@graph'] = [
                n for s, n in sorted(graph_map[subject].items())
                if not is_subject_reference(n)]
        # only add full subjects to top-level
        if not is_subject_reference(node):
            result.append(node)
    return result


def _is_list_node(node, referenced_once):
    """
    Returns True if the node is a well-formed list node: a blank node
    referenced only once, with exactly one rdf:first and one rdf:rest, and
    no other properties apart from an optional @type of rdf:List.
    """
    id_ = node['@id']
    if not id_.startswith('_:') or not is_object(referenced_once.get(id_)):
        return False
    first = node.get(RDF_FIRST)
    rest = node.get(RDF_REST)
    if not (is_array(first) and len(first) == 1 and
            is_array(rest) and len(rest) == 1):
        return False
    extra = set(node) - {'@id', RDF_FIRST, RDF_REST}
    if not extra:
        return True
    return extra == {'@type'} and node['@type'] == [RDF_LIST]


def _convert_lists(graph_object, referenced_once):
    # iterate backwards through each RDF list, starting from its rdf:nil
    nil = graph_object[RDF_NIL]
    for usage in nil.get('usages', []):
        node = usage['node']
        property = usage['property']
        head = usage['value']
        list_ = []
        list_nodes = []

        while property == RDF_REST and _is_list_node(node, referenced_once):
            list_.append(node[RDF_FIRST][0])
            list_nodes.append(node['@id'])

            # get next node, moving backwards through list
            usage = referenced_once[node['@id']]
            node = usage['node']
            property = usage['property']
            head = usage['value']

            # if node is not a blank node, then list head found
            if not node['@id'].startswith('_:'):
                break

        # the list is nested in another list, converting it would result
        # in a list of lists, so its head node is kept
        if property == RDF_FIRST:
            rest = graph_object.get(head['@id'], {}).get(RDF_REST)
            if not list_nodes or not rest:
                continue
            head = rest[0]
            list_.pop()
            list_nodes.pop()

        # transform list into @list object
        head.pop('@id', None)
        list_.reverse()
        head['@list'] = list_
        for id_ in list_nodes:
            graph_object.pop(id_, None)
        log.debug('Converted RDF collection with %d item(s).', len(list_))

    nil.pop('usages', None)


def _resource(id_):
    if is_string(id_) and id_.startswith('_:'):
        return {'type': 'blank node', 'value': id_}
    return {'type': 'IRI', 'value': id_}


def _triple_key(triple):
    return tuple(
        (term['type'], term['value'], term.get('datatype'),
         term.get('language'))
        for term in (
            triple['subject'], triple['predicate'], triple['object']))
