"""
Node maps and flattening: collecting every node of an expanded document
into one map per graph, with embedded nodes replaced by references.

.. module:: ldproc.flattening
  :synopsis: JSON-LD node maps and flattening
"""

import copy

from ldproc.errors import JsonLdError
from ldproc.identifier_issuer import IdentifierIssuer
from ldproc.util import (
    add_value, is_array, is_bnode, is_keyword, is_list, is_object,
    is_string, is_subject, is_subject_reference, is_value)


def flatten(expanded, issuer=None):
    """
    Performs JSON-LD flattening.

    :param expanded: the expanded JSON-LD to flatten.
    :param issuer: the IdentifierIssuer used to relabel blank nodes,
      defaults to a new '_:b' issuer.

    :return: the flattened JSON-LD output, a list of node objects sorted by
      @id.
    """
    # produce a map of all subjects and label each bnode
    if issuer is None:
        issuer = IdentifierIssuer('_:b')
    graphs = {'@default': {}}
    create_node_map(expanded, graphs, '@default', issuer)

    # add all non-default graphs to default graph
    default_graph = graphs['@default']
    for graph_name, node_map in sorted(graphs.items()):
        if graph_name == '@default':
            continue
        graph_subject = default_graph.setdefault(
            graph_name, {'@id': graph_name})
        graph_subject['@graph'] = [
            node for id_, node in sorted(node_map.items())
            if not is_subject_reference(node)]

    # produce flattened output
    return [
        node for id_, node in sorted(default_graph.items())
        if not is_subject_reference(node)]


def create_node_map(element, graphs, graph, issuer, name=None, list_=None):
    """
    Recursively flattens the subjects in the given JSON-LD expanded
    input into a node map. The input is not changed; values are copied
    into the map.

    :param element: the JSON-LD expanded input.
    :param graphs: a map of graph name to subject map.
    :param graph: the name of the current graph.
    :param issuer: the IdentifierIssuer for issuing blank node identifiers.
    :param name: the name assigned to the current input if it is a bnode.
    :param list_: the list to append to, None for none.
    """
    # recurse through array
    if is_array(element):
        for e in element:
            create_node_map(e, graphs, graph, issuer, None, list_)
        return

    # add non-object to list
    if not is_object(element):
        if list_ is not None:
            list_.append(element)
        return

    # add values to list
    if is_value(element):
        type_ = element.get('@type')
        if is_string(type_) and type_.startswith('_:'):
            # relabel @type blank node
            element = dict(element)
            element['@type'] = issuer.get_id(type_)
        if list_ is not None:
            list_.append(copy.deepcopy(element))
        return

    # a list directly in a list
    if is_list(element):
        nested = []
        create_node_map(
            element['@list'], graphs, graph, issuer, name, nested)
        if list_ is not None:
            list_.append({'@list': nested})
        return

    # Note: At this point, element must be a subject.

    # @type blank nodes are labeled first
    for type_ in element.get('@type', []):
        if is_string(type_) and type_.startswith('_:'):
            issuer.get_id(type_)

    # get identifier for subject
    if name is None:
        name = element.get('@id')
        if is_bnode(element):
            name = issuer.get_id(name)

    # add subject reference to list
    if list_ is not None:
        list_.append({'@id': name})

    # create new subject or merge into existing one
    subject = graphs.setdefault(graph, {}).setdefault(name, {'@id': name})
    for property, objects in sorted(element.items()):
        # skip @id
        if property == '@id':
            continue

        # handle reverse properties
        if property == '@reverse':
            referenced_node = {'@id': name}
            for reverse_property, items in objects.items():
                for item in items:
                    item_name = item.get('@id')
                    if is_bnode(item):
                        item_name = issuer.get_id(item_name)
                    create_node_map(item, graphs, graph, issuer, item_name)
                    add_value(
                        graphs[graph][item_name], reverse_property,
                        referenced_node,
                        {'propertyIsArray': True, 'allowDuplicate': False})
            continue

        # recurse into graph
        if property == '@graph':
            # add graph subjects map entry
            graphs.setdefault(name, {})
            g = graph if graph == '@merged' else name
            create_node_map(objects, graphs, g, issuer)
            continue

        # included nodes are nodes of the same graph
        if property == '@included':
            create_node_map(objects, graphs, graph, issuer)
            continue

        # copy non-@type keywords
        if property != '@type' and is_keyword(property):
            if property == '@index' and '@index' in subject and \
                    subject['@index'] != objects:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; conflicting @index property '
                    'detected.', 'jsonld.SyntaxError',
                    {'subject': subject}, code='conflicting indexes')
            subject[property] = copy.deepcopy(objects)
            continue

        # if property is a bnode, assign it a new id
        if property.startswith('_:'):
            property = issuer.get_id(property)

        # ensure property is added for empty arrays
        if len(objects) == 0:
            add_value(subject, property, [], {'propertyIsArray': True})
            continue

        for o in objects:
            if property == '@type':
                # rename @type blank nodes
                if o.startswith('_:'):
                    o = issuer.get_id(o)
                add_value(
                    subject, property, o,
                    {'propertyIsArray': True, 'allowDuplicate': False})
            # handle embedded subject or subject reference
            elif is_subject(o) or is_subject_reference(o):
                # rename blank node @id
                id_ = o.get('@id')
                if is_bnode(o):
                    id_ = issuer.get_id(id_)

                # add reference and recurse
                add_value(
                    subject, property, {'@id': id_},
                    {'propertyIsArray': True, 'allowDuplicate': False})
                create_node_map(o, graphs, graph, issuer, id_)
            # handle @list
            elif is_list(o):
                olist = []
                create_node_map(o['@list'], graphs, graph, issuer, name, olist)
                add_value(
                    subject, property, {'@list': olist},
                    {'propertyIsArray': True, 'allowDuplicate': False})
            # handle @value
            else:
                values = []
                create_node_map(o, graphs, graph, issuer, name, values)
                add_value(
                    subject, property, values,
                    {'propertyIsArray': True, 'allowDuplicate': False})


def merge_node_map_graphs(graphs):
    """
    Merge separate named graphs into a single merged graph including
    all nodes from the default graph and named graphs.

    :param graphs: a map of graph name to subject map.

    :return: merged graph map.
    """
    merged = {}
    for name, graph in sorted(graphs.items()):
        for id_, node in sorted(graph.items()):
            merged_node = merged.setdefault(id_, {'@id': id_})
            for property, values in sorted(node.items()):
                if is_keyword(property) and property != '@type':
                    # copy keywords
                    merged_node[property] = copy.deepcopy(values)
                else:
                    # merge objects
                    for value in values:
                        add_value(
                            merged_node, property, copy.deepcopy(value),
                            {'propertyIsArray': True,
                             'allowDuplicate': False})
    return merged
