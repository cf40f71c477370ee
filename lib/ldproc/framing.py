"""
The framing algorithm: reshaping a flattened node map into a tree that
follows the layout of an expanded frame.

.. module:: ldproc.framing
  :synopsis: JSON-LD framing
"""

import copy
import logging

from ldproc.compaction import compact_iri
from ldproc.errors import JsonLdError
from ldproc.flattening import create_node_map, merge_node_map_graphs
from ldproc.identifier_issuer import IdentifierIssuer
from ldproc.util import (
    add_value, get_container, get_values, is_array, is_empty_object,
    is_keyword, is_list, is_object, is_subject, is_subject_reference,
    is_value)

log = logging.getLogger(__name__)

# @embed values and the legacy forms they stand for
EMBED_MODES = frozenset(['@always', '@link', '@never', '@once'])
_EMBED_ALIASES = {True: '@once', False: '@never', '@last': '@once'}


def frame(expanded_input, expanded_frame, options):
    """
    Performs JSON-LD framing.

    :param expanded_input: the expanded JSON-LD to frame.
    :param expanded_frame: the expanded JSON-LD frame to use.
    :param options: the framing options.
      [embed] default @embed flag (default: '@once').
      [explicit] default @explicit flag (default: False).
      [requireAll] default @requireAll flag (default: True).
      [omitDefault] default @omitDefault flag (default: False).
      [merged] True to frame the merge of all graphs (default: True).
      [pruneBlankNodeIdentifiers] True to collect blank node identifiers
        used only once into options['bnodesToClear'] (default: True).

    :return: the framed output.
    """
    options.setdefault('embed', '@once')
    options.setdefault('explicit', False)
    options.setdefault('requireAll', True)
    options.setdefault('omitDefault', False)
    options.setdefault('merged', True)
    options.setdefault('pruneBlankNodeIdentifiers', True)
    options.setdefault('bnodesToClear', [])

    # create framing state
    state = {
        'options': options,
        'graph': '@default',
        'graphMap': {'@default': {}},
        'subjectStack': [],
        'uniqueEmbeds': {},
        'link': {},
        'bnodeMap': {},
        'embedded': False,
    }

    # produce a map of all graphs and name each bnode
    issuer = IdentifierIssuer('_:b')
    create_node_map(expanded_input, state['graphMap'], '@default', issuer)
    if options['merged']:
        state['graphMap']['@merged'] = merge_node_map_graphs(
            state['graphMap'])
        state['graph'] = '@merged'
    state['subjects'] = state['graphMap'][state['graph']]

    # frame the subjects
    framed = []
    match_frame(
        state, sorted(state['subjects'].keys()), expanded_frame, framed, None)

    # if pruning blank nodes, find those to prune
    if options['pruneBlankNodeIdentifiers']:
        options['bnodesToClear'].extend(
            id_ for id_, outputs in state['bnodeMap'].items()
            if len(outputs) == 1)
    return framed


def match_frame(state, subjects, frame, parent, property):
    """
    Frames subjects according to the given frame.

    :param state: the current framing state.
    :param subjects: the subjects to filter.
    :param frame: the frame.
    :param parent: the parent subject or top-level array.
    :param property: the parent property, initialized to None.
    """
    # validate the frame
    validate_frame(frame)
    frame = frame[0]

    # get flags for current frame
    options = state['options']
    flags = {
        'embed': get_frame_flag(frame, options, 'embed'),
        'explicit': get_frame_flag(frame, options, 'explicit'),
        'requireAll': get_frame_flag(frame, options, 'requireAll')
    }

    # filter out subjects that match the frame
    matches = filter_subjects(state, subjects, frame, flags)

    # add matches to output
    for id_, subject in sorted(matches.items()):
        if flags['embed'] == '@link' and id_ in state['link']:
            # add existing linked subject
            add_frame_output(parent, property, state['link'][id_])
            continue

        # each top-level match is compartmentalized: the unique embeds are
        # cleared when the property is None, which only occurs at the top
        if property is None:
            state['uniqueEmbeds'] = {state['graph']: {}}
        else:
            state['uniqueEmbeds'].setdefault(state['graph'], {})
        unique_embeds = state['uniqueEmbeds'][state['graph']]

        # start output for subject
        output = {'@id': id_}
        # keep track of objects having blank nodes
        if id_.startswith('_:'):
            add_value(
                state['bnodeMap'], id_, output, {'propertyIsArray': True})
        state['link'][id_] = output

        # skip nodes already embedded within another top-level node
        if not state['embedded'] and id_ in unique_embeds:
            continue

        if state['embedded']:
            # add just a reference if embedding is off, would create a
            # circular reference, or has happened once already
            if (flags['embed'] == '@never' or
                    creates_circular_reference(
                        subject, state['graph'], state['subjectStack']) or
                    (flags['embed'] == '@once' and id_ in unique_embeds)):
                add_frame_output(parent, property, output)
                continue

        unique_embeds[id_] = {'parent': parent, 'property': property}

        # push matching subject onto stack to enable circular embed checks
        state['subjectStack'].append({'subject': subject, 'graph': state['graph']})

        # subject is also the name of a graph
        if id_ in state['graphMap']:
            if '@graph' not in frame:
                recurse = state['graph'] != '@merged'
                subframe = {}
            else:
                subframe = frame['@graph'][0]
                if not is_object(subframe):
                    subframe = {}
                recurse = id_ not in ('@merged', '@default')

            if recurse:
                # recurse into graph
                match_frame(
                    dict(state, graph=id_, embedded=False),
                    sorted(state['graphMap'][id_].keys()), [subframe],
                    output, '@graph')

        # frame included nodes with their own sub-frame
        if '@included' in frame:
            match_frame(
                dict(state, embedded=False), subjects, frame['@included'],
                output, '@included')

        embedded_state = dict(state, embedded=True)

        # iterate over subject properties in order
        for prop, objects in sorted(subject.items()):
            # copy keywords to output
            if is_keyword(prop):
                output[prop] = copy.deepcopy(objects)

                if prop == '@type':
                    # count bnode values of @type
                    for type_ in objects:
                        if type_.startswith('_:'):
                            add_value(
                                state['bnodeMap'], type_, output,
                                {'propertyIsArray': True})
                continue

            # explicit is on and property isn't in frame, skip processing
            if flags['explicit'] and prop not in frame:
                continue

            # add objects
            for o in objects:
                if frame.get(prop):
                    subframe = frame[prop]
                else:
                    subframe = create_implicit_frame(flags)

                # recurse into list
                if is_list(o):
                    if (prop in frame and frame[prop] and
                            is_object(frame[prop][0]) and
                            '@list' in frame[prop][0]):
                        subframe = frame[prop][0]['@list']
                    else:
                        subframe = create_implicit_frame(flags)

                    # add empty list
                    list_ = {'@list': []}
                    add_frame_output(output, prop, list_)

                    # add list objects
                    for item in o['@list']:
                        if is_subject_reference(item):
                            # recurse into subject reference
                            match_frame(
                                embedded_state, [item['@id']], subframe,
                                list_, '@list')
                        else:
                            # include other values automatically
                            add_frame_output(
                                list_, '@list', copy.deepcopy(item))
                    continue

                if is_subject_reference(o):
                    # recurse into subject reference
                    match_frame(
                        embedded_state, [o['@id']], subframe, output, prop)
                elif value_match(subframe[0], o):
                    # include other values automatically, if they match
                    add_frame_output(output, prop, copy.deepcopy(o))

        # handle defaults in order
        for prop in sorted(frame.keys()):
            # skip keywords
            if is_keyword(prop):
                continue
            # if omit default is off, then include default values for
            # properties that appear in the next frame but are not in
            # the matching subject
            next_ = frame[prop][0] if frame[prop] else {}
            omit_default_on = get_frame_flag(next_, options, 'omitDefault')
            if not omit_default_on and prop not in output:
                preserve = '@null'
                if '@default' in next_:
                    preserve = copy.deepcopy(next_['@default'])
                if not is_array(preserve):
                    preserve = [preserve]
                output[prop] = [{'@preserve': preserve}]

        # embed reverse values by finding nodes having this subject as a
        # value of the associated property
        if '@reverse' in frame:
            for reverse_prop, subframe in sorted(frame['@reverse'].items()):
                for subject_id, node in sorted(state['subjects'].items()):
                    node_values = get_values(node, reverse_prop)
                    if any(is_object(v) and v.get('@id') == id_
                           for v in node_values):
                        # node has property referencing this subject,
                        # recurse
                        reverse_output = output.setdefault('@reverse', {})
                        add_value(
                            reverse_output, reverse_prop, [],
                            {'propertyIsArray': True})
                        match_frame(
                            embedded_state, [subject_id], subframe,
                            reverse_output[reverse_prop], property)

        # add output to parent
        add_frame_output(parent, property, output)

        # pop matching subject from circular ref-checking stack
        state['subjectStack'].pop()


def create_implicit_frame(flags):
    """
    Creates an implicit frame when recursing through subject matches. If
    a frame doesn't have an explicit frame for a particular property, then
    a wildcard child frame will be created that uses the same flags that
    the parent frame used.

    :param flags: the current framing flags.

    :return: the implicit frame.
    """
    return [{'@' + key: [value] for key, value in flags.items()}]


def creates_circular_reference(subject_to_embed, graph, subject_stack):
    """
    Checks the current subject stack to see if embedding the given subject
    would cause a circular reference.

    :param subject_to_embed: the subject to embed.
    :param graph: the graph the subject to embed is in.
    :param subject_stack: the current stack of subjects.

    :return: true if a circular reference would be created, false if not.
    """
    return any(
        entry['graph'] == graph and
        entry['subject']['@id'] == subject_to_embed['@id']
        for entry in reversed(subject_stack))


def get_frame_flag(frame, options, name):
    """
    Gets the frame flag value for the given flag name.

    :param frame: the frame.
    :param options: the framing options.
    :param name: the flag name.

    :return: the flag value.
    """
    rval = frame.get('@' + name, [options[name]])
    if is_array(rval):
        rval = rval[0] if rval else options[name]
    if is_value(rval):
        rval = rval['@value']
    if name == 'embed':
        # legacy booleans and @last map onto the current modes
        if rval is True or rval is False or rval == '@last':
            rval = _EMBED_ALIASES[rval]
        if rval not in EMBED_MODES:
            raise JsonLdError(
                'Invalid JSON-LD syntax; invalid value of @embed.',
                'jsonld.SyntaxError', {'frame': frame, 'embed': rval},
                code='invalid @embed value')
    return rval


def validate_frame(frame):
    """
    Validates a JSON-LD frame, throwing an exception if the frame is
    invalid.

    :param frame: the frame to validate.
    """
    if (not is_array(frame) or len(frame) != 1 or
            not is_object(frame[0])):
        raise JsonLdError(
            'Invalid JSON-LD syntax; a JSON-LD frame must be a single '
            'object.', 'jsonld.SyntaxError', {'frame': frame},
            code='invalid frame')

    frame = frame[0]
    for id_ in get_values(frame, '@id'):
        if not (is_empty_object(id_) or
                (isinstance(id_, str) and ':' in id_)):
            raise JsonLdError(
                'Invalid JSON-LD syntax; invalid @id in frame.',
                'jsonld.SyntaxError', {'frame': frame},
                code='invalid frame')
    for type_ in get_values(frame, '@type'):
        if not (is_empty_object(type_) or isinstance(type_, str) or
                (is_object(type_) and '@default' in type_)):
            raise JsonLdError(
                'Invalid JSON-LD syntax; invalid @type in frame.',
                'jsonld.SyntaxError', {'frame': frame},
                code='invalid frame')


def filter_subjects(state, subjects, frame, flags):
    """
    Returns a map of all of the subjects that match a parsed frame.

    :param state: the current framing state.
    :param subjects: the set of subjects to filter.
    :param frame: the parsed frame.
    :param flags: the frame flags.

    :return: all of the matched subjects.
    """
    rval = {}
    graph = state['graphMap'].get(state['graph'], {})
    for id_ in subjects:
        subject = graph.get(id_)
        if subject is not None and filter_subject(
                state, subject, frame, flags):
            rval[id_] = subject
    return rval


def filter_subject(state, subject, frame, flags):
    """
    Returns True if the given subject matches the given frame.

    Matches either based on explicit type inclusion where the node has any
    type listed in the frame. If the frame has empty types defined matches
    nodes not having a @type. If the frame has a type of {} defined matches
    nodes having any type defined.

    Otherwise, does duck typing, where the node must have all of the
    properties defined in the frame.

    :param state: the current framing state.
    :param subject: the subject to check.
    :param frame: the frame to check.
    :param flags: the frame flags.

    :return: True if the subject matches, False if not.
    """
    wildcard = True
    matches_some = False

    for key in sorted(frame):
        match_this = False
        node_values = get_values(subject, key)
        is_empty = len(get_values(frame, key)) == 0

        if key == '@id':
            # match on no @id or any matching @id, including wildcard
            ids = frame['@id']
            if ids and is_empty_object(ids[0]):
                match_this = True
            else:
                match_this = bool(node_values) and node_values[0] in ids
            if not flags['requireAll']:
                return match_this
        elif key == '@type':
            # an object value means 'any' type, fall through to ducktyping
            wildcard = False
            types = frame['@type']
            if is_empty:
                # don't match on no @type
                if node_values:
                    return False
                match_this = True
            elif len(types) == 1 and is_empty_object(types[0]):
                match_this = len(node_values) > 0
            else:
                # match on a specific @type
                for type_ in types:
                    if is_object(type_) and '@default' in type_:
                        match_this = True
                    elif type_ in node_values:
                        match_this = True
                if not flags['requireAll']:
                    return match_this
        elif is_keyword(key):
            continue
        else:
            this_frame = get_values(frame, key)
            this_frame = this_frame[0] if this_frame else None
            has_default = False
            if this_frame:
                validate_frame([this_frame])
                has_default = '@default' in this_frame

            # no longer a wildcard pattern if frame has any non-keyword
            # properties
            wildcard = False

            # skip, but allow match if node has no value for property, and
            # frame has a default value
            if not node_values and has_default:
                continue

            if this_frame is None:
                # an empty frame value matches any value
                match_this = len(node_values) > 0
            elif is_list(this_frame):
                list_value = this_frame['@list'][0] \
                    if this_frame['@list'] else None
                if node_values and is_list(node_values[0]):
                    node_list_values = node_values[0]['@list']
                    if is_value(list_value):
                        match_this = any(
                            value_match(list_value, lv)
                            for lv in node_list_values)
                    elif (is_subject(list_value) or
                            is_subject_reference(list_value)):
                        match_this = any(
                            node_match(state, list_value, lv, flags)
                            for lv in node_list_values)
            elif is_value(this_frame):
                match_this = any(
                    value_match(this_frame, nv) for nv in node_values)
            elif is_subject_reference(this_frame):
                match_this = any(
                    node_match(state, this_frame, nv, flags)
                    for nv in node_values)
            elif is_object(this_frame):
                match_this = len(node_values) > 0

        # all non-defaulted values must match if requireAll is set
        if not match_this and flags['requireAll']:
            return False

        matches_some = matches_some or match_this

    # return true if wildcard or subject matches some properties
    return wildcard or matches_some


def add_frame_output(parent, property, output):
    """
    Adds framing output to the given parent.

    :param parent: the parent to add to.
    :param property: the parent property.
    :param output: the output to add.
    """
    if is_object(parent):
        add_value(parent, property, output, {'propertyIsArray': True})
    else:
        parent.append(output)


def node_match(state, pattern, value, flags):
    """
    Node matches if it is a node, and matches the pattern as a frame.

    :param state: the current framing state.
    :param pattern: used to match value.
    :param value: to check.
    :param flags: the frame flags.
    """
    if not is_object(value) or '@id' not in value:
        return False
    node_object = state['subjects'].get(value['@id'])
    return node_object is not None and filter_subject(
        state, node_object, pattern, flags)


def value_match(pattern, value):
    """
    Value matches if it is a value and matches the value pattern

    - `pattern` is empty
    - @values are the same, or `pattern[@value]` is a wildcard or missing,
    - @types are the same or `value[@type]` is not None
      and `pattern[@type]` is `{}` or `value[@type]` is None
      and `pattern[@type]` is None or `[]`, and
    - @languages are the same or `value[@language]` is not None
      and `pattern[@language]` is `{}`, or `value[@language]` is None
      and `pattern[@language]` is None or `[]`

    :param pattern: used to match value.
    :param value: to check.
    """
    if not is_value(value):
        return False
    v1, t1, l1 = (
        value.get('@value'), value.get('@type'), value.get('@language'))
    v2 = get_values(pattern, '@value')
    t2 = get_values(pattern, '@type')
    l2 = get_values(pattern, '@language')

    if not v2 and not t2 and not l2:
        return True
    if v2 and not (v1 in v2 or is_empty_object(v2[0])):
        return False
    if not ((not t1 and not t2) or (t1 in t2) or
            (t1 and t2 and is_empty_object(t2[0]))):
        return False
    if not ((not l1 and not l2) or (l1 in l2) or
            (l1 and l2 and is_empty_object(l2[0]))):
        return False
    return True


def remove_preserve(ctx, input_, options, visited=None):
    """
    Removes the @preserve keywords as the last step of the framing
    algorithm, and the @id of blank nodes referenced only once.

    :param ctx: the active context used to compact the input.
    :param input_: the framed, compacted output.
    :param options: the compaction options used.
      [compactArrays] True if arrays were compacted.
      [bnodesToClear] blank node identifiers to remove.

    :return: the resulting output.
    """
    if visited is None:
        visited = set()

    # recurse through arrays
    if is_array(input_):
        output = []
        for e in input_:
            result = remove_preserve(ctx, e, options, visited)
            # drop Nones from arrays
            if result is not None:
                output.append(result)
        return output

    if not is_object(input_):
        return input_

    # remove @preserve
    if '@preserve' in input_:
        preserved = input_['@preserve']
        if preserved == '@null' or preserved == ['@null']:
            return None
        return preserved

    # skip @values
    if is_value(input_):
        return input_

    # recurse through @lists
    if is_list(input_):
        input_['@list'] = remove_preserve(
            ctx, input_['@list'], options, visited)
        return input_

    # in-memory linked nodes are visited once
    if id(input_) in visited:
        return input_
    visited.add(id(input_))

    # potentially remove the id, if it is an unreferenced bnode
    id_alias = compact_iri(ctx, '@id')
    if input_.get(id_alias) in options.get('bnodesToClear', []):
        input_.pop(id_alias)

    # recurse through properties
    graph_alias = compact_iri(ctx, '@graph')
    for prop, v in list(input_.items()):
        result = remove_preserve(ctx, v, options, visited)
        container = get_container(ctx, prop)
        if (options.get('compactArrays', True) and
                is_array(result) and len(result) == 1 and
                '@set' not in container and '@list' not in container and
                prop != graph_alias):
            result = result[0]
        input_[prop] = result
    return input_
