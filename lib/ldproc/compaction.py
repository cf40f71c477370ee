"""
The compaction algorithm: shortening expanded JSON-LD with a context,
choosing for each IRI and value the most specific term that round-trips.

.. module:: ldproc.compaction
  :synopsis: JSON-LD compaction
"""

import logging

from ldproc import iri_resolver
from ldproc.context import (
    ContextResolver, expand_iri, get_inverse_context, processing_mode,
    revert_to_previous_context)
from ldproc.errors import JsonLdError
from ldproc.util import (
    add_value, arrayify, compare_shortest_least, get_container,
    get_context_value, get_values, is_array, is_graph, is_keyword,
    is_list, is_object, is_simple_graph, is_string, is_subject_reference,
    is_value, ordered_keys)

log = logging.getLogger(__name__)


def select_term(
        active_ctx, iri, value, containers, type_or_language,
        type_or_language_value):
    """
    Picks the preferred compaction term from the inverse context entry.

    :param active_ctx: the active context.
    :param iri: the IRI to pick the term for.
    :param value: the value to pick the term for.
    :param containers: the preferred containers.
    :param type_or_language: either '@type' or '@language'.
    :param type_or_language_value: the preferred value for '@type' or
      '@language'

    :return: the preferred term.
    """
    if type_or_language_value is None:
        type_or_language_value = '@null'

    # preferred options for the value of @type or language
    prefs = []

    # determine prefs for @id based on whether value compacts to a term
    if (type_or_language_value in ('@id', '@reverse') and
            is_object(value) and '@id' in value):
        # prefer @reverse first
        if type_or_language_value == '@reverse':
            prefs.append('@reverse')
        # try to compact value to a term
        term = compact_iri(active_ctx, value['@id'], None, vocab=True)
        mapping = active_ctx['mappings'].get(term)
        if mapping is not None and mapping['@id'] == value['@id']:
            # prefer @vocab
            prefs.extend(['@vocab', '@id'])
        else:
            # prefer @id
            prefs.extend(['@id', '@vocab'])
    else:
        prefs.append(type_or_language_value)
    prefs.extend(['@none', '@any'])

    container_map = get_inverse_context(active_ctx)[iri]
    for container in containers:
        # skip container if not in map
        if container not in container_map:
            continue
        value_map = container_map[container][type_or_language]
        for pref in prefs:
            if pref in value_map:
                return value_map[pref]
    return None


def _term_containers(value, reverse):
    """
    Builds the container preference list and the @type or @language
    preference for compacting the given value.

    :return: (containers, type_or_language, type_or_language_value)
    """
    containers = []

    # prefer @index if available in value
    if is_object(value) and '@index' in value and '@graph' not in value:
        containers.extend(['@index', '@index@set'])

    # if value is a preserve object, use its value
    if is_object(value) and '@preserve' in value:
        value = value['@preserve'][0]

    # prefer most specific container including @graph
    if is_graph(value):
        if '@index' in value:
            containers.extend([
                '@graph@index', '@graph@index@set', '@index', '@index@set'])
        if '@id' in value:
            containers.extend(['@graph@id', '@graph@id@set'])
        containers.extend(['@graph', '@graph@set', '@set'])
        if '@index' not in value:
            containers.extend([
                '@graph@index', '@graph@index@set', '@index', '@index@set'])
        if '@id' not in value:
            containers.extend(['@graph@id', '@graph@id@set'])
    elif is_object(value) and not is_value(value):
        containers.extend(['@id', '@id@set', '@type', '@set@type'])

    # defaults for term selection based on type/language
    type_or_language = '@language'
    type_or_language_value = '@null'

    if reverse:
        type_or_language = '@type'
        type_or_language_value = '@reverse'
        containers.append('@set')
    # choose most specific term that works for all elements in @list
    elif is_list(value):
        # only select @list containers if @index is NOT in value
        if '@index' not in value:
            containers.append('@list')
        list_ = value['@list']
        if len(list_) == 0:
            # any empty list can be matched against any term that uses the
            # @list container regardless of @type or @language
            type_or_language = '@any'
            type_or_language_value = '@none'
        else:
            common_language = None
            common_type = None
            for item in list_:
                item_language = '@none'
                item_type = '@none'
                if is_value(item):
                    if '@language' in item:
                        item_language = item['@language']
                    elif '@type' in item:
                        item_type = item['@type']
                    # plain literal
                    else:
                        item_language = '@null'
                else:
                    item_type = '@id'
                if common_language is None:
                    common_language = item_language
                elif item_language != common_language and is_value(item):
                    common_language = '@none'
                if common_type is None:
                    common_type = item_type
                elif item_type != common_type:
                    common_type = '@none'
                # there are different languages and types in the list, so
                # choose the most generic term
                if common_language == '@none' and common_type == '@none':
                    break
            common_language = common_language or '@none'
            common_type = common_type or '@none'
            if common_type != '@none':
                type_or_language = '@type'
                type_or_language_value = common_type
            else:
                type_or_language_value = common_language
    # non-@list
    else:
        if is_value(value):
            if '@language' in value and '@index' not in value:
                containers.extend(['@language', '@language@set'])
                type_or_language_value = value['@language']
            elif '@type' in value:
                type_or_language = '@type'
                type_or_language_value = value['@type']
        else:
            type_or_language = '@type'
            type_or_language_value = '@id'
        containers.append('@set')

    containers.append('@none')

    # an index map can be used to index values using @none
    if is_object(value) and '@index' not in value:
        containers.extend(['@index', '@index@set'])

    # values without type or language can use @language map
    if is_value(value) and len(value) == 1:
        containers.extend(['@language', '@language@set'])

    return containers, type_or_language, type_or_language_value


def compact_iri(active_ctx, iri, value=None, vocab=False, reverse=False):
    """
    Compacts an IRI or keyword into a term or CURIE if it can be. If the
    IRI has an associated value it may be passed.

    :param active_ctx: the active context to use.
    :param iri: the IRI to compact.
    :param value: the value to check or None.
    :param vocab: True to compact using @vocab if available, False not to.
    :param reverse: True if a reverse property is being compacted, False if
      not.

    :return: the compacted term, prefix, keyword alias, or original IRI.
    """
    # can't compact None
    if iri is None:
        return iri

    inverse_context = get_inverse_context(active_ctx)

    # term is a keyword, force vocab to True
    if is_keyword(iri):
        alias = inverse_context.get(iri, {}).get('@none', {}).get(
            '@type', {}).get('@none')
        if alias:
            return alias
        vocab = True

    # use inverse context to pick a term if iri is relative to vocab
    if vocab and iri in inverse_context:
        containers, type_or_language, type_or_language_value = \
            _term_containers(value, reverse)
        term = select_term(
            active_ctx, iri, value, containers,
            type_or_language, type_or_language_value)
        if term is not None:
            return term

    # no term match, use @vocab if available
    if vocab and '@vocab' in active_ctx:
        vocab_ = active_ctx['@vocab']
        if iri.startswith(vocab_) and iri != vocab_:
            # use suffix as relative iri if it is not a term in the active
            # context
            suffix = iri[len(vocab_):]
            if suffix not in active_ctx['mappings']:
                return suffix

    # no term or @vocab match, check for possible CURIEs
    candidate = None
    mappings = active_ctx['mappings']
    for term, definition in mappings.items():
        # skip terms with colons, they can't be prefixes
        if ':' in term:
            continue
        # skip entries with @ids that are not partial matches
        if (definition is None or not definition.get('_prefix') or
                definition['@id'] == iri or
                not iri.startswith(definition['@id'])):
            continue

        # a CURIE is usable if it is not a term, or if no value is being
        # compacted and the term it names maps to the same IRI
        curie = term + ':' + iri[len(definition['@id']):]
        curie_mapping = mappings.get(curie)
        is_usable_curie = (
            curie not in mappings or
            (value is None and curie_mapping is not None and
             curie_mapping['@id'] == iri))

        # select curie if it is shorter or the same length but
        # lexicographically less than the current choice
        if is_usable_curie and (
                candidate is None or
                compare_shortest_least(curie, candidate) < 0):
            candidate = curie

    if candidate is not None:
        return candidate

    # an absolute IRI must not be mistaken for a CURIE
    colon = iri.find(':')
    if colon > 0 and not iri.startswith('//', colon + 1):
        mapping = mappings.get(iri[:colon])
        if mapping is not None and mapping.get('_prefix'):
            raise JsonLdError(
                'Absolute IRI confused with prefix "' + iri[:colon] + '".',
                'jsonld.SyntaxError', {'iri': iri},
                code='IRI confused with prefix')

    # compact IRI relative to base
    if not vocab:
        return iri_resolver.unresolve(iri, active_ctx['@base'])

    # return IRI as is
    return iri


def compact_value(active_ctx, active_property, value):
    """
    Performs value compaction on an object with @value or @id as the only
    property.

    :param active_ctx: the active context.
    :param active_property: the active property that points to the value.
    :param value: the value to compact.
    """
    if is_value(value):
        # get context rules
        type_ = get_context_value(active_ctx, active_property, '@type')
        language = get_context_value(active_ctx, active_property, '@language')
        container = get_container(active_ctx, active_property)

        # whether or not the value has an @index that must be preserved
        preserve_index = '@index' in value and '@index' not in container

        # matching @type or @language specified in context, compact
        if not preserve_index and type_ != '@none':
            if (('@type' in value and value['@type'] == type_) or
                    ('@language' in value and
                     value['@language'] == language)):
                return value['@value']

        # return just the value of @value if all are true:
        # 1. @value is the only key or @index isn't being preserved
        # 2. there is no default language or @value is not a string or
        #  the key has a mapping with a null @language
        key_count = len(value)
        is_value_only_key = key_count == 1 or (
            key_count == 2 and '@index' in value and not preserve_index)
        has_default_language = '@language' in active_ctx
        mapping = active_ctx['mappings'].get(active_property)
        has_null_mapping = (
            mapping is not None and '@language' in mapping and
            mapping['@language'] is None)
        if is_value_only_key and type_ != '@none' and (
                not has_default_language or
                not is_string(value['@value']) or has_null_mapping):
            return value['@value']

        rval = {}

        # preserve @index
        if preserve_index:
            rval[compact_iri(active_ctx, '@index')] = value['@index']

        # compact @type IRI
        if '@type' in value:
            rval[compact_iri(active_ctx, '@type')] = compact_iri(
                active_ctx, value['@type'], vocab=True)
        # alias @language
        elif '@language' in value:
            rval[compact_iri(active_ctx, '@language')] = value['@language']

        # alias @value
        rval[compact_iri(active_ctx, '@value')] = value['@value']

        return rval

    # value is a subject reference
    expanded_property = expand_iri(active_ctx, active_property, vocab=True)
    type_ = get_context_value(active_ctx, active_property, '@type')
    compacted = compact_iri(
        active_ctx, value['@id'], vocab=(type_ == '@vocab'))

    # compact to scalar
    if type_ in ('@id', '@vocab') or expanded_property == '@graph':
        return compacted

    return {compact_iri(active_ctx, '@id'): compacted}


def compact(active_ctx, active_property, element, options=None,
            resolver=None):
    """
    Recursively compacts an element using the given active context. All
    values must be in expanded form before this function is called.

    :param active_ctx: the active context to use.
    :param active_property: the compacted property with the element to
      compact, None for none.
    :param element: the element to compact.
    :param options: the compaction options.
    :param resolver: the context resolver for scoped contexts.

    :return: the compacted value.
    """
    options = options or {}
    if resolver is None:
        resolver = ContextResolver(options.get('documentLoader'), options)
    return Compactor(resolver, options).compact(
        active_ctx, active_property, element)


class Compactor(object):
    """
    Compacts expanded JSON-LD, resolving scoped contexts through a
    ContextResolver.
    """

    def __init__(self, resolver, options):
        self.resolver = resolver
        self.options = options
        self.compact_arrays = options.get('compactArrays', True)
        self.ordered = options.get('ordered', False)
        # id -> [{'expanded', 'compacted'}] when linking framed output
        self.link = options.get('link')

    def compact(self, active_ctx, active_property, element):
        """
        Recursively compacts an element using the given active context.

        :param active_ctx: the active context to use.
        :param active_property: the compacted property with the element to
          compact, None for none.
        :param element: the element to compact.

        :return: the compacted value.
        """
        # recursively compact array
        if is_array(element):
            rval = []
            for e in element:
                # compact, dropping any None values
                e = self.compact(active_ctx, active_property, e)
                if e is not None:
                    rval.append(e)
            container = get_container(active_ctx, active_property)
            if (self.compact_arrays and len(rval) == 1 and
                    active_property not in ('@graph', '@set') and
                    '@list' not in container and '@set' not in container):
                rval = rval[0]
            return rval

        # only primitives remain which are already compact
        if not is_object(element):
            return element

        property_mapping = None
        if active_property is not None:
            property_mapping = active_ctx['mappings'].get(active_property)

        # a non-propagated context ends at the next node object
        if 'previousContext' in active_ctx and not (
                is_value(element) or is_subject_reference(element)):
            active_ctx = revert_to_previous_context(active_ctx)

        # use any scoped context on active_property
        if property_mapping is not None and '@context' in property_mapping:
            active_ctx = self.resolver.resolve(
                active_ctx, property_mapping['@context'],
                override_protected=True)

        if self.link is not None and '@id' in element:
            # check for a linked element to reuse
            for link in self.link.get(element['@id'], []):
                if link['expanded'] is element:
                    return link['compacted']

        # do value compaction on @values and subject references
        if is_value(element) or is_subject_reference(element):
            rval = compact_value(active_ctx, active_property, element)
            if self.link is not None and is_subject_reference(element):
                self.link.setdefault(element['@id'], []).append(
                    {'expanded': element, 'compacted': rval})
            return rval

        inside_reverse = active_property == '@reverse'

        rval = {}

        if self.link is not None and '@id' in element:
            self.link.setdefault(element['@id'], []).append(
                {'expanded': element, 'compacted': rval})

        # apply any context defined on a term used as a @type value
        type_scoped_ctx = active_ctx
        compacted_types = [
            compact_iri(active_ctx, t, vocab=True)
            for t in get_values(element, '@type') if is_string(t)]
        for term in sorted(compacted_types):
            mapping = type_scoped_ctx['mappings'].get(term)
            if mapping is not None and '@context' in mapping:
                active_ctx = self.resolver.resolve(
                    active_ctx, mapping['@context'], propagate=False)

        for expanded_property in ordered_keys(element, self.ordered):
            expanded_value = element[expanded_property]

            if expanded_property in ('@id', '@type'):
                self._compact_id_or_type(
                    active_ctx, type_scoped_ctx, expanded_property,
                    expanded_value, rval)
                continue

            if expanded_property == '@reverse':
                self._compact_reverse(active_ctx, expanded_value, rval)
                continue

            if expanded_property == '@preserve':
                # compact using active_property
                compacted_value = self.compact(
                    active_ctx, active_property, expanded_value)
                if not (is_array(compacted_value) and
                        len(compacted_value) == 0):
                    add_value(rval, expanded_property, compacted_value)
                continue

            if expanded_property == '@index':
                # drop @index if inside an @index container
                if '@index' in get_container(active_ctx, active_property):
                    continue
                alias = compact_iri(active_ctx, expanded_property)
                add_value(rval, alias, expanded_value)
                continue

            # skip array processing for keywords that aren't @graph, @list
            # or @included
            if (expanded_property not in ('@graph', '@list', '@included') and
                    is_keyword(expanded_property)):
                alias = compact_iri(active_ctx, expanded_property)
                add_value(rval, alias, expanded_value)
                continue

            if not is_array(expanded_value):
                raise JsonLdError(
                    'JSON-LD compact error; "' + expanded_property +
                    '" value must be an array in expanded form.',
                    'jsonld.SyntaxError', {'value': expanded_value},
                    code='invalid JSON-LD syntax')

            # preserve empty arrays
            if len(expanded_value) == 0:
                item_active_property = compact_iri(
                    active_ctx, expanded_property, expanded_value,
                    vocab=True, reverse=inside_reverse)
                nest_result = self._nest_result(
                    active_ctx, item_active_property, rval)
                add_value(
                    nest_result, item_active_property, [],
                    {'propertyIsArray': True})

            for expanded_item in expanded_value:
                self._compact_item(
                    active_ctx, expanded_property, expanded_item,
                    inside_reverse, rval)

        return rval

    def _compact_id_or_type(
            self, active_ctx, type_scoped_ctx, expanded_property,
            expanded_value, rval):
        if expanded_property == '@type':
            compacted_value = [
                compact_iri(type_scoped_ctx, t, vocab=True)
                for t in arrayify(expanded_value)]
        else:
            compacted_value = [
                compact_iri(active_ctx, i) for i in arrayify(expanded_value)]

        alias = compact_iri(active_ctx, expanded_property)
        as_array = is_array(expanded_value) and len(expanded_value) == 0
        if expanded_property == '@type' and processing_mode(active_ctx, 1.1):
            as_array = as_array or '@set' in get_container(active_ctx, alias)
        if len(compacted_value) == 1 and not as_array:
            compacted_value = compacted_value[0]
        add_value(rval, alias, compacted_value, {'propertyIsArray': as_array})

    def _compact_reverse(self, active_ctx, expanded_value, rval):
        compacted_value = self.compact(active_ctx, '@reverse', expanded_value)

        # handle double-reversed properties
        for compacted_property, value in list(compacted_value.items()):
            mapping = active_ctx['mappings'].get(compacted_property)
            if mapping is not None and mapping['reverse']:
                container = get_container(active_ctx, compacted_property)
                use_array = '@set' in container or not self.compact_arrays
                add_value(
                    rval, compacted_property, value,
                    {'propertyIsArray': use_array})
                del compacted_value[compacted_property]

        if compacted_value:
            alias = compact_iri(active_ctx, '@reverse')
            add_value(rval, alias, compacted_value)

    def _nest_result(self, active_ctx, item_active_property, rval):
        """
        Returns the object values of the property go into: rval, or the
        object under the term's @nest property.
        """
        mapping = active_ctx['mappings'].get(item_active_property)
        nest_property = mapping.get('@nest') if mapping else None
        if not nest_property:
            return rval
        if expand_iri(active_ctx, nest_property, vocab=True) != '@nest':
            raise JsonLdError(
                'JSON-LD compact error; nested property must have an @nest '
                'value resolving to @nest.',
                'jsonld.SyntaxError', {'property': nest_property},
                code='invalid @nest value')
        if not is_object(rval.get(nest_property)):
            rval[nest_property] = {}
        return rval[nest_property]

    def _compact_item(
            self, active_ctx, expanded_property, expanded_item,
            inside_reverse, rval):
        """
        Compacts one value of an expanded property and adds it to rval.
        """
        # compact property and get container type
        item_active_property = compact_iri(
            active_ctx, expanded_property, expanded_item,
            vocab=True, reverse=inside_reverse)
        nest_result = self._nest_result(active_ctx, item_active_property, rval)
        container = get_container(active_ctx, item_active_property)

        # get simple @graph or @list value if appropriate
        is_graph_item = is_graph(expanded_item)
        is_list_item = is_list(expanded_item)
        inner = expanded_item
        if is_list_item:
            inner = expanded_item['@list']
        elif is_graph_item:
            inner = expanded_item['@graph']

        # recursively compact expanded item
        compacted_item = self.compact(active_ctx, item_active_property, inner)

        # handle @list
        if is_list_item:
            compacted_item = arrayify(compacted_item)
            if '@list' not in container:
                # wrap using @list alias
                wrapper = {compact_iri(active_ctx, '@list'): compacted_item}
                # include @index from expanded @list, if any
                if '@index' in expanded_item:
                    wrapper[compact_iri(active_ctx, '@index')] = \
                        expanded_item['@index']
                compacted_item = wrapper
            # can't use @list container for more than 1 list
            elif item_active_property in nest_result:
                raise JsonLdError(
                    'JSON-LD compact error; property has a "@list" '
                    '@container rule but there is more than a single @list '
                    'that matches the compacted term in the document. '
                    'Compaction might mix unwanted items into the list.',
                    'jsonld.SyntaxError', code='compaction to list of lists')

        if is_graph_item:
            self._add_graph_item(
                active_ctx, item_active_property, expanded_item,
                compacted_item, container, nest_result)
        elif any(c in container for c in ('@language', '@index', '@id',
                                          '@type')):
            self._add_map_item(
                active_ctx, item_active_property, expanded_item,
                compacted_item, container, nest_result)
        else:
            # use an array if compactArrays flag is false, @container is
            # @set or @list, value is an empty array, or key is @graph
            is_array_ = (
                not self.compact_arrays or
                '@set' in container or '@list' in container or
                (is_array(compacted_item) and len(compacted_item) == 0) or
                expanded_property in ('@list', '@graph', '@included'))
            is_json = get_context_value(
                active_ctx, item_active_property, '@type') == '@json'
            add_value(
                nest_result, item_active_property, compacted_item,
                {'propertyIsArray': is_array_,
                 'valueIsArray': is_json and is_array(compacted_item)})

    def _add_graph_item(
            self, active_ctx, item_active_property, expanded_item,
            compacted_item, container, nest_result):
        as_array = not self.compact_arrays or '@set' in container
        if '@graph' in container and (
                '@id' in container or
                ('@index' in container and is_simple_graph(expanded_item))):
            map_object = nest_result.setdefault(item_active_property, {})

            # index on @id or @index or alias of @none
            if '@id' in container:
                key = expanded_item.get('@id')
                if key is not None:
                    key = compact_iri(active_ctx, key)
            else:
                key = expanded_item.get('@index')
            if key is None:
                key = compact_iri(active_ctx, '@none')
            add_value(
                map_object, key, compacted_item,
                {'propertyIsArray': as_array})
        elif '@graph' in container and is_simple_graph(expanded_item):
            add_value(
                nest_result, item_active_property, compacted_item,
                {'propertyIsArray': as_array})
        else:
            # wrap using @graph alias, remove array if only one item and
            # compactArrays not set
            if (is_array(compacted_item) and len(compacted_item) == 1 and
                    self.compact_arrays):
                compacted_item = compacted_item[0]
            compacted_item = {compact_iri(active_ctx, '@graph'): compacted_item}

            # include @id and @index from expanded graph, if any
            if '@id' in expanded_item:
                compacted_item[compact_iri(active_ctx, '@id')] = \
                    compact_iri(active_ctx, expanded_item['@id'])
            if '@index' in expanded_item:
                compacted_item[compact_iri(active_ctx, '@index')] = \
                    expanded_item['@index']

            add_value(
                nest_result, item_active_property, compacted_item,
                {'propertyIsArray': as_array})

    def _add_map_item(
            self, active_ctx, item_active_property, expanded_item,
            compacted_item, container, nest_result):
        map_object = nest_result.setdefault(item_active_property, {})
        key = None

        if '@language' in container:
            if is_value(compacted_item):
                compacted_item = compacted_item['@value']
            key = expanded_item.get('@language')
        elif '@index' in container:
            index_key = get_context_value(
                active_ctx, item_active_property, '@index') or '@index'
            if index_key == '@index':
                key = expanded_item.get('@index')
            elif is_object(compacted_item):
                # values are indexed by one of their properties
                container_key = compact_iri(active_ctx, index_key, vocab=True)
                values = arrayify(compacted_item.pop(container_key, []))
                if values and is_string(values[0]):
                    key = values.pop(0)
                if values:
                    add_value(compacted_item, container_key, values)
        elif not is_object(compacted_item):
            pass
        elif '@id' in container:
            id_key = compact_iri(active_ctx, '@id')
            key = compacted_item.pop(id_key, None)
        elif '@type' in container:
            type_key = compact_iri(active_ctx, '@type')
            types = arrayify(compacted_item.pop(type_key, []))
            key = types.pop(0) if types else None
            if types:
                add_value(compacted_item, type_key, types)
            # a node left with only its @id compacts like a reference
            if (len(compacted_item) == 1 and
                    expand_iri(active_ctx, next(iter(compacted_item)),
                               vocab=True) == '@id'):
                compacted_item = self.compact(
                    active_ctx, item_active_property,
                    {'@id': expanded_item['@id']})

        if key is None:
            key = compact_iri(active_ctx, '@none')

        # add compact value to map object using key from expanded value
        # based on the container type
        add_value(
            map_object, key, compacted_item,
            {'propertyIsArray': '@set' in container})
