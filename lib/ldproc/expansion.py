"""
The expansion algorithm: removing the context from a JSON-LD document so
that every property is an absolute IRI and every value is in its most
explicit form.

.. module:: ldproc.expansion
  :synopsis: JSON-LD expansion
"""

import logging
from collections import namedtuple

from ldproc.context import (
    ContextResolver, expand_iri, processing_mode, revert_to_previous_context)
from ldproc.errors import InvalidValueObject, JsonLdError, ListOfListsError
from ldproc.util import (
    add_value, arrayify, get_container, get_context_value, get_values,
    is_absolute_iri, is_array, is_bool, is_empty_object, is_graph,
    is_keyword, is_list, is_numeric, is_object, is_string, is_value,
    ordered_keys, validate_type_value)

log = logging.getLogger(__name__)

# keywords that only carry meaning inside frames
FRAME_KEYWORDS = frozenset([
    '@default', '@embed', '@explicit', '@omitDefault', '@preserve',
    '@requireAll'])

# the only entries a value object may have
VALUE_OBJECT_KEYS = frozenset(['@value', '@index', '@language', '@type'])

# keywords that may be repeated through @nest or aliases
_MERGEABLE_KEYWORDS = frozenset(['@included', '@type'])

# the node object being expanded and how it is being expanded
_Scope = namedtuple('_Scope', [
    'active_ctx', 'active_property', 'expanded_active_property',
    'type_scoped_ctx', 'input_type', 'frame_expansion', 'inside_list'])


def expand(element, active_ctx, active_property=None, options=None,
           resolver=None):
    """
    Recursively expands an element using the given active context.

    :param element: the element to expand.
    :param active_ctx: the active context to use.
    :param active_property: the property for the element, None for none.
    :param options: the expansion options.
    :param resolver: the context resolver to use, a new one is created from
      the options if not given.

    :return: the expanded value.
    """
    options = options or {}
    if resolver is None:
        resolver = ContextResolver(options.get('documentLoader'), options)
    return Expander(resolver, options).expand(
        active_ctx, active_property, element)


class Expander(object):
    """
    Expands JSON-LD elements, resolving contexts through a ContextResolver.
    """

    _keyword_handlers = {
        '@id': '_expand_id',
        '@type': '_expand_type',
        '@graph': '_expand_graph',
        '@included': '_expand_included',
        '@value': '_expand_value_entry',
        '@language': '_expand_language',
        '@index': '_expand_index',
        '@list': '_expand_list',
        '@set': '_expand_set',
        '@reverse': '_expand_reverse',
    }

    def __init__(self, resolver, options):
        self.resolver = resolver
        self.options = options
        self.ordered = options.get('ordered', False)
        self.keep_free_floating = options.get('keepFreeFloatingNodes', False)
        self.on_key_dropped = options.get('on_key_dropped')

    def _drop_key(self, key):
        log.debug('Dropping key %r', key)
        if self.on_key_dropped is not None:
            self.on_key_dropped(key)

    def expand(
            self, active_ctx, active_property, element, inside_list=False,
            frame_expansion=None, from_map=False):
        """
        Recursively expands an element using the given context. Any context in
        the element will be removed.

        :param active_ctx: the context to use.
        :param active_property: the property for the element, None for none.
        :param element: the element to expand.
        :param inside_list: True if the property is a list, False if not.
        :param frame_expansion: True to allow framing keywords and
          wildcards, defaults to the isFrame option.
        :param from_map: True if the element is a value of an index, id or
          type map.

        :return: the expanded value.
        """
        if element is None:
            return None

        if frame_expansion is None:
            frame_expansion = self.options.get('isFrame', False)
        # disable framing if active_property is @default
        if active_property == '@default':
            frame_expansion = False

        property_mapping = None
        if active_property is not None:
            property_mapping = active_ctx['mappings'].get(active_property)

        if is_array(element):
            rval = []
            container = get_container(active_ctx, active_property)
            inside_list = inside_list or '@list' in container
            for e in element:
                e = self.expand(
                    active_ctx, active_property, e, inside_list=inside_list,
                    frame_expansion=frame_expansion, from_map=from_map)
                if inside_list and (is_array(e) or is_list(e)):
                    raise ListOfListsError(
                        'Invalid JSON-LD syntax; lists of lists are not '
                        'permitted.', details={'property': active_property})
                # drop None values
                if e is None:
                    continue
                if is_array(e):
                    rval.extend(e)
                else:
                    rval.append(e)
            return rval

        if not is_object(element):
            # drop free-floating scalars that are not in lists
            if not inside_list and (
                    active_property is None or
                    expand_iri(active_ctx, active_property, vocab=True) ==
                    '@graph'):
                return None
            if property_mapping is not None and '@context' in property_mapping:
                active_ctx = self._apply_property_context(
                    active_ctx, property_mapping)
            return self._expand_scalar(active_ctx, active_property, element)

        # a non-propagated context stops at the next node object
        if 'previousContext' in active_ctx and not from_map:
            keys = [expand_iri(active_ctx, k, vocab=True) for k in element]
            if '@value' not in keys and keys != ['@id']:
                active_ctx = revert_to_previous_context(active_ctx)

        if property_mapping is not None and '@context' in property_mapping:
            active_ctx = self._apply_property_context(
                active_ctx, property_mapping)

        if '@context' in element:
            active_ctx = self.resolver.resolve(active_ctx, element['@context'])

        # look for scoped contexts on @type, applied in lexicographical order
        type_scoped_ctx = active_ctx
        last_type = None
        for key in sorted(element):
            if expand_iri(active_ctx, key, vocab=True) != '@type':
                continue
            values = arrayify(element[key])
            for type_ in sorted(t for t in values if is_string(t)):
                mapping = type_scoped_ctx['mappings'].get(type_)
                if mapping is not None and '@context' in mapping:
                    active_ctx = self.resolver.resolve(
                        active_ctx, mapping['@context'], propagate=False)
            if values and is_string(values[-1]):
                last_type = values[-1]
        input_type = None
        if last_type is not None:
            input_type = expand_iri(
                active_ctx, last_type, base=True, vocab=True)

        expanded_active_property = expand_iri(
            active_ctx, active_property, vocab=True)

        rval = {}
        scope = _Scope(
            active_ctx, active_property, expanded_active_property,
            type_scoped_ctx, input_type, frame_expansion, inside_list)
        self._expand_object(scope, element, rval)

        count = len(rval)

        if '@value' in rval:
            rval = self._validate_value_object(rval)
        # convert @type to an array
        elif '@type' in rval and not is_array(rval['@type']):
            rval['@type'] = [rval['@type']]
        # handle @set and @list
        elif '@set' in rval or '@list' in rval:
            if count > 1 and not (count == 2 and '@index' in rval):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; if an element has the '
                    'property "@set" or "@list", then it can have at most '
                    'one other property, which is "@index".',
                    'jsonld.SyntaxError', {'element': rval},
                    code='invalid set or list object')
            # optimize away @set
            if '@set' in rval:
                rval = rval['@set']
                count = len(rval)
        # drop objects with only @language
        elif count == 1 and '@language' in rval:
            rval = None

        # drop certain top-level objects that do not occur in lists
        if (is_object(rval) and not self.keep_free_floating and
                not inside_list and
                (active_property is None or
                    expanded_active_property == '@graph')):
            # drop empty object, top-level @value/@list, or a node that
            # only has an @id
            if (count == 0 or '@value' in rval or '@list' in rval or
                    (count == 1 and '@id' in rval and not frame_expansion)):
                rval = None

        return rval

    def _apply_property_context(self, active_ctx, mapping):
        # property-scoped contexts may override protected terms
        return self.resolver.resolve(
            active_ctx, mapping['@context'], override_protected=True)

    def _validate_value_object(self, rval):
        """
        Checks an expanded value object, returning it or None for a null
        value.
        """
        unknown = [k for k in rval if k not in VALUE_OBJECT_KEYS]
        if unknown:
            raise InvalidValueObject(
                'Invalid JSON-LD syntax; an element containing "@value" '
                'may only have "@index", "@language" or "@type" entries.',
                details={'element': rval, 'keys': unknown})
        if '@type' in rval and '@language' in rval:
            raise InvalidValueObject(
                'Invalid JSON-LD syntax; an element containing '
                '"@value" may not contain both "@type" and "@language".',
                details={'element': rval})

        types = get_values(rval, '@type')
        if types == ['@json']:
            return rval

        # drop None @values
        if rval['@value'] is None:
            return None

        values = get_values(rval, '@value')
        if '@language' in rval:
            if not all(is_string(v) or is_empty_object(v) for v in values):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; only strings may be '
                    'language-tagged.', 'jsonld.SyntaxError',
                    {'element': rval}, code='invalid language-tagged value')
        elif not all(
                is_empty_object(t) or
                (is_string(t) and is_absolute_iri(t) and
                 not t.startswith('_:'))
                for t in types):
            raise JsonLdError(
                'Invalid JSON-LD syntax; an element containing "@value" '
                'and "@type" must have an absolute IRI for the value '
                'of "@type".', 'jsonld.SyntaxError', {'element': rval},
                code='invalid typed value')
        return rval

    def _expand_object(self, scope, element, result):
        """
        Expands each key and value of element, adding them to result.

        :param scope: the node being expanded.
        :param element: the element to expand.
        :param result: the expanded result into which to add values.
        """
        active_ctx = scope.active_ctx
        nests = []

        for key in ordered_keys(element, self.ordered):
            if key == '@context':
                continue
            value = element[key]

            expanded_property = expand_iri(active_ctx, key, vocab=True)

            # drop non-absolute IRI keys that aren't keywords
            if expanded_property is None or not (
                    is_absolute_iri(expanded_property) or
                    is_keyword(expanded_property)):
                self._drop_key(key)
                continue

            if is_keyword(expanded_property):
                if scope.expanded_active_property == '@reverse':
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; a keyword cannot be used as '
                        'a @reverse property.',
                        'jsonld.SyntaxError', {'value': value},
                        code='invalid reverse property map')
                if (expanded_property in result and
                        expanded_property not in _MERGEABLE_KEYWORDS):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; colliding keywords detected.',
                        'jsonld.SyntaxError', {'keyword': expanded_property},
                        code='colliding keywords')

                if expanded_property == '@nest':
                    nests.append(key)
                    continue

                handler = self._keyword_handlers.get(expanded_property)
                if handler is not None:
                    getattr(self, handler)(scope, value, result)
                elif (expanded_property in FRAME_KEYWORDS and
                        scope.frame_expansion):
                    expanded_value = self.expand(
                        active_ctx, key, value,
                        frame_expansion=scope.frame_expansion)
                    add_value(
                        result, expanded_property, expanded_value,
                        {'propertyIsArray': True})
                else:
                    self._drop_key(key)
                continue

            self._expand_property(
                scope, key, expanded_property, value, result)

        # expand each nested key
        for key in nests:
            for nested in arrayify(element[key]):
                if not is_object(nested) or any(
                        expand_iri(active_ctx, k, vocab=True) == '@value'
                        for k in nested):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; nested value must be a node '
                        'object.', 'jsonld.SyntaxError', {'value': nested},
                        code='invalid @nest value')
                self._expand_object(scope, nested, result)

    def _expand_property(self, scope, key, expanded_property, value, result):
        active_ctx = scope.active_ctx
        mapping = active_ctx['mappings'].get(key)
        container = get_container(active_ctx, key)

        if mapping is not None and mapping.get('@type') == '@json':
            expanded_value = {'@value': value, '@type': '@json'}
        elif '@language' in container and is_object(value):
            expanded_value = self._expand_language_map(active_ctx, value)
        elif is_object(value) and any(
                c in container for c in ('@index', '@id', '@type')):
            expanded_value = self._expand_index_map(
                active_ctx, key, value, container,
                mapping.get('@index') if mapping else None,
                scope.frame_expansion)
        else:
            expanded_value = self.expand(
                active_ctx, key, value, frame_expansion=scope.frame_expansion)

        if expanded_value is None:
            return

        # convert expanded value to @list if container specifies it
        if '@list' in container and not is_list(expanded_value):
            expanded_value = {'@list': arrayify(expanded_value)}

        # convert each expanded value to a graph object
        if ('@graph' in container and '@id' not in container and
                '@index' not in container):
            expanded_value = [
                {'@graph': arrayify(v)} for v in arrayify(expanded_value)]

        # merge in reverse properties
        if mapping and mapping['reverse']:
            reverse_map = result.setdefault('@reverse', {})
            for item in arrayify(expanded_value):
                if is_value(item) or is_list(item):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; "@reverse" value must '
                        'not be an @value or an @list.',
                        'jsonld.SyntaxError', {'value': expanded_value},
                        code='invalid reverse property value')
                add_value(
                    reverse_map, expanded_property, item,
                    {'propertyIsArray': True})
            return

        add_value(
            result, expanded_property, expanded_value,
            {'propertyIsArray': True})

    def _expand_id(self, scope, value, result):
        if not is_string(value):
            valid = scope.frame_expansion and (
                is_empty_object(value) or
                (is_array(value) and all(is_string(v) for v in value)))
            if not valid:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; "@id" value must be a '
                    'string.', 'jsonld.SyntaxError',
                    {'value': value}, code='invalid @id value')

        expanded_values = [
            v if is_object(v) else
            expand_iri(scope.active_ctx, v, base=True)
            for v in arrayify(value)]
        expanded_values = [v for v in expanded_values if v is not None]

        if scope.frame_expansion:
            add_value(
                result, '@id', expanded_values, {'propertyIsArray': True})
        elif expanded_values:
            result['@id'] = expanded_values[0]

    def _expand_type(self, scope, value, result):
        validate_type_value(value, scope.frame_expansion)
        type_scoped_ctx = scope.type_scoped_ctx

        if is_object(value) and '@default' in value:
            expanded_values = [{'@default': expand_iri(
                type_scoped_ctx, value['@default'], base=True, vocab=True)}]
        else:
            expanded_values = [
                expand_iri(type_scoped_ctx, v, base=True, vocab=True)
                if is_string(v) else v
                for v in arrayify(value)]
            expanded_values = [v for v in expanded_values if v is not None]

        add_value(
            result, '@type', expanded_values,
            {'propertyIsArray': scope.frame_expansion})

    def _expand_graph(self, scope, value, result):
        expanded = self.expand(
            scope.active_ctx, '@graph', value,
            frame_expansion=scope.frame_expansion)
        add_value(
            result, '@graph', [] if expanded is None else arrayify(expanded),
            {'propertyIsArray': True})

    def _expand_included(self, scope, value, result):
        if processing_mode(scope.active_ctx, 1.0):
            self._drop_key('@included')
            return
        expanded = self.expand(
            scope.active_ctx, scope.active_property, value,
            frame_expansion=scope.frame_expansion)
        expanded = [] if expanded is None else arrayify(expanded)
        for item in expanded:
            if not is_object(item) or is_value(item) or is_list(item) or \
                    '@set' in item:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; values of @included must be '
                    'node objects.', 'jsonld.SyntaxError', {'value': value},
                    code='invalid @included value')
        add_value(result, '@included', expanded, {'propertyIsArray': True})

    def _expand_value_entry(self, scope, value, result):
        # JSON literals are kept verbatim
        if scope.input_type == '@json':
            result['@value'] = value
            return
        if (is_object(value) or is_array(value)) and \
                not scope.frame_expansion:
            raise JsonLdError(
                'Invalid JSON-LD syntax; "@value" value must not be an '
                'object or an array.', 'jsonld.SyntaxError',
                {'value': value}, code='invalid value object value')
        add_value(
            result, '@value', value,
            {'propertyIsArray': scope.frame_expansion})

    def _expand_language(self, scope, value, result):
        # null @language values expand as if they didn't exist
        if value is None:
            return
        if not is_string(value) and not scope.frame_expansion:
            raise JsonLdError(
                'Invalid JSON-LD syntax; "@language" value must be '
                'a string.', 'jsonld.SyntaxError', {'value': value},
                code='invalid language-tagged string')
        expanded_values = [
            v.lower() if is_string(v) else v for v in arrayify(value)]
        add_value(
            result, '@language', expanded_values,
            {'propertyIsArray': scope.frame_expansion})

    def _expand_index(self, scope, value, result):
        if not is_string(value):
            raise JsonLdError(
                'Invalid JSON-LD syntax; "@index" value must be '
                'a string.', 'jsonld.SyntaxError', {'value': value},
                code='invalid @index value')
        result['@index'] = value

    def _expand_list(self, scope, value, result):
        next_active_property = scope.active_property
        if scope.expanded_active_property == '@graph':
            next_active_property = None
        expanded = self.expand(
            scope.active_ctx, next_active_property, value, inside_list=True,
            frame_expansion=scope.frame_expansion)
        if is_list(expanded):
            raise ListOfListsError(
                'Invalid JSON-LD syntax; lists of lists are not permitted.',
                details={'value': value})
        result['@list'] = [] if expanded is None else arrayify(expanded)

    def _expand_set(self, scope, value, result):
        expanded = self.expand(
            scope.active_ctx, scope.active_property, value,
            frame_expansion=scope.frame_expansion)
        result['@set'] = [] if expanded is None else arrayify(expanded)

    def _expand_reverse(self, scope, value, result):
        if not is_object(value):
            raise JsonLdError(
                'Invalid JSON-LD syntax; "@reverse" value must be '
                'an object.', 'jsonld.SyntaxError', {'value': value},
                code='invalid @reverse value')

        expanded_value = self.expand(
            scope.active_ctx, '@reverse', value,
            frame_expansion=scope.frame_expansion)
        if not expanded_value:
            return

        # properties double-reversed
        for rproperty, rvalue in expanded_value.get('@reverse', {}).items():
            add_value(result, rproperty, rvalue, {'propertyIsArray': True})

        # merge in all reversed properties
        for property, items in expanded_value.items():
            if property == '@reverse':
                continue
            reverse_map = result.setdefault('@reverse', {})
            add_value(reverse_map, property, [], {'propertyIsArray': True})
            for item in items:
                if is_value(item) or is_list(item):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; "@reverse" value must not '
                        'be an @value or an @list.', 'jsonld.SyntaxError',
                        {'value': expanded_value},
                        code='invalid reverse property value')
                add_value(
                    reverse_map, property, item, {'propertyIsArray': True})

    def _expand_language_map(self, active_ctx, language_map):
        """
        Expands a language map.

        :param active_ctx: the current active context.
        :param language_map: the language map to expand.

        :return: the expanded language map.
        """
        rval = []
        for key in ordered_keys(language_map, self.ordered):
            expanded_key = expand_iri(active_ctx, key, vocab=True)
            for item in arrayify(language_map[key]):
                if item is None:
                    continue
                if not is_string(item):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; language map values must be '
                        'strings.', 'jsonld.SyntaxError',
                        {'languageMap': language_map},
                        code='invalid language map value')
                val = {'@value': item}
                if expanded_key != '@none':
                    val['@language'] = key.lower()
                rval.append(val)
        return rval

    def _expand_index_map(
            self, active_ctx, active_property, value, container,
            property_index, frame_expansion):
        """
        Expands an index, id or type map.

        :param active_ctx: the current active context.
        :param active_property: the property holding the map.
        :param value: the object containing indexed values.
        :param container: the container mapping of the property.
        :param property_index: the property values are indexed by, None to
          index by @index.
        :param frame_expansion: True when expanding a frame.

        :return: the expanded values.
        """
        if '@index' in container:
            index_key = '@index'
        elif '@id' in container:
            index_key = '@id'
        else:
            index_key = '@type'
        as_graph = '@graph' in container

        rval = []
        for index in ordered_keys(value, self.ordered):
            map_ctx = active_ctx
            if index_key != '@index':
                map_ctx = revert_to_previous_context(active_ctx)
            if index_key == '@type':
                mapping = map_ctx['mappings'].get(index)
                if mapping is not None and '@context' in mapping:
                    map_ctx = self.resolver.resolve(
                        map_ctx, mapping['@context'])

            is_none = expand_iri(active_ctx, index, vocab=True) == '@none'

            items = self.expand(
                map_ctx, active_property, arrayify(value[index]),
                frame_expansion=frame_expansion, from_map=True)
            for item in items:
                if as_graph and not is_graph(item):
                    item = {'@graph': arrayify(item)}
                if is_none:
                    pass
                elif index_key == '@type':
                    type_ = expand_iri(active_ctx, index, base=True, vocab=True)
                    item['@type'] = [type_] + get_values(item, '@type')
                elif index_key == '@id':
                    if '@id' not in item:
                        item['@id'] = expand_iri(active_ctx, index, base=True)
                elif property_index is not None:
                    if is_value(item):
                        raise InvalidValueObject(
                            'Invalid JSON-LD syntax; a property-indexed value '
                            'must be a node object.',
                            details={'value': item})
                    property = expand_iri(
                        active_ctx, property_index, vocab=True)
                    indexed = self._expand_scalar(
                        active_ctx, property_index, index)
                    item[property] = [indexed] + get_values(item, property)
                elif '@index' not in item:
                    item['@index'] = index
                rval.append(item)
        return rval

    def _expand_scalar(self, active_ctx, active_property, value):
        """
        Expands the given value by using the coercion and keyword rules in the
        given context.

        :param active_ctx: the active context to use.
        :param active_property: the property the value is associated with.
        :param value: the value to expand.

        :return: the expanded value.
        """
        if value is None:
            return None

        expanded_property = expand_iri(active_ctx, active_property, vocab=True)
        if expanded_property == '@id':
            return expand_iri(active_ctx, value, base=True)
        if expanded_property == '@type':
            return expand_iri(active_ctx, value, base=True, vocab=True)

        type_ = get_context_value(active_ctx, active_property, '@type')

        # do @id expansion
        if type_ == '@id' and is_string(value):
            return {'@id': expand_iri(active_ctx, value, base=True)}
        # do @id expansion w/vocab
        if type_ == '@vocab' and is_string(value):
            return {'@id': expand_iri(
                active_ctx, value, base=True, vocab=True)}

        # do not expand keyword values
        if is_keyword(expanded_property):
            return value

        rval = {}
        if type_ is not None and type_ not in ('@id', '@vocab', '@none'):
            rval['@type'] = type_
        elif is_string(value):
            language = get_context_value(
                active_ctx, active_property, '@language')
            if language is not None:
                rval['@language'] = language

        # only JSON scalars are values
        if not (is_bool(value) or is_numeric(value) or is_string(value)):
            value = str(value)

        rval['@value'] = value
        return rval
