"""
Vocabulary constants, shape predicates and value helpers shared by the
processing algorithms.

.. module:: ldproc.util
  :synopsis: shared JSON-LD helpers
"""

import re
from numbers import Integral, Real

from ldproc.errors import JsonLdError

# XSD constants
XSD_BOOLEAN = 'http://www.w3.org/2001/XMLSchema#boolean'
XSD_DOUBLE = 'http://www.w3.org/2001/XMLSchema#double'
XSD_INTEGER = 'http://www.w3.org/2001/XMLSchema#integer'
XSD_STRING = 'http://www.w3.org/2001/XMLSchema#string'

# RDF constants
RDF = 'http://www.w3.org/1999/02/22-rdf-syntax-ns#'
RDF_LIST = RDF + 'List'
RDF_FIRST = RDF + 'first'
RDF_REST = RDF + 'rest'
RDF_NIL = RDF + 'nil'
RDF_TYPE = RDF + 'type'
RDF_LANGSTRING = RDF + 'langString'
RDF_JSON_LITERAL = RDF + 'JSON'

# JSON-LD keywords
KEYWORDS = frozenset([
    '@base',
    '@container',
    '@context',
    '@default',
    '@embed',
    '@explicit',
    '@graph',
    '@id',
    '@import',
    '@included',
    '@index',
    '@json',
    '@language',
    '@list',
    '@nest',
    '@none',
    '@omitDefault',
    '@prefix',
    '@preserve',
    '@propagate',
    '@protected',
    '@requireAll',
    '@reverse',
    '@set',
    '@type',
    '@value',
    '@version',
    '@vocab'])

# '@' followed only by letters looks like a keyword and is reserved
KEYWORD_LIKE = re.compile(r'^@[a-zA-Z]+$')

# JSON-LD link header rel
LINK_HEADER_REL = 'http://www.w3.org/ns/json-ld#context'

# Restraints
MAX_CONTEXT_URLS = 10


def compare_shortest_least(a, b):
    """
    Compares two strings first based on length and then lexicographically.

    :return: -1 if a < b, 1 if a > b, 0 if a == b.
    """
    if len(a) != len(b):
        return -1 if len(a) < len(b) else 1
    if a == b:
        return 0
    return -1 if a < b else 1


def shortest_least_key(s):
    """Sort key equivalent to compare_shortest_least."""
    return (len(s), s)


def is_keyword(v):
    return isinstance(v, str) and v in KEYWORDS


def is_keyword_like(v):
    """
    Returns True if the value has the form of a keyword ('@' followed by
    letters) whether or not it is one.
    """
    return isinstance(v, str) and KEYWORD_LIKE.match(v) is not None


def is_object(v):
    return isinstance(v, dict)


def is_empty_object(v):
    return isinstance(v, dict) and len(v) == 0


def is_array(v):
    return isinstance(v, list)


def is_string(v):
    return isinstance(v, str)


def is_bool(v):
    return isinstance(v, bool)


def is_integer(v):
    return isinstance(v, Integral) and not isinstance(v, bool)


def is_double(v):
    return not isinstance(v, Integral) and isinstance(v, Real)


def is_numeric(v):
    return isinstance(v, Real) and not isinstance(v, bool)


def validate_type_value(v, is_frame=False):
    """
    Raises an exception if the given value is not a valid @type value.

    :param v: the value to check.
    :param is_frame: True to also allow the framing wildcard forms.
    """
    if is_string(v):
        return
    if is_frame and (is_empty_object(v) or v == [] or
                     (is_object(v) and set(v) == {'@default'})):
        return
    if is_empty_object(v):
        return
    if is_array(v) and all(is_string(e) for e in v):
        return
    if is_frame and is_array(v) and len(v) == 1 and is_empty_object(v[0]):
        return

    raise JsonLdError(
        'Invalid JSON-LD syntax; "@type" value must be a string, an array '
        'of strings, or an empty object.',
        'jsonld.SyntaxError', {'value': v}, code='invalid type value')


def is_subject(v):
    """
    Returns True if the given value is a subject with properties.

    A value is a subject if it is an object that is not a @value, @set or
    @list, and it has more than one key or its only key is not @id.
    """
    if (is_object(v) and
            '@value' not in v and '@set' not in v and '@list' not in v):
        return len(v) > 1 or '@id' not in v
    return False


def is_subject_reference(v):
    """Returns True if the value is an object with @id as its only key."""
    return is_object(v) and len(v) == 1 and '@id' in v


def is_value(v):
    return is_object(v) and '@value' in v


def is_list(v):
    return is_object(v) and '@list' in v


def is_graph(v):
    """
    Returns True if the value is a graph object: an object with @graph and
    optionally @id and @index, but nothing else.
    """
    return (is_object(v) and '@graph' in v and
            len([k for k in v if k not in ('@id', '@index')]) == 1)


def is_simple_graph(v):
    """Returns True if the value is a graph object without an @id."""
    return is_graph(v) and '@id' not in v


def is_bnode(v):
    """
    Returns True if the given value is a blank node.

    A value is a blank node if it is an object and either its @id begins
    with '_:', or it has no @id and is not a @value, @set or @list.
    """
    if not is_object(v):
        return False
    if '@id' in v:
        return is_string(v['@id']) and v['@id'].startswith('_:')
    return len(v) == 0 or not ('@value' in v or '@set' in v or '@list' in v)


def is_absolute_iri(v):
    """Weak check: any string containing a ':'."""
    return is_string(v) and ':' in v


def arrayify(value):
    """
    If value is an array, returns value, otherwise returns an array
    containing value as the only element.
    """
    return value if is_array(value) else [value]


def has_property(subject, property):
    """
    Returns True if the given subject has the given property with at least
    one value.
    """
    if property in subject:
        value = subject[property]
        return not is_array(value) or len(value) > 0
    return False


def has_value(subject, property, value):
    """
    Determines if the given value is a property of the given subject.

    :param subject: the subject to check.
    :param property: the property to check.
    :param value: the value to check.

    :return: True if the value exists, False if not.
    """
    if not has_property(subject, property):
        return False
    val = subject[property]
    if is_list(val):
        val = val['@list']
    if is_array(val):
        return any(compare_values(value, v) for v in val)
    # never match a set of values against an array value parameter
    if not is_array(value):
        return compare_values(value, val)
    return False


def add_value(subject, property, value, options=None):
    """
    Adds a value to a subject. If the value is an array, all values in the
    array will be added.

    :param subject: the subject to add the value to.
    :param property: the property that relates the value to the subject.
    :param value: the value to add.
    :param [options]: the options to use:
      [propertyIsArray] True if the property is always an array, False if
        not (default: False).
      [valueIsArray] True to add an array value as a single value rather
        than adding each of its elements (default: False).
      [allowDuplicate] True to allow duplicates, False not to (uses a simple
        shallow comparison of subject ID or value) (default: True).
      [prependValue] True to insert the value first (default: False).
    """
    options = dict(options or {})
    options.setdefault('propertyIsArray', False)
    options.setdefault('valueIsArray', False)
    options.setdefault('allowDuplicate', True)
    options.setdefault('prependValue', False)

    if options['valueIsArray']:
        subject[property] = value
        return

    if is_array(value):
        if (len(value) == 0 and options['propertyIsArray'] and
                property not in subject):
            subject[property] = []
        if options['prependValue']:
            value = value + arrayify(subject.get(property, []))
            subject.pop(property, None)
            options['prependValue'] = False
        for v in value:
            add_value(subject, property, v, options)
        return

    if property not in subject:
        subject[property] = [value] if options['propertyIsArray'] else value
        return

    present = (
        not options['allowDuplicate'] and has_value(subject, property, value))

    # make the property an array if the value is new or always an array
    if (not is_array(subject[property]) and
            (not present or options['propertyIsArray'])):
        subject[property] = [subject[property]]

    if not present:
        if options['prependValue']:
            subject[property].insert(0, value)
        else:
            subject[property].append(value)


def get_values(subject, property):
    """Gets all of the values for a subject's property as an array."""
    return arrayify(subject.get(property) or [])


def remove_property(subject, property):
    del subject[property]


def remove_value(subject, property, value, options=None):
    """
    Removes a value from a subject.

    :param subject: the subject.
    :param property: the property that relates the value to the subject.
    :param value: the value to remove.
    :param [options]: the options to use:
      [propertyIsArray]: True if the property is always an array,
        False if not (default: False).
    """
    options = options or {}
    values = [
        v for v in get_values(subject, property)
        if not compare_values(v, value)]

    if len(values) == 0:
        remove_property(subject, property)
    elif len(values) == 1 and not options.get('propertyIsArray', False):
        subject[property] = values[0]
    else:
        subject[property] = values


def _same_scalar(a, b):
    # True and 1 compare equal in Python but are different JSON values
    if is_bool(a) or is_bool(b):
        return type(a) == type(b) and a == b
    return a == b


def compare_values(v1, v2):
    """
    Compares two JSON-LD values for equality. Two JSON-LD values will be
    considered equal if:

    1. They are both primitives of the same type and value.
    2. They are both @values with the same @value, @type, @language,
      and @index, OR
    3. They both have @ids that are the same.

    :param v1: the first value.
    :param v2: the second value.

    :return: True if v1 and v2 are considered equal, False if not.
    """
    # 1. equal primitives
    if not is_object(v1) and not is_object(v2):
        return _same_scalar(v1, v2)

    # 2. equal @values
    if is_value(v1) and is_value(v2):
        return (
            _same_scalar(v1['@value'], v2['@value']) and
            v1.get('@type') == v2.get('@type') and
            v1.get('@language') == v2.get('@language') and
            v1.get('@index') == v2.get('@index'))

    # 3. equal @ids
    if is_object(v1) and '@id' in v1 and is_object(v2) and '@id' in v2:
        return v1['@id'] == v2['@id']

    return False


def get_context_value(ctx, key, type_):
    """
    Gets the value for the given active context key and type, None if none
    is set.

    :param ctx: the active context.
    :param key: the context key.
    :param [type_]: the type of value to get (eg: '@id', '@type'), if not
      specified gets the entire entry for a key, None if not found.

    :return: mixed the value.
    """
    if key is None:
        return None

    rval = None

    # default language applies when the term has none of its own
    if type_ == '@language' and type_ in ctx:
        rval = ctx[type_]

    entry = ctx['mappings'].get(key)
    if key in ctx['mappings'] and entry is None:
        return None
    if entry is not None:
        if type_ is None:
            rval = entry
        elif type_ in entry:
            rval = entry[type_]

    return rval


def get_container(ctx, key):
    """Gets the container list of a term, empty when it has none."""
    return get_context_value(ctx, key, '@container') or []


def ordered_keys(obj, ordered):
    """
    Returns the keys of an object, sorted when ordered iteration was asked
    for, otherwise in insertion order.
    """
    return sorted(obj) if ordered else list(obj)
