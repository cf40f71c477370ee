"""
Context processing: turning local contexts into active contexts.

An active context is a plain dict::

    {
        '@base': <base IRI or None>,
        'processingMode': 'json-ld-1.1',
        'mappings': {<term>: <term definition or None>},
        'inverse': <inverse context or None>,
        '@vocab': <vocabulary mapping>,        # optional
        '@language': <default language>,      # optional
        'previousContext': <active context>,  # optional, non-propagated
    }

Active contexts are never changed once built; every derivation works on a
clone, so a context may be shared freely between sibling subtrees.

.. module:: ldproc.context
  :synopsis: JSON-LD context processing
"""

import copy
import json
import logging
import re
from collections import OrderedDict

from ldproc import iri_resolver
from ldproc.errors import (
    ContextCycleError, CyclicIRIMappingError, JsonLdError,
    LoadingDocumentFailed, ProtectedTermRedefinition)
from ldproc.util import (
    MAX_CONTEXT_URLS, arrayify, is_absolute_iri, is_bool,
    is_keyword, is_keyword_like, is_object, is_string, shortest_least_key)

log = logging.getLogger(__name__)

# context entries that are not term definitions
CONTEXT_KEYWORDS = frozenset([
    '@base', '@import', '@language', '@propagate', '@protected', '@version',
    '@vocab'])

# keys allowed in an expanded term definition, by processing mode
TERM_DEFINITION_KEYS_10 = frozenset([
    '@container', '@id', '@language', '@reverse', '@type'])
TERM_DEFINITION_KEYS_11 = TERM_DEFINITION_KEYS_10 | frozenset([
    '@context', '@index', '@nest', '@prefix', '@protected'])

# an IRI ending in one of these may be used as a prefix
_PREFIX_DELIMITER = re.compile(r'.*[:/?#\[\]@]$')


def processing_mode(active_ctx, version):
    """
    Checks the processing mode of an active context.

    :param active_ctx: the active context.
    :param version: 1.0 or 1.1.

    :return: True if the context is processed in at least that version
      (1.1) or exactly that version (1.0).
    """
    mode = active_ctx.get('processingMode') or 'json-ld-1.1'
    if str(version) >= '1.1':
        return mode >= 'json-ld-' + str(version)
    return mode == 'json-ld-1.0'


def get_initial_context(options):
    """
    Gets the initial context.

    :param options: the options to use.
      [base] the document base IRI.
      [processingMode] the processing mode.

    :return: the initial context.
    """
    return {
        '@base': options.get('base') or None,
        'processingMode': options.get('processingMode') or 'json-ld-1.1',
        'mappings': {},
        'inverse': None
    }


def clone_active_context(active_ctx):
    """
    Clones an active context, creating a child active context.

    Term definitions are replaced, never changed in place, so the child
    only needs its own mapping table.

    :param active_ctx: the active context to clone.

    :return: a clone (child) of the active context.
    """
    child = {
        '@base': active_ctx['@base'],
        'processingMode': active_ctx.get('processingMode'),
        'mappings': dict(active_ctx['mappings']),
        'inverse': None
    }
    for key in ('@language', '@vocab', 'previousContext'):
        if key in active_ctx:
            child[key] = active_ctx[key]
    return child


def revert_to_previous_context(active_ctx):
    """
    Drops a non-propagated (type-scoped) context, returning the context that
    was active before it.
    """
    return active_ctx.get('previousContext') or active_ctx


def has_protected_terms(active_ctx):
    return any(
        mapping is not None and mapping.get('protected')
        for mapping in active_ctx['mappings'].values())


def _expand_iri(active_ctx, value, base, vocab, define):
    # already expanded
    if value is None or is_keyword(value) or not is_string(value):
        return value

    # reserved for future keywords
    if is_keyword_like(value):
        log.debug('Ignoring IRI %r that has the form of a keyword', value)
        return None

    if define is not None:
        define(value)

    mappings = active_ctx['mappings']
    if value in mappings:
        mapping = mappings[value]
        # value is explicitly ignored with None mapping
        if mapping is None:
            if vocab:
                return None
        # keyword aliases expand even outside of vocab positions
        elif vocab or is_keyword(mapping['@id']):
            return mapping['@id']

    # split value into prefix:suffix
    colon = value.find(':')
    if colon > 0:
        prefix, suffix = value[:colon], value[colon + 1:]

        # do not expand blank nodes (prefix of '_') or already-absolute
        # IRIs (suffix of '//')
        if prefix == '_' or suffix.startswith('//'):
            return value

        if define is not None:
            define(prefix)

        mapping = mappings.get(prefix)
        if mapping and mapping.get('_prefix'):
            return mapping['@id'] + suffix

        # already absolute IRI
        return value

    if vocab and '@vocab' in active_ctx:
        return active_ctx['@vocab'] + value

    if base:
        return iri_resolver.prepend_base(active_ctx['@base'], value)

    return value


def expand_iri(active_ctx, value, base=False, vocab=False):
    """
    Expands a string value to a full IRI. The string may be a term, a
    prefix, a relative IRI, or an absolute IRI. The associated absolute
    IRI will be returned.

    :param active_ctx: the current active context.
    :param value: the string value to expand.
    :param base: True to resolve IRIs against the base IRI, False not to.
    :param vocab: True to concatenate after @vocab, False not to.

    :return: the expanded value, None if the value is ignored.
    """
    return _expand_iri(active_ctx, value, base, vocab, None)


def get_inverse_context(active_ctx):
    """
    Generates an inverse context for use in the compaction algorithm, if
    not already generated for the given active context.

    The inverse context maps IRI -> container -> (@language|@type|@any) ->
    value -> term, where for every slot the shortest, then
    lexicographically least, term wins.

    :param active_ctx: the active context to use.

    :return: the inverse context.
    """
    if active_ctx['inverse']:
        return active_ctx['inverse']

    inverse = active_ctx['inverse'] = {}
    default_language = active_ctx.get('@language', '@none')

    for term in sorted(active_ctx['mappings'], key=shortest_least_key):
        mapping = active_ctx['mappings'][term]
        if mapping is None or mapping.get('@id') is None:
            continue

        container = ''.join(sorted(mapping.get('@container', ['@none'])))

        for iri in arrayify(mapping['@id']):
            container_map = inverse.setdefault(iri, {})
            entry = container_map.setdefault(
                container, {'@language': {}, '@type': {}, '@any': {}})
            entry['@any'].setdefault('@none', term)

            # term is preferred for values using @reverse
            if mapping['reverse']:
                entry['@type'].setdefault('@reverse', term)
            # term accepts any type or language
            elif mapping.get('@type') == '@none':
                entry['@language'].setdefault('@any', term)
                entry['@type'].setdefault('@any', term)
            # term is preferred for values using specific type
            elif '@type' in mapping:
                entry['@type'].setdefault(mapping['@type'], term)
            # term is preferred for values using specific language
            elif '@language' in mapping:
                language = mapping['@language']
                if language is None:
                    language = '@null'
                entry['@language'].setdefault(language, term)
            # term is preferred for values w/default language or no type
            # and no language
            else:
                entry['@language'].setdefault(default_language, term)
                entry['@language'].setdefault('@none', term)
                entry['@type'].setdefault('@none', term)

    return inverse


class ActiveContextCache(object):
    """
    An ActiveContextCache caches processed contexts so they can be reused
    without the overhead of recomputing them.
    """

    def __init__(self, size=100):
        self.cache = OrderedDict()
        self.size = size

    @staticmethod
    def _key(active_ctx, local_ctx, flags):
        active = {k: v for k, v in active_ctx.items() if k != 'inverse'}
        return json.dumps([active, local_ctx, flags], sort_keys=True)

    def get(self, active_ctx, local_ctx, flags=()):
        key = self._key(active_ctx, local_ctx, list(flags))
        result = self.cache.get(key)
        if result is not None:
            self.cache.move_to_end(key)
        return result

    def set(self, active_ctx, local_ctx, result, flags=()):
        key = self._key(active_ctx, local_ctx, list(flags))
        self.cache[key] = result
        self.cache.move_to_end(key)
        while len(self.cache) > self.size:
            self.cache.popitem(last=False)


class ContextResolver(object):
    """
    Resolves local contexts against active contexts, dereferencing remote
    contexts through a document loader.

    Each resolver keeps its own caches, so one resolver is used per
    top-level operation: a remote context is loaded at most once per
    operation and never shared between operations.
    """

    def __init__(self, document_loader, options=None):
        """
        Creates a new ContextResolver.

        :param document_loader: the document loader to dereference remote
          contexts with.
        :param [options]: the processing options ([base], [processingMode]),
          used when a context is reset with null.
        """
        self.document_loader = document_loader
        self.options = options or {}
        self.remote_contexts = {}
        self.active_context_cache = ActiveContextCache()

    def resolve(
            self, active_ctx, local_ctx, base=None, remote_contexts=None,
            override_protected=False, propagate=True, validate_scoped=True,
            _is_remote=False):
        """
        Processes a local context and returns a new active context.

        :param active_ctx: the current active context.
        :param local_ctx: the local context to process (None, a URL, an
          object or an array of those).
        :param base: the base to resolve context URLs against, defaults to
          the active context's base.
        :param remote_contexts: the chain of context URLs currently being
          resolved.
        :param override_protected: True if protected terms may be changed,
          as happens in property-scoped contexts.
        :param propagate: False if the result must not be inherited by
          nested node objects (type-scoped contexts).
        :param validate_scoped: False to skip eager validation of scoped
          contexts.

        :return: the new active context.
        """
        if remote_contexts is None:
            remote_contexts = []
        if base is None:
            base = active_ctx.get('@base')

        # normalize local context to an array
        if is_object(local_ctx) and '@context' in local_ctx:
            local_ctx = local_ctx['@context']
        ctxs = arrayify(local_ctx)

        # no contexts in array, return current active context w/o changes
        if len(ctxs) == 0:
            return active_ctx

        # @propagate on the first context wins
        if is_object(ctxs[0]) and is_bool(ctxs[0].get('@propagate')):
            propagate = ctxs[0]['@propagate']

        rval = active_ctx
        if not propagate and 'previousContext' not in rval:
            rval = clone_active_context(rval)
            rval['previousContext'] = active_ctx

        for ctx in ctxs:
            # reset to initial context
            if ctx is None:
                if not override_protected and has_protected_terms(rval):
                    raise JsonLdError(
                        'Tried to nullify a context with protected terms '
                        'outside of a term definition.',
                        'jsonld.SyntaxError', {'context': local_ctx},
                        code='invalid context nullification')
                initial = get_initial_context(self.options)
                if not propagate:
                    initial['previousContext'] = rval
                rval = initial
                continue

            if is_string(ctx):
                rval = self._resolve_remote(
                    rval, ctx, base, remote_contexts, override_protected,
                    validate_scoped)
                continue

            # dereference @context key if present
            if is_object(ctx) and '@context' in ctx:
                ctx = ctx['@context']

            if not is_object(ctx):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context must be an object.',
                    'jsonld.SyntaxError', {'context': ctx},
                    code='invalid local context')

            flags = (
                override_protected, propagate, _is_remote, base,
                validate_scoped)
            cached = self.active_context_cache.get(rval, ctx, flags)
            if cached is not None:
                log.debug('Active context cache hit')
                rval = cached
                continue

            result = self._process_local_context(
                rval, ctx, base, remote_contexts, override_protected,
                validate_scoped, _is_remote)
            self.active_context_cache.set(rval, ctx, result, flags)
            rval = result

        return rval

    def _load_context(self, url, remote_contexts):
        """
        Loads the @context entry of a remote context document, at most once
        per resolver.
        """
        if url in self.remote_contexts:
            log.debug('Using already loaded remote context %s', url)
            return self.remote_contexts[url]

        log.debug('Dereferencing remote context %s', url)
        try:
            remote_doc = self.document_loader(url, {})
            document = remote_doc['document']
        except Exception as cause:
            raise LoadingDocumentFailed(
                'Dereferencing a URL did not result in a valid JSON-LD '
                'context.',
                'jsonld.ContextUrlError', {'url': url},
                code='loading remote context failed', cause=cause)

        # parse string context as JSON
        if is_string(document):
            try:
                document = json.loads(document)
            except ValueError as cause:
                raise LoadingDocumentFailed(
                    'Could not parse JSON from URL.',
                    'jsonld.ParseError', {'url': url},
                    code='loading remote context failed', cause=cause)

        if not is_object(document) or '@context' not in document:
            raise JsonLdError(
                'Dereferencing a URL did not result in a JSON object with a '
                '@context entry.',
                'jsonld.InvalidUrl', {'url': url},
                code='invalid remote context')

        ctx = self.remote_contexts[url] = document['@context']
        return ctx

    def _resolve_remote(
            self, active_ctx, url, base, remote_contexts, override_protected,
            validate_scoped):
        try:
            url = iri_resolver.prepend_base(base, url)
        except ValueError as cause:
            raise LoadingDocumentFailed(
                'Could not resolve context URL.',
                'jsonld.ContextUrlError', {'url': url, 'base': base},
                code='loading remote context failed', cause=cause)

        if url in remote_contexts:
            # a scoped context being validated may legitimately reach back
            # to the context that defines it
            if not validate_scoped:
                return active_ctx
            raise ContextCycleError(
                'Cyclical @context URLs detected.',
                details={'url': url, 'chain': list(remote_contexts)})
        if len(remote_contexts) >= MAX_CONTEXT_URLS:
            raise JsonLdError(
                'Maximum number of nested @context URLs exceeded.',
                'jsonld.ContextUrlError', {'max': MAX_CONTEXT_URLS},
                code='context overflow')

        ctx = self._load_context(url, remote_contexts)
        return self.resolve(
            active_ctx, ctx, base=url, remote_contexts=remote_contexts + [url],
            override_protected=override_protected,
            validate_scoped=validate_scoped, _is_remote=True)

    def _import_context(self, ctx, base, remote_contexts):
        """
        Merges the context referenced by @import under the entries of ctx.
        """
        import_value = ctx['@import']
        if not is_string(import_value):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @import must be a string.',
                'jsonld.SyntaxError', {'context': ctx},
                code='invalid @import value')
        url = iri_resolver.prepend_base(base, import_value)
        imported = self._load_context(url, remote_contexts)
        if not is_object(imported):
            raise JsonLdError(
                'Invalid JSON-LD syntax; an imported context must be an '
                'object.',
                'jsonld.SyntaxError', {'url': url},
                code='invalid remote context')
        if '@import' in imported:
            raise JsonLdError(
                'Invalid JSON-LD syntax; an imported context must not '
                'include @import.',
                'jsonld.SyntaxError', {'url': url},
                code='invalid context entry')
        merged = dict(imported)
        merged.update(ctx)
        del merged['@import']
        return merged

    def _process_local_context(
            self, active_ctx, ctx, base, remote_contexts, override_protected,
            validate_scoped, is_remote):
        rval = clone_active_context(active_ctx)

        # handle @version
        if '@version' in ctx:
            if ctx['@version'] != 1.1:
                raise JsonLdError(
                    'Unsupported JSON-LD version: ' + str(ctx['@version']),
                    'jsonld.UnsupportedVersion', {'context': ctx},
                    code='invalid @version value')
            if processing_mode(active_ctx, 1.0):
                raise JsonLdError(
                    '@version: ' + str(ctx['@version']) +
                    ' not compatible with ' + active_ctx['processingMode'],
                    'jsonld.ProcessingModeConflict', {'context': ctx},
                    code='processing mode conflict')
            rval['processingMode'] = 'json-ld-1.1'

        for key in ('@import', '@propagate', '@protected'):
            if key in ctx and processing_mode(active_ctx, 1.0):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; ' + key + ' is not supported in '
                    'json-ld-1.0 mode.',
                    'jsonld.SyntaxError', {'context': ctx},
                    code='invalid context entry')

        if '@import' in ctx:
            ctx = self._import_context(ctx, base, remote_contexts)

        # handle @base, never taken from remote contexts
        if '@base' in ctx and not is_remote:
            value = ctx['@base']
            if value is None:
                rval['@base'] = None
            elif not is_string(value):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; the value of "@base" in a '
                    '@context must be a string or null.',
                    'jsonld.SyntaxError', {'context': ctx},
                    code='invalid base IRI')
            elif is_absolute_iri(value):
                rval['@base'] = value
            else:
                try:
                    rval['@base'] = iri_resolver.prepend_base(
                        active_ctx['@base'], value)
                except ValueError as cause:
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; the value of "@base" could '
                        'not be resolved.',
                        'jsonld.SyntaxError', {'context': ctx},
                        code='invalid base IRI', cause=cause)

        # handle @vocab
        if '@vocab' in ctx:
            value = ctx['@vocab']
            if value is None:
                rval.pop('@vocab', None)
            elif not is_string(value):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; the value of "@vocab" in a '
                    '@context must be a string or null.',
                    'jsonld.SyntaxError', {'context': ctx},
                    code='invalid vocab mapping')
            elif not is_absolute_iri(value) and processing_mode(rval, 1.0):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; the value of "@vocab" in a '
                    '@context must be an absolute IRI.',
                    'jsonld.SyntaxError', {'context': ctx},
                    code='invalid vocab mapping')
            else:
                rval['@vocab'] = _expand_iri(rval, value, True, True, None)

        # handle @language
        if '@language' in ctx:
            value = ctx['@language']
            if value is None:
                rval.pop('@language', None)
            elif not is_string(value):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; the value of "@language" in '
                    'a @context must be a string or null.',
                    'jsonld.SyntaxError', {'context': ctx},
                    code='invalid default language')
            else:
                rval['@language'] = value.lower()

        if '@propagate' in ctx and not is_bool(ctx['@propagate']):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @propagate value must be a boolean.',
                'jsonld.SyntaxError', {'context': ctx},
                code='invalid @propagate value')

        protected = ctx.get('@protected', False)
        if not is_bool(protected):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @protected value must be a boolean.',
                'jsonld.SyntaxError', {'context': ctx},
                code='invalid @protected value')

        state = _DefinitionState(
            ctx, protected, override_protected, base, remote_contexts,
            validate_scoped)
        for term in ctx:
            if term not in CONTEXT_KEYWORDS:
                self._create_term_definition(rval, state, term)

        return rval

    def _create_term_definition(self, active_ctx, state, term):
        """
        Creates a term definition during context processing.

        :param active_ctx: the active context being built.
        :param state: the local context and the flags it is processed with.
        :param term: the key in the local context to define the mapping for.
        """
        local_ctx = state.local_ctx
        defined = state.defined

        if term in defined:
            # term already defined
            if defined[term]:
                return
            raise CyclicIRIMappingError(
                'Cyclical context definition detected.',
                details={'context': local_ctx, 'term': term})

        defined[term] = False

        if term == '':
            raise JsonLdError(
                'Invalid JSON-LD syntax; a term cannot be an empty string.',
                'jsonld.SyntaxError', {'context': local_ctx},
                code='invalid term definition')

        value = local_ctx[term]

        if is_keyword(term):
            # @type may only be given @container: @set and @protected
            allowed = (
                term == '@type' and processing_mode(active_ctx, 1.1) and
                is_object(value) and value and
                set(value) <= {'@container', '@protected'} and
                value.get('@container', '@set') == '@set')
            if not allowed:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; keywords cannot be overridden.',
                    'jsonld.SyntaxError', {'context': local_ctx, 'term': term},
                    code='keyword redefinition')
        elif is_keyword_like(term):
            log.debug('Ignoring term %r that has the form of a keyword', term)
            defined[term] = True
            return

        previous = active_ctx['mappings'].pop(term, None)

        # clear context entry
        if value is None or (
                is_object(value) and '@id' in value and value['@id'] is None):
            self._check_protected(previous, None, state, term)
            active_ctx['mappings'][term] = None
            defined[term] = True
            return

        # convert short-hand value to object w/@id
        simple_term = False
        if is_string(value):
            simple_term = True
            value = {'@id': value}

        if not is_object(value):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @context term values must be '
                'strings or objects.', 'jsonld.SyntaxError',
                {'context': local_ctx}, code='invalid term definition')

        valid_keys = TERM_DEFINITION_KEYS_11 \
            if processing_mode(active_ctx, 1.1) else TERM_DEFINITION_KEYS_10
        for kw in value:
            if kw not in valid_keys:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; a term definition must not '
                    'contain ' + kw,
                    'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid term definition')

        def define(dependency):
            if dependency in local_ctx and \
                    defined.get(dependency) is not True:
                self._create_term_definition(active_ctx, state, dependency)

        def expand(iri):
            return _expand_iri(active_ctx, iri, False, True, define)

        # compute whether term has a colon, _compact_iri depends on it
        colon = term.find(':', 1)
        term_has_colon = colon > 0

        mapping = {'reverse': False}

        if '@reverse' in value:
            if '@id' in value:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; an @reverse term definition must '
                    'not contain @id.', 'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid reverse property')
            if '@nest' in value:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; an @reverse term definition must '
                    'not contain @nest.', 'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid reverse property')
            reverse = value['@reverse']
            if not is_string(reverse):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @reverse value must be '
                    'a string.', 'jsonld.SyntaxError', {'context': local_ctx},
                    code='invalid IRI mapping')
            if is_keyword_like(reverse):
                log.debug('Ignoring @reverse %r of term %r', reverse, term)
                defined[term] = True
                return

            id_ = expand(reverse)
            if not is_absolute_iri(id_):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @reverse value must be '
                    'an absolute IRI or a blank node identifier.',
                    'jsonld.SyntaxError', {'context': local_ctx},
                    code='invalid IRI mapping')
            mapping['@id'] = id_
            mapping['reverse'] = True
        elif '@id' in value and value['@id'] != term:
            id_ = value['@id']
            if not is_string(id_):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @id value must be a '
                    'string.', 'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid IRI mapping')
            if not is_keyword(id_) and is_keyword_like(id_):
                log.debug('Ignoring @id %r of term %r', id_, term)
                defined[term] = True
                return

            id_ = expand(id_)
            if not is_absolute_iri(id_) and not is_keyword(id_):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @id value must be '
                    'an absolute IRI, a blank node identifier, or a '
                    'keyword.', 'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid IRI mapping')

            # an IRI-like term must not map to a different IRI
            if processing_mode(active_ctx, 1.1) and (
                    term_has_colon or '/' in term):
                defined[term] = True
                if expand(term) != id_:
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; term ' + term + ' has the '
                        'form of an IRI but maps to a different IRI.',
                        'jsonld.SyntaxError', {'context': local_ctx},
                        code='invalid IRI mapping')
                defined[term] = False

            mapping['@id'] = id_
            mapping['_prefix'] = bool(
                not term_has_colon and '/' not in term and
                _PREFIX_DELIMITER.match(id_) and
                (simple_term or processing_mode(active_ctx, 1.0)))

        if '@id' not in mapping:
            if term_has_colon:
                prefix = term[:colon]
                define(prefix)
                prefix_mapping = active_ctx['mappings'].get(prefix)
                if prefix_mapping is not None:
                    mapping['@id'] = prefix_mapping['@id'] + term[colon + 1:]
                # term is an absolute IRI
                else:
                    mapping['@id'] = term
            elif '/' in term:
                # relative IRI term, resolved against @vocab
                id_ = _expand_iri(active_ctx, term, False, True, None)
                if not is_absolute_iri(id_):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; term ' + term + ' is a '
                        'relative IRI without a vocabulary mapping.',
                        'jsonld.SyntaxError', {'context': local_ctx},
                        code='invalid IRI mapping')
                mapping['@id'] = id_
            elif term == '@type':
                mapping['@id'] = '@type'
            elif '@vocab' in active_ctx:
                mapping['@id'] = active_ctx['@vocab'] + term
            else:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context terms must define '
                    'an @id.', 'jsonld.SyntaxError', {
                        'context': local_ctx,
                        'term': term
                    }, code='invalid IRI mapping')

        # term protection, per term or for the whole context
        protected = value.get('@protected', state.protected)
        if not is_bool(protected):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @protected value must be a boolean.',
                'jsonld.SyntaxError', {'context': local_ctx},
                code='invalid @protected value')
        if protected:
            mapping['protected'] = True

        # IRI mapping now defined
        defined[term] = True

        if '@type' in value:
            type_ = value['@type']
            if not is_string(type_):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @type value must be '
                    'a string.', 'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid type mapping')
            if type_ in ('@json', '@none') and \
                    processing_mode(active_ctx, 1.0):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @type value ' + type_ +
                    ' is not supported in json-ld-1.0 mode.',
                    'jsonld.SyntaxError', {'context': local_ctx},
                    code='invalid type mapping')
            if type_ not in ('@id', '@vocab', '@json', '@none'):
                type_ = expand(type_)
                if not is_absolute_iri(type_):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; an @context @type value must '
                        'be an absolute IRI.', 'jsonld.SyntaxError',
                        {'context': local_ctx}, code='invalid type mapping')
                if type_.startswith('_:'):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; an @context @type value '
                        'must be an IRI, not a blank node identifier.',
                        'jsonld.SyntaxError', {'context': local_ctx},
                        code='invalid type mapping')
            mapping['@type'] = type_

        if '@container' in value:
            self._define_container(active_ctx, local_ctx, value, mapping)

        if '@index' in value:
            index = value['@index']
            if '@index' not in mapping.get('@container', []):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @index without @index in '
                    '@container.', 'jsonld.SyntaxError',
                    {'context': local_ctx, 'term': term},
                    code='invalid term definition')
            if not is_string(index) or index.startswith('@'):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @index must expand to an IRI.',
                    'jsonld.SyntaxError',
                    {'context': local_ctx, 'term': term},
                    code='invalid term definition')
            mapping['@index'] = index

        # scoped contexts
        if '@context' in value:
            scoped = value['@context']
            if state.validate_scoped:
                try:
                    self.resolve(
                        active_ctx, scoped, base=state.base,
                        remote_contexts=state.remote_contexts,
                        override_protected=True, validate_scoped=False)
                except LoadingDocumentFailed:
                    raise
                except JsonLdError as cause:
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; invalid scoped context for '
                        'term ' + term + '.',
                        'jsonld.SyntaxError', {'context': local_ctx},
                        code='invalid scoped context', cause=cause)
            mapping['@context'] = copy.deepcopy(scoped)

        if '@language' in value and '@type' not in value:
            language = value['@language']
            if not (language is None or is_string(language)):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @language value must be '
                    'a string or null.', 'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid language mapping')
            if language is not None:
                language = language.lower()
            mapping['@language'] = language

        # term may be used as prefix
        if '@prefix' in value:
            if term_has_colon or '/' in term:
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @prefix used on a '
                    'compact or relative IRI term.',
                    'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid term definition')
            if not is_bool(value['@prefix']):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context value for @prefix must '
                    'be boolean.',
                    'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid @prefix value')
            if value['@prefix'] and is_keyword(mapping['@id']):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; keywords may not be used as '
                    'prefixes.',
                    'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid term definition')
            mapping['_prefix'] = value['@prefix']

        if '@nest' in value:
            nest = value['@nest']
            if not is_string(nest) or (nest != '@nest' and nest[:1] == '@'):
                raise JsonLdError(
                    'Invalid JSON-LD syntax; @context @nest value must be '
                    'a string which is not a keyword other than @nest.',
                    'jsonld.SyntaxError',
                    {'context': local_ctx}, code='invalid @nest value')
            mapping['@nest'] = nest

        # disallow aliasing @context and @preserve
        if mapping['@id'] in ('@context', '@preserve'):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @context and @preserve '
                'cannot be aliased.', 'jsonld.SyntaxError',
                {'context': local_ctx}, code='invalid keyword alias')

        self._check_protected(previous, mapping, state, term)
        active_ctx['mappings'][term] = mapping

    def _define_container(self, active_ctx, local_ctx, value, mapping):
        container = arrayify(value['@container'])
        valid_containers = ['@list', '@set', '@index', '@language']
        has_set = '@set' in container
        is_valid = all(is_string(kw) for kw in container)

        if processing_mode(active_ctx, 1.1):
            valid_containers.extend(['@graph', '@id', '@type'])

            if '@list' in container:
                is_valid = is_valid and len(container) == 1
            elif '@graph' in container:
                is_valid = is_valid and all(
                    kw in ('@graph', '@id', '@index', '@set')
                    for kw in container)
            else:
                is_valid = is_valid and \
                    len(container) <= (2 if has_set else 1)

            if '@type' in container:
                # type maps default to @id values
                mapping.setdefault('@type', '@id')
                if mapping['@type'] not in ('@id', '@vocab'):
                    raise JsonLdError(
                        'Invalid JSON-LD syntax; container: @type requires '
                        '@type to be @id or @vocab.',
                        'jsonld.SyntaxError', {'context': local_ctx},
                        code='invalid type mapping')
        else:
            is_valid = is_valid and is_string(value['@container'])

        is_valid = is_valid and all(
            kw in valid_containers for kw in container)

        # @set not allowed with @list
        is_valid = is_valid and not (has_set and '@list' in container)

        if not is_valid:
            raise JsonLdError(
                'Invalid JSON-LD syntax; @context @container value '
                'must be one of the following: ' +
                ', '.join(valid_containers) + '.',
                'jsonld.SyntaxError',
                {'context': local_ctx}, code='invalid container mapping')

        if mapping['reverse'] and any(
                kw not in ('@index', '@set') for kw in container):
            raise JsonLdError(
                'Invalid JSON-LD syntax; @context @container value for '
                'an @reverse type definition must be @index or @set.',
                'jsonld.SyntaxError', {'context': local_ctx},
                code='invalid reverse property')

        mapping['@container'] = list(container)

    @staticmethod
    def _check_protected(previous, mapping, state, term):
        """
        Raises ProtectedTermRedefinition if a protected term gets a different
        definition. An identical redefinition keeps the term protected.
        """
        if state.override_protected or previous is None or \
                not previous.get('protected'):
            return
        if mapping is not None:
            mapping['protected'] = True
        if mapping != previous:
            raise ProtectedTermRedefinition(
                'Invalid JSON-LD syntax; tried to redefine a protected term.',
                details={'context': state.local_ctx, 'term': term})


class _DefinitionState(object):
    """
    The local context being processed and the flags it is processed with.
    """

    def __init__(
            self, local_ctx, protected, override_protected, base,
            remote_contexts, validate_scoped):
        self.local_ctx = local_ctx
        self.defined = {}
        self.protected = protected
        self.override_protected = override_protected
        self.base = base
        self.remote_contexts = remote_contexts
        self.validate_scoped = validate_scoped
