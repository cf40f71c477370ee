"""
JSON-LD processor entry points.

Every operation takes a document (already parsed JSON, or a URL to load
through the document loader) and a plain options dict, and returns a new
tree; inputs are never changed. Context resolution state (remote context
caches, blank node counters) lives only as long as a single call.

.. module:: ldproc.jsonld
  :synopsis: JSON-LD processing API
"""

import copy
import json
import logging
import re

from ldproc import canon, compaction, expansion, flattening, framing, rdf
from ldproc.__about__ import __copyright__, __license__, __version__
from ldproc.context import (
    ActiveContextCache, ContextResolver, expand_iri, get_initial_context)
from ldproc.errors import (
    CanonicalizationComplexityExceeded, ContextCycleError,
    CyclicIRIMappingError, InvalidNumberFormat, InvalidValueObject,
    JsonLdError, ListOfListsError, LoadingDocumentFailed,
    ProtectedTermRedefinition)
from ldproc.nquads import parse_nquads, serialize_nquads
from ldproc.util import (
    add_value, arrayify, compare_values, get_values, has_property, has_value,
    is_array, is_object, is_string, remove_property, remove_value)

__all__ = [
    '__copyright__', '__license__', '__version__',
    'compact', 'expand', 'flatten', 'frame', 'link', 'from_rdf', 'to_rdf',
    'normalize', 'set_document_loader', 'get_document_loader',
    'parse_link_header', 'load_document',
    'requests_document_loader', 'aiohttp_document_loader',
    'register_rdf_parser', 'unregister_rdf_parser',
    'has_value', 'add_value', 'get_values', 'remove_value',
    'compare_values', 'arrayify',
    'JsonLdProcessor', 'JsonLdError', 'ActiveContextCache'
]

log = logging.getLogger(__name__)

NQUADS_FORMATS = ('application/n-quads', 'application/nquads')

# errors callers catch by class, raised through the entry points unwrapped
PROPAGATED_ERRORS = (
    CanonicalizationComplexityExceeded, ContextCycleError,
    CyclicIRIMappingError, InvalidNumberFormat, InvalidValueObject,
    ListOfListsError, LoadingDocumentFailed, ProtectedTermRedefinition)


def compact(input_, ctx, options=None):
    """
    Compacts a JSON-LD document with a context, see
    :meth:`JsonLdProcessor.compact` for the options.
    """
    return JsonLdProcessor().compact(input_, ctx, options)


def expand(input_, options=None):
    """
    Expands a JSON-LD document, see :meth:`JsonLdProcessor.expand`.
    """
    return JsonLdProcessor().expand(input_, options)


def flatten(input_, ctx=None, options=None):
    """
    Flattens a JSON-LD document, compacting the result when a context
    is given. See :meth:`JsonLdProcessor.flatten`.
    """
    return JsonLdProcessor().flatten(input_, ctx, options)


def frame(input_, frame, options=None):
    """
    Frames a JSON-LD document, see :meth:`JsonLdProcessor.frame` for the
    framing flags.
    """
    return JsonLdProcessor().frame(input_, frame, options)


def link(input_, ctx, options=None):
    """
    Links the nodes of a JSON-LD document in memory: each node is output
    once and every reference to it is the same dict, so the result may
    contain cycles and cannot be serialized as is.

    :param input_: the JSON-LD document to link.
    :param ctx: the context to compact with, or None.
    :param [options]: the framing options to use.

    :return: the linked output.
    """
    # a wildcard frame embedding by reference
    frame_ = {'@embed': '@link'}
    if ctx:
        frame_['@context'] = ctx
    return frame(input_, frame_, options)


def normalize(input_, options=None):
    """
    Canonicalizes the RDF dataset of a JSON-LD (or N-Quads) input, see
    :meth:`JsonLdProcessor.normalize`.
    """
    return JsonLdProcessor().normalize(input_, options)


def from_rdf(input_, options=None):
    """
    Converts an RDF dataset or N-Quads text to expanded JSON-LD, see
    :meth:`JsonLdProcessor.from_rdf`.
    """
    return JsonLdProcessor().from_rdf(input_, options)


def to_rdf(input_, options=None):
    """
    Converts a JSON-LD document to an RDF dataset, see
    :meth:`JsonLdProcessor.to_rdf`.
    """
    return JsonLdProcessor().to_rdf(input_, options)


def set_document_loader(load_document):
    """
    Sets the default JSON-LD document loader.

    :param load_document(url, options): the document loader to use.
    """
    global _default_document_loader
    _default_document_loader = load_document


def get_document_loader():
    """
    Gets the default JSON-LD document loader, creating the requests
    document loader on first use.

    :return: the default document loader.
    """
    global _default_document_loader
    if _default_document_loader is None:
        _default_document_loader = requests_document_loader()
    return _default_document_loader


def parse_link_header(header):
    """
    Parses a link header. The results will be key'd by the value of "rel".

    Link: <http://json-ld.org/contexts/person.jsonld>; \
      rel="http://www.w3.org/ns/json-ld#context"; type="application/ld+json"

    Parses as: {
      'http://www.w3.org/ns/json-ld#context': {
        target: http://json-ld.org/contexts/person.jsonld,
        type: 'application/ld+json'
      }
    }

    If there is more than one "rel" with the same IRI, then entries in the
    resulting map for that "rel" will be lists.

    :param header: the link header to parse.

    :return: the parsed result.
    """
    rval = {}
    # split on unbracketed/unquoted commas
    entries = re.findall(r'(?:<[^>]*?>|"[^"]*?"|[^,])+', header)
    r_link_header = r'\s*<([^>]*?)>\s*(?:;\s*(.*))?'
    r_params = r'(.*?)=(?:(?:"([^"]*?)")|([^"]*?))\s*(?:(?:;\s*)|$)'
    for entry in entries:
        match = re.search(r_link_header, entry)
        if not match:
            continue
        target, params = match.groups()
        result = {'target': target}
        for key, quoted, unquoted in re.findall(r_params, params or ''):
            result[key.strip()] = quoted or unquoted
        rel = result.get('rel', '')
        if isinstance(rval.get(rel), list):
            rval[rel].append(result)
        elif rel in rval:
            rval[rel] = [rval[rel], result]
        else:
            rval[rel] = result
    return rval


def requests_document_loader(**kwargs):
    import ldproc.documentloader.requests

    return ldproc.documentloader.requests.requests_document_loader(**kwargs)


def aiohttp_document_loader(**kwargs):
    import ldproc.documentloader.aiohttp

    return ldproc.documentloader.aiohttp.aiohttp_document_loader(**kwargs)


def load_document(url, options):
    """
    Loads a document through the configured document loader and makes sure
    it holds parsed JSON.

    :param url: the URL of the document.
    :param options: the options to use.
      [documentLoader(url, options)] the document loader.

    :return: the RemoteDocument.
    """
    loader = options.get('documentLoader') or get_document_loader()
    try:
        remote_doc = loader(url, {})
        if remote_doc.get('document') is None:
            raise JsonLdError(
                'No remote document found at the given URL.',
                'jsonld.NullRemoteDocument')
        if is_string(remote_doc['document']):
            remote_doc['document'] = json.loads(remote_doc['document'])
    except LoadingDocumentFailed:
        raise
    except Exception as cause:
        raise LoadingDocumentFailed(
            'Could not retrieve a JSON-LD document from the URL.',
            'jsonld.LoadDocumentError', {'url': url}, cause=cause)
    remote_doc.setdefault('contextUrl', None)
    remote_doc.setdefault('documentUrl', url)
    return remote_doc


def register_rdf_parser(content_type, parser):
    """
    Registers a global RDF parser by content-type, for use with
    from_rdf. Global parsers will be used by JsonLdProcessors that
    do not register their own parsers.

    :param content_type: the content-type for the parser.
    :param parser(input): the parser function (takes a string as
             a parameter and returns an RDF dataset).
    """
    _rdf_parsers[content_type] = parser


def unregister_rdf_parser(content_type):
    """
    Unregisters a global RDF parser by content-type.

    :param content_type: the content-type for the parser.
    """
    _rdf_parsers.pop(content_type, None)


# The default JSON-LD document loader, created on first use.
_default_document_loader = None

# Registered global RDF parsers hashed by content-type.
_rdf_parsers = {}


class JsonLdProcessor(object):
    """
    A JSON-LD processor.
    """

    def __init__(self):
        """
        Initialize the JSON-LD processor.
        """
        # processor-specific RDF parsers
        self.rdf_parsers = None

    def _options(self, input_, options):
        # per-call copy of the options with the shared defaults
        options = dict(options) if options else {}
        options.setdefault('base', input_ if is_string(input_) else '')
        options.setdefault('processingMode', 'json-ld-1.1')
        options.setdefault('ordered', False)
        if options.get('documentLoader') is None:
            options['documentLoader'] = get_document_loader()
        return options

    def compact(self, input_, ctx, options):
        """
        Performs JSON-LD compaction.

        :param input_: the JSON-LD input to compact.
        :param ctx: the context to compact with.
        :param options: the options to use.
          [base] the base IRI to use.
          [compactArrays] True to compact arrays to single values when
            appropriate, False not to (default: True).
          [graph] True to always output a top-level graph (default: False).
          [expandContext] a context to expand with.
          [skipExpansion] True to assume the input is expanded and skip
            expansion, False not to, (default: False).
          [activeCtx] True to also return the active context used.
          [documentLoader(url, options)] the document loader.

        :return: the compacted JSON-LD output.
        """
        if ctx is None:
            raise JsonLdError(
                'The compaction context must not be null.',
                'jsonld.CompactError', code='invalid local context')

        # nothing to compact
        if input_ is None:
            return None

        options = self._options(input_, options)
        options.setdefault('compactArrays', True)
        options.setdefault('graph', False)
        options.setdefault('skipExpansion', False)
        options.setdefault('activeCtx', False)
        options.setdefault('link', None)

        if options['skipExpansion']:
            expanded = input_
        else:
            try:
                expanded = self.expand(input_, options)
            except PROPAGATED_ERRORS:
                raise
            except JsonLdError as cause:
                raise JsonLdError(
                    'Could not expand input before compaction.',
                    'jsonld.CompactError', cause=cause)

        # process context
        resolver = ContextResolver(options['documentLoader'], options)
        try:
            active_ctx = resolver.resolve(get_initial_context(options), ctx)
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not process context before compaction.',
                'jsonld.CompactError', cause=cause)

        compacted = compaction.compact(
            active_ctx, None, expanded, options, resolver)

        if (options['compactArrays'] and not options['graph'] and
                is_array(compacted)):
            # simplify to a single item
            if len(compacted) == 1:
                compacted = compacted[0]
            # simplify to an empty object
            elif len(compacted) == 0:
                compacted = {}
        # always use an array if graph options is on
        elif options['graph']:
            compacted = arrayify(compacted)

        # follow @context key
        if is_object(ctx) and '@context' in ctx:
            ctx = ctx['@context']

        # build output context, without empty contexts
        ctx = [
            v for v in arrayify(copy.deepcopy(ctx))
            if not is_object(v) or len(v) > 0]
        has_context = len(ctx) > 0
        if len(ctx) == 1:
            ctx = ctx[0]

        # add context and/or @graph
        if is_array(compacted):
            kwgraph = compaction.compact_iri(active_ctx, '@graph')
            graph = compacted
            compacted = {}
            if has_context:
                compacted['@context'] = ctx
            compacted[kwgraph] = graph
        elif is_object(compacted) and has_context:
            # reorder keys so @context is first
            compacted = dict([('@context', ctx)] + list(compacted.items()))

        if options['activeCtx']:
            return {'compacted': compacted, 'activeCtx': active_ctx}
        return compacted

    def expand(self, input_, options):
        """
        Performs JSON-LD expansion.

        :param input_: the JSON-LD input to expand.
        :param options: the options to use.
          [base] the base IRI to use.
          [expandContext] a context to expand with.
          [isFrame] True to allow framing keywords and interpretation,
            False not to (default: false).
          [keepFreeFloatingNodes] True to keep free-floating nodes,
            False not to (default: False).
          [documentLoader(url, options)] the document loader.

        :return: the expanded JSON-LD output.
        """
        options = dict(options) if options else {}
        if options.get('documentLoader') is None:
            options['documentLoader'] = get_document_loader()
        options.setdefault('isFrame', False)
        options.setdefault('keepFreeFloatingNodes', False)

        # if input is a string, attempt to dereference remote document
        if is_string(input_):
            remote_doc = load_document(input_, options)
        else:
            remote_doc = {
                'contextUrl': None,
                'documentUrl': None,
                'document': input_
            }

        # set default base
        options.setdefault('base', remote_doc['documentUrl'] or '')
        options = self._options(input_, options)

        resolver = ContextResolver(options['documentLoader'], options)
        active_ctx = get_initial_context(options)
        try:
            # process optional expandContext
            if options.get('expandContext') is not None:
                active_ctx = resolver.resolve(
                    active_ctx, copy.deepcopy(options['expandContext']))

            # process remote context from HTTP Link Header
            if remote_doc['contextUrl'] is not None:
                active_ctx = resolver.resolve(
                    active_ctx, remote_doc['contextUrl'])
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not perform JSON-LD expansion.',
                'jsonld.ExpandError', cause=cause)

        expanded = expansion.expand(
            copy.deepcopy(remote_doc['document']), active_ctx, None,
            options, resolver)

        # optimize away @graph with no other properties
        if (is_object(expanded) and '@graph' in expanded and
                len(expanded) == 1):
            expanded = expanded['@graph']
        elif expanded is None:
            expanded = []

        # normalize to an array
        return arrayify(expanded)

    def flatten(self, input_, ctx, options):
        """
        Performs JSON-LD flattening.

        :param input_: the JSON-LD input to flatten.
        :param ctx: the JSON-LD context to compact with (default: None).
        :param options: the options to use.
          [base] the base IRI to use.
          [expandContext] a context to expand with.
          [documentLoader(url, options)] the document loader.

        :return: the flattened JSON-LD output.
        """
        options = self._options(input_, options)

        try:
            expanded = self.expand(input_, options)
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not expand input before flattening.',
                'jsonld.FlattenError', cause=cause)

        flattened = flattening.flatten(expanded)

        if ctx is None:
            return flattened

        # compact result (force @graph option to true, skip expansion)
        options['graph'] = True
        options['skipExpansion'] = True
        try:
            return self.compact(flattened, ctx, options)
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not compact flattened output.',
                'jsonld.FlattenError', cause=cause)

    def frame(self, input_, frame, options):
        """
        Performs JSON-LD framing.

        :param input_: the JSON-LD object to frame.
        :param frame: the JSON-LD frame to use.
        :param options: the options to use.
          [base] the base IRI to use.
          [expandContext] a context to expand with.
          [embed] default @embed flag: '@once', '@always', '@never',
            '@link' (default: '@once').
          [explicit] default @explicit flag (default: False).
          [requireAll] default @requireAll flag (default: True).
          [omitDefault] default @omitDefault flag (default: False).
          [pruneBlankNodeIdentifiers] remove unnecessary blank node
            identifiers (default: True).
          [omitGraph] True to leave out a top-level @graph holding a
            single node (default: True in json-ld-1.1 mode).
          [documentLoader(url, options)] the document loader.

        :return: the framed JSON-LD output.
        """
        options = self._options(input_, options)
        options.setdefault('compactArrays', True)
        options.setdefault('embed', '@once')
        options.setdefault('explicit', False)
        options.setdefault('requireAll', True)
        options.setdefault('omitDefault', False)
        options.setdefault('pruneBlankNodeIdentifiers', True)
        options.setdefault(
            'omitGraph', options['processingMode'] != 'json-ld-1.0')
        options['bnodesToClear'] = []

        # if frame is a string, attempt to dereference remote document
        if is_string(frame):
            remote_frame = load_document(frame, options)
        else:
            remote_frame = {'contextUrl': None, 'document': frame}

        # preserve frame context
        frame = copy.deepcopy(remote_frame['document'])
        if not is_object(frame):
            raise JsonLdError(
                'Invalid JSON-LD syntax; a JSON-LD frame must be a single '
                'object.', 'jsonld.SyntaxError', {'frame': frame},
                code='invalid frame')
        ctx = frame.get('@context', {})
        if remote_frame['contextUrl'] is not None:
            if ctx:
                ctx = arrayify(ctx) + [remote_frame['contextUrl']]
            else:
                ctx = remote_frame['contextUrl']
            frame['@context'] = ctx

        try:
            expanded = self.expand(input_, options)
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not expand input before framing.',
                'jsonld.FrameError', cause=cause)

        try:
            opts = dict(options)
            opts['isFrame'] = True
            opts['keepFreeFloatingNodes'] = True
            expanded_frame = self.expand(frame, opts)
            frame_ctx = self.process_context(
                get_initial_context(options), ctx, options)
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not expand frame before framing.',
                'jsonld.FrameError', cause=cause)

        # frame the merged graph unless the frame has @graph (or an alias)
        options['merged'] = not any(
            expand_iri(frame_ctx, key, vocab=True) == '@graph'
            for key in frame)
        framed = framing.frame(expanded, expanded_frame, options)

        try:
            # compact result (skip expansion, check for linked embeds), an
            # empty result keeps its @graph
            opts = dict(options)
            opts['graph'] = not options['omitGraph'] or not framed
            opts['skipExpansion'] = True
            opts['link'] = {}
            opts['activeCtx'] = True
            result = self.compact(framed, ctx, opts)
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not compact framed output.',
                'jsonld.FrameError', cause=cause)

        compacted = result['compacted']
        active_ctx = result['activeCtx']

        # remove @preserve from results, leaving the context alone
        output_ctx = compacted.pop('@context', None)
        compacted = framing.remove_preserve(active_ctx, compacted, options)
        if output_ctx is not None:
            compacted = dict(
                [('@context', output_ctx)] + list(compacted.items()))
        return compacted

    def normalize(self, input_, options):
        """
        Performs RDF dataset normalization on the given input. The input is
        JSON-LD unless the 'inputFormat' option is used. The output is an RDF
        dataset unless the 'format' option is used.

        :param input_: the JSON-LD input to normalize.
        :param options: the options to use.
          [algorithm] the algorithm to use: `URDNA2015` or `URGNA2012`
            (default: `URDNA2015`).
          [maxWork] the canonicalization work limit (default: 100000).
          [base] the base IRI to use.
          [inputFormat] the format if input is not JSON-LD:
            'application/n-quads' for N-Quads.
          [format] the format if output is a string:
            'application/n-quads' for N-Quads.
          [documentLoader(url, options)] the document loader.

        :return: the normalized output.
        """
        options = dict(options) if options else {}
        options.setdefault('algorithm', 'URDNA2015')
        options.setdefault('maxWork', canon.DEFAULT_MAX_WORK)

        if options['algorithm'] not in canon.ALGORITHMS:
            raise JsonLdError(
                'Unsupported normalization algorithm.',
                'jsonld.NormalizeError', {'algorithm': options['algorithm']})

        if 'inputFormat' in options:
            if options['inputFormat'] not in NQUADS_FORMATS:
                raise JsonLdError(
                    'Unknown normalization input format.',
                    'jsonld.NormalizeError',
                    {'format': options['inputFormat']})
            try:
                dataset = parse_nquads(input_)
            except ValueError as cause:
                raise JsonLdError(
                    'Could not parse N-Quads before normalization.',
                    'jsonld.NormalizeError', cause=cause)
        else:
            # convert to RDF dataset then do normalization
            opts = dict(options)
            opts.pop('format', None)
            opts['produceGeneralizedRdf'] = False
            try:
                dataset = self.to_rdf(input_, opts)
            except PROPAGATED_ERRORS:
                raise
            except JsonLdError as cause:
                raise JsonLdError(
                    'Could not convert input to RDF dataset before '
                    'normalization.', 'jsonld.NormalizeError', cause=cause)

        try:
            return canon.normalize(dataset, options)
        except canon.UnknownFormatError as cause:
            raise JsonLdError(
                'Unknown output format.', 'jsonld.UnknownFormat',
                {'format': cause.format}, cause=cause)

    def from_rdf(self, dataset, options):
        """
        Converts an RDF dataset to JSON-LD.

        :param dataset: a serialized string of RDF in a format specified by
          the format option or an RDF dataset to convert.
        :param options: the options to use.
          [format] the format if input is a string:
            'application/n-quads' for N-Quads (default: 'application/n-quads').
          [useRdfType] True to use rdf:type, False to use @type
            (default: False).
          [useNativeTypes] True to convert XSD types into native types
            (boolean, integer, double), False not to (default: False).

        :return: the JSON-LD output.
        """
        options = dict(options) if options else {}
        options.setdefault('useRdfType', False)
        options.setdefault('useNativeTypes', False)

        if 'format' not in options and is_string(dataset):
            options['format'] = 'application/n-quads'

        if 'format' in options:
            # supported formats (processor-specific and global)
            parsers = (
                self.rdf_parsers if self.rdf_parsers is not None
                else _rdf_parsers)
            if options['format'] not in parsers:
                raise JsonLdError(
                    'Unknown input format.',
                    'jsonld.UnknownFormat', {'format': options['format']})
            try:
                dataset = parsers[options['format']](dataset)
            except ValueError as cause:
                raise JsonLdError(
                    'Could not parse RDF input.', 'jsonld.RdfError',
                    {'format': options['format']}, cause=cause)

        return rdf.from_rdf(dataset, options)

    def to_rdf(self, input_, options):
        """
        Outputs the RDF dataset found in the given JSON-LD object.

        :param input_: the JSON-LD input.
        :param options: the options to use.
          [base] the base IRI to use.
          [format] the format if input is a string:
            'application/n-quads' for N-Quads.
          [produceGeneralizedRdf] true to output generalized RDF, false
            to produce only standard RDF (default: false).
          [documentLoader(url, options)] the document loader.

        :return: the resulting RDF dataset (or a serialization of it).
        """
        options = self._options(input_, options)
        options.setdefault('produceGeneralizedRdf', False)

        if 'format' in options and options['format'] not in NQUADS_FORMATS:
            raise JsonLdError(
                'Unknown output format.',
                'jsonld.UnknownFormat', {'format': options['format']})

        try:
            expanded = self.expand(input_, options)
        except PROPAGATED_ERRORS:
            raise
        except JsonLdError as cause:
            raise JsonLdError(
                'Could not expand input before serialization to '
                'RDF.', 'jsonld.RdfError', cause=cause)

        dataset = rdf.to_rdf(expanded, options)
        if 'format' in options:
            return serialize_nquads(dataset)
        return dataset

    def process_context(self, active_ctx, local_ctx, options):
        """
        Processes a local context, retrieving any URLs as necessary, and
        returns a new active context.

        :param active_ctx: the current active context.
        :param local_ctx: the local context to process.
        :param options: the options to use.
          [documentLoader(url, options)] the document loader.

        :return: the new active context.
        """
        options = self._options(None, options)

        # return initial context early for None context
        if local_ctx is None:
            return get_initial_context(options)

        resolver = ContextResolver(options['documentLoader'], options)
        return resolver.resolve(active_ctx, copy.deepcopy(local_ctx))

    @staticmethod
    def has_property(subject, property):
        return has_property(subject, property)

    @staticmethod
    def has_value(subject, property, value):
        return has_value(subject, property, value)

    @staticmethod
    def add_value(subject, property, value, options=None):
        add_value(subject, property, value, options)

    @staticmethod
    def get_values(subject, property):
        return get_values(subject, property)

    @staticmethod
    def remove_property(subject, property):
        remove_property(subject, property)

    @staticmethod
    def remove_value(subject, property, value, options=None):
        remove_value(subject, property, value, options)

    @staticmethod
    def compare_values(v1, v2):
        return compare_values(v1, v2)

    @staticmethod
    def arrayify(value):
        return arrayify(value)

    @staticmethod
    def parse_nquads(input_):
        return parse_nquads(input_)

    @staticmethod
    def to_nquads(dataset):
        return serialize_nquads(dataset)


# register the N-Quads RDF parser
for _format in NQUADS_FORMATS:
    register_rdf_parser(_format, parse_nquads)
