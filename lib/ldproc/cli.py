"""
ldproc - command line JSON-LD processor

Examples::

    ldproc expand doc.jsonld
    ldproc compact doc.jsonld --context context.jsonld
    ldproc frame doc.jsonld --frame frame.jsonld --indent 2
    ldproc normalize doc.jsonld
    cat data.nq | ldproc from-rdf - --native-types
"""
import argparse
import json
import logging
import os
import sys

from ldproc import jsonld
from ldproc.errors import JsonLdError

log = logging.getLogger(__name__)

COMMANDS = (
    'expand', 'compact', 'flatten', 'frame', 'to-rdf', 'from-rdf',
    'normalize')


def read_text(source):
    """
    Reads text from a file path, or stdin for '-'.

    :param source: the path or '-'.

    :return: the text, or None if source is neither (a URL).
    """
    if source == '-':
        return sys.stdin.read()
    if os.path.exists(source):
        with open(source, 'r', encoding='utf-8') as f:
            return f.read()
    return None


def read_json(source):
    """
    Reads a JSON document from a file path or stdin. Anything else is
    returned as is, to be loaded as a URL by the processor.

    :param source: the path, '-' or a URL.

    :return: the parsed document or the URL.
    """
    text = read_text(source)
    if text is None:
        return source
    try:
        return json.loads(text)
    except ValueError as cause:
        raise JsonLdError(
            'Could not parse JSON input.', 'jsonld.ParseError',
            {'source': source}, cause=cause)


def build_parser():
    prs = argparse.ArgumentParser(
        prog='ldproc', description='Process JSON-LD documents.')
    prs.add_argument('command', choices=COMMANDS,
                     help='the operation to perform')
    prs.add_argument('input',
                     help='input file, URL, or - for stdin')

    prs.add_argument('--context',
                     help='@context file or URL to compact with')
    prs.add_argument('--frame',
                     help='frame file or URL to frame with')
    prs.add_argument('--base',
                     help='Base IRI to use')
    prs.add_argument('--ordered',
                     help='Process keys in sorted order',
                     action='store_true')
    prs.add_argument('--processing-mode',
                     dest='processing_mode',
                     choices=['json-ld-1.0', 'json-ld-1.1'],
                     default='json-ld-1.1')
    prs.add_argument('--no-compact-arrays',
                     help='Don\'t compact arrays to single values',
                     dest='compact_arrays',
                     action='store_false')
    prs.add_argument('--native-types',
                     help='Convert XSD types into native types',
                     dest='native_types',
                     action='store_true')
    prs.add_argument('--rdf-type',
                     help='Use rdf:type instead of @type',
                     dest='rdf_type',
                     action='store_true')
    prs.add_argument('--generalized-rdf',
                     help='Allow blank node predicates in RDF output',
                     dest='generalized_rdf',
                     action='store_true')
    prs.add_argument('--algorithm',
                     help='Normalization algorithm [default: URDNA2015]',
                     choices=['URDNA2015', 'URGNA2012'],
                     default='URDNA2015')
    prs.add_argument('--max-work',
                     help='Canonicalization work limit [default: 100000]',
                     dest='max_work',
                     type=int,
                     default=100000)
    prs.add_argument('--indent',
                     help='Indent JSON with n spaces [default: 2]',
                     type=int,
                     default=2)

    prs.add_argument('-v', '--verbose',
                     action='store_true')
    prs.add_argument('-q', '--quiet',
                     action='store_true')
    return prs


def run(opts):
    """
    Runs a command.

    :param opts: the parsed arguments.

    :return: the output text.
    """
    options = {
        'processingMode': opts.processing_mode,
        'ordered': opts.ordered,
        'compactArrays': opts.compact_arrays,
    }
    if opts.base is not None:
        options['base'] = opts.base

    command = opts.command
    if command == 'from-rdf':
        text = read_text(opts.input)
        if text is None:
            raise JsonLdError(
                'N-Quads input must be a file or stdin.', 'jsonld.ParseError',
                {'source': opts.input})
        options['useNativeTypes'] = opts.native_types
        options['useRdfType'] = opts.rdf_type
        output = jsonld.from_rdf(text, options)
        return json.dumps(output, indent=opts.indent)

    if command == 'normalize':
        options['algorithm'] = opts.algorithm
        options['maxWork'] = opts.max_work
        options['format'] = 'application/n-quads'
        return jsonld.normalize(read_json(opts.input), options)

    doc = read_json(opts.input)
    if command == 'to-rdf':
        options['produceGeneralizedRdf'] = opts.generalized_rdf
        options['format'] = 'application/n-quads'
        return jsonld.to_rdf(doc, options)

    if command == 'expand':
        output = jsonld.expand(doc, options)
    elif command == 'flatten':
        ctx = read_json(opts.context) if opts.context else None
        output = jsonld.flatten(doc, ctx, options)
    elif command == 'compact':
        if not opts.context:
            raise JsonLdError(
                'Compaction needs a --context.', 'jsonld.CompactError')
        output = jsonld.compact(doc, read_json(opts.context), options)
    else:
        if not opts.frame:
            raise JsonLdError(
                'Framing needs a --frame.', 'jsonld.FrameError')
        output = jsonld.frame(doc, read_json(opts.frame), options)
    return json.dumps(output, indent=opts.indent)


def main(argv=None):
    """
    Entry point of the ldproc script.

    :param argv: the arguments, defaults to sys.argv[1:].

    :return: the process exit code.
    """
    opts = build_parser().parse_args(argv)

    if not opts.quiet:
        logging.basicConfig()
        if opts.verbose:
            logging.getLogger().setLevel(logging.DEBUG)

    try:
        output = run(opts)
    except JsonLdError as e:
        log.debug('Processing failed', exc_info=True)
        print('ldproc: ' + str(e.args[0]), file=sys.stderr)
        return 1

    sys.stdout.write(output)
    if not output.endswith('\n'):
        sys.stdout.write('\n')
    return 0


if __name__ == '__main__':
    sys.exit(main())
