"""
IRI resolution against a base IRI (RFC 3986 section 5.2) and its inverse.

.. module:: ldproc.iri_resolver
  :synopsis: relative IRI resolution
"""

from urllib.parse import ParseResult, urlparse, urlunparse


def _may_follow_dot_segment(ch: str) -> bool:
    # '.' and '..' only count as segments when followed by one of these
    return not ch or ch in ('#', '?', '/')


def remove_dot_segments(path: str) -> str:
    """
    Removes '.' and '..' segments from a URL path.

    :param path: the IRI path to remove dot segments from.

    :return: the normalized path, always starting with '/'.
    """
    segments = []
    i = 0
    length = len(path)

    while i < length:
        ch = path[i]

        if ch in ('#', '?'):
            # query and fragment are copied verbatim
            if not segments:
                segments.append('')
            segments[-1] += path[i:]
            break

        if ch != '/':
            if not segments:
                segments.append('')
            segments[-1] += ch
            i += 1
            continue

        if path.startswith('/..', i) and \
                _may_follow_dot_segment(path[i + 3:i + 4]):
            if segments:
                segments.pop()
            if i + 3 >= length:
                segments.append('')
            i += 3
            continue

        if path.startswith('/.', i) and not path.startswith('/..', i) and \
                _may_follow_dot_segment(path[i + 2:i + 3]):
            if i + 2 >= length:
                segments.append('')
            i += 2
            continue

        segments.append('')
        i += 1

    return '/' + '/'.join(segments)


def remove_dot_segments_of_path(iri: str, colon_position: int) -> str:
    """
    Removes dot segments from the path portion of an IRI.

    :param iri: an IRI (or part of an IRI).
    :param colon_position: the position of the first ':' in the IRI, or -1.

    :return: the IRI with dot segments removed from its path.
    """
    start = colon_position + 1
    if iri.startswith('//', start):
        start += 2

    path_start = iri.find('/', start)
    if path_start < 0:
        return iri
    return iri[:path_start] + remove_dot_segments(iri[path_start:])


def resolve(relative_iri: str, base_iri: str = None) -> str:
    """
    Resolves a relative IRI against a base IRI.

    :param relative_iri: the IRI to resolve.
    :param base_iri: the base IRI, None or '' for no base.

    :return: the absolute IRI.
    """
    base_iri = base_iri or ''

    # fragments of the base never take part
    fragment = base_iri.find('#')
    if fragment > 0:
        base_iri = base_iri[:fragment]

    if not relative_iri:
        if ':' not in base_iri:
            raise ValueError(
                f"Found invalid baseIRI '{base_iri}' for value "
                f"'{relative_iri}'")
        return base_iri

    if relative_iri.startswith('?'):
        query = base_iri.find('?')
        if query > 0:
            base_iri = base_iri[:query]
        return base_iri + relative_iri

    if relative_iri.startswith('#'):
        return base_iri + relative_iri

    value_colon = relative_iri.find(':')
    if not base_iri:
        if value_colon < 0:
            raise ValueError(
                f"Found invalid relative IRI '{relative_iri}' for a missing "
                "baseIRI")
        return remove_dot_segments_of_path(relative_iri, value_colon)

    # value already carries a scheme
    if value_colon >= 0:
        return remove_dot_segments_of_path(relative_iri, value_colon)

    base_colon = base_iri.find(':')
    if base_colon < 0:
        raise ValueError(
            f"Found invalid baseIRI '{base_iri}' for value '{relative_iri}'")
    scheme = base_iri[:base_colon + 1]

    # network-path reference
    if relative_iri.startswith('//'):
        return scheme + remove_dot_segments_of_path(relative_iri, -1)

    # find where the base path starts
    if base_iri.startswith('//', base_colon + 1):
        path_start = base_iri.find('/', base_colon + 3)
        if path_start < 0:
            if len(base_iri) > base_colon + 3:
                return base_iri + '/' + \
                    remove_dot_segments_of_path(relative_iri, -1)
            return scheme + remove_dot_segments_of_path(relative_iri, -1)
    else:
        path_start = base_iri.find('/', base_colon + 1)
        if path_start < 0:
            return scheme + remove_dot_segments_of_path(relative_iri, -1)

    prefix = base_iri[:path_start]
    if relative_iri.startswith('/'):
        return prefix + remove_dot_segments(relative_iri)

    # merge with the directory of the base path
    base_path = base_iri[path_start:]
    last_slash = base_path.rfind('/')
    if 0 <= last_slash < len(base_path) - 1:
        base_path = base_path[:last_slash + 1]
        if (relative_iri.startswith('.') and
                not relative_iri.startswith('..') and
                not relative_iri.startswith('./') and
                len(relative_iri) > 2):
            relative_iri = relative_iri[1:]

    return prefix + remove_dot_segments(base_path + relative_iri)


def prepend_base(base, iri):
    """
    Resolves an IRI against a base when there is one; without a base, relative
    IRIs are returned unchanged.

    :param base: the base IRI or None.
    :param iri: the IRI to resolve.

    :return: the resolved IRI.
    """
    if not base:
        return iri
    return resolve(iri, base)


def _authority(parsed: ParseResult):
    # authority with default ports removed
    authority = parsed.netloc or None
    try:
        port = parsed.port
    except ValueError:
        port = None
    if authority is not None and port is not None:
        if (parsed.scheme, port) in (('https', 443), ('http', 80)):
            authority = authority.rsplit(':', 1)[0]
    return authority


def unresolve(absolute_iri: str, base_iri: str = '') -> str:
    """
    Makes an absolute IRI relative to the given base IRI where possible.

    :param absolute_iri: the absolute IRI.
    :param base_iri: the base IRI.

    :return: the relative IRI if relative to base, otherwise the absolute IRI.
    """
    if not base_iri:
        return absolute_iri

    base = urlparse(base_iri)
    if not base.scheme:
        raise ValueError(
            f"Found invalid baseIRI '{base_iri}' for value '{absolute_iri}'")
    rel = urlparse(absolute_iri)

    if base.scheme != rel.scheme or _authority(base) != _authority(rel):
        return absolute_iri

    # drop the common leading segments, keeping the last one unless a
    # query or fragment follows
    base_segments = remove_dot_segments(base.path).split('/')
    iri_segments = remove_dot_segments(rel.path).split('/')
    keep = 0 if (rel.fragment or rel.query) else 1
    while (base_segments and len(iri_segments) > keep and
            base_segments[0] == iri_segments[0]):
        base_segments.pop(0)
        iri_segments.pop(0)

    rval = ''
    if base_segments:
        # the last base segment is a file, not a directory
        base_segments.pop()
        rval += '../' * len(base_segments)
    rval += '/'.join(iri_segments)

    # relative IRIs must not look like keywords
    if rval.startswith('@'):
        rval = './' + rval

    return urlunparse(
        ('', '', rval, '', rel.query or '', rel.fragment or '')) or './'
