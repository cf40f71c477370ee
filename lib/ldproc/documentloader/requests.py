"""
Remote document loader using Requests.

.. module:: ldproc.documentloader.requests
  :synopsis: Remote document loader using Requests
"""
import logging
import re
import string
import urllib.parse as urllib_parse

from ldproc.errors import JsonLdError, LoadingDocumentFailed
from ldproc.iri_resolver import prepend_base
from ldproc.jsonld import parse_link_header
from ldproc.util import LINK_HEADER_REL

log = logging.getLogger(__name__)

ACCEPT = 'application/ld+json, application/json'


def validate_url(url, secure):
    """
    Raises LoadingDocumentFailed unless the URL may be dereferenced.

    :param url: the URL.
    :param secure: True if only https URLs are allowed.
    """
    pieces = urllib_parse.urlparse(url)
    if (not all([pieces.scheme, pieces.netloc]) or
            pieces.scheme not in ['http', 'https'] or
            set(pieces.netloc) > set(
                string.ascii_letters + string.digits + '-.:')):
        raise LoadingDocumentFailed(
            'URL could not be dereferenced; only "http" and "https" '
            'URLs are supported.',
            'jsonld.InvalidUrl', {'url': url})
    if secure and pieces.scheme != 'https':
        raise LoadingDocumentFailed(
            'URL could not be dereferenced; secure mode enabled and '
            'the URL\'s scheme is not "https".',
            'jsonld.InvalidUrl', {'url': url})


def apply_link_headers(doc, url, link_header):
    """
    Reads the context and alternate links of a response into a remote
    document.

    :param doc: the remote document being built.
    :param url: the requested URL.
    :param link_header: the value of the Link header.

    :return: the URL of an alternate JSON-LD representation to load
      instead, None if there is none.
    """
    links = parse_link_header(link_header)
    content_type = doc['contentType']

    linked_context = links.get(LINK_HEADER_REL)
    # only 1 related link header permitted
    if linked_context and content_type != 'application/ld+json':
        if isinstance(linked_context, list):
            raise LoadingDocumentFailed(
                'URL could not be dereferenced, it has more than one '
                'associated HTTP Link Header.',
                'jsonld.LoadDocumentError', {'url': url},
                code='multiple context link headers')
        doc['contextUrl'] = linked_context['target']

    # if not JSON-LD, alternate may point there
    linked_alternate = links.get('alternate')
    if (isinstance(linked_alternate, dict) and
            linked_alternate.get('type') == 'application/ld+json' and
            not re.match(r'^application\/(\w*\+)?json$', content_type)):
        return prepend_base(url, linked_alternate['target'])
    return None


def requests_document_loader(secure=False, max_link_follows=2, **kwargs):
    """
    Create a Requests document loader.

    Can be used to setup extra Requests args such as verify, cert, timeout,
    or others.

    :param secure: require all requests to use HTTPS (default: False).
    :param max_link_follows: Maximum number of alternate link follows allowed.
    :param **kwargs: extra keyword args for Requests get() call.

    :return: the RemoteDocument loader function.
    """
    import requests

    def loader(url, options=None, link_follow_count=0):
        """
        Retrieves JSON-LD at the given URL.

        :param url: the URL to retrieve.
        :param options: the request options ([headers]).

        :return: the RemoteDocument.
        """
        options = options or {}
        try:
            validate_url(url, secure)
            headers = options.get('headers') or {'Accept': ACCEPT}
            log.debug('GET %s', url)
            response = requests.get(url, headers=headers, **kwargs)
            response.raise_for_status()

            content_type = (
                response.headers.get('content-type') or
                'application/octet-stream')
            doc = {
                'contentType': content_type.split(';')[0].strip(),
                'contextUrl': None,
                'documentUrl': response.url,
                'document': None
            }
            try:
                doc['document'] = response.json()
            except ValueError:
                # body is not JSON, the link headers may point elsewhere
                log.debug('Response from %s is not JSON', url)

            link_header = response.headers.get('link')
            if link_header:
                alternate = apply_link_headers(doc, url, link_header)
                if alternate is not None:
                    if link_follow_count >= max_link_follows:
                        raise LoadingDocumentFailed(
                            'Exceeded maximum link header redirects (%d).' %
                            max_link_follows,
                            'jsonld.LoadDocumentError', {'url': url})
                    return loader(
                        alternate, options=options,
                        link_follow_count=link_follow_count + 1)
            return doc
        except JsonLdError:
            raise
        except Exception as cause:
            raise LoadingDocumentFailed(
                'Could not retrieve a JSON-LD document from the URL.',
                'jsonld.LoadDocumentError', {'url': url}, cause=cause)

    return loader
