"""
A document loader that remembers what it has loaded.

.. module:: ldproc.documentloader.caching
  :synopsis: Memoizing and preloaded document loader
"""

import copy
import json
import logging

from ldproc.errors import LoadingDocumentFailed

log = logging.getLogger(__name__)


class CachingDocumentLoader(object):
    """
    Wraps a document loader, keeping each loaded document by URL.

    Documents can also be added up front with :meth:`add_document`, which
    makes offline processing of documents with well-known remote contexts
    possible::

        loader = CachingDocumentLoader()
        loader.add_document('https://example.org/ctx', {'@context': {...}})
        jsonld.expand(doc, {'documentLoader': loader})
    """

    def __init__(self, loader=None):
        """
        :param loader: the document loader to fall back to for URLs that
          are not cached, None to only serve cached documents.
        """
        self.loader = loader
        self.documents = {}

    def add_document(self, url, document, content_type='application/ld+json',
                     context_url=None):
        """
        Adds a document to the cache.

        :param url: the URL of the document.
        :param document: the document, parsed or as JSON text.
        :param content_type: the content type it is served with.
        :param context_url: the context linked by a Link header, if any.
        """
        if isinstance(document, (str, bytes)):
            document = json.loads(document)
        self.documents[url] = {
            'contentType': content_type,
            'contextUrl': context_url,
            'documentUrl': url,
            'document': document
        }

    def __contains__(self, url):
        return url in self.documents

    def __call__(self, url, options=None):
        """
        Retrieves the document at the given URL.

        :param url: the URL to retrieve.
        :param options: the options passed on to the inner loader.

        :return: the RemoteDocument, a copy the caller may change.
        """
        if url in self.documents:
            log.debug('Document cache hit for %s', url)
        elif self.loader is None:
            raise LoadingDocumentFailed(
                'Document is not cached and no loader is configured.',
                'jsonld.LoadDocumentError', {'url': url})
        else:
            self.documents[url] = self.loader(url, options or {})
        return copy.deepcopy(self.documents[url])
