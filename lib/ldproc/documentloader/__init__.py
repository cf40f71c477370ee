"""
Document loaders map a URL to a RemoteDocument::

    {
        'contentType': 'application/ld+json',
        'contextUrl': <context from a Link header or None>,
        'documentUrl': <final URL after redirects>,
        'document': <parsed JSON>
    }

The network loaders are imported lazily so that their libraries are only
needed when used.
"""
from ldproc.documentloader.caching import CachingDocumentLoader

__all__ = ['CachingDocumentLoader']
