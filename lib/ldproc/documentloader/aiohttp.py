"""
Remote document loader using aiohttp.

.. module:: ldproc.documentloader.aiohttp
  :synopsis: Remote document loader using aiohttp
"""

import asyncio
import logging
import threading

from ldproc.documentloader.requests import (
    ACCEPT, apply_link_headers, validate_url)
from ldproc.errors import JsonLdError, LoadingDocumentFailed

log = logging.getLogger(__name__)

# Background event loop (used when inside an existing async environment)
_background_loop = None
_background_thread = None
_background_lock = threading.Lock()


def _ensure_background_loop():
    """Start a persistent background event loop if not running."""
    global _background_loop, _background_thread
    with _background_lock:
        if _background_loop is None:
            _background_loop = asyncio.new_event_loop()

            def run_loop(loop):
                asyncio.set_event_loop(loop)
                loop.run_forever()

            _background_thread = threading.Thread(
                target=run_loop, args=(_background_loop,), daemon=True)
            _background_thread.start()
    return _background_loop


def aiohttp_document_loader(secure=False, max_link_follows=2, **kwargs):
    """
    Create an Asynchronous document loader using aiohttp.

    :param secure: require all requests to use HTTPS (default: False).
    :param max_link_follows: Maximum number of alternate link follows allowed.
    :param **kwargs: extra keyword args for the aiohttp request get() call.

    :return: the RemoteDocument loader function.
    """
    import aiohttp

    async def async_loader(url, headers, link_follow_count=0):
        """
        Retrieves JSON-LD at the given URL asynchronously.

        :param url: the URL to retrieve.
        :param headers: the request headers.

        :return: the RemoteDocument.
        """
        try:
            validate_url(url, secure)
            log.debug('GET %s', url)
            async with aiohttp.ClientSession() as session:
                async with session.get(
                        url, headers=headers, **kwargs) as response:
                    response.raise_for_status()
                    content_type = (
                        response.headers.get('content-type') or
                        'application/octet-stream')
                    doc = {
                        'contentType': content_type.split(';')[0].strip(),
                        'contextUrl': None,
                        'documentUrl': response.url.human_repr(),
                        'document': None
                    }
                    try:
                        # allow any content type, like requests does
                        doc['document'] = await response.json(
                            content_type=None)
                    except ValueError:
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
                    return await async_loader(
                        alternate, headers, link_follow_count + 1)
            return doc
        except JsonLdError:
            raise
        except Exception as cause:
            raise LoadingDocumentFailed(
                'Could not retrieve a JSON-LD document from the URL.',
                'jsonld.LoadDocumentError', {'url': url}, cause=cause)

    def loader(url, options=None):
        """
        Retrieves JSON-LD at the given URL synchronously.

        Works in both synchronous and asynchronous environments.

        :param url: the URL to retrieve.
        :param options: the request options ([headers]).

        :return: the RemoteDocument.
        """
        options = options or {}
        headers = options.get('headers') or {'Accept': ACCEPT}

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is None:
            return asyncio.run(async_loader(url, headers))

        # inside a running event loop: use the background event loop
        loop = _ensure_background_loop()
        future = asyncio.run_coroutine_threadsafe(
            async_loader(url, headers), loop)
        return future.result()

    return loader
