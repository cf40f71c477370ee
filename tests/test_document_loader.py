"""
Tests for document loaders: Accept header content negotiation, context Link
headers and Link rel=alternate.

When a context URL returns non-JSON-LD (e.g. text/html), the loader follows a
Link header with rel="alternate" and type="application/ld+json" to get the
actual JSON-LD. https://schema.org, for example, responds with text/html and
Link: </docs/jsonldcontext.jsonld>; rel="alternate"; type="application/ld+json"

The network tests are marked `network`; the rest fake the HTTP layer or serve
preloaded documents.
"""

import pytest

from ldproc import jsonld
from ldproc.documentloader import CachingDocumentLoader
from ldproc.documentloader.requests import apply_link_headers, validate_url
from ldproc.errors import LoadingDocumentFailed
from ldproc.util import LINK_HEADER_REL


@pytest.mark.network
def test_activitystreams_context_loads_as_json():
    """
    The ActivityStreams context URL should return JSON-LD, not the HTML page.

    This test requires network access and may be slow or flaky.
    """
    options = {'documentLoader': jsonld.requests_document_loader()}

    result = jsonld.load_document('https://www.w3.org/ns/activitystreams', options)

    # Should be JSON-LD context, not the HTML page
    assert isinstance(result['document'], dict)
    assert '@context' in result['document']


# Minimal JSON-LD document that uses https://schema.org as context.
# schema.org serves text/html with Link rel="alternate" to the JSON-LD context.
_DOC_CONTEXT_VIA_LINK_ALTERNATE = {
    "@context": "https://schema.org",
    "@type": "Person",
    "name": "Jane Doe",
    "jobTitle": "Professor",
    "telephone": "(425) 123-4567",
    "url": "http://www.janedoe.com",
}


def _expand_with_loader(loader):
    """Expand _DOC_CONTEXT_VIA_LINK_ALTERNATE with the given loader."""
    return jsonld.expand(
        _DOC_CONTEXT_VIA_LINK_ALTERNATE,
        options={"documentLoader": loader},
    )


def _assert_expanded_link_alternate_result(result):
    """Verify expansion produced the expected structure (context loaded via Link rel=alternate)."""
    assert isinstance(result, list)
    assert len(result) == 1
    item = result[0]
    assert "http://schema.org/name" in item
    assert item["http://schema.org/name"] == [{"@value": "Jane Doe"}]
    assert "@type" in item
    assert "http://schema.org/Person" in item["@type"]


_LOADERS = {
    "requests": jsonld.requests_document_loader,
    "aiohttp": jsonld.aiohttp_document_loader,
}


@pytest.fixture(params=["requests", "aiohttp"])
def document_loader(request):
    """Parametrizing fixture: yields requests and aiohttp document loaders."""
    return _LOADERS[request.param]()


@pytest.mark.network
def test_remote_context_via_link_alternate(document_loader):
    """
    When context URL returns non-JSON-LD (e.g. text/html) with Link rel=alternate
    type=application/ld+json, the loader follows that link to load the context.
    """
    result = _expand_with_loader(document_loader)
    _assert_expanded_link_alternate_result(result)


class FakeResponse(object):
    def __init__(self, url, body, content_type='application/ld+json',
                 link=None, status=200):
        self.url = url
        self.body = body
        self.status = status
        self.headers = {'content-type': content_type}
        if link:
            self.headers['link'] = link

    def json(self):
        if not isinstance(self.body, (dict, list)):
            raise ValueError('not JSON')
        return self.body

    def raise_for_status(self):
        if self.status >= 400:
            raise IOError('HTTP %d' % self.status)


@pytest.fixture
def fake_http(monkeypatch):
    """Serves FakeResponses by URL through requests.get."""
    import requests

    class FakeHttp(dict):
        pass

    http = FakeHttp()
    http.requested = []

    def get(url, headers=None, **kwargs):
        http.requested.append((url, headers))
        return http[url]

    monkeypatch.setattr(requests, 'get', get)
    return http


class TestRequestsLoader:
    def test_json_ld_document(self, fake_http):
        fake_http['https://example.org/doc'] = FakeResponse(
            'https://example.org/doc', {'@id': 'x'},
            content_type='application/ld+json; profile="x"')
        doc = jsonld.requests_document_loader()('https://example.org/doc')
        assert doc == {
            'contentType': 'application/ld+json',
            'contextUrl': None,
            'documentUrl': 'https://example.org/doc',
            'document': {'@id': 'x'}
        }

    def test_accept_header(self, fake_http):
        fake_http['https://example.org/doc'] = FakeResponse(
            'https://example.org/doc', {})
        jsonld.requests_document_loader()('https://example.org/doc')
        assert fake_http.requested == [('https://example.org/doc', {
            'Accept': 'application/ld+json, application/json'})]

    def test_context_link_header(self, fake_http):
        fake_http['https://example.org/doc'] = FakeResponse(
            'https://example.org/doc', {'name': 'x'},
            content_type='application/json',
            link='<https://example.org/ctx>; rel="%s"' % LINK_HEADER_REL)
        doc = jsonld.requests_document_loader()('https://example.org/doc')
        assert doc['contextUrl'] == 'https://example.org/ctx'

    def test_follows_alternate_link(self, fake_http):
        fake_http['https://example.org/'] = FakeResponse(
            'https://example.org/', '<html/>', content_type='text/html',
            link='</ctx.jsonld>; rel="alternate"; '
                 'type="application/ld+json"')
        fake_http['https://example.org/ctx.jsonld'] = FakeResponse(
            'https://example.org/ctx.jsonld', {'@context': {}})
        doc = jsonld.requests_document_loader()('https://example.org/')
        assert doc['documentUrl'] == 'https://example.org/ctx.jsonld'
        assert doc['document'] == {'@context': {}}

    def test_alternate_link_limit(self, fake_http):
        fake_http['https://example.org/'] = FakeResponse(
            'https://example.org/', '<html/>', content_type='text/html',
            link='</>; rel="alternate"; type="application/ld+json"')
        loader = jsonld.requests_document_loader(max_link_follows=1)
        with pytest.raises(LoadingDocumentFailed):
            loader('https://example.org/')

    def test_http_error(self, fake_http):
        fake_http['https://example.org/missing'] = FakeResponse(
            'https://example.org/missing', None, status=404)
        with pytest.raises(LoadingDocumentFailed) as excinfo:
            jsonld.requests_document_loader()('https://example.org/missing')
        assert excinfo.value.code == 'loading document failed'
        assert excinfo.value.details == {'url': 'https://example.org/missing'}

    def test_secure_mode(self, fake_http):
        loader = jsonld.requests_document_loader(secure=True)
        with pytest.raises(LoadingDocumentFailed) as excinfo:
            loader('http://example.org/doc')
        assert excinfo.value.type == 'jsonld.InvalidUrl'


@pytest.mark.parametrize('url', [
    'ftp://example.org/doc',
    'example.org/doc',
])
def test_validate_url_rejects(url):
    with pytest.raises(LoadingDocumentFailed):
        validate_url(url, False)


def test_validate_url_accepts():
    validate_url('https://example.org:8443/doc', True)


class TestLinkHeaders:
    def test_parse_single(self):
        links = jsonld.parse_link_header(
            '<https://example.org/ctx>; rel="%s"; type="application/ld+json"'
            % LINK_HEADER_REL)
        assert links == {LINK_HEADER_REL: {
            'target': 'https://example.org/ctx',
            'rel': LINK_HEADER_REL,
            'type': 'application/ld+json'
        }}

    def test_parse_repeated_rel(self):
        links = jsonld.parse_link_header(
            '<a>; rel="alternate", <b>; rel="alternate", <c>; rel=next')
        assert [link['target'] for link in links['alternate']] == ['a', 'b']
        assert links['next']['target'] == 'c'

    def test_parse_quoted_comma(self):
        links = jsonld.parse_link_header('<a,b>; rel="x"; title="1,2"')
        assert links['x'] == {'target': 'a,b', 'rel': 'x', 'title': '1,2'}

    def test_multiple_context_links(self):
        doc = {'contentType': 'application/json', 'contextUrl': None}
        header = '<a>; rel="%s", <b>; rel="%s"' % (
            LINK_HEADER_REL, LINK_HEADER_REL)
        with pytest.raises(LoadingDocumentFailed) as excinfo:
            apply_link_headers(doc, 'https://example.org/', header)
        assert excinfo.value.code == 'multiple context link headers'

    def test_context_link_ignored_for_json_ld(self):
        doc = {'contentType': 'application/ld+json', 'contextUrl': None}
        header = '<a>; rel="%s"' % LINK_HEADER_REL
        assert apply_link_headers(doc, 'https://example.org/', header) is None
        assert doc['contextUrl'] is None

    def test_alternate_ignored_for_json(self):
        doc = {'contentType': 'application/json', 'contextUrl': None}
        header = '<a>; rel="alternate"; type="application/ld+json"'
        assert apply_link_headers(doc, 'https://example.org/', header) is None


class TestCachingDocumentLoader:
    def test_preloaded_document(self, offline_loader):
        offline_loader.add_document('https://example.org/ctx', '{"@context": {}}')
        assert 'https://example.org/ctx' in offline_loader
        doc = offline_loader('https://example.org/ctx')
        assert doc['document'] == {'@context': {}}
        assert doc['documentUrl'] == 'https://example.org/ctx'

    def test_returns_copies(self, offline_loader):
        offline_loader.add_document('https://example.org/ctx', {'@context': {}})
        offline_loader('https://example.org/ctx')['document']['x'] = 1
        assert offline_loader('https://example.org/ctx')['document'] == {
            '@context': {}}

    def test_unknown_url_without_loader(self, offline_loader):
        with pytest.raises(LoadingDocumentFailed):
            offline_loader('https://example.org/unknown')

    def test_inner_loader_is_called_once(self):
        calls = []

        def inner(url, options):
            calls.append(url)
            return {'contentType': 'application/ld+json', 'contextUrl': None,
                    'documentUrl': url, 'document': {'@context': {}}}

        loader = CachingDocumentLoader(inner)
        loader('https://example.org/ctx')
        loader('https://example.org/ctx')
        assert calls == ['https://example.org/ctx']


class TestLoadDocument:
    def test_json_text_is_parsed(self):
        def loader(url, options):
            return {'document': '{"a": 1}'}

        doc = jsonld.load_document('https://example.org/', {
            'documentLoader': loader})
        assert doc == {'document': {'a': 1}, 'contextUrl': None,
                       'documentUrl': 'https://example.org/'}

    def test_missing_document(self):
        with pytest.raises(LoadingDocumentFailed):
            jsonld.load_document('https://example.org/', {
                'documentLoader': lambda url, options: {'document': None}})

    def test_loader_errors_are_wrapped(self):
        def loader(url, options):
            raise IOError('unreachable')

        with pytest.raises(LoadingDocumentFailed) as excinfo:
            jsonld.load_document('https://example.org/', {
                'documentLoader': loader})
        assert isinstance(excinfo.value.cause, IOError)
