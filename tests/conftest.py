import pytest

from ldproc import jsonld
from ldproc.documentloader import CachingDocumentLoader


def pytest_addoption(parser):
    parser.addoption(
        '--loader',
        dest='loader',
        default='requests',
        help='The remote URL document loader: requests, aiohttp',
    )


def pytest_configure(config):
    # Register custom markers
    config.addinivalue_line(
        "markers", "network: marks tests as requiring network access (may be slow)"
    )

    loader = config.getoption('loader')
    if loader == 'aiohttp':
        jsonld.set_document_loader(jsonld.aiohttp_document_loader())


@pytest.fixture
def offline_loader():
    """A document loader that only serves documents added to it."""
    return CachingDocumentLoader()
