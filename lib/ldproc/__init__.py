""" The ldproc module is used to process JSON-LD. """
from . import jsonld
from .errors import JsonLdError

__all__ = ['jsonld', 'JsonLdError']
