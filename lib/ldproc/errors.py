"""
Exceptions raised by the JSON-LD processor.

Every error is a :class:`JsonLdError`. The error kinds callers commonly need
to tell apart get their own subclass, each bound to its standard error code,
so they can be caught directly::

    try:
        jsonld.expand(doc)
    except ListOfListsError:
        ...

.. module:: ldproc.errors
  :synopsis: JSON-LD error types
"""

import pprint
import traceback


class JsonLdError(Exception):
    """
    Base class for JSON-LD errors.
    """

    default_type = 'jsonld.Error'
    default_code = None

    def __init__(self, message, type_=None, details=None, code=None,
                 cause=None):
        Exception.__init__(self, message)
        self.type = type_ or self.default_type
        self.details = details
        self.code = code or self.default_code
        self.cause = cause
        self.causeTrace = traceback.extract_tb(cause.__traceback__) \
            if cause is not None else []

    def __str__(self):
        rval = str(self.args[0])
        rval += '\nType: ' + self.type
        if self.code:
            rval += '\nCode: ' + self.code
        if self.details:
            rval += '\nDetails: ' + pprint.pformat(self.details)
        if self.cause:
            rval += '\nCause: ' + str(self.cause)
            rval += ''.join(traceback.format_list(self.causeTrace))
        return rval


class LoadingDocumentFailed(JsonLdError):
    """
    A document or remote context could not be retrieved or parsed.
    """

    default_type = 'jsonld.LoadDocumentError'
    default_code = 'loading document failed'


class ContextCycleError(JsonLdError):
    """
    A remote context includes itself, directly or indirectly.
    """

    default_type = 'jsonld.ContextUrlError'
    default_code = 'recursive context inclusion'


class ProtectedTermRedefinition(JsonLdError):
    """
    A context tried to change the definition of a protected term.
    """

    default_type = 'jsonld.SyntaxError'
    default_code = 'protected term redefinition'


class InvalidValueObject(JsonLdError):
    """
    A value object has conflicting or unknown entries.
    """

    default_type = 'jsonld.SyntaxError'
    default_code = 'invalid value object'


class ListOfListsError(JsonLdError):
    """
    A list appears directly inside another list.
    """

    default_type = 'jsonld.SyntaxError'
    default_code = 'list of lists'


class CyclicIRIMappingError(JsonLdError):
    """
    A term definition depends on itself.
    """

    default_type = 'jsonld.CyclicalContext'
    default_code = 'cyclic IRI mapping'


class CanonicalizationComplexityExceeded(JsonLdError):
    """
    Blank node labeling needed more work than the configured limit allows.
    """

    default_type = 'jsonld.NormalizeError'
    default_code = 'canonicalization complexity exceeded'


class InvalidNumberFormat(JsonLdError, ValueError):
    """
    A number has no canonical text form (NaN or an infinity).
    """

    default_type = 'jsonld.SyntaxError'
    default_code = 'invalid number format'
