"""
Canonical text forms for numbers and JSON values.

:func:`format_number` renders an IEEE-754 double the way ECMAScript's
``Number.prototype.toString`` does: the shortest digit string that reads back
as the same double, in fixed notation for magnitudes in ``[1e-6, 1e21)`` and
exponential notation otherwise. :func:`canonical_json` builds on it to
serialize a JSON tree per the JSON Canonicalization Scheme (RFC 8785).

.. module:: ldproc.numfmt
  :synopsis: canonical number and JSON serialization
"""

import json
import math
from numbers import Integral, Real

from ldproc.errors import InvalidNumberFormat

__all__ = ['format_number', 'canonical_json']


def _shortest_digits(value):
    """
    Splits a positive finite double into its shortest round-tripping digits.

    :param value: a positive, finite float.

    :return: (digits, n) such that value == 0.<digits> * 10**n, where digits
      has no leading or trailing zeros.
    """
    mantissa, _, exponent = repr(value).partition('e')
    exponent = int(exponent) if exponent else 0
    whole, _, fraction = mantissa.partition('.')
    combined = whole + fraction
    stripped = combined.lstrip('0')
    n = len(whole) + exponent - (len(combined) - len(stripped))
    return stripped.rstrip('0'), n


def format_number(value):
    """
    Formats a number as canonical text.

    :param value: the number (int or float, not bool).

    :return: the canonical text.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidNumberFormat(
            'Only numbers have a canonical number format.',
            details={'value': value})
    try:
        value = float(value)
    except OverflowError as cause:
        raise InvalidNumberFormat(
            'Integer is too large to be represented as a double.',
            details={'value': value}, cause=cause)
    if math.isnan(value) or math.isinf(value):
        raise InvalidNumberFormat(
            'NaN and Infinity have no canonical number format.',
            details={'value': value})

    # covers -0.0
    if value == 0:
        return '0'

    sign = '-' if value < 0 else ''
    digits, n = _shortest_digits(abs(value))
    k = len(digits)

    if k <= n <= 21:
        return sign + digits + '0' * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + '.' + digits[n:]
    if -6 < n <= 0:
        return sign + '0.' + '0' * -n + digits

    exponent = n - 1
    exponent = ('+' if exponent >= 0 else '-') + str(abs(exponent))
    if k == 1:
        return sign + digits + 'e' + exponent
    return sign + digits[0] + '.' + digits[1:] + 'e' + exponent


def canonical_json(value):
    """
    Serializes a JSON value using the JSON Canonicalization Scheme.

    :param value: the JSON value (dict, list, str, number, bool or None).

    :return: the canonical JSON text.
    """
    if value is None:
        return 'null'
    if value is True:
        return 'true'
    if value is False:
        return 'false'
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (Integral, Real)):
        return format_number(value)
    if isinstance(value, dict):
        # keys sort by their UTF-16 code units
        entries = sorted(
            value.items(), key=lambda kv: kv[0].encode('utf-16-be'))
        return '{' + ','.join(
            json.dumps(k, ensure_ascii=False) + ':' + canonical_json(v)
            for k, v in entries) + '}'
    if isinstance(value, (list, tuple)):
        return '[' + ','.join(canonical_json(v) for v in value) + ']'
    raise TypeError('Value is not JSON serializable: %r' % (value,))
