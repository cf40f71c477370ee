import unittest
from typing import Any

import ldproc.jsonld as jsonld


def raise_this(value: Any):
    raise ValueError(value)


class TestOnKeyDropped(unittest.TestCase):
    """
    Tests for the on_key_dropped option of the expansion algorithm.
    """

    CTX = {"foo": {"@id": "http://example.com/foo"}}
    DATA = {"fooo": "bar"}
    RESULT = []

    def expand(self, data, on_key_dropped=None):
        options = {'expandContext': self.CTX}
        if on_key_dropped is not None:
            options['on_key_dropped'] = on_key_dropped
        return jsonld.expand(data, options)

    def test_silently_ignored(self):
        self.assertEqual(self.expand(self.DATA), self.RESULT)

    def test_strict_fails(self):
        with self.assertRaises(ValueError):
            self.expand(self.DATA, raise_this)

    def test_dropped_keys(self):
        dropped_keys = set()
        got = self.expand(self.DATA, dropped_keys.add)
        self.assertEqual(got, self.RESULT)
        self.assertSetEqual(dropped_keys, {"fooo"})

    DATA2 = {
        "@id": "foo", "foo": "bar", "fooo": "baz",
        "http://example.com/other": "blah"}
    RESULT2 = [{
        "@id": "foo",
        "http://example.com/foo": [{"@value": "bar"}],
        "http://example.com/other": [{"@value": "blah"}],
    }]

    def test_silently_ignored_2(self):
        self.assertEqual(self.expand(self.DATA2), self.RESULT2)

    def test_strict_fails_2(self):
        with self.assertRaises(ValueError):
            self.expand(self.DATA2, raise_this)

    def test_dropped_keys_2(self):
        dropped_keys = set()
        got = self.expand(self.DATA2, dropped_keys.add)
        self.assertEqual(got, self.RESULT2)
        self.assertSetEqual(dropped_keys, {"fooo"})

    def test_unknown_keyword_is_reported(self):
        dropped_keys = []
        self.expand({"@foo": 1, "foo": "bar"}, dropped_keys.append)
        self.assertEqual(dropped_keys, ["@foo"])


if __name__ == "__main__":
    unittest.main()
