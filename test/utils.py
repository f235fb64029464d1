"""
Utils module behavioral tests (sentinel, naming and wording helpers).

Scope
- Validate the Unset sentinel and coalesce().
- Validate rename() in both call forms and mirror() read-only views.
- Validate pluralize() wording.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from types import MappingProxyType
from unittest import TestCase

from argloom.utils import Unset, UnsetType, coalesce, rename, mirror, pluralize


class TestUnset(TestCase):
    """The not-provided sentinel."""

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)

    def testFalsyAndPrintable(self):
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")
        self.assertIsNot(Unset, None)

    def testUsableInUnions(self):
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance("x", str | Unset)
        self.assertNotIsInstance(3, str | Unset)

    def testNotSubclassable(self):
        with self.assertRaises(TypeError):
            type("Sub", (UnsetType,), {})

    def testCoalescePreservesFalseyValues(self):
        self.assertEqual(coalesce(Unset, ":"), ":")
        self.assertIsNone(coalesce(None, "#"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertIsNone(coalesce(Unset))


class TestNaming(TestCase):
    """rename() and mirror()."""

    def testRenameDirect(self):
        def f():
            pass
        rename(f, "g")
        self.assertEqual((f.__name__, f.__qualname__), ("g", "g"))

    def testRenameDecorator(self):
        @rename("converter")
        def f():
            pass
        self.assertEqual(f.__name__, "converter")

    def testRenameRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            rename(3, "x")

    def testRenameRejectsWrongArity(self):
        with self.assertRaises(TypeError):
            rename()

    def testMirrorFreezesContainers(self):
        class Holder:
            items = mirror("items")
            table = mirror("table")
            tags = mirror("tags")

            def __init__(self):
                self._items = [1, 2]
                self._table = {"a": 1}
                self._tags = {"x"}

        holder = Holder()
        self.assertEqual(holder.items, (1, 2))
        self.assertIsInstance(holder.table, MappingProxyType)
        self.assertEqual(holder.tags, frozenset({"x"}))
        with self.assertRaises(AttributeError):
            holder.items = ()


class TestWording(TestCase):
    """pluralize()."""

    def testPluralize(self):
        self.assertEqual(pluralize("option"), "options")
        self.assertEqual(pluralize("positional parameter"), "positional parameters")
        self.assertEqual(pluralize("Argument"), "Arguments")
        self.assertEqual(pluralize("entry"), "entries")
        self.assertEqual(pluralize("alias"), "aliases")
        self.assertEqual(pluralize("key"), "keys")


if __name__ == "__main__":
    unittest.main()
