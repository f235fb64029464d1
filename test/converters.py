"""
Converters module behavioral tests (built-in converters and registry layering).

Scope
- Validate the built-in converters and their failure messages.
- Validate Enum conversion (exact and case-insensitive).
- Validate registry layering: own registrations, inherited snapshot, built-ins.
- Validate wrapping of foreign converter exceptions into TypeConversionError.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import datetime
import decimal
import ipaddress
import pathlib
import unittest
from enum import Enum
from unittest import TestCase

from argloom import ConverterRegistry, BUILTINS, TypeConversionError, MissingConverterError, FaultCode, Unset


class Color(Enum):
    RED = 1
    GREEN = 2


class Point:
    def __init__(self, x, y):
        self.x, self.y = x, y


def parse_point(token):
    x, y = token.split(",")
    return Point(int(x), int(y))


class TestBuiltinConverters(TestCase):
    """Conversions available without any registration."""

    def setUp(self):
        self.registry = ConverterRegistry()

    def testString(self):
        self.assertEqual(self.registry.convert(str, "abc"), "abc")

    def testBoolean(self):
        self.assertIs(self.registry.convert(bool, "TRUE"), True)
        self.assertIs(self.registry.convert(bool, "false"), False)

    def testBooleanRejectsOtherWords(self):
        with self.assertRaises(TypeConversionError) as context:
            self.registry.convert(bool, "maybe")
        self.assertEqual(str(context.exception), "'maybe' is not a boolean")

    def testInteger(self):
        self.assertEqual(self.registry.convert(int, "12"), 12)
        self.assertEqual(self.registry.convert(int, "0x1F"), 31)
        self.assertEqual(self.registry.convert(int, "-3"), -3)

    def testIntegerRejectsText(self):
        with self.assertRaises(TypeConversionError) as context:
            self.registry.convert(int, "abc")
        self.assertEqual(context.exception.message, "'abc' is not an int")
        self.assertIs(context.exception.code, FaultCode.TYPE_CONVERSION)

    def testNumbers(self):
        self.assertEqual(self.registry.convert(float, "1e3"), 1000.0)
        self.assertEqual(self.registry.convert(decimal.Decimal, "1.5"), decimal.Decimal("1.5"))

    def testNumberRejectsText(self):
        with self.assertRaises(TypeConversionError):
            self.registry.convert(float, "one")

    def testDuration(self):
        self.assertEqual(self.registry.convert(datetime.timedelta, "90"), datetime.timedelta(seconds=90))

    def testLibraryTypes(self):
        self.assertEqual(self.registry.convert(pathlib.Path, "a/b"), pathlib.Path("a/b"))
        self.assertEqual(self.registry.convert(datetime.date, "2024-01-31"), datetime.date(2024, 1, 31))
        self.assertEqual(self.registry.convert(ipaddress.IPv4Address, "10.0.0.1"), ipaddress.IPv4Address("10.0.0.1"))
        self.assertEqual(self.registry.convert(bytes, "abc"), b"abc")

    def testForeignFailureIsWrapped(self):
        with self.assertRaises(TypeConversionError) as context:
            self.registry.convert(datetime.date, "nope")
        self.assertIsInstance(context.exception.__cause__, ValueError)
        self.assertTrue(context.exception.message.startswith("cannot convert 'nope' to date"))

    def testBuiltinsAreReadOnly(self):
        with self.assertRaises(TypeError):
            BUILTINS[Point] = parse_point


class TestEnumConversion(TestCase):
    """Generic Enum converter."""

    def setUp(self):
        self.registry = ConverterRegistry()

    def testExactName(self):
        self.assertIs(self.registry.convert(Color, "RED"), Color.RED)

    def testCaseSensitiveByDefault(self):
        with self.assertRaises(TypeConversionError) as context:
            self.registry.convert(Color, "red")
        self.assertEqual(context.exception.message, "expected one of [RED, GREEN] but was 'red'")

    def testCaseInsensitive(self):
        self.assertIs(self.registry.convert(Color, "green", case_insensitive=True), Color.GREEN)

    def testCaseInsensitiveFailureMentionsMode(self):
        with self.assertRaises(TypeConversionError) as context:
            self.registry.convert(Color, "blue", case_insensitive=True)
        self.assertIn("(case-insensitive)", context.exception.message)


class TestConverterRegistry(TestCase):
    """Registration and layering."""

    def testMissingConverter(self):
        with self.assertRaises(MissingConverterError) as context:
            ConverterRegistry().convert(Point, "1,2")
        self.assertIs(context.exception.code, FaultCode.MISSING_CONVERTER)
        self.assertIsNotNone(context.exception.hint)

    def testLookupReturnsUnsetWhenMissing(self):
        self.assertIs(ConverterRegistry().lookup(Point), Unset)

    def testRegisteredConverter(self):
        registry = ConverterRegistry()
        registry.register(Point, parse_point)
        point = registry.convert(Point, "1,2")
        self.assertEqual((point.x, point.y), (1, 2))

    def testOwnRegistrationOverridesBuiltin(self):
        registry = ConverterRegistry()
        registry.register(int, lambda token: len(token))
        self.assertEqual(registry.convert(int, "abc"), 3)

    def testInheritedSnapshot(self):
        parent, child = ConverterRegistry(), ConverterRegistry()
        parent.register(Point, parse_point)
        child.inherit(parent)
        self.assertIs(child.lookup(Point), parse_point)

        def red(token):
            return Color.RED

        parent.register(Color, red)
        self.assertIsNot(child.lookup(Color), red)

    def testOwnRegistrationOverridesInherited(self):
        parent, child = ConverterRegistry(), ConverterRegistry()
        parent.register(Point, parse_point)
        child.inherit(parent)

        def other(token):
            return Point(0, 0)

        child.register(Point, other)
        self.assertIs(child.lookup(Point), other)
        self.assertIs(parent.lookup(Point), parse_point)

    def testRegisteredView(self):
        registry = ConverterRegistry()
        registry.register(Point, parse_point)
        self.assertEqual(dict(registry.registered), {Point: parse_point})

    def testRegisterValidatesArguments(self):
        registry = ConverterRegistry()
        with self.assertRaises(TypeError):
            registry.register("Point", parse_point)
        with self.assertRaises(TypeError):
            registry.register(Point, "parse")

    def testConverterValueErrorIsWrapped(self):
        registry = ConverterRegistry()
        registry.register(Point, parse_point)
        with self.assertRaises(TypeConversionError) as context:
            registry.convert(Point, "1")
        self.assertIsInstance(context.exception.__cause__, ValueError)
        self.assertIn("to Point", context.exception.message)


if __name__ == "__main__":
    unittest.main()
