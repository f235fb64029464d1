"""
Argloom type conversion.

Scope
- ConverterRegistry: per-command registry of `str -> value` callables keyed by
  target type, layered as
    1. registrations made on this command,
    2. the snapshot taken from the parent command at registration time,
    3. the built-in converters below,
    4. a generic name-matching converter for Enum subclasses.
- Built-in converters for common scalar types (BUILTINS).

Contract
- A converter receives one raw string and returns the converted value.
- Converters signal bad input by raising TypeConversionError with a short reason
  ("'abc' is not an int"); any other exception is wrapped into a
  TypeConversionError chained to the original.
- A type with no converter at all raises MissingConverterError.
"""
import builtins
import codecs
import datetime
import decimal
import enum
import fractions
import ipaddress
import pathlib
import re
import uuid
import zoneinfo
from types import MappingProxyType
from typing import final

from .faults import MissingConverterError, TypeConversionError
from .utils import Unset, rename


def _typename(type, /):
    return getattr(type, "__name__", repr(type))


def _boolean(token):
    match token.lower():
        case "true":
            return True
        case "false":
            return False
    raise TypeConversionError(f"{token!r} is not a boolean")


def _integer(token):
    try:
        return int(token)
    except ValueError:
        pass
    try:
        # base prefixes: 0x.., 0o.., 0b..
        return int(token, 0)
    except ValueError:
        raise TypeConversionError(f"{token!r} is not an int") from None


def _number(type, /):
    @rename(_typename(type))
    def converter(token):
        try:
            return type(token)
        except (ValueError, ArithmeticError):
            raise TypeConversionError(f"{token!r} is not a {_typename(type)}") from None

    return converter


def _timedelta(token):
    try:
        return datetime.timedelta(seconds=float(token))
    except (ValueError, OverflowError):
        raise TypeConversionError(f"{token!r} is not a duration in seconds") from None


def _enumeration(type, token, case_insensitive=False, /):
    """
    Match an Enum member by name (optionally ignoring case).

    Failure message: expected one of [A, B] but was 'x'.
    """
    for name, member in type.__members__.items():
        if name == token or (case_insensitive and name.lower() == token.lower()):
            return member
    raise TypeConversionError("expected one of [%s]%s but was %r" % (
        ", ".join(type.__members__), " (case-insensitive)" if case_insensitive else "", token
    ))


BUILTINS = MappingProxyType({
    str: str,
    bool: _boolean,
    int: _integer,
    float: _number(float),
    complex: _number(complex),
    decimal.Decimal: _number(decimal.Decimal),
    fractions.Fraction: _number(fractions.Fraction),
    bytes: rename(lambda token: token.encode(), "bytes"),
    pathlib.Path: pathlib.Path,
    pathlib.PurePath: pathlib.PurePath,
    uuid.UUID: uuid.UUID,
    datetime.date: datetime.date.fromisoformat,
    datetime.time: datetime.time.fromisoformat,
    datetime.datetime: datetime.datetime.fromisoformat,
    datetime.timedelta: _timedelta,
    re.Pattern: re.compile,
    ipaddress.IPv4Address: ipaddress.IPv4Address,
    ipaddress.IPv6Address: ipaddress.IPv6Address,
    ipaddress.IPv4Network: ipaddress.IPv4Network,
    ipaddress.IPv6Network: ipaddress.IPv6Network,
    zoneinfo.ZoneInfo: zoneinfo.ZoneInfo,
    codecs.CodecInfo: codecs.lookup,
})
"""Built-in converters, consulted after every registry layer."""


@final
class ConverterRegistry:
    """
    Layered converter lookup for one command.

    Operations
    - register(type, converter): add or replace a converter on this registry only.
    - lookup(type, case_insensitive=False) -> converter | Unset
    - convert(type, token, case_insensitive=False) -> value
    - inherit(parent): replace the inherited layer with a snapshot of the
      parent's own and inherited registrations (later parent registrations are
      not seen).
    - registered: read-only view of the own and inherited layers merged.
    """
    __slots__ = ("_own", "_inherited")

    def __init__(self):
        self._own = {}
        self._inherited = MappingProxyType({})

    @property
    def registered(self):
        return MappingProxyType(dict(self._inherited) | self._own)

    def register(self, type, converter, /):
        if not isinstance(type, builtins.type):
            raise TypeError("register() first argument must be a type")
        if not callable(converter):
            raise TypeError("register() second argument must be callable")
        self._own[type] = converter

    def inherit(self, parent, /):
        if not isinstance(parent, ConverterRegistry):
            raise TypeError("inherit() argument must be a converter-registry")
        self._inherited = parent.registered

    def lookup(self, type, /, case_insensitive=False):
        """
        Resolve the converter for a type, or Unset when there is none.
        """
        for layer in (self._own, self._inherited, BUILTINS):
            try:
                return layer[type]
            except (KeyError, TypeError):
                continue

        if isinstance(type, builtins.type) and issubclass(type, enum.Enum):
            @rename(_typename(type))
            def converter(token):
                return _enumeration(type, token, case_insensitive)

            return converter
        return Unset

    def convert(self, type, token, /, case_insensitive=False):
        """
        Convert one raw token to the given type.

        Raises
        - MissingConverterError: nothing can convert to this type.
        - TypeConversionError: the converter rejected the token.
        """
        if (converter := self.lookup(type, case_insensitive)) is Unset:
            raise MissingConverterError(
                f"no converter registered for type {_typename(type)}",
                hint="register one with CommandSpec.register() or pass converters= to the argument",
            )
        return apply(converter, token, type)

    def __repr__(self):
        return "converter-registry(%s)" % ", ".join(map(_typename, self.registered))


def apply(converter, token, type=Unset, /):
    """
    Run one converter, normalizing its failures to TypeConversionError.
    """
    try:
        return converter(token)
    except TypeConversionError:
        raise
    except Exception as error:
        target = _typename(type) if type is not Unset else _typename(converter)
        raise TypeConversionError(f"cannot convert {token!r} to {target} ({error})") from error


__all__ = (
    "ConverterRegistry",
    "BUILTINS",
    "apply",
)
