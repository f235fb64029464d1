"""
Argloom utilities (small helpers shared by the model, the interpreter and the faults).

Scope
- Sentinels and value resolution used by every spec constructor.
- Naming helpers for generated callables.
- Read-only accessors that keep the declarative model immutable once built.
- Wording helpers for user-facing messages.

Overview
- UnsetType / Unset
  • Singleton sentinel for “not provided”, distinct from None (None is a legitimate
    default for options and for the comment char of argument files).
- coalesce(value, default=None)
  • Materialize Unset into a default while preserving falsey values.
- rename(callable, name) / @rename("name")
  • Stable __name__/__qualname__ for generated converters and accessors.
- mirror("attr")
  • Read-only property over self._attr returning frozen views of containers
    (tuple / frozenset / MappingProxyType), so specs cannot be mutated through
    their public surface.
- pluralize(text)
  • Minimal English pluralization for aggregated messages ("options", "parameters").
"""
import builtins
import functools
import re
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Sentinel type representing a value that was not provided.

    Characteristics
    - Boolean-false, printable as "Unset", never equal to None.
    - Singleton: UnsetType() always returns the same instance.
    - Usable in PEP 604 unions (str | Unset) for isinstance checks.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    None, 0, "" and empty containers are preserved; only Unset is replaced.

    Examples
    - coalesce("=", ":")   -> "="
    - coalesce(Unset, ":") -> ":"
    - coalesce(None, "#")  -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or build a decorator that does so.

    Forms
    - rename(callable, name) -> callable (renamed in place)
    - rename(name) -> decorator

    Raises
    - TypeError: non-callable target, non-string name, wrong arity, or a callable
      whose name attributes cannot be updated (e.g., built-ins).
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Return a read-only view of a container (shallow).

    - Mapping → MappingProxyType over a copy (keys and values kept as-is).
    - Set → frozenset.
    - Sequence (non-string) → tuple.
    - Anything else → returned unchanged.

    Elements are not frozen recursively: specs, commands and converters stored
    inside model containers are immutable on their own.
    """
    if isinstance(object, Mapping):
        return MappingProxyType(dict(object))
    elif isinstance(object, Set):
        return frozenset(object)
    elif isinstance(object, Sequence) and not isinstance(object, str | bytes):
        return tuple(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private field self._{name}.

    Containers are returned as frozen views (see _freeze), scalars as-is.

    Example
        class Spec:
            names = mirror("names")   # reads self._names
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def pluralize(text, /):
    """
    Pluralize the last word of text (best effort, English).

    Only the rules needed by message wording are covered: s/sh/ch/x/z take
    "es", consonant + y takes "ies", everything else takes "s". Casing of the
    first letter is preserved.

    Examples
    - pluralize("option")               -> "options"
    - pluralize("positional parameter") -> "positional parameters"
    - pluralize("Argument")             -> "Arguments"
    """
    if not isinstance(text, str):
        raise TypeError("pluralize() argument must be a string")

    match = re.search(r"(\S+)(\s*)$", text)
    if not match:
        return text

    head, last, trail = text[:match.start(1)], match.group(1), match.group(2)
    lower = last.lower()

    if lower.endswith(("s", "sh", "ch", "x", "z")):
        plural = lower + "es"
    elif lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        plural = lower[:-1] + "ies"
    else:
        plural = lower + "s"

    if last.isupper():
        plural = plural.upper()
    elif last[:1].isupper():
        plural = plural[:1].upper() + plural[1:]

    return head + plural + trail


Unset = UnsetType()
"""
Sentinel for “not provided”.

Used for every optional spec field where None is a meaningful user value
(e.g., at_file_comment_char=None disables comments in argument files).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "pluralize",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
