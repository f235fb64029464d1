"""
Argloom ranges: the "how many" contract of arguments.

A Range expresses either the arity of an argument (how many value tokens one
occurrence consumes) or the index span of a positional parameter (which
positional slots it claims).

Grammar (surrounding whitespace ignored)
- "N"      → exactly N          (min = max = N)
- "N..M"   → between N and M    (N <= M)
- "N..*"   → N or more          (variable)
- "*"      → any number         (0..*, variable)

Anything else raises FormatError: ranges are declared by developers, so a typo
is reported at model-build time rather than silently reinterpreted.

Notes
- Variable ranges store max as UNBOUNDED (sys.maxsize) so arithmetic on
  range arithmetic stays integral.
- unspecified marks a range that was derived from the argument type rather than
  declared; the interpreter relaxes derived arities for attached values
  ("--verbose=true" on a boolean).
- Equality ignores unspecified; ordering is by min, then max.
"""
import builtins
import functools
import re
import sys
from typing import final

from .faults import FormatError
from .utils import Unset

UNBOUNDED = sys.maxsize


@final
@functools.total_ordering
class Range:
    """
    Immutable min..max range.

    Parameters
    - min: int (>= 0)
    - max: int | Unset
      Defaults to min. Ignored (set to UNBOUNDED) when variable is True.
    - variable: bool
      True for open-ended ranges ("N..*").
    - unspecified: bool
      True when the range was derived from a type default.

    Raises
    - FormatError: negative bounds, or min greater than max.
    """
    __slots__ = ("_min", "_max", "_variable", "_unspecified")

    def __init__(self, min, max=Unset, /, *, variable=False, unspecified=False):
        if max is Unset:
            max = UNBOUNDED if variable else min
        if variable:
            max = UNBOUNDED
        if not isinstance(min, int) or not isinstance(max, int) or isinstance(min, bool) or isinstance(max, bool):
            raise TypeError("range bounds must be integers")
        if min < 0 or max < 0:
            raise FormatError(f"invalid negative range (min={min}, max={max})")
        if min > max:
            raise FormatError(f"invalid range (min={min}, max={max})")
        self._min = min
        self._max = max
        self._variable = bool(variable)
        self._unspecified = bool(unspecified)

    @classmethod
    def parse(cls, text, /):
        """
        Parse range text ("2", "0..1", "1..*", "*").

        Raises
        - TypeError: text is not a string.
        - FormatError: text does not follow the grammar.
        """
        if not isinstance(text, str):
            raise TypeError("range text must be a string")

        match = re.fullmatch(r"\s*(?:(?P<star>\*)|(?P<min>\d+)(?:\.\.(?P<max>\d+|\*))?)\s*", text)
        if not match:
            raise FormatError(
                f"malformed range {text!r}",
                hint="use 'N', 'N..M', 'N..*' or '*' (for example: '0..1' or '1..*')",
                value=text,
            )

        if match["star"]:
            return cls(0, variable=True)

        min = int(match["min"])
        if match["max"] is None:
            return cls(min)
        if match["max"] == "*":
            return cls(min, variable=True)
        return cls(min, int(match["max"]))

    @classmethod
    def of(cls, object, /):
        """
        Coerce a Range, an int (fixed range) or range text into a Range.
        """
        if isinstance(object, Range):
            return object
        if isinstance(object, int) and not isinstance(object, bool):
            return cls(object)
        if isinstance(object, str):
            return cls.parse(object)
        raise TypeError("range must be a Range, an integer or a string")

    @property
    def min(self):
        return self._min

    @property
    def max(self):
        return self._max

    @property
    def variable(self):
        return self._variable

    @property
    def unspecified(self):
        return self._unspecified

    @property
    def size(self):
        """Number of integers in the range (UNBOUNDED-based for variable ranges)."""
        return 1 + self._max - self._min

    def contains(self, value, /):
        return self._min <= value <= self._max

    def __contains__(self, value):
        return isinstance(value, int) and self.contains(value)

    def with_min(self, min, /):
        """Return a copy with the given min; max is raised to at least min."""
        return Range(min, self._max if self._variable else builtins.max(min, self._max),
                     variable=self._variable, unspecified=self._unspecified)

    def with_max(self, max, /):
        """Return a copy with the given (bounded) max; min is lowered to at most max."""
        return Range(builtins.min(self._min, max), max, unspecified=self._unspecified)

    def with_unspecified(self, unspecified, /):
        return Range(self._min, self._max, variable=self._variable, unspecified=unspecified)

    def __eq__(self, other):
        if not isinstance(other, Range):
            return NotImplemented
        return (self._min, self._max, self._variable) == (other._min, other._max, other._variable)

    def __lt__(self, other):
        if not isinstance(other, Range):
            return NotImplemented
        return (self._min, self._max) < (other._min, other._max)

    def __hash__(self):
        return hash((self._min, self._max, self._variable))

    def __str__(self):
        if self._min == self._max:
            return str(self._min)
        return f"{self._min}..{"*" if self._variable else self._max}"

    def __repr__(self):
        return f"range({str(self)!r})"

    def __rich_repr__(self):
        yield str(self)
        yield "unspecified", self._unspecified, False


__all__ = (
    "Range",
    "UNBOUNDED",
)
