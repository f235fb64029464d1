r"""
Argloom argument specifications.

Overview
- Specs
  • ArgSpec[_T]: abstract base for everything that receives values from the
    command line. Carries the arity, the declared type, the default and the
    splitting/labelling metadata shared by both variants.
  • Option[_T]: named argument with one or more names (e.g., -o/--output/opt1).
  • Positional[_T]: unnamed argument bound to one or more positional slots
    through its index range.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes
    selected fields via read-only properties declared in __introspectable__
    (containers are returned as frozen copies).

Types
- `type` accepts plain classes and generic aliases:
  • scalar:    int, str, Path, MyEnum, ...
  • multiple:  list[int], tuple[str, ...], set[Path], Sequence[str], ...
  • mapping:   dict[str, int], Mapping[str, str], ...
- `auxiliary` holds the element type(s) the values are converted to:
  (type,) for scalars, (element,) for multiple, (key, value) for mappings.
  Bare containers default their elements to str.

Arity defaults (marked unspecified, so the interpreter can relax them)
- Option:     0 for boolean scalars, 1 otherwise.
- Positional: "0..1" for multi-valued, 1 otherwise.

Metadata (sanitized on construction)
- arity: Unset | Range | int | str (range text).
- required: Unset | bool (Option: False; Positional: arity.min > 0).
- default: Unset | Any; returned as a shallow copy.
- split: Unset | str regular expression (multi-valued only).
- label: Unset | str (Option: longest name without dashes, uppercased;
  Positional: "PARAM").
- converters: Iterable[Callable[[str], Any]] (overrides the registry; index 0
  for values or map keys, index 1 for map values).
- hide_param_syntax / hidden / descr: presentation only.

Validation highlights
- Option names must be non-empty, whitespace-free and unique within the spec.
- usage_help/version_help/help flags must be booleans (the owning command
  additionally requires usage/version help options to be boolean-typed).
- A split regex must compile and is only accepted for multi-valued types.

Quick example:
    >>> from argloom.arguments import Option, Positional
    >>> verbose = Option("-v", "--verbose", type=bool)
    >>> files = Positional("FILE", type=list[Path], arity="1..*")
"""
import builtins
import collections.abc
import copy
import functools
import operator
import re
import typing
from collections.abc import Iterable, Mapping, Sequence, Set

from rich.text import Text

from .faults import InitializationError
from .ranges import Range
from .utils import *

# abstract container origins are collected into these concrete types
_CONCRETE = {
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
}


class ArgumentType(type):
    """
    Metaclass that turns specs into introspectable, read-only descriptors.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and pretty printing.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages ("option", "positional", "arg-spec").
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
            **options,
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option(names=('-v', '--verbose'), arity=range('0'), ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield a sequence of (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _analyze(cls, type, /):
    """
    Internal: classify a declared type into (kind, container, auxiliary).

    - kind: "scalar", "multiple" or "mapping".
    - container: the concrete class values are collected into (None for scalars).
    - auxiliary: element type(s) used for conversion.

    Raises
    - TypeError: the type is not a class or a supported generic alias, or a
      tuple alias is heterogeneous (tuple[int, str]).
    """
    origin = typing.get_origin(type) or type
    parameters = typing.get_args(type)

    if not isinstance(origin, builtins.type):
        raise TypeError(f"{cls.__typename__} 'type' must be a class or a generic alias")

    container = _CONCRETE.get(origin, origin)

    if issubclass(origin, Mapping):
        if parameters and len(parameters) != 2:
            raise TypeError(f"{cls.__typename__} mapping 'type' must declare a key and a value type")
        return "mapping", container, tuple(parameters) or (str, str)

    if issubclass(origin, Sequence | Set) and not issubclass(origin, str | bytes | bytearray):
        if origin is tuple and len(parameters) == 2 and parameters[1] is Ellipsis:
            parameters = parameters[:1]
        elif origin is tuple and len(set(parameters)) > 1:
            raise TypeError(f"{cls.__typename__} tuple 'type' must be homogeneous (tuple[T, ...])")
        return "multiple", container, tuple(parameters[:1]) or (str,)

    if parameters:
        raise TypeError(f"{cls.__typename__} 'type' {type!r} is not supported")
    return "scalar", None, (type,)


def _unquote(value, /):
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def _split(pattern, text, limit, /):
    """
    Internal: regex split with a part limit.

    - limit > 0: at most limit parts, the last one holding the remainder.
    - limit == 0: no limit; trailing empty parts are dropped.
    - A pattern that does not match returns the text as its only part.
    """
    if not pattern.search(text) or limit == 1:
        return [text]
    parts = pattern.split(text, maxsplit=limit - 1 if limit > 0 else 0)
    if limit == 0:
        while parts and not parts[-1]:
            parts.pop()
    return parts


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by Option and Positional.

    Parameters
    - cls: the specification class providing a __typename__ attribute.
    - metadata: dict with the keys 'type', 'arity', 'required', 'split', 'label',
      'converters', 'descr' (mutated in place).

    Raises
    - TypeError: wrong types for any field.
    - ValueError: empty label/descr, or a split regex that does not compile.
    - InitializationError: split declared on a single-valued type.
    """
    metadata["kind"], metadata["container"], metadata["auxiliary"] = _analyze(cls, metadata["type"])

    if not isinstance(arity := metadata["arity"], Range | int | str | Unset) or isinstance(arity, bool):
        raise TypeError(f"{cls.__typename__} 'arity' must be a range, an integer or a string")
    metadata["arity"] = arity if arity is Unset else Range.of(arity)

    if not isinstance(metadata["required"], bool | Unset):
        raise TypeError(f"{cls.__typename__} 'required' must be a boolean")

    if not isinstance(split := metadata["split"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'split' must be a string")
    if isinstance(split, str):
        if not split:
            raise ValueError(f"{cls.__typename__} 'split' cannot be empty")
        if metadata["kind"] == "scalar":
            raise InitializationError(
                f"{cls.__typename__} 'split' requires a multi-valued type, got {metadata["type"]!r}"
            )
        try:
            split = re.compile(split)
        except re.error as error:
            raise ValueError(f"{cls.__typename__} 'split' is not a valid regular expression ({error})") from None
    metadata["split"] = coalesce(split)

    if not isinstance(label := metadata["label"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'label' must be a string")
    elif isinstance(label, str) and not (label := label.strip()):
        raise ValueError(f"{cls.__typename__} 'label' cannot be empty")
    metadata["label"] = label

    if not isinstance(converters := metadata["converters"], Iterable) or isinstance(converters, str):
        raise TypeError(f"{cls.__typename__} 'converters' must be an iterable of callables")
    if not all(map(callable, converters := tuple(converters))):
        raise TypeError(f"{cls.__typename__} 'converters' must be an iterable of callables")
    metadata["converters"] = converters

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate option names and help flags.

    Names are kept in declaration order. Any whitespace-free string is
    accepted ("-x", "--long", "/flag", "opt1"); the dash prefix is a
    convention, not a requirement.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not name:
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif any(char.isspace() for char in name):
            raise ValueError(f"{cls.__typename__} names cannot contain whitespace")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(names)

    for flag in ("usage_help", "version_help", "help"):
        if not isinstance(metadata[flag], bool):
            raise TypeError(f"{cls.__typename__} {flag!r} must be a boolean")


class ArgSpec[_T](metaclass=ArgumentType):
    """
    Abstract argument specification (common ground of Option and Positional).

    Instances are immutable once built; the fields listed in __introspectable__
    are read-only properties. Container fields are returned as frozen copies and
    the default value as a shallow copy, so the model cannot be changed through
    its public surface.

    Derived properties
    - multivalued: kind is "multiple" or "mapping".
    - boolean: scalar bool arguments (flags).
    - has_default: a default was declared.
    """

    __introspectable__ = (
        "arity",
        "auxiliary",
        "kind",
        "required",
        "split",
        "label",
        "converters",
        "hide_param_syntax",
        "hidden",
        "descr",
    )

    def __new__(cls, *unused, **metadata):
        if cls is ArgSpec:
            raise TypeError("type 'ArgSpec' is abstract; use Option or Positional")
        return super().__new__(cls)

    def _populate(self, metadata, /):
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def names(self):
        return ()

    @property
    def type(self):
        return self._type

    @property
    def default(self):
        return copy.copy(self._default)

    @property
    def has_default(self):
        return self._default is not Unset

    @property
    def multivalued(self):
        return self._kind != "scalar"

    @property
    def boolean(self):
        return self._kind == "scalar" and self._auxiliary[0] is bool

    def collect(self, values, /):
        """
        Build the final value of a multi-valued argument.

        - multiple: the declared container built from the converted elements.
        - mapping: the declared mapping built from converted (key, value) pairs.
        - scalar: the last value.
        """
        values = list(values)
        if self._kind == "scalar":
            return values[-1]
        return self._container(values)

    def split_value(self, value, parser, arity, consumed, tracer=None, /):
        """
        Turn one raw token into the list of value strings it stands for.

        Steps
        1. parser.trim_quotes: strip one pair of surrounding double quotes.
        2. no split regex: the value alone.
        3. split by the regex. Double-quoted sections are kept whole unless
           parser.split_quoted_strings; with trim_quotes their quotes are dropped.
           parser.limit_split caps the part count at what the arity still accepts
           (arity.max minus the values already consumed).

        Unbalanced quotes cannot be respected: a warning is traced and the
        value is split as plain text.
        """
        if parser.trim_quotes:
            value = _unquote(value)

        if self._split is None:
            return [value]

        limit = max(arity.max - consumed, 0) if parser.limit_split else 0
        if parser.split_quoted_strings or '"' not in value:
            return _split(self._split, value, limit)

        if value.count('"') % 2:
            if tracer is not None:
                tracer.warn("unbalanced quotes in %r for %s, splitting as plain text" % (value, self.describe()))
            return _split(self._split, value, limit)

        # quoted sections are stashed behind placeholders the regex cannot match
        quoted = []

        def stash(match):
            quoted.append(match.group(1) if parser.trim_quotes else match.group(0))
            return "\uf8ff%s\uf8ff" % chr(0xF0000 + len(quoted) - 1)

        def restore(part):
            return re.sub("\uf8ff(.)\uf8ff", lambda match: quoted[ord(match.group(1)) - 0xF0000], part)

        stashed = re.sub(r'"([^"]*)"', stash, value)
        return [restore(part) for part in _split(self._split, stashed, limit)]

    def synopsis(self, separator="=", /):
        raise NotImplementedError

    def describe(self, index=Unset, /):
        raise NotImplementedError


class Option[_T](ArgSpec[_T]):
    """
    Named argument specification.

    Highlights
    - One or more names in declaration order; the longest one is used in
      messages and to derive the default label ("--file" gives "FILE").
    - Boolean scalars default to arity 0 (flags); everything else to 1.
    - usage_help/version_help/help mark help options: matching one sets the
      corresponding flag on the parse result and disables required-argument
      validation for the whole parse.
    """

    __introspectable__ = (
        "names",
        "usage_help",
        "version_help",
        "help",
    )
    __displayable__ = (
        "names",
        "arity",
        "type",
        "required",
        "default",
        "label",
        "hidden",
    )

    def __new__(
            cls,
            *names,
            type=str,
            arity=Unset,
            required=Unset,
            default=Unset,
            split=Unset,
            label=Unset,
            converters=(),
            usage_help=False,
            version_help=False,
            help=False,
            hide_param_syntax=False,
            hidden=False,
            descr=Unset
    ):
        """
        Construct an Option spec.

        Parameters
        - names: one or more str (non-empty, whitespace-free, unique)
        - type: class or generic alias (see module docs)
        - arity: Unset | Range | int | str
          How many values one occurrence consumes. Derived from the type when
          Unset (0 for bool, 1 otherwise) and marked unspecified.
        - required: Unset | bool (defaults to False)
        - default: Any (Unset means no default)
        - split: Unset | str regex splitting one token into several values
        - label: Unset | str (defaults to the longest name, dashes stripped, uppercased)
        - converters: Iterable[Callable] overriding the registry
        - usage_help / version_help / help: bool
        - hide_param_syntax / hidden / descr: presentation only
        """
        self = super().__new__(cls)
        metadata = {
            "names": names,
            "type": type,
            "arity": arity,
            "required": required,
            "default": default,
            "split": split,
            "label": label,
            "converters": converters,
            "usage_help": usage_help,
            "version_help": version_help,
            "help": help,
            "hide_param_syntax": bool(hide_param_syntax),
            "hidden": bool(hidden),
            "descr": descr,
        }
        _sanitize_named_metadata(cls, metadata)
        _sanitize_metadata(cls, metadata)

        if metadata["arity"] is Unset:
            metadata["arity"] = Range(0 if metadata["kind"] == "scalar" and metadata["auxiliary"][0] is bool else 1,
                                      unspecified=True)
        metadata["required"] = coalesce(metadata["required"], False)
        metadata["label"] = coalesce(metadata["label"],
                                     max(metadata["names"], key=len).lstrip("-").upper() or "PARAM")

        self._populate(metadata)
        return self

    @property
    def longest_name(self):
        return max(self._names, key=len)

    def synopsis(self, separator="=", /):
        """
        Render the option the way it is typed: '--file=FILE', or '--verbose' for flags.
        """
        if self._arity.max == 0:
            return self.longest_name
        return f"{self.longest_name}{separator}{self._label}"

    def describe(self, index=Unset, /):
        return f"option {self.longest_name!r} ({self._label})"

    def __option__(self):
        return self


class Positional[_T](ArgSpec[_T]):
    """
    Positional parameter specification.

    Highlights
    - names is always empty; the label identifies the parameter in messages.
    - index selects the positional slots this parameter claims ("0", "1..2",
      "2..*"). When Unset, the owning command assigns the next free slot at
      registration ("N" for single-valued, "N..*" for multi-valued).
    - Multi-valued parameters default to arity "0..1" (one value per slot),
      everything else to 1. required defaults to arity.min > 0.
    """

    __introspectable__ = (
        "index",
    )
    __displayable__ = (
        "label",
        "index",
        "arity",
        "type",
        "required",
        "default",
        "hidden",
    )

    def __new__(
            cls,
            label=Unset,
            /,
            *,
            type=str,
            index=Unset,
            arity=Unset,
            required=Unset,
            default=Unset,
            split=Unset,
            converters=(),
            hide_param_syntax=False,
            hidden=False,
            descr=Unset
    ):
        """
        Construct a Positional spec.

        Parameters
        - label: Unset | str (defaults to "PARAM")
        - type: class or generic alias (see module docs)
        - index: Unset | Range | int | str
        - arity: Unset | Range | int | str (defaults: "0..1" multi-valued, 1 otherwise)
        - required: Unset | bool (defaults to arity.min > 0)
        - default, split, converters, hide_param_syntax, hidden, descr: as for Option
        """
        self = super().__new__(cls)
        metadata = {
            "type": type,
            "index": index,
            "arity": arity,
            "required": required,
            "default": default,
            "split": split,
            "label": label,
            "converters": converters,
            "hide_param_syntax": bool(hide_param_syntax),
            "hidden": bool(hidden),
            "descr": descr,
        }
        _sanitize_metadata(cls, metadata)

        if not isinstance(index, Range | int | str | Unset) or isinstance(index, bool):
            raise TypeError(f"{cls.__typename__} 'index' must be a range, an integer or a string")
        metadata["index"] = index if index is Unset else Range.of(index)

        if metadata["arity"] is Unset:
            metadata["arity"] = Range(0, 1, unspecified=True) if metadata["kind"] != "scalar" else \
                Range(1, unspecified=True)
        metadata["required"] = coalesce(metadata["required"], metadata["arity"].min > 0)
        metadata["label"] = coalesce(metadata["label"], "PARAM")

        self._populate(metadata)
        return self

    def _bind_index(self, index, /):
        """
        Internal: assign the automatic index chosen by the owning command.

        A positional may be shared by several commands only when each of them
        would assign it the same slots.
        """
        if self._index is Unset:
            self._index = index
        elif self._index != index:
            raise InitializationError(
                f"{type(self).__typename__} {self._label!r} already claims index {self._index}, not {index}"
            )

    def synopsis(self, separator="=", /):
        return self._label

    def describe(self, index=Unset, /):
        return f"positional parameter at index {coalesce(index, self._index)} ({self._label})"

    def __positional__(self):
        return self


del ArgumentType


__all__ = (
    # Classes
    "ArgSpec",
    "Option",
    "Positional",
)
