"""
Argloom parser settings.

ParserSpec is the configuration bag of one command level. It is an immutable
value: every change produces a new instance, so a subcommand that took a
snapshot of its parent's settings at registration time never observes later
changes made to the parent.

Each setting is either explicit (given by the developer) or Unset. Reading a
setting returns the explicit value, or the package default when Unset.
inherit(parent) fills the Unset settings from the parent's current values,
which is how settings flow down a command tree.

Settings
- posix_clustered_short_options_allowed (True)
    "-vxf" may stand for "-v -x -f".
- overwritten_options_allowed (False)
    A single-valued option given twice keeps the last value instead of failing.
- unmatched_arguments_allowed (False)
    Leftover tokens are kept in the result instead of failing the parse.
- unmatched_options_are_positional_params (False)
    A token that looks like an unknown option is treated as a positional value.
- stop_at_unmatched (False)
    The first unmatched token and everything after it become unmatched.
    Implies unmatched_arguments_allowed.
- stop_at_positional (False)
    The first positional value switches the level into end-of-options mode.
- case_insensitive_enum_values_allowed (False)
- trim_quotes (False)
    One pair of surrounding double quotes is stripped from values.
- split_quoted_strings (False)
    Split regexes also apply inside double-quoted sections.
- end_of_options_delimiter ("--")
- separator ("=")
- expand_at_files (True)
- at_file_comment_char ("#"; None disables comments in argument files)
- toggle_boolean_flags (True)
    A boolean flag without a value flips its current value instead of setting True.
- limit_split (False)
    Splitting a value never yields more parts than the arity still accepts.
- arity_satisfied_by_attached_option_param (False)
    "-f=x" satisfies an option of arity "2" on its own.
"""
from types import MappingProxyType
from typing import final

from .utils import Unset, coalesce

DEFAULTS = MappingProxyType({
    "posix_clustered_short_options_allowed": True,
    "overwritten_options_allowed": False,
    "unmatched_arguments_allowed": False,
    "unmatched_options_are_positional_params": False,
    "stop_at_unmatched": False,
    "stop_at_positional": False,
    "case_insensitive_enum_values_allowed": False,
    "trim_quotes": False,
    "split_quoted_strings": False,
    "end_of_options_delimiter": "--",
    "separator": "=",
    "expand_at_files": True,
    "at_file_comment_char": "#",
    "toggle_boolean_flags": True,
    "limit_split": False,
    "arity_satisfied_by_attached_option_param": False,
})


def _sanitize_settings(settings, /):
    """
    Internal: validate explicit settings in place (Unset values are left alone).

    Raises
    - TypeError: unknown setting, or a value of the wrong type.
    - ValueError: empty or whitespace-bearing delimiter/separator, or a comment
      char that is not a single character.
    """
    for name, value in settings.items():
        if name not in DEFAULTS:
            raise TypeError(f"parser-spec got an unexpected setting {name!r}")
        if value is Unset:
            continue

        match name:
            case "end_of_options_delimiter" | "separator":
                if not isinstance(value, str):
                    raise TypeError(f"parser-spec {name!r} must be a string")
                if not value or any(char.isspace() for char in value):
                    raise ValueError(f"parser-spec {name!r} must be a non-empty string without whitespace")
            case "at_file_comment_char":
                if value is not None and not isinstance(value, str):
                    raise TypeError(f"parser-spec {name!r} must be a string or None")
                if isinstance(value, str) and len(value) != 1:
                    raise ValueError(f"parser-spec {name!r} must be a single character")
            case _:
                if not isinstance(value, bool):
                    raise TypeError(f"parser-spec {name!r} must be a boolean")


def _setting(name, /):
    def getter(self):
        value = coalesce(self._settings[name], DEFAULTS[name])
        # stop_at_unmatched keeps leftovers, so it implies allowing them
        if name == "unmatched_arguments_allowed" and not value:
            return self.stop_at_unmatched
        return value

    getter.__name__ = getter.__qualname__ = name
    return property(getter)


@final
class ParserSpec:
    """
    Immutable parser configuration of one command level.

    Parameters
    - **settings: any setting named in DEFAULTS; omitted settings stay Unset.

    Operations
    - replace(**settings) -> ParserSpec: a copy with the given settings made explicit
      (passing Unset clears a setting back to inherited).
    - inherit(parent) -> ParserSpec: a copy whose Unset settings take the parent's
      current values (settings the parent leaves Unset stay Unset).
    - explicit(name) -> bool: whether the setting was given explicitly.
    - as_dict() -> dict: resolved values of every setting.
    """
    __slots__ = ("_settings",)

    def __init__(self, **settings):
        _sanitize_settings(settings)
        self._settings = MappingProxyType(dict.fromkeys(DEFAULTS, Unset) | settings)

    def replace(self, **settings):
        return ParserSpec(**(dict(self._settings) | settings))

    def inherit(self, parent, /):
        if not isinstance(parent, ParserSpec):
            raise TypeError("inherit() argument must be a parser-spec")
        return ParserSpec(**{
            name: parent._settings[name] if value is Unset else value
            for name, value in self._settings.items()
        })

    def explicit(self, name, /):
        try:
            return self._settings[name] is not Unset
        except KeyError:
            raise TypeError(f"parser-spec has no setting {name!r}") from None

    def as_dict(self):
        return {name: getattr(self, name) for name in DEFAULTS}

    def __eq__(self, other):
        if not isinstance(other, ParserSpec):
            return NotImplemented
        return self._settings == other._settings

    def __hash__(self):
        return hash(tuple(self._settings.items()))

    def __repr__(self):
        return "parser-spec(%s)" % ", ".join(
            "%s=%r" % (name, value) for name, value in self._settings.items() if value is not Unset
        )

    def __rich_repr__(self):
        for name, value in self._settings.items():
            if value is not Unset:
                yield name, value


for _name in DEFAULTS:
    setattr(ParserSpec, _name, _setting(_name))

del _name, _setting


__all__ = (
    "ParserSpec",
    "DEFAULTS",
)
