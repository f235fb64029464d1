"""
Argloom faults (errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every problem the package reports,
  grouped by phase (model initialization vs. argument parsing).
- CommandException: the single root of the hierarchy. Carries a message and a
  read-only options mapping (code, title, hint, command, argument, value, ...)
  and knows how to render itself with rich.
- InitializationError and its subclasses: the command model is inconsistent
  (malformed range text, duplicate names, positional index gaps, ...). Raised
  while the model is being built, or when an argument file cannot be read.
- ParameterError and its subclasses: the user's tokens do not fit the model.
  Raised by the interpreter, always carrying the deepest command that was being
  processed.
- trigger(): raise a fault, or print it and exit in shell mode.
- getdoc(): optional per-code documentation supplied by the host application.

Hierarchy
    CommandException
    ├── InitializationError
    │   ├── FormatError
    │   ├── DuplicateOptionError
    │   ├── DuplicateCommandError
    │   └── ParameterIndexGapError
    └── ParameterError
        ├── MissingParameterError
        ├── OverwrittenOptionError
        ├── UnmatchedArgumentError
        ├── TypeConversionError
        ├── MissingConverterError
        └── MaxValuesExceededError

UX
- Lowercased, one-sentence messages naming the argument the way users typed it
  ("option '--file' (FILE) should be specified only once").
- A single actionable hint ("did you mean '--verbose'? ...").
- Styling, program name and code labels can be overridden by the host through
  __styles__, __prog__ and __codes__ in __main__.
"""
import difflib
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce, pluralize

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - initialization (101xx): the command model itself is wrong, or an argument
      file could not be read before parsing started.
    - parsing (111xx): the tokens do not fit the model.

    normalize() lets the host remap codes to custom labels through a __codes__
    mapping in __main__.
    """
    # --- initialization errors (101xx) ---
    INITIALIZATION_ERROR        = 10100
    MALFORMED_RANGE             = 10101
    DUPLICATE_OPTION            = 10102
    DUPLICATE_COMMAND           = 10103
    PARAMETER_INDEX_GAP         = 10104
    INVALID_HELP_OPTION         = 10105
    UNREADABLE_ARGUMENT_FILE    = 10106

    # --- parsing errors (111xx) ---
    PARAMETER_ERROR             = 11100
    MISSING_PARAMETER           = 11101
    OVERWRITTEN_OPTION          = 11102
    UNKNOWN_OPTION              = 11103
    UNMATCHED_ARGUMENT          = 11104
    TYPE_CONVERSION             = 11105
    MISSING_CONVERTER           = 11106
    MAX_VALUES_EXCEEDED         = 11107
    INVALID_KEY_VALUE           = 11108

    def normalize(self):
        """
        return a host-normalized string for this code (see __codes__ in __main__).
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Root of every fault raised by argloom.

    Parameters
    - message: str | Unset
      One lowercased sentence describing the problem.
    - **options:
      Context shown by renderers and inspected by callers. Recognized keys:
      code (FaultCode), title (str), hint (str), command (CommandSpec),
      argument (ArgSpec), value (str), plus rendering switches colorful/fancy/ratio.
      Subclasses provide defaults for code and title.

    Notes
    - options is exposed as a read-only mapping.
    - replace(**overrides) returns a copy with merged options; it is also
      available as __replace__ for copy.replace().
    """
    __fault__ = FaultCode.INITIALIZATION_ERROR
    __title__ = "command error"

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(coalesce(message, ""))
        self.message = coalesce(message, "")
        self.options = MappingProxyType({
            "code": type(self).__fault__,
            "title": type(self).__title__,
            "hint": None,
        } | options)

    def __str__(self):
        return self.message

    @property
    def code(self):
        return self.options["code"]

    @property
    def title(self):
        return self.options["title"]

    @property
    def hint(self):
        return self.options["hint"]

    @property
    def command(self):
        return self.options.get("command")

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        command = self.command
        prog = getattr(main, "__prog__", command.root.name if command is not None else "argloom")

        header = Text.assemble(
            "[ ",
            text(prog, "prog-name"),
            " - ",
            text(self.code.normalize(), "code"),
            " | ",
            text(self.title.title(), "error-title"),
            " ]",
        )
        message = text(self.message, "error-message")
        renders = [message]
        if self.hint:
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(self.hint, "hint")))

        if fancy:
            try:
                width = int((console.width - 4) * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def replace(self, *unused, **overrides):
        """
        Return a copy of this fault with overridden options.
        """
        if unused:
            raise TypeError("replace() takes no positional arguments")
        return type(self)(self.message, **{**self.options, **overrides})

    __replace__ = replace


class InitializationError(CommandException):
    """The command model (or an argument file) is unusable; raised before or outside token scanning."""
    __fault__ = FaultCode.INITIALIZATION_ERROR
    __title__ = "invalid command definition"


class FormatError(InitializationError):
    """Malformed range text (arity or positional index)."""
    __fault__ = FaultCode.MALFORMED_RANGE
    __title__ = "malformed range"


class DuplicateOptionError(InitializationError):
    __fault__ = FaultCode.DUPLICATE_OPTION
    __title__ = "duplicate option"


class DuplicateCommandError(InitializationError):
    __fault__ = FaultCode.DUPLICATE_COMMAND
    __title__ = "duplicate subcommand"


class ParameterIndexGapError(InitializationError):
    __fault__ = FaultCode.PARAMETER_INDEX_GAP
    __title__ = "positional index gap"


class ParameterError(CommandException):
    """
    The tokens given on the command line do not fit the command model.

    Extra options
    - command: the deepest CommandSpec being processed when the fault occurred.
    - argument: the ArgSpec involved, when there is one.
    - value: the raw token involved, when there is one.
    """
    __fault__ = FaultCode.PARAMETER_ERROR
    __title__ = "invalid parameter"

    def __init__(self, message=Unset, /, **options):
        if "hint" not in options and options.get("command") is not None:
            options["hint"] = "run '%s --help' to see the expected usage" % _route(options["command"])
        super().__init__(message, **options)

    @property
    def argument(self):
        return self.options.get("argument")

    @property
    def value(self):
        return self.options.get("value")


class MissingParameterError(ParameterError):
    """
    One or more required arguments (or required values) were not supplied.

    The missing arguments are available as .missing (a tuple), so every missing
    argument of a parse is reported by a single fault.
    """
    __fault__ = FaultCode.MISSING_PARAMETER
    __title__ = "missing parameter"

    @property
    def missing(self):
        return tuple(self.options.get("missing", ()))

    @classmethod
    def create(cls, command, missing, separator="=", /):
        """
        Build the aggregate fault for required arguments left unmatched.

        Parameters
        - command: CommandSpec
          The first command of the chain whose contract was not met.
        - missing: Iterable[ArgSpec]
          Every required argument that was neither matched nor defaulted.
        - separator: str
          The option/value separator used to render option synopses.

        Wording
        - one option:      missing required option '--file=FILE'
        - one positional:  missing required positional parameter 'FILE'
        - several:         missing required options '--a=A', '--b=B'
        - mixed kinds:     missing required arguments '--a=A', 'FILE'
        """
        missing = tuple(missing)
        match sorted({argument.__typename__ for argument in missing}):
            case ["option"]:
                kind = "option"
            case ["positional"]:
                kind = "positional parameter"
            case _:
                kind = "argument"

        described = ", ".join(repr(argument.synopsis(separator)) for argument in missing)
        if len(missing) > 1:
            kind = pluralize(kind)

        return cls(
            f"missing required {kind} {described}",
            command=command,
            argument=missing[0] if len(missing) == 1 else None,
            missing=missing,
        )


class OverwrittenOptionError(ParameterError):
    __fault__ = FaultCode.OVERWRITTEN_OPTION
    __title__ = "overwritten option"


class UnmatchedArgumentError(ParameterError):
    """
    Tokens that could not be bound to any argument.

    Extra options
    - unmatched: the leftover tokens, in command-line order.
    - suggestions: close option names (for unknown options) or close subcommand
      names (for stray words), computed with difflib.
    """
    __fault__ = FaultCode.UNMATCHED_ARGUMENT
    __title__ = "unmatched argument"

    @property
    def unmatched(self):
        return tuple(self.options.get("unmatched", ()))

    @property
    def suggestions(self):
        return tuple(self.options.get("suggestions", ()))

    @property
    def unknown_option(self):
        return self.code is FaultCode.UNKNOWN_OPTION

    @classmethod
    def create(cls, command, unmatched, /):
        """
        Build the fault for the leftover tokens of one command level.

        The first token decides the wording: when it resembles an option the
        fault reads "unknown option" and suggests option names; otherwise it
        reads "unmatched argument" and suggests subcommand names.
        """
        unmatched = tuple(unmatched)
        first = unmatched[0]
        separator = command.parser.separator

        if command.resembles_option(first):
            suggestions = difflib.get_close_matches(first.split(separator, 1)[0], command.options_map.keys(), 5)
            describe, code, title, kind = "unknown option", FaultCode.UNKNOWN_OPTION, "unknown option", "options"
        else:
            suggestions = difflib.get_close_matches(first, command.subcommands.keys(), 3)
            describe, code, title, kind = "unmatched argument", FaultCode.UNMATCHED_ARGUMENT, "unmatched argument", "subcommands"

        if len(unmatched) > 1:
            describe = pluralize(describe)

        try:
            hint = "did you mean %r? you can also run '%s --help' to see all %s" % (
                suggestions[0], _route(command), kind
            )
        except IndexError:
            hint = "remove the extra input or run '%s --help' to see valid forms" % _route(command)

        return cls(
            "%s %s" % (describe, ", ".join(map(repr, unmatched))),
            code=code,
            title=title,
            hint=hint,
            command=command,
            unmatched=unmatched,
            suggestions=tuple(suggestions),
        )


class TypeConversionError(ParameterError):
    """
    A raw token could not be converted to the argument's type.

    Converters raise it with a short reason ("'x' is not an int"); the
    interpreter re-raises it with the argument context, chained to the original.
    """
    __fault__ = FaultCode.TYPE_CONVERSION
    __title__ = "invalid value"


class MissingConverterError(ParameterError):
    __fault__ = FaultCode.MISSING_CONVERTER
    __title__ = "missing converter"


class MaxValuesExceededError(ParameterError):
    __fault__ = FaultCode.MAX_VALUES_EXCEEDED
    __title__ = "too many values"


def _route(command):
    return " ".join(step.name for step in command.path)


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must be a CommandException (options are merged via replace()).
    - shell=False (default): the fault is raised.
    - shell=True: the fault is rendered on the rich stderr console and the
      process exits with status 1.

    typical options
    - shell, fancy, colorful, ratio, hint.
    """
    if not isinstance(fault, CommandException):
        raise TypeError("trigger() argument must be a command exception")
    fault.replace(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation lookup for a fault code (__docs__ in __main__).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FaultCode",
    "CommandException",
    "InitializationError",
    "FormatError",
    "DuplicateOptionError",
    "DuplicateCommandError",
    "ParameterIndexGapError",
    "ParameterError",
    "MissingParameterError",
    "OverwrittenOptionError",
    "UnmatchedArgumentError",
    "TypeConversionError",
    "MissingConverterError",
    "MaxValuesExceededError",
    "trigger",
    "getdoc",
)
