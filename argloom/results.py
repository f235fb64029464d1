"""
Argloom parse results.

A parse produces one ParseResult per command level (the top-level result links
to the result of the subcommand that was invoked, and so on). Results are the
only place where matched values live: the command model is never written to
during a parse, so a single command tree can be parsed concurrently.

ParseResultBuilder collects the state of one level while the interpreter scans
tokens; build() freezes it into a ParseResult.

Keys accepted by the accessors
- an ArgSpec of the command (identity),
- an option name, with or without its dash prefix ("--file", "-f", "file"),
- a positional label ("FILE"), when no option has that name,
- an int position (the first positional whose index range contains it).
"""
from types import MappingProxyType

from .utils import Unset


class ParseResultBuilder:
    """
    Mutable accumulator for one command level.

    The interpreter records, per argument, the original tokens, the strings they
    were split into and the converted values, in match order. Positionals also
    record which positions they consumed so overlapping index ranges do not
    consume a position twice.
    """

    def __init__(self, command, original_args, /):
        self.command = command
        self.original_args = tuple(original_args)
        self.matched = {}
        self.raw = {}
        self.strings = {}
        self.positions = {}
        self.unmatched = []
        self.usage_help_requested = False
        self.version_help_requested = False
        self.help_requested = False
        self.subcommand = None

    def is_matched(self, argument, /):
        return argument in self.matched

    def values_of(self, argument, /):
        return self.matched.get(argument, [])

    def add_raw(self, argument, token, /):
        self.raw.setdefault(argument, []).append(token)

    def add_values(self, argument, strings, values, /):
        self.matched.setdefault(argument, []).extend(values)
        self.strings.setdefault(argument, []).extend(strings)

    def replace_values(self, argument, strings, values, /):
        self.matched[argument] = list(values)
        self.strings[argument] = list(strings)

    def consumed(self, positional, position, /):
        return position in self.positions.get(positional, ())

    def consume(self, positional, position, /):
        self.positions.setdefault(positional, set()).add(position)

    def add_unmatched(self, token, /):
        self.unmatched.append(token)

    def build(self):
        return ParseResult(self, self.subcommand.build() if self.subcommand is not None else None)


class ParseResult:
    """
    Immutable outcome of parsing one command level.

    Structure
    - command: the CommandSpec of this level.
    - subcommand: the ParseResult of the invoked subcommand, or None.
    - chain: commands from this level down to the deepest invoked subcommand.

    Values
    - matched: read-only mapping of ArgSpec to the tuple of converted values.
    - matched_options / matched_positionals: the same mapping narrowed to one
      kind of argument, still in match order.
    - value(key, default=Unset): the resolved value of an argument:
        • scalar: the last converted value,
        • multi-valued: the declared container built from every value,
        • never matched: the argument default, else the given default, else None.
    - values(key) / raw(key) / strings(key): converted values, original tokens
      and split strings, as tuples in match order.

    Flags
    - usage_help_requested / version_help_requested / help_requested.
    """

    def __init__(self, builder, subcommand=None, /):
        self._command = builder.command
        self._subcommand = subcommand
        self._original_args = builder.original_args
        self._matched = MappingProxyType({argument: tuple(values) for argument, values in builder.matched.items()})
        self._raw = MappingProxyType({argument: tuple(tokens) for argument, tokens in builder.raw.items()})
        self._strings = MappingProxyType({argument: tuple(strings) for argument, strings in builder.strings.items()})
        self._unmatched = tuple(builder.unmatched)
        self._usage_help_requested = builder.usage_help_requested
        self._version_help_requested = builder.version_help_requested
        self._help_requested = builder.help_requested

    @property
    def command(self):
        return self._command

    @property
    def subcommand(self):
        return self._subcommand

    @property
    def has_subcommand(self):
        return self._subcommand is not None

    @property
    def chain(self):
        chain, result = [], self
        while result is not None:
            chain.append(result._command)
            result = result._subcommand
        return tuple(chain)

    def as_command_list(self):
        return list(self.chain)

    @property
    def original_args(self):
        return self._original_args

    @property
    def unmatched(self):
        return self._unmatched

    @property
    def usage_help_requested(self):
        return self._usage_help_requested

    @property
    def version_help_requested(self):
        return self._version_help_requested

    @property
    def help_requested(self):
        return self._help_requested

    @property
    def matched(self):
        return self._matched

    @property
    def matched_options(self):
        return self._matched_of("option")

    @property
    def matched_positionals(self):
        return self._matched_of("positional")

    def _matched_of(self, typename, /):
        return MappingProxyType({
            argument: values for argument, values in self._matched.items() if argument.__typename__ == typename
        })

    def find_option(self, name, /):
        """
        Return the option of this command known by name (dashes optional), or None.
        """
        options = self._command.options_map
        for candidate in (name, "-" + name, "--" + name):
            if candidate in options:
                return options[candidate]
        return None

    def find_positional(self, position, /):
        """
        Return the first positional whose index range contains position, or None.
        """
        for positional in self._command.positionals:
            if position in positional.index:
                return positional
        return None

    def _resolve(self, key, /):
        if isinstance(key, str):
            argument = self.find_option(key)
            if argument is None:
                argument = next((positional for positional in self._command.positionals if positional.label == key), None)
        elif isinstance(key, int) and not isinstance(key, bool):
            argument = self.find_positional(key)
        elif key in self._command.options or key in self._command.positionals:
            argument = key
        else:
            argument = None
        if argument is None:
            raise KeyError(key)
        return argument

    def has_matched(self, key, /):
        try:
            return self._resolve(key) in self._matched
        except KeyError:
            return False

    def value(self, key, /, default=Unset):
        """
        Resolve the value of an argument (see class docs).

        Raises
        - KeyError: key does not name an argument of this command and no
          default was given.
        """
        try:
            argument = self._resolve(key)
        except KeyError:
            if default is not Unset:
                return default
            raise

        if argument in self._matched:
            return argument.collect(self._matched[argument])
        if argument.has_default:
            return argument.default
        return default if default is not Unset else None

    def values(self, key, /):
        return self._matched.get(self._resolve(key), ())

    def raw(self, key, /):
        return self._raw.get(self._resolve(key), ())

    def strings(self, key, /):
        return self._strings.get(self._resolve(key), ())

    def __repr__(self):
        return "parse-result(command=%r, matched=%d, unmatched=%r, subcommand=%r)" % (
            self._command.name, len(self._matched), self._unmatched,
            self._subcommand._command.name if self._subcommand is not None else None,
        )

    def __rich_repr__(self):
        yield "command", self._command.name
        yield "matched", {argument.synopsis(): values for argument, values in self._matched.items()}
        yield "unmatched", self._unmatched, ()
        yield "subcommand", self._subcommand, None


__all__ = (
    "ParseResult",
    "ParseResultBuilder",
)
