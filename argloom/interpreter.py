"""
Argloom interpreter: turns a token array into a ParseResult.

Pipeline
1. @file expansion (when the root command's expand_at_files is on).
   - "@" alone is a literal; "@@x" is the literal "@x".
   - "@path" whose file cannot be read stays a literal.
   - Files are tokenized with shlex (POSIX rules, quotes, the configured
     comment char, no backslash escapes) and their tokens are expanded
     recursively; a file already visited while expanding the same argument is
     skipped. An unclosed quote makes the file unreadable.
2. Scanning, one command level at a time, over a shared token stack:
   - after the end-of-options delimiter every token is positional;
   - a subcommand name or alias hands the remaining tokens to that subcommand;
   - "name<separator>value" with a known option name splits off the value;
   - known option names are applied; unknown "-xyz" tokens are tried as a
     cluster of single-character options;
   - anything else is unmatched (when it resembles an option) or positional.
3. Post-scan validation over the whole chain of invoked commands:
   - unless a help option was matched, every required argument that was
     neither matched nor defaulted is reported by one MissingParameterError;
   - leftover tokens raise UnmatchedArgumentError (deepest command first)
     unless that command allows unmatched arguments.

Errors abort the parse and carry the command being processed when they occurred.
"""
import os
import pathlib
import shlex
from enum import IntEnum

from .faults import *
from .results import ParseResultBuilder
from .converters import apply
from .tracing import Tracer
from .utils import Unset


class _LookBehind(IntEnum):
    """How an option value was given: "-f x", "-fx" or "-f=x"."""
    SEPARATE = 0
    ATTACHED = 1
    ATTACHED_WITH_SEPARATOR = 2

    @property
    def attached(self):
        return self is not _LookBehind.SEPARATE


class Interpreter:
    """
    Parser for one command tree.

    Parameters
    - command: CommandSpec (the root of the parse)
    - tracer: Tracer | Unset (defaults to a tracer configured from ARGLOOM_TRACE)

    An interpreter holds no parse state between calls; every parse() builds its
    own result builders, so one interpreter (and one command tree) can serve
    several parses.
    """

    def __init__(self, command, /, *, tracer=Unset):
        if getattr(type(command), "__typename__", None) != "command-spec":
            raise TypeError("interpreter argument must be a command-spec")
        if not isinstance(tracer, Tracer | Unset):
            raise TypeError("interpreter 'tracer' must be a tracer")
        self.command = command
        self.tracer = Tracer() if tracer is Unset else tracer

    def parse(self, args, /):
        """
        Parse args and return the top-level ParseResult.

        Raises
        - ParameterError (and subclasses): the tokens do not fit the model.
        - InitializationError: the model is inconsistent, or an argument file
          could not be read.
        """
        if isinstance(args, str):
            raise TypeError("parse() argument must be a sequence of strings, not a string")
        args = tuple(args)
        if not all(isinstance(arg, str) for arg in args):
            raise TypeError("parse() argument must contain only strings")

        self.tracer.debug("parsing %d command line args %r for %r" % (len(args), list(args), self.command.name))
        self.tracer.debug("parser settings: %r" % (self.command.parser,))

        expanded = self.expand(args)
        builder = ParseResultBuilder(self.command, args)
        self.command.validate()
        _Scan(self, self.command, builder, list(reversed(expanded))).run()

        builders = [builder]
        while builders[-1].subcommand is not None:
            builders.append(builders[-1].subcommand)
        self._validate(builders)

        return builder.build()

    def expand(self, args, /):
        """
        Expand @file arguments (see module docs); returns a list of tokens.
        """
        parser = self.command.parser
        if not parser.expand_at_files:
            return list(args)

        expanded = []
        for arg in args:
            self._expand(arg, expanded, set(), parser.at_file_comment_char)
        return expanded

    def _expand(self, arg, expanded, visited, comment, /):
        if arg == "@" or not arg.startswith("@"):
            expanded.append(arg)
            return

        name = arg[1:]
        if name.startswith("@"):
            self.tracer.info("not expanding @-escaped argument %r (trimmed leading '@' char)" % name)
            expanded.append(name)
            return

        self.tracer.info("expanding argument file @%s" % name)
        path = pathlib.Path(name)
        if not path.is_file() or not os.access(path, os.R_OK):
            self.tracer.info("file %s does not exist or cannot be read; treating argument literally" % name)
            expanded.append(arg)
            return

        absolute = str(path.absolute())
        if absolute in visited:
            self.tracer.info("already visited file %s; ignoring..." % absolute)
            return
        visited.add(absolute)

        try:
            lexer = shlex.shlex(path.read_text(encoding="utf-8"), posix=True)
            lexer.whitespace_split = True
            lexer.commenters = comment or ""
            # backslashes are literal ("C:\dir\out.txt")
            lexer.escape = ""
            tokens = list(lexer)
        except (OSError, ValueError) as error:
            raise InitializationError(
                f"could not read argument file @{name}: {error}",
                code=FaultCode.UNREADABLE_ARGUMENT_FILE,
                title="unreadable argument file",
                hint="check the file permissions and that every quote is closed",
                command=self.command,
                value=arg,
            ) from error

        self.tracer.info("expanded file @%s to arguments %r" % (name, tokens))
        for token in tokens:
            self._expand(token, expanded, visited, comment)

    def _validate(self, builders, /):
        requested = any(
            builder.usage_help_requested or builder.version_help_requested or builder.help_requested
            for builder in builders
        )
        if not requested:
            missing, first = [], None
            for builder in builders:
                absent = [
                    argument for argument in builder.command.required
                    if not builder.is_matched(argument) and not argument.has_default
                ]
                if absent and first is None:
                    first = builder.command
                missing.extend(absent)
            if missing:
                raise MissingParameterError.create(first, missing, first.parser.separator)

        for builder in reversed(builders):
            if builder.unmatched and not builder.command.parser.unmatched_arguments_allowed:
                raise UnmatchedArgumentError.create(builder.command, builder.unmatched)


class _Scan:
    """
    Token scanning of one command level.

    tokens is a stack shared with the levels above and below (the next token is
    at the end), so a subcommand simply continues on the same stack.
    """

    def __init__(self, interpreter, command, builder, tokens, /):
        self.interpreter = interpreter
        self.tracer = interpreter.tracer
        self.command = command
        self.parser = command.parser
        self.builder = builder
        self.tokens = tokens
        self.end_of_options = False
        self.position = 0

    def run(self):
        options = self.command.options_map
        separator = self.parser.separator

        while self.tokens:
            if self.end_of_options:
                self.process_positional()
                continue

            token = self.tokens.pop()
            self.tracer.debug("processing argument %r; remainder=%r" % (token, self.tokens[::-1]))

            if token == self.parser.end_of_options_delimiter:
                self.tracer.info("found end-of-options delimiter %r; treating remainder as positional parameters" % token)
                self.end_of_options = True
                continue

            if token in self.command.subcommands:
                self.descend(token)
                return

            attached = False
            if (index := token.find(separator)) > 0:
                key = token[:index]
                # be greedy: the whole token wins when it is an option name itself
                if key in options and token not in options:
                    attached = True
                    self.tokens.append(value := token[index + len(separator):])
                    self.tracer.debug("separated %r option from %r option parameter" % (key, value))
                    token = key
                else:
                    self.tracer.debug("%r contains separator %r but %r is not a known option" % (token, separator, key))

            if token in options:
                self.process_standalone(token, attached)
            elif self.parser.posix_clustered_short_options_allowed and len(token) > 2 and token.startswith("-"):
                self.tracer.debug("trying to process %r as clustered short options" % token)
                self.process_cluster(token)
            else:
                self.tokens.append(token)
                self.tracer.debug("could not find option %r, deciding whether to treat as unmatched option or positional parameter" % token)
                if self.command.resembles_option(token, self.tracer):
                    self.handle_unmatched()
                    continue
                self.tracer.debug("no option named %r found; processing as positional parameter" % token)
                self.process_positional()

    def descend(self, name, /):
        command = self.command.subcommands[name]
        self.tracer.debug("found subcommand %r (%s)" % (name, command.name))
        command.validate()
        builder = ParseResultBuilder(command, self.tokens[::-1])
        self.builder.subcommand = builder
        _Scan(self.interpreter, command, builder, self.tokens).run()

    def process_standalone(self, name, attached, /):
        option = self.command.options_map[name]
        arity = option.arity
        if attached:
            # key=value: at least one value
            arity = arity.with_min(max(1, arity.min))
        look = _LookBehind.ATTACHED_WITH_SEPARATOR if attached else _LookBehind.SEPARATE
        self.tracer.debug("found option named %r: %s, arity=%s" % (name, option.describe(), arity))
        self.apply(option, look, arity, self.tokens, "option " + name)

    def process_cluster(self, token, /):
        """
        Walk "-abc" one character at a time.

        Each known character applies its option with the rest of the cluster
        pushed as a candidate value; when the option consumes it (or nothing is
        left) the cluster is done, otherwise the walk continues on the rest.
        A remainder that is neither an option nor a value is unmatched, or
        positional when the whole token does not resemble an option.
        """
        prefix, cluster = token[0], token[1:]
        separator = self.parser.separator
        posix = self.command.posix_options
        attached = True

        while True:
            if cluster and cluster[0] in posix:
                option = posix[cluster[0]]
                arity = option.arity
                description = "option " + prefix + cluster[0]
                self.tracer.debug("found option %r in %r: %s, arity=%s" % (prefix + cluster[0], token, option.describe(), arity))

                cluster = cluster[1:]
                attached = bool(cluster)
                look = _LookBehind.ATTACHED if attached else _LookBehind.SEPARATE
                if cluster.startswith(separator):
                    look = _LookBehind.ATTACHED_WITH_SEPARATOR
                    cluster = cluster[len(separator):]
                    arity = arity.with_min(max(1, arity.min))
                if arity.min > 0 and cluster.strip():
                    self.tracer.debug("trying to process %r as option parameter" % cluster)
                if cluster.strip():
                    self.tokens.append(cluster)

                before = len(self.tokens)
                self.apply(option, look, arity, self.tokens, description)
                if not cluster.strip() or not self.tokens or len(self.tokens) < before:
                    return
                cluster = self.tokens.pop()
                continue

            if not cluster:
                return

            if token.endswith(cluster):
                self.tokens.append(prefix + cluster if attached else cluster)
                if self.tokens[-1] == token:
                    self.tracer.debug("could not match any short options in %r, deciding whether to treat as unmatched option or positional parameter" % token)
                    if self.command.resembles_option(token, self.tracer):
                        self.handle_unmatched()
                        return
                    self.process_positional()
                    return
                self.tracer.debug("no option found for %r in %r" % (cluster, token))
                self.handle_unmatched()
            else:
                self.tokens.append(cluster)
                self.tracer.debug("%r is not an option parameter for %r" % (cluster, token))
                self.process_positional()
            return

    def process_positional(self):
        """
        Offer the next token(s) to every positional whose index covers the
        current position. Overlapping positionals each receive the values; the
        stack advances by the largest consumption.
        """
        self.tracer.debug("processing next arg as a positional parameter at position %d; remainder=%r" % (self.position, self.tokens[::-1]))
        if self.parser.stop_at_positional and not self.end_of_options:
            self.tracer.debug("parser was configured with stop_at_positional, treating remaining arguments as positional parameters")
            self.end_of_options = True

        consumed = 0
        for positional in self.command.positionals:
            if self.position not in positional.index or self.builder.consumed(positional, self.position):
                continue

            working = list(self.tokens)
            self.tracer.debug("position %d is in index range %s; trying to assign args to %s, arity=%s" % (
                self.position, positional.index, positional.describe(), positional.arity
            ))
            self.assert_no_missing(positional, positional.arity, working)
            before = len(working)
            self.apply(positional, _LookBehind.SEPARATE, positional.arity, working,
                       "args[%s] at position %d" % (positional.index, self.position))
            count = before - len(working)
            for offset in range(count):
                self.builder.consume(positional, self.position + offset)
            consumed = max(consumed, count)

        del self.tokens[len(self.tokens) - consumed:]
        self.position += consumed
        if consumed == 0 and self.tokens:
            self.handle_unmatched()

    def handle_unmatched(self):
        if self.tokens:
            self.builder.add_unmatched(self.tokens.pop())
        if self.parser.stop_at_unmatched:
            while self.tokens:
                self.builder.add_unmatched(self.tokens.pop())

    def is_option(self, token, /):
        if token is None:
            return False
        if token == self.parser.end_of_options_delimiter or token in self.command.options_map:
            return True
        if (index := token.find(self.parser.separator)) > 0 and token[:index] in self.command.options_map:
            return True
        return len(token) > 2 and token.startswith("-") and token[1] in self.command.posix_options

    def vararg_can_consume(self, argument, token, /):
        if self.end_of_options and argument.__typename__ == "positional":
            return True
        return token not in self.command.subcommands and not self.is_option(token)

    def assert_no_missing(self, argument, arity, tokens, /):
        available = len(tokens)
        if arity.min <= 0 or available >= arity.min:
            return

        if arity.min == 1:
            if argument.__typename__ == "option":
                message = f"missing required parameter for {argument.describe()}"
            else:
                labels = [
                    positional.label for positional in self.command.positionals
                    if positional.index.min >= argument.index.min and positional.arity.min > 0
                ]
                plural = "s" if len(labels) > 1 or arity.min - available > 1 else ""
                message = f"missing required parameter{plural}: {", ".join(labels)}"
        elif not tokens:
            message = f"{argument.describe()} requires at least {arity.min} values, but none were specified"
        else:
            message = f"{argument.describe()} requires at least {arity.min} values, but only {available} were specified: {tokens[::-1]!r}"

        raise MissingParameterError(message, command=self.command, argument=argument, missing=(argument,))

    def update_help(self, argument, /):
        if argument.__typename__ != "option":
            return
        if argument.usage_help:
            self.builder.usage_help_requested = True
        if argument.version_help:
            self.builder.version_help_requested = True
        if argument.help:
            self.builder.help_requested = True

    def apply(self, argument, look, arity, tokens, description, /):
        self.update_help(argument)

        working = tokens
        if self.parser.arity_satisfied_by_attached_option_param and look.attached:
            working = [tokens.pop()] if tokens else tokens
        else:
            self.assert_no_missing(argument, arity, tokens)

        if argument.kind == "scalar":
            result = self.apply_single(argument, look, arity, working, description)
        else:
            result = self.apply_multiple(argument, look, arity, working, description)

        if working is not tokens and working:
            tokens.append(working.pop())
        return result

    def apply_single(self, argument, look, arity, tokens, description, /):
        more = bool(tokens)
        value = tokens.pop() if tokens else None

        if not argument.arity.unspecified:
            arity = argument.arity
        if arity.max == 0 and not arity.unspecified and look is _LookBehind.ATTACHED_WITH_SEPARATOR:
            raise MaxValuesExceededError(
                f"{argument.describe()} should be specified without {value!r} parameter",
                command=self.command,
                argument=argument,
                value=value,
            )

        actual, exists = value, True
        if arity.min <= 0:
            if argument.boolean:
                optional = arity.max > 0 and value is not None and value.lower() in ("true", "false")
                if not optional and look is not _LookBehind.ATTACHED_WITH_SEPARATOR:
                    if self.parser.toggle_boolean_flags:
                        if self.builder.is_matched(argument):
                            current = self.builder.values_of(argument)[-1]
                        else:
                            current = argument.default if argument.has_default else None
                        actual = "false" if current else "true"
                    else:
                        actual = "true"
                    exists = False
            elif value is None or self.is_option(value):
                actual, exists = "", False
            if not exists and value is not None:
                tokens.append(value)

        if not more and actual is None:
            return 0

        if exists:
            actual = argument.split_value(actual, self.parser, arity, 0, self.tracer)[0]
            self.builder.add_raw(argument, value)
        else:
            self.builder.add_raw(argument, actual)

        converted = self.convert(argument, actual)
        if self.builder.is_matched(argument):
            if not self.parser.overwritten_options_allowed:
                raise OverwrittenOptionError(
                    f"{argument.describe()} should be specified only once",
                    command=self.command,
                    argument=argument,
                    value=actual,
                )
            self.tracer.info("overwriting %s value %r with %r for %s" % (
                argument.describe(), self.builder.values_of(argument)[-1], converted, description
            ))
        else:
            self.tracer.info("setting %s to %r for %s" % (argument.describe(), converted, description))

        self.builder.replace_values(argument, [actual], [converted])
        return 1

    def apply_multiple(self, argument, look, arity, tokens, description, /):
        positional = argument.__typename__ == "positional"
        position = self.position
        strings, values = [], []

        consumed = 0
        while consumed < arity.min and tokens:
            if positional:
                self.builder.consume(argument, position)
                position += 1
            if not self.vararg_can_consume(argument, tokens[-1]):
                mandatory = f"{consumed + 1} (of {arity.min} mandatory parameters) " if arity.min > 1 else ""
                raise MissingParameterError(
                    f"expected parameter {mandatory}for {argument.describe()} but found {tokens[-1]!r}",
                    command=self.command,
                    argument=argument,
                    value=tokens[-1],
                    missing=(argument,),
                )
            self.consume_one(argument, arity, consumed, tokens.pop(), strings, values)
            consumed += 1

        while consumed < arity.max and tokens:
            if not self.vararg_can_consume(argument, tokens[-1]):
                break
            if positional:
                # a position that could not be consumed is not offered again
                self.builder.consume(argument, position)
                position += 1
            if not self.can_consume_one(argument, arity, consumed, tokens[-1]):
                break
            self.consume_one(argument, arity, consumed, tokens.pop(), strings, values)
            consumed += 1

        if not values and arity.min == 0 and arity.max <= 1 and argument.kind == "multiple" and \
                argument.auxiliary[0] is bool:
            values = [True]

        if values or not positional:
            self.tracer.info("adding %r to %s for %s" % (values, argument.describe(), description))
            self.builder.add_values(argument, strings, values)
        return len(values)

    def consume_one(self, argument, arity, consumed, token, strings, values, /):
        self.builder.add_raw(argument, token)
        for part in argument.split_value(token, self.parser, arity, consumed, self.tracer):
            strings.append(part)
            values.append(self.convert_element(argument, part))

    def can_consume_one(self, argument, arity, consumed, token, /):
        try:
            for part in argument.split_value(token, self.parser, arity, consumed, self.tracer):
                self.convert_element(argument, part)
        except ParameterError as error:
            self.tracer.debug("%s cannot consume %r: %s" % (argument.describe(), token, error))
            return False
        return True

    def convert_element(self, argument, part, /):
        if argument.kind != "mapping":
            return self.convert(argument, part)

        key, separator, value = part.partition("=")
        if not separator:
            expected = "KEY=VALUE" if argument.split is None else f"KEY=VALUE[{argument.split.pattern}KEY=VALUE]..."
            raise ParameterError(
                f"value for {argument.describe()} should be in {expected} format but was {part!r}",
                code=FaultCode.INVALID_KEY_VALUE,
                title="invalid key-value",
                command=self.command,
                argument=argument,
                value=part,
            )
        return self.convert(argument, key, 0), self.convert(argument, value, 1)

    def convert(self, argument, token, index=0, /):
        """
        Convert one value string for argument (index 1 selects the map value type).

        Per-argument converters take precedence over the command registry.
        """
        try:
            if index < len(argument.converters):
                return apply(argument.converters[index], token, argument.auxiliary[index])
            return self.command.converters.convert(
                argument.auxiliary[index], token, self.parser.case_insensitive_enum_values_allowed
            )
        except TypeConversionError as error:
            raise TypeConversionError(
                f"invalid value for {argument.describe()}: {error.message}",
                command=self.command,
                argument=argument,
                value=token,
            ) from error
        except MissingConverterError as error:
            raise MissingConverterError(
                f"{error.message} ({argument.describe()})",
                hint=error.hint,
                command=self.command,
                argument=argument,
                value=token,
            ) from None


def parse(command, args, /, **options):
    """
    Parse args against command; shortcut for Interpreter(command, **options).parse(args).
    """
    return Interpreter(command, **options).parse(args)


__all__ = (
    "Interpreter",
    "parse",
)
