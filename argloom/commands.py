"""
Argloom command model: the declarative tree the interpreter walks.

What this module provides
- CommandSpec: one node of a command tree.
  • Options (by name, plus a single-character map for POSIX clustering).
  • Positional parameters (ordered, with automatically assigned indexes).
  • Subcommands by name and alias, with a weak back-reference to the parent.
  • Parser settings (ParserSpec) and a converter registry.

Core ideas
- Snapshot inheritance: registering a subcommand copies this node's parser
  settings (those the subcommand tree leaves Unset) and its converters into the
  whole subcommand tree. Later changes to this node do not propagate.
- Read-only surface: every container is exposed as a tuple or a mapping proxy;
  the model is changed only through add*/configure/register/detach.
- No parse state: matched values live in ParseResult, never on the model.

Quick start
    from argloom import CommandSpec, Option, Positional

    git = CommandSpec("git", Option("--git-dir", type=Path))
    commit = CommandSpec(Option("-m", "--message", required=True), Option("-a", "--all", type=bool))
    git.add_subcommand("commit", commit, aliases=("ci",))

    result = git.parse(["commit", "-am", "fix"])
    result.subcommand.value("--message")   # 'fix'

See also
- argloom.interpreter for the parsing algorithm.
- argloom.settings for the parser configuration table.
"""
import functools
import operator
import re
import weakref

from .converters import ConverterRegistry
from .faults import *
from .ranges import Range
from .settings import ParserSpec
from .utils import *


class CommandType(type):
    """
    Metaclass giving command specs a typename, read-only mirrors and stable reprs.

    Conventions
    - __typename__ is derived from the class name ("command-spec").
    - Names listed in __introspectable__ become read-only properties over the
      matching private fields.
    - __displayable__ narrows which of them __rich_repr__ shows.
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
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_name(cls, name, what, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {what} must be a string")
    elif not name or any(char.isspace() for char in name):
        raise ValueError(f"{cls.__typename__} {what} must be a non-empty string without whitespace")
    return name


class CommandSpec(metaclass=CommandType):
    """
    One node of a command tree.

    Parameters
    - name: Unset | str
      Defaults to "<main>"; add_subcommand() renames the node to the name it is
      registered under.
    - *arguments: Option | Positional, added in order.
    - aliases / descr / version: metadata (aliases are set by add_subcommand()).
    - **settings: initial ParserSpec settings (see argloom.settings).

    Read-only properties
    - name, aliases, descr, version
    - options (tuple), options_map (name -> Option), posix_options (char -> Option)
    - positionals (tuple), required (declared-required arguments, tuple)
    - subcommands (name or alias -> CommandSpec), parent (None for roots)
    - root, path, parser (ParserSpec), converters (ConverterRegistry)
    """

    __introspectable__ = (
        "name",
        "aliases",
        "descr",
        "version",
        "options",
        "options_map",
        "posix_options",
        "positionals",
        "required",
        "subcommands",
    )
    __displayable__ = (
        "name",
        "aliases",
        "version",
        "options",
        "positionals",
        "subcommands",
    )

    def __new__(cls, name=Unset, /, *arguments, aliases=(), descr=Unset, version=Unset, **settings):
        if not isinstance(name, str | Unset):
            # CommandSpec(Option(...)) without a name
            arguments, name = (name, *arguments), Unset

        self = super().__new__(cls)
        self._name = "<main>" if name is Unset else _sanitize_name(cls, name, "name")
        self._aliases = tuple(_sanitize_name(cls, alias, "aliases") for alias in aliases)
        if not isinstance(descr, str | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")
        self._descr = coalesce(descr)
        if not isinstance(version, str | Unset):
            raise TypeError(f"{cls.__typename__} 'version' must be a string")
        self._version = coalesce(version)

        self._options = []
        self._options_map = {}
        self._posix_options = {}
        self._positionals = []
        self._required = []
        self._subcommands = {}
        self._parent = None
        self._parser = ParserSpec(**settings)
        self._converters = ConverterRegistry()

        for argument in arguments:
            self.add(argument)
        return self

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def root(self):
        """
        Return the topmost command of this tree.
        """
        child, parent = self, self.parent
        while parent is not None:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the ancestry from the root to this command as a tuple.
        """
        path = [command := self]
        while (command := command.parent) is not None:
            path.append(command)
        return tuple(reversed(path))

    @property
    def parser(self):
        return self._parser

    @property
    def converters(self):
        return self._converters

    def add(self, argument, /):
        """
        Add an Option or a Positional; returns self for chaining.
        """
        match getattr(type(argument), "__typename__", None):
            case "option":
                return self.add_option(argument)
            case "positional":
                return self.add_positional(argument)
        raise TypeError(f"{type(self).__typename__} arguments must be options or positionals")

    def add_option(self, option, /):
        """
        Register an option under all of its names.

        Raises
        - DuplicateOptionError: one of the names is already used by an option of
          this command.
        """
        if getattr(type(option), "__typename__", None) != "option":
            raise TypeError("add_option() argument must be an option")

        for name in option.names:
            if (existing := self._options_map.get(name)) is not None:
                raise DuplicateOptionError(
                    f"option name {name!r} is used by both {existing.describe()} and {option.describe()}",
                    hint="give every option of a command distinct names",
                    command=self,
                    argument=option,
                )

        self._options.append(option)
        for name in option.names:
            self._options_map[name] = option
            if len(name) == 2 and name.startswith("-") and name != "--":
                self._posix_options[name[1]] = option
        if option.required:
            self._required.append(option)
        return self

    def add_positional(self, positional, /):
        """
        Register a positional parameter, assigning its index when it has none.

        The automatic index is the next free slot: "N" for single-valued
        positionals, "N..*" for multi-valued ones.

        Raises
        - InitializationError: the positional is already registered here, or an
          automatic index is requested after a positional with an unbounded index.
        """
        if getattr(type(positional), "__typename__", None) != "positional":
            raise TypeError("add_positional() argument must be a positional")
        if any(existing is positional for existing in self._positionals):
            raise InitializationError(
                f"{positional.describe()} is already registered in {self._name!r}",
                command=self,
                argument=positional,
            )

        if positional.index is Unset:
            following = 0
            for existing in self._positionals:
                if existing.index.variable:
                    raise InitializationError(
                        f"cannot assign an index to {positional.label!r} after {existing.describe()}",
                        hint="declare the index explicitly",
                        command=self,
                        argument=positional,
                    )
                following = max(following, existing.index.max + 1)
            positional._bind_index(Range(following, variable=True) if positional.multivalued else Range(following))

        self._positionals.append(positional)
        if positional.required:
            self._required.append(positional)
        return self

    def add_subcommand(self, name, command, /, *, aliases=()):
        """
        Register command under name (and aliases) and snapshot this node's
        settings and converters into its whole subtree.

        Raises
        - DuplicateCommandError: the name or an alias is already taken here.
        - InitializationError: command is this node or one of its ancestors, or
          is still registered under another parent (detach() it first).
        """
        if not isinstance(command, CommandSpec):
            raise TypeError("add_subcommand() second argument must be a command-spec")
        name = _sanitize_name(type(self), name, "subcommand name")
        aliases = tuple(_sanitize_name(type(self), alias, "aliases") for alias in aliases)

        if command in self.path:
            raise InitializationError(
                f"cannot register {name!r} under itself or one of its descendants",
                command=self,
            )
        if command.parent is not None:
            raise InitializationError(
                f"{type(self).__typename__} {command.name!r} is already registered under {command.parent.name!r}",
                hint="detach() it from its parent first",
                command=self,
            )
        for key in (name, *aliases):
            if key in self._subcommands:
                raise DuplicateCommandError(
                    f"subcommand name {key!r} is already used by {self._subcommands[key].name!r}",
                    command=self,
                )
        if len(set(keys := (name, *aliases))) != len(keys):
            raise DuplicateCommandError(f"subcommand {name!r} declares duplicate aliases", command=self)

        command._name = name
        command._aliases = aliases
        command._parent = weakref.ref(self)
        for key in keys:
            self._subcommands[key] = command
        command._inherit_from(self)
        return self

    def _inherit_from(self, parent, /):
        self._parser = self._parser.inherit(parent._parser)
        self._converters.inherit(parent._converters)
        for command in dict.fromkeys(self._subcommands.values()):
            command._inherit_from(self)

    def detach(self):
        """
        Remove this command from its parent (no-op for roots); returns self.

        Settings and converters already inherited stay in place.
        """
        if (parent := self.parent) is not None:
            for key in [key for key, command in parent._subcommands.items() if command is self]:
                del parent._subcommands[key]
        self._parent = None
        return self

    def configure(self, **settings):
        """
        Replace this node's parser settings; returns self.

        Subcommands registered before the call keep their snapshot.
        """
        self._parser = self._parser.replace(**settings)
        return self

    def register(self, type, converter, /):
        """
        Register a converter on this node only; returns self.
        """
        self._converters.register(type, converter)
        return self

    def resembles_option(self, token, tracer=None, /):
        """
        Heuristic: does an unmatched token look like a mistyped option?

        - unmatched_options_are_positional_params: never.
        - no options declared: the token starts with "-".
        - otherwise: the token shares a common prefix with at least 90% of the
          option names (counting one per shared leading character).
        """
        if self._parser.unmatched_options_are_positional_params:
            if tracer is not None:
                tracer.debug(f"parser is configured to treat all unmatched options as positional parameter {token!r}")
            return False
        if not token:
            return False

        count = 0
        if not self._options_map:
            result = token.startswith("-")
        else:
            for name in self._options_map:
                for left, right in zip(token, name):
                    if left != right:
                        break
                    count += 1
            result = count > 0 and count * 10 >= len(self._options_map) * 9

        if tracer is not None:
            tracer.debug("%r %s an option: %d matching prefix chars out of %d option names" % (
                token, "resembles" if result else "doesn't resemble", count, len(self._options_map)
            ))
        return result

    def validate(self):
        """
        Check the consistency of this node.

        Raises
        - ParameterIndexGapError: positional indexes leave a slot uncovered.
        - InitializationError (INVALID_HELP_OPTION): a usage or version help
          option is not boolean.
        """
        following = 0
        for index in sorted(positional.index for positional in self._positionals):
            if index.min > following:
                raise ParameterIndexGapError(
                    f"command {self._name!r} is missing positional parameter with index {following}",
                    hint="declare positional parameters covering every index from 0",
                    command=self,
                )
            following = max(following, index.max + 1)

        for option in self._options:
            if (option.usage_help or option.version_help) and not option.boolean:
                raise InitializationError(
                    f"{"usage" if option.usage_help else "version"} help {option.describe()} must be boolean",
                    code=FaultCode.INVALID_HELP_OPTION,
                    command=self,
                    argument=option,
                )
        return self

    def parse(self, args, /, **options):
        """
        Parse args against this command; see argloom.interpreter.Interpreter.
        """
        from .interpreter import Interpreter
        return Interpreter(self, **options).parse(args)


__all__ = (
    "CommandSpec",
)
