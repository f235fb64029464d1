"""
Faults module behavioral tests (hierarchy, options, wording, rendering, trigger).

Scope
- Validate the fault hierarchy and the default code/title/hint of each fault.
- Validate the aggregated wording of MissingParameterError.create().
- Validate UnmatchedArgumentError.create(): unknown options vs. stray words, suggestions.
- Validate replace(), trigger() (raise vs. shell mode) and rich rendering.
- Validate host overrides through __main__ (__codes__, __docs__).

Conventions
- Test method names follow CamelCase per project convention.
- Shell-mode output goes to a recording console, never to the real stderr.
"""

from __future__ import annotations

import io
import sys
import unittest
from unittest import TestCase
from unittest.mock import patch

from rich.console import Console

from argloom import (
    CommandSpec,
    Option,
    Positional,
    FaultCode,
    CommandException,
    InitializationError,
    FormatError,
    ParameterError,
    MissingParameterError,
    OverwrittenOptionError,
    UnmatchedArgumentError,
    TypeConversionError,
    trigger,
    getdoc,
)
from argloom import faults


class TestHierarchy(TestCase):
    """Classes, codes and default options."""

    def testHierarchy(self):
        self.assertTrue(issubclass(FormatError, InitializationError))
        self.assertTrue(issubclass(TypeConversionError, ParameterError))
        self.assertTrue(issubclass(InitializationError, CommandException))
        self.assertTrue(issubclass(ParameterError, CommandException))

    def testDefaults(self):
        fault = OverwrittenOptionError("message")
        self.assertEqual(str(fault), "message")
        self.assertIs(fault.code, FaultCode.OVERWRITTEN_OPTION)
        self.assertEqual(fault.title, "overwritten option")
        self.assertIsNone(fault.hint)
        self.assertIsNone(fault.command)

    def testOptionsAreReadOnly(self):
        fault = ParameterError("message")
        with self.assertRaises(TypeError):
            fault.options["code"] = FaultCode.MISSING_PARAMETER

    def testMessageMustBeString(self):
        with self.assertRaises(TypeError):
            ParameterError(42)

    def testDefaultHintRoutesToCommand(self):
        git, commit = CommandSpec("git"), CommandSpec()
        git.add_subcommand("commit", commit)
        fault = ParameterError("message", command=commit)
        self.assertEqual(fault.hint, "run 'git commit --help' to see the expected usage")

    def testExplicitHintWins(self):
        fault = ParameterError("message", command=CommandSpec("tool"), hint="try harder")
        self.assertEqual(fault.hint, "try harder")

    def testReplaceMergesOptions(self):
        fault = ParameterError("message", value="x")
        changed = fault.replace(hint="new hint")
        self.assertEqual(changed.message, "message")
        self.assertEqual(changed.hint, "new hint")
        self.assertEqual(changed.value, "x")
        self.assertIsNone(fault.hint)

    def testNormalizedCode(self):
        self.assertEqual(FaultCode.MISSING_PARAMETER.normalize(), "11101")
        main = sys.modules["__main__"]
        with patch.object(main, "__codes__", {FaultCode.MISSING_PARAMETER: "E-MISSING"}, create=True):
            self.assertEqual(FaultCode.MISSING_PARAMETER.normalize(), "E-MISSING")


class TestMissingParameterWording(TestCase):
    """MissingParameterError.create()."""

    def testSingleOption(self):
        option = Option("-f", "--file")
        fault = MissingParameterError.create(CommandSpec(option), [option])
        self.assertEqual(fault.message, "missing required option '--file=FILE'")
        self.assertIs(fault.argument, option)

    def testSinglePositional(self):
        positional = Positional("FILE")
        fault = MissingParameterError.create(CommandSpec(positional), [positional])
        self.assertEqual(fault.message, "missing required positional parameter 'FILE'")

    def testSeveralOptions(self):
        a, b = Option("--a"), Option("--b")
        fault = MissingParameterError.create(CommandSpec(a, b), [a, b], ":")
        self.assertEqual(fault.message, "missing required options '--a:A', '--b:B'")
        self.assertIsNone(fault.argument)
        self.assertEqual(fault.missing, (a, b))

    def testSeveralPositionals(self):
        a, b = Positional("A"), Positional("B")
        fault = MissingParameterError.create(CommandSpec(a, b), [a, b])
        self.assertEqual(fault.message, "missing required positional parameters 'A', 'B'")


class TestUnmatchedWording(TestCase):
    """UnmatchedArgumentError.create()."""

    def testUnknownOptionSuggestsOptions(self):
        command = CommandSpec("tool", Option("-v", "--verbose", type=bool))
        fault = UnmatchedArgumentError.create(command, ["--verbos=1"])
        self.assertTrue(fault.unknown_option)
        self.assertEqual(fault.suggestions, ("--verbose",))
        self.assertTrue(fault.hint.startswith("did you mean '--verbose'?"))

    def testStrayWordSuggestsSubcommands(self):
        git = CommandSpec("git")
        git.add_subcommand("commit", CommandSpec())
        fault = UnmatchedArgumentError.create(git, ["comit"])
        self.assertFalse(fault.unknown_option)
        self.assertEqual(fault.message, "unmatched argument 'comit'")
        self.assertEqual(fault.suggestions, ("commit",))
        self.assertEqual(fault.hint, "did you mean 'commit'? you can also run 'git --help' to see all subcommands")

    def testSeveralTokens(self):
        fault = UnmatchedArgumentError.create(CommandSpec("tool"), ["a", "b"])
        self.assertEqual(fault.message, "unmatched arguments 'a', 'b'")
        self.assertEqual(fault.unmatched, ("a", "b"))
        self.assertEqual(fault.hint, "remove the extra input or run 'tool --help' to see valid forms")


class TestTrigger(TestCase):
    """trigger() and rendering."""

    def testTriggerRaises(self):
        with self.assertRaises(OverwrittenOptionError):
            trigger(OverwrittenOptionError("message"))

    def testTriggerRejectsOtherExceptions(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("message"))

    def testShellModePrintsAndExits(self):
        buffer = io.StringIO()
        with patch.object(faults, "console", Console(file=buffer, width=120)):
            with self.assertRaises(SystemExit) as context:
                trigger(OverwrittenOptionError("option '-f' (F) should be specified only once"), shell=True)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("should be specified only once", buffer.getvalue())

    def testRichRendering(self):
        buffer = io.StringIO()
        fault = OverwrittenOptionError("option '-f' (F) should be specified only once", command=CommandSpec("tool"))
        Console(file=buffer, width=120).print(fault)
        output = buffer.getvalue()
        self.assertIn("Overwritten Option", output)
        self.assertIn(FaultCode.OVERWRITTEN_OPTION.normalize(), output)
        self.assertIn("run 'tool --help'", output)

    def testFancyRendering(self):
        buffer = io.StringIO()
        fault = ParameterError("bad input", fancy=True, colorful=False)
        Console(file=buffer, width=80).print(fault)
        self.assertIn("bad input", buffer.getvalue())


class TestDocs(TestCase):
    """getdoc() host lookup."""

    def testNoDocs(self):
        main = sys.modules["__main__"]
        with patch.object(main, "__docs__", {}, create=True):
            self.assertIsNone(getdoc(FaultCode.UNKNOWN_OPTION))

    def testHostDocs(self):
        main = sys.modules["__main__"]
        with patch.object(main, "__docs__", {FaultCode.UNKNOWN_OPTION: "see the manual"}, create=True):
            self.assertEqual(getdoc(FaultCode.UNKNOWN_OPTION), "see the manual")

    def testRejectsNonCodes(self):
        with self.assertRaises(TypeError):
            getdoc(11103)


if __name__ == "__main__":
    unittest.main()
