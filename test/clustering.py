"""
POSIX short-option clustering tests ("-vxf out.txt", "-ov", "-vxf=out.txt").

Scope
- Cover every combination of {boolean flag, option with a required value,
  option with an optional value} at the {first, middle, last} place of a cluster.
- Validate attached values with a separator inside a cluster.
- Validate leftovers that are not options, and clustering being disabled.

Conventions
- Test method names follow CamelCase per project convention.
- Short options: -v/-x/-z booleans, -f required value, -o optional value.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from argloom import CommandSpec, Option, MissingParameterError, UnmatchedArgumentError


def cluster(**settings):
    return CommandSpec(
        "cluster",
        Option("-v", type=bool),
        Option("-x", type=bool),
        Option("-z", type=bool),
        Option("-f"),
        Option("-o", arity="0..1"),
        **settings,
    )


def values(result):
    return {option.names[0]: result.value(option) for option in result.matched_options}


class TestBooleanCluster(TestCase):
    """Boolean flags anywhere in the cluster."""

    def testFlagsFirstMiddleLast(self):
        self.assertEqual(values(cluster().parse(["-vxz"])), {"-v": True, "-x": True, "-z": True})

    def testFlagBeforeValueOption(self):
        self.assertEqual(values(cluster().parse(["-vf", "out.txt"])), {"-v": True, "-f": "out.txt"})

    def testFlagWithAttachedBooleanValue(self):
        self.assertEqual(values(cluster().parse(["-xv=false"])), {"-x": True, "-v": False})


class TestRequiredValueCluster(TestCase):
    """An option that needs a value, at each place of the cluster."""

    def testFirstTakesRemainderAsValue(self):
        self.assertEqual(values(cluster().parse(["-fvx"])), {"-f": "vx"})

    def testMiddleTakesRemainderAsValue(self):
        self.assertEqual(values(cluster().parse(["-vfx"])), {"-v": True, "-f": "x"})

    def testLastTakesNextToken(self):
        self.assertEqual(
            values(cluster().parse(["-vxf", "out.txt"])),
            {"-v": True, "-x": True, "-f": "out.txt"},
        )

    def testLastWithoutValueFails(self):
        with self.assertRaises(MissingParameterError) as context:
            cluster().parse(["-vxf"])
        self.assertEqual(context.exception.message, "missing required parameter for option '-f' (F)")

    def testAttachedWithSeparator(self):
        self.assertEqual(
            values(cluster().parse(["-vxf=out.txt"])),
            values(cluster().parse(["-v", "-x", "-f=out.txt"])),
        )
        self.assertEqual(cluster().parse(["-vxf=out.txt"]).value("-f"), "out.txt")


class TestOptionalValueCluster(TestCase):
    """An option whose value may be omitted, at each place of the cluster."""

    def testFirstTakesRemainderAsValue(self):
        self.assertEqual(values(cluster().parse(["-ov"])), {"-o": "v"})

    def testMiddleTakesRemainderAsValue(self):
        self.assertEqual(values(cluster().parse(["-vox"])), {"-v": True, "-o": "x"})

    def testLastTakesNextValue(self):
        self.assertEqual(values(cluster().parse(["-vo", "red"])), {"-v": True, "-o": "red"})

    def testLastBeforeOptionTakesEmptyValue(self):
        self.assertEqual(values(cluster().parse(["-vo", "-x"])), {"-v": True, "-o": "", "-x": True})

    def testLastAtEndTakesEmptyValue(self):
        self.assertEqual(values(cluster().parse(["-xo"])), {"-x": True, "-o": ""})


class TestClusterLeftovers(TestCase):
    """Characters that are not options."""

    def testUnknownTail(self):
        result = cluster(unmatched_arguments_allowed=True).parse(["-vq"])
        self.assertEqual(result.unmatched, ("-q",))
        self.assertIs(result.value("-v"), True)

    def testUnknownHead(self):
        result = cluster(unmatched_arguments_allowed=True).parse(["-qv"])
        self.assertEqual(result.unmatched, ("-qv",))
        self.assertFalse(result.has_matched("-v"))

    def testUnknownTailFailsByDefault(self):
        with self.assertRaises(UnmatchedArgumentError) as context:
            cluster().parse(["-vq"])
        self.assertEqual(context.exception.unmatched, ("-q",))

    def testClusteringDisabled(self):
        result = cluster(posix_clustered_short_options_allowed=False, unmatched_arguments_allowed=True).parse(["-vx"])
        self.assertEqual(result.unmatched, ("-vx",))
        self.assertEqual(dict(result.matched_options), {})


if __name__ == "__main__":
    unittest.main()
