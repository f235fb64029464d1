import sys
from pathlib import Path

from rich.pretty import pprint

from argloom import *

__prog__ = "demo"

demo = CommandSpec(
    "demo",
    Option("-v", "--verbose", type=bool, descr="Print more"),
    Option("-o", "--output", type=Path, descr="Where to write"),
    Option("-h", "--help", type=bool, usage_help=True),
    Positional("FILE", type=list[Path]),
    version="0.0.0",
)
demo.add_subcommand("show", CommandSpec(Option("-n", "--lines", type=int, default=10)))


if __name__ == '__main__':
    try:
        pprint(demo.parse(sys.argv[1:]))
    except CommandException as fault:
        trigger(fault, shell=True)
