"""
Argloom tracing: opt-in diagnostics of parser decisions.

Lines are printed as "[argloom LEVEL] message" on a rich stderr console.
The level is read from the ARGLOOM_TRACE environment variable when a Tracer is
built without an explicit level:
- unset              → WARN
- "" or "true"       → INFO
- OFF/WARN/INFO/DEBUG (any case)

Styles per level can be overridden by the host through __styles__ in __main__
("trace-warn", "trace-info", "trace-debug").
"""
import os
from collections import defaultdict
from enum import IntEnum

from rich.console import Console
from rich.text import Text

from .utils import Unset


class TraceLevel(IntEnum):
    OFF = 0
    WARN = 1
    INFO = 2
    DEBUG = 3

    def enabled(self, other, /):
        return self >= other

    @classmethod
    def lookup(cls, key, /):
        """
        Map a configuration string to a level (None means unset).

        Raises
        - ValueError: unknown level name.
        """
        if key is None:
            return cls.WARN
        if not key.strip() or key.strip().lower() == "true":
            return cls.INFO
        try:
            return cls[key.strip().upper()]
        except KeyError:
            raise ValueError(
                "trace level must be one of %s, got %r" % (", ".join(cls.__members__), key)
            ) from None


class Tracer:
    """
    Leveled printer used by the interpreter.

    Parameters
    - level: TraceLevel | str | Unset
      Defaults to the ARGLOOM_TRACE environment variable.
    - console: rich Console | Unset
      Defaults to a stderr console (tests pass a recording console).
    """

    def __init__(self, level=Unset, /, *, console=Unset):
        if level is Unset:
            level = TraceLevel.lookup(os.environ.get("ARGLOOM_TRACE"))
        elif isinstance(level, str):
            level = TraceLevel.lookup(level)
        elif not isinstance(level, TraceLevel):
            raise TypeError("tracer level must be a trace-level or a string")
        self.level = level
        self.console = Console(stderr=True) if console is Unset else console

    def _print(self, level, message, /):
        if not self.level.enabled(level):
            return
        styles = defaultdict(str, {
            "trace-warn": "bold #FFB454",
            "trace-info": "#00E5FF",
            "trace-debug": "dim",
        } | getattr(__import__("__main__"), "__styles__", {}))
        self.console.print(Text.assemble(
            Text("[argloom %s] " % level.name, styles["trace-" + level.name.lower()]),
            Text(message),
        ), soft_wrap=True)

    def warn(self, message, /):
        self._print(TraceLevel.WARN, message)

    def info(self, message, /):
        self._print(TraceLevel.INFO, message)

    def debug(self, message, /):
        self._print(TraceLevel.DEBUG, message)

    @property
    def is_warn(self):
        return self.level.enabled(TraceLevel.WARN)

    @property
    def is_info(self):
        return self.level.enabled(TraceLevel.INFO)

    @property
    def is_debug(self):
        return self.level.enabled(TraceLevel.DEBUG)


__all__ = (
    "TraceLevel",
    "Tracer",
)
