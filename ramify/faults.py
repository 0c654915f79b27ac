"""
Ramify faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- CommandException: base type that carries message + options and knows how to
  render itself in a friendly, actionable way (rich).
- trigger(): central entry point to surface a fault from the parser (merges
  context, then raises).
- report(): render a fault to stderr; meant for the host application, the
  library itself never calls it.
- getdoc(): per-code documentation supplied by the host application.

UX goals
- Short titles, one-sentence bodies, a single clear hint.
- Position-aware hints: when the offending token is known, the hint names its
  ordinal position ("from third position").

Integration
- The parser and the binding callbacks build faults and hand them to
  trigger(fault, **ctx), which raises them with the context attached.
- Callbacks may also *return* a fault; the parser triggers it on their behalf.
- The host catches CommandException, calls report(fault) and exits non-zero.
"""
import copy
import logging
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

logger = logging.getLogger(__name__)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the parser (stable identifiers).

    grouping (by high-level domain)
    - invocation (1100x)
      • NEGATIVE_ARGUMENT_COUNT, INVALID_ARGUMENT_COUNT
    - options (1110x)
      • UNEXPECTED_OPTION, OPTION_VALUE_REQUIRED
    - routing (1120x)
      • UNSUPPORTED_COMMAND, UNKNOWN_COMMAND
    - positionals (1130x)
      • NOT_ENOUGH_ARGUMENTS, UNEXPECTED_ARGUMENTS
    - limits (1140x)
      • RECURSION_LIMIT
    - conversion (1150x)
      • INVALID_VALUE
    - delegated (1160x)
      • DELEGATED_ERROR

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- invocation errors ---
    NEGATIVE_ARGUMENT_COUNT = 11001
    INVALID_ARGUMENT_COUNT  = 11002

    # --- option errors ---
    UNEXPECTED_OPTION       = 11101
    OPTION_VALUE_REQUIRED   = 11102

    # --- routing errors ---
    UNSUPPORTED_COMMAND     = 11201
    UNKNOWN_COMMAND         = 11202

    # --- positional errors ---
    NOT_ENOUGH_ARGUMENTS    = 11301
    UNEXPECTED_ARGUMENTS    = 11302

    # --- limits ---
    RECURSION_LIMIT         = 11401

    # --- conversion errors ---
    INVALID_VALUE           = 11501

    # --- delegated errors ---
    DELEGATED_ERROR         = 11601

    def normalize(self):
        """
        Label shown for this code in rendered faults.

        A host may remap codes through a `__codes__` dict in __main__ (for
        example to prefix them with its own product id).
        """
        labels = getattr(sys.modules["__main__"], "__codes__", {})
        return str(labels.get(self, self.value))


class CommandException(Exception):
    """
    base class of every fault raised while parsing a command line.

    carries
    - message: the one-sentence, human-readable description (str(fault)).
    - options: read-only mapping of rendering/context metadata such as
      title, code, hint, docs, parser, name, value, index and route.

    faults are immutable; copy.replace(fault, **options) returns a new fault
    with merged options, which is how trigger() attaches parse context.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return coalesce(self.message, "")

    def __rich__(self):
        main = sys.modules["__main__"]
        parser = self.options.get("parser")
        colorful = getattr(parser, "colorful", True)
        fancy = getattr(parser, "fancy", False)

        styles = defaultdict(str, {
            "prog-name": "bold #F2F2F2",
            "code": "bold #36C5F0",
            "error-title": "bold #FF5F87",
            "error-message": "#D0D0D0",
            "hint-arrow": "dim #87D787",
            "hint": "italic #87D787",
            "docs": "dim underline #36C5F0",
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        route = self.options.get("route") or ()
        prog = text(
            getattr(main, "__prog__", route[0] if route else getattr(parser, "name", None) or "ramify"),
            styler("prog-name")
        )
        code = self.options.get("code", FaultCode.DELEGATED_ERROR)

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize(), styler("code")),
            " | ",
            text(self.options.get("title", "error").title(), styler("error-title")),
            " ]"
        )
        renders = [text(self.message, styler("error-message"))]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))
        if docs := self.options.get("docs"):
            renders.append(text(docs, styler("docs")))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class NegativeArgumentCountError(CommandException): ...
class InvalidArgumentCountError(CommandException): ...
class UnexpectedOptionError(CommandException): ...
class OptionValueRequiredError(CommandException): ...
class UnsupportedCommandError(CommandException): ...
class UnknownCommandError(CommandException): ...
class NotEnoughArgumentsError(CommandException): ...
class UnexpectedArgumentsError(CommandException): ...
class RecursionLimitError(CommandException): ...
class InvalidValueError(CommandException): ...
class DelegatedCommandError(CommandException): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given parse context.

    contract
    - fault must provide a __replace__ method (see CommandException).
    - options only fill in what the fault does not carry yet, so a fault
      returned by a callback keeps its own title/code/hint.
    - the merged fault is raised; this function never returns normally.

    typical options
    - parser, route, name, value, index, title, code, hint, docs.
    """
    if not hasattr(fault, "__replace__") or not callable(fault.__replace__):
        raise TypeError("trigger() argument must have a __replace__ method")
    fault = copy.replace(fault, **{
        name: object for name, object in options.items() if name not in getattr(fault, "options", {})
    })
    logger.debug("raising %s: %s", type(fault).__name__, fault)
    raise fault from None


def report(fault, /, console=Unset):
    """
    render a fault (or any rich renderable) for the user.

    - console: Unset | rich.console.Console
      defaults to a Console bound to stderr.

    the host application is expected to call this and exit non-zero; the
    parser itself never writes to error streams.
    """
    coalesce(console, Console(stderr=True)).print(fault)


def getdoc(code, /):
    """
    Host-provided documentation line for `code`, or None.

    Looked up in a `__docs__` dict of __main__ keyed by FaultCode.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() expects a FaultCode")
    return getattr(sys.modules["__main__"], "__docs__", {}).get(code)


__all__ = (
    "CommandException",
    "NegativeArgumentCountError",
    "InvalidArgumentCountError",
    "UnexpectedOptionError",
    "OptionValueRequiredError",
    "UnsupportedCommandError",
    "UnknownCommandError",
    "NotEnoughArgumentsError",
    "UnexpectedArgumentsError",
    "RecursionLimitError",
    "InvalidValueError",
    "DelegatedCommandError",
    "FaultCode",
    "trigger",
    "report",
    "getdoc",
)
