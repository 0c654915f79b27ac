"""
Ramify output collaborators: help and version rendering (rich).

- HelpFormatter(prefix, ...)(route, descr, options, arguments, commands)
  prints a usage line, the description and one section per non-empty group
  (options, arguments, commands).
- VersionPrinter(name, version, ...)() prints "<name> <version>".

Both write to standard output through a rich Console created at call time, so
redirections of sys.stdout are honored. Palettes can be overridden with a
__styles__ mapping in __main__; colorful=False strips styling and fancy=True
wraps the output in a panel.
"""
from collections import defaultdict

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .arguments import Expectation
from .utils import Unset, coalesce


def _palette(defaults):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


class _Renderer:
    """
    Shared styling plumbing for the formatters.
    """

    def __init__(self, colorful, fancy, console):
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._console = console

    def styler(self, style):
        return self.styles[style] if self._colorful else ""

    def text(self, fragment, style=""):
        if not fragment:
            return Text("")
        if not self._colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), self.styler(style))

    def emit(self, renderable, title):
        if self._fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", title.upper(), " ", "]", style=self.styler("panel-title")),
                title_align="left",
            )
        coalesce(self._console, Console(highlight=False)).print(renderable)


class HelpFormatter(_Renderer):
    """
    Render help for one command of the tree.

    Parameters
    - prefix: str
      Option prefix of the parser; single-character aliases get it once
      ("-v"), longer aliases twice ("--version").
    - colorful, fancy: bool
      Styling switches (see module docs).
    - console: Unset | rich.console.Console
      Explicit console; defaults to a fresh stdout console per call.
    """

    def __init__(self, prefix, /, colorful=True, fancy=False, console=Unset):
        super().__init__(colorful, fancy, console)
        self._prefix = prefix
        self.styles = _palette({
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "description-section": "italic #A3A3A3",
            "group-label": "bold #FFFFFF",
            "option-name": "bold #00E6FF",
            "metavar": "bold #FFD600",
            "argument-name": "bold #FFD600",
            "children": "bold #36C5F0",
            "argument-description": "#9CA3AF",
            "panel-title": "bold #FF4D94",
        })

    def aliases(self, option, /):
        """
        Return the prefixed aliases of an option, short ones first.
        """
        shorts = sorted((name for name in option.names if len(name) == 1), key=lambda x: (len(x), x))
        longs = sorted((name for name in option.names if len(name) != 1), key=lambda x: (len(x), x))
        return [self._prefix + name for name in shorts] + [self._prefix * 2 + name for name in longs]

    def usage(self, route, options, arguments, commands, /):
        usage = Text()
        usage.append("usage", self.styler("usage-label")).append(":")
        usage.append(" ")
        usage.append(self.text(" ".join(route), "program-name"))
        if options:
            usage.append(" [options]")
        for argument in arguments:
            usage.append(" ").append(self.text(f"<{argument.name}>", "argument-name"))
        if commands:
            usage.append(" ").append(self.text("<command>", "children"))
        return usage

    def table(self, label, rows, /):
        table = Table.grid(padding=(0, 4))
        table.add_column(no_wrap=True)
        table.add_column()
        for name, descr in rows:
            table.add_row(Text("  ").append(name), self.text(descr, "argument-description"))
        return Group(Text(""), self.text(label, "group-label").append(":"), table)

    def __call__(self, route, descr, options=(), arguments=(), commands=None, /):
        commands = commands or {}
        renders = [self.usage(route, options, arguments, commands)]

        if descr:
            renders.append(self.text(descr, "description-section"))

        if options:
            rows = []
            for option in options:
                name = Text(", ").join(self.text(alias, "option-name") for alias in self.aliases(option))
                match option.expectation:
                    case Expectation.REQUIRED:
                        name.append(" ").append(self.text("<value>", "metavar"))
                    case Expectation.OPTIONAL:
                        name.append(" ").append(self.text("[<value>]", "metavar"))
                rows.append((name, option.descr))
            renders.append(self.table("options", rows))

        if arguments:
            renders.append(self.table("arguments", [
                (self.text(argument.name, "argument-name"), argument.descr) for argument in arguments
            ]))

        if commands:
            renders.append(self.table("commands", [
                (self.text(name, "children"), command.descr) for name, command in commands.items()
            ]))

        self.emit(Group(*renders), f"{route[0] if route else ''} help")


class VersionPrinter(_Renderer):
    """
    Render "<name> <version>" on standard output.
    """

    def __init__(self, name, version, /, colorful=True, fancy=False, console=Unset):
        super().__init__(colorful, fancy, console)
        self._name = name
        self._version = version
        self.styles = _palette({
            "program-name": "bold #FF4D94",
            "program-version": "bold #00E6FF",
            "panel-title": "bold #FF4D94",
        })

    def __call__(self):
        self.emit(
            Text(" ").join((
                self.text(self._name, "program-name"),
                self.text(str(self._version), "program-version"),
            )),
            f"{self._name} version",
        )


__all__ = (
    "HelpFormatter",
    "VersionPrinter",
)
