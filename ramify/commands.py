"""
Ramify command layer: the nodes of the command tree.

What this module provides
- Command: a node owning
  • a callback (the action run when this command is selected),
  • a description (defaults to the callback docstring),
  • Options (flag-style inputs, aliases unique among siblings),
  • Arguments (positional inputs, bound in declaration order),
  • children: a mapping of subcommand name → Command (unique names).
- command(...): factory/decorator building a Command from a callback.

Core ideas
- Commands form a tree; the parser owns the root (the "default action") and
  walks it without mutating anything. Children may be attached while the tree
  is being built (Command.command / Command.attach), options and arguments are
  fixed at construction.
- The callback takes no parameters: values reach the application through the
  destinations bound to Options and Arguments. It returns None on success, or
  a fault (or a plain message string) to report a failure.

Quick start
    from ramify import Parser, Option, Slot, boolean

    force = Slot(boolean, False)
    parser = Parser("deployment tool")

    @parser.command("deploy", options=[Option("force", "Overwrite", force)])
    def deploy():
        "Deploy the current build."
        ...

See also
- ramify.arguments for Option/Argument semantics.
- ramify.parser for the parsing algorithm.
"""
import builtins
import inspect
import logging
from collections.abc import Iterable, Mapping

from .arguments import Argument, Option
from .utils import IntrospectableType, Unset, coalesce, rename

logger = logging.getLogger(__name__)


@rename("idle")
def _idle():
    """
    Default action: do nothing and succeed.
    """
    return None


def _sanitize_options(cls, options, /):
    if not isinstance(options, Iterable) or isinstance(options, str):
        raise TypeError(f"{cls.__typename__} options must be an iterable of options")
    options = list(options)
    seen = {}
    for option in options:
        if not isinstance(option, Option):
            raise TypeError(f"{cls.__typename__} options must be an iterable of options")
        for name in option.names:
            # Sibling aliases must be distinct so a token never fires two options.
            if seen.setdefault(name, option) is not option:
                raise ValueError(f"{cls.__typename__} option name {name!r} is already in use")
    return options


def _sanitize_arguments(cls, arguments, /):
    if not isinstance(arguments, Iterable) or isinstance(arguments, str):
        raise TypeError(f"{cls.__typename__} arguments must be an iterable of arguments")
    arguments = list(arguments)
    seen = set()
    for argument in arguments:
        if not isinstance(argument, Argument):
            raise TypeError(f"{cls.__typename__} arguments must be an iterable of arguments")
        if argument.name in seen:
            raise ValueError(f"{cls.__typename__} argument name {argument.name!r} is already in use")
        seen.add(argument.name)
    return arguments


class Command(metaclass=IntrospectableType):
    """
    Node of the command tree.

    Responsibilities
    - Introspection: exposes descr, callback, options, arguments and children
      as read-only properties (tuples / mapping proxies).
    - Composition: children are attached by name; names are unique.
    - Invocation: calling the command runs its callback.

    Notes
    - A Command does not know its own name: the name is the key under which
      its parent holds it, so one Command may be mounted under several names.
    """

    __introspectable__ = (
        "descr",
        "callback",
        "options",
        "arguments",
        "children",
    )

    __displayable__ = (
        "descr",
        "options",
        "arguments",
        "children",
    )

    def __new__(cls, source=Unset, /, descr=Unset, options=(), arguments=(), commands=Unset):
        """
        Construct a Command.

        Parameters
        - source: Unset | Callable[[], Any]
          The action. Unset means the idle action (always succeeds).
        - descr: Unset | str
          Description for help. Unset defers to the callback docstring.
        - options: Iterable[Option]
          Sibling aliases must not overlap.
        - arguments: Iterable[Argument]
          Bound to positional tokens in this order. Names must be unique.
        - commands: Unset | Mapping[str, Command]
          Initial children.

        Raises
        - TypeError/ValueError on invalid shapes, duplicate aliases, duplicate
          argument names or duplicate children.
        """
        callback = coalesce(source, _idle)
        if not builtins.callable(callback):
            raise TypeError(f"{cls.__typename__} callback must be callable")

        descr = coalesce(descr, inspect.getdoc(callback) if source is not Unset else None)
        if descr is not None and not isinstance(descr, str):
            raise TypeError(f"{cls.__typename__} description must be a string")

        self = super().__new__(cls)
        self._callback = callback
        self._descr = descr
        self._options = _sanitize_options(cls, options)
        self._arguments = _sanitize_arguments(cls, arguments)
        self._children = {}

        commands = coalesce(commands, {})
        if not isinstance(commands, Mapping):
            raise TypeError(f"{cls.__typename__} commands must be a mapping of names to commands")
        for name, child in commands.items():
            self.attach(name, child)
        return self

    def attach(self, name, command, /):
        """
        Register `command` as the child called `name` and return it.

        Raises
        - TypeError when command is not a Command or name is not a string.
        - ValueError when the name is empty, contains whitespace, is already in
          use, or when attaching would create a cycle.
        """
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} subcommand name must be a string")
        if not name or any(char.isspace() for char in name):
            raise ValueError(f"{type(self).__typename__} subcommand name {name!r} is not valid")
        if not isinstance(command, Command):
            raise TypeError(f"{type(self).__typename__} subcommand must be a command")
        if command is self or self in command.descendants():
            raise ValueError(f"{type(self).__typename__} subcommand {name!r} would create a cycle")
        if self._children.setdefault(name, command) is not command:
            raise ValueError(f"{type(self).__typename__} subcommand name {name!r} is already in use")
        logger.debug("attached subcommand %r", name)
        return command

    def command(self, name, /, *args, **kwargs):
        """
        Decorator creating a child Command from a callback.

        The arguments after `name` are forwarded to Command (descr, options,
        arguments, commands). Returns the new Command, so nested trees can be
        built with @parent.command("child") on the returned object.
        """
        @rename("command")
        def wrapper(source, /):
            if not callable(source):
                raise TypeError("@command() must be applied to a callable")
            return self.attach(name, Command(source, *args, **kwargs))

        return wrapper

    def descendants(self):
        """
        Yield every Command below this one (depth-first, each node once).
        """
        seen = set()
        pending = list(self._children.values())
        while pending:
            command = pending.pop()
            if id(command) in seen:
                continue
            seen.add(id(command))
            yield command
            pending.extend(command._children.values())

    def __call__(self):
        return self._callback()


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command or return a decorator to build it later.

    Invocation modes
    - Direct callback:
        cmd = command(func, descr="x", options=[...])
    - Decorator:
        @command(descr="x", options=[...])
        def func(): ...
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(source, *args, **kwargs)

    return wrapper(source) if source is not Unset else wrapper


__all__ = (
    "Command",
    "command",
)
