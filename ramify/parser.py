"""
Ramify parser: walk a command tree against an argv-like token stream.

What this module provides
- Context: the read-only view handed to every callback (argv, offset, the
  name being processed, the parser, the active command, depth and route).
- ParseResult: the selected command and its route; calling it runs the
  command's callback.
- Parser: owns the option prefix, the value separator, the root command and
  the runtime configuration; parse(argc, argv) does the work.
- help_option() / version_option(name, version): reusable preset Options.
- invoke(object, prompt): tokenize, parse and run in one call.

Algorithm (per command)
1. option phase
   • tokens starting with the prefix are options; the first one that does not
     ends the phase.
   • one or two prefix characters are stripped; the name runs up to the first
     separator and the inline value is everything after it.
   • without an inline value, the following token is taken as the value when
     it exists and does not start with the prefix ('--name value').
   • every option of the active command whose aliases contain the name is
     invoked; REQUIRED options without a value and names nobody claims are
     errors.
2. positional dispatch
   • with children declared, the next token must name one of them: parsing
     recurses into it past that token.
   • with arguments declared, the remaining tokens are bound in order.
   • with neither, the command is selected (trailing tokens are ignored unless
     the parser is strict).
3. the first fault anywhere aborts the whole parse (fail-fast, destinations
   already written keep their values).

Errors
- Every failure is raised as a ramify.faults.CommandException subclass whose
  message is suitable for the end user; see ramify.faults.report().
"""
import difflib
import logging
import os.path
import shlex
import sys
from collections.abc import Iterable
from typing import Any, NamedTuple

from .arguments import Expectation, Option
from .commands import Command
from .faults import (
    CommandException,
    DelegatedCommandError,
    FaultCode,
    InvalidArgumentCountError,
    NegativeArgumentCountError,
    NotEnoughArgumentsError,
    OptionValueRequiredError,
    RecursionLimitError,
    UnexpectedArgumentsError,
    UnexpectedOptionError,
    UnknownCommandError,
    UnsupportedCommandError,
    getdoc,
    trigger,
)
from .formatters import HelpFormatter, VersionPrinter
from .utils import IntrospectableType, Unset, coalesce, ordinal, rename

logger = logging.getLogger(__name__)


class Context(NamedTuple):
    """
    Transient, read-only view of the parse position.

    - argv: tuple of the tokens being parsed (program name first).
    - offset: index of the token being processed.
    - name: option name (prefix stripped), argument name or command name.
    - parser: the Parser running this parse (prefix, separator, config).
    - command: the active Command.
    - depth: subcommand nesting level (0 for the root).
    - route: command names from the program name down to the active command.
    """
    argv: tuple[str, ...]
    offset: int
    name: str
    parser: Any
    command: Command
    depth: int = 0
    route: tuple[str, ...] = ()


class ParseResult(NamedTuple):
    """
    Outcome of a successful parse: the selected command and its route.

    Calling the result runs the command's callback. A callback returning a
    fault (or a message string) has it raised; any other return value is
    passed through.
    """
    command: Command
    route: tuple[str, ...]

    def __call__(self):
        outcome = self.command()
        if isinstance(outcome, str):
            outcome = _delegated(outcome)
        if isinstance(outcome, CommandException):
            trigger(outcome, route=self.route)
        return outcome


def _delegated(message):
    return DelegatedCommandError(
        message,
        title="command failed",
        code=FaultCode.DELEGATED_ERROR,
        docs=getdoc(FaultCode.DELEGATED_ERROR),
    )


def _check_character(label, value, /):
    if not isinstance(value, str):
        raise TypeError(f"parser {label} must be a string")
    if len(value) != 1 or value.isalnum() or value.isspace():
        raise ValueError(f"parser {label} must be a single punctuation character")
    return value


class Parser(metaclass=IntrospectableType):
    """
    Command-line parser over a tree of Commands.

    Configuration (keyword-only, validated at construction)
    - prefix: str = "-"
      Option prefix character; '-x' and '--long' both strip it.
    - separator: str = "="
      Separates an option name from its inline value.
    - name: Unset | str
      Program name used by invoke() for str/iterable prompts; defaults to the
      basename of sys.argv[0].
    - strict: bool = False
      Reject trailing tokens on commands with neither children nor arguments.
    - limit: int = 64
      Maximum subcommand nesting depth.
    - colorful, fancy: bool
      Styling of the help/version presets and of rendered faults.

    The parser holds no per-parse state: parsing the same argv twice gives
    equal results and the same callback trace.
    """

    __introspectable__ = (
        "root",
        "prefix",
        "separator",
        "name",
        "strict",
        "limit",
        "colorful",
        "fancy",
    )

    __displayable__ = (
        "root",
        "prefix",
        "separator",
        "strict",
    )

    def __new__(
            cls,
            source=Unset,
            /,
            options=(),
            arguments=(),
            commands=Unset,
            *,
            prefix="-",
            separator="=",
            name=Unset,
            strict=False,
            limit=64,
            colorful=True,
            fancy=False
    ):
        """
        Construct a Parser.

        Parameters
        - source: Unset | str | Command
          A Command becomes the root as-is. Otherwise a root "default action"
          (idle callback) is built with `source` as its description and the
          given options/arguments/commands.
        """
        if isinstance(source, Command):
            if options or arguments or commands is not Unset:
                raise TypeError(f"{cls.__typename__} cannot take options, arguments or commands with a root command")
            root = source
        else:
            if source is not Unset and source is not None and not isinstance(source, str):
                raise TypeError(f"{cls.__typename__} source must be a description or a command")
            root = Command(Unset, source, options, arguments, commands)

        prefix = _check_character("prefix", prefix)
        separator = _check_character("separator", separator)
        if prefix == separator:
            raise ValueError(f"{cls.__typename__} prefix and separator must differ")

        if name is not Unset and (not isinstance(name, str) or not name.strip()):
            raise ValueError(f"{cls.__typename__} name must be a non-empty string")
        if not isinstance(limit, int) or isinstance(limit, bool):
            raise TypeError(f"{cls.__typename__} limit must be an int")
        if limit < 1:
            raise ValueError(f"{cls.__typename__} limit must be positive")

        self = super().__new__(cls)
        self._root = root
        self._prefix = prefix
        self._separator = separator
        self._name = coalesce(name)
        self._strict = bool(strict)
        self._limit = limit
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        return self

    @property
    def descr(self):
        return self._root.descr

    @property
    def options(self):
        return self._root.options

    @property
    def arguments(self):
        return self._root.arguments

    @property
    def commands(self):
        return self._root.children

    def command(self, name, /, *args, **kwargs):
        """
        Decorator attaching a subcommand to the root (see Command.command).
        """
        return self._root.command(name, *args, **kwargs)

    def attach(self, name, command, /):
        return self._root.attach(name, command)

    def parse(self, argc, argv, /):
        """
        Parse the first `argc` tokens of `argv` (program name first).

        Returns
        - ParseResult for the selected command; run it by calling it.

        Raises
        - NegativeArgumentCountError when argc < 0.
        - InvalidArgumentCountError when argv holds fewer than argc tokens.
        - any other CommandException raised while walking the tree.
        - TypeError when argc is not an int or a token is not a string.
        """
        if not isinstance(argc, int) or isinstance(argc, bool):
            raise TypeError("parse() argc must be an int")
        if argc < 0:
            trigger(NegativeArgumentCountError(
                "Number of arguments can not be negative",
                title="negative argument count",
                code=FaultCode.NEGATIVE_ARGUMENT_COUNT,
                hint="pass the length of argv as argc",
                docs=getdoc(FaultCode.NEGATIVE_ARGUMENT_COUNT),
            ), parser=self)

        argv = tuple(argv)
        if argc > len(argv):
            trigger(InvalidArgumentCountError(
                "Invalid number of arguments!",
                title="invalid argument count",
                code=FaultCode.INVALID_ARGUMENT_COUNT,
                hint="argc is %d but only %d tokens were given" % (argc, len(argv)),
                docs=getdoc(FaultCode.INVALID_ARGUMENT_COUNT),
            ), parser=self)
        argv = argv[:argc]
        for token in argv:
            if not isinstance(token, str):
                raise TypeError("parse() argv must contain only strings")

        if argc < 1:
            context = Context(argv, 0, "", self, self._root, 0, ())
        else:
            context = Context(argv, 1, argv[0], self, self._root, 0, (argv[0],))

        logger.debug("parsing %d tokens", argc)
        return self._parse_command(context)

    def _split(self, token, /):
        """
        Split an option token into (name, value-or-None).
        """
        start = 2 if token[1:].startswith(self._prefix) else 1
        if start >= len(token):
            return "", None
        name, separator, value = token[start:].partition(self._separator)
        return name, value if separator else None

    def _handle(self, spec, value, context, /):
        """
        Run one Option/Argument callback and surface its fault, if any.
        """
        try:
            fault = spec(value, context)
        except CommandException as exception:
            fault = exception
        if fault is None:
            return
        if isinstance(fault, str):
            fault = _delegated(fault)
        if not isinstance(fault, CommandException):
            name = getattr(spec.callback, "__name__", type(spec.callback).__name__)
            raise TypeError(f"callback {name!r} must return None, a string or a fault")
        trigger(
            fault,
            parser=self,
            route=context.route,
            name=context.name,
            value=value,
            index=context.offset,
            hint="check the value from %s position" % ordinal(context.offset),
        )

    def _parse_options(self, context, /):
        """
        Run the option phase; return the offset of the first positional token.
        """
        argv = context.argv
        command = context.command
        index = context.offset

        while index < len(argv):
            token = argv[index]
            if not token.startswith(self._prefix):
                break

            name, value = self._split(token)
            position = index
            if value is None and index + 1 < len(argv) and not argv[index + 1].startswith(self._prefix):
                index += 1
                value = argv[index]

            logger.debug("option %r resolved to value %r at %d", name, value, position)
            scope = context._replace(offset=position, name=name)
            matched = 0
            for option in command.options:
                if not option.matches(name):
                    continue
                if value is None and option.expectation is Expectation.REQUIRED:
                    trigger(OptionValueRequiredError(
                        f"Option '{name}' expects a value, none were given",
                        title="option value required",
                        code=FaultCode.OPTION_VALUE_REQUIRED,
                        hint="pass it as %s%s<value> or follow it with the value" % (token, self._separator),
                        name=name,
                        index=position,
                        docs=getdoc(FaultCode.OPTION_VALUE_REQUIRED),
                    ), parser=self, route=context.route)
                matched += 1
                self._handle(option, value, scope)

            if matched < 1:
                trigger(UnexpectedOptionError(
                    f"Unexpected option '{name}'",
                    title="unexpected option",
                    code=FaultCode.UNEXPECTED_OPTION,
                    hint=self._suggest(
                        name,
                        [alias for option in command.options for alias in option.names],
                        "option",
                        context.route,
                    ),
                    name=name,
                    token=token,
                    index=position,
                    docs=getdoc(FaultCode.UNEXPECTED_OPTION),
                ), parser=self, route=context.route)

            index += 1

        return index

    def _parse_command(self, context, /):
        if context.depth > self._limit:
            trigger(RecursionLimitError(
                "Command nesting is deeper than %d levels" % self._limit,
                title="nesting too deep",
                code=FaultCode.RECURSION_LIMIT,
                hint="raise the parser limit or flatten the command tree",
                docs=getdoc(FaultCode.RECURSION_LIMIT),
            ), parser=self, route=context.route)

        offset = self._parse_options(context)
        command = context.command
        argv = context.argv

        if offset < len(argv):
            if command.children:
                token = argv[offset]
                try:
                    child = command.children[token]
                except KeyError:
                    trigger(UnsupportedCommandError(
                        f"Command '{token}' not supported",
                        title="unsupported command",
                        code=FaultCode.UNSUPPORTED_COMMAND,
                        hint=self._suggest(token, command.children.keys(), "command", context.route),
                        name=token,
                        index=offset,
                        docs=getdoc(FaultCode.UNSUPPORTED_COMMAND),
                    ), parser=self, route=context.route)
                logger.debug("entering subcommand %r at depth %d", token, context.depth + 1)
                return self._parse_command(context._replace(
                    offset=offset + 1,
                    name=token,
                    command=child,
                    depth=context.depth + 1,
                    route=context.route + (token,),
                ))

            if command.arguments:
                return self._parse_arguments(context._replace(offset=offset, name=""))

            if self._strict:
                trigger(UnexpectedArgumentsError(
                    "Unexpected arguments given",
                    title="unexpected arguments",
                    code=FaultCode.UNEXPECTED_ARGUMENTS,
                    hint="remove everything from %s position" % ordinal(offset),
                    index=offset,
                    docs=getdoc(FaultCode.UNEXPECTED_ARGUMENTS),
                ), parser=self, route=context.route)

            logger.debug("ignoring %d trailing tokens", len(argv) - offset)
            return ParseResult(command, context.route)

        if command.children or command.arguments:
            trigger(NotEnoughArgumentsError(
                "Not enough arguments",
                title="not enough arguments",
                code=FaultCode.NOT_ENOUGH_ARGUMENTS,
                hint="expected %s" % (
                    "a command" if command.children else
                    " ".join(f"<{argument.name}>" for argument in command.arguments)
                ),
                docs=getdoc(FaultCode.NOT_ENOUGH_ARGUMENTS),
            ), parser=self, route=context.route)

        logger.debug("selected command %r", context.route[-1] if context.route else "")
        return ParseResult(command, context.route)

    def _parse_arguments(self, context, /):
        """
        Bind the remaining tokens to the active command's arguments, in order.
        """
        arguments = context.command.arguments
        tokens = context.argv[context.offset:]

        if len(tokens) < len(arguments):
            missing = arguments[len(tokens):]
            trigger(NotEnoughArgumentsError(
                "Not enough arguments",
                title="not enough arguments",
                code=FaultCode.NOT_ENOUGH_ARGUMENTS,
                hint="missing %s" % " ".join(f"<{argument.name}>" for argument in missing),
                docs=getdoc(FaultCode.NOT_ENOUGH_ARGUMENTS),
            ), parser=self, route=context.route)
        if len(tokens) > len(arguments):
            index = context.offset + len(arguments)
            trigger(UnexpectedArgumentsError(
                "Unexpected arguments given",
                title="unexpected arguments",
                code=FaultCode.UNEXPECTED_ARGUMENTS,
                hint="remove everything from %s position" % ordinal(index),
                index=index,
                docs=getdoc(FaultCode.UNEXPECTED_ARGUMENTS),
            ), parser=self, route=context.route)

        for index, (argument, token) in enumerate(zip(arguments, tokens), start=context.offset):
            logger.debug("argument %r bound to %r", argument.name, token)
            self._handle(argument, token, context._replace(offset=index, name=argument.name))

        return ParseResult(context.command, context.route)

    @staticmethod
    def _suggest(name, candidates, kind, route, /):
        program = " ".join(route) or "<program>"
        suggestions = difflib.get_close_matches(name, list(candidates), 1)
        if suggestions:
            return "did you mean %r? you can also run '%s --help' to see all %ss" % (suggestions[0], program, kind)
        return "run '%s --help' to see all %ss" % (program, kind)

    def __invoke__(self, prompt=Unset, /):
        """
        Tokenize `prompt`, parse it and run the selected command.

        - Unset: sys.argv as-is.
        - str: shlex.split(prompt), with the program name prepended.
        - Iterable[str]: the tokens, with the program name prepended.
        """
        program = coalesce(self._name, os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "ramify")
        if prompt is Unset:
            tokens = list(sys.argv)
        elif isinstance(prompt, str):
            tokens = [program, *shlex.split(prompt)]
        elif isinstance(prompt, Iterable):
            tokens = [program]
            for item in prompt:
                if not isinstance(item, str):
                    raise TypeError("__invoke__() argument must be a string or an iterable of strings")
                tokens.append(item)
        else:
            raise TypeError("__invoke__() argument must be a string or an iterable of strings")

        return self.parse(len(tokens), tokens)()


def help_option(descr="Print help", /):
    """
    Preset Option printing help (aliases 'h' and 'help').

    - without a value: help for the active command.
    - with a value: help for that subcommand of the active command, or an
      UnknownCommandError when there is none.
    """
    @rename("on_help")
    def callback(value, context, /):
        parser = context.parser
        formatter = HelpFormatter(parser.prefix, colorful=parser.colorful, fancy=parser.fancy)
        command = context.command
        route = context.route
        if value is not None:
            try:
                command = command.children[value]
            except KeyError:
                return UnknownCommandError(
                    f"Unknown command '{value}'",
                    title="unknown command",
                    code=FaultCode.UNKNOWN_COMMAND,
                    hint="run '%s --help' to see all commands" % " ".join(route),
                    name=value,
                    docs=getdoc(FaultCode.UNKNOWN_COMMAND),
                )
            route = route + (value,)
        formatter(route, command.descr, command.options, command.arguments, command.children)
        return None

    return Option(("h", "help"), descr, callback, expectation=Expectation.NOT_REQUIRED)


def version_option(name, version, /, descr="Print version"):
    """
    Preset Option printing "<name> <version>" (aliases 'v' and 'version').
    """
    if not isinstance(name, str) or not name:
        raise ValueError("version_option() name must be a non-empty string")

    @rename("on_version")
    def callback(value, context, /):
        parser = context.parser
        VersionPrinter(name, version, colorful=parser.colorful, fancy=parser.fancy)()
        return None

    return Option(("v", "version"), descr, callback, expectation=Expectation.NOT_REQUIRED)


def invoke(object, prompt=Unset, /):
    """
    Convenience runner: parse `prompt` and run the selected command.

    - object: a Parser (anything implementing __invoke__) or a Command, which
      is wrapped into a default Parser first.
    - prompt: see Parser.__invoke__.

    Returns whatever the selected callback returned. Faults are raised; the
    caller decides how to report them (ramify.faults.report) and how to exit.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)
    if isinstance(object, Command):
        return invoke(Parser(object), prompt)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must be a parser or a command") from None


__all__ = (
    "Context",
    "ParseResult",
    "Parser",
    "help_option",
    "version_option",
    "invoke",
)
