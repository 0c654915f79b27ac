"""
Parser behavioral tests (option phase, dispatch, faults and presets).

Scope
- Validate token splitting, value lookahead and option matching.
- Validate subcommand recursion, positional binding and leaf dispatch.
- Validate the friendly faults raised for every structural failure.
- Validate help/version presets and the invoke() convenience runner.

Conventions
- Test method names follow CamelCase per project convention.
- Output checks capture stdout with contextlib.redirect_stdout.
"""
import contextlib
import functools
import io
import sys
import unittest
from unittest import TestCase, mock

from ramify import *


def _capture(function, *args):
    buffer = io.StringIO()
    with contextlib.redirect_stdout(buffer):
        outcome = function(*args)
    return outcome, buffer.getvalue()


class GreeterTest(TestCase):
    """Single-level parser with typed options."""

    def setUp(self):
        self.name = Slot(string, "")
        self.age = Slot(int32, 0)
        self.ratio = Slot(float32, 1.0)
        self.parser = Parser("Greeter", options=[
            Option(("n", "name"), "Who to greet", self.name),
            Option(("a", "age"), "Age in years", self.age),
            Option("ratio", "Scale", self.ratio),
        ])

    def testNameAndAge(self):
        argv = ["app", "--name=Alice", "--age", "30"]
        result = self.parser.parse(len(argv), argv)
        self.assertIs(result.command, self.parser.root)
        self.assertEqual(result.route, ("app",))
        self.assertEqual(self.name.value, "Alice")
        self.assertEqual(self.age.value, 30)
        self.assertIsNone(result())

    def testShortAliases(self):
        argv = ["app", "-n", "Bob", "-a=7"]
        self.parser.parse(len(argv), argv)
        self.assertEqual(self.name.value, "Bob")
        self.assertEqual(self.age.value, 7)

    def testInlineValueKeepsSeparators(self):
        argv = ["app", "--name=a=b", "--age=-5"]
        self.parser.parse(len(argv), argv)
        self.assertEqual(self.name.value, "a=b")
        self.assertEqual(self.age.value, -5)

    def testLastWriteWins(self):
        argv = ["app", "--age=1", "-a", "2"]
        self.parser.parse(len(argv), argv)
        self.assertEqual(self.age.value, 2)

    def testArgcLimitsTokens(self):
        argv = ["app", "--age=1", "--bogus"]
        self.parser.parse(2, argv)
        self.assertEqual(self.age.value, 1)

    def testUnexpectedOption(self):
        with self.assertRaises(UnexpectedOptionError) as caught:
            self.parser.parse(2, ["app", "-x"])
        self.assertEqual(str(caught.exception), "Unexpected option 'x'")
        self.assertEqual(caught.exception.options["name"], "x")
        self.assertEqual(caught.exception.options["route"], ("app",))

    def testUnexpectedOptionSuggestsAlias(self):
        with self.assertRaises(UnexpectedOptionError) as caught:
            self.parser.parse(2, ["app", "--nam=x"])
        self.assertIn("'name'", caught.exception.options["hint"])

    def testBarePrefixIsAnEmptyName(self):
        with self.assertRaises(UnexpectedOptionError) as caught:
            self.parser.parse(2, ["app", "--"])
        self.assertEqual(str(caught.exception), "Unexpected option ''")

    def testEmptyAliasMatchesBarePrefix(self):
        seen = []
        parser = Parser("x", options=[Option("", "Bare", lambda value, context: seen.append(value))])
        parser.parse(3, ["app", "-", "rest"])
        self.assertEqual(seen, ["rest"])

    def testInvalidIntegerLeavesDestination(self):
        with self.assertRaises(InvalidValueError) as caught:
            self.parser.parse(2, ["app", "--age=abc"])
        self.assertEqual(str(caught.exception), "Option 'age' is not int32 value: 'abc'")
        self.assertEqual(caught.exception.options["value"], "abc")
        self.assertEqual(self.age.value, 0)

    def testInvalidFloatLeavesDestination(self):
        with self.assertRaises(InvalidValueError) as caught:
            self.parser.parse(2, ["app", "--ratio=fast"])
        self.assertEqual(str(caught.exception), "Option 'ratio' is not float32 value: 'fast'")
        self.assertEqual(self.ratio.value, 1.0)

    def testFloatPrefix(self):
        self.parser.parse(2, ["app", "--ratio=0.5x"])
        self.assertEqual(self.ratio.value, 0.5)

    def testRequiredValueMissing(self):
        with self.assertRaises(OptionValueRequiredError) as caught:
            self.parser.parse(2, ["app", "--age"])
        self.assertEqual(str(caught.exception), "Option 'age' expects a value, none were given")

    def testValueLookaheadStopsAtPrefix(self):
        with self.assertRaises(OptionValueRequiredError):
            self.parser.parse(3, ["app", "--age", "-5"])

    def testTrailingTokensIgnored(self):
        argv = ["app", "--age=3", "extra", "--age=9"]
        result = self.parser.parse(len(argv), argv)
        self.assertIs(result.command, self.parser.root)
        self.assertEqual(self.age.value, 3)

    def testCustomPrefixAndSeparator(self):
        parser = Parser("x", options=[Option(("n", "name"), "Name", self.name)], prefix="/", separator=":")
        parser.parse(2, ["app", "//name:Carol"])
        self.assertEqual(self.name.value, "Carol")
        parser.parse(3, ["app", "/n", "Dave"])
        self.assertEqual(self.name.value, "Dave")

    def testLogsResolution(self):
        with self.assertLogs("ramify.parser", "DEBUG") as logs:
            self.parser.parse(2, ["app", "--age=4"])
        self.assertTrue(any("'age'" in line for line in logs.output))


class BooleanOptionTest(TestCase):

    def setUp(self):
        self.force = Slot(boolean, False)
        self.parser = Parser("x", options=[Option(("f", "force"), "Force", self.force)])

    def testPresenceMeansTrue(self):
        self.parser.parse(2, ["app", "--force"])
        self.assertIs(self.force.value, True)

    def testExplicitFalse(self):
        self.force.assign(True)
        self.parser.parse(2, ["app", "--force=false"])
        self.assertIs(self.force.value, False)

    def testFollowingValue(self):
        self.force.assign(True)
        self.parser.parse(3, ["app", "-f", "0"])
        self.assertIs(self.force.value, False)

    def testNonBooleanFails(self):
        with self.assertRaises(InvalidValueError) as caught:
            self.parser.parse(2, ["app", "--force=yes"])
        self.assertEqual(str(caught.exception), "Option 'force' is not boolean value: 'yes'")
        self.assertIs(self.force.value, False)


class SubcommandTest(TestCase):
    """Nested commands and positional dispatch."""

    def setUp(self):
        self.trace = []
        self.force = Slot(boolean, False)
        self.flag = Slot(int32, 0)
        self.parser = Parser("Deployment tool", name="app")

        @self.parser.command("deploy", options=[Option("force", "Force", self.force)])
        def deploy():
            """Deploy the build."""
            self.trace.append("deploy")

        def on_flag(value, context):
            self.trace.append((value, context.depth, context.route, context.command))
            return bind_option(self.flag)(value, context)

        @self.parser.command("sub1", options=[Option("flag", "Flag", on_flag)])
        def sub1():
            self.trace.append("sub1")

        self.parser.attach("sub2", Command())
        self.deploy = deploy
        self.sub1 = sub1

    def testDeployForce(self):
        argv = ["app", "deploy", "--force"]
        result = self.parser.parse(len(argv), argv)
        self.assertIs(result.command, self.deploy)
        self.assertEqual(result.route, ("app", "deploy"))
        self.assertIs(self.force.value, True)
        self.assertEqual(self.trace, [])
        result()
        self.assertEqual(self.trace, ["deploy"])

    def testRecursesOnce(self):
        argv = ["app", "sub1", "--flag=1"]
        result = self.parser.parse(len(argv), argv)
        self.assertIs(result.command, self.sub1)
        self.assertEqual(self.trace, [("1", 1, ("app", "sub1"), self.sub1)])
        self.assertEqual(self.flag.value, 1)

    def testParsingIsIdempotent(self):
        argv = ["app", "sub1", "--flag=1"]
        first = self.parser.parse(len(argv), argv)
        second = self.parser.parse(len(argv), argv)
        self.assertEqual(first, second)
        self.assertEqual(self.trace[:1], self.trace[1:])
        self.assertEqual(self.flag.value, 1)
        self.assertEqual(set(self.parser.commands), {"deploy", "sub1", "sub2"})

    def testUnknownSubcommand(self):
        with self.assertRaises(UnsupportedCommandError) as caught:
            self.parser.parse(2, ["app", "unknown-sub"])
        self.assertEqual(str(caught.exception), "Command 'unknown-sub' not supported")

    def testSubcommandSuggestion(self):
        with self.assertRaises(UnsupportedCommandError) as caught:
            self.parser.parse(2, ["app", "deplyo"])
        self.assertIn("'deploy'", caught.exception.options["hint"])

    def testSiblingOptionsDoNotLeak(self):
        with self.assertRaises(UnexpectedOptionError):
            self.parser.parse(3, ["app", "sub2", "--force"])

    def testMissingSubcommand(self):
        with self.assertRaises(NotEnoughArgumentsError) as caught:
            self.parser.parse(1, ["app"])
        self.assertEqual(str(caught.exception), "Not enough arguments")

    def testRecursionLimit(self):
        parser = Parser("x", limit=1)
        outer = parser.attach("outer", Command())
        outer.attach("inner", Command())
        with self.assertRaises(RecursionLimitError):
            parser.parse(3, ["app", "outer", "inner"])
        parser = Parser("x", limit=2)
        parser.attach("outer", outer)
        self.assertEqual(parser.parse(3, ["app", "outer", "inner"]).route, ("app", "outer", "inner"))


class ArgumentBindingTest(TestCase):

    def setUp(self):
        self.source = Slot(string)
        self.count = Slot(uint8, 0)
        self.parser = Parser("Copy tool", arguments=[
            Argument("source", "Input file", self.source),
            Argument("count", "Copies", self.count),
        ])

    def testBindsInOrder(self):
        argv = ["app", "a.txt", "3"]
        result = self.parser.parse(len(argv), argv)
        self.assertIs(result.command, self.parser.root)
        self.assertEqual(self.source.value, "a.txt")
        self.assertEqual(self.count.value, 3)

    def testNotEnoughArguments(self):
        with self.assertRaises(NotEnoughArgumentsError) as caught:
            self.parser.parse(2, ["app", "a.txt"])
        self.assertEqual(str(caught.exception), "Not enough arguments")
        self.assertIs(self.source.value, Unset)

    def testUnexpectedArguments(self):
        with self.assertRaises(UnexpectedArgumentsError) as caught:
            self.parser.parse(4, ["app", "a.txt", "3", "b.txt"])
        self.assertEqual(str(caught.exception), "Unexpected arguments given")

    def testInvalidArgument(self):
        with self.assertRaises(InvalidValueError) as caught:
            self.parser.parse(3, ["app", "a.txt", "many"])
        self.assertEqual(str(caught.exception), "Argument 'count' is not uint8 value: 'many'")
        self.assertEqual(caught.exception.options["index"], 2)

    def testArgcZeroWithArguments(self):
        with self.assertRaises(NotEnoughArgumentsError):
            self.parser.parse(0, [])


class ParseBoundaryTest(TestCase):

    def testArgcZeroRunsRoot(self):
        calls = []
        parser = Parser(Command(lambda: calls.append("root")))
        result = parser.parse(0, [])
        self.assertIs(result.command, parser.root)
        self.assertEqual(result.route, ())
        result()
        self.assertEqual(calls, ["root"])

    def testNegativeArgc(self):
        with self.assertRaises(NegativeArgumentCountError) as caught:
            Parser("x").parse(-1, [])
        self.assertEqual(str(caught.exception), "Number of arguments can not be negative")

    def testArgcBeyondArgv(self):
        with self.assertRaises(InvalidArgumentCountError) as caught:
            Parser("x").parse(3, ["app"])
        self.assertEqual(str(caught.exception), "Invalid number of arguments!")

    def testBadArgvTypes(self):
        with self.assertRaises(TypeError):
            Parser("x").parse("1", ["app"])
        with self.assertRaises(TypeError):
            Parser("x").parse(2, ["app", 3])

    def testStrictLeaves(self):
        parser = Parser("x", strict=True)
        parser.attach("hello", Command())
        with self.assertRaises(UnexpectedArgumentsError):
            parser.parse(3, ["app", "hello", "extra"])
        self.assertEqual(parser.parse(2, ["app", "hello"]).route, ("app", "hello"))


class ConfigurationTest(TestCase):

    def testDefaults(self):
        parser = Parser("Tool")
        self.assertEqual(parser.prefix, "-")
        self.assertEqual(parser.separator, "=")
        self.assertIsNone(parser.name)
        self.assertFalse(parser.strict)
        self.assertEqual(parser.limit, 64)
        self.assertTrue(parser.colorful)
        self.assertFalse(parser.fancy)
        self.assertEqual(parser.descr, "Tool")

    def testReadOnly(self):
        with self.assertRaises(AttributeError):
            Parser("Tool").prefix = "+"

    def testInvalidCharacters(self):
        for prefix in ("", "--", "a", "1", " "):
            with self.subTest(prefix=prefix), self.assertRaises(ValueError):
                Parser("x", prefix=prefix)
        with self.assertRaises(ValueError):
            Parser("x", prefix="+", separator="+")
        with self.assertRaises(TypeError):
            Parser("x", separator=1)

    def testInvalidLimitAndName(self):
        with self.assertRaises(ValueError):
            Parser("x", limit=0)
        with self.assertRaises(TypeError):
            Parser("x", limit="1")
        with self.assertRaises(ValueError):
            Parser("x", name=" ")

    def testRootCommandExcludesExtras(self):
        with self.assertRaises(TypeError):
            Parser(Command(), options=[help_option()])
        with self.assertRaises(TypeError):
            Parser(42)


class CallbackFaultTest(TestCase):

    def testReturnedMessageBecomesFault(self):
        parser = Parser("x", options=[Option("port", "Port", lambda value, context: "port is reserved")])
        with self.assertRaises(DelegatedCommandError) as caught:
            parser.parse(2, ["app", "--port=80"])
        self.assertEqual(str(caught.exception), "port is reserved")
        self.assertEqual(caught.exception.options["name"], "port")
        self.assertEqual(caught.exception.options["value"], "80")

    def testRaisedFaultGetsContext(self):
        def on_port(value, context):
            raise InvalidValueError("no ports today", hint="try tomorrow")

        parser = Parser("x", options=[Option("port", "Port", on_port)])
        with self.assertRaises(InvalidValueError) as caught:
            parser.parse(2, ["app", "--port=80"])
        self.assertEqual(caught.exception.options["hint"], "try tomorrow")
        self.assertEqual(caught.exception.options["route"], ("app",))

    def testOtherExceptionsPropagate(self):
        def on_port(value, context):
            raise RuntimeError("boom")

        parser = Parser("x", options=[Option("port", "Port", on_port)])
        with self.assertRaises(RuntimeError):
            parser.parse(2, ["app", "--port=80"])

    def testUnexpectedReturnValue(self):
        parser = Parser("x", options=[Option("port", "Port", lambda value, context: 42)])
        with self.assertRaises(TypeError):
            parser.parse(2, ["app", "--port=80"])

    def testUnexpectedReturnValueFromNamelessCallable(self):
        class PortCheck:
            def __call__(self, value, context, /):
                return 42

        for callback, label in ((PortCheck(), "PortCheck"), (functools.partial(lambda tag, value, context: 42, "p"), "partial")):
            parser = Parser("x", options=[Option("port", "Port", callback)])
            with self.subTest(label=label), self.assertRaises(TypeError) as caught:
                parser.parse(2, ["app", "--port=80"])
            self.assertIn(label, str(caught.exception))

    def testCommandReturningFault(self):
        parser = Parser("x")

        @parser.command("fail")
        def fail():
            return "it broke"

        result = parser.parse(2, ["app", "fail"])
        with self.assertRaises(DelegatedCommandError) as caught:
            result()
        self.assertEqual(str(caught.exception), "it broke")
        self.assertEqual(caught.exception.options["route"], ("app", "fail"))


class PresetTest(TestCase):

    def setUp(self):
        self.force = Slot(boolean, False)
        self.parser = Parser(
            "Deployment tool",
            options=[help_option(), version_option("app", "1.2.3")],
            colorful=False,
        )

        @self.parser.command("deploy", options=[help_option(), Option("force", "Overwrite", self.force)])
        def deploy():
            """Deploy the build."""

        self.deploy = deploy

    def testVersion(self):
        with self.assertRaises(NotEnoughArgumentsError):
            _capture(self.parser.parse, 2, ["app", "--version"])
        _, output = _capture(Parser("x", options=[version_option("app", "1.2.3")]).parse, 2, ["app", "-v"])
        self.assertEqual(output, "app 1.2.3\n")

    def testHelpForLeaf(self):
        result, output = _capture(self.parser.parse, 3, ["app", "deploy", "--help"])
        self.assertIs(result.command, self.deploy)
        self.assertIn("usage: app deploy [options]", output)
        self.assertIn("Deploy the build.", output)
        self.assertIn("--force [<value>]", output)
        self.assertIn("-h, --help", output)

    def testHelpForChild(self):
        parser = Parser("Tool", options=[help_option()], colorful=False)
        parser.attach("status", Command(lambda: None, "Show the status"))
        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer), self.assertRaises(NotEnoughArgumentsError):
            parser.parse(3, ["app", "--help", "status"])
        self.assertIn("usage: app status", buffer.getvalue())
        self.assertIn("Show the status", buffer.getvalue())

    def testHelpUnknownCommand(self):
        with self.assertRaises(UnknownCommandError) as caught:
            _capture(self.parser.parse, 3, ["app", "--help", "nope"])
        self.assertEqual(str(caught.exception), "Unknown command 'nope'")

    def testPresetNames(self):
        self.assertEqual(help_option().names, frozenset({"h", "help"}))
        self.assertIs(help_option().expectation, Expectation.NOT_REQUIRED)
        self.assertEqual(version_option("app", "1").names, frozenset({"v", "version"}))
        with self.assertRaises(ValueError):
            version_option("", "1")


class InvokeTest(TestCase):

    def setUp(self):
        self.target = Slot(string)
        self.force = Slot(boolean, False)
        self.parser = Parser("Tool", name="app")

        @self.parser.command(
            "deploy",
            options=[Option("force", "Force", self.force)],
            arguments=[Argument("target", "Target", self.target)],
        )
        def deploy():
            return self.target.value, self.force.value

        @self.parser.command("ping")
        def ping():
            return 0

    def testString(self):
        self.assertEqual(invoke(self.parser, "deploy --force 'prod eu'"), ("prod eu", True))

    def testIterable(self):
        self.assertEqual(invoke(self.parser, ["ping"]), 0)

    def testSysArgv(self):
        with mock.patch.object(sys, "argv", ["app", "ping"]):
            self.assertEqual(invoke(self.parser), 0)

    def testCommand(self):
        calls = []
        self.assertIsNone(invoke(Command(lambda: calls.append(1)), ""))
        self.assertEqual(calls, [1])

    def testFaultsPropagate(self):
        with self.assertRaises(UnsupportedCommandError):
            invoke(self.parser, "pnig")

    def testRejectsBadInput(self):
        with self.assertRaises(TypeError):
            invoke(42, "ping")
        with self.assertRaises(TypeError):
            invoke(self.parser, 42)
        with self.assertRaises(TypeError):
            invoke(self.parser, ["ping", 1])


if __name__ == '__main__':
    unittest.main()
