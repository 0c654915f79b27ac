"""
Greeter demo.

    greeter hello --name Ada          hello Ada
    greeter deploy --force production
    greeter hello --help              help for 'hello'
    greeter --help hello              same, asked from the root

The root has subcommands, so it always needs one. `greeter --help` and
`greeter --version` print first and then report "Not enough arguments"
with exit status 1.
"""
import sys

from ramify import *

__prog__ = "greeter"

name = Slot(string, "world")
age = Slot(int32, 0)
force = Slot(boolean, False)
target = Slot(string)

parser = Parser(
    "Friendly greeting tool",
    options=[
        help_option(),
        version_option("greeter", __version__),
        Option(("n", "name"), "Who to greet", name),
        Option(("a", "age"), "Age in years", age),
    ],
    name="greeter",
)


@parser.command("deploy", options=[Option(("f", "force"), "Overwrite the target", force), help_option()],
                arguments=[Argument("target", "Where to deploy", target)])
def deploy():
    """Deploy the greeting to a target."""
    if target.value == "production" and not force.value:
        return "refusing to deploy to production without --force"
    print(f"deploying hello {name.value} to {target.value}")


@parser.command("hello", options=[help_option()])
def hello():
    """Print the greeting."""
    print(f"hello {name.value}" + (f" ({age.value})" if age.value else ""))


def main(prompt=Unset, /):
    """Run the greeter and return the exit status."""
    try:
        invoke(parser, prompt)
    except CommandException as fault:
        report(fault)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
