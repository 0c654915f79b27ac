"""
Ramify argument specifications: named Options and positional Arguments.

What this module provides
- Expectation: whether an Option needs a value (REQUIRED), may take one
  (OPTIONAL) or is not meant to (NOT_REQUIRED). Only REQUIRED is enforced by
  the parser; the other two are documentation for help output and callbacks.
- Option: a set of bare aliases ("v", "version"; no prefix characters), a
  description, an Expectation and a normalized callback
  `(value: str | None, context) -> fault | None`.
- Argument: a name, a description and a normalized callback
  `(value: str, context) -> fault | None`, bound by position.
- option(...) / argument(...): decorator factories turning plain callbacks
  into specs.

Targets
- Every spec is built from a *target*, which is either
  • a destination (ramify.bindings.Slot / Field): the callback is produced by
    the binder and, for Options, the Expectation defaults to OPTIONAL for
    booleans and REQUIRED for everything else; or
  • a callable: used as the callback as-is (Expectation defaults to REQUIRED).

Immutability
- Specs are read-only after construction: every public field is a property
  (see ramify.utils.IntrospectableType).

Quick start
    >>> from ramify import Option, Argument, Slot, int32, string, option
    >>> age = Slot(int32, 0)
    >>> Option(("a", "age"), "Age in years", age)
    >>> @option(("q", "quiet"), "Be quiet", expectation=Expectation.NOT_REQUIRED)
    ... def quiet(value, context):
    ...     ...
"""
import builtins
import enum
from collections.abc import Iterable

from .bindings import bind_argument, bind_option
from .utils import IntrospectableType, Unset, coalesce, rename


class Expectation(enum.Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    NOT_REQUIRED = "not-required"


def _is_destination(target):
    return hasattr(target, "binding") and callable(getattr(target, "assign", None))


def _sanitize_descr(cls, descr, /):
    descr = coalesce(descr)
    if descr is not None and not isinstance(descr, str):
        raise TypeError(f"{cls.__typename__} description must be a string")
    return descr


class Option(metaclass=IntrospectableType):
    """
    Named, flag-style input.

    Highlights
    - names: non-empty set of aliases, case-sensitive and matched exactly
      against the text left after the prefix characters are stripped. The empty
      string is a legal alias (it matches a bare prefix token such as '--').
    - expectation: REQUIRED options fail when given without a value; OPTIONAL
      and NOT_REQUIRED options receive None in that case.
    - callback: invoked once per occurrence of any alias; the last occurrence
      writes last.
    """

    __introspectable__ = (
        "names",
        "descr",
        "expectation",
        "callback",
    )

    __displayable__ = (
        "names",
        "descr",
        "expectation",
    )

    def __new__(cls, names, descr=Unset, target=Unset, /, expectation=Unset):
        """
        Construct an Option.

        Parameters
        - names: str | Iterable[str]
          One alias or several. Must be non-empty; duplicates collapse.
        - descr: Unset | str
          Short description for help. If Unset, becomes None.
        - target: destination | callable
          See module docs.
        - expectation: Unset | Expectation
          Overrides the default derived from the target.
        """
        if isinstance(names, str):
            names = (names,)
        if not isinstance(names, Iterable):
            raise TypeError(f"{cls.__typename__} names must be a string or an iterable of strings")
        names = frozenset(names)
        if not names:
            raise ValueError(f"{cls.__typename__} must have at least one name")
        for name in names:
            if not isinstance(name, str):
                raise TypeError(f"{cls.__typename__} names must be strings")
            if any(char.isspace() for char in name):
                raise ValueError(f"{cls.__typename__} name {name!r} cannot contain whitespace")

        if _is_destination(target):
            callback = bind_option(target)
            default = Expectation.OPTIONAL if target.binding.optional else Expectation.REQUIRED
        elif builtins.callable(target):
            callback = target
            default = Expectation.REQUIRED
        else:
            raise TypeError(f"{cls.__typename__} target must be a destination or a callable")

        expectation = coalesce(expectation, default)
        if not isinstance(expectation, Expectation):
            raise TypeError(f"{cls.__typename__} expectation must be an Expectation")

        self = super().__new__(cls)
        self._names = names
        self._descr = _sanitize_descr(cls, descr)
        self._expectation = expectation
        self._callback = callback
        return self

    def matches(self, name, /):
        """
        Tell whether `name` (prefix already stripped) is one of the aliases.
        """
        return name in self._names

    def __call__(self, value, context, /):
        return self._callback(value, context)


class Argument(metaclass=IntrospectableType):
    """
    Positional input bound by order of declaration.
    """

    __introspectable__ = (
        "name",
        "descr",
        "callback",
    )

    __displayable__ = (
        "name",
        "descr",
    )

    def __new__(cls, name, descr=Unset, target=Unset, /):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} name must be a string")
        if not name.strip():
            raise ValueError(f"{cls.__typename__} name must be a non-empty string")

        if _is_destination(target):
            callback = bind_argument(target)
        elif builtins.callable(target):
            callback = target
        else:
            raise TypeError(f"{cls.__typename__} target must be a destination or a callable")

        self = super().__new__(cls)
        self._name = name
        self._descr = _sanitize_descr(cls, descr)
        self._callback = callback
        return self

    def __call__(self, value, context, /):
        return self._callback(value, context)


def option(names, descr=Unset, /, expectation=Unset):
    """
    Decorator factory building an Option around a callback.

    Example
        @option(("o", "output"), "Output path")
        def on_output(value, context):
            if not value.endswith(".json"):
                return "output must be a .json file"
    """
    @rename("option")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@option() must be applied to a callable")
        return Option(names, coalesce(descr, callback.__doc__ and callback.__doc__.strip()), callback, expectation=expectation)

    return wrapper


def argument(name, descr=Unset, /):
    """
    Decorator factory building an Argument around a callback.

    Example
        @argument("path", "File to read")
        def on_path(value, context): ...
    """
    @rename("argument")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@argument() must be applied to a callable")
        return Argument(name, coalesce(descr, callback.__doc__ and callback.__doc__.strip()), callback)

    return wrapper


__all__ = (
    "Expectation",
    "Option",
    "Argument",
    "option",
    "argument",
)
