"""
Ramify utilities shared by every layer of the package.

Contents
- Unset: sentinel for "argument not given", distinct from None.
- coalesce(object, default): resolve Unset, keep every other value.
- rename(...): give generated callbacks readable names for tracebacks and
  the repr of Options built from destinations.
- mirror(name) / IntrospectableType: read-only public views over the private
  fields of specs, commands and the parser.
- ordinal(number): position words used in fault hints.

    >>> coalesce(Unset, "-")
    '-'
    >>> coalesce(None, "-") is None
    True
"""
import builtins
import functools
import operator
import re
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Type of the Unset sentinel.

    Unset marks a parameter the caller did not pass, so that None stays
    available as a real value (a missing description, an option given
    without a value). There is exactly one instance; it is falsy, prints as
    "Unset" and the type refuses subclasses.
    """

    def __or__(self, other, /):
        # Allows `str | Unset` in isinstance checks.
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return `default` when `object` is Unset, `object` otherwise.

    None, 0 and empty containers are values, not gaps, and pass through.
    """
    return default if object is Unset else object


def rename(*parameters):
    """
    Rename a callable in place, or build a decorator doing so.

    - rename(function, "on_port") -> function
    - @rename("on_port")
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() expects the new name as a string")
        return rename(functools.partial(_rename, name=name), "rename")
    if len(parameters) == 2:
        return _rename(*parameters)
    raise TypeError("rename() takes 1 or 2 arguments (%d given)" % len(parameters))


def _rename(callable, name):
    if not builtins.callable(callable):
        raise TypeError("rename() target must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError(f"cannot rename {type(callable).__name__} objects") from None
    return callable


def mirror(name, /):
    """
    Build a read-only property exposing `self._<name>`.

    Lists come back as tuples, dicts as mapping proxies and sets as frozensets
    so callers cannot reach into the owner's state; anything else is returned
    unchanged.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() expects an attribute name")

    @rename(name)
    def getter(self):
        value = getattr(self, "_" + name)
        if isinstance(value, Sequence) and not isinstance(value, str):
            return tuple(value)
        if isinstance(value, Mapping):
            return MappingProxyType(value)
        if isinstance(value, Set):
            return frozenset(value)
        return value

    return property(getter)


class IntrospectableType(type):
    """
    Metaclass giving spec-like classes (options, arguments, commands) a
    uniform, read-only public surface.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      over its "_{name}" backing field (see mirror()).
    - Derive __typename__ from the class name (camel-case split with hyphens)
      for consistent, human-friendly labels in messages and help.
    - Provide stable __repr__/__rich_repr__ implementations, unless the class
      defines its own. __displayable__ (if set) narrows the fields shown.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: mirror(field) for field in namespace.get("__introspectable__", ())
            },
            **options
        )

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
                    yield field, getattr(self, field)
            self.__rich_repr__ = __rich_repr__

        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return f"{type(self).__typename__}({
                    ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
                })"
            self.__repr__ = __repr__

        return self


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, 113th, …)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
    "IntrospectableType",
    "ordinal",
)
