"""
Ramify bindings: typed conversion of raw tokens into caller-owned storage.

What this module provides
- Bindings: a closed set of converters, one per primitive destination type.
  • IntBinding(width, signed) with presets int8/uint8/.../int64/uint64.
  • FloatBinding(width) with presets float32/float64.
  • BoolBinding with the preset boolean.
  • StringBinding with the preset string.
  Each binding is a callable `binding(text) -> value` raising ValueError on bad
  input, plus a `typename` used in messages and help.

- Destinations: where a converted value is written.
  • Slot(binding, value=Unset): a mutable cell owned by the caller.
  • Field(target, attribute, binding): writes onto an existing object
    (a dataclass instance, a namespace, ...).

- Callback factories that erase the binding type:
  • bind_option(destination)   -> (value: str | None, context) -> fault | None
  • bind_argument(destination) -> (value: str, context) -> fault | None

Conversion rules
- integers: optional sign followed by ASCII digits (the whole token). Values
  outside the destination width wrap around (two's-complement truncation);
  overflow is never reported.
- floats: strtod-like. Leading whitespace is skipped and the longest valid
  decimal, hexadecimal, inf or nan prefix is consumed; the conversion fails only
  when nothing could be consumed. float32 values round through IEEE single
  precision and overflow to a signed infinity.
- booleans: 'true', 'True', '1', 'false', 'False', '0'. An Option bound to a
  boolean may be given without a value, which means True.
- strings: assigned as-is.

Side effects
- Writing into the destination is the only side effect, and it only happens
  after a successful conversion: a bad token leaves the destination untouched.

Quick start
    >>> from ramify.bindings import Slot, int32, bind_option
    >>> port = Slot(int32, 8080)
    >>> callback = bind_option(port)   # ready to be attached to an Option
"""
import math
import re
import struct

from .faults import FaultCode, InvalidValueError, OptionValueRequiredError, getdoc
from .utils import Unset, rename

_INTEGER = re.compile(r"(?P<sign>[+-]?)(?P<digits>[0-9]+)")

# Digits folded per step; keeps every int() call under the interpreter's
# str-to-int digit limit.
_CHUNK = 256

_FLOAT = re.compile(r"""
    [ \t\n\v\f\r]*
    (?P<number>
        [+-]?
        (?:
            (?P<hex>0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)(?:[pP][+-]?[0-9]+)?)
          | (?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?
          | inf(?:inity)?
          | nan
        )
    )
""", re.VERBOSE | re.IGNORECASE)

_TRUTHS = {"true": True, "True": True, "1": True, "false": False, "False": False, "0": False}


class Binding:
    """
    Base converter: turns one raw token into a typed value.

    Subclasses define `typename` and implement __call__(text). `optional` tells
    whether an Option bound to this type may be given without a value.
    """
    __slots__ = ()

    optional = False

    @property
    def typename(self):
        raise NotImplementedError

    def __call__(self, text, /):
        raise NotImplementedError

    def __repr__(self):
        return self.typename

    def __eq__(self, other):
        if not isinstance(other, Binding):
            return NotImplemented
        return type(self) is type(other) and self.typename == other.typename

    def __hash__(self):
        return hash((type(self), self.typename))


class IntBinding(Binding):
    """
    Integer of a fixed width and signedness.

    >>> IntBinding(8, signed=True)("300")
    44
    """
    __slots__ = ("_width", "_signed")

    def __init__(self, width, /, signed=True):
        if not isinstance(width, int) or isinstance(width, bool):
            raise TypeError("integer binding width must be an int")
        if width not in (8, 16, 32, 64):
            raise ValueError("integer binding width must be one of 8, 16, 32 or 64")
        self._width = width
        self._signed = bool(signed)

    @property
    def width(self):
        return self._width

    @property
    def signed(self):
        return self._signed

    @property
    def typename(self):
        return ("int" if self._signed else "uint") + str(self._width)

    def __call__(self, text, /):
        match = _INTEGER.fullmatch(text)
        if not match:
            raise ValueError(f"invalid literal for {self.typename}: {text!r}")
        mask = (1 << self._width) - 1
        digits = match["digits"]
        value = 0
        for start in range(0, len(digits), _CHUNK):
            chunk = digits[start:start + _CHUNK]
            value = (value * 10 ** len(chunk) + int(chunk)) & mask
        if match["sign"] == "-":
            value = -value & mask
        if self._signed and value >> (self._width - 1):
            value -= 1 << self._width
        return value


class FloatBinding(Binding):
    """
    Floating point of 32 or 64 bits with strtod-like prefix parsing.

    >>> float64("2.5e3kg")
    2500.0
    """
    __slots__ = ("_width",)

    def __init__(self, width, /):
        if width not in (32, 64):
            raise ValueError("float binding width must be 32 or 64")
        self._width = width

    @property
    def width(self):
        return self._width

    @property
    def typename(self):
        return "float" + str(self._width)

    def __call__(self, text, /):
        match = _FLOAT.match(text)
        if not match:
            raise ValueError(f"invalid literal for {self.typename}: {text!r}")
        if match["hex"]:
            value = float.fromhex(match["number"])
        else:
            value = float(match["number"])
        if self._width == 64:
            return value
        try:
            return struct.unpack("<f", struct.pack("<f", value))[0]
        except OverflowError:
            return math.copysign(math.inf, value)


class BoolBinding(Binding):
    __slots__ = ()

    optional = True

    @property
    def typename(self):
        return "boolean"

    def __call__(self, text, /):
        try:
            return _TRUTHS[text]
        except KeyError:
            raise ValueError(f"invalid literal for boolean: {text!r}") from None


class StringBinding(Binding):
    __slots__ = ()

    @property
    def typename(self):
        return "string"

    def __call__(self, text, /):
        return text


int8 = IntBinding(8)
uint8 = IntBinding(8, signed=False)
int16 = IntBinding(16)
uint16 = IntBinding(16, signed=False)
int32 = IntBinding(32)
uint32 = IntBinding(32, signed=False)
int64 = IntBinding(64)
uint64 = IntBinding(64, signed=False)
float32 = FloatBinding(32)
float64 = FloatBinding(64)
boolean = BoolBinding()
string = StringBinding()


class Slot:
    """
    Caller-owned storage cell for a bound Option or Argument.

    `value` holds the initial value (Unset when none was given) until a
    successful parse writes into it; repeated writes follow last-write-wins.
    """
    __slots__ = ("_binding", "value")

    def __init__(self, binding, value=Unset, /):
        if not isinstance(binding, Binding):
            raise TypeError("slot binding must be a Binding")
        self._binding = binding
        self.value = value

    @property
    def binding(self):
        return self._binding

    def assign(self, value, /):
        self.value = value

    def __repr__(self):
        return f"slot({self._binding!r}, {self.value!r})"


class Field:
    """
    Destination writing through setattr onto an existing object.

    >>> config = types.SimpleNamespace(port=80)
    >>> port = Field(config, "port", uint16)
    """
    __slots__ = ("_target", "_attribute", "_binding")

    def __init__(self, target, attribute, binding, /):
        if not isinstance(attribute, str) or not attribute.isidentifier():
            raise ValueError("field attribute must be a valid identifier")
        if not isinstance(binding, Binding):
            raise TypeError("field binding must be a Binding")
        self._target = target
        self._attribute = attribute
        self._binding = binding

    @property
    def binding(self):
        return self._binding

    @property
    def value(self):
        return getattr(self._target, self._attribute, Unset)

    def assign(self, value, /):
        setattr(self._target, self._attribute, value)

    def __repr__(self):
        return f"field({type(self._target).__name__}.{self._attribute}, {self._binding!r})"


def _check(destination, /):
    if not hasattr(destination, "assign") or not callable(destination.assign):
        raise TypeError("destination must provide an assign() method")
    if not isinstance(getattr(destination, "binding", None), Binding):
        raise TypeError("destination must expose a Binding as 'binding'")
    return destination.binding


def _uncastable(kind, binding, value, context):
    return InvalidValueError(
        f"{kind} '{context.name}' is not {binding.typename} value: '{value}'",
        title="invalid value",
        code=FaultCode.INVALID_VALUE,
        hint=f"pass a {binding.typename} value to '{context.name}'",
        name=context.name,
        value=value,
        docs=getdoc(FaultCode.INVALID_VALUE),
    )


def bind_option(destination, /):
    """
    Build a normalized Option callback writing into `destination`.

    contract
    - callback(value, context) -> None on success, a fault otherwise.
    - value is None when the Option was given without a value; booleans then
      store True, other bindings report OptionValueRequiredError.
    """
    binding = _check(destination)

    @rename(f"on_{binding.typename}_option")
    def callback(value, context, /):
        if value is None:
            if binding.optional:
                destination.assign(True)
                return None
            return OptionValueRequiredError(
                f"Option '{context.name}' expects a value, none were given",
                title="option value required",
                code=FaultCode.OPTION_VALUE_REQUIRED,
                hint=f"pass a value as {context.name}=<{binding.typename}>",
                name=context.name,
            )
        try:
            converted = binding(value)
        except ValueError:
            return _uncastable("Option", binding, value, context)
        destination.assign(converted)
        return None

    return callback


def bind_argument(destination, /):
    """
    Build a normalized Argument callback writing into `destination`.

    Positional values are always present, so booleans must be spelled as a
    literal here.
    """
    binding = _check(destination)

    @rename(f"on_{binding.typename}_argument")
    def callback(value, context, /):
        try:
            converted = binding(value)
        except ValueError:
            return _uncastable("Argument", binding, value, context)
        destination.assign(converted)
        return None

    return callback


__all__ = (
    "Binding",
    "IntBinding",
    "FloatBinding",
    "BoolBinding",
    "StringBinding",
    "int8",
    "uint8",
    "int16",
    "uint16",
    "int32",
    "uint32",
    "int64",
    "uint64",
    "float32",
    "float64",
    "boolean",
    "string",
    "Slot",
    "Field",
    "bind_option",
    "bind_argument",
)
