"""
Argot value conversion: text to typed field values, zero values and constraint checks.

Supported field types
- str, bool, int, float, and the fixed-width kinds exported here
  (int8 … int64, uint, uint8 … uint64, float32, float64). Plain int is the
  native signed 64-bit kind.
- T | None: converted as T (the "pointer" form; None is its zero value).
- list[T]: every element converted as T.
- any class with an unmarshal_text(self, data: bytes) method: an instance is
  built with cls() and fed the UTF-8 bytes of the text.

Anything else fails with UnsupportedKindError when a value has to be converted.
"""
import dataclasses
import math
import re
import struct
import types
import typing
from typing import Annotated, NamedTuple

from .faults import (
    ConstraintViolationError,
    ConversionError,
    InvalidConstraintError,
    OutOfRangeError,
    UnsupportedKindError,
)

TRUE = frozenset({"true", "t", "1", "yes", "y", "on"})
FALSE = frozenset({"false", "f", "0", "no", "n", "off", ""})

FLOAT32_MAX = 3.4028234663852886e38


class Kind(NamedTuple):
    """annotation marker naming a numeric width and its inclusive bounds."""
    name: str
    base: type
    low: int | float | None = None
    high: int | float | None = None


def _signed(bits):
    return Annotated[int, Kind(f"int{bits}", int, -(1 << (bits - 1)), (1 << (bits - 1)) - 1)]


def _unsigned(bits, name=None):
    return Annotated[int, Kind(name or f"uint{bits}", int, 0, (1 << bits) - 1)]


int8 = _signed(8)
int16 = _signed(16)
int32 = _signed(32)
int64 = _signed(64)
uint = _unsigned(64, "uint")
uint8 = _unsigned(8)
uint16 = _unsigned(16)
uint32 = _unsigned(32)
uint64 = _unsigned(64)
float32 = Annotated[float, Kind("float32", float, -FLOAT32_MAX, FLOAT32_MAX)]
float64 = Annotated[float, Kind("float64", float)]

NATIVE = {
    int: Kind("int", int, -(1 << 63), (1 << 63) - 1),
    float: Kind("float64", float),
}


def strip_optional(hint, /):
    """
    return (inner, True) for T | None, otherwise (hint, False).
    """
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        arguments = [argument for argument in typing.get_args(hint) if argument is not type(None)]
        if len(arguments) == 1 and len(typing.get_args(hint)) == 2:
            return arguments[0], True
    return hint, False


def unannotate(hint, /):
    """
    return (base, kind) where kind is the Kind marker of an Annotated hint (or None).
    """
    if typing.get_origin(hint) is Annotated:
        base, *metadata = typing.get_args(hint)
        for marker in metadata:
            if isinstance(marker, Kind):
                return base, marker
        return unannotate(base)
    return hint, NATIVE.get(hint)


def is_sequence(hint, /):
    return typing.get_origin(strip_optional(hint)[0]) is list


def element(hint, /):
    """
    element type of a list[T] hint (str when unparameterized).
    """
    arguments = typing.get_args(strip_optional(hint)[0])
    return arguments[0] if arguments else str


def is_unmarshaler(hint, /):
    base, _ = unannotate(strip_optional(hint)[0])
    return isinstance(base, type) and callable(getattr(base, "unmarshal_text", None))


def typename(hint, /):
    hint, optional = strip_optional(hint)
    if typing.get_origin(hint) is list:
        return f"list[{typename(element(hint))}]"
    base, kind = unannotate(hint)
    name = kind.name if kind is not None else getattr(base, "__name__", repr(base))
    return f"{name} | None" if optional else name


def _integer(text, kind):
    pattern = r"[0-9]+" if kind.low == 0 else r"[+-]?[0-9]+"
    if not re.fullmatch(pattern, text):
        raise ConversionError(
            f"invalid value {text!r} for type {kind.name}: expected an integer", value=text, type=kind.name
        )
    value = int(text)
    if not kind.low <= value <= kind.high:
        raise OutOfRangeError(
            f"value {text} out of range for type {kind.name} [{kind.low}, {kind.high}]",
            value=text,
            type=kind.name,
        )
    return value


def _floating(text, kind):
    if not text or text != text.strip() or "_" in text:
        raise ConversionError(
            f"invalid value {text!r} for type {kind.name}: expected a number", value=text, type=kind.name
        )
    try:
        value = float(text)
    except ValueError:
        raise ConversionError(
            f"invalid value {text!r} for type {kind.name}: expected a number", value=text, type=kind.name
        ) from None
    if kind.high is not None and math.isfinite(value):
        try:
            value = struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError:
            raise OutOfRangeError(
                f"value {text} out of range for type {kind.name}", value=text, type=kind.name
            ) from None
    return value


def _boolean(text):
    lowered = text.lower()
    if lowered in TRUE:
        return True
    if lowered in FALSE:
        return False
    raise ConversionError(
        f"invalid value {text!r} for type bool: expected one of true/t/1/yes/y/on or false/f/0/no/n/off",
        value=text,
        type="bool",
    )


def _unmarshal(text, base):
    try:
        instance = base()
    except TypeError as error:
        raise UnsupportedKindError(
            f"type {base.__name__} must be constructible without arguments to unmarshal text",
            type=base.__name__,
        ) from error
    try:
        instance.unmarshal_text(text.encode())
    except Exception as error:
        raise ConversionError(
            f"invalid value {text!r} for type {base.__name__}: {error}", value=text, type=base.__name__
        ) from error
    return instance


def convert(text, hint, /):
    """
    convert one text value into `hint`.

    for list[T] the text is a single element and the result is a one-item
    list; use split() + convert_all() for comma separated defaults.
    """
    if not isinstance(text, str):
        raise TypeError(f"convert() text must be a string, not {type(text).__name__!r}")
    hint, _ = strip_optional(hint)
    if typing.get_origin(hint) is list:
        return convert_all([text], hint)
    base, kind = unannotate(hint)
    if is_unmarshaler(base):
        return _unmarshal(text, base)
    if base is str:
        return text
    if base is bool:
        return _boolean(text)
    if base is int:
        return _integer(text, kind)
    if base is float:
        return _floating(text, kind)
    raise UnsupportedKindError(f"unsupported field type {typename(hint)}", type=typename(hint))


def convert_all(texts, hint, /):
    """
    convert every text as an element of the list[T] hint.
    """
    item = element(hint)
    values = []
    for text in texts:
        try:
            values.append(convert(text, item))
        except UnsupportedKindError:
            raise
        except ConversionError as error:
            raise type(error)(f"failed to convert list element {text!r}: {error}", **error.options) from error
    return values


def split(text, /):
    """
    split a comma separated literal, trimming items and dropping empty ones.
    """
    return [item.strip() for item in text.split(",") if item.strip()]


def zero(hint, /):
    """
    the zero value of a field type: "", 0, 0.0, False, [], None for T | None,
    cls() for records and other classes (None when cls() is not possible).
    """
    hint, optional = strip_optional(hint)
    if optional:
        return None
    if typing.get_origin(hint) is list:
        return []
    base, _ = unannotate(hint)
    if base in (str, bool, int, float):
        return base()
    if isinstance(base, type):
        try:
            return base()
        except TypeError:
            return None
    return None


def is_zero(value, hint, /):
    """
    structural zero test: None, empty text/sequences, numeric zero, and
    records whose fields are all zero compare as zero.
    """
    if value is None:
        return True
    if isinstance(value, (str, list, tuple)) and not value:
        return True
    reference = zero(hint)
    if reference is None:
        return False
    if dataclasses.is_dataclass(reference) and type(value) is not type(reference):
        return False
    if type(value).__eq__ is object.__eq__:
        # no equality of its own: compare instance state
        state = getattr(value, "__dict__", None)
        return type(value) is type(reference) and state is not None and state == vars(reference)
    return bool(value == reference)


def _limit(name, key, text):
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise InvalidConstraintError(
            f"field {name} has an invalid {key} constraint {text!r}", field=name, constraint=key
        ) from None


def validate(name, value, constraints, /):
    """
    check min/max (numbers) and minlen/maxlen (text and lists).

    constraints maps "min"/"max"/"minlen"/"maxlen" to their literal text.
    Fields whose value is not a number (or has no length) skip the
    constraints that do not apply, as do None values.
    """
    if value is None or not constraints:
        return
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if (text := constraints.get("min")) is not None and value < (limit := _limit(name, "min", text)):
            raise ConstraintViolationError(
                f"field {name} value {value} is less than minimum {limit}", field=name, value=value
            )
        if (text := constraints.get("max")) is not None and value > (limit := _limit(name, "max", text)):
            raise ConstraintViolationError(
                f"field {name} value {value} is greater than maximum {limit}", field=name, value=value
            )
    if isinstance(value, (str, list, tuple)):
        length = len(value)
        if (text := constraints.get("minlen")) is not None and length < (limit := _limit(name, "minlen", text)):
            raise ConstraintViolationError(
                f"field {name} length {length} is less than minimum {limit}", field=name, value=value
            )
        if (text := constraints.get("maxlen")) is not None and length > (limit := _limit(name, "maxlen", text)):
            raise ConstraintViolationError(
                f"field {name} length {length} is greater than maximum {limit}", field=name, value=value
            )


__all__ = (
    "Kind",
    "int8",
    "int16",
    "int32",
    "int64",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "float32",
    "float64",
    "convert",
    "convert_all",
    "split",
    "zero",
    "is_zero",
    "validate",
)
