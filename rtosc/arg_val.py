"""Typed OSC argument values and the arithmetic defined on them."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass, replace
from typing import Any, Callable, Sequence


class ArgValError(ValueError):
    """Raised when an operation is not defined for the given argument types."""


def _int32(number: Any) -> int:
    value = int(number) & 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _int64(number: Any) -> int:
    value = int(number) & 0xFFFFFFFFFFFFFFFF
    return value - (1 << 64) if value & 0x8000000000000000 else value


def _float32(number: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", number))[0]
    except OverflowError:
        return math.copysign(math.inf, number)


_NORMALIZE: dict[str, Callable[[Any], Any]] = {
    "d": float,
    "f": _float32,
    "h": _int64,
    "c": _int32,
    "i": _int32,
}


@dataclass
class ArgVal:
    """One OSC argument: a type tag and its value.

    Arrays (type ``'a'``) and ranges (type ``'-'``) keep a two-element header
    tuple as their value: ``(arr_type, arr_len)`` resp. ``(rep_num, has_delta)``.
    The elements an array or range refers to follow it in the argument list.
    """

    type: str
    value: Any = None

    def _header(self, default: tuple) -> tuple:
        if isinstance(self.value, tuple) and len(self.value) == 2:
            return self.value
        return default

    @property
    def arr_type(self) -> str:
        return self._header(("", 0))[0]

    @arr_type.setter
    def arr_type(self, arr_type: str) -> None:
        self.value = (arr_type, self.arr_len)

    @property
    def arr_len(self) -> int:
        return int(self._header(("", 0))[1])

    @arr_len.setter
    def arr_len(self, length: int) -> None:
        self.value = (self.arr_type, int(length))

    @property
    def rep_num(self) -> int:
        return int(self._header((0, False))[0])

    @rep_num.setter
    def rep_num(self, num: int) -> None:
        self.value = (int(num), self.rep_has_delta)

    @property
    def rep_has_delta(self) -> bool:
        return bool(self._header((0, False))[1])

    @rep_has_delta.setter
    def rep_has_delta(self, has_delta: bool) -> None:
        self.value = (self.rep_num, bool(has_delta))


def make_array(arr_type: str, length: int) -> ArgVal:
    """Header of an array holding ``length`` following values of ``arr_type``."""
    return ArgVal("a", (arr_type, int(length)))


def make_range(num: int, has_delta: bool) -> ArgVal:
    """Header of a range repeated ``num`` times (0 means endless).

    With a delta the header is followed by the delta and the start value,
    otherwise only by the value that is repeated.
    """
    return ArgVal("-", (int(num), bool(has_delta)))


def null_value(type: str) -> ArgVal:
    """Return the zero value of ``type``."""
    if type in ("h", "t", "c", "i", "r"):
        return ArgVal(type, 0)
    if type in ("s", "S"):
        return ArgVal(type, None)
    if type in ("d", "f"):
        return ArgVal(type, 0.0)
    if type in ("T", "F"):
        return ArgVal("F", False)
    raise ArgValError(f"no null value for type {type!r}")


def _convert(type: str, number: Any) -> ArgVal:
    if type in ("T", "F"):
        flag = number != 0
        return ArgVal("T" if flag else "F", flag)
    normalize = _NORMALIZE.get(type)
    if normalize is None:
        raise ArgValError(f"cannot convert a number to type {type!r}")
    try:
        return ArgVal(type, normalize(number))
    except (OverflowError, ValueError) as exc:
        raise ArgValError(f"{number!r} is not representable as {type!r}") from exc


def from_int(type: str, number: int) -> ArgVal:
    """Convert an integer to a value of ``type``; booleans follow the number."""
    return _convert(type, int(number))


def from_double(type: str, number: float) -> ArgVal:
    """Convert a float to a value of ``type``; booleans follow the number."""
    return _convert(type, float(number))


def negate(av: ArgVal) -> ArgVal:
    """Return the negated value; booleans are inverted."""
    if av.type == "T":
        return ArgVal("F", False)
    if av.type == "F":
        return ArgVal("T", True)
    normalize = _NORMALIZE.get(av.type)
    if normalize is None:
        raise ArgValError(f"cannot negate type {av.type!r}")
    return ArgVal(av.type, normalize(-av.value))


def round_value(av: ArgVal) -> ArgVal:
    """Round floats down unless the fraction is at least 0.999."""
    if av.type in ("d", "f"):
        try:
            whole = int(av.value)
        except (OverflowError, ValueError) as exc:
            raise ArgValError(f"cannot round {av.value!r}") from exc
        if av.type == "d":
            up = av.value - whole >= 0.999
            return ArgVal("d", float(whole + up))
        up = _float32(av.value - whole) >= _float32(0.999)
        return ArgVal("f", _float32(whole + up))
    if av.type in ("h", "c", "i", "T", "F"):
        return replace(av)
    raise ArgValError(f"cannot round type {av.type!r}")


def _is_true_false_pair(lhs: ArgVal, rhs: ArgVal) -> bool:
    return {lhs.type, rhs.type} == {"T", "F"}


def add(lhs: ArgVal, rhs: ArgVal) -> ArgVal:
    """Sum of two values of the same type (booleans combine as exclusive or)."""
    if lhs.type != rhs.type:
        if _is_true_false_pair(lhs, rhs):
            return ArgVal("T", True)
        raise ArgValError(f"cannot add {lhs.type!r} and {rhs.type!r}")
    if lhs.type in ("T", "F"):
        return ArgVal("F", False)
    normalize = _NORMALIZE.get(lhs.type)
    if normalize is None:
        raise ArgValError(f"cannot add values of type {lhs.type!r}")
    return ArgVal(lhs.type, normalize(lhs.value + rhs.value))


def sub(lhs: ArgVal, rhs: ArgVal) -> ArgVal:
    """Difference of two values; differing types are handed to :func:`add`."""
    if lhs.type != rhs.type:
        return add(lhs, rhs)
    if lhs.type in ("T", "F"):
        return ArgVal("F", False)
    normalize = _NORMALIZE.get(lhs.type)
    if normalize is None:
        raise ArgValError(f"cannot subtract values of type {lhs.type!r}")
    return ArgVal(lhs.type, normalize(lhs.value - rhs.value))


def mult(lhs: ArgVal, rhs: ArgVal) -> ArgVal:
    """Product of two values (booleans combine as logical and)."""
    if lhs.type != rhs.type:
        if _is_true_false_pair(lhs, rhs):
            return ArgVal("F", False)
        raise ArgValError(f"cannot multiply {lhs.type!r} and {rhs.type!r}")
    if lhs.type == "T":
        return ArgVal("T", True)
    if lhs.type == "F":
        return ArgVal("F", False)
    normalize = _NORMALIZE.get(lhs.type)
    if normalize is None:
        raise ArgValError(f"cannot multiply values of type {lhs.type!r}")
    return ArgVal(lhs.type, normalize(lhs.value * rhs.value))


def _div_int(a: int, b: int) -> int:
    if b == 0:
        raise ArgValError("integer division by zero")
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _div_float(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def div(lhs: ArgVal, rhs: ArgVal) -> ArgVal:
    """Quotient of two values of the same type; integers truncate toward zero."""
    if lhs.type != rhs.type:
        raise ArgValError(f"cannot divide {lhs.type!r} by {rhs.type!r}")
    t = lhs.type
    if t == "T":
        return ArgVal("T", True)
    if t == "F":
        raise ArgValError("division by false")
    if t == "d":
        return ArgVal("d", _div_float(lhs.value, rhs.value))
    if t == "f":
        return ArgVal("f", _float32(_div_float(lhs.value, rhs.value)))
    if t == "h":
        return ArgVal("h", _int64(_div_int(lhs.value, rhs.value)))
    if t in ("c", "i"):
        return ArgVal(t, _int32(_div_int(lhs.value, rhs.value)))
    raise ArgValError(f"cannot divide values of type {t!r}")


def to_int(av: ArgVal) -> int:
    """Convert a numeric or boolean value to a 32-bit integer."""
    if av.type in ("d", "f"):
        try:
            return _int32(int(av.value))
        except (OverflowError, ValueError) as exc:
            raise ArgValError(f"cannot convert {av.value!r} to int") from exc
    if av.type in ("h", "c", "i"):
        return _int32(av.value)
    if av.type in ("T", "F"):
        return int(bool(av.value))
    raise ArgValError(f"cannot convert type {av.type!r} to int")


def range_arg(args: Sequence[ArgVal], ith: int) -> ArgVal:
    """Return element ``ith`` of the range whose header is ``args[0]``.

    ``args[1]`` is the delta and ``args[2]`` the start value.
    """
    delta, start = args[1], args[2]
    return add(start, mult(from_int(delta.type, ith), delta))