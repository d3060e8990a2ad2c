"""Conversion between system time and OSC time tags."""

from __future__ import annotations

import struct
import time
from typing import Sequence, Union

from rtosc.arg_val import ArgVal, ArgValError

# seconds from 1900-01-01 (OSC epoch) to 1970-01-01 (Unix epoch)
_EPOCH_OFFSET = 2208988800
_SECFRAC_SCALE = 1 << 32
_IMMEDIATELY = 1
_MASK64 = (1 << 64) - 1


def _float32(number: float) -> float:
    return struct.unpack("<f", struct.pack("<f", number))[0]


def _check_secfracs(secfracs: int) -> int:
    secfracs = int(secfracs)
    if not 0 <= secfracs < _SECFRAC_SCALE:
        raise ValueError(f"second fraction {secfracs} is not in [0, 2**32)")
    return secfracs


def _tag_value(arg: ArgVal) -> int:
    if arg.type != "t":
        raise ArgValError(f"expected a time tag, got type {arg.type!r}")
    return int(arg.value)


def from_time_t(time_value: int, secfracs: int = 0) -> ArgVal:
    """Time tag for Unix seconds plus fractional parts of a second."""
    secfracs = _check_secfracs(secfracs)
    value = ((int(time_value) + _EPOCH_OFFSET) << 32) + secfracs
    return ArgVal("t", value & _MASK64)


def from_params(params: Union[time.struct_time, Sequence[int]],
                secfracs: int = 0) -> ArgVal:
    """Time tag for a local broken-down time plus a second fraction."""
    return from_time_t(int(time.mktime(tuple(params))), secfracs)


def current_time() -> ArgVal:
    """Time tag for the current time."""
    seconds, nanos = divmod(time.time_ns(), 1_000_000_000)
    return from_time_t(seconds, (nanos << 32) // 1_000_000_000)


def immediately() -> ArgVal:
    """The special time tag meaning "immediately"."""
    return ArgVal("t", _IMMEDIATELY)


def float_to_secfracs(value: float) -> int:
    """Map a float in [0, 1) linearly onto [0, 2**32), in single precision."""
    single = _float32(value)
    if not 0.0 <= single < 1.0:
        raise ValueError(f"{value!r} is not in [0, 1)")
    return int(_float32(single * _SECFRAC_SCALE))


def secfracs_to_float(secfracs: int) -> float:
    """Map an integer in [0, 2**32) linearly onto [0, 1), in single precision."""
    return _float32(_check_secfracs(secfracs) / _SECFRAC_SCALE)


def time_t_from_arg_val(arg: ArgVal) -> int:
    """Whole Unix seconds of a time tag."""
    return (_tag_value(arg) >> 32) - _EPOCH_OFFSET


def params_from_arg_val(arg: ArgVal) -> time.struct_time:
    """Whole seconds of a time tag as local broken-down time."""
    return time.localtime(time_t_from_arg_val(arg))


def secfracs_from_arg_val(arg: ArgVal) -> int:
    """Fractional parts of a second of a time tag, in [0, 2**32)."""
    return _tag_value(arg) & (_SECFRAC_SCALE - 1)


def is_immediately(arg: ArgVal) -> bool:
    """Tell whether ``arg`` is the "immediately" time tag."""
    return arg.type == "t" and arg.value == _IMMEDIATELY