"""Equality and three-way comparison of argument lists."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from rtosc.arg_val import ArgVal, ArgValError
from rtosc.arg_val_itr import ArgValIterator


@dataclass(frozen=True)
class CmpOptions:
    """Options for comparing values; floats within the tolerance are equal."""

    float_tolerance: float = 0.0


DEFAULT_CMP_OPTIONS = CmpOptions()

Operand = Union[ArgVal, Sequence[ArgVal]]


def _as_seq(operand: Operand) -> Sequence[ArgVal]:
    return [operand] if isinstance(operand, ArgVal) else operand


def _f32(number: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", number))[0]
    except OverflowError:
        return float("inf") if number > 0 else float("-inf")


def _sign(a, b) -> int:
    return (a > b) - (a < b)


def _bytes(value) -> bytes:
    return bytes(value) if value is not None else b""


def _floats_close(lhs: float, rhs: float, tolerance: float, single: bool) -> bool:
    if single:
        return abs(_f32(lhs - rhs)) <= _f32(tolerance)
    return abs(lhs - rhs) <= tolerance


def eq_single(lhs: Operand, rhs: Operand, opt: Optional[CmpOptions] = None) -> bool:
    """Tell whether two single values are equal.

    For an array, pass the sequence starting at its header so that its
    elements can be reached. Ranges cannot be compared here.
    """
    opt = opt or DEFAULT_CMP_OPTIONS
    lseq, rseq = _as_seq(lhs), _as_seq(rhs)
    left, right = lseq[0], rseq[0]
    if left.type != right.type:
        return False
    t = left.type
    if t in ("i", "c", "r", "h", "t"):
        return left.value == right.value
    if t in ("I", "T", "F", "N"):
        return True
    if t in ("f", "d"):
        if opt.float_tolerance == 0.0:
            return left.value == right.value
        return _floats_close(left.value, right.value, opt.float_tolerance, t == "f")
    if t == "m":
        return _bytes(left.value)[:4] == _bytes(right.value)[:4]
    if t in ("s", "S"):
        if left.value is None or right.value is None:
            return left.value is right.value
        return left.value == right.value
    if t == "b":
        return _bytes(left.value) == _bytes(right.value)
    if t == "a":
        lt, rt = left.arr_type, right.arr_type
        if lt != rt and {lt, rt} != {"T", "F"}:
            return False
        return arg_vals_eq(lseq[1:], rseq[1:], left.arr_len, right.arr_len, opt)
    raise ArgValError(f"cannot compare values of type {t!r}")


def cmp_single(lhs: Operand, rhs: Operand, opt: Optional[CmpOptions] = None) -> int:
    """Three-way comparison of two single values.

    Values of different types are ordered by their type tag. The
    "immediately" time tag is lower than every other time tag.
    """
    opt = opt or DEFAULT_CMP_OPTIONS
    lseq, rseq = _as_seq(lhs), _as_seq(rhs)
    left, right = lseq[0], rseq[0]
    if left.type != right.type:
        return 1 if left.type > right.type else -1
    t = left.type
    if t in ("i", "c", "r", "h"):
        return _sign(left.value, right.value)
    if t in ("I", "T", "F", "N"):
        return 0
    if t in ("f", "d"):
        if opt.float_tolerance == 0.0:
            return _sign(left.value, right.value)
        if _floats_close(left.value, right.value, opt.float_tolerance, t == "f"):
            return 0
        return 1 if left.value > right.value else -1
    if t == "t":
        if left.value == 1:
            return 0 if right.value == 1 else -1
        if right.value == 1:
            return 1
        return _sign(left.value, right.value)
    if t == "m":
        return _sign(_bytes(left.value)[:4], _bytes(right.value)[:4])
    if t in ("s", "S"):
        if left.value is None or right.value is None:
            return _sign(left.value is not None, right.value is not None)
        return _sign(left.value, right.value)
    if t == "b":
        lb, rb = _bytes(left.value), _bytes(right.value)
        shortest = min(len(lb), len(rb))
        result = _sign(lb[:shortest], rb[:shortest])
        if not result and len(lb) != len(rb):
            result = lb[shortest] if len(lb) > len(rb) else -rb[shortest]
        return result
    if t == "a":
        lt, rt = left.arr_type, right.arr_type
        if lt != rt and not (lt in ("T", "F") and rt):
            return 1 if lt > rt else -1
        return arg_vals_cmp(lseq[1:], rseq[1:], left.arr_len, right.arr_len, opt)
    raise ArgValError(f"cannot compare values of type {t!r}")


def _has_next(litr: ArgValIterator, ritr: ArgValIterator,
              lsize: int, rsize: int) -> bool:
    # stop when one side is done, or when both sides sit on endless ranges
    if not (litr.index < lsize and ritr.index < rsize):
        return False
    lav, rav = litr.args[litr.index], ritr.args[ritr.index]
    return (lav.type != "-" or rav.type != "-"
            or bool(lav.rep_num) or bool(rav.rep_num))


def _finished(itr: ArgValIterator, size: int) -> bool:
    if itr.index == size:
        return True
    if itr.index < len(itr.args):
        av = itr.args[itr.index]
        return av.type == "-" and not av.rep_num
    return False


def _operand(itr: ArgValIterator) -> Sequence[ArgVal]:
    current = itr.get()
    if current.type == "a":
        return itr.args[itr.index:]
    return [current]


def _sizes(lhs, rhs, lsize, rsize):
    lseq, rseq = _as_seq(lhs), _as_seq(rhs)
    return (lseq, rseq,
            len(lseq) if lsize is None else lsize,
            len(rseq) if rsize is None else rsize)


def arg_vals_eq(lhs: Operand, rhs: Operand, lsize: Optional[int] = None,
                rsize: Optional[int] = None,
                opt: Optional[CmpOptions] = None) -> bool:
    """Tell whether two argument lists, ranges expanded, are equal."""
    lseq, rseq, lsize, rsize = _sizes(lhs, rhs, lsize, rsize)
    opt = opt or DEFAULT_CMP_OPTIONS
    litr, ritr = ArgValIterator(lseq), ArgValIterator(rseq)
    while _has_next(litr, ritr, lsize, rsize):
        if not eq_single(_operand(litr), _operand(ritr), opt):
            return False
        litr.advance()
        ritr.advance()
    return _finished(litr, lsize) and _finished(ritr, rsize)


def arg_vals_cmp(lhs: Operand, rhs: Operand, lsize: Optional[int] = None,
                 rsize: Optional[int] = None,
                 opt: Optional[CmpOptions] = None) -> int:
    """Three-way comparison of two argument lists, ranges expanded."""
    lseq, rseq, lsize, rsize = _sizes(lhs, rhs, lsize, rsize)
    opt = opt or DEFAULT_CMP_OPTIONS
    litr, ritr = ArgValIterator(lseq), ArgValIterator(rseq)
    while _has_next(litr, ritr, lsize, rsize):
        result = cmp_single(_operand(litr), _operand(ritr), opt)
        if result:
            return result
        litr.advance()
        ritr.advance()
    if _finished(litr, lsize) and _finished(ritr, rsize):
        return 0
    return 1 if lsize - litr.index > rsize - ritr.index else -1