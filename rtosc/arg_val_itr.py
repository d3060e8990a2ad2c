"""Iteration over flat argument lists with ranges and arrays."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from rtosc.arg_val import ArgVal, ArgValError, range_arg


class ArgValIterator:
    """Walks an argument list, expanding ranges and stepping over arrays.

    ``index`` is the position in ``args``; ``range_index`` counts the
    elements already produced by the range at that position.
    """

    def __init__(self, args: Sequence[ArgVal]):
        self.args = args
        self.index = 0
        self.range_index = 0

    def _current(self) -> Optional[ArgVal]:
        if 0 <= self.index < len(self.args):
            return self.args[self.index]
        return None

    def get(self) -> ArgVal:
        """Return the current value; range elements are computed."""
        av = self.args[self.index]
        if av.type == "-":
            if av.rep_has_delta:
                return range_arg(self.args[self.index:], self.range_index)
            return replace(self.args[self.index + 1])
        return av

    def advance(self) -> None:
        """Move to the next value."""
        av = self._current()
        if av is not None and av.type == "-":
            self.range_index += 1
            num = av.rep_num
            if num and self.range_index >= num:
                self.index += 2 if av.rep_has_delta else 1
                self.range_index = 0

        if not self.range_index:
            av = self._current()
            if av is not None and av.type == "a":
                self.index += av.arr_len
            self.index += 1


def expand_arg_vals(args: Sequence[ArgVal], nargs: int) -> list[ArgVal]:
    """Return the values the first ``nargs`` entries of ``args`` stand for.

    Ranges are expanded; an array appears as its header only.
    """
    itr = ArgValIterator(args)
    result: list[ArgVal] = []
    while itr.index < nargs:
        current = args[itr.index]
        if current.type == "-" and not current.rep_num:
            raise ArgValError("cannot expand an endless range")
        result.append(itr.get())
        itr.advance()
    return result