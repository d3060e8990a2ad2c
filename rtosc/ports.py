"""Port tables that describe the addresses of an object tree, and OSC messages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

from rtosc.arg_val import ArgVal

# type tags that carry no data in a message
_NO_DATA = {"T": True, "F": False, "N": None, "I": None}

_RANGED = re.compile(r"^(?P<prefix>[^#]*)#(?P<count>\d+)(?P<suffix>.*)$")


@dataclass(frozen=True)
class Message:
    """An OSC message: an address, its type tags and the data they carry.

    ``args`` holds one entry per type tag that carries data; the tags
    ``T``, ``F``, ``N`` and ``I`` have none.
    """

    path: str
    types: str = ""
    args: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        expected = sum(1 for tag in self.types if tag not in _NO_DATA)
        if expected != len(self.args):
            raise ValueError(
                f"type tags {self.types!r} need {expected} arguments, "
                f"got {len(self.args)}")

    def arg_vals(self) -> list[ArgVal]:
        """Return the arguments as typed values, one per type tag."""
        data = iter(self.args)
        return [ArgVal(tag, _NO_DATA[tag] if tag in _NO_DATA else next(data))
                for tag in self.types]

    def argument(self, index: int) -> ArgVal:
        """Return the typed argument at ``index``."""
        return self.arg_vals()[index]


def _matches(pattern: str, segment: str) -> bool:
    """Match a name part, where ``#N`` stands for a number below N."""
    ranged = _RANGED.match(pattern)
    if ranged is None:
        return pattern == segment
    prefix, suffix = ranged.group("prefix"), ranged.group("suffix")
    if not segment.startswith(prefix) or not segment.endswith(suffix):
        return False
    digits = segment[len(prefix):len(segment) - len(suffix)]
    return digits.isdigit() and int(digits) < int(ranged.group("count"))


@dataclass
class Port:
    """One address of a port table.

    The name holds the address, then the accepted argument specifications,
    each introduced by ``:``. A name containing ``/`` leads to ``ports``.
    """

    name: str
    metadata: Mapping[str, Optional[str]] = field(default_factory=dict)
    ports: Optional["PortTable"] = None
    callback: Optional[Callable[..., Any]] = None

    def __post_init__(self) -> None:
        self.metadata = dict(self.metadata)

    @property
    def base_name(self) -> str:
        """The address part of the name, without a trailing slash."""
        return self.name.split(":", 1)[0].rstrip("/")

    @property
    def is_subtree(self) -> bool:
        return "/" in self.name

    def arg_types(self) -> list[str]:
        """The argument specifications the port accepts; empty accepts any."""
        _, sep, specs = self.name.partition(":")
        if not sep:
            return []
        return [spec for spec in specs.split(":") if spec]


class PortTable:
    """An ordered collection of ports."""

    def __init__(self, ports: Iterable[Port]):
        self.ports = list(ports)

    def __iter__(self) -> Iterator[Port]:
        return iter(self.ports)

    def __len__(self) -> int:
        return len(self.ports)

    def __getitem__(self, name: str) -> Port:
        for port in self.ports:
            if port.base_name == name:
                return port
        raise KeyError(name)

    def apropos(self, path: str) -> Optional[Port]:
        """Find the port that best answers ``path``, descending into subtrees."""
        if path.startswith("/"):
            path = path[1:]
        head, sep, rest = path.partition("/")
        if sep:
            for port in self.ports:
                if port.is_subtree and _matches(port.base_name, head):
                    if not rest:
                        return port
                    if port.ports is None:
                        return None
                    return port.ports.apropos(rest)
        if not path:
            return None
        for port in self.ports:
            if port.name.startswith(path) or _matches(port.base_name, path):
                return port
        return None