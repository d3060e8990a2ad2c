"""MIDI learning: binding controller numbers to port addresses.

The non-realtime side keeps track of what is learned and builds new
storages; the realtime side turns incoming controller events into
messages through the storage it was last given.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from rtosc.ports import Message, Port, PortTable

Write = Callable[[Message], None]
MapCallback = Callable[[int, Write], None]

_NUMBER_PREFIX = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

BIND_PATH = "/midi-learn/midi-bind"
ADD_WATCH_PATH = "/midi-learn/midi-add-watch"
USE_CC_PATH = "/midi-use-CC"
VIRTUAL_CC_PATH = "/virtual_midi_cc"


class MidiMapperError(ValueError):
    """Raised when an address cannot be learned."""


def _atof(text: Optional[str]) -> float:
    if text is None:
        return 0.0
    found = _NUMBER_PREFIX.match(text)
    return float(found.group(0)) if found else 0.0


@dataclass(frozen=True)
class MidiBijection:
    """Linear mapping between a parameter range and 14-bit MIDI values."""

    mode: int = 0
    min: float = 0.0
    max: float = 0.0

    def to_midi(self, x: float) -> int:
        """Map a parameter value onto a 14-bit MIDI value."""
        if self.mode != 0:
            return 0
        return int((x - self.min) / (self.max - self.min) * (1 << 14))

    def to_value(self, x: int) -> float:
        """Map a 14-bit MIDI value onto the parameter range."""
        if self.mode != 0:
            return 0.0
        return x / float(1 << 14) * (self.max - self.min) + self.min


def _blit(current: int, val: int, coarse: bool) -> int:
    if coarse:
        return (val << 7) | (current & 0x7F)
    return val | (current & 0x3F80)


@dataclass
class MidiMapperStorage:
    """Values, controller mappings and callbacks used on the realtime side.

    Each mapping is ``(controller_id, coarse, value_index)``.
    """

    values: list = field(default_factory=list)
    mapping: list = field(default_factory=list)
    callbacks: list = field(default_factory=list)

    def handle_cc(self, id: int, val: int, write: Write) -> bool:
        """Apply a controller value; return True if the controller is mapped."""
        for cc_id, coarse, ind in self.mapping:
            if cc_id == id:
                self.values[ind] = _blit(self.values[ind], val, coarse)
                self.callbacks[ind](self.values[ind], write)
                return True
        return False

    def clone_values(self, storage: "MidiMapperStorage") -> None:
        """Take over the controller values of ``storage`` for shared controllers."""
        self.values = [0] * len(self.values)
        for cc_id, coarse_dest, ind_dest in self.mapping:
            for src_id, coarse_src, ind_src in storage.mapping:
                if src_id != cc_id:
                    continue
                source = storage.values[ind_src]
                val = source >> 7 if coarse_src else source & 0x7F
                self.values[ind_dest] = _blit(self.values[ind_dest], val,
                                              coarse_dest)

    def clone(self) -> "MidiMapperStorage":
        """Return an independent copy."""
        return MidiMapperStorage(list(self.values), list(self.mapping),
                                 list(self.callbacks))


def _remove_mapping(id: int, storage: MidiMapperStorage) -> None:
    storage.mapping = [m for m in storage.mapping if m[0] != id]


def _make_callback(bi: MidiBijection, addr: str, type: str) -> MapCallback:
    if type == "i" and bi.min == 0 and bi.max == 127:
        def send_note_range(x: int, write: Write) -> None:
            write(Message(addr, "i", (0x7F & (x >> 7),)))
        return send_note_range

    def send(x: int, write: Write) -> None:
        out = bi.to_value(x)
        if type == "f":
            write(Message(addr, "f", (out,)))
        else:
            write(Message(addr, "i", (int(out),)))
    return send


def _make_float_callback(bi: MidiBijection, addr: str) -> MapCallback:
    def send(x: int, write: Write) -> None:
        write(Message(addr, "f", (bi.to_value(x),)))
    return send


class MidiMapperNrt:
    """Non-realtime side of MIDI learning.

    Messages for the realtime side are handed to ``rt_cb``. The map of
    learned addresses holds ``(callback_index, coarse_id, fine_id, bijection)``
    where an id of -1 means unbound.
    """

    def __init__(self, base_ports: Optional[PortTable] = None,
                 rt_cb: Optional[Write] = None):
        self.base_ports = base_ports
        self.rt_cb: Write = rt_cb if rt_cb is not None else (lambda msg: None)
        self.storage: Optional[MidiMapperStorage] = None
        self.learn_queue: deque = deque()
        self.inv_map: dict = {}

    def _port(self, addr: str) -> Port:
        if self.base_ports is None:
            raise RuntimeError("no port table set")
        port = self.base_ports.apropos(addr)
        if port is None:
            raise MidiMapperError(f"port '{addr}' does not exist")
        return port

    def _send_bind(self) -> None:
        self.rt_cb(Message(BIND_PATH, "b", (self.storage,)))

    def map(self, addr: str, coarse: bool = True) -> None:
        """Queue ``addr`` for learning the next unbound controller."""
        if (addr, coarse) in self.learn_queue:
            return
        self.un_map(addr, coarse)
        self.learn_queue.append((addr, coarse))
        self.rt_cb(Message(ADD_WATCH_PATH))

    def _generate_new_bijection(self, port: Port, addr: str) -> MidiMapperStorage:
        meta = port.metadata
        if "min" not in meta or "max" not in meta:
            raise MidiMapperError(
                f"cannot learn address '{addr}': there are no min/max fields")
        bi = MidiBijection(0, _atof(meta["min"]), _atof(meta["max"]))
        type = "i" if ":i" in port.name else "f"
        callback = _make_callback(bi, addr, type)
        if self.storage is not None:
            nstorage = MidiMapperStorage(self.storage.values + [0],
                                         list(self.storage.mapping),
                                         self.storage.callbacks + [callback])
        else:
            nstorage = MidiMapperStorage([0], [], [callback])
        self.inv_map[addr] = (len(nstorage.callbacks) - 1, -1, -1, bi)
        return nstorage

    def use_free_id(self, id: int) -> None:
        """Bind controller ``id`` to the oldest address waiting to be learned."""
        if not self.learn_queue:
            return
        addr, coarse = self.learn_queue.popleft()
        port = self._port(addr)
        if addr not in self.inv_map:
            nstorage = self._generate_new_bijection(port, addr)
        else:
            nstorage = self.storage.clone()

        index, coarse_id, fine_id, bi = self.inv_map[addr]
        nstorage.mapping.append((id, coarse, index))
        if coarse:
            if coarse_id != -1:
                _remove_mapping(coarse_id, nstorage)
            self.inv_map[addr] = (index, id, fine_id, bi)
        else:
            if fine_id != -1:
                _remove_mapping(fine_id, nstorage)
            self.inv_map[addr] = (index, coarse_id, id, bi)
        self.storage = nstorage
        self._send_bind()

    def un_map(self, addr: str, coarse: bool = True) -> None:
        """Remove the coarse or fine controller bound to ``addr``."""
        if addr not in self.inv_map:
            return
        index, coarse_id, fine_id, bi = self.inv_map[addr]
        if coarse:
            kill_id = coarse_id
            coarse_id = -1
        else:
            kill_id = fine_id
            fine_id = -1
        if coarse_id == -1 and fine_id == -1:
            del self.inv_map[addr]
        else:
            self.inv_map[addr] = (index, coarse_id, fine_id, bi)

        if kill_id == -1:
            return
        nstorage = self.storage.clone()
        _remove_mapping(kill_id, nstorage)
        self.storage = nstorage
        self._send_bind()

    def clear(self) -> None:
        """Forget every binding and every pending learn request."""
        self.storage = MidiMapperStorage()
        self.learn_queue.clear()
        self.inv_map.clear()
        self._send_bind()

    def get_midi_mapping_strings(self) -> dict:
        """Describe the binding of every known address, ordered by address.

        Pending learn requests are shown by letters A, B, ... in queue order.
        """
        result = {addr: self.get_mapped_string(addr) for addr in self.inv_map}
        letter = ord("A")
        for addr, coarse in self.learn_queue:
            if coarse:
                result[addr] = chr(letter)
            else:
                result[addr] = result.get(addr, "") + ":" + chr(letter)
            letter += 1
        return dict(sorted(result.items()))

    def get_mapped_string(self, addr: str) -> str:
        """Describe the coarse and fine controllers of ``addr``."""
        out = ""
        queue = list(self.learn_queue)
        entry = self.inv_map.get(addr)
        if entry is not None:
            if entry[1] != -1:
                out += str(entry[1])
        elif (addr, True) in queue:
            out += str(queue.index((addr, True)))
        if entry is not None:
            if entry[2] != -1:
                out += ":" + str(entry[2])
        elif (addr, False) in queue:
            out += str(queue.index((addr, False)))
        return out

    def get_bijection(self, addr: str) -> MidiBijection:
        return self.inv_map[addr][3]

    def snoop_b_to_u(self, msg: Message) -> None:
        """Send the value of a bound parameter back out as virtual controllers."""
        entry = self.inv_map.get(msg.path)
        if entry is None:
            return
        if msg.types in ("f", "i"):
            value = float(msg.args[0])
        elif msg.types == "T":
            value = 1.0
        elif msg.types == "F":
            value = 0.0
        else:
            return
        new_midi = entry[3].to_midi(value)
        if entry[1] != -1:
            self._apply_midi(new_midi >> 7, entry[1])
        if entry[2] != -1:
            self._apply_midi(0x7F & new_midi, entry[2])

    def _apply_midi(self, val: int, id: int) -> None:
        self.rt_cb(Message(VIRTUAL_CC_PATH, "iii", (0, val, id)))

    def snoop_u_to_b(self, msg: Message) -> None:
        """Refresh bound values after a load."""
        if msg.path.startswith("/load"):
            self.refresh_midi()

    def refresh_midi(self) -> None:
        """Request the current value of every bound address."""
        for addr in list(self.inv_map):
            self.rt_cb(Message(addr))

    def set_bounds(self, addr: str, low: float, high: float) -> None:
        """Change the parameter range a bound address is driven over."""
        entry = self.inv_map.get(addr)
        if entry is None:
            return
        index, coarse_id, fine_id, _ = entry
        bi = MidiBijection(0, low, high)
        self.inv_map[addr] = (index, coarse_id, fine_id, bi)
        nstorage = self.storage.clone()
        nstorage.callbacks[index] = _make_float_callback(bi, addr)
        self.storage = nstorage
        self._send_bind()

    def get_bounds(self, addr: str) -> tuple:
        """Return (port min, port max, mapped min, mapped max); -1 when unbound."""
        port = self._port(addr)
        min_val = _atof(port.metadata.get("min"))
        max_val = _atof(port.metadata.get("max"))
        entry = self.inv_map.get(addr)
        if entry is not None:
            return (min_val, max_val, entry[3].min, entry[3].max)
        return (min_val, max_val, -1.0, -1.0)

    def has(self, addr: str) -> bool:
        return addr in self.inv_map

    def has_pending(self, addr: str) -> bool:
        return any(a == addr for a, _ in self.learn_queue)

    def has_coarse(self, addr: str) -> bool:
        return self.has(addr) and self.inv_map[addr][1] != -1

    def has_fine(self, addr: str) -> bool:
        return self.has(addr) and self.inv_map[addr][2] != -1

    def has_coarse_pending(self, addr: str) -> bool:
        return (addr, True) in self.learn_queue

    def has_fine_pending(self, addr: str) -> bool:
        return (addr, False) in self.learn_queue

    def get_coarse(self, addr: str) -> int:
        return self.inv_map[addr][1] if self.has(addr) else -1

    def get_fine(self, addr: str) -> int:
        return self.inv_map[addr][2] if self.has(addr) else -1


class MidiMapperRt:
    """Realtime side: turns controller events into messages.

    Parameter messages go to ``backend``; requests to learn an unbound
    controller go to ``frontend``.
    """

    def __init__(self, backend: Optional[Write] = None,
                 frontend: Optional[Write] = None):
        self.backend: Write = backend if backend is not None else (lambda m: None)
        self.frontend: Write = frontend if frontend is not None else (lambda m: None)
        self.storage: Optional[MidiMapperStorage] = None
        self.watch_size = 0
        self.pending: deque = deque()

    def handle_cc(self, par: int, val: int, chan: int = 1,
                  is_nrpn: bool = False) -> None:
        """Handle a controller event on MIDI channel ``chan`` (1-based)."""
        if chan < 1:
            chan = 1
        id = (int(bool(is_nrpn)) << 18) + (((chan - 1) & 0x0F) << 14) + par
        handled = self.storage is not None and self.storage.handle_cc(
            id, val, self.backend)
        if not handled and id not in self.pending and self.watch_size:
            self.watch_size -= 1
            self.pending.append(id)
            self.frontend(Message(USE_CC_PATH, "i", (id,)))

    def add_watch(self) -> None:
        self.watch_size += 1

    def rem_watch(self) -> None:
        if self.watch_size:
            self.watch_size -= 1

    def bind(self, storage: MidiMapperStorage) -> None:
        """Switch to a new storage, keeping the values of shared controllers."""
        if self.pending:
            self.pending.popleft()
        if self.storage is not None:
            storage.clone_values(self.storage)
        self.storage = storage

    def dispatch(self, msg: Message) -> bool:
        """Handle a message from the non-realtime side; True if understood."""
        name = msg.path.rstrip("/").rsplit("/", 1)[-1]
        if name == "midi-add-watch":
            self.add_watch()
        elif name == "midi-remove-watch":
            self.rem_watch()
        elif name == "midi-bind" and msg.types == "b":
            self.bind(msg.args[0])
        else:
            return False
        return True