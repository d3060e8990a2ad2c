"""Automation slots that map one control value onto several parameters."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional

from rtosc.ports import Message, Port, PortTable


class AutomationError(ValueError):
    """Raised when a parameter cannot be bound to an automation."""


class MidiController(IntEnum):
    """MIDI controllers used for NRPN handling."""

    DATA_ENTRY_HI = 6
    DATA_ENTRY_LO = 38
    NRPN_LO = 98
    NRPN_HI = 99


_NUMBER_PREFIX = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def _atof(text: Optional[str]) -> float:
    if text is None:
        return 0.0
    found = _NUMBER_PREFIX.match(text)
    return float(found.group(0)) if found else 0.0


def _log(value: float) -> float:
    if value > 0:
        return math.log(value)
    return -math.inf if value == 0 else math.nan


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass
class AutomationMap:
    """Linear mapping of a control value onto a parameter range."""

    control_points: list = field(default_factory=list)
    npoints: int = 0
    upoints: int = 0
    gain: float = 100.0
    offset: float = 0.0
    control_scale: int = 0

    def set_line(self, low: float, high: float) -> None:
        """Map 0 onto ``low`` and 1 onto ``high``."""
        points = [0.0, low, 1.0, high]
        if len(self.control_points) < 4:
            self.control_points.extend([0.0] * (4 - len(self.control_points)))
        self.control_points[:4] = points
        self.upoints = 2


@dataclass
class Automation:
    """One parameter driven by a slot."""

    map: AutomationMap = field(default_factory=AutomationMap)
    used: bool = False
    active: bool = False
    relative: bool = False
    param_base_value: float = 0.0
    param_path: str = ""
    param_type: str = ""
    param_min: float = 0.0
    param_max: float = 0.0
    param_step: float = 0.0


@dataclass
class AutomationSlot:
    """A control value together with the parameters it drives."""

    name: str
    automations: list = field(default_factory=list)
    active: bool = False
    used: bool = False
    learning: int = -1
    midi_cc: int = -1
    midi_nrpn: int = -1
    current_state: float = 0.0


@dataclass
class _NrpnState:
    parhi: int = -1
    parlo: int = -1
    valhi: int = -1
    vallo: int = -1


def _slot_name(slot_id: int) -> str:
    return f"Slot {slot_id + 1}"


class AutomationMgr:
    """Manages automation slots, their MIDI bindings and MIDI learning.

    Messages produced by the slots are handed to ``backend``.
    """

    def __init__(self, slots: int, per_slot: int, control_points: int):
        self.nslots = slots
        self.per_slot = per_slot
        self.active_slot = 0
        self.learn_queue_len = 0
        self.p: Optional[PortTable] = None
        self.damaged = False
        self.instance: Any = None
        self.backend: Optional[Callable[[Message], None]] = None
        self._nrpn = _NrpnState()
        self.slots = [
            AutomationSlot(
                name=_slot_name(i),
                automations=[
                    Automation(map=AutomationMap(
                        control_points=[0.0] * control_points,
                        npoints=control_points))
                    for _ in range(per_slot)
                ],
            )
            for i in range(slots)
        ]

    def _valid(self, slot_id: int, sub: int = 0) -> bool:
        return 0 <= slot_id < self.nslots and 0 <= sub < self.per_slot

    def _lookup(self, path: str) -> Port:
        if self.p is None:
            raise RuntimeError("no port table set")
        port = self.p.apropos(path)
        if port is None:
            raise AutomationError(f"port '{path}' does not exist")
        meta = port.metadata
        if not ("min" in meta and "max" in meta) and ":T" not in port.name:
            raise AutomationError(f"no bounds for '{path}' known")
        if "internal" in meta or "no learn" in meta:
            raise AutomationError(f"port '{path}' is unlearnable")
        return port

    @staticmethod
    def _configure(au: Automation, port: Port, path: str) -> None:
        meta = port.metadata
        au.used = True
        au.active = True
        if ":f" in port.name:
            au.param_type = "f"
        elif ":T" in port.name:
            au.param_type = "T"
        else:
            au.param_type = "i"
        if au.param_type == "T":
            au.param_min, au.param_max = 0.0, 1.0
        else:
            au.param_min = _atof(meta.get("min"))
            au.param_max = _atof(meta.get("max"))
        au.param_path = path
        scale = meta.get("scale")
        if scale and "log" in scale:
            au.map.control_scale = 1
            logmin = meta.get("logmin")
            au.param_min = _log(_atof(logmin) if logmin else au.param_min)
            au.param_max = _log(au.param_max)
        else:
            au.map.control_scale = 0

    def create_binding(self, slot: int, path: str,
                       start_midi_learn: bool = False) -> None:
        """Bind the parameter at ``path`` to the first free place in ``slot``."""
        if not 0 <= slot < self.nslots:
            raise IndexError(f"slot {slot} out of range")
        port = self._lookup(path)
        target = self.slots[slot]
        free = next((i for i, au in enumerate(target.automations) if not au.used),
                    None)
        if free is None:
            return
        target.used = True
        au = target.automations[free]
        self._configure(au, port, path)
        au.map.gain = 100.0
        au.map.offset = 0.0
        self.update_mapping(slot, free)
        if start_midi_learn and target.learning == -1 and target.midi_cc == -1:
            self.learn_queue_len += 1
            target.learning = self.learn_queue_len
        self.damaged = True

    def update_mapping(self, slot_id: int, sub: int) -> None:
        """Recompute the line of an automation from its bounds, gain and offset."""
        if not self._valid(slot_id, sub):
            return
        au = self.slots[slot_id].automations[sub]
        mn, mx = au.param_min, au.param_max
        center = (mn + mx) * (0.5 + au.map.offset / 100.0)
        span = (mx - mn) * au.map.gain / 100.0
        au.map.set_line(center - span / 2.0, center + span / 2.0)

    def set_slot(self, slot_id: int, value: float) -> None:
        """Set the control value of a slot and drive all its parameters."""
        if not 0 <= slot_id < self.nslots:
            return
        for sub in range(self.per_slot):
            self.set_slot_sub(slot_id, sub, value)
        self.slots[slot_id].current_state = value

    def set_slot_sub(self, slot_id: int, par: int, value: float) -> None:
        """Drive one parameter of a slot with ``value``."""
        if not self._valid(slot_id, par):
            return
        au = self.slots[slot_id].automations[par]
        if not au.used:
            return
        a, b = au.map.control_points[1], au.map.control_points[3]
        mn, mx = au.param_min, au.param_max
        v = value * (b - a) + a
        kind = au.param_type
        if kind in ("i", "f"):
            v = min(max(v, mn), mx) if v <= mx else mx
            if kind == "i":
                msg = Message(au.param_path, "i", (_round_half_away(v),))
            else:
                if au.map.control_scale == 1:
                    v = math.exp(v)
                msg = Message(au.param_path, "f", (v,))
        elif kind in ("T", "F"):
            msg = Message(au.param_path, "T" if v > 0.5 else "F")
        else:
            return
        if self.backend:
            self.backend(msg)

    def get_slot(self, slot_id: int) -> float:
        if not 0 <= slot_id < self.nslots:
            return 0.0
        return self.slots[slot_id].current_state

    def clear_slot(self, slot_id: int) -> None:
        """Unbind everything from a slot and give it its default name."""
        if not 0 <= slot_id < self.nslots:
            return
        s = self.slots[slot_id]
        s.active = False
        s.used = False
        if s.learning > 0:
            self.learn_queue_len -= 1
            for other in self.slots:
                if other.learning > s.learning:
                    other.learning -= 1
        s.learning = -1
        s.midi_cc = -1
        s.midi_nrpn = -1
        s.current_state = 0.0
        s.name = _slot_name(slot_id)
        for sub in range(self.per_slot):
            self.clear_slot_sub(slot_id, sub)
        self.damaged = True

    def clear_slot_sub(self, slot_id: int, sub: int) -> None:
        """Unbind one parameter of a slot."""
        if not self._valid(slot_id, sub):
            return
        a = self.slots[slot_id].automations[sub]
        a.used = False
        a.active = False
        a.relative = False
        a.param_base_value = 0.0
        a.param_path = ""
        a.param_type = ""
        a.param_min = 0.0
        a.param_max = 0.0
        a.param_step = 0.0
        a.map.gain = 100.0
        a.map.offset = 0.0
        self.damaged = True

    def set_slot_sub_path(self, slot: int, ind: int, path: str) -> None:
        """Bind the parameter at ``path`` to place ``ind`` of ``slot``."""
        if not 0 <= slot < self.nslots:
            return
        if not 0 <= ind < self.per_slot:
            raise IndexError(f"automation {ind} out of range")
        port = self._lookup(path)
        self.slots[slot].used = True
        self._configure(self.slots[slot].automations[ind], port, path)
        self.update_mapping(slot, ind)
        self.damaged = True

    def set_slot_sub_gain(self, slot_id: int, sub: int, gain: float) -> None:
        if self._valid(slot_id, sub):
            self.slots[slot_id].automations[sub].map.gain = gain

    def get_slot_sub_gain(self, slot_id: int, sub: int) -> float:
        if not self._valid(slot_id, sub):
            return 0.0
        return self.slots[slot_id].automations[sub].map.gain

    def set_slot_sub_offset(self, slot_id: int, sub: int, offset: float) -> None:
        if self._valid(slot_id, sub):
            self.slots[slot_id].automations[sub].map.offset = offset

    def get_slot_sub_offset(self, slot_id: int, sub: int) -> float:
        if not self._valid(slot_id, sub):
            return 0.0
        return self.slots[slot_id].automations[sub].map.offset

    def set_name(self, slot_id: int, name: str) -> None:
        if not 0 <= slot_id < self.nslots:
            return
        self.slots[slot_id].name = name
        self.damaged = True

    def get_name(self, slot_id: int) -> str:
        if not 0 <= slot_id < self.nslots:
            return ""
        return self.slots[slot_id].name

    def _set_parameter_number(self, type: int, value: int) -> None:
        nrpn = self._nrpn
        if type == MidiController.NRPN_HI:
            nrpn.parhi, nrpn.valhi, nrpn.vallo = value, -1, -1
        elif type == MidiController.NRPN_LO:
            nrpn.parlo, nrpn.valhi, nrpn.vallo = value, -1, -1
        elif type == MidiController.DATA_ENTRY_HI:
            if nrpn.parhi >= 0 and nrpn.parlo >= 0:
                nrpn.valhi = value
        elif type == MidiController.DATA_ENTRY_LO:
            if nrpn.parhi >= 0 and nrpn.parlo >= 0:
                nrpn.vallo = value

    def _complete_nrpn(self) -> Optional[tuple]:
        n = self._nrpn
        values = (n.parhi, n.parlo, n.valhi, n.vallo)
        return None if min(values) < 0 else values

    def handle_midi(self, channel: int, type: int, val: int) -> bool:
        """Handle a controller event; return True if a bound slot took it."""
        is_nrpn = False
        par_id = 0
        if type in set(MidiController):
            self._set_parameter_number(type, val)
            nrpn = self._complete_nrpn()
            if nrpn is not None:
                parhi, parlo, valhi, vallo = nrpn
                is_nrpn = True
                par_id = (parhi << 7) + parlo
                value = (valhi << 7) + vallo
                bound = False
                for i, slot in enumerate(self.slots):
                    if slot.midi_nrpn == par_id:
                        bound = True
                        self.set_slot(i, value / 16383.0)
                if bound:
                    return True
        else:
            par_id = channel * 128 + type
            bound = False
            for i, slot in enumerate(self.slots):
                if slot.midi_cc == par_id:
                    bound = True
                    self.set_slot(i, val / 127.0)
            if bound:
                return True

        for i, slot in enumerate(self.slots):
            if slot.learning == 1:
                slot.learning = -1
                if is_nrpn:
                    slot.midi_nrpn = par_id
                else:
                    slot.midi_cc = par_id
                for other in self.slots:
                    if other.learning > 1:
                        other.learning -= 1
                self.learn_queue_len -= 1
                self.set_slot(i, val / 127.0)
                self.damaged = True
                break
        return False

    def set_ports(self, ports: PortTable) -> None:
        self.p = ports

    def set_instance(self, instance: Any) -> None:
        self.instance = instance

    def simple_slope(self, slot_id: int, par: int, slope: float,
                     offset: float) -> None:
        """Map the control range onto a line of ``slope`` centred at ``offset``."""
        if not self._valid(slot_id, par):
            return
        self.slots[slot_id].automations[par].map.set_line(
            -(slope / 2) + offset, slope / 2 + offset)

    def free_slot(self) -> Optional[int]:
        """Index of the first unused slot, or None when all are used."""
        return next((i for i, s in enumerate(self.slots) if not s.used), None)