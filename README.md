# rtosc

Building blocks for Open Sound Control (OSC) data in audio applications:
typed argument values and arithmetic on them, comparison of argument
lists, OSC time tags, version triples, a small port table, automation
slots driven by MIDI, and MIDI learn.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `rtosc.arg_val`

`ArgVal(type, value)` is one OSC argument: a type tag (`"i"`, `"f"`, `"d"`,
`"h"`, `"c"`, `"r"`, `"t"`, `"s"`, `"S"`, `"b"`, `"m"`, `"T"`, `"F"`, `"N"`,
`"I"`) and its value. Two header kinds refer to the entries that follow
them in a flat list:

- `make_array(arr_type, length)` gives an array header (type `"a"`) with
  the properties `arr_type` and `arr_len`.
- `make_range(num, has_delta)` gives a range header (type `"-"`) with the
  properties `rep_num` (0 means endless) and `rep_has_delta`. With a delta
  the header is followed by the delta and then the start value; without
  one, by the value that is repeated.

Arithmetic, returning new values: `add`, `sub`, `mult`, `div`, `negate`,
`round_value` (rounds down unless the fraction is at least 0.999),
`from_int`, `from_double`, `null_value`, `to_int`, and `range_arg(args, ith)`
for element `ith` of a range. Integer types wrap to 32 bits (`"i"`, `"c"`)
or 64 bits (`"h"`), `"f"` is kept in single precision, integer division
truncates toward zero. `T`/`F` values combine as booleans (`add` as
exclusive or, `mult` as logical and). An operation that is not defined for
the given types raises `ArgValError` (a `ValueError`).

### `rtosc.arg_val_itr`

`ArgValIterator(args)` walks a flat argument list: `get()` returns the
current value (computing range elements), `advance()` moves on, stepping
over the elements of arrays. `expand_arg_vals(args, nargs)` returns the
values the first `nargs` entries stand for, ranges expanded; it raises
`ArgValError` for an endless range.

### `rtosc.arg_val_cmp`

`arg_vals_eq(lhs, rhs, lsize, rsize, opt)` and
`arg_vals_cmp(lhs, rhs, lsize, rsize, opt)` compare argument lists with
ranges expanded; `eq_single` and `cmp_single` compare single values.
Values of different types are ordered by their type tag, and the
"immediately" time tag sorts below every other time tag. An endless range
compares equal to any continuation. `CmpOptions(float_tolerance=...)` lets
floats within the tolerance count as equal.

### `rtosc.osc_time`

OSC time tags as `ArgVal("t", ...)`: `from_time_t(time_value, secfracs)`,
`from_params(params, secfracs)` (local broken-down time), `current_time()`,
`immediately()`, and back again with `time_t_from_arg_val`,
`params_from_arg_val`, `secfracs_from_arg_val`, `is_immediately`.
`float_to_secfracs` and `secfracs_to_float` map between a fraction of a
second in [0, 1) and an integer in [0, 2**32).

### `rtosc.version`

`Version(major, minor, revision)`, each in 0..255, ordered and printed as
`"major.minor.revision"`; `version_cmp(v1, v2)` returns a number above,
equal to or below 0.

### `rtosc.ports`

`Message(path, types, args)` is an OSC message held as Python values, with
one entry in `args` per type tag that carries data (`T`, `F`, `N`, `I`
carry none); `arg_vals()` and `argument(index)` give them as `ArgVal`.
`Port(name, metadata, ports, callback)` describes one address, where the
name holds the address followed by `:`-separated argument specifications
(`arg_types()`), and a name containing `/` leads to a sub-table.
`PortTable(ports)` looks ports up by name (`table["name"]`) and by path
(`apropos(path)`), where a name part like `voice#8/` matches `voice0/` to
`voice7/`.

### `rtosc.automations`

`AutomationMgr(slots, per_slot, control_points)` binds parameters to
automation slots. After `set_ports(table)`, `create_binding(slot, path)`
binds a port with `min`/`max` metadata (or a `:T` port) to the first free
place in a slot; a `scale` containing `log` maps logarithmically.
`set_slot(slot_id, value)` with a value in [0, 1] drives every bound
parameter and hands the resulting `Message` to the callable in
`mgr.backend`. `handle_midi(channel, type, val)` drives slots bound to a
controller or NRPN number and, for a slot waiting to learn
(`create_binding(..., start_midi_learn=True)`), binds the incoming
controller. Gain, offset, names and slopes are set with the remaining
methods. A port that does not exist, has no bounds or is marked
`internal`/`no learn` raises `AutomationError`.

```python
from rtosc.automations import AutomationMgr
from rtosc.ports import Port, PortTable

mgr = AutomationMgr(slots=4, per_slot=2, control_points=4)
mgr.set_ports(PortTable([Port("volume:f", {"min": "0", "max": "1"})]))
sent = []
mgr.backend = sent.append

mgr.create_binding(0, "volume")
mgr.set_slot(0, 0.25)
print(sent[-1])   # Message(path='volume', types='f', args=(0.25,))
```

### `rtosc.midimapper`

MIDI learn split into two sides that exchange `Message` objects:

- `MidiMapperNrt(base_ports, rt_cb)`: `map(addr, coarse)` queues an address
  for learning, `use_free_id(id)` binds a controller to the oldest queued
  address, `un_map`, `clear`, `set_bounds`, `get_bounds`, and queries such
  as `has`, `has_coarse`, `get_fine` and `get_midi_mapping_strings`. New
  storages are sent through `rt_cb` as a `/midi-learn/midi-bind` message.
  `snoop_b_to_u` turns values of bound parameters into `/virtual_midi_cc`
  messages; `snoop_u_to_b` requests all bound values after a `/load`.
- `MidiMapperRt(backend, frontend)`: `dispatch(msg)` understands
  `midi-add-watch`, `midi-remove-watch` and `midi-bind`;
  `handle_cc(par, val, chan, is_nrpn)` sends parameter messages to
  `backend` through the bound `MidiMapperStorage`, or asks `frontend` with
  `/midi-use-CC` to learn an unbound controller while watches are open.

`MidiBijection` maps between a parameter range and 14-bit MIDI values.

## Example

```python
from rtosc.arg_val import ArgVal, add
from rtosc.arg_val_cmp import arg_vals_cmp

total = add(ArgVal("i", 2), ArgVal("i", 3))
print(total)   # ArgVal(type='i', value=5)

assert arg_vals_cmp([ArgVal("i", 12345)], [ArgVal("i", 42)], 1, 1, None) > 0
```

## What this package does not do

- It does not encode or decode OSC messages or bundles as bytes;
  `Message` only holds the address, type tags and Python values.
- `PortTable` finds ports but does not dispatch messages to their
  callbacks, and there is no saving or loading of parameter state.
- There is no network transport, audio or MIDI device access, and no
  command-line program.