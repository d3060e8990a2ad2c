import pytest

from rtosc.midimapper import (
    MidiBijection,
    MidiMapperError,
    MidiMapperNrt,
    MidiMapperRt,
    MidiMapperStorage,
)
from rtosc.ports import Message, Port, PortTable


def make_ports():
    return PortTable([
        Port("volume:f", {"min": "0", "max": "1"}),
        Port("note:i", {"min": "0", "max": "127"}),
        Port("plain:f", {}),
    ])


@pytest.fixture
def sent():
    return []


@pytest.fixture
def nrt(sent):
    return MidiMapperNrt(make_ports(), sent.append)


def learn(nrt, addr, id, coarse=True):
    nrt.map(addr, coarse)
    nrt.use_free_id(id)


def test_bijection_round_trip():
    bi = MidiBijection(0, 0.0, 1.0)
    assert bi.to_midi(0.0) == 0
    assert bi.to_midi(0.5) == 8192
    for x in (0.0, 0.25, 0.75):
        assert bi.to_value(bi.to_midi(x)) == pytest.approx(x)


def test_bijection_other_mode_is_zero():
    bi = MidiBijection(1, 0.0, 1.0)
    assert bi.to_midi(0.5) == 0
    assert bi.to_value(100) == 0.0


def test_map_queues_and_requests_watch(nrt, sent):
    nrt.map("/volume", True)
    assert sent == [Message("/midi-learn/midi-add-watch")]
    assert nrt.has_pending("/volume")
    assert nrt.has_coarse_pending("/volume")
    assert not nrt.has_fine_pending("/volume")
    nrt.map("/volume", True)
    assert len(sent) == 1


def test_use_free_id_binds_coarse(nrt, sent):
    learn(nrt, "/volume", 5)
    assert nrt.has_coarse("/volume")
    assert nrt.get_coarse("/volume") == 5
    assert nrt.get_fine("/volume") == -1
    assert not nrt.has_pending("/volume")
    assert sent[-1].path == "/midi-learn/midi-bind"
    assert sent[-1].args[0] is nrt.storage

    written = []
    assert nrt.storage.handle_cc(5, 64, written.append)
    assert written[0].path == "/volume"
    assert written[0].types == "f"
    assert written[0].args[0] == pytest.approx(0.5)


def test_use_free_id_with_empty_queue_does_nothing(nrt, sent):
    nrt.use_free_id(3)
    assert nrt.storage is None
    assert sent == []


def test_fine_binding_and_mapped_string(nrt):
    learn(nrt, "/volume", 5)
    learn(nrt, "/volume", 6, coarse=False)
    assert nrt.has_fine("/volume")
    assert nrt.get_fine("/volume") == 6
    assert nrt.get_mapped_string("/volume") == "5:6"

    written = []
    nrt.storage.handle_cc(5, 64, written.append)
    nrt.storage.handle_cc(6, 0, written.append)
    assert written[0].args[0] == written[1].args[0]


def test_note_range_integer_passes_coarse_value(nrt):
    learn(nrt, "/note", 7)
    written = []
    nrt.storage.handle_cc(7, 100, written.append)
    assert written == [Message("/note", "i", (100,))]


def test_unknown_port_raises(nrt):
    nrt.map("/missing", True)
    with pytest.raises(MidiMapperError):
        nrt.use_free_id(1)


def test_port_without_bounds_raises(nrt):
    nrt.map("/plain", True)
    with pytest.raises(MidiMapperError):
        nrt.use_free_id(1)


def test_un_map(nrt, sent):
    learn(nrt, "/volume", 5)
    learn(nrt, "/volume", 6, coarse=False)
    nrt.un_map("/volume", True)
    assert not nrt.has_coarse("/volume")
    assert nrt.has_fine("/volume")
    assert not nrt.storage.handle_cc(5, 1, lambda m: None)
    assert sent[-1].args[0] is nrt.storage
    nrt.un_map("/volume", False)
    assert not nrt.has("/volume")
    assert nrt.get_coarse("/volume") == -1


def test_mapping_strings_for_pending(nrt):
    nrt.map("/volume", True)
    nrt.map("/note", False)
    assert nrt.get_midi_mapping_strings() == {"/note": ":B", "/volume": "A"}


def test_mapping_strings_mix_bound_and_pending(nrt):
    learn(nrt, "/volume", 5)
    nrt.map("/volume", False)
    assert nrt.get_midi_mapping_strings() == {"/volume": "5:A"}


def test_snoop_b_to_u_sends_virtual_cc(nrt, sent):
    learn(nrt, "/volume", 5)
    learn(nrt, "/volume", 6, coarse=False)
    sent.clear()
    nrt.snoop_b_to_u(Message("/volume", "f", (0.5,)))
    assert sent == [Message("/virtual_midi_cc", "iii", (0, 64, 5)),
                    Message("/virtual_midi_cc", "iii", (0, 0, 6))]


def test_snoop_b_to_u_ignores_unknown(nrt, sent):
    learn(nrt, "/volume", 5)
    storage = nrt.storage
    sent.clear()
    nrt.snoop_b_to_u(Message("/other", "f", (0.5,)))
    nrt.snoop_b_to_u(Message("/volume", "s", ("x",)))
    assert sent == []
    assert nrt.storage is storage
    assert nrt.get_coarse("/volume") == 5
    assert nrt.get_mapped_string("/volume") == "5"


def test_snoop_u_to_b_refreshes_on_load(nrt, sent):
    learn(nrt, "/volume", 5)
    sent.clear()
    nrt.snoop_u_to_b(Message("/save"))
    assert sent == []
    nrt.snoop_u_to_b(Message("/load", "s", ("file",)))
    assert sent == [Message("/volume")]


def test_set_and_get_bounds(nrt):
    assert nrt.get_bounds("/volume") == (0.0, 1.0, -1.0, -1.0)
    learn(nrt, "/volume", 5)
    nrt.set_bounds("/volume", 0.25, 0.75)
    assert nrt.get_bounds("/volume") == (0.0, 1.0, 0.25, 0.75)
    assert nrt.get_bijection("/volume") == MidiBijection(0, 0.25, 0.75)
    written = []
    nrt.storage.handle_cc(5, 0, written.append)
    assert written[0].args[0] == pytest.approx(0.25)


def test_clear(nrt, sent):
    learn(nrt, "/volume", 5)
    nrt.map("/note", True)
    nrt.clear()
    assert not nrt.has("/volume")
    assert not nrt.has_pending("/note")
    assert sent[-1].args[0].mapping == []


def test_storage_handle_cc_combines_coarse_and_fine():
    storage = MidiMapperStorage(
        [0], [(1, True, 0), (2, False, 0)], [lambda v, w: w(v)])
    seen = []
    assert storage.handle_cc(1, 3, seen.append)
    assert storage.handle_cc(2, 5, seen.append)
    assert not storage.handle_cc(9, 5, seen.append)
    assert seen == [3 << 7, (3 << 7) | 5]


def test_storage_clone_is_independent():
    storage = MidiMapperStorage([0], [(1, True, 0)], [lambda v, w: None])
    copy = storage.clone()
    copy.mapping.append((2, False, 0))
    copy.values[0] = 42
    assert storage.mapping == [(1, True, 0)]
    assert storage.values == [0]


def test_storage_clone_values():
    old = MidiMapperStorage([0], [(1, True, 0), (2, False, 0)],
                            [lambda v, w: None])
    old.handle_cc(1, 3, lambda m: None)
    old.handle_cc(2, 5, lambda m: None)
    new = MidiMapperStorage([7, 7], [(2, True, 1), (9, True, 0)],
                            [lambda v, w: None] * 2)
    new.clone_values(old)
    assert new.values == [0, 5 << 7]


def test_rt_requests_learning_only_when_watching():
    frontend = []
    rt = MidiMapperRt(lambda m: None, frontend.append)
    rt.handle_cc(10, 64)
    assert frontend == []
    rt.add_watch()
    rt.handle_cc(10, 64)
    assert frontend == [Message("/midi-use-CC", "i", (10,))]
    assert rt.watch_size == 0
    rt.add_watch()
    rt.handle_cc(10, 64)
    assert len(frontend) == 1
    assert rt.watch_size == 1
    rt.rem_watch()
    rt.rem_watch()
    assert rt.watch_size == 0


def test_rt_ids_include_channel_and_nrpn():
    frontend = []
    rt = MidiMapperRt(lambda m: None, frontend.append)
    for _ in range(3):
        rt.add_watch()
    rt.handle_cc(10, 1, chan=2)
    rt.handle_cc(10, 1, chan=0)
    rt.handle_cc(10, 1, is_nrpn=True)
    assert [m.args[0] for m in frontend] == [(1 << 14) + 10, 10, (1 << 18) + 10]


def test_rt_dispatch():
    rt = MidiMapperRt()
    assert rt.dispatch(Message("/midi-learn/midi-add-watch"))
    assert rt.watch_size == 1
    assert rt.dispatch(Message("/midi-learn/midi-remove-watch"))
    assert rt.watch_size == 0
    storage = MidiMapperStorage()
    assert rt.dispatch(Message("/midi-learn/midi-bind", "b", (storage,)))
    assert rt.storage is storage
    assert not rt.dispatch(Message("/midi-learn/unknown"))


def test_learning_end_to_end():
    backend, frontend = [], []
    rt = MidiMapperRt(backend.append, frontend.append)
    nrt = MidiMapperNrt(make_ports(), rt.dispatch)
    nrt.map("/volume", True)
    rt.handle_cc(3, 0)
    assert frontend == [Message("/midi-use-CC", "i", (3,))]
    nrt.use_free_id(frontend[0].args[0])
    assert rt.storage is nrt.storage
    assert not rt.pending
    rt.handle_cc(3, 127)
    assert backend[0].path == "/volume"
    assert 0.99 < backend[0].args[0] < 1.0

    nrt.map("/volume", False)
    rt.handle_cc(4, 0)
    nrt.use_free_id(4)
    assert rt.storage.values == [127 << 7]
    assert nrt.get_mapped_string("/volume") == "3:4"