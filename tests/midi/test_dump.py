import random
import pytest
from core.logger import AppLogger
from midi.checksum import roland
from midi.codec import RAW_BYTE, bit_field
from midi.errors import InvalidDomain, UnknownKey
from midi.params import ParamDescriptor
from midi.pc12 import DUMP_LENGTH, build_schema
from midi.sysex import decode_dump, encode_dump


def _dump(seed: int | None = None) -> bytearray:
    data = bytearray(DUMP_LENGTH)
    if seed is not None:
        rng = random.Random(seed)
        data[:] = bytes(rng.randrange(0x80) for _ in range(DUMP_LENGTH))
    data[0:4] = b"\xf0\x00\x00\x00"
    data[-1] = 0xF7
    data[24] = 0x10   # channel 1
    data[27] = 0x20   # CC 1
    data[28] = 0x11
    return data


def _schema():
    return build_schema(logger=AppLogger(echo=False))


def test_round_trip_unmodified():
    raw = bytes(_dump())
    assert encode_dump(decode_dump(raw, _schema())) == raw


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_round_trip_arbitrary_body(seed):
    raw = bytes(_dump(seed))
    model = decode_dump(raw, _schema())
    assert encode_dump(model) == raw
    assert not model.dirty


def test_decoded_values():
    model = decode_dump(_dump(), _schema())
    assert model.get_value("col1_row_a_channel") == 1
    assert model.get_value("col1_row_a_cc") == 1
    assert list(model.values()) == [
        "col1_row_a_channel", "col1_row_a_cc", "col2_row_a_cc",
        "col1_row_b_cc", "button1_cc",
    ]


def test_get_unknown_key_leaves_buffer_alone():
    raw = bytes(_dump())
    model = decode_dump(raw, _schema())
    with pytest.raises(UnknownKey):
        model.get_value("unregisteredKey")
    assert model.to_bytes() == raw


def test_set_value_touches_only_owned_bytes():
    raw = bytes(_dump(7))
    schema = _schema()
    for desc in schema.all():
        model = decode_dump(raw, schema)
        new = desc.max_val if model.get_value(desc.key) != desc.max_val else desc.min_val
        model.set_value(desc.key, new)
        after = model.to_bytes()
        changed = {i for i in range(len(raw)) if raw[i] != after[i]}
        assert changed and changed <= set(desc.offsets)
        for offset in desc.offsets:
            assert after[offset] & 0xF0 == raw[offset] & 0xF0
        assert model.get_value(desc.key) == new


def test_set_value_updates_only_that_key():
    model = decode_dump(_dump(), _schema())
    before = model.values()
    model.set_value("col1_row_a_cc", 74)
    after = model.values()
    assert after["col1_row_a_cc"] == 74
    assert {k: v for k, v in after.items() if k != "col1_row_a_cc"} == \
        {k: v for k, v in before.items() if k != "col1_row_a_cc"}
    assert model.get_byte(27) == 0x24
    assert model.get_byte(28) == 0x1A


def test_set_value_chains():
    model = decode_dump(_dump(), _schema())
    assert model.set_value("col1_row_a_channel", 16).set_value("button1_cc", 3) is model
    assert model.get_value("col1_row_a_channel") == 16


def test_set_value_invalid_domain_is_noop():
    raw = bytes(_dump())
    model = decode_dump(raw, _schema())
    for key, value in [("col1_row_a_cc", 128), ("col1_row_a_channel", 0),
                       ("col1_row_a_channel", 17)]:
        with pytest.raises(InvalidDomain):
            model.set_value(key, value)
    assert model.to_bytes() == raw
    assert model.get_value("col1_row_a_channel") == 1
    assert not model.dirty


def test_set_value_unknown_key():
    model = decode_dump(_dump(), _schema())
    with pytest.raises(UnknownKey):
        model.set_value("pot99_cc", 1)


def test_dirty_tracking():
    model = decode_dump(_dump(), _schema())
    model.set_value("col1_row_a_cc", 1)  # same value
    assert not model.dirty
    model.set_value("col1_row_a_cc", 2)
    assert model.dirty
    model.mark_clean()
    assert not model.dirty


def test_key_registered_after_decode_is_decoded_lazily():
    schema = _schema()
    data = _dump()
    data[500] = 0x35
    model = decode_dump(data, schema)
    schema.register(ParamDescriptor("late_mode", (500,), bit_field(0x70)))
    assert model.get_value("late_mode") == 3
    assert model.values()["late_mode"] == 3


def _with_checksum(depends_on=("col1_row_a_cc",)):
    schema = _schema()
    schema.register(ParamDescriptor("checksum", (1698,), RAW_BYTE,
                                    compute=roland(1, 1698), depends_on=depends_on))
    return schema


def test_checksum_recomputed_on_dependency_change():
    schema = _with_checksum()
    raw = bytes(_dump(11))
    model = decode_dump(raw, schema)
    model.set_value("col1_row_a_cc", 99)
    after = model.to_bytes()
    assert after[1698] & 0x7F == roland(1, 1698)(after)
    changed = {i for i in range(len(raw)) if raw[i] != after[i]}
    assert changed <= {27, 28, 1698}
    assert model.get_value("checksum") == after[1698] & 0x7F


def test_checksum_not_recomputed_without_dependency():
    schema = _with_checksum(depends_on=("col2_row_a_cc",))
    raw = bytes(_dump(11))
    model = decode_dump(raw, schema)
    model.set_value("col1_row_a_cc", 99)
    assert model.get_byte(1698) == raw[1698]


def test_computed_field_cannot_be_set():
    model = decode_dump(_dump(), _with_checksum())
    with pytest.raises(InvalidDomain):
        model.set_value("checksum", 5)


def test_failed_recompute_leaves_buffer_untouched():
    schema = _schema()
    schema.register(ParamDescriptor("broken", (1698,), RAW_BYTE,
                                    compute=lambda data: 200,
                                    depends_on=("col1_row_a_cc",)))
    raw = bytes(_dump())
    model = decode_dump(raw, schema)
    with pytest.raises(InvalidDomain):
        model.set_value("col1_row_a_cc", 99)
    assert model.to_bytes() == raw
    assert model.get_value("col1_row_a_cc") == 1


def test_header_and_raw_access():
    model = decode_dump(_dump(), _schema())
    assert model.header == b"\x00\x00\x00\x00"
    assert model.size == DUMP_LENGTH
    assert model.get_byte(0) == 0xF0
    with pytest.raises(IndexError):
        model.get_byte(DUMP_LENGTH)


def test_copy_is_independent():
    model = decode_dump(_dump(), _schema())
    clone = model.copy()
    clone.set_value("col1_row_a_cc", 50)
    assert model.get_value("col1_row_a_cc") == 1
    assert clone.get_value("col1_row_a_cc") == 50
