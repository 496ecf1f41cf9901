import pytest
from core.logger import AppLogger
from midi.codec import CHANNEL, NIBBLE_CC
from midi.errors import InvalidDomain
from midi.pc12 import DUMP_LENGTH, build_schema
from midi.sysex import decode_dump
from tools.diff import (
    ByteDiff, attribute_diff, check_single_edit, diff_bytes, diff_models,
    find_marker_groups, format_report, marker_strides, nearest_marker,
    propose_descriptor,
)


def _baseline() -> bytearray:
    data = bytearray(DUMP_LENGTH)
    data[0] = 0xF0
    data[-1] = 0xF7
    data[24] = 0x10
    data[27] = 0x20  # CC 1
    data[28] = 0x11
    return data


def _cc_edit() -> bytearray:
    """Baseline with col1 row A moved from CC 1 to CC 2.

    The device also flips unrelated state in the high nibble of byte 27.
    """
    data = _baseline()
    data[27] = 0x30
    data[28] = 0x12
    return data


def _schema():
    return build_schema(logger=AppLogger(echo=False))


def test_diff_bytes_identical():
    assert diff_bytes(b"\x01\x02", b"\x01\x02") == ()


def test_diff_bytes_ascending_offsets():
    report = diff_bytes(b"\x00\x01\x02\x03", b"\x09\x01\x02\x08")
    assert report == (ByteDiff(0, 0, 9), ByteDiff(3, 3, 8))


def test_diff_bytes_reports_absent_side():
    report = diff_bytes(b"\x01\x02", b"\x01\x02\x03\x04")
    assert report == (ByteDiff(2, None, 3), ByteDiff(3, None, 4))
    report = diff_bytes(b"\x01\x02\x03", b"")
    assert [d.b for d in report] == [None, None, None]


def test_single_field_edit_detection():
    schema = _schema()
    result = diff_models(decode_dump(_baseline(), schema), decode_dump(_cc_edit(), schema))
    assert result.offsets == [27, 28]
    assert result.field_diff == {"col1_row_a_cc": (1, 2)}


def test_check_single_edit():
    schema = _schema()
    a = decode_dump(_baseline(), schema)
    b = decode_dump(_cc_edit(), schema)
    assert check_single_edit(a, b, "col1_row_a_cc")
    assert not check_single_edit(a, b, "col1_row_a_channel")
    assert not check_single_edit(a, a, "col1_row_a_cc")


def test_check_single_edit_rejects_stray_bytes():
    schema = _schema()
    after = _cc_edit()
    after[900] = 0x01
    assert not check_single_edit(decode_dump(_baseline(), schema),
                                 decode_dump(after, schema), "col1_row_a_cc")


def test_set_value_diff_matches_descriptor():
    schema = _schema()
    before = decode_dump(_baseline(), schema)
    for desc in schema.all():
        after = before.copy().set_value(desc.key, desc.max_val)
        report = diff_bytes(before.to_bytes(), after.to_bytes())
        assert {d.offset for d in report} <= set(desc.offsets)
        assert check_single_edit(before, after, desc.key)


def test_find_marker_groups():
    data = bytearray(200)
    for offset in (10, 70, 130):
        data[offset] = 0x4D
    data[11], data[12] = 0x20, 0x17
    scan = find_marker_groups(data, 0x4D)
    assert [g.offset for g in scan] == [10, 70, 130]
    assert [g.offset for g in scan] == [10, 70, 130]
    first = next(iter(scan))
    assert first.trailing == b"\x20\x17"
    assert first.decoded_cc == 7


def test_find_marker_groups_at_buffer_end():
    data = bytes([0x00, 0x4D, 0x21, 0x00, 0x4D])
    groups = list(find_marker_groups(data))
    assert [g.offset for g in groups] == [1, 4]
    assert groups[0].decoded_cc == 16
    assert groups[1].trailing == b""
    assert groups[1].decoded_cc is None


def test_find_marker_groups_snapshots_buffer():
    data = bytearray(20)
    data[5] = 0x4D
    scan = find_marker_groups(data)
    data[15] = 0x4D
    assert [g.offset for g in scan] == [5]


def test_nearest_marker():
    data = bytearray(200)
    for offset in (10, 70, 130):
        data[offset] = 0x4D
    assert nearest_marker(data, 75).offset == 70
    assert nearest_marker(data, 70).offset == 70
    assert nearest_marker(data, 199).offset == 130
    assert nearest_marker(data, 5) is None


def test_marker_strides():
    data = bytearray(200)
    for offset in (10, 70, 130, 150):
        data[offset] = 0x4D
    strides = marker_strides(data)
    assert strides.most_common(1) == [(60, 2)]
    assert strides[20] == 1


def test_attribute_diff():
    schema = _schema()
    after = _cc_edit()
    after[900] = 0x01
    result = attribute_diff(schema, diff_bytes(_baseline(), after))
    assert result.owned == {"col1_row_a_cc": [27, 28]}
    assert result.unowned == [900]


def test_propose_descriptor_from_diff():
    report = diff_bytes(_baseline(), _cc_edit())
    desc = propose_descriptor("col1_row_a_cc", report, NIBBLE_CC, group="pot")
    assert desc.offsets == (27, 28)
    assert desc.group == "pot"


def test_propose_descriptor_width_mismatch():
    report = diff_bytes(_baseline(), _cc_edit())
    with pytest.raises(InvalidDomain):
        propose_descriptor("x", report, CHANNEL)


def test_propose_descriptor_with_offset_hint():
    before = _baseline()
    after = _baseline()
    after[301] = 0x05  # only the low-nibble byte moved
    report = diff_bytes(before, after)
    desc = propose_descriptor("col3_row_a_cc", report, NIBBLE_CC, offsets=(300, 301))
    assert desc.offsets == (300, 301)
    with pytest.raises(InvalidDomain):
        propose_descriptor("col3_row_a_cc", report, NIBBLE_CC, offsets=(310, 311))


def test_propose_descriptor_rejects_length_mismatch_and_no_change():
    with pytest.raises(InvalidDomain):
        propose_descriptor("x", diff_bytes(b"\x01", b"\x01\x02"), CHANNEL)
    with pytest.raises(InvalidDomain):
        propose_descriptor("x", (), CHANNEL)


def test_format_report():
    lines = format_report(diff_bytes(b"\x0a", b"\x0b\x0c"))
    assert "0x0A" in lines[0] and "0x0B" in lines[0]
    assert "N/A" in lines[1]
