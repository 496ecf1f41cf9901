"""Differential analysis of PC12 dumps.

Two uses:
  - validation: a controlled single-field edit on the hardware should change
    exactly the bytes the schema says that field owns;
  - discovery: where did an edit the schema does not know about land, and
    which "4D XX YY" marker group does that offset sit in?

Nothing here raises on length-mismatched input; missing positions are
reported as absent (None) instead.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple

from midi.codec import FieldCodec, decode_cc
from midi.dump import DumpModel
from midi.errors import InvalidDomain
from midi.params import ParamDescriptor, ParameterSchema
from midi.pc12 import MARKER_BYTE, MARKER_GROUP_SIZE


class ByteDiff(NamedTuple):
    offset: int
    a: int | None  # None when *a* is shorter than offset
    b: int | None


DiffReport = tuple[ByteDiff, ...]


@dataclass(frozen=True)
class ModelDiff:
    byte_diff: DiffReport
    field_diff: dict[str, tuple[int, int]] = field(default_factory=dict)

    @property
    def offsets(self) -> list[int]:
        return [d.offset for d in self.byte_diff]


class MarkerGroup(NamedTuple):
    offset: int
    trailing: bytes  # shorter than the group size only at the end of the buffer
    decoded_cc: int | None


@dataclass(frozen=True)
class Attribution:
    owned: dict[str, list[int]]
    unowned: list[int]


def diff_bytes(a: bytes | bytearray, b: bytes | bytearray) -> DiffReport:
    """Return (offset, a, b) for every position where the dumps differ."""
    diffs = []
    for i in range(max(len(a), len(b))):
        va = a[i] if i < len(a) else None
        vb = b[i] if i < len(b) else None
        if va != vb:
            diffs.append(ByteDiff(i, va, vb))
    return tuple(diffs)


def diff_models(model_a: DumpModel, model_b: DumpModel) -> ModelDiff:
    values_b = model_b.values()
    fields = {
        key: (value, values_b[key])
        for key, value in model_a.values().items()
        if key in values_b and values_b[key] != value
    }
    return ModelDiff(diff_bytes(model_a.to_bytes(), model_b.to_bytes()), fields)


class MarkerScan:
    """Restartable scan over a snapshot of a buffer for marker groups."""

    def __init__(self, data: bytes | bytearray, marker: int, group_size: int) -> None:
        self._data = bytes(data)
        self.marker = marker
        self.group_size = group_size

    def __iter__(self) -> Iterator[MarkerGroup]:
        data = self._data
        start = data.find(self.marker)
        while start != -1:
            trailing = data[start + 1:start + 1 + self.group_size]
            cc = decode_cc(trailing[0], trailing[1]) if len(trailing) >= 2 else None
            yield MarkerGroup(start, trailing, cc)
            start = data.find(self.marker, start + 1)


def find_marker_groups(
    data: bytes | bytearray,
    marker: int = MARKER_BYTE,
    group_size: int = MARKER_GROUP_SIZE,
) -> MarkerScan:
    return MarkerScan(data, marker, group_size)


def nearest_marker(
    data: bytes | bytearray,
    offset: int,
    marker: int = MARKER_BYTE,
    group_size: int = MARKER_GROUP_SIZE,
) -> MarkerGroup | None:
    """Closest marker group starting at or before *offset*."""
    best = None
    for group in find_marker_groups(data, marker, group_size):
        if group.offset > offset:
            break
        best = group
    return best


def marker_strides(data: bytes | bytearray, marker: int = MARKER_BYTE) -> Counter:
    """Count the gaps between consecutive markers; a dominant gap hints at a
    repeating per-control block."""
    offsets = [g.offset for g in find_marker_groups(data, marker, 0)]
    return Counter(b - a for a, b in zip(offsets, offsets[1:]))


def attribute_diff(schema: ParameterSchema, report: DiffReport) -> Attribution:
    owned: dict[str, list[int]] = {}
    unowned = []
    for d in report:
        owners = schema.owners(d.offset)
        if not owners:
            unowned.append(d.offset)
        for key in owners:
            owned.setdefault(key, []).append(d.offset)
    return Attribution(owned, unowned)


def check_single_edit(model_a: DumpModel, model_b: DumpModel, key: str) -> bool:
    """True when the two dumps differ only where editing *key* is allowed to
    write (its own bytes plus dependent computed fields) and *key* is the
    only stored field whose value changed."""
    schema = model_a.schema
    desc = schema.lookup(key)
    dependents = schema.dependents(key)
    allowed = set(desc.offsets)
    for dep in dependents:
        allowed.update(dep.offsets)

    result = diff_models(model_a, model_b)
    if not result.byte_diff or not set(result.offsets) <= allowed:
        return False
    changed = set(result.field_diff)
    return key in changed and changed <= {key, *(d.key for d in dependents)}


def propose_descriptor(
    key: str,
    report: DiffReport,
    codec: FieldCodec,
    offsets: tuple[int, ...] | None = None,
    **kwargs,
) -> ParamDescriptor:
    """Turn the diff of a controlled single edit into a descriptor candidate.

    The changed offsets, in ascending order, become the descriptor's
    offsets; their count must match the codec's byte width.  Explicit
    *offsets* must cover every changed position.
    """
    if any(d.a is None or d.b is None for d in report):
        raise InvalidDomain("Cannot propose a descriptor from dumps of different lengths")
    changed = tuple(d.offset for d in report)
    if not changed:
        raise InvalidDomain("Dumps are identical, nothing to propose")
    if offsets is None:
        offsets = changed
    elif not set(changed) <= set(offsets):
        raise InvalidDomain(f"Changed offsets {list(changed)} not covered by {list(offsets)}")
    if len(offsets) != codec.width:
        raise InvalidDomain(
            f"Codec '{codec.name}' spans {codec.width} byte(s), diff changed "
            f"{len(offsets)}: {list(offsets)}"
        )
    return ParamDescriptor(key, offsets, codec, **kwargs)


def format_report(report: DiffReport) -> list[str]:
    lines = []
    for d in report:
        a = f"0x{d.a:02X} ({d.a:3d})" if d.a is not None else "   N/A    "
        b = f"0x{d.b:02X} ({d.b:3d})" if d.b is not None else "   N/A    "
        lines.append(f"{d.offset:>8}  {a}  {b}")
    return lines
