from __future__ import annotations
from dataclasses import dataclass

import mido

from core.logger import AppLogger
from midi.dump import DumpModel
from midi.errors import MalformedDump
from midi.params import ParameterSchema

SYSEX_START = 0xF0
SYSEX_END = 0xF7


@dataclass(frozen=True)
class DumpHeader:
    manufacturer_id: tuple[int, ...]
    raw: bytes


def validate_dump(data: bytes | bytearray, schema: ParameterSchema) -> None:
    if len(data) != schema.dump_length:
        raise MalformedDump(
            f"Dump is {len(data)} bytes, schema '{schema.name}' expects {schema.dump_length}"
        )
    if data[0] != schema.start_marker:
        raise MalformedDump(
            f"Missing start byte (0x{schema.start_marker:02X}), got 0x{data[0]:02X}"
        )
    if data[-1] != schema.end_marker:
        raise MalformedDump(
            f"Missing end byte (0x{schema.end_marker:02X}), got 0x{data[-1]:02X}"
        )


def decode_dump(
    data: bytes | bytearray,
    schema: ParameterSchema,
    logger: AppLogger | None = None,
) -> DumpModel:
    validate_dump(data, schema)
    model = DumpModel(data, schema, logger)
    (logger or schema.logger).dump(
        f"decoded {len(data)}-byte dump, {len(schema)} known field(s)"
    )
    return model


def encode_dump(model: DumpModel) -> bytes:
    """Return the model's bytes.

    There is no rebuild path: field edits are applied in place by
    ``DumpModel.set_value``, so the buffer is always current.
    """
    return model.to_bytes()


def parse_header(data: bytes | bytearray, header_length: int = 4) -> DumpHeader:
    # Format: F0 00 00 00 [body] F7
    if len(data) < 1 + header_length:
        raise MalformedDump(f"Dump too short for a {header_length}-byte header")
    if data[0] != SYSEX_START:
        raise MalformedDump(f"Missing start byte (F0), got 0x{data[0]:02X}")
    raw = bytes(data[1:1 + header_length])
    return DumpHeader(manufacturer_id=tuple(raw[:3]), raw=raw)


def to_message(data: bytes | bytearray) -> mido.Message:
    """Wrap a raw dump as a mido SysEx message for the transport layer."""
    if len(data) < 2 or data[0] != SYSEX_START or data[-1] != SYSEX_END:
        raise MalformedDump("Dump must start with F0 and end with F7")
    if any(b & 0x80 for b in data[1:-1]):
        raise MalformedDump("SysEx data bytes must all be <= 0x7F")
    return mido.Message("sysex", data=bytes(data[1:-1]))


def from_message(message: mido.Message) -> bytes:
    if message.type != "sysex":
        raise MalformedDump(f"Expected a sysex message, got '{message.type}'")
    return bytes(message.bin())
