"""Primitive value codecs for Faderfox PC12 SysEx dumps.

Encoding discovered through reverse engineering:
  - CC numbers are split across the low nibbles of two bytes:
    CC = ((byte1 & 0x0F) << 4) | (byte2 & 0x0F)
  - MIDI channel is stored zero-based in a byte's low nibble:
    channel = (byte & 0x0F) + 1

Every encode takes the byte(s) currently in the dump as a template and only
rewrites the bits the codec owns.  The remaining bits carry protocol state we
have not decoded yet and must come back out unchanged.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable

from midi.errors import InvalidDomain

CC_MIN, CC_MAX = 0, 127
CHANNEL_MIN, CHANNEL_MAX = 1, 16


def decode_cc(byte1: int, byte2: int) -> int:
    return ((byte1 & 0x0F) << 4) | (byte2 & 0x0F)


def encode_cc(cc: int, byte1: int = 0x20, byte2: int = 0x10) -> tuple[int, int]:
    """Split *cc* over the low nibbles of two template bytes.

    The high nibble of each template survives as-is.
    """
    if not (CC_MIN <= cc <= CC_MAX):
        raise InvalidDomain(f"CC must be {CC_MIN}-{CC_MAX}, got {cc}")
    return (byte1 & 0xF0) | ((cc >> 4) & 0x0F), (byte2 & 0xF0) | (cc & 0x0F)


def decode_channel(byte: int) -> int:
    return (byte & 0x0F) + 1


def encode_channel(channel: int, byte: int = 0x10) -> int:
    if not (CHANNEL_MIN <= channel <= CHANNEL_MAX):
        raise InvalidDomain(f"MIDI channel must be {CHANNEL_MIN}-{CHANNEL_MAX}, got {channel}")
    return (byte & 0xF0) | ((channel - 1) & 0x0F)


@dataclass(frozen=True)
class FieldCodec:
    """A decode/encode pair plus the bits it owns in each of its bytes.

    ``masks[i]`` is the set of bits the codec reads and writes in the i-th
    byte of a descriptor's offsets.  ``decode(*bytes)`` returns the logical
    value; ``encode(value, *templates)`` returns the new bytes.
    """
    name: str
    masks: tuple[int, ...]
    min_val: int
    max_val: int
    decode: Callable[..., int]
    encode: Callable[..., tuple[int, ...]]

    @property
    def width(self) -> int:
        return len(self.masks)


def _check(codec_name: str, value: int, lo: int, hi: int) -> None:
    if not (lo <= value <= hi):
        raise InvalidDomain(f"{codec_name} value must be {lo}-{hi}, got {value}")


def _decode_signed(byte: int) -> int:
    raw = byte & 0x7F
    return raw if raw < 64 else raw - 128


def _encode_signed(value: int, byte: int) -> tuple[int]:
    _check("signed", value, -64, 63)
    if value < 0:
        value += 128
    return ((byte & 0x80) | value,)


def _encode_raw(value: int, byte: int) -> tuple[int]:
    _check("raw", value, 0, 0x7F)
    return ((byte & 0x80) | value,)


NIBBLE_CC = FieldCodec(
    "cc", (0x0F, 0x0F), CC_MIN, CC_MAX,
    decode=decode_cc,
    encode=lambda value, b1, b2: encode_cc(value, b1, b2),
)

CHANNEL = FieldCodec(
    "channel", (0x0F,), CHANNEL_MIN, CHANNEL_MAX,
    decode=decode_channel,
    encode=lambda value, b: (encode_channel(value, b),),
)

RAW_BYTE = FieldCodec(
    "raw", (0x7F,), 0, 0x7F,
    decode=lambda b: b & 0x7F,
    encode=_encode_raw,
)

SIGNED_BYTE = FieldCodec(
    "signed", (0x7F,), -64, 63,
    decode=_decode_signed,
    encode=_encode_signed,
)


def bit_field(mask: int) -> FieldCodec:
    """Codec for a multi-bit field packed into part of one byte."""
    if not (0 < mask <= 0xFF):
        raise ValueError(f"Bit mask must be 0x01-0xFF, got 0x{mask:X}")
    shift = (mask & -mask).bit_length() - 1
    top = mask >> shift
    name = f"bits_0x{mask:02X}"

    def encode(value: int, byte: int) -> tuple[int]:
        _check(name, value, 0, top)
        if (value << shift) & ~mask:
            raise InvalidDomain(f"{name} cannot represent {value}")
        return ((byte & ~mask & 0xFF) | (value << shift),)

    return FieldCodec(name, (mask,), 0, top,
                      decode=lambda b: (b & mask) >> shift,
                      encode=encode)


def flag(bit: int) -> FieldCodec:
    if not (0 <= bit <= 7):
        raise ValueError(f"Bit position must be 0-7, got {bit}")
    codec = bit_field(1 << bit)
    return FieldCodec(f"flag_{bit}", codec.masks, 0, 1, codec.decode, codec.encode)


CODECS: dict[str, FieldCodec] = {c.name: c for c in (NIBBLE_CC, CHANNEL, RAW_BYTE, SIGNED_BYTE)}


def codec_by_name(name: str) -> FieldCodec:
    """Resolve a codec name as written to discovery files."""
    if name in CODECS:
        return CODECS[name]
    if name.startswith("bits_0x"):
        return bit_field(int(name[len("bits_0x"):], 16))
    if name.startswith("flag_"):
        return flag(int(name[len("flag_"):]))
    raise ValueError(f"Unknown codec '{name}'")
