"""Candidate checksum functions for computed descriptors.

Whether PC12 dumps carry a checksum at all is unconfirmed, so none of these
is registered by default.  Each factory returns a ``compute(data) -> int``
suitable for ``ParamDescriptor(compute=..., depends_on=...)``.
"""

from __future__ import annotations
from typing import Callable


def sum7(start: int, end: int) -> Callable[[bytes], int]:
    """Plain 7-bit sum of ``data[start:end]``."""
    def compute(data: bytes) -> int:
        return sum(b & 0x7F for b in data[start:end]) & 0x7F
    return compute


def roland(start: int, end: int) -> Callable[[bytes], int]:
    """Roland-style: value that brings the 7-bit sum of the range to zero."""
    def compute(data: bytes) -> int:
        s = sum(b & 0x7F for b in data[start:end]) & 0x7F
        return (-s) & 0x7F
    return compute


def xor7(start: int, end: int) -> Callable[[bytes], int]:
    def compute(data: bytes) -> int:
        x = 0
        for b in data[start:end]:
            x ^= b
        return x & 0x7F
    return compute
