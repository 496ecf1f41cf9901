from __future__ import annotations


class DumpError(Exception):
    """Base class for every error raised by the dump core."""


class MalformedDump(DumpError, ValueError):
    """Start/end marker missing or length does not match the schema."""


class UnknownKey(DumpError, KeyError):
    def __str__(self) -> str:
        # KeyError repr-quotes its argument; keep messages readable
        return str(self.args[0]) if self.args else ""


class InvalidDomain(DumpError, ValueError):
    pass


class DuplicateKey(DumpError, ValueError):
    pass


class OverlapConflict(DumpError, ValueError):
    pass


class OutOfBounds(DumpError, IndexError):
    pass
