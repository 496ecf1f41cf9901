from __future__ import annotations

from core.logger import AppLogger
from midi.errors import InvalidDomain
from midi.params import ParameterSchema


class DumpModel:
    """One PC12 configuration dump: the raw bytes plus decoded field values.

    The byte buffer is the only source of truth.  Field writes go straight
    into it, touching just the bits the field's descriptor owns, so bytes
    nobody has decoded yet survive every edit unchanged.
    """

    def __init__(
        self,
        data: bytes | bytearray,
        schema: ParameterSchema,
        logger: AppLogger | None = None,
    ) -> None:
        self._data = bytearray(data)
        self._schema = schema
        self._logger = logger or schema.logger
        self._values: dict[str, int] = {
            desc.key: desc.read(self._data) for desc in schema.all()
        }
        self._dirty = False

    # -- raw byte access --

    @property
    def schema(self) -> ParameterSchema:
        return self._schema

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_clean(self) -> None:
        self._dirty = False

    def to_bytes(self) -> bytes:
        return bytes(self._data)

    def get_byte(self, offset: int) -> int:
        if offset < 0 or offset >= len(self._data):
            raise IndexError(f"Offset {offset} out of range (size={len(self._data)})")
        return self._data[offset]

    @property
    def header(self) -> bytes:
        """Vendor/device identifier bytes following the start marker."""
        return bytes(self._data[1:1 + self._schema.header_length])

    # -- field access --

    def get_value(self, key: str) -> int:
        desc = self._schema.lookup(key)
        if key not in self._values:
            # registered after this dump was decoded
            self._values[key] = desc.read(self._data)
        return self._values[key]

    def values(self) -> dict[str, int]:
        """Decoded value of every registered field, in registration order."""
        return {desc.key: self.get_value(desc.key) for desc in self._schema.all()}

    def set_value(self, key: str, value: int) -> DumpModel:
        """Encode *value* into the bytes owned by *key*.

        Computed fields depending on *key* are refreshed before returning.
        Nothing is written unless every encode step succeeds.
        """
        desc = self._schema.lookup(key)
        if desc.is_computed:
            raise InvalidDomain(f"'{key}' is computed from other fields and cannot be set")

        scratch = bytearray(self._data)
        for offset, byte in zip(desc.offsets, desc.encoded(scratch, value)):
            scratch[offset] = byte
        touched = [desc]
        for dep in self._schema.dependents(key):
            computed = dep.compute(bytes(scratch))
            for offset, byte in zip(dep.offsets, dep.encoded(scratch, computed)):
                scratch[offset] = byte
            touched.append(dep)

        changed = 0
        for d in touched:
            for offset in d.offsets:
                if self._data[offset] != scratch[offset]:
                    self._data[offset] = scratch[offset]
                    changed += 1
            self._values[d.key] = d.read(self._data)
        if changed:
            self._dirty = True
            message = f"set {key}={value} ({changed} byte(s))"
            if len(touched) > 1:
                message += f", refreshed {', '.join(d.key for d in touched[1:])}"
            self._logger.dump(message)
        return self

    def copy(self) -> DumpModel:
        clone = DumpModel(self._data, self._schema, self._logger)
        clone._dirty = self._dirty
        return clone
