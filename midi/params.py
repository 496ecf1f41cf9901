from __future__ import annotations
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

from core.logger import AppLogger
from midi.codec import FieldCodec, codec_by_name
from midi.errors import (
    DuplicateKey, InvalidDomain, OutOfBounds, OverlapConflict, UnknownKey,
)


@dataclass(frozen=True)
class ParamDescriptor:
    key: str
    offsets: tuple[int, ...]
    codec: FieldCodec
    min_val: int | None = None  # defaults to the codec's domain
    max_val: int | None = None
    description: str = ""
    group: str = ""
    # Computed descriptors (checksum-like): value derived from the whole dump
    compute: Callable[[bytes], int] | None = field(default=None, compare=False)
    depends_on: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "offsets", tuple(self.offsets))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        if len(self.offsets) != self.codec.width:
            raise ValueError(
                f"'{self.key}': codec '{self.codec.name}' needs {self.codec.width} "
                f"offset(s), got {len(self.offsets)}"
            )
        if len(set(self.offsets)) != len(self.offsets):
            raise ValueError(f"'{self.key}': offsets must be distinct, got {self.offsets}")
        if self.min_val is None:
            object.__setattr__(self, "min_val", self.codec.min_val)
        if self.max_val is None:
            object.__setattr__(self, "max_val", self.codec.max_val)
        if not (self.codec.min_val <= self.min_val <= self.max_val <= self.codec.max_val):
            raise ValueError(
                f"'{self.key}': domain {self.min_val}-{self.max_val} outside codec "
                f"'{self.codec.name}' range {self.codec.min_val}-{self.codec.max_val}"
            )
        if self.depends_on and self.compute is None:
            raise ValueError(f"'{self.key}': depends_on requires a compute function")

    @property
    def kind(self) -> str:
        return "computed" if self.compute is not None else "stored"

    @property
    def is_computed(self) -> bool:
        return self.compute is not None

    @property
    def layout(self) -> tuple:
        """Where and how the value is stored; labels are not part of it."""
        return self.offsets, self.codec.name, self.min_val, self.max_val

    def owned_bits(self) -> Iterator[tuple[int, int]]:
        """Yield (offset, mask) for every byte this descriptor writes."""
        return zip(self.offsets, self.codec.masks)

    def check(self, value: int) -> None:
        if not isinstance(value, int) or not (self.min_val <= value <= self.max_val):
            raise InvalidDomain(
                f"'{self.key}' must be {self.min_val}-{self.max_val}, got {value}"
            )

    def read(self, data: bytes | bytearray) -> int:
        return self.codec.decode(*(data[o] for o in self.offsets))

    def encoded(self, data: bytes | bytearray, value: int) -> tuple[int, ...]:
        """Return the bytes this descriptor would write for *value*; *data* is untouched."""
        self.check(value)
        return tuple(self.codec.encode(value, *(data[o] for o in self.offsets)))


class ParameterSchema:
    """Append-only registry of known dump parameters.

    Descriptors keep registration order.  Ownership is tracked per bit so two
    fields may live in the same byte as long as their masks do not intersect.
    """

    def __init__(
        self,
        dump_length: int,
        *,
        start_marker: int = 0xF0,
        end_marker: int = 0xF7,
        header_length: int = 4,
        name: str = "",
        logger: AppLogger | None = None,
    ) -> None:
        if dump_length < 2:
            raise ValueError(f"Dump length must be at least 2, got {dump_length}")
        self.dump_length = dump_length
        self.start_marker = start_marker
        self.end_marker = end_marker
        self.header_length = header_length
        self.name = name
        self._logger = logger or AppLogger()
        self._descriptors: dict[str, ParamDescriptor] = {}
        self._ownership: dict[int, dict[str, int]] = {}  # offset -> {key: mask}

    @property
    def logger(self) -> AppLogger:
        return self._logger

    @property
    def field_range(self) -> tuple[int, int]:
        """First and last offset a descriptor may own.

        The start marker, the fixed header and the end marker are not fields.
        """
        return 1 + self.header_length, self.dump_length - 2

    # -- registration --

    def _validate(self, desc: ParamDescriptor) -> None:
        if desc.key in self._descriptors:
            raise DuplicateKey(f"Parameter '{desc.key}' is already registered")
        first, last = self.field_range
        for offset in desc.offsets:
            if not (first <= offset <= last):
                raise OutOfBounds(
                    f"'{desc.key}': offset {offset} outside field area {first}-{last} "
                    f"of a {self.dump_length}-byte dump"
                )
        for offset, mask in desc.owned_bits():
            for other, other_mask in self._ownership.get(offset, {}).items():
                if other_mask & mask:
                    raise OverlapConflict(
                        f"'{desc.key}' bits 0x{mask:02X} at offset {offset} collide "
                        f"with '{other}' bits 0x{other_mask:02X}"
                    )
        for dep in desc.depends_on:
            if dep not in self._descriptors:
                raise UnknownKey(f"'{desc.key}' depends on unregistered '{dep}'")

    def _commit(self, desc: ParamDescriptor) -> None:
        self._descriptors[desc.key] = desc
        for offset, mask in desc.owned_bits():
            self._ownership.setdefault(offset, {})[desc.key] = mask

    def register(self, desc: ParamDescriptor) -> ParamDescriptor:
        self._validate(desc)
        self._commit(desc)
        self._logger.schema(
            f"registered {desc.kind} '{desc.key}' at {list(desc.offsets)} ({desc.codec.name})"
        )
        return desc

    # -- lookup --

    def lookup(self, key: str) -> ParamDescriptor:
        try:
            return self._descriptors[key]
        except KeyError:
            raise UnknownKey(f"Unknown parameter '{key}'") from None

    def get(self, key: str) -> ParamDescriptor | None:
        return self._descriptors.get(key)

    def all(self):
        """Registered descriptors in registration order.

        The returned view is lazy and can be iterated any number of times.
        """
        return self._descriptors.values()

    def keys(self) -> list[str]:
        return list(self._descriptors.keys())

    def by_group(self, group: str) -> list[ParamDescriptor]:
        return [d for d in self._descriptors.values() if d.group == group]

    def __contains__(self, key: object) -> bool:
        return key in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ParamDescriptor]:
        return iter(self._descriptors.values())

    def owners(self, offset: int) -> list[str]:
        """Keys owning any bit of *offset*, in registration order."""
        return list(self._ownership.get(offset, {}))

    def owned_offsets(self) -> set[int]:
        return {o for o, owners in self._ownership.items() if owners}

    def dependents(self, key: str) -> list[ParamDescriptor]:
        """Computed descriptors that must be refreshed after *key* changes.

        Includes transitive dependents; returned in registration order, which
        is also a valid evaluation order since dependencies register first.
        """
        changed = {key}
        result = []
        for desc in self._descriptors.values():
            if desc.is_computed and changed.intersection(desc.depends_on):
                result.append(desc)
                changed.add(desc.key)
        return result

    def copy(
        self,
        name: str | None = None,
        logger: AppLogger | None = None,
    ) -> ParameterSchema:
        clone = ParameterSchema(
            self.dump_length,
            start_marker=self.start_marker,
            end_marker=self.end_marker,
            header_length=self.header_length,
            name=self.name if name is None else name,
            logger=logger or self._logger,
        )
        for desc in self._descriptors.values():
            clone._commit(desc)
        return clone

    # -- discovery files --

    def save_discoveries(self, path: Path) -> None:
        entries = []
        for desc in self._descriptors.values():
            if desc.is_computed:
                # compute functions are code, not data
                self._logger.schema(f"skipping computed '{desc.key}' in {path.name}")
                continue
            entries.append({
                "key": desc.key,
                "offsets": list(desc.offsets),
                "codec": desc.codec.name,
                "min": desc.min_val,
                "max": desc.max_val,
                "description": desc.description,
                "group": desc.group,
            })
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {"dump_length": self.dump_length, "descriptors": entries}
        path.write_text(json.dumps(data, indent=2))

    def load_discoveries(self, path: Path, skip_known: bool = True) -> list[ParamDescriptor]:
        """Register descriptors from a discoveries file.

        Either every new descriptor registers or none does.  With
        *skip_known*, entries whose key, offsets, codec and domain match an
        existing registration are ignored; a known key with any other layout
        raises DuplicateKey.
        """
        data = json.loads(path.read_text())
        if data.get("dump_length", self.dump_length) != self.dump_length:
            raise ValueError(
                f"{path.name} targets {data['dump_length']}-byte dumps, "
                f"schema expects {self.dump_length}"
            )
        pending = []
        for entry in data.get("descriptors", []):
            if "key" not in entry or "offsets" not in entry or "codec" not in entry:
                raise ValueError(f"Discovery entry missing key/offsets/codec: {entry}")
            desc = ParamDescriptor(
                key=entry["key"],
                offsets=tuple(entry["offsets"]),
                codec=codec_by_name(entry["codec"]),
                min_val=entry.get("min"),
                max_val=entry.get("max"),
                description=entry.get("description", ""),
                group=entry.get("group", ""),
            )
            known = self._descriptors.get(desc.key)
            if skip_known and known is not None:
                if known.layout == desc.layout:
                    continue
                raise DuplicateKey(
                    f"'{desc.key}' in {path.name} ({list(desc.offsets)}, {desc.codec.name}, "
                    f"{desc.min_val}-{desc.max_val}) differs from the registered "
                    f"({list(known.offsets)}, {known.codec.name}, "
                    f"{known.min_val}-{known.max_val})"
                )
            pending.append(desc)

        trial = self.copy()
        for desc in pending:
            trial._validate(desc)
            trial._commit(desc)
        for desc in pending:
            self._commit(desc)
        self._logger.schema(f"loaded {len(pending)} descriptor(s) from {path.name}")
        return pending
