#!/usr/bin/env python3
"""Record a newly discovered PC12 dump offset from a before/after capture pair.

Workflow: capture a baseline dump, change exactly one setting on the
hardware, capture again, then run

    python tools/discover_offsets.py before.syx after.syx col3_row_a_cc --codec cc

The changed offsets become a descriptor for the given key.  It is checked
against the current schema (bounds, bit overlap) before being appended to the
discoveries file, which ``load_discoveries`` replays at start-up.

Programmatic:
    from tools.discover_offsets import OffsetDiscovery
    discovery = OffsetDiscovery(schema)
    desc = discovery.record("col3_row_a_cc", before, after, NIBBLE_CC)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from core.config import AppConfig
from core.logger import AppLogger
from midi.codec import FieldCodec, codec_by_name
from midi.errors import DumpError
from midi.params import ParamDescriptor, ParameterSchema
from midi.sysex import decode_dump, validate_dump
from model.capture import Capture
from tools.diff import check_single_edit, diff_bytes, nearest_marker, propose_descriptor
from tools.sysex_diff import load_schema


class OffsetDiscovery:
    """Turns controlled single-edit capture pairs into schema registrations."""

    def __init__(self, schema: ParameterSchema, logger: AppLogger | None = None) -> None:
        self._schema = schema
        self._logger = logger or schema.logger

    @property
    def schema(self) -> ParameterSchema:
        return self._schema

    def record(
        self,
        key: str,
        before: bytes,
        after: bytes,
        codec: FieldCodec,
        offsets: tuple[int, ...] | None = None,
        **kwargs,
    ) -> ParamDescriptor:
        """Register *key* at the offsets where *before* and *after* differ.

        Both dumps must be structurally valid.  Raises the usual schema
        errors (DuplicateKey, OverlapConflict, OutOfBounds) or InvalidDomain
        when the diff does not fit the codec. Pass *offsets* when the edit left
        some of the field's bytes unchanged (e.g. a CC edit within one nibble).
        """
        validate_dump(before, self._schema)
        validate_dump(after, self._schema)
        report = diff_bytes(before, after)
        desc = propose_descriptor(key, report, codec, offsets=offsets, **kwargs)

        trial = self._schema.copy(logger=AppLogger(echo=False))
        trial.register(desc)
        model_a = decode_dump(before, trial)
        model_b = decode_dump(after, trial)
        if not check_single_edit(model_a, model_b, key):
            raise DumpError(f"Diff is not an isolated value change of '{key}'")

        group = nearest_marker(before, desc.offsets[0])
        if group is not None:
            self._logger.schema(
                f"'{key}' sits {desc.offsets[0] - group.offset} byte(s) after marker @{group.offset}"
            )
        return self._schema.register(desc)

    def save(self, path: Path) -> None:
        self._schema.save_discoveries(path)


# -- CLI entry point ---------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Record a discovered dump offset")
    parser.add_argument("before", type=Path)
    parser.add_argument("after", type=Path)
    parser.add_argument("key", help="Logical name for the edited setting")
    parser.add_argument("--codec", default="cc",
                        help="Codec name: cc, channel, raw, signed, bits_0xNN, flag_N")
    parser.add_argument("--offsets", default=None,
                        help="Comma-separated offsets, when the edit left some bytes unchanged")
    parser.add_argument("--group", default="")
    parser.add_argument("--description", default="")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Discoveries JSON (default: from config)")
    parser.add_argument("--config", type=Path, default=None)
    args = parser.parse_args(argv)

    for path in (args.before, args.after):
        if not path.exists():
            print(f"File not found: {path}")
            sys.exit(1)

    config = AppConfig(args.config)
    logger = AppLogger(echo=config.log_echo)
    try:
        schema = load_schema(config, logger)
    except (DumpError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)
    discovery = OffsetDiscovery(schema, logger)

    try:
        codec = codec_by_name(args.codec)
        desc = discovery.record(
            args.key,
            Capture.from_syx(args.before).data,
            Capture.from_syx(args.after).data,
            codec,
            offsets=tuple(int(o) for o in args.offsets.split(",")) if args.offsets else None,
            group=args.group,
            description=args.description,
        )
    except (DumpError, ValueError) as exc:
        print(f"Not recorded: {exc}")
        sys.exit(1)

    out_path = args.output or config.resolved_discoveries_path()
    discovery.save(out_path)
    print(f"Recorded {desc.key} at offsets {list(desc.offsets)} ({codec.name})")
    print(f"Saved {len(schema)} descriptor(s) to {out_path}")


if __name__ == "__main__":
    main()
