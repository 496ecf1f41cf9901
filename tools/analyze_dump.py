#!/usr/bin/env python3
"""Show what is currently known about one Faderfox PC12 dump.

Usage:
    python tools/analyze_dump.py dump.syx                     # header, fields, markers
    python tools/analyze_dump.py dump.syx --set col1_row_a_cc=74 -o edited.syx

Prints the header bytes, every decoded field, the "4D XX YY" marker groups
and the most common spacing between markers.  With --set, edits fields in
place and writes the result; all other bytes are copied through unchanged.
The input capture is never overwritten.
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path

from core.config import AppConfig
from core.logger import AppLogger
from midi.errors import DumpError
from midi.sysex import decode_dump, encode_dump, parse_header
from model.capture import DEFAULT_SYX_NAME, Capture
from tools.diff import find_marker_groups, marker_strides
from tools.sysex_diff import load_schema


def parse_assignment(text: str) -> tuple[str, int]:
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise ValueError(f"Expected key=value, got '{text}'")
    return key.strip(), int(value, 0)


def check_output(source: Path, out_path: Path, explicit: bool) -> None:
    """Refuse to write an edited dump over its source capture.

    The default output name is shared with fresh captures, so it is never
    overwritten either; an explicit -o may replace any other file.
    """
    if out_path.resolve() == source.resolve():
        raise ValueError(f"Refusing to overwrite the input capture {source}")
    if not explicit and out_path.exists():
        raise ValueError(f"{out_path} already exists; pass -o to choose the output file")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Analyze a PC12 SysEx dump")
    parser.add_argument("dump", type=Path)
    parser.add_argument("--set", action="append", default=[], metavar="KEY=VALUE",
                        help="Field edit to apply (repeatable)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help=f"Where to write the edited dump (default: {DEFAULT_SYX_NAME})")
    parser.add_argument("--markers", type=int, default=20,
                        help="Max marker groups to list (default: 20)")
    parser.add_argument("--config", type=Path, default=None)
    args = parser.parse_args(argv)

    if not args.dump.exists():
        print(f"File not found: {args.dump}")
        sys.exit(1)

    config = AppConfig(args.config)
    logger = AppLogger(echo=config.log_echo)
    out_path = args.output or config.resolved_captures_dir() / DEFAULT_SYX_NAME

    try:
        if args.set:
            check_output(args.dump, out_path, explicit=args.output is not None)
        schema = load_schema(config, logger)
        data = Capture.from_syx(args.dump).data
        header = parse_header(data, schema.header_length)
        model = decode_dump(data, schema, logger)
        for assignment in args.set:
            model.set_value(*parse_assignment(assignment))
    except (DumpError, ValueError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    print(f"Length: {model.size} bytes")
    print(f"Header: {header.raw.hex(' ').upper()}  "
          f"(manufacturer {' '.join(f'{b:02X}' for b in header.manufacturer_id)})")

    print(f"\nKnown fields ({len(schema)}):")
    for key, value in model.values().items():
        desc = schema.lookup(key)
        print(f"  {key:28s} = {value:4d}   @{list(desc.offsets)} ({desc.codec.name})")

    groups = list(find_marker_groups(model.to_bytes(), config.marker_byte,
                                     config.marker_group_size))
    print(f"\nMarker groups (0x{config.marker_byte:02X}): {len(groups)}")
    for group in groups[:args.markers]:
        cc = "-" if group.decoded_cc is None else str(group.decoded_cc)
        print(f"  @{group.offset:5d}  {group.trailing.hex(' ').upper():8s}  cc={cc}")
    if len(groups) > args.markers:
        print(f"  ... {len(groups) - args.markers} more")
    strides = marker_strides(model.to_bytes(), config.marker_byte)
    if strides:
        print("Most common marker spacing: "
              + ", ".join(f"{gap} (x{n})" for gap, n in strides.most_common(3)))

    if args.set:
        out_path.write_bytes(encode_dump(model))
        print(f"\nWrote {model.size} bytes to {out_path}")


if __name__ == "__main__":
    main()
