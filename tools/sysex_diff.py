#!/usr/bin/env python3
"""Diff two Faderfox PC12 SysEx dumps.

Usage:
    python tools/sysex_diff.py dump_before.syx dump_after.syx

Compares byte by byte and prints which offsets changed, their old/new values,
the schema field owning each offset (if any) and the nearest preceding
"4D XX YY" marker group.  Useful for empirically discovering which byte
offset corresponds to a given control setting.
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path

from core.config import AppConfig
from core.logger import AppLogger
from midi.errors import DumpError, MalformedDump
from midi.params import ParameterSchema
from midi.pc12 import build_schema
from midi.sysex import decode_dump
from model.capture import Capture
from tools.diff import diff_bytes, diff_models, format_report, nearest_marker


def load_schema(config: AppConfig, logger: AppLogger) -> ParameterSchema:
    """Built-in PC12 fields plus the saved discoveries.

    A corrupt or mismatched discoveries file raises ValueError or DumpError.
    """
    schema = build_schema(config.dump_length, logger=logger)
    path = config.resolved_discoveries_path()
    if path.exists():
        schema.load_discoveries(path)
    return schema


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Diff two PC12 SysEx dumps")
    parser.add_argument("before", type=Path)
    parser.add_argument("after", type=Path)
    parser.add_argument("--config", type=Path, default=None,
                        help="Config file (default: ~/.config/pc12edit/config.json)")
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

    before = Capture.from_syx(args.before).data
    after = Capture.from_syx(args.after).data

    print(f"Before: {len(before)} bytes  ({args.before.name})")
    print(f"After:  {len(after)} bytes  ({args.after.name})")
    print()

    report = diff_bytes(before, after)
    if not report:
        print("No differences found.")
        return

    print(f"Found {len(report)} difference(s):")
    print(f"{'Offset':>8}  {'Before':>10}  {'After':>10}  {'Field':<24}  Marker")
    print("-" * 72)
    for line, d in zip(format_report(report), report):
        owners = ", ".join(schema.owners(d.offset)) or "?"
        group = nearest_marker(before, d.offset, config.marker_byte, config.marker_group_size)
        where = f"+{d.offset - group.offset} from 4D@{group.offset}" if group else "-"
        print(f"{line}  {owners:<24}  {where}")

    try:
        model_a = decode_dump(before, schema, logger)
        model_b = decode_dump(after, schema, logger)
    except MalformedDump as exc:
        print(f"\nField diff unavailable: {exc}")
        return
    fields = diff_models(model_a, model_b).field_diff
    print()
    if not fields:
        print("No known field changed.")
    for key, (old, new) in fields.items():
        print(f"  {key}: {old} -> {new}")
    logger.diff(f"{len(report)} byte(s), {len(fields)} field(s) changed")


if __name__ == "__main__":
    main()
