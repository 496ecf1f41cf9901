"""Faderfox PC12 dump layout, as far as it is confirmed.

Offsets are 0-indexed from the F0 start byte and were found by diffing
dumps taken before and after a single edit on the hardware.
"""

from __future__ import annotations

from core.logger import AppLogger
from midi.codec import CHANNEL, NIBBLE_CC
from midi.params import ParamDescriptor, ParameterSchema
from midi.sysex import SYSEX_END, SYSEX_START

DUMP_LENGTH = 1700
HEADER_LENGTH = 4  # F0 00 00 00
MARKER_BYTE = 0x4D  # 'M', introduces a "4D XX YY" parameter group
MARKER_GROUP_SIZE = 2

_CONFIRMED: list[ParamDescriptor] = [
    # Col 1, Row A
    ParamDescriptor("col1_row_a_channel", (24,), CHANNEL,
                    description="MIDI channel, column 1 row A", group="pot"),
    ParamDescriptor("col1_row_a_cc", (27, 28), NIBBLE_CC,
                    description="CC number, column 1 row A", group="pot"),
    # Col 2, Row A
    ParamDescriptor("col2_row_a_cc", (41, 42), NIBBLE_CC,
                    description="CC number, column 2 row A", group="pot"),
    # Col 1, Row B
    ParamDescriptor("col1_row_b_cc", (260, 261), NIBBLE_CC,
                    description="CC number, column 1 row B", group="pot"),
    ParamDescriptor("button1_cc", (1430, 1431), NIBBLE_CC,
                    description="CC number, button 1", group="button"),
]


def build_schema(
    dump_length: int = DUMP_LENGTH,
    logger: AppLogger | None = None,
) -> ParameterSchema:
    """Return a fresh schema holding every confirmed PC12 field."""
    schema = ParameterSchema(
        dump_length,
        start_marker=SYSEX_START,
        end_marker=SYSEX_END,
        header_length=HEADER_LENGTH,
        name=f"pc12-{dump_length}",
        logger=logger,
    )
    for desc in _CONFIRMED:
        schema.register(desc)
    return schema
