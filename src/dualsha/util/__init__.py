"""Utility modules for the dualsha accelerator."""

from .regmap import (
    MSG_WORDS,
    REGISTER_WINDOW_BYTES,
    STATE_WORDS,
    WORD_BYTES,
    Control,
    Reg,
    Region,
    Status,
    decode_offset,
    msg_offset,
    state_in_offset,
    state_out_offset,
)

__all__ = [
    "Reg",
    "Control",
    "Status",
    "Region",
    "WORD_BYTES",
    "MSG_WORDS",
    "STATE_WORDS",
    "REGISTER_WINDOW_BYTES",
    "decode_offset",
    "msg_offset",
    "state_in_offset",
    "state_out_offset",
]
