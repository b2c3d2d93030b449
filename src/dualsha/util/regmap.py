"""
Register map definitions for the SHA-256 accelerator.

Every engine instance exposes the same window of 32-bit registers. Offsets
below are byte offsets relative to the instance base address; all registers
are word aligned.

Register Window (per instance):
    Offset        Register                      Access
    0x00          CONTROL  (bit0=GO, bit31=DONE)  R/W
    0x04 - 0x40   MSG[0..15]                      R/W
    0x44 - 0x60   STATE_IN[0..7]                  R/W
    0x64 - 0x80   STATE_OUT[0..7] (latched)       R
    0x84          STATUS   (bit0=OVERFLOW)        R

Bus Address Space (default configuration):
    0x000 - 0x087 : Instance 0
    0x200 - 0x287 : Instance 1

Handshake:
    1. Write MSG and STATE_IN
    2. Write CONTROL = 0, then CONTROL = GO
    3. Poll CONTROL until DONE is set (DONE implies GO has been cleared)
    4. Read STATE_OUT
"""

from enum import IntEnum, IntFlag

WORD_BYTES = 4
MSG_WORDS = 16
STATE_WORDS = 8

# =============================================================================
# Register Offsets
# =============================================================================


class Reg(IntEnum):
    """Base byte offsets of the register groups within one instance window."""

    CONTROL = 0x00
    MSG = 0x04
    STATE_IN = 0x44
    STATE_OUT = 0x64
    STATUS = 0x84


class Control(IntFlag):
    """Bits of the CONTROL register."""

    NONE = 0
    GO = 1 << 0  # Set by the caller, cleared by hardware on completion
    DONE = 1 << 31  # Set by hardware on completion, cleared by any caller write


class Status(IntFlag):
    """Bits of the STATUS register."""

    NONE = 0
    OVERFLOW = 1 << 0  # Reserved, always reads 0


REGISTER_WINDOW_BYTES = Reg.STATUS + WORD_BYTES


class Region(IntEnum):
    """Register group an offset decodes to."""

    UNMAPPED = 0
    CONTROL = 1
    MSG = 2
    STATE_IN = 3
    STATE_OUT = 4
    STATUS = 5


# =============================================================================
# Helper Functions
# =============================================================================


def msg_offset(index: int) -> int:
    """Byte offset of message word ``index``."""
    return Reg.MSG + index * WORD_BYTES


def state_in_offset(index: int) -> int:
    """Byte offset of input state word ``index``."""
    return Reg.STATE_IN + index * WORD_BYTES


def state_out_offset(index: int) -> int:
    """Byte offset of latched output word ``index``."""
    return Reg.STATE_OUT + index * WORD_BYTES


def decode_offset(offset: int) -> tuple[Region, int]:
    """
    Decode a local byte offset into its register group and word index.

    Misaligned offsets and offsets outside the window decode to
    ``(Region.UNMAPPED, 0)``.

    Example:
        >>> decode_offset(0x48)
        (<Region.STATE_IN: 3>, 1)
    """
    if offset < 0 or offset % WORD_BYTES or offset >= REGISTER_WINDOW_BYTES:
        return Region.UNMAPPED, 0
    if offset == Reg.CONTROL:
        return Region.CONTROL, 0
    if offset < Reg.STATE_IN:
        return Region.MSG, (offset - Reg.MSG) // WORD_BYTES
    if offset < Reg.STATE_OUT:
        return Region.STATE_IN, (offset - Reg.STATE_IN) // WORD_BYTES
    if offset < Reg.STATUS:
        return Region.STATE_OUT, (offset - Reg.STATE_OUT) // WORD_BYTES
    return Region.STATUS, 0
