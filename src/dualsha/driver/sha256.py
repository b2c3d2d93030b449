"""
SHA-256 driver for the memory-mapped accelerator.

The driver owns message buffering, padding and length tracking; the hardware
only ever sees whole 512-bit blocks. One block is offloaded with the fixed
register protocol:

    1. Write MSG[0..15]       (offsets 0x04..0x40)
    2. Write STATE_IN[0..7]   (offsets 0x44..0x60)
    3. Write CONTROL = 0, then CONTROL = GO
    4. Spin on CONTROL until DONE is set
    5. Read STATE_OUT[0..7]   (offsets 0x64..0x80)

DONE needs no explicit acknowledge; the CONTROL writes of the next block
clear it.

Usage:
    ctx = Sha256Context(SimulatedBus())
    ctx.init()
    ctx.update(b"abc")
    digest = ctx.final()
"""

import logging

import numpy as np

from ..config import AcceleratorConfig
from ..engine.functions import H0, MASK32
from ..util.regmap import (
    MSG_WORDS,
    STATE_WORDS,
    Control,
    Reg,
    msg_offset,
    state_in_offset,
    state_out_offset,
)
from .bus import RegisterBus, SimulatedBus
from .errors import DigestFinalizedError, DriverTimeoutError

logger = logging.getLogger(__name__)

BLOCK_BYTES = 64
LENGTH_OFFSET = 56
BIT_LENGTH_MASK = (1 << 64) - 1

# Default for Sha256Context(max_polls=...): take the limit from the config
_CONFIG_POLL_LIMIT = object()


# =============================================================================
# Padding
# =============================================================================


def padding_blocks(tail: bytes, bit_length: int) -> list[bytes]:
    """
    Pad the final partial block.

    Appends 0x80, zero-fills to byte 56 (spilling into a second block when
    the tail leaves no room for the length), then the 64-bit big-endian
    message length in bits.

    Args:
        tail: Buffered bytes not yet processed (< 64)
        bit_length: Total message length in bits

    Returns:
        One or two 64-byte blocks.
    """
    if len(tail) >= BLOCK_BYTES:
        raise ValueError(f"tail must be shorter than {BLOCK_BYTES} bytes, got {len(tail)}")

    data = bytearray(tail)
    data.append(0x80)
    blocks = []
    if len(data) > LENGTH_OFFSET:
        data.extend(bytes(BLOCK_BYTES - len(data)))
        blocks.append(bytes(data))
        data = bytearray()
    data.extend(bytes(LENGTH_OFFSET - len(data)))
    data.extend((bit_length & BIT_LENGTH_MASK).to_bytes(8, "big"))
    blocks.append(bytes(data))
    return blocks


def pad_message(message: bytes) -> list[bytes]:
    """Split a whole message into padded 64-byte blocks."""
    full = len(message) - len(message) % BLOCK_BYTES
    blocks = [message[i : i + BLOCK_BYTES] for i in range(0, full, BLOCK_BYTES)]
    return blocks + padding_blocks(message[full:], len(message) * 8)


# =============================================================================
# Driver Context
# =============================================================================


class Sha256Context:
    """
    Streaming SHA-256 over one accelerator instance.

    Args:
        bus: Register bus reaching the accelerator
        instance: Engine instance to drive
        config: Accelerator configuration (address map, poll limit)
        max_polls: Override for ``config.poll_limit``; None spins until DONE
            with no bound
    """

    def __init__(
        self,
        bus: RegisterBus,
        instance: int = 0,
        config: AcceleratorConfig | None = None,
        max_polls: int | None | object = _CONFIG_POLL_LIMIT,
    ):
        self.bus = bus
        self.config = config or getattr(bus, "config", None) or AcceleratorConfig()
        self.instance = instance
        self.base = self.config.base_address(instance)
        if max_polls is _CONFIG_POLL_LIMIT:
            max_polls = self.config.poll_limit
        self.max_polls = max_polls

        self.blocks_processed = 0
        self.polls = 0
        self.init()

    # =========================================================================
    # Hash Interface
    # =========================================================================

    def init(self) -> None:
        """Reset the buffer, the length counter and the chaining state."""
        self.state = list(H0)
        self._buffer = bytearray()
        self._bit_length = 0
        self._finalized = False

    def update(self, data: bytes) -> None:
        """Absorb ``data``, offloading every completed 64-byte block."""
        self._check_open()
        data = bytes(data)
        pos = 0
        while pos < len(data):
            take = min(BLOCK_BYTES - len(self._buffer), len(data) - pos)
            self._buffer += data[pos : pos + take]
            pos += take
            if len(self._buffer) == BLOCK_BYTES:
                self.transform(bytes(self._buffer))
                self._bit_length = (self._bit_length + BLOCK_BYTES * 8) & BIT_LENGTH_MASK
                self._buffer.clear()

    def final(self) -> bytes:
        """Pad, run the last block(s) and return the 32-byte digest."""
        self._check_open()
        bit_length = (self._bit_length + len(self._buffer) * 8) & BIT_LENGTH_MASK
        for block in padding_blocks(bytes(self._buffer), bit_length):
            self.transform(block)
        self._buffer.clear()
        self._finalized = True
        return self.digest()

    def hexdigest(self) -> str:
        return self.final().hex()

    def digest(self) -> bytes:
        """Serialize the chaining state, most significant byte first per word."""
        return np.array(self.state, dtype=">u4").tobytes()

    def _check_open(self) -> None:
        if self._finalized:
            raise DigestFinalizedError("context already finalized; call init() first")

    # =========================================================================
    # Block Offload
    # =========================================================================

    def transform(self, block: bytes) -> None:
        """Compress one 64-byte block on the accelerator."""
        self.submit(block)
        self.wait()
        self.collect()

    def submit(self, block: bytes) -> None:
        """Write the job registers and raise GO (steps 1-3)."""
        if len(block) != BLOCK_BYTES:
            raise ValueError(f"block must be {BLOCK_BYTES} bytes, got {len(block)}")

        words = np.frombuffer(block, dtype=">u4")
        for i in range(MSG_WORDS):
            self.bus.write(self.base + msg_offset(i), int(words[i]))
        for i in range(STATE_WORDS):
            self.bus.write(self.base + state_in_offset(i), self.state[i] & MASK32)

        self.bus.write(self.base + Reg.CONTROL, 0)
        self.bus.write(self.base + Reg.CONTROL, int(Control.GO))
        logger.debug("instance %d: block %d submitted", self.instance, self.blocks_processed)

    def wait(self) -> int:
        """
        Spin on CONTROL until DONE is set (step 4).

        Returns:
            Number of control reads spent.

        Raises:
            DriverTimeoutError: DONE not seen within ``max_polls`` reads.
        """
        polls = 0
        while True:
            polls += 1
            if self.bus.read(self.base + Reg.CONTROL) & Control.DONE:
                break
            if self.max_polls is not None and polls >= self.max_polls:
                raise DriverTimeoutError(self.instance, polls)
        self.polls += polls
        return polls

    def collect(self) -> None:
        """Read the latched result into the chaining state (step 5)."""
        self.state = [self.bus.read(self.base + state_out_offset(i)) for i in range(STATE_WORDS)]
        self.blocks_processed += 1


# =============================================================================
# Convenience Functions
# =============================================================================


def sha256(data: bytes, bus: RegisterBus | None = None, instance: int = 0) -> bytes:
    """
    One-shot SHA-256 through the accelerator.

    A fresh simulated accelerator is used when no bus is given.

    Example:
        >>> sha256(b"abc").hex()[:16]
        'ba7816bf8f01cfea'
    """
    ctx = Sha256Context(bus if bus is not None else SimulatedBus(), instance=instance)
    ctx.update(data)
    return ctx.final()


def sha256_pair(data0: bytes, data1: bytes, bus: RegisterBus | None = None) -> tuple[bytes, bytes]:
    """
    Hash two messages concurrently, one per engine instance.

    Both instances are handed their next block and started before either is
    polled, so the two compressions overlap. When one message runs out of
    blocks the other continues alone.
    """
    if bus is None:
        bus = SimulatedBus()
    contexts = [Sha256Context(bus, instance=0), Sha256Context(bus, instance=1)]
    queues = [pad_message(bytes(data0)), pad_message(bytes(data1))]

    for step in range(max(len(queue) for queue in queues)):
        active = [i for i, queue in enumerate(queues) if step < len(queue)]
        for i in active:
            contexts[i].submit(queues[i][step])
        for i in active:
            contexts[i].wait()
            contexts[i].collect()

    return contexts[0].digest(), contexts[1].digest()
