"""
Register File - the bus-facing side of one engine instance.

The register file holds the job registers written by the caller, the control
and status bits of the GO/DONE handshake, and the latched copy of the
engine's last result.

Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                      REGISTER FILE                            │
    │                                                               │
    │   bus addr/wdata/we ──► decode ──┬──► CONTROL (GO, DONE)      │
    │                                  ├──► MSG[0..15]   ──► block  │
    │                                  └──► STATE_IN[0..7] ► state  │
    │                                                               │
    │   engine done/result ───────────────► STATE_OUT[0..7]         │
    │                                       DONE=1, GO=0            │
    │                                                               │
    │   bus rdata ◄── read mux (combinational, side-effect free)    │
    └──────────────────────────────────────────────────────────────┘

Write semantics (registered, take effect at the clock edge):
    CONTROL     GO <- wdata[0], DONE <- 0 (whatever wdata[31] holds)
    MSG/STATE   overwrite the addressed word
    STATE_OUT, STATUS, unmapped: ignored

Completion (same edge as the engine's DONE cycle):
    DONE <- 1, GO <- 0, STATE_OUT <- engine result

Collision rule:
    If a caller write to CONTROL lands on the completion edge, the completion
    latch wins: the cycle ends with DONE=1 and GO=0 and the caller's control
    write is dropped. Job register writes on that edge still apply.
"""

import logging
from dataclasses import dataclass, field

from amaranth import Cat, Const, Module, Signal, unsigned
from amaranth.lib.wiring import Component, In, Out

from ..config import AcceleratorConfig
from ..engine.compression import CompressionEngineSim, EngineState
from ..util.regmap import (
    MSG_WORDS,
    STATE_WORDS,
    Control,
    Reg,
    Region,
    Status,
    decode_offset,
    msg_offset,
    state_in_offset,
    state_out_offset,
)

logger = logging.getLogger(__name__)


class RegisterFile(Component):
    """
    Memory-mapped register file for one compression engine.

    Ports:
        Bus side:
            addr: Local byte offset within the instance window
            wdata: Write data
            we: Write enable (sampled at the clock edge)
            rdata: Read data for ``addr`` (combinational)

        Engine side:
            go: Current GO bit, drives the engine's start
            block: Message words, word i at bits [32*i, 32*i+32)
            state_in: Input state words
            engine_done: Engine completion pulse
            engine_result: Engine result words

        Status:
            done: Current DONE bit
    """

    def __init__(self, config: AcceleratorConfig):
        self.config = config

        super().__init__(
            {
                # Bus side
                "addr": In(unsigned(config.local_addr_bits)),
                "wdata": In(unsigned(config.word_bits)),
                "we": In(1),
                "rdata": Out(unsigned(config.word_bits)),
                # Engine side
                "go": Out(1),
                "block": Out(unsigned(32 * MSG_WORDS)),
                "state_in": Out(unsigned(32 * STATE_WORDS)),
                "engine_done": In(1),
                "engine_result": In(unsigned(32 * STATE_WORDS)),
                # Status
                "done": Out(1),
            }
        )

    def elaborate(self, _platform):
        m = Module()

        # =================================================================
        # Registers
        # =================================================================

        go = Signal(name="go")
        done = Signal(name="done")
        msg = [Signal(32, name=f"msg_{i}") for i in range(MSG_WORDS)]
        state_in = [Signal(32, name=f"state_in_{i}") for i in range(STATE_WORDS)]
        state_out = [Signal(32, name=f"state_out_{i}") for i in range(STATE_WORDS)]

        m.d.comb += [
            self.go.eq(go),
            self.done.eq(done),
            self.block.eq(Cat(*msg)),
            self.state_in.eq(Cat(*state_in)),
        ]

        # =================================================================
        # Read Mux
        # =================================================================

        with m.Switch(self.addr):
            with m.Case(Reg.CONTROL):
                m.d.comb += self.rdata.eq(Cat(go, Const(0, 30), done))
            for i in range(MSG_WORDS):
                with m.Case(msg_offset(i)):
                    m.d.comb += self.rdata.eq(msg[i])
            for i in range(STATE_WORDS):
                with m.Case(state_in_offset(i)):
                    m.d.comb += self.rdata.eq(state_in[i])
            for i in range(STATE_WORDS):
                with m.Case(state_out_offset(i)):
                    m.d.comb += self.rdata.eq(state_out[i])
            with m.Case(Reg.STATUS):
                # OVERFLOW is reserved and reads 0
                m.d.comb += self.rdata.eq(0)
            with m.Default():
                m.d.comb += self.rdata.eq(0)

        # =================================================================
        # Caller Writes
        # =================================================================

        with m.If(self.we), m.Switch(self.addr):
            with m.Case(Reg.CONTROL):
                m.d.sync += [
                    go.eq(self.wdata[0]),
                    done.eq(0),
                ]
            for i in range(MSG_WORDS):
                with m.Case(msg_offset(i)):
                    m.d.sync += msg[i].eq(self.wdata)
            for i in range(STATE_WORDS):
                with m.Case(state_in_offset(i)):
                    m.d.sync += state_in[i].eq(self.wdata)

        # =================================================================
        # Completion Latch
        # =================================================================

        # Placed after the caller writes so it takes priority on the same edge
        with m.If(self.engine_done):
            m.d.sync += [
                done.eq(1),
                go.eq(0),
            ]
            for i in range(STATE_WORDS):
                m.d.sync += state_out[i].eq(self.engine_result.word_select(i, 32))

        return m


# =============================================================================
# Simulation Model
# =============================================================================


@dataclass
class RegisterFileSim:
    """
    Behavioral model of one register file and its paired engine.

    Bus accesses follow the RTL: ``read()`` is a pure projection of the
    current register contents and ``write()`` is registered, becoming visible
    after the next ``tick()``. One write is accepted per cycle; a second
    ``write()`` before ``tick()`` replaces the first.

    Tick order mirrors one RTL clock edge:
        1. Engine: sample GO if IDLE, otherwise advance one step
        2. Apply the pending caller write
        3. Apply the completion latch (wins over a control write)
    """

    config: AcceleratorConfig = field(default_factory=AcceleratorConfig)
    engine: CompressionEngineSim = field(default_factory=CompressionEngineSim)

    go: bool = False
    done: bool = False
    message: list[int] = field(default_factory=lambda: [0] * MSG_WORDS)
    state_in: list[int] = field(default_factory=lambda: [0] * STATE_WORDS)
    state_out: list[int] = field(default_factory=lambda: [0] * STATE_WORDS)

    # Statistics, kept across reset()
    cycle: int = 0
    completions: int = 0
    collisions: int = 0

    _pending: tuple[int, int] | None = field(default=None, repr=False)

    # =========================================================================
    # Bus Interface
    # =========================================================================

    @property
    def control(self) -> int:
        """Current CONTROL register value."""
        value = Control.NONE
        if self.go:
            value |= Control.GO
        if self.done:
            value |= Control.DONE
        return int(value)

    def read(self, offset: int) -> int:
        """
        Read the register at ``offset``.

        Unmapped and misaligned offsets read 0. Reads have no side effects.
        """
        region, index = decode_offset(offset)
        if region == Region.CONTROL:
            return self.control
        if region == Region.MSG:
            return self.message[index]
        if region == Region.STATE_IN:
            return self.state_in[index]
        if region == Region.STATE_OUT:
            return self.state_out[index]
        if region == Region.STATUS:
            return int(Status.NONE)
        return 0

    def write(self, offset: int, value: int, enable: bool = True) -> None:
        """
        Register a write to ``offset``, applied at the next ``tick()``.

        Args:
            offset: Local byte offset
            value: Word to write (truncated to 32 bits)
            enable: Write strobe; a disabled write is a no-op
        """
        if not enable:
            return
        if self._pending is not None:
            logger.debug("write to %#04x replaces pending write to %#04x", offset, self._pending[0])
        self._pending = (offset, value & self.config.word_mask)

    # =========================================================================
    # Clocking
    # =========================================================================

    def tick(self) -> bool:
        """
        Advance one clock edge.

        Returns:
            True if the engine completed (and the result was latched) on this edge.
        """
        completed = False
        if self.engine.state == EngineState.IDLE:
            if self.go:
                self.engine.start(self.message, self.state_in)
                logger.debug("cycle %d: job accepted", self.cycle)
        else:
            completed = self.engine.step()

        pending, self._pending = self._pending, None
        if pending is not None:
            self._apply_write(*pending, completing=completed)

        if completed:
            self.done = True
            self.go = False
            self.state_out = list(self.engine.result())
            self.completions += 1
            logger.debug("cycle %d: result latched", self.cycle)

        self.cycle += 1
        return completed

    def _apply_write(self, offset: int, value: int, completing: bool) -> None:
        region, index = decode_offset(offset)
        if region == Region.CONTROL:
            if completing:
                self.collisions += 1
                logger.debug("cycle %d: control write dropped, completion latch wins", self.cycle)
                return
            if value & Control.GO and self.engine.busy:
                logger.warning("GO written while engine busy; running job is unaffected")
            self.go = bool(value & Control.GO)
            self.done = False
        elif region == Region.MSG:
            self.message[index] = value
        elif region == Region.STATE_IN:
            self.state_in[index] = value

    def reset(self) -> None:
        """Clear every register and return the engine to IDLE. Statistics are kept."""
        self.engine.reset()
        self.go = False
        self.done = False
        self.message = [0] * MSG_WORDS
        self.state_in = [0] * STATE_WORDS
        self.state_out = [0] * STATE_WORDS
        self._pending = None
        logger.debug("register file reset")

    @property
    def busy(self) -> bool:
        return self.engine.busy
