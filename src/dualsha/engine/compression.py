"""
SHA-256 Compression Engine - one block per run, one unit of work per cycle.

The engine is a five-state machine:

    IDLE ──start──► LOAD ──► EXPAND (x48) ──► COMPRESS (x64) ──► DONE ──► IDLE

- IDLE: Wait for start. The job (16 block words + 8 state words) is captured
  on the IDLE -> LOAD edge.
- LOAD: Clear schedule slots 16..63, set the step counter to 16.
- EXPAND: One message-schedule word per cycle, t = 16..63:
      W[t] = SIG1(W[t-2]) + W[t-7] + SIG0(W[t-15]) + W[t-16]
- COMPRESS: One round per cycle, t = 0..63:
      T1 = h + EP1(e) + CH(e, f, g) + K[t] + W[t]
      T2 = EP0(a) + MAJ(a, b, c)
      (a..h) <- (T1 + T2, a, b, c, d + T1, e, f, g)
- DONE: state_out = working + input state is valid and ``done`` is high for
  exactly one cycle.

Timing (from the cycle in which start is sampled):
    cycle 0        IDLE, start sampled
    cycle 1        LOAD
    cycles 2-49    EXPAND
    cycles 50-113  COMPRESS
    cycle 114      DONE

The run is fixed-latency: 114 cycles of work after start, no stalls and no
data-dependent branches. There is no abort; only a reset returns a running
engine to IDLE.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum

from amaranth import Array, Cat, Const, Module, Signal, unsigned
from amaranth.lib.wiring import Component, In, Out

from .functions import (
    BLOCK_WORDS,
    K,
    MASK32,
    ROUNDS,
    SCHEDULE_WORDS,
    STATE_WORDS,
    compress_round,
    expand_word,
)

logger = logging.getLogger(__name__)

RUN_STEPS = 1 + (SCHEDULE_WORDS - BLOCK_WORDS) + ROUNDS + 1
"""Steps from an accepted start to the completion event (114)."""


class EngineState(IntEnum):
    """Engine FSM state encoding (also driven on ``fsm_state``)."""

    IDLE = 0
    LOAD = 1
    EXPAND = 2
    COMPRESS = 3
    DONE = 4


# =============================================================================
# Logical Functions on Amaranth Values
# =============================================================================


def _ep0(x):
    return x.rotate_right(2) ^ x.rotate_right(13) ^ x.rotate_right(22)


def _ep1(x):
    return x.rotate_right(6) ^ x.rotate_right(11) ^ x.rotate_right(25)


def _sig0(x):
    return x.rotate_right(7) ^ x.rotate_right(18) ^ (x >> 3)


def _sig1(x):
    return x.rotate_right(17) ^ x.rotate_right(19) ^ (x >> 10)


def _ch(x, y, z):
    return (x & y) ^ (~x & z)


def _maj(x, y, z):
    return (x & y) ^ (x & z) ^ (y & z)


# =============================================================================
# RTL Component
# =============================================================================


class CompressionEngine(Component):
    """
    SHA-256 block compression engine.

    Ports:
        start: Start request, sampled only while IDLE
        block: 16 message words, word i at bits [32*i, 32*i+32)
        state_in: 8 chaining words, word i at bits [32*i, 32*i+32)

        state_out: working + input state (valid while ``done`` is high and
            stable until the next start)
        done: High during the single DONE cycle
        busy: Engine is not IDLE
        fsm_state: Current EngineState
        counter: Expansion / round counter

    Reset:
        The engine has no reset port of its own. Instantiating modules wrap it
        in ``ResetInserter`` to return it to IDLE synchronously.
    """

    def __init__(self):
        super().__init__(
            {
                # Job interface
                "start": In(1),
                "block": In(unsigned(32 * BLOCK_WORDS)),
                "state_in": In(unsigned(32 * STATE_WORDS)),
                # Result interface
                "state_out": Out(unsigned(32 * STATE_WORDS)),
                "done": Out(1),
                # Status
                "busy": Out(1),
                "fsm_state": Out(unsigned(3)),
                "counter": Out(unsigned(6)),
            }
        )

    def elaborate(self, _platform):
        m = Module()

        # =================================================================
        # Storage
        # =================================================================

        k_rom = Array(Const(k, unsigned(32)) for k in K)

        w_regs = [Signal(32, name=f"w_{t}") for t in range(SCHEDULE_WORDS)]
        schedule = Array(w_regs)

        working = [Signal(32, name=name) for name in "abcdefgh"]
        a, b, c, d, e, f, g, h = working

        # Copy of the input state for the final addition
        state_init = [Signal(32, name=f"h_in_{i}") for i in range(STATE_WORDS)]

        counter = Signal(range(SCHEDULE_WORDS), name="counter")
        m.d.comb += self.counter.eq(counter)

        # =================================================================
        # Datapath
        # =================================================================

        # Expansion operands; 6-bit indices wrap mod 64 so the subtractions
        # never leave the array while the counter is below 16.
        idx_2 = Signal(6, name="idx_2")
        idx_7 = Signal(6, name="idx_7")
        idx_15 = Signal(6, name="idx_15")
        idx_16 = Signal(6, name="idx_16")
        m.d.comb += [
            idx_2.eq(counter - 2),
            idx_7.eq(counter - 7),
            idx_15.eq(counter - 15),
            idx_16.eq(counter - 16),
        ]

        w_m2 = Signal(32, name="w_m2")
        w_m7 = Signal(32, name="w_m7")
        w_m15 = Signal(32, name="w_m15")
        w_m16 = Signal(32, name="w_m16")
        m.d.comb += [
            w_m2.eq(schedule[idx_2]),
            w_m7.eq(schedule[idx_7]),
            w_m15.eq(schedule[idx_15]),
            w_m16.eq(schedule[idx_16]),
        ]

        w_new = Signal(32, name="w_new")
        m.d.comb += w_new.eq(_sig1(w_m2) + w_m7 + _sig0(w_m15) + w_m16)

        # Round operands
        w_cur = Signal(32, name="w_cur")
        k_cur = Signal(32, name="k_cur")
        m.d.comb += [
            w_cur.eq(schedule[counter]),
            k_cur.eq(k_rom[counter]),
        ]

        t1 = Signal(32, name="t1")
        t2 = Signal(32, name="t2")
        m.d.comb += [
            t1.eq(h + _ep1(e) + _ch(e, f, g) + k_cur + w_cur),
            t2.eq(_ep0(a) + _maj(a, b, c)),
        ]

        # Finalization: always driven, meaningful from the DONE cycle on
        sums = [Signal(32, name=f"sum_{i}") for i in range(STATE_WORDS)]
        for i in range(STATE_WORDS):
            m.d.comb += sums[i].eq(working[i] + state_init[i])
        m.d.comb += self.state_out.eq(Cat(*sums))

        # =================================================================
        # State Machine
        # =================================================================

        with m.FSM(init="IDLE"):
            # -------------------------------------------------------------
            # IDLE: capture the job when start is seen
            # -------------------------------------------------------------
            with m.State("IDLE"):
                m.d.comb += self.fsm_state.eq(EngineState.IDLE)

                with m.If(self.start):
                    for t in range(BLOCK_WORDS):
                        m.d.sync += w_regs[t].eq(self.block.word_select(t, 32))
                    for i in range(STATE_WORDS):
                        word = self.state_in.word_select(i, 32)
                        m.d.sync += [
                            working[i].eq(word),
                            state_init[i].eq(word),
                        ]
                    m.d.sync += counter.eq(0)
                    m.next = "LOAD"

            # -------------------------------------------------------------
            # LOAD: clear the upper schedule, arm the expansion counter
            # -------------------------------------------------------------
            with m.State("LOAD"):
                m.d.comb += self.fsm_state.eq(EngineState.LOAD)

                for t in range(BLOCK_WORDS, SCHEDULE_WORDS):
                    m.d.sync += w_regs[t].eq(0)
                m.d.sync += counter.eq(BLOCK_WORDS)
                m.next = "EXPAND"

            # -------------------------------------------------------------
            # EXPAND: W[16..63], one word per cycle
            # -------------------------------------------------------------
            with m.State("EXPAND"):
                m.d.comb += self.fsm_state.eq(EngineState.EXPAND)

                m.d.sync += schedule[counter].eq(w_new)
                with m.If(counter == SCHEDULE_WORDS - 1):
                    m.d.sync += counter.eq(0)
                    m.next = "COMPRESS"
                with m.Else():
                    m.d.sync += counter.eq(counter + 1)

            # -------------------------------------------------------------
            # COMPRESS: 64 rounds, one per cycle
            # -------------------------------------------------------------
            with m.State("COMPRESS"):
                m.d.comb += self.fsm_state.eq(EngineState.COMPRESS)

                m.d.sync += [
                    h.eq(g),
                    g.eq(f),
                    f.eq(e),
                    e.eq(d + t1),
                    d.eq(c),
                    c.eq(b),
                    b.eq(a),
                    a.eq(t1 + t2),
                ]
                with m.If(counter == ROUNDS - 1):
                    m.d.sync += counter.eq(0)
                    m.next = "DONE"
                with m.Else():
                    m.d.sync += counter.eq(counter + 1)

            # -------------------------------------------------------------
            # DONE: result valid for one cycle, then back to IDLE
            # -------------------------------------------------------------
            with m.State("DONE"):
                m.d.comb += [
                    self.fsm_state.eq(EngineState.DONE),
                    self.done.eq(1),
                ]
                m.next = "IDLE"

        m.d.comb += self.busy.eq(self.fsm_state != EngineState.IDLE)

        return m


# =============================================================================
# Simulation Model
# =============================================================================


@dataclass
class CompressionEngineSim:
    """
    Behavioral model of one compression engine.

    Each ``step()`` performs exactly the work of one RTL cycle after the
    start has been sampled, so a run takes ``RUN_STEPS`` steps and the
    final step returns True (the completion event).

    ``start()`` on a busy engine is ignored and returns False; the engine
    only accepts a job while IDLE.

    Example:
        >>> engine = CompressionEngineSim()
        >>> engine.start(block, H0)
        >>> while not engine.step():
        ...     pass
        >>> engine.result()
    """

    state: EngineState = EngineState.IDLE
    counter: int = 0
    working: list[int] = field(default_factory=lambda: [0] * STATE_WORDS)
    schedule: list[int] = field(default_factory=lambda: [0] * SCHEDULE_WORDS)

    # Steps into the current job, cleared by start() and reset()
    steps_taken: int = 0

    # Statistics, kept across reset()
    runs_completed: int = 0

    # Job captured by start(), consumed by LOAD
    _job_block: list[int] = field(default_factory=lambda: [0] * BLOCK_WORDS, repr=False)
    _job_state: list[int] = field(default_factory=lambda: [0] * STATE_WORDS, repr=False)
    _result: list[int] = field(default_factory=lambda: [0] * STATE_WORDS, repr=False)
    _done: bool = False

    def reset(self) -> None:
        """Return to IDLE, discarding any in-flight job. Statistics are kept."""
        self.state = EngineState.IDLE
        self.counter = 0
        self.working = [0] * STATE_WORDS
        self.schedule = [0] * SCHEDULE_WORDS
        self.steps_taken = 0
        self._job_block = [0] * BLOCK_WORDS
        self._job_state = [0] * STATE_WORDS
        self._result = [0] * STATE_WORDS
        self._done = False

    def start(self, block, state) -> bool:
        """
        Accept a job if IDLE.

        Args:
            block: 16 message words
            state: 8 chaining words

        Returns:
            True if the job was accepted, False if the engine was busy.
        """
        if len(block) != BLOCK_WORDS:
            raise ValueError(f"block must have {BLOCK_WORDS} words, got {len(block)}")
        if len(state) != STATE_WORDS:
            raise ValueError(f"state must have {STATE_WORDS} words, got {len(state)}")

        if self.state != EngineState.IDLE:
            logger.debug("start ignored, engine busy in %s", self.state.name)
            return False

        self._job_block = [word & MASK32 for word in block]
        self._job_state = [word & MASK32 for word in state]
        self._done = False
        self.steps_taken = 0
        self.state = EngineState.LOAD
        return True

    def step(self) -> bool:
        """
        Advance one cycle.

        Returns:
            True on the step that finalizes the result.
        """
        if self.state == EngineState.IDLE:
            return False

        self.steps_taken += 1

        if self.state == EngineState.LOAD:
            self.schedule = self._job_block + [0] * (SCHEDULE_WORDS - BLOCK_WORDS)
            self.working = list(self._job_state)
            self.counter = BLOCK_WORDS
            self.state = EngineState.EXPAND

        elif self.state == EngineState.EXPAND:
            self.schedule[self.counter] = expand_word(self.schedule, self.counter)
            if self.counter == SCHEDULE_WORDS - 1:
                self.counter = 0
                self.state = EngineState.COMPRESS
            else:
                self.counter += 1

        elif self.state == EngineState.COMPRESS:
            t = self.counter
            self.working = list(compress_round(self.working, K[t], self.schedule[t]))
            if t == ROUNDS - 1:
                self.counter = 0
                self.state = EngineState.DONE
            else:
                self.counter += 1

        elif self.state == EngineState.DONE:
            self._result = [
                (w + s) & MASK32 for w, s in zip(self.working, self._job_state, strict=True)
            ]
            self._done = True
            self.runs_completed += 1
            self.state = EngineState.IDLE
            return True

        return False

    def run(self, block, state) -> tuple[int, ...]:
        """Start a job and step it to completion synchronously."""
        if not self.start(block, state):
            raise RuntimeError("engine is busy")
        while not self.step():
            pass
        return self.result()

    def is_done(self) -> bool:
        """True once the current job has finalized."""
        return self._done

    def result(self) -> tuple[int, ...]:
        """The finalized state words (meaningful only when ``is_done()``)."""
        return tuple(self._result)

    @property
    def busy(self) -> bool:
        return self.state != EngineState.IDLE
