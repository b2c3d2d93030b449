"""
DualSha256Top - Top-level integration of the SHA-256 accelerator.

This module wires together ``num_instances`` (default two) fully independent
engine/register-file pairs behind one flat register bus:

- RegisterFile: bus-facing job, control and result registers
- CompressionEngine: 114-cycle SHA-256 block compression

Address decoding (default configuration):
    addr[9]     instance select (0x000 -> instance 0, 0x200 -> instance 1)
    addr[8]     must be 0, otherwise the access is unmapped
    addr[7:0]   local byte offset within the register window

Each access is routed to exactly one pair; the pairs share no state, so no
arbitration exists between them. There is no interrupt output: completion is
observed only by polling CONTROL.DONE. The ``done`` and ``busy`` vectors are
status taps, one bit per instance.

Reset:
    ``rst`` synchronously clears every register and returns every engine to
    IDLE, discarding in-flight jobs.
"""

import logging
from dataclasses import dataclass, field

from amaranth import Module, Signal, unsigned
from amaranth.hdl import ResetInserter
from amaranth.lib.wiring import Component, In, Out

from .config import AcceleratorConfig
from .engine.compression import CompressionEngine
from .regfile.register_file import RegisterFile, RegisterFileSim

logger = logging.getLogger(__name__)


class DualSha256Top(Component):
    """
    Top-level multi-engine SHA-256 accelerator.

    Ports:
        Bus Interface:
            addr: Byte address
            wdata: Write data
            we: Write enable
            rdata: Read data (combinational)

        Control:
            rst: Synchronous reset of all instances

        Status (not interrupts):
            done: DONE bit per instance
            busy: Engine busy per instance
    """

    def __init__(self, config: AcceleratorConfig | None = None):
        self.config = config or AcceleratorConfig()
        cfg = self.config

        super().__init__(
            {
                # Bus interface
                "addr": In(unsigned(cfg.addr_bits)),
                "wdata": In(unsigned(cfg.word_bits)),
                "we": In(1),
                "rdata": Out(unsigned(cfg.word_bits)),
                # Control
                "rst": In(1),
                # Status
                "done": Out(unsigned(cfg.num_instances)),
                "busy": Out(unsigned(cfg.num_instances)),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        # =====================================================================
        # Address Decode
        # =====================================================================

        local_addr = self.addr[: cfg.local_addr_bits]
        instance_sel = self.addr[cfg.stride_bits :]

        # Bits between the register window and the instance select must be 0
        in_window = Signal(name="in_window")
        m.d.comb += in_window.eq(self.addr[cfg.local_addr_bits : cfg.stride_bits] == 0)

        # =====================================================================
        # Instances
        # =====================================================================

        for i in range(cfg.num_instances):
            regfile = RegisterFile(cfg)
            engine = CompressionEngine()
            m.submodules[f"regfile_{i}"] = ResetInserter(self.rst)(regfile)
            m.submodules[f"engine_{i}"] = ResetInserter(self.rst)(engine)

            selected = Signal(name=f"selected_{i}")
            m.d.comb += selected.eq(in_window & (instance_sel == i))

            # Bus -> register file
            m.d.comb += [
                regfile.addr.eq(local_addr),
                regfile.wdata.eq(self.wdata),
                regfile.we.eq(self.we & selected),
            ]

            # Register file <-> engine
            m.d.comb += [
                engine.start.eq(regfile.go),
                engine.block.eq(regfile.block),
                engine.state_in.eq(regfile.state_in),
                regfile.engine_done.eq(engine.done),
                regfile.engine_result.eq(engine.state_out),
            ]

            # Read data and status
            with m.If(selected):
                m.d.comb += self.rdata.eq(regfile.rdata)
            m.d.comb += [
                self.done[i].eq(regfile.done),
                self.busy[i].eq(engine.busy),
            ]

        return m


# =============================================================================
# Simulation Model
# =============================================================================


@dataclass
class AcceleratorSim:
    """
    Behavioral model of the full accelerator.

    Routes bus accesses to the owning ``RegisterFileSim`` and clocks all
    instances in lock step. Like the RTL, ``read()`` is combinational and
    ``write()`` takes effect at the next ``tick()``.

    Example:
        >>> accel = AcceleratorSim()
        >>> accel.write(0x200, 1)   # GO on instance 1
        >>> accel.tick()
        >>> accel.read(0x200) & 1
        1
    """

    config: AcceleratorConfig = field(default_factory=AcceleratorConfig)
    instances: list[RegisterFileSim] = field(init=False)
    cycle: int = 0

    def __post_init__(self):
        self.instances = [
            RegisterFileSim(config=self.config) for _ in range(self.config.num_instances)
        ]

    def decode(self, addr: int) -> tuple[int | None, int]:
        """
        Split a bus address into ``(instance index, local offset)``.

        The index is None when no instance window contains the address.
        """
        index, offset = divmod(addr, self.config.instance_stride)
        if addr < 0 or index >= self.config.num_instances:
            return None, offset
        return index, offset

    def instance(self, index: int) -> RegisterFileSim:
        """Register file (and engine) of instance ``index``."""
        if not 0 <= index < self.config.num_instances:
            raise ValueError(f"instance {index} out of range (0..{self.config.num_instances - 1})")
        return self.instances[index]

    def read(self, addr: int) -> int:
        index, offset = self.decode(addr)
        if index is None:
            return 0
        return self.instances[index].read(offset)

    def write(self, addr: int, value: int, enable: bool = True) -> None:
        index, offset = self.decode(addr)
        if index is None:
            logger.debug("write to unmapped address %#x ignored", addr)
            return
        self.instances[index].write(offset, value, enable)

    def tick(self, cycles: int = 1) -> list[int]:
        """
        Advance all instances by ``cycles`` clock edges.

        Returns:
            Indices of instances that completed a job, in completion order
            (an index repeats if it completed more than once).
        """
        completed = []
        for _ in range(cycles):
            for index, regfile in enumerate(self.instances):
                if regfile.tick():
                    completed.append(index)
            self.cycle += 1
        return completed

    def reset(self) -> None:
        """
        Clear every register in every instance and idle every engine.

        ``cycle`` and the per-instance statistics keep counting across reset.
        """
        for regfile in self.instances:
            regfile.reset()
        logger.debug("accelerator reset at cycle %d", self.cycle)

    @property
    def busy(self) -> list[bool]:
        return [regfile.busy for regfile in self.instances]

    @property
    def done(self) -> list[bool]:
        return [regfile.done for regfile in self.instances]
