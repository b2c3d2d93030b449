"""
Register bus adapters.

The driver talks to the accelerator only through ``read(addr)`` and
``write(addr, value)``. ``SimulatedBus`` implements that surface on top of
the behavioral model, charging one clock cycle per bus transaction the way a
single-beat memory-mapped bus does.
"""

from typing import Protocol

from ..config import AcceleratorConfig
from ..top import AcceleratorSim


class RegisterBus(Protocol):
    """Word-wide memory-mapped register access."""

    def read(self, addr: int) -> int: ...

    def write(self, addr: int, value: int) -> None: ...


class SimulatedBus:
    """
    Bus adapter driving an ``AcceleratorSim``.

    Every read and every write consumes exactly one accelerator cycle. Writes
    are presented to the register file during that cycle and land at its
    closing edge, so a write is visible to the next transaction.
    """

    def __init__(self, accel: AcceleratorSim | None = None, config: AcceleratorConfig | None = None):
        if accel is None:
            accel = AcceleratorSim(config or AcceleratorConfig())
        self.accel = accel
        self.reads = 0
        self.writes = 0

    @property
    def config(self) -> AcceleratorConfig:
        return self.accel.config

    def read(self, addr: int) -> int:
        value = self.accel.read(addr)
        self.accel.tick()
        self.reads += 1
        return value

    def write(self, addr: int, value: int) -> None:
        self.accel.write(addr, value)
        self.accel.tick()
        self.writes += 1

    @property
    def transactions(self) -> int:
        return self.reads + self.writes
